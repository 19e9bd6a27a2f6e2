"""canvas_widget.py – preview label that forwards pointer input to the session."""
from __future__ import annotations

from PIL import Image
from PyQt6.QtCore import QObject, QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QImage, QPainter, QPixmap
from PyQt6.QtWidgets import QLabel, QWidget

from thumbcanvas.render.renderer import RenderResult
from thumbcanvas.session import EditorSession


def _pil_to_qpixmap(image: Image.Image) -> QPixmap:
    rgba = image.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    q_image = QImage(data, rgba.width, rgba.height, QImage.Format.Format_RGBA8888)
    return QPixmap.fromImage(q_image.copy())


class ImageLoadBridge(QObject):
    """Carries image-load completions from worker threads to the UI thread."""

    imagesChanged = pyqtSignal()


class ThumbnailCanvasWidget(QLabel):
    rendered = pyqtSignal()

    def __init__(self, session: EditorSession, parent: QWidget | None = None) -> None:
        super().__init__("No preview", parent)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setMouseTracking(False)
        self.setMinimumSize(320, 180)
        self._source_pixmap: QPixmap | None = None
        self.session = session

        self._bridge = ImageLoadBridge(self)
        self._bridge.imagesChanged.connect(self._on_images_changed, Qt.ConnectionType.QueuedConnection)
        session.schedule_refresh = self._bridge.imagesChanged.emit
        session.on_render = self._on_render

    def _on_images_changed(self) -> None:
        self.session.refresh()

    def _on_render(self, result: RenderResult) -> None:
        self._source_pixmap = _pil_to_qpixmap(result.image)
        self.setText("")
        self.update()
        self.rendered.emit()

    def _display_rect(self) -> QRectF | None:
        if self._source_pixmap is None:
            return None
        content = self.contentsRect()
        if content.width() <= 0 or content.height() <= 0:
            return None
        pix_w = max(1, self._source_pixmap.width())
        pix_h = max(1, self._source_pixmap.height())
        scale = min(content.width() / float(pix_w), content.height() / float(pix_h))
        if scale <= 0:
            return None
        draw_w = pix_w * scale
        draw_h = pix_h * scale
        center = QPointF(content.center())
        return QRectF(center.x() - (draw_w * 0.5), center.y() - (draw_h * 0.5), draw_w, draw_h)

    def _local_point(self, position: QPointF) -> tuple[float, float, tuple[float, float]] | None:
        draw_rect = self._display_rect()
        if draw_rect is None:
            return None
        return (
            position.x() - draw_rect.left(),
            position.y() - draw_rect.top(),
            (draw_rect.width(), draw_rect.height()),
        )

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            mapped = self._local_point(event.position())
            if mapped is not None:
                x, y, display_size = mapped
                hit = self.session.pointer_down(x, y, display_size)
                if hit is not None:
                    self.setCursor(Qt.CursorShape.ClosedHandCursor)
                event.accept()
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        if self.session.drag.is_dragging:
            mapped = self._local_point(event.position())
            if mapped is not None:
                x, y, display_size = mapped
                self.session.pointer_move(x, y, display_size)
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            self.session.pointer_up()
            self.unsetCursor()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def leaveEvent(self, event) -> None:  # type: ignore[override]
        self.session.pointer_leave()
        self.unsetCursor()
        super().leaveEvent(event)

    def paintEvent(self, event) -> None:  # type: ignore[override]
        super().paintEvent(event)
        if self._source_pixmap is None:
            return
        draw_rect = self._display_rect()
        if draw_rect is None:
            return
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        painter.setClipRect(self.contentsRect())
        painter.drawPixmap(
            draw_rect,
            self._source_pixmap,
            QRectF(0, 0, self._source_pixmap.width(), self._source_pixmap.height()),
        )
        painter.end()
