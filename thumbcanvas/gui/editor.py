from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Any

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QColor, QKeySequence
from PyQt6.QtWidgets import (
    QCheckBox,
    QColorDialog,
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QInputDialog,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSpinBox,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from thumbcanvas.config import load_config, resolve_store_dir
from thumbcanvas.constants import ACCENT_COLORS, EXPORT_FORMATS, TINT_COLORS
from thumbcanvas.gui.canvas_widget import ThumbnailCanvasWidget
from thumbcanvas.models import BackgroundEffects, Layout, PhotoConfig, ThumbnailConfig
from thumbcanvas.normalize import config_to_dict, default_config, normalize_config, safe_color
from thumbcanvas.render.images import ROLE_GUEST, ROLE_HOST, ImageCache, decode_image_source
from thumbcanvas.render.renderer import CanvasRenderer
from thumbcanvas.render.typography import add_font_directories
from thumbcanvas.session import EditorSession
from thumbcanvas.storage import ThumbnailNotFoundError, ThumbnailStore
from thumbcanvas.template_loader import list_builtin_templates, load_template

LOGGER = logging.getLogger(__name__)

HEADLINE_ROWS = 3
IMAGE_FILE_FILTER = "Images (*.png *.jpg *.jpeg *.webp *.bmp *.gif)"


class _PhotoRow:
    def __init__(self, url: QLineEdit, scale: QSpinBox, offset_x: QSpinBox, offset_y: QSpinBox) -> None:
        self.url = url
        self.scale = scale
        self.offset_x = offset_x
        self.offset_y = offset_y

    def to_photo(self) -> PhotoConfig | None:
        url = self.url.text().strip()
        if not url:
            return None
        return PhotoConfig(
            url=url,
            scale=float(self.scale.value()),
            offset_x=float(self.offset_x.value()),
            offset_y=float(self.offset_y.value()),
        )

    def load(self, photo: PhotoConfig | None) -> None:
        self.url.setText(photo.url if photo else "")
        self.scale.setValue(int(round(photo.scale)) if photo else 100)
        self.offset_x.setValue(int(round(photo.offset_x)) if photo else 0)
        self.offset_y.setValue(int(round(photo.offset_y)) if photo else 0)


class ThumbnailEditorWindow(QMainWindow):
    def __init__(self, startup_file: Path | None = None) -> None:
        super().__init__()
        self.setWindowTitle("ThumbCanvas Editor")
        self.resize(1480, 900)
        self.setMinimumSize(1100, 680)

        self.app_config = load_config()
        font_dirs = self.app_config.get("font_dirs") or []
        if font_dirs:
            add_font_directories([str(item) for item in font_dirs])
        timeout = float(self.app_config.get("image_timeout") or 30.0)
        renderer = CanvasRenderer(
            ImageCache(functools.partial(decode_image_source, timeout=timeout)),
            font_path=str(self.app_config.get("font_path") or "") or None,
        )
        self.session = EditorSession(
            default_config(
                width=self.app_config.get("width"),
                height=self.app_config.get("height"),
                backgroundColor=self.app_config.get("background_color"),
            ),
            renderer=renderer,
            store=ThumbnailStore(resolve_store_dir(self.app_config)),
            history_size=int(self.app_config.get("history_size") or 50),
        )
        self.current_title = "Untitled"
        self._syncing = False

        self._setup_ui()
        self._setup_shortcuts()
        self._sync_controls()
        self.session.refresh()
        self._set_status("Ready.")

        if startup_file:
            self.open_config_file(startup_file)

    # ui ------------------------------------------------------------------

    def _setup_ui(self) -> None:
        root = QWidget()
        self.setCentralWidget(root)
        root_layout = QHBoxLayout(root)
        root_layout.setContentsMargins(10, 10, 10, 10)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        root_layout.addWidget(splitter)

        left_scroll = QScrollArea()
        left_scroll.setWidgetResizable(True)
        left_scroll.setMinimumWidth(400)
        left_scroll.setMaximumWidth(500)

        left_panel = QWidget()
        left_scroll.setWidget(left_panel)
        left_layout = QVBoxLayout(left_panel)
        left_layout.setContentsMargins(6, 6, 6, 6)
        left_layout.setSpacing(10)

        self._build_template_group(left_layout)
        self._build_background_group(left_layout)
        self._build_layout_group(left_layout)
        self._build_text_group(left_layout)
        self._build_photo_group(left_layout)
        self._build_overlay_group(left_layout)
        left_layout.addStretch(1)

        right_panel = QWidget()
        right_layout = QVBoxLayout(right_panel)
        right_layout.setContentsMargins(8, 8, 8, 8)
        right_layout.setSpacing(8)

        action_row = QHBoxLayout()
        for label, slot in (
            ("New", self.new_thumbnail),
            ("Open", self.open_saved),
            ("Save", self.save_thumbnail),
            ("Export", self.export_image),
            ("Undo", self.undo),
            ("Redo", self.redo),
        ):
            button = QPushButton(label)
            button.clicked.connect(slot)
            action_row.addWidget(button)
        action_row.addStretch(1)
        right_layout.addLayout(action_row)

        self.canvas = ThumbnailCanvasWidget(self.session)
        self.canvas.rendered.connect(self._on_rendered)
        right_layout.addWidget(self.canvas, stretch=1)

        splitter.addWidget(left_scroll)
        splitter.addWidget(right_panel)
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 1)
        splitter.setSizes([440, 1040])

        self.setStatusBar(self.statusBar())

    def _build_template_group(self, parent_layout: QVBoxLayout) -> None:
        group = QGroupBox("Template")
        parent_layout.addWidget(group)
        row = QHBoxLayout(group)
        self.template_combo = QComboBox()
        self.template_combo.addItems(list_builtin_templates())
        row.addWidget(self.template_combo, stretch=1)
        apply_btn = QPushButton("Apply")
        apply_btn.clicked.connect(self.apply_selected_template)
        row.addWidget(apply_btn)

    def _build_background_group(self, parent_layout: QVBoxLayout) -> None:
        group = QGroupBox("Background")
        parent_layout.addWidget(group)
        form = QFormLayout(group)
        form.setHorizontalSpacing(10)
        form.setVerticalSpacing(6)

        color_row = QWidget()
        color_layout = QHBoxLayout(color_row)
        color_layout.setContentsMargins(0, 0, 0, 0)
        self.background_color_input = QLineEdit()
        self.background_color_input.setPlaceholderText("#1a1a2e or linear-gradient(135deg, ...)")
        self.background_color_input.editingFinished.connect(self._apply_controls)
        color_layout.addWidget(self.background_color_input, stretch=1)
        pick_btn = QPushButton("Pick")
        pick_btn.setFixedWidth(56)
        pick_btn.clicked.connect(self.choose_background_color)
        color_layout.addWidget(pick_btn)
        form.addRow("Color", color_row)

        image_row = QWidget()
        image_layout = QHBoxLayout(image_row)
        image_layout.setContentsMargins(0, 0, 0, 0)
        self.background_image_input = QLineEdit()
        self.background_image_input.setPlaceholderText("URL, data URI or file path")
        self.background_image_input.editingFinished.connect(self._apply_controls)
        image_layout.addWidget(self.background_image_input, stretch=1)
        browse_btn = QPushButton("Browse")
        browse_btn.clicked.connect(lambda: self._browse_image(self.background_image_input))
        image_layout.addWidget(browse_btn)
        form.addRow("Image", image_row)

        self.background_opacity_spin = self._percent_spin(form, "Image Opacity")
        self.dark_overlay_spin = self._percent_spin(form, "Dark Overlay")
        self.tint_combo = QComboBox()
        self.tint_combo.addItems(list(TINT_COLORS.keys()))
        self.tint_combo.currentTextChanged.connect(self._apply_controls)
        form.addRow("Color Tint", self.tint_combo)
        self.vignette_spin = self._percent_spin(form, "Vignette")

    def _build_layout_group(self, parent_layout: QVBoxLayout) -> None:
        group = QGroupBox("Layout")
        parent_layout.addWidget(group)
        form = QFormLayout(group)

        self.layout_combo = QComboBox()
        self.layout_combo.addItems([member.value for member in Layout])
        self.layout_combo.currentTextChanged.connect(self._apply_controls)
        form.addRow("Layout", self.layout_combo)

        self.accent_combo = QComboBox()
        self.accent_combo.addItems(list(ACCENT_COLORS.keys()))
        self.accent_combo.currentTextChanged.connect(self._apply_controls)
        form.addRow("Accent", self.accent_combo)

        self.element_opacity_spin = self._percent_spin(form, "Highlight Opacity")

    def _build_text_group(self, parent_layout: QVBoxLayout) -> None:
        group = QGroupBox("Headline")
        parent_layout.addWidget(group)
        layout = QVBoxLayout(group)
        self.headline_inputs: list[tuple[QLineEdit, QCheckBox]] = []
        for index in range(HEADLINE_ROWS):
            row = QHBoxLayout()
            line = QLineEdit()
            line.setPlaceholderText(f"Line {index + 1}")
            line.editingFinished.connect(self._apply_controls)
            check = QCheckBox("Highlight")
            check.toggled.connect(self._apply_controls)
            row.addWidget(line, stretch=1)
            row.addWidget(check)
            layout.addLayout(row)
            self.headline_inputs.append((line, check))

    def _build_photo_group(self, parent_layout: QVBoxLayout) -> None:
        group = QGroupBox("Photos")
        parent_layout.addWidget(group)
        form = QFormLayout(group)
        self.photo_rows: dict[str, _PhotoRow] = {}
        for role, label in ((ROLE_HOST, "Host"), (ROLE_GUEST, "Guest")):
            url_row = QWidget()
            url_layout = QHBoxLayout(url_row)
            url_layout.setContentsMargins(0, 0, 0, 0)
            url_input = QLineEdit()
            url_input.setPlaceholderText("URL, data URI or file path")
            url_input.editingFinished.connect(self._apply_controls)
            url_layout.addWidget(url_input, stretch=1)
            browse_btn = QPushButton("Browse")
            browse_btn.clicked.connect(lambda _checked=False, target=url_input: self._browse_image(target))
            url_layout.addWidget(browse_btn)
            form.addRow(label, url_row)

            scale = self._spin(form, f"{label} Scale", 50, 200, 100)
            offset_x = self._spin(form, f"{label} Offset X", -4000, 4000, 0)
            offset_y = self._spin(form, f"{label} Offset Y", -4000, 4000, 0)
            self.photo_rows[role] = _PhotoRow(url_input, scale, offset_x, offset_y)

    def _build_overlay_group(self, parent_layout: QVBoxLayout) -> None:
        group = QGroupBox("Text Overlays")
        parent_layout.addWidget(group)
        form = QFormLayout(group)

        button_row = QHBoxLayout()
        add_btn = QPushButton("Add")
        add_btn.clicked.connect(self.add_overlay)
        button_row.addWidget(add_btn)
        remove_btn = QPushButton("Remove Selected")
        remove_btn.clicked.connect(self.remove_selected_overlay)
        button_row.addWidget(remove_btn)
        button_row.addStretch(1)
        button_wrap = QWidget()
        button_wrap.setLayout(button_row)
        form.addRow("", button_wrap)

        self.overlay_text_input = QLineEdit()
        self.overlay_text_input.editingFinished.connect(self._apply_overlay_controls)
        form.addRow("Text", self.overlay_text_input)
        self.overlay_size_spin = QSpinBox()
        self.overlay_size_spin.setRange(8, 400)
        self.overlay_size_spin.setValue(48)
        self.overlay_size_spin.valueChanged.connect(self._apply_overlay_controls)
        form.addRow("Font Size", self.overlay_size_spin)
        self.overlay_color_input = QLineEdit("#ffffff")
        self.overlay_color_input.editingFinished.connect(self._apply_overlay_controls)
        form.addRow("Color", self.overlay_color_input)
        self.overlay_shadow_check = QCheckBox("Shadow")
        self.overlay_shadow_check.toggled.connect(self._apply_overlay_controls)
        form.addRow("", self.overlay_shadow_check)
        self.overlay_outline_check = QCheckBox("Outline")
        self.overlay_outline_check.toggled.connect(self._apply_overlay_controls)
        form.addRow("", self.overlay_outline_check)

    def _spin(self, form: QFormLayout, label: str, minimum: int, maximum: int, value: int) -> QSpinBox:
        spin = QSpinBox()
        spin.setRange(minimum, maximum)
        spin.setValue(value)
        spin.valueChanged.connect(self._apply_controls)
        form.addRow(label, spin)
        return spin

    def _percent_spin(self, form: QFormLayout, label: str) -> QSpinBox:
        spin = self._spin(form, label, 0, 100, 0)
        spin.setSuffix(" %")
        return spin

    def _setup_shortcuts(self) -> None:
        bindings = (
            (QKeySequence.StandardKey.Undo, self.undo),
            (QKeySequence.StandardKey.Redo, self.redo),
            (QKeySequence.StandardKey.Save, self.save_thumbnail),
            (QKeySequence.StandardKey.Open, self.open_saved),
            (QKeySequence("Ctrl+E"), self.export_image),
        )
        for sequence, slot in bindings:
            action = QAction(self)
            action.setShortcut(sequence)
            action.triggered.connect(slot)
            self.addAction(action)

    def _set_status(self, message: str) -> None:
        self.statusBar().showMessage(message)

    def _show_error(self, title: str, message: str) -> None:
        QMessageBox.critical(self, title, message)

    # config <-> controls -------------------------------------------------

    def _sync_controls(self) -> None:
        config = self.session.config
        self._syncing = True
        try:
            self.background_color_input.setText(config.background_color)
            self.background_image_input.setText(config.background_image or "")
            self.background_opacity_spin.setValue(int(round(config.background_opacity)))
            effects = config.background_effects or BackgroundEffects()
            self.dark_overlay_spin.setValue(int(round(effects.dark_overlay)))
            self.tint_combo.setCurrentText(effects.color_tint)
            self.vignette_spin.setValue(int(round(effects.vignette_intensity)))
            self.layout_combo.setCurrentText(config.resolved_layout.value)
            self.accent_combo.setCurrentText(config.accent_color)
            self.element_opacity_spin.setValue(int(round(config.element_opacity)))
            for index, (line, check) in enumerate(self.headline_inputs):
                text_line = config.text_lines[index] if index < len(config.text_lines) else None
                line.setText(text_line.text if text_line else "")
                check.setChecked(bool(text_line and text_line.highlight))
            self.photo_rows[ROLE_HOST].load(config.host_photo)
            self.photo_rows[ROLE_GUEST].load(config.guest_photo)
            self._sync_overlay_controls()
        finally:
            self._syncing = False

    def _sync_overlay_controls(self) -> None:
        overlay = self.session.config.find_overlay(self.session.selected_id)
        previous = self._syncing
        self._syncing = True
        try:
            self.overlay_text_input.setText(overlay.text if overlay else "")
            self.overlay_size_spin.setValue(overlay.font_size if overlay else 48)
            self.overlay_color_input.setText(overlay.color if overlay else "#ffffff")
            self.overlay_shadow_check.setChecked(bool(overlay and overlay.shadow))
            self.overlay_outline_check.setChecked(bool(overlay and overlay.outline))
        finally:
            self._syncing = previous

    def _controls_payload(self) -> dict[str, Any]:
        payload = config_to_dict(self.session.config)
        payload["backgroundColor"] = safe_color(
            self.background_color_input.text(), self.session.config.background_color, allow_gradient=True
        )
        payload["backgroundImage"] = self.background_image_input.text().strip() or None
        payload["backgroundOpacity"] = self.background_opacity_spin.value()
        payload["backgroundEffects"] = {
            "darkOverlay": self.dark_overlay_spin.value(),
            "colorTint": self.tint_combo.currentText(),
            "vignetteIntensity": self.vignette_spin.value(),
        }
        selected_layout = self.layout_combo.currentText()
        # keep a stored legacy synonym unless the user picked a different layout
        if Layout.parse(payload.get("layout")).value != selected_layout:
            payload["layout"] = selected_layout
        payload["accentColor"] = self.accent_combo.currentText()
        payload["elementOpacity"] = self.element_opacity_spin.value()
        payload["textLines"] = [
            {"id": str(index + 1), "text": line.text(), "highlight": check.isChecked()}
            for index, (line, check) in enumerate(self.headline_inputs)
            if line.text().strip() or check.isChecked()
        ]
        for role, key in ((ROLE_HOST, "hostPhoto"), (ROLE_GUEST, "guestPhoto")):
            photo = self.photo_rows[role].to_photo()
            payload[key] = (
                {"url": photo.url, "scale": photo.scale, "offsetX": photo.offset_x, "offsetY": photo.offset_y}
                if photo
                else None
            )
        return payload

    def _apply_controls(self, *_args: Any) -> None:
        if self._syncing:
            return
        self.session.replace_config(normalize_config(self._controls_payload()))

    def _apply_overlay_controls(self, *_args: Any) -> None:
        if self._syncing or self.session.selected_id is None:
            return
        self.session.update_overlay(
            self.session.selected_id,
            text=self.overlay_text_input.text(),
            font_size=self.overlay_size_spin.value(),
            color=safe_color(self.overlay_color_input.text(), "#ffffff"),
            shadow=self.overlay_shadow_check.isChecked(),
            outline=self.overlay_outline_check.isChecked(),
        )

    def _on_rendered(self) -> None:
        self._sync_overlay_controls()

    # actions -------------------------------------------------------------

    def choose_background_color(self) -> None:
        current = QColor(self.background_color_input.text().strip() or "#1a1a2e")
        color = QColorDialog.getColor(current, self, "Background Color")
        if color.isValid():
            self.background_color_input.setText(color.name())
            self._apply_controls()

    def _browse_image(self, target: QLineEdit) -> None:
        file_path, _ = QFileDialog.getOpenFileName(self, "Choose Image", "", IMAGE_FILE_FILTER)
        if file_path:
            target.setText(file_path)
            self._apply_controls()

    def apply_selected_template(self) -> None:
        name = self.template_combo.currentText()
        if not name:
            return
        try:
            template = load_template(name)
        except (FileNotFoundError, ValueError) as exc:
            self._show_error("Template Error", str(exc))
            return
        self.session.apply_template(template)
        self._sync_controls()
        self._set_status(f"Applied template: {template.name}")

    def add_overlay(self) -> None:
        config = self.session.config
        self.session.add_overlay("New Text", config.width * 0.1, config.height * 0.1)
        self._sync_overlay_controls()

    def remove_selected_overlay(self) -> None:
        if self.session.selected_id is None:
            return
        self.session.remove_overlay(self.session.selected_id)
        self._sync_overlay_controls()

    def undo(self) -> None:
        if self.session.undo():
            self._sync_controls()

    def redo(self) -> None:
        if self.session.redo():
            self._sync_controls()

    def new_thumbnail(self) -> None:
        self.session.new(
            default_config(
                width=self.app_config.get("width"),
                height=self.app_config.get("height"),
                backgroundColor=self.app_config.get("background_color"),
            )
        )
        self.current_title = "Untitled"
        self._sync_controls()
        self._set_status("New thumbnail.")

    def save_thumbnail(self) -> None:
        title, ok = QInputDialog.getText(self, "Save Thumbnail", "Title", text=self.current_title)
        if not ok:
            return
        try:
            thumbnail_id = self.session.save(title.strip() or "Untitled")
        except OSError as exc:
            self._show_error("Save Failed", str(exc))
            return
        self.current_title = title.strip() or "Untitled"
        self._set_status(f"Saved: {thumbnail_id}")

    def open_saved(self) -> None:
        store = self.session.store
        if store is None:
            return
        records = store.list()
        if not records:
            self._set_status("No saved thumbnails.")
            return
        labels = [f"{record.title}  ({record.id})" for record in records]
        choice, ok = QInputDialog.getItem(self, "Open Thumbnail", "Thumbnail", labels, 0, False)
        if not ok:
            return
        record = records[labels.index(choice)]
        try:
            self.session.load(record.id)
        except (ThumbnailNotFoundError, ValueError) as exc:
            self._show_error("Open Failed", str(exc))
            return
        self.current_title = record.title
        self._sync_controls()
        self._set_status(f"Opened: {record.title}")

    def open_config_file(self, path: Path) -> None:
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            self._show_error("Open Failed", str(exc))
            return
        if isinstance(raw, dict) and isinstance(raw.get("config"), dict):
            raw = raw["config"]
        config: ThumbnailConfig = normalize_config(raw)
        self.session.new(config)
        self._sync_controls()
        self._set_status(f"Opened: {path}")

    def export_image(self) -> None:
        default_format = str(self.app_config.get("output_format") or "png").lower()
        file_path, _ = QFileDialog.getSaveFileName(
            self,
            "Export Thumbnail",
            f"thumbnail.{default_format}",
            "PNG (*.png);;JPEG (*.jpg *.jpeg);;WebP (*.webp)",
        )
        if not file_path:
            return
        out = Path(file_path)
        fmt = out.suffix.lower().lstrip(".") or default_format
        if fmt not in EXPORT_FORMATS:
            self._show_error("Export Failed", f"Unsupported format: {fmt}")
            return
        try:
            data = self.session.export(fmt=fmt, quality=int(self.app_config.get("quality") or 90))
            out.write_bytes(data)
        except (OSError, ValueError) as exc:
            LOGGER.exception("export failed")
            self._show_error("Export Failed", str(exc))
            return
        self._set_status(f"Exported: {out}")

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.session.close()
        super().closeEvent(event)
