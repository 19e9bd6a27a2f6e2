from __future__ import annotations

import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Callable

from thumbcanvas.controller import DragController, canvas_coordinates
from thumbcanvas.history import DEFAULT_HISTORY_SIZE, EditHistory
from thumbcanvas.models import PhotoConfig, TextLine, TextOverlay, ThumbnailConfig
from thumbcanvas.normalize import config_to_dict, default_config, normalize_config
from thumbcanvas.render.images import ROLE_GUEST, ROLE_HOST, ImageCache
from thumbcanvas.render.renderer import CanvasRenderer, RenderResult
from thumbcanvas.storage import ThumbnailStore
from thumbcanvas.template_loader import ThumbnailTemplate, apply_template

LOGGER = logging.getLogger(__name__)


def _camel_case(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


class EditorSession:
    """Single owner of the editable thumbnail.

    Every mutation goes through this object: it updates the config, records
    an undo entry and triggers one full redraw against the current config.
    """

    def __init__(
        self,
        config: ThumbnailConfig | None = None,
        *,
        renderer: CanvasRenderer | None = None,
        store: ThumbnailStore | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
        font_path: Path | str | None = None,
        on_render: Callable[[RenderResult], None] | None = None,
    ) -> None:
        self.config = config or default_config()
        self.renderer = renderer or CanvasRenderer(font_path=font_path)
        self.renderer.images.on_change = self._image_loaded
        self.store = store
        self.on_render = on_render
        # image loads finish on worker threads; redraws only run on the owner thread.
        # The GUI replaces this with a queued signal onto the UI thread.
        self.schedule_refresh: Callable[[], None] = self._request_refresh
        self._owner_thread = threading.get_ident()
        self._refresh_pending = threading.Event()
        self.selected_id: str | None = None
        self.saved_id: str | None = None
        self.last_result: RenderResult | None = None
        self.render_count = 0
        self._rendering = False
        self._dirty = False
        self.history = EditHistory(config_to_dict(self.config), max_size=history_size)
        self.drag = DragController(
            lambda: self.config,
            self.renderer.overlay_hit_box,
            on_select=self._drag_select,
            on_move=self._drag_move,
            on_drag_end=self._drag_end,
        )

    @property
    def images(self) -> ImageCache:
        return self.renderer.images

    # rendering -----------------------------------------------------------

    def refresh(self) -> RenderResult | None:
        """Redraw the current config.

        A refresh requested while a pass is running is folded into one more
        pass of the running call, so only complete redraws are published.
        """
        if self._rendering:
            self._dirty = True
            return None
        self._rendering = True
        try:
            while True:
                self._dirty = False
                self._refresh_pending.clear()
                result = self.renderer.render(self.config, selected_id=self.selected_id)
                self.render_count += 1
                self.last_result = result
                if not self._dirty and not self._refresh_pending.is_set():
                    break
        finally:
            self._rendering = False
        if self.on_render is not None:
            self.on_render(result)
        return result

    def _image_loaded(self) -> None:
        self.schedule_refresh()

    def _request_refresh(self) -> None:
        if threading.get_ident() == self._owner_thread:
            self.refresh()
        else:
            self._refresh_pending.set()

    def pump(self) -> RenderResult | None:
        """Run the redraw requested by image loads that finished on worker threads."""
        if not self._refresh_pending.is_set():
            return None
        return self.refresh()

    def wait_for_images(self, timeout: float | None = None) -> RenderResult | None:
        self.images.wait(timeout)
        return self.pump()

    # mutations -----------------------------------------------------------

    def _commit(self, record: bool = True) -> RenderResult | None:
        if record:
            self.history.push(config_to_dict(self.config))
        return self.refresh()

    def mutate(self, change: Callable[[ThumbnailConfig], Any]) -> RenderResult | None:
        change(self.config)
        self.config = normalize_config(config_to_dict(self.config))
        return self._commit()

    def replace_config(self, config: ThumbnailConfig, *, record: bool = True) -> RenderResult | None:
        self.config = config
        if self.selected_id is not None and config.find_overlay(self.selected_id) is None:
            self.selected_id = None
        return self._commit(record)

    def update(self, **changes: Any) -> RenderResult | None:
        """Apply top-level fields given as camelCase or snake_case keys."""
        data = config_to_dict(self.config)
        for key, value in changes.items():
            data[_camel_case(key)] = value
        return self.replace_config(normalize_config(data))

    def set_layout(self, layout: str) -> RenderResult | None:
        return self.mutate(lambda config: setattr(config, "layout", layout))

    def set_background(self, color: str | None = None, image: str | None = None) -> RenderResult | None:
        def _change(config: ThumbnailConfig) -> None:
            if color is not None:
                config.background_color = color
            config.background_image = image

        return self.mutate(_change)

    def set_text_lines(self, lines: list[tuple[str, bool]]) -> RenderResult | None:
        text_lines = [
            TextLine(id=str(index + 1), text=text, highlight=highlight) for index, (text, highlight) in enumerate(lines)
        ]
        return self.mutate(lambda config: setattr(config, "text_lines", text_lines))

    def set_photo(self, role: str, photo: PhotoConfig | None) -> RenderResult | None:
        if role not in (ROLE_HOST, ROLE_GUEST):
            raise ValueError(f"unknown photo role: {role}")
        attr = "host_photo" if role == ROLE_HOST else "guest_photo"
        return self.mutate(lambda config: setattr(config, attr, photo))

    def add_overlay(self, text: str, x: float, y: float, **fields: Any) -> TextOverlay:
        overlay = TextOverlay(id=uuid.uuid4().hex[:8], text=text, x=x, y=y, **fields)
        self.selected_id = overlay.id
        self.mutate(lambda config: config.overlays.append(overlay))
        return overlay

    def update_overlay(self, overlay_id: str, **fields: Any) -> RenderResult | None:
        def _change(config: ThumbnailConfig) -> None:
            overlay = config.find_overlay(overlay_id)
            if overlay is None:
                raise KeyError(overlay_id)
            for key, value in fields.items():
                setattr(overlay, key, value)

        return self.mutate(_change)

    def remove_overlay(self, overlay_id: str) -> RenderResult | None:
        if self.selected_id == overlay_id:
            self.selected_id = None
        return self.mutate(
            lambda config: setattr(config, "overlays", [item for item in config.overlays if item.id != overlay_id])
        )

    def select(self, overlay_id: str | None) -> RenderResult | None:
        if overlay_id is not None and self.config.find_overlay(overlay_id) is None:
            overlay_id = None
        self.selected_id = overlay_id
        return self.refresh()

    def apply_template(self, template: ThumbnailTemplate | dict[str, Any]) -> RenderResult | None:
        return self.replace_config(apply_template(self.config, template))

    # pointer input -------------------------------------------------------

    def _to_canvas(self, x: float, y: float, display_size: tuple[float, float] | None) -> tuple[float, float]:
        if display_size is None:
            return x, y
        return canvas_coordinates(x, y, canvas_size=(self.config.width, self.config.height), display_size=display_size)

    def pointer_down(self, x: float, y: float, display_size: tuple[float, float] | None = None) -> str | None:
        return self.drag.pointer_down(*self._to_canvas(x, y, display_size))

    def pointer_move(self, x: float, y: float, display_size: tuple[float, float] | None = None) -> None:
        self.drag.pointer_move(*self._to_canvas(x, y, display_size))

    def pointer_up(self) -> None:
        self.drag.pointer_up()

    def pointer_leave(self) -> None:
        self.drag.pointer_leave()

    def _drag_select(self, overlay_id: str | None) -> None:
        self.select(overlay_id)

    def _drag_move(self, overlay_id: str, x: float, y: float) -> None:
        overlay = self.config.find_overlay(overlay_id)
        if overlay is None:
            return
        overlay.x = x
        overlay.y = y
        self.refresh()

    def _drag_end(self, overlay_id: str, origin: tuple[float, float], final: tuple[float, float]) -> None:
        if origin != final:
            LOGGER.debug("overlay %s moved from %s to %s", overlay_id, origin, final)
            self.history.push(config_to_dict(self.config))

    # history -------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def undo(self) -> bool:
        state = self.history.undo()
        if state is None:
            return False
        self.replace_config(normalize_config(state), record=False)
        return True

    def redo(self) -> bool:
        state = self.history.redo()
        if state is None:
            return False
        self.replace_config(normalize_config(state), record=False)
        return True

    # persistence ---------------------------------------------------------

    def _require_store(self) -> ThumbnailStore:
        if self.store is None:
            raise RuntimeError("editor session has no thumbnail store")
        return self.store

    def save(self, title: str = "Untitled") -> str:
        store = self._require_store()
        if self.saved_id is None:
            self.saved_id = store.save(self.config, title=title)
        else:
            store.update(self.saved_id, config=self.config, title=title)
        return self.saved_id

    def load(self, thumbnail_id: str) -> RenderResult | None:
        config = self._require_store().load(thumbnail_id)
        self.saved_id = thumbnail_id
        self.selected_id = None
        self.config = config
        self.history.reset(config_to_dict(config))
        return self.refresh()

    def new(self, config: ThumbnailConfig | None = None) -> RenderResult | None:
        self.config = config or default_config()
        self.saved_id = None
        self.selected_id = None
        self.history.reset(config_to_dict(self.config))
        return self.refresh()

    def export(self, fmt: str = "png", quality: int = 90, wait_timeout: float | None = 30.0) -> bytes:
        return self.renderer.export(self.config, fmt=fmt, quality=quality, wait_timeout=wait_timeout)

    def close(self) -> None:
        self.images.close()
