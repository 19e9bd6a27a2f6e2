from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from thumbcanvas.models import Rect, TextOverlay, ThumbnailConfig

LOGGER = logging.getLogger(__name__)

MeasureFn = Callable[[TextOverlay], Rect]


def canvas_coordinates(
    display_x: float,
    display_y: float,
    *,
    canvas_size: tuple[int, int],
    display_size: tuple[float, float],
) -> tuple[float, float]:
    """Map a pointer position on the displayed preview to canvas pixels."""
    canvas_w, canvas_h = canvas_size
    display_w, display_h = display_size
    scale_x = canvas_w / display_w if display_w > 0 else 1.0
    scale_y = canvas_h / display_h if display_h > 0 else 1.0
    return display_x * scale_x, display_y * scale_y


def find_text_at_position(
    overlays: list[TextOverlay],
    x: float,
    y: float,
    measure: MeasureFn,
) -> TextOverlay | None:
    """Topmost overlay whose padded box contains ``(x, y)``."""
    for overlay in reversed(overlays):
        if measure(overlay).contains(x, y):
            return overlay
    return None


@dataclass(slots=True, frozen=True)
class Dragging:
    overlay_id: str
    offset_x: float
    offset_y: float
    origin_x: float
    origin_y: float


class DragController:
    """Idle/Dragging state machine for click-select and drag-to-move.

    The controller never mutates the configuration itself. It reads the
    current config through ``get_config`` and publishes selection and
    position changes through the callbacks.
    """

    def __init__(
        self,
        get_config: Callable[[], ThumbnailConfig],
        measure: MeasureFn,
        *,
        on_select: Callable[[str | None], None] | None = None,
        on_move: Callable[[str, float, float], None] | None = None,
        on_drag_end: Callable[[str, tuple[float, float], tuple[float, float]], None] | None = None,
    ) -> None:
        self._get_config = get_config
        self._measure = measure
        self.on_select = on_select
        self.on_move = on_move
        self.on_drag_end = on_drag_end
        self.state: Dragging | None = None

    @property
    def is_dragging(self) -> bool:
        return self.state is not None

    def find_text_at_position(self, x: float, y: float) -> TextOverlay | None:
        return find_text_at_position(self._get_config().overlays, x, y, self._measure)

    def pointer_down(self, x: float, y: float) -> str | None:
        hit = self.find_text_at_position(x, y)
        if hit is None:
            self.state = None
            if self.on_select is not None:
                self.on_select(None)
            return None
        self.state = Dragging(
            overlay_id=hit.id,
            offset_x=x - hit.x,
            offset_y=y - hit.y,
            origin_x=hit.x,
            origin_y=hit.y,
        )
        LOGGER.debug("drag start on overlay %s", hit.id)
        if self.on_select is not None:
            self.on_select(hit.id)
        return hit.id

    def pointer_move(self, x: float, y: float) -> tuple[float, float] | None:
        state = self.state
        if state is None:
            return None
        new_x = x - state.offset_x
        new_y = y - state.offset_y
        if self.on_move is not None:
            self.on_move(state.overlay_id, new_x, new_y)
        return new_x, new_y

    def pointer_up(self) -> None:
        self._finish()

    def pointer_leave(self) -> None:
        self._finish()

    def _finish(self) -> None:
        state = self.state
        self.state = None
        if state is None:
            return
        overlay = self._get_config().find_overlay(state.overlay_id)
        if overlay is None or self.on_drag_end is None:
            return
        self.on_drag_end(state.overlay_id, (state.origin_x, state.origin_y), (overlay.x, overlay.y))
