import pytest
from PIL import Image

from thumbcanvas.controller import DragController
from thumbcanvas.models import Rect
from thumbcanvas.normalize import normalize_config
from thumbcanvas.render.images import ImageCache, InlineExecutor
from thumbcanvas.render.renderer import CanvasRenderer
from thumbcanvas.session import EditorSession


def _session(config: dict) -> EditorSession:
    renderer = CanvasRenderer(ImageCache(lambda url: Image.new("RGBA", (1, 1)), executor=InlineExecutor()))
    return EditorSession(normalize_config(config), renderer=renderer)


def _overlay_config() -> dict:
    return {
        "width": 640,
        "height": 360,
        "overlays": [{"id": "title", "text": "Drag me", "x": 200, "y": 150, "fontSize": 40}],
    }


def _center(rect: Rect) -> tuple[float, float]:
    return rect.x + rect.width / 2, rect.y + rect.height / 2


def test_drag_moves_overlay_by_pointer_delta() -> None:
    session = _session(_overlay_config())
    overlay = session.config.find_overlay("title")
    x, y = _center(session.renderer.overlay_hit_box(overlay))

    assert session.pointer_down(x, y) == "title"
    session.pointer_move(x + 10, y + 20)
    session.pointer_up()

    moved = session.config.find_overlay("title")
    assert (moved.x, moved.y) == (pytest.approx(210), pytest.approx(170))
    assert session.selected_id == "title"
    assert not session.drag.is_dragging


def test_drag_is_one_undo_step() -> None:
    session = _session(_overlay_config())
    x, y = _center(session.renderer.overlay_hit_box(session.config.overlays[0]))

    session.pointer_down(x, y)
    for step in range(1, 6):
        session.pointer_move(x + step * 4, y + step * 2)
    session.pointer_up()

    assert session.can_undo
    assert session.undo() is True
    restored = session.config.find_overlay("title")
    assert (restored.x, restored.y) == (200, 150)
    assert not session.can_undo


def test_click_without_move_records_nothing() -> None:
    session = _session(_overlay_config())
    x, y = _center(session.renderer.overlay_hit_box(session.config.overlays[0]))
    session.pointer_down(x, y)
    session.pointer_up()
    assert not session.can_undo


def test_pointer_down_on_empty_space_clears_selection() -> None:
    session = _session(_overlay_config())
    session.select("title")
    assert session.pointer_down(5, 5) is None
    assert session.selected_id is None
    assert not session.drag.is_dragging


def test_move_without_drag_and_up_without_drag_are_noops() -> None:
    session = _session(_overlay_config())
    session.pointer_move(300, 300)
    session.pointer_up()
    session.pointer_leave()
    overlay = session.config.find_overlay("title")
    assert (overlay.x, overlay.y) == (200, 150)


def test_pointer_leave_ends_the_drag() -> None:
    session = _session(_overlay_config())
    x, y = _center(session.renderer.overlay_hit_box(session.config.overlays[0]))
    session.pointer_down(x, y)
    session.pointer_move(x + 5, y + 5)
    session.pointer_leave()
    session.pointer_move(x + 50, y + 50)
    overlay = session.config.find_overlay("title")
    assert (overlay.x, overlay.y) == (pytest.approx(205), pytest.approx(155))


def test_display_coordinates_are_mapped_to_canvas() -> None:
    session = _session(_overlay_config())
    x, y = _center(session.renderer.overlay_hit_box(session.config.overlays[0]))
    display = (320, 180)

    session.pointer_down(x / 2, y / 2, display)
    session.pointer_move(x / 2 + 5, y / 2 + 10, display)
    session.pointer_up()

    overlay = session.config.find_overlay("title")
    assert (overlay.x, overlay.y) == (pytest.approx(210), pytest.approx(170))


def test_controller_state_machine_with_fixed_boxes() -> None:
    config = normalize_config({"overlays": [{"id": "a", "text": "A", "x": 10, "y": 10}]})
    events: list[tuple] = []

    def _move(overlay_id: str, x: float, y: float) -> None:
        events.append(("move", overlay_id, x, y))
        overlay = config.find_overlay(overlay_id)
        overlay.x, overlay.y = x, y

    controller = DragController(
        lambda: config,
        lambda overlay: Rect(overlay.x, overlay.y, 50, 20),
        on_select=lambda overlay_id: events.append(("select", overlay_id)),
        on_move=_move,
        on_drag_end=lambda overlay_id, origin, final: events.append(("end", overlay_id, origin, final)),
    )

    assert controller.pointer_down(15, 15) == "a"
    assert controller.is_dragging
    assert controller.pointer_move(25, 35) == (20, 30)
    controller.pointer_up()
    assert not controller.is_dragging
    assert controller.pointer_move(0, 0) is None
    controller.pointer_down(500, 500)

    assert events == [
        ("select", "a"),
        ("move", "a", 20, 30),
        ("end", "a", (10, 10), (20, 30)),
        ("select", None),
    ]
