import threading
import time

from PIL import Image

from thumbcanvas.models import PhotoConfig
from thumbcanvas.normalize import normalize_config
from thumbcanvas.render.images import ImageCache, InlineExecutor
from thumbcanvas.render.renderer import CanvasRenderer
from thumbcanvas.session import EditorSession
from thumbcanvas.storage import ThumbnailStore
from thumbcanvas.template_loader import load_template


def _renderer() -> CanvasRenderer:
    return CanvasRenderer(ImageCache(lambda url: Image.new("RGBA", (8, 8), (255, 0, 0, 255)), executor=InlineExecutor()))


def _session(store=None, **config) -> EditorSession:
    base = {"width": 320, "height": 180}
    base.update(config)
    return EditorSession(normalize_config(base), renderer=_renderer(), store=store)


def test_every_mutation_redraws_and_records_history() -> None:
    rendered = []
    session = _session()
    session.on_render = rendered.append

    session.set_layout("twoFace")
    session.set_text_lines([("Line one", True), ("Line two", False)])

    assert len(rendered) == 2
    assert rendered[-1] is session.last_result
    assert len(session.last_result.highlight_boxes) == 1

    assert session.undo() is True
    assert session.config.text_lines == []
    assert session.config.layout == "twoFace"
    assert session.undo() is True
    assert session.config.layout == "centered"
    assert session.undo() is False
    assert session.redo() is True
    assert session.config.layout == "twoFace"


def test_update_accepts_camel_and_snake_keys() -> None:
    session = _session()
    session.update(accentColor="blue", element_opacity=40)
    assert session.config.accent_color == "blue"
    assert session.config.element_opacity == 40


def test_photo_and_background_setters() -> None:
    session = _session()
    session.set_photo("host", PhotoConfig(url="host.png", scale=500))
    assert session.config.host_photo.scale == 200
    assert [draw.role for draw in session.last_result.photo_draws] == ["host"]

    session.set_background(color="#00ff00")
    assert session.last_result.image.getpixel((2, 2))[:3] == (0, 255, 0)


def test_overlay_lifecycle() -> None:
    session = _session()
    count = session.render_count
    overlay = session.add_overlay("Hello", 20, 30, font_size=24)
    assert session.render_count == count + 1
    assert session.selected_id == overlay.id
    assert session.last_result.selection_box is not None

    session.update_overlay(overlay.id, text="Changed", color="#ff0000")
    assert session.config.find_overlay(overlay.id).text == "Changed"

    session.remove_overlay(overlay.id)
    assert session.config.overlays == []
    assert session.selected_id is None
    assert session.last_result.selection_box is None


def test_select_unknown_overlay_clears_selection() -> None:
    session = _session(overlays=[{"id": "a", "text": "A", "x": 10, "y": 10}])
    session.select("a")
    assert session.selected_id == "a"
    session.select("missing")
    assert session.selected_id is None


def test_refresh_requested_during_render_runs_one_more_pass() -> None:
    session = _session()
    original = session.renderer.render
    calls = []

    def _render(config, *, selected_id=None):
        calls.append(config)
        if len(calls) == 1:
            # simulates an image load completing mid-render
            session.schedule_refresh()
        return original(config, selected_id=selected_id)

    session.renderer.render = _render
    published = []
    session.on_render = published.append

    result = session.refresh()

    assert len(calls) == 2
    assert published == [result]


def test_save_load_round_trip_resets_history(tmp_path) -> None:
    store = ThumbnailStore(tmp_path)
    session = _session(store=store)
    session.set_layout("soloRight")
    thumbnail_id = session.save("Mine")

    session.set_layout("soloLeft")
    assert session.save("Mine v2") == thumbnail_id
    assert store.get(thumbnail_id).title == "Mine v2"
    assert store.load(thumbnail_id).layout == "soloLeft"

    other = _session(store=store)
    other.load(thumbnail_id)
    assert other.config == store.load(thumbnail_id)
    assert other.saved_id == thumbnail_id
    assert not other.can_undo


def test_new_clears_saved_id(tmp_path) -> None:
    session = _session(store=ThumbnailStore(tmp_path))
    session.save()
    session.new()
    assert session.saved_id is None
    assert session.config.width == 1280
    assert not session.can_undo


def test_apply_template_is_undoable() -> None:
    session = _session()
    session.apply_template(load_template("health_guru"))
    assert session.config.layout == "soloRight"
    assert session.config.width == 320
    session.undo()
    assert session.config.layout == "centered"


def test_export_has_no_selection() -> None:
    session = _session(overlays=[{"id": "a", "text": "A", "x": 10, "y": 10}])
    session.select("a")
    data = session.export()
    assert data.startswith(b"\x89PNG")
    assert session.selected_id == "a"


def test_image_loads_on_worker_threads_redraw_on_the_owner_thread() -> None:
    def _slow_loader(url: str) -> Image.Image:
        time.sleep(0.05)
        return Image.new("RGBA", (8, 8), (255, 0, 0, 255))

    session = EditorSession(
        normalize_config({"width": 320, "height": 180}), renderer=CanvasRenderer(ImageCache(_slow_loader))
    )
    render_threads: list[str] = []
    session.on_render = lambda result: render_threads.append(threading.current_thread().name)
    try:
        session.set_photo("host", PhotoConfig(url="host.png"))
        assert session.images.wait(timeout=5) is True
        session.pump()
    finally:
        session.close()

    assert [draw.role for draw in session.last_result.photo_draws] == ["host"]
    assert set(render_threads) == {threading.current_thread().name}


def test_pump_without_finished_loads_does_not_redraw() -> None:
    session = _session()
    session.refresh()
    count = session.render_count
    assert session.pump() is None
    assert session.render_count == count
