import base64
import time
from concurrent.futures import Executor, Future
from io import BytesIO

import pytest
from PIL import Image

from thumbcanvas.normalize import normalize_config
from thumbcanvas.render.images import ImageCache, InlineExecutor
from thumbcanvas.render.renderer import CanvasRenderer


class _NeverFinishes(Executor):
    def submit(self, fn, /, *args, **kwargs) -> Future:  # type: ignore[override]
        return Future()


def _renderer(images: dict[str, Image.Image] | None = None) -> CanvasRenderer:
    table = images or {}
    return CanvasRenderer(ImageCache(table.__getitem__, executor=InlineExecutor()))


def _close(actual, expected, tolerance: int = 3) -> bool:
    return all(abs(int(a) - int(b)) <= tolerance for a, b in zip(actual, expected))


def test_centered_headline_with_highlight_and_no_photos() -> None:
    renderer = _renderer()
    config = normalize_config(
        {
            "layout": "centered",
            "backgroundColor": "#000000",
            "textLines": [{"id": "1", "text": "HELLO", "highlight": True}],
        }
    )

    result = renderer.render(config)

    assert result.photo_draws == []
    assert len(result.highlight_boxes) == 1
    box = result.highlight_boxes[0]
    assert box.x + box.width / 2 == pytest.approx(640)
    assert box.y + box.height / 2 == pytest.approx(360)
    assert box.height == 80 + 12

    # accent orange at 70% over black, sampled in the padding left of the text
    sample = result.image.getpixel((int(box.x) + 4, int(box.y) + 4))
    assert _close(sample[:3], (174, 81, 15))
    # white glyph pixels exist inside the box
    crop = result.image.crop((int(box.x), int(box.y), int(box.right), int(box.bottom))).convert("RGB")
    assert (255, 255, 255) in {pixel for pixel in crop.getdata()}
    # nothing outside the highlight box
    assert result.image.getpixel((20, 20))[:3] == (0, 0, 0)


def test_headline_lines_stack_around_the_vertical_center() -> None:
    renderer = _renderer()
    config = normalize_config(
        {
            "backgroundColor": "#000000",
            "textLines": [
                {"id": "1", "text": "ONE", "highlight": True},
                {"id": "2", "text": "TWO", "highlight": True},
            ],
        }
    )

    boxes = renderer.render(config).highlight_boxes

    centers = [box.y + box.height / 2 for box in boxes]
    assert centers[1] - centers[0] == pytest.approx(112)
    assert (centers[0] + centers[1]) / 2 == pytest.approx(360)


def test_accent_color_selects_highlight_color() -> None:
    renderer = _renderer()
    config = normalize_config(
        {
            "backgroundColor": "#000000",
            "accentColor": "blue",
            "elementOpacity": 100,
            "textLines": [{"text": "HI", "highlight": True}],
        }
    )
    result = renderer.render(config)
    box = result.highlight_boxes[0]
    assert _close(result.image.getpixel((int(box.x) + 3, int(box.y) + 3))[:3], (34, 211, 238))


def test_malformed_gradient_uses_fallback_fill() -> None:
    renderer = _renderer()
    config = normalize_config({"backgroundColor": "linear-gradient(sideways, what)"})
    assert renderer.render(config).image.getpixel((5, 5))[:3] == (26, 26, 46)


def test_invalid_solid_color_uses_fallback_fill() -> None:
    renderer = _renderer()
    config = normalize_config({"backgroundColor": "not-a-color"})
    assert renderer.render(config).image.getpixel((5, 5))[:3] == (26, 26, 46)


def test_effects_apply_in_order() -> None:
    renderer = _renderer()
    config = normalize_config(
        {
            "width": 200,
            "height": 100,
            "backgroundColor": "#ffffff",
            "backgroundEffects": {"darkOverlay": 50, "colorTint": "none", "vignetteIntensity": 0},
        }
    )
    assert _close(renderer.render(config).image.getpixel((100, 50))[:3], (127, 127, 127))

    tinted = normalize_config(
        {
            "width": 200,
            "height": 100,
            "backgroundColor": "#000000",
            "backgroundEffects": {"darkOverlay": 0, "colorTint": "blue", "vignetteIntensity": 0},
        }
    )
    pixel = renderer.render(tinted).image.getpixel((100, 50))
    assert _close(pixel[:3], (10, 63, 71))


def test_vignette_darkens_corners_not_center() -> None:
    renderer = _renderer()
    config = normalize_config(
        {
            "width": 400,
            "height": 200,
            "backgroundColor": "#ffffff",
            "backgroundEffects": {"vignetteIntensity": 100},
        }
    )
    image = renderer.render(config).image
    assert image.getpixel((200, 100))[:3] == (255, 255, 255)
    corner = image.getpixel((1, 1))
    assert corner[0] < 200


def test_background_image_draws_over_black_underlay_at_opacity() -> None:
    renderer = _renderer({"bg.png": Image.new("RGBA", (10, 10), (255, 255, 255, 255))})
    config = normalize_config(
        {"width": 100, "height": 50, "backgroundColor": "#ff0000", "backgroundImage": "bg.png", "backgroundOpacity": 50}
    )
    result = renderer.render(config)
    assert result.background_source == "image"
    assert _close(result.image.getpixel((50, 25))[:3], (128, 128, 128))


def test_background_opacity_defaults_to_half() -> None:
    renderer = _renderer({"bg.png": Image.new("RGBA", (10, 10), (255, 255, 255, 255))})
    config = normalize_config({"width": 100, "height": 50, "backgroundImage": "bg.png"})
    assert config.background_opacity == 50
    assert _close(renderer.render(config).image.getpixel((50, 25))[:3], (128, 128, 128))


def test_failed_background_image_falls_back_to_fill() -> None:
    def _loader(url: str) -> Image.Image:
        raise OSError("unreachable")

    renderer = CanvasRenderer(ImageCache(_loader, executor=InlineExecutor()))
    config = normalize_config({"width": 100, "height": 50, "backgroundColor": "#00ff00", "backgroundImage": "bg.png"})
    result = renderer.render(config)
    assert result.background_source == "fallback"
    assert result.image.getpixel((50, 25))[:3] == (0, 255, 0)


def test_pending_background_image_draws_fill() -> None:
    renderer = CanvasRenderer(ImageCache(lambda url: Image.new("RGBA", (1, 1)), executor=_NeverFinishes()))
    config = normalize_config({"width": 100, "height": 50, "backgroundColor": "#0000ff", "backgroundImage": "bg.png"})
    result = renderer.render(config)
    assert result.background_source == "pending"
    assert result.image.getpixel((50, 25))[:3] == (0, 0, 255)


def test_selected_overlay_gets_selection_box_only_in_preview() -> None:
    renderer = _renderer()
    config = normalize_config(
        {
            "width": 320,
            "height": 180,
            "backgroundColor": "#000000",
            "overlays": [{"id": "a", "text": "Hi", "x": 60, "y": 60, "fontSize": 32}],
        }
    )

    preview = renderer.render(config, selected_id="a")
    assert preview.selection_box is not None
    assert renderer.render(config).selection_box is None

    exported = Image.open(BytesIO(renderer.export(config, fmt="png")))
    plain = renderer.render(config).image
    assert exported.convert("RGBA").tobytes() == plain.tobytes()
    assert preview.image.tobytes() != plain.tobytes()


def test_export_formats() -> None:
    renderer = _renderer()
    config = normalize_config({"width": 64, "height": 36})
    assert renderer.export(config, fmt="png").startswith(b"\x89PNG")
    assert renderer.export(config, fmt="jpg").startswith(b"\xff\xd8")
    webp = renderer.export(config, fmt="webp")
    assert webp[:4] == b"RIFF" and webp[8:12] == b"WEBP"
    with pytest.raises(ValueError):
        renderer.export(config, fmt="gif")


def test_to_data_url_is_png() -> None:
    renderer = _renderer()
    url = renderer.to_data_url(normalize_config({"width": 16, "height": 9}))
    assert url.startswith("data:image/png;base64,")
    assert base64.b64decode(url.split(",", 1)[1]).startswith(b"\x89PNG")


def test_export_waits_for_images_loading_on_worker_threads() -> None:
    def _slow_loader(url: str) -> Image.Image:
        time.sleep(0.05)
        color = (255, 255, 255, 255) if url == "bg.png" else (255, 0, 0, 255)
        return Image.new("RGBA", (100, 100), color)

    renderer = CanvasRenderer(ImageCache(_slow_loader))
    config = normalize_config(
        {
            "width": 320,
            "height": 180,
            "layout": "centered",
            "backgroundColor": "#000000",
            "backgroundImage": "bg.png",
            "backgroundOpacity": 100,
            "hostPhoto": {"url": "host.png"},
        }
    )
    try:
        exported = Image.open(BytesIO(renderer.export(config, fmt="png"))).convert("RGBA")
        target = renderer.render(config).photo_draws[0].target
    finally:
        renderer.images.close()

    assert exported.getpixel((5, 5))[:3] == (255, 255, 255)
    assert exported.getpixel((int(target.x) + 2, int(target.y) + 2))[:3] == (255, 0, 0)


@pytest.mark.parametrize("layout", ["soloLeft", "soloRight"])
def test_guest_photo_is_not_fetched_without_a_guest_zone(layout) -> None:
    renderer = _renderer(
        {
            "host.png": Image.new("RGBA", (10, 10), (255, 0, 0, 255)),
            "guest.png": Image.new("RGBA", (10, 10), (0, 0, 255, 255)),
        }
    )
    config = normalize_config(
        {"layout": layout, "hostPhoto": {"url": "host.png"}, "guestPhoto": {"url": "guest.png"}}
    )

    result = renderer.render(config)
    renderer.export(config)

    assert [draw.role for draw in result.photo_draws] == ["host"]
    assert renderer.images.status("guest.png") == "idle"
    assert renderer.images.wanted_url("guest") is None
