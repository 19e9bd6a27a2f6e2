from thumbcanvas.models import Layout
from thumbcanvas.normalize import (
    clamp_int,
    config_to_dict,
    copy_config,
    default_config,
    normalize_config,
    parse_bool_value,
    safe_color,
)


def test_empty_payload_gets_defaults() -> None:
    config = normalize_config({})
    assert (config.width, config.height) == (1280, 720)
    assert config.background_color == "#1a1a2e"
    assert config.background_image is None
    assert config.background_opacity == 50
    assert config.background_effects is None
    assert config.layout == "centered"
    assert config.accent_color == "orange"
    assert config.element_opacity == 70
    assert config.text_lines == []
    assert config.overlays == []
    assert config.host_photo is None and config.guest_photo is None


def test_non_dict_payload_is_treated_as_empty() -> None:
    assert normalize_config(None) == default_config()
    assert normalize_config(["not", "a", "config"]) == default_config()


def test_legacy_layout_is_kept_as_written_and_resolved_on_read() -> None:
    config = normalize_config({"layout": "left-aligned"})
    assert config.layout == "left-aligned"
    assert config.resolved_layout is Layout.SOLO_LEFT
    assert normalize_config({"layout": "stacked"}).resolved_layout is Layout.CENTERED
    assert normalize_config({"layout": "diagonal"}).resolved_layout is Layout.CENTERED
    assert config_to_dict(config)["layout"] == "left-aligned"


def test_numbers_are_clamped() -> None:
    config = normalize_config(
        {
            "width": "-5",
            "backgroundOpacity": 140,
            "elementOpacity": "abc",
            "backgroundEffects": {"darkOverlay": -20, "vignetteIntensity": 300, "colorTint": "green"},
            "overlays": [{"id": "o", "text": "x", "x": "12.5", "y": None, "fontSize": 0}],
        }
    )
    assert config.width == 1
    assert config.background_opacity == 100
    assert config.element_opacity == 70
    effects = config.background_effects
    assert (effects.dark_overlay, effects.vignette_intensity, effects.color_tint) == (0, 100, "none")
    overlay = config.overlays[0]
    assert (overlay.x, overlay.y, overlay.font_size) == (12.5, 0.0, 1)


def test_snake_case_keys_are_accepted() -> None:
    config = normalize_config(
        {
            "background_color": "#ffffff",
            "accent_color": "purple",
            "host_photo": {"url": "host.png", "offset_x": 10},
            "text_lines": [{"text": "Hi", "highlight": "yes"}],
        }
    )
    assert config.background_color == "#ffffff"
    assert config.accent_color == "purple"
    assert config.host_photo.offset_x == 10
    assert config.text_lines[0].id == "1"
    assert config.text_lines[0].highlight is True


def test_photo_without_url_is_dropped() -> None:
    config = normalize_config({"hostPhoto": {"url": "   ", "scale": 120}, "guestPhoto": {"scale": 80}})
    assert config.host_photo is None
    assert config.guest_photo is None


def test_bad_overlay_fields_fall_back() -> None:
    config = normalize_config(
        {
            "overlays": [
                {"text": "a", "fontWeight": "heavy", "textAlign": "justify", "color": "nope"},
                "garbage",
            ]
        }
    )
    assert len(config.overlays) == 1
    overlay = config.overlays[0]
    assert overlay.id == "overlay-1"
    assert overlay.font_weight == "normal"
    assert overlay.text_align == "left"
    assert overlay.color == "#ffffff"


def test_unknown_accent_falls_back_to_orange() -> None:
    assert normalize_config({"accentColor": "teal"}).accent_color == "orange"


def test_dict_round_trip_is_stable() -> None:
    config = normalize_config(
        {
            "backgroundImage": "bg.png",
            "layout": "twoFace",
            "hostPhoto": {"url": "h.png", "scale": 150},
            "overlays": [{"id": "a", "text": "T", "x": 1, "y": 2, "shadow": True}],
        }
    )
    assert copy_config(config) == config
    assert config_to_dict(normalize_config(config_to_dict(config))) == config_to_dict(config)


def test_small_helpers() -> None:
    assert clamp_int("7.9", 0, 10, 3) == 7
    assert clamp_int(None, 0, 10, 3) == 3
    assert parse_bool_value("off", True) is False
    assert parse_bool_value("maybe", True) is True
    assert safe_color("rgba(0, 0, 0, 0.5)", "#fff") == "rgba(0, 0, 0, 0.5)"
    assert safe_color("", "#fff") == "#fff"
    gradient = "linear-gradient(90deg, #000 0%, #fff 100%)"
    assert safe_color(gradient, "#fff", allow_gradient=True) == gradient
    assert safe_color(gradient, "#fff") == "#fff"
    assert safe_color("not-a-color", "#123456", allow_gradient=True) == "#123456"
