# Defaulting layer: persisted / legacy JSON payloads -> fully populated ThumbnailConfig.
from __future__ import annotations

import json
import math
from typing import Any

from thumbcanvas.constants import (
    ACCENT_COLORS,
    DEFAULT_ACCENT,
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_BACKGROUND_OPACITY,
    DEFAULT_ELEMENT_OPACITY,
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    PHOTO_SCALE_DEFAULT,
    PHOTO_SCALE_MAX,
    PHOTO_SCALE_MIN,
    TINT_COLORS,
    VALID_FONT_WEIGHTS,
    VALID_TEXT_ALIGNS,
)
from thumbcanvas.models import (
    BackgroundEffects,
    Layout,
    PhotoConfig,
    TextLine,
    TextOverlay,
    ThumbnailConfig,
)
from thumbcanvas.render.gradient import css_to_rgba, is_gradient

_MAX_CANVAS_EDGE = 8192
_MAX_OFFSET = 100000.0


def clamp_int(value: Any, minimum: int, maximum: int, fallback: int) -> int:
    try:
        parsed = int(float(value))
    except Exception:
        parsed = fallback
    return max(minimum, min(maximum, parsed))


def clamp_float(value: Any, minimum: float, maximum: float, fallback: float) -> float:
    try:
        parsed = float(value)
    except Exception:
        parsed = fallback
    if math.isnan(parsed):
        parsed = fallback
    return max(minimum, min(maximum, parsed))


def clamp_percent(value: Any, fallback: float) -> float:
    return clamp_float(value, 0.0, 100.0, fallback)


def parse_bool_value(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    return default


def safe_color(value: Any, fallback: str, *, allow_gradient: bool = False) -> str:
    """Return ``value`` if it parses as a CSS color, else ``fallback``.

    With ``allow_gradient`` a `linear-gradient(...)` string is accepted as is.
    """
    text = str(value or "").strip()
    if not text:
        return fallback
    if allow_gradient and is_gradient(text):
        return text
    try:
        css_to_rgba(text)
    except ValueError:
        return fallback
    return text


def normalize_layout(value: Any) -> str:
    return Layout.parse(value).value


def _clean_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _pick(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _normalize_text_line(data: Any, index: int) -> TextLine | None:
    if not isinstance(data, dict):
        return None
    line_id = str(data.get("id") or index + 1)
    return TextLine(
        id=line_id,
        text=str(data.get("text") or ""),
        highlight=parse_bool_value(data.get("highlight"), False),
    )


def _normalize_overlay(data: Any, index: int) -> TextOverlay | None:
    if not isinstance(data, dict):
        return None
    weight = str(_pick(data, "fontWeight", "font_weight") or "normal").strip().lower()
    if weight not in VALID_FONT_WEIGHTS:
        weight = "normal"
    align = str(_pick(data, "textAlign", "text_align") or "left").strip().lower()
    if align not in VALID_TEXT_ALIGNS:
        align = "left"
    return TextOverlay(
        id=str(data.get("id") or f"overlay-{index + 1}"),
        text=str(data.get("text") or ""),
        x=clamp_float(data.get("x"), -_MAX_OFFSET, _MAX_OFFSET, 0.0),
        y=clamp_float(data.get("y"), -_MAX_OFFSET, _MAX_OFFSET, 0.0),
        font_size=clamp_int(_pick(data, "fontSize", "font_size"), 1, 1000, 48),
        font_family=str(_pick(data, "fontFamily", "font_family") or "Inter"),
        font_weight=weight,
        color=safe_color(data.get("color"), "#ffffff"),
        text_align=align,
        shadow=parse_bool_value(data.get("shadow"), False),
        outline=parse_bool_value(data.get("outline"), False),
    )


def _normalize_photo(data: Any) -> PhotoConfig | None:
    if not isinstance(data, dict):
        return None
    url = _clean_optional_text(data.get("url"))
    if url is None:
        return None
    return PhotoConfig(
        url=url,
        scale=clamp_float(data.get("scale"), PHOTO_SCALE_MIN, PHOTO_SCALE_MAX, PHOTO_SCALE_DEFAULT),
        offset_x=clamp_float(_pick(data, "offsetX", "offset_x"), -_MAX_OFFSET, _MAX_OFFSET, 0.0),
        offset_y=clamp_float(_pick(data, "offsetY", "offset_y"), -_MAX_OFFSET, _MAX_OFFSET, 0.0),
    )


def _normalize_effects(data: Any) -> BackgroundEffects | None:
    if not isinstance(data, dict):
        return None
    tint = str(_pick(data, "colorTint", "color_tint") or "none").strip().lower()
    if tint not in TINT_COLORS:
        tint = "none"
    return BackgroundEffects(
        dark_overlay=clamp_percent(_pick(data, "darkOverlay", "dark_overlay"), 0.0),
        color_tint=tint,
        vignette_intensity=clamp_percent(_pick(data, "vignetteIntensity", "vignette_intensity"), 0.0),
    )


def normalize_config(raw: Any) -> ThumbnailConfig:
    """Build a ThumbnailConfig from a saved payload.

    Missing keys take their defaults and out-of-range numbers are clamped, so
    older saved thumbnails always load. The ``layout`` string is kept exactly
    as written (legacy synonyms included).
    """
    data = raw if isinstance(raw, dict) else {}

    text_lines: list[TextLine] = []
    lines_raw = _pick(data, "textLines", "text_lines")
    if isinstance(lines_raw, list):
        for index, item in enumerate(lines_raw):
            line = _normalize_text_line(item, index)
            if line is not None:
                text_lines.append(line)

    overlays: list[TextOverlay] = []
    overlays_raw = data.get("overlays")
    if isinstance(overlays_raw, list):
        for index, item in enumerate(overlays_raw):
            overlay = _normalize_overlay(item, index)
            if overlay is not None:
                overlays.append(overlay)

    accent = str(_pick(data, "accentColor", "accent_color") or DEFAULT_ACCENT).strip().lower()
    if accent not in ACCENT_COLORS:
        accent = DEFAULT_ACCENT

    layout_raw = str(data.get("layout") or Layout.CENTERED.value).strip()

    return ThumbnailConfig(
        width=clamp_int(data.get("width"), 1, _MAX_CANVAS_EDGE, DEFAULT_WIDTH),
        height=clamp_int(data.get("height"), 1, _MAX_CANVAS_EDGE, DEFAULT_HEIGHT),
        background_color=str(_pick(data, "backgroundColor", "background_color") or DEFAULT_BACKGROUND_COLOR).strip(),
        background_image=_clean_optional_text(_pick(data, "backgroundImage", "background_image")),
        background_opacity=clamp_percent(
            _pick(data, "backgroundOpacity", "background_opacity"), DEFAULT_BACKGROUND_OPACITY
        ),
        background_effects=_normalize_effects(_pick(data, "backgroundEffects", "background_effects")),
        layout=layout_raw,
        accent_color=accent,
        element_opacity=clamp_percent(_pick(data, "elementOpacity", "element_opacity"), DEFAULT_ELEMENT_OPACITY),
        text_lines=text_lines,
        host_photo=_normalize_photo(_pick(data, "hostPhoto", "host_photo")),
        guest_photo=_normalize_photo(_pick(data, "guestPhoto", "guest_photo")),
        overlays=overlays,
    )


def _photo_to_dict(photo: PhotoConfig) -> dict[str, Any]:
    return {
        "url": photo.url,
        "scale": photo.scale,
        "offsetX": photo.offset_x,
        "offsetY": photo.offset_y,
    }


def config_to_dict(config: ThumbnailConfig) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "width": config.width,
        "height": config.height,
        "backgroundColor": config.background_color,
        "backgroundOpacity": config.background_opacity,
        "layout": config.layout,
        "accentColor": config.accent_color,
        "elementOpacity": config.element_opacity,
        "textLines": [
            {"id": line.id, "text": line.text, "highlight": line.highlight} for line in config.text_lines
        ],
        "overlays": [
            {
                "id": overlay.id,
                "text": overlay.text,
                "x": overlay.x,
                "y": overlay.y,
                "fontSize": overlay.font_size,
                "fontFamily": overlay.font_family,
                "fontWeight": overlay.font_weight,
                "color": overlay.color,
                "textAlign": overlay.text_align,
                "shadow": overlay.shadow,
                "outline": overlay.outline,
            }
            for overlay in config.overlays
        ],
    }
    if config.background_image:
        payload["backgroundImage"] = config.background_image
    if config.background_effects is not None:
        effects = config.background_effects
        payload["backgroundEffects"] = {
            "darkOverlay": effects.dark_overlay,
            "colorTint": effects.color_tint,
            "vignetteIntensity": effects.vignette_intensity,
        }
    if config.host_photo is not None:
        payload["hostPhoto"] = _photo_to_dict(config.host_photo)
    if config.guest_photo is not None:
        payload["guestPhoto"] = _photo_to_dict(config.guest_photo)
    return payload


def copy_config(config: ThumbnailConfig) -> ThumbnailConfig:
    return normalize_config(json.loads(json.dumps(config_to_dict(config))))


def default_config(**overrides: Any) -> ThumbnailConfig:
    return normalize_config(dict(overrides))
