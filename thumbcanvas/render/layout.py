from __future__ import annotations

from dataclasses import dataclass

from thumbcanvas.constants import PHOTO_SCALE_DEFAULT, PHOTO_SCALE_MAX, PHOTO_SCALE_MIN
from thumbcanvas.models import Layout, PhotoConfig, Rect

ZONE_LEFT = "left"
ZONE_RIGHT = "right"
ZONE_CENTER_BOTTOM = "center-bottom"
ZONE_RIGHT_THIRD = "right-third"

# (width ratio, height ratio, rounded top clip)
_ZONE_BOXES: dict[str, tuple[float, float, bool]] = {
    ZONE_LEFT: (0.30, 0.80, True),
    ZONE_RIGHT: (0.30, 0.80, True),
    ZONE_CENTER_BOTTOM: (0.35, 0.85, False),
    ZONE_RIGHT_THIRD: (0.30, 0.80, False),
}


@dataclass(slots=True, frozen=True)
class _LayoutRule:
    text_x_ratio: float
    text_align: str
    host_zone: str | None
    guest_zone: str | None


_LAYOUT_RULES: dict[Layout, _LayoutRule] = {
    Layout.CENTERED: _LayoutRule(0.5, "center", ZONE_CENTER_BOTTOM, ZONE_RIGHT_THIRD),
    Layout.TWO_FACE: _LayoutRule(0.5, "center", ZONE_LEFT, ZONE_RIGHT),
    Layout.SOLO_LEFT: _LayoutRule(0.55, "left", ZONE_RIGHT, None),
    Layout.SOLO_RIGHT: _LayoutRule(0.45, "right", ZONE_LEFT, None),
}


@dataclass(slots=True)
class LayoutPlan:
    layout: Layout
    text_x: float
    text_align: str
    host_zone: str | None
    guest_zone: str | None


@dataclass(slots=True)
class PhotoPlacement:
    zone: str
    rect: Rect
    rounded_top: bool


def plan_layout(layout: Layout | str, width: int, height: int) -> LayoutPlan:
    resolved = layout if isinstance(layout, Layout) else Layout.parse(layout)
    rule = _LAYOUT_RULES.get(resolved, _LAYOUT_RULES[Layout.CENTERED])
    return LayoutPlan(
        layout=resolved,
        text_x=width * rule.text_x_ratio,
        text_align=rule.text_align,
        host_zone=rule.host_zone,
        guest_zone=rule.guest_zone,
    )


def photo_scale_factor(photo: PhotoConfig) -> float:
    try:
        scale = float(photo.scale)
    except (TypeError, ValueError):
        scale = PHOTO_SCALE_DEFAULT
    return max(PHOTO_SCALE_MIN, min(PHOTO_SCALE_MAX, scale)) / 100.0


def zone_placement(zone: str, width: int, height: int, photo: PhotoConfig) -> PhotoPlacement:
    """Target box for a photo inside a named zone.

    ``scale`` multiplies the zone box before placement; the offsets translate
    the placed box.
    """
    width_ratio, height_ratio, rounded_top = _ZONE_BOXES.get(zone, _ZONE_BOXES[ZONE_CENTER_BOTTOM])
    scale = photo_scale_factor(photo)
    target_w = width * width_ratio * scale
    target_h = height * height_ratio * scale
    if zone == ZONE_LEFT:
        x = width * 0.08
    elif zone == ZONE_RIGHT:
        x = width * 0.92 - target_w
    elif zone == ZONE_RIGHT_THIRD:
        x = width * 0.65
    else:
        x = (width - target_w) / 2.0
    y = height - target_h
    rect = Rect(x, y, target_w, target_h).translate(photo.offset_x, photo.offset_y)
    return PhotoPlacement(zone=zone, rect=rect, rounded_top=rounded_top)
