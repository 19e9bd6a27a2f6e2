from __future__ import annotations

from pathlib import Path
from typing import Any

from PIL import Image, ImageDraw, ImageFilter

from thumbcanvas.constants import (
    HIT_PADDING,
    OVERLAY_OUTLINE_COLOR,
    OVERLAY_SHADOW,
    SELECTION_COLOR,
    SELECTION_DASH,
    SELECTION_LINE_WIDTH,
)
from thumbcanvas.models import Rect, TextOverlay
from thumbcanvas.render.gradient import css_to_rgba
from thumbcanvas.render.typography import FontSpec, resolve_font

_ALIGN_ANCHORS_TOP = {"left": "la", "center": "ma", "right": "ra"}

Shadow = tuple[tuple[int, int, int, int], float, float, float]


def overlay_font_spec(overlay: TextOverlay) -> FontSpec:
    return FontSpec(weight=overlay.font_weight, size=int(overlay.font_size), family=overlay.font_family)


def aligned_left(anchor_x: float, text_width: float, align: str) -> float:
    if align == "center":
        return anchor_x - text_width / 2.0
    if align == "right":
        return anchor_x - text_width
    return anchor_x


def overlay_text_box(overlay: TextOverlay, font_path: Path | str | None = None) -> Rect:
    """Measured box of an overlay: advance width by font size, top-anchored at ``y``."""
    font = resolve_font(overlay_font_spec(overlay), font_path)
    text_width = float(font.getlength(overlay.text))
    left = aligned_left(overlay.x, text_width, overlay.text_align)
    return Rect(left, overlay.y, text_width, float(overlay.font_size))


def overlay_hit_box(overlay: TextOverlay, font_path: Path | str | None = None) -> Rect:
    return overlay_text_box(overlay, font_path).inflate(HIT_PADDING)


def draw_text_shadow(
    canvas: Image.Image,
    xy: tuple[float, float],
    text: str,
    *,
    font: Any,
    anchor: str,
    shadow: Shadow,
    stroke_width: int = 0,
) -> None:
    color, blur, offset_x, offset_y = shadow
    measure = ImageDraw.Draw(canvas)
    left, top, right, bottom = measure.textbbox(xy, text, font=font, anchor=anchor, stroke_width=stroke_width)
    if right <= left or bottom <= top:
        return
    margin = int(blur * 2) + 2
    origin_x = int(left + offset_x) - margin
    origin_y = int(top + offset_y) - margin
    width = int(right - left) + margin * 2 + 1
    height = int(bottom - top) + margin * 2 + 1
    mask = Image.new("L", (width, height), 0)
    ImageDraw.Draw(mask).text(
        (xy[0] + offset_x - origin_x, xy[1] + offset_y - origin_y),
        text,
        font=font,
        fill=255,
        anchor=anchor,
        stroke_width=stroke_width,
        stroke_fill=255,
    )
    if blur > 0:
        # canvas shadowBlur maps to a gaussian sigma of blur / 2
        mask = mask.filter(ImageFilter.GaussianBlur(blur / 2.0))
    alpha = color[3] / 255.0
    mask = mask.point(lambda value: int(round(value * alpha)))
    layer = Image.new("RGBA", (width, height), color[:3] + (0,))
    layer.putalpha(mask)
    canvas.alpha_composite(layer, dest=(max(0, origin_x), max(0, origin_y)), source=(max(0, -origin_x), max(0, -origin_y)))


def draw_dashed_rect(
    draw: ImageDraw.ImageDraw,
    rect: Rect,
    *,
    color: str,
    width: int,
    dash: tuple[int, int],
) -> None:
    on, off = dash
    corners = [
        (rect.x, rect.y),
        (rect.right, rect.y),
        (rect.right, rect.bottom),
        (rect.x, rect.bottom),
    ]
    # the dash pattern carries over from one edge to the next
    phase = 0.0
    for index in range(4):
        x0, y0 = corners[index]
        x1, y1 = corners[(index + 1) % 4]
        length = abs(x1 - x0) + abs(y1 - y0)
        dx = (x1 - x0) / length if length else 0.0
        dy = (y1 - y0) / length if length else 0.0
        position = 0.0
        while position < length:
            cycle = phase % (on + off)
            if cycle < on:
                segment = min(on - cycle, length - position)
                start = (x0 + dx * position, y0 + dy * position)
                end = (x0 + dx * (position + segment), y0 + dy * (position + segment))
                draw.line([start, end], fill=color, width=width)
            else:
                segment = min(on + off - cycle, length - position)
            position += segment
            phase += segment


def draw_text_overlay(
    canvas: Image.Image,
    overlay: TextOverlay,
    *,
    selected: bool = False,
    font_path: Path | str | None = None,
) -> Rect:
    """Draw one legacy overlay and return its measured text box."""
    font = resolve_font(overlay_font_spec(overlay), font_path)
    anchor = _ALIGN_ANCHORS_TOP.get(overlay.text_align, "la")
    xy = (overlay.x, overlay.y)
    stroke_width = max(1, int(round(overlay.font_size / 30.0))) if overlay.outline else 0
    try:
        fill = css_to_rgba(overlay.color)
    except ValueError:
        fill = (255, 255, 255, 255)

    if overlay.shadow and overlay.text:
        draw_text_shadow(
            canvas,
            xy,
            overlay.text,
            font=font,
            anchor=anchor,
            shadow=OVERLAY_SHADOW,
            stroke_width=stroke_width,
        )
    draw = ImageDraw.Draw(canvas)
    if overlay.text:
        draw.text(
            xy,
            overlay.text,
            font=font,
            fill=fill,
            anchor=anchor,
            stroke_width=stroke_width,
            stroke_fill=OVERLAY_OUTLINE_COLOR if stroke_width else None,
        )

    box = overlay_text_box(overlay, font_path)
    if selected:
        draw_dashed_rect(
            draw,
            box.inflate(HIT_PADDING),
            color=SELECTION_COLOR,
            width=SELECTION_LINE_WIDTH,
            dash=SELECTION_DASH,
        )
    return box
