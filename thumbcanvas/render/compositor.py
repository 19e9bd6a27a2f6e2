from __future__ import annotations

import math
from dataclasses import dataclass

from PIL import Image, ImageChops, ImageDraw

from thumbcanvas.models import PhotoConfig, Rect
from thumbcanvas.render.layout import PhotoPlacement, zone_placement

_MIN_EDGE = 1e-6


@dataclass(slots=True)
class PhotoDraw:
    role: str
    zone: str
    target: Rect
    draw_rect: Rect


def cover_fit(image_width: float, image_height: float, target: Rect) -> Rect:
    """Scale uniformly so the image covers ``target``; overflow is split evenly.

    One axis of the result matches the target exactly, the other is at least
    as large as the target.
    """
    image_w = max(_MIN_EDGE, float(image_width))
    image_h = max(_MIN_EDGE, float(image_height))
    target_w = max(_MIN_EDGE, target.width)
    target_h = max(_MIN_EDGE, target.height)
    image_aspect = image_w / image_h
    target_aspect = target_w / target_h
    if image_aspect > target_aspect:
        draw_h = target_h
        draw_w = target_h * image_aspect
        draw_x = target.x - (draw_w - target_w) / 2.0
        draw_y = target.y
    else:
        draw_w = target_w
        draw_h = target_w / image_aspect
        draw_x = target.x
        draw_y = target.y - (draw_h - target_h) / 2.0
    return Rect(draw_x, draw_y, draw_w, draw_h)


def _clip_mask(size: tuple[int, int], target: Rect, rounded_top: bool) -> Image.Image:
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    left = int(math.floor(target.x))
    top = int(math.floor(target.y))
    right = int(math.ceil(target.right)) - 1
    bottom = int(math.ceil(target.bottom)) - 1
    if right < left or bottom < top:
        return mask
    if rounded_top:
        radius = max(0, int(round(target.width * 0.5)))
        draw.rounded_rectangle(
            (left, top, right, bottom),
            radius=radius,
            fill=255,
            corners=(True, True, False, False),
        )
    else:
        draw.rectangle((left, top, right, bottom), fill=255)
    return mask


def composite_photo(
    canvas: Image.Image,
    image: Image.Image,
    placement: PhotoPlacement,
    *,
    role: str,
) -> PhotoDraw | None:
    target = placement.rect
    if target.width < 1 or target.height < 1:
        return None
    draw_rect = cover_fit(image.width, image.height, target)
    draw_w = max(1, int(round(draw_rect.width)))
    draw_h = max(1, int(round(draw_rect.height)))
    resized = image.convert("RGBA").resize((draw_w, draw_h), resample=Image.Resampling.LANCZOS)
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    layer.paste(resized, (int(round(draw_rect.x)), int(round(draw_rect.y))))
    clip = _clip_mask(canvas.size, target, placement.rounded_top)
    layer.putalpha(ImageChops.multiply(layer.getchannel("A"), clip))
    canvas.alpha_composite(layer)
    return PhotoDraw(role=role, zone=placement.zone, target=target, draw_rect=draw_rect)


def place_photo(
    canvas: Image.Image,
    image: Image.Image | None,
    photo: PhotoConfig | None,
    zone: str | None,
    *,
    role: str,
) -> PhotoDraw | None:
    """Draw ``photo`` into ``zone``; missing zone, config or image leaves it empty."""
    if photo is None or zone is None or image is None:
        return None
    placement = zone_placement(zone, canvas.width, canvas.height, photo)
    return composite_photo(canvas, image, placement, role=role)
