# Full-redraw thumbnail renderer: background -> effects -> photos -> headline -> overlays.
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageColor, ImageDraw

from thumbcanvas.constants import (
    ACCENT_COLORS,
    DEFAULT_ACCENT,
    EXPORT_FORMATS,
    GRADIENT_FALLBACK_COLOR,
    HEADLINE_FONT_FAMILY,
    HEADLINE_FONT_SIZE,
    HEADLINE_LINE_HEIGHT,
    HEADLINE_PADDING,
    HEADLINE_SHADOW,
    HEADLINE_TEXT_COLOR,
    IMAGE_UNDERLAY_COLOR,
    TINT_COLORS,
    VIGNETTE_INNER_RATIO,
    VIGNETTE_RADIUS_RATIO,
)
from thumbcanvas.models import BackgroundEffects, PhotoConfig, Rect, TextOverlay, ThumbnailConfig
from thumbcanvas.normalize import clamp_percent
from thumbcanvas.render.compositor import PhotoDraw, place_photo
from thumbcanvas.render.gradient import css_to_rgba, is_gradient, render_linear_gradient, resolve_linear_gradient
from thumbcanvas.render.images import ROLE_BACKGROUND, ROLE_GUEST, ROLE_HOST, STATUS_FAILED, ImageCache
from thumbcanvas.render.layout import plan_layout
from thumbcanvas.render.overlay import aligned_left, draw_text_overlay, draw_text_shadow, overlay_hit_box
from thumbcanvas.render.typography import FontSpec, resolve_font

LOGGER = logging.getLogger(__name__)

_HEADLINE_ANCHORS = {"left": "lm", "center": "mm", "right": "rm"}


@dataclass(slots=True)
class RenderResult:
    image: Image.Image
    photo_draws: list[PhotoDraw] = field(default_factory=list)
    highlight_boxes: list[Rect] = field(default_factory=list)
    overlay_boxes: dict[str, Rect] = field(default_factory=dict)
    background_source: str = "fill"
    selection_box: Rect | None = None


def _alpha_layer(size: tuple[int, int], rgba: tuple[int, int, int, int]) -> Image.Image:
    return Image.new("RGBA", size, rgba)


def _percent_alpha(percent: float) -> int:
    return int(round(clamp_percent(percent, 0.0) / 100.0 * 255))


def fill_background(canvas: Image.Image, background: str) -> None:
    if is_gradient(background):
        gradient = resolve_linear_gradient(background, canvas.width, canvas.height)
        if gradient is not None:
            canvas.alpha_composite(render_linear_gradient(gradient, canvas.size))
            return
        LOGGER.debug("unparsable gradient %r, using fallback fill", background)
        color = GRADIENT_FALLBACK_COLOR
    else:
        color = background
    try:
        rgba = css_to_rgba(color)
    except ValueError:
        LOGGER.debug("invalid background color %r, using fallback fill", color)
        rgba = css_to_rgba(GRADIENT_FALLBACK_COLOR)
    canvas.alpha_composite(_alpha_layer(canvas.size, rgba))


def draw_background_image(canvas: Image.Image, image: Image.Image, opacity_pct: float) -> None:
    canvas.alpha_composite(_alpha_layer(canvas.size, css_to_rgba(IMAGE_UNDERLAY_COLOR)))
    stretched = image.convert("RGBA").resize(canvas.size, resample=Image.Resampling.LANCZOS)
    opacity = clamp_percent(opacity_pct, 100.0) / 100.0
    if opacity < 1.0:
        stretched.putalpha(stretched.getchannel("A").point(lambda value: int(round(value * opacity))))
    canvas.alpha_composite(stretched)


def _vignette_layer(size: tuple[int, int], intensity_pct: float) -> Image.Image:
    width, height = size
    radius = max(width, height) * VIGNETTE_RADIUS_RATIO
    side = max(2, int(round(radius * 2)))
    # radial_gradient: 0 at the centre, 255 at 128px from it
    distance = Image.radial_gradient("L").resize((side, side), resample=Image.Resampling.BILINEAR)
    max_alpha = clamp_percent(intensity_pct, 0.0) / 100.0 * 255
    inner = VIGNETTE_INNER_RATIO

    def _ramp(value: int) -> int:
        ratio = value / 255.0
        t = (ratio - inner) / (1.0 - inner)
        return int(round(max(0.0, min(1.0, t)) * max_alpha))

    alpha = distance.point(_ramp)
    left = (side - width) // 2
    top = (side - height) // 2
    alpha = alpha.crop((left, top, left + width, top + height))
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    layer.putalpha(alpha)
    return layer


def apply_background_effects(canvas: Image.Image, effects: BackgroundEffects | None) -> None:
    if effects is None:
        return
    if effects.dark_overlay > 0:
        canvas.alpha_composite(_alpha_layer(canvas.size, (0, 0, 0, _percent_alpha(effects.dark_overlay))))
    tint = TINT_COLORS.get(effects.color_tint)
    if tint is not None:
        canvas.alpha_composite(_alpha_layer(canvas.size, tint))
    if effects.vignette_intensity > 0:
        canvas.alpha_composite(_vignette_layer(canvas.size, effects.vignette_intensity))


class CanvasRenderer:
    """Owns the image cache and draws ThumbnailConfig snapshots.

    Every call to :meth:`render` is a complete redraw of one configuration.
    """

    def __init__(self, images: ImageCache | None = None, *, font_path: Path | str | None = None) -> None:
        self.images = images or ImageCache()
        self.font_path = font_path

    def headline_font_spec(self) -> FontSpec:
        return FontSpec(weight="bold", size=HEADLINE_FONT_SIZE, family=HEADLINE_FONT_FAMILY)

    def overlay_hit_box(self, overlay: TextOverlay) -> Rect:
        return overlay_hit_box(overlay, self.font_path)

    def _draw_background(self, canvas: Image.Image, config: ThumbnailConfig) -> str:
        image = self.images.request(ROLE_BACKGROUND, config.background_image)
        if config.background_image and image is not None:
            draw_background_image(canvas, image, config.background_opacity)
            return "image"
        if config.background_image and self.images.status(config.background_image) == STATUS_FAILED:
            fill_background(canvas, config.background_color)
            return "fallback"
        fill_background(canvas, config.background_color)
        return "fill" if not config.background_image else "pending"

    def _photo_slots(
        self, config: ThumbnailConfig, width: int, height: int
    ) -> list[tuple[str, PhotoConfig | None, str | None]]:
        plan = plan_layout(config.resolved_layout, width, height)
        return [
            (ROLE_HOST, config.host_photo, plan.host_zone),
            (ROLE_GUEST, config.guest_photo, plan.guest_zone),
        ]

    @staticmethod
    def _slot_url(photo: PhotoConfig | None, zone: str | None) -> str | None:
        # a photo without a zone in this layout is never drawn, so it is not fetched
        if photo is None or zone is None:
            return None
        return photo.url

    def request_images(self, config: ThumbnailConfig) -> None:
        """Start loading every image ``config`` draws."""
        self.images.request(ROLE_BACKGROUND, config.background_image)
        for role, photo, zone in self._photo_slots(config, config.width, config.height):
            self.images.request(role, self._slot_url(photo, zone))

    def _draw_photos(self, canvas: Image.Image, config: ThumbnailConfig) -> list[PhotoDraw]:
        draws: list[PhotoDraw] = []
        for role, photo, zone in self._photo_slots(config, canvas.width, canvas.height):
            image = self.images.request(role, self._slot_url(photo, zone))
            drawn = place_photo(canvas, image, photo, zone, role=role)
            if drawn is not None:
                draws.append(drawn)
        return draws

    def _draw_headline(self, canvas: Image.Image, config: ThumbnailConfig) -> list[Rect]:
        lines = config.text_lines
        if not lines:
            return []
        plan = plan_layout(config.resolved_layout, canvas.width, canvas.height)
        font = resolve_font(self.headline_font_spec(), self.font_path)
        anchor = _HEADLINE_ANCHORS[plan.text_align]
        accent = ImageColor.getrgb(ACCENT_COLORS.get(config.accent_color, ACCENT_COLORS[DEFAULT_ACCENT]))
        highlight_alpha = _percent_alpha(config.element_opacity)
        total_height = len(lines) * HEADLINE_LINE_HEIGHT
        start_y = (canvas.height - total_height) / 2.0 + HEADLINE_LINE_HEIGHT / 2.0
        text_fill = ImageColor.getrgb(HEADLINE_TEXT_COLOR)

        boxes: list[Rect] = []
        for index, line in enumerate(lines):
            y = start_y + index * HEADLINE_LINE_HEIGHT
            text_width = float(font.getlength(line.text))
            if line.highlight:
                box = Rect(
                    aligned_left(plan.text_x, text_width, plan.text_align) - HEADLINE_PADDING,
                    y - HEADLINE_FONT_SIZE / 2.0 - HEADLINE_PADDING / 2.0,
                    text_width + HEADLINE_PADDING * 2,
                    HEADLINE_FONT_SIZE + HEADLINE_PADDING,
                )
                layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
                ImageDraw.Draw(layer).rectangle(
                    (box.x, box.y, box.right - 1, box.bottom - 1),
                    fill=accent[:3] + (highlight_alpha,),
                )
                canvas.alpha_composite(layer)
                boxes.append(box)
            if not line.text:
                continue
            draw_text_shadow(
                canvas,
                (plan.text_x, y),
                line.text,
                font=font,
                anchor=anchor,
                shadow=HEADLINE_SHADOW,
            )
            ImageDraw.Draw(canvas).text((plan.text_x, y), line.text, font=font, fill=text_fill, anchor=anchor)
        return boxes

    def render(self, config: ThumbnailConfig, *, selected_id: str | None = None) -> RenderResult:
        canvas = Image.new("RGBA", (max(1, config.width), max(1, config.height)), (0, 0, 0, 0))
        background_source = self._draw_background(canvas, config)
        apply_background_effects(canvas, config.background_effects)
        photo_draws = self._draw_photos(canvas, config)
        highlight_boxes = self._draw_headline(canvas, config)

        overlay_boxes: dict[str, Rect] = {}
        selection_box: Rect | None = None
        for overlay in config.overlays:
            is_selected = selected_id is not None and overlay.id == selected_id
            box = draw_text_overlay(canvas, overlay, selected=is_selected, font_path=self.font_path)
            overlay_boxes[overlay.id] = box
            if is_selected:
                selection_box = self.overlay_hit_box(overlay)

        return RenderResult(
            image=canvas,
            photo_draws=photo_draws,
            highlight_boxes=highlight_boxes,
            overlay_boxes=overlay_boxes,
            background_source=background_source,
            selection_box=selection_box,
        )

    def export(
        self,
        config: ThumbnailConfig,
        *,
        fmt: str = "png",
        quality: int = 90,
        wait_timeout: float | None = 30.0,
    ) -> bytes:
        """Encode the config as a standalone image, never with a selection box."""
        pil_format = EXPORT_FORMATS.get(fmt.lower())
        if pil_format is None:
            raise ValueError(f"output format must be png, jpg or webp, got: {fmt!r}")
        self.request_images(config)
        self.images.wait(wait_timeout)
        image = self.render(config, selected_id=None).image
        buffer = BytesIO()
        if pil_format == "PNG":
            image.save(buffer, format="PNG", optimize=True)
        elif pil_format == "JPEG":
            image.convert("RGB").save(buffer, format="JPEG", quality=max(1, min(100, quality)), optimize=True)
        else:
            image.save(buffer, format="WEBP", quality=max(1, min(100, quality)))
        return buffer.getvalue()

    def to_data_url(self, config: ThumbnailConfig, *, wait_timeout: float | None = 30.0) -> str:
        payload = base64.b64encode(self.export(config, fmt="png", wait_timeout=wait_timeout)).decode("ascii")
        return f"data:image/png;base64,{payload}"
