from __future__ import annotations

import math
import re
from dataclasses import dataclass

from PIL import Image, ImageColor

_LINEAR_GRADIENT_RE = re.compile(r"linear-gradient\(\s*(-?\d+)deg\s*,\s*(.+)\)", re.IGNORECASE | re.DOTALL)
_STOP_POSITION_RE = re.compile(r"^(.*\S)\s+(-?\d+(?:\.\d+)?)%$", re.DOTALL)


@dataclass(slots=True)
class ColorStop:
    position: float
    color: tuple[int, int, int, int]
    source: str


@dataclass(slots=True)
class LinearGradient:
    angle: int
    start: tuple[float, float]
    end: tuple[float, float]
    stops: list[ColorStop]


def is_gradient(value: str | None) -> bool:
    return "gradient" in (value or "")


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


_CSS_RGBA_RE = re.compile(
    r"^rgba\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d*\.?\d+)\s*\)$",
    re.IGNORECASE,
)


def css_to_rgba(color_text: str) -> tuple[int, int, int, int]:
    # CSS alpha is 0-1, ImageColor reads it as 0-255
    css = _CSS_RGBA_RE.match(color_text.strip())
    if css:
        alpha = max(0.0, min(1.0, float(css.group(4))))
        red, green, blue = (min(255, int(css.group(index))) for index in (1, 2, 3))
        return (red, green, blue, int(round(alpha * 255)))
    rgb = ImageColor.getrgb(color_text)
    if len(rgb) == 4:
        return (int(rgb[0]), int(rgb[1]), int(rgb[2]), int(rgb[3]))
    return (int(rgb[0]), int(rgb[1]), int(rgb[2]), 255)


def _parse_stop(raw_stop: str, index: int, count: int) -> ColorStop | None:
    match = _STOP_POSITION_RE.match(raw_stop)
    if match:
        color_text = match.group(1).strip()
        position = float(match.group(2)) / 100.0
    else:
        color_text = raw_stop.strip()
        if " " in color_text and "(" not in color_text:
            # second token present but not a percentage
            return None
        position = index / float(count - 1) if count > 1 else 0.0
    if not 0.0 <= position <= 1.0:
        return None
    try:
        rgba = css_to_rgba(color_text)
    except ValueError:
        return None
    return ColorStop(position=position, color=rgba, source=color_text)


def parse_linear_gradient(value: str | None) -> tuple[int, list[ColorStop]] | None:
    """Parse ``linear-gradient(<n>deg, <color> [<p>%], ...)`` into angle and stops.

    Individual malformed stops are dropped. Returns None when the string is not
    a linear gradient at all.
    """
    match = _LINEAR_GRADIENT_RE.search(value or "")
    if not match:
        return None
    angle = int(match.group(1))
    raw_stops = _split_top_level(match.group(2))
    stops: list[ColorStop] = []
    for index, raw_stop in enumerate(raw_stops):
        stop = _parse_stop(raw_stop, index, len(raw_stops))
        if stop is not None:
            stops.append(stop)
    return angle, stops


def gradient_endpoints(angle: int, width: int, height: int) -> tuple[tuple[float, float], tuple[float, float]]:
    # 0deg points up and angles grow clockwise
    radians = math.radians(angle - 90)
    center_x = width / 2.0
    center_y = height / 2.0
    length = math.sqrt(width * width + height * height) / 2.0
    dx = math.cos(radians) * length
    dy = math.sin(radians) * length
    return (center_x - dx, center_y - dy), (center_x + dx, center_y + dy)


def resolve_linear_gradient(value: str | None, width: int, height: int) -> LinearGradient | None:
    parsed = parse_linear_gradient(value)
    if parsed is None:
        return None
    angle, stops = parsed
    if not stops:
        return None
    start, end = gradient_endpoints(angle, width, height)
    return LinearGradient(angle=angle, start=start, end=end, stops=stops)


def color_at(stops: list[ColorStop], t: float) -> tuple[int, int, int, int]:
    ordered = sorted(stops, key=lambda stop: stop.position)
    if t <= ordered[0].position:
        return ordered[0].color
    if t >= ordered[-1].position:
        return ordered[-1].color
    for left, right in zip(ordered, ordered[1:]):
        if left.position <= t <= right.position:
            span = right.position - left.position
            if span <= 0:
                return right.color
            ratio = (t - left.position) / span
            return tuple(
                int(round(a + (b - a) * ratio)) for a, b in zip(left.color, right.color)
            )  # type: ignore[return-value]
    return ordered[-1].color


def render_linear_gradient(gradient: LinearGradient, size: tuple[int, int]) -> Image.Image:
    width, height = size
    diagonal = math.sqrt(width * width + height * height)
    pad = 2
    side = int(math.ceil(diagonal)) + pad * 2
    half = side / 2.0
    pixels: list[tuple[int, int, int, int]] = []
    for index in range(side):
        along = index + 0.5 - half
        t = (along + diagonal / 2.0) / diagonal if diagonal > 0 else 0.0
        pixels.append(color_at(gradient.stops, max(0.0, min(1.0, t))))
    strip = Image.new("RGBA", (side, 1))
    strip.putdata(pixels)
    square = strip.resize((side, side), resample=Image.Resampling.NEAREST)
    # the strip runs left to right (90deg); PIL rotates counter-clockwise
    rotated = square.rotate(
        -(gradient.angle - 90),
        resample=Image.Resampling.BICUBIC,
        fillcolor=gradient.stops[-1].color,
    )
    left = (side - width) // 2
    top = (side - height) // 2
    return rotated.crop((left, top, left + width, top + height))
