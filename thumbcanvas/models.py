from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from thumbcanvas.constants import (
    DEFAULT_ACCENT,
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_BACKGROUND_OPACITY,
    DEFAULT_ELEMENT_OPACITY,
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    PHOTO_SCALE_DEFAULT,
)


class Layout(str, Enum):
    CENTERED = "centered"
    TWO_FACE = "twoFace"
    SOLO_LEFT = "soloLeft"
    SOLO_RIGHT = "soloRight"

    @classmethod
    def parse(cls, value: object) -> "Layout":
        """Resolve a stored layout string, legacy synonyms included.

        Anything unrecognised resolves to ``CENTERED``.
        """
        text = str(value or "").strip()
        text = LEGACY_LAYOUT_SYNONYMS.get(text, text)
        for member in cls:
            if member.value == text:
                return member
        return cls.CENTERED


LEGACY_LAYOUT_SYNONYMS = {
    "left-aligned": Layout.SOLO_LEFT.value,
    "stacked": Layout.CENTERED.value,
}


@dataclass(slots=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def inflate(self, amount: float) -> "Rect":
        return Rect(self.x - amount, self.y - amount, self.width + amount * 2, self.height + amount * 2)

    def translate(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.width, self.height)


@dataclass(slots=True)
class TextLine:
    id: str
    text: str
    highlight: bool = False


@dataclass(slots=True)
class TextOverlay:
    id: str
    text: str
    x: float
    y: float
    font_size: int = 48
    font_family: str = "Inter"
    font_weight: str = "bold"
    color: str = "#ffffff"
    text_align: str = "left"
    shadow: bool = False
    outline: bool = False


@dataclass(slots=True)
class PhotoConfig:
    url: str
    scale: float = PHOTO_SCALE_DEFAULT
    offset_x: float = 0.0
    offset_y: float = 0.0


@dataclass(slots=True)
class BackgroundEffects:
    dark_overlay: float = 0.0
    color_tint: str = "none"
    vignette_intensity: float = 0.0


@dataclass(slots=True)
class ThumbnailConfig:
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    background_color: str = DEFAULT_BACKGROUND_COLOR
    background_image: str | None = None
    background_opacity: float = DEFAULT_BACKGROUND_OPACITY
    background_effects: BackgroundEffects | None = None
    # stored as written; legacy synonyms are resolved through ``resolved_layout``
    layout: str = Layout.CENTERED.value
    accent_color: str = DEFAULT_ACCENT
    element_opacity: float = DEFAULT_ELEMENT_OPACITY
    text_lines: list[TextLine] = field(default_factory=list)
    host_photo: PhotoConfig | None = None
    guest_photo: PhotoConfig | None = None
    overlays: list[TextOverlay] = field(default_factory=list)

    @property
    def resolved_layout(self) -> Layout:
        return Layout.parse(self.layout)

    def find_overlay(self, overlay_id: str | None) -> TextOverlay | None:
        if overlay_id is None:
            return None
        for overlay in self.overlays:
            if overlay.id == overlay_id:
                return overlay
        return None
