DEFAULT_WIDTH = 1280
DEFAULT_HEIGHT = 720
DEFAULT_BACKGROUND_COLOR = "#1a1a2e"
GRADIENT_FALLBACK_COLOR = "#1a1a2e"
IMAGE_UNDERLAY_COLOR = "#000000"

ACCENT_COLORS = {
    "orange": "#f97316",
    "blue": "#22d3ee",
    "purple": "#9333ea",
}
DEFAULT_ACCENT = "orange"

TINT_COLORS: dict[str, tuple[int, int, int, int] | None] = {
    "none": None,
    "purple": (147, 51, 234, 77),
    "blue": (34, 211, 238, 77),
    "orange": (249, 115, 22, 77),
}

VALID_FONT_WEIGHTS = ("normal", "bold", "600", "700", "800", "900")
VALID_TEXT_ALIGNS = ("left", "center", "right")

HEADLINE_FONT_SIZE = 80
HEADLINE_LINE_HEIGHT = HEADLINE_FONT_SIZE * 1.4
HEADLINE_FONT_FAMILY = "Inter, system-ui, sans-serif"
HEADLINE_PADDING = 12
HEADLINE_TEXT_COLOR = "#ffffff"

# (rgba, blur, offset_x, offset_y)
HEADLINE_SHADOW = ((0, 0, 0, 128), 4, 2, 2)
OVERLAY_SHADOW = ((0, 0, 0, 128), 8, 4, 4)
OVERLAY_OUTLINE_COLOR = "#000000"

SELECTION_COLOR = "hsl(262, 83%, 58%)"
SELECTION_LINE_WIDTH = 2
SELECTION_DASH = (5, 5)
HIT_PADDING = 8

DEFAULT_BACKGROUND_OPACITY = 50
DEFAULT_ELEMENT_OPACITY = 70
PHOTO_SCALE_MIN = 50
PHOTO_SCALE_MAX = 200
PHOTO_SCALE_DEFAULT = 100

VIGNETTE_RADIUS_RATIO = 0.8
VIGNETTE_INNER_RATIO = 0.3

EXPORT_FORMATS = {
    "png": "PNG",
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "webp": "WEBP",
}
