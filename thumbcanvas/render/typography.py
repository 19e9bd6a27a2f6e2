from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont

_FONT_FILE_SUFFIXES = {".ttf", ".ttc", ".otf", ".otc"}
_GENERIC_FAMILIES = {"system-ui", "sans-serif", "serif", "monospace", "cursive", "fantasy"}

_WEIGHT_NAMES = {
    "normal": 400,
    "bold": 700,
}
_WEIGHT_STYLE_TOKENS = {
    400: ("regular", "book", ""),
    500: ("medium",),
    600: ("semibold", "demibold"),
    700: ("bold",),
    800: ("extrabold", "ultrabold", "heavy"),
    900: ("black", "heavy"),
}


def css_weight(weight: str | int) -> int:
    text = str(weight).strip().lower()
    if text in _WEIGHT_NAMES:
        return _WEIGHT_NAMES[text]
    try:
        return max(100, min(900, int(text)))
    except ValueError:
        return 400


@dataclass(slots=True, frozen=True)
class FontSpec:
    weight: str
    size: int
    family: str

    @property
    def css(self) -> str:
        weight = "400" if self.weight == "normal" else self.weight
        return f"{weight} {self.size}px {self.family}"

    @property
    def numeric_weight(self) -> int:
        return css_weight(self.weight)

    def family_names(self) -> list[str]:
        names: list[str] = []
        for token in self.family.split(","):
            name = token.strip().strip("'\"")
            if name and name.lower() not in _GENERIC_FAMILIES:
                names.append(name)
        return names


def _system_font_candidates(bold: bool) -> list[Path]:
    system = platform.system().lower()
    if "windows" in system:
        names = ["arialbd.ttf", "segoeuib.ttf"] if bold else ["arial.ttf", "segoeui.ttf"]
        return [Path(r"C:\Windows\Fonts") / name for name in names]
    if "darwin" in system:
        return [
            Path("/System/Library/Fonts/Supplemental/Arial Bold.ttf" if bold else "/System/Library/Fonts/Supplemental/Arial.ttf"),
            Path("/System/Library/Fonts/Helvetica.ttc"),
            Path("/Library/Fonts/Arial Unicode.ttf"),
        ]
    if bold:
        return [
            Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
            Path("/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf"),
            Path("/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf"),
        ]
    return [
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf"),
    ]


_EXTRA_FONT_DIRS: list[Path] = []


def add_font_directories(directories: list[str] | list[Path]) -> None:
    """Search ``directories`` before the system font folders."""
    changed = False
    for item in directories:
        path = Path(item).expanduser()
        if path not in _EXTRA_FONT_DIRS:
            _EXTRA_FONT_DIRS.append(path)
            changed = True
    if changed:
        list_available_font_paths.cache_clear()
        _load_font_cached.cache_clear()


def _system_font_directories() -> list[Path]:
    system = platform.system().lower()
    roots: list[Path] = list(_EXTRA_FONT_DIRS)
    if "windows" in system:
        windows_dir = Path(os.environ.get("WINDIR", r"C:\Windows"))
        roots.append(windows_dir / "Fonts")
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            roots.append(Path(local_app_data) / "Microsoft" / "Windows" / "Fonts")
    elif "darwin" in system:
        roots.extend(
            [
                Path("/System/Library/Fonts"),
                Path("/Library/Fonts"),
                Path.home() / "Library" / "Fonts",
            ]
        )
    else:
        roots.extend(
            [
                Path("/usr/share/fonts"),
                Path("/usr/local/share/fonts"),
                Path.home() / ".fonts",
                Path.home() / ".local" / "share" / "fonts",
            ]
        )
    return roots


@lru_cache(maxsize=1)
def list_available_font_paths() -> tuple[Path, ...]:
    available: list[Path] = []
    seen: set[str] = set()
    for root in _system_font_directories():
        try:
            if not root.is_dir():
                continue
        except OSError:
            continue
        for dir_path, _dir_names, file_names in os.walk(root, onerror=lambda _err: None):
            for file_name in file_names:
                if Path(file_name).suffix.lower() not in _FONT_FILE_SUFFIXES:
                    continue
                candidate = Path(dir_path) / file_name
                key = str(candidate)
                if key in seen:
                    continue
                seen.add(key)
                available.append(candidate)
    available.sort(key=lambda path: (path.stem.lower(), str(path).lower()))
    return tuple(available)


def _compact(text: str) -> str:
    return "".join(ch for ch in text.lower() if ch.isalnum())


def find_family_font(family: str, weight: int) -> Path | None:
    """Pick an installed font file whose name matches ``family`` and ``weight``."""
    family_key = _compact(family)
    if not family_key:
        return None
    matches = [path for path in list_available_font_paths() if _compact(path.stem).startswith(family_key)]
    if not matches:
        return None
    wanted_tokens = _WEIGHT_STYLE_TOKENS.get(round(weight / 100) * 100, ("regular",))
    for path in matches:
        suffix = _compact(path.stem)[len(family_key):]
        if "italic" in suffix:
            continue
        if suffix in wanted_tokens:
            return path
    for path in matches:
        if "italic" not in _compact(path.stem):
            return path
    return matches[0]


@lru_cache(maxsize=256)
def _load_font_cached(spec: FontSpec, font_path: str | None) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    bold = spec.numeric_weight >= 600
    candidates: list[Path] = []
    if font_path:
        candidates.append(Path(font_path))
    for family in spec.family_names():
        found = find_family_font(family, spec.numeric_weight)
        if found is not None:
            candidates.append(found)
    candidates.extend(_system_font_candidates(bold))
    for candidate in candidates:
        if candidate.exists():
            try:
                return ImageFont.truetype(str(candidate), size=spec.size)
            except OSError:
                continue
    return ImageFont.load_default(size=spec.size)


def resolve_font(spec: FontSpec, font_path: Path | str | None = None) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Font used for both drawing and measuring ``spec``."""
    return _load_font_cached(spec, str(font_path) if font_path else None)
