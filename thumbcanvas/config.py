from __future__ import annotations

import copy
import os
import platform
from pathlib import Path
from typing import Any

import yaml

from thumbcanvas.constants import DEFAULT_BACKGROUND_COLOR, DEFAULT_HEIGHT, DEFAULT_WIDTH

DEFAULT_CONFIG: dict[str, Any] = {
    "width": DEFAULT_WIDTH,
    "height": DEFAULT_HEIGHT,
    "background_color": DEFAULT_BACKGROUND_COLOR,
    "store_dir": "",
    "output_format": "png",
    "quality": 90,
    "font_path": "",
    "font_dirs": [],
    "image_timeout": 30.0,
    "history_size": 50,
    "log_level": "INFO",
}


def get_app_dir() -> Path:
    """Project root when running from a source checkout (two levels up from this file)."""
    return Path(__file__).resolve().parent.parent


def _is_source_checkout() -> bool:
    return (get_app_dir() / "pyproject.toml").is_file()


def get_user_data_dir() -> Path:
    """Writable per-user data directory; the project root during development."""
    if _is_source_checkout():
        return get_app_dir()

    system_name = platform.system().lower()
    if system_name == "windows":
        base = (
            os.environ.get("APPDATA")
            or os.environ.get("LOCALAPPDATA")
            or str(Path.home() / "AppData" / "Roaming")
        )
        return Path(base) / "ThumbCanvas"
    if system_name == "darwin":
        return Path.home() / "Library" / "Application Support" / "ThumbCanvas"

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "ThumbCanvas"
    return Path.home() / ".config" / "ThumbCanvas"


def get_config_path() -> Path:
    return get_user_data_dir() / "Config" / "config.yaml"


def default_store_dir() -> Path:
    return get_user_data_dir() / "Thumbnails"


def resolve_store_dir(cfg: dict[str, Any]) -> Path:
    raw = str(cfg.get("store_dir") or "").strip()
    if not raw:
        return default_store_dir()
    return Path(raw).expanduser()


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    text = cfg_path.read_text(encoding="utf-8")
    loaded = yaml.safe_load(text) or {}
    if not isinstance(loaded, dict):
        loaded = {}
    return _deep_merge(DEFAULT_CONFIG, loaded)


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg_path.write_text(yaml.safe_dump(cfg, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path
