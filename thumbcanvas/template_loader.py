from __future__ import annotations

import json
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

from thumbcanvas.models import ThumbnailConfig
from thumbcanvas.normalize import config_to_dict, normalize_config

_TEMPLATE_PACKAGE = "thumbcanvas.templates"


@dataclass(slots=True)
class ThumbnailTemplate:
    key: str
    name: str
    description: str = ""
    category: str = ""
    tags: list[str] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)


def list_builtin_templates() -> list[str]:
    files = resources.files(_TEMPLATE_PACKAGE)
    names = []
    for item in files.iterdir():
        if item.name.endswith(".json"):
            names.append(Path(item.name).stem)
    return sorted(set(names))


def _load_builtin(name: str) -> dict[str, Any]:
    candidate = resources.files(_TEMPLATE_PACKAGE) / f"{name}.json"
    if not candidate.is_file():
        raise FileNotFoundError(f"built-in template not found: {name}")
    data = json.loads(candidate.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"template file is not a dict: {name}")
    return data


def _load_file(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"template file is not a dict: {path}")
    return data


def normalize_template_dict(key: str, data: dict[str, Any]) -> ThumbnailTemplate:
    tags = data.get("tags") or []
    if isinstance(tags, str):
        tags = [part.strip() for part in tags.split(",")]
    config = data.get("config")
    return ThumbnailTemplate(
        key=key,
        name=str(data.get("name") or key),
        description=str(data.get("description") or ""),
        category=str(data.get("category") or ""),
        tags=[str(tag) for tag in tags if str(tag).strip()],
        config=dict(config) if isinstance(config, dict) else {},
    )


def load_template(name_or_path: str) -> ThumbnailTemplate:
    """Load a built-in template by name, or a template JSON file by path."""
    path = Path(name_or_path)
    if path.suffix.lower() == ".json" and path.exists():
        return normalize_template_dict(path.stem, _load_file(path))
    return normalize_template_dict(name_or_path, _load_builtin(name_or_path))


def apply_template(config: ThumbnailConfig, template: ThumbnailTemplate | dict[str, Any]) -> ThumbnailConfig:
    """Overlay the template's partial config onto ``config``; other keys are kept."""
    partial = template.config if isinstance(template, ThumbnailTemplate) else template
    merged = config_to_dict(config)
    merged.update(partial)
    return normalize_config(merged)
