from __future__ import annotations

import json
import logging
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from thumbcanvas.models import ThumbnailConfig
from thumbcanvas.normalize import config_to_dict, normalize_config

LOGGER = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class ThumbnailNotFoundError(KeyError):
    pass


@dataclass(slots=True)
class ThumbnailRecord:
    id: str
    title: str
    config: ThumbnailConfig
    created_at: str
    updated_at: str


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _check_id(thumbnail_id: str) -> str:
    text = str(thumbnail_id or "").strip()
    if not _ID_PATTERN.match(text):
        raise ValueError(f"invalid thumbnail id: {thumbnail_id!r}")
    return text


class ThumbnailStore:
    """One JSON document per saved thumbnail under ``root``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _path(self, thumbnail_id: str) -> Path:
        return self.root / f"{_check_id(thumbnail_id)}.json"

    def _read(self, path: Path) -> ThumbnailRecord:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"malformed thumbnail file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"malformed thumbnail file {path}: not an object")
        return ThumbnailRecord(
            id=str(data.get("id") or path.stem),
            title=str(data.get("title") or "Untitled"),
            config=normalize_config(data.get("config")),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or data.get("created_at") or ""),
        )

    def _write(self, record: ThumbnailRecord) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        payload: dict[str, Any] = {
            "id": record.id,
            "title": record.title,
            "config": config_to_dict(record.config),
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }
        path = self._path(record.id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)

    def save(self, config: ThumbnailConfig, title: str = "Untitled") -> str:
        thumbnail_id = uuid.uuid4().hex
        now = _now_iso()
        self._write(ThumbnailRecord(thumbnail_id, title or "Untitled", config, now, now))
        LOGGER.info("saved thumbnail %s (%s)", thumbnail_id, title)
        return thumbnail_id

    def get(self, thumbnail_id: str) -> ThumbnailRecord:
        path = self._path(thumbnail_id)
        if not path.is_file():
            raise ThumbnailNotFoundError(thumbnail_id)
        return self._read(path)

    def load(self, thumbnail_id: str) -> ThumbnailConfig:
        return self.get(thumbnail_id).config

    def update(
        self,
        thumbnail_id: str,
        config: ThumbnailConfig | None = None,
        title: str | None = None,
    ) -> ThumbnailRecord:
        record = self.get(thumbnail_id)
        if config is not None:
            record.config = config
        if title is not None:
            record.title = title
        record.updated_at = _now_iso()
        self._write(record)
        LOGGER.info("updated thumbnail %s", record.id)
        return record

    def delete(self, thumbnail_id: str) -> bool:
        path = self._path(thumbnail_id)
        if not path.exists():
            return False
        path.unlink()
        LOGGER.info("deleted thumbnail %s", thumbnail_id)
        return True

    def list(self) -> list[ThumbnailRecord]:
        if not self.root.is_dir():
            return []
        records: list[ThumbnailRecord] = []
        for path in self.root.glob("*.json"):
            try:
                records.append(self._read(path))
            except (OSError, ValueError) as exc:
                LOGGER.warning("skip unreadable thumbnail file %s: %s", path, exc)
        records.sort(key=lambda item: (item.updated_at, item.id), reverse=True)
        return records
