import json

import pytest

from thumbcanvas.normalize import normalize_config
from thumbcanvas.storage import ThumbnailNotFoundError, ThumbnailStore


def test_save_then_load_returns_equal_config(tmp_path) -> None:
    store = ThumbnailStore(tmp_path / "store")
    config = normalize_config(
        {"layout": "soloLeft", "textLines": [{"text": "Saved", "highlight": True}], "hostPhoto": {"url": "h.png"}}
    )

    thumbnail_id = store.save(config, title="First")

    assert (tmp_path / "store" / f"{thumbnail_id}.json").is_file()
    assert store.load(thumbnail_id) == config
    record = store.get(thumbnail_id)
    assert record.title == "First"
    assert record.created_at == record.updated_at


def test_update_changes_config_and_title(tmp_path) -> None:
    store = ThumbnailStore(tmp_path)
    thumbnail_id = store.save(normalize_config({}))

    store.update(thumbnail_id, config=normalize_config({"accentColor": "blue"}), title="Renamed")

    record = store.get(thumbnail_id)
    assert record.title == "Renamed"
    assert record.config.accent_color == "blue"


def test_list_and_delete(tmp_path) -> None:
    store = ThumbnailStore(tmp_path)
    first = store.save(normalize_config({}), title="a")
    second = store.save(normalize_config({}), title="b")

    assert {record.id for record in store.list()} == {first, second}
    assert store.delete(first) is True
    assert store.delete(first) is False
    assert [record.id for record in store.list()] == [second]
    with pytest.raises(ThumbnailNotFoundError):
        store.get(first)


def test_list_on_missing_root_is_empty(tmp_path) -> None:
    assert ThumbnailStore(tmp_path / "absent").list() == []


def test_unreadable_files_are_skipped_by_list(tmp_path) -> None:
    store = ThumbnailStore(tmp_path)
    good = store.save(normalize_config({}))
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")

    assert [record.id for record in store.list()] == [good]
    with pytest.raises(ValueError):
        store.get("broken")


def test_older_documents_are_normalized_on_load(tmp_path) -> None:
    (tmp_path / "legacy.json").write_text(
        json.dumps({"id": "legacy", "config": {"layout": "left-aligned", "textLines": [{"text": "Old"}]}}),
        encoding="utf-8",
    )
    config = ThumbnailStore(tmp_path).load("legacy")
    assert config.layout == "left-aligned"
    assert config.width == 1280
    assert config.text_lines[0].highlight is False


def test_invalid_ids_are_rejected(tmp_path) -> None:
    store = ThumbnailStore(tmp_path)
    with pytest.raises(ValueError):
        store.get("../escape")
    with pytest.raises(ValueError):
        store.delete("")
