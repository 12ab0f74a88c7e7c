# tests/test_blob_store.py

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

from justdoit.storage.preferences import PreferenceStore
from justdoit.tasks.blob_store import CATEGORIES_KEY, ITEMS_KEY, BlobTodoStore
from justdoit.tasks.task_models import CategoryColor

from .fakes import RecordingListener


def test_round_trip_through_preferences_file(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    store = BlobTodoStore(PreferenceStore(path), seed_defaults=False)
    cat = store.add_category("Work", CategoryColor.ORANGE)
    store.add_item("Pay rent", category_id=cat.id, due_date=date(2025, 6, 1))
    store.add_item("Call mom", notes="Sunday")
    done = store.add_item("Buy milk")
    store.toggle_completion(done.id)

    reloaded = BlobTodoStore(PreferenceStore(path), seed_defaults=False)

    assert [i.to_dict() for i in reloaded.list_items()] == [i.to_dict() for i in store.list_items()]
    assert [c.to_dict() for c in reloaded.list_categories()] == [c.to_dict() for c in store.list_categories()]


def test_collections_keep_insertion_order(prefs: PreferenceStore) -> None:
    store = BlobTodoStore(prefs, seed_defaults=False)
    for title in ("zeta", "alpha", "mid"):
        store.add_item(title)
    assert [i.title for i in store.list_items()] == ["zeta", "alpha", "mid"]


def test_blob_shape_uses_two_keys(prefs: PreferenceStore) -> None:
    store = BlobTodoStore(prefs, seed_defaults=False)
    store.add_item("Buy milk")

    items = json.loads(prefs.get(ITEMS_KEY))
    assert items[0]["title"] == "Buy milk"
    assert items[0]["isCompleted"] is False
    assert items[0]["dueDate"] is None
    assert set(items[0]) == {"id", "title", "isCompleted", "notes", "dueDate", "categoryId"}
    assert prefs.get(CATEGORIES_KEY) is None

    store.add_category("Work", CategoryColor.ORANGE)
    (cat,) = json.loads(prefs.get(CATEGORIES_KEY))
    assert cat["name"] == "Work"
    assert set(cat) == {"id", "name", "color"}


def test_seeds_default_categories_once(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    store = BlobTodoStore(PreferenceStore(path))
    assert [(c.name, c.color) for c in store.list_categories()] == [
        ("Personal", CategoryColor.BLUE),
        ("Work", CategoryColor.ORANGE),
        ("Grocery", CategoryColor.GREEN),
    ]
    assert store.list_items() == []

    ids = [c.id for c in store.list_categories()]
    again = BlobTodoStore(PreferenceStore(path))
    assert [c.id for c in again.list_categories()] == ids


def test_corrupt_blob_starts_empty(prefs: PreferenceStore) -> None:
    prefs.set(ITEMS_KEY, "{not json")
    prefs.set(CATEGORIES_KEY, json.dumps([{"id": "not-a-uuid", "name": "x"}]))

    store = BlobTodoStore(prefs, seed_defaults=False)

    assert store.list_items() == []
    assert store.list_categories() == []


def test_corrupt_preferences_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    path.write_text("[1, 2", "utf-8")

    store = BlobTodoStore(PreferenceStore(path), seed_defaults=False)
    assert store.list_items() == []

    store.add_item("Fresh start")
    assert json.loads(path.read_text("utf-8"))[ITEMS_KEY]


def test_reloads_on_write_by_another_owner(prefs: PreferenceStore) -> None:
    mine = BlobTodoStore(prefs, seed_defaults=False)
    theirs = BlobTodoStore(prefs, seed_defaults=False)
    listener = RecordingListener()
    mine.subscribe(listener)

    added = theirs.add_item("Written elsewhere")

    assert [i.id for i in mine.list_items()] == [added.id]
    assert listener.actions("todos") == ["reloaded"]


def test_reloads_after_other_process_rewrites_file(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    prefs = PreferenceStore(path)
    store = BlobTodoStore(prefs, seed_defaults=False)

    other = BlobTodoStore(PreferenceStore(path), seed_defaults=False)
    other.add_item("From another process")
    assert store.list_items() == []

    prefs.reload()

    assert [i.title for i in store.list_items()] == ["From another process"]


def test_write_failure_keeps_in_memory_change(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "prefs.json"
    prefs = PreferenceStore(path)
    store = BlobTodoStore(prefs, seed_defaults=False)
    store.add_item("Saved")

    def fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "write_text", fail)
    store.add_item("Only in memory")
    monkeypatch.undo()

    assert [i.title for i in store.list_items()] == ["Saved", "Only in memory"]
    on_disk = json.loads(json.loads(path.read_text("utf-8"))[ITEMS_KEY])
    assert [i["title"] for i in on_disk] == ["Saved"]


def test_close_stops_observing(prefs: PreferenceStore) -> None:
    mine = BlobTodoStore(prefs, seed_defaults=False)
    mine.close()
    BlobTodoStore(prefs, seed_defaults=False).add_item("later")
    assert mine.list_items() == []
