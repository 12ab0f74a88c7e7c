# tests/test_sqlite_store.py

from __future__ import annotations

import sqlite3
from datetime import date
from pathlib import Path

import pytest

from justdoit.tasks.sqlite_store import SqliteTodoStore, StoreInitError
from justdoit.tasks.task_models import CategoryColor

from .fakes import RecordingListener


def test_seeds_defaults_and_sample_tasks(tmp_path: Path) -> None:
    store = SqliteTodoStore(tmp_path / "todos.sqlite3")

    names = [c.name for c in store.list_categories()]
    assert names == ["Personal", "Shopping", "Urgent", "Work"]  # sorted by name

    by_title = {i.title: i for i in store.list_items()}
    assert set(by_title) == {"Complete project proposal", "Schedule dentist appointment", "Learn SQLite"}
    work = store.find_category_by_name("work")
    assert work is not None and work.color == CategoryColor.BLUE
    assert by_title["Complete project proposal"].category_id == work.id
    assert by_title["Complete project proposal"].notes == "Include budget and timeline"

    # Seeding happens only for an empty category table.
    again = SqliteTodoStore(tmp_path / "todos.sqlite3")
    assert len(again.list_items()) == 3
    store.close()
    again.close()


def test_fetch_order_is_completion_then_title(tmp_path: Path) -> None:
    store = SqliteTodoStore(tmp_path / "todos.sqlite3", seed_defaults=False)
    store.add_item("banana")
    done = store.add_item("apple")
    store.add_item("Cherry")
    store.toggle_completion(done.id)

    assert [i.title for i in store.list_items()] == ["banana", "Cherry", "apple"]
    store.close()


def test_round_trip_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "todos.sqlite3"
    store = SqliteTodoStore(path, seed_defaults=False)
    cat = store.add_category("Home", CategoryColor.YELLOW)
    store.add_item("Fix tap", notes="washer 15mm", due_date=date(2025, 7, 4), category_id=cat.id)
    store.add_item("Read")
    store.close()

    reloaded = SqliteTodoStore(path, seed_defaults=False)

    assert {tuple(sorted(i.to_dict().items())) for i in reloaded.list_items()} == {
        tuple(sorted(i.to_dict().items())) for i in store.list_items()
    }
    assert [c.to_dict() for c in reloaded.list_categories()] == [c.to_dict() for c in store.list_categories()]
    reloaded.close()


def test_fetch_items_predicates(tmp_path: Path) -> None:
    store = SqliteTodoStore(tmp_path / "todos.sqlite3", seed_defaults=False)
    work = store.add_category("Work")
    a = store.add_item("Write 100% report", category_id=work.id)
    b = store.add_item("write_notes")
    store.add_item("Review", category_id=work.id)
    store.toggle_completion(b.id)

    assert [i.id for i in store.fetch_items(title_search="100%")] == [a.id]
    assert [i.id for i in store.fetch_items(title_search="E_N")] == [b.id]
    assert [i.id for i in store.fetch_items(category_id=None)] == [b.id]
    assert [i.title for i in store.fetch_items(category_id=work.id, is_completed=False)] == [
        "Review",
        "Write 100% report",
    ]
    assert [i.id for i in store.fetch_items(is_completed=True, title_search="WRITE")] == [b.id]
    store.close()


def test_deleting_category_row_sets_task_reference_null(tmp_path: Path) -> None:
    path = tmp_path / "todos.sqlite3"
    store = SqliteTodoStore(path, seed_defaults=False)
    cat = store.add_category("Temp")
    item = store.add_item("Orphan soon", category_id=cat.id)

    store.delete_category(cat.id)

    conn = sqlite3.connect(str(path))
    try:
        (ref,) = conn.execute("SELECT category_id FROM todo_items WHERE id = ?", (item.id,)).fetchone()
    finally:
        conn.close()
    assert ref is None
    store.close()


def test_external_commit_triggers_refetch(tmp_path: Path) -> None:
    path = tmp_path / "todos.sqlite3"
    mine = SqliteTodoStore(path, seed_defaults=False)
    theirs = SqliteTodoStore(path, seed_defaults=False)
    listener = RecordingListener()
    mine.subscribe(listener)

    assert mine.check_external_changes() is False

    theirs.add_item("From another connection")
    assert mine.list_items() == []

    assert mine.check_external_changes() is True
    assert [i.title for i in mine.list_items()] == ["From another connection"]
    assert listener.actions("todos") == ["reloaded"]

    # Own writes do not count as external.
    mine.add_item("Mine")
    assert mine.check_external_changes() is False
    mine.close()
    theirs.close()


def test_concurrent_writers_keep_distinct_properties(tmp_path: Path) -> None:
    path = tmp_path / "todos.sqlite3"
    a = SqliteTodoStore(path, seed_defaults=False)
    item = a.add_item("Shared", notes="v1")
    b = SqliteTodoStore(path, seed_defaults=False)

    a.update_item(item.id, title="Shared (renamed)")
    b.update_item(item.id, notes="v2")
    b.update_item(item.id, title="Shared (last writer)")

    fresh = SqliteTodoStore(path, seed_defaults=False).get_item(item.id)
    assert fresh.notes == "v2"
    assert fresh.title == "Shared (last writer)"
    a.close()
    b.close()


def test_migration_adds_missing_columns(tmp_path: Path) -> None:
    path = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(str(path))
    conn.execute("CREATE TABLE categories (id TEXT PRIMARY KEY, name TEXT NOT NULL, color_name TEXT)")
    conn.execute(
        "CREATE TABLE todo_items (id TEXT PRIMARY KEY, title TEXT NOT NULL, "
        "is_completed INTEGER NOT NULL DEFAULT 0, category_id TEXT)"
    )
    conn.execute(
        "INSERT INTO todo_items(id, title, is_completed) VALUES (?, ?, ?)",
        ("6f1c1f7e-8d2a-4c55-9d47-5d0f2a8f0b11", "Legacy", 1),
    )
    conn.commit()
    conn.close()

    store = SqliteTodoStore(path, seed_defaults=False)

    (item,) = store.list_items()
    assert item.title == "Legacy"
    assert item.is_completed is True
    assert item.notes == ""
    assert item.due_date is None
    store.close()


def test_unusable_path_aborts_startup(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", "utf-8")

    with pytest.raises(StoreInitError):
        SqliteTodoStore(blocker / "todos.sqlite3")


def _run_sql(path: Path, sql: str) -> None:
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(sql)
        conn.commit()
    finally:
        conn.close()


def test_failed_write_survives_later_refetch(tmp_path: Path) -> None:
    path = tmp_path / "todos.sqlite3"
    store = SqliteTodoStore(path, seed_defaults=False)
    kept = store.add_item("Kept")
    gone = store.add_item("Gone")
    _run_sql(path, "CREATE TRIGGER no_update BEFORE UPDATE ON todo_items BEGIN SELECT RAISE(ABORT, 'blocked'); END")
    _run_sql(path, "CREATE TRIGGER no_delete BEFORE DELETE ON todo_items BEGIN SELECT RAISE(ABORT, 'blocked'); END")

    # Both writes fail and are logged; memory keeps the change.
    store.update_item(kept.id, title="Kept (local)")
    store.delete_item(gone.id)
    assert store.get_item(kept.id).title == "Kept (local)"

    # A later successful write re-fetches without losing them.
    store.add_item("Next")
    assert sorted(i.title for i in store.list_items()) == ["Kept (local)", "Next"]
    assert store.get_item(gone.id) is None

    reopened = SqliteTodoStore(path, seed_defaults=False)
    assert reopened.get_item(kept.id).title == "Kept"
    assert reopened.get_item(gone.id) is not None
    store.close()
    reopened.close()


def test_failed_refetch_keeps_mirror(tmp_path: Path, monkeypatch) -> None:
    store = SqliteTodoStore(tmp_path / "todos.sqlite3", seed_defaults=False)
    item = store.add_item("Report")

    def locked(**kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store, "_select_items", locked)
    store.update_item(item.id, title="Final report")
    store.toggle_completion(item.id)

    fresh = store.get_item(item.id)
    assert fresh.title == "Final report"
    assert fresh.is_completed is True
    assert store.fetch_items() == []

    monkeypatch.undo()
    store.refresh()
    assert store.get_item(item.id).to_dict() == fresh.to_dict()
    store.close()
