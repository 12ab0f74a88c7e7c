# src/justdoit/tasks/sqlite_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, TypeVar

from .filters import ANY_CATEGORY
from .store_base import BaseTodoStore
from .task_models import (
    SQLITE_DEFAULT_CATEGORIES,
    SQLITE_SAMPLE_TASKS,
    UNSET,
    Category,
    CategoryColor,
    TodoItem,
    parse_due_date,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", TodoItem, Category)

Statement = tuple[str, Sequence[Any]]


class StoreInitError(RuntimeError):
    """The database could not be opened or its schema created."""


class SqliteTodoStore(BaseTodoStore):
    """
    SQLite task store (one row per record).

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    todo_items.category_id is a soft reference: any id is accepted, and
    deleting a category nulls the tasks that pointed at it.

    Writes touch only the columns that were supplied, so two writers updating
    different properties of one task both survive; on the same property the
    later commit wins.

    A write that fails leaves the record in memory as it was changed and keeps
    it overlaid on every later re-fetch, so the next successful write does not
    throw it away.

    Each operation opens its own connection. A separate long-lived "watch"
    connection reads PRAGMA data_version to notice commits made elsewhere.
    """

    def __init__(self, db_path: str | Path = "todos.sqlite3", *, seed_defaults: bool = True) -> None:
        super().__init__()
        self._db_path = Path(db_path)
        self._watch: sqlite3.Connection | None = None
        self._data_version = 0
        # id -> record as changed in memory, or None for a delete that did not reach disk
        self._unsaved_items: dict[str, TodoItem | None] = {}
        self._unsaved_categories: dict[str, Category | None] = {}
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
            self._watch = sqlite3.connect(str(self._db_path))
            if seed_defaults:
                self._seed_if_empty()
            self._sync_data_version()
        except (sqlite3.Error, OSError) as e:
            self.close()
            raise StoreInitError(f"cannot open task database {self._db_path}: {e}") from e

        self._fetch_all()
        logger.info(
            "SqliteTodoStore ready db=%s items=%d categories=%d",
            self._db_path,
            len(self._items),
            len(self._categories),
        )

    def close(self) -> None:
        if self._watch is not None:
            with contextlib.suppress(sqlite3.Error):
                self._watch.close()
            self._watch = None

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    color_name TEXT NOT NULL DEFAULT 'blue'
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS todo_items (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    notes TEXT NOT NULL DEFAULT '',
                    due_date TEXT,
                    category_id TEXT,
                    created_at REAL NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(todo_items)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE todo_items ADD COLUMN {name} {decl}")
                logger.info("SqliteTodoStore migration: added column %s", name)

            add_col("notes", "TEXT NOT NULL DEFAULT ''")
            add_col("due_date", "TEXT")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_todo_items_category ON todo_items(category_id)")
            conn.commit()
        finally:
            conn.close()

    def _read_data_version(self) -> int:
        if self._watch is None:
            return self._data_version
        (v,) = self._watch.execute("PRAGMA data_version").fetchone()
        return int(v)

    def _sync_data_version(self) -> None:
        self._data_version = self._read_data_version()

    def _execute(self, *statements: Statement) -> bool:
        """Run write statements in one transaction. Failures are logged, not raised."""
        try:
            conn = self._get_conn()
            try:
                for sql, params in statements:
                    conn.execute(sql, params)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error:
            logger.exception("SQLite write failed: %s", statements[0][0].split()[0])
            return False
        self._sync_data_version()
        return True

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> TodoItem:
        return TodoItem(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            is_completed=bool(row["is_completed"]),
            notes=str(row["notes"] or ""),
            due_date=parse_due_date(row["due_date"]),
            category_id=row["category_id"],
        )

    @staticmethod
    def _row_to_category(row: sqlite3.Row) -> Category:
        return Category(
            id=str(row["id"]),
            name=str(row["name"] or ""),
            color=CategoryColor.from_db(row["color_name"]),
        )

    @staticmethod
    def _insert_category_stmt(category: Category) -> Statement:
        return (
            "INSERT INTO categories(id, name, color_name) VALUES (?, ?, ?)",
            (category.id, category.name, category.color.value),
        )

    @staticmethod
    def _insert_item_stmt(item: TodoItem) -> Statement:
        return (
            """
            INSERT INTO todo_items(id, title, is_completed, notes, due_date, category_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                item.id,
                item.title,
                int(item.is_completed),
                item.notes,
                item.due_date.isoformat() if item.due_date else None,
                item.category_id,
                time.time(),
            ),
        )

    def _seed_if_empty(self) -> None:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM categories").fetchone()
            if int(n) > 0:
                return
            by_name: dict[str, Category] = {}
            for name, color in SQLITE_DEFAULT_CATEGORIES:
                by_name[name] = Category(name=name, color=color)
                conn.execute(*self._insert_category_stmt(by_name[name]))
            for title, notes, cat_name in SQLITE_SAMPLE_TASKS:
                cat = by_name.get(cat_name)
                item = TodoItem(title=title, notes=notes, category_id=cat.id if cat else None)
                conn.execute(*self._insert_item_stmt(item))
            conn.commit()
            logger.info(
                "Seeded %d default categories and %d sample tasks",
                len(SQLITE_DEFAULT_CATEGORIES),
                len(SQLITE_SAMPLE_TASKS),
            )
        finally:
            conn.close()

    # ---- fetching ----

    def _select(self, sql: str, params: Sequence[Any], to_record: Callable[[sqlite3.Row], R]) -> list[R]:
        conn = self._get_conn()
        try:
            return [to_record(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def _select_items(
        self,
        *,
        category_id: Any = ANY_CATEGORY,
        is_completed: bool | None = None,
        title_search: str = "",
    ) -> list[TodoItem]:
        where: list[str] = []
        params: list[Any] = []

        if category_id is None:
            where.append("category_id IS NULL")
        elif category_id is not ANY_CATEGORY:
            where.append("category_id = ?")
            params.append(category_id)

        if is_completed is not None:
            where.append("is_completed = ?")
            params.append(int(is_completed))

        if title_search:
            escaped = title_search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            where.append("title LIKE ? ESCAPE '\\'")
            params.append(f"%{escaped}%")

        sql = "SELECT * FROM todo_items"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY is_completed ASC, title COLLATE NOCASE ASC, created_at ASC"
        return self._select(sql, params, self._row_to_item)

    def _select_categories(self) -> list[Category]:
        return self._select(
            "SELECT * FROM categories ORDER BY name COLLATE NOCASE ASC",
            (),
            self._row_to_category,
        )

    def fetch_items(
        self,
        *,
        category_id: Any = ANY_CATEGORY,
        is_completed: bool | None = None,
        title_search: str = "",
    ) -> list[TodoItem]:
        """
        Predicate fetch straight from the database, sorted by completion then title.

        - category_id: ANY_CATEGORY (no clause), None (uncategorized) or an id
        - is_completed: None (no clause) or the wanted flag
        - title_search: case-insensitive substring; empty means no clause
        """
        try:
            return self._select_items(
                category_id=category_id,
                is_completed=is_completed,
                title_search=title_search,
            )
        except sqlite3.Error:
            logger.exception("Error fetching todo items")
            return []

    def fetch_categories(self) -> list[Category]:
        try:
            return self._select_categories()
        except sqlite3.Error:
            logger.exception("Error fetching categories")
            return []

    @staticmethod
    def _overlay(fetched: list[R], unsaved: dict[str, R | None]) -> list[R]:
        """Replace fetched rows with their unsaved in-memory versions."""
        if not unsaved:
            return fetched
        out: list[R] = []
        for record in fetched:
            if record.id not in unsaved:
                out.append(record)
            elif unsaved[record.id] is not None:
                out.append(unsaved[record.id])
        seen = {r.id for r in fetched}
        out.extend(r for rid, r in unsaved.items() if r is not None and rid not in seen)
        return out

    def _fetch_items(self) -> None:
        try:
            fetched = self._select_items()
        except sqlite3.Error:
            logger.exception("Error re-fetching todo items; keeping the in-memory list")
            return
        self._items = self._overlay(fetched, self._unsaved_items)

    def _fetch_categories(self) -> None:
        try:
            fetched = self._select_categories()
        except sqlite3.Error:
            logger.exception("Error re-fetching categories; keeping the in-memory list")
            return
        self._categories = self._overlay(fetched, self._unsaved_categories)

    def _fetch_all(self) -> None:
        self._fetch_items()
        self._fetch_categories()

    def refresh(self) -> None:
        self._fetch_all()
        self._emit("todos", "reloaded")
        self._emit("categories", "reloaded")

    def check_external_changes(self) -> bool:
        """
        Re-fetch if another connection committed since our last look.

        Returns True when the mirror was reloaded.
        """
        if self._watch is None:
            return False
        try:
            current = self._read_data_version()
        except sqlite3.Error:
            logger.exception("PRAGMA data_version failed")
            return False
        if current == self._data_version:
            return False
        self._data_version = current
        logger.debug("External change detected in %s, re-fetching", self._db_path)
        self.refresh()
        return True

    # ---- tasks ----

    def _save_item(self, item_id: str, *statements: Statement) -> None:
        if self._execute(*statements):
            self._fetch_items()
        else:
            self._unsaved_items[item_id] = self._find_item(item_id)

    def add_item(
        self,
        title: str,
        *,
        is_completed: bool = False,
        notes: str = "",
        due_date: date | None = None,
        category_id: str | None = None,
    ) -> TodoItem:
        item = TodoItem(
            title=title,
            is_completed=is_completed,
            notes=notes,
            due_date=due_date,
            category_id=category_id,
        )
        self._items.append(item)
        self._save_item(item.id, self._insert_item_stmt(item))

        logger.debug("Task added id=%s category=%s", item.id, category_id)
        self._emit("todos", "added", item.id)
        return replace(self._find_item(item.id) or item)

    def update_item(
        self,
        item_id: str,
        *,
        title: Any = UNSET,
        is_completed: Any = UNSET,
        notes: Any = UNSET,
        due_date: Any = UNSET,
        category_id: Any = UNSET,
    ) -> None:
        item = self._find_item(item_id)
        if item is None:
            logger.debug("update_item: unknown id=%s", item_id)
            return

        fields: list[str] = []
        params: list[Any] = []

        if title is not UNSET:
            fields.append("title = ?")
            params.append(title)
            item.title = title
        if is_completed is not UNSET:
            fields.append("is_completed = ?")
            params.append(int(bool(is_completed)))
            item.is_completed = bool(is_completed)
        if notes is not UNSET:
            fields.append("notes = ?")
            params.append(notes)
            item.notes = notes
        if due_date is not UNSET:
            fields.append("due_date = ?")
            params.append(due_date.isoformat() if due_date else None)
            item.due_date = due_date
        if category_id is not UNSET:
            fields.append("category_id = ?")
            params.append(category_id)
            item.category_id = category_id

        if not fields:
            return

        params.append(item_id)
        self._save_item(item_id, (f"UPDATE todo_items SET {', '.join(fields)} WHERE id = ?", params))
        self._emit("todos", "updated", item_id)

    def toggle_completion(self, item_id: str) -> None:
        item = self._find_item(item_id)
        if item is None:
            logger.debug("toggle_completion: unknown id=%s", item_id)
            return
        item.is_completed = not item.is_completed
        self._save_item(
            item_id,
            ("UPDATE todo_items SET is_completed = ? WHERE id = ?", (int(item.is_completed), item_id)),
        )
        self._emit("todos", "updated", item_id)

    def delete_item(self, item_id: str) -> None:
        if self._find_item(item_id) is None:
            return
        self._items = [i for i in self._items if i.id != item_id]
        self._save_item(item_id, ("DELETE FROM todo_items WHERE id = ?", (item_id,)))
        self._emit("todos", "deleted", item_id)

    # ---- categories ----

    def _save_category(self, category_id: str, *statements: Statement) -> None:
        if self._execute(*statements):
            self._fetch_categories()
        else:
            self._unsaved_categories[category_id] = self._find_category(category_id)

    def add_category(self, name: str, color: CategoryColor = CategoryColor.BLUE) -> Category:
        category = Category(name=name, color=CategoryColor(color))
        self._categories.append(category)
        self._save_category(category.id, self._insert_category_stmt(category))
        self._emit("categories", "added", category.id)
        return replace(self._find_category(category.id) or category)

    def update_category(self, category_id: str, *, name: Any = UNSET, color: Any = UNSET) -> None:
        category = self._find_category(category_id)
        if category is None:
            logger.debug("update_category: unknown id=%s", category_id)
            return

        fields: list[str] = []
        params: list[Any] = []
        if name is not UNSET:
            fields.append("name = ?")
            params.append(name)
            category.name = name
        if color is not UNSET:
            category.color = CategoryColor(color)
            fields.append("color_name = ?")
            params.append(category.color.value)
        if not fields:
            return

        params.append(category_id)
        self._save_category(category_id, (f"UPDATE categories SET {', '.join(fields)} WHERE id = ?", params))
        self._emit("categories", "updated", category_id)

    def delete_category(self, category_id: str) -> None:
        if self._find_category(category_id) is None:
            return
        orphaned = [i for i in self._items if i.category_id == category_id]

        self._categories = [c for c in self._categories if c.id != category_id]
        for item in orphaned:
            item.category_id = None

        if self._execute(
            ("UPDATE todo_items SET category_id = NULL WHERE category_id = ?", (category_id,)),
            ("DELETE FROM categories WHERE id = ?", (category_id,)),
        ):
            self._fetch_all()
        else:
            self._unsaved_categories[category_id] = None
            for item in orphaned:
                self._unsaved_items[item.id] = item

        self._emit("categories", "deleted", category_id)
        if orphaned:
            self._emit("todos", "updated", *(i.id for i in orphaned))
