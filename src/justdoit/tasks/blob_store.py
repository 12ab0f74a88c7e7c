# src/justdoit/tasks/blob_store.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date
from typing import Any, TypeVar

from ..storage.preferences import PreferenceStore
from .store_base import BaseTodoStore
from .task_models import (
    BLOB_DEFAULT_CATEGORIES,
    UNSET,
    Category,
    CategoryColor,
    TodoItem,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", TodoItem, Category)

ITEMS_KEY = "todoItems"
CATEGORIES_KEY = "todoCategories"


class BlobTodoStore(BaseTodoStore):
    """
    Preference-blob task store.

    Each collection is JSON-encoded as a whole and written under a single
    preference key on every mutation:
    - todoItems       -> list of tasks, insertion order
    - todoCategories  -> list of categories, insertion order

    Loading is best-effort: an undecodable blob means "no data".
    """

    def __init__(self, prefs: PreferenceStore, *, seed_defaults: bool = True) -> None:
        super().__init__()
        self._prefs = prefs
        self._items = self._load(ITEMS_KEY, TodoItem.from_dict)
        self._categories = self._load(CATEGORIES_KEY, Category.from_dict)

        if not self._categories and seed_defaults:
            self._categories = [Category(name=n, color=c) for n, c in BLOB_DEFAULT_CATEGORIES]
            self._save_categories()
            logger.info("Seeded %d default categories", len(self._categories))

        self._unobserve = [
            prefs.observe(ITEMS_KEY, self._on_pref_change),
            prefs.observe(CATEGORIES_KEY, self._on_pref_change),
        ]
        logger.info(
            "BlobTodoStore ready prefs=%s items=%d categories=%d",
            prefs.path,
            len(self._items),
            len(self._categories),
        )

    def close(self) -> None:
        for unobserve in self._unobserve:
            unobserve()
        self._unobserve = []

    # ---- encoding ----

    def _load(self, key: str, decode: Callable[[dict[str, Any]], T]) -> list[T]:
        raw = self._prefs.get(key)
        if raw is None:
            return []
        try:
            data = json.loads(raw) if isinstance(raw, str) else raw
            if not isinstance(data, list):
                raise TypeError(f"expected list, got {type(data).__name__}")
            return [decode(d) for d in data]
        except Exception:
            logger.warning("Failed to decode %s; starting with an empty collection.", key, exc_info=True)
            return []

    def _save(self, key: str, records: list[TodoItem] | list[Category]) -> None:
        try:
            blob = json.dumps([r.to_dict() for r in records], ensure_ascii=False)
        except Exception:
            logger.exception("Failed to encode %s; nothing written.", key)
            return
        self._prefs.set(key, blob, origin=self)

    def _save_items(self) -> None:
        self._save(ITEMS_KEY, self._items)

    def _save_categories(self) -> None:
        self._save(CATEGORIES_KEY, self._categories)

    def _on_pref_change(self, key: str, value: Any, origin: object | None) -> None:
        if origin is self:
            return
        if key == ITEMS_KEY:
            self._items = self._load(ITEMS_KEY, TodoItem.from_dict)
            self._emit("todos", "reloaded")
        elif key == CATEGORIES_KEY:
            self._categories = self._load(CATEGORIES_KEY, Category.from_dict)
            self._emit("categories", "reloaded")
        logger.debug("Reloaded %s after external change", key)

    def refresh(self) -> None:
        self._items = self._load(ITEMS_KEY, TodoItem.from_dict)
        self._categories = self._load(CATEGORIES_KEY, Category.from_dict)
        self._emit("todos", "reloaded")
        self._emit("categories", "reloaded")

    # ---- tasks ----

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
        self._save_items()
        logger.debug("Task added id=%s category=%s", item.id, category_id)
        self._emit("todos", "added", item.id)
        return replace(item)

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

        if title is not UNSET:
            item.title = title
        if is_completed is not UNSET:
            item.is_completed = bool(is_completed)
        if notes is not UNSET:
            item.notes = notes
        if due_date is not UNSET:
            item.due_date = due_date
        if category_id is not UNSET:
            item.category_id = category_id

        self._save_items()
        self._emit("todos", "updated", item.id)

    def toggle_completion(self, item_id: str) -> None:
        item = self._find_item(item_id)
        if item is None:
            logger.debug("toggle_completion: unknown id=%s", item_id)
            return
        item.is_completed = not item.is_completed
        self._save_items()
        self._emit("todos", "updated", item.id)

    def delete_item(self, item_id: str) -> None:
        before = len(self._items)
        self._items = [i for i in self._items if i.id != item_id]
        if len(self._items) == before:
            return
        self._save_items()
        self._emit("todos", "deleted", item_id)

    # ---- categories ----

    def add_category(self, name: str, color: CategoryColor = CategoryColor.BLUE) -> Category:
        category = Category(name=name, color=CategoryColor(color))
        self._categories.append(category)
        self._save_categories()
        self._emit("categories", "added", category.id)
        return replace(category)

    def update_category(self, category_id: str, *, name: Any = UNSET, color: Any = UNSET) -> None:
        category = self._find_category(category_id)
        if category is None:
            logger.debug("update_category: unknown id=%s", category_id)
            return
        if name is not UNSET:
            category.name = name
        if color is not UNSET:
            category.color = CategoryColor(color)
        self._save_categories()
        self._emit("categories", "updated", category.id)

    def delete_category(self, category_id: str) -> None:
        before = len(self._categories)
        self._categories = [c for c in self._categories if c.id != category_id]
        if len(self._categories) == before:
            return
        # Tasks never keep a reference to a deleted category.
        orphaned = [i for i in self._items if i.category_id == category_id]
        for item in orphaned:
            item.category_id = None
        if orphaned:
            self._save_items()
        self._save_categories()

        self._emit("categories", "deleted", category_id)
        if orphaned:
            self._emit("todos", "updated", *(i.id for i in orphaned))
