# src/justdoit/tasks/store_base.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any

from ..core.events import ChangeListener, ChangeNotifier, StoreChange
from .filters import ANY_CATEGORY, filter_items
from .task_models import Category, TodoItem


class BaseTodoStore:
    """
    In-memory mirror shared by both backends.

    Subclasses own `_items` / `_categories` and keep them in sync with disk;
    everything here is a pure read over the mirror. Callers get copies, so
    only the store mutates the records it persists.
    """

    def __init__(self) -> None:
        self._items: list[TodoItem] = []
        self._categories: list[Category] = []
        self._notifier = ChangeNotifier()

    # ---- observation ----

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self._notifier.subscribe(listener)

    def _emit(self, entity: Any, action: Any, *ids: str) -> None:
        self._notifier.emit(StoreChange(entity=entity, action=action, ids=tuple(ids)))

    # ---- queries ----

    def _find_item(self, item_id: str) -> TodoItem | None:
        return next((i for i in self._items if i.id == item_id), None)

    def _find_category(self, category_id: str) -> Category | None:
        return next((c for c in self._categories if c.id == category_id), None)

    def list_items(self) -> list[TodoItem]:
        return [replace(i) for i in self._items]

    def list_categories(self) -> list[Category]:
        return [replace(c) for c in self._categories]

    def get_item(self, item_id: str) -> TodoItem | None:
        item = self._find_item(item_id)
        return replace(item) if item is not None else None

    def get_category(self, category_id: str) -> Category | None:
        category = self._find_category(category_id)
        return replace(category) if category is not None else None

    def find_category_by_name(self, name: str) -> Category | None:
        key = name.strip().casefold()
        category = next((c for c in self._categories if c.name.casefold() == key), None)
        return replace(category) if category is not None else None

    def filtered_by(
        self,
        *,
        category_id: Any = ANY_CATEGORY,
        show_completed: bool = True,
        search_text: str = "",
    ) -> list[TodoItem]:
        items = filter_items(
            self._items,
            category_id=category_id,
            show_completed=show_completed,
            search_text=search_text,
        )
        return [replace(i) for i in items]

    def todos_for(self, category_id: str) -> list[TodoItem]:
        return self.filtered_by(category_id=category_id)

    def uncategorized(self) -> list[TodoItem]:
        return self.filtered_by(category_id=None)

    def close(self) -> None:
        return
