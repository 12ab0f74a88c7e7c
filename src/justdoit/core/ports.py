# src/justdoit/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the front-end.

Console commands and display settings depend on these Protocols instead of a
concrete backend, so the blob and SQLite stores stay interchangeable.
"""

from collections.abc import Callable
from datetime import date
from typing import Any, Protocol

from ..core.events import ChangeListener
from ..tasks.task_models import Category, CategoryColor, TodoItem


class TodoRepo(Protocol):
    # Queries
    def list_items(self) -> list[TodoItem]: ...
    def list_categories(self) -> list[Category]: ...
    def get_item(self, item_id: str) -> TodoItem | None: ...
    def get_category(self, category_id: str) -> Category | None: ...
    def find_category_by_name(self, name: str) -> Category | None: ...
    def filtered_by(
            self,
            *,
            category_id: Any = ...,
            show_completed: bool = True,
            search_text: str = "",
    ) -> list[TodoItem]: ...
    def todos_for(self, category_id: str) -> list[TodoItem]: ...
    def uncategorized(self) -> list[TodoItem]: ...

    # Task mutations
    def add_item(
            self,
            title: str,
            *,
            is_completed: bool = False,
            notes: str = "",
            due_date: date | None = None,
            category_id: str | None = None,
    ) -> TodoItem: ...
    def update_item(
            self,
            item_id: str,
            *,
            title: Any = ...,
            is_completed: Any = ...,
            notes: Any = ...,
            due_date: Any = ...,
            category_id: Any = ...,
    ) -> None: ...
    def toggle_completion(self, item_id: str) -> None: ...
    def delete_item(self, item_id: str) -> None: ...

    # Category mutations
    def add_category(self, name: str, color: CategoryColor = CategoryColor.BLUE) -> Category: ...
    def update_category(self, category_id: str, *, name: Any = ..., color: Any = ...) -> None: ...
    def delete_category(self, category_id: str) -> None: ...

    # Lifecycle / observation
    def refresh(self) -> None: ...
    def subscribe(self, listener: ChangeListener) -> Callable[[], None]: ...
    def close(self) -> None: ...
