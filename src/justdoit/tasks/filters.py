# src/justdoit/tasks/filters.py

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from .task_models import TodoItem

Predicate = Callable[[TodoItem], bool]


class _AnyCategory:
    def __repr__(self) -> str:
        return "ANY_CATEGORY"


# Disables the category clause. `None` means "uncategorized only".
ANY_CATEGORY: Any = _AnyCategory()


def category_is(category_id: str | None) -> Predicate:
    return lambda item: item.category_id == category_id


def completed_is(is_completed: bool) -> Predicate:
    return lambda item: item.is_completed == is_completed


def title_contains(search_text: str) -> Predicate:
    needle = search_text.casefold()
    return lambda item: needle in item.title.casefold()


def filter_items(
    items: Iterable[TodoItem],
    *,
    category_id: Any = ANY_CATEGORY,
    show_completed: bool = True,
    search_text: str = "",
) -> list[TodoItem]:
    """
    AND-combine the category, completion and title predicates.

    - category_id=ANY_CATEGORY keeps every category; None keeps uncategorized only
    - show_completed=False drops completed items
    - empty search_text matches every title
    """
    preds: list[Predicate] = []
    if category_id is not ANY_CATEGORY:
        preds.append(category_is(category_id))
    if not show_completed:
        preds.append(completed_is(False))
    if search_text:
        preds.append(title_contains(search_text))
    return [item for item in items if all(p(item) for p in preds)]


def completed_last(items: Iterable[TodoItem]) -> list[TodoItem]:
    """Stable sort: open items first, completed after, original order otherwise."""
    return sorted(items, key=lambda item: item.is_completed)
