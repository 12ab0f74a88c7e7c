# src/justdoit/tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any


class _Unset:
    """Marker for "field not supplied" in partial updates."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class CategoryColor(StrEnum):
    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    GRAY = "gray"

    @classmethod
    def from_db(cls, raw: str | None) -> CategoryColor:
        if not raw:
            return cls.BLUE
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.BLUE


def new_id() -> str:
    return str(uuid.uuid4())


def parse_due_date(raw: Any) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, date):
        return raw
    # Accept full ISO timestamps too; only the calendar day is kept.
    return date.fromisoformat(str(raw)[:10])


@dataclass(slots=True)
class TodoItem:
    """
    A single to-do entry.

    Notes:
    - `id` is assigned by the store at creation and never changes.
    - `category_id` is a soft reference; stores null it out when the
      category is deleted.
    """

    title: str
    is_completed: bool = False
    notes: str = ""
    due_date: date | None = None
    category_id: str | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "isCompleted": self.is_completed,
            "notes": self.notes,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "categoryId": self.category_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TodoItem:
        """Decode one stored record. Raises ValueError/KeyError/TypeError on bad input."""
        if not isinstance(data, dict):
            raise TypeError(f"expected object, got {type(data).__name__}")
        item_id = str(uuid.UUID(str(data["id"])))
        category_raw = data.get("categoryId")
        return cls(
            id=item_id,
            title=str(data["title"]),
            is_completed=bool(data.get("isCompleted", False)),
            notes=str(data.get("notes") or ""),
            due_date=parse_due_date(data.get("dueDate")),
            category_id=str(uuid.UUID(str(category_raw))) if category_raw else None,
        )


@dataclass(slots=True)
class Category:
    name: str
    color: CategoryColor = CategoryColor.BLUE
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Category:
        if not isinstance(data, dict):
            raise TypeError(f"expected object, got {type(data).__name__}")
        return cls(
            id=str(uuid.UUID(str(data["id"]))),
            name=str(data["name"]),
            color=CategoryColor.from_db(data.get("color")),
        )


# Defaults seeded into an empty category collection, per backend.
BLOB_DEFAULT_CATEGORIES: tuple[tuple[str, CategoryColor], ...] = (
    ("Personal", CategoryColor.BLUE),
    ("Work", CategoryColor.ORANGE),
    ("Grocery", CategoryColor.GREEN),
)

SQLITE_DEFAULT_CATEGORIES: tuple[tuple[str, CategoryColor], ...] = (
    ("Work", CategoryColor.BLUE),
    ("Personal", CategoryColor.GREEN),
    ("Shopping", CategoryColor.ORANGE),
    ("Urgent", CategoryColor.RED),
)

# (title, notes, category name)
SQLITE_SAMPLE_TASKS: tuple[tuple[str, str, str], ...] = (
    ("Complete project proposal", "Include budget and timeline", "Work"),
    ("Schedule dentist appointment", "", "Personal"),
    ("Learn SQLite", "Great for complex data relationships", "Work"),
)
