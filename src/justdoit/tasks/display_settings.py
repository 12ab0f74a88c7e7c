# src/justdoit/tasks/display_settings.py

from __future__ import annotations

from enum import StrEnum
from typing import Any

from ..core.ports import TodoRepo
from ..storage.preferences import PreferenceStore
from .filters import ANY_CATEGORY, completed_last
from .task_models import TodoItem

SHOW_COMPLETED_KEY = "showCompletedTasks"
SORT_COMPLETED_KEY = "sortCompletedToBottom"
COLOR_THEME_KEY = "appColorTheme"


class ColorTheme(StrEnum):
    BLUE = "blue"
    GREEN = "green"
    PURPLE = "purple"
    ORANGE = "orange"
    RED = "red"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class DisplaySettings:
    """User-facing list options, written through to the preference store."""

    def __init__(self, prefs: PreferenceStore) -> None:
        self._prefs = prefs

    @property
    def show_completed_tasks(self) -> bool:
        return self._prefs.get_bool(SHOW_COMPLETED_KEY, True)

    @show_completed_tasks.setter
    def show_completed_tasks(self, value: bool) -> None:
        self._prefs.set(SHOW_COMPLETED_KEY, bool(value))

    @property
    def sort_completed_to_bottom(self) -> bool:
        return self._prefs.get_bool(SORT_COMPLETED_KEY, False)

    @sort_completed_to_bottom.setter
    def sort_completed_to_bottom(self, value: bool) -> None:
        self._prefs.set(SORT_COMPLETED_KEY, bool(value))

    @property
    def color_theme(self) -> ColorTheme:
        raw = self._prefs.get_str(COLOR_THEME_KEY)
        try:
            return ColorTheme(raw) if raw else ColorTheme.BLUE
        except ValueError:
            return ColorTheme.BLUE

    @color_theme.setter
    def color_theme(self, value: ColorTheme | str) -> None:
        self._prefs.set(COLOR_THEME_KEY, ColorTheme(value).value)

    def visible_items(
        self,
        store: TodoRepo,
        *,
        category_id: Any = ANY_CATEGORY,
        search_text: str = "",
    ) -> list[TodoItem]:
        items = store.filtered_by(
            category_id=category_id,
            show_completed=self.show_completed_tasks,
            search_text=search_text,
        )
        return completed_last(items) if self.sort_completed_to_bottom else items
