# src/justdoit/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..storage.preferences import PreferenceStore
from ..tasks.display_settings import DisplaySettings
from .ports import TodoRepo


@dataclass
class AppState:
    # Settings object (real Settings or a SimpleNamespace in tests).
    settings: Any

    prefs: PreferenceStore
    store: TodoRepo
    display: DisplaySettings

    # Ids shown by the last listing, so commands can address tasks by number.
    last_listing: list[str] | None = None
