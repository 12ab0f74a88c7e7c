# src/justdoit/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the preference store, the chosen task backend and display settings
  into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import TodoRepo
from ..core.state import AppState
from ..storage.preferences import PreferenceStore
from ..tasks.blob_store import BlobTodoStore
from ..tasks.display_settings import DisplaySettings
from ..tasks.sqlite_store import SqliteTodoStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.preferences_path.parent.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def build_store(settings, prefs: PreferenceStore) -> TodoRepo:
    """
    Construct the configured backend.

    Raises StoreInitError if the SQLite database cannot be opened.
    """
    seed = bool(getattr(settings, "seed_defaults", True))
    backend = str(getattr(settings, "backend", "sqlite"))
    if backend == "blob":
        return BlobTodoStore(prefs, seed_defaults=seed)
    if backend != "sqlite":
        logger.warning("Unknown backend %r, using sqlite.", backend)
    return SqliteTodoStore(settings.db_path, seed_defaults=seed)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    prefs = PreferenceStore(settings.preferences_path)
    store = build_store(settings, prefs)
    return AppState(
        settings=settings,
        prefs=prefs,
        store=store,
        display=DisplaySettings(prefs),
    )
