# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from justdoit.core.state import AppState
from justdoit.storage.preferences import PreferenceStore
from justdoit.tasks.blob_store import BlobTodoStore
from justdoit.tasks.display_settings import DisplaySettings
from justdoit.tasks.sqlite_store import SqliteTodoStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap and AppState.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="justdoit-test",
        log_level="DEBUG",
        backend="sqlite",
        seed_defaults=False,
        data_dir=data_dir,
        preferences_path=data_dir / "preferences.json",
        db_path=data_dir / "todos.sqlite3",
    )


@pytest.fixture()
def prefs(tmp_path: Path) -> PreferenceStore:
    return PreferenceStore(tmp_path / "preferences.json")


@pytest.fixture(params=["blob", "sqlite"])
def store(request, tmp_path: Path, prefs: PreferenceStore):
    """
    Unseeded store, once per backend.

    Both backends must satisfy the same contract, so most store tests run
    against each of them.
    """
    if request.param == "blob":
        s = BlobTodoStore(prefs, seed_defaults=False)
    else:
        s = SqliteTodoStore(tmp_path / "todos.sqlite3", seed_defaults=False)
    yield s
    s.close()


@pytest.fixture()
def state(settings: SimpleNamespace, prefs: PreferenceStore) -> AppState:
    """
    AppState wired with a real (unseeded) SQLite store.

    NOTE: We keep real stores here because their behavior is what the
    commands are supposed to drive.
    """
    store = SqliteTodoStore(settings.db_path, seed_defaults=False)
    yield AppState(settings=settings, prefs=prefs, store=store, display=DisplaySettings(prefs))
    store.close()
