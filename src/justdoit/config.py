# src/justdoit/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing reads the environment except this module.
- Settings are passed to the bootstrap explicitly; tests build their own.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "JUSTDOIT"

BACKENDS = ("blob", "sqlite")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    backend: str
    seed_defaults: bool

    # ---- Local data paths ----
    data_dir: Path
    preferences_path: Path
    db_path: Path

    @staticmethod
    def from_env(*, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv(override=False)

        app_name = _env(_k("APP_NAME"), "justdoit").strip() or "justdoit"
        log_level = _env(_k("LOG_LEVEL"), "WARNING").strip().upper() or "WARNING"

        backend = _env_choice(_k("BACKEND"), BACKENDS, "sqlite")
        seed_defaults = _env_bool(_k("SEED_DEFAULTS"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/justdoit"))
        preferences_path = _env_path(_k("PREFERENCES_PATH"), data_dir / "preferences.json")
        db_path = _env_path(_k("DB_PATH"), data_dir / "todos.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            backend=backend,
            seed_defaults=seed_defaults,
            data_dir=data_dir,
            preferences_path=preferences_path,
            db_path=db_path,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
