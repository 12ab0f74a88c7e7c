# src/justdoit/storage/preferences.py

"""
File-backed key-value preference store.

One JSON object on disk, rewritten atomically (tmp file + os.replace) on every
`set`. Observers are notified per key so that several owners sharing one
preference store see each other's writes.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# (key, new value, origin) ; origin is whatever the writer passed to set()
KeyObserver = Callable[[str, Any, object | None], None]

_MISSING = object()


class PreferenceStore:
    def __init__(self, path: str | Path = "preferences.json") -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._values: dict[str, Any] = self._read_file()
        self._observers: dict[str, list[KeyObserver]] = {}
        logger.info("PreferenceStore ready path=%s keys=%d", self._path, len(self._values))

    @property
    def path(self) -> Path:
        return self._path

    # ---- low-level helpers ----

    def _read_file(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.warning("Preferences file unreadable, starting empty: %s", self._path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning("Preferences file is not an object, starting empty: %s", self._path)
            return {}
        return data

    def _write_file(self) -> None:
        try:
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(self._values, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
            with contextlib.suppress(OSError):
                os.chmod(self._path, 0o600)
        except Exception:
            # In-memory value is kept; disk and memory may diverge until the next good write.
            logger.exception("Failed to write preferences to %s", self._path)

    def _notify(self, key: str, value: Any, origin: object | None) -> None:
        for cb in list(self._observers.get(key, ())):
            try:
                cb(key, value, origin)
            except Exception:
                logger.exception("Preference observer failed for key=%s", key)

    # ---- public API ----

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        val = self._values.get(key)
        return val if isinstance(val, bool) else default

    def get_str(self, key: str, default: str | None = None) -> str | None:
        val = self._values.get(key)
        return val if isinstance(val, str) else default

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def set(self, key: str, value: Any, *, origin: object | None = None) -> None:
        self._values[key] = value
        self._write_file()
        self._notify(key, value, origin)

    def remove(self, key: str, *, origin: object | None = None) -> None:
        if self._values.pop(key, _MISSING) is _MISSING:
            return
        self._write_file()
        self._notify(key, None, origin)

    def observe(self, key: str, callback: KeyObserver) -> Callable[[], None]:
        self._observers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            cbs = self._observers.get(key, [])
            if callback in cbs:
                cbs.remove(callback)

        return unsubscribe

    def reload(self) -> list[str]:
        """
        Re-read the file (e.g. after another process wrote it).

        Observers of every key whose value changed are notified with origin=None.
        Returns the changed keys.
        """
        fresh = self._read_file()
        changed = [
            k for k in set(self._values) | set(fresh) if self._values.get(k, _MISSING) != fresh.get(k, _MISSING)
        ]
        self._values = fresh
        for key in sorted(changed):
            self._notify(key, fresh.get(key), None)
        if changed:
            logger.debug("Preferences reloaded, changed keys=%s", sorted(changed))
        return sorted(changed)
