# src/justdoit/core/events.py

"""
Change notifications emitted by stores.

Stores call `emit()` after every successful mutation and after reloading
data that changed underneath them. Front-ends subscribe to re-render.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger(__name__)

Entity = Literal["todos", "categories"]
Action = Literal["added", "updated", "deleted", "reloaded"]


@dataclass(frozen=True, slots=True)
class StoreChange:
    entity: Entity
    action: Action
    ids: tuple[str, ...] = field(default_factory=tuple)


ChangeListener = Callable[[StoreChange], None]


class ChangeNotifier:
    """Synchronous observer list. Listener errors are logged, never propagated."""

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Change listener failed for %s/%s", change.entity, change.action)

    def __len__(self) -> int:
        return len(self._listeners)
