# src/justdoit/connectors/console_connector.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..cli.commands import registry as command_registry
from ..core.events import StoreChange
from ..core.state import AppState

logger = logging.getLogger(__name__)


def poll_external_changes(state: AppState) -> None:
    """Pick up writes made by other processes since the last prompt."""
    try:
        state.prefs.reload()
        check = getattr(state.store, "check_external_changes", None)
        if check is not None:
            check()
    except Exception:
        logger.exception("Polling for external changes failed.")


def run_console_loop(
    state: AppState,
    *,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> None:
    logger.info("Console connector started (backend=%s).", getattr(state.settings, "backend", "?"))
    write("[CONSOLE] Type /help for commands, /list to see your tasks, /exit to quit.\n")

    def on_change(change: StoreChange) -> None:
        # Own mutations are answered by the command reply; only surface reloads.
        if change.action == "reloaded":
            state.last_listing = None
            if change.entity == "todos":
                write("[sync] Tasks changed on disk and were reloaded.")

    unsubscribe = state.store.subscribe(on_change)

    def emit(text: str) -> None:
        write(text)

    try:
        while True:
            try:
                user_input = read_line("todo> ").strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                write("")
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            poll_external_changes(state)

            # Bare text is a shortcut for /add.
            line = user_input if user_input.startswith("/") else f"/add {user_input}"

            try:
                reply = command_registry.handle(state, line, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is not None:
                write(reply)
    finally:
        unsubscribe()

    logger.info("Console connector finished.")
