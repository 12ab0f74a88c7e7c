# src/justdoit/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any, cast

from ..core.state import AppState
from ..tasks.display_settings import ColorTheme
from ..tasks.filters import ANY_CATEGORY
from ..tasks.task_models import UNSET, Category, CategoryColor, TodoItem

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_ON = ("on", "1", "true", "yes")
_OFF = ("off", "0", "false", "no")


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            # Unbalanced quote (e.g. an apostrophe in a title): plain whitespace split.
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument parsing ----


@dataclass
class TaskArgs:
    words: list[str] = field(default_factory=list)
    category: Any = UNSET  # UNSET, None (explicit "#none") or a category name
    due_date: Any = UNSET  # UNSET, None or a date
    notes: Any = UNSET
    error: str | None = None

    @property
    def title(self) -> str:
        return " ".join(self.words).strip()


def parse_task_args(args: list[str]) -> TaskArgs:
    """
    Split free words from options:
      #Name       category (#none clears)
      due:DATE    ISO date, or due:none
      note:TEXT   notes (quote to include spaces)
    """
    out = TaskArgs()
    for tok in args:
        low = tok.lower()
        if tok.startswith("#") and len(tok) > 1:
            out.category = None if low == "#none" else tok[1:]
        elif low.startswith("due:"):
            raw = tok[4:].strip()
            if raw.lower() in ("", "none"):
                out.due_date = None
                continue
            try:
                out.due_date = date.fromisoformat(raw)
            except ValueError:
                out.error = f"Bad due date {raw!r}; use YYYY-MM-DD."
        elif low.startswith(("note:", "notes:")):
            out.notes = tok.split(":", 1)[1]
        else:
            out.words.append(tok)
    return out


def _resolve_category(state: AppState, name: str) -> Category | None:
    return state.store.find_category_by_name(name)


def _current_listing(state: AppState) -> list[str]:
    if state.last_listing is None:
        state.last_listing = [i.id for i in state.display.visible_items(state.store)]
    return state.last_listing


def _resolve_item(state: AppState, token: str | None) -> TodoItem | None:
    if not token or not token.isdigit():
        return None
    listing = _current_listing(state)
    idx = int(token) - 1
    if idx < 0 or idx >= len(listing):
        return None
    return state.store.get_item(listing[idx])


def _category_label(state: AppState, category_id: str | None) -> str | None:
    if not category_id:
        return None
    cat = state.store.get_category(category_id)
    return cat.name if cat else None


def format_item(state: AppState, item: TodoItem, index: int | None = None) -> str:
    mark = "[x]" if item.is_completed else "[ ]"
    prefix = f"{index:>3}. " if index is not None else ""
    extras: list[str] = []
    label = _category_label(state, item.category_id)
    if label:
        extras.append(label)
    if item.due_date:
        extras.append(f"due {item.due_date.isoformat()}")
    tail = f"  ({', '.join(extras)})" if extras else ""
    return f"{prefix}{mark} {item.title}{tail}"


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add Buy milk #Grocery due:2025-05-20 note:"2 litres"
    """
    parsed = parse_task_args(args)
    if parsed.error:
        return parsed.error
    if not parsed.title:
        return "Task title cannot be empty. Usage: /add <title> [#Category] [due:YYYY-MM-DD] [note:TEXT]"

    category_id: str | None = None
    if parsed.category:
        cat = _resolve_category(state, parsed.category)
        if cat is None:
            return f"No category named {parsed.category!r}. See /cat."
        category_id = cat.id

    item = state.store.add_item(
        parsed.title,
        notes=parsed.notes if parsed.notes is not UNSET else "",
        due_date=parsed.due_date if parsed.due_date is not UNSET else None,
        category_id=category_id,
    )
    state.last_listing = None
    return f"Added: {format_item(state, item)}"


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                -> visible tasks (respects /settings)
    /list milk           -> title contains "milk"
    /list #Work          -> only Work tasks (#none = uncategorized)
    """
    parsed = parse_task_args(args)
    category_id: Any = ANY_CATEGORY
    if parsed.category is None:
        category_id = None
    elif parsed.category is not UNSET:
        cat = _resolve_category(state, parsed.category)
        if cat is None:
            return f"No category named {parsed.category!r}. See /cat."
        category_id = cat.id

    items = state.display.visible_items(state.store, category_id=category_id, search_text=parsed.title)
    state.last_listing = [i.id for i in items]
    if not items:
        return "No tasks."
    return "\n".join(format_item(state, item, n) for n, item in enumerate(items, start=1))


def cmd_done(state: AppState, args: list[str]) -> str:
    item = _resolve_item(state, args[0] if args else None)
    if item is None:
        return "Usage: /done <number from /list>."
    state.store.toggle_completion(item.id)
    fresh = state.store.get_item(item.id) or item
    return f"{'Completed' if fresh.is_completed else 'Reopened'}: {fresh.title}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit 2 New title #Work due:none note:"call first"
    Only the parts given are changed.
    """
    item = _resolve_item(state, args[0] if args else None)
    if item is None:
        return "Usage: /edit <number> [new title] [#Category|#none] [due:DATE|due:none] [note:TEXT]"

    parsed = parse_task_args(args[1:])
    if parsed.error:
        return parsed.error

    changes: dict[str, Any] = {}
    if parsed.title:
        changes["title"] = parsed.title
    if parsed.notes is not UNSET:
        changes["notes"] = parsed.notes
    if parsed.due_date is not UNSET:
        changes["due_date"] = parsed.due_date
    if parsed.category is None:
        changes["category_id"] = None
    elif parsed.category is not UNSET:
        cat = _resolve_category(state, parsed.category)
        if cat is None:
            return f"No category named {parsed.category!r}. See /cat."
        changes["category_id"] = cat.id

    if not changes:
        return "Nothing to change."
    state.store.update_item(item.id, **changes)
    fresh = state.store.get_item(item.id) or item
    return f"Updated: {format_item(state, fresh)}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    item = _resolve_item(state, args[0] if args else None)
    if item is None:
        return "Usage: /rm <number from /list>."
    state.store.delete_item(item.id)
    state.last_listing = None
    return f"Deleted: {item.title}"


def cmd_show(state: AppState, args: list[str]) -> str:
    item = _resolve_item(state, args[0] if args else None)
    if item is None:
        return "Usage: /show <number from /list>."
    return (
        f"{item.title}\n"
        f"  Status: {'completed' if item.is_completed else 'open'}\n"
        f"  Category: {_category_label(state, item.category_id) or '-'}\n"
        f"  Due: {item.due_date.isoformat() if item.due_date else '-'}\n"
        f"  Notes: {item.notes or '-'}"
    )


def _cat_usage() -> str:
    colors = ", ".join(c.value for c in CategoryColor)
    return (
        "Categories:\n"
        "  /cat                      - list categories\n"
        "  /cat add <name> [color]   - add a category\n"
        "  /cat rename <name> <new>  - rename a category\n"
        "  /cat color <name> <color> - change a category color\n"
        "  /cat rm <name>            - delete (its tasks become uncategorized)\n"
        f"  Colors: {colors}"
    )


def _parse_color(raw: str) -> CategoryColor | None:
    try:
        return CategoryColor(raw.strip().lower())
    except ValueError:
        return None


def cmd_cat(state: AppState, args: list[str]) -> str:
    store = state.store
    if not args:
        cats = store.list_categories()
        if not cats:
            return "No categories."
        lines = ["Categories:"]
        for c in cats:
            lines.append(f"  {c.name} ({c.color.value}) - {len(store.todos_for(c.id))} tasks")
        lines.append(f"  Uncategorized - {len(store.uncategorized())} tasks")
        return "\n".join(lines)

    sub = args[0].lower()
    rest = args[1:]

    if sub == "add":
        if not rest or not rest[0].strip():
            return "Category name cannot be empty. Usage: /cat add <name> [color]"
        color = CategoryColor.BLUE
        if len(rest) > 1:
            parsed_color = _parse_color(rest[1])
            if parsed_color is None:
                return f"Unknown color {rest[1]!r}.\n{_cat_usage()}"
            color = parsed_color
        cat = store.add_category(rest[0].strip(), color)
        return f"Category added: {cat.name} ({cat.color.value})"

    if sub in ("rename", "color", "rm", "del", "delete"):
        if not rest:
            return _cat_usage()
        cat = _resolve_category(state, rest[0])
        if cat is None:
            return f"No category named {rest[0]!r}."

        if sub == "rename":
            if len(rest) < 2 or not rest[1].strip():
                return "Usage: /cat rename <name> <new name>"
            old_name = cat.name
            store.update_category(cat.id, name=rest[1].strip())
            return f"Category renamed: {old_name} -> {rest[1].strip()}"

        if sub == "color":
            new_color = _parse_color(rest[1]) if len(rest) > 1 else None
            if new_color is None:
                return f"Usage: /cat color <name> <color>\n{_cat_usage()}"
            store.update_category(cat.id, color=new_color)
            return f"Category {cat.name} is now {new_color.value}."

        store.delete_category(cat.id)
        state.last_listing = None
        return f"Category deleted: {cat.name}"

    return _cat_usage()


def cmd_settings(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /settings                      -> show
    /settings completed on|off     -> show/hide completed tasks
    /settings sort on|off          -> completed tasks at the bottom
    /settings theme <name>         -> color theme
    """
    display = state.display
    if not args:
        themes = ", ".join(t.value for t in ColorTheme)
        return (
            "Settings:\n"
            f"  Show completed tasks: {'ON' if display.show_completed_tasks else 'OFF'}\n"
            f"  Sort completed to bottom: {'ON' if display.sort_completed_to_bottom else 'OFF'}\n"
            f"  Color theme: {display.color_theme.label} (available: {themes})"
        )

    key = args[0].lower()
    val = args[1].lower() if len(args) > 1 else ""

    if key in ("completed", "sort"):
        if val not in _ON + _OFF:
            return f"Usage: /settings {key} on|off"
        flag = val in _ON
        if key == "completed":
            display.show_completed_tasks = flag
        else:
            display.sort_completed_to_bottom = flag
        state.last_listing = None
        if emit:
            with contextlib.suppress(Exception):
                emit("[settings] Saved. Use /list to see the result.")
        return f"{key} -> {'ON' if flag else 'OFF'}"

    if key == "theme":
        try:
            display.color_theme = ColorTheme(val)
        except ValueError:
            return f"Unknown theme {val!r}. Available: {', '.join(t.value for t in ColorTheme)}"
        return f"Color theme set to {display.color_theme.label}."

    return "Usage: /settings [completed on|off | sort on|off | theme <name>]"


def cmd_refresh(state: AppState, args: list[str]) -> str:
    state.prefs.reload()
    state.store.refresh()
    state.last_listing = None
    return "Reloaded from disk."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register(
    "add", cmd_add, help_text="Add a task: /add <title> [#Category] [due:YYYY-MM-DD] [note:TEXT]."
)
registry.register("list", cmd_list, help_text="List tasks: /list [search] [#Category|#none].", aliases=["ls"])
registry.register("done", cmd_done, help_text="Toggle completion: /done <n>.", aliases=["toggle"])
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n> [title] [#Cat] [due:...] [note:...].")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <n>.", aliases=["del"])
registry.register("show", cmd_show, help_text="Show task details: /show <n>.")
registry.register("cat", cmd_cat, help_text="Categories: /cat [add|rename|color|rm] ...")
registry.register("settings", cmd_settings, help_text="Display options: completed / sort / theme.")
registry.register("refresh", cmd_refresh, help_text="Reload tasks and settings from disk.")
