"""
todos.py - Tracking of the agent-reported todo list across output lines.

Agents publish their plan through a "todo write" tool whose input carries the
complete list. Each write replaces the tracked list wholesale; there is no
incremental merge. A payload whose ``todos`` field is not a list is ignored
and the previous list is kept.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from .models import TodoItem, TodoStatus

logger = logging.getLogger(__name__)

# Lowercased tool names that publish a todo list
TODO_WRITE_TOOLS = frozenset({"todowrite", "mcp_todowrite", "todo_write"})


def is_todo_write(tool_name: str) -> bool:
    """Check whether a (lowercased) tool name is a todo write."""
    return tool_name in TODO_WRITE_TOOLS


def _parse_status(value: Any) -> TodoStatus:
    if isinstance(value, str):
        try:
            return TodoStatus(value)
        except ValueError:
            pass
    return TodoStatus.PENDING


def _text(value: Any) -> str:
    # Falsy values (None, "", 0) map to "" like a missing field
    if not value:
        return ""
    return str(value)


def parse_todo_items(raw_todos: List[Any]) -> List[TodoItem]:
    """Map raw todo entries to TodoItems, skipping entries that are not objects."""
    items: List[TodoItem] = []
    for entry in raw_todos:
        if not isinstance(entry, dict):
            continue
        items.append(
            TodoItem(
                id=_text(entry.get("id")),
                content=_text(entry.get("content")),
                status=_parse_status(entry.get("status")),
            )
        )
    return items


class TodoTracker:
    """Holds the current todo list for one execution."""

    def __init__(self) -> None:
        self._items: List[TodoItem] = []

    @property
    def items(self) -> List[TodoItem]:
        return list(self._items)

    def apply(self, raw_todos: Any) -> bool:
        """Replace the tracked list from a todo-write payload.

        Args:
            raw_todos: The ``todos`` field of the tool input.

        Returns:
            True if the list was replaced, False if the payload was not a list
            (in which case the current list is left untouched).
        """
        if not isinstance(raw_todos, list):
            logger.debug("Ignoring todo write with non-list payload: %r", type(raw_todos))
            return False
        self._items = parse_todo_items(raw_todos)
        return True

    def snapshot(self) -> Optional[List[TodoItem]]:
        """Current list for attaching to an event, or None when empty."""
        return list(self._items) if self._items else None
