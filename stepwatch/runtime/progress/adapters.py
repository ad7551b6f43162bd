"""
adapters.py - Per-backend extraction of tool calls from JSON output lines.

Each coding-agent CLI reports tool usage in its own shape:

- assistant_content: Claude/Qwen stream-json, the tool call is nested in the
  assistant message content list::

    {"type": "assistant", "message": {"content": [
        {"type": "tool_use", "name": "Read", "input": {"file_path": "..."}}]}}

- tool_call_part: OpenCode JSON events, a typed envelope with a ``part``::

    {"type": "tool_call", "part": {"name": "read", "input": {...}}}
    {"type": "tool_use", "part": {"tool": "read", "state": {"input": {...}}}}

- flat_fields: everything else, tool fields at the top level (or in a nested
  ``input`` / ``parameters`` / ``args`` mapping)::

    {"type": "tool_use", "tool_name": "run_shell_command",
     "parameters": {"command": "npm test"}}

Adapters are tried in that fixed order and the first one that recognizes the
line wins. None of them raise: anything they do not understand is "not
applicable".
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .models import NormalizedToolCall

logger = logging.getLogger(__name__)

# Backend-specific tool names mapped onto the names the classifier knows
TOOL_ALIASES: Dict[str, str] = {
    "read_file": "read",
    "read_many_files": "read",
    "list": "read",
    "ls": "read",
    "list_directory": "read",
    "search_file_content": "grep",
    "run_shell_command": "bash",
    "shell": "bash",
    "write_file": "write",
    "replace": "edit",
    "multiedit": "edit",
}

FILE_PATH_KEYS = ("file_path", "filePath", "path")
NESTED_INPUT_KEYS = ("input", "parameters", "args")

Adapter = Callable[[Dict[str, Any]], Optional[NormalizedToolCall]]


def parse_json_line(line: Any) -> Optional[Dict[str, Any]]:
    """Parse one output line as a JSON object.

    Lines that do not start with ``{`` are rejected before attempting a parse.

    Returns:
        The parsed object, or None for blank, non-JSON or non-object lines.
    """
    if not isinstance(line, str):
        return None
    trimmed = line.strip()
    if not trimmed.startswith("{"):
        return None
    try:
        parsed = json.loads(trimmed)
    except (ValueError, RecursionError):
        logger.debug("Ignoring malformed JSON line: %.80s", trimmed)
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_str(mapping: Mapping[str, Any], keys: Tuple[str, ...]) -> str:
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def normalize_tool_name(name: str) -> str:
    """Lowercase a tool name and resolve backend-specific aliases."""
    lowered = name.strip().lower()
    return TOOL_ALIASES.get(lowered, lowered)


def build_tool_call(tool_name: str, tool_input: Dict[str, Any], source: str) -> NormalizedToolCall:
    """Build a NormalizedToolCall from a tool name and its input mapping."""
    raw_file_path = _first_str(tool_input, FILE_PATH_KEYS)
    raw_command = _as_str(tool_input.get("command"))
    return NormalizedToolCall(
        tool_name=normalize_tool_name(tool_name),
        file_path=raw_file_path.lower(),
        command=raw_command.lower(),
        description=_as_str(tool_input.get("description")).lower(),
        raw_file_path=raw_file_path,
        raw_command=raw_command,
        input=tool_input,
        source=source,
    )


def adapt_assistant_content(parsed: Dict[str, Any]) -> Optional[NormalizedToolCall]:
    """Extract the first tool_use item of an assistant message."""
    if parsed.get("type") != "assistant":
        return None
    content = _as_dict(parsed.get("message")).get("content")
    if not isinstance(content, list):
        return None

    for item in content:
        if not isinstance(item, dict) or item.get("type") != "tool_use":
            continue
        name = _as_str(item.get("name"))
        if name:
            return build_tool_call(name, _as_dict(item.get("input")), "assistant_content")
    return None


def adapt_tool_call_part(parsed: Dict[str, Any]) -> Optional[NormalizedToolCall]:
    """Extract a tool call from a typed envelope carrying a ``part``."""
    if parsed.get("type") not in ("tool_call", "tool_use"):
        return None
    part = parsed.get("part")
    if not isinstance(part, dict):
        return None

    name = _as_str(part.get("name")) or _as_str(part.get("tool"))
    if not name:
        return None
    tool_input = part.get("input")
    if not isinstance(tool_input, dict):
        tool_input = _as_dict(_as_dict(part.get("state")).get("input"))
    return build_tool_call(name, tool_input, "tool_call_part")


def adapt_flat_fields(parsed: Dict[str, Any]) -> Optional[NormalizedToolCall]:
    """Extract tool fields from the top level of the event.

    Fields missing at the top level are looked up in the first nested
    input mapping, so ``{"name": "bash", "input": {"command": "ls"}}`` and
    ``{"tool": "bash", "command": "ls"}`` normalize the same way.
    """
    nested: Dict[str, Any] = {}
    for key in NESTED_INPUT_KEYS:
        candidate = parsed.get(key)
        if isinstance(candidate, dict):
            nested = candidate
            break

    name = _first_str(parsed, ("tool", "name", "tool_name"))
    raw_command = _as_str(parsed.get("command")) or _as_str(nested.get("command"))
    if not name and not raw_command:
        return None

    raw_file_path = _first_str(parsed, FILE_PATH_KEYS) or _first_str(nested, FILE_PATH_KEYS)
    description = _as_str(parsed.get("description")) or _as_str(nested.get("description"))
    return NormalizedToolCall(
        tool_name=normalize_tool_name(name),
        file_path=raw_file_path.lower(),
        command=raw_command.lower(),
        description=description.lower(),
        raw_file_path=raw_file_path,
        raw_command=raw_command,
        input=nested or parsed,
        source="flat_fields",
    )


# Priority order: nested envelope, typed envelope, then flat fields
ADAPTERS: Tuple[Tuple[str, Adapter], ...] = (
    ("assistant_content", adapt_assistant_content),
    ("tool_call_part", adapt_tool_call_part),
    ("flat_fields", adapt_flat_fields),
)


def adapter_names() -> List[str]:
    """Names of the registered adapters, in trial order."""
    return [name for name, _ in ADAPTERS]


def extract_tool_call(parsed: Dict[str, Any]) -> Optional[NormalizedToolCall]:
    """Run the adapters in priority order and return the first match.

    Args:
        parsed: A parsed JSON object from one output line.

    Returns:
        The normalized tool call, or None if no adapter applies.
    """
    for _name, adapter in ADAPTERS:
        call = adapter(parsed)
        if call is not None:
            return call
    return None
