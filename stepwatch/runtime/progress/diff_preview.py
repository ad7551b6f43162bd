"""
diff_preview.py - Bounded before/after previews of file edits.

A preview is the leading lines of the old and the new content, each line cut
to a fixed width. No alignment or hunk detection is performed; the goal is a
glanceable hint of what an edit touches, not edit fidelity.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .formatting import truncate
from .models import DiffInfo

DEFAULT_MAX_LINES = 4
DEFAULT_LINE_WIDTH = 70

OLD_CONTENT_KEYS = ("old_string", "oldString")
NEW_CONTENT_KEYS = ("content", "new_string", "newString")
START_LINE_KEYS = ("start_line", "startLine", "line")


def _preview_lines(content: str, max_lines: int, line_width: int) -> Optional[List[str]]:
    if not content:
        return None
    return [truncate(line, line_width) for line in content.split("\n")[:max_lines]]


def synthesize_diff(
    file_path: str,
    old_content: str,
    new_content: str,
    max_lines: int = DEFAULT_MAX_LINES,
    line_width: int = DEFAULT_LINE_WIDTH,
    start_line: Optional[int] = None,
) -> Optional[DiffInfo]:
    """Build a DiffInfo preview from full old/new contents.

    Args:
        file_path: Path of the edited file.
        old_content: Content being replaced (empty for a fresh write).
        new_content: Replacement or full new file content.
        max_lines: Max lines kept per side.
        line_width: Max characters per kept line.
        start_line: Optional 1-based line where the edit starts.

    Returns:
        The preview, or None if both contents are empty.
    """
    if not old_content and not new_content:
        return None
    return DiffInfo(
        file_path=file_path,
        start_line=start_line,
        old_lines=_preview_lines(old_content, max_lines, line_width),
        new_lines=_preview_lines(new_content, max_lines, line_width),
    )


def _first_text(tool_input: Dict[str, Any], keys) -> str:
    for key in keys:
        value = tool_input.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def diff_from_tool_input(
    file_path: str,
    tool_input: Dict[str, Any],
    max_lines: int = DEFAULT_MAX_LINES,
    line_width: int = DEFAULT_LINE_WIDTH,
) -> Optional[DiffInfo]:
    """Build a preview from a write/edit tool's input mapping."""
    start_line = None
    for key in START_LINE_KEYS:
        value = tool_input.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            start_line = value
            break
    return synthesize_diff(
        file_path,
        _first_text(tool_input, OLD_CONTENT_KEYS),
        _first_text(tool_input, NEW_CONTENT_KEYS),
        max_lines=max_lines,
        line_width=line_width,
        start_line=start_line,
    )
