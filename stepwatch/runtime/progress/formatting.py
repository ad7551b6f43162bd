"""Text helpers shared by the progress classifier and diff previews."""

from __future__ import annotations

ELLIPSIS = "..."


def truncate(text: str, max_len: int) -> str:
    """Cut text to max_len characters, marking the cut with a trailing ellipsis."""
    if len(text) <= max_len:
        return text
    if max_len <= len(ELLIPSIS):
        return text[:max_len]
    return text[: max_len - len(ELLIPSIS)] + ELLIPSIS


def format_file_path(file_path: str, max_len: int = 60) -> str:
    """Shorten a path for display, keeping its tail (the file name matters most)."""
    if len(file_path) <= max_len:
        return file_path
    if max_len <= len(ELLIPSIS):
        return file_path[-max_len:]
    return ELLIPSIS + file_path[-(max_len - len(ELLIPSIS)) :]


def format_command(command: str, max_len: int = 50) -> str:
    """Echo a shell command as tool output."""
    return f"Running: {truncate(command, max_len)}"
