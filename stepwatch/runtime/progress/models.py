"""
models.py - Data models for streaming progress classification.

This module defines the types passed between the progress components:
- NormalizedToolCall: Backend-agnostic view of one tool invocation
- CanonicalStep: Closed set of human-meaningful progress phases
- ProgressEvent: The unit emitted per classified output line
- TodoItem / TodoStatus: Agent-reported task checklist entries
- DiffInfo: Bounded before/after preview of a file edit
- AggregatedResult: Terminal outcome of one engine execution

These are pure data structures with no dependencies on engines or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Response used when a backend never reports final text
DEFAULT_RESPONSE = "Task completed"


class CanonicalStep(str, Enum):
    """Progress phase shown to the user, one per emitted event."""

    THINKING = "Thinking"
    READING = "Reading code"
    IMPLEMENTING = "Implementing"
    WRITING_TESTS = "Writing tests"
    RUNNING = "Running command"
    LINTING = "Linting"
    TESTING = "Testing"
    COMMITTING = "Committing"
    STAGING = "Staging"
    PLANNING = "Planning"


class TodoStatus(str, Enum):
    """Status of a single todo entry."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class NormalizedToolCall:
    """One tool invocation extracted from a backend output line.

    The lowercase fields feed the substring heuristics of the classifier and
    are never None. The raw fields keep the backend's casing for display.

    Attributes:
        tool_name: Lowercased (and alias-resolved) tool name.
        file_path: Lowercased target file path.
        command: Lowercased shell command.
        description: Lowercased free-text description.
        raw_file_path: File path as the backend reported it.
        raw_command: Command as the backend reported it.
        input: The tool's raw input mapping (content, old_string, todos...).
        source: Name of the adapter that produced this call.
    """

    tool_name: str = ""
    file_path: str = ""
    command: str = ""
    description: str = ""
    raw_file_path: str = ""
    raw_command: str = ""
    input: Dict[str, Any] = field(default_factory=dict)
    source: str = ""

    @property
    def is_empty(self) -> bool:
        """True when neither a tool name nor a command was recognized."""
        return not self.tool_name and not self.command


@dataclass(frozen=True)
class TodoItem:
    """A single agent-reported task."""

    id: str
    content: str
    status: TodoStatus = TodoStatus.PENDING

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "content": self.content, "status": self.status.value}


@dataclass
class DiffInfo:
    """Glanceable preview of an edit: the leading lines of old and new content.

    This is not a diff in the alignment sense; old_lines and new_lines are
    independent, each bounded in count and width.

    Attributes:
        file_path: Path of the edited file, as reported.
        start_line: 1-based line the edit starts at, when the backend says so.
        old_lines: Leading lines of the replaced content (None if empty).
        new_lines: Leading lines of the new content (None if empty).
    """

    file_path: str
    start_line: Optional[int] = None
    old_lines: Optional[List[str]] = None
    new_lines: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"file_path": self.file_path}
        if self.start_line is not None:
            result["start_line"] = self.start_line
        if self.old_lines is not None:
            result["old_lines"] = list(self.old_lines)
        if self.new_lines is not None:
            result["new_lines"] = list(self.new_lines)
        return result


@dataclass
class ProgressEvent:
    """Canonical progress update derived from one output line.

    Display layers should prefer diff over tool_output when both are set.

    Attributes:
        step: The canonical phase.
        tool_output: Short text about what the tool is doing (path, command).
        diff: Edit preview for write/edit operations.
        todos: The current todo list, when one is being tracked.
    """

    step: CanonicalStep
    tool_output: Optional[str] = None
    diff: Optional[DiffInfo] = None
    todos: Optional[List[TodoItem]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, omitting absent optional fields."""
        result: Dict[str, Any] = {"step": self.step.value}
        if self.tool_output is not None:
            result["tool_output"] = self.tool_output
        if self.diff is not None:
            result["diff"] = self.diff.to_dict()
        if self.todos is not None:
            result["todos"] = [t.to_dict() for t in self.todos]
        return result


@dataclass
class AggregatedResult:
    """Outcome of one engine execution, built after the process exits.

    Attributes:
        response: Final assistant text (DEFAULT_RESPONSE when none reported).
        input_tokens: Prompt tokens reported by the backend.
        output_tokens: Completion tokens reported by the backend.
        cost: Backend-reported cost, verbatim as a string.
        success: False on an error event or a nonzero exit.
        error: Failure message when success is False.
    """

    response: str = DEFAULT_RESPONSE
    input_tokens: int = 0
    output_tokens: int = 0
    cost: Optional[str] = None
    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": self.success,
            "response": self.response,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
        }
        if self.cost is not None:
            result["cost"] = self.cost
        if self.error is not None:
            result["error"] = self.error
        return result
