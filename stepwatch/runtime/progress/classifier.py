"""
classifier.py - Derive canonical progress steps from agent output lines.

Two layers:

- classify(): a pure function from a NormalizedToolCall to a ProgressEvent
  (or None), applying ordered precedence rules. Order encodes intent
  priority: lint and test runners are detected before the generic "Running
  command" fallback even though all three come from the same shell tool.

- StepClassifier: one instance per engine execution. It parses lines, runs
  the format adapters, tracks the todo list and attaches edit previews.
  It never raises for malformed input; a line it cannot use yields None.

Usage:
    from stepwatch.runtime.progress import StepClassifier

    classifier = StepClassifier()
    for line in lines:
        event = classifier.process_line(line)
        if event:
            on_progress(event)
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any, Dict, List, Optional

from stepwatch.config.runtime_config import DEFAULT_DISPLAY_LIMITS, DisplayLimits

from .adapters import extract_tool_call, parse_json_line
from .diff_preview import diff_from_tool_input
from .formatting import format_command, format_file_path
from .models import CanonicalStep, DiffInfo, NormalizedToolCall, ProgressEvent, TodoItem
from .todos import TodoTracker, is_todo_write

logger = logging.getLogger(__name__)

READ_TOOLS = frozenset({"read", "glob", "grep"})
WRITE_TOOLS = frozenset({"write", "edit"})
SHELL_TOOLS = frozenset({"bash"})

LINT_MARKERS = ("lint", "eslint", "biome", "prettier")
TEST_MARKERS = ("vitest", "jest", "bun test", "npm test", "pytest", "go test")
TEST_PATH_MARKERS = (".test.", ".spec.", "__tests__", "_test.go")

# Envelope types that mean "the model is working on its next move"
THINKING_EVENT_TYPES = frozenset({"step_start"})


def is_test_file(file_path: str) -> bool:
    """Check if a file path looks like a test file."""
    lower = file_path.lower()
    if any(marker in lower for marker in TEST_PATH_MARKERS):
        return True
    name = posixpath.basename(lower.replace("\\", "/"))
    return name.endswith(".py") and (name.startswith("test_") or name.endswith("_test.py"))


def _path_output(call: NormalizedToolCall, limits: DisplayLimits) -> Optional[str]:
    if not call.raw_file_path:
        return None
    return format_file_path(call.raw_file_path, limits.path_max_chars)


def _command_output(call: NormalizedToolCall, limits: DisplayLimits) -> Optional[str]:
    if not call.raw_command:
        return None
    return format_command(call.raw_command, limits.command_max_chars)


def classify(
    call: NormalizedToolCall,
    limits: DisplayLimits = DEFAULT_DISPLAY_LIMITS,
) -> Optional[ProgressEvent]:
    """Map a normalized tool call to a canonical progress event.

    Rules are checked in order and the first match wins:
    1. no tool name and no command -> None
    2. read/glob/grep -> Reading code
    3. bash or any command -> Committing, Staging, Linting, Testing, or
       Running command (bash only)
    4. write/edit on a test file -> Writing tests
    5. write/edit -> Implementing
    6. anything else -> None

    Args:
        call: The tool call extracted from one output line.
        limits: Display bounds for path and command echoes.

    Returns:
        A ProgressEvent without todos or diff, or None.
    """
    if call.is_empty:
        return None

    tool = call.tool_name

    if tool in READ_TOOLS:
        return ProgressEvent(CanonicalStep.READING, tool_output=_path_output(call, limits))

    is_shell = tool in SHELL_TOOLS
    if is_shell or call.command:
        command = call.command
        description = call.description

        if "git commit" in command or "git commit" in description:
            return ProgressEvent(CanonicalStep.COMMITTING)

        if "git add" in command or "git add" in description:
            return ProgressEvent(CanonicalStep.STAGING)

        if any(marker in command for marker in LINT_MARKERS):
            return ProgressEvent(CanonicalStep.LINTING, tool_output=_command_output(call, limits))

        if any(marker in command for marker in TEST_MARKERS):
            return ProgressEvent(CanonicalStep.TESTING, tool_output=_command_output(call, limits))

        if is_shell and command:
            return ProgressEvent(CanonicalStep.RUNNING, tool_output=_command_output(call, limits))

    if tool in WRITE_TOOLS:
        step = CanonicalStep.WRITING_TESTS if is_test_file(call.file_path) else CanonicalStep.IMPLEMENTING
        return ProgressEvent(step, tool_output=_path_output(call, limits))

    return None


def detect_step_from_output(
    line: str,
    limits: DisplayLimits = DEFAULT_DISPLAY_LIMITS,
) -> Optional[ProgressEvent]:
    """Stateless per-line classification (no todo tracking, no diffs).

    Returns:
        The event for this line, or None for non-informative lines.
    """
    try:
        parsed = parse_json_line(line)
        if parsed is None:
            return None
        call = extract_tool_call(parsed)
        if call is None:
            return None
        return classify(call, limits)
    except Exception:  # one bad line must not abort a stream
        logger.debug("Failed to classify line: %.80r", line, exc_info=True)
        return None


class StepClassifier:
    """Stateful classifier for the output of one engine execution.

    Holds the tracked todo list and the most recent edit preview. Create a
    new instance per execution; instances are not meant to be shared between
    concurrent executions.

    Attributes:
        limits: Display bounds applied to tool output and diff previews.
    """

    def __init__(self, limits: Optional[DisplayLimits] = None):
        self.limits = limits or DEFAULT_DISPLAY_LIMITS
        self._todos = TodoTracker()
        self._last_diff: Optional[DiffInfo] = None

    @property
    def todos(self) -> List[TodoItem]:
        """Copy of the currently tracked todo list."""
        return self._todos.items

    @property
    def last_diff(self) -> Optional[DiffInfo]:
        """Preview of the most recent write/edit seen, if any."""
        return self._last_diff

    def __call__(self, line: str) -> Optional[ProgressEvent]:
        return self.process_line(line)

    def process_line(self, line: str) -> Optional[ProgressEvent]:
        """Classify one raw output line.

        Returns:
            At most one ProgressEvent; None for lines carrying no progress.
        """
        try:
            parsed = parse_json_line(line)
            if parsed is None:
                return None
            return self._process_parsed(parsed)
        except Exception:  # one bad line must not abort a stream
            logger.debug("Failed to classify line: %.80r", line, exc_info=True)
            return None

    def _process_parsed(self, parsed: Dict[str, Any]) -> Optional[ProgressEvent]:
        if parsed.get("type") in THINKING_EVENT_TYPES:
            return self._with_todos(ProgressEvent(CanonicalStep.THINKING))

        call = extract_tool_call(parsed)
        if call is None:
            return None

        if is_todo_write(call.tool_name) and self._todos.apply(call.input.get("todos")):
            return ProgressEvent(CanonicalStep.PLANNING, todos=self._todos.items)

        event = classify(call, self.limits)
        if event is None:
            return None

        if call.tool_name in WRITE_TOOLS:
            diff = diff_from_tool_input(
                call.raw_file_path,
                call.input,
                max_lines=self.limits.diff_max_lines,
                line_width=self.limits.diff_line_max_chars,
            )
            if diff is not None:
                self._last_diff = diff
                event.diff = diff

        return self._with_todos(event)

    def _with_todos(self, event: ProgressEvent) -> ProgressEvent:
        event.todos = self._todos.snapshot()
        return event
