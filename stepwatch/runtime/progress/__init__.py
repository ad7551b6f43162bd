"""
progress/ - Streaming progress classification for coding-agent CLI output.

Components:
- adapters: Per-backend extraction of tool calls from JSON lines
- classifier: classify() precedence rules and the per-execution StepClassifier
- todos: TodoTracker, the wholesale-replaced todo list
- diff_preview: Bounded before/after edit previews
- results: Terminal result aggregation (tokens, cost, errors, exit codes)
- timeline: Step transition history and durations

Usage:
    >>> from stepwatch.runtime.progress import StepClassifier
    >>> classifier = StepClassifier()
    >>> event = classifier.process_line('{"type": "step_start"}')
    >>> event.step.value
    'Thinking'
"""

from .adapters import ADAPTERS, extract_tool_call, parse_json_line
from .classifier import StepClassifier, classify, detect_step_from_output, is_test_file
from .diff_preview import synthesize_diff
from .models import (
    DEFAULT_RESPONSE,
    AggregatedResult,
    CanonicalStep,
    DiffInfo,
    NormalizedToolCall,
    ProgressEvent,
    TodoItem,
    TodoStatus,
)
from .results import (
    OUTPUT_PARSERS,
    aggregate_result,
    check_for_errors,
    format_command_error,
    get_output_parser,
    parse_gemini_output,
    parse_result_event_output,
    parse_step_finish_output,
)
from .timeline import StepTimeline, format_duration
from .todos import TodoTracker

__all__ = [
    # Models
    "AggregatedResult",
    "CanonicalStep",
    "DEFAULT_RESPONSE",
    "DiffInfo",
    "NormalizedToolCall",
    "ProgressEvent",
    "TodoItem",
    "TodoStatus",
    # Classification
    "ADAPTERS",
    "StepClassifier",
    "classify",
    "detect_step_from_output",
    "extract_tool_call",
    "is_test_file",
    "parse_json_line",
    # Enrichers
    "TodoTracker",
    "synthesize_diff",
    # Aggregation
    "OUTPUT_PARSERS",
    "aggregate_result",
    "check_for_errors",
    "format_command_error",
    "get_output_parser",
    "parse_gemini_output",
    "parse_result_event_output",
    "parse_step_finish_output",
    # Timing
    "StepTimeline",
    "format_duration",
]
