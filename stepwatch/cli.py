#!/usr/bin/env python3
"""
cli.py - Command-line entry point for stepwatch.

Subcommands:
    stepwatch run --engine opencode "add input validation"
        Run an engine and print progress as it happens.
    stepwatch replay transcript.jsonl --format step_finish
        Feed a captured output transcript through the classifier and the
        result aggregator (useful when a backend changes its event format).
    stepwatch engines
        List engines, their CLI commands and whether they are installed.

Exit codes:
    0 - Execution succeeded
    1 - Execution failed (error event, nonzero exit, or unknown engine)
    2 - Usage error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from stepwatch.config.runtime_config import get_display_limits, is_streaming_enabled
from stepwatch.runtime.engines import (
    EngineOptions,
    UnknownEngineError,
    get_engine,
    list_available_engines,
)
from stepwatch.runtime.engines.process import split_lines
from stepwatch.runtime.progress import (
    OUTPUT_PARSERS,
    AggregatedResult,
    ProgressEvent,
    StepClassifier,
    StepTimeline,
    TodoStatus,
    aggregate_result,
    format_duration,
    get_output_parser,
)

logger = logging.getLogger(__name__)

TODO_MARKERS = {
    TodoStatus.COMPLETED: "[x]",
    TodoStatus.IN_PROGRESS: "[~]",
    TodoStatus.PENDING: "[ ]",
}


class ProgressPrinter:
    """Plain-text sink for progress events.

    Prints a line per step change or new tool output, the todo list when it
    changes and diff previews, and keeps a StepTimeline for the summary.
    """

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out
        self.timeline = StepTimeline()
        self._last_line: Optional[str] = None
        self._last_todos = None

    def __call__(self, event: ProgressEvent) -> None:
        self.timeline.record(event.step)

        if event.todos is not None and event.todos != self._last_todos:
            self._last_todos = event.todos
            self._write("Todos:")
            for todo in event.todos:
                self._write(f"  {TODO_MARKERS[todo.status]} {todo.content}")

        line = f"[{event.step.value}]"
        if event.tool_output and not event.diff:
            line = f"{line} {event.tool_output}"
        elif event.diff:
            line = f"{line} Edit {event.diff.file_path}"
        if line != self._last_line:
            self._write(line)
            self._last_line = line

        if event.diff:
            start = event.diff.start_line or 1
            for offset, text in enumerate(event.diff.old_lines or []):
                self._write(f"  {start + offset:>3} - {text}")
            for offset, text in enumerate(event.diff.new_lines or []):
                self._write(f"  {start + offset:>3} + {text}")

    def summary(self, result: AggregatedResult) -> None:
        elapsed = format_duration(self.timeline.elapsed_ms())
        status = "succeeded" if result.success else "failed"
        self._write(f"Execution {status} in {elapsed}")
        timings = self.timeline.summary()
        if timings:
            self._write(f"  Steps: {timings}")
        usage = f"  Tokens: {result.input_tokens} in / {result.output_tokens} out"
        if result.cost:
            usage += f", cost {result.cost}"
        self._write(usage)
        if result.success:
            self._write(result.response)
        else:
            self._write(f"Error: {result.error}")

    def _write(self, text: str) -> None:
        print(text, file=self.out or sys.stdout)


def cmd_run(args: argparse.Namespace) -> int:
    try:
        engine = get_engine(args.engine, cli_command=args.cli)
    except UnknownEngineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not engine.is_available():
        print(f"Error: {engine.name} CLI '{engine.cli_command}' not found on PATH", file=sys.stderr)
        return 1

    options = EngineOptions(
        model_override=args.model,
        engine_args=list(args.engine_arg or []),
        timeout=args.timeout,
    )
    printer = ProgressPrinter()
    stream = not args.no_stream and engine.supports_streaming and is_streaming_enabled(engine.engine_id)

    if stream:
        result = engine.execute_streaming(args.prompt, args.workdir, printer, options)
    else:
        result = engine.execute(args.prompt, args.workdir, options)

    printer.summary(result)
    return 0 if result.success else 1


def cmd_replay(args: argparse.Namespace) -> int:
    try:
        text = args.transcript.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        print(f"Error: cannot read {args.transcript}: {e}", file=sys.stderr)
        return 1

    classifier = StepClassifier(get_display_limits())
    printer = ProgressPrinter()
    lines = split_lines(text)
    for line in lines:
        event = classifier.process_line(line)
        if event is not None:
            printer(event)

    result = aggregate_result("\n".join(lines), args.exit_code, get_output_parser(args.format))
    printer.summary(result)
    return 0 if result.success else 1


def cmd_engines(args: argparse.Namespace) -> int:
    for info in list_available_engines():
        status = "available" if info["available"] else "not found"
        streaming = "streaming" if info["streaming"] else "buffered"
        print(f"{info['id']:<10} {info['label']:<14} {info['cli_command']:<20} {status}, {streaming}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stepwatch",
        description="Run coding-agent CLIs and report their progress in canonical steps",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run an engine on a prompt")
    run_parser.add_argument("prompt", help="Task prompt for the agent")
    run_parser.add_argument(
        "--engine",
        "-e",
        default="claude",
        help="Engine id (claude, opencode, gemini)",
    )
    run_parser.add_argument("--model", "-m", default=None, help="Model override")
    run_parser.add_argument(
        "--workdir",
        "-C",
        type=Path,
        default=Path.cwd(),
        help="Working directory for the agent",
    )
    run_parser.add_argument("--cli", default=None, help="Path to the engine CLI")
    run_parser.add_argument(
        "--engine-arg",
        action="append",
        help="Extra argument passed to the engine CLI (repeatable)",
    )
    run_parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds")
    run_parser.add_argument(
        "--no-stream",
        action="store_true",
        help="Run buffered, without progress events",
    )
    run_parser.set_defaults(func=cmd_run)

    replay_parser = subparsers.add_parser("replay", help="Classify a captured transcript")
    replay_parser.add_argument("transcript", type=Path, help="File with captured engine output")
    replay_parser.add_argument(
        "--format",
        "-f",
        choices=sorted(OUTPUT_PARSERS),
        default="result",
        help="Output family used for result aggregation",
    )
    replay_parser.add_argument(
        "--exit-code",
        type=int,
        default=0,
        help="Exit code the captured process ended with",
    )
    replay_parser.set_defaults(func=cmd_replay)

    engines_parser = subparsers.add_parser("engines", help="List engines and availability")
    engines_parser.set_defaults(func=cmd_engines)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
