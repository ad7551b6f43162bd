"""
results.py - Terminal result aggregation over a completed execution's output.

Runs once, after the backend process exits, over everything it printed. Only
JSON object lines contribute; everything else is ignored.

Three concerns are kept separate:
- an output parser per adapter family pulls final text, tokens and cost from
  the terminal result event (last one wins),
- check_for_errors() finds an explicit error event anywhere in the output,
- the process exit code is consulted independently; a nonzero exit without
  an error event still fails, with a message built from trailing output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from .adapters import parse_json_line
from .models import DEFAULT_RESPONSE, AggregatedResult

logger = logging.getLogger(__name__)

DEFAULT_ERROR_SNIPPET_LINES = 12


@dataclass
class ParsedOutput:
    """Final text and usage extracted from a backend's output."""

    response: str = DEFAULT_RESPONSE
    input_tokens: int = 0
    output_tokens: int = 0
    cost: Optional[str] = None


OutputParser = Callable[[str], ParsedOutput]


def parse_json_lines(output: str) -> Iterator[Dict[str, Any]]:
    """Yield each JSON object line of the output, skipping everything else."""
    for line in output.split("\n"):
        parsed = parse_json_line(line)
        if parsed is not None:
            yield parsed


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def _as_cost(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool) or value == "" or value == 0:
        return None
    return str(value)


def parse_result_event_output(output: str) -> ParsedOutput:
    """Parse Claude/Qwen stream-json output (``{"type": "result"}`` events)."""
    parsed_output = ParsedOutput()
    for event in parse_json_lines(output):
        if event.get("type") != "result":
            continue
        usage = _as_dict(event.get("usage"))
        result_text = event.get("result")
        parsed_output = ParsedOutput(
            response=result_text if isinstance(result_text, str) and result_text else DEFAULT_RESPONSE,
            input_tokens=_as_int(usage.get("input_tokens")),
            output_tokens=_as_int(usage.get("output_tokens")),
            cost=_as_cost(event.get("total_cost_usd", event.get("cost_usd"))),
        )
    return parsed_output


def parse_step_finish_output(output: str) -> ParsedOutput:
    """Parse OpenCode JSON output.

    Tokens and cost come from the last ``step_finish`` event; the response is
    the concatenation of every ``text`` part.
    """
    input_tokens = 0
    output_tokens = 0
    cost: Optional[str] = None
    text_parts: List[str] = []

    for event in parse_json_lines(output):
        event_type = event.get("type")
        part = _as_dict(event.get("part"))
        if event_type == "step_finish":
            tokens = _as_dict(part.get("tokens"))
            input_tokens = _as_int(tokens.get("input"))
            output_tokens = _as_int(tokens.get("output"))
            cost = _as_cost(part.get("cost"))
        elif event_type == "text":
            text = part.get("text")
            if isinstance(text, str) and text:
                text_parts.append(text)

    return ParsedOutput(
        response="".join(text_parts) or DEFAULT_RESPONSE,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost=cost,
    )


def parse_gemini_output(output: str) -> ParsedOutput:
    """Parse Gemini CLI stream-json output.

    The response is the concatenation of assistant ``message`` contents;
    token counts come from the last ``result`` event's ``stats`` (or the
    ``usage`` block some versions emit instead).
    """
    input_tokens = 0
    output_tokens = 0
    text_parts: List[str] = []

    for event in parse_json_lines(output):
        event_type = event.get("type")
        if event_type == "message" and event.get("role") == "assistant":
            content = event.get("content")
            if isinstance(content, str) and content:
                text_parts.append(content)
        elif event_type == "result":
            stats = _as_dict(event.get("stats"))
            usage = _as_dict(event.get("usage"))
            if stats:
                input_tokens = _as_int(stats.get("input_tokens"))
                output_tokens = _as_int(stats.get("output_tokens"))
            elif usage:
                input_tokens = _as_int(usage.get("prompt_tokens"))
                output_tokens = _as_int(usage.get("completion_tokens"))

    return ParsedOutput(
        response="".join(text_parts) or DEFAULT_RESPONSE,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


OUTPUT_PARSERS: Dict[str, OutputParser] = {
    "result": parse_result_event_output,
    "step_finish": parse_step_finish_output,
    "gemini": parse_gemini_output,
}


def get_output_parser(family: str) -> OutputParser:
    """Look up an output parser by family name.

    Raises:
        ValueError: If the family is unknown.
    """
    try:
        return OUTPUT_PARSERS[family]
    except KeyError:
        valid = ", ".join(sorted(OUTPUT_PARSERS))
        raise ValueError(f"Unknown output format: {family}. Valid options: {valid}") from None


def check_for_errors(output: str) -> Optional[str]:
    """Return the message of the first error event in the output, if any."""
    for event in parse_json_lines(output):
        if event.get("type") != "error":
            continue
        error = event.get("error")
        if isinstance(error, dict):
            # OpenCode nests the message under error.data
            for source in (error, _as_dict(error.get("data"))):
                message = source.get("message")
                if isinstance(message, str) and message:
                    return message
        elif isinstance(error, str) and error:
            return error
        message = event.get("message")
        if isinstance(message, str) and message:
            return message
        return "Unknown error"
    return None


def format_command_error(
    exit_code: int,
    output: str,
    max_lines: int = DEFAULT_ERROR_SNIPPET_LINES,
) -> str:
    """Format a command failure with the last non-empty lines of its output."""
    trimmed = output.strip()
    if not trimmed:
        return f"Command failed with exit code {exit_code}"

    lines = [line.rstrip("\r") for line in trimmed.split("\n") if line.strip()]
    snippet = "\n".join(lines[-max_lines:])
    return f"Command failed with exit code {exit_code}. Output:\n{snippet}"


def aggregate_result(
    output: str,
    exit_code: int,
    parser: OutputParser = parse_result_event_output,
    error_snippet_lines: int = DEFAULT_ERROR_SNIPPET_LINES,
) -> AggregatedResult:
    """Build the terminal result of an execution from its complete output.

    Args:
        output: Everything the backend printed (all channels).
        exit_code: Process exit code.
        parser: Output parser for the backend's adapter family.
        error_snippet_lines: Trailing lines quoted in exit-code failures.

    Returns:
        AggregatedResult. An explicit error event short-circuits to a failure
        with empty response and zero tokens.
    """
    error = check_for_errors(output)
    if error:
        logger.debug("Backend reported error event: %s", error)
        return AggregatedResult(
            response="",
            input_tokens=0,
            output_tokens=0,
            success=False,
            error=error,
        )

    parsed = parser(output)

    if exit_code != 0:
        return AggregatedResult(
            response=parsed.response,
            input_tokens=parsed.input_tokens,
            output_tokens=parsed.output_tokens,
            cost=parsed.cost,
            success=False,
            error=format_command_error(exit_code, output, error_snippet_lines),
        )

    return AggregatedResult(
        response=parsed.response,
        input_tokens=parsed.input_tokens,
        output_tokens=parsed.output_tokens,
        cost=parsed.cost,
        success=True,
    )
