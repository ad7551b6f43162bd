"""
base.py - Abstract base class for agent engines.

This module defines the contract every coding-agent backend implements:
- is_available(): probe whether the backend CLI resolves on PATH
- execute(): buffered run, no progress, returns an AggregatedResult
- execute_streaming(): run while classifying each output line and forwarding
  progress events to a callback, then aggregate like execute()

Engines implement build_args() and declare their output format; process
handling, classification and aggregation are shared here.
"""

from __future__ import annotations

import logging
import shutil
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from stepwatch.config.runtime_config import (
    DisplayLimits,
    get_cli_path,
    get_display_limits,
    get_engine_env,
    get_engine_label,
    get_error_snippet_lines,
    get_timeout_seconds,
)
from stepwatch.runtime.progress.classifier import StepClassifier
from stepwatch.runtime.progress.models import AggregatedResult, ProgressEvent
from stepwatch.runtime.progress.results import ParsedOutput, aggregate_result, get_output_parser

from . import process

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]

IS_WINDOWS = sys.platform == "win32"


@dataclass
class EngineOptions:
    """Per-execution options.

    Attributes:
        model_override: Model name passed to the CLI's --model flag.
        engine_args: Extra CLI arguments appended verbatim.
        timeout: Timeout in seconds (None uses the configured default).
    """

    model_override: Optional[str] = None
    engine_args: List[str] = field(default_factory=list)
    timeout: Optional[float] = None


class AgentEngine(ABC):
    """Base class for coding-agent CLI engines.

    Subclasses set engine_id and output_format and implement build_args().

    Attributes:
        engine_id: Config key and factory id (e.g. "claude").
        output_format: Output parser family (see results.OUTPUT_PARSERS).
        supports_streaming: Whether execute_streaming() is available.
    """

    engine_id: str = ""
    output_format: str = "result"
    supports_streaming: bool = True

    def __init__(
        self,
        cli_command: Optional[str] = None,
        limits: Optional[DisplayLimits] = None,
    ):
        """Initialize the engine.

        Args:
            cli_command: CLI executable; defaults to the configured path.
            limits: Display bounds for progress text; defaults to config.
        """
        self.cli_command = cli_command or get_cli_path(self.engine_id)
        self.limits = limits or get_display_limits()

    @property
    def name(self) -> str:
        return get_engine_label(self.engine_id)

    def is_available(self) -> bool:
        """Check if the engine CLI is resolvable on PATH."""
        return shutil.which(self.cli_command) is not None

    @abstractmethod
    def build_args(self, prompt: str, options: EngineOptions) -> List[str]:
        """Build CLI arguments (without the executable) for one execution."""
        ...

    def stdin_content(self, prompt: str) -> Optional[str]:
        """Text to send on stdin; None when the prompt travels as an argument."""
        return None

    def engine_env(self) -> Dict[str, str]:
        return get_engine_env(self.engine_id)

    def parse_output(self, output: str) -> ParsedOutput:
        return get_output_parser(self.output_format)(output)

    def _timeout(self, options: EngineOptions) -> Optional[float]:
        if options.timeout is not None:
            return options.timeout if options.timeout > 0 else None
        return get_timeout_seconds()

    def execute(
        self,
        prompt: str,
        work_dir: Union[str, Path],
        options: Optional[EngineOptions] = None,
    ) -> AggregatedResult:
        """Run the engine to completion without progress reporting.

        Args:
            prompt: Task prompt for the agent.
            work_dir: Directory the agent works in.
            options: Optional per-execution options.

        Returns:
            The aggregated result of the execution.
        """
        options = options or EngineOptions()
        result = process.exec_command(
            self.cli_command,
            self.build_args(prompt, options),
            work_dir,
            env=self.engine_env(),
            stdin_content=self.stdin_content(prompt),
            timeout=self._timeout(options),
        )
        return self._aggregate(result.combined, result.exit_code)

    def execute_streaming(
        self,
        prompt: str,
        work_dir: Union[str, Path],
        on_progress: ProgressCallback,
        options: Optional[EngineOptions] = None,
    ) -> AggregatedResult:
        """Run the engine, forwarding a ProgressEvent for each informative line.

        A fresh StepClassifier is used for every call. Every line is buffered
        for aggregation whether or not it produced an event.

        Args:
            prompt: Task prompt for the agent.
            work_dir: Directory the agent works in.
            on_progress: Callback invoked synchronously per progress event.
            options: Optional per-execution options.

        Returns:
            The aggregated result of the execution.

        Raises:
            NotImplementedError: If the engine does not support streaming.
        """
        if not self.supports_streaming:
            raise NotImplementedError(f"{self.name} does not support streaming execution")

        options = options or EngineOptions()
        classifier = StepClassifier(self.limits)
        output_lines: List[str] = []

        def handle_line(line: str) -> None:
            output_lines.append(line)
            event = classifier.process_line(line)
            if event is not None:
                on_progress(event)

        exit_code = process.exec_command_streaming(
            self.cli_command,
            self.build_args(prompt, options),
            work_dir,
            handle_line,
            env=self.engine_env(),
            stdin_content=self.stdin_content(prompt),
            timeout=self._timeout(options),
        )
        return self._aggregate("\n".join(output_lines), exit_code)

    def _aggregate(self, output: str, exit_code: int) -> AggregatedResult:
        result = aggregate_result(
            output,
            exit_code,
            parser=self.parse_output,
            error_snippet_lines=get_error_snippet_lines(),
        )
        if not result.success:
            first_line = (result.error or "").split("\n", 1)[0]
            logger.warning("%s execution failed: %s", self.name, first_line)
        else:
            logger.debug(
                "%s execution succeeded (tokens in=%d out=%d)",
                self.name,
                result.input_tokens,
                result.output_tokens,
            )
        return result

    @staticmethod
    def _common_args(options: EngineOptions) -> List[str]:
        args: List[str] = []
        if options.model_override:
            args.extend(["--model", options.model_override])
        if options.engine_args:
            args.extend(options.engine_args)
        return args
