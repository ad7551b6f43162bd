"""
opencode.py - OpenCode CLI engine.

Runs ``opencode run --format json``. Tool calls arrive as typed envelopes
(``tool_call`` / ``tool_use`` with a ``part``), turns are bracketed by
``step_start`` / ``step_finish`` events and the answer is streamed as
``text`` parts.
"""

from __future__ import annotations

from typing import List, Optional

from .base import IS_WINDOWS, AgentEngine, EngineOptions


class OpenCodeEngine(AgentEngine):
    """Engine using the OpenCode CLI.

    Configuration via environment:
        STEPWATCH_OPENCODE_CLI: Path to opencode CLI (default: "opencode")

    The permission policy (OPENCODE_PERMISSION) comes from the engine's
    ``env`` block in runtime.yaml.
    """

    engine_id = "opencode"
    output_format = "step_finish"

    def build_args(self, prompt: str, options: EngineOptions) -> List[str]:
        args = ["run", "--format", "json", *self._common_args(options)]
        # On Windows the prompt goes through stdin; cmd.exe mangles multi-line arguments
        if not IS_WINDOWS:
            args.append(prompt)
        return args

    def stdin_content(self, prompt: str) -> Optional[str]:
        return prompt if IS_WINDOWS else None
