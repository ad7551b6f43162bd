"""
gemini.py - Gemini CLI engine.

Runs ``gemini --output-format stream-json --prompt <prompt>``. Tool calls are
flat ``tool_use`` events (``tool_name`` plus ``parameters``); assistant text
arrives as ``message`` events and usage in the closing ``result`` event.
"""

from __future__ import annotations

from typing import List

from .base import AgentEngine, EngineOptions


class GeminiEngine(AgentEngine):
    """Engine using the Gemini CLI.

    Configuration via environment:
        STEPWATCH_GEMINI_CLI: Path to gemini CLI (default: "gemini")
    """

    engine_id = "gemini"
    output_format = "gemini"

    def build_args(self, prompt: str, options: EngineOptions) -> List[str]:
        return ["--output-format", "stream-json", *self._common_args(options), "--prompt", prompt]
