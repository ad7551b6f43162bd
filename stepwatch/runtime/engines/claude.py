"""
claude.py - Claude Code CLI engine.

Runs ``claude -p --output-format stream-json`` with the prompt on stdin.
Tool calls arrive nested in assistant message content; the final text and
usage arrive in a single ``{"type": "result"}`` event.
"""

from __future__ import annotations

from typing import List, Optional

from .base import AgentEngine, EngineOptions


class ClaudeEngine(AgentEngine):
    """Engine using the Claude Code CLI.

    Configuration via environment:
        STEPWATCH_CLAUDE_CLI: Path to claude CLI (default: "claude")
    """

    engine_id = "claude"
    output_format = "result"

    def build_args(self, prompt: str, options: EngineOptions) -> List[str]:
        # stream-json in print mode requires --verbose
        return ["-p", "--output-format", "stream-json", "--verbose", *self._common_args(options)]

    def stdin_content(self, prompt: str) -> Optional[str]:
        return prompt
