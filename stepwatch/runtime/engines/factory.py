"""
factory.py - Engine factory functions.

Provides engine instantiation by id and an availability listing used by the
command-line tool.

Engine IDs:
- "claude" (alias "claude-code"): ClaudeEngine
- "opencode": OpenCodeEngine
- "gemini": GeminiEngine
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from stepwatch.config.runtime_config import DisplayLimits, is_streaming_enabled

from .base import AgentEngine
from .claude import ClaudeEngine
from .gemini import GeminiEngine
from .opencode import OpenCodeEngine

logger = logging.getLogger(__name__)

ENGINE_CLASSES: Dict[str, Type[AgentEngine]] = {
    "claude": ClaudeEngine,
    "opencode": OpenCodeEngine,
    "gemini": GeminiEngine,
}

ENGINE_ALIASES: Dict[str, str] = {
    "claude-code": "claude",
    "open-code": "opencode",
}


class UnknownEngineError(ValueError):
    """Raised when an engine id does not name a known engine."""


def resolve_engine_id(engine_id: str) -> str:
    """Normalize an engine id or alias to its canonical id.

    Raises:
        UnknownEngineError: If the id is not recognized.
    """
    key = engine_id.strip().lower()
    key = ENGINE_ALIASES.get(key, key)
    if key not in ENGINE_CLASSES:
        valid = ", ".join(sorted(ENGINE_CLASSES))
        raise UnknownEngineError(f"Unknown engine ID: {engine_id}. Valid options: {valid}")
    return key


def get_engine(
    engine_id: str,
    cli_command: Optional[str] = None,
    limits: Optional[DisplayLimits] = None,
) -> AgentEngine:
    """Get an engine by id.

    Args:
        engine_id: Engine identifier or alias.
        cli_command: Optional CLI path overriding configuration.
        limits: Optional display limits overriding configuration.

    Returns:
        Configured AgentEngine instance.

    Raises:
        UnknownEngineError: If engine_id is not recognized.

    Example:
        >>> engine = get_engine("opencode")
        >>> result = engine.execute_streaming("fix the bug", Path.cwd(), print)
    """
    key = resolve_engine_id(engine_id)
    engine = ENGINE_CLASSES[key](cli_command=cli_command, limits=limits)
    logger.debug("get_engine(%s): cli=%s", key, engine.cli_command)
    return engine


def list_available_engines() -> List[Dict[str, Any]]:
    """List engines with their resolved CLI command and availability.

    Returns:
        List of dicts with:
        - id: Engine identifier
        - label: Human-readable label
        - cli_command: Resolved CLI command
        - available: Whether the CLI resolves on PATH
        - streaming: Whether streaming progress is supported and enabled
    """
    engines: List[Dict[str, Any]] = []
    for key in ENGINE_CLASSES:
        engine = get_engine(key)
        engines.append(
            {
                "id": key,
                "label": engine.name,
                "cli_command": engine.cli_command,
                "available": engine.is_available(),
                "streaming": engine.supports_streaming and is_streaming_enabled(key),
            }
        )
    return engines
