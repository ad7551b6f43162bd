"""
engines/ - Agent engine abstraction for pluggable coding-agent CLIs.

Interfaces:
- AgentEngine: Base class with is_available / execute / execute_streaming
- EngineOptions: Per-execution options (model, extra args, timeout)

Engines:
- ClaudeEngine: Claude Code CLI (stream-json)
- OpenCodeEngine: OpenCode CLI (JSON events)
- GeminiEngine: Gemini CLI (stream-json)

Factory:
- get_engine(): Create engine by ID
- list_available_engines(): List engines with availability

Usage:
    >>> from stepwatch.runtime.engines import get_engine
    >>> engine = get_engine("claude")
    >>> result = engine.execute_streaming(prompt, Path.cwd(), on_progress)
"""

from .base import AgentEngine, EngineOptions, ProgressCallback
from .claude import ClaudeEngine
from .factory import (
    ENGINE_CLASSES,
    UnknownEngineError,
    get_engine,
    list_available_engines,
    resolve_engine_id,
)
from .gemini import GeminiEngine
from .opencode import OpenCodeEngine
from .process import CommandOutput, exec_command, exec_command_streaming

__all__ = [
    # Interfaces
    "AgentEngine",
    "EngineOptions",
    "ProgressCallback",
    # Engines
    "ClaudeEngine",
    "GeminiEngine",
    "OpenCodeEngine",
    # Factory
    "ENGINE_CLASSES",
    "UnknownEngineError",
    "get_engine",
    "list_available_engines",
    "resolve_engine_id",
    # Process layer
    "CommandOutput",
    "exec_command",
    "exec_command_streaming",
]
