"""Runtime configuration registry for agent engines and progress display.

Provides centralized configuration for engine CLI paths, engine environment
and the display limits used by the progress classifier.
Environment variables take precedence over YAML config.

Usage:
    from stepwatch.config.runtime_config import get_cli_path, get_display_limits

    cli = get_cli_path("opencode")  # Returns "opencode" unless overridden
    limits = get_display_limits()   # DisplayLimits(path_max_chars=60, ...)

Engine configuration:
    from stepwatch.config.runtime_config import (
        get_engine_env,
        is_streaming_enabled,
    )

    env = get_engine_env("opencode")  # Returns {"OPENCODE_PERMISSION": "..."}
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "runtime.yaml"
_cached_config: Optional[Dict[str, Any]] = None

# Environment variable pointing at an alternative runtime.yaml
CONFIG_ENV_VAR = "STEPWATCH_CONFIG"

# =============================================================================
# Display Limit Guardrails
# =============================================================================

# Below this a truncated path or command is no longer readable
DISPLAY_MIN_CHARS = 10

# Above this a single status line wraps on any reasonable terminal
DISPLAY_MAX_CHARS = 400

DIFF_MIN_LINES = 1
DIFF_MAX_LINES = 50


def _clamp_value(value: Any, name: str, min_val: int, max_val: int, default: int) -> int:
    """Clamp a configured integer to sanity bounds with logging.

    Args:
        value: The configured value (may be any YAML type).
        name: Human-readable name for logging (e.g., "path_max_chars").
        min_val: Minimum allowed value.
        max_val: Maximum allowed value.
        default: Value used when the configured value is not an integer.

    Returns:
        Clamped value within [min_val, max_val].
    """
    if isinstance(value, bool) or not isinstance(value, int):
        if value is not None:
            logger.warning(
                "Display setting '%s' has non-integer value %r. Using default %d.",
                name,
                value,
                default,
            )
        return default

    if value < min_val:
        logger.warning(
            "Display setting '%s' value %d is below minimum %d. Clamping to %d.",
            name,
            value,
            min_val,
            min_val,
        )
        return min_val
    if value > max_val:
        logger.warning(
            "Display setting '%s' value %d exceeds maximum %d. Clamping to %d.",
            name,
            value,
            max_val,
            max_val,
        )
        return max_val
    return value


@dataclass(frozen=True)
class DisplayLimits:
    """Resolved bounds for progress text shown to the user.

    Attributes:
        path_max_chars: Max characters of a file path in tool output.
        command_max_chars: Max characters of a command echo.
        diff_line_max_chars: Max characters of a single diff preview line.
        diff_max_lines: Max lines kept per side of a diff preview.
    """

    path_max_chars: int = 60
    command_max_chars: int = 50
    diff_line_max_chars: int = 70
    diff_max_lines: int = 4


DEFAULT_DISPLAY_LIMITS = DisplayLimits()


def _config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return _CONFIG_PATH


def _load_config() -> Dict[str, Any]:
    """Load runtime.yaml configuration, with caching."""
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    path = _config_path()
    loaded: Any = None
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load runtime config %s: %s. Using defaults.", path, e)
            loaded = None

    if isinstance(loaded, dict):
        _cached_config = loaded
    else:
        if loaded is not None:
            logger.warning("Runtime config %s is not a mapping. Using defaults.", path)
        _cached_config = _default_config()

    return _cached_config


def _default_config() -> Dict[str, Any]:
    """Return default configuration if runtime.yaml doesn't exist."""
    return {
        "version": "1.0",
        "engines": {
            "claude": {
                "cli_path": "claude",
                "label": "Claude Code",
                "streaming": True,
            },
            "opencode": {
                "cli_path": "opencode",
                "label": "OpenCode",
                "streaming": True,
                "env": {"OPENCODE_PERMISSION": '{"*":"allow"}'},
            },
            "gemini": {
                "cli_path": "gemini",
                "label": "Gemini CLI",
                "streaming": True,
            },
        },
        "display": {
            "path_max_chars": 60,
            "command_max_chars": 50,
            "diff_line_max_chars": 70,
            "diff_max_lines": 4,
        },
        "defaults": {
            "timeout_seconds": 1800,
            "error_snippet_lines": 12,
        },
    }


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config
    _cached_config = None


def _engine_config(engine: str) -> Dict[str, Any]:
    config = _load_config()
    engines = config.get("engines") or {}
    engine_config = engines.get(engine.lower()) or {}
    return engine_config if isinstance(engine_config, dict) else {}


def get_cli_path(engine: str) -> str:
    """Get CLI path for an engine, with env var override.

    Environment variable precedence:
    1. STEPWATCH_<ENGINE>_CLI (e.g., STEPWATCH_OPENCODE_CLI)
    2. Config file cli_path value
    3. Default: engine name (e.g., "claude", "opencode")

    Args:
        engine: Engine identifier ("claude", "opencode" or "gemini").

    Returns:
        CLI path string.
    """
    # 1. Check engine-specific CLI env var
    engine_upper = engine.upper().replace("-", "_")
    cli_env_var = f"STEPWATCH_{engine_upper}_CLI"
    cli_value = os.environ.get(cli_env_var)
    if cli_value:
        return cli_value

    # 2. Check config file
    cli_path = _engine_config(engine).get("cli_path")
    if cli_path:
        return str(cli_path)

    # 3. Default to engine name
    return engine.lower()


def get_engine_label(engine: str) -> str:
    """Get the human-readable label for an engine (falls back to the id)."""
    return str(_engine_config(engine).get("label") or engine)


def get_engine_env(engine: str) -> Dict[str, str]:
    """Get environment variable overrides for an engine.

    These are static env vars defined in the engine config and merged into
    the child process environment (e.g., OpenCode's permission policy).

    Args:
        engine: Engine identifier (e.g., "opencode").

    Returns:
        Dictionary of environment variable name -> value.
        Returns empty dict if no env overrides are configured.
    """
    env = _engine_config(engine).get("env", {})
    # Ensure we return a dict of strings
    return {str(k): str(v) for k, v in env.items()} if isinstance(env, dict) else {}


def is_streaming_enabled(engine: str) -> bool:
    """Check whether streaming progress is enabled for an engine.

    Defaults to True; engines that cannot stream ignore the setting.
    """
    value = _engine_config(engine).get("streaming")
    if value is None:
        return True
    return bool(value)


def get_default(key: str, fallback: Any = None) -> Any:
    """Get a default setting value.

    Args:
        key: Setting key (e.g., "timeout_seconds", "error_snippet_lines").
        fallback: Value to return if key not found.

    Returns:
        Setting value or fallback.
    """
    config = _load_config()
    defaults = config.get("defaults") or {}
    return defaults.get(key, fallback)


def get_timeout_seconds() -> Optional[int]:
    """Get default timeout for engine execution.

    STEPWATCH_TIMEOUT_SECONDS overrides the config value. A value of 0
    disables the timeout.

    Returns:
        Timeout in seconds, or None when disabled.
    """
    env_value = os.environ.get("STEPWATCH_TIMEOUT_SECONDS")
    if env_value:
        try:
            seconds = int(env_value)
        except ValueError:
            logger.warning("Invalid STEPWATCH_TIMEOUT_SECONDS value '%s'. Ignoring.", env_value)
        else:
            return seconds if seconds > 0 else None

    seconds = get_default("timeout_seconds", 1800)
    if isinstance(seconds, int) and not isinstance(seconds, bool) and seconds > 0:
        return seconds
    return None


def get_error_snippet_lines() -> int:
    """Get how many trailing output lines go into a synthesized failure message."""
    return _clamp_value(get_default("error_snippet_lines"), "error_snippet_lines", 1, 200, 12)


def get_display_limits() -> DisplayLimits:
    """Resolve display limits from config, clamped to sanity bounds."""
    config = _load_config()
    display = config.get("display") or {}
    if not isinstance(display, dict):
        display = {}
    d = DEFAULT_DISPLAY_LIMITS
    return DisplayLimits(
        path_max_chars=_clamp_value(
            display.get("path_max_chars"),
            "path_max_chars",
            DISPLAY_MIN_CHARS,
            DISPLAY_MAX_CHARS,
            d.path_max_chars,
        ),
        command_max_chars=_clamp_value(
            display.get("command_max_chars"),
            "command_max_chars",
            DISPLAY_MIN_CHARS,
            DISPLAY_MAX_CHARS,
            d.command_max_chars,
        ),
        diff_line_max_chars=_clamp_value(
            display.get("diff_line_max_chars"),
            "diff_line_max_chars",
            DISPLAY_MIN_CHARS,
            DISPLAY_MAX_CHARS,
            d.diff_line_max_chars,
        ),
        diff_max_lines=_clamp_value(
            display.get("diff_max_lines"),
            "diff_max_lines",
            DIFF_MIN_LINES,
            DIFF_MAX_LINES,
            d.diff_max_lines,
        ),
    )
