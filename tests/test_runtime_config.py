"""
Tests for runtime configuration.

Tests verify that:
1. Shipped defaults resolve for every engine
2. Environment variables override YAML values
3. Alternative config files are honored via STEPWATCH_CONFIG
4. Display limits are clamped to sanity bounds with warnings
5. Unreadable or malformed config falls back to defaults
"""

import logging

import pytest

from stepwatch.config import runtime_config
from stepwatch.config.runtime_config import (
    DEFAULT_DISPLAY_LIMITS,
    DIFF_MAX_LINES,
    DISPLAY_MAX_CHARS,
    DISPLAY_MIN_CHARS,
    DisplayLimits,
    get_cli_path,
    get_display_limits,
    get_engine_env,
    get_engine_label,
    get_error_snippet_lines,
    get_timeout_seconds,
    is_streaming_enabled,
)


class TestShippedDefaults:
    """Tests against the bundled runtime.yaml."""

    def test_engines_listed(self):
        """All three engines are configured with labels."""
        labels = [get_engine_label(e) for e in ("claude", "opencode", "gemini")]
        assert labels == ["Claude Code", "OpenCode", "Gemini CLI"]

    def test_cli_paths(self):
        """CLI paths default to the engine names."""
        assert get_cli_path("claude") == "claude"
        assert get_cli_path("opencode") == "opencode"

    def test_opencode_permission_env(self):
        """OpenCode runs with a permissive permission policy."""
        assert get_engine_env("opencode") == {"OPENCODE_PERMISSION": '{"*":"allow"}'}
        assert get_engine_env("claude") == {}

    def test_labels(self):
        """Labels are configured, falling back to the id."""
        assert get_engine_label("claude") == "Claude Code"
        assert get_engine_label("unknown") == "unknown"

    def test_streaming(self):
        """Streaming is enabled by default."""
        assert is_streaming_enabled("claude") is True
        assert is_streaming_enabled("unknown") is True

    def test_display_limits(self):
        """Shipped display limits match the built-in defaults."""
        assert get_display_limits() == DEFAULT_DISPLAY_LIMITS
        assert DEFAULT_DISPLAY_LIMITS == DisplayLimits(60, 50, 70, 4)

    def test_defaults(self):
        """Timeout and error snippet defaults."""
        assert get_timeout_seconds() == 1800
        assert get_error_snippet_lines() == 12


class TestEnvOverrides:
    """Tests for environment variable precedence."""

    def test_cli_env_override(self, monkeypatch):
        """STEPWATCH_<ENGINE>_CLI wins over the config file."""
        monkeypatch.setenv("STEPWATCH_OPENCODE_CLI", "/opt/bin/opencode")
        assert get_cli_path("opencode") == "/opt/bin/opencode"

    def test_cli_env_override_hyphenated(self, monkeypatch):
        """Hyphens in engine ids become underscores in the variable name."""
        monkeypatch.setenv("STEPWATCH_CLAUDE_CODE_CLI", "/opt/claude")
        assert get_cli_path("claude-code") == "/opt/claude"

    def test_unconfigured_engine_defaults_to_name(self):
        """An engine with no config uses its own name as the command."""
        assert get_cli_path("Qwen") == "qwen"

    def test_timeout_env(self, monkeypatch):
        """STEPWATCH_TIMEOUT_SECONDS overrides the configured timeout."""
        monkeypatch.setenv("STEPWATCH_TIMEOUT_SECONDS", "60")
        assert get_timeout_seconds() == 60

    def test_timeout_env_zero_disables(self, monkeypatch):
        """A zero timeout disables it."""
        monkeypatch.setenv("STEPWATCH_TIMEOUT_SECONDS", "0")
        assert get_timeout_seconds() is None

    def test_timeout_env_invalid(self, monkeypatch, caplog):
        """An invalid timeout is ignored with a warning."""
        monkeypatch.setenv("STEPWATCH_TIMEOUT_SECONDS", "soon")
        with caplog.at_level(logging.WARNING):
            assert get_timeout_seconds() == 1800
        assert "Invalid STEPWATCH_TIMEOUT_SECONDS" in caplog.text


class TestConfigFile:
    """Tests for alternative config files."""

    def test_custom_file(self, write_config):
        """STEPWATCH_CONFIG points at a different runtime.yaml."""
        write_config(
            """
engines:
  claude:
    cli_path: /usr/local/bin/claude
    streaming: false
display:
  path_max_chars: 80
defaults:
  timeout_seconds: 0
"""
        )

        assert get_cli_path("claude") == "/usr/local/bin/claude"
        assert is_streaming_enabled("claude") is False
        assert get_display_limits().path_max_chars == 80
        assert get_display_limits().command_max_chars == 50
        assert get_timeout_seconds() is None

    def test_config_is_cached(self, write_config):
        """Config is read once until reset_config()."""
        path = write_config("engines:\n  claude:\n    cli_path: first\n")
        assert get_cli_path("claude") == "first"

        path.write_text("engines:\n  claude:\n    cli_path: second\n")
        assert get_cli_path("claude") == "first"

        runtime_config.reset_config()
        assert get_cli_path("claude") == "second"

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        """A missing config file falls back to built-in defaults."""
        monkeypatch.setenv(runtime_config.CONFIG_ENV_VAR, str(tmp_path / "absent.yaml"))
        runtime_config.reset_config()

        assert get_engine_env("opencode") == {"OPENCODE_PERMISSION": '{"*":"allow"}'}

    def test_malformed_yaml(self, write_config, caplog):
        """Unparseable YAML warns and falls back to defaults."""
        write_config("engines: [unclosed\n")
        with caplog.at_level(logging.WARNING):
            assert get_cli_path("gemini") == "gemini"
        assert "Could not load runtime config" in caplog.text

    def test_non_mapping_yaml(self, write_config, caplog):
        """A YAML document that is not a mapping warns and falls back."""
        write_config("- just\n- a list\n")
        with caplog.at_level(logging.WARNING):
            assert get_engine_env("opencode") == {"OPENCODE_PERMISSION": '{"*":"allow"}'}
        assert "is not a mapping" in caplog.text


class TestDisplayLimitClamping:
    """Tests for display limit guardrails."""

    def test_below_minimum(self, write_config, caplog):
        """Values below the minimum are clamped up with a warning."""
        write_config("display:\n  path_max_chars: 2\n")
        with caplog.at_level(logging.WARNING):
            limits = get_display_limits()

        assert limits.path_max_chars == DISPLAY_MIN_CHARS
        assert "is below minimum" in caplog.text

    def test_above_maximum(self, write_config, caplog):
        """Values above the maximum are clamped down with a warning."""
        write_config("display:\n  command_max_chars: 100000\n  diff_max_lines: 999\n")
        with caplog.at_level(logging.WARNING):
            limits = get_display_limits()

        assert limits.command_max_chars == DISPLAY_MAX_CHARS
        assert limits.diff_max_lines == DIFF_MAX_LINES
        assert "exceeds maximum" in caplog.text

    @pytest.mark.parametrize("value", ["wide", "1.5", "true"])
    def test_non_integer(self, write_config, caplog, value):
        """Non-integer values fall back to the default with a warning."""
        write_config(f"display:\n  diff_line_max_chars: {value}\n")
        with caplog.at_level(logging.WARNING):
            limits = get_display_limits()

        assert limits.diff_line_max_chars == 70
        assert "non-integer value" in caplog.text

    def test_in_range_no_warning(self, write_config, caplog):
        """Valid values pass through silently."""
        write_config("display:\n  diff_max_lines: 8\n")
        with caplog.at_level(logging.WARNING):
            assert get_display_limits().diff_max_lines == 8
        assert caplog.text == ""

    def test_error_snippet_clamped(self, write_config):
        """error_snippet_lines is clamped to at least one line."""
        write_config("defaults:\n  error_snippet_lines: 0\n")
        assert get_error_snippet_lines() == 1
