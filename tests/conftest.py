"""
Test fixtures and utilities for stepwatch tests.

Provides sample backend output lines for each adapter family and keeps the
runtime config cache and STEPWATCH_* environment isolated between tests.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

_REPO_ROOT = Path(__file__).resolve().parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from stepwatch.config import runtime_config  # noqa: E402


def jsonl(*events: Dict[str, Any]) -> str:
    """Serialize events as newline-delimited JSON."""
    return "\n".join(json.dumps(e) for e in events)


# ============================================================================
# Config Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Reset the cached runtime config and drop STEPWATCH_* overrides."""
    for key in list(os.environ):
        if key.startswith("STEPWATCH_"):
            monkeypatch.delenv(key, raising=False)
    runtime_config.reset_config()
    yield
    runtime_config.reset_config()


@pytest.fixture
def write_config(tmp_path, monkeypatch):
    """Point STEPWATCH_CONFIG at a temporary YAML file with the given text."""

    def _write(text: str) -> Path:
        path = tmp_path / "runtime.yaml"
        path.write_text(text)
        monkeypatch.setenv(runtime_config.CONFIG_ENV_VAR, str(path))
        runtime_config.reset_config()
        return path

    return _write


# ============================================================================
# Sample Backend Output
# ============================================================================


def claude_tool_use(name: str, tool_input: Dict[str, Any]) -> Dict[str, Any]:
    """A Claude stream-json assistant event carrying one tool_use block."""
    return {
        "type": "assistant",
        "message": {
            "role": "assistant",
            "content": [{"type": "tool_use", "id": "toolu_01", "name": name, "input": tool_input}],
        },
    }


def opencode_tool_call(name: str, tool_input: Dict[str, Any]) -> Dict[str, Any]:
    """An OpenCode typed tool_call envelope."""
    return {"type": "tool_call", "part": {"name": name, "input": tool_input}}


@pytest.fixture
def claude_session_lines() -> List[str]:
    """A short Claude stream-json session: read, edit, test, result."""
    return [
        json.dumps({"type": "system", "subtype": "init", "model": "claude-sonnet"}),
        json.dumps(claude_tool_use("Read", {"file_path": "/repo/src/App.ts"})),
        json.dumps(
            claude_tool_use(
                "Edit",
                {
                    "file_path": "/repo/src/App.ts",
                    "old_string": "const a = 1;",
                    "new_string": "const a = 2;",
                },
            )
        ),
        json.dumps(claude_tool_use("Bash", {"command": "npx vitest run"})),
        json.dumps(
            {
                "type": "result",
                "subtype": "success",
                "result": "Updated the constant.",
                "total_cost_usd": 0.0123,
                "usage": {"input_tokens": 1200, "output_tokens": 340},
            }
        ),
    ]


@pytest.fixture
def opencode_session_lines() -> List[str]:
    """A short OpenCode session with a todo write, a write and a step_finish."""
    return [
        json.dumps({"type": "step_start", "part": {"type": "step-start"}}),
        json.dumps(
            opencode_tool_call(
                "todowrite",
                {
                    "todos": [
                        {"id": "1", "content": "Add parser", "status": "in_progress"},
                        {"id": "2", "content": "Write tests", "status": "pending"},
                    ]
                },
            )
        ),
        json.dumps(opencode_tool_call("write", {"filePath": "src/parser.ts", "content": "export {}\n"})),
        json.dumps({"type": "text", "part": {"text": "Parser "}}),
        json.dumps({"type": "text", "part": {"text": "added."}}),
        json.dumps(
            {
                "type": "step_finish",
                "part": {"tokens": {"input": 900, "output": 120}, "cost": 0.004},
            }
        ),
    ]
