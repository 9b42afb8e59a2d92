from __future__ import annotations

import pytest

from guiscript.config import DEFAULT_SERVER_ARGS, RunnerConfig, parse_variable


def test_defaults_without_environment() -> None:
    config = RunnerConfig.from_env({})
    assert config.server_command == "npx"
    assert config.server_args == DEFAULT_SERVER_ARGS
    assert config.chrome_path is None
    assert config.browser_url is None
    assert config.step_timeout_seconds == 20.0
    assert config.script_timeout_seconds == 60.0
    assert config.page_ready_timeout_ms == 6000
    assert config.verbose is False
    assert config.variables == {}


def test_environment_overrides() -> None:
    config = RunnerConfig.from_env(
        {
            "MCP_SERVER_COMMAND": "chrome-devtools-mcp",
            "MCP_SERVER_ARGS": "--headless",
            "CHROME_PATH": '"/opt/chrome/chrome"',
            "BROWSER_URL": "http://127.0.0.1:9222/",
            "STEP_TIMEOUT_SECONDS": "5",
            "SCRIPT_TIMEOUT_SECONDS": "120",
            "PAGE_READY_TIMEOUT_MS": "2500",
            "VERBOSE": "yes",
            "GUISCRIPT_VAR_DOC_PATH": "/srv/doc",
            "GUISCRIPT_VAR_": "ignored",
        }
    )
    assert config.server_command == "chrome-devtools-mcp"
    assert config.chrome_path == "/opt/chrome/chrome"
    assert config.browser_url == "http://127.0.0.1:9222"
    assert config.step_timeout_seconds == 5.0
    assert config.script_timeout_seconds == 120.0
    assert config.page_ready_timeout_ms == 2500
    assert config.verbose is True
    assert config.variables == {"DOC_PATH": "/srv/doc"}


def test_command_line_variables_win_over_environment() -> None:
    config = RunnerConfig.from_env({"GUISCRIPT_VAR_DOC_PATH": "/env", "GUISCRIPT_VAR_THEME": "ayu"})
    merged = config.with_variables({"DOC_PATH": "/cli"})
    assert merged.variables == {"DOC_PATH": "/cli", "THEME": "ayu"}
    assert config.variables["DOC_PATH"] == "/env"


def test_parse_variable_splits_on_first_equals() -> None:
    assert parse_variable("DOC_PATH=/a=b") == ("DOC_PATH", "/a=b")
    assert parse_variable("EMPTY=") == ("EMPTY", "")


@pytest.mark.parametrize("text", ["DOC_PATH", "=value", "  =x"])
def test_parse_variable_rejects_malformed_pairs(text: str) -> None:
    with pytest.raises(ValueError):
        parse_variable(text)
