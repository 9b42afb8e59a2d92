from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field


VARIABLE_ENV_PREFIX = "GUISCRIPT_VAR_"
DEFAULT_SERVER_ARGS = "-y chrome-devtools-mcp@latest --headless"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class RunnerConfig:
    server_command: str = "npx"
    server_args: str = DEFAULT_SERVER_ARGS
    chrome_path: str | None = None
    browser_url: str | None = None
    step_timeout_seconds: float = 20.0
    script_timeout_seconds: float = 60.0
    page_ready_timeout_ms: int = 6000
    verbose: bool = False
    variables: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RunnerConfig":
        env = os.environ if environ is None else environ
        return cls(
            server_command=env.get("MCP_SERVER_COMMAND", "npx"),
            server_args=env.get("MCP_SERVER_ARGS", DEFAULT_SERVER_ARGS),
            chrome_path=env.get("CHROME_PATH", "").strip().strip('"') or None,
            browser_url=env.get("BROWSER_URL", "").strip().rstrip("/") or None,
            step_timeout_seconds=float(env.get("STEP_TIMEOUT_SECONDS", "20")),
            script_timeout_seconds=float(env.get("SCRIPT_TIMEOUT_SECONDS", "60")),
            page_ready_timeout_ms=int(env.get("PAGE_READY_TIMEOUT_MS", "6000")),
            verbose=env.get("VERBOSE", "0").lower() in _TRUTHY,
            variables={
                key[len(VARIABLE_ENV_PREFIX):]: value
                for key, value in env.items()
                if key.startswith(VARIABLE_ENV_PREFIX) and len(key) > len(VARIABLE_ENV_PREFIX)
            },
        )

    def with_variables(self, overrides: Mapping[str, str]) -> "RunnerConfig":
        merged = {**self.variables, **overrides}
        return RunnerConfig(
            server_command=self.server_command,
            server_args=self.server_args,
            chrome_path=self.chrome_path,
            browser_url=self.browser_url,
            step_timeout_seconds=self.step_timeout_seconds,
            script_timeout_seconds=self.script_timeout_seconds,
            page_ready_timeout_ms=self.page_ready_timeout_ms,
            verbose=self.verbose,
            variables=merged,
        )


def parse_variable(text: str) -> tuple[str, str]:
    name, sep, value = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise ValueError(f"Expected NAME=VALUE, got {text!r}")
    return name, value
