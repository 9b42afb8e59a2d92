from __future__ import annotations

from dataclasses import dataclass, field

from guiscript.errors import GuiScriptError, ScriptFailure


@dataclass(slots=True)
class ScriptResult:
    name: str
    commands: int = 0
    executed: int = 0
    elapsed_seconds: float = 0.0
    failures: list[GuiScriptError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def diagnostics(self) -> list[str]:
        return [
            failure.describe() if isinstance(failure, ScriptFailure) else str(failure)
            for failure in self.failures
        ]


@dataclass(slots=True)
class BatchResult:
    scripts: list[ScriptResult] = field(default_factory=list)

    @property
    def passed(self) -> list[ScriptResult]:
        return [result for result in self.scripts if result.success]

    @property
    def failed(self) -> list[ScriptResult]:
        return [result for result in self.scripts if not result.success]

    @property
    def success(self) -> bool:
        return not self.failed
