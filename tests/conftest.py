from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from mcp_log_rules_server.core.models import Rule, Severity
from mcp_log_rules_server.core.rule_store import JsonRuleStore


@pytest.fixture
def make_rule() -> Callable[..., Rule]:
    def _make(
        rule_id: str,
        pattern: str,
        *,
        name: str | None = None,
        keywords: tuple[str, ...] = (),
        severity: Severity = Severity.ERROR,
        weight: int = 10,
        solution: str = "",
    ) -> Rule:
        return Rule(
            id=rule_id,
            name=name or f"rule {rule_id}",
            pattern=pattern,
            keywords=keywords,
            severity=severity,
            weight=weight,
            solution=solution,
        )

    return _make


@pytest.fixture
def build_log_lines() -> list[str]:
    return [
        "Refreshing native plugins",
        "Assets/Scripts/Player.cs(42,17): error CS0029: Cannot implicitly convert type",
        "Shader error in 'Custom/Water': undeclared identifier 'foam'",
        "NullReferenceException: Object reference not set to an instance of an object",
        "  at Player.Update () in Assets/Scripts/Player.cs:42",
        "Build Failed with 3 errors",
    ]


@pytest.fixture
def write_build_log(build_log_lines: list[str]) -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        path.write_text("\n".join(build_log_lines) + "\n", encoding="utf-8")

    return _write


@pytest.fixture
def rule_store(tmp_path: Path) -> JsonRuleStore:
    return JsonRuleStore(tmp_path / "rules.json")


@pytest.fixture
def log_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    d = tmp_path / "logs"
    d.mkdir()
    monkeypatch.setenv("LOG_RULES_BASE_DIR", str(d))
    return d
