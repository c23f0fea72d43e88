from __future__ import annotations

import json
from pathlib import Path

import pytest

from mcp_log_rules_server import cli


@pytest.fixture(autouse=True)
def _keep_process_locale(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "use_system_collation", lambda: True)


def test_json_output_applies_filter_and_sort(
    tmp_path: Path, write_build_log, capsys: pytest.CaptureFixture[str]
) -> None:
    log = tmp_path / "Editor.log"
    write_build_log(log)

    cli.main(
        [
            str(log),
            "--rules",
            str(tmp_path / "rules.json"),
            "--json",
            "--filter",
            "failed",
            "--sort",
            "name_asc",
        ]
    )

    out = json.loads(capsys.readouterr().out)
    assert [g["rule_name"] for g in out["groups"]] == ["Build failed", "C# compilation failed"]
    assert out["issue_count"] == 2
    assert "context" not in out["groups"][0]["issues"][0]


def test_text_output_and_missing_file(
    tmp_path: Path, write_build_log, capsys: pytest.CaptureFixture[str]
) -> None:
    log = tmp_path / "Editor.log"
    write_build_log(log)
    rules = str(tmp_path / "rules.json")

    cli.main([str(log), "--rules", rules, "--sort", "count_desc"])
    assert "Found 4 issues in 7 lines" in capsys.readouterr().out

    with pytest.raises(SystemExit) as exc:
        cli.main([str(tmp_path / "missing.log"), "--rules", rules])
    assert exc.value.code == 2
