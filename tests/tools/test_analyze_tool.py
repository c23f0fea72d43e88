from __future__ import annotations

from pathlib import Path

import pytest

from mcp_log_rules_server.core.rule_store import JsonRuleStore
from mcp_log_rules_server.tools.analyze import analyze_log_impl, run_playground_impl


@pytest.mark.asyncio
async def test_analyze_log_groups_by_severity(log_dir: Path, write_build_log, rule_store: JsonRuleStore) -> None:
    write_build_log(log_dir / "Editor.log")

    out = await analyze_log_impl(log_path="Editor.log", store=rule_store)

    assert out["file_name"] == "Editor.log"
    assert out["total_lines"] == 7
    assert out["issue_count"] == 4
    assert "issues" not in out
    assert [g["rule_name"] for g in out["groups"]] == [
        "C# compilation failed",
        "Build failed",
        "Shader compile error",
        "Unhandled exception",
    ]
    first = out["groups"][0]["issues"][0]
    assert first["line_number"] == 2
    assert len(first["context"]) == 5


@pytest.mark.asyncio
async def test_analyze_log_flat_filtered_without_context(
    log_dir: Path, write_build_log, rule_store: JsonRuleStore
) -> None:
    write_build_log(log_dir / "Editor.log")

    out = await analyze_log_impl(
        log_path="Editor.log",
        filter_text="SHADER",
        group_by_rule=False,
        include_context=False,
        store=rule_store,
    )

    assert [i["rule_name"] for i in out["issues"]] == ["Shader compile error"]
    assert "context" not in out["issues"][0]
    assert out["truncated"] is False
    assert out["issue_count"] == 1


@pytest.mark.asyncio
async def test_analyze_log_limit_truncates_lists_not_counts(
    log_dir: Path, rule_store: JsonRuleStore
) -> None:
    (log_dir / "many.log").write_text("Build failed step\n" * 5, encoding="utf-8")

    out = await analyze_log_impl(log_path="many.log", limit=2, store=rule_store)

    group = out["groups"][0]
    assert group["count"] == 5
    assert len(group["issues"]) == 2
    assert group["truncated"] is True


@pytest.mark.asyncio
async def test_analyze_log_grouped_filter_counts_filtered_issues(
    log_dir: Path, write_build_log, rule_store: JsonRuleStore
) -> None:
    write_build_log(log_dir / "Editor.log")

    out = await analyze_log_impl(log_path="Editor.log", filter_text="failed", sort="name_asc", store=rule_store)

    assert [g["rule_name"] for g in out["groups"]] == ["Build failed", "C# compilation failed"]
    assert out["issue_count"] == 2
    assert all(g["truncated"] is False for g in out["groups"])


@pytest.mark.asyncio
async def test_analyze_log_rule_subset(log_dir: Path, write_build_log, rule_store: JsonRuleStore) -> None:
    write_build_log(log_dir / "Editor.log")

    out = await analyze_log_impl(log_path="Editor.log", rule_ids=["7"], store=rule_store)

    assert [(g["rule_name"], g["count"]) for g in out["groups"]] == [("Generic failure", 1)]


@pytest.mark.asyncio
async def test_analyze_log_rejects_bad_inputs(log_dir: Path, rule_store: JsonRuleStore, tmp_path: Path) -> None:
    (log_dir / "notes.md").write_text("Build failed x\n", encoding="utf-8")
    (tmp_path / "outside.log").write_text("Build failed x\n", encoding="utf-8")
    (log_dir / "ok.log").write_text("ok\n", encoding="utf-8")

    with pytest.raises(ValueError, match="escapes"):
        await analyze_log_impl(log_path="../outside.log", store=rule_store)
    with pytest.raises(ValueError, match="not allowed"):
        await analyze_log_impl(log_path="notes.md", store=rule_store)
    with pytest.raises(FileNotFoundError):
        await analyze_log_impl(log_path="missing.log", store=rule_store)
    with pytest.raises(ValueError, match="Valid values"):
        await analyze_log_impl(log_path="ok.log", sort="newest", store=rule_store)
    with pytest.raises(ValueError, match="limit"):
        await analyze_log_impl(log_path="ok.log", limit=0, store=rule_store)


@pytest.mark.asyncio
async def test_playground_with_draft_rules() -> None:
    out = await run_playground_impl(
        log_text="request timed out after 30s\nok",
        rules=[
            {"name": "Timeout", "pattern": r"timed out after (\d+)s"},
            {"name": "Broken", "pattern": "("},
        ],
    )

    assert out["file_name"] == "test_log.txt"
    assert out["total_lines"] == 2
    assert [(i["rule_id"], i["line_number"]) for i in out["issues"]] == [("draft-1", 1)]
    assert out["issues"][0]["match_content"] == "request timed out after 30s"
    assert [e["rule_id"] for e in out["compile_errors"]] == ["draft-2"]


@pytest.mark.asyncio
async def test_playground_with_stored_rules(rule_store: JsonRuleStore) -> None:
    out = await run_playground_impl(log_text="Build failed with 2 errors", rule_ids=["6"], store=rule_store)
    assert [i["rule_name"] for i in out["issues"]] == ["Build failed"]

    with pytest.raises(ValueError):
        await run_playground_impl(log_text="   ", store=rule_store)
