"""Analysis tool implementations.

Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from mcp_log_rules_server.core.engine import analyze_log_async, resolve_engine_config
from mcp_log_rules_server.core.grouping import SortOrder, group_issues, matches_filter, sort_groups
from mcp_log_rules_server.core.log_source import read_log_text
from mcp_log_rules_server.core.models import Report, Rule
from mcp_log_rules_server.core.report import group_to_dict, issue_to_dict, report_to_dict
from mcp_log_rules_server.core.rule_store import RuleStore, default_store
from mcp_log_rules_server.core.rulebook import select_rules
from mcp_log_rules_server.tools.paths import resolve_log_path

DEFAULT_LIMIT = 200
HARD_LIMIT = 5000
PLAYGROUND_FILE_NAME = "test_log.txt"


def _resolve_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    if limit <= 0:
        raise ValueError("limit must be > 0")
    return min(limit, HARD_LIMIT)


def shape_report(
    report: Report,
    *,
    filter_text: str | None = None,
    sort: str = SortOrder.SEVERITY_DESC.value,
    group_by_rule: bool = True,
    include_context: bool = True,
    limit: int = DEFAULT_LIMIT,
) -> dict[str, Any]:
    """Build the tool response: report metadata plus grouped or flat issues.

    ``issue_count`` counts the issues left after ``filter_text``. ``limit``
    caps each group's issue list (or the flat list) and ``truncated`` marks
    every list that was cut.
    """
    order = SortOrder.parse(sort)
    out = report_to_dict(report, include_context=include_context)
    del out["issues"]

    if group_by_rule:
        groups = sort_groups(group_issues(report.issues, filter_text), order)
        shaped = []
        for g in groups:
            d = group_to_dict(g, include_context=include_context)
            d["issues"] = d["issues"][:limit]
            d["truncated"] = g.count > limit
            shaped.append(d)
        out["issue_count"] = sum(g.count for g in groups)
        out["groups"] = shaped
        return out

    issues = [
        issue_to_dict(i, include_context=include_context)
        for i in report.issues
        if not filter_text or matches_filter(i, filter_text)
    ]
    out["issue_count"] = len(issues)
    out["issues"] = issues[:limit]
    out["truncated"] = len(issues) > limit
    return out


def _draft_rules(rules: Sequence[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    """Give inline draft rules placeholder ids so they can be compiled."""
    out: list[Mapping[str, Any]] = []
    for index, raw in enumerate(rules, start=1):
        if isinstance(raw, Mapping) and not raw.get("id"):
            raw = {**raw, "id": f"draft-{index}"}
        out.append(raw)
    return out


async def analyze_log_impl(
    *,
    log_path: str,
    rule_ids: Sequence[str] | None = None,
    filter_text: str | None = None,
    sort: str = SortOrder.SEVERITY_DESC.value,
    group_by_rule: bool = True,
    include_context: bool = True,
    limit: int | None = None,
    store: RuleStore | None = None,
) -> dict[str, Any]:
    """Implementation for the `analyze_log` MCP tool."""
    limit = _resolve_limit(limit)
    SortOrder.parse(sort)
    path = resolve_log_path(log_path)
    store = store or default_store()

    rules = select_rules(store.load(), rule_ids)
    text = await read_log_text(path)
    report = await analyze_log_async(text, path.name, rules, cfg=resolve_engine_config())

    return shape_report(
        report,
        filter_text=filter_text,
        sort=sort,
        group_by_rule=group_by_rule,
        include_context=include_context,
        limit=limit,
    )


async def run_playground_impl(
    *,
    log_text: str,
    rule_ids: Sequence[str] | None = None,
    rules: Sequence[Mapping[str, Any]] | None = None,
    store: RuleStore | None = None,
) -> dict[str, Any]:
    """Implementation for the `run_playground` tool.

    Inline ``rules`` (draft rule objects) take precedence over stored rules.
    """
    if not log_text.strip():
        raise ValueError("log_text must not be empty")

    active: Sequence[Rule | Mapping[str, Any]]
    if rules is not None:
        active = _draft_rules(rules)
    else:
        active = select_rules((store or default_store()).load(), rule_ids)

    report = await analyze_log_async(
        log_text, PLAYGROUND_FILE_NAME, active, cfg=resolve_engine_config()
    )
    return report_to_dict(report)
