"""Report assembly and JSON shaping."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from .models import CompileError, Issue, IssueGroup, Report


def assemble_report(
    file_name: str,
    lines: Sequence[str],
    issues: Iterable[Issue],
    elapsed_s: float,
    compile_errors: Iterable[CompileError] = (),
) -> Report:
    """Aggregate one scan's output. Issues are kept as given."""
    return Report(
        file_name=file_name,
        total_lines=len(lines),
        timestamp=datetime.now(UTC).isoformat(),
        duration_ms=round(elapsed_s * 1000),
        issues=tuple(issues),
        compile_errors=tuple(compile_errors),
    )


def issue_to_dict(issue: Issue, *, include_context: bool = True) -> dict[str, Any]:
    """Convert an Issue into a JSON-serializable dict."""
    d: dict[str, Any] = {
        "rule_id": issue.rule_id,
        "rule_name": issue.rule_name,
        "severity": issue.severity.value,
        "line_number": issue.line_number,
        "match_content": issue.match_content,
        "solution": issue.solution,
    }
    if include_context:
        d["context"] = list(issue.context)
    return d


def compile_error_to_dict(err: CompileError) -> dict[str, str]:
    return {"rule_id": err.rule_id, "rule_name": err.rule_name, "error": err.raw_error}


def group_to_dict(group: IssueGroup, *, include_context: bool = True) -> dict[str, Any]:
    return {
        "rule_id": group.rule_id,
        "rule_name": group.rule_name,
        "severity": group.severity.value,
        "count": group.count,
        "issues": [issue_to_dict(i, include_context=include_context) for i in group.issues],
    }


def report_to_dict(report: Report, *, include_context: bool = True) -> dict[str, Any]:
    """Convert a Report into a JSON-serializable dict (issues in discovery order)."""
    return {
        "file_name": report.file_name,
        "total_lines": report.total_lines,
        "timestamp": report.timestamp,
        "duration_ms": report.duration_ms,
        "issue_count": len(report.issues),
        "issues": [issue_to_dict(i, include_context=include_context) for i in report.issues],
        "compile_errors": [compile_error_to_dict(e) for e in report.compile_errors],
    }
