from __future__ import annotations

from datetime import datetime

from mcp_log_rules_server.core.models import CompileError, Issue, Severity
from mcp_log_rules_server.core.report import assemble_report, issue_to_dict, report_to_dict


def _issue(line: int) -> Issue:
    return Issue(
        rule_id="r",
        rule_name="Rule",
        severity=Severity.ERROR,
        solution="fix",
        match_content=f"line {line}",
        line_number=line,
        context=("a", "b"),
    )


def test_assemble_report_keeps_issue_order() -> None:
    issues = [_issue(5), _issue(2)]
    report = assemble_report("a.log", ["x"] * 7, issues, 0.0123, [CompileError("b", "Bad", "boom")])

    assert report.total_lines == 7
    assert [i.line_number for i in report.issues] == [5, 2]
    assert report.duration_ms == 12
    assert datetime.fromisoformat(report.timestamp).tzinfo is not None
    assert report.compile_errors[0].rule_id == "b"


def test_report_to_dict_is_json_shaped() -> None:
    report = assemble_report("a.log", ["x"], [_issue(1)], 0.0, [CompileError("b", "Bad", "boom")])
    d = report_to_dict(report)

    assert d["file_name"] == "a.log"
    assert d["issue_count"] == 1
    assert d["issues"][0]["severity"] == "ERROR"
    assert d["issues"][0]["context"] == ["a", "b"]
    assert d["compile_errors"] == [{"rule_id": "b", "rule_name": "Bad", "error": "boom"}]


def test_issue_to_dict_without_context() -> None:
    assert "context" not in issue_to_dict(_issue(1), include_context=False)
