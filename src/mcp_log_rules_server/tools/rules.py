"""Rule library tool implementations."""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from typing import Any

from mcp_log_rules_server.core.ai_rules import candidate_to_rule, generate_rule_async
from mcp_log_rules_server.core.compiler import compile_rule
from mcp_log_rules_server.core.models import CompileError, Rule, Severity
from mcp_log_rules_server.core.report import compile_error_to_dict
from mcp_log_rules_server.core.rule_store import RuleStore, default_store
from mcp_log_rules_server.core.rulebook import (
    DEFAULT_WEIGHT,
    export_rules,
    import_rules,
    new_rule,
    rule_to_dict,
    search_rules,
)

PAGE_SIZE = 8


def _with_diagnostic(rule: Rule) -> dict[str, Any]:
    """Rule dict plus a compile error, if the pattern does not compile."""
    d = rule_to_dict(rule)
    result = compile_rule(rule)
    if isinstance(result, CompileError):
        d["compile_error"] = compile_error_to_dict(result)
    return d


def list_rules_impl(
    *,
    search: str | None = None,
    page: int = 1,
    page_size: int = PAGE_SIZE,
    store: RuleStore | None = None,
) -> dict[str, Any]:
    """Search the library (weight desc) and return one page."""
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    matched = search_rules((store or default_store()).load(), search)
    start = (page - 1) * page_size
    return {
        "total": len(matched),
        "page": page,
        "pages": math.ceil(len(matched) / page_size),
        "rules": [rule_to_dict(r) for r in matched[start : start + page_size]],
    }


def save_rule_impl(
    *,
    name: str,
    pattern: str,
    keywords: Sequence[str] | None = None,
    solution: str = "",
    severity: str = Severity.ERROR.value,
    weight: int | None = None,
    rule_id: str | None = None,
    store: RuleStore | None = None,
) -> dict[str, Any]:
    """Create a rule, or replace the rule with ``rule_id``.

    Duplicate patterns are rejected for new rules only. A pattern that does not
    compile is still saved and reported under ``compile_error``.
    """
    store = store or default_store()
    existing = store.load()

    if rule_id is None:
        rule = new_rule(
            existing,
            name=name,
            pattern=pattern,
            keywords=keywords,
            solution=solution,
            severity=severity,
            weight=weight,
        )
    else:
        if not any(r.id == rule_id for r in existing):
            raise ValueError(f"Unknown rule id: {rule_id}")
        if not name or not pattern:
            raise ValueError("name and pattern are required")
        rule = Rule(
            id=rule_id,
            name=name,
            pattern=pattern,
            keywords=tuple(keywords or ()),
            severity=Severity.parse(severity),
            weight=weight or DEFAULT_WEIGHT,
            solution=solution,
        )

    store.upsert(rule)
    return _with_diagnostic(rule)


def delete_rule_impl(*, rule_id: str, store: RuleStore | None = None) -> dict[str, Any]:
    deleted = (store or default_store()).delete(rule_id)
    return {"rule_id": rule_id, "deleted": deleted}


def import_rules_impl(*, rules_json: str, store: RuleStore | None = None) -> dict[str, Any]:
    """Merge a JSON array of rule objects into the library."""
    try:
        payload = json.loads(rules_json)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e

    store = store or default_store()
    result = import_rules(store.load(), payload)
    store.save(result.rules)
    return {
        "added": result.added,
        "duplicates": result.duplicates,
        "invalid": result.invalid,
        "total": len(result.rules),
    }


def export_rules_impl(*, store: RuleStore | None = None) -> dict[str, Any]:
    rules = (store or default_store()).load()
    return {"count": len(rules), "rules": export_rules(rules)}


def reset_rules_impl(*, store: RuleStore | None = None) -> dict[str, Any]:
    rules = (store or default_store()).reset()
    return {"count": len(rules)}


def clear_rules_impl(*, store: RuleStore | None = None) -> dict[str, Any]:
    (store or default_store()).clear()
    return {"count": 0}


async def generate_rule_impl(
    *,
    log_snippet: str,
    description: str,
    name: str | None = None,
    severity: str = Severity.ERROR.value,
    weight: int | None = None,
    save: bool = False,
    store: RuleStore | None = None,
) -> dict[str, Any]:
    """Draft a rule with Gemini; optionally save it to the library."""
    candidate = await generate_rule_async(log_snippet, description)
    rule = candidate_to_rule(
        candidate,
        name=name or description.strip()[:80],
        severity=severity,
        weight=weight,
    )

    out: dict[str, Any] = {
        "explanation": candidate.explanation,
        "rule": _with_diagnostic(rule),
        "saved": False,
    }
    if save:
        store = store or default_store()
        existing = store.load()
        if any(r.pattern == rule.pattern for r in existing):
            out["duplicate"] = True
        else:
            store.upsert(rule)
            out["saved"] = True
    return out
