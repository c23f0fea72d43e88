"""Rule compilation: validate, normalize and compile rule patterns.

Invalid rules never abort a batch. Each failure becomes a :class:`CompileError`
diagnostic and the rule is left out of the active set.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from .models import CompiledRule, CompileError, Rule, Severity
from .prefilter import normalize_keywords

logger = logging.getLogger(__name__)

# (?P<name>  and  (?<name>  but not lookbehinds (?<=  (?<!
_NAMED_GROUP_RE = re.compile(r"(?<!\\)\(\?P?<(?![=!])[A-Za-z_][A-Za-z0-9_]*>")


def normalize_pattern(pattern: str) -> str:
    """Flatten named capture groups into plain capture groups."""
    return _NAMED_GROUP_RE.sub("(", pattern)


def is_multiline_pattern(pattern: str) -> bool:
    """True when the pattern text holds a literal newline or an escaped ``\\n``."""
    return "\n" in pattern or "\\n" in pattern


def coerce_rule(obj: Rule | Mapping[str, Any]) -> Rule:
    """Build a Rule from an untrusted mapping; Rule instances pass through.

    Raises ValueError when required fields are missing or malformed.
    """
    if isinstance(obj, Rule):
        return obj
    if not isinstance(obj, Mapping):
        raise ValueError(f"rule must be a mapping, got {type(obj).__name__}")

    missing = [k for k in ("id", "name") if not obj.get(k)]
    pattern = obj.get("pattern", obj.get("regex"))
    if not pattern:
        missing.append("pattern")
    if missing:
        raise ValueError(f"missing required field(s): {', '.join(missing)}")
    if not isinstance(pattern, str):
        raise ValueError("pattern must be a string")

    keywords = obj.get("keywords") or ()
    if not isinstance(keywords, (list, tuple)) or not all(isinstance(k, str) for k in keywords):
        raise ValueError("keywords must be a list of strings")

    weight = obj.get("weight") or 0
    if isinstance(weight, bool) or not isinstance(weight, int):
        raise ValueError("weight must be an integer")

    return Rule(
        id=str(obj["id"]),
        name=str(obj["name"]),
        pattern=pattern,
        keywords=tuple(keywords),
        severity=Severity.parse(obj.get("severity") or Severity.ERROR),
        weight=weight,
        solution=str(obj.get("solution") or ""),
    )


def compile_rule(rule: Rule) -> CompiledRule | CompileError:
    """Compile one rule (always case-insensitive).

    Oversized repeat counts and deeply nested groups fail inside ``re`` with
    OverflowError/RecursionError; those are diagnostics like any ``re.error``.
    """
    if not rule.name or not rule.pattern:
        return CompileError(
            rule_id=rule.id,
            rule_name=rule.name,
            raw_error="rule requires a name and a pattern",
        )

    source = normalize_pattern(rule.pattern)
    try:
        regex = re.compile(source, re.IGNORECASE)
    except (re.error, OverflowError, RecursionError) as e:
        return CompileError(rule_id=rule.id, rule_name=rule.name, raw_error=str(e))

    return CompiledRule(
        rule=rule,
        regex=regex,
        is_multiline=is_multiline_pattern(source),
        keywords=normalize_keywords(rule.keywords),
    )


def compile_rules(
    rules: Iterable[Rule | Mapping[str, Any]],
) -> tuple[list[CompiledRule], list[CompileError]]:
    """Compile a rule set, collecting diagnostics instead of raising."""
    compiled: list[CompiledRule] = []
    errors: list[CompileError] = []

    for obj in rules:
        try:
            rule = coerce_rule(obj)
        except ValueError as e:
            raw = obj if isinstance(obj, Mapping) else {}
            err = CompileError(
                rule_id=str(raw.get("id") or ""),
                rule_name=str(raw.get("name") or ""),
                raw_error=str(e),
            )
        else:
            result = compile_rule(rule)
            if isinstance(result, CompiledRule):
                compiled.append(result)
                continue
            err = result

        logger.warning(
            "Skipping rule %r (%s): %s", err.rule_name, err.rule_id or "-", err.raw_error
        )
        errors.append(err)

    return compiled, errors
