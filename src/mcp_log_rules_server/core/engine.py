"""Rule matching engine.

Scans a log line by line against a prioritized rule set:

- rules are ordered by weight (desc); equal weights keep their original order
- the first rule that matches a line wins, so each line yields at most one issue
- lines longer than ``max_line_length`` are never matched (but still count and
  still appear in neighbouring context windows)
- multi-line rules are tried against a window of ``multiline_window`` lines
  starting at the current line
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from .compiler import compile_rules
from .context import DEFAULT_CONTEXT_RADIUS, extract_context
from .models import CompiledRule, Issue, Report, Rule
from .prefilter import may_match
from .report import assemble_report

logger = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r?\n")


@dataclass(frozen=True, slots=True)
class EngineConfig:
    max_line_length: int = 2000
    # Lines searched by multi-line rules, current line included.
    multiline_window: int = 10
    context_radius: int = DEFAULT_CONTEXT_RADIUS
    ellipsis: str = "..."


_ENV_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("LOG_RULES_MAX_LINE_LENGTH", "max_line_length"),
    ("LOG_RULES_MULTILINE_WINDOW", "multiline_window"),
    ("LOG_RULES_CONTEXT_RADIUS", "context_radius"),
)


def resolve_engine_config(cfg: EngineConfig | None = None) -> EngineConfig:
    """Return config with optional env overrides applied."""
    if cfg is None:
        cfg = EngineConfig()

    changes: dict[str, int] = {}
    for env_name, field_name in _ENV_OVERRIDES:
        env = os.getenv(env_name)
        if env is None or env == "":
            continue
        try:
            value = int(env)
        except ValueError as exc:
            raise ValueError(f"{env_name} must be an integer") from exc
        if value < 1:
            raise ValueError(f"{env_name} must be >= 1")
        changes[field_name] = value

    return replace(cfg, **changes) if changes else cfg


def split_lines(text: str) -> list[str]:
    """Split on ``\\n``, tolerating a trailing ``\\r`` per line.

    Empty text yields a single empty line.
    """
    return _LINE_SPLIT_RE.split(text)


def prioritize(rules: Iterable[CompiledRule]) -> list[CompiledRule]:
    """Return a new list ordered by weight desc (stable for equal weights)."""
    return sorted(rules, key=lambda r: -r.weight)


def _match_content(rule: CompiledRule, line: str, match: re.Match[str], *, ellipsis: str) -> str:
    if rule.is_multiline:
        return match.group(0).split("\n", 1)[0] + ellipsis
    return line.strip()


def scan_lines(
    lines: Sequence[str],
    rules: Sequence[CompiledRule],
    *,
    cfg: EngineConfig | None = None,
) -> list[Issue]:
    """Match prioritized rules against lines. Returns issues in line order.

    ``rules`` must already be in priority order (see :func:`prioritize`).
    """
    cfg = cfg or EngineConfig()
    issues: list[Issue] = []

    for i, line in enumerate(lines):
        if len(line) > cfg.max_line_length:
            continue

        for rule in rules:
            if not may_match(line, rule.keywords):
                continue

            if rule.is_multiline:
                window = "\n".join(lines[i : i + cfg.multiline_window])
                match = rule.regex.search(window)
            else:
                match = rule.regex.search(line)

            if match is None:
                continue

            issues.append(
                Issue(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    severity=rule.severity,
                    solution=rule.rule.solution,
                    match_content=_match_content(rule, line, match, ellipsis=cfg.ellipsis),
                    line_number=i + 1,
                    context=extract_context(lines, i, cfg.context_radius),
                )
            )
            break

    return issues


def analyze_log(
    text: str,
    file_name: str,
    rules: Iterable[Rule | Mapping[str, Any]],
    *,
    cfg: EngineConfig | None = None,
) -> Report:
    """Scan a log against a rule set and return the report.

    Rules that fail to compile are reported in ``Report.compile_errors``; the
    scan continues with the rest.
    """
    cfg = cfg or EngineConfig()
    start = time.perf_counter()

    compiled, errors = compile_rules(list(rules))
    ordered = prioritize(compiled)
    lines = split_lines(text)
    issues = scan_lines(lines, ordered, cfg=cfg)

    report = assemble_report(
        file_name,
        lines,
        issues,
        time.perf_counter() - start,
        compile_errors=errors,
    )
    logger.info(
        "Analyzed %s: %d lines, %d rules (%d skipped), %d issues in %dms",
        file_name,
        report.total_lines,
        len(compiled),
        len(errors),
        len(report.issues),
        report.duration_ms,
    )
    return report


async def analyze_log_async(
    text: str,
    file_name: str,
    rules: Iterable[Rule | Mapping[str, Any]],
    *,
    cfg: EngineConfig | None = None,
) -> Report:
    """Run :func:`analyze_log` in a worker thread."""
    rules_snapshot = list(rules)
    return await asyncio.to_thread(analyze_log, text, file_name, rules_snapshot, cfg=cfg)
