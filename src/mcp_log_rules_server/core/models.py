"""Core data models for rule-based log analysis."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    """Rule severity. Ordered CRITICAL > ERROR > WARNING."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        """Parse a severity name (case-insensitive)."""
        if isinstance(value, Severity):
            return value
        name = str(value).strip().upper()
        try:
            return cls[name]
        except KeyError as e:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown severity '{value}'. Valid values: {valid}.") from e


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.CRITICAL: 3,
    Severity.ERROR: 2,
    Severity.WARNING: 1,
}


@dataclass(frozen=True, slots=True)
class Rule:
    """Author-defined pattern plus remediation metadata."""

    id: str
    name: str
    pattern: str
    keywords: tuple[str, ...] = ()
    severity: Severity = Severity.ERROR
    weight: int = 10
    solution: str = ""  # markdown, opaque to the engine


@dataclass(frozen=True, slots=True)
class CompiledRule:
    """Rule plus the engine-only fields derived at compile time."""

    rule: Rule
    regex: re.Pattern[str]
    is_multiline: bool
    keywords: tuple[str, ...]

    @property
    def id(self) -> str:
        return self.rule.id

    @property
    def name(self) -> str:
        return self.rule.name

    @property
    def weight(self) -> int:
        return self.rule.weight

    @property
    def severity(self) -> Severity:
        return self.rule.severity


@dataclass(frozen=True, slots=True)
class CompileError:
    """Non-fatal diagnostic for a rule that could not be compiled."""

    rule_id: str
    rule_name: str
    raw_error: str


@dataclass(frozen=True, slots=True)
class Issue:
    """One matched occurrence; rule fields are a snapshot taken at match time."""

    rule_id: str
    rule_name: str
    severity: Severity
    solution: str
    match_content: str
    line_number: int  # 1-based anchor line
    context: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Report:
    """Output of one scan over one log."""

    file_name: str
    total_lines: int
    timestamp: str  # ISO-8601, UTC
    duration_ms: int
    issues: tuple[Issue, ...]
    compile_errors: tuple[CompileError, ...] = ()


@dataclass(frozen=True, slots=True)
class IssueGroup:
    """Issues bucketed by rule, in discovery order."""

    rule_id: str
    rule_name: str
    severity: Severity
    issues: tuple[Issue, ...]

    @property
    def count(self) -> int:
        return len(self.issues)
