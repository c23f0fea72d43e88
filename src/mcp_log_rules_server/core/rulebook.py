"""Rule library helpers: defaults, import/export, search and selection.

None of this is used by the matching engine itself; it prepares the rule
snapshots that callers pass to :func:`core.engine.analyze_log`.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import Rule, Severity

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 10

DEFAULT_RULES: tuple[Rule, ...] = (
    Rule(
        id="1",
        name="Shader compile error",
        pattern=r"Shader error in '(.*?)': (.*)",
        keywords=("Shader", "error"),
        solution=(
            "**Shader error detected**\n\n"
            "Usually a syntax error inside an HLSL/CGPROGRAM block.\n"
            "1. Open the shader file named in the log.\n"
            "2. Check the line number reported in the full log.\n"
            "3. Verify target platform compatibility (e.g. Metal vs DX11)."
        ),
        severity=Severity.ERROR,
        weight=10,
    ),
    Rule(
        id="2",
        name="Missing script reference",
        pattern=r"The referenced script on this Behaviour \(Game Object '(.*?)'\) is missing!",
        keywords=("missing", "Behaviour", "script"),
        solution=(
            "**Missing script**\n\n"
            "A GameObject in a scene or prefab carries a 'Missing Script' component.\n"
            "1. Locate the GameObject by name.\n"
            "2. Remove the missing component or assign the correct script.\n"
            "3. Check for corrupted .meta files."
        ),
        severity=Severity.WARNING,
        weight=8,
    ),
    Rule(
        id="3",
        name="C# compilation failed",
        pattern=r"error CS\d{4}: (.*)",
        keywords=("error", "CS"),
        solution=(
            "**Compilation failed**\n\n"
            "Fix the C# errors.\n"
            "- Look for missing semicolons.\n"
            "- Verify namespace imports (using).\n"
            "- After an engine upgrade, check for API changes."
        ),
        severity=Severity.CRITICAL,
        weight=100,
    ),
    Rule(
        id="4",
        name="Asset import failed",
        pattern=r"Could not create asset from (.*?) file path: (.*)",
        keywords=("Could", "not", "create", "asset"),
        solution=(
            "**Asset import error**\n\n"
            "The source file may be corrupted or its .meta file out of sync.\n"
            "1. Right-click the asset and Reimport.\n"
            "2. If it persists, delete the `Library` folder to rebuild the cache."
        ),
        severity=Severity.ERROR,
        weight=5,
    ),
    Rule(
        id="5",
        name="Unhandled exception",
        pattern=r"(.*Exception): (.*)",
        keywords=("Exception",),
        solution=(
            "**Unhandled exception detected**\n\n"
            "Generic exception catch-all.\n"
            "1. Follow the stack trace to the throwing line.\n"
            "2. Look for null references or out-of-range indexes."
        ),
        severity=Severity.ERROR,
        weight=2,
    ),
    Rule(
        id="6",
        name="Build failed",
        pattern=r"Build (failed|Failed) (.*)",
        keywords=("Build", "failed", "Failed"),
        solution=(
            "**Build failed**\n\n"
            "The build pipeline reported a failure. Scroll up for the specific "
            "compile or asset processing error."
        ),
        severity=Severity.CRITICAL,
        weight=99,
    ),
    Rule(
        id="7",
        name="Generic failure",
        pattern=r".*(Failed|failed).*",
        keywords=("Failed", "failed"),
        solution=(
            "**Failed operation detected**\n\n"
            "The line contains 'failed' but no specific rule matched. "
            "Check the surrounding context for details."
        ),
        severity=Severity.ERROR,
        weight=1,
    ),
)


class DuplicateRuleError(ValueError):
    """A rule with the exact same pattern already exists."""


class RuleSpec(BaseModel):
    """Untrusted rule shape used for import/export (no id)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, description="Human readable rule name.")
    pattern: str = Field(
        min_length=1,
        validation_alias=AliasChoices("pattern", "regex"),
        description="Regular expression matched case-insensitively against each line.",
    )
    keywords: list[str] = Field(
        default_factory=list,
        description="Prefilter substrings (case-sensitive); empty means always try the pattern.",
    )
    solution: str = Field(default="", description="Remediation text (markdown).")
    severity: Severity = Field(default=Severity.ERROR, description="CRITICAL, ERROR or WARNING.")
    weight: int = Field(default=DEFAULT_WEIGHT, description="Priority; higher wins on the same line.")

    @field_validator("keywords", mode="before")
    @classmethod
    def _keywords_default(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("solution", mode="before")
    @classmethod
    def _solution_default(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, v: Any) -> Any:
        if v is None or v == "":
            return Severity.ERROR
        return Severity.parse(v)

    @field_validator("weight", mode="before")
    @classmethod
    def _weight_default(cls, v: Any) -> Any:
        # 0 and missing both mean "use the default".
        return v or DEFAULT_WEIGHT

    def to_rule(self, rule_id: str | None = None) -> Rule:
        return Rule(
            id=rule_id or new_rule_id(),
            name=self.name,
            pattern=self.pattern,
            keywords=tuple(self.keywords),
            severity=self.severity,
            weight=self.weight,
            solution=self.solution,
        )


@dataclass(frozen=True, slots=True)
class ImportResult:
    rules: list[Rule]
    added: int
    duplicates: int
    invalid: int


def new_rule_id() -> str:
    return str(uuid.uuid4())


def rule_to_dict(rule: Rule, *, include_id: bool = True) -> dict[str, Any]:
    """Convert a Rule into a JSON-serializable dict."""
    d: dict[str, Any] = {}
    if include_id:
        d["id"] = rule.id
    d.update(
        {
            "name": rule.name,
            "pattern": rule.pattern,
            "keywords": list(rule.keywords),
            "solution": rule.solution,
            "severity": rule.severity.value,
            "weight": rule.weight,
        }
    )
    return d


def rule_from_dict(data: dict[str, Any]) -> Rule:
    """Rebuild a stored rule, keeping its id when present."""
    spec = RuleSpec.model_validate(data)
    return spec.to_rule(str(data["id"]) if data.get("id") else None)


def export_rules(rules: Iterable[Rule]) -> list[dict[str, Any]]:
    """Export rules in the portable import format (ids are not exported)."""
    return [rule_to_dict(r, include_id=False) for r in rules]


def import_rules(existing: Sequence[Rule], payload: Any) -> ImportResult:
    """Merge imported rule objects into ``existing``.

    Items whose pattern already exists (exact string match) are skipped, items
    failing validation are counted as invalid. Accepted items get fresh ids.
    """
    if not isinstance(payload, list):
        raise ValueError("Import payload must be a JSON array of rule objects.")

    merged = list(existing)
    patterns = {r.pattern for r in merged}
    added = duplicates = invalid = 0

    for index, item in enumerate(payload):
        try:
            spec = RuleSpec.model_validate(item)
        except ValidationError as e:
            invalid += 1
            logger.debug("Skipping invalid rule at index %s: %s", index, e)
            continue

        if spec.pattern in patterns:
            duplicates += 1
            continue

        patterns.add(spec.pattern)
        merged.append(spec.to_rule())
        added += 1

    logger.info("Imported rules: added=%s duplicates=%s invalid=%s", added, duplicates, invalid)
    return ImportResult(rules=merged, added=added, duplicates=duplicates, invalid=invalid)


def new_rule(
    existing: Sequence[Rule],
    *,
    name: str,
    pattern: str,
    keywords: Sequence[str] | None = None,
    solution: str = "",
    severity: Severity | str = Severity.ERROR,
    weight: int | None = None,
) -> Rule:
    """Create a rule with a fresh id, rejecting duplicate patterns."""
    if not name or not pattern:
        raise ValueError("name and pattern are required")
    if any(r.pattern == pattern for r in existing):
        raise DuplicateRuleError(f"A rule with the same pattern already exists: {pattern!r}")

    return Rule(
        id=new_rule_id(),
        name=name,
        pattern=pattern,
        keywords=tuple(keywords or ()),
        severity=Severity.parse(severity),
        weight=weight or DEFAULT_WEIGHT,
        solution=solution,
    )


def search_rules(rules: Iterable[Rule], term: str | None = None) -> list[Rule]:
    """Filter by name/pattern/keyword (case-insensitive), ordered by weight desc."""
    out = list(rules)
    if term:
        needle = term.casefold()
        out = [
            r
            for r in out
            if needle in r.name.casefold()
            or needle in r.pattern.casefold()
            or any(needle in k.casefold() for k in r.keywords)
        ]
    return sorted(out, key=lambda r: -r.weight)


def select_rules(rules: Sequence[Rule], rule_ids: Iterable[str] | None) -> list[Rule]:
    """Return the active subset (original order kept). None selects all."""
    if rule_ids is None:
        return list(rules)
    wanted = set(rule_ids)
    known = {r.id for r in rules}
    unknown = sorted(wanted - known)
    if unknown:
        raise ValueError(f"Unknown rule id(s): {', '.join(unknown)}")
    return [r for r in rules if r.id in wanted]
