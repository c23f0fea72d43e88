"""Group report issues by rule and sort the groups for presentation.

Everything here is a pure view over a report's issues; nothing is mutated.
"""

from __future__ import annotations

import locale
import logging
from collections.abc import Iterable, Sequence
from enum import Enum

from .models import Issue, IssueGroup

logger = logging.getLogger(__name__)


class SortOrder(str, Enum):
    SEVERITY_DESC = "severity_desc"
    COUNT_DESC = "count_desc"
    NAME_ASC = "name_asc"

    @classmethod
    def parse(cls, value: str | SortOrder) -> SortOrder:
        if isinstance(value, SortOrder):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            valid = ", ".join(o.value for o in cls)
            raise ValueError(f"Unknown sort order '{value}'. Valid values: {valid}.") from e


def matches_filter(issue: Issue, text: str) -> bool:
    """Case-insensitive substring test over rule name and matched content."""
    needle = text.casefold()
    return needle in issue.rule_name.casefold() or needle in issue.match_content.casefold()


def group_issues(issues: Iterable[Issue], filter_text: str | None = None) -> list[IssueGroup]:
    """Bucket issues by rule id (first-seen group order, discovery order inside)."""
    buckets: dict[str, list[Issue]] = {}
    for issue in issues:
        if filter_text and not matches_filter(issue, filter_text):
            continue
        buckets.setdefault(issue.rule_id, []).append(issue)

    return [
        IssueGroup(
            rule_id=rule_id,
            rule_name=members[0].rule_name,
            severity=members[0].severity,
            issues=tuple(members),
        )
        for rule_id, members in buckets.items()
    ]


def use_system_collation() -> bool:
    """Collate ``name_asc`` with the environment's locale (LC_COLLATE).

    Entry points call this once. When the locale is unavailable the process
    keeps the C locale, where ``name_asc`` falls back to code-point order of
    the casefolded names.
    """
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning("Locale collation unavailable, using code-point order: %s", e)
        return False
    return True


def _name_key(group: IssueGroup) -> tuple[str, str]:
    # Raw name breaks ties between names that collate equal.
    return locale.strxfrm(group.rule_name.casefold()), group.rule_name


def sort_groups(groups: Sequence[IssueGroup], order: str | SortOrder) -> list[IssueGroup]:
    """Return the groups in the requested order (stable).

    ``name_asc`` collates with the process LC_COLLATE locale, see
    :func:`use_system_collation`.
    """
    order = SortOrder.parse(order)
    if order is SortOrder.SEVERITY_DESC:
        return sorted(groups, key=lambda g: (-g.severity.rank, -g.count))
    if order is SortOrder.COUNT_DESC:
        return sorted(groups, key=lambda g: -g.count)
    return sorted(groups, key=_name_key)
