"""Keyword prefilter applied before running a rule's regex."""

from __future__ import annotations

from collections.abc import Iterable, Sequence


def normalize_keywords(keywords: Iterable[str] | None) -> tuple[str, ...]:
    """Drop empty keywords and duplicates, keeping authored order and casing."""
    if not keywords:
        return ()
    seen: set[str] = set()
    out: list[str] = []
    for k in keywords:
        if not k or k in seen:
            continue
        seen.add(k)
        out.append(k)
    return tuple(out)


def may_match(candidate: str, keywords: Sequence[str]) -> bool:
    """Return False only when the candidate cannot match.

    An empty keyword list always passes. Otherwise at least one keyword must be
    a case-sensitive substring of the candidate text.
    """
    if not keywords:
        return True
    return any(k in candidate for k in keywords)
