"""JSON-file persistence for the rule library.

The store is a load/save collaborator for the server and CLI; the engine only
ever receives the rule snapshot a caller loaded from it.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from .models import Rule
from .rulebook import DEFAULT_RULES, new_rule_id, rule_from_dict, rule_to_dict

logger = logging.getLogger(__name__)

STORE_PATH_ENV = "LOG_RULES_STORE_PATH"
DEFAULT_STORE_PATH = Path("~/.mcp-log-rules/rules.json")


class RuleStore(Protocol):
    """Rule persistence interface."""

    def load(self) -> list[Rule]:
        """Return the saved rule collection."""
        ...

    def save(self, rules: Iterable[Rule]) -> None:
        """Replace the saved rule collection."""
        ...


class RuleStoreError(ValueError):
    """The store file exists but is not a readable JSON array."""


def _split_items(data: list[Any]) -> tuple[list[Rule], list[tuple[int, Any, Exception]]]:
    """Validate stored items one by one: (rules, [(index, raw item, error)])."""
    rules: list[Rule] = []
    invalid: list[tuple[int, Any, Exception]] = []
    for index, item in enumerate(data):
        try:
            rules.append(rule_from_dict(item))
        except (ValidationError, ValueError) as e:
            invalid.append((index, item, e))
    return rules, invalid


class JsonRuleStore:
    """Rules stored as a JSON array in a single file.

    A missing file is seeded with the default rules on first load. An existing
    empty array means the library was cleared on purpose and stays empty.

    Items that fail validation (hand edits, older formats) are skipped on load
    and written back unchanged on save. A file that is not a JSON array is
    never overwritten by ``save``; only ``clear`` and ``reset`` replace it.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read_raw(self) -> list[Any] | None:
        """Return the stored array, or None when the file does not exist."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise RuleStoreError(f"Cannot read rule store {self.path}: {e}") from e
        if not isinstance(data, list):
            raise RuleStoreError(f"Rule store {self.path} must hold a JSON array")
        return data

    def load(self) -> list[Rule]:
        try:
            data = self._read_raw()
        except RuleStoreError as e:
            # Leave the file untouched so it can be repaired by hand.
            logger.error("Failed to read rule store %s, using defaults: %s", self.path, e)
            return list(DEFAULT_RULES)

        if data is None:
            logger.info("Seeding rule store with defaults: %s", self.path)
            self.save(DEFAULT_RULES)
            return list(DEFAULT_RULES)

        # Ids must stay stable across loads, so missing ones are persisted once.
        missing = [item for item in data if isinstance(item, dict) and not item.get("id")]
        for item in missing:
            item["id"] = new_rule_id()
        if missing:
            logger.info("Assigned ids to %d stored rule(s) in %s", len(missing), self.path)
            self._write(data)

        rules, invalid = _split_items(data)
        for index, _, err in invalid:
            logger.warning("Skipping invalid stored rule at index %s in %s: %s", index, self.path, err)
        return rules

    def save(self, rules: Iterable[Rule]) -> None:
        """Replace the valid rules; invalid stored items are kept as they are.

        Raises RuleStoreError when the existing file cannot be parsed.
        """
        data = self._read_raw()
        kept = [item for _, item, _ in _split_items(data)[1]] if data else []
        self._write([rule_to_dict(r) for r in rules] + kept)

    def _write(self, payload: list[Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".rules-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def upsert(self, rule: Rule) -> list[Rule]:
        """Replace the rule with the same id, or append it."""
        rules = self.load()
        for index, existing in enumerate(rules):
            if existing.id == rule.id:
                rules[index] = rule
                break
        else:
            rules.append(rule)
        self.save(rules)
        return rules

    def delete(self, rule_id: str) -> bool:
        """Delete a rule by id. Returns False when it did not exist."""
        rules = self.load()
        kept = [r for r in rules if r.id != rule_id]
        if len(kept) == len(rules):
            return False
        self.save(kept)
        return True

    def clear(self) -> None:
        """Empty the library, discarding unreadable content too."""
        self._write([])

    def reset(self) -> list[Rule]:
        """Replace the whole file with the default rules."""
        self._write([rule_to_dict(r) for r in DEFAULT_RULES])
        return list(DEFAULT_RULES)


def resolve_store_path() -> Path:
    raw = os.getenv(STORE_PATH_ENV)
    return Path(raw).expanduser() if raw else DEFAULT_STORE_PATH.expanduser()


def default_store() -> JsonRuleStore:
    """Return the store configured by LOG_RULES_STORE_PATH."""
    return JsonRuleStore(resolve_store_path())
