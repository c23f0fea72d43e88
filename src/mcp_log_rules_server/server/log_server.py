"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: analyze a log against the rule library, manage rules, draft rules with AI
- Resources: rule library views, import schema and a sample build log
- Prompts: reusable triage and rule-drafting workflows

Run locally (stdio):
    python -m mcp_log_rules_server.server.log_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_log_rules_server.core.grouping import use_system_collation
from mcp_log_rules_server.prompts.registry import register_prompts
from mcp_log_rules_server.resources.registry import register_resources
from mcp_log_rules_server.tools.analyze import analyze_log_impl, run_playground_impl
from mcp_log_rules_server.tools.rules import (
    PAGE_SIZE,
    clear_rules_impl,
    delete_rule_impl,
    export_rules_impl,
    generate_rule_impl,
    import_rules_impl,
    list_rules_impl,
    reset_rules_impl,
    save_rule_impl,
)

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    The MCP client typically captures stderr; stdout carries the stdio transport.
    """
    level_name = os.getenv("LOG_RULES_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


mcp = FastMCP("log-rules", json_response=True)

register_resources(mcp)
register_prompts(mcp)


@mcp.tool()
async def analyze_log(
    log_path: str,
    rule_ids: Sequence[str] | None = None,
    filter_text: str | None = None,
    sort: str = "severity_desc",
    group_by_rule: bool = True,
    include_context: bool = True,
    limit: int | None = None,
) -> dict[str, Any]:
    """Scan a log file with the rule library and return the detected issues.

    Parameters
    ----------
    log_path:
        Path to a local .log/.txt file (optionally .gz), relative to LOG_RULES_BASE_DIR.
    rule_ids:
        Restrict the scan to these rule ids. Default: every rule in the library.
    filter_text:
        Case-insensitive substring filter over rule name and matched line.
    sort:
        Group order: severity_desc, count_desc or name_asc.
    group_by_rule:
        When true, return issues grouped per rule; otherwise a flat list in line order.
    include_context:
        Include the surrounding lines of every match.
    limit:
        Maximum issues listed (per group when grouped). Counts are never truncated.

    Returns
    -------
    dict:
        Report metadata, compile_errors, and groups (or issues).
    """
    return await analyze_log_impl(
        log_path=log_path,
        rule_ids=rule_ids,
        filter_text=filter_text,
        sort=sort,
        group_by_rule=group_by_rule,
        include_context=include_context,
        limit=limit,
    )


@mcp.tool()
async def run_playground(
    log_text: str,
    rule_ids: Sequence[str] | None = None,
    rules: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Try rules against an inline log excerpt.

    Pass draft ``rules`` (objects with name, pattern, keywords, severity, weight)
    to test them before saving, or ``rule_ids`` to pick stored rules.
    """
    return await run_playground_impl(log_text=log_text, rule_ids=rule_ids, rules=rules)


@mcp.tool()
def list_rules(search: str | None = None, page: int = 1, page_size: int = PAGE_SIZE) -> dict[str, Any]:
    """List library rules ordered by weight, optionally filtered by a search term."""
    return list_rules_impl(search=search, page=page, page_size=page_size)


@mcp.tool()
def save_rule(
    name: str,
    pattern: str,
    keywords: list[str] | None = None,
    solution: str = "",
    severity: str = "ERROR",
    weight: int | None = None,
    rule_id: str | None = None,
) -> dict[str, Any]:
    """Create a rule (or update the rule with ``rule_id``)."""
    return save_rule_impl(
        name=name,
        pattern=pattern,
        keywords=keywords,
        solution=solution,
        severity=severity,
        weight=weight,
        rule_id=rule_id,
    )


@mcp.tool()
def delete_rule(rule_id: str) -> dict[str, Any]:
    """Delete a rule by id."""
    return delete_rule_impl(rule_id=rule_id)


@mcp.tool()
def import_rules(rules_json: str) -> dict[str, Any]:
    """Import a JSON array of rules; exact-duplicate patterns are skipped."""
    return import_rules_impl(rules_json=rules_json)


@mcp.tool()
def export_rules() -> dict[str, Any]:
    """Export the library in the portable import format."""
    return export_rules_impl()


@mcp.tool()
def reset_rules() -> dict[str, Any]:
    """Replace the library with the default rules."""
    return reset_rules_impl()


@mcp.tool()
def clear_rules() -> dict[str, Any]:
    """Remove every rule from the library."""
    return clear_rules_impl()


@mcp.tool()
async def generate_rule(
    log_snippet: str,
    description: str,
    name: str | None = None,
    severity: str = "ERROR",
    weight: int | None = None,
    save: bool = False,
) -> dict[str, Any]:
    """Draft a rule from a log excerpt and a description of the cause (Gemini)."""
    return await generate_rule_impl(
        log_snippet=log_snippet,
        description=description,
        name=name,
        severity=severity,
        weight=weight,
        save=save,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    use_system_collation()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
