"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

import json
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_log_rules_server.core.log_source import read_log_text
from mcp_log_rules_server.core.rule_store import default_store
from mcp_log_rules_server.core.rulebook import DEFAULT_RULES, RuleSpec, export_rules, rule_to_dict
from mcp_log_rules_server.tools.paths import ALLOWED_LOG_SUFFIXES, BASE_DIR_ENV, base_dir, resolve_log_path

IMPORT_TEMPLATE = [
    {
        "name": "Example Error Rule",
        "pattern": "Error: (.*)",
        "keywords": ["Error"],
        "solution": "Fix the error.",
        "severity": "ERROR",
        "weight": 10,
    }
]

SAMPLE_BUILD_LOG = (
    "Refreshing native plugins compatible for Editor in 12.34 ms\n"
    "Assets/Scripts/Player.cs(42,17): error CS0029: Cannot implicitly convert type 'int' to 'string'\n"
    "Shader error in 'Custom/Water': undeclared identifier 'foam' at line 88 (on d3d11)\n"
    "NullReferenceException: Object reference not set to an instance of an object\n"
    "  at Player.Update () [0x00012] in Assets/Scripts/Player.cs:42\n"
    "Build Failed with 3 errors\n"
)


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://log-rules/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        allowed = ", ".join(sorted(ALLOWED_LOG_SUFFIXES))
        return (
            "Resources:\n"
            "- app://log-rules/help\n"
            "- app://log-rules/rules/current\n"
            "- app://log-rules/rules/defaults\n"
            "- app://log-rules/schemas/rule\n"
            "- app://log-rules/examples/import-template\n"
            "- app://log-rules/examples/sample-log\n"
            f"- log://{{path}} (restricted to {BASE_DIR_ENV}; allowed: {allowed}, .gz)\n"
            f"\nBase directory: {base_dir()}\n"
        )

    @mcp.resource("app://log-rules/rules/current")
    def current_rules() -> list[dict[str, Any]]:
        """Return the rule library as stored."""
        return [rule_to_dict(r) for r in default_store().load()]

    @mcp.resource("app://log-rules/rules/defaults")
    def default_rules() -> list[dict[str, Any]]:
        """Return the built-in default rules."""
        return export_rules(DEFAULT_RULES)

    @mcp.resource("app://log-rules/schemas/rule")
    def rule_schema() -> dict[str, Any]:
        """Return the JSON schema accepted by import_rules (per array item)."""
        return RuleSpec.model_json_schema()

    @mcp.resource("app://log-rules/examples/import-template")
    def import_template() -> str:
        """Return an import file template."""
        return json.dumps(IMPORT_TEMPLATE, indent=2)

    @mcp.resource("app://log-rules/examples/sample-log")
    def sample_log() -> str:
        """Return a tiny build log for demos and tests."""
        return SAMPLE_BUILD_LOG

    @mcp.resource("log://{path}")
    async def read_log(path: str) -> str:
        """Return the full log contents."""
        return await read_log_text(resolve_log_path(path))
