"""MCP prompt registry.

Prompts are predefined conversation/workflow templates that the client can invoke explicitly.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP


def register_prompts(mcp: FastMCP) -> None:
    """Register prompt templates on the MCP server."""

    @mcp.prompt()
    def triage_build_log(
        log_path: str,
        sort: str = "severity_desc",
        filter_text: str | None = None,
    ) -> list[dict[str, Any]]:
        """Build a prompt for rule-based build log triage."""
        call_lines = [
            f"- log_path: {log_path}",
            f"- sort: {sort}",
            "- group_by_rule: true",
            "- include_context: true",
        ]
        if filter_text:
            call_lines.append(f"- filter_text: {filter_text}")
        call_block = "\n".join(call_lines)
        return [
            {
                "role": "system",
                "content": (
                    "You are a senior build engineer. Summarize build failures from rule "
                    "matches. Do not invent details; if the evidence is insufficient, say so."
                ),
            },
            {
                "role": "user",
                "content": (
                    "Triage the build log using analyze_log. Follow this workflow:\n"
                    "- Call analyze_log first with the parameters below.\n"
                    "- Start from the highest severity groups. Quote line_number and "
                    "match_content as evidence.\n"
                    "- Use each rule's solution as the starting point for next actions.\n"
                    "- If compile_errors is not empty, mention which rules were skipped.\n"
                    "- If no groups are returned, say so and suggest drafting a rule "
                    "with generate_rule.\n\n"
                    "Call analyze_log with:\n"
                    f"{call_block}\n\n"
                    "Return this structure:\n"
                    "1) Root failure (1-2 sentences)\n"
                    "2) Issues by severity (rule name, count, first line)\n"
                    "3) Next actions (2-4 bullets)\n"
                ),
            },
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": "Optional: if you need raw context, you can read the log via:",
                    },
                    {"type": "resource", "uri": f"log://{log_path}"},
                ],
            },
        ]

    @mcp.prompt()
    def draft_rule_from_log(log_snippet: str, description: str) -> list[dict[str, Any]]:
        """Build a prompt that drafts, tests and saves a new rule."""
        return [
            {
                "role": "system",
                "content": (
                    "You maintain a library of log pattern rules. Rules must be precise: "
                    "match the unique header line of an error and nothing else."
                ),
            },
            {
                "role": "user",
                "content": (
                    "Create a rule for this error.\n"
                    "- Call generate_rule with the snippet and description (save=false).\n"
                    "- Call run_playground with the snippet and the drafted rule to confirm it "
                    "matches and reports no compile_errors.\n"
                    "- Adjust the pattern or keywords if needed, then call save_rule.\n\n"
                    f"Description: {description}\n"
                    "Snippet:\n"
                    f"{log_snippet}\n"
                ),
            },
        ]
