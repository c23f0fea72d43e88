"""Prompt construction for AI rule generation."""

from __future__ import annotations


def build_rule_prompt(log_snippet: str, description: str) -> str:
    """Build the Gemini prompt that drafts a rule from a log excerpt."""
    return (
        "You are a build log expert and regular expression specialist.\n"
        "Write one generic regular expression that detects the error shown in the log "
        "snippet, using the user's description of the cause.\n\n"
        f'User description: "{description}"\n'
        "Log snippet:\n"
        "---\n"
        f"{log_snippet}\n"
        "---\n\n"
        "Requirements:\n"
        "- The pattern must compile with Python's `re` module and is matched "
        "case-insensitively.\n"
        "- Use plain groups '(...)'; named groups are not needed.\n"
        "- Matching runs line by line. Prefer matching the unique header line. Only use "
        "'\\n' when the error truly spans several lines (at most 10).\n"
        "- Avoid leading or trailing '.*' and nested quantifiers.\n"
        "- keywords: literal, case-sensitive substrings of the header line used to "
        "prefilter lines (e.g. 'CS0001', 'Shader', 'Exception').\n"
        "- explanation: one or two sentences on what the pattern catches.\n"
        "Return ONLY valid JSON that matches the provided schema.\n"
    )
