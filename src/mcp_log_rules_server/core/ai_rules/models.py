"""AI rule generation models and configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AIGeneratedRule(BaseModel):
    """Candidate rule returned by the model. Compiled like any other rule."""

    model_config = ConfigDict(populate_by_name=True)

    pattern: str = Field(
        validation_alias=AliasChoices("pattern", "regex"),
        description="Python-compatible regular expression matching the error.",
    )
    keywords: list[str] = Field(
        default_factory=list,
        description="Literal substrings from the error line usable for prefiltering.",
    )
    explanation: str = Field(description="Short explanation of what the pattern matches.")


@dataclass(frozen=True, slots=True)
class AIRuleConfig:
    model: str = "gemini-2.5-flash"
    temperature: float = 0.0
    max_retries: int = 3
    # Longer snippets are truncated before they are sent.
    max_snippet_chars: int = 8000


def resolve_ai_rule_config(cfg: AIRuleConfig | None) -> AIRuleConfig:
    """Return config with optional env overrides applied."""
    if cfg is None:
        cfg = AIRuleConfig()

    model = os.getenv("LOG_RULES_AI_MODEL")
    if not model or model == cfg.model:
        return cfg
    return replace(cfg, model=model)
