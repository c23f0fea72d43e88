"""AI rule generation package."""

from __future__ import annotations

from .models import AIGeneratedRule, AIRuleConfig, resolve_ai_rule_config
from .service import candidate_to_rule, generate_rule, generate_rule_async

__all__ = [
    "AIGeneratedRule",
    "AIRuleConfig",
    "candidate_to_rule",
    "generate_rule",
    "generate_rule_async",
    "resolve_ai_rule_config",
]
