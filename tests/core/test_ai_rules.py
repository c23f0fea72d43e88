from __future__ import annotations

from types import SimpleNamespace

import pytest

from mcp_log_rules_server.core.ai_rules import (
    AIGeneratedRule,
    AIRuleConfig,
    candidate_to_rule,
    generate_rule,
    generate_rule_async,
    resolve_ai_rule_config,
)
from mcp_log_rules_server.core.ai_rules import service as ai_service
from mcp_log_rules_server.core.ai_rules.prompt import build_rule_prompt
from mcp_log_rules_server.core.compiler import compile_rule
from mcp_log_rules_server.core.models import CompiledRule, Severity


def _candidate() -> AIGeneratedRule:
    return AIGeneratedRule(
        pattern=r"Could not find a part of the path '(.*?)'",
        keywords=["Could not find"],
        explanation="Missing directory during asset copy.",
    )


def test_build_rule_prompt_includes_inputs() -> None:
    prompt = build_rule_prompt("IOException: Could not find a part of the path", "disk layout changed")
    assert "disk layout changed" in prompt
    assert "IOException: Could not find" in prompt
    assert "JSON" in prompt


def test_generate_rule_sends_truncated_snippet(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_call(prompt: str, *, cfg) -> AIGeneratedRule:
        captured["prompt"] = prompt
        captured["cfg"] = cfg
        return _candidate()

    monkeypatch.setattr(ai_service, "_call_gemini_json", fake_call)

    result = generate_rule("A" * 50 + "TAIL", "cause", cfg=AIRuleConfig(max_snippet_chars=50))

    assert result.pattern.startswith("Could not find")
    assert "TAIL" not in captured["prompt"]
    assert captured["cfg"].max_snippet_chars == 50


@pytest.mark.parametrize(("snippet", "description"), [("", "cause"), ("log", "  ")])
def test_generate_rule_requires_inputs(snippet: str, description: str) -> None:
    with pytest.raises(ValueError):
        generate_rule(snippet, description)


def test_call_gemini_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
        ai_service._call_gemini_json("prompt", cfg=AIRuleConfig())


def test_ai_generated_rule_accepts_regex_key() -> None:
    parsed = AIGeneratedRule.model_validate_json(
        '{"regex": "error CS\\\\d{4}", "keywords": ["CS"], "explanation": "x"}'
    )
    assert parsed.pattern == r"error CS\d{4}"


def test_candidate_to_rule_is_an_ordinary_rule() -> None:
    rule = candidate_to_rule(_candidate(), name="Path not found", severity="critical")

    assert rule.severity is Severity.CRITICAL
    assert rule.weight == 10
    assert rule.keywords == ("Could not find",)
    assert "Missing directory" in rule.solution
    assert isinstance(compile_rule(rule), CompiledRule)


def test_resolve_ai_rule_config_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_RULES_AI_MODEL", "gemini-2.5-pro")
    assert resolve_ai_rule_config(None).model == "gemini-2.5-pro"


@pytest.mark.asyncio
async def test_generate_rule_async(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ai_service, "_call_gemini_json", lambda prompt, *, cfg: _candidate())
    result = await generate_rule_async("IOException: Could not find", "missing dir")
    assert result.keywords == ["Could not find"]


class _FakeModels:
    def __init__(self, answers: list[str]) -> None:
        self.answers = list(answers)
        self.requests: list[str] = []

    def generate_content(self, *, model: str, contents: str, config: dict) -> SimpleNamespace:
        self.requests.append(contents)
        return SimpleNamespace(text=self.answers.pop(0))


def test_parse_candidate_accepts_fenced_json() -> None:
    text = '```json\n{"pattern": "error CS\\\\d{4}", "keywords": [], "explanation": "x"}\n```'
    assert ai_service.parse_candidate(text).pattern == r"error CS\d{4}"


@pytest.mark.parametrize(
    "text",
    ["", "not json", '{"pattern": "([a-z", "keywords": [], "explanation": "x"}'],
    ids=["empty", "not-json", "bad-pattern"],
)
def test_parse_candidate_rejects_unusable_answers(text: str) -> None:
    with pytest.raises(ai_service.CandidateRejected):
        ai_service.parse_candidate(text)


def test_rejected_candidate_is_fed_back_to_the_model(monkeypatch: pytest.MonkeyPatch) -> None:
    models = _FakeModels(
        [
            '{"pattern": "([a-z", "keywords": [], "explanation": "bad"}',
            '{"pattern": "disk (full|quota)", "keywords": ["disk"], "explanation": "ok"}',
        ]
    )
    monkeypatch.setattr(ai_service, "_gemini_client", lambda: SimpleNamespace(models=models))

    result = ai_service._call_gemini_json("PROMPT", cfg=AIRuleConfig(max_retries=3))

    assert result.pattern == "disk (full|quota)"
    assert models.requests[0] == "PROMPT"
    assert "rejected" in models.requests[1]
    assert "([a-z" in models.requests[1]


def test_gives_up_after_max_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    models = _FakeModels(["", ""])
    monkeypatch.setattr(ai_service, "_gemini_client", lambda: SimpleNamespace(models=models))

    with pytest.raises(RuntimeError, match="after 2 attempts"):
        ai_service._call_gemini_json("PROMPT", cfg=AIRuleConfig(max_retries=2))
    assert len(models.requests) == 2
