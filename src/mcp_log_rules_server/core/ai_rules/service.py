"""Draft rules from a log excerpt with Gemini."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import time
from collections.abc import Sequence

from pydantic import ValidationError

from ..compiler import compile_rule
from ..models import CompileError, Rule, Severity
from ..rulebook import DEFAULT_WEIGHT, new_rule_id
from .models import AIGeneratedRule, AIRuleConfig, resolve_ai_rule_config
from .prompt import build_rule_prompt

logger = logging.getLogger(__name__)
_AI_RULE_SCHEMA = AIGeneratedRule.model_json_schema()
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class CandidateRejected(ValueError):
    """The model answered, but the answer is not a usable rule."""


def parse_candidate(text: str | None) -> AIGeneratedRule:
    """Validate a model answer as a rule candidate whose pattern compiles.

    Markdown code fences around the JSON are tolerated.
    """
    if not text or not text.strip():
        raise CandidateRejected("empty response")
    try:
        candidate = AIGeneratedRule.model_validate_json(_FENCE_RE.sub("", text.strip()))
    except ValidationError as e:
        raise CandidateRejected(f"response does not match the rule schema: {e}") from e

    trial = Rule(id="candidate", name="candidate", pattern=candidate.pattern)
    compiled = compile_rule(trial)
    if isinstance(compiled, CompileError):
        raise CandidateRejected(f"pattern {candidate.pattern!r} does not compile: {compiled.raw_error}")
    return candidate


def _gemini_client():
    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise RuntimeError("Missing GEMINI_API_KEY (or GOOGLE_API_KEY).")

    try:
        from google import genai
    except ImportError as e:  # pragma: no cover
        raise RuntimeError(
            "google-genai is required for rule generation. Install with: pip install '.[ai]'"
        ) from e
    return genai.Client(api_key=api_key)


def _call_gemini_json(prompt: str, *, cfg: AIRuleConfig) -> AIGeneratedRule:
    """Ask Gemini for a rule candidate, retrying until one compiles.

    A rejected candidate is fed back into the next prompt so the model can
    correct it. Transport errors are retried with backoff.
    """
    client = _gemini_client()
    request = prompt
    last_err: Exception | None = None

    for attempt in range(1, cfg.max_retries + 1):
        try:
            resp = client.models.generate_content(
                model=cfg.model,
                contents=request,
                config={
                    "response_mime_type": "application/json",
                    "response_json_schema": _AI_RULE_SCHEMA,
                    "temperature": cfg.temperature,
                },
            )
            return parse_candidate(resp.text)
        except CandidateRejected as e:
            last_err = e
            logger.warning("Rejected rule candidate (attempt %s/%s): %s", attempt, cfg.max_retries, e)
            request = f"{prompt}\nYour previous answer was rejected: {e}. Return a corrected rule.\n"
        except Exception as e:
            last_err = e
            if attempt >= cfg.max_retries:
                break
            logger.warning("Gemini call failed (attempt %s/%s): %s", attempt, cfg.max_retries, e)
            time.sleep(min(8, 2 ** (attempt - 1)))

    raise RuntimeError(
        f"No usable rule from Gemini after {cfg.max_retries} attempts: {last_err}"
    ) from last_err


def generate_rule(
    log_snippet: str,
    description: str,
    *,
    cfg: AIRuleConfig | None = None,
) -> AIGeneratedRule:
    """Ask the model for a candidate pattern, keywords and explanation."""
    if not log_snippet.strip() or not description.strip():
        raise ValueError("Both a log snippet and a cause description are required.")

    cfg = resolve_ai_rule_config(cfg)
    snippet = log_snippet[: cfg.max_snippet_chars]
    candidate = _call_gemini_json(build_rule_prompt(snippet, description.strip()), cfg=cfg)
    logger.info("Generated rule candidate (model=%s): %r", cfg.model, candidate.pattern)
    return candidate


async def generate_rule_async(
    log_snippet: str,
    description: str,
    *,
    cfg: AIRuleConfig | None = None,
) -> AIGeneratedRule:
    return await asyncio.to_thread(generate_rule, log_snippet, description, cfg=cfg)


def candidate_to_rule(
    candidate: AIGeneratedRule,
    *,
    name: str,
    severity: Severity | str = Severity.ERROR,
    weight: int | None = None,
    solution: str | None = None,
    keywords: Sequence[str] | None = None,
) -> Rule:
    """Turn a model candidate into an ordinary Rule."""
    if solution is None:
        solution = f"**{candidate.explanation}**\n\nGenerated by AI, please review."
    return Rule(
        id=new_rule_id(),
        name=name,
        pattern=candidate.pattern,
        keywords=tuple(keywords if keywords is not None else candidate.keywords),
        severity=Severity.parse(severity),
        weight=weight or DEFAULT_WEIGHT,
        solution=solution,
    )
