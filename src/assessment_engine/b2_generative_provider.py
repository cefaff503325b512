"""
b2_generative_provider.py — Generative Provider Adapter (Block 2)
==================================================================
Produces fresh multiple-choice questions for one (category, difficulty) cell
through Azure OpenAI JSON mode.

Contract
--------
  generate(category, difficulty, count, excluded) -> list[Question]

  - ``excluded`` is the set of normalized question texts already in the
    assembly; anything matching it is dropped from the model's output.
  - Each returned question has a deterministic id derived from its text,
    so persisting the same question twice converges on one row.
  - Timeouts, rate limits, transport errors and malformed output all raise
    ProviderError; the composer falls back to the curated bank.

Calls pass through a RateLimiter so consecutive generations respect the
configured inter-call interval.
"""

from __future__ import annotations

import json
import logging
import textwrap
from typing import Any, Collection, Optional

from openai import AzureOpenAI, OpenAIError

from assessment_engine.config import AzureOpenAIConfig
from assessment_engine.errors import ProviderError, QuestionValidationError
from assessment_engine.models import (
    Difficulty,
    Question,
    QuestionSource,
    normalize_text,
    validate_question,
)
from assessment_engine.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


# ─── Deterministic ids ───────────────────────────────────────────────────────

_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME  = 0x100000001B3
_FNV64_MASK   = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(text: str) -> int:
    """64-bit FNV-1a over the UTF-8 bytes of *text*."""
    h = _FNV64_OFFSET
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * _FNV64_PRIME) & _FNV64_MASK
    return h


def derive_question_id(category: str, difficulty: Difficulty | str, question_text: str) -> str:
    """Stable id for a generated question: same cell + same normalized text → same id."""
    key = f"{category.lower()}|{Difficulty(difficulty).value}|{normalize_text(question_text)}"
    return f"ai_{fnv1a_64(key):016x}"


# ─── Adapter interface ───────────────────────────────────────────────────────

class QuestionGenerator:
    """Base generative collaborator; subclasses talk to a real model."""

    def generate(self, category: str, difficulty: Difficulty, count: int,
                 excluded: Collection[str] = ()) -> list[Question]:
        raise NotImplementedError


# ─── Azure OpenAI implementation ─────────────────────────────────────────────

_SYSTEM_PROMPT = textwrap.dedent("""
    You write multiple-choice assessment questions for university students.
    Respond with a single JSON object of the form:
      {"questions": [
         {"question_text": "...",
          "options": ["...", "...", "...", "..."],
          "correct_answer": "<one of the options, verbatim>",
          "explanation": "...",
          "enrichment": "<optional fun fact or context>"}
      ]}
    Rules:
      - exactly four distinct options per question
      - correct_answer must match one option character for character
      - explanations are one to three sentences
      - never repeat any question listed under "Avoid"
""").strip()


class AzureOpenAIQuestionGenerator(QuestionGenerator):
    """
    Question generator backed by an Azure OpenAI chat deployment.

    The client and limiter are injectable; tests pass a ``MagicMock``
    client and a zero-interval limiter.
    """

    def __init__(
        self,
        config: AzureOpenAIConfig,
        client: Any = None,
        limiter: Optional[RateLimiter] = None,
        temperature: float = 0.7,
        max_tokens: int = 2500,
    ) -> None:
        self._cfg = config
        self._client = client or AzureOpenAI(
            azure_endpoint=config.endpoint,
            api_key=config.api_key,
            api_version=config.api_version,
        )
        self._limiter = limiter or RateLimiter(0.0)
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _build_user_message(self, category: str, difficulty: Difficulty, count: int,
                            excluded: Collection[str]) -> str:
        avoid = "\n".join(f"- {t}" for t in sorted(excluded)[:50]) or "- (none)"
        return textwrap.dedent(f"""
            Category: {category}
            Difficulty: {Difficulty(difficulty).value}
            Number of questions: {count}
            Avoid:
        """).strip() + "\n" + avoid

    def _call_llm(self, user_message: str) -> dict[str, Any]:
        with self._limiter:
            response = self._client.chat.completions.create(
                model=self._cfg.deployment,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user",   "content": user_message},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        raw_json = response.choices[0].message.content
        return json.loads(raw_json)

    def generate(self, category: str, difficulty: Difficulty, count: int,
                 excluded: Collection[str] = ()) -> list[Question]:
        """
        Ask the model for *count* questions in one cell.

        Raises:
            ProviderError – transport / rate-limit failure or unusable output.
        """
        if count <= 0:
            return []
        difficulty = Difficulty(difficulty)
        user_msg = self._build_user_message(category, difficulty, count, excluded)

        try:
            data = self._call_llm(user_msg)
        except OpenAIError as exc:
            raise ProviderError(f"Azure OpenAI call failed: {exc}",
                                category=category, difficulty=difficulty) from exc
        except (json.JSONDecodeError, TypeError, AttributeError, IndexError) as exc:
            raise ProviderError(f"Model returned malformed output: {exc}",
                                category=category, difficulty=difficulty) from exc

        items = data.get("questions") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ProviderError("Model output has no 'questions' list",
                                category=category, difficulty=difficulty)

        seen = set(excluded)
        questions: list[Question] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            text = str(item.get("question_text") or "")
            key = normalize_text(text)
            if not key or key in seen:
                continue
            try:
                q = validate_question({
                    **item,
                    "question_id": derive_question_id(category, difficulty, text),
                    "category":    category,
                    "difficulty":  difficulty,
                    "source":      QuestionSource.AI,
                })
            except QuestionValidationError as exc:
                logger.warning("Discarding generated %s/%s question: %s",
                               category, difficulty.value, exc)
                continue
            seen.add(key)
            questions.append(q)
            if len(questions) == count:
                break

        if not questions:
            raise ProviderError("Model produced no usable questions",
                                category=category, difficulty=difficulty)
        logger.info("Generated %d/%d %s/%s question(s)",
                    len(questions), count, category, difficulty.value)
        return questions
