"""
b4_response_scorer.py — Response Scorer (Block 4)
==================================================
Scores one (question, answer, explanation) triple against a fixed rubric.
Pure and offline: the same triple always produces the same evaluation.

Rubric (each sub-score 0–10)
----------------------------
  accuracy     10 if the answer equals the correct option, else 0

  explanation  0 without text, otherwise
                 3 base
               + 2 at ≥ 20 chars, + 2 at ≥ 50, + 2 at ≥ 100
               + 0.5 per keyword shared with the question / correct answer
                 (at most + 1)
               capped at 10

  reasoning    0 without text, otherwise
                 2 base
               + 1 per distinct reasoning connective (at most + 4)
               + 2 wrong answer, but the text echoes the opening of the
                   official explanation
               + 2 correct answer with more than 30 chars of explanation
               capped at 10

  total        accuracy × Wa + explanation × We + reasoning × Wr

Keywords are words longer than three characters with stop-words removed.
Feedback and suggestions come from an eight-row table keyed on
(correct, explanation ≥ 5, reasoning ≥ 5).
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from assessment_engine.config import RubricConfig
from assessment_engine.models import Question, ResponseEvaluation

logger = logging.getLogger(__name__)

StatsRecorder = Callable[[str, bool, float], None]


# ─── Text features ───────────────────────────────────────────────────────────

STOP_WORDS: frozenset[str] = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
    "had", "her", "was", "one", "our", "out", "has", "have", "this", "that",
    "with", "they", "from", "what", "which", "when", "where", "will", "would",
    "there", "their", "these", "those", "then", "than", "them", "been",
    "were", "into", "only", "also", "some", "such", "each", "very", "just",
    "about", "because", "therefore", "since", "however", "does", "more",
    "most", "other", "over", "your", "here", "think", "answer", "correct",
    "question", "option", "being", "could", "should",
})

REASONING_CONNECTIVES: tuple[str, ...] = (
    "because", "therefore", "since", "however", "for example", "for instance",
    "thus", "hence", "consequently", "as a result", "which means", "due to",
)

_WORD = re.compile(r"[a-z0-9]+")
_CONNECTIVE_PATTERNS = tuple(
    re.compile(r"\b" + re.escape(c) + r"\b") for c in REASONING_CONNECTIVES
)

_EXPLANATION_LENGTH_STEPS = (20, 50, 100)
_OFFICIAL_OPENING_WORDS   = 8


def extract_keywords(text: str) -> set[str]:
    """Lowercase words longer than three characters, stop-words removed."""
    return {w for w in _WORD.findall((text or "").lower()) if len(w) > 3 and w not in STOP_WORDS}


def count_connectives(text: str) -> int:
    lowered = (text or "").lower()
    return sum(1 for p in _CONNECTIVE_PATTERNS if p.search(lowered))


# ─── Feedback table ──────────────────────────────────────────────────────────

# (is_correct, explanation >= 5, reasoning >= 5) -> (feedback, suggestion)
_FEEDBACK_TABLE: dict[tuple[bool, bool, bool], tuple[str, str]] = {
    (True, True, True): (
        "Correct, and your explanation is clear and well reasoned.",
        "Excellent work. Try harder questions in this category to keep stretching yourself.",
    ),
    (True, True, False): (
        "Correct with a solid explanation; the chain of reasoning could be more explicit.",
        "Link your points with words like 'because' or 'therefore' to show how one step leads to the next.",
    ),
    (True, False, True): (
        "Correct, and your reasoning is on track, but the explanation is thin.",
        "Add a sentence or two on the key concept behind the answer.",
    ),
    (True, False, False): (
        "Correct answer, but the explanation does not show how you got there.",
        "Explain why the answer is right, not only which option you picked.",
    ),
    (False, True, True): (
        "Incorrect: the answer is {correct}. Your reasoning is thoughtful, so revisit the one step that went wrong.",
        "Compare your reasoning with the official explanation and find where it diverged.",
    ),
    (False, True, False): (
        "Incorrect: the answer is {correct}. You explained your thinking, but the reasoning did not hold together.",
        "Work through the question step by step and check each step against the facts.",
    ),
    (False, False, True): (
        "Incorrect: the answer is {correct}. Your reasoning shows some structure but needs more substance.",
        "Review the underlying concept and practise explaining it in your own words.",
    ),
    (False, False, False): (
        "Incorrect: the answer is {correct}.",
        "Review the topic and practise similar questions to build understanding.",
    ),
}


# ─── Scorer ──────────────────────────────────────────────────────────────────

class ResponseScorer:
    """
    Rubric scorer.

    ``stats_recorder`` receives ``(question_id, is_correct, time_seconds)``
    from ``score_and_record``; its failures are logged and never affect the
    returned evaluation.
    """

    def __init__(self, rubric: Optional[RubricConfig] = None,
                 stats_recorder: Optional[StatsRecorder] = None) -> None:
        self.rubric = rubric or RubricConfig()
        self._stats_recorder = stats_recorder

    @staticmethod
    def explanation_quality(question: Question, explanation: str) -> float:
        text = (explanation or "").strip()
        if not text:
            return 0.0
        score = 3.0
        score += sum(2.0 for step in _EXPLANATION_LENGTH_STEPS if len(text) >= step)
        reference = extract_keywords(question.question_text) | extract_keywords(question.correct_answer)
        overlap = extract_keywords(text) & reference
        score += min(1.0, 0.5 * len(overlap))
        return min(10.0, score)

    @staticmethod
    def reasoning_quality(question: Question, explanation: str, is_correct: bool) -> float:
        text = (explanation or "").strip()
        if not text:
            return 0.0
        score = 2.0
        score += min(4, count_connectives(text))
        if not is_correct:
            opening = " ".join((question.explanation or "").split()[:_OFFICIAL_OPENING_WORDS])
            if extract_keywords(opening) & extract_keywords(text):
                score += 2.0
        elif len(text) > 30:
            score += 2.0
        return min(10.0, score)

    def score(self, question: Question, user_answer: str, user_explanation: str = "") -> ResponseEvaluation:
        """Score one response; no side effects."""
        answer      = user_answer or ""
        explanation = user_explanation or ""
        is_correct  = answer == question.correct_answer

        accuracy    = 10.0 if is_correct else 0.0
        expl_score  = self.explanation_quality(question, explanation)
        reasoning   = self.reasoning_quality(question, explanation, is_correct)

        r = self.rubric
        weighted = (
            accuracy * r.accuracy_weight
            + expl_score * r.explanation_weight
            + reasoning * r.reasoning_weight
        )
        total = round(weighted * r.max_score_per_question / 10.0, 2)

        feedback, suggestion = _FEEDBACK_TABLE[(is_correct, expl_score >= 5, reasoning >= 5)]
        return ResponseEvaluation(
            question_id       = question.question_id,
            category          = question.category,
            difficulty        = question.difficulty.value,
            user_answer       = answer,
            user_explanation  = explanation,
            correct_answer    = question.correct_answer,
            is_correct        = is_correct,
            accuracy_score    = accuracy,
            explanation_score = expl_score,
            reasoning_score   = reasoning,
            total_score       = total,
            max_score         = r.max_score_per_question,
            feedback          = feedback.format(correct=question.correct_answer),
            suggestions       = suggestion,
        )

    def score_and_record(self, question: Question, user_answer: str, user_explanation: str = "",
                         time_seconds: float = 0.0) -> ResponseEvaluation:
        """Score, then update usage statistics on a best-effort basis."""
        evaluation = self.score(question, user_answer, user_explanation)
        if self._stats_recorder is not None:
            try:
                self._stats_recorder(question.question_id, evaluation.is_correct, time_seconds)
            except Exception as exc:
                logger.warning("Usage statistics update failed for %s: %s", question.question_id, exc)
        return evaluation
