"""
b5_attempt_aggregator.py — Attempt Aggregator (Block 5)
========================================================
Rolls the per-question evaluations of one attempt into an AttemptReport.

  total / max / percentage    sums over every evaluation
  category_scores             {category: CategoryScore} for categories present
  grade                       A ≥ 90, B ≥ 80, C ≥ 70, D ≥ 60, else F
                              (lower edge inclusive, unrounded percentage)
  strengths                   categories ≥ 80 %, best first
  improvement_areas           categories < 70 %, worst first, with a
                              per-category study suggestion

Overall feedback
----------------
  1. NarrativeFeedbackProvider.summarize(...) when one is configured
     (Azure OpenAI in live mode).
  2. Any failure, or an empty reply → template_feedback(), which is fully
     offline: accuracy band + strong / weak categories + average
     explanation quality.
"""

from __future__ import annotations

import json
import logging
import textwrap
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional, Sequence

from openai import AzureOpenAI

from assessment_engine.config import AzureOpenAIConfig
from assessment_engine.models import (
    CODING,
    CULTURE,
    CURRENT_AFFAIRS,
    LANGUAGE,
    LOGIC,
    MATHEMATICS,
    VEDIC_KNOWLEDGE,
    Attempt,
    AttemptReport,
    CategoryFinding,
    CategoryScore,
    LearnerProfile,
    ResponseEvaluation,
)
from assessment_engine.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

STRENGTH_THRESHOLD    = 80.0
IMPROVEMENT_THRESHOLD = 70.0

_GRADE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)

CATEGORY_SUGGESTIONS: dict[str, str] = {
    CODING:          "Practice more programming problems and focus on algorithm understanding",
    LOGIC:           "Work on logical reasoning puzzles and pattern recognition exercises",
    MATHEMATICS:     "Review fundamental concepts and practice problem-solving techniques",
    LANGUAGE:        "Read more diverse texts and practice writing clear explanations",
    CULTURE:         "Explore different cultures and their contributions to human knowledge",
    VEDIC_KNOWLEDGE: "Study ancient texts and their modern applications",
    CURRENT_AFFAIRS: "Stay updated with recent news and global developments",
}
_DEFAULT_SUGGESTION = "Focus on understanding core concepts and practice regularly"


def calculate_grade(percentage: float) -> str:
    for threshold, grade in _GRADE_THRESHOLDS:
        if percentage >= threshold:
            return grade
    return "F"


def category_suggestion(category: str) -> str:
    return CATEGORY_SUGGESTIONS.get(category, _DEFAULT_SUGGESTION)


# ─── Template feedback (offline) ─────────────────────────────────────────────

_ACCURACY_BANDS: tuple[tuple[float, str], ...] = (
    (90.0, "Excellent work! You've demonstrated strong knowledge across multiple disciplines."),
    (80.0, "Great job! You've shown solid understanding across most areas."),
    (70.0, "Good effort! You've grasped many of the key concepts and your foundation is solid."),
    (60.0, "You're making progress! You've shown understanding in some key concepts."),
)
_LOWEST_BAND = (
    "Keep working hard! This assessment shows areas where you can grow significantly; "
    "use it as a learning opportunity."
)


def template_feedback(
    evaluations: Sequence[ResponseEvaluation],
    category_scores: dict[str, CategoryScore],
    percentage: float,
) -> str:
    """Deterministic overall feedback; never raises and never returns an empty string."""
    band = next((text for threshold, text in _ACCURACY_BANDS if percentage >= threshold), _LOWEST_BAND)
    parts = [f"{band} Your overall score is {percentage:.1f}%."]

    strong = [c for c, s in category_scores.items() if s.percentage >= STRENGTH_THRESHOLD]
    weak   = [c for c, s in category_scores.items() if s.percentage < IMPROVEMENT_THRESHOLD]
    if strong:
        parts.append(f"Your strongest areas were {', '.join(strong)}.")
    if weak:
        parts.append(f"Spend more time on {', '.join(weak)}.")

    if evaluations:
        avg_expl = sum(e.explanation_score for e in evaluations) / len(evaluations)
        if avg_expl >= 7:
            parts.append(f"Your explanations were detailed and clear (average {avg_expl:.1f}/10).")
        elif avg_expl >= 4:
            parts.append(
                f"Your explanations were reasonable (average {avg_expl:.1f}/10); "
                "add more detail about why each answer is right."
            )
        else:
            parts.append(
                f"Your explanations were brief (average {avg_expl:.1f}/10); "
                "practise explaining your reasoning step by step."
            )
    return " ".join(parts)


# ─── Narrative feedback collaborator ─────────────────────────────────────────

class NarrativeFeedbackProvider:
    """Base narrative collaborator; may raise, the aggregator recovers."""

    def summarize(
        self,
        evaluations: Sequence[ResponseEvaluation],
        category_scores: dict[str, CategoryScore],
        percentage: float,
        learner: Optional[LearnerProfile] = None,
    ) -> str:
        raise NotImplementedError


_FEEDBACK_SYSTEM_PROMPT = textwrap.dedent("""
    You are an encouraging educational mentor giving constructive feedback to
    a student who completed a multidisciplinary assessment.
    Respond with a JSON object: {"feedback": "<one or two short paragraphs>"}.
    Acknowledge effort, name the strongest areas, name areas to improve, and
    give actionable next steps.  Stay positive and honest.
""").strip()


class AzureOpenAINarrativeFeedback(NarrativeFeedbackProvider):
    def __init__(
        self,
        config: AzureOpenAIConfig,
        client: Any = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._cfg = config
        self._client = client or AzureOpenAI(
            azure_endpoint=config.endpoint,
            api_key=config.api_key,
            api_version=config.api_version,
        )
        self._limiter = limiter or RateLimiter(0.0)

    def _build_user_message(self, evaluations, category_scores, percentage, learner) -> str:
        performance = ", ".join(f"{c}: {s.percentage:.1f}%" for c, s in category_scores.items())
        correct = sum(1 for e in evaluations if e.is_correct)
        who = f"Student: {learner.student_name}" if learner and learner.student_name else "Student assessment"
        return textwrap.dedent(f"""
            {who}
            Overall score: {percentage:.1f}%
            Category performance: {performance}
            Total questions: {len(evaluations)}
            Correct answers: {correct}
        """).strip()

    def summarize(self, evaluations, category_scores, percentage, learner=None) -> str:
        with self._limiter:
            response = self._client.chat.completions.create(
                model=self._cfg.deployment,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": _FEEDBACK_SYSTEM_PROMPT},
                    {"role": "user",   "content": self._build_user_message(
                        evaluations, category_scores, percentage, learner)},
                ],
                temperature=0.5,
                max_tokens=800,
            )
        data = json.loads(response.choices[0].message.content)
        return str(data.get("feedback") or "").strip()


# ─── Aggregator ──────────────────────────────────────────────────────────────

class AttemptAggregator:
    """Builds exactly one AttemptReport from an attempt's evaluations."""

    def __init__(self, narrator: Optional[NarrativeFeedbackProvider] = None) -> None:
        self.narrator = narrator

    @staticmethod
    def category_scores(evaluations: Sequence[ResponseEvaluation]) -> dict[str, CategoryScore]:
        scores: dict[str, CategoryScore] = {}
        for e in evaluations:
            bucket = scores.setdefault(e.category, CategoryScore())
            bucket.total += e.total_score
            bucket.max_score += e.max_score
            bucket.count += 1
        return scores

    @staticmethod
    def strengths(scores: dict[str, CategoryScore]) -> list[CategoryFinding]:
        found = [
            CategoryFinding(
                category=c,
                percentage=round(s.percentage, 2),
                description=f"Strong performance in {c} ({s.percentage:.1f}%)",
            )
            for c, s in scores.items() if s.percentage >= STRENGTH_THRESHOLD
        ]
        return sorted(found, key=lambda f: f.percentage, reverse=True)

    @staticmethod
    def improvement_areas(scores: dict[str, CategoryScore]) -> list[CategoryFinding]:
        found = [
            CategoryFinding(
                category=c,
                percentage=round(s.percentage, 2),
                description=f"Needs improvement in {c} ({s.percentage:.1f}%)",
                suggestion=category_suggestion(c),
            )
            for c, s in scores.items() if s.percentage < IMPROVEMENT_THRESHOLD
        ]
        return sorted(found, key=lambda f: f.percentage)

    def _overall_feedback(self, evaluations, scores, percentage, learner) -> tuple[str, str]:
        if self.narrator is not None:
            try:
                text = self.narrator.summarize(evaluations, scores, percentage, learner)
                if text:
                    return text, "narrative"
                logger.warning("Narrative feedback was empty; using template")
            except Exception as exc:
                logger.warning("Narrative feedback failed (%s: %s); using template",
                               type(exc).__name__, exc)
        return template_feedback(evaluations, scores, percentage), "template"

    def aggregate(self, attempt: Attempt, evaluations: Sequence[ResponseEvaluation]) -> AttemptReport:
        evaluations = list(evaluations)
        total     = sum(e.total_score for e in evaluations)
        max_score = sum(e.max_score for e in evaluations)
        percentage = (total / max_score) * 100 if max_score > 0 else 0.0

        scores = self.category_scores(evaluations)
        feedback, source = self._overall_feedback(evaluations, scores, percentage, attempt.learner)

        report = AttemptReport(
            attempt_id         = attempt.attempt_id,
            evaluations        = evaluations,
            total_score        = round(total, 2),
            max_score          = max_score,
            percentage         = round(percentage, 2),
            category_scores    = scores,
            grade              = calculate_grade(percentage),
            strengths          = self.strengths(scores),
            improvement_areas  = self.improvement_areas(scores),
            overall_feedback   = feedback,
            feedback_source    = source,
            time_taken_seconds = attempt.time_taken_seconds,
            evaluated_at       = datetime.now().isoformat(timespec="seconds"),
        )
        logger.info("Attempt %s: %.2f%% grade %s (%d question(s), feedback=%s)",
                    attempt.attempt_id, report.percentage, report.grade, len(evaluations), source)
        return report


def report_to_dict(report: AttemptReport) -> dict[str, Any]:
    """JSON-ready dict of a report, including derived category percentages."""
    data = asdict(report)
    data["category_scores"] = {
        c: {"total": round(s.total, 2), "max_score": s.max_score, "count": s.count,
            "percentage": round(s.percentage, 2)}
        for c, s in report.category_scores.items()
    }
    data["correct_count"] = report.correct_count
    return data
