"""
engine.py — Assessment Engine facade
=====================================
The only two entry points the UI layer needs:

  compose_assignment(profile, count)  → AssembledSet
  evaluate_attempt(attempt)           → AttemptReport

Everything else (store, generator, narrator, scorer, aggregator, limiter)
is constructor-injected so each fallback path can be exercised with a
failing fake.  ``AssessmentEngine.from_settings()`` wires the production
collaborators: SQLite store always, Azure OpenAI only in live mode.

Evaluation is sequential in question order with the rate limiter between
questions; unanswered questions are scored as wrong with empty text.
"""

from __future__ import annotations

import json
import logging
import random
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from assessment_engine.b2_generative_provider import AzureOpenAIQuestionGenerator, QuestionGenerator
from assessment_engine.b2_question_store import QuestionStore, SQLiteQuestionStore
from assessment_engine.b3_question_composer import QuestionComposer
from assessment_engine.b4_response_scorer import ResponseScorer
from assessment_engine.b5_attempt_aggregator import (
    AttemptAggregator,
    AzureOpenAINarrativeFeedback,
    NarrativeFeedbackProvider,
    report_to_dict,
)
from assessment_engine.config import RubricConfig, Settings, get_settings
from assessment_engine.errors import AssemblyFailed, AttemptStateError
from assessment_engine.guardrails import GuardrailsPipeline
from assessment_engine.models import (
    AssembledSet,
    Attempt,
    AttemptReport,
    AttemptStatus,
    LearnerProfile,
)
from assessment_engine.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class AssessmentEngine:
    """
    Composition + evaluation facade.

    Usage::

        engine    = AssessmentEngine.from_settings()
        assembled = engine.compose_assignment(profile)
        attempt   = engine.start_attempt(assembled, learner=profile)
        attempt.record_answer(qid, "O(log n)", "because it halves …")
        attempt.submit()
        report    = engine.evaluate_attempt(attempt)
    """

    def __init__(
        self,
        store: Optional[QuestionStore] = None,
        generator: Optional[QuestionGenerator] = None,
        narrator: Optional[NarrativeFeedbackProvider] = None,
        *,
        rubric: Optional[RubricConfig] = None,
        limiter: Optional[RateLimiter] = None,
        generation_enabled: bool = True,
        total_questions: int = 10,
        time_limit_minutes: int = 30,
        live_mode: bool = False,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store or QuestionStore(rng=rng)
        self.composer = QuestionComposer(
            self.store, generator,
            generation_enabled=generation_enabled, rng=rng, live_mode=live_mode,
        )
        self.scorer = ResponseScorer(rubric, stats_recorder=self.store.record_usage)
        self.aggregator = AttemptAggregator(narrator)
        self.guardrails = GuardrailsPipeline()
        self.limiter = limiter or RateLimiter(0.0)
        self.total_questions = total_questions
        self.time_limit_minutes = time_limit_minutes

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "AssessmentEngine":
        """Build the production engine from environment settings."""
        settings = settings or get_settings()
        cfg = settings.engine
        store = SQLiteQuestionStore(cfg.db_path)
        # One pacing window for every call against the deployment
        limiter = RateLimiter(cfg.evaluation_delay_seconds, sleep=sleep)

        generator = narrator = None
        if settings.live_mode:
            generator = AzureOpenAIQuestionGenerator(settings.openai, limiter=limiter)
            narrator = AzureOpenAINarrativeFeedback(settings.openai, limiter=limiter)
        logger.info("Assessment engine in %s mode (generation %s)",
                    "live" if settings.live_mode else "mock",
                    "on" if generator is not None and cfg.generation_enabled else "off")

        return cls(
            store, generator, narrator,
            rubric=settings.rubric,
            limiter=limiter,
            generation_enabled=cfg.generation_enabled,
            total_questions=cfg.total_questions,
            time_limit_minutes=cfg.time_limit_minutes,
            live_mode=settings.live_mode,
        )

    # ── Composition ──────────────────────────────────────────────────────────

    def compose_assignment(self, profile: LearnerProfile | Mapping[str, Any],
                           count: Optional[int] = None) -> AssembledSet:
        """
        Compose the question set for one learner.

        Raises:
            AssemblyFailed – every composition path failed, or the result
                             broke a structural guardrail.
        """
        total = self.total_questions if count is None else count
        assembled = self.composer.compose(profile, total)

        result = self.guardrails.check_assembly(assembled)
        for v in result.warnings:
            logger.warning("[%s] %s", v.code, v.message)
        if result.blocked:
            logger.error("Assembled set rejected by guardrails:\n%s", result.summary())
            raise AssemblyFailed(result.summary())
        return assembled

    def start_attempt(
        self,
        assembled: AssembledSet,
        learner: LearnerProfile | Mapping[str, Any] | None = None,
        attempt_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Attempt:
        if learner is not None and not isinstance(learner, LearnerProfile):
            learner = LearnerProfile.from_mapping(dict(learner))
        attempt = Attempt(
            attempt_id         = attempt_id or uuid.uuid4().hex[:12],
            questions          = list(assembled.questions),
            time_limit_seconds = self.time_limit_minutes * 60,
            learner            = learner,
        )
        attempt.start(now)
        return attempt

    # ── Evaluation ───────────────────────────────────────────────────────────

    def evaluate_attempt(self, attempt: Attempt, now: Optional[datetime] = None) -> AttemptReport:
        """
        Score every question of a finished attempt and aggregate the report.

        An in-progress attempt past its time limit is timed out first.

        Raises:
            AttemptStateError – the attempt is not Submitted / TimedOut
                                (including one that was already evaluated).
        """
        if attempt.status == AttemptStatus.IN_PROGRESS and attempt.is_expired(now):
            logger.info("Attempt %s exceeded its time limit; auto-submitting", attempt.attempt_id)
            attempt.time_out(now)

        result = self.guardrails.check_attempt(attempt)
        for v in result.warnings:
            logger.warning("[%s] %s", v.code, v.message)
        if result.blocked:
            raise AttemptStateError(result.summary())

        n = len(attempt.questions)
        per_question = attempt.time_taken_seconds / n if n else 0.0
        evaluations = []
        for q in attempt.questions:
            self.limiter.wait()
            evaluations.append(self.scorer.score_and_record(
                q,
                attempt.answers.get(q.question_id, ""),
                attempt.explanations.get(q.question_id, ""),
                time_seconds=per_question,
            ))

        report = self.aggregator.aggregate(attempt, evaluations)
        attempt.mark_evaluated()

        try:
            self.store.save_report(attempt.attempt_id, json.dumps(report_to_dict(report)))
        except Exception as exc:
            logger.warning("Could not save report for attempt %s: %s", attempt.attempt_id, exc)
        return report
