"""
b3_question_composer.py — Question Composer (Block 3)
======================================================
Assembles the question set for one learner.

---------------------------------------------------------------------------
Algorithm
---------------------------------------------------------------------------
  0. Detect the study field, plan counts, fix the primary category.

  Tier 1 — admin priority
     For each difficulty of the high-priority split: field-mapped questions
     first, topped up from the general bank.

  Tier 2 — generation or admin fill
     remaining = total − |tier 1|, split by difficulty.
       generation on  → one provider call per difficulty bucket with the
                        running exclusion set; results are persisted.
                        A ProviderError falls back to the curated bank
                        for that bucket only.
       generation off → the general bank fills every bucket.

  Tier 3 — curated top-up
     Still short → curated bank of the primary category, difficulties in
     priority order medium, easy, hard.

  Truncate to ``total``, shuffle, return.

  Any unexpected error in the above → LegacyDistributionGenerator over the
  curated bank.  If that fails too → AssemblyFailed.

---------------------------------------------------------------------------
Invariants
---------------------------------------------------------------------------
  - No two questions in a set share a normalized text; ids are ignored for
    deduplication.
  - Never more than ``total`` questions.  Fewer only when every source is
    exhausted, reported through ``AssembledSet.is_short``.
  - At most one provider call per (category, difficulty) per composition.
  - The exclusion set lives and dies with one ``compose`` call.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Iterable, Mapping, Optional

from assessment_engine.agent_trace import AgentStep, RunTrace
from assessment_engine.b0_field_detector import detect
from assessment_engine.b1_distribution_planner import DistributionPlan, plan_counts
from assessment_engine.b2_generative_provider import QuestionGenerator
from assessment_engine.b2_question_store import QuestionStore, select_random, shuffle_questions
from assessment_engine.b3_legacy_generator import LegacyDistributionGenerator
from assessment_engine.errors import AssemblyFailed, ProviderError, SourceUnavailable
from assessment_engine.models import (
    DIFFICULTY_PRIORITY,
    AssembledSet,
    Difficulty,
    LearnerProfile,
    Question,
    StudyField,
)

logger = logging.getLogger(__name__)


# ─── Running selection ───────────────────────────────────────────────────────

class _Selection:
    """Ordered questions plus their normalized-text exclusion set."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self.questions: list[Question] = []
        self.seen: set[str] = set()

    def __len__(self) -> int:
        return len(self.questions)

    @property
    def remaining(self) -> int:
        return max(0, self.capacity - len(self.questions))

    def admit(self, question: Question) -> bool:
        key = question.normalized_text
        if self.remaining == 0 or key in self.seen:
            return False
        self.seen.add(key)
        self.questions.append(question)
        return True

    def admit_all(self, questions: Iterable[Question], limit: Optional[int] = None) -> list[Question]:
        """Admit in order until *limit* new questions are in; return those admitted."""
        admitted: list[Question] = []
        for q in questions:
            if limit is not None and len(admitted) >= limit:
                break
            if self.admit(q):
                admitted.append(q)
        return admitted

    def unseen(self, questions: Iterable[Question]) -> list[Question]:
        return [q for q in questions if q.normalized_text not in self.seen]


# ─── Composer ────────────────────────────────────────────────────────────────

class QuestionComposer:
    """
    Three-tier question composer with a legacy fallback.

    Usage::

        composer  = QuestionComposer(SQLiteQuestionStore(), generator)
        assembled = composer.compose(profile, 10)
    """

    def __init__(
        self,
        store: QuestionStore,
        generator: Optional[QuestionGenerator] = None,
        *,
        generation_enabled: bool = True,
        legacy: Optional[LegacyDistributionGenerator] = None,
        rng: Optional[random.Random] = None,
        live_mode: bool = False,
    ) -> None:
        self.store = store
        self.generator = generator
        self.generation_enabled = generation_enabled and generator is not None
        self._rng = rng or random.Random()
        self.legacy = legacy or LegacyDistributionGenerator(bank=store.curated_bank, rng=self._rng)
        self.live_mode = live_mode

    # ── Tier 1 ───────────────────────────────────────────────────────────────

    def _tier1(self, plan: DistributionPlan, selection: _Selection, step: AgentStep) -> None:
        category = plan.primary_category
        for difficulty, count in plan.high_priority_split.items():
            if count <= 0:
                continue
            try:
                mapped = self.store.field_mapped(plan.study_field, category, difficulty, count)
            except SourceUnavailable as exc:
                logger.warning("Field-mapped lookup unavailable for %s/%s: %s", category, difficulty.value, exc)
                step.warnings.append(f"field_mapped {difficulty.value}: {exc}")
                mapped = []
            got = selection.admit_all((q.tagged(category, difficulty) for q in mapped), limit=count)

            topped: list[Question] = []
            if len(got) < count:
                short = count - len(got)
                try:
                    general = self.store.general(category, difficulty, short)
                except SourceUnavailable as exc:
                    logger.warning("General bank unavailable for %s/%s: %s", category, difficulty.value, exc)
                    step.warnings.append(f"general {difficulty.value}: {exc}")
                    general = []
                topped = selection.admit_all((q.tagged(category, difficulty) for q in general), limit=short)

            step.detail[difficulty.value] = {"requested": count, "field_mapped": len(got), "general": len(topped)}
            step.decisions.append(
                f"{difficulty.value}: {len(got)} field-mapped + {len(topped)} general of {count}"
            )

    # ── Tier 2 ───────────────────────────────────────────────────────────────

    def _curated_sample(self, category: str, difficulty: Difficulty, count: int,
                        selection: _Selection) -> list[Question]:
        pool = selection.unseen(self.store.curated_bank(category, difficulty))
        picked = select_random(pool, count, self._rng)
        return selection.admit_all((q.tagged(category, difficulty) for q in picked), limit=count)

    def _tier2_generate(self, plan: DistributionPlan, remaining: int,
                        selection: _Selection, step: AgentStep) -> None:
        category = plan.primary_category
        for difficulty, count in plan.split(remaining).items():
            if count <= 0:
                continue
            try:
                generated = self.generator.generate(category, difficulty, count, frozenset(selection.seen))
            except ProviderError as exc:
                logger.warning("Generation failed for %s/%s, using curated bank: %s",
                               category, difficulty.value, exc)
                step.warnings.append(f"generate {difficulty.value}: {exc}")
                fallback = self._curated_sample(category, difficulty, count, selection)
                step.decisions.append(f"{difficulty.value}: provider failed, {len(fallback)} curated of {count}")
                continue

            admitted = selection.admit_all((q.tagged(category, difficulty) for q in generated), limit=count)
            if admitted:
                try:
                    self.store.persist_generated(admitted, plan.study_field, category, difficulty)
                except SourceUnavailable as exc:
                    logger.warning("Could not persist generated %s/%s questions: %s",
                                   category, difficulty.value, exc)
                    step.warnings.append(f"persist {difficulty.value}: {exc}")
            step.decisions.append(f"{difficulty.value}: {len(admitted)} generated of {count}")

    def _tier2_fill(self, plan: DistributionPlan, remaining: int,
                    selection: _Selection, step: AgentStep) -> None:
        category = plan.primary_category
        for difficulty, count in plan.split(remaining).items():
            if count <= 0:
                continue
            try:
                general = self.store.general(category, difficulty, count)
            except SourceUnavailable as exc:
                logger.warning("General bank unavailable for %s/%s: %s", category, difficulty.value, exc)
                step.warnings.append(f"general {difficulty.value}: {exc}")
                general = []
            admitted = selection.admit_all((q.tagged(category, difficulty) for q in general), limit=count)
            step.decisions.append(f"{difficulty.value}: {len(admitted)} general of {count}")

    # ── Tier 3 ───────────────────────────────────────────────────────────────

    def _tier3(self, plan: DistributionPlan, selection: _Selection, step: AgentStep) -> None:
        category = plan.primary_category
        for difficulty in DIFFICULTY_PRIORITY:
            need = selection.remaining
            if need == 0:
                break
            bank = self.store.curated_bank(category, difficulty)
            candidates = selection.unseen(bank) or list(bank)
            picked = select_random(candidates, len(candidates), self._rng)
            admitted = selection.admit_all((q.tagged(category, difficulty) for q in picked), limit=need)
            step.decisions.append(f"{difficulty.value}: {len(admitted)} curated (needed {need})")

    # ── Pipelines ────────────────────────────────────────────────────────────

    def _compose_tiered(self, study_field: StudyField, total: int,
                        trace: RunTrace) -> tuple[list[Question], str]:
        plan = plan_counts(study_field, total)
        selection = _Selection(total)

        with trace.step("tier1", "Admin-priority questions", "🗂️",
                        input_summary=f"{plan.primary_category} × {plan.high_priority}") as step:
            self._tier1(plan, selection, step)
            step.output_summary = f"{len(selection)} question(s)"
            if len(selection) < plan.high_priority:
                step.status = "short"

        remaining = total - len(selection)
        mode = "generate" if self.generation_enabled else "fill"
        with trace.step("tier2", f"Tier 2 ({mode})", "🤖" if self.generation_enabled else "🗄️",
                        input_summary=f"remaining={remaining}") as step:
            if remaining <= 0:
                step.status = "skipped"
            elif self.generation_enabled:
                self._tier2_generate(plan, remaining, selection, step)
            else:
                self._tier2_fill(plan, remaining, selection, step)
            step.output_summary = f"{len(selection)} question(s) total"

        with trace.step("tier3", "Curated top-up", "📚",
                        input_summary=f"remaining={selection.remaining}") as step:
            if selection.remaining == 0:
                step.status = "skipped"
            else:
                self._tier3(plan, selection, step)
                if selection.remaining:
                    step.status = "short"
                    step.warnings.append(f"curated bank exhausted; {selection.remaining} short")
            step.output_summary = f"{len(selection)} question(s) total"

        return selection.questions[:total], plan.primary_category

    def _compose_legacy(self, study_field: StudyField, total: int,
                        trace: RunTrace) -> tuple[list[Question], str]:
        with trace.step("legacy", "Legacy distribution fallback", "♻️",
                        input_summary=f"{study_field.value} × {total}") as step:
            plan = plan_counts(study_field, total)
            drawn = self.legacy.plan_and_fill(plan.category_weights, plan.difficulty_distribution, total)
            selection = _Selection(total)
            selection.admit_all(drawn)
            step.decisions.append(f"{len(drawn)} drawn, {len(selection)} after dedupe")
            step.output_summary = f"{len(selection)} question(s)"
            if selection.remaining:
                step.status = "short"
        return selection.questions[:total], plan.primary_category

    # ── Public interface ──────────────────────────────────────────────────────

    def compose(self, profile: LearnerProfile | Mapping[str, Any], total: int) -> AssembledSet:
        """
        Build the question set for *profile*.

        Raises:
            ValueError      – negative *total*.
            AssemblyFailed  – the tiered path and the legacy fallback both failed.
        """
        if total < 0:
            raise ValueError(f"total must be non-negative, got {total}")

        study_field = detect(profile)
        trace = RunTrace.start(study_field.value, total, "live" if self.live_mode else "mock")
        with trace.step("b0", "Field detection", "🎯") as step:
            step.output_summary = study_field.value

        if total == 0:
            plan = plan_counts(study_field, 0)
            return AssembledSet((), 0, study_field, plan.primary_category, trace=trace.finish())

        used_fallback = False
        try:
            questions, primary = self._compose_tiered(study_field, total, trace)
        except Exception as exc:
            logger.warning("Tiered composition failed (%s: %s); running legacy generator",
                           type(exc).__name__, exc)
            used_fallback = True
            try:
                questions, primary = self._compose_legacy(study_field, total, trace)
            except Exception as legacy_exc:
                logger.error("Legacy generator failed as well: %s", legacy_exc)
                raise AssemblyFailed(
                    f"Could not compose {total} question(s): {type(exc).__name__}: {exc}; "
                    f"legacy fallback: {type(legacy_exc).__name__}: {legacy_exc}"
                ) from exc

        assembled = AssembledSet(
            questions        = tuple(shuffle_questions(questions, self._rng)),
            requested        = total,
            study_field      = study_field,
            primary_category = primary,
            used_fallback    = used_fallback,
            trace            = trace.finish(),
        )
        if assembled.is_short:
            logger.warning("Composed %d of %d question(s) for %s; sources exhausted",
                           len(assembled), total, study_field.value)
        else:
            logger.info("Composed %d question(s) for %s (primary %s%s)",
                        len(assembled), study_field.value, primary,
                        ", legacy fallback" if used_fallback else "")
        return assembled
