"""
b2_question_store.py — Question Store Adapter (Block 2)
========================================================
The composer's only view of persisted questions.

  field_mapped(field, category, difficulty, count)
      Active questions mapped to the study field.  A failing mapping lookup
      is treated as "nothing found" and never propagates.

  general(category, difficulty, count)
      Same filter without the field restriction.  Transport failures raise
      SourceUnavailable; the composer recovers by moving to the next tier.

  curated_bank(category, difficulty)
      The static bank cell from question_bank.py; always available.

  persist_generated(questions, field, category, difficulty)
      Idempotent upsert by deterministic id, followed by field mappings.

Every "fetch N" over-fetches 2×N rows and samples N of them at random, so
repeated calls never return a deterministic prefix of the table.
"""

from __future__ import annotations

import logging
import random
import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Sequence, TypeVar

from assessment_engine import database, question_bank
from assessment_engine.errors import QuestionValidationError, SourceUnavailable
from assessment_engine.models import (
    Difficulty,
    Question,
    QuestionSource,
    StudyField,
    get_question_weights,
    validate_question,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OVERFETCH_FACTOR = 2


# ─── Random selection ────────────────────────────────────────────────────────

def shuffle_questions(items: Iterable[T], rng: Optional[random.Random] = None) -> list[T]:
    """Return a Fisher–Yates shuffled copy of *items*."""
    shuffled = list(items)
    (rng or random).shuffle(shuffled)
    return shuffled


def select_random(items: Sequence[T], count: int, rng: Optional[random.Random] = None) -> list[T]:
    """Uniformly pick up to *count* items without replacement."""
    if count <= 0 or not items:
        return []
    return shuffle_questions(items, rng)[:count]


# ─── Adapter interface ───────────────────────────────────────────────────────

class QuestionStore:
    """
    Base adapter.  Live sources are empty; only the curated bank answers.

    Subclasses override the live-source methods.  Usable on its own as a
    bank-only store when no database is available.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def field_mapped(self, study_field: StudyField, category: str,
                     difficulty: Difficulty, count: int) -> list[Question]:
        return []

    def general(self, category: str, difficulty: Difficulty, count: int) -> list[Question]:
        return []

    def curated_bank(self, category: str, difficulty: Difficulty) -> list[Question]:
        return list(question_bank.curated_questions(category, difficulty))

    def persist_generated(self, questions: Sequence[Question], study_field: StudyField,
                          category: str, difficulty: Difficulty) -> None:
        return None

    def record_usage(self, question_id: str, is_correct: bool, time_seconds: float = 0.0) -> None:
        return None

    def save_report(self, attempt_id: str, report_json: str) -> None:
        return None


# ─── SQLite implementation ───────────────────────────────────────────────────

class SQLiteQuestionStore(QuestionStore):
    """QuestionStore backed by ``database.py``."""

    def __init__(self, db_path: str | Path | None = None,
                 rng: Optional[random.Random] = None) -> None:
        super().__init__(rng)
        self.db_path = db_path
        database.init_db(db_path)

    # ── Helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    def _validated(rows: list[dict]) -> list[Question]:
        """Turn raw rows into Questions, skipping any that break invariants."""
        questions: list[Question] = []
        for row in rows:
            try:
                questions.append(validate_question(row))
            except QuestionValidationError as exc:
                logger.warning("Skipping stored question %s: %s", row.get("question_id"), exc)
        return questions

    # ── Reads ────────────────────────────────────────────────────────────────

    def field_mapped(self, study_field: StudyField, category: str,
                     difficulty: Difficulty, count: int) -> list[Question]:
        if count <= 0:
            return []
        try:
            rows = database.fetch_questions(
                category, Difficulty(difficulty).value, count * _OVERFETCH_FACTOR,
                field_id=StudyField(study_field).value, db_path=self.db_path,
            )
        except sqlite3.Error as exc:
            logger.warning("Field-mapping lookup failed for %s/%s/%s: %s",
                           study_field, category, difficulty, exc)
            return []
        return select_random(self._validated(rows), count, self._rng)

    def general(self, category: str, difficulty: Difficulty, count: int) -> list[Question]:
        if count <= 0:
            return []
        try:
            rows = database.fetch_questions(
                category, Difficulty(difficulty).value, count * _OVERFETCH_FACTOR,
                db_path=self.db_path,
            )
        except sqlite3.Error as exc:
            raise SourceUnavailable(f"Question bank query failed: {exc}") from exc
        return select_random(self._validated(rows), count, self._rng)

    # ── Writes ───────────────────────────────────────────────────────────────

    def add_question(self, question: Question, study_field: Optional[StudyField] = None,
                     is_primary: bool = False) -> None:
        """Admin entry point: store a question and optionally map it to a field."""
        try:
            database.upsert_question(question.model_dump(mode="json"), db_path=self.db_path)
            if study_field is not None:
                weight = get_question_weights(study_field).get(question.category, 1)
                database.upsert_field_mapping(
                    question.question_id, StudyField(study_field).value,
                    weight=weight, is_primary=is_primary, db_path=self.db_path,
                )
        except sqlite3.Error as exc:
            raise SourceUnavailable(f"Could not store question {question.question_id}: {exc}") from exc

    def persist_generated(self, questions: Sequence[Question], study_field: StudyField,
                          category: str, difficulty: Difficulty) -> None:
        field_id = StudyField(study_field).value
        weight   = get_question_weights(study_field).get(category, 1)
        try:
            for q in questions:
                row = q.tagged(category, difficulty).model_dump(mode="json")
                row["source"] = QuestionSource.AI.value
                database.upsert_question(row, db_path=self.db_path)
                database.upsert_field_mapping(
                    q.question_id, field_id, weight=weight, is_primary=True,
                    db_path=self.db_path,
                )
        except sqlite3.Error as exc:
            raise SourceUnavailable(f"Persisting generated questions failed: {exc}") from exc
        logger.info("Persisted %d generated question(s) for %s/%s/%s",
                    len(questions), field_id, category, Difficulty(difficulty).value)

    def record_usage(self, question_id: str, is_correct: bool, time_seconds: float = 0.0) -> None:
        try:
            database.record_question_usage(question_id, is_correct, time_seconds, db_path=self.db_path)
        except sqlite3.Error as exc:
            raise SourceUnavailable(f"Usage statistics update failed: {exc}") from exc

    def question_stats(self, question_id: str) -> Optional[dict]:
        return database.get_question_stats(question_id, db_path=self.db_path)

    def save_report(self, attempt_id: str, report_json: str) -> None:
        try:
            database.save_attempt_report(attempt_id, report_json, db_path=self.db_path)
        except sqlite3.Error as exc:
            raise SourceUnavailable(f"Could not save report {attempt_id}: {exc}") from exc

    def load_report(self, attempt_id: str) -> Optional[dict]:
        return database.load_attempt_report(attempt_id, db_path=self.db_path)
