"""
Tests for models — Question validation, dedup key, attempt state machine.
Run: python -m pytest tests/test_models.py -v
"""
from datetime import datetime, timedelta

import pytest

from factories import make_question

from assessment_engine.errors import AttemptStateError, QuestionValidationError
from assessment_engine.models import (
    CODING,
    DEFAULT_POINTS,
    DEFAULT_TIME_LIMIT,
    FIELD_CATEGORY_WEIGHTS,
    LOGIC,
    QUESTION_TYPE,
    AssembledSet,
    Attempt,
    AttemptStatus,
    CategoryScore,
    Difficulty,
    LearnerProfile,
    StudyField,
    get_difficulty_distribution,
    get_question_weights,
    normalize_text,
    validate_question,
)

T0 = datetime(2026, 3, 2, 10, 0, 0)


def _valid_dict(**overrides):
    data = {
        "question_id":    "x1",
        "category":       CODING,
        "difficulty":     "easy",
        "question_text":  "Which structure is LIFO?",
        "options":        ["Queue", "Stack", "Heap", "Graph"],
        "correct_answer": "Stack",
        "explanation":    "A stack pops the most recent push first.",
    }
    data.update(overrides)
    return data


class TestNormalizeText:
    def test_lowercase_punctuation_whitespace(self):
        assert normalize_text("  What's   the ANSWER?! ") == "whats the answer"

    def test_none_safe(self):
        assert normalize_text(None) == ""

    def test_equivalent_texts_collide(self):
        assert normalize_text("Is 2+2 = 4?") == normalize_text("is 22  4")


class TestValidateQuestion:
    def test_valid(self):
        q = validate_question(_valid_dict())
        assert q.difficulty == Difficulty.EASY
        assert q.type == QUESTION_TYPE

    def test_missing_fields_named(self):
        with pytest.raises(QuestionValidationError, match="Missing required fields: explanation"):
            validate_question(_valid_dict(explanation=""))

    def test_three_options_rejected(self):
        with pytest.raises(QuestionValidationError, match="exactly 4 options"):
            validate_question(_valid_dict(options=["Queue", "Stack", "Heap"]))

    def test_correct_answer_must_be_option(self):
        with pytest.raises(QuestionValidationError, match="Correct answer"):
            validate_question(_valid_dict(correct_answer="Tree"))

    def test_blank_option_rejected(self):
        with pytest.raises(QuestionValidationError):
            validate_question(_valid_dict(options=["Queue", "Stack", " ", "Graph"]))

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_question(_valid_dict(options=[]))


class TestQuestion:
    def test_frozen(self):
        q = make_question()
        with pytest.raises(Exception):
            q.question_text = "changed"

    def test_tagged_copy(self):
        q = make_question(category=LOGIC, difficulty=Difficulty.EASY)
        t = q.tagged(CODING, Difficulty.HARD)
        assert (t.category, t.difficulty) == (CODING, Difficulty.HARD)
        assert t.points == DEFAULT_POINTS
        assert t.time_limit_seconds == DEFAULT_TIME_LIMIT
        assert (q.category, q.difficulty) == (LOGIC, Difficulty.EASY)


class TestTables:
    def test_unknown_field_falls_back_to_other(self):
        assert get_question_weights("astrology") == FIELD_CATEGORY_WEIGHTS[StudyField.OTHER]
        assert get_difficulty_distribution("astrology")[Difficulty.MEDIUM] == 50

    def test_field_id_string_accepted(self):
        assert get_question_weights("stem")[CODING] == 35


class TestLearnerProfile:
    def test_from_mapping_ignores_unknown_keys(self):
        p = LearnerProfile.from_mapping({"field_of_study": "Law", "age": 30, "goals": None})
        assert p.field_of_study == "Law"
        assert p.goals == ""

    def test_combined_text_lowercase(self):
        p = LearnerProfile(field_of_study="Physics", interests="Chess")
        assert "physics" in p.combined_text()
        assert "chess" in p.combined_text()


class TestAssembledSet:
    def test_shortfall(self):
        s = AssembledSet((make_question(),), requested=3, study_field=StudyField.STEM,
                         primary_category=CODING)
        assert len(s) == 1
        assert s.shortfall == 2
        assert s.is_short

    def test_complete_set(self):
        s = AssembledSet((make_question(),), requested=1, study_field=StudyField.STEM,
                         primary_category=CODING)
        assert not s.is_short
        assert list(s)[0].question_id == "q1"


class TestAttemptLifecycle:
    def _attempt(self, **kw):
        return Attempt(attempt_id="a1", questions=[make_question()], **kw)

    def test_happy_path(self):
        a = self._attempt()
        assert a.status == AttemptStatus.NOT_STARTED
        a.start(T0)
        a.record_answer("q1", "O(log n)", "halving")
        a.submit(T0 + timedelta(minutes=5))
        assert a.is_evaluable
        assert a.time_taken_seconds == 300
        a.mark_evaluated()
        assert a.status == AttemptStatus.EVALUATED

    def test_answer_before_start_rejected(self):
        with pytest.raises(AttemptStateError):
            self._attempt().record_answer("q1", "O(1)")

    def test_evaluate_in_progress_rejected(self):
        a = self._attempt()
        a.start(T0)
        with pytest.raises(AttemptStateError):
            a.mark_evaluated()

    def test_evaluate_twice_rejected(self):
        a = self._attempt()
        a.start(T0)
        a.submit(T0)
        a.mark_evaluated()
        with pytest.raises(AttemptStateError):
            a.mark_evaluated()

    def test_timeout_then_submit_rejected(self):
        a = self._attempt()
        a.start(T0)
        a.time_out(T0 + timedelta(minutes=31))
        assert a.status == AttemptStatus.TIMED_OUT
        with pytest.raises(AttemptStateError):
            a.submit()

    def test_start_twice_rejected(self):
        a = self._attempt()
        a.start(T0)
        with pytest.raises(AttemptStateError):
            a.start(T0)

    def test_expiry(self):
        a = self._attempt(time_limit_seconds=60)
        assert not a.is_expired(T0)
        a.start(T0)
        assert not a.is_expired(T0 + timedelta(seconds=59))
        assert a.is_expired(T0 + timedelta(seconds=60))

    def test_time_taken_zero_until_finished(self):
        a = self._attempt()
        a.start(T0)
        assert a.time_taken_seconds == 0.0


class TestCategoryScore:
    def test_percentage(self):
        assert CategoryScore(total=17, max_score=20, count=2).percentage == pytest.approx(85.0)

    def test_empty_percentage(self):
        assert CategoryScore().percentage == 0.0
