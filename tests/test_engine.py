"""
Integration tests for engine.AssessmentEngine — compose → attempt → evaluate
with in-memory collaborators and a fake clock.
Run: python -m pytest tests/test_engine.py -v
"""
import json
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from factories import InMemoryQuestionStore, StaticNarrator, make_question

from assessment_engine import b2_generative_provider, b5_attempt_aggregator
from assessment_engine.b2_generative_provider import AzureOpenAIQuestionGenerator
from assessment_engine.b2_question_store import SQLiteQuestionStore
from assessment_engine.b5_attempt_aggregator import AzureOpenAINarrativeFeedback
from assessment_engine.config import AzureOpenAIConfig, EngineConfig, RubricConfig, Settings
from assessment_engine.engine import AssessmentEngine
from assessment_engine.errors import AssemblyFailed, AttemptStateError
from assessment_engine.models import AssembledSet, AttemptStatus, StudyField

T0 = datetime(2026, 4, 1, 14, 0, 0)

EXPLANATION = "Because each step follows from the definition, therefore this option is right."


def _settings(tmp_path, live=False):
    creds = ("https://unit-test.openai.azure.com", "abc123defgh456ijkl789mnop") if live \
        else ("<your-endpoint>", "<your-key>")
    return Settings(
        openai=AzureOpenAIConfig(creds[0], creds[1], "gpt-4o-test", "2024-12-01-preview"),
        engine=EngineConfig(
            generation_enabled=True, force_mock_mode=False, total_questions=6,
            time_limit_minutes=20, evaluation_delay_seconds=1.5,
            db_path=str(tmp_path / "engine.db"),
        ),
        rubric=RubricConfig(),
    )


@pytest.fixture
def engine(memory_store, limiter, rng):
    return AssessmentEngine(memory_store, limiter=limiter, rng=rng)


def _answer_all(attempt, correct=True):
    for q in attempt.questions:
        answer = q.correct_answer if correct else next(o for o in q.options if o != q.correct_answer)
        attempt.record_answer(q.question_id, answer, EXPLANATION)


class TestFullFlow:
    def test_compose_answer_evaluate(self, engine, memory_store, stem_profile, recording_sleep):
        assembled = engine.compose_assignment(stem_profile)
        assert len(assembled) == 10

        attempt = engine.start_attempt(assembled, learner=stem_profile, attempt_id="a-1", now=T0)
        _answer_all(attempt)
        attempt.submit(T0 + timedelta(minutes=10))
        report = engine.evaluate_attempt(attempt)

        assert attempt.status == AttemptStatus.EVALUATED
        assert report.correct_count == 10
        assert report.grade in ("A", "B")
        assert recording_sleep.calls == [2.0] * 9
        assert len(memory_store.usage) == 10
        assert all(u[2] == pytest.approx(60.0) for u in memory_store.usage)
        assert json.loads(memory_store.reports["a-1"])["grade"] == report.grade

    def test_unanswered_questions_score_zero(self, engine, stem_profile):
        assembled = engine.compose_assignment(stem_profile, 3)
        attempt = engine.start_attempt(assembled, now=T0)
        attempt.submit(T0)
        report = engine.evaluate_attempt(attempt)
        assert report.total_score == 0.0
        assert report.grade == "F"
        assert all(e.user_answer == "" for e in report.evaluations)

    def test_evaluation_in_question_order(self, engine, stem_profile):
        assembled = engine.compose_assignment(stem_profile, 5)
        attempt = engine.start_attempt(assembled, now=T0)
        attempt.submit(T0)
        report = engine.evaluate_attempt(attempt)
        assert [e.question_id for e in report.evaluations] == [q.question_id for q in assembled]

    def test_mapping_learner_converted(self, engine, stem_profile):
        assembled = engine.compose_assignment(stem_profile, 1)
        attempt = engine.start_attempt(assembled, learner={"student_name": "Ada"}, now=T0)
        assert attempt.learner.student_name == "Ada"
        assert attempt.time_limit_seconds == 30 * 60

    def test_narrator_feedback_reaches_report(self, memory_store, stem_profile, rng):
        engine = AssessmentEngine(memory_store, narrator=StaticNarrator("Great!"), rng=rng)
        attempt = engine.start_attempt(engine.compose_assignment(stem_profile, 2), now=T0)
        attempt.submit(T0)
        report = engine.evaluate_attempt(attempt)
        assert report.overall_feedback == "Great!"


class TestAttemptStates:
    def test_in_progress_rejected(self, engine, stem_profile):
        attempt = engine.start_attempt(engine.compose_assignment(stem_profile, 2), now=T0)
        with pytest.raises(AttemptStateError):
            engine.evaluate_attempt(attempt, now=T0 + timedelta(minutes=1))

    def test_expired_attempt_timed_out_then_evaluated(self, engine, stem_profile):
        attempt = engine.start_attempt(engine.compose_assignment(stem_profile, 2), now=T0)
        _answer_all(attempt)
        report = engine.evaluate_attempt(attempt, now=T0 + timedelta(minutes=31))
        assert attempt.status == AttemptStatus.EVALUATED
        assert report.time_taken_seconds == 31 * 60
        assert report.correct_count == 2

    def test_evaluate_twice_rejected(self, engine, stem_profile):
        attempt = engine.start_attempt(engine.compose_assignment(stem_profile, 2), now=T0)
        attempt.submit(T0)
        engine.evaluate_attempt(attempt)
        with pytest.raises(AttemptStateError):
            engine.evaluate_attempt(attempt)

    def test_unknown_answer_ids_tolerated(self, engine, stem_profile, caplog):
        attempt = engine.start_attempt(engine.compose_assignment(stem_profile, 2), now=T0)
        attempt.record_answer("ghost", "anything")
        attempt.submit(T0)
        report = engine.evaluate_attempt(attempt)
        assert len(report.evaluations) == 2
        assert "[T-01]" in caplog.text


class TestCollaboratorFailures:
    def test_report_and_usage_failures_tolerated(self, stem_profile, rng, caplog):
        store = InMemoryQuestionStore(rng=rng, fail_usage=True, fail_reports=True)
        engine = AssessmentEngine(store, rng=rng)
        attempt = engine.start_attempt(engine.compose_assignment(stem_profile, 3), now=T0)
        _answer_all(attempt)
        attempt.submit(T0)
        report = engine.evaluate_attempt(attempt)
        assert report.correct_count == 3
        assert "Could not save report" in caplog.text
        assert "Usage statistics update failed" in caplog.text

    def test_guardrail_block_raises(self, engine, stem_profile, monkeypatch):
        q = make_question()
        duplicate = make_question(question_id="q2")
        bad = AssembledSet((q, duplicate), 2, StudyField.STEM, "Coding")
        monkeypatch.setattr(engine.composer, "compose", lambda profile, total: bad)
        with pytest.raises(AssemblyFailed, match="A-03"):
            engine.compose_assignment(stem_profile, 2)

    def test_short_set_returned_with_warning(self, engine, stem_profile, caplog):
        assembled = engine.compose_assignment(stem_profile, 13)
        assert len(assembled) == 12
        assert "[A-01]" in caplog.text


class TestFromSettings:
    def test_mock_mode(self, tmp_path):
        sleeps = []
        engine = AssessmentEngine.from_settings(_settings(tmp_path), sleep=sleeps.append)
        assert isinstance(engine.store, SQLiteQuestionStore)
        assert engine.composer.generator is None
        assert engine.composer.generation_enabled is False
        assert engine.aggregator.narrator is None
        assert engine.total_questions == 6
        assert engine.time_limit_minutes == 20
        assert engine.limiter.min_interval == 1.5
        engine.limiter.wait()
        engine.limiter.wait()
        assert len(sleeps) == 1

    def test_mock_mode_end_to_end_with_sqlite(self, tmp_path, stem_profile):
        engine = AssessmentEngine.from_settings(_settings(tmp_path), sleep=lambda s: None)
        attempt = engine.start_attempt(engine.compose_assignment(stem_profile), attempt_id="db-1", now=T0)
        _answer_all(attempt)
        attempt.submit(T0 + timedelta(minutes=6))
        report = engine.evaluate_attempt(attempt)
        assert engine.store.load_report("db-1")["percentage"] == report.percentage
        first = attempt.questions[0].question_id
        assert engine.store.question_stats(first)["times_correct"] == 1

    def test_live_mode_wires_azure_collaborators(self, tmp_path, monkeypatch):
        monkeypatch.setattr(b2_generative_provider, "AzureOpenAI", MagicMock())
        monkeypatch.setattr(b5_attempt_aggregator, "AzureOpenAI", MagicMock())
        engine = AssessmentEngine.from_settings(_settings(tmp_path, live=True), sleep=lambda s: None)
        assert isinstance(engine.composer.generator, AzureOpenAIQuestionGenerator)
        assert isinstance(engine.aggregator.narrator, AzureOpenAINarrativeFeedback)
        assert engine.composer.generation_enabled
        assert engine.composer.live_mode
        assert engine.composer.generator._limiter is engine.limiter
        assert engine.aggregator.narrator._limiter is engine.limiter
        assert engine.aggregator.narrator._limiter.min_interval == 1.5

    def test_narrative_call_paced_after_last_scored_question(self, tmp_path, monkeypatch):
        reply = SimpleNamespace(choices=[SimpleNamespace(
            message=SimpleNamespace(content=json.dumps({"feedback": "Well done."})))])
        azure = MagicMock()
        azure.return_value.chat.completions.create.return_value = reply
        monkeypatch.setattr(b2_generative_provider, "AzureOpenAI", MagicMock())
        monkeypatch.setattr(b5_attempt_aggregator, "AzureOpenAI", azure)
        sleeps = []
        engine = AssessmentEngine.from_settings(_settings(tmp_path, live=True), sleep=sleeps.append)

        engine.limiter.wait()
        feedback = engine.aggregator.narrator.summarize([], {}, 0.0)
        assert feedback == "Well done."
        assert len(sleeps) == 1
        assert sleeps[0] == pytest.approx(1.5, abs=0.5)
