"""
Tests for the rich terminal runner — rendering and the prompt loop, with
Prompt / IntPrompt patched so nothing waits on stdin.
Run: python -m pytest tests/test_cli.py -v
"""
from datetime import datetime

import pytest
from rich.console import Console

from factories import make_attempt, make_evaluation, make_numbered_questions, make_question

from assessment_engine import cli
from assessment_engine.b5_attempt_aggregator import AttemptAggregator
from assessment_engine.engine import AssessmentEngine
from assessment_engine.errors import AssemblyFailed
from assessment_engine.models import CODING, LOGIC, Attempt, AttemptStatus


@pytest.fixture
def recorded_console(monkeypatch):
    out = Console(record=True, width=160, force_terminal=False)
    monkeypatch.setattr(cli, "console", out)
    monkeypatch.setattr(cli, "configure_logging", lambda verbose=False: None)
    return out


@pytest.fixture
def scripted_prompts(monkeypatch):
    """Answer every profile prompt, pick option 2, explain every answer."""
    int_answers = []

    def fake_ask(prompt, **kwargs):
        if "Field of study" in prompt:
            return "Computer Science"
        if "Why?" in prompt:
            return "Because it follows from the definition."
        return kwargs.get("default", "")

    def fake_int_ask(prompt, **kwargs):
        return int_answers.pop(0) if int_answers else 2

    monkeypatch.setattr(cli.Prompt, "ask", staticmethod(fake_ask))
    monkeypatch.setattr(cli.IntPrompt, "ask", staticmethod(fake_int_ask))
    return int_answers


class TestBar:
    def test_full_and_empty(self):
        assert cli._bar(100, width=4) == "[████] 100.0%"
        assert cli._bar(0, width=4) == "[░░░░] 0.0%"

    def test_clamped(self):
        assert cli._bar(150, width=2).startswith("[██]")


class TestRenderReport:
    def test_report_sections(self, recorded_console):
        attempt = make_attempt([make_question()])
        report = AttemptAggregator().aggregate(attempt, [
            make_evaluation(LOGIC, 9.0, question_id="l1"),
            make_evaluation(CODING, 3.0, is_correct=False, question_id="c1"),
        ])
        cli.render_report(report)
        text = recorded_console.export_text()
        assert "Assessment Report" in text
        assert "By Category" in text
        assert "Strong performance in Logic" in text
        assert "Needs improvement in Coding" in text
        assert "Overall Feedback" in text
        assert "(template)" in text


class TestRunAttempt:
    def test_answers_and_skips(self, recorded_console, scripted_prompts):
        questions = make_numbered_questions(2)
        attempt = Attempt(attempt_id="cli-1", questions=questions)
        attempt.start(datetime.now())
        scripted_prompts.extend([2, 0])
        cli.run_attempt(attempt)
        assert attempt.status == AttemptStatus.SUBMITTED
        assert attempt.answers == {questions[0].question_id: "beta"}
        assert attempt.explanations[questions[0].question_id].startswith("Because")

    def test_expired_attempt_times_out(self, recorded_console, scripted_prompts):
        attempt = Attempt(attempt_id="cli-2", questions=make_numbered_questions(2))
        attempt.start(datetime(2020, 1, 1))
        cli.run_attempt(attempt)
        assert attempt.status == AttemptStatus.TIMED_OUT
        assert attempt.answers == {}
        assert "Time is up" in recorded_console.export_text()


class TestMain:
    @pytest.fixture(autouse=True)
    def _env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FORCE_MOCK_MODE", "true")
        monkeypatch.setenv("ASSESSMENT_DB_PATH", str(tmp_path / "cli.db"))
        monkeypatch.setenv("EVALUATION_DELAY_SECONDS", "0")

    def test_full_run(self, recorded_console, scripted_prompts):
        assert cli.main(["--count", "3"]) == 0
        text = recorded_console.export_text()
        assert "3 question(s) ready" in text
        assert "field: STEM" in text
        assert "Assessment Report" in text

    def test_assembly_failure_exits_with_error(self, recorded_console, scripted_prompts, monkeypatch):
        def boom(self, profile, count=None):
            raise AssemblyFailed("every source failed")

        monkeypatch.setattr(AssessmentEngine, "compose_assignment", boom)
        assert cli.main([]) == 1
        assert "every source failed" in recorded_console.export_text()
