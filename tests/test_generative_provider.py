"""
Tests for b2_generative_provider — deterministic ids and the Azure OpenAI
question generator, driven through a MagicMock client.
Run: python -m pytest tests/test_generative_provider.py -v
"""
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import openai
import pytest

from assessment_engine import b2_generative_provider
from assessment_engine.b2_generative_provider import (
    AzureOpenAIQuestionGenerator,
    QuestionGenerator,
    derive_question_id,
    fnv1a_64,
)
from assessment_engine.config import AzureOpenAIConfig
from assessment_engine.errors import ProviderError
from assessment_engine.models import CODING, LOGIC, Difficulty, QuestionSource, normalize_text
from assessment_engine.rate_limiter import RateLimiter

CFG = AzureOpenAIConfig(
    endpoint="https://unit-test.openai.azure.com",
    api_key="abc123defgh456ijkl789mnop",
    deployment="gpt-4o-test",
    api_version="2024-12-01-preview",
)


def _item(text, correct="B", options=None, **extra):
    return {
        "question_text":  text,
        "options":        options or ["A", "B", "C", "D"],
        "correct_answer": correct,
        "explanation":    f"Because {correct} is right.",
        **extra,
    }


def _response(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(payload):
    client = MagicMock()
    content = payload if isinstance(payload, str) or payload is None else json.dumps(payload)
    client.chat.completions.create.return_value = _response(content)
    return client


def _generator(payload, limiter=None):
    client = _client(payload)
    return AzureOpenAIQuestionGenerator(CFG, client=client, limiter=limiter), client


class TestDeterministicIds:
    def test_fnv_reference_vectors(self):
        assert fnv1a_64("") == 0xCBF29CE484222325
        assert fnv1a_64("a") == 0xAF63DC4C8601EC8C

    def test_same_text_same_id(self):
        a = derive_question_id(CODING, Difficulty.EASY, "What is a stack?")
        b = derive_question_id("coding", "easy", "  what is a STACK ")
        assert a == b
        assert a.startswith("ai_")
        assert len(a) == 3 + 16

    def test_cell_is_part_of_the_key(self):
        text = "What is a stack?"
        assert derive_question_id(CODING, Difficulty.EASY, text) != \
            derive_question_id(CODING, Difficulty.HARD, text)
        assert derive_question_id(CODING, Difficulty.EASY, text) != \
            derive_question_id(LOGIC, Difficulty.EASY, text)


class TestBaseGenerator:
    def test_not_implemented(self):
        with pytest.raises(NotImplementedError):
            QuestionGenerator().generate(CODING, Difficulty.EASY, 1)


class TestAzureGenerator:
    def test_returns_tagged_ai_questions(self):
        gen, _ = _generator({"questions": [_item("What is a stack?"), _item("What is a queue?")]})
        qs = gen.generate(CODING, Difficulty.HARD, 2)
        assert [q.question_text for q in qs] == ["What is a stack?", "What is a queue?"]
        for q in qs:
            assert q.source == QuestionSource.AI
            assert q.category == CODING
            assert q.difficulty == Difficulty.HARD
            assert q.question_id == derive_question_id(CODING, Difficulty.HARD, q.question_text)

    def test_uses_json_mode_and_deployment(self):
        gen, client = _generator({"questions": [_item("What is a stack?")]})
        gen.generate(CODING, Difficulty.EASY, 1, excluded={"what is a heap"})
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-test"
        assert kwargs["response_format"] == {"type": "json_object"}
        user_msg = kwargs["messages"][1]["content"]
        assert "Category: Coding" in user_msg
        assert "Difficulty: easy" in user_msg
        assert "- what is a heap" in user_msg

    def test_excluded_texts_dropped(self):
        gen, _ = _generator({"questions": [_item("What is a Stack?"), _item("What is a queue?")]})
        qs = gen.generate(CODING, Difficulty.EASY, 2, excluded={normalize_text("what is a stack")})
        assert [q.question_text for q in qs] == ["What is a queue?"]

    def test_duplicates_in_output_dropped(self):
        gen, _ = _generator({"questions": [_item("What is a stack?"), _item("what is a stack")]})
        assert len(gen.generate(CODING, Difficulty.EASY, 2)) == 1

    def test_invalid_items_discarded(self, caplog):
        gen, _ = _generator({"questions": [
            _item("Three options only?", options=["A", "B", "C"]),
            _item("Answer not an option?", correct="Z"),
            "not even a dict",
            _item("A valid one?"),
        ]})
        qs = gen.generate(CODING, Difficulty.EASY, 4)
        assert [q.question_text for q in qs] == ["A valid one?"]
        assert "Discarding generated" in caplog.text

    def test_truncates_to_count(self):
        gen, _ = _generator({"questions": [_item(f"Question {i}?") for i in range(5)]})
        assert len(gen.generate(CODING, Difficulty.EASY, 3)) == 3

    def test_zero_count_makes_no_call(self):
        gen, client = _generator({"questions": []})
        assert gen.generate(CODING, Difficulty.EASY, 0) == []
        client.chat.completions.create.assert_not_called()

    def test_enrichment_kept(self):
        gen, _ = _generator({"questions": [_item("What is a stack?", enrichment="LIFO!")]})
        [q] = gen.generate(CODING, Difficulty.EASY, 1)
        assert q.enrichment == "LIFO!"


class TestAzureGeneratorFailures:
    def test_transport_error(self):
        gen, client = _generator({"questions": []})
        client.chat.completions.create.side_effect = openai.OpenAIError("boom")
        with pytest.raises(ProviderError) as exc_info:
            gen.generate(CODING, Difficulty.MEDIUM, 2)
        assert exc_info.value.category == CODING
        assert exc_info.value.difficulty == Difficulty.MEDIUM

    @pytest.mark.parametrize("payload", ["not json at all", None])
    def test_malformed_output(self, payload):
        gen, _ = _generator(payload)
        with pytest.raises(ProviderError, match="malformed"):
            gen.generate(CODING, Difficulty.EASY, 1)

    @pytest.mark.parametrize("payload", [{"items": []}, {"questions": "nope"}, [1, 2]])
    def test_missing_questions_list(self, payload):
        gen, _ = _generator(payload)
        with pytest.raises(ProviderError, match="no 'questions' list"):
            gen.generate(CODING, Difficulty.EASY, 1)

    def test_everything_filtered(self):
        gen, _ = _generator({"questions": [_item("What is a stack?")]})
        with pytest.raises(ProviderError, match="no usable questions"):
            gen.generate(CODING, Difficulty.EASY, 1, excluded={"what is a stack"})

    def test_provider_error_is_source_unavailable(self):
        from assessment_engine.errors import SourceUnavailable
        assert issubclass(ProviderError, SourceUnavailable)


class TestAzureGeneratorWiring:
    def test_calls_are_rate_limited(self, limiter, recording_sleep):
        gen, _ = _generator({"questions": [_item("What is a stack?")]}, limiter=limiter)
        gen.generate(CODING, Difficulty.EASY, 1)
        gen.generate(CODING, Difficulty.EASY, 1)
        assert recording_sleep.calls == [2.0]

    def test_default_client_built_from_config(self, monkeypatch):
        factory = MagicMock()
        monkeypatch.setattr(b2_generative_provider, "AzureOpenAI", factory)
        AzureOpenAIQuestionGenerator(CFG)
        factory.assert_called_once_with(
            azure_endpoint=CFG.endpoint,
            api_key=CFG.api_key,
            api_version=CFG.api_version,
        )
