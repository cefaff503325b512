"""
Shared pytest fixtures for the assessment engine test suite.
All fixtures use mock mode — no Azure credentials required.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Force mock mode — never call Azure during tests
os.environ["FORCE_MOCK_MODE"] = "true"
os.environ.setdefault("AZURE_OPENAI_ENDPOINT", "<placeholder>")
os.environ.setdefault("AZURE_OPENAI_API_KEY",  "<placeholder>")


import random

import pytest

from factories import FakeClock, InMemoryQuestionStore, RecordingSleep, make_profile

from assessment_engine.b2_question_store import SQLiteQuestionStore
from assessment_engine.rate_limiter import RateLimiter


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def stem_profile():
    return make_profile()


@pytest.fixture
def memory_store(rng):
    return InMemoryQuestionStore(rng=rng)


@pytest.fixture
def sqlite_store(tmp_path, rng):
    return SQLiteQuestionStore(tmp_path / "questions.db", rng=rng)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep(clock):
    return RecordingSleep(clock)


@pytest.fixture
def limiter(clock, recording_sleep):
    return RateLimiter(2.0, clock=clock, sleep=recording_sleep)
