"""
config.py — Central settings for the Assessment Engine
=======================================================
All configuration is loaded from environment variables / .env file.
Copy .env.example → .env and fill in your values.

Live mode (question generation + narrative feedback through Azure OpenAI)
activates automatically when AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY
contain real (non-placeholder) values and FORCE_MOCK_MODE is not set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env into os.environ (no-op if already set, safe to call multiple times)
load_dotenv(override=False)

_WORKSPACE_ROOT = Path(__file__).resolve().parent.parent.parent


# ─── Helpers ────────────────────────────────────────────────────────────────

def _is_placeholder(value: str) -> bool:
    """Return True if the value looks like an unfilled template placeholder."""
    return not value or "<" in value or value.startswith("your-") or value == "PLACEHOLDER"


# ─── Azure OpenAI ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AzureOpenAIConfig:
    endpoint:    str
    api_key:     str
    deployment:  str
    api_version: str

    @property
    def is_configured(self) -> bool:
        """True when both endpoint and key are real (non-placeholder) values."""
        return (
            bool(self.endpoint)
            and bool(self.api_key)
            and not _is_placeholder(self.endpoint)
            and not _is_placeholder(self.api_key)
        )


# ─── Engine behaviour ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EngineConfig:
    generation_enabled:        bool    # operational kill-switch for the provider
    force_mock_mode:           bool
    total_questions:           int
    time_limit_minutes:        int
    evaluation_delay_seconds:  float   # pause between external calls
    db_path:                   str


# ─── Scoring rubric ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RubricConfig:
    accuracy_weight:        float = 0.5
    explanation_weight:     float = 0.3
    reasoning_weight:       float = 0.2
    max_score_per_question: float = 10.0

    def __post_init__(self) -> None:
        total = self.accuracy_weight + self.explanation_weight + self.reasoning_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Rubric weights must sum to 1.0, got {total:.4f}")


# ─── Master settings object ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    openai:  AzureOpenAIConfig
    engine:  EngineConfig
    rubric:  RubricConfig

    @property
    def live_mode(self) -> bool:
        """Automatically True when Azure OpenAI creds are real and FORCE_MOCK_MODE is false."""
        return self.openai.is_configured and not self.engine.force_mock_mode

    def status_summary(self) -> dict[str, str]:
        """Return a dict of service → status badge for the terminal runner."""
        def badge(ok: bool) -> str:
            return "🟢 Live" if ok else "⚪ Not configured"

        return {
            "Azure OpenAI":          badge(self.openai.is_configured),
            "Question generation":   badge(self.live_mode and self.engine.generation_enabled),
            "Narrative feedback":    badge(self.live_mode),
        }


def get_settings() -> Settings:
    """Load all configuration from environment variables."""
    _str   = lambda k, d="": os.getenv(k, d).strip()
    _int   = lambda k, d=0: int(os.getenv(k, str(d)) or d)
    _float = lambda k, d=0.0: float(os.getenv(k, str(d)) or d)
    _bool  = lambda k, d=False: os.getenv(k, str(d)).lower() in ("1", "true", "yes")

    return Settings(
        openai=AzureOpenAIConfig(
            endpoint    = _str("AZURE_OPENAI_ENDPOINT").rstrip("/"),
            api_key     = _str("AZURE_OPENAI_API_KEY"),
            deployment  = _str("AZURE_OPENAI_DEPLOYMENT", "gpt-4o"),
            api_version = _str("AZURE_OPENAI_API_VERSION", "2024-12-01-preview"),
        ),
        engine=EngineConfig(
            generation_enabled       = _bool("QUESTION_GENERATION_ENABLED", True),
            force_mock_mode          = _bool("FORCE_MOCK_MODE", False),
            total_questions          = _int("ASSIGNMENT_TOTAL_QUESTIONS", 10),
            time_limit_minutes       = _int("ASSIGNMENT_TIME_LIMIT_MINUTES", 30),
            evaluation_delay_seconds = _float("EVALUATION_DELAY_SECONDS", 2.0),
            db_path                  = _str("ASSESSMENT_DB_PATH",
                                            str(_WORKSPACE_ROOT / "assessment_data.db")),
        ),
        rubric=RubricConfig(
            accuracy_weight    = _float("RUBRIC_ACCURACY_WEIGHT", 0.5),
            explanation_weight = _float("RUBRIC_EXPLANATION_WEIGHT", 0.3),
            reasoning_weight   = _float("RUBRIC_REASONING_WEIGHT", 0.2),
        ),
    )
