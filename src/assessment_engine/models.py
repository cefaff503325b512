"""
Data models for the Assessment Composition & Scoring Engine.

Static configuration (study fields, category weights, difficulty mixes)
lives next to the records that flow through the engine so every block
imports one module for its vocabulary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from assessment_engine.errors import AttemptStateError, QuestionValidationError


# ─── Enumerations ────────────────────────────────────────────────────────────

class StudyField(str, Enum):
    """Coarse academic / professional domain inferred from the intake form."""
    STEM            = "stem"
    BUSINESS        = "business"
    SOCIAL_SCIENCES = "social_sciences"
    HEALTH_MEDICINE = "health_medicine"
    CREATIVE_ARTS   = "creative_arts"
    OTHER           = "other"


class Difficulty(str, Enum):
    EASY   = "easy"
    MEDIUM = "medium"
    HARD   = "hard"


# Order used whenever a count has to be topped up one question at a time.
DIFFICULTY_PRIORITY: tuple[Difficulty, ...] = (
    Difficulty.MEDIUM,
    Difficulty.EASY,
    Difficulty.HARD,
)


class QuestionSource(str, Enum):
    ADMIN   = "admin"     # entered through the question-bank manager
    AI      = "ai"        # produced by the generative provider and persisted
    CURATED = "curated"   # static fallback bank shipped with the engine


class AttemptStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED   = "submitted"
    TIMED_OUT   = "timed_out"
    EVALUATED   = "evaluated"


# ─── Question categories ─────────────────────────────────────────────────────

CODING          = "Coding"
LOGIC           = "Logic"
MATHEMATICS     = "Mathematics"
LANGUAGE        = "Language"
CULTURE         = "Culture"
VEDIC_KNOWLEDGE = "Vedic Knowledge"
CURRENT_AFFAIRS = "Current Affairs"

CATEGORIES: tuple[str, ...] = (
    CODING, LOGIC, MATHEMATICS, LANGUAGE, CULTURE, VEDIC_KNOWLEDGE, CURRENT_AFFAIRS,
)

# Metadata stamped on every question that enters an assembled set.
QUESTION_TYPE       = "multiple_choice"
DEFAULT_POINTS      = 10
DEFAULT_TIME_LIMIT  = 180   # seconds per question


# ─── Study-field registry ────────────────────────────────────────────────────

STUDY_FIELDS: dict[StudyField, dict] = {
    StudyField.STEM: {
        "name":       "STEM (Science, Technology, Engineering, Mathematics)",
        "short_name": "STEM",
        "description": (
            "Computer Science, Physics, Chemistry, Biology, Engineering "
            "and the Mathematical Sciences."
        ),
        "subcategories": [
            "Computer Science", "Software Engineering", "Data Science",
            "Cybersecurity", "Artificial Intelligence", "Physics", "Chemistry",
            "Biology", "Mathematics", "Engineering", "Information Technology",
        ],
    },
    StudyField.BUSINESS: {
        "name":       "Business & Economics",
        "short_name": "Business",
        "description": (
            "Business administration, economics, finance, marketing, "
            "entrepreneurship and related commercial fields."
        ),
        "subcategories": [
            "Business Administration", "Economics", "Finance", "Marketing",
            "Accounting", "Entrepreneurship", "Management",
            "International Business", "Supply Chain Management", "Human Resources",
        ],
    },
    StudyField.SOCIAL_SCIENCES: {
        "name":       "Social Sciences",
        "short_name": "Social Sciences",
        "description": "Psychology, sociology, political science, anthropology and related disciplines.",
        "subcategories": [
            "Psychology", "Sociology", "Political Science", "Anthropology",
            "International Relations", "Social Work", "Criminology",
            "Geography", "History", "Philosophy",
        ],
    },
    StudyField.HEALTH_MEDICINE: {
        "name":       "Health & Medicine",
        "short_name": "Health & Medicine",
        "description": "Medicine, nursing, pharmacy, public health and other healthcare fields.",
        "subcategories": [
            "Medicine", "Nursing", "Pharmacy", "Public Health", "Dentistry",
            "Veterinary Medicine", "Physical Therapy", "Occupational Therapy",
            "Medical Technology", "Health Administration",
        ],
    },
    StudyField.CREATIVE_ARTS: {
        "name":       "Creative Arts & Humanities",
        "short_name": "Creative Arts",
        "description": "Fine arts, literature, languages, music, theatre, design and the humanities.",
        "subcategories": [
            "Fine Arts", "Literature", "Languages", "Music", "Theater",
            "Film Studies", "Graphic Design", "Creative Writing", "Art History",
            "Linguistics",
        ],
    },
    StudyField.OTHER: {
        "name":       "Other Fields",
        "short_name": "Other",
        "description": "Agriculture, environmental studies, sports science and other specialised fields.",
        "subcategories": [
            "Agriculture", "Environmental Studies", "Sports Science",
            "Hospitality Management", "Tourism", "Architecture",
            "Urban Planning", "Library Science", "Education", "Law",
        ],
    },
}

# Percentage mass per category; each table sums to 100.  Declaration order
# is significant: it breaks ties when picking the primary category.
FIELD_CATEGORY_WEIGHTS: dict[StudyField, dict[str, int]] = {
    StudyField.STEM: {
        CODING: 35, LOGIC: 25, MATHEMATICS: 25, LANGUAGE: 5,
        CULTURE: 5, VEDIC_KNOWLEDGE: 3, CURRENT_AFFAIRS: 2,
    },
    StudyField.BUSINESS: {
        LOGIC: 30, CURRENT_AFFAIRS: 25, LANGUAGE: 20, MATHEMATICS: 10,
        CULTURE: 10, CODING: 3, VEDIC_KNOWLEDGE: 2,
    },
    StudyField.SOCIAL_SCIENCES: {
        LANGUAGE: 30, CULTURE: 25, CURRENT_AFFAIRS: 20, LOGIC: 15,
        VEDIC_KNOWLEDGE: 5, MATHEMATICS: 3, CODING: 2,
    },
    StudyField.HEALTH_MEDICINE: {
        LOGIC: 30, CURRENT_AFFAIRS: 20, LANGUAGE: 20, MATHEMATICS: 15,
        VEDIC_KNOWLEDGE: 8, CULTURE: 5, CODING: 2,
    },
    StudyField.CREATIVE_ARTS: {
        LANGUAGE: 35, CULTURE: 25, VEDIC_KNOWLEDGE: 15, CURRENT_AFFAIRS: 10,
        LOGIC: 10, MATHEMATICS: 3, CODING: 2,
    },
    StudyField.OTHER: {
        LANGUAGE: 20, LOGIC: 20, CURRENT_AFFAIRS: 20, CULTURE: 15,
        MATHEMATICS: 10, VEDIC_KNOWLEDGE: 10, CODING: 5,
    },
}

FIELD_DIFFICULTY_DISTRIBUTION: dict[StudyField, dict[Difficulty, int]] = {
    StudyField.STEM:            {Difficulty.EASY: 25, Difficulty.MEDIUM: 50, Difficulty.HARD: 25},
    StudyField.BUSINESS:        {Difficulty.EASY: 30, Difficulty.MEDIUM: 50, Difficulty.HARD: 20},
    StudyField.SOCIAL_SCIENCES: {Difficulty.EASY: 35, Difficulty.MEDIUM: 45, Difficulty.HARD: 20},
    StudyField.HEALTH_MEDICINE: {Difficulty.EASY: 30, Difficulty.MEDIUM: 50, Difficulty.HARD: 20},
    StudyField.CREATIVE_ARTS:   {Difficulty.EASY: 35, Difficulty.MEDIUM: 45, Difficulty.HARD: 20},
    StudyField.OTHER:           {Difficulty.EASY: 30, Difficulty.MEDIUM: 50, Difficulty.HARD: 20},
}


def get_question_weights(study_field: StudyField | str) -> dict[str, int]:
    """Return the category weight table for *study_field*, defaulting to Other."""
    try:
        return FIELD_CATEGORY_WEIGHTS[StudyField(study_field)]
    except ValueError:
        return FIELD_CATEGORY_WEIGHTS[StudyField.OTHER]


def get_difficulty_distribution(study_field: StudyField | str) -> dict[Difficulty, int]:
    """Return the difficulty mix for *study_field*, defaulting to Other."""
    try:
        return FIELD_DIFFICULTY_DISTRIBUTION[StudyField(study_field)]
    except ValueError:
        return FIELD_DIFFICULTY_DISTRIBUTION[StudyField.OTHER]


# ─── Dedup key ───────────────────────────────────────────────────────────────

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE  = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    stripped = _PUNCTUATION.sub("", (text or "").lower())
    return _WHITESPACE.sub(" ", stripped).strip()


# ─── Question ────────────────────────────────────────────────────────────────

class Question(BaseModel):
    """
    A single four-option multiple-choice question.

    Immutable once constructed; tagging for an assembled set goes through
    ``tagged()`` which returns a copy.
    """
    model_config = ConfigDict(frozen=True)

    question_id:        str = Field(min_length=1)
    category:           str = Field(min_length=1)
    difficulty:         Difficulty
    question_text:      str = Field(min_length=1)
    options:            list[str]
    correct_answer:     str = Field(min_length=1)
    explanation:        str = Field(min_length=1)
    enrichment:         Optional[str] = None
    source:             QuestionSource = QuestionSource.CURATED
    is_active:          bool = True
    type:               str = QUESTION_TYPE
    points:             int = DEFAULT_POINTS
    time_limit_seconds: int = DEFAULT_TIME_LIMIT

    @field_validator("options")
    @classmethod
    def _exactly_four_options(cls, options: list[str]) -> list[str]:
        if len(options) != 4:
            raise ValueError("Questions must have exactly 4 options")
        if any(not str(o).strip() for o in options):
            raise ValueError("Options must be non-empty")
        return options

    @model_validator(mode="after")
    def _correct_answer_is_an_option(self) -> "Question":
        if self.correct_answer not in self.options:
            raise ValueError("Correct answer must be one of the provided options")
        return self

    @property
    def normalized_text(self) -> str:
        return normalize_text(self.question_text)

    def tagged(self, category: str, difficulty: Difficulty) -> "Question":
        """Return a copy stamped with the cell it was sourced for."""
        return self.model_copy(update={
            "category":           category,
            "difficulty":         Difficulty(difficulty),
            "type":               QUESTION_TYPE,
            "points":             DEFAULT_POINTS,
            "time_limit_seconds": DEFAULT_TIME_LIMIT,
        })


_REQUIRED_QUESTION_FIELDS = ("question_text", "options", "correct_answer", "explanation")


def validate_question(data: dict[str, Any]) -> Question:
    """
    Build a Question from a loosely-typed dict (database row, LLM output).

    Raises:
        QuestionValidationError – missing fields, wrong option count, or a
                                  correct answer that is not one of the options.
    """
    missing = [f for f in _REQUIRED_QUESTION_FIELDS if not data.get(f)]
    if missing:
        raise QuestionValidationError(f"Missing required fields: {', '.join(missing)}")
    try:
        return Question.model_validate(data)
    except ValidationError as exc:
        reasons = "; ".join(err["msg"] for err in exc.errors())
        raise QuestionValidationError(reasons) from exc


# ─── Learner input ───────────────────────────────────────────────────────────

@dataclass
class LearnerProfile:
    """
    Background data collected by the intake form.  Free text throughout;
    the engine never stores it.
    """
    field_of_study:  str = ""
    current_skills:  str = ""
    interests:       str = ""
    goals:           str = ""
    education_level: str = ""
    student_name:    str = ""

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "LearnerProfile":
        return cls(**{k: str(data.get(k) or "") for k in (
            "field_of_study", "current_skills", "interests",
            "goals", "education_level", "student_name",
        )})

    def combined_text(self) -> str:
        return " ".join((
            self.field_of_study, self.current_skills, self.interests,
            self.goals, self.education_level,
        )).lower()


# ─── Assembly output ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AssembledSet:
    """Ordered, deduplicated questions handed to the UI for one attempt."""
    questions:        tuple[Question, ...]
    requested:        int
    study_field:      StudyField
    primary_category: str
    used_fallback:    bool = False       # legacy distribution generator ran
    trace:            Any = None         # agent_trace.RunTrace

    def __len__(self) -> int:
        return len(self.questions)

    def __iter__(self):
        return iter(self.questions)

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - len(self.questions))

    @property
    def is_short(self) -> bool:
        return self.shortfall > 0


# ─── Attempt lifecycle ───────────────────────────────────────────────────────

@dataclass
class Attempt:
    """
    One learner's pass through an assembled set.

    NotStarted → InProgress → Submitted | TimedOut → Evaluated
    """
    attempt_id:          str
    questions:           list[Question]
    answers:             dict[str, str] = field(default_factory=dict)
    explanations:        dict[str, str] = field(default_factory=dict)
    status:              AttemptStatus = AttemptStatus.NOT_STARTED
    started_at:          Optional[datetime] = None
    ended_at:            Optional[datetime] = None
    time_limit_seconds:  int = 30 * 60
    learner:             Optional[LearnerProfile] = None

    def _require(self, *allowed: AttemptStatus) -> None:
        if self.status not in allowed:
            expected = " or ".join(s.value for s in allowed)
            raise AttemptStateError(
                f"Attempt {self.attempt_id} is {self.status.value}; expected {expected}"
            )

    def start(self, now: Optional[datetime] = None) -> None:
        self._require(AttemptStatus.NOT_STARTED)
        self.started_at = now or datetime.now()
        self.status = AttemptStatus.IN_PROGRESS

    def record_answer(self, question_id: str, answer: str, explanation: str = "") -> None:
        self._require(AttemptStatus.IN_PROGRESS)
        self.answers[question_id] = answer
        self.explanations[question_id] = explanation

    def submit(self, now: Optional[datetime] = None) -> None:
        self._require(AttemptStatus.IN_PROGRESS)
        self.ended_at = now or datetime.now()
        self.status = AttemptStatus.SUBMITTED

    def time_out(self, now: Optional[datetime] = None) -> None:
        """Auto-submit with whatever answers exist right now."""
        self._require(AttemptStatus.IN_PROGRESS)
        self.ended_at = now or datetime.now()
        self.status = AttemptStatus.TIMED_OUT

    def mark_evaluated(self) -> None:
        self._require(AttemptStatus.SUBMITTED, AttemptStatus.TIMED_OUT)
        self.status = AttemptStatus.EVALUATED

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.started_at is None:
            return False
        deadline = self.started_at + timedelta(seconds=self.time_limit_seconds)
        return (now or datetime.now()) >= deadline

    @property
    def is_evaluable(self) -> bool:
        return self.status in (AttemptStatus.SUBMITTED, AttemptStatus.TIMED_OUT)

    @property
    def time_taken_seconds(self) -> float:
        if self.started_at is None or self.ended_at is None:
            return 0.0
        return max(0.0, (self.ended_at - self.started_at).total_seconds())


# ─── Scoring output ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ResponseEvaluation:
    """Rubric result for one (question, answer, explanation) triple."""
    question_id:       str
    category:          str
    difficulty:        str
    user_answer:       str
    user_explanation:  str
    correct_answer:    str
    is_correct:        bool
    accuracy_score:    float   # 0–10
    explanation_score: float   # 0–10
    reasoning_score:   float   # 0–10
    total_score:       float   # weighted, 0–max_score
    max_score:         float
    feedback:          str
    suggestions:       str


@dataclass
class CategoryScore:
    total:     float = 0.0
    max_score: float = 0.0
    count:     int   = 0

    @property
    def percentage(self) -> float:
        return (self.total / self.max_score) * 100 if self.max_score > 0 else 0.0


@dataclass(frozen=True)
class CategoryFinding:
    """A strength or an improvement area in the final report."""
    category:    str
    percentage:  float
    description: str
    suggestion:  Optional[str] = None


@dataclass
class AttemptReport:
    """Aggregate outcome of one evaluated attempt."""
    attempt_id:         str
    evaluations:        list[ResponseEvaluation]
    total_score:        float
    max_score:          float
    percentage:         float
    category_scores:    dict[str, CategoryScore]
    grade:              str
    strengths:          list[CategoryFinding]
    improvement_areas:  list[CategoryFinding]
    overall_feedback:   str
    feedback_source:    str = "template"     # "narrative" | "template"
    time_taken_seconds: float = 0.0
    evaluated_at:       str = ""

    @property
    def correct_count(self) -> int:
        return sum(1 for e in self.evaluations if e.is_correct)
