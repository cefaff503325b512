"""
b0_field_detector.py — Study Field Detector (Block 0)
======================================================
Maps a learner's free-text background to one of six study fields with a
plain keyword scan.  No model, no network; the same profile always lands
in the same field.

Rules
-----
  1. Concatenate field_of_study, current_skills, interests, goals and
     education_level into one lowercase string.
  2. Test keyword lists in fixed priority order:
       STEM → Business → Social Sciences → Health & Medicine → Creative Arts
  3. The first list with any substring hit wins; nothing matches → Other.

Substring matching is deliberate and coarse: short keywords such as "ai"
and "art" hit inside longer words, and the priority order decides who wins.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from assessment_engine.models import STUDY_FIELDS, LearnerProfile, StudyField

logger = logging.getLogger(__name__)


# ── Keyword sets (priority order) ─────────────────────────────────────────────

_FIELD_KEYWORDS: list[tuple[StudyField, tuple[str, ...]]] = [
    (StudyField.STEM, (
        "computer", "software", "programming", "data science", "engineering",
        "physics", "chemistry", "biology", "mathematics", "math", "science",
        "technology", "ai", "machine learning", "cybersecurity",
    )),
    (StudyField.BUSINESS, (
        "business", "finance", "marketing", "economics", "management",
        "entrepreneurship", "accounting", "mba",
    )),
    (StudyField.SOCIAL_SCIENCES, (
        "psychology", "sociology", "political", "social work", "anthropology",
        "history", "philosophy",
    )),
    (StudyField.HEALTH_MEDICINE, (
        "medicine", "medical", "nursing", "pharmacy", "health", "doctor",
        "physician", "therapy",
    )),
    (StudyField.CREATIVE_ARTS, (
        "art", "design", "music", "literature", "creative", "writing",
        "theater", "film", "languages",
    )),
]

_PROFILE_FIELDS = ("field_of_study", "current_skills", "interests", "goals", "education_level")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _profile_text(profile: LearnerProfile | Mapping[str, Any]) -> str:
    """Combine the free-text attributes into a single searchable string."""
    if isinstance(profile, LearnerProfile):
        return profile.combined_text()
    return " ".join(str(profile.get(k) or "") for k in _PROFILE_FIELDS).lower()


# ── Public API ────────────────────────────────────────────────────────────────

def detect(profile: LearnerProfile | Mapping[str, Any]) -> StudyField:
    """Return the study field implied by *profile*; never raises for content."""
    text = _profile_text(profile)
    for study_field, keywords in _FIELD_KEYWORDS:
        hit = next((k for k in keywords if k in text), None)
        if hit is not None:
            logger.debug("Study field %s detected via keyword %r", study_field.value, hit)
            return study_field
    logger.debug("No field keywords matched; defaulting to %s", StudyField.OTHER.value)
    return StudyField.OTHER


def get_study_field_by_id(field_id: str) -> Optional[StudyField]:
    """Resolve a stored field id such as ``"health_medicine"``."""
    try:
        return StudyField(field_id)
    except ValueError:
        return None


def get_study_field_by_name(name: str) -> Optional[StudyField]:
    """
    Case-insensitive lookup against display names and subcategories, e.g.
    ``"nursing"`` → HEALTH_MEDICINE, ``"Economics"`` → BUSINESS.
    """
    needle = (name or "").strip().lower()
    if not needle:
        return None
    for study_field, info in STUDY_FIELDS.items():
        if needle in info["name"].lower():
            return study_field
        if any(needle in sub.lower() for sub in info["subcategories"]):
            return study_field
    return None
