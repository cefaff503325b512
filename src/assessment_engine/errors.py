"""
errors.py — Exception taxonomy for the assessment engine
=========================================================
Only ``AssemblyFailed`` and ``AttemptStateError`` ever reach the UI layer.
Everything else is raised at a collaborator boundary and recovered locally
by the next sourcing tier or by the offline fallbacks.

  AssessmentError
  ├── SourceUnavailable          store / transport failure (recovered)
  │   └── ProviderError          question generation failed (recovered)
  ├── QuestionValidationError    structural invariant violated (rejected)
  ├── AssemblyFailed             every composition path failed (surfaced)
  └── AttemptStateError          illegal attempt transition (surfaced)
"""

from __future__ import annotations

from typing import Optional


class AssessmentError(Exception):
    """Base class for every error raised by the engine."""


class SourceUnavailable(AssessmentError):
    """A question source (database, provider) could not be reached."""


class ProviderError(SourceUnavailable):
    """The generative provider timed out, was rate limited, or returned junk."""

    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.category   = category
        self.difficulty = difficulty


class QuestionValidationError(AssessmentError, ValueError):
    """A question failed its structural checks and must not be served."""


class AssemblyFailed(AssessmentError):
    """Composition failed on the tiered path and on the legacy fallback."""


class AttemptStateError(AssessmentError):
    """An attempt was moved through an illegal state transition."""
