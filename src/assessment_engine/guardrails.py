"""
guardrails.py – Structural guardrails for assembled sets and attempts
=====================================================================
Checks that wrap the two engine entry points.

Guardrail levels
----------------
BLOCK   – Hard-stop: the engine raises instead of returning.
WARN    – Soft-stop: the engine proceeds and logs a warning.
INFO    – Advisory: informational note only.

Guards implemented
------------------
Assembly guards (after compose):
  A-01  Set shorter than requested (documented degraded result)
  A-02  Set longer than requested
  A-03  Duplicate normalized question text
  A-04  Question without exactly 4 options, or correct answer not among them

Attempt guards (before evaluation):
  T-01  Answers keyed by question ids that are not in the attempt
  T-02  Attempt is not Submitted / TimedOut
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from assessment_engine.models import AssembledSet, Attempt, AttemptStatus


# ─── Enums & data models ─────────────────────────────────────────────────────

class GuardrailLevel(str, Enum):
    BLOCK = "BLOCK"
    WARN  = "WARN"
    INFO  = "INFO"


@dataclass
class GuardrailViolation:
    code:    str
    level:   GuardrailLevel
    message: str
    field:   str = ""   # which question / answer triggered the violation


@dataclass
class GuardrailResult:
    passed:     bool
    violations: list[GuardrailViolation] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return any(v.level == GuardrailLevel.BLOCK for v in self.violations)

    @property
    def warnings(self) -> list[GuardrailViolation]:
        return [v for v in self.violations if v.level == GuardrailLevel.WARN]

    @property
    def codes(self) -> list[str]:
        return [v.code for v in self.violations]

    def summary(self) -> str:
        if not self.violations:
            return "✅ All guardrails passed."
        icons = {GuardrailLevel.BLOCK: "🚫", GuardrailLevel.WARN: "⚠️", GuardrailLevel.INFO: "ℹ️"}
        return "\n".join(f"{icons[v.level]} [{v.code}] {v.message}" for v in self.violations)


def _result(violations: list[GuardrailViolation]) -> GuardrailResult:
    return GuardrailResult(
        passed=not any(v.level == GuardrailLevel.BLOCK for v in violations),
        violations=violations,
    )


# ─── Assembly ────────────────────────────────────────────────────────────────

class AssemblyGuardrails:
    """A-01 – A-04: Validates an AssembledSet before it reaches the learner."""

    def check(self, assembled: AssembledSet) -> GuardrailResult:
        violations: list[GuardrailViolation] = []
        n, requested = len(assembled.questions), assembled.requested

        # A-01 / A-02 size
        if n < requested:
            violations.append(GuardrailViolation(
                code="A-01", level=GuardrailLevel.WARN,
                message=f"Assembled {n} of {requested} requested questions; sources exhausted.",
            ))
        elif n > requested:
            violations.append(GuardrailViolation(
                code="A-02", level=GuardrailLevel.BLOCK,
                message=f"Assembled {n} questions but only {requested} were requested.",
            ))

        # A-03 duplicates on normalized text
        counts = Counter(q.normalized_text for q in assembled.questions)
        dups = sorted(t for t, c in counts.items() if c > 1)
        if dups:
            violations.append(GuardrailViolation(
                code="A-03", level=GuardrailLevel.BLOCK,
                message=f"Duplicate question text detected: {dups}.",
            ))

        # A-04 option structure
        for q in assembled.questions:
            if len(q.options) != 4 or q.correct_answer not in q.options:
                violations.append(GuardrailViolation(
                    code="A-04", level=GuardrailLevel.BLOCK,
                    message=f"Question {q.question_id} needs 4 options including the correct answer.",
                    field=q.question_id,
                ))

        return _result(violations)


# ─── Attempt ─────────────────────────────────────────────────────────────────

class AttemptGuardrails:
    """T-01 – T-02: Validates an Attempt before evaluation starts."""

    def check(self, attempt: Attempt) -> GuardrailResult:
        violations: list[GuardrailViolation] = []

        # T-01 unknown answer keys
        known = {q.question_id for q in attempt.questions}
        unknown = sorted((set(attempt.answers) | set(attempt.explanations)) - known)
        if unknown:
            violations.append(GuardrailViolation(
                code="T-01", level=GuardrailLevel.WARN,
                message=f"Answers for unknown question ids will be ignored: {unknown}.",
                field=", ".join(unknown),
            ))

        # T-02 evaluable state
        if attempt.status not in (AttemptStatus.SUBMITTED, AttemptStatus.TIMED_OUT):
            violations.append(GuardrailViolation(
                code="T-02", level=GuardrailLevel.BLOCK,
                message=(
                    f"Attempt {attempt.attempt_id} is {attempt.status.value}; "
                    "only submitted or timed-out attempts can be evaluated."
                ),
            ))

        return _result(violations)


# ─── Convenience façade ───────────────────────────────────────────────────────

class GuardrailsPipeline:
    """
    Single entry-point for the engine.

    Usage::

        gp = GuardrailsPipeline()
        result = gp.check_assembly(assembled)   # after compose
        result = gp.check_attempt(attempt)      # before evaluation
    """

    def __init__(self):
        self.assembly_guard = AssemblyGuardrails()
        self.attempt_guard  = AttemptGuardrails()

    def check_assembly(self, assembled: AssembledSet) -> GuardrailResult:
        return self.assembly_guard.check(assembled)

    def check_attempt(self, attempt: Attempt) -> GuardrailResult:
        return self.attempt_guard.check(attempt)

    def merge(self, *results: GuardrailResult) -> GuardrailResult:
        """Merge multiple GuardrailResult objects into one."""
        return _result([v for r in results for v in r.violations])
