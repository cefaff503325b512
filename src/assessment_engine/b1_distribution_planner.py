"""
b1_distribution_planner.py — Distribution Planner (Block 1)
============================================================
Turns a study field into concrete question counts.

  primary_category(weights)
      Category with the single highest weight; ties go to the category
      declared first in the field's table.

  high_priority_count(total)
      Questions reserved for curated / admin sourcing before generation:
        total ≤ 10  →  min(5, total)
        total > 10  →  min(10, total)

  split_by_difficulty(count, distribution)
      1. allocate round-half-up(weight / weight_sum × count) per difficulty
      2. count > 0 and medium rounded to 0  →  medium = 1
      3. over-allocated  →  decrement hard, easy, medium (first non-zero)
      4. under-allocated →  increment medium, easy, hard (round-robin)
      until the buckets sum exactly to count.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from assessment_engine.models import (
    DIFFICULTY_PRIORITY,
    Difficulty,
    StudyField,
    get_difficulty_distribution,
    get_question_weights,
)

logger = logging.getLogger(__name__)

_SMALL_ASSIGNMENT      = 10   # totals up to this size reserve at most…
_SMALL_PRIORITY_CAP    = 5    # …this many admin-priority questions
_LARGE_PRIORITY_CAP    = 10

_DECREMENT_ORDER: tuple[Difficulty, ...] = (Difficulty.HARD, Difficulty.EASY, Difficulty.MEDIUM)


@dataclass
class DistributionPlan:
    """Everything the composer needs to know before it starts sourcing."""
    study_field:             StudyField
    total:                   int
    category_weights:        dict[str, int]
    difficulty_distribution: dict[Difficulty, int]
    primary_category:        str
    high_priority:           int
    high_priority_split:     dict[Difficulty, int] = field(default_factory=dict)

    def split(self, count: int) -> dict[Difficulty, int]:
        return split_by_difficulty(count, self.difficulty_distribution)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def primary_category(weights: dict[str, int]) -> str:
    """Highest-weight category; the first declared wins a tie."""
    if not weights:
        raise ValueError("Category weight table is empty")
    best, best_weight = None, -1
    for category, weight in weights.items():
        if weight > best_weight:
            best, best_weight = category, weight
    return best


def high_priority_count(total: int) -> int:
    if total <= _SMALL_ASSIGNMENT:
        return max(0, min(_SMALL_PRIORITY_CAP, total))
    return min(_LARGE_PRIORITY_CAP, total)


def split_by_difficulty(count: int, distribution: dict[Difficulty, int]) -> dict[Difficulty, int]:
    """Split *count* across easy / medium / hard so the buckets sum exactly to it."""
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")

    weights = {d: max(0, distribution.get(d, 0)) for d in Difficulty}
    weight_sum = sum(weights.values())
    if weight_sum == 0:
        weights = {d: 1 for d in Difficulty}
        weight_sum = len(weights)

    alloc = {d: round_half_up(w / weight_sum * count) for d, w in weights.items()}
    if count > 0 and alloc[Difficulty.MEDIUM] == 0:
        alloc[Difficulty.MEDIUM] = 1

    while sum(alloc.values()) > count:
        for d in _DECREMENT_ORDER:
            keeps_forced_medium = d == Difficulty.MEDIUM and alloc[d] == 1
            if alloc[d] > 0 and not keeps_forced_medium:
                alloc[d] -= 1
                break
        else:
            alloc[Difficulty.MEDIUM] -= 1

    step = 0
    while sum(alloc.values()) < count:
        alloc[DIFFICULTY_PRIORITY[step % len(DIFFICULTY_PRIORITY)]] += 1
        step += 1

    return {d: alloc[d] for d in (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)}


def plan_counts(study_field: StudyField, total: int) -> DistributionPlan:
    """Build the sourcing plan for one assembly of *total* questions."""
    weights      = get_question_weights(study_field)
    distribution = get_difficulty_distribution(study_field)
    priority     = high_priority_count(total)

    plan = DistributionPlan(
        study_field             = study_field,
        total                   = total,
        category_weights        = weights,
        difficulty_distribution = distribution,
        primary_category        = primary_category(weights),
        high_priority           = priority,
        high_priority_split     = split_by_difficulty(priority, distribution),
    )
    logger.debug(
        "Plan for %s: total=%d primary=%s high_priority=%d split=%s",
        study_field.value, total, plan.primary_category, priority,
        {d.value: n for d, n in plan.high_priority_split.items()},
    )
    return plan
