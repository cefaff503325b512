"""
b3_legacy_generator.py — Legacy Distribution Generator (Block 3 fallback)
==========================================================================
The older, simpler composition algorithm.  It only runs when the tiered
composer hits an unexpected error, and it reads nothing but the curated
bank, so it works with every live source down.

  1. per category:            round(weight / 100 × total)
  2. per category-difficulty: round(diff_weight / 100 × category_count)
  3. total ≠ target → add the difference to the highest-weight category's
     first difficulty bucket (never below 1)
  4. draw each cell at random from the curated bank

The "already used" set is created per call and passed down explicitly, so
two compositions never share state.  A bank cell whose questions are all
used may repeat questions; the composer dedupes the output afterwards.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Optional, Sequence

from assessment_engine import question_bank
from assessment_engine.b1_distribution_planner import primary_category, round_half_up
from assessment_engine.b2_question_store import select_random, shuffle_questions
from assessment_engine.models import Difficulty, Question

logger = logging.getLogger(__name__)

BankLookup = Callable[[str, Difficulty], Sequence[Question]]

# {category: {difficulty: count}}, insertion order follows the weight table
Distribution = dict[str, dict[Difficulty, int]]


class LegacyDistributionGenerator:
    """Category × difficulty distribution drawn straight from the curated bank."""

    def __init__(self, bank: Optional[BankLookup] = None,
                 rng: Optional[random.Random] = None) -> None:
        self._bank = bank or question_bank.curated_questions
        self._rng = rng or random.Random()

    # ── Planning ─────────────────────────────────────────────────────────────

    def calculate_distribution(self, weights: dict[str, int],
                               difficulty_distribution: dict[Difficulty, int],
                               total: int) -> Distribution:
        distribution: Distribution = {}
        for category, weight in weights.items():
            category_count = round_half_up(weight / 100 * total)
            if category_count <= 0:
                continue
            cells: dict[Difficulty, int] = {}
            for difficulty, diff_weight in difficulty_distribution.items():
                n = round_half_up(diff_weight / 100 * category_count)
                if n > 0:
                    cells[Difficulty(difficulty)] = n
            distribution[category] = cells

        self._adjust_to_total(distribution, weights, difficulty_distribution, total)
        return distribution

    @staticmethod
    def _adjust_to_total(distribution: Distribution, weights: dict[str, int],
                         difficulty_distribution: dict[Difficulty, int], total: int) -> None:
        current = sum(n for cells in distribution.values() for n in cells.values())
        difference = total - current
        if difference == 0 or total <= 0 or not weights:
            return

        main_category = primary_category(weights)
        cells = distribution.setdefault(main_category, {})
        if cells:
            main_difficulty = next(iter(cells))
        else:
            main_difficulty = Difficulty(next(iter(difficulty_distribution), Difficulty.MEDIUM))
        cells[main_difficulty] = max(1, cells.get(main_difficulty, 0) + difference)
        logger.debug("Legacy distribution off by %+d; adjusted %s/%s to %d",
                     difference, main_category, main_difficulty.value, cells[main_difficulty])

    # ── Filling ──────────────────────────────────────────────────────────────

    def _draw(self, category: str, difficulty: Difficulty, count: int,
              used: set[str]) -> list[Question]:
        available = list(self._bank(category, difficulty))
        if not available:
            logger.warning("No curated questions for %s/%s", category, difficulty.value)
            return []

        unused = [q for q in available if q.question_id not in used]
        if not unused:
            logger.warning("All curated %s/%s questions already used; repeating", category, difficulty.value)
            selected = select_random(available, count, self._rng)
        else:
            selected = select_random(unused, count, self._rng)
        used.update(q.question_id for q in selected)
        return [q.tagged(category, difficulty) for q in selected]

    def fill(self, distribution: Distribution) -> list[Question]:
        used: set[str] = set()
        questions: list[Question] = []
        for category, cells in distribution.items():
            for difficulty, count in cells.items():
                if count > 0:
                    questions.extend(self._draw(category, difficulty, count, used))
        return shuffle_questions(questions, self._rng)

    def plan_and_fill(self, weights: dict[str, int],
                      difficulty_distribution: dict[Difficulty, int],
                      total: int) -> list[Question]:
        """Plan the category × difficulty grid for *total* and fill it."""
        distribution = self.calculate_distribution(weights, difficulty_distribution, total)
        logger.debug("Legacy distribution: %s", {
            c: {d.value: n for d, n in cells.items()} for c, cells in distribution.items()
        })
        return self.fill(distribution)
