"""
Tests for b1_distribution_planner — primary category, priority count and
the difficulty split with its rounding repair.
Run: python -m pytest tests/test_distribution_planner.py -v
"""
import pytest

from assessment_engine.b1_distribution_planner import (
    high_priority_count,
    plan_counts,
    primary_category,
    round_half_up,
    split_by_difficulty,
)
from assessment_engine.models import (
    CODING,
    FIELD_CATEGORY_WEIGHTS,
    FIELD_DIFFICULTY_DISTRIBUTION,
    LANGUAGE,
    LOGIC,
    Difficulty,
    StudyField,
)

E, M, H = Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD


class TestWeightTables:
    @pytest.mark.parametrize("study_field", list(StudyField))
    def test_category_weights_sum_to_100(self, study_field):
        assert sum(FIELD_CATEGORY_WEIGHTS[study_field].values()) == 100

    @pytest.mark.parametrize("study_field", list(StudyField))
    def test_difficulty_weights_sum_to_100(self, study_field):
        assert sum(FIELD_DIFFICULTY_DISTRIBUTION[study_field].values()) == 100


class TestRounding:
    @pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (0.0, 0)])
    def test_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestSplitByDifficulty:
    @pytest.mark.parametrize("study_field", list(StudyField))
    def test_sums_exactly_for_every_count(self, study_field):
        distribution = FIELD_DIFFICULTY_DISTRIBUTION[study_field]
        for count in range(0, 51):
            split = split_by_difficulty(count, distribution)
            assert sum(split.values()) == count, (study_field, count, split)
            assert all(v >= 0 for v in split.values())
            if count > 0:
                assert split[M] >= 1

    def test_five_under_stem_distribution(self):
        split = split_by_difficulty(5, {E: 25, M: 50, H: 25})
        assert split == {E: 1, M: 3, H: 1}

    def test_zero_count(self):
        assert split_by_difficulty(0, {E: 25, M: 50, H: 25}) == {E: 0, M: 0, H: 0}

    def test_medium_forced_to_one(self):
        # 0.35 / 0.45 / 0.20 of 1 all round to 0
        assert split_by_difficulty(1, {E: 35, M: 45, H: 20}) == {E: 0, M: 1, H: 0}

    def test_over_allocation_trims_hard_first(self):
        # thirds of 2 each round up to 1 → 3, one too many
        assert split_by_difficulty(2, {E: 1, M: 1, H: 1}) == {E: 1, M: 1, H: 0}

    def test_over_allocation_of_five(self):
        assert split_by_difficulty(5, {E: 1, M: 1, H: 1}) == {E: 2, M: 2, H: 1}

    def test_under_allocation_tops_up_medium_first(self):
        assert split_by_difficulty(4, {E: 1, M: 1, H: 1}) == {E: 1, M: 2, H: 1}

    def test_zero_weights_fall_back_to_uniform(self):
        assert split_by_difficulty(3, {}) == {E: 1, M: 1, H: 1}

    def test_keys_in_difficulty_order(self):
        assert list(split_by_difficulty(7, {H: 20, M: 50, E: 30})) == [E, M, H]

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            split_by_difficulty(-1, {E: 30, M: 50, H: 20})


class TestPrimaryCategory:
    @pytest.mark.parametrize("study_field, expected", [
        (StudyField.STEM,            CODING),
        (StudyField.BUSINESS,        LOGIC),
        (StudyField.SOCIAL_SCIENCES, LANGUAGE),
        (StudyField.HEALTH_MEDICINE, LOGIC),
        (StudyField.CREATIVE_ARTS,   LANGUAGE),
        (StudyField.OTHER,           LANGUAGE),   # three-way tie at 20
    ])
    def test_per_field(self, study_field, expected):
        assert primary_category(FIELD_CATEGORY_WEIGHTS[study_field]) == expected

    def test_tie_goes_to_first_declared(self):
        assert primary_category({"B": 5, "A": 5, "C": 1}) == "B"

    def test_empty_table_rejected(self):
        with pytest.raises(ValueError):
            primary_category({})


class TestHighPriorityCount:
    @pytest.mark.parametrize("total, expected", [
        (0, 0), (1, 1), (3, 3), (5, 5), (6, 5), (10, 5), (11, 10), (12, 10), (30, 10),
    ])
    def test_thresholds(self, total, expected):
        assert high_priority_count(total) == expected


class TestPlanCounts:
    def test_stem_plan(self):
        plan = plan_counts(StudyField.STEM, 10)
        assert plan.primary_category == CODING
        assert plan.high_priority == 5
        assert plan.high_priority_split == {E: 1, M: 3, H: 1}
        assert plan.total == 10

    def test_split_uses_field_distribution(self):
        plan = plan_counts(StudyField.BUSINESS, 20)
        assert plan.split(10) == split_by_difficulty(10, FIELD_DIFFICULTY_DISTRIBUTION[StudyField.BUSINESS])
