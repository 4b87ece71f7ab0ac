"""Tests for deterministic progress computation."""
import pytest

from app.services.progress import (
    ProgressChild,
    aggregate,
    milestone_progress,
    normalize_weight,
    round_half_up,
)

pytestmark = pytest.mark.unit


class TestMilestoneProgress:
    """Milestone progress from task counts."""

    def test_no_tasks_returns_zero(self):
        assert milestone_progress(0, 0) == 0

    def test_one_of_four_completed(self):
        assert milestone_progress(1, 4) == 25

    def test_all_completed(self):
        assert milestone_progress(4, 4) == 100

    def test_rounds_to_nearest(self):
        # 100 * 1/3 = 33.33 -> 33, 100 * 2/3 = 66.67 -> 67
        assert milestone_progress(1, 3) == 33
        assert milestone_progress(2, 3) == 67

    def test_half_rounds_up(self):
        # 100 * 1/8 = 12.5
        assert milestone_progress(1, 8) == 13

    def test_matches_formula_for_all_counts(self):
        for total in range(1, 30):
            for completed in range(total + 1):
                expected = round_half_up(100 * completed / total)
                assert milestone_progress(completed, total) == expected

    def test_completion_never_decreases_progress(self):
        for total in range(1, 25):
            values = [milestone_progress(c, total) for c in range(total + 1)]
            assert values == sorted(values)


class TestAggregate:
    """Weighted mean of child progress."""

    def test_no_children_returns_zero(self):
        assert aggregate([]) == 0

    def test_single_child(self):
        assert aggregate([ProgressChild(value=40, weight=1)]) == 40

    def test_weighted_scenario(self):
        # two milestones at 25% and 0%, weights 1 and 3: (25*1 + 0*3) / 4 = 6.25
        children = [ProgressChild(25, 1), ProgressChild(0, 3)]
        assert aggregate(children) == 6

    def test_empty_milestone_stays_in_denominator(self):
        assert aggregate([ProgressChild(100, 1), ProgressChild(0, 1)]) == 50

    def test_equal_weights_is_plain_mean(self):
        assert aggregate([(10, 1), (20, 1), (60, 1)]) == 30

    def test_accepts_pairs_and_mappings(self):
        assert aggregate([(50, 2), {"value": 100, "weight": 2}]) == 75

    def test_fractional_weights(self):
        # (100*1.5 + 0*0.5) / 2 = 75
        assert aggregate([ProgressChild(100, 1.5), ProgressChild(0, 0.5)]) == 75

    def test_all_complete_is_exactly_100(self):
        assert aggregate([ProgressChild(100, 0.3), ProgressChild(100, 2.7)]) == 100

    def test_result_is_clamped(self):
        assert aggregate([ProgressChild(150, 1)]) == 100
        assert aggregate([ProgressChild(-10, 1)]) == 0

    def test_raising_one_child_never_lowers_result(self):
        base = [ProgressChild(25, 1), ProgressChild(50, 3), ProgressChild(0, 2)]
        before = aggregate(base)
        after = aggregate([ProgressChild(50, 1), base[1], base[2]])
        assert after >= before


class TestWeightPolicy:
    """Missing, zero or invalid weights count as 1."""

    @pytest.mark.parametrize("weight", [None, 0, 0.0, -2, float("nan"), float("inf"), "abc"])
    def test_invalid_weights_normalize_to_one(self, weight):
        assert normalize_weight(weight) == 1.0

    def test_positive_weight_kept(self):
        assert normalize_weight(2.5) == 2.5

    def test_null_weight_treated_as_one(self):
        assert aggregate([ProgressChild(100, None), ProgressChild(0, 1)]) == 50

    def test_zero_weight_treated_as_one(self):
        assert aggregate([ProgressChild(100, 0), ProgressChild(0, 1)]) == 50

    def test_only_zero_weights_does_not_divide_by_zero(self):
        assert aggregate([ProgressChild(80, 0), ProgressChild(40, 0)]) == 60


class TestRoundHalfUp:

    def test_half_goes_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(12.5) == 13

    def test_below_half_goes_down(self):
        assert round_half_up(6.25) == 6
