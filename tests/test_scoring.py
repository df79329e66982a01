"""
IdeaBoard
Tests - priority scoring and the two classifiers.

Covers:
    - Monotonicity of the default formula over the whole 1..10 grid
    - Rounding, null handling and "N/A" display
    - Weighted formula selection
    - Recommendation tiers at ">=" boundaries
    - Badge levels at ">" boundaries
    - Score validation
"""

import itertools

import pytest

from ideaboard.services import scoring
from ideaboard.services.scoring import (
    badge_level, format_priority, is_high_priority, priority_score, recommend,
    resolve_formula, validate_score,
)

GRID = range(1, 11)


class TestPriorityScore:
    def test_default_scores_give_five(self):
        assert priority_score(5, 5, 5) == 5.0

    def test_rounded_to_two_decimals(self):
        assert priority_score(7, 3, 5) == 11.67

    def test_extremes(self):
        assert priority_score(10, 1, 10) == 100.0
        assert priority_score(1, 10, 1) == 0.1

    @pytest.mark.parametrize("args", [
        (None, 5, 5), (5, None, 5), (5, 5, None), (None, None, None),
    ])
    def test_any_missing_input_gives_none(self, args):
        assert priority_score(*args) is None

    def test_non_decreasing_in_impact_and_excitement(self):
        for impact, effort, excitement in itertools.product(GRID, GRID, GRID):
            base = priority_score(impact, effort, excitement)
            if impact < 10:
                assert priority_score(impact + 1, effort, excitement) >= base
            if excitement < 10:
                assert priority_score(impact, effort, excitement + 1) >= base

    def test_non_increasing_in_effort(self):
        for impact, effort, excitement in itertools.product(GRID, GRID, GRID):
            if effort < 10:
                assert priority_score(impact, effort + 1, excitement) <= \
                    priority_score(impact, effort, excitement)

    def test_weighted_formula_is_monotonic_and_floored(self):
        formula = resolve_formula("weighted", {"impact": 2, "excitement": 1, "effort": 3})
        assert priority_score(1, 10, 1, formula=formula) == 0.0
        assert priority_score(6, 2, 4, formula=formula) == 10.0
        for impact, effort, excitement in itertools.product(GRID, GRID, GRID):
            if effort < 10:
                assert priority_score(impact, effort + 1, excitement, formula=formula) <= \
                    priority_score(impact, effort, excitement, formula=formula)

    def test_unknown_formula_rejected(self):
        with pytest.raises(ValueError):
            resolve_formula("quadratic")

    def test_negative_weights_rejected(self):
        with pytest.raises(ValueError):
            resolve_formula("weighted", {"effort": -1})


class TestFormatting:
    def test_null_is_na(self):
        assert format_priority(None) == "N/A"

    def test_two_decimals(self):
        assert format_priority(5) == "5.00"
        assert format_priority(11.666) == "11.67"


class TestRecommendation:
    @pytest.mark.parametrize("score,tier", [
        (20, "must-build"),
        (19.99, "strong-candidate"),
        (10, "strong-candidate"),
        (9.99, "consider-carefully"),
        (5, "consider-carefully"),
        (4.99, "low-priority"),
        (0.1, "low-priority"),
        (None, "low-priority"),
        (100, "must-build"),
    ])
    def test_tiers(self, score, tier):
        assert recommend(score).tier == tier

    def test_severity_per_tier(self):
        assert [recommend(s).severity for s in (25, 12, 6, 1)] == \
            ["success", "info", "warning", "danger"]

    def test_describe_bundle(self):
        data = scoring.describe(12)
        assert data["priority_display"] == "12.00"
        assert data["badge"] == "medium"
        assert data["recommendation"]["tier"] == "strong-candidate"


class TestBadge:
    @pytest.mark.parametrize("score,level", [
        (15, "medium"),
        (15.01, "high"),
        (10, "low"),
        (10.01, "medium"),
        (0.1, "low"),
        (None, "neutral"),
        (100, "high"),
    ])
    def test_levels(self, score, level):
        assert badge_level(score) == level

    def test_high_priority_filter_uses_badge_threshold(self):
        assert not is_high_priority(15)
        assert is_high_priority(15.01)
        assert not is_high_priority(None)

    def test_classifiers_disagree_between_thresholds(self):
        # 12 is "strong-candidate" in the recommendation but only a medium badge
        assert recommend(12).tier == "strong-candidate"
        assert badge_level(12) == "medium"
        assert recommend(15).tier == "strong-candidate"
        assert badge_level(15) == "medium"


class TestValidateScore:
    @pytest.mark.parametrize("value,expected", [
        (1, 1), (10, 10), ("7", 7), (3.0, 3), (None, None),
    ])
    def test_accepts(self, value, expected):
        assert validate_score("impact_score", value) == expected

    @pytest.mark.parametrize("value", [0, 11, -3, 2.5, "high", True, [5]])
    def test_rejects(self, value):
        with pytest.raises(ValueError):
            validate_score("impact_score", value)
