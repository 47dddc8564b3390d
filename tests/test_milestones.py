"""Tests for milestone evaluation against a baseline."""

import math

import pytest

from call_bot.tracking.milestones import MILESTONES, evaluate, performance
from call_bot.tracking.models import MilestoneConvention

PERCENT = MilestoneConvention.PERCENT


class TestPerformance:
    def test_multiplier(self):
        assert performance(2.0, 9.0) == 4.5

    def test_percent(self):
        assert performance(100.0, 106.0, PERCENT) == pytest.approx(6.0)

    def test_unusable_baseline(self):
        assert performance(0.0, 5.0) is None
        assert performance(-1.0, 5.0) is None
        assert performance(math.nan, 5.0) is None


class TestEvaluate:
    """Tests for which thresholds a price move crosses."""

    def test_crosses_lower_thresholds_only(self):
        assert evaluate(1.0, 4.5, set(), thresholds=[2, 3, 5]) == [2, 3]

    def test_skips_already_achieved(self):
        assert evaluate(1.0, 6.0, {2, 3}, thresholds=[2, 3, 5]) == [5]

    def test_big_jump_crosses_every_threshold_at_once(self):
        assert evaluate(1.0, 12.0, set()) == [2, 3, 4, 5, 10]

    def test_exact_threshold_counts(self):
        assert evaluate(0.5, 1.0, set()) == [2]

    def test_idempotent_when_all_recorded(self):
        first = evaluate(1.0, 12.0, set())
        assert evaluate(1.0, 12.0, set(first)) == []

    def test_price_drop_returns_nothing(self):
        assert evaluate(1.0, 0.4, set()) == []

    def test_zero_baseline_returns_nothing(self):
        assert evaluate(0.0, 100.0, set()) == []

    def test_percent_convention(self):
        # +6% crosses the 2, 3, 4 and 5 percent marks but not 10
        assert evaluate(100.0, 106.0, set(), convention=PERCENT) == [2, 3, 4, 5]

    def test_percent_convention_ignores_multiplier_reading(self):
        # 1.5x is +50%: every mark up to and including 50 is crossed
        assert evaluate(100.0, 150.0, set(), convention=PERCENT) == list(MILESTONES)

    def test_matches_brute_force(self):
        for baseline in (0.001, 1.0, 37.5):
            for ratio in (0.5, 1.0, 1.99, 2.0, 3.3, 4.0, 9.9, 20.0, 51.0):
                current = baseline * ratio
                expected = [m for m in MILESTONES if current / baseline >= m]
                assert evaluate(baseline, current, set()) == expected
