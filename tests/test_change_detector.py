"""Tests for the drop-threshold decision."""

import pytest

from price_tracker.services.change_detector import evaluate, percent_change


class TestEvaluate:
    def test_drop_past_threshold_alerts(self):
        draft = evaluate(80000, 60000, threshold=20)
        assert draft is not None
        assert draft.old_price == 80000
        assert draft.new_price == 60000
        assert draft.percent_change == pytest.approx(-25.0)

    def test_exact_threshold_is_inclusive(self):
        assert evaluate(100, 80, threshold=20) is not None

    def test_just_under_threshold_does_not_alert(self):
        assert evaluate(100, 80.01, threshold=20) is None

    def test_rounded_value_does_not_decide(self):
        # -19.96% would display as -20.0 but is not a 20% drop
        assert evaluate(10000, 8004, threshold=20) is None

    def test_increase_never_alerts(self):
        assert evaluate(60000, 65000, threshold=20) is None

    @pytest.mark.parametrize("old_price", [0, -5, None])
    def test_no_baseline_never_alerts(self, old_price):
        assert evaluate(old_price, 1, threshold=20) is None

    def test_default_threshold_is_twenty_percent(self):
        assert evaluate(100, 80) is not None
        assert evaluate(100, 81) is None

    @pytest.mark.parametrize("threshold", [5, 10, 33.3, 50])
    def test_alert_iff_change_within_threshold(self, threshold):
        old = 1000.0
        for new in (1.0, 400.0, 500.0, 667.0, 800.0, 900.0, 950.0, 999.0, 1200.0):
            expected = percent_change(old, new) <= -threshold
            assert (evaluate(old, new, threshold) is not None) == expected


def test_percent_change_sign():
    assert percent_change(60000, 65000) == pytest.approx(8.333, abs=1e-3)
    assert percent_change(80000, 60000) == pytest.approx(-25.0)
