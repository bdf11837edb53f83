"""Tests for the causal cross-checks of detected windows."""

import numpy as np
import pytest

from influencer_lift.core.config import CausalConfig, EngineThresholds
from influencer_lift.engine import run_full_attribution, run_simple_attribution
from influencer_lift.engine.causal import (
    causal_impact,
    combine,
    difference_in_differences,
    interrupted_time_series,
)

PRE = np.array([1.0, -1.0, 0.5, -0.5, 0.2, -0.2])


class TestDifferenceInDifferences:
    def test_clear_jump_is_significant(self):
        did = difference_in_differences(PRE, np.array([30.0, 32.0, 28.0]), 1.0, 0.05)

        assert did.estimate == pytest.approx(30.0)
        assert did.significant
        assert did.p_value < 0.01
        assert did.score > 0.95
        assert did.ci95_lower > 0

    def test_no_change_is_not_significant(self):
        did = difference_in_differences(PRE, np.array([0.8, -0.9, 0.2]), 1.0, 0.05)

        assert not did.significant
        assert did.score < 0.5

    def test_drop_scores_zero(self):
        did = difference_in_differences(PRE, np.array([-30.0, -32.0, -28.0]), 1.0, 0.05)
        assert did.estimate < 0
        assert did.score == 0.0

    def test_zero_variance_uses_noise_floor(self):
        did = difference_in_differences(np.zeros(4), np.full(3, 10.0), 1.0, 0.05)

        assert did.standard_error == 1.0
        assert did.t_statistic == pytest.approx(10.0)
        assert did.significant

    def test_needs_two_buckets_each_side(self):
        assert difference_in_differences(np.zeros(1), np.ones(3), 1.0, 0.05) is None
        assert difference_in_differences(np.zeros(3), np.ones(1), 1.0, 0.05) is None


class TestInterruptedTimeSeries:
    def test_level_jump(self):
        wiggle = 0.1 * (-1.0) ** np.arange(36)
        pre, post = wiggle[:24], 50.0 + wiggle[24:]

        its = interrupted_time_series(pre, post, 0.05, 0.75)

        assert its.level_change == pytest.approx(50.0, abs=0.5)
        assert its.level_p_value < 0.01
        assert its.r_squared > 0.99
        assert its.total_effect == pytest.approx(600.0, rel=0.02)
        assert its.score == pytest.approx(0.75)

    def test_noise_only(self):
        rng = np.random.default_rng(7)
        residuals = rng.normal(0.0, 1.0, 36)

        its = interrupted_time_series(residuals[:24], residuals[24:], 0.05, 0.75)

        assert abs(its.level_change) < 3.0
        assert its.r_squared < 0.5
        assert its.score < 0.75

    def test_too_short(self):
        assert interrupted_time_series(np.zeros(2), np.ones(1), 0.05, 0.75) is None
        assert interrupted_time_series(np.zeros(1), np.ones(5), 0.05, 0.75) is None


class TestCausalImpact:
    def test_cumulative_effect(self):
        expected = np.full(4, 100.0)
        impact = causal_impact(PRE, expected * 1.3, expected, 1.0, 0.05)

        assert impact.cumulative_effect == pytest.approx(120.0)
        assert impact.relative_effect_pct == pytest.approx(30.0)
        assert impact.probability_causal > 0.99
        assert impact.effect_lower > 0

    def test_no_effect_is_a_coin_flip(self):
        expected = np.full(4, 100.0)
        impact = causal_impact(PRE, expected, expected, 1.0, 0.05)

        assert impact.cumulative_effect == 0.0
        assert impact.probability_causal == pytest.approx(0.5)

    def test_nothing_expected_and_no_spread(self):
        assert causal_impact(np.zeros(3), np.zeros(2), np.zeros(2), 1.0, 0.05) is None


class TestCombine:
    def test_weights_renormalise_over_available_checks(self):
        did = difference_in_differences(PRE, np.array([30.0, 32.0, 28.0]), 1.0, 0.05)
        evidence = combine(did, None, None, CausalConfig())

        assert evidence.combined_score == pytest.approx(did.score)
        assert evidence.its is None
        assert "agree on a clear signal" in evidence.interpretation

    def test_nothing_to_combine(self):
        assert combine(None, None, None, CausalConfig()) is None

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError, match="sum to 1"):
            CausalConfig(did_weight=0.5, its_weight=0.5, impact_weight=0.5)


class TestPipelineCrossChecks:
    """Test the cross-checks inside full runs."""

    def test_injected_lift_is_confirmed(self, lifted_input):
        result = run_full_attribution(lifted_input)
        window = result.windows[0]

        assert window.causal is not None
        assert window.causal.did.significant
        assert window.causal.impact.probability_causal > 0.99
        assert window.causal.combined_score > 0.7
        assert window.confidence.causal_agreement == window.causal.combined_score

    def test_simple_model_is_cross_checked_too(self, lifted_input):
        result = run_simple_attribution(lifted_input)
        assert result.windows[0].causal is not None

    def test_cross_checks_can_be_disabled(self, lifted_input):
        thresholds = EngineThresholds(causal=CausalConfig(enabled=False))
        window = run_full_attribution(lifted_input, thresholds).windows[0]

        assert window.causal is None
        assert window.confidence.causal_agreement is None
