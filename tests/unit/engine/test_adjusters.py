"""Tests for the momentum, promotion and paid-media adjusters."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from influencer_lift.engine.adjusters import (
    MomentumEffect,
    adjust_for_momentum,
    adjust_for_promo,
    momentum_effect,
    promo_multiplier,
    promo_response,
)
from influencer_lift.engine.paid_media import (
    media_pressure,
    neutralize,
    paid_media_multiplier,
)
from influencer_lift.models.commerce import (
    AdjustmentKind,
    MomentumConfig,
    PaidMediaContext,
    PaidMediaWindow,
    PromoContext,
    PromoWindow,
)

T0 = datetime(2025, 6, 2, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def _momentum(name, value, kind=AdjustmentKind.MULTIPLICATIVE):
    return MomentumConfig(name=name, kind=kind, value=value, start=T0, end=T0 + 3 * DAY)


class TestMomentum:
    """Test calendar momentum adjustment."""

    def test_no_momentum_is_identity(self):
        assert adjust_for_momentum(100.0, T0, []) == 100.0

    def test_multiplicative_then_additive(self):
        """Multipliers combine by product, additive amounts are summed on top."""
        momentums = [
            _momentum("Sale", 1.2),
            _momentum("Launch", 1.5),
            _momentum("Pop-up", 240.0, AdjustmentKind.ADDITIVE),
        ]
        effect = momentum_effect(T0, momentums, bucket_hours=1.0)

        assert effect.multiplier == pytest.approx(1.8)
        # 240 per day spread over hourly buckets
        assert effect.additive == pytest.approx(10.0)
        assert effect.active == ("Sale", "Launch", "Pop-up")
        assert effect.apply(100.0) == pytest.approx(190.0)

    def test_order_of_declaration_does_not_matter(self):
        momentums = [
            _momentum("Pop-up", 50.0, AdjustmentKind.ADDITIVE),
            _momentum("Sale", 1.2),
        ]
        assert adjust_for_momentum(100.0, T0, momentums) == pytest.approx(170.0)
        assert adjust_for_momentum(100.0, T0, momentums[::-1]) == pytest.approx(170.0)

    def test_outside_range_has_no_effect(self):
        effect = momentum_effect(T0 + 5 * DAY, [_momentum("Sale", 1.2)], 24.0)
        assert effect == MomentumEffect()

    def test_remove_inverts_apply(self):
        effect = MomentumEffect(multiplier=1.25, additive=20.0)
        assert effect.remove(effect.apply(80.0)) == pytest.approx(80.0)
        assert effect.remove(10.0) == 0.0


class TestPromo:
    """Test store-wide promotion adjustment."""

    def test_sublinear_discount_response(self, thresholds):
        small = PromoWindow(start=T0, end=T0 + DAY, discount=0.1)
        large = PromoWindow(start=T0, end=T0 + DAY, discount=0.2)

        assert promo_response(large, thresholds) == pytest.approx(1 + 0.752 * 0.2**0.7)
        # Doubling the discount raises demand by less than double
        assert promo_response(large, thresholds) - 1 < 2 * (promo_response(small, thresholds) - 1)

    def test_mechanics_bonuses(self, thresholds):
        plain = PromoWindow(start=T0, end=T0 + DAY, discount=0.2)
        rich = plain.model_copy(
            update={"global_code": True, "bundles": True, "free_shipping": True}
        )
        assert promo_response(rich, thresholds) - promo_response(plain, thresholds) == (
            pytest.approx(0.05 + 0.04 + 0.03)
        )

    def test_no_promo_is_identity(self, thresholds):
        assert promo_multiplier(T0, None, thresholds) == 1.0
        assert promo_multiplier(T0, PromoContext(windows=[]), thresholds) == 1.0

    def test_adjust_inside_and_outside_window(self, thresholds):
        context = PromoContext(windows=[PromoWindow(start=T0, end=T0 + DAY, discount=0.2)])
        expected = 100.0 * (1 + 0.752 * 0.2**0.7)
        assert adjust_for_promo(100.0, T0, context, thresholds) == pytest.approx(expected)
        assert adjust_for_promo(100.0, T0 + 2 * DAY, context, thresholds) == 100.0


class TestPaidMedia:
    """Test paid-media neutralization."""

    def _context(self, spend, impressions=0, baseline_impressions=None):
        return PaidMediaContext(
            windows=[
                PaidMediaWindow(start=T0, end=T0 + DAY, spend=spend, impressions=impressions)
            ],
            baseline_daily_spend=100.0,
            baseline_daily_impressions=baseline_impressions,
        )

    def test_no_context_is_identity(self, thresholds):
        assert paid_media_multiplier(T0, None, thresholds) == 1.0
        assert neutralize(100.0, T0, None, thresholds) == 100.0

    def test_doubled_spend_has_diminishing_returns(self, thresholds):
        multiplier = paid_media_multiplier(T0, self._context(200.0), thresholds)
        assert multiplier == pytest.approx(1 + 0.25 * math.log(2))
        assert multiplier < 2.0

    def test_outside_reported_windows_runs_at_usual_level(self, thresholds):
        context = self._context(500.0)
        assert media_pressure(T0 + 2 * DAY, context, thresholds) == 1.0
        assert paid_media_multiplier(T0 + 2 * DAY, context, thresholds) == 1.0

    def test_no_spend_hits_floor(self, thresholds):
        assert paid_media_multiplier(T0, self._context(0.0), thresholds) == 0.5

    def test_multiplier_is_capped(self, thresholds):
        assert paid_media_multiplier(T0, self._context(1e12), thresholds) == 3.0

    def test_impressions_blended_with_spend(self, thresholds):
        context = self._context(200.0, impressions=1000, baseline_impressions=1000.0)
        assert media_pressure(T0, context, thresholds) == pytest.approx(0.7 * 2 + 0.3 * 1)
