"""Momentum and promotion adjusters.

Both adjusters are pure: they take an expected revenue value and the
context of one bucket and return the adjusted expectation.

Overlapping momentum events combine deterministically: all multiplicative
effects are multiplied together first, then all additive effects are
summed on top. Promotions are applied after momentum.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from influencer_lift.core.config import EngineThresholds
from influencer_lift.models.commerce import (
    AdjustmentKind,
    MomentumConfig,
    PromoContext,
    PromoWindow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MomentumEffect:
    """Combined effect of every momentum event covering one bucket."""

    multiplier: float = 1.0
    additive: float = 0.0
    active: tuple[str, ...] = field(default_factory=tuple)

    def apply(self, baseline: float) -> float:
        return baseline * self.multiplier + self.additive

    def remove(self, observed: float) -> float:
        """Invert :meth:`apply`, flooring at zero."""
        if self.multiplier <= 0:
            return 0.0
        return max(0.0, (observed - self.additive) / self.multiplier)


def momentum_effect(
    instant: datetime,
    momentums: list[MomentumConfig],
    bucket_hours: float,
) -> MomentumEffect:
    """Combine the momentum events that cover the instant.

    Args:
        instant: Bucket start
        momentums: Configured calendar events
        bucket_hours: Bucket size, used to scale per-day additive amounts

    Returns:
        MomentumEffect with the product of multipliers and the sum of
        additive amounts
    """
    multiplier = 1.0
    additive = 0.0
    active: list[str] = []

    for momentum in momentums:
        intensity = momentum.intensity_at(instant)
        if intensity <= 0:
            continue

        if momentum.kind == AdjustmentKind.MULTIPLICATIVE:
            multiplier *= 1.0 + (momentum.value - 1.0) * intensity
        else:
            additive += momentum.value * intensity * bucket_hours / 24.0
        active.append(momentum.name)

    return MomentumEffect(
        multiplier=max(multiplier, 0.0), additive=additive, active=tuple(active)
    )


def adjust_for_momentum(
    baseline: float,
    instant: datetime,
    momentums: list[MomentumConfig],
    bucket_hours: float = 24.0,
) -> float:
    """Expected revenue of a bucket once calendar momentum is accounted for."""
    return momentum_effect(instant, momentums, bucket_hours).apply(baseline)


def promo_response(window: PromoWindow, thresholds: EngineThresholds) -> float:
    """Demand multiplier of a promotion.

    The discount response is sub-linear: doubling the discount raises
    demand by less than double. With default constants a 10 % discount
    yields about +15 %, 20 % about +24 % and 40 % about +40 %.
    """
    response = thresholds.promo_response_scale * (
        window.discount**thresholds.promo_response_exponent
    )
    if window.global_code:
        response += thresholds.promo_global_code_bonus
    if window.bundles:
        response += thresholds.promo_bundles_bonus
    if window.free_shipping:
        response += thresholds.promo_free_shipping_bonus
    return 1.0 + response


def promo_multiplier(
    instant: datetime,
    promo_context: PromoContext | None,
    thresholds: EngineThresholds,
) -> float:
    """Multiplier of the promotion active at the instant (1.0 when none)."""
    if promo_context is None:
        return 1.0
    window = promo_context.active_at(instant)
    if window is None:
        return 1.0
    return promo_response(window, thresholds)


def adjust_for_promo(
    baseline: float,
    instant: datetime,
    promo_context: PromoContext | None,
    thresholds: EngineThresholds,
) -> float:
    """Expected revenue of a bucket once a store-wide promotion is accounted for."""
    return baseline * promo_multiplier(instant, promo_context, thresholds)
