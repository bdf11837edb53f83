"""Paid-media neutralizer (full model only).

Ad spend above the merchant's usual level raises expected revenue with
diminishing returns, so that ad-driven demand is not credited to
influencers. Without a paid-media context every multiplier is 1.
"""

import logging
import math
from datetime import datetime

from influencer_lift.core.config import EngineThresholds
from influencer_lift.models.commerce import PaidMediaContext

logger = logging.getLogger(__name__)


def media_pressure(
    instant: datetime,
    paid_media: PaidMediaContext,
    thresholds: EngineThresholds,
) -> float:
    """Ad pressure at the instant relative to the baseline level (1.0 = usual).

    Spend pressure is blended with impression pressure when the
    impression baseline is known. Instants outside every reported window
    run at the usual level.
    """
    covering = [w for w in paid_media.windows if w.covers(instant)]
    if not covering:
        return 1.0

    daily_spend = sum(w.daily_spend for w in covering)
    daily_impressions = sum(w.daily_impressions for w in covering)

    spend_pressure = daily_spend / paid_media.baseline_daily_spend
    if not paid_media.baseline_daily_impressions:
        return spend_pressure

    impression_pressure = daily_impressions / paid_media.baseline_daily_impressions
    share = thresholds.paid_spend_share
    return share * spend_pressure + (1.0 - share) * impression_pressure


def paid_media_multiplier(
    instant: datetime,
    paid_media: PaidMediaContext | None,
    thresholds: EngineThresholds,
) -> float:
    """Baseline multiplier explained by ad activity at the instant."""
    if paid_media is None:
        return 1.0

    pressure = media_pressure(instant, paid_media, thresholds)
    if pressure <= 0:
        # No ads at all: the floor applies
        return thresholds.paid_min_multiplier

    multiplier = 1.0 + thresholds.paid_elasticity * math.log(pressure)
    return max(thresholds.paid_min_multiplier, min(thresholds.paid_max_multiplier, multiplier))


def neutralize(
    baseline: float,
    instant: datetime,
    paid_media: PaidMediaContext | None,
    thresholds: EngineThresholds,
) -> float:
    """Adjusted baseline once concurrent ad spend is accounted for."""
    return baseline * paid_media_multiplier(instant, paid_media, thresholds)
