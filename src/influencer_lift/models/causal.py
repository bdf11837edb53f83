"""Causal cross-check results attached to a lift window."""

from pydantic import Field

from influencer_lift.models.base import BaseLiftModel


class DiDEstimate(BaseLiftModel):
    """Difference-in-differences of actual against expected revenue.

    Pre and post are the buckets just before the window and the window
    itself. The estimate is the change in the per-bucket residual.
    """

    pre_buckets: int
    post_buckets: int
    estimate: float = Field(..., description="Per-bucket revenue change beyond expected")
    standard_error: float
    t_statistic: float
    p_value: float = Field(..., ge=0.0, le=1.0)
    ci95_lower: float
    ci95_upper: float
    significant: bool
    score: float = Field(..., ge=0.0, le=1.0)


class InterruptedTimeSeries(BaseLiftModel):
    """Segmented regression of the residual around the window start."""

    pre_trend: float = Field(..., description="Residual slope per bucket before the window")
    level_change: float = Field(..., description="Jump in the residual at the window start")
    trend_change: float
    level_p_value: float = Field(..., ge=0.0, le=1.0)
    trend_p_value: float = Field(..., ge=0.0, le=1.0)
    r_squared: float = Field(..., ge=0.0, le=1.0)
    total_effect: float = Field(..., description="Window revenue above the pre-window trend")
    score: float = Field(..., ge=0.0, le=1.0)


class CausalImpactEstimate(BaseLiftModel):
    """Cumulative effect against a prediction band learned before the window."""

    cumulative_actual: float
    cumulative_expected: float
    cumulative_effect: float
    effect_lower: float
    effect_upper: float
    relative_effect_pct: float
    probability_causal: float = Field(..., ge=0.0, le=1.0)
    score: float = Field(..., ge=0.0, le=1.0)


class CausalEvidence(BaseLiftModel):
    """All cross-checks of one window and their weighted agreement."""

    did: DiDEstimate | None = None
    its: InterruptedTimeSeries | None = None
    impact: CausalImpactEstimate | None = None
    combined_score: float = Field(..., ge=0.0, le=1.0)
    interpretation: str = ""
