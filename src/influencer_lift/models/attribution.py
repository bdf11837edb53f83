"""Attribution input and result models."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import Field

from influencer_lift.models.base import BaseLiftModel, TimeWindow
from influencer_lift.models.causal import CausalEvidence
from influencer_lift.models.commerce import (
    HistoricalData,
    MomentumConfig,
    PaidMediaContext,
    PromoContext,
)
from influencer_lift.models.social import InfluencerPost


class AttributionInput(BaseLiftModel):
    """Everything one attribution run needs, resolved in memory up front."""

    history: HistoricalData
    momentums: list[MomentumConfig] = Field(default_factory=list)
    promo_context: PromoContext | None = Field(
        default=None, description="None when the promotion calendar is unknown"
    )
    paid_media: PaidMediaContext | None = None
    posts: list[InfluencerPost] = Field(default_factory=list)
    analysis_start: datetime | None = Field(
        default=None,
        description="First observed instant; defaults to the earliest window start",
    )
    category_engagement_rate: float | None = Field(
        default=None, gt=0.0, description="Benchmark engagement rate in percent"
    )


class ConfidenceGrade(str, Enum):
    """Ordinal reliability label."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _GRADE_RANK[self]

    def __ge__(self, other):  # type: ignore[override]
        if isinstance(other, ConfidenceGrade):
            return self.rank >= other.rank
        return NotImplemented

    def __gt__(self, other):  # type: ignore[override]
        if isinstance(other, ConfidenceGrade):
            return self.rank > other.rank
        return NotImplemented

    def __le__(self, other):  # type: ignore[override]
        if isinstance(other, ConfidenceGrade):
            return self.rank <= other.rank
        return NotImplemented

    def __lt__(self, other):  # type: ignore[override]
        if isinstance(other, ConfidenceGrade):
            return self.rank < other.rank
        return NotImplemented


_GRADE_RANK = {
    ConfidenceGrade.LOW: 0,
    ConfidenceGrade.MEDIUM: 1,
    ConfidenceGrade.HIGH: 2,
}


class AttributionModel(str, Enum):
    FULL = "full"
    SIMPLE = "simple"


class BaselineMethod(str, Enum):
    """How expected revenue was estimated."""

    SEASONAL = "seasonal"
    FLAT_FALLBACK = "flat_fallback"


class ConfidenceBreakdown(BaseLiftModel):
    """Components behind a confidence grade, each in [0, 1]."""

    signal_strength: float = Field(..., ge=0.0, le=1.0)
    overlap: float = Field(..., ge=0.0, le=1.0)
    completeness: float = Field(..., ge=0.0, le=1.0)
    code_evidence: float | None = Field(default=None, ge=0.0, le=1.0)
    causal_agreement: float | None = Field(default=None, ge=0.0, le=1.0)
    score: float = Field(..., ge=0.0, le=1.0)
    grade: ConfidenceGrade
    reasons: list[str] = Field(default_factory=list)


class LiftWindow(TimeWindow):
    """A merged detection window and the lift measured inside it."""

    post_ids: list[str] = Field(default_factory=list)
    bucket_count: int = 0
    actual_revenue: float = 0.0
    expected_revenue: float = 0.0
    actual_orders: float = 0.0
    expected_orders: float = 0.0
    lift_revenue: float = Field(0.0, description="actual - expected, may be negative")
    lift_orders: float = 0.0
    lift_pct: float = Field(0.0, description="Lift relative to expected, in percent")
    z_score: float = 0.0
    significant: bool = False
    detected_lift: float = Field(
        0.0, description="Revenue available for attribution (0 when not significant)"
    )
    detected_orders: float = 0.0
    active_momentums: list[str] = Field(default_factory=list)
    promo_active: bool = False
    causal: CausalEvidence | None = None
    confidence: ConfidenceBreakdown | None = None


class PostShare(BaseLiftModel):
    """Share of one window's lift credited to one post."""

    post_id: str
    window_index: int
    weight: float = Field(..., ge=0.0, le=1.0)
    attributed_revenue: float
    attributed_orders: float
    direct_revenue: float = 0.0


class InfluencerAttribution(BaseLiftModel):
    """Per-influencer outcome of a run."""

    influencer_id: str
    username: str = ""
    post_ids: list[str] = Field(default_factory=list)
    shares: list[PostShare] = Field(default_factory=list)
    attributed_revenue: float = 0.0
    attributed_orders: float = 0.0
    direct_revenue: float = Field(
        0.0, description="Revenue from orders carrying the influencer's code"
    )
    lift_pct: float = Field(
        0.0, description="Attributed revenue relative to expected revenue, in percent"
    )
    confidence: ConfidenceGrade = ConfidenceGrade.LOW


class AttributionResult(BaseLiftModel):
    """Common shape of full and simplified results."""

    model: AttributionModel
    baseline_method: BaselineMethod
    observation_start: datetime | None = None
    observation_end: datetime | None = None
    windows: list[LiftWindow] = Field(default_factory=list)
    influencers: list[InfluencerAttribution] = Field(default_factory=list)
    total_expected_revenue: float = 0.0
    total_actual_revenue: float = 0.0
    total_lift_revenue: float = 0.0
    total_attributed_revenue: float = 0.0
    total_attributed_orders: float = 0.0
    lift_pct: float = 0.0
    confidence: ConfidenceGrade = ConfidenceGrade.LOW
    warnings: list[str] = Field(default_factory=list)

    def for_influencer(self, influencer_id: str) -> InfluencerAttribution | None:
        for attribution in self.influencers:
            if attribution.influencer_id == influencer_id:
                return attribution
        return None


class FullAttributionResult(AttributionResult):
    """Result of the full pipeline (paid media neutralised, windows merged)."""

    model: Literal[AttributionModel.FULL] = AttributionModel.FULL
    paid_media_neutralized: bool = False


class SimpleAttributionResult(AttributionResult):
    """Result of the simplified pipeline."""

    model: Literal[AttributionModel.SIMPLE] = AttributionModel.SIMPLE
    total_direct_revenue: float = 0.0
    total_indirect_revenue: float = 0.0
