"""Commerce-side data models: revenue history and demand context."""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import Field, field_serializer

from influencer_lift.models.base import BaseLiftModel, TimeWindow


class Granularity(str, Enum):
    """Size of one revenue bucket."""

    HOURLY = "hourly"
    DAILY = "daily"

    @property
    def hours(self) -> int:
        return 1 if self is Granularity.HOURLY else 24

    @property
    def delta(self) -> timedelta:
        return timedelta(hours=self.hours)


class DailyData(BaseLiftModel):
    """One bucket (a day or an hour) of commerce activity.

    Revenue and order signs are checked by the engine so that malformed
    input is reported through its validation contract.
    """

    timestamp: datetime = Field(..., description="Bucket start")
    revenue: float = Field(..., description="Gross revenue in the bucket")
    orders: int = Field(default=0, description="Order count in the bucket")
    promo_code_orders: dict[str, int] = Field(
        default_factory=dict, description="Orders per discount code"
    )
    promo_code_revenue: dict[str, float] = Field(
        default_factory=dict, description="Revenue per discount code"
    )

    @field_serializer("timestamp")
    def serialize_timestamp(self, dt: datetime) -> str:
        return dt.isoformat()


class HistoricalData(BaseLiftModel):
    """Chronological bucket series covering lookback and observation."""

    granularity: Granularity = Granularity.DAILY
    buckets: list[DailyData] = Field(default_factory=list)

    @property
    def bucket_delta(self) -> timedelta:
        return self.granularity.delta


class AdjustmentKind(str, Enum):
    """How a momentum event moves expected revenue."""

    MULTIPLICATIVE = "multiplicative"
    ADDITIVE = "additive"


class IntensityPoint(BaseLiftModel):
    """Point on a momentum intensity curve."""

    days_offset: float = Field(..., description="Days relative to the event peak")
    intensity: float = Field(..., ge=0.0, le=1.0)


class MomentumConfig(TimeWindow):
    """A known, non-influencer calendar demand event.

    ``value`` is a multiplier (1.35 means +35 %) for multiplicative events
    and a currency amount per day for additive ones. Without an intensity
    curve the full effect applies over the whole range.
    """

    name: str = Field(..., min_length=1)
    kind: AdjustmentKind = AdjustmentKind.MULTIPLICATIVE
    value: float
    peak: datetime | None = Field(
        default=None, description="Reference instant of the intensity curve"
    )
    intensity_curve: list[IntensityPoint] = Field(default_factory=list)

    def intensity_at(self, instant: datetime) -> float:
        """Interpolated intensity at the instant, 0 outside the date range."""
        if not self.covers(instant):
            return 0.0
        if not self.intensity_curve:
            return 1.0

        peak = self.peak or self.start
        offset = (instant - peak).total_seconds() / 86400.0
        curve = sorted(self.intensity_curve, key=lambda p: p.days_offset)

        if offset < curve[0].days_offset or offset > curve[-1].days_offset:
            return 0.0
        for left, right in zip(curve, curve[1:]):
            if left.days_offset <= offset <= right.days_offset:
                span = right.days_offset - left.days_offset
                if span <= 0:
                    return right.intensity
                ratio = (offset - left.days_offset) / span
                return left.intensity + ratio * (right.intensity - left.intensity)
        return curve[-1].intensity


class PromoWindow(TimeWindow):
    """A store-wide promotion."""

    discount: float = Field(..., gt=0.0, le=1.0, description="0.20 for 20 % off")
    label: str = ""
    global_code: bool = False
    bundles: bool = False
    free_shipping: bool = False


class PromoContext(BaseLiftModel):
    """Known promotion calendar. An empty list means no promotion ran."""

    windows: list[PromoWindow] = Field(default_factory=list)

    def active_at(self, instant: datetime) -> PromoWindow | None:
        for window in self.windows:
            if window.covers(instant):
                return window
        return None


class PaidMediaWindow(TimeWindow):
    """Ad spend and impressions delivered over a window."""

    spend: float = Field(..., ge=0.0)
    impressions: int = Field(default=0, ge=0)

    @property
    def daily_spend(self) -> float:
        days = self.duration_hours / 24.0
        return self.spend / days if days > 0 else 0.0

    @property
    def daily_impressions(self) -> float:
        days = self.duration_hours / 24.0
        return self.impressions / days if days > 0 else 0.0


class PaidMediaContext(BaseLiftModel):
    """Paid advertising activity, relative to the merchant's usual level."""

    windows: list[PaidMediaWindow] = Field(default_factory=list)
    baseline_daily_spend: float = Field(
        ..., gt=0.0, description="Spend per day already reflected in history"
    )
    baseline_daily_impressions: float | None = Field(default=None, gt=0.0)
