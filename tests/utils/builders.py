"""Deterministic input builders for engine tests."""

from datetime import datetime, timedelta, timezone

from influencer_lift.models.attribution import AttributionInput
from influencer_lift.models.commerce import (
    DailyData,
    Granularity,
    HistoricalData,
    PromoContext,
)
from influencer_lift.models.social import ContentType, InfluencerPost

# A Monday, so day index i falls on weekday i % 7
START = datetime(2025, 4, 7, tzinfo=timezone.utc)

WEEKDAY_FACTORS = (0.9, 0.95, 1.0, 1.0, 1.05, 1.2, 0.9)

LOOKBACK_DAYS = 42
OBSERVATION_START = START + timedelta(days=LOOKBACK_DAYS)


def build_daily_history(
    days: int = LOOKBACK_DAYS + 3,
    level: float = 1000.0,
    growth: float = 1.0,
    bumps: dict[int, float] | None = None,
    average_order_value: float = 50.0,
    start: datetime = START,
) -> HistoricalData:
    """Noise-free daily history with a weekly pattern and exponential trend.

    ``bumps`` maps a day index to a revenue multiplier.
    """
    bumps = bumps or {}
    buckets = []
    for i in range(days):
        ts = start + timedelta(days=i)
        revenue = level * growth**i * WEEKDAY_FACTORS[ts.weekday()] * bumps.get(i, 1.0)
        buckets.append(
            DailyData(
                timestamp=ts,
                revenue=round(revenue, 2),
                orders=round(revenue / average_order_value),
            )
        )
    return HistoricalData(granularity=Granularity.DAILY, buckets=buckets)


def build_post(
    post_id: str = "post-1",
    timestamp: datetime | None = None,
    influencer_id: str | None = None,
    audience_size: int = 10_000,
    engagement_rate: float | None = None,
    promo_code: str | None = None,
    content_type: ContentType = ContentType.POST,
) -> InfluencerPost:
    return InfluencerPost(
        post_id=post_id,
        influencer_id=influencer_id or f"inf-{post_id}",
        username=f"user_{post_id}",
        timestamp=timestamp or OBSERVATION_START + timedelta(hours=12),
        content_type=content_type,
        audience_size=audience_size,
        engagement_rate=engagement_rate,
        promo_code=promo_code,
    )


def build_input(
    history: HistoricalData | None = None,
    posts: list[InfluencerPost] | None = None,
    **overrides,
) -> AttributionInput:
    fields = {
        "history": history or build_daily_history(),
        "posts": [build_post()] if posts is None else posts,
        "promo_context": PromoContext(windows=[]),
        "analysis_start": OBSERVATION_START,
    }
    fields.update(overrides)
    return AttributionInput(**fields)
