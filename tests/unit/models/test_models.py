"""Tests for the data models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from influencer_lift.models.attribution import ConfidenceGrade, LiftWindow
from influencer_lift.models.base import TimeWindow
from influencer_lift.models.commerce import (
    Granularity,
    HistoricalData,
    IntensityPoint,
    MomentumConfig,
    PaidMediaWindow,
    PromoContext,
    PromoWindow,
)
from influencer_lift.models.social import ContentType, InfluencerPost

T0 = datetime(2025, 3, 1, tzinfo=timezone.utc)


class TestTimeWindow:
    """Test half-open interval semantics."""

    def test_covers_is_half_open(self):
        window = TimeWindow(start=T0, end=T0 + timedelta(hours=2))
        assert window.covers(T0)
        assert window.covers(T0 + timedelta(hours=1))
        assert not window.covers(T0 + timedelta(hours=2))

    def test_overlaps(self):
        window = TimeWindow(start=T0, end=T0 + timedelta(hours=2))
        assert window.overlaps(T0 + timedelta(hours=1), T0 + timedelta(hours=3))
        assert not window.overlaps(T0 + timedelta(hours=2), T0 + timedelta(hours=3))
        assert not window.overlaps(T0 - timedelta(hours=1), T0)

    def test_duration_hours(self):
        assert TimeWindow(start=T0, end=T0 + timedelta(days=1)).duration_hours == 24.0

    def test_serializes_datetimes_as_iso(self):
        dumped = TimeWindow(start=T0, end=T0 + timedelta(hours=1)).model_dump()
        assert dumped["start"] == "2025-03-01T00:00:00+00:00"


class TestBaseModelConfig:
    """Test the shared model configuration."""

    def test_models_are_frozen(self):
        post = InfluencerPost(post_id="p1", influencer_id="i1", timestamp=T0)
        with pytest.raises(ValidationError):
            post.audience_size = 5

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            InfluencerPost(post_id="p1", influencer_id="i1", timestamp=T0, likes=3)

    def test_post_defaults(self):
        post = InfluencerPost(post_id="p1", influencer_id="i1", timestamp=T0)
        assert post.content_type == ContentType.POST
        assert post.engagement_rate is None
        assert post.promo_code is None


class TestHistoricalData:
    def test_granularity_delta(self):
        assert Granularity.HOURLY.delta == timedelta(hours=1)
        assert Granularity.DAILY.hours == 24

    def test_bucket_delta_follows_granularity(self):
        assert HistoricalData().bucket_delta == timedelta(days=1)
        assert HistoricalData(granularity=Granularity.HOURLY).bucket_delta == timedelta(hours=1)


class TestMomentumConfig:
    """Test momentum intensity curves."""

    def _momentum(self, **kwargs) -> MomentumConfig:
        fields = {
            "name": "Spring event",
            "value": 1.4,
            "start": T0 - timedelta(days=1),
            "end": T0 + timedelta(days=1),
        }
        fields.update(kwargs)
        return MomentumConfig(**fields)

    def test_full_intensity_without_curve(self):
        momentum = self._momentum()
        assert momentum.intensity_at(T0) == 1.0
        assert momentum.intensity_at(T0 + timedelta(days=2)) == 0.0

    def test_curve_is_interpolated_around_peak(self):
        momentum = self._momentum(
            peak=T0,
            intensity_curve=[
                IntensityPoint(days_offset=-1, intensity=0.0),
                IntensityPoint(days_offset=0, intensity=1.0),
                IntensityPoint(days_offset=1, intensity=0.0),
            ],
        )
        assert momentum.intensity_at(T0) == pytest.approx(1.0)
        assert momentum.intensity_at(T0 + timedelta(hours=12)) == pytest.approx(0.5)
        assert momentum.intensity_at(T0 - timedelta(hours=6)) == pytest.approx(0.75)


class TestPromoAndPaidMedia:
    def test_active_promo_window(self):
        window = PromoWindow(start=T0, end=T0 + timedelta(days=2), discount=0.2)
        context = PromoContext(windows=[window])
        assert context.active_at(T0 + timedelta(hours=5)) == window
        assert context.active_at(T0 + timedelta(days=3)) is None

    def test_discount_must_be_a_fraction(self):
        with pytest.raises(ValidationError):
            PromoWindow(start=T0, end=T0 + timedelta(days=1), discount=20)

    def test_daily_spend(self):
        window = PaidMediaWindow(
            start=T0, end=T0 + timedelta(days=2), spend=500.0, impressions=10_000
        )
        assert window.daily_spend == 250.0
        assert window.daily_impressions == 5000.0


class TestConfidenceGrade:
    def test_ordering(self):
        assert ConfidenceGrade.LOW < ConfidenceGrade.MEDIUM < ConfidenceGrade.HIGH
        assert ConfidenceGrade.HIGH >= ConfidenceGrade.MEDIUM
        assert min([ConfidenceGrade.HIGH, ConfidenceGrade.LOW]) == ConfidenceGrade.LOW

    def test_lift_window_defaults(self):
        window = LiftWindow(start=T0, end=T0 + timedelta(hours=25))
        assert window.detected_lift == 0.0
        assert window.significant is False
        assert window.confidence is None
