"""Tests for order aggregation."""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from influencer_lift.core.exceptions import DataError
from influencer_lift.data_providers.orders import aggregate_orders, clean_numeric_value, to_daily
from influencer_lift.models.commerce import Granularity

DAY = datetime(2025, 3, 1, tzinfo=timezone.utc)


class TestCleanNumericValue:
    """Test amount parsing for exported order data."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("$1,234.56", 1234.56),
            ("€ 99", 99.0),
            ("(12.00)", -12.0),
            (42, 42.0),
            ("", None),
            ("N/A", None),
            ("abc", None),
            (None, None),
        ],
    )
    def test_values(self, raw, expected):
        assert clean_numeric_value(raw) == expected


class TestAggregateOrders:
    """Test bucketing of raw orders into revenue history."""

    @pytest.fixture
    def orders(self):
        return [
            {
                "created_at": "2025-03-01T10:15:00Z",
                "total_price": "$1,200.50",
                "discount_codes": "emma10",
            },
            {"created_at": "2025-03-01T10:45:00Z", "total_price": 50},
            {
                "created_at": "2025-03-01T12:00:00Z",
                "total_price": 30,
                "cancelled_at": "2025-03-01T13:00:00Z",
            },
            {"created_at": "2025-03-01T15:30:00Z", "total_price": 20, "discount_codes": ["EMMA10", "VIP"]},
        ]

    def test_hourly_buckets(self, orders):
        history = aggregate_orders(orders, DAY, DAY + timedelta(days=1))

        assert history.granularity == Granularity.HOURLY
        assert len(history.buckets) == 24
        assert history.buckets[0].timestamp == DAY

        ten = history.buckets[10]
        assert ten.revenue == pytest.approx(1250.5)
        assert ten.orders == 2
        assert ten.promo_code_revenue == {"EMMA10": pytest.approx(1200.5)}
        assert ten.promo_code_orders == {"EMMA10": 1}

    def test_cancelled_orders_are_dropped(self, orders):
        history = aggregate_orders(orders, DAY, DAY + timedelta(days=1))
        assert history.buckets[12].revenue == 0.0
        assert history.buckets[12].orders == 0

    def test_multiple_codes_per_order(self, orders):
        fifteen = aggregate_orders(orders, DAY, DAY + timedelta(days=1)).buckets[15]
        assert fifteen.promo_code_orders == {"EMMA10": 1, "VIP": 1}

    def test_daily_granularity(self, orders):
        history = aggregate_orders(orders, DAY, DAY + timedelta(days=2), Granularity.DAILY)
        assert len(history.buckets) == 2
        assert history.buckets[0].revenue == pytest.approx(1270.5)
        assert history.buckets[0].orders == 3
        assert history.buckets[1].revenue == 0.0

    def test_accepts_a_dataframe(self, orders):
        history = aggregate_orders(pd.DataFrame(orders), DAY, DAY + timedelta(days=1))
        assert sum(b.orders for b in history.buckets) == 3

    def test_orders_outside_range_are_ignored(self, orders):
        history = aggregate_orders(orders, DAY, DAY + timedelta(hours=11))
        assert len(history.buckets) == 11
        assert sum(b.revenue for b in history.buckets) == pytest.approx(1250.5)

    def test_unparseable_dates_are_dropped(self):
        records = [
            {"created_at": "2025-03-01T02:00:00Z", "total_price": 10},
            {"created_at": None, "total_price": 99},
        ]
        history = aggregate_orders(records, DAY, DAY + timedelta(hours=3))
        assert sum(b.revenue for b in history.buckets) == 10.0

    def test_no_orders_gives_empty_buckets(self):
        history = aggregate_orders([], DAY, DAY + timedelta(hours=3))
        assert [b.revenue for b in history.buckets] == [0.0, 0.0, 0.0]

    def test_missing_columns(self):
        with pytest.raises(DataError, match="total_price"):
            aggregate_orders([{"created_at": "2025-03-01T02:00:00Z"}], DAY, DAY + timedelta(hours=3))


class TestToDaily:
    def test_rolls_up_hours(self):
        records = [
            {"created_at": "2025-03-01T09:00:00Z", "total_price": 10, "discount_codes": "A"},
            {"created_at": "2025-03-01T18:00:00Z", "total_price": 15, "discount_codes": "A"},
            {"created_at": "2025-03-02T01:00:00Z", "total_price": 5},
        ]
        hourly = aggregate_orders(records, DAY, DAY + timedelta(days=2))
        daily = to_daily(hourly)

        assert daily.granularity == Granularity.DAILY
        assert [b.revenue for b in daily.buckets] == [25.0, 5.0]
        assert daily.buckets[0].promo_code_revenue == {"A": 25.0}
        assert daily.buckets[0].promo_code_orders == {"A": 2}

    def test_daily_history_is_unchanged(self):
        daily = aggregate_orders([], DAY, DAY + timedelta(days=2), Granularity.DAILY)
        assert to_daily(daily) is daily
