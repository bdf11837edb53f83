"""Order aggregation.

Turns raw order records, as exported by a commerce platform, into the
bucketed ``HistoricalData`` the engine consumes.
"""

import logging
import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import pandas as pd

from influencer_lift.core.exceptions import DataError
from influencer_lift.models.commerce import DailyData, Granularity, HistoricalData

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("created_at", "total_price")

_FREQUENCIES = {Granularity.HOURLY: "h", Granularity.DAILY: "D"}


def clean_numeric_value(value: Any) -> float | None:
    """Parse an amount as exported by commerce platforms.

    Handles thousands separators, currency symbols and accounting-style
    negatives: ``"$1,234.56"`` gives 1234.56 and ``"(12.00)"`` gives -12.0.
    Empty or unparseable values give None.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None

    if isinstance(value, (int, float)):
        return float(value)

    cleaned = str(value).strip()
    if cleaned.lower() in ("", "n/a", "na", "--", "-", "null", "none"):
        return None

    cleaned = re.sub(r"[,$€£\s]", "", cleaned)
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]

    try:
        return float(cleaned)
    except (ValueError, OverflowError):
        logger.debug(f"Unable to parse numeric value: '{value}', returning None")
        return None


def _codes(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = list(value)
    else:
        return []
    return [str(item).strip().upper() for item in items if str(item).strip()]


def _utc(dt: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(dt)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")


def aggregate_orders(
    orders: pd.DataFrame | Iterable[dict[str, Any]],
    start: datetime,
    end: datetime,
    granularity: Granularity = Granularity.HOURLY,
) -> HistoricalData:
    """Bucket order records into revenue history.

    Args:
        orders: Records with ``created_at`` and ``total_price``; optional
            ``discount_codes`` (list or comma-separated string) and
            ``cancelled_at`` (cancelled orders are dropped)
        start: First instant to cover
        end: End of the covered range (exclusive)
        granularity: Bucket size

    Returns:
        HistoricalData with one UTC bucket per period, empty periods included

    Raises:
        DataError: If required columns are missing
    """
    frame = orders.copy() if isinstance(orders, pd.DataFrame) else pd.DataFrame(list(orders))
    freq = _FREQUENCIES[granularity]
    start_ts, end_ts = _utc(start).floor(freq), _utc(end)
    index = pd.date_range(start_ts, end_ts, freq=freq, inclusive="left")

    if frame.empty:
        frame = pd.DataFrame(columns=list(REQUIRED_COLUMNS))

    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise DataError(f"Order records are missing columns: {', '.join(missing)}")

    if "cancelled_at" in frame.columns:
        frame = frame[frame["cancelled_at"].isna()].copy()

    frame["created_at"] = pd.to_datetime(frame["created_at"], utc=True, errors="coerce")
    unparsed = int(frame["created_at"].isna().sum())
    if unparsed:
        logger.warning(f"Dropping {unparsed} orders with unparseable created_at")
    frame = frame.dropna(subset=["created_at"])

    frame["total_price"] = pd.to_numeric(
        frame["total_price"].map(clean_numeric_value), errors="coerce"
    ).fillna(0.0)
    frame = frame[(frame["created_at"] >= start_ts) & (frame["created_at"] < end_ts)].copy()
    frame["bucket"] = frame["created_at"].dt.floor(freq)

    grouped = frame.groupby("bucket")["total_price"]
    revenue = grouped.sum().reindex(index, fill_value=0.0)
    counts = grouped.size().reindex(index, fill_value=0)

    code_revenue: dict[pd.Timestamp, dict[str, float]] = {}
    code_orders: dict[pd.Timestamp, dict[str, int]] = {}
    if "discount_codes" in frame.columns and not frame.empty:
        coded = frame[["bucket", "total_price"]].assign(
            code=frame["discount_codes"].map(_codes)
        )
        coded = coded.explode("code").dropna(subset=["code"])
        for (bucket, code), rows in coded.groupby(["bucket", "code"]):
            code_revenue.setdefault(bucket, {})[code] = float(rows["total_price"].sum())
            code_orders.setdefault(bucket, {})[code] = int(len(rows))

    logger.info(
        f"Aggregated {len(frame)} orders into {len(index)} {granularity.value} buckets"
    )

    return HistoricalData(
        granularity=granularity,
        buckets=[
            DailyData(
                timestamp=ts.to_pydatetime(),
                revenue=float(revenue[ts]),
                orders=int(counts[ts]),
                promo_code_orders=code_orders.get(ts, {}),
                promo_code_revenue=code_revenue.get(ts, {}),
            )
            for ts in index
        ],
    )


def to_daily(history: HistoricalData) -> HistoricalData:
    """Roll hourly buckets up into calendar days of the buckets' own timezone."""
    if history.granularity == Granularity.DAILY:
        return history

    days: dict[datetime, list[DailyData]] = {}
    for bucket in history.buckets:
        day = bucket.timestamp.replace(hour=0, minute=0, second=0, microsecond=0)
        days.setdefault(day, []).append(bucket)

    buckets = []
    for day, hours in days.items():
        code_orders: dict[str, int] = {}
        code_revenue: dict[str, float] = {}
        for bucket in hours:
            for code, count in bucket.promo_code_orders.items():
                code_orders[code] = code_orders.get(code, 0) + count
            for code, amount in bucket.promo_code_revenue.items():
                code_revenue[code] = code_revenue.get(code, 0.0) + amount
        buckets.append(
            DailyData(
                timestamp=day,
                revenue=sum(b.revenue for b in hours),
                orders=sum(b.orders for b in hours),
                promo_code_orders=code_orders,
                promo_code_revenue=code_revenue,
            )
        )
    return HistoricalData(granularity=Granularity.DAILY, buckets=buckets)
