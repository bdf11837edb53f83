"""Per-run bucket frame.

One DataFrame holds every intermediate per-bucket value of a run
(adjustment factors, cleaned history, baseline and expectation). It is
allocated once when the run starts and discarded with the result.
"""

from dataclasses import dataclass
from datetime import datetime

import pandas as pd

from influencer_lift.models.commerce import Granularity, HistoricalData


def epoch_seconds(dt: datetime) -> float:
    return dt.timestamp()


def season_key(ts: datetime, granularity: Granularity) -> int:
    """Hour-of-week for hourly data, weekday for daily data."""
    if granularity == Granularity.HOURLY:
        return ts.weekday() * 24 + ts.hour
    return ts.weekday()


@dataclass
class BucketFrame:
    """Bucket-indexed working table of one attribution run.

    Columns set at construction: ``t0`` (bucket start, epoch seconds),
    ``revenue``, ``orders``, ``season_key``, ``day`` (calendar day
    ordinal), ``day_number`` (fractional days since the epoch) and
    ``lookback``. The pipeline adds the adjustment and baseline columns.
    """

    granularity: Granularity
    timestamps: list[datetime]
    analysis_start: datetime
    data: pd.DataFrame

    @classmethod
    def build(cls, history: HistoricalData, analysis_start: datetime) -> "BucketFrame":
        buckets = history.buckets
        timestamps = [b.timestamp for b in buckets]
        cutoff = epoch_seconds(analysis_start)
        t0 = [epoch_seconds(ts) for ts in timestamps]

        data = pd.DataFrame(
            {
                "t0": t0,
                "revenue": [float(b.revenue) for b in buckets],
                "orders": [float(b.orders) for b in buckets],
                "season_key": [season_key(ts, history.granularity) for ts in timestamps],
                "day": [ts.date().toordinal() for ts in timestamps],
                "day_number": [t / 86400.0 for t in t0],
                "lookback": [t < cutoff for t in t0],
            }
        )
        return cls(
            granularity=history.granularity,
            timestamps=timestamps,
            analysis_start=analysis_start,
            data=data,
        )

    @property
    def bucket_seconds(self) -> float:
        return self.granularity.hours * 3600.0

    @property
    def buckets_per_day(self) -> int:
        return 24 // self.granularity.hours

    @property
    def lookback(self) -> pd.DataFrame:
        return self.data[self.data["lookback"]]

    @property
    def observation(self) -> pd.DataFrame:
        return self.data[~self.data["lookback"]]

    def lookback_days(self) -> float:
        """Days spanned by the lookback buckets."""
        lookback = self.lookback
        if lookback.empty:
            return 0.0
        span = lookback["t0"].iloc[-1] + self.bucket_seconds - lookback["t0"].iloc[0]
        return span / 86400.0

    def mask(self, start: datetime, end: datetime) -> pd.Series:
        """Buckets whose interval intersects ``[start, end)``."""
        t0 = self.data["t0"]
        return (t0 < epoch_seconds(end)) & (t0 + self.bucket_seconds > epoch_seconds(start))
