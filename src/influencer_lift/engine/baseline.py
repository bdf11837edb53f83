"""Historical baseline estimator.

Expected revenue for a bucket is the robust average of the same
seasonal slot (hour-of-week for hourly data, weekday for daily data)
across the lookback, after the lookback has been detrended. The trend is
reapplied at prediction time so that growth or decline is not read as
influencer lift.
"""

import logging
import math
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from scipy import stats

from influencer_lift.core.config import EngineThresholds
from influencer_lift.engine.frame import BucketFrame
from influencer_lift.models.attribution import BaselineMethod

logger = logging.getLogger(__name__)

# Coefficient of variation assumed when a single value is all we have
_SINGLE_VALUE_CV = 0.5


def trimmed_mean(values, trim_fraction: float) -> float:
    """Mean after dropping ``trim_fraction`` of values from each tail."""
    if len(values) == 0:
        return 0.0
    return float(stats.trim_mean(values, trim_fraction))


def _variance(values, level: float) -> float:
    if len(values) >= 2:
        return float(np.var(values))
    return (level * _SINGLE_VALUE_CV) ** 2


def theil_sen_weekly_slope(days, log_totals) -> float | None:
    """Median slope over day pairs a whole number of weeks apart.

    Pairing same weekdays only keeps weekly seasonality out of the slope.
    Returns None when no such pair exists.
    """
    days = np.asarray(days, dtype=float)
    log_totals = np.asarray(log_totals, dtype=float)
    i, j = np.triu_indices(len(days), k=1)
    gaps = days[j] - days[i]
    weekly = (gaps > 0) & (gaps % 7 == 0)
    if not weekly.any():
        return None
    slopes = (log_totals[j] - log_totals[i])[weekly] / gaps[weekly]
    return float(np.median(slopes))


@dataclass(frozen=True)
class BaselineFit:
    """Fitted baseline: seasonal levels at the reference day plus a trend."""

    method: BaselineMethod
    reference_day: float
    daily_log_trend: float
    global_level: float
    global_variance: float
    levels: dict[int, float] = field(default_factory=dict)
    variances: dict[int, float] = field(default_factory=dict)
    lookback_days: float = 0.0

    @property
    def daily_growth(self) -> float:
        return math.exp(self.daily_log_trend)

    def predict(self, data: pd.DataFrame) -> tuple[pd.Series, pd.Series]:
        """Expected revenue and its variance for every row of ``data``."""
        level = data["season_key"].map(self.levels).fillna(self.global_level)
        variance = data["season_key"].map(self.variances).fillna(self.global_variance)
        growth = self.daily_growth ** (data["day_number"] - self.reference_day)
        return (level * growth).astype(float), (variance * growth**2).astype(float)


class BaselineEstimator:
    """Fit a seasonal, trend-aware baseline on the cleaned lookback."""

    def __init__(self, thresholds: EngineThresholds):
        self.thresholds = thresholds

    def fit(self, frame: BucketFrame, in_windows: pd.Series | None = None) -> BaselineFit:
        """Fit the baseline.

        Args:
            frame: Run frame carrying a ``clean_revenue`` column
            in_windows: Buckets inside detection windows, excluded from the
                flat fallback when it has to use observation buckets

        Returns:
            BaselineFit, seasonal when the lookback is long enough
        """
        lookback_days = frame.lookback_days()

        if lookback_days < self.thresholds.min_history_days:
            logger.info(
                f"Only {lookback_days:.1f} lookback days, using flat fallback baseline"
            )
            return self._fit_flat(frame, in_windows, lookback_days)

        lookback = frame.lookback
        slope = self._fit_trend(lookback, frame.buckets_per_day)
        reference_day = float(lookback["day_number"].iloc[-1])

        detrended = lookback["clean_revenue"] / (
            math.exp(slope) ** (lookback["day_number"] - reference_day)
        )
        trim = self.thresholds.trim_fraction

        groups = detrended.groupby(lookback["season_key"])
        slot_levels = groups.agg(stats.trim_mean, proportiontocut=trim)
        slot_variances = groups.var(ddof=0).where(
            groups.size() >= 2, (slot_levels * _SINGLE_VALUE_CV) ** 2
        )
        levels = {int(k): float(v) for k, v in slot_levels.items()}
        variances = {int(k): float(v) for k, v in slot_variances.items()}

        all_values = detrended.to_numpy()
        global_level = trimmed_mean(all_values, trim)

        logger.debug(
            f"Seasonal baseline: {len(levels)} slots, daily trend {slope:+.4f}, "
            f"{lookback_days:.1f} lookback days"
        )
        return BaselineFit(
            method=BaselineMethod.SEASONAL,
            reference_day=reference_day,
            daily_log_trend=slope,
            global_level=global_level,
            global_variance=_variance(all_values, global_level),
            levels=levels,
            variances=variances,
            lookback_days=lookback_days,
        )

    def _fit_trend(self, lookback: pd.DataFrame, buckets_per_day: int) -> float:
        per_day = lookback.groupby("day")["clean_revenue"].agg(["sum", "size"])
        complete = per_day[(per_day["size"] == buckets_per_day) & (per_day["sum"] > 0)]

        if len(complete) < self.thresholds.min_trend_days:
            return 0.0

        slope = theil_sen_weekly_slope(
            complete.index.to_numpy(), np.log(complete["sum"].to_numpy())
        )
        if slope is None:
            return 0.0

        limit = self.thresholds.max_daily_trend
        return max(-limit, min(limit, slope))

    def _fit_flat(
        self,
        frame: BucketFrame,
        in_windows: pd.Series | None,
        lookback_days: float,
    ) -> BaselineFit:
        data = frame.data
        values = frame.lookback["clean_revenue"].to_numpy()

        if len(values) == 0:
            # Brand-new store: use what it sells outside the post windows
            outside = data if in_windows is None else data[~in_windows]
            values = outside["clean_revenue"].to_numpy()
            if len(values) == 0:
                values = data["clean_revenue"].to_numpy()

        level = trimmed_mean(values, self.thresholds.trim_fraction)
        return BaselineFit(
            method=BaselineMethod.FLAT_FALLBACK,
            reference_day=float(data["day_number"].iloc[0]) if len(data) else 0.0,
            daily_log_trend=0.0,
            global_level=level,
            global_variance=_variance(values, level),
            lookback_days=lookback_days,
        )
