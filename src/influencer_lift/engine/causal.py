"""Causal cross-checks of a detected lift.

The detector compares a window with its adjusted baseline. The checks in
this module look at the same window from three other angles, each using
only the residual ``revenue - expected`` around the window start:

- difference-in-differences of the residual between the comparison
  period and the window (Welch t-test)
- an interrupted time series: a segmented regression that separates a
  level jump at the window start from a pre-existing residual trend
- a causal-impact test of the cumulative window effect against the
  prediction band learned in the comparison period

Each check scores the window in [0, 1]; the weighted agreement is blended
into the window's confidence score.
"""

import logging
import math
from datetime import timedelta

import numpy as np
import pandas as pd
from scipy import stats

from influencer_lift.core.config import CausalConfig, EngineThresholds
from influencer_lift.engine.detector import DetectionSpan
from influencer_lift.engine.frame import BucketFrame, epoch_seconds
from influencer_lift.models.causal import (
    CausalEvidence,
    CausalImpactEstimate,
    DiDEstimate,
    InterruptedTimeSeries,
)

logger = logging.getLogger(__name__)

_ITS_PARAMETERS = 4


def _z_critical(alpha: float) -> float:
    return float(stats.norm.ppf(1.0 - alpha / 2.0))


def difference_in_differences(
    pre: np.ndarray, post: np.ndarray, noise_floor: float, alpha: float
) -> DiDEstimate | None:
    """Change of the mean residual from ``pre`` to ``post``.

    Args:
        pre: Residuals of the comparison period
        post: Residuals inside the window
        noise_floor: Smallest standard error accepted, in revenue per bucket
        alpha: Significance level

    Returns:
        DiDEstimate, or None with fewer than two buckets on either side
    """
    if len(pre) < 2 or len(post) < 2:
        return None

    estimate = float(post.mean() - pre.mean())
    pre_var, post_var = float(pre.var(ddof=1)), float(post.var(ddof=1))
    standard_error = math.sqrt(pre_var / len(pre) + post_var / len(post))

    if pre_var > 0 and post_var > 0 and standard_error >= noise_floor:
        test = stats.ttest_ind(post, pre, equal_var=False)
        t_statistic, p_value = float(test.statistic), float(test.pvalue)
    else:
        # Degenerate variance: fall back to a normal test on the floored error
        standard_error = max(standard_error, noise_floor)
        t_statistic = estimate / standard_error if standard_error > 0 else 0.0
        p_value = float(2.0 * stats.norm.sf(abs(t_statistic)))

    z = _z_critical(alpha)
    significant = p_value < alpha
    return DiDEstimate(
        pre_buckets=len(pre),
        post_buckets=len(post),
        estimate=estimate,
        standard_error=standard_error,
        t_statistic=t_statistic,
        p_value=min(1.0, max(0.0, p_value)),
        ci95_lower=estimate - z * standard_error,
        ci95_upper=estimate + z * standard_error,
        significant=significant,
        score=max(0.0, 1.0 - p_value) if estimate > 0 else 0.0,
    )


def _p_values(coefficients: np.ndarray, errors: np.ndarray, dof: int) -> np.ndarray:
    p_values = np.ones_like(coefficients)
    scale = max(1.0, float(np.abs(coefficients).max()))
    for k, (coef, err) in enumerate(zip(coefficients, errors)):
        if err > 0:
            p_values[k] = 2.0 * stats.t.sf(abs(coef / err), dof)
        elif abs(coef) > 1e-9 * scale:
            # Exact fit: any non-zero coefficient is certain
            p_values[k] = 0.0
    return p_values


def interrupted_time_series(
    pre: np.ndarray, post: np.ndarray, alpha: float, max_score: float
) -> InterruptedTimeSeries | None:
    """Segmented regression ``y = b0 + b1*t + b2*after + b3*t*after``.

    ``t`` counts buckets from the window start, so ``b2`` is the level
    jump at the window start and ``b3`` the change of slope after it.
    """
    n_pre, n_post = len(pre), len(post)
    n = n_pre + n_post
    dof = n - _ITS_PARAMETERS
    if n_pre < 2 or n_post < 2 or dof < 1:
        return None

    y = np.concatenate([pre, post])
    t = np.arange(n, dtype=float) - n_pre
    after = (t >= 0).astype(float)
    design = np.column_stack([np.ones(n), t, after, t * after])

    coefficients, _, _, _ = np.linalg.lstsq(design, y, rcond=None)
    fitted = design @ coefficients
    ssr = float(((y - fitted) ** 2).sum())
    sst = float(((y - y.mean()) ** 2).sum())
    r_squared = min(1.0, max(0.0, 1.0 - ssr / sst)) if sst > 0 else 0.0

    covariance = (ssr / dof) * np.linalg.pinv(design.T @ design)
    errors = np.sqrt(np.clip(np.diag(covariance), 0.0, None))
    p_values = _p_values(coefficients, errors, dof)

    intercept, pre_trend, level_change, trend_change = (float(c) for c in coefficients)
    counterfactual = intercept + pre_trend * t[n_pre:]
    total_effect = float(np.clip(post - counterfactual, 0.0, None).sum())

    score = 0.30
    if level_change > 0 and p_values[2] < alpha:
        score += 0.25
    if trend_change > 0 or (level_change > 0 and trend_change > -pre_trend):
        score += 0.15
    if r_squared > 0.5:
        score += 0.15
    if r_squared > 0.7:
        score += 0.10

    return InterruptedTimeSeries(
        pre_trend=pre_trend,
        level_change=level_change,
        trend_change=trend_change,
        level_p_value=float(min(1.0, p_values[2])),
        trend_p_value=float(min(1.0, p_values[3])),
        r_squared=r_squared,
        total_effect=total_effect,
        score=min(max_score, score),
    )


def causal_impact(
    pre: np.ndarray,
    post_actual: np.ndarray,
    post_expected: np.ndarray,
    noise_floor_pct: float,
    alpha: float,
) -> CausalImpactEstimate | None:
    """Cumulative window effect against the comparison-period residual spread."""
    if len(pre) < 2 or len(post_actual) == 0:
        return None

    spread = float(pre.std(ddof=1))
    floors = post_expected * noise_floor_pct / 100.0
    cumulative_sd = float(np.sqrt(np.maximum(spread**2, floors**2).sum()))
    if cumulative_sd <= 0:
        return None

    actual = float(post_actual.sum())
    expected = float(post_expected.sum())
    effect = actual - expected
    z = _z_critical(alpha)
    probability = float(stats.norm.cdf(effect / cumulative_sd))

    return CausalImpactEstimate(
        cumulative_actual=actual,
        cumulative_expected=expected,
        cumulative_effect=effect,
        effect_lower=effect - z * cumulative_sd,
        effect_upper=effect + z * cumulative_sd,
        relative_effect_pct=effect / expected * 100.0 if expected > 0 else 0.0,
        probability_causal=probability,
        score=probability,
    )


def combine(
    did: DiDEstimate | None,
    its: InterruptedTimeSeries | None,
    impact: CausalImpactEstimate | None,
    config: CausalConfig,
) -> CausalEvidence | None:
    """Weighted agreement of the available checks; None when none could run."""
    weighted = [
        (check.score, weight)
        for check, weight in (
            (did, config.did_weight),
            (its, config.its_weight),
            (impact, config.impact_weight),
        )
        if check is not None and weight > 0
    ]
    if not weighted:
        return None

    total_weight = sum(w for _, w in weighted)
    combined = sum(s * w for s, w in weighted) / total_weight

    if combined >= 0.7:
        interpretation = "cross-checks agree on a clear signal after the post"
    elif combined >= 0.5:
        interpretation = "moderate agreement, a post-window signal is likely"
    elif combined >= 0.3:
        interpretation = "weak or noisy signal, interpret with care"
    else:
        interpretation = "no clear signal after the post"

    return CausalEvidence(
        did=did,
        its=its,
        impact=impact,
        combined_score=min(1.0, max(0.0, combined)),
        interpretation=interpretation,
    )


class CausalAnalyzer:
    """Run the cross-checks for one window of a run frame."""

    def __init__(self, thresholds: EngineThresholds):
        self.thresholds = thresholds
        self.config = thresholds.causal

    def comparison_period(
        self, frame: BucketFrame, span: DetectionSpan, in_windows: pd.Series
    ) -> pd.DataFrame:
        """Buckets in the ``pre_days`` before the window, outside every window."""
        data = frame.data
        start = epoch_seconds(span.start)
        earliest = epoch_seconds(span.start - timedelta(days=self.config.pre_days))
        before = (data["t0"] >= earliest) & (data["t0"] < start) & ~in_windows
        return data[before]

    def evaluate(
        self, frame: BucketFrame, span: DetectionSpan, in_windows: pd.Series
    ) -> CausalEvidence | None:
        if not self.config.enabled:
            return None

        window = frame.data[frame.mask(span.start, span.end)]
        comparison = self.comparison_period(frame, span, in_windows)
        if window.empty or comparison.empty:
            logger.debug(
                f"No comparison period before {span.start.isoformat()}, "
                f"causal cross-checks skipped"
            )
            return None

        pre = (comparison["revenue"] - comparison["expected"]).to_numpy(dtype=float)
        post = (window["revenue"] - window["expected"]).to_numpy(dtype=float)
        post_expected = window["expected"].to_numpy(dtype=float)

        alpha = self.config.alpha
        noise_floor = float(post_expected.mean()) * self.thresholds.noise_floor_pct / 100.0

        evidence = combine(
            difference_in_differences(pre, post, noise_floor, alpha),
            interrupted_time_series(pre, post, alpha, self.config.its_max_score),
            causal_impact(
                pre,
                window["revenue"].to_numpy(dtype=float),
                post_expected,
                self.thresholds.noise_floor_pct,
                alpha,
            ),
            self.config,
        )
        if evidence is not None:
            logger.debug(
                f"Causal cross-checks for {span.start.isoformat()}: "
                f"{evidence.combined_score:.2f} ({evidence.interpretation})"
            )
        return evidence
