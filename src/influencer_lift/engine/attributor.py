"""Multi-influencer attributor and confidence scorer.

Post weight
-----------
``raw = (audience_weight * audience + recency_weight * recency) * engagement``

- ``audience = ln(1 + audience_size) / ln(1 + largest audience in the window)``
- ``recency = exp(-recency_decay_per_hour * hours since the window's first post)``
- ``engagement = clamp(engagement_rate / category rate, floor, cap)``, or 1
  when either rate is unknown

Weights are normalised to sum to 1 (equal shares when every raw score is
0). Amounts are rounded to cents and the last post takes the rounding
remainder, so shares always add up to the window total.

Confidence
----------
Full model: ``0.5 * signal + 0.25 * overlap + 0.25 * completeness``.
Simple model: ``0.4 * signal + 0.3 * code evidence + 0.15 * overlap +
0.15 * completeness``. ``high`` at 0.75 and above, ``medium`` at 0.5.
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime

from influencer_lift.core.config import EngineThresholds
from influencer_lift.models.attribution import (
    ConfidenceBreakdown,
    ConfidenceGrade,
    LiftWindow,
    PostShare,
)
from influencer_lift.models.social import InfluencerPost

logger = logging.getLogger(__name__)

Weigher = Callable[[list[InfluencerPost]], list[float]]


def allocate(total: float, weights: list[float], precision: int = 2) -> list[float]:
    """Split ``total`` proportionally to ``weights``.

    The last entry absorbs the rounding remainder so the parts sum to the
    total exactly.
    """
    if not weights:
        return []

    weight_sum = sum(weights)
    if weight_sum <= 0:
        weights = [1.0] * len(weights)
        weight_sum = float(len(weights))

    parts = [round(total * w / weight_sum, precision) for w in weights[:-1]]
    parts.append(total - sum(parts))
    return parts


def post_weights(
    posts: list[InfluencerPost],
    thresholds: EngineThresholds,
    category_engagement_rate: float | None = None,
) -> list[float]:
    """Normalised weights of the posts sharing one window."""
    if not posts:
        return []

    first_post: datetime = min(p.timestamp for p in posts)
    largest = max(p.audience_size for p in posts)

    raw = []
    for post in posts:
        audience = math.log1p(post.audience_size) / math.log1p(largest) if largest > 0 else 0.0
        hours = (post.timestamp - first_post).total_seconds() / 3600.0
        recency = math.exp(-thresholds.recency_decay_per_hour * hours)

        engagement = 1.0
        if category_engagement_rate and post.engagement_rate is not None:
            engagement = post.engagement_rate / category_engagement_rate
            engagement = max(thresholds.engagement_floor, min(thresholds.engagement_cap, engagement))

        raw.append(
            (thresholds.audience_weight * audience + thresholds.recency_weight * recency)
            * engagement
        )

    total = sum(raw)
    if total <= 0:
        return [1.0 / len(posts)] * len(posts)
    return [r / total for r in raw]


class Attributor:
    """Split a window's detected lift across its contributing posts."""

    def __init__(
        self,
        thresholds: EngineThresholds,
        category_engagement_rate: float | None = None,
        weigher: Weigher | None = None,
    ):
        self.thresholds = thresholds
        self.category_engagement_rate = category_engagement_rate
        self._weigher = weigher

    def weights(self, posts: list[InfluencerPost]) -> list[float]:
        if self._weigher is not None:
            return self._weigher(posts)
        return post_weights(posts, self.thresholds, self.category_engagement_rate)

    def split(
        self,
        window: LiftWindow,
        posts: list[InfluencerPost],
        window_index: int,
        revenue: float | None = None,
        orders: float | None = None,
    ) -> list[PostShare]:
        """Credit ``revenue`` (default: the window's detected lift) to posts.

        Returns an empty list when there is nothing to split or nobody to
        credit.
        """
        revenue = window.detected_lift if revenue is None else revenue
        orders = window.detected_orders if orders is None else orders

        if not posts:
            if revenue > 0:
                logger.warning(
                    f"Window {window_index} has lift but no contributing posts, skipping"
                )
            return []

        weights = self.weights(posts)
        revenue_parts = allocate(max(revenue, 0.0), weights)
        order_parts = allocate(max(orders, 0.0), weights)

        return [
            PostShare(
                post_id=post.post_id,
                window_index=window_index,
                weight=min(1.0, max(0.0, weight)),
                attributed_revenue=rev,
                attributed_orders=ords,
            )
            for post, weight, rev, ords in zip(posts, weights, revenue_parts, order_parts)
        ]


class ConfidenceScorer:
    """Grade how much a window's result can be trusted."""

    def __init__(self, thresholds: EngineThresholds):
        self.thresholds = thresholds

    def grade(self, score: float) -> ConfidenceGrade:
        if score >= self.thresholds.high_threshold:
            return ConfidenceGrade.HIGH
        if score >= self.thresholds.medium_threshold:
            return ConfidenceGrade.MEDIUM
        return ConfidenceGrade.LOW

    def score(
        self,
        window: LiftWindow,
        lookback_days: float,
        promo_known: bool,
        paid_media_known: bool | None,
        flat_fallback: bool,
        code_evidence: float | None = None,
    ) -> ConfidenceBreakdown:
        """Score one window.

        Args:
            window: Measured window
            lookback_days: Days of history before the observation period
            promo_known: Whether the promotion calendar was supplied
            paid_media_known: Whether ad activity was supplied; None when the
                model does not use it
            flat_fallback: Whether the baseline had to fall back to a flat level
            code_evidence: Share of the detected lift backed by promo-code
                orders (simple model only)

        Returns:
            ConfidenceBreakdown with the grade and the reasons behind it
        """
        t = self.thresholds
        reasons: list[str] = []

        signal = max(0.0, min(1.0, window.z_score / t.strong_signal_z))

        co_occurring = (
            max(0, len(window.post_ids) - 1)
            + len(window.active_momentums)
            + (1 if window.promo_active else 0)
        )
        overlap = 1.0 / (1.0 + t.overlap_penalty * co_occurring)
        if co_occurring:
            reasons.append(f"{co_occurring} co-occurring post(s) or event(s)")

        completeness = min(1.0, lookback_days / t.full_history_days)
        if completeness < 1.0:
            reasons.append(f"only {lookback_days:.1f} days of history")
        if not promo_known:
            completeness -= t.missing_context_penalty
            reasons.append("promotion calendar unknown")
        if paid_media_known is False:
            completeness -= t.missing_context_penalty
            reasons.append("paid media activity unknown")
        completeness = max(0.0, completeness)

        if code_evidence is None:
            score = 0.5 * signal + 0.25 * overlap + 0.25 * completeness
        else:
            score = 0.4 * signal + 0.3 * code_evidence + 0.15 * overlap + 0.15 * completeness
        causal_agreement = None
        if window.causal is not None and t.causal.confidence_weight > 0:
            causal_agreement = window.causal.combined_score
            weight = t.causal.confidence_weight
            score = (1.0 - weight) * score + weight * causal_agreement
            if causal_agreement < 0.5:
                reasons.append("causal cross-checks do not confirm the lift")
        score = max(0.0, min(1.0, score))

        grade = self.grade(score)
        if not window.significant and not code_evidence:
            grade = ConfidenceGrade.LOW
            reasons.append("lift not significant")
        if flat_fallback and grade > ConfidenceGrade.MEDIUM:
            grade = ConfidenceGrade.MEDIUM
            reasons.append("flat baseline, history too short for seasonality")

        return ConfidenceBreakdown(
            signal_strength=signal,
            overlap=overlap,
            completeness=completeness,
            code_evidence=code_evidence,
            causal_agreement=causal_agreement,
            score=score,
            grade=grade,
            reasons=reasons,
        )
