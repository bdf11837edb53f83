"""Attribution pipelines.

Both models run the same four stages over one immutable input:

1. ``compute_baseline``: clean the history of known effects and fit the
   seasonal, trend-aware baseline
2. ``apply_adjustments``: turn the baseline into fully adjusted expected
   revenue for every bucket
3. ``detect_lift``: measure actual against expected revenue in the
   detection windows and cross-check each one causally
4. ``attribute``: split detected lift across posts and grade confidence

The full model neutralises paid media and merges detection windows; the
simple model skips paid media, measures one coarse window and credits
promo-code orders directly.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime

import pandas as pd

from influencer_lift.core.config import EngineThresholds
from influencer_lift.engine.adjusters import momentum_effect, promo_multiplier
from influencer_lift.engine.attributor import Attributor, ConfidenceScorer
from influencer_lift.engine.baseline import BaselineEstimator, BaselineFit
from influencer_lift.engine.causal import CausalAnalyzer
from influencer_lift.engine.detector import (
    BucketGrid,
    DetectionSpan,
    LiftDetector,
    coarse_span,
    merge_post_windows,
)
from influencer_lift.engine.frame import BucketFrame
from influencer_lift.engine.paid_media import paid_media_multiplier
from influencer_lift.engine.validation import validate_input
from influencer_lift.models.attribution import (
    AttributionInput,
    AttributionModel,
    AttributionResult,
    BaselineMethod,
    ConfidenceGrade,
    FullAttributionResult,
    InfluencerAttribution,
    LiftWindow,
    PostShare,
    SimpleAttributionResult,
)
from influencer_lift.models.social import InfluencerPost

logger = logging.getLogger(__name__)


class AttributionPipeline(ABC):
    """Shared skeleton of the full and simple attribution models.

    Pipelines hold configuration only; every run builds its own frame and
    nothing survives between calls.
    """

    model: AttributionModel

    def __init__(self, thresholds: EngineThresholds | None = None):
        self.thresholds = thresholds or EngineThresholds()
        self.estimator = BaselineEstimator(self.thresholds)
        self.scorer = ConfidenceScorer(self.thresholds)

    def run(self, data: AttributionInput) -> AttributionResult:
        """Validate the input and run all four stages.

        Raises:
            ValidationError: If the input is malformed
        """
        validate_input(data)

        spans = self.detection_spans(data)
        warnings: list[str] = []
        analysis_start = self._analysis_start(data, spans, warnings)

        frame = BucketFrame.build(data.history, analysis_start)
        self._annotate(frame, data)

        logger.info(
            f"Running {self.model.value} attribution: {len(data.history.buckets)} buckets, "
            f"{len(data.posts)} posts, {len(spans)} detection window(s)"
        )

        fit = self.compute_baseline(frame, spans)
        self.apply_adjustments(frame, fit)
        windows = self.detect_lift(frame, spans)
        result = self.attribute(frame, data, fit, spans, windows, warnings)

        logger.info(
            f"{self.model.value} attribution complete: "
            f"{result.total_attributed_revenue:,.2f} attributed, "
            f"confidence {result.confidence.value}"
        )
        return result

    # Stages

    @abstractmethod
    def detection_spans(self, data: AttributionInput) -> list[DetectionSpan]:
        """Intervals in which lift is measured."""

    @abstractmethod
    def paid_media_factor(self, instant: datetime, data: AttributionInput) -> float:
        """Expected-revenue multiplier explained by ad activity."""

    def compute_baseline(self, frame: BucketFrame, spans: list[DetectionSpan]) -> BaselineFit:
        """Remove known effects from the history and fit the baseline."""
        data = frame.data
        explained = data["promo_multiplier"] * data["paid_multiplier"]
        clean = (data["revenue"] / explained - data["momentum_additive"]) / data[
            "momentum_multiplier"
        ].where(data["momentum_multiplier"] > 0)
        data["clean_revenue"] = clean.fillna(0.0).clip(lower=0.0)

        return self.estimator.fit(frame, self._in_windows(frame, spans))

    def apply_adjustments(self, frame: BucketFrame, fit: BaselineFit) -> None:
        """Fill ``expected`` and ``expected_variance`` for every bucket."""
        data = frame.data
        baseline, variance = fit.predict(data)
        data["baseline"] = baseline
        data["baseline_variance"] = variance

        scale = data["promo_multiplier"] * data["paid_multiplier"]
        data["expected"] = (
            baseline * data["momentum_multiplier"] + data["momentum_additive"]
        ) * scale
        data["expected_variance"] = variance * (data["momentum_multiplier"] * scale) ** 2

    def detect_lift(self, frame: BucketFrame, spans: list[DetectionSpan]) -> list[LiftWindow]:
        """Measure every span and cross-check it against its comparison period."""
        detector = LiftDetector(self.thresholds, self._average_order_value(frame))
        analyzer = CausalAnalyzer(self.thresholds)
        in_windows = self._in_windows(frame, spans)

        windows = []
        for span in spans:
            window = detector.measure(frame, span)
            causal = analyzer.evaluate(frame, span, in_windows)
            windows.append(window.model_copy(update={"causal": causal}))
        return windows

    @abstractmethod
    def attribute(
        self,
        frame: BucketFrame,
        data: AttributionInput,
        fit: BaselineFit,
        spans: list[DetectionSpan],
        windows: list[LiftWindow],
        warnings: list[str],
    ) -> AttributionResult:
        """Split detected lift across posts and grade the result."""

    # Helpers

    def _analysis_start(
        self, data: AttributionInput, spans: list[DetectionSpan], warnings: list[str]
    ) -> datetime:
        earliest = min((s.start for s in spans), default=None)
        if data.analysis_start is not None:
            if earliest is not None and earliest < data.analysis_start:
                warnings.append(
                    "a detection window starts before analysis_start; "
                    "its early buckets are also part of the baseline history"
                )
            return data.analysis_start
        if earliest is not None:
            return earliest
        last = data.history.buckets[-1].timestamp
        return last + data.history.bucket_delta

    def _annotate(self, frame: BucketFrame, data: AttributionInput) -> None:
        bucket_hours = float(frame.granularity.hours)
        effects = [momentum_effect(ts, data.momentums, bucket_hours) for ts in frame.timestamps]

        frame.data["momentum_multiplier"] = [e.multiplier for e in effects]
        frame.data["momentum_additive"] = [e.additive for e in effects]
        frame.data["active_momentums"] = [frozenset(e.active) for e in effects]
        frame.data["promo_multiplier"] = [
            promo_multiplier(ts, data.promo_context, self.thresholds) for ts in frame.timestamps
        ]
        frame.data["paid_multiplier"] = [
            self.paid_media_factor(ts, data) for ts in frame.timestamps
        ]

    def _average_order_value(self, frame: BucketFrame) -> float | None:
        for rows in (frame.lookback, frame.data):
            orders = float(rows["orders"].sum())
            if orders > 0:
                return float(rows["revenue"].sum()) / orders
        return None

    @staticmethod
    def _in_windows(frame: BucketFrame, spans: list[DetectionSpan]) -> pd.Series:
        in_windows = pd.Series(False, index=frame.data.index)
        for span in spans:
            in_windows |= frame.mask(span.start, span.end)
        return in_windows

    @staticmethod
    def _grid(data: AttributionInput) -> BucketGrid:
        return data.history.buckets[0].timestamp, data.history.bucket_delta

    def _observation_end(self, data: AttributionInput) -> datetime:
        return data.history.buckets[-1].timestamp + data.history.bucket_delta

    def _context_warnings(self, data: AttributionInput, fit: BaselineFit) -> list[str]:
        warnings = []
        if fit.method == BaselineMethod.FLAT_FALLBACK:
            warnings.append(
                f"only {fit.lookback_days:.1f} days of history, flat baseline used "
                f"and confidence capped at medium"
            )
        if data.promo_context is None:
            warnings.append("promotion calendar not supplied, confidence lowered")
        return warnings

    def _summarise(
        self,
        posts: list[InfluencerPost],
        windows: list[LiftWindow],
        shares: list[PostShare],
    ) -> tuple[list[InfluencerAttribution], ConfidenceGrade]:
        """Roll post shares up to influencers and grade the run."""
        by_post = {p.post_id: p for p in posts}
        window_of_post = {pid: i for i, w in enumerate(windows) for pid in w.post_ids}

        grouped: dict[str, list[InfluencerPost]] = defaultdict(list)
        for post in sorted(posts, key=lambda p: (p.timestamp, p.post_id)):
            grouped[post.influencer_id].append(post)

        shares_by_influencer: dict[str, list[PostShare]] = defaultdict(list)
        for share in shares:
            shares_by_influencer[by_post[share.post_id].influencer_id].append(share)

        influencers = []
        for influencer_id, own_posts in grouped.items():
            own_shares = shares_by_influencer.get(influencer_id, [])
            window_ids = sorted(
                {window_of_post[p.post_id] for p in own_posts if p.post_id in window_of_post}
            )
            expected = sum(windows[i].expected_revenue for i in window_ids)
            revenue = sum(s.attributed_revenue for s in own_shares)
            grades = [
                windows[i].confidence.grade for i in window_ids if windows[i].confidence
            ]

            influencers.append(
                InfluencerAttribution(
                    influencer_id=influencer_id,
                    username=next((p.username for p in own_posts if p.username), ""),
                    post_ids=[p.post_id for p in own_posts],
                    shares=own_shares,
                    attributed_revenue=revenue,
                    attributed_orders=sum(s.attributed_orders for s in own_shares),
                    direct_revenue=sum(s.direct_revenue for s in own_shares),
                    lift_pct=revenue / expected * 100.0 if expected > 0 else 0.0,
                    confidence=min(grades) if grades else ConfidenceGrade.LOW,
                )
            )

        significant = [
            w.confidence.grade for w in windows if w.confidence and w.detected_lift > 0
        ]
        overall = min(significant) if significant else ConfidenceGrade.LOW
        return influencers, overall

    @staticmethod
    def _totals(windows: list[LiftWindow], influencers: list[InfluencerAttribution]) -> dict:
        expected = sum(w.expected_revenue for w in windows)
        lift = sum(w.lift_revenue for w in windows)
        return {
            "total_expected_revenue": expected,
            "total_actual_revenue": sum(w.actual_revenue for w in windows),
            "total_lift_revenue": lift,
            "total_attributed_revenue": sum(i.attributed_revenue for i in influencers),
            "total_attributed_orders": sum(i.attributed_orders for i in influencers),
            "lift_pct": lift / expected * 100.0 if expected > 0 else 0.0,
        }


class FullAttributionPipeline(AttributionPipeline):
    """Baseline, momentum, promotion, paid media, merged windows, weighted split."""

    model = AttributionModel.FULL

    def detection_spans(self, data: AttributionInput) -> list[DetectionSpan]:
        return merge_post_windows(
            list(data.posts), self.thresholds.detection, self._grid(data)
        )

    def paid_media_factor(self, instant: datetime, data: AttributionInput) -> float:
        return paid_media_multiplier(instant, data.paid_media, self.thresholds)

    def attribute(
        self,
        frame: BucketFrame,
        data: AttributionInput,
        fit: BaselineFit,
        spans: list[DetectionSpan],
        windows: list[LiftWindow],
        warnings: list[str],
    ) -> FullAttributionResult:
        attributor = Attributor(self.thresholds, data.category_engagement_rate)
        flat = fit.method == BaselineMethod.FLAT_FALLBACK

        scored: list[LiftWindow] = []
        shares: list[PostShare] = []
        for index, (span, window) in enumerate(zip(spans, windows)):
            confidence = self.scorer.score(
                window,
                lookback_days=fit.lookback_days,
                promo_known=data.promo_context is not None,
                paid_media_known=data.paid_media is not None,
                flat_fallback=flat,
            )
            scored.append(window.model_copy(update={"confidence": confidence}))
            if window.detected_lift > 0:
                shares.extend(attributor.split(window, list(span.posts), index))

        influencers, overall = self._summarise(list(data.posts), scored, shares)

        warnings = warnings + self._context_warnings(data, fit)
        if data.paid_media is None:
            warnings.append("paid media activity not supplied, confidence lowered")

        return FullAttributionResult(
            baseline_method=fit.method,
            observation_start=frame.analysis_start,
            observation_end=self._observation_end(data),
            windows=scored,
            influencers=influencers,
            confidence=overall,
            warnings=warnings,
            paid_media_neutralized=data.paid_media is not None,
            **self._totals(scored, influencers),
        )


class SimpleAttributionPipeline(AttributionPipeline):
    """Reduced model for sparse data: no paid media, one coarse window,
    direct credit for influencer promo codes."""

    model = AttributionModel.SIMPLE

    def detection_spans(self, data: AttributionInput) -> list[DetectionSpan]:
        span = coarse_span(list(data.posts), self.thresholds.detection, self._grid(data))
        return [span] if span else []

    def paid_media_factor(self, instant: datetime, data: AttributionInput) -> float:
        return 1.0

    def direct_code_revenue(
        self, frame: BucketFrame, data: AttributionInput
    ) -> dict[str, tuple[float, float]]:
        """Revenue and orders per influencer carried by their own promo codes.

        Only observation buckets count; a code shared by two influencers is
        credited to the one who posted it first.
        """
        owner: dict[str, str] = {}
        for post in sorted(data.posts, key=lambda p: (p.timestamp, p.post_id)):
            if post.promo_code:
                owner.setdefault(post.promo_code.upper(), post.influencer_id)

        totals: dict[str, tuple[float, float]] = {}
        observed = frame.data["lookback"].tolist()
        for bucket, in_lookback in zip(data.history.buckets, observed):
            if in_lookback:
                continue
            for code, revenue in bucket.promo_code_revenue.items():
                influencer_id = owner.get(code.upper())
                if influencer_id is None:
                    continue
                rev, orders = totals.get(influencer_id, (0.0, 0.0))
                totals[influencer_id] = (
                    rev + revenue,
                    orders + bucket.promo_code_orders.get(code, 0),
                )
        return totals

    def attribute(
        self,
        frame: BucketFrame,
        data: AttributionInput,
        fit: BaselineFit,
        spans: list[DetectionSpan],
        windows: list[LiftWindow],
        warnings: list[str],
    ) -> SimpleAttributionResult:
        flat = fit.method == BaselineMethod.FLAT_FALLBACK
        warnings = warnings + self._context_warnings(data, fit)

        if not windows:
            return SimpleAttributionResult(
                baseline_method=fit.method,
                observation_start=frame.analysis_start,
                observation_end=self._observation_end(data),
                warnings=warnings,
            )

        window, span = windows[0], spans[0]
        direct = self.direct_code_revenue(frame, data)
        direct_revenue = sum(rev for rev, _ in direct.values())
        direct_orders = sum(orders for _, orders in direct.values())

        detected = max(window.detected_lift, direct_revenue)
        detected_orders = max(window.detected_orders, direct_orders)
        window = window.model_copy(
            update={"detected_lift": detected, "detected_orders": detected_orders}
        )
        code_evidence = min(1.0, direct_revenue / detected) if detected > 0 else 0.0

        confidence = self.scorer.score(
            window,
            lookback_days=fit.lookback_days,
            promo_known=data.promo_context is not None,
            paid_media_known=None,
            flat_fallback=flat,
            code_evidence=code_evidence,
        )
        window = window.model_copy(update={"confidence": confidence})

        indirect = detected - direct_revenue
        posts = list(span.posts)
        shares = Attributor(self.thresholds, data.category_engagement_rate).split(
            window, posts, 0, revenue=indirect, orders=detected_orders - direct_orders
        )
        shares = self._add_direct_credit(shares, posts, direct)

        influencers, overall = self._summarise(list(data.posts), [window], shares)
        return SimpleAttributionResult(
            baseline_method=fit.method,
            observation_start=frame.analysis_start,
            observation_end=self._observation_end(data),
            windows=[window],
            influencers=influencers,
            confidence=overall,
            warnings=warnings,
            total_direct_revenue=direct_revenue,
            total_indirect_revenue=indirect,
            **self._totals([window], influencers),
        )

    @staticmethod
    def _add_direct_credit(
        shares: list[PostShare],
        posts: list[InfluencerPost],
        direct: dict[str, tuple[float, float]],
    ) -> list[PostShare]:
        """Fold each influencer's code revenue into their first post's share."""
        credited: set[str] = set()
        updated = []
        for share, post in zip(shares, posts):
            if post.influencer_id in direct and post.influencer_id not in credited:
                credited.add(post.influencer_id)
                revenue, orders = direct[post.influencer_id]
                share = share.model_copy(
                    update={
                        "direct_revenue": revenue,
                        "attributed_revenue": share.attributed_revenue + revenue,
                        "attributed_orders": share.attributed_orders + orders,
                    }
                )
            updated.append(share)
        return updated


def run_full_attribution(
    data: AttributionInput, thresholds: EngineThresholds | None = None
) -> FullAttributionResult:
    """Run the full model.

    Raises:
        ValidationError: If the input is malformed
    """
    return FullAttributionPipeline(thresholds).run(data)


def run_simple_attribution(
    data: AttributionInput, thresholds: EngineThresholds | None = None
) -> SimpleAttributionResult:
    """Run the simplified model.

    Raises:
        ValidationError: If the input is malformed
    """
    return SimpleAttributionPipeline(thresholds).run(data)
