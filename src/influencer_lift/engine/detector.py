"""Lift detector.

Each post opens a detection window that starts shortly before the post
and stays open for a content-type dependent number of hours. Windows
are first widened to whole revenue buckets, and windows that then share
a bucket are merged before anything is measured, so the same revenue is
never counted under two posts.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from influencer_lift.core.config import DetectionConfig, EngineThresholds
from influencer_lift.engine.frame import BucketFrame
from influencer_lift.models.attribution import LiftWindow
from influencer_lift.models.social import InfluencerPost

logger = logging.getLogger(__name__)

# Start of any bucket and the bucket length
BucketGrid = tuple[datetime, timedelta]


@dataclass(frozen=True)
class DetectionSpan:
    """An interval to measure and the posts that opened it."""

    start: datetime
    end: datetime
    posts: tuple[InfluencerPost, ...]


def post_window(post: InfluencerPost, detection: DetectionConfig) -> tuple[datetime, datetime]:
    """Detection interval ``[start, end)`` of a single post."""
    start = post.timestamp - timedelta(hours=detection.pre_post_hours)
    end = post.timestamp + timedelta(hours=detection.response_hours(post.content_type.value))
    return start, end


def snap_to_buckets(start: datetime, end: datetime, grid: BucketGrid) -> tuple[datetime, datetime]:
    """Widen ``[start, end)`` to the bucket boundaries of ``grid``."""
    origin, delta = grid
    first = math.floor((start - origin) / delta)
    last = math.ceil((end - origin) / delta)
    return origin + first * delta, origin + last * delta


def _windows(
    posts: list[InfluencerPost], detection: DetectionConfig, grid: BucketGrid | None
) -> list[tuple[datetime, datetime, InfluencerPost]]:
    windows = []
    for post in posts:
        start, end = post_window(post, detection)
        if grid is not None:
            start, end = snap_to_buckets(start, end, grid)
        windows.append((start, end, post))
    return windows


def merge_post_windows(
    posts: list[InfluencerPost],
    detection: DetectionConfig,
    grid: BucketGrid | None = None,
) -> list[DetectionSpan]:
    """Merge overlapping post windows into disjoint spans, in time order.

    With a ``grid`` every window is widened to whole buckets first, so two
    spans never touch the same bucket.
    """
    intervals = sorted(
        _windows(posts, detection, grid),
        key=lambda item: (item[0], item[2].timestamp, item[2].post_id),
    )

    spans: list[DetectionSpan] = []
    for start, end, post in intervals:
        if spans and start < spans[-1].end:
            last = spans[-1]
            spans[-1] = DetectionSpan(
                start=last.start, end=max(last.end, end), posts=(*last.posts, post)
            )
        else:
            spans.append(DetectionSpan(start=start, end=end, posts=(post,)))
    return spans


def coarse_span(
    posts: list[InfluencerPost],
    detection: DetectionConfig,
    grid: BucketGrid | None = None,
) -> DetectionSpan | None:
    """One span from the earliest window start to the latest window end."""
    if not posts:
        return None
    windows = _windows(posts, detection, grid)
    ordered = sorted(posts, key=lambda p: (p.timestamp, p.post_id))
    return DetectionSpan(
        start=min(w[0] for w in windows),
        end=max(w[1] for w in windows),
        posts=tuple(ordered),
    )


class LiftDetector:
    """Measure actual against fully adjusted expected revenue inside a span."""

    def __init__(self, thresholds: EngineThresholds, average_order_value: float | None):
        """Initialize the detector.

        Args:
            thresholds: Significance constants
            average_order_value: Historical revenue per order, used to turn
                expected revenue into expected orders (None when unknown)
        """
        self.thresholds = thresholds
        self.average_order_value = average_order_value

    def measure(self, frame: BucketFrame, span: DetectionSpan) -> LiftWindow:
        rows = frame.data[frame.mask(span.start, span.end)]
        post_ids = [p.post_id for p in span.posts]

        if rows.empty:
            logger.warning(
                f"No revenue buckets between {span.start.isoformat()} and "
                f"{span.end.isoformat()}, posts {post_ids} cannot be measured"
            )
            return LiftWindow(start=span.start, end=span.end, post_ids=post_ids)

        actual = float(rows["revenue"].sum())
        expected = float(rows["expected"].sum())
        actual_orders = float(rows["orders"].sum())
        expected_orders = (
            expected / self.average_order_value if self.average_order_value else 0.0
        )

        lift = actual - expected
        if expected > 0:
            lift_pct = lift / expected * 100.0
            noise = max(
                math.sqrt(float(rows["expected_variance"].sum())),
                expected * self.thresholds.noise_floor_pct / 100.0,
            )
            z_score = lift / noise
        else:
            # Nothing expected: the ratio is undefined, report zero lift
            lift, lift_pct, z_score = 0.0, 0.0, 0.0

        significant = (
            lift > 0
            and z_score >= self.thresholds.significance_z
            and lift_pct >= self.thresholds.min_lift_pct
        )
        lift_orders = actual_orders - expected_orders if expected > 0 else 0.0

        active_momentums = sorted({name for names in rows["active_momentums"] for name in names})

        logger.debug(
            f"Window {span.start.isoformat()}: actual {actual:,.2f}, expected "
            f"{expected:,.2f}, lift {lift_pct:+.1f}%, z {z_score:.2f}"
        )

        return LiftWindow(
            start=span.start,
            end=span.end,
            post_ids=post_ids,
            bucket_count=len(rows),
            actual_revenue=actual,
            expected_revenue=expected,
            actual_orders=actual_orders,
            expected_orders=expected_orders,
            lift_revenue=lift,
            lift_orders=lift_orders,
            lift_pct=lift_pct,
            z_score=z_score,
            significant=significant,
            detected_lift=lift if significant else 0.0,
            detected_orders=max(0.0, lift_orders) if significant else 0.0,
            active_momentums=active_momentums,
            promo_active=bool((rows["promo_multiplier"] > 1.0).any()),
        )
