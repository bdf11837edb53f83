"""Input validation for attribution runs.

Problems are collected rather than raised one at a time so that callers
see everything wrong with an input in a single ``ValidationError``.
Nothing here ever corrects the input.
"""

import logging
from collections import defaultdict
from datetime import datetime

from influencer_lift.core.exceptions import ValidationError
from influencer_lift.models.attribution import AttributionInput
from influencer_lift.models.base import TimeWindow
from influencer_lift.models.commerce import AdjustmentKind

logger = logging.getLogger(__name__)


def _is_aware(dt: datetime) -> bool:
    return dt.tzinfo is not None and dt.tzinfo.utcoffset(dt) is not None


def _window_issues(label: str, windows: list[TimeWindow]) -> list[str]:
    issues = []
    for i, window in enumerate(windows):
        if window.end <= window.start:
            issues.append(f"{label} {i} ends before it starts")
    return issues


def _overlapping_pairs(windows: list[TimeWindow]) -> list[tuple[int, int]]:
    pairs = []
    for i, first in enumerate(windows):
        for j in range(i + 1, len(windows)):
            if first.overlaps(windows[j].start, windows[j].end):
                pairs.append((i, j))
    return pairs


def collect_issues(data: AttributionInput) -> list[str]:
    """Return every validation problem found in the input."""
    issues: list[str] = []
    buckets = data.history.buckets

    if not buckets:
        issues.append("historical data is empty")

    instants: list[datetime] = [b.timestamp for b in buckets]
    instants.extend(p.timestamp for p in data.posts)
    if data.analysis_start is not None:
        instants.append(data.analysis_start)
    windows: list[TimeWindow] = list(data.momentums)
    if data.promo_context is not None:
        windows.extend(data.promo_context.windows)
    if data.paid_media is not None:
        windows.extend(data.paid_media.windows)
    for window in windows:
        instants.extend((window.start, window.end))
    if len({_is_aware(dt) for dt in instants}) > 1:
        # Comparisons below would raise TypeError on mixed values
        issues.append("timestamps mix timezone-aware and naive values")
        return issues

    delta = data.history.bucket_delta
    off_grid: list[int] = []
    for i in range(1, len(buckets)):
        previous, current = buckets[i - 1].timestamp, buckets[i].timestamp
        if current == previous:
            issues.append(f"duplicate bucket timestamp {current.isoformat()}")
        elif current < previous:
            issues.append(
                f"historical data is not sorted at index {i} ({current.isoformat()})"
            )
        elif (current - previous) % delta:
            off_grid.append(i)
    if off_grid:
        # Gaps of whole buckets are fine, anything else means the wrong granularity
        issues.append(
            f"{len(off_grid)} bucket(s) are not spaced by whole {data.history.granularity.value} "
            f"buckets, first at index {off_grid[0]} ({buckets[off_grid[0]].timestamp.isoformat()})"
        )

    for bucket in buckets:
        if bucket.revenue < 0:
            issues.append(f"negative revenue at {bucket.timestamp.isoformat()}")
        if bucket.orders < 0:
            issues.append(f"negative order count at {bucket.timestamp.isoformat()}")
        if any(v < 0 for v in bucket.promo_code_revenue.values()):
            issues.append(f"negative promo code revenue at {bucket.timestamp.isoformat()}")

    issues.extend(_window_issues("momentum", list(data.momentums)))
    by_name: dict[str, list[TimeWindow]] = defaultdict(list)
    for momentum in data.momentums:
        if momentum.kind == AdjustmentKind.MULTIPLICATIVE and momentum.value <= 0:
            issues.append(f"momentum '{momentum.name}' has a non-positive multiplier")
        by_name[momentum.name].append(momentum)
    for name, ranges in by_name.items():
        if _overlapping_pairs(ranges):
            issues.append(f"momentum '{name}' is declared twice over overlapping ranges")

    if data.promo_context is not None:
        promos = list(data.promo_context.windows)
        issues.extend(_window_issues("promo window", promos))
        for i, j in _overlapping_pairs(promos):
            issues.append(f"promo windows {i} and {j} overlap")

    if data.paid_media is not None:
        issues.extend(_window_issues("paid media window", list(data.paid_media.windows)))

    seen: set[str] = set()
    for post in data.posts:
        if post.post_id in seen:
            issues.append(f"duplicate post id '{post.post_id}'")
        seen.add(post.post_id)

    return issues


def validate_input(data: AttributionInput) -> None:
    """Raise ``ValidationError`` when the input cannot be attributed.

    Raises:
        ValidationError: With one entry in ``issues`` per problem found
    """
    issues = collect_issues(data)
    if issues:
        logger.warning(f"Rejected attribution input with {len(issues)} issue(s)")
        raise ValidationError("Invalid attribution input", issues=issues)
