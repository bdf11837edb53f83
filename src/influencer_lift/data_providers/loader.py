"""Assemble an ``AttributionInput`` from collaborator providers."""

import asyncio
import logging
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from influencer_lift.calendars import momentum_calendar
from influencer_lift.core.exceptions import DataError
from influencer_lift.data_providers.base import CommerceDataProvider, SocialActivityProvider
from influencer_lift.models.attribution import AttributionInput
from influencer_lift.models.commerce import Granularity, MomentumConfig

logger = logging.getLogger(__name__)


async def load_attribution_input(
    commerce: CommerceDataProvider,
    social: SocialActivityProvider,
    start: datetime,
    end: datetime,
    analysis_start: datetime | None = None,
    granularity: Granularity = Granularity.HOURLY,
    momentums: list[MomentumConfig] | None = None,
    category_engagement_rate: float | None = None,
) -> AttributionInput:
    """Fetch everything a run needs for ``[start, end)`` into memory.

    Args:
        commerce: Revenue, promotion and ad spend source
        social: Post source
        start: First instant of the lookback
        end: End of the observation period (exclusive)
        analysis_start: First observed instant; defaults to the earliest
            detection-window start
        granularity: Bucket size of the history
        momentums: Calendar events; the default retail calendar when None
        category_engagement_rate: Benchmark engagement rate in percent

    Returns:
        AttributionInput ready for the engine

    Raises:
        DataError: If the providers return data that cannot form an input
    """
    history, promo_context, paid_media, posts = await asyncio.gather(
        commerce.get_history(start, end, granularity),
        commerce.get_promo_context(start, end),
        commerce.get_paid_media(start, end),
        social.get_posts(start, end),
    )

    logger.info(
        f"Loaded {len(history.buckets)} buckets and {len(posts)} posts "
        f"for {start.isoformat()} to {end.isoformat()}"
    )

    try:
        return AttributionInput(
            history=history,
            momentums=momentum_calendar(start, end) if momentums is None else momentums,
            promo_context=promo_context,
            paid_media=paid_media,
            posts=posts,
            analysis_start=analysis_start,
            category_engagement_rate=category_engagement_rate,
        )
    except PydanticValidationError as e:
        raise DataError(f"Provider data does not form a valid input: {e}") from e
