"""Collaborator interfaces that supply attribution input.

Providers perform all I/O. Whatever they return is resolved into the
in-memory data model before the engine is invoked.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from influencer_lift.models.commerce import (
    Granularity,
    HistoricalData,
    PaidMediaContext,
    PromoContext,
)
from influencer_lift.models.social import InfluencerPost


class CommerceDataProvider(ABC):
    """Interface for sources of revenue, order and marketing-calendar data."""

    @abstractmethod
    async def get_history(
        self,
        start: datetime,
        end: datetime,
        granularity: Granularity = Granularity.HOURLY,
    ) -> HistoricalData:
        """Fetch revenue buckets covering ``[start, end)``."""
        pass

    @abstractmethod
    async def get_promo_context(self, start: datetime, end: datetime) -> PromoContext | None:
        """Fetch store-wide promotions, or None when the calendar is unknown."""
        pass

    @abstractmethod
    async def get_paid_media(
        self, start: datetime, end: datetime
    ) -> PaidMediaContext | None:
        """Fetch ad spend, or None when it is not tracked."""
        pass


class SocialActivityProvider(ABC):
    """Interface for sources of influencer post timing and audience metrics."""

    @abstractmethod
    async def get_posts(self, start: datetime, end: datetime) -> list[InfluencerPost]:
        """Fetch posts published in ``[start, end)``."""
        pass
