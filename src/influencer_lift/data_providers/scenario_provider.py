"""Scenario-backed data provider for testing."""

import logging
from datetime import datetime

from influencer_lift.core.config import EngineThresholds
from influencer_lift.core.exceptions import DataError
from influencer_lift.data_providers.base import CommerceDataProvider, SocialActivityProvider
from influencer_lift.data_providers.orders import to_daily
from influencer_lift.models.commerce import (
    Granularity,
    HistoricalData,
    PaidMediaContext,
    PromoContext,
)
from influencer_lift.models.scenario import TestScenario
from influencer_lift.models.social import InfluencerPost
from influencer_lift.scenarios.generator import generate_test_scenarios

logger = logging.getLogger(__name__)


class ScenarioDataProvider(CommerceDataProvider, SocialActivityProvider):
    """Serve one synthetic scenario through the collaborator interfaces.

    Lets the full provider-to-engine path run without any external system.
    """

    def __init__(
        self,
        scenario_id: str = "growing",
        seed: int = 42,
        thresholds: EngineThresholds | None = None,
    ):
        """Initialize the scenario provider.

        Args:
            scenario_id: Canonical regime or variant id
            seed: Random seed for consistent scenario generation

        Raises:
            DataError: If the scenario id is unknown
        """
        self.seed = seed
        scenarios = {
            s.scenario_id: s
            for s in generate_test_scenarios(seed, include_variants=True, thresholds=thresholds)
        }
        if scenario_id not in scenarios:
            raise DataError(
                f"Unknown scenario '{scenario_id}', expected one of {sorted(scenarios)}"
            )
        self.scenario: TestScenario = scenarios[scenario_id]

    async def get_history(
        self,
        start: datetime,
        end: datetime,
        granularity: Granularity = Granularity.HOURLY,
    ) -> HistoricalData:
        history = self.scenario.input.history
        buckets = [b for b in history.buckets if start <= b.timestamp < end]
        logger.debug(f"Serving {len(buckets)} scenario buckets")
        selected = HistoricalData(granularity=history.granularity, buckets=buckets)
        if granularity == Granularity.DAILY:
            return to_daily(selected)
        return selected

    async def get_promo_context(self, start: datetime, end: datetime) -> PromoContext | None:
        promo = self.scenario.input.promo_context
        if promo is None:
            return None
        return PromoContext(windows=[w for w in promo.windows if w.overlaps(start, end)])

    async def get_paid_media(
        self, start: datetime, end: datetime
    ) -> PaidMediaContext | None:
        paid = self.scenario.input.paid_media
        if paid is None:
            return None
        return paid.model_copy(
            update={"windows": [w for w in paid.windows if w.overlaps(start, end)]}
        )

    async def get_posts(self, start: datetime, end: datetime) -> list[InfluencerPost]:
        return [p for p in self.scenario.input.posts if start <= p.timestamp < end]
