"""Synthetic scenario generator for stress-testing the attribution engine.

Every scenario is hourly commerce data around a fixed anchor date with a
known, intentional lift written into the detection window of each post.
Calendar momentum, promotions and ad spend are applied through the
engine's own adjusters, so a correct engine recovers exactly the
injected bump.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from influencer_lift.calendars import momentum_calendar
from influencer_lift.core.config import EngineThresholds
from influencer_lift.engine.adjusters import adjust_for_promo, momentum_effect
from influencer_lift.engine.detector import post_window
from influencer_lift.engine.paid_media import neutralize
from influencer_lift.models.attribution import AttributionInput, ConfidenceGrade
from influencer_lift.models.commerce import (
    DailyData,
    Granularity,
    HistoricalData,
    PaidMediaContext,
    PaidMediaWindow,
    PromoContext,
    PromoWindow,
)
from influencer_lift.models.scenario import BusinessRegime, ExpectedOutcome, TestScenario
from influencer_lift.models.social import ContentType, InfluencerPost

logger = logging.getLogger(__name__)

ANCHOR = datetime(2025, 3, 12, tzinfo=timezone.utc)
OBSERVATION_HOURS = 72
POST_TIME = ANCHOR + timedelta(hours=36)

# Monday dip, weekend boost
WEEKDAY_FACTORS = (0.85, 0.9, 0.95, 1.0, 1.05, 1.15, 1.1)

# Quiet nights, peaks around lunch and 20h
HOUR_PROFILE = (
    0.2, 0.15, 0.1, 0.1, 0.1, 0.15,
    0.3, 0.5, 0.7, 0.9, 1.0, 1.1,
    1.2, 1.1, 1.0, 0.9, 0.95, 1.0,
    1.15, 1.3, 1.4, 1.2, 0.8, 0.4,
)
HOUR_TOTAL = sum(HOUR_PROFILE)

PERSONAS = (
    ("inf-emma", "emma_lifestyle"),
    ("inf-julien", "julien_fit"),
    ("inf-sarah", "sarah_beauty"),
    ("inf-chloe", "chloe_mode"),
)

# Audience range and engagement range per tier
TIERS = {
    "micro": ((5_000, 30_000), (4.0, 8.0)),
    "mid": ((30_000, 150_000), (2.5, 5.0)),
    "macro": ((150_000, 500_000), (1.5, 3.0)),
}


@dataclass(frozen=True)
class RegimeProfile:
    """Shape of a merchant's revenue series."""

    regime: BusinessRegime
    base_daily_revenue: float
    daily_growth: float
    history_days: int
    day_shock: float
    hour_shock: float
    average_order_value: float
    category_engagement_rate: float
    baseline_daily_spend: float


PROFILES = {
    BusinessRegime.GROWING: RegimeProfile(
        regime=BusinessRegime.GROWING,
        base_daily_revenue=8000.0,
        daily_growth=1.008,
        history_days=56,
        day_shock=0.01,
        hour_shock=0.05,
        average_order_value=65.0,
        category_engagement_rate=3.0,
        baseline_daily_spend=800.0,
    ),
    BusinessRegime.NEW: RegimeProfile(
        regime=BusinessRegime.NEW,
        base_daily_revenue=1200.0,
        daily_growth=1.015,
        history_days=5,
        day_shock=0.04,
        hour_shock=0.10,
        average_order_value=45.0,
        category_engagement_rate=4.0,
        baseline_daily_spend=200.0,
    ),
    BusinessRegime.DECLINING: RegimeProfile(
        regime=BusinessRegime.DECLINING,
        base_daily_revenue=15000.0,
        daily_growth=0.998,
        history_days=56,
        day_shock=0.01,
        hour_shock=0.05,
        average_order_value=90.0,
        category_engagement_rate=1.8,
        baseline_daily_spend=1500.0,
    ),
}


class ScenarioGenerator:
    """Deterministic generator of the canonical and variant scenarios."""

    def __init__(self, seed: int = 42, thresholds: EngineThresholds | None = None):
        """Initialize the generator.

        Args:
            seed: Random seed; identical seeds give identical scenarios
            thresholds: Engine constants used to apply promotions and ad
                spend and to size detection windows
        """
        self.seed = seed
        self.thresholds = thresholds or EngineThresholds()

    def _rng(self, scenario_id: str) -> random.Random:
        # One stream per scenario so variants never shift the canonical data
        return random.Random(f"{self.seed}-{scenario_id}")

    def generate(self, include_variants: bool = False) -> list[TestScenario]:
        scenarios = [self.growing(), self.new(), self.declining()]
        if include_variants:
            scenarios.extend(
                [self.growing_duo(), self.growing_promo(), self.declining_promo()]
            )
        logger.info(f"Generated {len(scenarios)} scenarios with seed {self.seed}")
        return scenarios

    # Canonical regimes

    def growing(self) -> TestScenario:
        profile = PROFILES[BusinessRegime.GROWING]
        rng = self._rng("growing")
        posts = [self._post(rng, "growing-post-1", 0, POST_TIME, "mid")]
        return self._scenario(
            rng,
            scenario_id="growing",
            profile=profile,
            posts=posts,
            bump_pct=30.0,
            promo_context=PromoContext(windows=[]),
            paid_media=self._steady_spend(profile),
            expected=ExpectedOutcome(
                positive_lift=True,
                lift_pct_range=(25.0, 35.0),
                min_confidence=ConfidenceGrade.MEDIUM,
                notes="Trend must not be read as lift; the +30 % bump must be",
            ),
            description="Fast-growing DTC brand, one mid-tier post, +30 % bump",
        )

    def new(self) -> TestScenario:
        profile = PROFILES[BusinessRegime.NEW]
        rng = self._rng("new")
        post = self._post(rng, "new-post-1", 0, POST_TIME, "micro")
        post = post.model_copy(update={"promo_code": "EMMA10"})
        return self._scenario(
            rng,
            scenario_id="new",
            profile=profile,
            posts=[post],
            bump_pct=70.0,
            promo_context=PromoContext(windows=[]),
            paid_media=None,
            code_share=0.4,
            expected=ExpectedOutcome(
                positive_lift=True,
                max_confidence=ConfidenceGrade.MEDIUM,
                notes="Five days of history: flat baseline, confidence never high",
            ),
            description="Store launched five days ago, first micro-influencer with a code",
        )

    def declining(self) -> TestScenario:
        profile = PROFILES[BusinessRegime.DECLINING]
        rng = self._rng("declining")
        posts = [self._post(rng, "declining-post-1", 0, POST_TIME, "mid")]
        return self._scenario(
            rng,
            scenario_id="declining",
            profile=profile,
            posts=posts,
            bump_pct=0.0,
            promo_context=PromoContext(windows=[]),
            paid_media=self._steady_spend(profile),
            expected=ExpectedOutcome(
                positive_lift=False,
                lift_pct_range=(-5.0, 5.0),
                max_confidence=ConfidenceGrade.LOW,
                notes="Flat post window on a declining trend: no false positive",
            ),
            description="Mature brand losing revenue, post with no real effect",
        )

    # Variants

    def growing_duo(self) -> TestScenario:
        profile = PROFILES[BusinessRegime.GROWING]
        rng = self._rng("growing-duo")
        posts = [
            self._post(rng, "duo-post-1", 0, POST_TIME, "mid"),
            self._post(rng, "duo-post-2", 1, POST_TIME + timedelta(hours=2), "micro"),
        ]
        return self._scenario(
            rng,
            scenario_id="growing-duo",
            profile=profile,
            posts=posts,
            bump_pct=30.0,
            promo_context=PromoContext(windows=[]),
            paid_media=self._steady_spend(profile),
            expected=ExpectedOutcome(
                positive_lift=True,
                lift_pct_range=(25.0, 35.0),
                min_confidence=ConfidenceGrade.MEDIUM,
                notes="Two posts two hours apart share one merged window",
            ),
            description="Two influencers post two hours apart",
            variant=True,
        )

    def growing_promo(self) -> TestScenario:
        profile = PROFILES[BusinessRegime.GROWING]
        rng = self._rng("growing-promo")
        posts = [self._post(rng, "promo-post-1", 2, POST_TIME, "macro")]
        end = ANCHOR + timedelta(hours=OBSERVATION_HOURS)
        promo = PromoContext(
            windows=[
                PromoWindow(
                    start=ANCHOR, end=end, discount=0.2, label="Spring sale", global_code=True
                )
            ]
        )
        return self._scenario(
            rng,
            scenario_id="growing-promo",
            profile=profile,
            posts=posts,
            bump_pct=30.0,
            promo_context=promo,
            paid_media=self._steady_spend(profile, observation_factor=2.0),
            expected=ExpectedOutcome(
                positive_lift=True,
                lift_pct_range=(25.0, 35.0),
                notes="Store promotion and doubled ad spend must be neutralised",
            ),
            description="Post during a 20 % store promotion with doubled ad spend",
            variant=True,
        )

    def declining_promo(self) -> TestScenario:
        profile = PROFILES[BusinessRegime.DECLINING]
        rng = self._rng("declining-promo")
        posts = [self._post(rng, "decline-promo-post-1", 3, POST_TIME, "micro")]
        end = ANCHOR + timedelta(hours=OBSERVATION_HOURS)
        promo = PromoContext(
            windows=[
                PromoWindow(
                    start=ANCHOR,
                    end=end,
                    discount=0.35,
                    label="Clearance",
                    global_code=True,
                    bundles=True,
                    free_shipping=True,
                )
            ]
        )
        return self._scenario(
            rng,
            scenario_id="declining-promo",
            profile=profile,
            posts=posts,
            bump_pct=8.0,
            promo_context=promo,
            paid_media=self._steady_spend(profile),
            expected=ExpectedOutcome(
                positive_lift=True,
                lift_pct_range=(3.0, 13.0),
                notes="A heavy promotion must not be credited to the post",
            ),
            description="Declining brand in a heavy promotion, small real bump",
            variant=True,
        )

    # Building blocks

    def _post(
        self,
        rng: random.Random,
        post_id: str,
        persona: int,
        timestamp: datetime,
        tier: str,
    ) -> InfluencerPost:
        influencer_id, username = PERSONAS[persona]
        (low_reach, high_reach), (low_eng, high_eng) = TIERS[tier]
        return InfluencerPost(
            post_id=post_id,
            influencer_id=influencer_id,
            username=username,
            timestamp=timestamp,
            content_type=ContentType.POST,
            audience_size=rng.randint(low_reach, high_reach),
            engagement_rate=round(rng.uniform(low_eng, high_eng), 2),
        )

    def _steady_spend(
        self, profile: RegimeProfile, observation_factor: float = 1.0
    ) -> PaidMediaContext:
        start = ANCHOR - timedelta(days=profile.history_days)
        end = ANCHOR + timedelta(hours=OBSERVATION_HOURS)
        daily = profile.baseline_daily_spend
        return PaidMediaContext(
            windows=[
                PaidMediaWindow(start=start, end=ANCHOR, spend=daily * profile.history_days),
                PaidMediaWindow(
                    start=ANCHOR,
                    end=end,
                    spend=daily * observation_factor * OBSERVATION_HOURS / 24,
                ),
            ],
            baseline_daily_spend=daily,
        )

    def _shock(self, rng: random.Random, sigma: float) -> float:
        return max(-0.9, rng.gauss(0.0, sigma))

    def _scenario(
        self,
        rng: random.Random,
        scenario_id: str,
        profile: RegimeProfile,
        posts: list[InfluencerPost],
        bump_pct: float,
        promo_context: PromoContext | None,
        paid_media: PaidMediaContext | None,
        expected: ExpectedOutcome,
        description: str,
        code_share: float = 0.0,
        variant: bool = False,
    ) -> TestScenario:
        start = ANCHOR - timedelta(days=profile.history_days)
        end = ANCHOR + timedelta(hours=OBSERVATION_HOURS)
        momentums = momentum_calendar(start, end)
        windows = [post_window(p, self.thresholds.detection) for p in posts]
        code = next((p.promo_code for p in posts if p.promo_code), None)
        bump = 1.0 + bump_pct / 100.0

        hours = int((end - start).total_seconds() // 3600)
        day_shocks = [self._shock(rng, profile.day_shock) for _ in range(hours // 24 + 1)]

        buckets = []
        for i in range(hours):
            ts = start + timedelta(hours=i)
            revenue = (
                profile.base_daily_revenue
                * profile.daily_growth ** (i / 24.0)
                * WEEKDAY_FACTORS[ts.weekday()]
                * HOUR_PROFILE[ts.hour]
                / HOUR_TOTAL
            )
            revenue *= (1.0 + day_shocks[i // 24]) * (1.0 + self._shock(rng, profile.hour_shock))
            revenue = momentum_effect(ts, momentums, 1.0).apply(revenue)
            revenue = adjust_for_promo(revenue, ts, promo_context, self.thresholds)
            revenue = neutralize(revenue, ts, paid_media, self.thresholds)

            code_revenue: dict[str, float] = {}
            code_orders: dict[str, int] = {}
            bucket_end = ts + timedelta(hours=1)
            if any(ts < w_end and w_start < bucket_end for w_start, w_end in windows):
                lifted = revenue * bump
                if code and code_share > 0:
                    amount = round((lifted - revenue) * code_share, 2)
                    code_revenue[code] = amount
                    code_orders[code] = max(1, round(amount / profile.average_order_value))
                revenue = lifted

            buckets.append(
                DailyData(
                    timestamp=ts,
                    revenue=round(revenue, 2),
                    orders=round(revenue / profile.average_order_value),
                    promo_code_orders=code_orders,
                    promo_code_revenue=code_revenue,
                )
            )

        data = AttributionInput(
            history=HistoricalData(granularity=Granularity.HOURLY, buckets=buckets),
            momentums=momentums,
            promo_context=promo_context,
            paid_media=paid_media,
            posts=posts,
            analysis_start=ANCHOR,
            category_engagement_rate=profile.category_engagement_rate,
        )
        return TestScenario(
            scenario_id=scenario_id,
            regime=profile.regime,
            description=description,
            input=data,
            expected=expected,
            injected_lift_pct=bump_pct,
            variant=variant,
        )


def generate_test_scenarios(
    seed: int = 42,
    include_variants: bool = False,
    thresholds: EngineThresholds | None = None,
) -> list[TestScenario]:
    """Canonical scenarios (growing, new, declining), plus variants on request.

    Deterministic: the same seed always yields the same scenarios.
    """
    return ScenarioGenerator(seed, thresholds).generate(include_variants)
