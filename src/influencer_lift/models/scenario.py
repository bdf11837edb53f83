"""Synthetic stress-test scenario models."""

from enum import Enum

from pydantic import Field

from influencer_lift.models.attribution import AttributionInput, ConfidenceGrade
from influencer_lift.models.base import BaseLiftModel


class BusinessRegime(str, Enum):
    """Canonical merchant trajectories."""

    GROWING = "growing"
    NEW = "new"
    DECLINING = "declining"


class ExpectedOutcome(BaseLiftModel):
    """Qualitative outcome the engine should reproduce on a scenario."""

    positive_lift: bool = Field(..., description="Whether lift should be detected")
    lift_pct_range: tuple[float, float] | None = Field(
        default=None, description="Acceptable detected lift, in percent"
    )
    min_confidence: ConfidenceGrade | None = None
    max_confidence: ConfidenceGrade | None = None
    notes: str = ""


class TestScenario(BaseLiftModel):
    """A synthetic attribution input with its expected outcome."""

    # Not a pytest test class despite the name
    __test__ = False

    scenario_id: str
    regime: BusinessRegime
    description: str = ""
    input: AttributionInput
    expected: ExpectedOutcome
    injected_lift_pct: float = Field(
        0.0, description="Multiplicative bump written into each post window, percent"
    )
    variant: bool = Field(
        default=False, description="False for the three canonical regimes"
    )
