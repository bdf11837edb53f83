"""Pytest configuration and shared fixtures."""

import pytest

from influencer_lift.core.config import EngineThresholds
from influencer_lift.scenarios import generate_test_scenarios
from tests.utils import LOOKBACK_DAYS, build_daily_history, build_input


@pytest.fixture
def thresholds():
    """Default engine constants."""
    return EngineThresholds()


@pytest.fixture
def lifted_input():
    """Six weeks of history, then a +30 % response on the two post-window days."""
    history = build_daily_history(bumps={LOOKBACK_DAYS: 1.3, LOOKBACK_DAYS + 1: 1.3})
    return build_input(history=history)


@pytest.fixture(scope="session")
def scenarios():
    """All canonical and variant scenarios, keyed by id."""
    return {s.scenario_id: s for s in generate_test_scenarios(42, include_variants=True)}
