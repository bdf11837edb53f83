"""Synthetic stress-test scenarios."""

from influencer_lift.scenarios.generator import ScenarioGenerator, generate_test_scenarios

__all__ = ["ScenarioGenerator", "generate_test_scenarios"]
