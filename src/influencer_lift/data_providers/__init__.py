"""Data providers module for influencer-lift.

This module defines the collaborator boundary that feeds the engine:
- Commerce and social provider interfaces
- Order aggregation into bucketed revenue history
- Commenter to buyer matching and order-level evidence
- A scenario-backed provider for testing
"""

from influencer_lift.data_providers.base import CommerceDataProvider, SocialActivityProvider
from influencer_lift.data_providers.loader import load_attribution_input
from influencer_lift.data_providers.matching import (
    extract_buyers,
    is_new_customer,
    match_commenters,
    product_mention,
)
from influencer_lift.data_providers.orders import aggregate_orders, to_daily
from influencer_lift.data_providers.scenario_provider import ScenarioDataProvider

__all__ = [
    "CommerceDataProvider",
    "SocialActivityProvider",
    "ScenarioDataProvider",
    "aggregate_orders",
    "extract_buyers",
    "is_new_customer",
    "load_attribution_input",
    "match_commenters",
    "product_mention",
    "to_daily",
]
