"""Influencer Lift.

Estimates how much of a merchant's revenue is attributable to influencer
posts, without tracking links, and serves the engine over MCP.
"""

__version__ = "1.0.0"

from influencer_lift.engine import run_full_attribution, run_simple_attribution
from influencer_lift.scenarios import generate_test_scenarios
from influencer_lift.server import create_mcp_server

__all__ = [
    "create_mcp_server",
    "generate_test_scenarios",
    "run_full_attribution",
    "run_simple_attribution",
]
