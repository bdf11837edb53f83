"""Tests for MCP server functionality."""

import pytest
from pydantic import ValidationError

from influencer_lift.models.commerce import HistoricalData
from influencer_lift.models.matching import Commenter
from influencer_lift.server import (
    AttributionRequest,
    CommenterMatchRequest,
    ErrorCode,
    ScenariosRequest,
    create_mcp_server,
    generate_test_scenarios,
    get_config,
    health_check,
    match_post_commenters,
    run_full_attribution,
    run_simple_attribution,
)
from tests.utils import build_input


def _fn(tool):
    """The undecorated function behind a registered tool or resource."""
    return getattr(tool, "fn", tool)


def test_create_mcp_server():
    """Test that the MCP server can be created."""
    server = create_mcp_server()
    assert server is not None
    assert server.name == "Influencer Lift MCP Server"


class TestRequestModels:
    def test_scenario_request(self):
        request = AttributionRequest(scenario_id="growing")
        assert request.input is None
        assert request.seed is None

    def test_exactly_one_source(self):
        with pytest.raises(ValidationError, match="exactly one"):
            AttributionRequest()
        with pytest.raises(ValidationError, match="exactly one"):
            AttributionRequest(input=build_input(), scenario_id="growing")

    def test_scenarios_request_defaults(self):
        request = ScenariosRequest()
        assert request.include_variants is False
        assert request.include_data is False


class TestAttributionTools:
    """Test the attribution tools end to end."""

    @pytest.mark.asyncio
    async def test_full_attribution_on_scenario(self):
        result = await _fn(run_full_attribution)(AttributionRequest(scenario_id="growing"))

        assert result["status"] == "success"
        assert result["metadata"]["model"] == "full"
        assert result["metadata"]["scenario_id"] == "growing"
        assert result["data"]["model"] == "full"
        assert 25.0 <= result["data"]["lift_pct"] <= 35.0
        assert result["data"]["influencers"][0]["influencer_id"] == "inf-emma"

    @pytest.mark.asyncio
    async def test_simple_attribution_on_input(self, lifted_input):
        result = await _fn(run_simple_attribution)(AttributionRequest(input=lifted_input))

        assert result["status"] == "success"
        assert result["data"]["model"] == "simple"
        assert result["metadata"]["scenario_id"] is None
        assert result["data"]["total_attributed_revenue"] > 0

    @pytest.mark.asyncio
    async def test_invalid_input(self):
        request = AttributionRequest(input=build_input(history=HistoricalData(buckets=[])))
        result = await _fn(run_full_attribution)(request)

        assert result["status"] == "error"
        assert result["error_code"] == ErrorCode.INVALID_INPUT
        assert "historical data is empty" in result["details"]["issues"]
        assert result["data"] is None

    @pytest.mark.asyncio
    async def test_unknown_scenario(self):
        result = await _fn(run_full_attribution)(AttributionRequest(scenario_id="bankrupt"))

        assert result["status"] == "error"
        assert result["error_code"] == ErrorCode.DATA_ERROR
        assert "bankrupt" in result["message"]


class TestScenarioTool:
    @pytest.mark.asyncio
    async def test_generate_canonical_scenarios(self):
        result = await _fn(generate_test_scenarios)(ScenariosRequest(seed=7))

        assert result["status"] == "success"
        assert result["metadata"] == {"seed": 7, "scenario_count": 3}
        assert [s["scenario_id"] for s in result["data"]] == ["growing", "new", "declining"]
        assert "input" not in result["data"][0]

    @pytest.mark.asyncio
    async def test_include_variants_and_data(self):
        result = await _fn(generate_test_scenarios)(
            ScenariosRequest(include_variants=True, include_data=True)
        )

        assert result["metadata"]["scenario_count"] == 6
        assert result["data"][0]["input"]["history"]["granularity"] == "hourly"
        assert result["data"][2]["expected"]["positive_lift"] is False


class TestCommenterMatching:
    """Test the commenter matching tool."""

    @pytest.mark.asyncio
    async def test_matches_with_order_evidence(self):
        orders = [
            {
                "id": 1,
                "customer": {"first_name": "Emilie", "last_name": "Durand"},
                "email": "emilie@example.com",
                "total_price": "64.00",
                "created_at": "2025-05-19T10:00:00Z",
                "line_items": [{"title": "Velvet Lipstick"}],
            },
            {"id": 2, "total_price": "12.00", "created_at": "2025-05-19T11:00:00Z"},
        ]
        request = CommenterMatchRequest(
            commenters=[
                Commenter(username="emi_d", full_name="Émilie Durand"),
                Commenter(username="someone_else"),
            ],
            orders=orders,
            caption="My new velvet lipstick!",
        )

        result = await _fn(match_post_commenters)(request)

        assert result["status"] == "success"
        assert result["metadata"]["buyer_count"] == 1
        assert result["data"]["matched_count"] == 1
        assert result["data"]["matches"][0]["match_type"] == "exact"
        evidence = result["data"]["order_evidence"]["1"]
        assert evidence["new_customer"] is True
        assert evidence["product_mention"]["matches"] is True

    def test_min_score_bounds(self):
        with pytest.raises(ValidationError):
            CommenterMatchRequest(commenters=[], orders=[], min_score=120.0)


class TestResources:
    def test_health_check(self):
        health = _fn(health_check)()
        assert health["status"] == "healthy"
        assert "run_full_attribution" in health["tools_available"]
        assert "match_post_commenters" in health["tools_available"]

    def test_config(self):
        config = _fn(get_config)()
        assert config["engine"]["significance_z"] == 2.0
        assert config["engine"]["detection"]["post_hours"] == 24.0
