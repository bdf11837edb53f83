"""FastMCP server exposing influencer lift attribution."""

import asyncio
import logging
from enum import Enum
from typing import Any

from fastmcp import FastMCP
from pydantic import BaseModel, Field, model_validator

from influencer_lift.core.config import get_settings, setup_logging
from influencer_lift.core.exceptions import (
    ConfigurationError,
    DataError,
    ValidationError,
)
from influencer_lift.data_providers.matching import (
    DEFAULT_MIN_SCORE,
    extract_buyers,
    is_new_customer,
    match_commenters,
    product_mention,
)
from influencer_lift.engine.pipeline import run_full_attribution as full_attribution
from influencer_lift.engine.pipeline import run_simple_attribution as simple_attribution
from influencer_lift.models.attribution import AttributionInput, AttributionResult
from influencer_lift.models.matching import Commenter
from influencer_lift.scenarios.generator import (
    generate_test_scenarios as generate_scenarios,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "Influencer Lift MCP Server"
SERVER_VERSION = "1.0.0"


# ============================================================================
# Error Codes
# ============================================================================


class ErrorCode(str, Enum):
    """Error codes for programmatic error handling."""

    INVALID_INPUT = "INVALID_INPUT"
    DATA_ERROR = "DATA_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Initialize MCP server
mcp = FastMCP(SERVER_NAME)


# ============================================================================
# Models
# ============================================================================


class AttributionRequest(BaseModel):
    """Request model for an attribution run.

    Either a complete input or the id of a generated scenario.
    """

    input: AttributionInput | None = Field(
        None, description="Complete attribution input resolved by the caller"
    )
    scenario_id: str | None = Field(
        None, description="Run a generated scenario instead (e.g. 'growing')"
    )
    seed: int | None = Field(
        None, description="Scenario seed; the configured default when omitted"
    )

    @model_validator(mode="after")
    def validate_source(self) -> "AttributionRequest":
        if (self.input is None) == (self.scenario_id is None):
            raise ValueError("Provide exactly one of input or scenario_id")
        return self


class ScenariosRequest(BaseModel):
    """Request model for generating test scenarios."""

    seed: int | None = Field(None, description="Random seed for reproducible data")
    include_variants: bool = Field(
        False, description="Add the documented variants to the three canonical regimes"
    )
    include_data: bool = Field(
        False, description="Return the full attribution input of each scenario"
    )


class CommenterMatchRequest(BaseModel):
    """Request model for matching the commenters of a post with buyers."""

    commenters: list[Commenter] = Field(..., description="People who commented on the post")
    orders: list[dict[str, Any]] = Field(
        ..., description="Order records placed after the post (platform export shape)"
    )
    caption: str | None = Field(None, description="Post caption, to check product mentions")
    min_score: float = Field(
        DEFAULT_MIN_SCORE, ge=0.0, le=100.0, description="Smallest name similarity kept"
    )


# ============================================================================
# Helper Functions
# ============================================================================


def _resolve_input(request: AttributionRequest) -> AttributionInput:
    if request.input is not None:
        return request.input

    seed = request.seed if request.seed is not None else get_settings().scenario_seed
    scenarios = {
        s.scenario_id: s
        for s in generate_scenarios(
            seed, include_variants=True, thresholds=get_settings().engine
        )
    }
    if request.scenario_id not in scenarios:
        raise DataError(
            f"Unknown scenario '{request.scenario_id}', "
            f"expected one of {sorted(scenarios)}"
        )
    return scenarios[request.scenario_id].input


def _error(code: ErrorCode, message: str, **details: Any) -> dict[str, Any]:
    return {
        "status": "error",
        "error_code": code,
        "message": message,
        "details": details,
        "data": None,
    }


async def _run(request: AttributionRequest, runner: Any, label: str) -> dict[str, Any]:
    try:
        data = _resolve_input(request)
        thresholds = get_settings().engine

        # The engine is synchronous; keep the event loop free while it runs
        result: AttributionResult = await asyncio.to_thread(runner, data, thresholds)

        return {
            "status": "success",
            "message": (
                f"{label} attribution: {len(result.windows)} window(s), "
                f"{result.total_attributed_revenue:,.2f} attributed, "
                f"confidence {result.confidence.value}"
            ),
            "metadata": {
                "model": result.model.value,
                "scenario_id": request.scenario_id,
                "post_count": len(data.posts),
                "bucket_count": len(data.history.buckets),
                "baseline_method": result.baseline_method.value,
            },
            "data": result.model_dump(mode="json"),
        }

    except ValidationError as e:
        logger.warning(f"Rejected {label.lower()} attribution input: {e}")
        return _error(
            ErrorCode.INVALID_INPUT,
            f"Invalid input: {e}",
            error_type="validation",
            issues=e.issues,
            retry_allowed=False,
        )
    except DataError as e:
        logger.warning(str(e))
        return _error(
            ErrorCode.DATA_ERROR, str(e), error_type="data", retry_allowed=False
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", exc_info=True)
        return _error(
            ErrorCode.CONFIGURATION_ERROR,
            "Server configuration is invalid.",
            error_type="configuration",
        )
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return _error(
            ErrorCode.INTERNAL_ERROR,
            "An unexpected error occurred. Please contact support if this persists.",
            error_type="unexpected",
        )


# ============================================================================
# Tools - Attribution
# ============================================================================


@mcp.tool()
async def run_full_attribution(request: AttributionRequest) -> dict[str, Any]:
    """
    Estimate influencer-driven revenue with the full model.

    Separates influencer lift from seasonality, calendar momentum, store
    promotions and paid media, merges overlapping post windows and splits
    the detected lift across posts with a confidence grade.
    """
    return await _run(request, full_attribution, "Full")


@mcp.tool()
async def run_simple_attribution(request: AttributionRequest) -> dict[str, Any]:
    """
    Estimate influencer-driven revenue with the simplified model.

    For merchants without ad-spend tracking or fine-grained timing: one
    coarse window, no paid-media neutralization, and orders carrying an
    influencer's promo code credited directly to that influencer.
    """
    return await _run(request, simple_attribution, "Simple")


@mcp.tool()
async def generate_test_scenarios(request: ScenariosRequest) -> dict[str, Any]:
    """
    Generate the synthetic growing, new and declining business scenarios.

    Deterministic for a given seed. Each scenario carries the qualitative
    outcome the engine is expected to reproduce.
    """
    try:
        settings = get_settings()
        seed = request.seed if request.seed is not None else settings.scenario_seed
        scenarios = await asyncio.to_thread(
            generate_scenarios, seed, request.include_variants, settings.engine
        )

        data = []
        for scenario in scenarios:
            entry: dict[str, Any] = {
                "scenario_id": scenario.scenario_id,
                "regime": scenario.regime.value,
                "description": scenario.description,
                "variant": scenario.variant,
                "injected_lift_pct": scenario.injected_lift_pct,
                "bucket_count": len(scenario.input.history.buckets),
                "post_ids": [p.post_id for p in scenario.input.posts],
                "expected": scenario.expected.model_dump(mode="json"),
            }
            if request.include_data:
                entry["input"] = scenario.input.model_dump(mode="json")
            data.append(entry)

        return {
            "status": "success",
            "message": f"Generated {len(data)} scenarios",
            "metadata": {"seed": seed, "scenario_count": len(data)},
            "data": data,
        }

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", exc_info=True)
        return _error(
            ErrorCode.CONFIGURATION_ERROR,
            "Server configuration is invalid.",
            error_type="configuration",
        )
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return _error(
            ErrorCode.INTERNAL_ERROR,
            "An unexpected error occurred. Please contact support if this persists.",
            error_type="unexpected",
        )


@mcp.tool()
async def match_post_commenters(request: CommenterMatchRequest) -> dict[str, Any]:
    """
    Match the people who commented on a post with the customers behind orders.

    Each order is claimed by at most one commenter. Matched orders are
    flagged as first-time purchases or not, and checked for products
    named in the caption.
    """
    try:
        buyers = extract_buyers(request.orders)
        summary = match_commenters(request.commenters, buyers, request.min_score)

        orders_by_id = {str(o.get("id", "")): o for o in request.orders}
        evidence = {}
        for match in summary.matches:
            order = orders_by_id[match.order_id]
            evidence[match.order_id] = {
                "new_customer": is_new_customer(order, request.orders),
                "product_mention": product_mention(order, request.caption or "").model_dump(),
            }

        return {
            "status": "success",
            "message": (
                f"Matched {summary.matched_count} of {summary.total_commenters} commenters"
            ),
            "metadata": {"buyer_count": len(buyers), "min_score": request.min_score},
            "data": {**summary.model_dump(mode="json"), "order_evidence": evidence},
        }

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return _error(
            ErrorCode.INTERNAL_ERROR,
            "An unexpected error occurred. Please contact support if this persists.",
            error_type="unexpected",
        )


# ============================================================================
# Resources
# ============================================================================


@mcp.resource("resource://health")
def health_check() -> dict[str, Any]:
    """
    Provides server health status.
    """
    return {
        "status": "healthy",
        "version": SERVER_VERSION,
        "server": SERVER_NAME,
        "tools_available": [
            "run_full_attribution",
            "run_simple_attribution",
            "generate_test_scenarios",
            "match_post_commenters",
        ],
    }


@mcp.resource("resource://config")
def get_config() -> dict[str, Any]:
    """
    Provides the engine constants the server runs with.
    """
    settings = get_settings()
    return {
        "server_version": SERVER_VERSION,
        "environment": settings.environment.value,
        "scenario_seed": settings.scenario_seed,
        "engine": settings.engine.model_dump(mode="json"),
    }


# ============================================================================
# Server Factory
# ============================================================================


def create_mcp_server() -> FastMCP:
    """
    Create and return the configured MCP server instance.

    Returns:
        FastMCP: The configured server instance ready to run.
    """
    return mcp


def main() -> None:
    """Console entry point."""
    setup_logging(get_settings())
    mcp.run()


# ============================================================================
# Entry Point
# ============================================================================

if __name__ == "__main__":
    main()
