"""Attribution engine.

The engine is a pure, synchronous computation over one in-memory
``AttributionInput``; it never performs I/O and keeps no state between
runs.
"""

from influencer_lift.engine.pipeline import (
    AttributionPipeline,
    FullAttributionPipeline,
    SimpleAttributionPipeline,
    run_full_attribution,
    run_simple_attribution,
)

__all__ = [
    "AttributionPipeline",
    "FullAttributionPipeline",
    "SimpleAttributionPipeline",
    "run_full_attribution",
    "run_simple_attribution",
]
