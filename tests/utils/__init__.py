"""Test utilities package."""

from .builders import (
    LOOKBACK_DAYS,
    OBSERVATION_START,
    START,
    build_daily_history,
    build_input,
    build_post,
)

__all__ = [
    "LOOKBACK_DAYS",
    "OBSERVATION_START",
    "START",
    "build_daily_history",
    "build_input",
    "build_post",
]
