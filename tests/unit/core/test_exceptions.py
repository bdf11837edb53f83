"""Tests for core exceptions module."""

import pytest

from influencer_lift.core.exceptions import (
    ConfigurationError,
    DataError,
    InfluencerLiftError,
    ValidationError,
)


class TestInfluencerLiftError:
    """Test base InfluencerLiftError exception."""

    def test_inheritance(self) -> None:
        assert issubclass(InfluencerLiftError, Exception)
        for error_class in (ValidationError, ConfigurationError, DataError):
            assert issubclass(error_class, InfluencerLiftError)

    def test_raise_and_catch(self) -> None:
        with pytest.raises(InfluencerLiftError) as exc_info:
            raise DataError("provider failed")
        assert str(exc_info.value) == "provider failed"


class TestValidationError:
    """Test ValidationError issue reporting."""

    def test_without_issues(self) -> None:
        error = ValidationError("Invalid attribution input")
        assert error.issues == []
        assert str(error) == "Invalid attribution input"

    def test_issues_are_listed_in_message(self) -> None:
        error = ValidationError(
            "Invalid attribution input",
            issues=["historical data is empty", "duplicate post id 'p1'"],
        )
        assert error.issues == ["historical data is empty", "duplicate post id 'p1'"]
        assert "historical data is empty" in str(error)
        assert "duplicate post id 'p1'" in str(error)
