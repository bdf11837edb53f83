"""Custom exceptions for influencer-lift."""


class InfluencerLiftError(Exception):
    """Base exception for all influencer-lift errors."""

    pass


class ValidationError(InfluencerLiftError):
    """Raised when attribution input is malformed or insufficient."""

    def __init__(self, message: str, issues: list[str] | None = None):
        """Initialize validation error.

        Args:
            message: Error message
            issues: Every individual problem found in the input
        """
        self.issues = issues or []
        if self.issues:
            message = f"{message}: " + "; ".join(self.issues)
        super().__init__(message)


class ConfigurationError(InfluencerLiftError):
    """Raised when configuration is invalid."""

    pass


class DataError(InfluencerLiftError):
    """Raised when collaborator data cannot be turned into engine input."""

    pass
