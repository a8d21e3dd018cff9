class EngVantageError(Exception):
    """Base class for application errors."""


class ConfigurationError(EngVantageError):
    """The selected gateway cannot run with the current settings."""


class ContentGenerationError(EngVantageError):
    """A content request failed: network error, timeout or non-success status."""
