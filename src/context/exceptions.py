"""Exceptions for the context module."""


class ContextError(Exception):
    """Base exception for run configuration errors."""

    pass


class ConfigurationError(ContextError):
    """Raised when the run configuration is missing or malformed.

    Attributes:
        key: The configuration key that failed validation, if known.
    """

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)
