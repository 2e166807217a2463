"""
Custom exception hierarchy for the loom engine.

All application exceptions inherit from LoomError.
"""

from typing import Any, List, Mapping, Optional


class LoomError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(LoomError):
    """Invalid or missing configuration."""

    pass


# =============================================================================
# Thread Errors
# =============================================================================


class ThreadError(LoomError):
    """Thread-related error."""

    pass


class ThreadValidationError(ThreadError):
    """Raw thread record is missing required identity fields.

    Raised at ingestion only. The record is never partially admitted.
    """

    def __init__(
        self,
        message: str,
        missing_fields: Optional[List[str]] = None,
        record: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.missing_fields = list(missing_fields or [])
        self.record = record


class UnknownThreadError(ThreadError):
    """Thread id is not part of the evaluated population."""

    pass
