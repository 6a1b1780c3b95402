"""Exceptions raised by the usage tracker.

Parsing never raises: malformed uploads simply yield no sessions. The only
errors are a bad configuration (fatal at startup) and a failed write to the
metrics backend (logged and dropped by the middleware).
"""

from typing import Any, Dict, Optional


class TrackerError(Exception):
    """Base exception for all usage tracker errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: str = "TRACKER_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(TrackerError):
    """Raised when the tracker configuration is missing or malformed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class DeliveryError(TrackerError):
    """Raised when a batch of sessions could not be written to the backend."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="DELIVERY_ERROR", details=details)
