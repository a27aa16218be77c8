"""
Paymaster Errors

Defines the error taxonomy surfaced by the paymaster engine.
Every error carries a stable wire code and the HTTP status class it maps to.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable error codes returned to API callers."""

    INVALID_USER_OPERATION = "INVALID_USER_OPERATION"
    INVALID_REQUEST = "INVALID_REQUEST"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PaymasterError(Exception):
    """
    Base class for all paymaster engine errors.

    Subclasses fix the error code and HTTP status; the message is the
    human-readable part returned to callers.
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code.value, "message": self.message}


class ValidationError(PaymasterError):
    """User operation is missing required fields or is malformed."""

    code = ErrorCode.INVALID_USER_OPERATION
    http_status = 400


class InvalidRequestError(PaymasterError):
    """Request envelope itself is unusable (no userOperation object)."""

    code = ErrorCode.INVALID_REQUEST
    http_status = 400


class ConfigurationError(PaymasterError):
    """Signing key or a required address is missing or invalid."""

    code = ErrorCode.CONFIGURATION_ERROR
    http_status = 500


class InternalError(PaymasterError):
    """
    Unexpected failure while hashing, signing or encoding.

    The public message is always generic; the original exception is kept
    on ``cause`` for logging only.
    """

    code = ErrorCode.INTERNAL_ERROR
    http_status = 500

    def __init__(
        self,
        message: str = "Internal server error",
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)
        self.cause = cause


__all__ = [
    "ErrorCode",
    "PaymasterError",
    "ValidationError",
    "InvalidRequestError",
    "ConfigurationError",
    "InternalError",
]
