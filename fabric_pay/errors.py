"""
Fabric Pay exception hierarchy.

Every error raised by the signing core, the token cache and the order
services derives from ``FabricPayError``. Each error carries a ``kind`` tag:

- ``ErrorKind.CALLER``: the caller sent something unusable (4xx).
- ``ErrorKind.DEPENDENCY``: the gateway or the network failed (5xx),
  possibly retryable.

The API layer maps the tag to an HTTP status; nothing else needs to inspect
the concrete class.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    CALLER = "CALLER"
    DEPENDENCY = "DEPENDENCY"


class FabricPayError(Exception):
    """Base exception for all Fabric Pay errors."""

    kind: ErrorKind = ErrorKind.CALLER
    retryable: bool = False

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API error response format."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "kind": self.kind.value,
            "retryable": self.retryable,
            "details": self.details,
        }


# ---------------------------------------------------------------------------
# Caller errors
# ---------------------------------------------------------------------------

class InvalidInputError(FabricPayError):
    """The object handed to the signer is not a usable mapping."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_INPUT", message, details)


class NoSignableFieldsError(FabricPayError):
    """Nothing remained after exclusion and flattening."""

    def __init__(self, message: str = "No signable fields found in request object"):
        super().__init__("NO_SIGNABLE_FIELDS", message)


class InvalidKeyError(FabricPayError):
    """A signing or verification key could not be parsed."""

    def __init__(self, message: str):
        super().__init__("INVALID_KEY", message)


class EmptyInputError(FabricPayError):
    def __init__(self, message: str = "Text to sign must be a non-empty string"):
        super().__init__("EMPTY_INPUT", message)


class ValidationError(FabricPayError):
    """
    Business field validation failed before anything was signed.

    Attributes:
        errors: list of human-readable rule violations.
    """

    def __init__(self, errors: List[str], message: str = "Invalid request parameters"):
        self.errors = list(errors)
        super().__init__("VALIDATION_ERROR", message, {"errors": self.errors})


class GatewayRejectedError(FabricPayError):
    """
    The gateway answered, but refused the request.

    Examples:
    - result_code other than "0"
    - a pre-order response without prepay_id
    """

    def __init__(
        self,
        message: str,
        result_code: Optional[str] = None,
        gateway_error_code: Optional[str] = None,
        gateway_error_msg: Optional[str] = None,
    ):
        self.result_code = result_code
        self.gateway_error_code = gateway_error_code
        self.gateway_error_msg = gateway_error_msg
        super().__init__(
            "ORDER_FAILED",
            message,
            {
                "result_code": result_code,
                "error_code": gateway_error_code,
                "error_msg": gateway_error_msg,
            },
        )


# ---------------------------------------------------------------------------
# Dependency errors
# ---------------------------------------------------------------------------

class TransportError(FabricPayError):
    """
    The HTTP call to the gateway failed.

    ``status`` is None when no response was received at all (connect error,
    timeout).
    """

    kind = ErrorKind.DEPENDENCY

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None,
        retryable: bool = False,
    ):
        self.status = status
        self.body = body
        self.retryable = retryable
        super().__init__("TRANSPORT_ERROR", message, {"status": status})


class TokenUnavailableError(FabricPayError):
    """No bearer token could be obtained from the gateway."""

    kind = ErrorKind.DEPENDENCY
    retryable = True

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(
            "TOKEN_UNAVAILABLE",
            message,
            {"cause": type(cause).__name__} if cause is not None else None,
        )
