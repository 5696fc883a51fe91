"""Error handling helpers for the merchant API."""
from typing import Any, Dict, Optional, Tuple
import logging

from fabric_pay.errors import (
    ErrorKind,
    FabricPayError,
    GatewayRejectedError,
    InvalidKeyError,
    TokenUnavailableError,
    TransportError,
    ValidationError,
)
from fabric_pay.utils.nonce import create_timestamp

logger = logging.getLogger(__name__)


class ErrorHandler:
    def handle_exception(self, exc: Exception, request_id: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
        """Map ``exc`` to an HTTP status and a gateway-style JSON body."""
        base: Dict[str, Any] = {"timestamp": create_timestamp(), "request_id": request_id}

        if isinstance(exc, ValidationError):
            logger.warning("Validation failed request_id=%s errors=%s", request_id, exc.errors)
            return 400, {
                **base,
                "result_code": "VALIDATION_ERROR",
                "result_msg": exc.message,
                "errors": exc.errors,
            }

        if isinstance(exc, GatewayRejectedError):
            logger.warning("Gateway rejected request_id=%s result_code=%s", request_id, exc.result_code)
            return 400, {
                **base,
                "result_code": exc.result_code or "ORDER_FAILED",
                "result_msg": exc.message,
                "error_code": exc.gateway_error_code,
                "error_msg": exc.gateway_error_msg,
            }

        if isinstance(exc, FabricPayError) and exc.kind is ErrorKind.DEPENDENCY:
            status = 503 if isinstance(exc, TokenUnavailableError) else 502
            if isinstance(exc, TransportError) and exc.status == 504:
                status = 504
            logger.error("Gateway dependency failure request_id=%s: %s", request_id, exc.message)
            return status, {
                **base,
                "result_code": exc.error_code,
                "result_msg": "Payment gateway is unavailable, please retry",
                "error_code": exc.error_code,
                "error_msg": exc.message,
                "retryable": exc.retryable,
            }

        if isinstance(exc, InvalidKeyError):
            # The merchant key is server configuration, not caller input.
            logger.error("Signing key unusable request_id=%s: %s", request_id, exc.message)
            return 500, {
                **base,
                "result_code": "INTERNAL_ERROR",
                "result_msg": "An internal server error occurred",
                "error_code": exc.error_code,
            }

        if isinstance(exc, FabricPayError):
            logger.warning("Request rejected request_id=%s code=%s: %s", request_id, exc.error_code, exc.message)
            return 400, {
                **base,
                "result_code": exc.error_code,
                "result_msg": exc.message,
            }

        logger.error("Unhandled exception request_id=%s: %s", request_id, exc, exc_info=True)
        return 500, {
            **base,
            "result_code": "INTERNAL_ERROR",
            "result_msg": "An internal server error occurred",
            "error_code": "UNKNOWN_ERROR",
        }
