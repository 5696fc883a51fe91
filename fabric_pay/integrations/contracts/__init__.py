"""
Gateway contracts.

Request/response shapes and validation rules shared by the real httpx
transport, the mock gateway and the order services.
"""
from .interfaces import (
    APP_KEY_HEADER,
    AUTH_TOKEN_PATH,
    PREORDER_PATH,
    RESULT_CODE_SUCCESS,
    TOKEN_PATH,
    GatewayMethod,
    GatewayResponse,
    GatewayTransport,
    OrderResult,
    TokenData,
    TradeType,
)
from .orders import (
    parse_amount,
    validate_auth_token_request,
    validate_mandate_order_request,
    validate_order_request,
)

__all__ = [
    "APP_KEY_HEADER", "AUTH_TOKEN_PATH", "PREORDER_PATH", "RESULT_CODE_SUCCESS", "TOKEN_PATH",
    "GatewayMethod", "GatewayResponse", "GatewayTransport", "OrderResult", "TokenData", "TradeType",
    "parse_amount", "validate_auth_token_request", "validate_mandate_order_request", "validate_order_request",
]
