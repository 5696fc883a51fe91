"""
Gateway-facing services: token cache, envelope composition and order flows.
"""
from .order_service import FabricOrderService
from .request_composer import compose_raw_request_string, compose_signed_envelope
from .token_cache import TokenCache, TokenState

__all__ = [
    "FabricOrderService",
    "TokenCache",
    "TokenState",
    "compose_raw_request_string",
    "compose_signed_envelope",
]
