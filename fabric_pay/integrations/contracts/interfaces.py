from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional


# ---------------------------------------------------------------------------
# Gateway constants
# ---------------------------------------------------------------------------

TOKEN_PATH = "/payment/v1/token"
PREORDER_PATH = "/payment/v1/merchant/preOrder"
AUTH_TOKEN_PATH = "/payment/v1/auth/authToken"

APP_KEY_HEADER = "X-APP-Key"

RESULT_CODE_SUCCESS = "0"


class GatewayMethod(str, Enum):
    PREORDER = "payment.preorder"
    AUTH_TOKEN = "payment.authtoken"


class TradeType(str, Enum):
    IN_APP = "InApp"


# ---------------------------------------------------------------------------
# Shared data models
# ---------------------------------------------------------------------------

@dataclass
class GatewayResponse:
    status: int
    body: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TokenData:
    token: str
    expires_in: Optional[int] = None             # seconds, as declared by the gateway
    token_type: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderResult:
    raw_request: str
    prepay_id: str
    merch_order_id: Optional[str]
    created_at: datetime = field(default_factory=datetime.utcnow)
    gateway_raw: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Abstract transport interface
# ---------------------------------------------------------------------------

class GatewayTransport(ABC):
    """Every way of reaching the Fabric gateway must implement this interface."""

    @abstractmethod
    async def post(
        self,
        path: str,
        envelope: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> GatewayResponse:
        """
        POST ``envelope`` as JSON to ``path``.

        Non-2xx answers and network failures raise ``TransportError``.
        """

    async def aclose(self) -> None:
        """Release any pooled connections."""
