"""
Fabric gateway — MOCK transport.

⚠️  This is a mock implementation for development and testing.
    It never opens a socket. Tokens, prepay ids and auth results are made up,
    but the request checks mirror the real gateway: the app key header must
    be present, authenticated paths need a token this mock issued, and when a
    merchant public key is supplied every envelope signature is verified.
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from fabric_pay.errors import TransportError
from fabric_pay.integrations.contracts.interfaces import (
    APP_KEY_HEADER,
    AUTH_TOKEN_PATH,
    PREORDER_PATH,
    RESULT_CODE_SUCCESS,
    TOKEN_PATH,
    GatewayResponse,
    GatewayTransport,
)
from fabric_pay.signing.rsa_signer import PublicKeyLike, verify_request

logger = logging.getLogger(__name__)


class MockFabricGateway(GatewayTransport):
    """
    In-memory Fabric gateway.

    Parameters
    ----------
    token_expires_in : int or None
        ``expiresIn`` declared on issued tokens. None omits the field.
    merchant_public_key : key or None
        When set, pre-order and auth-token envelopes must carry a valid
        signature.
    latency_seconds : float
        Delay applied to every call, to exercise concurrent callers.
    fail_token_requests : int
        Number of upcoming token requests that fail with HTTP 503.
    """

    def __init__(
        self,
        token_expires_in: Optional[int] = 3600,
        merchant_public_key: Optional[PublicKeyLike] = None,
        latency_seconds: float = 0.0,
        fail_token_requests: int = 0,
    ):
        self.token_expires_in = token_expires_in
        self.merchant_public_key = merchant_public_key
        self.latency_seconds = latency_seconds
        self.fail_token_requests = fail_token_requests
        self.reject_next_preorder: Optional[str] = None

        self.issued_tokens: List[str] = []
        self.requests: List[Dict[str, Any]] = []
        self._orders: Dict[str, Dict[str, Any]] = {}

        logger.info("[FABRIC MOCK] Gateway initialised (token_expires_in=%s)", token_expires_in)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def token_request_count(self) -> int:
        return sum(1 for r in self.requests if r["path"] == TOKEN_PATH)

    def revoke_tokens(self) -> None:
        self.issued_tokens.clear()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def post(
        self,
        path: str,
        envelope: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> GatewayResponse:
        headers = dict(headers or {})
        self.requests.append({"path": path, "envelope": dict(envelope), "headers": headers})

        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        if not headers.get(APP_KEY_HEADER):
            raise TransportError("Missing app key header", status=400)

        if path == TOKEN_PATH:
            return self._issue_token(envelope)

        if headers.get("Authorization") not in self.issued_tokens:
            raise TransportError(f"Gateway returned HTTP 401 for {path}", status=401)

        if self.merchant_public_key is not None and not verify_request(envelope, self.merchant_public_key):
            return GatewayResponse(
                status=200,
                body={"result_code": "40001", "result_msg": "Invalid signature", "error_code": "SIGN_ERROR"},
            )

        if path == PREORDER_PATH:
            return self._pre_order(envelope)
        if path == AUTH_TOKEN_PATH:
            return self._auth_token(envelope)

        raise TransportError(f"Gateway returned HTTP 404 for {path}", status=404)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def _issue_token(self, envelope: Mapping[str, Any]) -> GatewayResponse:
        if self.fail_token_requests > 0:
            self.fail_token_requests -= 1
            raise TransportError("Gateway returned HTTP 503 for /payment/v1/token", status=503, retryable=True)

        if not envelope.get("appSecret"):
            raise TransportError("Gateway returned HTTP 401 for /payment/v1/token", status=401)

        token = f"Bearer {uuid.uuid4().hex}"
        self.issued_tokens.append(token)

        body: Dict[str, Any] = {"token": token, "tokenType": "Bearer"}
        if self.token_expires_in is not None:
            body["expiresIn"] = self.token_expires_in
        logger.info("[FABRIC MOCK] Token issued (%d total)", len(self.issued_tokens))
        return GatewayResponse(status=200, body=body)

    def _pre_order(self, envelope: Mapping[str, Any]) -> GatewayResponse:
        biz = envelope.get("biz_content") or {}

        if self.reject_next_preorder is not None:
            message, self.reject_next_preorder = self.reject_next_preorder, None
            return GatewayResponse(
                status=200,
                body={"result_code": "10001", "result_msg": message, "error_code": "ORDER_REJECTED", "error_msg": message},
            )

        prepay_id = f"PREPAY{uuid.uuid4().hex[:20].upper()}"
        self._orders[prepay_id] = dict(biz)
        logger.info("[FABRIC MOCK] Pre-order %s amount=%s", biz.get("merch_order_id"), biz.get("total_amount"))
        return GatewayResponse(
            status=200,
            body={
                "result_code": RESULT_CODE_SUCCESS,
                "result_msg": "success",
                "biz_content": {"prepay_id": prepay_id, "merch_order_id": biz.get("merch_order_id")},
            },
        )

    def _auth_token(self, envelope: Mapping[str, Any]) -> GatewayResponse:
        biz = envelope.get("biz_content") or {}
        access_token = str(biz.get("access_token") or "")
        return GatewayResponse(
            status=200,
            body={
                "result_code": RESULT_CODE_SUCCESS,
                "result_msg": "success",
                "biz_content": {
                    "open_id": f"OPEN{uuid.uuid5(uuid.NAMESPACE_OID, access_token).hex[:16].upper()}",
                    "identityId": uuid.uuid5(uuid.NAMESPACE_URL, access_token).hex[:12],
                    "identityType": "1000",
                },
            },
        )

    def get_order(self, prepay_id: str) -> Optional[Dict[str, Any]]:
        return self._orders.get(prepay_id)
