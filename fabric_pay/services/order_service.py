"""
Fabric order service.

Orchestrates the gateway flows used by the merchant API:
- in-app pre-order -> raw request for the client SDK
- mandate (recurring debit) pre-order -> raw request
- app auth-token exchange (``payment.authtoken``)
- verification of inbound payment notifications

Token handling: each flow asks the shared ``TokenCache`` for a bearer token.
A 401 from the gateway invalidates the cache so the next request fetches a
fresh token; the failing request itself is not retried.
"""

import logging
import time
from typing import Any, Dict, Mapping

from fabric_pay.errors import TransportError
from fabric_pay.integrations.contracts.interfaces import (
    APP_KEY_HEADER,
    AUTH_TOKEN_PATH,
    PREORDER_PATH,
    GatewayMethod,
    GatewayTransport,
    OrderResult,
)
from fabric_pay.integrations.policy.response_wrappers import (
    normalize_auth_token_response,
    normalize_preorder_response,
)
from fabric_pay.services.request_composer import (
    build_auth_token_biz_content,
    build_mandate_biz_content,
    build_preorder_biz_content,
    compose_raw_request_string,
    compose_signed_envelope,
)
from fabric_pay.services.token_cache import TokenCache
from fabric_pay.signing.rsa_signer import load_private_key, verify_request
from fabric_pay.utils.config_loader import GatewaySettings

logger = logging.getLogger(__name__)


class FabricOrderService:
    def __init__(self, settings: GatewaySettings, transport: GatewayTransport, token_cache: TokenCache):
        self.settings = settings
        self.transport = transport
        self.token_cache = token_cache
        self._private_key = None

    @property
    def private_key(self):
        # Parsed lazily so a misconfigured key surfaces as InvalidKeyError on first use.
        if self._private_key is None:
            self._private_key = load_private_key(self.settings.private_key)
        return self._private_key

    async def _post_authenticated(self, path: str, envelope: Mapping[str, Any]) -> Dict[str, Any]:
        token = await self.token_cache.obtain_token()
        headers = {APP_KEY_HEADER: self.settings.fabric_app_id, "Authorization": token.token}
        try:
            response = await self.transport.post(path, envelope, headers=headers)
        except TransportError as exc:
            if exc.status == 401:
                logger.warning("Gateway rejected bearer token on %s; clearing token cache", path)
                self.token_cache.invalidate(token.token)
            raise
        return response.body

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def _submit_preorder(self, biz_content: Dict[str, Any], flow: str) -> OrderResult:
        envelope = compose_signed_envelope(GatewayMethod.PREORDER, biz_content, private_key=self.private_key)
        started = time.monotonic()

        logger.info(
            "[Order Service] Creating %s merch_order_id=%s amount=%s",
            flow,
            biz_content.get("merch_order_id"),
            biz_content.get("total_amount"),
        )
        body = await self._post_authenticated(PREORDER_PATH, envelope)
        preorder = normalize_preorder_response(body)

        raw_request = compose_raw_request_string(
            preorder.prepay_id,
            app_id=self.settings.merchant_app_id,
            merch_code=self.settings.merchant_code,
            private_key=self.private_key,
        )
        logger.info(
            "[Order Service] %s created prepay_id=%s merch_order_id=%s in %.0fms",
            flow,
            preorder.prepay_id,
            preorder.merch_order_id,
            (time.monotonic() - started) * 1000,
        )
        return OrderResult(
            raw_request=raw_request,
            prepay_id=preorder.prepay_id,
            merch_order_id=preorder.merch_order_id or biz_content.get("merch_order_id"),
            gateway_raw=preorder.raw,
        )

    async def create_order(self, title: Any, amount: Any) -> OrderResult:
        """
        Raises:
            ValidationError, TokenUnavailableError, TransportError,
            GatewayRejectedError
        """
        biz_content = build_preorder_biz_content(title, amount, self.settings)
        return await self._submit_preorder(biz_content, "order")

    async def create_mandate_order(self, title: Any, amount: Any, contract_no: Any) -> OrderResult:
        biz_content = build_mandate_biz_content(title, amount, contract_no, self.settings)
        return await self._submit_preorder(biz_content, "mandate order")

    # ------------------------------------------------------------------
    # Auth token
    # ------------------------------------------------------------------

    async def apply_auth_token(self, auth_token: Any) -> Dict[str, Any]:
        """Exchange a customer's app token for their Fabric identity."""
        biz_content = build_auth_token_biz_content(auth_token, self.settings)
        envelope = compose_signed_envelope(GatewayMethod.AUTH_TOKEN, biz_content, private_key=self.private_key)

        body = await self._post_authenticated(AUTH_TOKEN_PATH, envelope)
        result = normalize_auth_token_response(body)
        logger.info("[Auth Service] Auth token verified fields=%s", sorted(result.biz_content))
        return result.biz_content

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def verify_notification(self, payload: Mapping[str, Any]) -> bool:
        if not self.settings.public_key:
            logger.warning("Notification rejected: no gateway public key configured")
            return False
        return verify_request(payload, self.settings.public_key)
