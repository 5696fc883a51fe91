"""
Signed envelope composition for Fabric gateway calls.

Two shapes are produced here:

- the gateway envelope ``{timestamp, nonce_str, method, version,
  biz_content, sign, sign_type}`` posted to the gateway, and
- the raw request string handed to the customer's app so the Fabric client
  SDK can confirm the payment. Its field order is fixed by the SDK and is
  never re-sorted.

Business fields are validated before anything is canonicalized, so a
failed check never yields a partially signed request.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from fabric_pay.errors import ValidationError
from fabric_pay.integrations.contracts.interfaces import TradeType
from fabric_pay.integrations.contracts.orders import (
    parse_amount,
    validate_auth_token_request,
    validate_mandate_order_request,
    validate_order_request,
)
from fabric_pay.signing.canonical import build_raw_request, canonicalize
from fabric_pay.signing.rsa_signer import PrivateKeyLike, SignType, sign
from fabric_pay.utils.config_loader import GatewaySettings
from fabric_pay.utils.nonce import create_merchant_order_id, create_nonce, create_timestamp

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0"

RAW_REQUEST_FIELDS = ("appid", "merch_code", "nonce_str", "prepay_id", "timestamp")


def _raise_if_invalid(errors: List[str], flow: str) -> None:
    if errors:
        logger.warning("Validation failed for %s: %s", flow, errors)
        raise ValidationError(errors)


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

def compose_signed_envelope(
    method: str,
    biz_content: Mapping[str, Any],
    *,
    private_key: PrivateKeyLike,
    version: str = DEFAULT_VERSION,
    sign_type: SignType = SignType.SHA256_WITH_RSA,
) -> Dict[str, Any]:
    """
    Build and sign a gateway envelope.

    ``sign`` covers every envelope field plus the flattened ``biz_content``;
    ``sign`` and ``sign_type`` themselves are excluded.
    """
    sign_type = SignType.parse(sign_type)
    envelope: Dict[str, Any] = {
        "timestamp": create_timestamp(),
        "nonce_str": create_nonce(),
        "method": str(getattr(method, "value", method)),
        "version": version,
        "biz_content": dict(biz_content),
    }
    envelope["sign"] = sign(canonicalize(envelope), private_key, sign_type)
    envelope["sign_type"] = sign_type.value
    return envelope


def compose_raw_request_string(
    prepay_id: str,
    *,
    app_id: str,
    merch_code: str,
    private_key: PrivateKeyLike,
    sign_type: SignType = SignType.SHA256_WITH_RSA,
) -> str:
    """
    Build the signed ``appid=...&merch_code=...&...&sign=...&sign_type=...``
    string for the client SDK.
    """
    sign_type = SignType.parse(sign_type)
    data = {
        "appid": app_id,
        "merch_code": merch_code,
        "nonce_str": create_nonce(),
        "prepay_id": prepay_id,
        "timestamp": create_timestamp(),
    }
    signature = sign(canonicalize(data), private_key, sign_type)

    fields = [(name, data[name]) for name in RAW_REQUEST_FIELDS]
    fields.append(("sign", signature))
    fields.append(("sign_type", sign_type.value))
    return build_raw_request(fields)


# ---------------------------------------------------------------------------
# Business content
# ---------------------------------------------------------------------------

def _with_urls(biz: Dict[str, Any], settings: GatewaySettings) -> Dict[str, Any]:
    if settings.notify_url:
        biz["notify_url"] = settings.notify_url
    if settings.redirect_url:
        biz["redirect_url"] = settings.redirect_url
    return biz


def build_preorder_biz_content(
    title: Any,
    amount: Any,
    settings: GatewaySettings,
    merch_order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Raises:
        ValidationError: title or amount break the order rules.
    """
    _raise_if_invalid(validate_order_request(title, amount), "order")

    biz: Dict[str, Any] = {
        "trade_type": TradeType.IN_APP.value,
        "appid": settings.merchant_app_id,
        "merch_code": settings.merchant_code,
        "merch_order_id": merch_order_id or create_merchant_order_id(),
        "title": title,
        "total_amount": parse_amount(amount),
        "trans_currency": settings.currency,
        "timeout_express": settings.order_timeout,
        "payee_identifier": settings.payee,
        "payee_identifier_type": settings.payee_identifier_type,
        "payee_type": settings.payee_type,
    }
    return _with_urls(biz, settings)


def build_mandate_biz_content(
    title: Any,
    amount: Any,
    contract_no: Any,
    settings: GatewaySettings,
    merch_order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Pre-order content carrying ``mandate_data`` for recurring debits.

    ``mandate_data`` keys are inserted in sorted order so the JSON body the
    gateway receives matches the canonical rendering of the nested object.

    Raises:
        ValidationError: title, amount or contract number break the rules.
    """
    _raise_if_invalid(validate_mandate_order_request(title, amount, contract_no), "mandate order")

    execute_time = settings.mandate_execute_time or date.today().isoformat()
    biz: Dict[str, Any] = {
        "trade_type": TradeType.IN_APP.value,
        "appid": settings.merchant_app_id,
        "merch_code": settings.merchant_code,
        "merch_order_id": merch_order_id or create_merchant_order_id(),
        "title": title,
        "total_amount": parse_amount(amount),
        "trans_currency": settings.currency,
        "timeout_express": settings.order_timeout,
        "payee_identifier": settings.payee,
        "payee_identifier_type": settings.payee_identifier_type,
        "payee_type": settings.payee_type,
        "mandate_data": {
            "executeTime": execute_time,
            "mandateTemplateId": settings.mandate_template_id,
            "mctContractNo": contract_no,
        },
    }
    return _with_urls(biz, settings)


def build_auth_token_biz_content(auth_token: Any, settings: GatewaySettings) -> Dict[str, Any]:
    """
    Raises:
        ValidationError: the app token is missing, not a string or too long.
    """
    _raise_if_invalid(validate_auth_token_request(auth_token), "auth token")
    return {
        "access_token": auth_token,
        "trade_type": TradeType.IN_APP.value,
        "appid": settings.merchant_app_id,
        "resource_type": "OpenId",
    }
