from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from fabric_pay.errors import ErrorKind, FabricPayError, GatewayRejectedError
from fabric_pay.integrations.contracts.interfaces import RESULT_CODE_SUCCESS, TokenData


class IntegrationResponseError(FabricPayError):
    """The gateway answered with a body that does not match its contract."""

    kind = ErrorKind.DEPENDENCY

    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("INVALID_GATEWAY_RESPONSE", message)
        self.payload = payload or {}


class TokenResponseModel(BaseModel):
    token: str = Field(min_length=1)
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class PreOrderResponseModel(BaseModel):
    result_code: str
    result_msg: str = ""
    prepay_id: str
    merch_order_id: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class AuthTokenResponseModel(BaseModel):
    result_code: Optional[str] = None
    result_msg: str = ""
    biz_content: Dict[str, Any] = Field(default_factory=dict)
    raw: Dict[str, Any] = Field(default_factory=dict)


def normalize_token_response(raw: Dict[str, Any]) -> TokenData:
    if not isinstance(raw, dict):
        raise IntegrationResponseError("Invalid token response: body is not an object.")

    token = _first_non_empty(raw, "token", "access_token")
    if not token:
        raise IntegrationResponseError("Invalid token response: missing token field", payload=_redact_token(raw))

    expires_in = _coerce_optional_int(_first_non_empty(raw, "expiresIn", "expires_in"))
    model = _build_model(
        TokenResponseModel,
        {
            "token": str(token),
            "expires_in": expires_in,
            "token_type": _first_non_empty(raw, "tokenType", "token_type"),
            "raw": _redact_token(raw),
        },
        _redact_token(raw),
    )
    return TokenData(token=model.token, expires_in=model.expires_in, token_type=model.token_type, raw=model.raw)


def normalize_preorder_response(raw: Dict[str, Any]) -> PreOrderResponseModel:
    """
    Validate a pre-order answer.

    Raises:
        GatewayRejectedError: the gateway refused the order.
        IntegrationResponseError: the body is not an object at all.
    """
    if not isinstance(raw, dict) or not raw:
        raise IntegrationResponseError("Empty response from Fabric API", payload=raw if isinstance(raw, dict) else {})

    result_code = str(_first_non_empty(raw, "result_code", "code", default=""))
    result_msg = str(_first_non_empty(raw, "result_msg", "msg", default=""))
    biz_content = raw.get("biz_content") if isinstance(raw.get("biz_content"), dict) else {}
    prepay_id = _first_non_empty(biz_content, "prepay_id")

    if result_code != RESULT_CODE_SUCCESS or not prepay_id:
        raise GatewayRejectedError(
            f"Order creation failed: {result_msg or 'Unknown error'}",
            result_code=result_code or None,
            gateway_error_code=_optional_str(raw.get("error_code")),
            gateway_error_msg=_optional_str(raw.get("error_msg")),
        )

    return _build_model(
        PreOrderResponseModel,
        {
            "result_code": result_code,
            "result_msg": result_msg,
            "prepay_id": str(prepay_id),
            "merch_order_id": _optional_str(biz_content.get("merch_order_id")),
            "raw": raw,
        },
        raw,
    )


def normalize_auth_token_response(raw: Dict[str, Any]) -> AuthTokenResponseModel:
    if not isinstance(raw, dict) or not raw:
        raise IntegrationResponseError("Empty response from Fabric API")

    result_code = _optional_str(_first_non_empty(raw, "result_code", "code"))
    if result_code is not None and result_code != RESULT_CODE_SUCCESS:
        raise GatewayRejectedError(
            f"Auth token verification failed: {raw.get('result_msg') or 'Unknown error'}",
            result_code=result_code,
            gateway_error_code=_optional_str(raw.get("error_code")),
            gateway_error_msg=_optional_str(raw.get("error_msg")),
        )

    return _build_model(
        AuthTokenResponseModel,
        {
            "result_code": result_code,
            "result_msg": str(raw.get("result_msg") or ""),
            "biz_content": raw.get("biz_content") if isinstance(raw.get("biz_content"), dict) else {},
            "raw": raw,
        },
        raw,
    )


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _coerce_optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _redact_token(raw: Dict[str, Any]) -> Dict[str, Any]:
    redacted = dict(raw)
    for key in ("token", "access_token", "refreshToken", "refresh_token"):
        value = redacted.get(key)
        if isinstance(value, str) and value:
            redacted[key] = f"{value[:6]}...({len(value)} chars)"
    return redacted


def _build_model(model_type, payload: Dict[str, Any], raw: Dict[str, Any]):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(f"Response validation failed: {exc}", payload=raw) from exc
