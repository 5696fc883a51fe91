from datetime import datetime
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from fabric_pay.error_handler import ErrorHandler
from fabric_pay.errors import FabricPayError
from fabric_pay.services.order_service import FabricOrderService
from fabric_pay.utils.nonce import create_nonce, create_timestamp

logger = logging.getLogger(__name__)

api = APIRouter()
payments_api = api

error_handler = ErrorHandler()


# Fields are loosely typed on purpose: the business rules in
# integrations/contracts/orders.py produce the 400 error list.
class AuthTokenRequest(BaseModel):
    auth_token: Any = Field(default=None, alias="authToken")


class CreateOrderRequest(BaseModel):
    title: Any = None
    amount: Any = None


class CreateMandateOrderRequest(BaseModel):
    title: Any = None
    amount: Any = None
    contract_no: Any = Field(default=None, alias="ContractNo")


class NotificationPayload(BaseModel):
    model_config = ConfigDict(extra="allow")


def get_order_service(request: Request) -> FabricOrderService:
    return request.app.state.order_service


def _error_response(exc: Exception, request_id: str) -> JSONResponse:
    status_code, body = error_handler.handle_exception(exc, request_id=request_id)
    return JSONResponse(status_code=status_code, content=body)


def _order_response(result, request_id: str) -> Dict[str, Any]:
    return {
        "result_code": "0",
        "result_msg": "Order created successfully",
        "rawRequest": result.raw_request,
        "prepay_id": result.prepay_id,
        "merch_order_id": result.merch_order_id,
        "request_id": request_id,
        "timestamp": create_timestamp(),
        "processed_at": datetime.utcnow().isoformat(),
    }


@api.post("/apply/h5token", tags=["Auth"])
async def apply_h5_token(body: AuthTokenRequest, service: FabricOrderService = Depends(get_order_service)):
    request_id = create_nonce()
    token_preview = f"{body.auth_token[:10]}..." if isinstance(body.auth_token, str) else None
    logger.info("[Auth] Processing auth token verification request_id=%s token=%s", request_id, token_preview)

    try:
        identity = await service.apply_auth_token(body.auth_token)
    except FabricPayError as exc:
        return _error_response(exc, request_id)

    return {
        **identity,
        "request_id": request_id,
        "processed_at": datetime.utcnow().isoformat(),
    }


@api.post("/create/order", tags=["Orders"])
async def create_order(body: CreateOrderRequest, service: FabricOrderService = Depends(get_order_service)):
    request_id = create_nonce()
    try:
        result = await service.create_order(body.title, body.amount)
    except FabricPayError as exc:
        return _error_response(exc, request_id)
    return _order_response(result, request_id)


@api.post("/create/mandetOrder", tags=["Orders"])
async def create_mandate_order(
    body: CreateMandateOrderRequest,
    service: FabricOrderService = Depends(get_order_service),
):
    request_id = create_nonce()
    try:
        result = await service.create_mandate_order(body.title, body.amount, body.contract_no)
    except FabricPayError as exc:
        return _error_response(exc, request_id)
    return _order_response(result, request_id)


@api.post("/api/v1/notify", tags=["Notifications"])
async def notify(payload: NotificationPayload, service: FabricOrderService = Depends(get_order_service)):
    data: Dict[str, Any] = payload.model_dump()
    merch_order_id: Optional[str] = data.get("merch_order_id")

    if not service.verify_notification(data):
        logger.warning("[Notify] Rejected notification merch_order_id=%s: bad signature", merch_order_id)
        return JSONResponse(
            status_code=400,
            content={
                "status": "rejected",
                "message": "Invalid notification signature",
                "timestamp": datetime.utcnow().isoformat(),
            },
        )

    logger.info(
        "[Notify] Payment notification merch_order_id=%s trade_status=%s",
        merch_order_id,
        data.get("trade_status"),
    )
    return {
        "status": "success",
        "message": "Notification received and processed",
        "timestamp": datetime.utcnow().isoformat(),
    }
