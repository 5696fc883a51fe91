"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fabric_pay import __version__
from fabric_pay.api.endpoints.payments import payments_api
from fabric_pay.error_handler import ErrorHandler
from fabric_pay.errors import ValidationError
from fabric_pay.integrations.contracts.interfaces import GatewayTransport
from fabric_pay.services.order_service import FabricOrderService
from fabric_pay.services.token_cache import TokenCache, TokenState
from fabric_pay.utils.config_loader import GatewaySettings, load_gateway_settings, log_configuration
from fabric_pay.utils.nonce import create_nonce

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /health",
    "POST /apply/h5token",
    "POST /create/order",
    "POST /create/mandetOrder",
    "POST /api/v1/notify",
]


def _select_transport(settings: GatewaySettings) -> GatewayTransport:
    """Pick the gateway transport for INTEGRATIONS_MODE."""
    if settings.integrations_mode == "mock":
        from fabric_pay.integrations.clients.mocks.gateway import MockFabricGateway

        logger.warning("INTEGRATIONS_MODE=mock: using in-memory Fabric gateway")
        return MockFabricGateway()

    from fabric_pay.integrations.clients.real_http.gateway import HttpxGatewayTransport

    return HttpxGatewayTransport(
        base_url=settings.base_url,
        app_key=settings.fabric_app_id,
        timeout_seconds=settings.api_timeout_seconds,
    )


def create_app(
    settings: Optional[GatewaySettings] = None,
    transport: Optional[GatewayTransport] = None,
) -> FastAPI:
    settings = settings or load_gateway_settings()
    if settings.enable_debug_logging:
        logging.getLogger("fabric_pay").setLevel(logging.DEBUG)
    log_configuration(settings)

    transport = transport or _select_transport(settings)
    token_cache = TokenCache(transport, settings.fabric_app_id, settings.app_secret)
    order_service = FabricOrderService(settings, transport, token_cache)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Fabric Pay API starting (env=%s, mode=%s)", settings.env, settings.integrations_mode)
        yield
        await transport.aclose()
        logger.info("Fabric Pay API stopped")

    app = FastAPI(
        title="Fabric Pay API",
        description="Merchant backend for Fabric in-app payments: signed pre-orders, mandates and auth tokens",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.transport = transport
    app.state.token_cache = token_cache
    app.state.order_service = order_service

    error_handler = ErrorHandler()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.monotonic()
        client_host = request.client.host if request.client else "-"
        response = await call_next(request)
        logger.info(
            "%s %s -> %s in %.0fms from %s",
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - started) * 1000,
            client_host,
        )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code != 404:
            return await http_exception_handler(request, exc)
        return JSONResponse(
            status_code=404,
            content={
                "error_code": "NOT_FOUND",
                "error_msg": f"Route {request.method} {request.url.path} not found",
                "available_endpoints": AVAILABLE_ENDPOINTS,
                "timestamp": datetime.utcnow().isoformat(),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Malformed JSON bodies; field rules are enforced by the services.
        errors = [str(err.get("msg")) for err in exc.errors()]
        status_code, body = error_handler.handle_exception(ValidationError(errors), request_id=create_nonce())
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        status_code, body = error_handler.handle_exception(exc, request_id=create_nonce())
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "service": "Fabric Pay API",
            "version": __version__,
            "status": "running",
            "timestamp": datetime.utcnow().isoformat(),
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness plus the state of the cached gateway token."""
        state = token_cache.state
        return {
            "status": "healthy",
            "environment": settings.env,
            "integrations_mode": settings.integrations_mode,
            "services": {
                "fabricToken": "available" if state is TokenState.VALID else "requires_refresh",
            },
            "timestamp": datetime.utcnow().isoformat(),
        }

    app.include_router(payments_api)
    return app


app = create_app()
