"""
Real Fabric gateway HTTP transport.

Used when INTEGRATIONS_MODE is "real" (the default). Posts signed envelopes
as JSON and turns every failure into ``TransportError`` so callers only deal
with one error type from the network layer.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Mapping, Optional

import httpx

from fabric_pay.errors import TransportError
from fabric_pay.integrations.contracts.interfaces import APP_KEY_HEADER, GatewayResponse, GatewayTransport

logger = logging.getLogger(__name__)


class HttpxGatewayTransport(GatewayTransport):
    def __init__(
        self,
        base_url: str,
        app_key: str,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.app_key = app_key
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _headers(self, extra: Optional[Mapping[str, str]]) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json", APP_KEY_HEADER: self.app_key}
        if extra:
            headers.update(extra)
        return headers

    async def post(
        self,
        path: str,
        envelope: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> GatewayResponse:
        if not self.base_url:
            raise TransportError("FABRIC_BASE_URL is not configured.")

        url = f"{self.base_url}{path}"
        started = time.monotonic()
        logger.info("[Fabric API] POST %s", path)

        try:
            if self._client is not None:
                response = await self._client.post(url, json=dict(envelope), headers=self._headers(headers))
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(url, json=dict(envelope), headers=self._headers(headers))
            response.raise_for_status()
            body = response.json() if response.content else {}
        except httpx.TimeoutException as e:
            logger.error("[Fabric API] POST %s timed out after %.0fms", path, (time.monotonic() - started) * 1000)
            raise TransportError(f"Request to {path} timed out", retryable=True) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("[Fabric API] POST %s failed with status %s", path, status)
            raise TransportError(
                f"Gateway returned HTTP {status} for {path}",
                status=status,
                body=_safe_json(e.response),
                retryable=status >= 500,
            ) from e
        except httpx.RequestError as e:
            logger.error("[Fabric API] No response received for %s: %s", path, e)
            raise TransportError(f"Request to {path} failed: {type(e).__name__}", retryable=True) from e
        except ValueError as e:
            logger.error("[Fabric API] POST %s returned a non-JSON body", path)
            raise TransportError(f"Gateway returned a non-JSON body for {path}") from e

        if not isinstance(body, dict):
            raise TransportError(f"Gateway returned a non-object body for {path}", status=response.status_code)

        logger.info(
            "[Fabric API] POST %s -> %s in %.0fms",
            path,
            response.status_code,
            (time.monotonic() - started) * 1000,
        )
        return GatewayResponse(status=response.status_code, body=body)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"text": response.text[:200]}
