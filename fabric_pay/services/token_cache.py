"""
Fabric bearer-token cache.

One ``TokenCache`` owns the token of one credential pair (app id + app
secret) for the life of the process. Tokens are never persisted.

State is derived from the clock rather than stored:

    EMPTY   -- no token, or the last fetch failed
    VALID   -- now < expires_at - buffer_seconds
    EXPIRED -- a token is held but is inside its safety buffer; treated
               exactly like EMPTY by ``obtain_token``

Concurrent callers that find the cache EMPTY or EXPIRED share one in-flight
fetch (single-flight): the first caller starts it, everybody else awaits the
same task and receives the same token or the same error.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Optional

from fabric_pay.errors import FabricPayError, TokenUnavailableError
from fabric_pay.integrations.contracts.interfaces import APP_KEY_HEADER, TOKEN_PATH, GatewayTransport, TokenData
from fabric_pay.integrations.policy.response_wrappers import normalize_token_response

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SECONDS = 30
DEFAULT_EXPIRES_IN = 3600


class TokenState(str, Enum):
    EMPTY = "EMPTY"
    VALID = "VALID"
    EXPIRED = "EXPIRED"


def describe_token(token: Optional[str]) -> str:
    """Loggable stand-in for a token: a short prefix and the length."""
    if not token:
        return "<none>"
    return f"{token[:10]}...({len(token)} chars)"


class TokenCache:
    def __init__(
        self,
        transport: GatewayTransport,
        app_id: str,
        app_secret: str,
        *,
        clock: Callable[[], float] = time.time,
        buffer_seconds: int = DEFAULT_BUFFER_SECONDS,
        default_expires_in: int = DEFAULT_EXPIRES_IN,
    ) -> None:
        self._transport = transport
        self._app_id = app_id
        self._app_secret = app_secret
        self._clock = clock
        self.buffer_seconds = buffer_seconds
        self.default_expires_in = default_expires_in

        self._token: Optional[TokenData] = None
        self._expires_at: float = 0.0
        self._inflight: Optional[asyncio.Task] = None
        self.fetch_count = 0

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def cache_key(self) -> str:
        return f"{self._app_id}:{(self._app_secret or '')[:8]}"

    @property
    def _log_key(self) -> str:
        return f"{self._app_id[:8]}..."

    @property
    def expires_at(self) -> Optional[float]:
        return self._expires_at if self._token is not None else None

    @property
    def state(self) -> TokenState:
        if self._token is None:
            return TokenState.EMPTY
        if self._clock() < self._expires_at - self.buffer_seconds:
            return TokenState.VALID
        return TokenState.EXPIRED

    def has_valid_token(self) -> bool:
        return self.state is TokenState.VALID

    def cached_token(self) -> Optional[TokenData]:
        """The held token, even if it is inside the safety buffer."""
        return self._token

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def invalidate(self, token: Optional[str] = None) -> None:
        """
        Drop the cached token.

        With ``token`` given, only clear if that is still the cached token; a
        late 401 for an older token must not discard a newer one.
        """
        if token is not None and (self._token is None or self._token.token != token):
            logger.debug("[Fabric Token] Ignoring invalidation of a superseded token for %s", self._log_key)
            return
        if self._token is not None:
            logger.info("[Fabric Token] Cache cleared for %s", self._log_key)
        self._token = None
        self._expires_at = 0.0

    async def obtain_token(self) -> TokenData:
        """
        Return a valid bearer token, fetching one only if needed.

        Raises:
            TokenUnavailableError: the fetch failed. The cache is left EMPTY.
        """
        if self.has_valid_token():
            logger.debug("[Fabric Token] Using cached token for %s", self._log_key)
            return self._token

        if self._inflight is None:
            logger.info("[Fabric Token] Requesting new token for %s", self._log_key)
            self._inflight = asyncio.ensure_future(self._refresh())

        # shield: one caller giving up must not cancel the fetch the others wait on
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> TokenData:
        self.fetch_count += 1
        try:
            response = await self._transport.post(
                TOKEN_PATH,
                {"appSecret": self._app_secret},
                headers={APP_KEY_HEADER: self._app_id},
            )
            token = normalize_token_response(response.body)
        except FabricPayError as exc:
            self.invalidate()
            logger.error("[Fabric Token] Failed to obtain new token: %s", exc.message)
            raise TokenUnavailableError(f"Failed to apply Fabric token: {exc.message}", cause=exc) from exc
        except Exception as exc:
            self.invalidate()
            logger.error("[Fabric Token] Token request failed: %s", type(exc).__name__)
            raise TokenUnavailableError(f"Failed to apply Fabric token: {type(exc).__name__}", cause=exc) from exc
        except BaseException:
            # cancellation
            self.invalidate()
            raise
        finally:
            self._inflight = None

        expires_in = token.expires_in if token.expires_in and token.expires_in > 0 else self.default_expires_in
        self._token = token
        self._expires_at = self._clock() + expires_in

        logger.info(
            "[Fabric Token] Token %s cached, expires in %s seconds",
            describe_token(token.token),
            expires_in,
        )
        return token
