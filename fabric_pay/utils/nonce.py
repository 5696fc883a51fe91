"""
Replay-resistance inputs for signed gateway requests: UNIX timestamps,
random nonces and merchant order ids.
"""

import logging
import random
import secrets
import time

from fabric_pay.errors import InvalidInputError

logger = logging.getLogger(__name__)

NONCE_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_NONCE_LENGTH = 32
MAX_RECOMMENDED_NONCE_LENGTH = 1024

# Incremented every time a nonce had to come from the non-secure fallback.
DEGRADED_NONCE_COUNT = 0


def create_timestamp() -> str:
    """Current UNIX time in whole seconds, as a string."""
    return str(int(time.time()))


def _secure_choice(length: int) -> str:
    return "".join(secrets.choice(NONCE_CHARS) for _ in range(length))


def _fallback_choice(length: int) -> str:
    return "".join(random.choice(NONCE_CHARS) for _ in range(length))


def create_nonce(length: int = DEFAULT_NONCE_LENGTH) -> str:
    """
    Generate a random uppercase-alphanumeric nonce.

    Characters are drawn uniformly from ``NONCE_CHARS`` using the ``secrets``
    module. If the OS entropy source fails, a ``random`` based nonce is
    returned instead; that degradation is logged at ERROR level and counted
    in ``DEGRADED_NONCE_COUNT``.

    Raises:
        InvalidInputError: if ``length`` is not a positive integer.
    """
    global DEGRADED_NONCE_COUNT

    if not isinstance(length, int) or isinstance(length, bool) or length <= 0:
        raise InvalidInputError("Nonce length must be greater than 0", {"length": length})

    if length > MAX_RECOMMENDED_NONCE_LENGTH:
        logger.warning("Nonce length %d exceeds recommended maximum of %d", length, MAX_RECOMMENDED_NONCE_LENGTH)

    try:
        nonce = _secure_choice(length)
    except (OSError, NotImplementedError) as exc:
        DEGRADED_NONCE_COUNT += 1
        logger.error(
            "SECURITY DEGRADED: secure random source unavailable (%s); "
            "falling back to non-cryptographic nonce (degraded_count=%d)",
            exc,
            DEGRADED_NONCE_COUNT,
        )
        return _fallback_choice(length)

    logger.debug("Nonce generated length=%d preview=%s...", length, nonce[:6])
    return nonce


def create_merchant_order_id(prefix: str = "ORDER") -> str:
    """e.g. ``ORDER_1718000000000_K3J9XQ2A``"""
    return f"{prefix}_{int(time.time() * 1000)}_{create_nonce(8)}"
