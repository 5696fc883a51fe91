"""
Canonical string construction for Fabric gateway signatures.

The gateway recomputes the signature over its own rendering of the request,
so every rule here has to match it byte for byte:

- top-level ``None`` values are dropped (an empty string is kept)
- ``biz_content`` is flattened exactly one level into the top level
- the exclusion set never reaches the canonical string
- keys are sorted by their UTF-8 byte value
- each field renders as ``key=value`` and fields are joined with ``&``

Scalars render the way the gateway's JavaScript reference renders them
(``100.0`` -> ``100``, ``True`` -> ``true``). Mappings and lists render as
compact JSON with keys sorted at every level.
"""

from __future__ import annotations

import copy
import json
import logging
import math
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Tuple
from urllib.parse import quote, unquote

from fabric_pay.errors import InvalidInputError, NoSignableFieldsError

logger = logging.getLogger(__name__)

BIZ_CONTENT_FIELD = "biz_content"

EXCLUDE_FIELDS = frozenset(
    {
        "sign",
        "sign_type",
        "header",
        "refund_info",
        "openType",
        "raw_request",
        BIZ_CONTENT_FIELD,
    }
)

# Characters encodeURIComponent leaves untouched besides ASCII alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


# ---------------------------------------------------------------------------
# Value rendering
# ---------------------------------------------------------------------------

def render_number(value: float) -> str:
    """Render a float the way ECMAScript ``Number.prototype.toString`` does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr() gives the shortest digit string that round-trips.
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exponent + k

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        body = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + body


def _to_json(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return "null"
        return render_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, Mapping):
        items = sorted(((str(k), v) for k, v in value.items()), key=lambda kv: kv[0].encode("utf-8"))
        return "{" + ",".join(f"{json.dumps(k, ensure_ascii=False)}:{_to_json(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_to_json(v) for v in value) + "]"
    return json.dumps(str(value), ensure_ascii=False)


def render_value(value: Any) -> str:
    """String form of a single canonical field value."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return render_number(value)
    if isinstance(value, (Mapping, list, tuple)):
        return _to_json(value)
    return str(value)


# ---------------------------------------------------------------------------
# Canonicalization
# ---------------------------------------------------------------------------

def _prepare(request: Any) -> Dict[str, Any]:
    if request is None or not isinstance(request, Mapping):
        kind = "null" if request is None else type(request).__name__
        raise InvalidInputError(f"Invalid request object: must be a non-null mapping, got {kind}")

    prepared = copy.deepcopy(dict(request))
    return {key: value for key, value in prepared.items() if value is not None}


def _flatten(prepared: Dict[str, Any]) -> Dict[str, Any]:
    flattened = dict(prepared)
    biz_content = flattened.pop(BIZ_CONTENT_FIELD, None)

    if isinstance(biz_content, Mapping):
        for key, value in biz_content.items():
            if key in EXCLUDE_FIELDS or value is None:
                continue
            flattened[key] = value

    return flattened


def signable_fields(request: Mapping[str, Any]) -> List[Tuple[str, Any]]:
    """
    Return the ``(key, value)`` pairs that participate in the signature, in
    canonical order.
    """
    flattened = _flatten(_prepare(request))
    bad_keys = [key for key in flattened if not isinstance(key, str)]
    if bad_keys:
        raise InvalidInputError("Request field names must be strings", {"keys": [repr(k) for k in bad_keys]})
    names = sorted(
        (key for key in flattened if key not in EXCLUDE_FIELDS),
        key=lambda key: key.encode("utf-8"),
    )
    if not names:
        raise NoSignableFieldsError()
    return [(name, flattened[name]) for name in names]


def canonicalize(request: Mapping[str, Any]) -> str:
    """
    Build the canonical ``key=value&...`` string for a signable request.

    Raises:
        InvalidInputError: ``request`` is not a mapping.
        NoSignableFieldsError: nothing is left after exclusion.
    """
    fields = signable_fields(request)
    canonical = "&".join(f"{key}={render_value(value)}" for key, value in fields)

    logger.debug("Canonical fields: %s", [key for key, _ in fields])
    logger.debug("Canonical string: %s", canonical)
    return canonical


# ---------------------------------------------------------------------------
# Raw request strings
# ---------------------------------------------------------------------------

def build_raw_request(fields: Iterable[Tuple[str, Any]]) -> str:
    """
    Join ``fields`` in the order given, percent-encoding each value like
    ``encodeURIComponent``. The order is not re-sorted.
    """
    return "&".join(f"{key}={quote(render_value(value), safe=_URI_COMPONENT_SAFE)}" for key, value in fields)


def parse_raw_request(raw_request: str) -> Dict[str, str]:
    """Inverse of ``build_raw_request``. Later duplicates win."""
    parsed: Dict[str, str] = {}
    for part in (raw_request or "").split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        parsed[unquote(key)] = unquote(value)
    return parsed
