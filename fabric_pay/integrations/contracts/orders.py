"""
Order contracts: validation rules for the caller-supplied business fields
of the pre-order, mandate pre-order and auth-token flows.

Each helper returns a list of violated rules. An empty list means the input
is valid. Raising is left to the request composer so that a failed check
never produces a partially signed request.
"""

import math
from typing import Any, List, Optional

MAX_TITLE_LENGTH = 256
MAX_CONTRACT_NO_LENGTH = 100
MAX_AUTH_TOKEN_LENGTH = 512
MAX_ORDER_AMOUNT = 1_000_000


def parse_amount(amount: Any) -> Optional[float]:
    """
    Coerce ``amount`` to a float, or return None when it is not numeric.

    Booleans are not amounts.
    """
    if amount is None or isinstance(amount, bool):
        return None
    if isinstance(amount, (int, float)):
        value = float(amount)
    elif isinstance(amount, str):
        try:
            value = float(amount.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _validate_title(title: Any, errors: List[str]) -> None:
    if not isinstance(title, str) or not title.strip():
        errors.append("Valid title is required")
    elif len(title) > MAX_TITLE_LENGTH:
        errors.append(f"Title is too long (max {MAX_TITLE_LENGTH} characters)")


def _validate_amount(amount: Any, errors: List[str]) -> None:
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        errors.append("Amount is required")
        return

    value = parse_amount(amount)
    if value is None:
        errors.append("Amount must be a valid number")
    elif value <= 0:
        errors.append("Amount must be greater than 0")
    elif value > MAX_ORDER_AMOUNT:
        errors.append("Amount exceeds maximum limit")


def validate_order_request(title: Any, amount: Any) -> List[str]:
    errors: List[str] = []
    _validate_title(title, errors)
    _validate_amount(amount, errors)
    return errors


def validate_mandate_order_request(title: Any, amount: Any, contract_no: Any) -> List[str]:
    errors = validate_order_request(title, amount)

    if not isinstance(contract_no, str) or not contract_no.strip():
        errors.append("Valid ContractNo is required")
    elif len(contract_no) > MAX_CONTRACT_NO_LENGTH:
        errors.append(f"ContractNo is too long (max {MAX_CONTRACT_NO_LENGTH} characters)")

    return errors


def validate_auth_token_request(auth_token: Any) -> List[str]:
    errors: List[str] = []
    if auth_token is None or auth_token == "":
        errors.append("authToken is required")
    elif not isinstance(auth_token, str):
        errors.append("authToken must be a string")
    elif len(auth_token) > MAX_AUTH_TOKEN_LENGTH:
        errors.append("authToken is too long")
    return errors
