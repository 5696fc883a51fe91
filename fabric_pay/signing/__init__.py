"""
Canonical request signing for the Fabric gateway.
"""
from .canonical import EXCLUDE_FIELDS, build_raw_request, canonicalize, parse_raw_request
from .rsa_signer import SignType, load_private_key, load_public_key, sign, sign_request, verify, verify_request

__all__ = [
    "EXCLUDE_FIELDS",
    "build_raw_request",
    "canonicalize",
    "parse_raw_request",
    "SignType",
    "load_private_key",
    "load_public_key",
    "sign",
    "sign_request",
    "verify",
    "verify_request",
]
