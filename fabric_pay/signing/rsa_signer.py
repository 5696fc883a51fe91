"""
RSA signing and verification for Fabric gateway requests.

The gateway declares the scheme as ``SHA256WithRSA`` but verifies RSA-PSS
(SHA-256 digest, MGF1 with SHA-256). Signatures are base64 encoded.

PSS is probabilistic: signing the same text twice yields different bytes.
Only ``verify`` tells whether a signature is correct.
"""

from __future__ import annotations

import base64
import binascii
import logging
from enum import Enum
from typing import Any, Mapping, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from fabric_pay.errors import EmptyInputError, InvalidInputError, InvalidKeyError, NoSignableFieldsError
from fabric_pay.signing.canonical import canonicalize

logger = logging.getLogger(__name__)

PrivateKeyLike = Union[str, bytes, RSAPrivateKey]
PublicKeyLike = Union[str, bytes, RSAPublicKey]


class SignType(str, Enum):
    """Signature schemes the gateway accepts. Closed on purpose."""

    SHA256_WITH_RSA = "SHA256WithRSA"

    @classmethod
    def parse(cls, value: Union[str, "SignType"]) -> "SignType":
        if isinstance(value, SignType):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(
                f"Unsupported sign_type '{value}'",
                {"supported": [member.value for member in cls]},
            ) from None


def _sign_padding() -> padding.PSS:
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH)


def _verify_padding() -> padding.PSS:
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.AUTO)


# ---------------------------------------------------------------------------
# Key loading
# ---------------------------------------------------------------------------

def _key_bytes(key: Union[str, bytes]) -> bytes:
    data = key.encode("utf-8") if isinstance(key, str) else bytes(key)
    # PEM pasted into a single env var line
    return data.replace(b"\\n", b"\n").strip()


def _der_from_bare_base64(data: bytes) -> bytes:
    # Keys issued by the gateway portal are often pasted without PEM armour.
    compact = b"".join(data.split())
    return base64.b64decode(compact, validate=True)


def load_private_key(key: PrivateKeyLike) -> RSAPrivateKey:
    """
    Load an RSA private key.

    Accepts an ``RSAPrivateKey``, PEM text (PKCS#8 or PKCS#1) or a bare
    base64 DER body.

    Raises:
        InvalidKeyError: the key is empty, unparseable or not RSA.
    """
    if isinstance(key, RSAPrivateKey):
        return key
    if not key:
        raise InvalidKeyError("Private key is required for signing")

    data = _key_bytes(key)
    try:
        if b"-----BEGIN" in data:
            loaded = serialization.load_pem_private_key(data, password=None)
        else:
            loaded = serialization.load_der_private_key(_der_from_bare_base64(data), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm, binascii.Error) as exc:
        raise InvalidKeyError(f"Private key could not be parsed: {type(exc).__name__}") from exc

    if not isinstance(loaded, RSAPrivateKey):
        raise InvalidKeyError(f"Private key must be RSA, got {type(loaded).__name__}")
    return loaded


def load_public_key(key: PublicKeyLike) -> RSAPublicKey:
    """Counterpart of ``load_private_key`` for SubjectPublicKeyInfo keys."""
    if isinstance(key, RSAPublicKey):
        return key
    if not key:
        raise InvalidKeyError("Public key is required for verification")

    data = _key_bytes(key)
    try:
        if b"-----BEGIN" in data:
            loaded = serialization.load_pem_public_key(data)
        else:
            loaded = serialization.load_der_public_key(_der_from_bare_base64(data))
    except (ValueError, TypeError, UnsupportedAlgorithm, binascii.Error) as exc:
        raise InvalidKeyError(f"Public key could not be parsed: {type(exc).__name__}") from exc

    if not isinstance(loaded, RSAPublicKey):
        raise InvalidKeyError(f"Public key must be RSA, got {type(loaded).__name__}")
    return loaded


# ---------------------------------------------------------------------------
# Sign / verify
# ---------------------------------------------------------------------------

def sign(
    canonical: str,
    private_key: PrivateKeyLike,
    sign_type: Union[str, SignType] = SignType.SHA256_WITH_RSA,
) -> str:
    """
    Sign ``canonical`` and return the base64 signature.

    Raises:
        EmptyInputError: ``canonical`` is empty or not a string.
        InvalidKeyError: ``private_key`` cannot be loaded.
        InvalidInputError: ``sign_type`` is not supported.
    """
    if not canonical or not isinstance(canonical, str):
        raise EmptyInputError()

    SignType.parse(sign_type)
    rsa_key = load_private_key(private_key)

    signature = rsa_key.sign(canonical.encode("utf-8"), _sign_padding(), hashes.SHA256())
    encoded = base64.b64encode(signature).decode("ascii")

    logger.debug("String signed text_length=%d signature_length=%d", len(canonical), len(encoded))
    return encoded


def verify(
    canonical: str,
    signature: str,
    public_key: PublicKeyLike,
    sign_type: Union[str, SignType] = SignType.SHA256_WITH_RSA,
) -> bool:
    """
    Check ``signature`` over ``canonical``.

    Never raises: any malformed input, unknown scheme or key problem is
    logged and reported as ``False``.
    """
    if not canonical or not signature or not public_key:
        logger.warning("Signature verification skipped: missing text, signature or public key")
        return False

    try:
        SignType.parse(sign_type)
        rsa_key = load_public_key(public_key)
        raw_signature = base64.b64decode(signature, validate=True)
        rsa_key.verify(raw_signature, canonical.encode("utf-8"), _verify_padding(), hashes.SHA256())
    except InvalidSignature:
        logger.warning("Signature verification failed: signature does not match (text_length=%d)", len(canonical))
        return False
    except (InvalidKeyError, InvalidInputError) as exc:
        logger.warning("Signature verification failed: %s", exc.message)
        return False
    except (ValueError, TypeError, binascii.Error) as exc:
        logger.warning("Signature verification failed: malformed signature (%s)", type(exc).__name__)
        return False

    return True


def sign_request(
    request: Mapping[str, Any],
    private_key: PrivateKeyLike,
    sign_type: Union[str, SignType] = SignType.SHA256_WITH_RSA,
) -> str:
    """Canonicalize ``request`` and sign the result."""
    return sign(canonicalize(request), private_key, sign_type)


def verify_request(request: Mapping[str, Any], public_key: PublicKeyLike) -> bool:
    """
    Verify a signed envelope (for example a gateway notification) using its
    own ``sign`` and ``sign_type`` fields.
    """
    if not isinstance(request, Mapping) or not request.get("sign"):
        logger.warning("Request object missing signature")
        return False

    try:
        canonical = canonicalize(request)
    except (InvalidInputError, NoSignableFieldsError) as exc:
        logger.warning("Signature verification failed: %s", exc.message)
        return False

    return verify(
        canonical,
        str(request["sign"]),
        public_key,
        request.get("sign_type") or SignType.SHA256_WITH_RSA,
    )
