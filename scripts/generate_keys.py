#!/usr/bin/env python3
"""
Generate an RSA key pair for local development and mock mode.

Prints PRIVATE_KEY / PUBLIC_KEY lines ready for a .env file. Production keys
are issued through the Fabric merchant portal, not by this script.
"""

from __future__ import annotations

import argparse
import sys

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def _single_line(pem: bytes) -> str:
    return pem.decode("ascii").strip().replace("\n", "\\n")


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a development RSA key pair")
    parser.add_argument("--bits", type=int, default=2048, choices=(2048, 3072, 4096))
    args = parser.parse_args()

    key = rsa.generate_private_key(public_exponent=65537, key_size=args.bits)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    print(f'PRIVATE_KEY="{_single_line(private_pem)}"')
    print(f'PUBLIC_KEY="{_single_line(public_pem)}"')
    return 0


if __name__ == "__main__":
    sys.exit(main())
