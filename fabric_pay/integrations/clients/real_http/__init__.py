"""
Real HTTP integration clients.

These clients communicate with the Fabric payment gateway over HTTPS.

Important:
- Must implement the same GatewayTransport interface as the mock gateway
- Must raise TransportError for every network or HTTP status failure
"""
from .gateway import HttpxGatewayTransport

__all__ = ["HttpxGatewayTransport"]
