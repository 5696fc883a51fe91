"""
Mock gateway transport.

Returns fake (but realistic) gateway answers without calling any external API.
Used when:
- Fabric sandbox credentials are not available
- We want to test flows end-to-end without external dependencies

Important:
- The mock implements the SAME GatewayTransport interface as the httpx transport.

Switching to real:
Set INTEGRATIONS_MODE=real (the default) to use clients/real_http instead.
"""
from .gateway import MockFabricGateway

__all__ = ["MockFabricGateway"]
