"""
Integrations layer.
This package contains all code used to communicate with the Fabric payment gateway:
- contracts: request/response shapes and validation rules
- policy: normalization of raw gateway answers
- clients: the real httpx transport and an in-process mock gateway

Key rule:
- Services MUST NOT build HTTP requests themselves.
- They call a GatewayTransport (under fabric_pay/integrations/clients).

Switching implementations:
- The selection of mock vs real transport happens in ONE place (fabric_pay/api/main.py),
  driven by INTEGRATIONS_MODE.
"""
