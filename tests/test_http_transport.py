import json

import httpx
import pytest

from fabric_pay.errors import TransportError
from fabric_pay.integrations.clients.real_http.gateway import HttpxGatewayTransport


def _transport(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxGatewayTransport("https://gateway.test/api/", app_key="app-key", client=client)


@pytest.mark.asyncio
async def test_posts_json_with_app_key_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"token": "Bearer abc", "expiresIn": 3600})

    transport = _transport(handler)
    response = await transport.post("/payment/v1/token", {"appSecret": "s"}, headers={"Authorization": "x"})

    assert response.status == 200
    assert response.body["token"] == "Bearer abc"
    assert seen["url"] == "https://gateway.test/api/payment/v1/token"
    assert seen["headers"]["X-APP-Key"] == "app-key"
    assert seen["headers"]["Authorization"] == "x"
    assert seen["body"] == {"appSecret": "s"}
    await transport.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("status, retryable", [(401, False), (400, False), (502, True), (503, True)])
async def test_http_errors_become_transport_errors(status, retryable):
    transport = _transport(lambda request: httpx.Response(status, json={"errorCode": "E"}))

    with pytest.raises(TransportError) as excinfo:
        await transport.post("/payment/v1/merchant/preOrder", {})

    assert excinfo.value.status == status
    assert excinfo.value.retryable is retryable
    assert excinfo.value.body == {"errorCode": "E"}


@pytest.mark.asyncio
async def test_timeout_is_retryable():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(TransportError) as excinfo:
        await _transport(handler).post("/payment/v1/token", {})

    assert excinfo.value.status is None
    assert excinfo.value.retryable is True


@pytest.mark.asyncio
async def test_connect_error_is_retryable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError) as excinfo:
        await _transport(handler).post("/payment/v1/token", {})
    assert excinfo.value.retryable is True


@pytest.mark.asyncio
async def test_non_json_body_rejected():
    transport = _transport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(TransportError):
        await transport.post("/payment/v1/token", {})


@pytest.mark.asyncio
async def test_missing_base_url():
    with pytest.raises(TransportError):
        await HttpxGatewayTransport("", app_key="k").post("/payment/v1/token", {})
