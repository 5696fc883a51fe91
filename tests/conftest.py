"""Pytest fixtures: RSA key pair, gateway settings and the in-memory gateway."""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from fabric_pay.integrations.clients.mocks.gateway import MockFabricGateway
from fabric_pay.services.order_service import FabricOrderService
from fabric_pay.services.token_cache import TokenCache
from fabric_pay.utils.config_loader import GatewaySettings


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_pem(rsa_key):
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def public_pem(rsa_key):
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture
def settings(private_pem, public_pem):
    return GatewaySettings(
        base_url="https://gateway.test/apiaccess/payment/gateway",
        fabric_app_id="c4182ef8-9249-458a-985e-06d191f4d505",
        app_secret="fad0f06383c6297f545876694b974599",
        merchant_app_id="850694",
        merchant_code="245445",
        private_key=private_pem,
        public_key=public_pem,
        notify_url="https://merchant.test/api/v1/notify",
        redirect_url="https://merchant.test/done",
        mandate_execute_time="2026-01-01",
        integrations_mode="mock",
    )


@pytest.fixture
def gateway(public_pem):
    """Mock gateway that checks every envelope signature."""
    return MockFabricGateway(merchant_public_key=public_pem)


@pytest.fixture
def token_cache(gateway, settings):
    return TokenCache(gateway, settings.fabric_app_id, settings.app_secret)


@pytest.fixture
def order_service(settings, gateway, token_cache):
    return FabricOrderService(settings, gateway, token_cache)
