import pytest

from fabric_pay.errors import ValidationError
from fabric_pay.integrations.contracts.interfaces import GatewayMethod
from fabric_pay.services import request_composer
from fabric_pay.services.request_composer import (
    build_auth_token_biz_content,
    build_mandate_biz_content,
    build_preorder_biz_content,
    compose_raw_request_string,
    compose_signed_envelope,
)
from fabric_pay.signing.canonical import parse_raw_request
from fabric_pay.signing.rsa_signer import verify, verify_request


@pytest.mark.parametrize(
    "title, amount, expected",
    [
        ("Sub", 0, "Amount must be greater than 0"),
        ("Sub", "abc", "Amount must be a valid number"),
        ("Sub", None, "Amount is required"),
        ("Sub", 1_000_001, "Amount exceeds maximum limit"),
        ("", 10, "Valid title is required"),
        ("x" * 257, 10, "Title is too long (max 256 characters)"),
    ],
)
def test_invalid_order_fields_rejected_before_signing(monkeypatch, settings, title, amount, expected):
    def must_not_run(*args, **kwargs):
        raise AssertionError("canonicalize called for invalid input")

    monkeypatch.setattr(request_composer, "canonicalize", must_not_run)

    with pytest.raises(ValidationError) as excinfo:
        build_preorder_biz_content(title, amount, settings)
    assert expected in excinfo.value.errors


def test_mandate_requires_contract_number(settings):
    with pytest.raises(ValidationError) as excinfo:
        build_mandate_biz_content("Sub", 10, "", settings)
    assert excinfo.value.errors == ["Valid ContractNo is required"]

    with pytest.raises(ValidationError):
        build_mandate_biz_content("Sub", 10, "C" * 101, settings)


def test_all_violations_reported_together(settings):
    with pytest.raises(ValidationError) as excinfo:
        build_mandate_biz_content(None, -1, None, settings)
    assert excinfo.value.errors == [
        "Valid title is required",
        "Amount must be greater than 0",
        "Valid ContractNo is required",
    ]


def test_preorder_biz_content(settings):
    biz = build_preorder_biz_content("Sub", "100.50", settings, merch_order_id="ORDER_1")
    assert biz == {
        "trade_type": "InApp",
        "appid": "850694",
        "merch_code": "245445",
        "merch_order_id": "ORDER_1",
        "title": "Sub",
        "total_amount": 100.5,
        "trans_currency": "ETB",
        "timeout_express": "120m",
        "payee_identifier": "245445",
        "payee_identifier_type": "04",
        "payee_type": "5000",
        "notify_url": "https://merchant.test/api/v1/notify",
        "redirect_url": "https://merchant.test/done",
    }


def test_signed_mandate_envelope_end_to_end(settings, public_pem):
    biz = build_mandate_biz_content("Sub", 100.5, "C1", settings)
    envelope = compose_signed_envelope(GatewayMethod.PREORDER, biz, private_key=settings.private_key)

    assert envelope["method"] == "payment.preorder"
    assert envelope["version"] == "1.0"
    assert envelope["sign_type"] == "SHA256WithRSA"
    assert len(envelope["nonce_str"]) == 32
    assert envelope["biz_content"]["mandate_data"] == {
        "executeTime": "2026-01-01",
        "mandateTemplateId": "103001",
        "mctContractNo": "C1",
    }
    assert verify_request(envelope, public_pem) is True


def test_auth_token_biz_content(settings):
    assert build_auth_token_biz_content("app-token", settings) == {
        "access_token": "app-token",
        "trade_type": "InApp",
        "appid": "850694",
        "resource_type": "OpenId",
    }
    with pytest.raises(ValidationError):
        build_auth_token_biz_content("t" * 513, settings)
    with pytest.raises(ValidationError):
        build_auth_token_biz_content(12345, settings)


def test_raw_request_string_order_and_signature(settings, public_pem):
    raw = compose_raw_request_string(
        "PREPAY123",
        app_id=settings.merchant_app_id,
        merch_code=settings.merchant_code,
        private_key=settings.private_key,
    )

    keys = [part.split("=", 1)[0] for part in raw.split("&")]
    assert keys == ["appid", "merch_code", "nonce_str", "prepay_id", "timestamp", "sign", "sign_type"]

    fields = parse_raw_request(raw)
    assert fields["prepay_id"] == "PREPAY123"
    assert fields["sign_type"] == "SHA256WithRSA"

    signed_part = "&".join(
        f"{k}={fields[k]}" for k in ("appid", "merch_code", "nonce_str", "prepay_id", "timestamp")
    )
    assert verify(signed_part, fields["sign"], public_pem)
