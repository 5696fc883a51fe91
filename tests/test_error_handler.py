from fabric_pay.error_handler import ErrorHandler
from fabric_pay.errors import (
    GatewayRejectedError,
    InvalidInputError,
    InvalidKeyError,
    TokenUnavailableError,
    TransportError,
    ValidationError,
)


def test_validation_error_is_400_with_error_list():
    status, body = ErrorHandler().handle_exception(ValidationError(["Amount is required"]), request_id="R1")
    assert status == 400
    assert body["result_code"] == "VALIDATION_ERROR"
    assert body["errors"] == ["Amount is required"]
    assert body["request_id"] == "R1"


def test_gateway_rejection_is_400_and_keeps_gateway_codes():
    exc = GatewayRejectedError("Order creation failed: no", result_code="10001", gateway_error_code="E1", gateway_error_msg="no")
    status, body = ErrorHandler().handle_exception(exc)
    assert status == 400
    assert body["result_code"] == "10001"
    assert body["error_code"] == "E1"


def test_dependency_failures_are_5xx():
    handler = ErrorHandler()
    assert handler.handle_exception(TokenUnavailableError("down"))[0] == 503
    assert handler.handle_exception(TransportError("bad gateway", status=502, retryable=True))[0] == 502
    assert handler.handle_exception(TransportError("timeout", status=504))[0] == 504

    _, body = handler.handle_exception(TokenUnavailableError("down"))
    assert body["retryable"] is True


def test_other_caller_errors_are_400():
    status, body = ErrorHandler().handle_exception(InvalidInputError("bad input"))
    assert status == 400
    assert body["result_code"] == "INVALID_INPUT"


def test_key_problem_is_server_side():
    status, body = ErrorHandler().handle_exception(InvalidKeyError("unparseable"))
    assert status == 500
    assert "unparseable" not in str(body)


def test_unknown_exception_is_500_without_details():
    status, body = ErrorHandler().handle_exception(RuntimeError("boom"))
    assert status == 500
    assert body["error_code"] == "UNKNOWN_ERROR"
    assert "boom" not in str(body)
