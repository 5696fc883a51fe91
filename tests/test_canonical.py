import pytest

from fabric_pay.errors import InvalidInputError, NoSignableFieldsError
from fabric_pay.signing.canonical import (
    EXCLUDE_FIELDS,
    build_raw_request,
    canonicalize,
    parse_raw_request,
    render_number,
    render_value,
    signable_fields,
)


def test_flattens_biz_content_and_drops_excluded_fields():
    request = {"a": 1, "biz_content": {"b": 2, "sign": "x"}}
    assert canonicalize(request) == "a=1&b=2"


def test_is_independent_of_insertion_order():
    one = {"nonce_str": "N", "timestamp": "1", "method": "payment.preorder", "biz_content": {"title": "T", "appid": "9"}}
    two = {"biz_content": {"appid": "9", "title": "T"}, "method": "payment.preorder", "timestamp": "1", "nonce_str": "N"}
    assert canonicalize(one) == canonicalize(two)
    assert canonicalize(one) == "appid=9&method=payment.preorder&nonce_str=N&timestamp=1&title=T"


def test_every_excluded_field_is_ignored():
    request = {name: "v" for name in EXCLUDE_FIELDS if name != "biz_content"}
    request["keep"] = "me"
    assert canonicalize(request) == "keep=me"


def test_none_values_dropped_but_empty_strings_kept():
    request = {"a": None, "b": "", "biz_content": {"c": None, "d": "x"}}
    assert canonicalize(request) == "b=&d=x"


def test_only_one_level_is_flattened():
    request = {"biz_content": {"mandate_data": {"mctContractNo": "C1", "executeTime": "2026-01-01"}}}
    assert canonicalize(request) == 'mandate_data={"executeTime":"2026-01-01","mctContractNo":"C1"}'


def test_nested_biz_content_inside_biz_content_is_not_flattened():
    request = {"biz_content": {"biz_content": {"x": 1}, "y": 2}}
    assert canonicalize(request) == "y=2"


def test_keys_sorted_by_utf8_bytes():
    request = {"b": "1", "B": "2", "_": "3", "é": "4"}
    assert [k for k, _ in signable_fields(request)] == ["B", "_", "b", "é"]


def test_input_is_not_mutated():
    request = {"a": None, "biz_content": {"b": 1}}
    canonicalize(request)
    assert request == {"a": None, "biz_content": {"b": 1}}


@pytest.mark.parametrize("bad", [None, "a=1", 42, ["a", 1]])
def test_rejects_non_mapping_input(bad):
    with pytest.raises(InvalidInputError):
        canonicalize(bad)


@pytest.mark.parametrize("request_obj", [{1: "a"}, {"a": "1", "biz_content": {2: "b"}}])
def test_rejects_non_string_field_names(request_obj):
    with pytest.raises(InvalidInputError):
        canonicalize(request_obj)


def test_rejects_request_with_nothing_to_sign():
    with pytest.raises(NoSignableFieldsError):
        canonicalize({"sign": "abc", "sign_type": "SHA256WithRSA", "biz_content": {}})


@pytest.mark.parametrize(
    "value, expected",
    [
        (100.0, "100"),
        (100.5, "100.5"),
        (0.1, "0.1"),
        (-2.0, "-2"),
        (1e21, "1e+21"),
        (123456789012345680000.0, "123456789012345680000"),
        (1e-7, "1e-7"),
        (0.000001, "0.000001"),
        (0.0, "0"),
    ],
)
def test_render_number_matches_javascript(value, expected):
    assert render_number(value) == expected


def test_render_value_scalars():
    assert render_value(True) == "true"
    assert render_value(False) == "false"
    assert render_value(7) == "7"
    assert render_value("ETB") == "ETB"
    assert render_value([1, "a", None]) == '[1,"a",null]'


def test_raw_request_keeps_field_order_and_encodes_values():
    raw = build_raw_request([("prepay_id", "P 1"), ("appid", "A"), ("sign", "ab+/c=")])
    assert raw == "prepay_id=P%201&appid=A&sign=ab%2B%2Fc%3D"
    assert parse_raw_request(raw) == {"prepay_id": "P 1", "appid": "A", "sign": "ab+/c="}


def test_raw_request_leaves_uri_component_safe_chars_alone():
    assert build_raw_request([("k", "a-b_c.d!e~f*g'h(i)")]) == "k=a-b_c.d!e~f*g'h(i)"
