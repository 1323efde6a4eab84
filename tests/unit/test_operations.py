from __future__ import annotations

import json
from decimal import Decimal

import pytest

from dynowire.errors import ValidationError
from dynowire.messages import Request, Response, RetryState
from dynowire.operations import (
    amz_target,
    batch_get_item_request,
    batch_write_item_request,
    create_table_request,
    delete_table_request,
    encode_body,
    encode_request,
    get_item_request,
    key_of,
    put_item_request,
)
from dynowire.pool import Endpoint


def test_amz_target_uses_api_version_and_camel_case() -> None:
    assert amz_target("get-item") == "DynamoDB_20111205.GetItem"
    assert amz_target("batch_write_item") == "DynamoDB_20111205.BatchWriteItem"
    with pytest.raises(ValidationError):
        amz_target("")


def test_key_of_requires_hash_key() -> None:
    assert key_of("h") == {"hash_key_element": "h"}
    assert key_of("h", 0) == {"hash_key_element": "h", "range_key_element": 0}
    with pytest.raises(ValidationError, match="hash_key"):
        key_of(None)


def test_get_item_request_body() -> None:
    req = get_item_request("t", "h", attributes_to_get=["a", "b"], consistent_read=True)
    assert req.headers["x-amz-target"] == "DynamoDB_20111205.GetItem"
    assert req.headers["Content-Type"] == "application/x-amz-json-1.0"
    assert req.body == {
        "table_name": "t",
        "key": {"hash_key_element": "h"},
        "attributes_to_get": ["a", "b"],
        "consistent_read": True,
    }


@pytest.mark.parametrize("item", [{}, None, ["a"]])
def test_put_item_request_requires_an_item(item: object) -> None:
    with pytest.raises(ValidationError, match="non-empty mapping"):
        put_item_request("t", item)  # type: ignore[arg-type]


def test_table_name_is_required() -> None:
    with pytest.raises(ValidationError, match="table_name"):
        get_item_request("", "h")
    with pytest.raises(ValidationError, match="table_name"):
        delete_table_request("")


def test_create_table_request_validates_key_types() -> None:
    with pytest.raises(ValidationError, match="unsupported key type"):
        create_table_request("t", hash_key=("id", "B"))
    with pytest.raises(ValidationError, match="capacity"):
        create_table_request("t", hash_key=("id", "S"), read_capacity=0)


def test_batch_requests_pick_body_key_by_form() -> None:
    assert batch_write_item_request({"t": []}).body == {"request_items": {"t": []}}
    wire = batch_get_item_request({"t": {"Keys": []}}, wire=True)
    assert wire.body == {"RequestItems": {"t": {"Keys": []}}}
    assert wire.wire is True
    with pytest.raises(ValidationError):
        batch_write_item_request({})


def test_encode_request_marshals_once() -> None:
    req = put_item_request("t", {"id": "1", "n": Decimal("2.50")})
    encoded = encode_request(req)

    assert encoded.wire is True
    assert json.loads(encoded.body) == {"TableName": "t", "Item": {"id": {"S": "1"}, "n": {"N": "2.50"}}}
    assert encode_request(encoded) is encoded


def test_encode_request_leaves_wire_bodies_alone() -> None:
    entries = [{"PutRequest": {"Item": {"id": {"S": "1"}}}}]
    encoded = encode_request(batch_write_item_request({"t": entries}, wire=True))
    assert json.loads(encoded.body) == {"RequestItems": {"t": entries}}


def test_encode_body_is_compact_and_handles_decimals_and_sets() -> None:
    assert encode_body({"a": Decimal("5"), "b": Decimal("0.5"), "c": {"y", "x"}}) == '{"a":5,"b":0.5,"c":["x","y"]}'
    with pytest.raises(TypeError):
        encode_body({"a": object()})


@pytest.mark.parametrize("value", [Decimal("0.1000000000000000000001"), Decimal("NaN"), Decimal("Infinity")])
def test_encode_body_rejects_numbers_json_would_round(value: Decimal) -> None:
    with pytest.raises(ValidationError):
        encode_body({"a": value})


def test_encode_body_keeps_exact_fractional_decimals() -> None:
    assert encode_body({"a": Decimal("12.75"), "b": Decimal("-0.1")}) == '{"a":12.75,"b":-0.1}'


def test_request_endpoint_and_url() -> None:
    req = get_item_request("t", "h").with_endpoint(Endpoint(host="localhost", scheme="http", port=8000), region="r")
    assert req.url == "http://localhost:8000/"
    assert req.region == "r"
    assert req.target == "DynamoDB_20111205.GetItem"

    with pytest.raises(ValidationError, match="no endpoint"):
        get_item_request("t", "h").endpoint


def test_retry_state_counts_attempts() -> None:
    state = RetryState(max_attempts=2)
    assert state.can_retry()
    state = state.next(0.05).next(0.1)
    assert state.attempts == 2
    assert state.pending_delay == 0.1
    assert not state.can_retry()
    assert RetryState().max_attempts is None
    assert RetryState().unlimited
    assert RetryState(max_attempts=-1).can_retry()
    with pytest.raises(ValidationError):
        RetryState(max_attempts=-2)


def test_response_chain_and_error_type() -> None:
    first = Response(status=200, headers={}, body={"UnprocessedItems": {"t": [1]}})
    last = Response(status=400, headers={}, body={"__type": "x#Y"}, history=(first,), cycles=2)
    assert last.chain == (first, last)
    assert last.error_type == "x#Y"
    assert not last.ok
    assert Response(status=200, headers={}, body="text").error_type is None


def test_request_with_headers_merges() -> None:
    req = Request(headers={"a": "1"}, body="{}")
    assert req.with_headers({"b": "2"}).headers == {"a": "1", "b": "2"}
