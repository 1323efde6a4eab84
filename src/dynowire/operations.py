from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from decimal import Decimal
from typing import Any

from .errors import ValidationError
from .marshal import DEFAULT_VALUE_KEYS, to_camel_case, to_wire
from .messages import Request

API_VERSION = "DynamoDB_20111205"
CONTENT_TYPE = "application/x-amz-json-1.0"

type KeyType = str  # "S" | "N"


def amz_target(operation: str) -> str:
    if not operation:
        raise ValidationError("operation is required")
    return f"{API_VERSION}.{to_camel_case(operation)}"


def base_request(
    operation: str,
    body: Mapping[str, Any],
    *,
    value_keys: Iterable[str] = DEFAULT_VALUE_KEYS,
    wire: bool = False,
) -> Request:
    return Request(
        headers={"Content-Type": CONTENT_TYPE, "x-amz-target": amz_target(operation)},
        body=dict(body),
        value_keys=frozenset(value_keys),
        wire=wire,
    )


def key_of(hash_key: Any, range_key: Any | None = None) -> dict[str, Any]:
    if hash_key is None:
        raise ValidationError("hash_key is required")
    key: dict[str, Any] = {"hash_key_element": hash_key}
    if range_key is not None:
        key["range_key_element"] = range_key
    return key


def _table_name(table_name: str) -> str:
    if not isinstance(table_name, str) or not table_name:
        raise ValidationError("table_name is required")
    return table_name


def get_item_request(
    table_name: str,
    hash_key: Any,
    range_key: Any | None = None,
    *,
    attributes_to_get: Sequence[str] | None = None,
    consistent_read: bool = False,
) -> Request:
    body: dict[str, Any] = {"table_name": _table_name(table_name), "key": key_of(hash_key, range_key)}
    if attributes_to_get is not None:
        body["attributes_to_get"] = list(attributes_to_get)
    if consistent_read:
        body["consistent_read"] = True
    return base_request("get-item", body)


def put_item_request(
    table_name: str,
    item: Mapping[str, Any],
    *,
    return_values: str | None = None,
) -> Request:
    if not isinstance(item, Mapping) or not item:
        raise ValidationError("item must be a non-empty mapping")
    body: dict[str, Any] = {"table_name": _table_name(table_name), "item": dict(item)}
    if return_values is not None:
        body["return_values"] = return_values
    return base_request("put-item", body)


def delete_item_request(
    table_name: str,
    hash_key: Any,
    range_key: Any | None = None,
    *,
    return_values: str | None = None,
) -> Request:
    body: dict[str, Any] = {"table_name": _table_name(table_name), "key": key_of(hash_key, range_key)}
    if return_values is not None:
        body["return_values"] = return_values
    return base_request("delete-item", body)


def _key_schema_element(name: str, key_type: KeyType) -> dict[str, str]:
    if not name:
        raise ValidationError("key attribute name is required")
    if key_type not in {"S", "N"}:
        raise ValidationError(f"unsupported key type: {key_type}")
    return {"attribute_name": name, "attribute_type": key_type}


def create_table_request(
    table_name: str,
    *,
    hash_key: tuple[str, KeyType],
    range_key: tuple[str, KeyType] | None = None,
    read_capacity: int = 5,
    write_capacity: int = 5,
) -> Request:
    if read_capacity <= 0 or write_capacity <= 0:
        raise ValidationError("read_capacity and write_capacity must be > 0")

    key_schema: dict[str, Any] = {"hash_key_element": _key_schema_element(*hash_key)}
    if range_key is not None:
        key_schema["range_key_element"] = _key_schema_element(*range_key)

    body = {
        "table_name": _table_name(table_name),
        "key_schema": key_schema,
        "provisioned_throughput": {
            "read_capacity_units": read_capacity,
            "write_capacity_units": write_capacity,
        },
    }
    # key schema elements describe attributes, they are not attribute values
    return base_request("create-table", body, value_keys=())


def delete_table_request(table_name: str) -> Request:
    return base_request("delete-table", {"table_name": _table_name(table_name)}, value_keys=())


def batch_write_item_request(request_items: Mapping[str, Any], *, wire: bool = False) -> Request:
    if not request_items:
        raise ValidationError("request_items is required")
    key = "RequestItems" if wire else "request_items"
    return base_request("batch-write-item", {key: dict(request_items)}, wire=wire)


def batch_get_item_request(request_items: Mapping[str, Any], *, wire: bool = False) -> Request:
    if not request_items:
        raise ValidationError("request_items is required")
    key = "RequestItems" if wire else "request_items"
    return base_request("batch-get-item", {key: dict(request_items)}, wire=wire)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValidationError(f"number is not finite: {value}")
        if value == value.to_integral_value():
            return int(value)
        number = float(value)
        # json only writes floats; refuse numbers a float would round
        if Decimal(repr(number)) != value:
            raise ValidationError(f"number can not be encoded without losing precision: {value}")
        return number
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_body(body: Any) -> str:
    return json.dumps(body, separators=(",", ":"), default=_json_default)


def encode_request(request: Request) -> Request:
    if isinstance(request.body, (str, bytes)):
        return request
    body = request.body if request.wire else to_wire(request.body, request.value_keys)
    return replace(request, body=encode_body(body), wire=True)
