from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from dynowire.mocks import ANY, FakeDynamoDBService
from dynowire.pool import Endpoint, PoolConfig


def _post(fake: FakeDynamoDBService, operation: str, body: dict[str, Any] | None = None) -> httpx.Response:
    async def scenario() -> httpx.Response:
        client = fake.client_factory()(Endpoint(host="localhost", scheme="http", port=8000), PoolConfig())
        async with client:
            return await client.post(
                "/",
                headers={"x-amz-target": f"DynamoDB_20111205.{operation}"},
                content=json.dumps(body or {}),
            )

    return asyncio.run(scenario())


def test_fake_service_records_and_matches_calls() -> None:
    fake = FakeDynamoDBService()
    fake.expect("PutItem", {"TableName": "notes", "Item": ANY}, response={"ConsumedCapacityUnits": 1})

    resp = _post(fake, "PutItem", {"TableName": "notes", "Item": {"pk": {"S": "A"}}})

    fake.assert_no_pending()
    assert resp.status_code == 200
    assert resp.json() == {"ConsumedCapacityUnits": 1}
    assert resp.headers["content-type"] == "application/x-amz-json-1.0"
    assert fake.operations() == ["PutItem"]
    assert fake.calls[0].host == "localhost"


def test_fake_service_callable_expectation_sees_body() -> None:
    fake = FakeDynamoDBService()
    seen: list[dict[str, Any]] = []
    fake.expect("GetItem", lambda body: seen.append(dict(body)))

    _post(fake, "GetItem", {"TableName": "t"})
    assert seen == [{"TableName": "t"}]


def test_fake_service_asserts_pending_calls() -> None:
    fake = FakeDynamoDBService()
    fake.expect("GetItem")
    with pytest.raises(AssertionError, match="pending expected calls"):
        fake.assert_no_pending()


def test_fake_service_rejects_unexpected_calls() -> None:
    fake = FakeDynamoDBService()
    with pytest.raises(AssertionError, match="unexpected call: GetItem"):
        _post(fake, "GetItem")


def test_fake_service_rejects_wrong_operation_order() -> None:
    fake = FakeDynamoDBService()
    fake.expect("DeleteItem")
    with pytest.raises(AssertionError, match="expected DeleteItem, got GetItem"):
        _post(fake, "GetItem")


@pytest.mark.parametrize(
    ("expected", "req", "match"),
    [
        ({"a": 1}, {"a": 2}, "expected 1"),
        ({"a": 1}, {}, "missing key"),
        ({"a": {"b": 1}}, {"a": "nope"}, "expected dict"),
        ({"a": [1]}, {"a": "nope"}, "expected list"),
        ({"a": [1, 2]}, {"a": [1]}, "expected 2 items"),
        ({"a": [1]}, {"a": [2]}, "expected 1"),
    ],
)
def test_fake_service_strict_matching(expected: dict, req: dict, match: str) -> None:
    fake = FakeDynamoDBService()
    fake.expect("Query", expected)
    with pytest.raises(AssertionError, match=match):
        _post(fake, "Query", req)


def test_fake_service_can_inject_errors_and_statuses() -> None:
    fake = FakeDynamoDBService()
    fake.expect("GetItem", error=httpx.ConnectError("boom"))
    fake.expect("GetItem", status=500, response={"message": "internal"})

    with pytest.raises(httpx.ConnectError, match="boom"):
        _post(fake, "GetItem")
    resp = _post(fake, "GetItem")
    assert resp.status_code == 500
    assert resp.json() == {"message": "internal"}


def test_fake_service_routes_answer_after_expectations() -> None:
    fake = FakeDynamoDBService()
    fake.expect("GetItem", response={"first": True})
    fake.route("GetItem", lambda body: (404, {"routed": body["n"]}))

    assert _post(fake, "GetItem", {"n": 1}).json() == {"first": True}
    resp = _post(fake, "GetItem", {"n": 2})
    assert resp.status_code == 404
    assert resp.json() == {"routed": 2}
    assert fake.operations() == ["GetItem", "GetItem"]
