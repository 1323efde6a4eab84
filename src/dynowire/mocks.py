from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from .pool import ClientFactory, Endpoint, PoolConfig


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()


def _assert_match(expected: Any, actual: Any, *, path: str) -> None:
    if expected is ANY:
        return

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            raise AssertionError(f"{path}: expected dict, got {type(actual).__name__}")
        for k, v in expected.items():
            if k not in actual:
                raise AssertionError(f"{path}: missing key {k!r}")
            _assert_match(v, actual[k], path=f"{path}.{k}")
        return

    if isinstance(expected, list):
        if not isinstance(actual, list):
            raise AssertionError(f"{path}: expected list, got {type(actual).__name__}")
        if len(expected) != len(actual):
            raise AssertionError(f"{path}: expected {len(expected)} items, got {len(actual)}")
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            _assert_match(e, a, path=f"{path}[{i}]")
        return

    if expected != actual:
        raise AssertionError(f"{path}: expected {expected!r}, got {actual!r}")


type Reply = Mapping[str, Any] | tuple[int, Mapping[str, Any]]
type Responder = Callable[[dict[str, Any]], Reply]


@dataclass(frozen=True)
class ExpectedCall:
    operation: str
    expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None
    response: Mapping[str, Any] | None = None
    status: int = 200
    error: Exception | None = None


@dataclass(frozen=True)
class RecordedCall:
    operation: str
    body: dict[str, Any]
    headers: dict[str, str]
    host: str


def _operation_of(request: httpx.Request) -> str:
    target = request.headers.get("x-amz-target", "")
    return target.split(".", 1)[-1]


def _json_response(status: int, body: Mapping[str, Any] | None) -> httpx.Response:
    return httpx.Response(
        status,
        content=json.dumps(dict(body or {})).encode("utf-8"),
        headers={"Content-Type": "application/x-amz-json-1.0"},
    )


class FakeDynamoDBService:
    def __init__(self) -> None:
        self._expected: list[ExpectedCall] = []
        self._routes: dict[str, Responder] = {}
        self.calls: list[RecordedCall] = []

    def expect(
        self,
        operation: str,
        expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        status: int = 200,
        error: Exception | None = None,
    ) -> None:
        self._expected.append(
            ExpectedCall(operation=operation, expected=expected, response=response, status=status, error=error)
        )

    def route(self, operation: str, responder: Responder) -> None:
        self._routes[operation] = responder

    def assert_no_pending(self) -> None:
        if self._expected:
            raise AssertionError(f"pending expected calls: {self._expected!r}")

    def operations(self) -> list[str]:
        return [c.operation for c in self.calls]

    def handle(self, request: httpx.Request) -> httpx.Response:
        operation = _operation_of(request)
        body = json.loads(request.content or b"{}")
        self.calls.append(
            RecordedCall(operation=operation, body=body, headers=dict(request.headers), host=request.url.host)
        )

        if self._expected:
            call = self._expected.pop(0)
            if call.operation != operation:
                raise AssertionError(f"expected {call.operation}, got {operation}")

            if callable(call.expected):
                call.expected(body)
            elif call.expected is not None:
                _assert_match(dict(call.expected), body, path=operation)

            if call.error is not None:
                raise call.error
            return _json_response(call.status, call.response)

        responder = self._routes.get(operation)
        if responder is None:
            raise AssertionError(f"unexpected call: {operation}")

        reply = responder(body)
        if isinstance(reply, tuple):
            status, payload = reply
            return _json_response(status, payload)
        return _json_response(200, reply)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client_factory(self) -> ClientFactory:
        def factory(endpoint: Endpoint, config: PoolConfig) -> httpx.AsyncClient:
            _ = config
            return httpx.AsyncClient(base_url=endpoint.base_url, transport=self.transport())

        return factory
