from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, cast

from .errors import ValidationError
from .marshal import DEFAULT_VALUE_KEYS
from .pool import Endpoint


@dataclass(frozen=True)
class RetryState:
    attempts: int = 0
    # None: not configured yet, the client applies its max_retries
    max_attempts: int | None = None
    pending_delay: float | None = None

    def __post_init__(self) -> None:
        if self.attempts < 0:
            raise ValidationError("attempts must be >= 0")
        if self.max_attempts is not None and self.max_attempts < -1:
            raise ValidationError("max_attempts must be >= -1 (-1 means unlimited)")

    @property
    def unlimited(self) -> bool:
        return self.max_attempts is None or self.max_attempts == -1

    def can_retry(self) -> bool:
        return self.unlimited or self.attempts < cast(int, self.max_attempts)

    def next(self, delay: float) -> RetryState:
        return RetryState(attempts=self.attempts + 1, max_attempts=self.max_attempts, pending_delay=delay)


@dataclass(frozen=True)
class Request:
    headers: Mapping[str, str]
    body: Any
    method: str = "POST"
    scheme: str = "https"
    host: str = ""
    port: int = 443
    path: str = "/"
    region: str | None = None
    value_keys: frozenset[str] = DEFAULT_VALUE_KEYS
    wire: bool = False
    retry: RetryState = field(default_factory=RetryState)
    state: Any = None

    @property
    def endpoint(self) -> Endpoint:
        if not self.host:
            raise ValidationError("request has no endpoint")
        return Endpoint(host=self.host, scheme=self.scheme, port=self.port)

    @property
    def url(self) -> str:
        return self.endpoint.base_url + self.path

    @property
    def target(self) -> str | None:
        return self.headers.get("x-amz-target")

    def with_endpoint(self, endpoint: Endpoint, *, region: str | None = None) -> Request:
        return replace(
            self,
            scheme=endpoint.scheme,
            host=endpoint.host,
            port=endpoint.port,
            region=region if region is not None else self.region,
        )

    def with_headers(self, headers: Mapping[str, str]) -> Request:
        return replace(self, headers={**self.headers, **headers})

    def with_retry(self, retry: RetryState) -> Request:
        return replace(self, retry=retry)


@dataclass(frozen=True)
class Response:
    status: int
    headers: Mapping[str, str]
    body: Any
    raw: bytes = b""
    state: Any = None
    retries: int = 0
    history: tuple[Response, ...] = ()
    cycles: int = 1

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def error_type(self) -> str | None:
        if isinstance(self.body, Mapping):
            value = self.body.get("__type")
            if isinstance(value, str):
                return value
        return None

    @property
    def chain(self) -> tuple[Response, ...]:
        return (*self.history, self)
