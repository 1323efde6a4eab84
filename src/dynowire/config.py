from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import ValidationError
from .pool import Endpoint, PoolConfig

DEFAULT_REGION = "us-east-1"


def regional_endpoint(region: str) -> str:
    return f"dynamodb.{region}.amazonaws.com"


def _int_env(environ: Mapping[str, str], name: str) -> int | None:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be an integer: {raw!r}") from err


def _float_env(environ: Mapping[str, str], name: str) -> float | None:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be a number: {raw!r}") from err


@dataclass(frozen=True)
class ClientConfig:
    endpoint: str | None = None
    region: str = DEFAULT_REGION
    max_retries: int = -1
    write_batch_size: int = 25
    get_batch_size: int = 100
    max_resubmissions: int = -1
    max_concurrent_batches: int | None = None
    request_timeout: float | None = None
    pool: PoolConfig = field(default_factory=PoolConfig)

    def __post_init__(self) -> None:
        if not self.region:
            raise ValidationError("region is required")
        if self.max_retries < -1:
            raise ValidationError("max_retries must be >= -1 (-1 means unlimited)")
        if self.max_resubmissions < -1:
            raise ValidationError("max_resubmissions must be >= -1 (-1 means unlimited)")
        if self.write_batch_size <= 0 or self.write_batch_size > 25:
            raise ValidationError("write_batch_size must be between 1 and 25")
        if self.get_batch_size <= 0 or self.get_batch_size > 100:
            raise ValidationError("get_batch_size must be between 1 and 100")
        if self.max_concurrent_batches is not None and self.max_concurrent_batches <= 0:
            raise ValidationError("max_concurrent_batches must be > 0")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValidationError("request_timeout must be > 0")
        # fail early on a malformed endpoint
        self.resolved_endpoint()

    def resolved_endpoint(self) -> Endpoint:
        return Endpoint.parse(self.endpoint or regional_endpoint(self.region))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ, **overrides: object) -> ClientConfig:
        values: dict[str, object] = {}

        endpoint = (environ.get("DYNAMODB_ENDPOINT") or "").strip()
        if endpoint:
            values["endpoint"] = endpoint

        region = (environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or "").strip()
        if region:
            values["region"] = region

        max_retries = _int_env(environ, "DYNOWIRE_MAX_RETRIES")
        if max_retries is not None:
            values["max_retries"] = max_retries

        max_concurrent = _int_env(environ, "DYNOWIRE_MAX_CONCURRENT_BATCHES")
        if max_concurrent is not None:
            values["max_concurrent_batches"] = max_concurrent

        timeout = _float_env(environ, "DYNOWIRE_REQUEST_TIMEOUT")
        if timeout is not None:
            values["request_timeout"] = timeout

        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]
