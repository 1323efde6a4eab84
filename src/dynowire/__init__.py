from __future__ import annotations

import json
import logging
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .errors import (
    BatchRetryExceededError,
    ConditionFailedError,
    CredentialsError,
    DynowireError,
    NotFoundError,
    PoolExhaustedError,
    RetryableServiceError,
    ServiceError,
    ServiceValidationError,
    TerminalServiceError,
    ThroughputExceededError,
    TransportError,
    UntypeableValueError,
    ValidationError,
)
from .marshal import (
    AttributeValue,
    from_wire,
    infer_type,
    marshal_item,
    to_camel_case,
    to_native_key,
    to_wire,
    unmarshal_item,
)
from .messages import Request, Response, RetryState
from .pool import ConnectionPool, Endpoint, PoolConfig

if TYPE_CHECKING:
    from .batch import BatchDelete, BatchGetResult, BatchOrchestrator, BatchPut, BatchResult
    from .client import DynamoClient
    from .config import ClientConfig
    from .pipeline import RequestPipeline, backoff_delay
    from .protection import ConcurrencyLimiter
    from .service_errors import map_error_response, raise_for_status
    from .signing import resolve_credentials, sign

logging.getLogger(__name__).addHandler(logging.NullHandler())


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except Exception:
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name in {"BatchDelete", "BatchGetResult", "BatchOrchestrator", "BatchPut", "BatchResult"}:
        from . import batch

        return getattr(batch, name)
    if name == "DynamoClient":
        from .client import DynamoClient

        return DynamoClient
    if name == "ClientConfig":
        from .config import ClientConfig

        return ClientConfig
    if name in {"RequestPipeline", "backoff_delay"}:
        from . import pipeline

        return getattr(pipeline, name)
    if name == "ConcurrencyLimiter":
        from .protection import ConcurrencyLimiter

        return ConcurrencyLimiter
    if name in {"map_error_response", "raise_for_status"}:
        from . import service_errors

        return getattr(service_errors, name)
    if name in {"resolve_credentials", "sign"}:
        from . import signing

        return getattr(signing, name)
    raise AttributeError(name)


__all__ = [
    "AttributeValue",
    "BatchDelete",
    "BatchGetResult",
    "BatchOrchestrator",
    "BatchPut",
    "BatchResult",
    "BatchRetryExceededError",
    "backoff_delay",
    "ClientConfig",
    "ConcurrencyLimiter",
    "ConditionFailedError",
    "ConnectionPool",
    "CredentialsError",
    "DynamoClient",
    "DynowireError",
    "Endpoint",
    "from_wire",
    "infer_type",
    "map_error_response",
    "marshal_item",
    "NotFoundError",
    "PoolConfig",
    "PoolExhaustedError",
    "raise_for_status",
    "Request",
    "RequestPipeline",
    "resolve_credentials",
    "Response",
    "RetryableServiceError",
    "RetryState",
    "ServiceError",
    "ServiceValidationError",
    "sign",
    "TerminalServiceError",
    "ThroughputExceededError",
    "to_camel_case",
    "to_native_key",
    "to_wire",
    "TransportError",
    "unmarshal_item",
    "UntypeableValueError",
    "ValidationError",
    "__repo_version__",
    "__version__",
]
