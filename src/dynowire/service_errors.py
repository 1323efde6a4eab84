from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import (
    ConditionFailedError,
    NotFoundError,
    RetryableServiceError,
    ServiceError,
    ServiceValidationError,
    TerminalServiceError,
    ThroughputExceededError,
)
from .messages import Response

THROUGHPUT_EXCEEDED_TYPE = "com.amazonaws.dynamodb.v20111205#ProvisionedThroughputExceededException"


def error_code(error_type: str | None) -> str:
    if not error_type:
        return ""
    return error_type.rsplit("#", 1)[-1]


def is_throughput_exceeded(response: Response) -> bool:
    return response.status == 400 and response.error_type == THROUGHPUT_EXCEEDED_TYPE


def is_retryable(response: Response) -> bool:
    return response.status == 500 or is_throughput_exceeded(response)


def _error_message(response: Response) -> str:
    body = response.body
    if isinstance(body, Mapping):
        for key in ("message", "Message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(body, str) and body:
        return body
    return f"HTTP {response.status}"


def map_error_response(response: Response) -> ServiceError:
    code = error_code(response.error_type)
    message = _error_message(response)
    kwargs: dict[str, Any] = {"status": response.status, "message": message, "retries": response.retries}

    if code == "ConditionalCheckFailedException":
        return ConditionFailedError(code=code, **kwargs)
    if code == "ValidationException":
        return ServiceValidationError(code=code, **kwargs)
    if code == "ResourceNotFoundException":
        return NotFoundError(code=code, **kwargs)
    if is_throughput_exceeded(response):
        return ThroughputExceededError(code=code, **kwargs)
    if response.status == 500:
        return RetryableServiceError(code=code or "InternalServerError", **kwargs)

    return TerminalServiceError(code=code or "UnknownError", **kwargs)


def raise_for_status(response: Response) -> Response:
    if response.ok:
        return response
    raise map_error_response(response)
