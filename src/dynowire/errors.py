from __future__ import annotations

from typing import Any


class DynowireError(Exception):
    pass


class ValidationError(DynowireError):
    pass


class CredentialsError(DynowireError):
    pass


class UntypeableValueError(DynowireError):
    def __init__(self, value: Any) -> None:
        super().__init__(f"can not determine the type of value: {value!r}")
        self.value = value


class TransportError(DynowireError):
    def __init__(self, *, endpoint: str, message: str) -> None:
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint
        self.message = message


class PoolExhaustedError(DynowireError):
    def __init__(self, *, endpoint: str, max_active: int) -> None:
        super().__init__(f"{endpoint}: no handle available (max_active={max_active})")
        self.endpoint = endpoint
        self.max_active = max_active


class BatchRetryExceededError(DynowireError):
    def __init__(self, *, operation: str, unprocessed_count: int) -> None:
        super().__init__(f"{operation}: retry limit exceeded (unprocessed={unprocessed_count})")
        self.operation = operation
        self.unprocessed_count = unprocessed_count


class ServiceError(DynowireError):
    def __init__(self, *, status: int, code: str, message: str, retries: int = 0) -> None:
        super().__init__(f"{code}: {message}")
        self.status = status
        self.code = code
        self.message = message
        self.retries = retries


class RetryableServiceError(ServiceError):
    pass


class ThroughputExceededError(RetryableServiceError):
    pass


class TerminalServiceError(ServiceError):
    pass


class ConditionFailedError(TerminalServiceError):
    pass


class NotFoundError(TerminalServiceError):
    pass


class ServiceValidationError(TerminalServiceError, ValidationError):
    pass
