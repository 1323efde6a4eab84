from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from typing import Any

from .errors import BatchRetryExceededError, DynowireError, ValidationError
from .marshal import unmarshal_item
from .messages import Request, Response
from .operations import batch_get_item_request, batch_write_item_request, key_of
from .pipeline import RequestPipeline
from .protection import ConcurrencyLimiter
from .service_errors import map_error_response

logger = logging.getLogger(__name__)

WRITE_BATCH_SIZE = 25
GET_BATCH_SIZE = 100


@dataclass(frozen=True)
class BatchPut:
    table: str
    item: Mapping[str, Any]
    id: str | None = None

    def to_native(self) -> dict[str, Any]:
        put: dict[str, Any] = {"item": dict(self.item)}
        if self.id is not None:
            put["id"] = self.id
        return {"put_request": put}


@dataclass(frozen=True)
class BatchDelete:
    table: str
    hash_key: Any
    range_key: Any | None = None

    def to_native(self) -> dict[str, Any]:
        return {"delete_request": {"key": key_of(self.hash_key, self.range_key)}}


type WriteEntry = BatchPut | BatchDelete


@dataclass(frozen=True)
class WriteBatch:
    table: str
    entries: tuple[WriteEntry, ...]

    def request_items(self) -> dict[str, Any]:
        return {self.table: [entry.to_native() for entry in self.entries]}


@dataclass(frozen=True)
class GetBatch:
    table: str
    keys: tuple[tuple[Any, Any | None], ...]
    attributes_to_get: tuple[str, ...] | None = None

    def request_items(self) -> dict[str, Any]:
        table_request: dict[str, Any] = {"keys": [key_of(pk, sk) for pk, sk in self.keys]}
        if self.attributes_to_get is not None:
            table_request["attributes_to_get"] = list(self.attributes_to_get)
        return {self.table: table_request}


type Batch = WriteBatch | GetBatch


@dataclass(frozen=True)
class BatchResult:
    batch: Batch
    response: Response | None = None
    error: Exception | None = None
    history: tuple[Response, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None and self.response.ok

    @property
    def responses(self) -> tuple[Response, ...]:
        if self.response is None:
            return self.history
        return (*self.history, self.response)


@dataclass(frozen=True)
class BatchGetResult:
    table: str
    batches: tuple[BatchResult, ...]

    @property
    def ok(self) -> bool:
        return all(b.ok for b in self.batches)

    @property
    def responses(self) -> list[Response]:
        out: list[Response] = []
        for batch in self.batches:
            out.extend(batch.responses)
        return out

    @property
    def errors(self) -> list[Exception]:
        return [b.error for b in self.batches if b.error is not None]

    @property
    def items(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for response in self.responses:
            if not response.ok or not isinstance(response.body, Mapping):
                continue
            table = (response.body.get("Responses") or {}).get(self.table) or {}
            for item in table.get("Items") or []:
                out.append(unmarshal_item(item))
        return out


def chunked[T](items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size <= 0:
        raise ValueError("size must be > 0")
    return [items[i : i + size] for i in range(0, len(items), size)]


def split_write_batches(entries: Sequence[WriteEntry], size: int = WRITE_BATCH_SIZE) -> list[WriteBatch]:
    by_table: dict[str, list[WriteEntry]] = {}
    for entry in entries:
        if not isinstance(entry, (BatchPut, BatchDelete)):
            raise ValidationError(f"unsupported batch write entry: {type(entry).__name__}")
        if not entry.table:
            raise ValidationError("batch write entry has no table")
        by_table.setdefault(entry.table, []).append(entry)

    batches: list[WriteBatch] = []
    for table, table_entries in by_table.items():
        for chunk in chunked(table_entries, size):
            batches.append(WriteBatch(table=table, entries=tuple(chunk)))
    return batches


def _normalize_key(key: Any) -> tuple[Any, Any | None]:
    if isinstance(key, tuple):
        if len(key) != 2:
            raise ValidationError("expected key tuple (hash_key, range_key)")
        pk, sk = key
    else:
        pk, sk = key, None
    if pk is None:
        raise ValidationError("hash_key is required")
    return pk, sk


def split_get_batches(
    table: str,
    keys: Sequence[Any],
    size: int = GET_BATCH_SIZE,
    *,
    attributes_to_get: Sequence[str] | None = None,
) -> list[GetBatch]:
    if not table:
        raise ValidationError("table is required")
    normalized = [_normalize_key(key) for key in keys]
    attrs = tuple(attributes_to_get) if attributes_to_get is not None else None
    return [GetBatch(table=table, keys=tuple(chunk), attributes_to_get=attrs) for chunk in chunked(normalized, size)]


def _pending(value: Any) -> bool:
    if isinstance(value, Mapping):
        return bool(value.get("Keys"))
    return bool(value)


def unprocessed_entries(body: Any, key: str) -> dict[str, Any]:
    if not isinstance(body, Mapping):
        return {}
    raw = body.get(key)
    if not isinstance(raw, Mapping):
        return {}
    return {table: value for table, value in raw.items() if _pending(value)}


def count_unprocessed(unprocessed: Mapping[str, Any]) -> int:
    total = 0
    for value in unprocessed.values():
        if isinstance(value, Mapping):
            total += len(value.get("Keys") or [])
        else:
            total += len(value)
    return total


class BatchOrchestrator:
    def __init__(
        self,
        pipeline: RequestPipeline,
        *,
        prepare: Callable[[Request], Request],
        write_batch_size: int = WRITE_BATCH_SIZE,
        get_batch_size: int = GET_BATCH_SIZE,
        max_resubmissions: int = -1,
        limiter: ConcurrencyLimiter | None = None,
    ) -> None:
        if write_batch_size <= 0 or get_batch_size <= 0:
            raise ValidationError("batch sizes must be > 0")
        if max_resubmissions < -1:
            raise ValidationError("max_resubmissions must be >= -1 (-1 means unlimited)")

        self._pipeline = pipeline
        self._prepare = prepare
        self._write_batch_size = write_batch_size
        self._get_batch_size = get_batch_size
        self._max_resubmissions = max_resubmissions
        self._limiter = limiter

    async def batch_write(self, entries: Sequence[WriteEntry]) -> list[BatchResult]:
        batches = split_write_batches(entries, self._write_batch_size)
        if not batches:
            return []

        logger.debug("batch_write: %d entries in %d batch(es)", len(entries), len(batches))
        return list(
            await asyncio.gather(
                *(
                    self._run_chain(
                        batch,
                        lambda b: batch_write_item_request(b.request_items()),
                        operation="batch_write",
                        unprocessed_key="UnprocessedItems",
                        follow_up=lambda pending: batch_write_item_request(pending, wire=True),
                    )
                    for batch in batches
                )
            )
        )

    async def batch_get(
        self,
        table: str,
        keys: Sequence[Any],
        *,
        attributes_to_get: Sequence[str] | None = None,
    ) -> BatchGetResult:
        batches = split_get_batches(table, keys, self._get_batch_size, attributes_to_get=attributes_to_get)
        logger.debug("batch_get: %d keys in %d page(s) for %s", len(keys), len(batches), table)
        results = await asyncio.gather(
            *(
                self._run_chain(
                    batch,
                    lambda b: batch_get_item_request(b.request_items()),
                    operation="batch_get",
                    unprocessed_key="UnprocessedKeys",
                    follow_up=lambda pending: batch_get_item_request(pending, wire=True),
                )
                for batch in batches
            )
        )
        return BatchGetResult(table=table, batches=tuple(results))

    async def _run_chain(
        self,
        batch: Batch,
        first: Callable[[Batch], Request],
        *,
        operation: str,
        unprocessed_key: str,
        follow_up: Callable[[dict[str, Any]], Request],
    ) -> BatchResult:
        history: list[Response] = []
        try:
            request = first(batch)
            async with self._limited():
                while True:
                    response = await self._pipeline.execute(self._prepare(request))
                    final = replace(response, history=tuple(history), cycles=len(history) + 1)

                    if not response.ok:
                        logger.warning(
                            "%s: batch for %s failed with status %d after %d cycle(s)",
                            operation,
                            batch.table,
                            response.status,
                            final.cycles,
                        )
                        return BatchResult(
                            batch=batch,
                            response=final,
                            error=map_error_response(response),
                            history=tuple(history),
                        )

                    pending = unprocessed_entries(response.body, unprocessed_key)
                    if not pending:
                        return BatchResult(batch=batch, response=final, history=tuple(history))

                    if 0 <= self._max_resubmissions <= len(history):
                        return BatchResult(
                            batch=batch,
                            response=final,
                            error=BatchRetryExceededError(
                                operation=operation, unprocessed_count=count_unprocessed(pending)
                            ),
                            history=tuple(history),
                        )

                    logger.warning(
                        "%s: %d unprocessed entries for %s, resubmitting (cycle %d)",
                        operation,
                        count_unprocessed(pending),
                        batch.table,
                        len(history) + 2,
                    )
                    history.append(response)
                    request = follow_up(pending)
        except DynowireError as err:
            logger.warning("%s: batch for %s aborted: %s", operation, batch.table, err)
            return BatchResult(batch=batch, error=err, history=tuple(history))

    @asynccontextmanager
    async def _limited(self) -> AsyncIterator[None]:
        if self._limiter is None:
            yield
            return
        async with self._limiter.acquire():
            yield
