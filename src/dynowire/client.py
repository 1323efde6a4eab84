from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from types import TracebackType
from typing import Any

from botocore.credentials import Credentials

from .batch import BatchGetResult, BatchOrchestrator, BatchResult, WriteEntry
from .config import ClientConfig
from .marshal import from_wire
from .messages import Request, Response
from .operations import (
    KeyType,
    create_table_request,
    delete_item_request,
    delete_table_request,
    encode_request,
    get_item_request,
    put_item_request,
)
from .pipeline import RequestPipeline, Sleep
from .pool import ClientFactory, ConnectionPool
from .protection import ConcurrencyLimiter
from .service_errors import raise_for_status
from .signing import resolve_credentials, sign

logger = logging.getLogger(__name__)


class DynamoClient:
    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        credentials: Credentials | None = None,
        session: Any | None = None,
        pool: ConnectionPool | None = None,
        client_factory: ClientFactory | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config or ClientConfig()
        self._endpoint = self._config.resolved_endpoint()
        self._credentials = credentials if credentials is not None else resolve_credentials(session)
        self._owns_pool = pool is None
        self._pool = pool or ConnectionPool(self._config.pool, client_factory=client_factory)
        self._pipeline = RequestPipeline(
            self._pool,
            signer=self._sign,
            sleep=sleep,
            timeout=self._config.request_timeout,
        )
        limiter = (
            ConcurrencyLimiter(self._config.max_concurrent_batches)
            if self._config.max_concurrent_batches is not None
            else None
        )
        self._batches = BatchOrchestrator(
            self._pipeline,
            prepare=self.prepare,
            write_batch_size=self._config.write_batch_size,
            get_batch_size=self._config.get_batch_size,
            max_resubmissions=self._config.max_resubmissions,
            limiter=limiter,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    async def __aenter__(self) -> DynamoClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_pool:
            logger.debug("closing connection pools for %s", self._endpoint)
            await self._pool.close_all()

    def prepare(self, request: Request) -> Request:
        request = request.with_endpoint(self._endpoint, region=self._config.region)
        if request.retry.max_attempts is None:
            request = request.with_retry(replace(request.retry, max_attempts=self._config.max_retries))
        return encode_request(request)

    async def execute(self, request: Request) -> Response:
        return await self._pipeline.execute(self.prepare(request))

    async def get_item(
        self,
        table_name: str,
        hash_key: Any,
        range_key: Any | None = None,
        *,
        attributes_to_get: Sequence[str] | None = None,
        consistent_read: bool = False,
    ) -> dict[str, Any] | None:
        req = get_item_request(
            table_name,
            hash_key,
            range_key,
            attributes_to_get=attributes_to_get,
            consistent_read=consistent_read,
        )
        body = await self._call(req)
        return body.get("item")

    async def put_item(
        self,
        table_name: str,
        item: Mapping[str, Any],
        *,
        return_values: str | None = None,
    ) -> dict[str, Any]:
        return await self._call(put_item_request(table_name, item, return_values=return_values))

    async def delete_item(
        self,
        table_name: str,
        hash_key: Any,
        range_key: Any | None = None,
        *,
        return_values: str | None = None,
    ) -> dict[str, Any]:
        return await self._call(delete_item_request(table_name, hash_key, range_key, return_values=return_values))

    async def create_table(
        self,
        table_name: str,
        *,
        hash_key: tuple[str, KeyType],
        range_key: tuple[str, KeyType] | None = None,
        read_capacity: int = 5,
        write_capacity: int = 5,
    ) -> dict[str, Any]:
        req = create_table_request(
            table_name,
            hash_key=hash_key,
            range_key=range_key,
            read_capacity=read_capacity,
            write_capacity=write_capacity,
        )
        return await self._call(req)

    async def delete_table(self, table_name: str) -> dict[str, Any]:
        return await self._call(delete_table_request(table_name))

    async def batch_write(self, entries: Sequence[WriteEntry]) -> list[BatchResult]:
        return await self._batches.batch_write(entries)

    async def batch_get(
        self,
        table_name: str,
        keys: Sequence[Any],
        *,
        attributes_to_get: Sequence[str] | None = None,
    ) -> BatchGetResult:
        return await self._batches.batch_get(table_name, keys, attributes_to_get=attributes_to_get)

    async def _call(self, request: Request) -> dict[str, Any]:
        response = raise_for_status(await self.execute(request))
        body = from_wire(response.body) if response.body is not None else {}
        return body if isinstance(body, dict) else {}

    def _sign(self, request: Request) -> Request:
        return sign(request, self._credentials, region=self._config.region)
