from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

from .errors import PoolExhaustedError, ValidationError

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Endpoint:
    host: str
    scheme: str = "https"
    port: int = 443

    @staticmethod
    def parse(value: str) -> Endpoint:
        value = (value or "").strip()
        if not value:
            raise ValidationError("endpoint is required")
        if "://" not in value:
            return Endpoint(host=value)

        parts = urlsplit(value)
        scheme = parts.scheme.lower()
        if scheme not in _DEFAULT_PORTS:
            raise ValidationError(f"unsupported endpoint scheme: {parts.scheme}")
        if not parts.hostname:
            raise ValidationError(f"endpoint has no host: {value}")
        return Endpoint(host=parts.hostname, scheme=scheme, port=parts.port or _DEFAULT_PORTS[scheme])

    @property
    def base_url(self) -> str:
        if _DEFAULT_PORTS.get(self.scheme) == self.port:
            return f"{self.scheme}://{self.host}"
        return f"{self.scheme}://{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.base_url


@dataclass(frozen=True)
class PoolConfig:
    max_active: int = 100
    max_idle: int = 100
    eviction_interval: float = 5.0
    min_evictable_idle: float = 20.0
    tests_per_eviction_run: int = 100
    connect_timeout: float = 50.0
    max_wait: float | None = None

    def __post_init__(self) -> None:
        if self.max_active <= 0:
            raise ValidationError("max_active must be > 0")
        if self.max_idle < 0:
            raise ValidationError("max_idle must be >= 0")
        if self.tests_per_eviction_run < 0:
            raise ValidationError("tests_per_eviction_run must be >= 0")
        if self.connect_timeout <= 0:
            raise ValidationError("connect_timeout must be > 0")
        if self.max_wait is not None and self.max_wait < 0:
            raise ValidationError("max_wait must be >= 0")


@dataclass(frozen=True)
class PoolStats:
    active: int
    idle: int


type ClientFactory = Callable[[Endpoint, PoolConfig], httpx.AsyncClient]


def default_client_factory(endpoint: Endpoint, config: PoolConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=endpoint.base_url,
        timeout=httpx.Timeout(None, connect=config.connect_timeout),
        limits=httpx.Limits(max_connections=1, max_keepalive_connections=1),
    )


_handle_ids = itertools.count(1)


class Handle:
    def __init__(self, endpoint: Endpoint, client: httpx.AsyncClient, *, now: float) -> None:
        self.id = next(_handle_ids)
        self.endpoint = endpoint
        self.client = client
        self.created_at = now
        self.last_used = now
        self.closed = False

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self.client.aclose()

    def __repr__(self) -> str:
        return f"Handle(id={self.id}, endpoint={self.endpoint}, closed={self.closed})"


class _EndpointPool:
    def __init__(
        self,
        endpoint: Endpoint,
        config: PoolConfig,
        factory: ClientFactory,
        now: Callable[[], float],
    ) -> None:
        self._endpoint = endpoint
        self._config = config
        self._factory = factory
        self._now = now
        self._idle: deque[Handle] = deque()
        self._loaned: set[int] = set()
        self._cond = asyncio.Condition()
        self._closed = False
        self._evictor: asyncio.Task[None] | None = None

    @property
    def stats(self) -> PoolStats:
        return PoolStats(active=len(self._loaned), idle=len(self._idle))

    async def acquire(self) -> Handle:
        self._start_evictor()
        async with self._cond:
            if len(self._loaned) >= self._config.max_active:
                try:
                    async with asyncio.timeout(self._config.max_wait):
                        await self._cond.wait_for(lambda: len(self._loaned) < self._config.max_active)
                except TimeoutError as err:
                    raise PoolExhaustedError(
                        endpoint=str(self._endpoint), max_active=self._config.max_active
                    ) from err

            if self._idle:
                handle = self._idle.pop()
            else:
                handle = Handle(self._endpoint, self._factory(self._endpoint, self._config), now=self._now())
                logger.debug("created %r", handle)
            self._loaned.add(handle.id)
            return handle

    async def release(self, handle: Handle) -> None:
        discard = False
        async with self._cond:
            if handle.id not in self._loaned:
                # idle already, or loaned by a pool that close_all destroyed
                discard = handle not in self._idle
            else:
                self._loaned.discard(handle.id)
                if self._closed or handle.closed or len(self._idle) >= self._config.max_idle:
                    discard = True
                else:
                    handle.last_used = self._now()
                    self._idle.append(handle)
                self._cond.notify()
        if discard:
            await handle.close()

    async def invalidate(self, handle: Handle) -> None:
        async with self._cond:
            self._loaned.discard(handle.id)
            self._cond.notify()
        logger.debug("invalidated %r", handle)
        await handle.close()

    async def evict(self) -> int:
        expired: list[Handle] = []
        async with self._cond:
            now = self._now()
            budget = min(self._config.tests_per_eviction_run, len(self._idle))
            # oldest idle handles sit at the left end
            for handle in list(itertools.islice(self._idle, budget)):
                if now - handle.last_used >= self._config.min_evictable_idle:
                    self._idle.remove(handle)
                    expired.append(handle)
        for handle in expired:
            await handle.close()
        if expired:
            logger.debug("evicted %d idle handle(s) for %s", len(expired), self._endpoint)
        return len(expired)

    async def close(self) -> None:
        async with self._cond:
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            self._cond.notify_all()
        if self._evictor is not None:
            self._evictor.cancel()
            self._evictor = None
        for handle in idle:
            await handle.close()

    def _start_evictor(self) -> None:
        if self._evictor is not None or self._closed or self._config.eviction_interval <= 0:
            return
        self._evictor = asyncio.get_running_loop().create_task(self._run_evictor())

    async def _run_evictor(self) -> None:
        while True:
            await asyncio.sleep(self._config.eviction_interval)
            await self.evict()


class ConnectionPool:
    def __init__(
        self,
        config: PoolConfig | None = None,
        *,
        client_factory: ClientFactory | None = None,
        now: Callable[[], float] | None = None,
    ) -> None:
        self._config = config or PoolConfig()
        self._factory = client_factory or default_client_factory
        self._now = now or time.monotonic
        self._pools: dict[Endpoint, _EndpointPool] = {}

    @property
    def config(self) -> PoolConfig:
        return self._config

    def endpoints(self) -> list[Endpoint]:
        return list(self._pools)

    async def acquire(self, endpoint: Endpoint) -> Handle:
        return await self._pool_for(endpoint).acquire()

    async def release(self, handle: Handle) -> None:
        pool = self._pools.get(handle.endpoint)
        if pool is None:
            await handle.close()
            return
        await pool.release(handle)

    async def invalidate(self, handle: Handle) -> None:
        pool = self._pools.get(handle.endpoint)
        if pool is None:
            await handle.close()
            return
        await pool.invalidate(handle)

    async def evict(self, endpoint: Endpoint) -> int:
        pool = self._pools.get(endpoint)
        if pool is None:
            return 0
        return await pool.evict()

    def stats(self, endpoint: Endpoint) -> PoolStats:
        pool = self._pools.get(endpoint)
        if pool is None:
            return PoolStats(active=0, idle=0)
        return pool.stats

    async def close_all(self) -> None:
        pools = list(self._pools.values())
        self._pools.clear()
        for pool in pools:
            await pool.close()

    def _pool_for(self, endpoint: Endpoint) -> _EndpointPool:
        pool = self._pools.get(endpoint)
        if pool is None:
            pool = _EndpointPool(endpoint, self._config, self._factory, self._now)
            self._pools[endpoint] = pool
            logger.debug("created connection pool for %s", endpoint)
        return pool
