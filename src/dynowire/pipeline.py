from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from decimal import Decimal
from typing import Any

import httpx

from .errors import TransportError, ValidationError
from .messages import Request, Response
from .pool import ConnectionPool, Handle
from .service_errors import is_retryable

logger = logging.getLogger(__name__)

BACKOFF_BASE_MILLIS = 50

type Signer = Callable[[Request], Request]
type Sleep = Callable[[float], Awaitable[Any]]


def backoff_millis(attempts: int) -> int:
    if attempts < 0:
        raise ValueError("attempts must be >= 0")
    return (2**attempts) * BACKOFF_BASE_MILLIS


def backoff_delay(attempts: int) -> float:
    return backoff_millis(attempts) / 1000.0


def parse_body(raw: bytes) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text, parse_float=Decimal)
    except ValueError:
        return text


class RequestPipeline:
    def __init__(
        self,
        pool: ConnectionPool,
        *,
        signer: Signer | None = None,
        sleep: Sleep = asyncio.sleep,
        timeout: float | None = None,
    ) -> None:
        if timeout is not None and timeout <= 0:
            raise ValidationError("timeout must be > 0")
        self._pool = pool
        self._signer = signer
        self._sleep = sleep
        self._timeout = timeout

    async def execute(self, request: Request) -> Response:
        while True:
            if request.retry.pending_delay:
                await self._sleep(request.retry.pending_delay)

            response = await self.dispatch(request)
            retry = request.retry

            if is_retryable(response) and retry.can_retry():
                delay = backoff_delay(retry.attempts)
                logger.warning(
                    "%s: retryable response (status=%d, type=%s), retry %d in %.3fs",
                    request.target,
                    response.status,
                    response.error_type,
                    retry.attempts + 1,
                    delay,
                )
                request = request.with_retry(retry.next(delay))
                continue

            return replace(response, retries=retry.attempts, state=request.state)

    async def dispatch(self, request: Request) -> Response:
        if self._signer is not None:
            request = self._signer(request)

        if not isinstance(request.body, (str, bytes)):
            raise ValidationError("request body must be encoded before dispatch")

        endpoint = request.endpoint
        handle = await self._pool.acquire(endpoint)
        logger.debug("dispatching %s to %s (attempt %d)", request.target, endpoint, request.retry.attempts)
        try:
            status, headers, raw = await self._exchange(handle, request)
        except (httpx.HTTPError, TimeoutError) as err:
            await self._pool.invalidate(handle)
            logger.warning("%s: transport failure on %r: %s", request.target, handle, err)
            raise TransportError(endpoint=str(endpoint), message=str(err) or type(err).__name__) from err
        except (asyncio.CancelledError, Exception):
            await self._pool.invalidate(handle)
            raise

        await self._pool.release(handle)
        return Response(status=status, headers=headers, body=parse_body(raw), raw=raw)

    async def _exchange(self, handle: Handle, request: Request) -> tuple[int, dict[str, str], bytes]:
        async with asyncio.timeout(self._timeout):
            async with handle.client.stream(
                request.method,
                request.path,
                headers=dict(request.headers),
                content=request.body,
            ) as resp:
                # drain chunked payloads fully before the handle goes back
                raw = await resp.aread()
                return resp.status_code, dict(resp.headers), raw
