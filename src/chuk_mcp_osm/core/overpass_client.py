"""
Overpass API client.

Combines retry with endpoint rotation, a per-attempt timeout, a global
concurrency gate, and de-duplication of identical in-flight queries.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_OVERPASS_ENDPOINTS,
    DEFAULT_RETRY_BASE_MS,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_USER_AGENT,
    PROVIDER_FAILURE_STATUS,
    TIMEOUT_STATUS,
    ErrorMessages,
)
from .retry import UpstreamError, with_retry

logger = logging.getLogger(__name__)


@dataclass
class FetchMeta:
    """Observability data for one upstream fetch."""

    endpoint_used: str
    attempts: int
    duration_ms: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint_used": self.endpoint_used,
            "attempts": self.attempts,
            "duration_ms": round(self.duration_ms, 1),
        }


@dataclass
class FetchResult:
    """Decoded Overpass response plus fetch metadata."""

    data: dict[str, Any]
    meta: FetchMeta = field(default_factory=lambda: FetchMeta("", 0, 0.0))


class OverpassClient:
    """Resilient Overpass client with endpoint rotation and request de-duplication."""

    def __init__(
        self,
        endpoints: list[str] | None = None,
        timeout_ms: float = DEFAULT_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_ms: float = DEFAULT_RETRY_BASE_MS,
        concurrency: int = DEFAULT_CONCURRENCY,
        user_agent: str = DEFAULT_USER_AGENT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoints = list(endpoints or DEFAULT_OVERPASS_ENDPOINTS)
        self.timeout_ms = timeout_ms
        self.max_retries = max_retries
        self.retry_base_ms = retry_base_ms
        self.concurrency = max(1, int(concurrency))
        self.user_agent = user_agent

        self._owns_client = http_client is None
        # timeout_ms is enforced per attempt in _post; httpx must not cut in first
        self._client = http_client or httpx.AsyncClient(
            headers={"User-Agent": user_agent}, timeout=None
        )
        self._cursor = 0
        # Semaphore waiters are woken in FIFO order
        self._gate = asyncio.Semaphore(self.concurrency)
        self._inflight: dict[str, asyncio.Task[FetchResult]] = {}

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def fetch(self, query: str) -> FetchResult:
        """
        POST a query to Overpass, sharing the call with identical in-flight queries.

        Raises:
            UpstreamError: when retries are exhausted or the failure is fatal
        """
        task = self._inflight.get(query)
        if task is None:
            task = asyncio.create_task(self._run(query))
            self._inflight[query] = task
            task.add_done_callback(lambda t, q=query: self._forget(q, t))
        else:
            logger.debug("Joining in-flight Overpass request")
        # shield: one caller being cancelled must not cancel the shared call
        return await asyncio.shield(task)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _forget(self, query: str, task: "asyncio.Task[FetchResult]") -> None:
        """Drop a settled request from the in-flight table, success or failure."""
        if self._inflight.get(query) is task:
            del self._inflight[query]
        if not task.cancelled():
            # mark the outcome as retrieved even if every caller went away
            task.exception()

    def _next_endpoint(self) -> str:
        endpoint = self.endpoints[self._cursor % len(self.endpoints)]
        self._cursor += 1
        return endpoint

    async def _run(self, query: str) -> FetchResult:
        endpoint_used = ""

        async def attempt() -> dict[str, Any]:
            nonlocal endpoint_used
            endpoint_used = self._next_endpoint()
            return await self._post(endpoint_used, query)

        async with self._gate:
            outcome = await with_retry(attempt, self.max_retries, self.retry_base_ms)

        meta = FetchMeta(
            endpoint_used=endpoint_used,
            attempts=outcome.attempts,
            duration_ms=outcome.duration_ms,
        )
        logger.info(
            f"Overpass fetch ok via {endpoint_used} "
            f"({meta.attempts} attempt(s), {meta.duration_ms:.0f} ms)"
        )
        return FetchResult(data=outcome.result, meta=meta)

    async def _post(self, endpoint: str, query: str) -> dict[str, Any]:
        """One upstream attempt; every failure surfaces as UpstreamError."""
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    endpoint,
                    data={"data": query},
                    headers={"User-Agent": self.user_agent},
                ),
                timeout=self.timeout_ms / 1000.0,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamError(
                ErrorMessages.UPSTREAM_TIMEOUT.format(self.timeout_ms), status=TIMEOUT_STATUS
            ) from e
        except httpx.TransportError as e:
            raise UpstreamError(ErrorMessages.UPSTREAM_NETWORK.format(e)) from e

        if response.status_code >= 400:
            raise UpstreamError(
                ErrorMessages.UPSTREAM_HTTP.format(response.status_code),
                status=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                ErrorMessages.UPSTREAM_BAD_BODY, status=PROVIDER_FAILURE_STATUS
            ) from e
        if not isinstance(data, dict):
            raise UpstreamError(ErrorMessages.UPSTREAM_BAD_BODY, status=PROVIDER_FAILURE_STATUS)
        return data
