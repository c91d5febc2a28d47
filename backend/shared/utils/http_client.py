"""
Async HTTP client wrapper for event source requests.
Includes retry logic, timeout management, and metrics collection.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import httpx

from shared.config import get_settings
from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_REQUESTS

logger = get_logger(__name__)

DEFAULT_RETRY_AFTER_S = 2.0
MAX_RETRY_AFTER_S = 10.0
SERVER_ERROR_BACKOFF_S = 1.0


class ProviderHTTPClient:
    """
    Async HTTP client tailored for event-listing provider APIs.
    Handles timeouts, retries, and records metrics per request.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s or settings.provider_request_timeout_s
        self._max_retries = max(1, max_retries or settings.provider_max_retries)
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def started(self) -> bool:
        return self._client is not None

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET with retry, metrics, and structured logging."""
        return await self._request("GET", path, params=params)

    async def post(
        self,
        path: str,
        json: Any = None,
    ) -> httpx.Response:
        """POST a JSON body with retry, metrics, and structured logging."""
        return await self._request("POST", path, json=json)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Perform a request, retrying on 429, 5xx and timeouts.

        Raises:
            httpx.HTTPStatusError: On non-retryable HTTP errors or exhausted retries.
            httpx.TimeoutException: If the last attempt times out.
            RuntimeError: If the client was never started.
        """
        if self._client is None:
            raise RuntimeError("ProviderHTTPClient not started. Call start() first.")

        attempt = 0
        while True:
            attempt += 1
            started = time.perf_counter()
            status = "unknown"
            try:
                resp = await self._client.request(
                    method, path, params=params, json=json
                )
                status = str(resp.status_code)
            except httpx.TimeoutException:
                status = "timeout"
                logger.warning("provider_timeout", provider=self._provider, path=path, attempt=attempt)
                if attempt >= self._max_retries:
                    raise
                await asyncio.sleep(SERVER_ERROR_BACKOFF_S * attempt)
                continue
            finally:
                SOURCE_REQUESTS.labels(source=self._provider, status=status).inc()

            delay = self._retry_delay(resp, attempt)
            if delay is not None:
                logger.warning(
                    "provider_retrying",
                    provider=self._provider,
                    path=path,
                    status=resp.status_code,
                    attempt=attempt,
                    delay_s=delay,
                )
                await asyncio.sleep(delay)
                continue

            if resp.is_error:
                logger.error(
                    "provider_http_error",
                    provider=self._provider,
                    path=path,
                    status=resp.status_code,
                    attempt=attempt,
                )
                resp.raise_for_status()

            logger.debug(
                "provider_request_success",
                provider=self._provider,
                path=path,
                status=resp.status_code,
                latency_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return resp

    def _retry_delay(self, resp: httpx.Response, attempt: int) -> Optional[float]:
        """Seconds to wait before retrying, or None when the response is final."""
        if attempt >= self._max_retries:
            return None
        if resp.status_code == 429:
            try:
                retry_after = float(resp.headers.get("Retry-After", DEFAULT_RETRY_AFTER_S))
            except ValueError:
                retry_after = DEFAULT_RETRY_AFTER_S
            return min(max(retry_after, 0.0), MAX_RETRY_AFTER_S)
        if resp.status_code >= 500:
            return SERVER_ERROR_BACKOFF_S * attempt
        return None
