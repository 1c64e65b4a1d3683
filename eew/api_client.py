"""Async HTTP client with retry for one-shot resource fetches.

Provides ``AsyncAPIClient``, used to fetch the travel-time table at
startup without blocking the event loop that runs the engine timers.
Retries use exponential backoff on 429/5xx responses and on timeouts
or connection errors.

Usage::

    from eew.api_client import AsyncAPIClient

    async with AsyncAPIClient(user_agent="EEW/1.0") as client:
        text = await client.get_text("https://example.com/tjma2001.txt")
"""

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

# Default retry status codes: 429 (rate limit) + server errors
DEFAULT_RETRY_ON = frozenset({429, 500, 502, 503, 504})


class AsyncAPIClient:
    """Async HTTP client with configurable retry.

    Args:
        base_url: Optional base URL prepended to relative paths.
        timeout: Request timeout in seconds (default 30).
        max_retries: Maximum retry attempts on retryable errors (default 3).
        user_agent: User-Agent header string.
        retry_on_status: HTTP status codes that trigger a retry.
            Defaults to {429, 500, 502, 503, 504}.
        backoff_base: Base delay in seconds for exponential backoff
            (default 1.0). Actual delay is ``backoff_base * 2^attempt``.
        backoff_max: Maximum backoff delay in seconds (default 30.0).
        transport: Optional ``httpx.AsyncBaseTransport`` for testing
            (e.g., ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout: float = 30.0,
        max_retries: int = 3,
        user_agent: str = "EEWEngine/0.1",
        retry_on_status: set[int] | frozenset[int] | None = None,
        backoff_base: float = 1.0,
        backoff_max: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_on_status = (
            set(retry_on_status) if retry_on_status is not None else set(DEFAULT_RETRY_ON)
        )
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._request_count = 0
        self._retry_count = 0

        client_kwargs = {
            "timeout": timeout,
            "headers": {"User-Agent": user_agent},
            "follow_redirects": True,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._http = httpx.AsyncClient(**client_kwargs)

    async def get_text(self, path: str, params: dict | None = None) -> str:
        """GET ``path`` and return the body as text.

        Raises:
            httpx.HTTPStatusError: On non-retryable HTTP errors, or when
                retries are exhausted.
            httpx.TimeoutException: If all retries time out.
            httpx.ConnectError: If all retries fail to connect.
        """
        response = await self._request_with_retry(self._build_url(path), params)
        return response.text

    @property
    def stats(self) -> dict:
        return {"requests": self._request_count, "retries": self._retry_count}

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    def _build_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if self.base_url:
            return f"{self.base_url}/{path.lstrip('/')}"
        return path

    def _backoff(self, attempt: int) -> float:
        return min(self.backoff_base * (2 ** attempt), self.backoff_max)

    async def _request_with_retry(self, url: str, params: dict | None) -> httpx.Response:
        for attempt in range(self.max_retries + 1):
            try:
                response = await self._http.get(url, params=params)
                self._request_count += 1
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                if attempt >= self.max_retries:
                    raise
                delay = self._backoff(attempt)
                logger.warning(f"Request error for {url}, retrying in {delay}s: {exc}")
                self._retry_count += 1
                await asyncio.sleep(delay)
                continue

            if response.status_code in self.retry_on_status and attempt < self.max_retries:
                delay = self._backoff(attempt)
                logger.warning(
                    f"HTTP {response.status_code} for {url}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                self._retry_count += 1
                await asyncio.sleep(delay)
                continue

            response.raise_for_status()
            return response

        raise RuntimeError("Unreachable: retry loop completed without result")
