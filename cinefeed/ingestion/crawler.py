"""
Page Fetcher Module
===================

Provides HTTP fetching for providers with per-provider rate limiting
and retries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_REQUESTS_PER_SECOND = 1.0
DEFAULT_BURST_LIMIT = 5

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Cache-Control": "max-age=0",
}


@dataclass
class FetchResult:
    """Result of fetching a URL."""

    url: str
    content: bytes
    mime_type: str
    status_code: int
    fetched_at: datetime
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if fetch was successful."""
        return self.error is None and 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        """Decoded page body."""
        return self.content.decode("utf-8", errors="replace")


class TokenBucket:
    """
    Per-provider request budget.

    A provider may spend ``burst_limit`` requests back to back; after that
    each page waits for the bucket to refill at ``requests_per_second``.
    """

    def __init__(self, requests_per_second: float, burst_limit: int) -> None:
        if requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be positive, got {requests_per_second}")
        self.requests_per_second = requests_per_second
        self.burst_limit = max(1, burst_limit)
        self.tokens = float(self.burst_limit)
        self.last_update = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, rate_limit: Mapping[str, Any] | None) -> TokenBucket:
        """
        Build a bucket from a provider's ``rate_limit`` settings.

        Args:
            rate_limit: Mapping with requests_per_second and burst_limit,
                as written by RateLimitConfig.to_dict(); None uses defaults
        """
        rate_limit = rate_limit or {}
        return cls(
            requests_per_second=float(
                rate_limit.get("requests_per_second", DEFAULT_REQUESTS_PER_SECOND)
            ),
            burst_limit=int(rate_limit.get("burst_limit", DEFAULT_BURST_LIMIT)),
        )

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(
            float(self.burst_limit),
            self.tokens + (now - self.last_update) * self.requests_per_second,
        )
        self.last_update = now

    def delay(self) -> float:
        """Seconds until the next request may go out."""
        self._refill()
        if self.tokens >= 1.0:
            return 0.0
        return (1.0 - self.tokens) / self.requests_per_second

    async def acquire(self) -> None:
        """Wait for a request slot of this provider."""
        async with self._lock:
            wait = self.delay()
            if wait > 0:
                await asyncio.sleep(wait)
                self._refill()
            self.tokens = max(0.0, self.tokens - 1.0)


class PageFetcher:
    """
    HTTP page fetcher shared by the pages of one provider.

    Features:
    - Token bucket rate limiting
    - Retries with exponential backoff on timeouts and transport errors
    - Referer pinned to the provider's base URL
    """

    def __init__(
        self,
        base_url: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
        max_retries: int = 3,
        rate_limiter: TokenBucket | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.rate_limiter = rate_limiter or TokenBucket.from_config(None)
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = self.user_agent
        if self.base_url:
            headers["Referer"] = self.base_url
        return headers

    def absolute_url(self, href: str) -> str:
        """Resolve a link found on a provider page against its base URL."""
        if href.startswith("http"):
            return href
        return f"{self.base_url.rstrip('/')}/{href.lstrip('/')}"

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a URL with rate limiting and retries.

        Args:
            url: URL to fetch

        Returns:
            FetchResult with content or error
        """
        fetched_at = datetime.now(UTC)

        await self.rate_limiter.acquire()

        last_error: str | None = None
        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.get(
                        url,
                        headers=self._headers(),
                        follow_redirects=True,
                    )

                    mime_type = response.headers.get("content-type", "").split(";")[0].strip()
                    error = None
                    if response.status_code >= 400:
                        error = f"HTTP {response.status_code}"

                    return FetchResult(
                        url=url,
                        content=response.content,
                        mime_type=mime_type,
                        status_code=response.status_code,
                        fetched_at=fetched_at,
                        error=error,
                    )

            except httpx.TimeoutException:
                last_error = f"Timeout after {self.timeout}s"
                logger.warning(f"Timeout fetching {url} (attempt {attempt + 1}/{self.max_retries})")
            except httpx.HTTPError as e:
                last_error = str(e)
                logger.warning(f"HTTP error fetching {url}: {e} (attempt {attempt + 1}/{self.max_retries})")

            if attempt < self.max_retries - 1:
                await asyncio.sleep(2**attempt)

        return FetchResult(
            url=url,
            content=b"",
            mime_type="",
            status_code=0,
            fetched_at=fetched_at,
            error=last_error or "Unknown error",
        )

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a page and return its body.

        Raises:
            httpx.HTTPError: If the page could not be fetched
        """
        result = await self.fetch(url)
        if not result.success:
            raise httpx.HTTPError(f"Failed to fetch {url}: {result.error}")
        return result.text
