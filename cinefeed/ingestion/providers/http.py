"""
HTTP Provider Module
====================

Base class for providers that scrape a website. Handles page fetching,
rate limiting, the default health probe and poster extraction from page
metadata. Site-specific markup parsing stays in subclasses.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from cinefeed.ingestion.crawler import DEFAULT_USER_AGENT, PageFetcher, TokenBucket
from cinefeed.ingestion.providers.base import BaseProvider, ProviderDescriptor

logger = logging.getLogger(__name__)

POSTER_META_SELECTOR = 'meta[property="og:image"], meta[name="twitter:image"]'

# Image URLs that are site chrome rather than posters
PLACEHOLDER_MARKERS: tuple[str, ...] = ("folder.svg", "folder.png", "loader", "icon", "logo")


def is_placeholder_image(url: str | None, markers: tuple[str, ...] = PLACEHOLDER_MARKERS) -> bool:
    """Check if an image URL points at a placeholder instead of a poster."""
    if not url:
        return True
    url_lower = url.lower()
    return any(marker in url_lower for marker in markers)


def make_soup(html: str) -> BeautifulSoup:
    """Parse a provider page."""
    return BeautifulSoup(html, "html.parser")


def find_meta_poster(html: str, page_url: str) -> str | None:
    """
    First og:image/twitter:image of a page that is not a placeholder.

    Args:
        html: Page markup
        page_url: URL the page was fetched from, for relative image paths

    Returns:
        Absolute poster URL, or None
    """
    soup = make_soup(html)
    for tag in soup.select(POSTER_META_SELECTOR):
        poster = (tag.get("content") or "").strip()
        if is_placeholder_image(poster):
            continue
        return urljoin(page_url, poster)
    return None


class HttpProvider(BaseProvider):
    """
    Base class for website-backed providers.

    Recognized custom_config keys:
    - user_agent: User-Agent header for page requests
    - request_timeout: Per-request timeout in seconds
    - max_retries: Fetch attempts per page
    - rate_limit: {requests_per_second, burst_limit}
    """

    PROVIDER_NAME = "http"

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        config: dict[str, Any] | None = None,
        fetcher: PageFetcher | None = None,
    ) -> None:
        super().__init__(descriptor, config)
        if fetcher is None:
            fetcher = PageFetcher(
                base_url=descriptor.base_url,
                user_agent=self.config.get("user_agent", DEFAULT_USER_AGENT),
                timeout=float(self.config.get("request_timeout", 10.0)),
                max_retries=int(self.config.get("max_retries", 3)),
                rate_limiter=TokenBucket.from_config(self.config.get("rate_limit")),
            )
        self.fetcher = fetcher

    async def fetch_page(self, url: str) -> str:
        """Fetch a page of this provider's site and return its HTML."""
        return await self.fetcher.fetch_text(self.fetcher.absolute_url(url))

    async def is_healthy(self) -> bool:
        """Probe the provider's home page."""
        if not self.base_url:
            return True
        result = await self.fetcher.fetch(self.base_url)
        return result.success

    async def get_quick_poster(self, url: str) -> str | None:
        """
        Find a poster on a content page from its og:image/twitter:image tags.

        Returns:
            Absolute poster URL, or None if the page only has placeholders
        """
        page_url = self.fetcher.absolute_url(url)
        poster = find_meta_poster(await self.fetch_page(page_url), page_url)
        if poster is None:
            logger.debug(f"No poster metadata on {page_url}")
        return poster
