"""
Static Provider Module
======================

Provider backed by item lists from the configuration file.
Serves fixture data without network access, for local runs and
pipeline validation.
"""

from __future__ import annotations

import re
from typing import Any

from cinefeed.core.enums import ContentType
from cinefeed.core.schema import Resolution
from cinefeed.ingestion.providers.base import (
    BaseProvider,
    ContentDetails,
    ProviderDescriptor,
    ScrapedItem,
)


def _item_from_dict(data: dict[str, Any], provider_id: str) -> ScrapedItem:
    return ScrapedItem(
        title=data["title"],
        url=data["url"],
        year=data.get("year"),
        poster=data.get("poster"),
        quality=data.get("quality"),
        source=provider_id,
        synopsis=data.get("synopsis"),
        resolutions=tuple(Resolution(**r) for r in data.get("resolutions", [])),
    )


def fuzzy_match(title: str, query: str) -> bool:
    """Check that every word of the query appears in the title."""
    title_clean = re.sub(r"[^a-z0-9\s]", "", (title or "").lower())
    query_clean = re.sub(r"[^a-z0-9\s]", "", (query or "").lower())

    if not query_clean:
        return True

    words = [w for w in query_clean.split() if len(w) > 1]
    return all(word in title_clean for word in words)


class StaticProvider(BaseProvider):
    """
    Provider serving items listed in custom_config.

    Recognized custom_config keys:
    - items: Catalogue of items, searched by query
    - latest: Items returned by get_latest (defaults to items)
    - web_series: Items returned by get_web_series_latest
    - healthy: Result of the health check (default True)
    """

    PROVIDER_NAME = "static"

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        config: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(descriptor, config)
        self._items = [_item_from_dict(d, descriptor.id) for d in self.config.get("items", [])]
        latest = self.config.get("latest")
        self._latest = (
            [_item_from_dict(d, descriptor.id) for d in latest] if latest is not None else list(self._items)
        )
        self._web_series = [
            _item_from_dict(d, descriptor.id) for d in self.config.get("web_series", [])
        ]

    async def search(self, query: str) -> list[ScrapedItem]:
        return [item for item in self._items if fuzzy_match(item.title, query)]

    async def get_latest(self) -> list[ScrapedItem]:
        return list(self._latest)

    async def get_web_series_latest(self) -> list[ScrapedItem]:
        return list(self._web_series)

    async def scrape_details(self, url: str) -> ContentDetails | None:
        for item in [*self._items, *self._latest, *self._web_series]:
            if item.url == url:
                content_type = (
                    ContentType.WEBSERIES if item in self._web_series else ContentType.MOVIE
                )
                return ContentDetails(
                    title=item.title,
                    url=item.url,
                    content_type=content_type,
                    poster_url=item.poster,
                    synopsis=item.synopsis,
                    quality=item.quality,
                    resolutions=list(item.resolutions),
                )
        return None

    async def is_healthy(self) -> bool:
        return bool(self.config.get("healthy", True))

    async def get_quick_poster(self, url: str) -> str | None:
        for item in [*self._items, *self._latest]:
            if item.url == url:
                return item.poster
        return None
