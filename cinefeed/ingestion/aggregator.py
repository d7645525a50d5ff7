"""
Provider Aggregator Module
==========================

Fans queries out across every queryable provider of a registry.

Each provider call is isolated: a failure is logged, recorded against
that provider's health and turned into an empty result. Aggregate
operations never raise because of a provider.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cinefeed.core.enums import ProviderStatus
from cinefeed.ingestion.providers.base import ContentDetails, ProviderCallError, ScrapedItem
from cinefeed.ingestion.registry import ProviderRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def dedupe_by_url(items: list[ScrapedItem]) -> list[ScrapedItem]:
    """Drop items whose URL was already seen; the first occurrence wins."""
    seen: set[str] = set()
    unique: list[ScrapedItem] = []
    for item in items:
        if item.url in seen:
            continue
        seen.add(item.url)
        unique.append(item)
    return unique


class ProviderAggregator:
    """
    Cross-provider operations over a ProviderRegistry.

    Usage:
        registry = ProviderRegistry.from_config()
        aggregator = ProviderAggregator(registry)
        items = await aggregator.search_all_providers("leo")
    """

    def __init__(self, registry: ProviderRegistry) -> None:
        self.registry = registry

    async def _call(
        self,
        provider: Any,
        operation: str,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run one provider call and update its health from the outcome.

        Raises:
            ProviderCallError: Wrapping whatever the provider raised
        """
        try:
            result = await call()
        except Exception as e:
            error = ProviderCallError(provider.id, operation, e)
            logger.error(f"Provider {provider.id} {operation} failed: {e}")
            self.registry.record_provider_error(provider.id, error)
            raise error from e

        self.registry.reset_provider_errors(provider.id)
        return result

    async def _collect(
        self,
        provider: Any,
        operation: str,
        call: Callable[[], Awaitable[list[ScrapedItem] | None]],
    ) -> list[ScrapedItem]:
        """Run a listing call, tagging items with the provider id; failures give []."""
        try:
            items = await self._call(provider, operation, call)
        except ProviderCallError:
            return []
        return [dataclasses.replace(item, source=provider.id) for item in items or []]

    async def search_all_providers(self, query: str) -> list[ScrapedItem]:
        """
        Search every queryable provider concurrently.

        Args:
            query: Free-text query

        Returns:
            Items from all providers, tagged with their source and
            deduplicated by URL
        """
        providers = self.registry.get_queryable_providers()
        if not providers:
            logger.warning("No queryable providers for search")
            return []

        results = await asyncio.gather(
            *(
                self._collect(p, "search", lambda p=p: p.search(query))
                for p in providers
            )
        )

        combined = [item for items in results for item in items]
        unique = dedupe_by_url(combined)
        logger.info(
            f"Search '{query}': {len(unique)} unique items from {len(providers)} providers"
        )
        return unique

    async def get_latest_from_all_providers(self) -> dict[str, list[ScrapedItem]]:
        """
        Fetch the latest listings of every queryable provider concurrently.

        Returns:
            Mapping of provider id to that provider's items, in
            registration order
        """
        providers = self.registry.get_queryable_providers()
        results = await asyncio.gather(
            *(self._collect(p, "get_latest", p.get_latest) for p in providers)
        )
        return {p.id: items for p, items in zip(providers, results)}

    async def get_web_series_latest_from_all_providers(self) -> dict[str, list[ScrapedItem]]:
        """
        Fetch the latest web series from providers that list them separately.

        Providers without a get_web_series_latest operation are skipped.
        """
        providers = [
            p for p in self.registry.get_queryable_providers()
            if callable(getattr(p, "get_web_series_latest", None))
        ]
        results = await asyncio.gather(
            *(
                self._collect(p, "get_web_series_latest", p.get_web_series_latest)
                for p in providers
            )
        )
        return {p.id: items for p, items in zip(providers, results)}

    def _resolve(self, url: str, provider_id: str | None) -> Any | None:
        if provider_id is None:
            provider_id = self.registry.detect_provider_from_url(url)
            if provider_id is None:
                logger.debug(f"No provider matches URL {url}")
                return None

        provider = self.registry.get_provider(provider_id)
        if provider is None:
            logger.debug(f"Provider {provider_id} is not registered")
            return None
        if self.registry.get_status(provider_id) == ProviderStatus.DISABLED:
            logger.debug(f"Provider {provider_id} is disabled")
            return None
        return provider

    async def get_details_from_provider(
        self, url: str, provider_id: str | None = None
    ) -> ContentDetails | None:
        """
        Scrape a content page through the provider that owns it.

        Args:
            url: Content page URL
            provider_id: Provider to use; resolved from the URL when omitted

        Returns:
            ContentDetails, or None if no provider resolves or the lookup fails
        """
        provider = self._resolve(url, provider_id)
        if provider is None:
            return None

        try:
            details = await self._call(
                provider, "scrape_details", lambda: provider.scrape_details(url)
            )
        except ProviderCallError:
            return None

        if details is not None and details.source is None:
            details.source = provider.id
        return details

    async def get_quick_poster(self, url: str, provider_id: str | None = None) -> str | None:
        """
        Scrape only the poster of a content page.

        Returns:
            Poster URL, or None if the provider cannot supply one
        """
        provider = self._resolve(url, provider_id)
        if provider is None or not callable(getattr(provider, "get_quick_poster", None)):
            return None

        try:
            return await self._call(
                provider, "get_quick_poster", lambda: provider.get_quick_poster(url)
            )
        except ProviderCallError:
            return None

    async def run_health_check(self) -> dict[str, ProviderStatus]:
        """
        Probe every registered provider.

        Providers without is_healthy count as healthy. Healthy providers
        become Active, the rest Disabled with the reason recorded.
        Providers disabled in configuration are not probed and stay
        Disabled until an operator enables them.

        Returns:
            Mapping of provider id to its resulting status
        """
        statuses: dict[str, ProviderStatus] = {}
        providers = []
        for provider in self.registry.get_providers():
            if self.registry.is_enabled_in_config(provider.id):
                providers.append(provider)
            else:
                statuses[provider.id] = self.registry.get_status(provider.id)

        async def probe(provider: Any) -> tuple[bool, str | None]:
            is_healthy = getattr(provider, "is_healthy", None)
            if not callable(is_healthy):
                return True, None
            try:
                healthy = await is_healthy()
            except Exception as e:
                return False, str(e)
            return bool(healthy), None if healthy else "health check failed"

        outcomes = await asyncio.gather(*(probe(p) for p in providers))

        for provider, (healthy, reason) in zip(providers, outcomes):
            if healthy:
                self.registry.enable_provider(provider.id)
            else:
                self.registry.disable_provider(provider.id, reason or "health check failed")
            statuses[provider.id] = self.registry.get_status(provider.id)

        active = sum(1 for s in statuses.values() if s == ProviderStatus.ACTIVE)
        logger.info(f"Health check: {active}/{len(statuses)} providers active")
        return statuses
