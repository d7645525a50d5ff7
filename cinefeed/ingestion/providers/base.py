"""
Provider Base Module
====================

Defines the contract every content provider implements.
Providers are responsible for:
1. Listing the latest items published by a source
2. Searching a source for a query
3. Scraping the details page of a single item
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from cinefeed.core.enums import ContentType, LanguageType
from cinefeed.core.schema import Resolution


class ProviderCallError(Exception):
    """A single provider's search, latest or details call failed."""

    def __init__(self, provider_id: str, operation: str, cause: BaseException) -> None:
        self.provider_id = provider_id
        self.operation = operation
        self.cause = cause
        super().__init__(f"{provider_id}.{operation} failed: {cause}")


@dataclass(frozen=True)
class ProviderDescriptor:
    """
    Identity and capability metadata for one provider.

    Immutable after registration.
    """

    id: str
    name: str
    supports: frozenset[ContentType]
    languages: frozenset[LanguageType]
    base_url: str = ""
    priority: int = 100
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderDescriptor:
        """Create from a provider entry of the configuration file."""
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            supports=frozenset(ContentType(s) for s in data.get("supports", [])),
            languages=frozenset(LanguageType(lang) for lang in data.get("languages", [])),
            base_url=data.get("base_url", ""),
            priority=int(data.get("priority", 100)),
            enabled=data.get("enabled", True),
        )


@dataclass(frozen=True)
class ScrapedItem:
    """
    Raw listing returned by a provider.

    The URL is unique per item within a provider.
    """

    title: str
    url: str
    year: str | int | None = None
    poster: str | None = None
    quality: str | None = None
    source: str | None = None
    synopsis: str | None = None
    resolutions: tuple[Resolution, ...] = ()


@dataclass
class ContentDetails:
    """Details scraped from a single content page."""

    title: str
    url: str
    content_type: ContentType = ContentType.MOVIE
    poster_url: str | None = None
    synopsis: str | None = None
    quality: str | None = None
    resolutions: list[Resolution] = field(default_factory=list)
    source: str | None = None


@runtime_checkable
class Provider(Protocol):
    """
    Capabilities the registry requires from a provider.

    Optional capabilities (``is_healthy``, ``get_quick_poster``,
    ``get_web_series_latest``) are looked up with ``getattr`` at call time.
    """

    @property
    def id(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def supports(self) -> frozenset[ContentType]: ...

    @property
    def languages(self) -> frozenset[LanguageType]: ...

    async def search(self, query: str) -> list[ScrapedItem]: ...

    async def get_latest(self) -> list[ScrapedItem]: ...

    async def scrape_details(self, url: str) -> ContentDetails | None: ...


class BaseProvider(ABC):
    """
    Abstract base class for content providers.

    Subclasses must implement:
    - search: Find items matching a query
    - get_latest: List the most recent items
    - scrape_details: Parse a single content page
    """

    # Provider class identification (override in subclasses)
    PROVIDER_NAME: str = "base"
    PROVIDER_VERSION: str = "1.0.0"

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        config: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            descriptor: Identity and capability metadata
            config: Optional custom configuration from providers.yaml
        """
        self.descriptor = descriptor
        self.config = config or {}

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def supports(self) -> frozenset[ContentType]:
        return self.descriptor.supports

    @property
    def languages(self) -> frozenset[LanguageType]:
        return self.descriptor.languages

    @property
    def base_url(self) -> str:
        return self.descriptor.base_url

    @abstractmethod
    async def search(self, query: str) -> list[ScrapedItem]:
        """
        Search this source.

        Args:
            query: Free-text query

        Returns:
            Matching items
        """

    @abstractmethod
    async def get_latest(self) -> list[ScrapedItem]:
        """
        List the latest items published by this source.

        Returns:
            Latest items, newest first where the source orders them
        """

    @abstractmethod
    async def scrape_details(self, url: str) -> ContentDetails | None:
        """
        Scrape a content page.

        Args:
            url: URL of the content page

        Returns:
            ContentDetails, or None if the page holds no usable content
        """

    def get_info(self) -> dict[str, str]:
        """Get provider class information."""
        return {
            "name": self.PROVIDER_NAME,
            "version": self.PROVIDER_VERSION,
            "class": self.__class__.__name__,
        }
