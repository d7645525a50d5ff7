"""
Provider Registry Module
========================

Central registry of provider classes.
Provides factory functions for creating providers by class name, as
referenced by the ``adapter`` key of a provider entry in providers.yaml.
"""

from __future__ import annotations

from typing import Any, Type

from cinefeed.ingestion.providers.base import (
    BaseProvider,
    ContentDetails,
    Provider,
    ProviderCallError,
    ProviderDescriptor,
    ScrapedItem,
)
from cinefeed.ingestion.providers.http import HttpProvider
from cinefeed.ingestion.providers.static import StaticProvider


# Registry mapping provider class names to their classes
PROVIDER_CLASSES: dict[str, Type[BaseProvider]] = {
    "static": StaticProvider,
}


def create_provider(
    adapter: str,
    descriptor: ProviderDescriptor,
    config: dict[str, Any] | None = None,
) -> BaseProvider | None:
    """
    Create a provider instance by class name.

    Args:
        adapter: Registered class name (e.g., "static")
        descriptor: Identity and capability metadata
        config: Optional custom configuration

    Returns:
        Provider instance, or None if the class name is unknown
    """
    provider_class = PROVIDER_CLASSES.get(adapter)
    if provider_class is None:
        return None
    return provider_class(descriptor, config)


def register_provider_class(name: str, provider_class: Type[BaseProvider]) -> None:
    """
    Register a new provider class.

    Args:
        name: Name to register the class under
        provider_class: Provider class (must inherit from BaseProvider)
    """
    if not issubclass(provider_class, BaseProvider):
        raise TypeError(f"{provider_class} must inherit from BaseProvider")
    PROVIDER_CLASSES[name] = provider_class


def list_provider_classes() -> list[str]:
    """List all registered provider class names."""
    return list(PROVIDER_CLASSES.keys())


def get_provider_class_info(name: str) -> dict[str, str] | None:
    """
    Get information about a provider class.

    Returns:
        Dict with class info, or None if not found
    """
    provider_class = PROVIDER_CLASSES.get(name)
    if provider_class is None:
        return None

    return {
        "name": provider_class.PROVIDER_NAME,
        "version": provider_class.PROVIDER_VERSION,
        "class": provider_class.__name__,
    }


__all__ = [
    # Registry functions
    "create_provider",
    "register_provider_class",
    "list_provider_classes",
    "get_provider_class_info",
    "PROVIDER_CLASSES",
    # Contract
    "BaseProvider",
    "ContentDetails",
    "Provider",
    "ProviderCallError",
    "ProviderDescriptor",
    "ScrapedItem",
    # Concrete providers
    "HttpProvider",
    "StaticProvider",
]
