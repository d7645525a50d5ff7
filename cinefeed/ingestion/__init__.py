"""
Cinefeed Ingestion Framework
============================

Aggregates content listings from pluggable providers and reconciles
them with an external metadata catalog.

Pipeline Stages:
1. Fan-out - The aggregator queries every healthy provider concurrently
2. Normalize - Clean titles, extract years
3. Classify - Detect content kind and language
4. Match - Search the catalog through the locale/year fallback chain
5. Score - Rate the match with a 0-100 confidence
6. Enrich - Add extended details or backfill posters on demand
"""

from cinefeed.ingestion.providers import (
    BaseProvider,
    ContentDetails,
    Provider,
    ProviderCallError,
    ProviderDescriptor,
    ScrapedItem,
    create_provider,
)
from cinefeed.ingestion.crawler import (
    FetchResult,
    PageFetcher,
    TokenBucket,
)
from cinefeed.ingestion.normalizer import (
    Normalizer,
    NormalizedItem,
    normalize_title,
)
from cinefeed.ingestion.classifier import (
    detect_content_type,
    detect_language,
)
from cinefeed.ingestion.registry import (
    GlobalConfig,
    PipelineConfig,
    ProviderConfig,
    ProviderHealth,
    ProviderRegistry,
    RateLimitConfig,
    RegistrationError,
)
from cinefeed.ingestion.aggregator import ProviderAggregator
from cinefeed.ingestion.catalog import (
    CatalogClient,
    CatalogLookupError,
    ContentStore,
    ExtendedDetails,
    MatchCandidate,
)
from cinefeed.ingestion.pipeline import (
    BatchResult,
    ContentPipeline,
    EnrichmentResult,
    MatchPolicy,
)

__all__ = [
    # Providers
    "BaseProvider",
    "ContentDetails",
    "Provider",
    "ProviderCallError",
    "ProviderDescriptor",
    "ScrapedItem",
    "create_provider",
    # Crawler
    "FetchResult",
    "PageFetcher",
    "TokenBucket",
    # Normalizer
    "Normalizer",
    "NormalizedItem",
    "normalize_title",
    # Classifier
    "detect_content_type",
    "detect_language",
    # Registry
    "GlobalConfig",
    "PipelineConfig",
    "ProviderConfig",
    "ProviderHealth",
    "ProviderRegistry",
    "RateLimitConfig",
    "RegistrationError",
    # Aggregator
    "ProviderAggregator",
    # Catalog
    "CatalogClient",
    "CatalogLookupError",
    "ContentStore",
    "ExtendedDetails",
    "MatchCandidate",
    # Pipeline
    "BatchResult",
    "ContentPipeline",
    "EnrichmentResult",
    "MatchPolicy",
]
