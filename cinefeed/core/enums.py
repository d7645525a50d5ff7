"""Enums for content classification, catalog matching and provider health."""

from enum import Enum


class ContentType(str, Enum):
    """Kind of content a listing points at."""

    MOVIE = "movie"
    SERIES = "series"
    WEBSERIES = "webseries"
    UNKNOWN = "unknown"


class LanguageType(str, Enum):
    """Language variant of a listing."""

    TAMIL = "tamil"
    TAMIL_DUBBED = "tamil_dubbed"
    TELUGU = "telugu"
    HINDI = "hindi"
    MALAYALAM = "malayalam"
    KANNADA = "kannada"
    ENGLISH = "english"
    UNKNOWN = "unknown"


class CatalogStatus(str, Enum):
    """State of the catalog match for a unified record."""

    PENDING = "pending"
    MATCHED = "matched"
    NOT_FOUND = "not_found"  # Reserved; no current code path produces it
    FAILED = "failed"


class ProviderStatus(str, Enum):
    """Runtime health of a registered provider."""

    ACTIVE = "active"
    DEGRADED = "degraded"
    DISABLED = "disabled"


class MatchType(str, Enum):
    """Context a catalog match was made in, used to pick a reliability threshold."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    YEAR = "year"


class MatchQuality(str, Enum):
    """Display band for a confidence score."""

    EXCELLENT = "excellent"  # 90-100
    GOOD = "good"  # 75-89
    FAIR = "fair"  # 60-74
    POOR = "poor"  # 40-59
    UNRELIABLE = "unreliable"  # 0-39
