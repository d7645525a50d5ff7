"""
Content Classifier Module
=========================

Detects the content kind (movie, series, web series) and the language
variant of a scraped item from its title, URL and link names.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from cinefeed.core.enums import ContentType, LanguageType
from cinefeed.core.schema import Resolution

# Title-only marker; in URLs the same text is a section path handled below
WEB_SERIES_TITLE_PATTERN = re.compile(r"web[\s-]?series", re.I)

# Title or URL text that marks episodic content
SERIES_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"season\s?\d", re.I),
    re.compile(r"\bs\d{1,2}\s?e\d{1,2}", re.I),
    re.compile(r"episode\s?\d", re.I),
    re.compile(r"\bepi?\s?\d", re.I),
    re.compile(r"\bday\s?\d", re.I),
    re.compile(r"part\s?\d+\s?of\s?\d+", re.I),
]

# URL path segments of dedicated web-series sections
WEBSERIES_PATH_SEGMENTS: tuple[str, ...] = ("/web-series", "/webseries", "/45/")

# Link names that look like episodes
EPISODE_NAME_PATTERN = re.compile(r"epi|episode|day|part|s\d+e\d+", re.I)

# Sources that only publish dubbed content
DUBBING_SOURCES: frozenset[str] = frozenset({"isaidub"})

# Checked in order; first keyword found in the title wins
LANGUAGE_KEYWORDS: list[tuple[str, LanguageType]] = [
    ("telugu", LanguageType.TELUGU),
    ("hindi", LanguageType.HINDI),
    ("malayalam", LanguageType.MALAYALAM),
    ("kannada", LanguageType.KANNADA),
    ("english", LanguageType.ENGLISH),
    ("tamil", LanguageType.TAMIL),
]

DEFAULT_LANGUAGE = LanguageType.TAMIL


def detect_content_type(
    title: str | None,
    url: str | None = None,
    resolutions: Iterable[Resolution] | None = None,
) -> ContentType:
    """
    Classify an item as movie, series or web series.

    Episodic text in the title or URL forces Series. A dedicated
    web-series URL section gives WebSeries. Episode-like link names force
    Series. Everything else is a Movie.

    Args:
        title: Item title
        url: Item URL
        resolutions: Link entries scraped with the item

    Returns:
        Detected ContentType
    """
    title_lower = (title or "").lower()
    url_lower = (url or "").lower()

    if WEB_SERIES_TITLE_PATTERN.search(title_lower):
        return ContentType.SERIES

    for pattern in SERIES_PATTERNS:
        if pattern.search(title_lower) or pattern.search(url_lower):
            return ContentType.SERIES

    if any(segment in url_lower for segment in WEBSERIES_PATH_SEGMENTS):
        return ContentType.WEBSERIES

    for resolution in resolutions or []:
        if EPISODE_NAME_PATTERN.search(resolution.name or ""):
            return ContentType.SERIES

    return ContentType.MOVIE


def detect_language(title: str | None, source: str | None = None) -> LanguageType:
    """
    Detect the language variant of an item.

    Args:
        title: Item title
        source: Provider id that scraped the item

    Returns:
        Detected LanguageType, Tamil when nothing else matches
    """
    title_lower = (title or "").lower()
    source_lower = (source or "").lower()

    if "dubbed" in title_lower or source_lower in DUBBING_SOURCES:
        return LanguageType.TAMIL_DUBBED

    for keyword, language in LANGUAGE_KEYWORDS:
        if keyword in title_lower:
            return language

    return DEFAULT_LANGUAGE


def catalog_query_type(content_type: ContentType) -> str:
    """Map a content kind to the catalog query type used for matching."""
    return "tv" if content_type == ContentType.SERIES else "movie"


def is_episodic(content_type: ContentType) -> bool:
    """Check if a content kind is a series of any sort."""
    return content_type in (ContentType.SERIES, ContentType.WEBSERIES)
