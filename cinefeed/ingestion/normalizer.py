"""
Data Normalizer Module
======================

Cleans scraped items so they can be classified, searched against the
metadata catalog and compared with catalog titles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from cinefeed.core.titles import (
    MAX_YEAR,
    MIN_YEAR,
    clean_display_title,
    extract_year_from_title,
    normalize_for_comparison,
    normalize_title,
)
from cinefeed.ingestion.providers.base import Resolution, ScrapedItem

__all__ = [
    "Normalizer",
    "NormalizedItem",
    "clean_display_title",
    "extract_year_from_title",
    "normalize_for_comparison",
    "normalize_title",
]


@dataclass
class NormalizedItem:
    """
    A scraped item with cleaned fields, ready for classification and matching.
    """

    title: str
    url: str
    source: str
    normalized_title: str
    year: int | None = None
    poster_url: str | None = None
    quality: str = "DVD/HD"
    synopsis: str | None = None
    resolutions: list[Resolution] = field(default_factory=list)


class Normalizer:
    """
    Normalizes scraped items into a consistent shape.

    Handles:
    - Whitespace cleanup of titles and labels
    - Year parsing from loose formats ("2023", 2023, "Unknown")
    - Year extraction from the title when the provider gave none
    - Catalog search title normalization
    """

    UNKNOWN_YEAR_VALUES = ("", "UNKNOWN", "N/A", "NA")

    def normalize_item(self, item: ScrapedItem, provider_id: str) -> NormalizedItem:
        """
        Normalize a scraped item.

        Args:
            item: Raw item returned by a provider
            provider_id: Provider that produced the item

        Returns:
            NormalizedItem with cleaned values
        """
        title = self._clean_string(item.title) or ""
        year = self.parse_year(item.year)
        if year is None and title:
            _, year = extract_year_from_title(title)

        return NormalizedItem(
            title=title,
            url=(item.url or "").strip(),
            source=provider_id,
            normalized_title=normalize_title(title),
            year=year,
            poster_url=self._clean_string(item.poster),
            quality=self._clean_string(item.quality) or "DVD/HD",
            synopsis=self._clean_string(item.synopsis),
            resolutions=list(item.resolutions),
        )

    def _clean_string(self, value: Any) -> str | None:
        """Clean and normalize a string value."""
        if value is None:
            return None
        s = re.sub(r"\s+", " ", str(value)).strip()
        return s if s else None

    def parse_year(self, value: str | int | None) -> int | None:
        """
        Parse a release year from various formats.

        Args:
            value: Year value (e.g., "2023", 2023, "Unknown")

        Returns:
            Year as int, or None if unknown or out of range
        """
        if value is None:
            return None

        if isinstance(value, str) and value.strip().upper() in self.UNKNOWN_YEAR_VALUES:
            return None

        try:
            year = int(value)
            if MIN_YEAR <= year <= MAX_YEAR:
                return year
        except (TypeError, ValueError):
            pass

        if isinstance(value, str):
            match = re.search(r"\b(19|20)\d{2}\b", value)
            if match and MIN_YEAR <= int(match.group()) <= MAX_YEAR:
                return int(match.group())

        return None
