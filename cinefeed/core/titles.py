"""Pure title transforms used for catalog search and fuzzy comparison."""

from __future__ import annotations

import re
import unicodedata

# Noise removed from scraped titles before catalog search
REMOVAL_PATTERNS: list[re.Pattern[str]] = [
    # Download/streaming indicators
    re.compile(r"\btamil\s*dubbed\b", re.I),
    re.compile(r"\btamil\s*movie\s*download\b", re.I),
    re.compile(r"\bweb\s*series\b", re.I),
    re.compile(r"\b(?:free\s*)?download\b", re.I),
    re.compile(r"\b(?:full\s*)?hd\b(?:\s*movie\b)?", re.I),
    re.compile(r"\bhdtv(?:rip)?\b", re.I),
    re.compile(r"\bweb-?rip\b", re.I),
    re.compile(r"\bblu-?ray\b", re.I),
    re.compile(r"\bdvd-?rip\b", re.I),
    re.compile(r"\bhd-?rip\b", re.I),
    re.compile(r"\bcam-?rip\b", re.I),

    # Quality indicators
    re.compile(r"\b\d{3,4}p\b", re.I),  # 720p, 1080p
    re.compile(r"\b\d{3,4}x\d{3,4}\b", re.I),  # 1920x1080

    # Language tags
    re.compile(r"\[?\b(?:tamil|telugu|hindi|mal(?:ayalam)?|kannada|eng(?:lish)?)\b\]?", re.I),

    # Site names
    re.compile(r"\b(?:moviesda|isaidub|isaimini|tamilmv|tamilrockers)\b", re.I),

    # Brackets with years or info
    re.compile(r"\(\d{4}\)"),  # (2024)
    re.compile(r"\[\d{4}\]"),  # [2024]
    re.compile(r"\(\d{4}-\d{2}-\d{2}\)"),  # (2024-01-15)

    # Quality/size in brackets
    re.compile(r"\[[^\]]*?(?:mb|gb)\]", re.I),
    re.compile(r"\[(?:hd|sd)\]", re.I),

    # Episode markers
    re.compile(r"\s*-?\s*\bs\d+\s*e\d+\b", re.I),  # S01E01
    re.compile(r"\s*-?\s*\bseason\s*\d+\b", re.I),
    re.compile(r"\s*-?\s*\bepisode\s*\d+\b", re.I),

    # Common suffixes
    re.compile(r"\blatest\b", re.I),
    re.compile(r"\bnew\b", re.I),
    re.compile(r"\bofficial\b", re.I),
    re.compile(r"\s+-?\s*(?:full\s*)?movie\s*$", re.I),

    # Brackets emptied by the patterns above
    re.compile(r"\(\s*\)|\[\s*\]"),
]

# Display cleanup is deliberately lighter than catalog normalization
DISPLAY_REMOVAL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"tamil movie download", re.I),
    re.compile(r"tamil movie", re.I),
    re.compile(r"tamil dubbed", re.I),
    re.compile(r"tamil web series", re.I),
    re.compile(r"web series", re.I),
    re.compile(r"\blatest\b", re.I),
    re.compile(r"\bdownload\b", re.I),
    re.compile(r"\(\d{4}\)"),
    re.compile(r"\b\d{4}\b"),
]

YEAR_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\((\d{4})\)"),
    re.compile(r"\[(\d{4})\]"),
    re.compile(r"\s(\d{4})$"),
]

MIN_YEAR = 1900
MAX_YEAR = 2030

_MAX_PASSES = 10


def _normalize_pass(title: str) -> str:
    """Apply one round of noise removal and cleanup."""
    normalized = title.strip()

    for pattern in REMOVAL_PATTERNS:
        normalized = pattern.sub(" ", normalized)

    normalized = (
        normalized.replace("–", "-")
        .replace("—", "-")
        .replace("‘", "'")
        .replace("’", "'")
        .replace("“", '"')
        .replace("”", '"')
        .replace("_", " ")
    )

    normalized = re.sub(r"\s+", " ", normalized)
    normalized = re.sub(r"\s*[-:.]\s*$", "", normalized)  # Trailing dash, colon, dot
    normalized = re.sub(r"^\s*-\s*", "", normalized)  # Leading dash

    return normalized.strip().casefold()


def normalize_title(title: str | None) -> str:
    """
    Normalize a scraped title for catalog search.

    Strips quality, year, language and site tags, collapses whitespace
    and case-folds. The result is a fixed point: normalizing it again
    returns the same string.

    Args:
        title: Raw title from a provider

    Returns:
        Normalized title, or an empty string for empty input
    """
    if not title:
        return ""

    normalized = title
    for _ in range(_MAX_PASSES):
        next_value = _normalize_pass(normalized)
        if next_value == normalized:
            break
        normalized = next_value

    return normalized


def normalize_for_comparison(title: str | None) -> str:
    """
    Aggressive normalization used for fuzzy comparison.

    Case-folds, strips diacritics and removes punctuation.
    """
    if not title:
        return ""

    decomposed = unicodedata.normalize("NFKD", title)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    stripped = stripped.casefold()
    stripped = re.sub(r"[^\w\s]|_", "", stripped)
    return re.sub(r"\s+", " ", stripped).strip()


def extract_year_from_title(title: str) -> tuple[str, int | None]:
    """
    Split a year out of a title.

    Args:
        title: Title that might contain "(2023)", "[2023]" or a trailing year

    Returns:
        Tuple of (title without the year, year or None)
    """
    for pattern in YEAR_PATTERNS:
        match = pattern.search(title)
        if match:
            year = int(match.group(1))
            if MIN_YEAR <= year <= MAX_YEAR:
                return title.replace(match.group(0), "").strip(), year
            break

    return title, None


def clean_display_title(title: str | None) -> str:
    """Clean a title for display. Less aggressive than normalize_title."""
    if not title:
        return ""

    cleaned = title
    for pattern in DISPLAY_REMOVAL_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()

