"""Confidence scoring for catalog matches of scraped titles."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from cinefeed.core.enums import MatchQuality, MatchType
from cinefeed.core.titles import normalize_for_comparison

MAX_CONFIDENCE = 100

TITLE_WEIGHT = 60
EXACT_TITLE_BONUS = 10

# Points awarded by absolute difference between scraped and catalog year
YEAR_POINTS: dict[int, int] = {0: 20, 1: 15, 2: 10}

# (exclusive lower bound, points), checked in order
POPULARITY_POINTS: list[tuple[float, int]] = [(100, 10), (50, 7), (10, 5)]
POPULARITY_FLOOR_POINTS = 2
VOTE_COUNT_POINTS: list[tuple[int, int]] = [(1000, 10), (100, 7), (10, 4)]

RELIABILITY_THRESHOLDS: dict[MatchType, int] = {
    MatchType.EXACT: 50,
    MatchType.FUZZY: 60,
    MatchType.YEAR: 70,
}


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate the Levenshtein distance between two strings.

    Args:
        s1: First string
        s2: Second string

    Returns:
        Edit distance with unit cost for insertion, deletion and substitution
    """
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def similarity_ratio(a: str, b: str) -> float:
    """
    Similarity of two titles after comparison normalization.

    Returns:
        1.0 for titles equal after normalization, 0.0 if either is empty,
        otherwise 1 - distance / longest length
    """
    norm_a = normalize_for_comparison(a)
    norm_b = normalize_for_comparison(b)

    if norm_a == norm_b:
        return 1.0

    if not norm_a or not norm_b:
        return 0.0

    distance = levenshtein_distance(norm_a, norm_b)
    max_len = max(len(norm_a), len(norm_b))

    return 1.0 - (distance / max_len)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _candidate_value(candidate: Any, name: str) -> Any:
    """Read a field from a candidate model or a raw catalog mapping."""
    if candidate is None:
        return None
    if isinstance(candidate, Mapping):
        return candidate.get(name)
    return getattr(candidate, name, None)


def candidate_year(candidate: Any) -> int | None:
    """Release or first-air year of a catalog candidate, if it exposes one."""
    for name in ("release_date", "first_air_date"):
        value = _candidate_value(candidate, name)
        if value:
            try:
                return int(str(value).split("-")[0])
            except ValueError:
                continue
    return None


def _parse_year(value: str | int | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _tiered_points(value: float, tiers: list[tuple[float, int]], floor: int) -> int:
    for bound, points in tiers:
        if value > bound:
            return points
    return floor


def calculate_confidence(
    scraped_title: str,
    catalog_title: str,
    candidate: Any = None,
    scraped_year: str | int | None = None,
) -> int:
    """
    Score how likely a catalog candidate is the item a provider scraped.

    Components:
    - Title similarity: up to 60
    - Year agreement: 20 exact, 15 off by one, 10 off by two
    - Popularity: 10 above 100, 7 above 50, 5 above 10, otherwise 2
    - Vote count: 10 above 1000, 7 above 100, 4 above 10
    - Exact title bonus: 10 when titles are equal after normalization

    Args:
        scraped_title: Normalized title from the provider
        catalog_title: Title of the catalog candidate
        candidate: Candidate model or raw catalog mapping
        scraped_year: Year reported by the provider, if known

    Returns:
        Confidence between 0 and 100
    """
    score = _round_half_up(similarity_ratio(scraped_title, catalog_title) * TITLE_WEIGHT)

    year = _parse_year(scraped_year)
    if year is not None:
        catalog_year = candidate_year(candidate)
        if catalog_year is not None:
            score += YEAR_POINTS.get(abs(year - catalog_year), 0)

    popularity = _candidate_value(candidate, "popularity")
    if popularity:
        score += _tiered_points(float(popularity), POPULARITY_POINTS, POPULARITY_FLOOR_POINTS)

    vote_count = _candidate_value(candidate, "vote_count")
    if vote_count:
        score += _tiered_points(float(vote_count), VOTE_COUNT_POINTS, 0)

    if normalize_for_comparison(scraped_title) == normalize_for_comparison(catalog_title):
        score = min(MAX_CONFIDENCE, score + EXACT_TITLE_BONUS)

    return min(MAX_CONFIDENCE, max(0, score))


def is_reliable_match(confidence: int, match_type: MatchType | str = MatchType.FUZZY) -> bool:
    """
    Check whether a confidence clears the threshold for its match context.

    Thresholds: exact 50, fuzzy 60, year 70. Unknown match types use the
    fuzzy threshold.
    """
    try:
        threshold = RELIABILITY_THRESHOLDS[MatchType(match_type)]
    except ValueError:
        threshold = RELIABILITY_THRESHOLDS[MatchType.FUZZY]
    return confidence >= threshold


def get_match_quality(confidence: int) -> MatchQuality:
    """
    Determine the display band for a confidence score.

    Quality bands:
    - 90-100: excellent
    - 75-89: good
    - 60-74: fair
    - 40-59: poor
    - 0-39: unreliable
    """
    if confidence >= 90:
        return MatchQuality.EXCELLENT
    elif confidence >= 75:
        return MatchQuality.GOOD
    elif confidence >= 60:
        return MatchQuality.FAIR
    elif confidence >= 40:
        return MatchQuality.POOR
    else:
        return MatchQuality.UNRELIABLE
