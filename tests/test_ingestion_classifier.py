"""Tests for the content classifier module."""

import pytest

from cinefeed.core.enums import ContentType, LanguageType
from cinefeed.core.schema import Resolution
from cinefeed.ingestion.classifier import (
    catalog_query_type,
    detect_content_type,
    detect_language,
    is_episodic,
)


class TestDetectContentType:
    """Tests for detect_content_type."""

    @pytest.mark.parametrize(
        "title",
        [
            "Suzhal Season 2",
            "Vadhandhi S01E04",
            "Ayali Episode 3",
            "Bigg Boss Day 42",
            "Anthology Part 1 of 3",
            "Inspector Rishi Tamil Web Series",
        ],
    )
    def test_series_titles(self, title: str) -> None:
        """Test episodic titles classify as series."""
        assert detect_content_type(title) == ContentType.SERIES

    def test_webseries_url(self) -> None:
        """Test a web-series URL section classifies as web series."""
        assert (
            detect_content_type("Suzhal", "https://moviesda.example/webseries/suzhal/")
            == ContentType.WEBSERIES
        )
        assert (
            detect_content_type("Suzhal", "https://moviesda.example/web-series/suzhal/")
            == ContentType.WEBSERIES
        )

    def test_episode_pattern_beats_webseries_url(self) -> None:
        """Test episode text wins over the web-series URL section."""
        assert (
            detect_content_type("Suzhal Season 2", "https://moviesda.example/webseries/suzhal/")
            == ContentType.SERIES
        )

    def test_episode_in_url(self) -> None:
        """Test episode text in the URL forces series."""
        assert (
            detect_content_type("Suzhal", "https://moviesda.example/suzhal-s02e01/")
            == ContentType.SERIES
        )

    def test_episode_resolution_names(self) -> None:
        """Test episode-like link names force series."""
        resolutions = [Resolution(name="Epi 01"), Resolution(name="Epi 02")]
        assert detect_content_type("Suzhal", None, resolutions) == ContentType.SERIES

    def test_movie_default(self) -> None:
        """Test plain titles classify as movies."""
        assert detect_content_type("Leo (2023) Tamil Movie", "https://moviesda.example/leo/") == ContentType.MOVIE
        resolutions = [Resolution(name="720p HD"), Resolution(name="1080p HD")]
        assert detect_content_type("Leo", None, resolutions) == ContentType.MOVIE

    def test_empty(self) -> None:
        """Test missing title and URL give a movie."""
        assert detect_content_type(None) == ContentType.MOVIE


class TestDetectLanguage:
    """Tests for detect_language."""

    def test_dubbed_title(self) -> None:
        """Test 'dubbed' in the title."""
        assert detect_language("Oppenheimer Tamil Dubbed") == LanguageType.TAMIL_DUBBED

    def test_dubbing_source(self) -> None:
        """Test items from a dubbing-only source."""
        assert detect_language("Oppenheimer", "isaidub") == LanguageType.TAMIL_DUBBED

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Salaar Telugu", LanguageType.TELUGU),
            ("Animal Hindi", LanguageType.HINDI),
            ("Premalu Malayalam", LanguageType.MALAYALAM),
            ("Kantara Kannada", LanguageType.KANNADA),
            ("Dune English", LanguageType.ENGLISH),
            ("Leo Tamil", LanguageType.TAMIL),
        ],
    )
    def test_keywords(self, title: str, expected: LanguageType) -> None:
        """Test the keyword table."""
        assert detect_language(title) == expected

    def test_first_keyword_in_table_order_wins(self) -> None:
        """Test table order decides between several keywords."""
        assert detect_language("Leo Tamil Telugu") == LanguageType.TELUGU

    def test_default_tamil(self) -> None:
        """Test the default language."""
        assert detect_language("Leo", "moviesda") == LanguageType.TAMIL


class TestCatalogQueryType:
    """Tests for catalog_query_type and is_episodic."""

    def test_series_is_tv(self) -> None:
        """Test only series map to tv."""
        assert catalog_query_type(ContentType.SERIES) == "tv"
        assert catalog_query_type(ContentType.WEBSERIES) == "movie"
        assert catalog_query_type(ContentType.MOVIE) == "movie"
        assert catalog_query_type(ContentType.UNKNOWN) == "movie"

    def test_is_episodic(self) -> None:
        """Test series and web series are episodic."""
        assert is_episodic(ContentType.SERIES) is True
        assert is_episodic(ContentType.WEBSERIES) is True
        assert is_episodic(ContentType.MOVIE) is False
