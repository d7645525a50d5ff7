"""Tests for the title transforms and the item normalizer."""

import pytest

from cinefeed.core.schema import Resolution
from cinefeed.ingestion.normalizer import (
    Normalizer,
    clean_display_title,
    extract_year_from_title,
    normalize_for_comparison,
    normalize_title,
)
from cinefeed.ingestion.providers.base import ScrapedItem


class TestNormalizeTitle:
    """Tests for normalize_title."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Leo (2023) Tamil Movie", "leo"),
            ("Oppenheimer (2023) Tamil Dubbed Movie", "oppenheimer"),
            ("Suzhal Season 2 Tamil Web Series", "suzhal"),
            ("Vikram [1080p] [HD]", "vikram"),
            ("Leo - Full HD Movie Download", "leo"),
            ("Jailer  [2023]   720p HDRip", "jailer"),
            ("Viduthalai Part 1 (2023)", "viduthalai part 1"),
        ],
    )
    def test_strips_noise(self, raw: str, expected: str) -> None:
        """Test quality, year, language and site tags are removed."""
        assert normalize_title(raw) == expected

    def test_empty(self) -> None:
        """Test empty input gives an empty string."""
        assert normalize_title("") == ""
        assert normalize_title(None) == ""

    @pytest.mark.parametrize(
        "raw",
        [
            "Leo (2023) Tamil Movie",
            "Movie Movie (2019) HD",
            "Kaithi - Tamil - HD - Movie",
            "Dune [Part Two] (2024) [Tamil Dubbed]",
            "Ponniyin Selvan: Part II (2023) 1080p",
        ],
    )
    def test_idempotent(self, raw: str) -> None:
        """Test normalizing a normalized title changes nothing."""
        once = normalize_title(raw)
        assert normalize_title(once) == once


class TestNormalizeForComparison:
    """Tests for normalize_for_comparison."""

    def test_strips_diacritics_and_punctuation(self) -> None:
        """Test accents and punctuation are dropped."""
        assert normalize_for_comparison("Amélie!") == "amelie"
        assert normalize_for_comparison("Spider-Man: No Way Home") == "spiderman no way home"

    def test_empty(self) -> None:
        """Test empty input."""
        assert normalize_for_comparison(None) == ""


class TestExtractYearFromTitle:
    """Tests for extract_year_from_title."""

    def test_parenthesized(self) -> None:
        """Test (YYYY) years."""
        assert extract_year_from_title("Leo (2023)") == ("Leo", 2023)

    def test_bracketed(self) -> None:
        """Test [YYYY] years."""
        assert extract_year_from_title("Bigil [2019]") == ("Bigil", 2019)

    def test_trailing(self) -> None:
        """Test a trailing bare year."""
        assert extract_year_from_title("Jawan 2023") == ("Jawan", 2023)

    def test_out_of_range(self) -> None:
        """Test years outside 1900-2030 are ignored."""
        assert extract_year_from_title("Epic (1850)") == ("Epic (1850)", None)

    def test_no_year(self) -> None:
        """Test titles without a year."""
        assert extract_year_from_title("Vikram") == ("Vikram", None)


class TestCleanDisplayTitle:
    """Tests for clean_display_title."""

    def test_clean(self) -> None:
        """Test display cleanup keeps the title readable."""
        assert clean_display_title("Leo (2023) Tamil Movie Download") == "Leo"

    def test_keeps_case(self) -> None:
        """Test display cleanup does not case-fold."""
        assert clean_display_title("Ponniyin Selvan Latest") == "Ponniyin Selvan"


class TestNormalizer:
    """Tests for Normalizer."""

    @pytest.fixture
    def normalizer(self) -> Normalizer:
        """Create a normalizer instance."""
        return Normalizer()

    def test_normalize_item(self, normalizer: Normalizer) -> None:
        """Test a scraped item is cleaned."""
        item = ScrapedItem(
            title="  Leo   (2023) Tamil Movie ",
            url=" https://moviesda.example/leo/ ",
            poster="  ",
            resolutions=(Resolution(quality="720p", url="https://x/720"),),
        )
        result = normalizer.normalize_item(item, "moviesda")

        assert result.title == "Leo (2023) Tamil Movie"
        assert result.url == "https://moviesda.example/leo/"
        assert result.source == "moviesda"
        assert result.normalized_title == "leo"
        assert result.year == 2023
        assert result.poster_url is None
        assert result.quality == "DVD/HD"
        assert len(result.resolutions) == 1

    def test_provider_year_wins(self, normalizer: Normalizer) -> None:
        """Test the provider's year is preferred over the title's."""
        item = ScrapedItem(title="Leo (2023)", url="u", year="2022")
        assert normalizer.normalize_item(item, "p").year == 2022

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2023", 2023),
            (2019, 2019),
            ("Unknown", None),
            ("N/A", None),
            (None, None),
            (1800, None),
            ("2031", None),
            ("Released 2019", 2019),
        ],
    )
    def test_parse_year(self, normalizer: Normalizer, value, expected) -> None:
        """Test year parsing from loose formats."""
        assert normalizer.parse_year(value) == expected
