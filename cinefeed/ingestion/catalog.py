"""
Metadata Catalog Module
=======================

Interfaces of the external metadata catalog and of the store of
previously unified records, plus the catalog's asset URL builders.

The catalog transport is not implemented here: callers inject any object
satisfying CatalogClient into the pipeline.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from cinefeed.core.schema import UnifiedContent

IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
POSTER_SIZE = "w500"
BACKDROP_SIZE = "original"
PROFILE_SIZE = "w185"
TRAILER_BASE_URL = "https://www.youtube.com/watch?v="

MAX_CAST = 10


class CatalogLookupError(Exception):
    """The metadata catalog failed or returned nothing usable."""


class MatchCandidate(BaseModel):
    """
    A catalog search result.

    Accepts both the movie shape (title, release_date) and the tv shape
    (name, first_air_date).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    title: str = Field(default="", validation_alias=AliasChoices("title", "name"))
    original_title: str | None = Field(
        default=None, validation_alias=AliasChoices("original_title", "original_name")
    )
    release_date: str | None = Field(
        default=None, validation_alias=AliasChoices("release_date", "first_air_date")
    )
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    popularity: float | None = None
    genre_ids: list[int] = Field(default_factory=list)

    @property
    def year(self) -> int | None:
        """Release or first-air year."""
        if not self.release_date:
            return None
        try:
            return int(self.release_date.split("-")[0])
        except ValueError:
            return None


class Genre(BaseModel):
    id: int
    name: str


class CrewMember(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    job: str = ""


class CreditCast(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    character: str = ""
    profile_path: str | None = None


class Credits(BaseModel):
    cast: list[CreditCast] = Field(default_factory=list)
    crew: list[CrewMember] = Field(default_factory=list)


class Video(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    type: str = ""
    site: str = "YouTube"


class Videos(BaseModel):
    results: list[Video] = Field(default_factory=list)


class Company(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class ExtendedDetails(BaseModel):
    """Full catalog record of a movie or tv show."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    title: str = Field(default="", validation_alias=AliasChoices("title", "name"))
    overview: str | None = None
    runtime: int | None = None
    episode_run_time: list[int] = Field(default_factory=list)
    genres: list[Genre] = Field(default_factory=list)
    credits: Credits = Field(default_factory=Credits)
    videos: Videos = Field(default_factory=Videos)
    production_companies: list[Company] = Field(default_factory=list)

    @property
    def effective_runtime(self) -> int | None:
        """Movie runtime, or the first episode runtime of a tv show."""
        if self.runtime:
            return self.runtime
        return self.episode_run_time[0] if self.episode_run_time else None

    @property
    def director(self) -> str | None:
        for member in self.credits.crew:
            if member.job == "Director":
                return member.name
        return None

    @property
    def trailer_key(self) -> str | None:
        for video in self.videos.results:
            if video.type == "Trailer":
                return video.key
        return None


@runtime_checkable
class CatalogClient(Protocol):
    """Narrow interface of the external metadata catalog."""

    async def search(
        self,
        title: str,
        kind: str,
        year: int | None = None,
        locale: str = "en-US",
    ) -> MatchCandidate | None:
        """
        Search the catalog.

        Args:
            title: Normalized title
            kind: "movie" or "tv"
            year: Release year filter, if known
            locale: Catalog language for the query

        Returns:
            Best candidate, or None when nothing matches
        """
        ...

    async def get_details(self, catalog_id: int, kind: str) -> ExtendedDetails | None: ...

    async def get_recommendations(
        self, catalog_id: int, kind: str, locale: str = "en-US"
    ) -> list[MatchCandidate]: ...


@runtime_checkable
class ContentStore(Protocol):
    """Read-only lookups of previously unified records. Misses return None."""

    async def get_by_catalog_id(self, catalog_id: int) -> UnifiedContent | None: ...

    async def get_by_title(self, title: str, year: int | None = None) -> UnifiedContent | None: ...


def _image_url(path: str | None, size: str) -> str | None:
    if not path:
        return None
    return f"{IMAGE_BASE_URL}/{size}{path}"


def poster_url(path: str | None) -> str | None:
    """Build a poster URL from a catalog path fragment."""
    return _image_url(path, POSTER_SIZE)


def backdrop_url(path: str | None) -> str | None:
    """Build a backdrop URL from a catalog path fragment."""
    return _image_url(path, BACKDROP_SIZE)


def profile_url(path: str | None) -> str | None:
    """Build a cast profile image URL from a catalog path fragment."""
    return _image_url(path, PROFILE_SIZE)


def trailer_url(key: str | None) -> str | None:
    if not key:
        return None
    return f"{TRAILER_BASE_URL}{key}"


def candidate_from_dict(data: dict[str, Any]) -> MatchCandidate:
    """Validate a raw catalog search result."""
    return MatchCandidate.model_validate(data)
