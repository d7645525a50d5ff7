"""Pydantic v2 models for unified content records."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cinefeed.core.enums import CatalogStatus, ContentType, LanguageType


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class Resolution(BaseModel):
    """A downloadable or streamable variant of a content item."""

    model_config = ConfigDict(frozen=True)

    quality: str = ""
    name: str = ""
    url: str = ""
    download_url: str | None = None
    direct_url: str | None = None
    watch_url: str | None = None
    stream_source: str | None = None
    size: str | None = None


class CastMember(BaseModel):
    """A cast entry taken from catalog credits."""

    name: str
    character: str = ""
    profile_url: str | None = None


class UnifiedContent(BaseModel):
    """
    Provider-agnostic content record produced by the pipeline.

    One record per scraped item; records are never shared across items.
    """

    # Identity
    title: str = ""
    url: str = ""
    source: str

    # Classification
    content_type: ContentType = ContentType.UNKNOWN
    language_type: LanguageType = LanguageType.UNKNOWN

    # Metadata
    normalized_title: str = ""
    year: int | None = None
    quality: str = "DVD/HD"
    poster_url: str | None = None
    backdrop_url: str | None = None
    synopsis: str | None = None
    overview: str | None = None
    rating: float | None = None
    genres: list[int | str] = Field(default_factory=list)

    # Catalog matching
    tmdb_id: int | None = None
    tmdb_status: CatalogStatus = CatalogStatus.PENDING
    confidence_score: int = Field(default=0, ge=0, le=100)
    failure_reason: str | None = None

    # Extended details
    runtime: int | None = None
    cast: list[CastMember] = Field(default_factory=list)
    director: str | None = None
    trailer_key: str | None = None
    production_companies: list[str] = Field(default_factory=list)

    # Links
    resolutions: list[Resolution] = Field(default_factory=list)
    download_links: list[str] = Field(default_factory=list)
    watch_links: list[str] = Field(default_factory=list)

    # Timestamps
    scraped_at: datetime = Field(default_factory=_utc_now)
    last_updated: datetime = Field(default_factory=_utc_now)

    @model_validator(mode="after")
    def confidence_only_when_matched(self) -> "UnifiedContent":
        """Keep confidence_score at 0 unless the record is matched."""
        if self.tmdb_status != CatalogStatus.MATCHED and self.confidence_score != 0:
            self.confidence_score = 0
        return self

    @property
    def is_matched(self) -> bool:
        """Check if the record carries a catalog match."""
        return self.tmdb_status == CatalogStatus.MATCHED
