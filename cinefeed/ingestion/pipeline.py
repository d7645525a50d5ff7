"""
Content Pipeline Module
=======================

Turns scraped items into unified content records.

Per item:
1. Build the base record from the scraped item and its provider
2. Normalize the title and year
3. Classify content kind and language
4. Look the item up in the content store, then in the catalog through
   the locale/year fallback chain
5. Score the candidate and copy catalog metadata onto the record

Catalog failures never escape: the item comes back Failed with a reason.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from cinefeed.core.enums import CatalogStatus, ContentType, MatchType
from cinefeed.core.schema import CastMember, UnifiedContent
from cinefeed.core.scoring import calculate_confidence, get_match_quality, is_reliable_match
from cinefeed.ingestion.catalog import (
    MAX_CAST,
    CatalogClient,
    CatalogLookupError,
    ContentStore,
    MatchCandidate,
    backdrop_url,
    poster_url,
    profile_url,
)
from cinefeed.ingestion.classifier import (
    catalog_query_type,
    detect_content_type,
    detect_language,
    is_episodic,
)
from cinefeed.ingestion.normalizer import Normalizer, normalize_title
from cinefeed.ingestion.providers.base import ScrapedItem
from cinefeed.ingestion.registry import PipelineConfig

logger = logging.getLogger(__name__)

FallbackPosterFn = Callable[[str], Awaitable[str | None]]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class MatchPolicy:
    """
    Decides whether a scored candidate is kept.

    Ungated by default: every candidate is recorded with its raw score.
    """

    gate_matches: bool = False
    match_type: MatchType = MatchType.FUZZY

    def accepts(self, confidence: int) -> bool:
        if not self.gate_matches:
            return True
        return is_reliable_match(confidence, self.match_type)


@dataclass
class BatchResult:
    """Processed items of a batch with summary counts."""

    items: list[UnifiedContent] = field(default_factory=list)
    matched: int = 0
    pending: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "matched": self.matched,
            "pending": self.pending,
            "failed": self.failed,
        }


@dataclass
class EnrichmentResult:
    """
    Outcome of a best-effort enrichment.

    ``item`` is always usable; ``failure_reason`` explains why nothing
    (or only part) was added.
    """

    item: UnifiedContent
    changed: bool = False
    failure_reason: str | None = None


class ContentPipeline:
    """
    Normalizes, classifies and matches scraped items against the catalog.

    Usage:
        pipeline = ContentPipeline(catalog_client)
        record = await pipeline.process_item(item, "moviesda")
    """

    def __init__(
        self,
        catalog: CatalogClient,
        store: ContentStore | None = None,
        config: PipelineConfig | None = None,
        normalizer: Normalizer | None = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            catalog: Metadata catalog client
            store: Optional store of previously unified records
            config: Pipeline settings (locales, batch sizes, gating)
            normalizer: Item normalizer (default: Normalizer())
        """
        self.catalog = catalog
        self.store = store
        self.config = config or PipelineConfig()
        self.normalizer = normalizer or Normalizer()
        self.policy = MatchPolicy(
            gate_matches=self.config.gate_matches,
            match_type=self.config.match_type,
        )

    # Single item

    async def process_item(self, item: ScrapedItem, provider_id: str) -> UnifiedContent:
        """
        Build the unified record of one scraped item.

        Args:
            item: Raw item from a provider
            provider_id: Provider that produced the item

        Returns:
            Record with status Matched, Pending or Failed
        """
        normalized = self.normalizer.normalize_item(item, provider_id)

        content = UnifiedContent(
            title=normalized.title,
            url=normalized.url,
            source=provider_id,
            normalized_title=normalized.normalized_title,
            year=normalized.year,
            quality=normalized.quality,
            poster_url=normalized.poster_url,
            synopsis=normalized.synopsis,
            resolutions=normalized.resolutions,
            download_links=[
                r.download_url or r.direct_url or r.url
                for r in normalized.resolutions
                if r.download_url or r.direct_url or r.url
            ],
            watch_links=[r.watch_url for r in normalized.resolutions if r.watch_url],
        )
        content.content_type = detect_content_type(
            normalized.title, normalized.url, normalized.resolutions
        )
        content.language_type = detect_language(normalized.title, provider_id)

        if await self._apply_cached_match(content):
            return content

        kind = catalog_query_type(content.content_type)
        try:
            candidate = await self._find_candidate(content.normalized_title, kind, content.year)
        except CatalogLookupError as e:
            content.tmdb_status = CatalogStatus.FAILED
            content.failure_reason = str(e)
            logger.debug(f"Catalog lookup failed for '{content.title}': {e}")
            return content

        if candidate is None:
            logger.debug(f"No catalog match for '{content.normalized_title}' ({kind})")
            return content

        confidence = calculate_confidence(
            content.normalized_title, candidate.title, candidate, content.year
        )
        if not self.policy.accepts(confidence):
            logger.debug(
                f"Discarded match '{candidate.title}' for '{content.normalized_title}': "
                f"confidence {confidence} ({get_match_quality(confidence).value})"
            )
            return content

        self._apply_candidate(content, candidate, confidence)
        return content

    async def _apply_cached_match(self, content: UnifiedContent) -> bool:
        """Copy catalog fields from a previously matched record, if the store has one."""
        if self.store is None:
            return False

        try:
            cached = await self.store.get_by_title(content.normalized_title, content.year)
        except Exception as e:
            logger.warning(f"Content store lookup failed for '{content.normalized_title}': {e}")
            return False

        if cached is None or not cached.is_matched:
            return False

        content.tmdb_id = cached.tmdb_id
        content.tmdb_status = CatalogStatus.MATCHED
        content.confidence_score = cached.confidence_score
        content.title = cached.title or content.title
        content.poster_url = cached.poster_url or content.poster_url
        content.backdrop_url = cached.backdrop_url
        content.rating = cached.rating
        content.overview = cached.overview
        content.genres = list(cached.genres)
        content.year = cached.year or content.year
        logger.debug(f"Reused cached match {cached.tmdb_id} for '{content.normalized_title}'")
        return True

    async def _find_candidate(
        self, title: str, kind: str, year: int | None
    ) -> MatchCandidate | None:
        """
        Search the catalog through the fallback chain.

        Order: primary locale with year, secondary locale with year, then
        both locales again without the year when one was given. Stops at
        the first hit.

        Raises:
            CatalogLookupError: If the catalog client raised
        """
        attempts: list[tuple[str, int | None]] = [
            (self.config.primary_locale, year),
            (self.config.secondary_locale, year),
        ]
        if year is not None:
            attempts += [
                (self.config.primary_locale, None),
                (self.config.secondary_locale, None),
            ]

        for locale, attempt_year in attempts:
            try:
                candidate = await self.catalog.search(title, kind, attempt_year, locale)
            except Exception as e:
                raise CatalogLookupError(
                    f"search '{title}' ({kind}, {locale}, year={attempt_year}) failed: {e}"
                ) from e
            if candidate is not None:
                return candidate

        return None

    def _apply_candidate(
        self, content: UnifiedContent, candidate: MatchCandidate, confidence: int
    ) -> None:
        content.tmdb_id = candidate.id
        content.tmdb_status = CatalogStatus.MATCHED
        content.confidence_score = confidence
        content.title = candidate.title or content.title
        content.poster_url = poster_url(candidate.poster_path) or content.poster_url
        content.backdrop_url = backdrop_url(candidate.backdrop_path) or content.backdrop_url
        if candidate.vote_average is not None:
            content.rating = candidate.vote_average
        content.year = candidate.year or content.year
        content.overview = candidate.overview or content.overview
        content.genres = list(candidate.genre_ids)
        content.last_updated = _utc_now()

    # Batches

    async def process_batch(
        self,
        items: list[ScrapedItem],
        provider_id: str,
        concurrency: int | None = None,
        limit: int | None = None,
    ) -> BatchResult:
        """
        Process items in sequential chunks.

        Items within a chunk run concurrently; chunks run one after the
        other, so at most ``concurrency`` catalog lookups are in flight.

        Args:
            items: Raw items from one provider
            provider_id: Provider that produced the items
            concurrency: Chunk size (default from config)
            limit: Maximum number of items to process (default from config)

        Returns:
            BatchResult with the processed records and summary counts
        """
        concurrency = self.config.concurrency if concurrency is None else concurrency
        limit = self.config.limit if limit is None else limit
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        if limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")

        to_process = items[:limit]
        result = BatchResult()
        logger.info(f"Processing {len(to_process)} items from {provider_id}")

        for start in range(0, len(to_process), concurrency):
            chunk = to_process[start:start + concurrency]
            processed = await asyncio.gather(
                *(self.process_item(item, provider_id) for item in chunk)
            )
            result.items.extend(processed)

            done = len(result.items)
            every = self.config.progress_every
            if every and done // every > (done - len(chunk)) // every:
                logger.debug(f"Processed {done}/{len(to_process)} items from {provider_id}")

        for content in result.items:
            if content.tmdb_status == CatalogStatus.MATCHED:
                result.matched += 1
            elif content.tmdb_status == CatalogStatus.FAILED:
                result.failed += 1
            else:
                result.pending += 1

        logger.info(
            f"Batch from {provider_id}: {result.matched} matched, "
            f"{result.pending} pending, {result.failed} failed"
        )
        return result

    # Enrichment

    async def enrich_with_tmdb_details(self, item: UnifiedContent) -> EnrichmentResult:
        """
        Add extended catalog details to a matched record.

        Adds runtime, genre names, top cast, director, trailer key and
        production companies onto a copy of the item.

        Returns:
            EnrichmentResult; the original item when there is no catalog id
            or the fetch fails
        """
        if item.tmdb_id is None:
            return EnrichmentResult(item=item)

        kind = catalog_query_type(item.content_type)
        try:
            details = await self.catalog.get_details(item.tmdb_id, kind)
        except Exception as e:
            logger.debug(f"Details fetch failed for {item.tmdb_id}: {e}")
            return EnrichmentResult(item=item, failure_reason=f"details fetch failed: {e}")

        if details is None:
            return EnrichmentResult(item=item, failure_reason="no details returned")

        cast = [
            CastMember(
                name=member.name,
                character=member.character,
                profile_url=profile_url(member.profile_path),
            )
            for member in details.credits.cast[:MAX_CAST]
        ]

        enriched = item.model_copy(
            update={
                "runtime": details.effective_runtime,
                "genres": [g.name for g in details.genres] or list(item.genres),
                "cast": cast,
                "director": details.director,
                "trailer_key": details.trailer_key,
                "production_companies": [c.name for c in details.production_companies],
                "overview": details.overview or item.overview,
                "last_updated": _utc_now(),
            },
            deep=True,
        )
        return EnrichmentResult(item=enriched, changed=True)

    def _has_usable_poster(self, url: str | None) -> bool:
        if not url:
            return False
        url_lower = url.lower()
        return not any(marker in url_lower for marker in self.config.placeholder_markers)

    async def quick_enrich(
        self,
        item: UnifiedContent,
        fallback_poster_fn: FallbackPosterFn | None = None,
    ) -> EnrichmentResult:
        """
        Backfill poster and rating for listing views.

        Does nothing when the item already has a usable poster and a
        rating. Otherwise tries a search-only catalog match, keeping the
        catalog id it finds, then the caller's page-scrape fallback for
        the poster. Items that already carry a catalog id are not searched
        again. Unclassified items are classified first.

        Args:
            item: Record to enrich
            fallback_poster_fn: Async callable taking the item URL and
                returning a poster URL or None

        Returns:
            EnrichmentResult; failures are reported, never raised
        """
        if self._has_usable_poster(item.poster_url) and item.rating is not None:
            return EnrichmentResult(item=item)

        updates: dict[str, Any] = {}
        failure_reason: str | None = None

        content_type = item.content_type
        if content_type == ContentType.UNKNOWN:
            content_type = detect_content_type(item.title, item.url, item.resolutions)

        # Items that already carry a catalog id skip straight to the poster fallback
        candidate: MatchCandidate | None = None
        if item.tmdb_id is None:
            title = item.normalized_title or normalize_title(item.title)
            kind = "tv" if is_episodic(content_type) else "movie"
            try:
                candidate = await self.catalog.search(
                    title, kind, item.year, self.config.primary_locale
                )
            except Exception as e:
                failure_reason = f"catalog search failed: {e}"
                logger.debug(f"Quick enrich search failed for '{title}': {e}")

        if candidate is not None:
            updates["tmdb_id"] = candidate.id
            candidate_poster = poster_url(candidate.poster_path)
            if candidate_poster and not self._has_usable_poster(item.poster_url):
                updates["poster_url"] = candidate_poster
            if item.rating is None and candidate.vote_average is not None:
                updates["rating"] = candidate.vote_average
            if item.backdrop_url is None and candidate.backdrop_path:
                updates["backdrop_url"] = backdrop_url(candidate.backdrop_path)

        poster = updates.get("poster_url", item.poster_url)
        if not self._has_usable_poster(poster) and fallback_poster_fn is not None and item.url:
            try:
                scraped_poster = await fallback_poster_fn(item.url)
            except Exception as e:
                scraped_poster = None
                failure_reason = f"poster scrape failed: {e}"
                logger.debug(f"Quick enrich poster scrape failed for {item.url}: {e}")
            if scraped_poster:
                updates["poster_url"] = scraped_poster

        if not updates:
            return EnrichmentResult(item=item, failure_reason=failure_reason)

        if content_type != item.content_type:
            updates["content_type"] = content_type
        updates["last_updated"] = _utc_now()
        return EnrichmentResult(
            item=item.model_copy(update=updates),
            changed=True,
            failure_reason=failure_reason,
        )

    async def get_recommendations(
        self, item: UnifiedContent, locale: str | None = None
    ) -> list[MatchCandidate]:
        """
        Catalog recommendations for a matched record.

        Returns:
            Candidates from the catalog, or [] when the item is unmatched
            or the lookup fails
        """
        if item.tmdb_id is None:
            return []

        kind = catalog_query_type(item.content_type)
        try:
            return await self.catalog.get_recommendations(
                item.tmdb_id, kind, locale or self.config.primary_locale
            )
        except Exception as e:
            logger.debug(f"Recommendations failed for {item.tmdb_id}: {e}")
            return []
