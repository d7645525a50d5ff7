"""
Background Jobs Module
======================

Defines arq tasks that refresh the latest listings of every provider
through the content pipeline. Uses Redis as the job queue backend.
"""

from __future__ import annotations

import importlib
import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from arq import create_pool
from arq.connections import RedisSettings
from arq.jobs import Job, JobStatus as ArqJobStatus

from cinefeed.ingestion.aggregator import ProviderAggregator
from cinefeed.ingestion.catalog import CatalogClient
from cinefeed.ingestion.pipeline import ContentPipeline
from cinefeed.ingestion.registry import ProviderRegistry

logger = logging.getLogger(__name__)

CATALOG_FACTORY_ENV = "CINEFEED_CATALOG_FACTORY"


class JobStatus(str, Enum):
    """Status of a refresh job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class JobResult:
    """Result of a refresh job."""

    job_id: str
    status: JobStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    providers: dict[str, dict[str, int]] = field(default_factory=dict)
    items_processed: int = 0
    matched: int = 0
    pending: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "providers": self.providers,
            "items_processed": self.items_processed,
            "matched": self.matched,
            "pending": self.pending,
            "failed": self.failed,
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


def get_redis_settings() -> RedisSettings:
    """Get Redis connection settings from environment."""
    return RedisSettings(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", "6379")),
        database=int(os.environ.get("REDIS_DB", "0")),
    )


def load_catalog_client(reference: str | None = None) -> CatalogClient:
    """
    Build the catalog client named by a ``module:callable`` reference.

    Args:
        reference: Reference to a zero-argument factory; defaults to the
            CINEFEED_CATALOG_FACTORY environment variable

    Raises:
        RuntimeError: If no factory is configured
    """
    reference = reference or os.environ.get(CATALOG_FACTORY_ENV)
    if not reference:
        raise RuntimeError(f"{CATALOG_FACTORY_ENV} is not set; cannot build a catalog client")

    module_name, _, attr = reference.partition(":")
    if not attr:
        raise RuntimeError(f"Invalid catalog factory '{reference}', expected 'module:callable'")

    factory = getattr(importlib.import_module(module_name), attr)
    return factory()


async def refresh_latest(
    ctx: dict[str, Any],
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Refresh task.

    1. Fan out get_latest to every queryable provider
    2. Run each provider's items through the pipeline as a batch
    3. Sum the matched/pending/failed counts

    Args:
        ctx: arq context; may carry "registry" and "pipeline" set up by
            the worker's startup hook
        limit: Optional per-provider item limit

    Returns:
        JobResult as dictionary
    """
    job_id = ctx.get("job_id", str(uuid4()))
    result = JobResult(
        job_id=job_id,
        status=JobStatus.RUNNING,
        started_at=datetime.now(UTC),
    )

    try:
        registry: ProviderRegistry = ctx.get("registry") or ProviderRegistry.from_config()
        pipeline: ContentPipeline = ctx.get("pipeline") or ContentPipeline(
            load_catalog_client(), config=registry.pipeline_config
        )
        aggregator = ProviderAggregator(registry)

        latest = await aggregator.get_latest_from_all_providers()
        logger.info(f"Refreshing {sum(len(v) for v in latest.values())} items from {len(latest)} providers")

        for provider_id, items in latest.items():
            batch = await pipeline.process_batch(items, provider_id, limit=limit)
            result.providers[provider_id] = batch.to_dict()
            result.items_processed += batch.total
            result.matched += batch.matched
            result.pending += batch.pending
            result.failed += batch.failed

        result.status = JobStatus.COMPLETED
        logger.info(
            f"Refresh {job_id} completed: {result.items_processed} items, "
            f"{result.matched} matched"
        )

    except Exception as e:
        logger.exception(f"Refresh {job_id} failed: {e}")
        result.status = JobStatus.FAILED
        result.errors.append(str(e))

    finally:
        result.completed_at = datetime.now(UTC)
        if result.started_at and result.completed_at:
            result.duration_seconds = (result.completed_at - result.started_at).total_seconds()

    return result.to_dict()


async def refresh_latest_sync(
    registry: ProviderRegistry | None = None,
    pipeline: ContentPipeline | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Run the refresh in-process (without arq).

    Useful for CLI commands with --sync flag.
    """
    ctx: dict[str, Any] = {"job_id": str(uuid4())}
    if registry is not None:
        ctx["registry"] = registry
    if pipeline is not None:
        ctx["pipeline"] = pipeline
    return await refresh_latest(ctx, limit)


async def enqueue_refresh(limit: int | None = None) -> str:
    """
    Enqueue a refresh job for async processing.

    Returns:
        Job ID
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = await redis.enqueue_job("refresh_latest", limit)
    finally:
        await redis.close()
    if job is None:
        raise RuntimeError("refresh job was not enqueued")
    return job.job_id


async def get_job_status(job_id: str) -> dict[str, Any] | None:
    """
    Get the status of a refresh job without waiting for it.

    Returns:
        Job info dict, or None if the queue does not know the job.
        ``result`` is the job's return value once it has completed.
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = Job(job_id, redis)
        state = await job.status()
        if state == ArqJobStatus.not_found:
            return None

        info = await job.result_info() if state == ArqJobStatus.complete else None
    finally:
        await redis.close()

    return {
        "job_id": job_id,
        "status": state.value,
        "success": info.success if info else None,
        "result": info.result if info else None,
    }


async def startup(ctx: dict[str, Any]) -> None:
    """Build the registry and pipeline once per worker."""
    registry = ProviderRegistry.from_config()
    ctx["registry"] = registry
    ctx["pipeline"] = ContentPipeline(load_catalog_client(), config=registry.pipeline_config)


class WorkerSettings:
    """arq worker settings."""

    functions = [refresh_latest]
    on_startup = startup
    redis_settings = get_redis_settings()
    max_jobs = 5
    job_timeout = 3600  # 1 hour
    keep_result = 86400  # 24 hours
