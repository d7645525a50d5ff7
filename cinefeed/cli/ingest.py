"""
Provider CLI Commands
=====================

CLI commands for inspecting providers and running the aggregation
pipeline by hand.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from cinefeed.core.enums import ProviderStatus
from cinefeed.core.scoring import get_match_quality
from cinefeed.ingestion.aggregator import ProviderAggregator
from cinefeed.ingestion.jobs import (
    enqueue_refresh,
    get_job_status,
    load_catalog_client,
    refresh_latest_sync,
)
from cinefeed.ingestion.pipeline import ContentPipeline
from cinefeed.ingestion.providers import list_provider_classes
from cinefeed.ingestion.providers.base import ScrapedItem
from cinefeed.ingestion.registry import ProviderRegistry, default_config_path

console = Console()
providers_app = typer.Typer(help="Provider management commands")

STATUS_STYLES = {
    ProviderStatus.ACTIVE.value: "[green]active[/green]",
    ProviderStatus.DEGRADED.value: "[yellow]degraded[/yellow]",
    ProviderStatus.DISABLED.value: "[red]disabled[/red]",
}


def _load_registry() -> ProviderRegistry:
    try:
        return ProviderRegistry.from_config()
    except FileNotFoundError as e:
        rprint(f"[red]Error:[/red] {e}")
        rprint("\nSet CINEFEED_CONFIG_PATH or create config/providers.yaml")
        raise typer.Exit(1)


def _print_health(registry: ProviderRegistry) -> None:
    table = Table(title="Provider Health")
    table.add_column("ID", style="bold")
    table.add_column("Status")
    table.add_column("Errors", justify="right")
    table.add_column("Last Error")
    table.add_column("Reason")

    for provider_id, health in registry.get_providers_health().items():
        table.add_row(
            provider_id,
            STATUS_STYLES.get(health["status"], health["status"]),
            str(health["error_count"]),
            health["last_error"] or "",
            health["reason"] or "",
        )

    console.print(table)


def _print_items(items: list[ScrapedItem], title: str) -> None:
    table = Table(title=title)
    table.add_column("Title", style="bold")
    table.add_column("Year")
    table.add_column("Quality")
    table.add_column("Source")
    table.add_column("URL", overflow="fold")

    for item in items:
        table.add_row(
            item.title,
            str(item.year or ""),
            item.quality or "",
            item.source or "",
            item.url,
        )

    console.print(table)


def _set_enabled(provider_id: str, enabled: bool) -> None:
    """Flip the enabled flag of a provider entry in the configuration file."""
    config_path = default_config_path()
    if not config_path.exists():
        rprint(f"[red]Error:[/red] Configuration file not found: {config_path}")
        raise typer.Exit(1)

    data = yaml.safe_load(config_path.read_text()) or {}
    for entry in data.get("providers", []):
        if entry.get("id") == provider_id:
            entry["enabled"] = enabled
            break
    else:
        rprint(f"[red]Error:[/red] Provider '{provider_id}' not found in {config_path}")
        raise typer.Exit(1)

    Path(config_path).write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
    state = "[green]enabled[/green]" if enabled else "[yellow]disabled[/yellow]"
    rprint(f"Provider [bold]{provider_id}[/bold] {state} in {config_path}")


# Providers subcommands


@providers_app.command("list")
def list_providers() -> None:
    """
    List configured providers.

    Examples:
        cinefeed providers list
    """
    registry = _load_registry()
    providers = registry.get_providers()

    if not providers:
        rprint("[yellow]No providers registered[/yellow]")
        rprint(f"\nAvailable provider classes: {', '.join(list_provider_classes())}")
        return

    table = Table(title="Providers")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Supports")
    table.add_column("Languages")
    table.add_column("Base URL")
    table.add_column("Status")

    for provider in providers:
        status = registry.get_status(provider.id)
        table.add_row(
            provider.id,
            provider.name,
            ", ".join(sorted(t.value for t in provider.supports)),
            ", ".join(sorted(lang.value for lang in provider.languages)),
            getattr(provider, "base_url", ""),
            STATUS_STYLES.get(status.value, status.value) if status else "",
        )

    console.print(table)


@providers_app.command("health")
def show_health() -> None:
    """
    Show the health of every provider, including registration failures.

    Examples:
        cinefeed providers health
    """
    _print_health(_load_registry())


@providers_app.command("check")
def check_providers() -> None:
    """
    Probe every provider and show the resulting health.

    Examples:
        cinefeed providers check
    """
    registry = _load_registry()
    with console.status("[bold blue]Checking providers...[/bold blue]"):
        asyncio.run(ProviderAggregator(registry).run_health_check())
    _print_health(registry)


@providers_app.command("enable")
def enable_provider(
    provider_id: str = typer.Argument(..., help="Provider ID"),
) -> None:
    """
    Enable a provider in the configuration file.

    Examples:
        cinefeed providers enable moviesda
    """
    _set_enabled(provider_id, True)


@providers_app.command("disable")
def disable_provider(
    provider_id: str = typer.Argument(..., help="Provider ID"),
) -> None:
    """
    Disable a provider in the configuration file.

    Examples:
        cinefeed providers disable isaidub
    """
    _set_enabled(provider_id, False)


# Content commands


def search(
    query: str = typer.Argument(..., help="Search query"),
    match: bool = typer.Option(False, "--match", help="Match results against the catalog"),
) -> None:
    """
    Search all providers.

    Examples:
        cinefeed search leo
        cinefeed search "jawan" --match
    """
    registry = _load_registry()
    aggregator = ProviderAggregator(registry)

    with console.status(f"[bold blue]Searching for '{query}'...[/bold blue]"):
        items = asyncio.run(aggregator.search_all_providers(query))

    if not items:
        rprint(f"[yellow]No results for '{query}'[/yellow]")
        return

    if not match:
        _print_items(items, f"Results for '{query}'")
        return

    try:
        pipeline = ContentPipeline(load_catalog_client(), config=registry.pipeline_config)
    except RuntimeError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    async def run() -> list:
        return list(
            await asyncio.gather(*(pipeline.process_item(i, i.source or "") for i in items))
        )

    with console.status("[bold blue]Matching...[/bold blue]"):
        records = asyncio.run(run())

    table = Table(title=f"Matched results for '{query}'")
    table.add_column("Title", style="bold")
    table.add_column("Kind")
    table.add_column("Language")
    table.add_column("Status")
    table.add_column("Confidence", justify="right")
    table.add_column("Source")

    for record in records:
        confidence = ""
        if record.is_matched:
            quality = get_match_quality(record.confidence_score).value
            confidence = f"{record.confidence_score} ({quality})"
        table.add_row(
            record.title,
            record.content_type.value,
            record.language_type.value,
            record.tmdb_status.value,
            confidence,
            record.source,
        )

    console.print(table)


def latest(
    web_series: bool = typer.Option(False, "--web-series", help="List web series instead"),
) -> None:
    """
    Show the latest listings of every provider.

    Examples:
        cinefeed latest
        cinefeed latest --web-series
    """
    registry = _load_registry()
    aggregator = ProviderAggregator(registry)

    with console.status("[bold blue]Fetching latest...[/bold blue]"):
        if web_series:
            by_provider = asyncio.run(aggregator.get_web_series_latest_from_all_providers())
        else:
            by_provider = asyncio.run(aggregator.get_latest_from_all_providers())

    if not by_provider:
        rprint("[yellow]No queryable providers[/yellow]")
        return

    for provider_id, items in by_provider.items():
        _print_items(items, f"{provider_id} ({len(items)} items)")


def details(
    url: str = typer.Argument(..., help="Content page URL"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Provider ID"),
) -> None:
    """
    Scrape a content page through the provider that owns it.

    Examples:
        cinefeed details https://moviesda.example/leo-2023
    """
    registry = _load_registry()
    aggregator = ProviderAggregator(registry)

    result = asyncio.run(aggregator.get_details_from_provider(url, provider))
    if result is None:
        rprint(f"[red]Error:[/red] No details for {url}")
        raise typer.Exit(1)

    rprint(f"\n[bold]{result.title}[/bold]")
    rprint(f"  Kind: {result.content_type.value}")
    rprint(f"  Source: {result.source}")
    if result.quality:
        rprint(f"  Quality: {result.quality}")
    if result.poster_url:
        rprint(f"  Poster: {result.poster_url}")
    if result.synopsis:
        rprint(f"  Synopsis: {result.synopsis}")

    if result.resolutions:
        rprint("\n[bold]Resolutions:[/bold]")
        for res in result.resolutions:
            link = res.download_url or res.direct_url or res.watch_url or res.url
            rprint(f"  • {res.name or res.quality} {res.size or ''} {link}")


def refresh(
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum items per provider"),
    sync: bool = typer.Option(False, "--sync", help="Run synchronously (blocking)"),
) -> None:
    """
    Refresh the latest listings of every provider through the pipeline.

    Examples:
        cinefeed refresh --sync
        cinefeed refresh --limit 20
    """
    if sync:
        rprint("\n[dim]Running synchronously...[/dim]\n")

        with console.status("[bold blue]Refreshing...[/bold blue]"):
            result = asyncio.run(refresh_latest_sync(limit=limit))

        _display_job_result(result)

        if result["status"] == "failed":
            raise typer.Exit(1)
        return

    rprint("\n[dim]Enqueueing job for async processing...[/dim]")
    try:
        job_id = asyncio.run(enqueue_refresh(limit))
    except Exception as e:
        rprint(f"\n[red]Error:[/red] Failed to enqueue job: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)

    rprint("\n[green]Job enqueued successfully![/green]")
    rprint(f"Job ID: [bold]{job_id}[/bold]")
    rprint("\nCheck status with:")
    rprint(f"  cinefeed status {job_id}")


def status(
    job_id: str = typer.Argument(..., help="Job ID"),
) -> None:
    """
    Show the status of a refresh job.

    Examples:
        cinefeed status abc123
    """
    try:
        info = asyncio.run(get_job_status(job_id))
    except Exception as e:
        rprint(f"[red]Error:[/red] Failed to get job status: {e}")
        raise typer.Exit(1)

    if info is None:
        rprint(f"[red]Error:[/red] Job '{job_id}' not found")
        raise typer.Exit(1)

    rprint(f"\n[bold]Job {job_id}[/bold]: {info['status']}")
    if info["success"] is False:
        rprint(f"[red]Job raised:[/red] {info['result']}")
    elif isinstance(info["result"], dict):
        _display_job_result(info["result"])


def worker(
    burst: bool = typer.Option(False, "--burst", help="Run in burst mode (exit when queue empty)"),
) -> None:
    """
    Start the refresh worker.

    Examples:
        cinefeed worker
        cinefeed worker --burst
    """
    from arq import run_worker

    from cinefeed.ingestion.jobs import WorkerSettings

    rprint("[bold]Starting refresh worker...[/bold]")
    rprint("Press Ctrl+C to stop\n")

    try:
        run_worker(WorkerSettings, burst=burst)
    except Exception as e:
        rprint(f"[red]Error:[/red] Worker failed: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)


def _display_job_result(result: dict) -> None:
    """Display job result in a formatted way."""
    status_value = result.get("status", "unknown")
    style = {"completed": "green", "failed": "red", "running": "blue"}.get(status_value, "dim")
    rprint(f"\n[bold]Status:[/bold] [{style}]{status_value}[/{style}]")

    table = Table(title="Refresh Summary")
    table.add_column("Provider", style="bold")
    table.add_column("Total", justify="right")
    table.add_column("Matched", justify="right")
    table.add_column("Pending", justify="right")
    table.add_column("Failed", justify="right")

    for provider_id, counts in result.get("providers", {}).items():
        table.add_row(
            provider_id,
            str(counts["total"]),
            str(counts["matched"]),
            str(counts["pending"]),
            str(counts["failed"]),
        )
    table.add_row(
        "[bold]All[/bold]",
        str(result.get("items_processed", 0)),
        str(result.get("matched", 0)),
        str(result.get("pending", 0)),
        str(result.get("failed", 0)),
    )
    console.print(table)

    if result.get("duration_seconds") is not None:
        rprint(f"Duration: {result['duration_seconds']:.1f}s")

    for error in result.get("errors", []):
        rprint(f"[red]Error:[/red] {error}")
