"""Cinefeed CLI using Typer."""

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.logging import RichHandler

from cinefeed import __version__
from cinefeed.cli import ingest

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

app = typer.Typer(
    name="cinefeed",
    help="Cinefeed - Aggregate content listings and match them against a metadata catalog",
    add_completion=False,
)

app.add_typer(ingest.providers_app, name="providers")
app.command("search")(ingest.search)
app.command("latest")(ingest.latest)
app.command("details")(ingest.details)
app.command("refresh")(ingest.refresh)
app.command("status")(ingest.status)
app.command("worker")(ingest.worker)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to providers.yaml"
    ),
) -> None:
    """Configure logging and the providers file for every command."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=False)],
    )
    if config is not None:
        os.environ["CINEFEED_CONFIG_PATH"] = str(config)


@app.command()
def version() -> None:
    """Show the Cinefeed version."""
    typer.echo(f"Cinefeed v{__version__}")


@app.command()
def check_config() -> None:
    """Check the current configuration status."""
    from cinefeed.ingestion.jobs import CATALOG_FACTORY_ENV
    from cinefeed.ingestion.registry import default_config_path

    typer.echo("Cinefeed Configuration")
    typer.echo("=" * 40)

    env_found = False
    for _env_path in _env_paths:
        if _env_path.exists():
            typer.echo(f"  .env file: {_env_path}")
            env_found = True
            break
    if not env_found:
        typer.echo("  .env file: Not found")

    config_path = default_config_path()
    state = "found" if config_path.exists() else "not found"
    typer.echo(f"  Providers file: {config_path} ({state})")

    factory = os.environ.get(CATALOG_FACTORY_ENV)
    typer.echo(f"  Catalog client: {factory or 'Not configured (matching unavailable)'}")

    redis = f"{os.environ.get('REDIS_HOST', 'localhost')}:{os.environ.get('REDIS_PORT', '6379')}"
    typer.echo(f"  Redis: {redis}")


if __name__ == "__main__":
    app()
