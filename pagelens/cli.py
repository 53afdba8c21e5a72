"""pagelens CLI: serve rendered pages and work with the catalog.

Usage:
    pagelens serve                          # Start the render service
    pagelens catalog                        # Refresh once and list the catalog
    pagelens catalog --local-dir ./catalog  # ... from local definitions
    pagelens render URL TEMPLATE            # Render one page to stdout
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import click

from pagelens.config import Settings
from pagelens.service import RenderService, build_service


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _settings(local_dir: str | None, **overrides: Any) -> Settings:
    settings = Settings()
    updates = {k: v for k, v in overrides.items() if v is not None}
    if local_dir is not None:
        updates["local_catalog_dir"] = Path(local_dir)
    return settings.model_copy(update=updates)


local_dir_option = click.option(
    "--local-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Read definitions from this directory instead of GitHub.",
)


@click.group()
@click.version_option(package_name="pagelens")
def cli() -> None:
    """pagelens - render third-party pages through catalog templates."""


@cli.command()
@click.option("--host", default=None, help="Host to bind the server to.")
@click.option("--port", default=None, type=int, help="Port to bind the server to.")
@local_dir_option
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def serve(
    host: str | None, port: int | None, local_dir: str | None, verbose: bool
) -> None:
    """Start the render service."""
    import uvicorn

    from pagelens.web.app import create_app

    settings = _settings(local_dir, host=host, port=port)
    _configure_logging(verbose)

    click.echo(f"Starting render service at http://{settings.host}:{settings.port}")
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="info" if verbose else "warning",
    )


async def _refreshed_service(settings: Settings) -> RenderService:
    service = build_service(settings)
    await service.registry.refresh_and_wait()
    return service


@cli.command()
@local_dir_option
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def catalog(local_dir: str | None, verbose: bool) -> None:
    """Refresh the catalog once and list its parsers and templates."""
    _configure_logging(verbose)

    async def run() -> dict[str, Any]:
        service = await _refreshed_service(_settings(local_dir))
        try:
            return service.registry.status()
        finally:
            await service.close()

    status = asyncio.run(run())

    click.echo(f"Parsers ({len(status['parsers'])}):")
    for entry in status["parsers"]:
        click.echo(f"  {entry['name']}  {entry['link']}")
    click.echo(f"Templates ({len(status['templates'])}):")
    for entry in status["templates"]:
        click.echo(f"  {entry['name']}  {entry['link']}")

    if status["last_refresh_error"]:
        click.echo(f"\nRefresh errors:\n{status['last_refresh_error']}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.argument("template")
@local_dir_option
@click.option("--user-agent", default=None, help="User-Agent for the page fetch.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def render(
    url: str,
    template: str,
    local_dir: str | None,
    user_agent: str | None,
    verbose: bool,
) -> None:
    """Render URL through TEMPLATE and print the result."""
    _configure_logging(verbose)

    async def run():
        service = await _refreshed_service(_settings(local_dir))
        try:
            return await service.pipeline.handle(url, template, user_agent)
        finally:
            await service.close()

    result = asyncio.run(run())
    if result.status_code != 200:
        click.echo(result.body, err=True)
        sys.exit(1)
    click.echo(result.body)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
