"""CLI entry point for page comparison."""

from __future__ import annotations

import asyncio
import atexit
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pagediff.browser.manager import BrowserManager
from pagediff.errors import PageDiffError, ValidationError
from pagediff.models.comparison import CaptureRequest, ComparisonSummary
from pagediff.models.config import DEVICE_PRESETS, CompareConfig
from pagediff.orchestrator import ComparisonOrchestrator

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _load_config(path: Optional[str]) -> CompareConfig:
    if path is None:
        return CompareConfig()
    try:
        return CompareConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'pagediff init' to create a default config.")
        sys.exit(1)


async def _run_comparison(config: CompareConfig, request: CaptureRequest) -> ComparisonSummary:
    async with BrowserManager(config.browser) as browser_manager:
        orchestrator = ComparisonOrchestrator.from_config(config, browser_manager)
        return await orchestrator.compare(request)


def _print_summary(summary: ComparisonSummary) -> None:
    table = Table(title="Comparison Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("URL A", summary.url_a)
    table.add_row("URL B", summary.url_b)
    table.add_row("Compared region", f"{summary.viewport.width}x{summary.viewport.height}")
    table.add_row("Mismatched pixels", f"{summary.mismatch_pixels:,} / {summary.total_pixels:,}")
    table.add_row("Mismatch", f"[red]{summary.mismatch_percentage:.2f}%[/red]")
    table.add_row("Similarity", f"[green]{summary.similarity_percentage:.2f}%[/green]")
    console.print(table)

    console.print(f"  Screenshot A: [blue]{summary.screenshot_a_path}[/blue]")
    console.print(f"  Screenshot B: [blue]{summary.screenshot_b_path}[/blue]")
    console.print(f"  Diff image:   [blue]{summary.diff_image_path}[/blue]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual diff of two web pages rendered under the same viewport."""
    setup_logging(verbose)


@cli.command()
@click.argument("url_a")
@click.argument("url_b")
@click.option("--width", type=int, default=None, help="Viewport width in pixels")
@click.option("--height", type=int, default=None, help="Viewport height in pixels")
@click.option("--device", "-d", type=click.Choice(sorted(DEVICE_PRESETS)), default=None,
              help="Use a named device viewport")
@click.option("--config", "-c", default=None, help="Config file path")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
def compare(
    url_a: str,
    url_b: str,
    width: Optional[int],
    height: Optional[int],
    device: Optional[str],
    config: Optional[str],
    as_json: bool,
) -> None:
    """Capture URL_A and URL_B and report how much they differ."""
    cfg = _load_config(config)
    if device and (width or height):
        raise click.UsageError("--device cannot be combined with --width/--height")

    viewport = DEVICE_PRESETS[device] if device else cfg.default_viewport
    payload = {
        "urlA": url_a,
        "urlB": url_b,
        "viewport": {"width": width or viewport.width, "height": height or viewport.height},
    }
    try:
        request = CaptureRequest.from_payload(payload, cfg.default_viewport)
    except ValidationError as e:
        raise click.UsageError(str(e))

    try:
        summary = asyncio.run(_run_comparison(cfg, request))
    except PageDiffError as e:
        logger.debug("Comparison failed", exc_info=True)
        console.print(f"[red]Comparison failed:[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(summary.to_response(), indent=2))
    else:
        _print_summary(summary)


@cli.command()
@click.option("--host", default=None, help="Interface to bind")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on")
@click.option("--config", "-c", default=None, help="Config file path")
def serve(host: Optional[str], port: Optional[int], config: Optional[str]) -> None:
    """Serve the comparison API and stored artifacts over HTTP."""
    from pagediff.web.app import create_app
    from pagediff.web.background import ComparisonService

    cfg = _load_config(config)
    service = ComparisonService(cfg)
    atexit.register(service.shutdown)

    app = create_app(cfg, service)
    host = host or cfg.server.host
    port = port or cfg.server.port
    console.print(f"[green]Server running on[/green] http://{host}:{port}")
    app.run(host=host, port=port, threaded=True)


@cli.command()
def devices() -> None:
    """List the named device viewports."""
    table = Table(title="Device Presets")
    table.add_column("Name", style="bold")
    table.add_column("Viewport")
    for name, viewport in DEVICE_PRESETS.items():
        table.add_row(name, f"{viewport.width}x{viewport.height}")
    console.print(table)


@cli.command()
@click.option("--path", "-o", default="pagediff.json", help="Where to write the config")
def init(path: str) -> None:
    """Create a default configuration file."""
    config_path = Path(path)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    CompareConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print(f"  [blue]pagediff compare URL_A URL_B --config {config_path}[/blue]")


if __name__ == "__main__":
    cli()
