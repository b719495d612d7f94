"""Click CLI for photocache: produce and manage cached thumbnails."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from photocache.config.hierarchy import load_config_hierarchy
from photocache.config.schema import PhotoCacheSettings, build_monitor, build_pipeline
from photocache.types import ResolveRequest, TargetSize

console = Console()
error_console = Console(stderr=True)

# Images per worker loaded into memory at once by `warm`
_WARM_BATCH_FACTOR = 8


def _setup_logging(verbosity: int, default_level: str = "WARNING") -> None:
    """Configure logging based on verbosity level."""
    level = logging.getLevelName(default_level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _load_settings(**overrides: object) -> PhotoCacheSettings:
    config = load_config_hierarchy(**overrides)
    try:
        return PhotoCacheSettings.from_config(config)
    except ValidationError as e:
        error_console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)


def _parse_size(ctx: click.Context, param: click.Parameter, value: str) -> TargetSize:
    try:
        size = TargetSize.parse(value)
    except ValueError:
        raise click.BadParameter(f"expected WIDTHxHEIGHT or SIDE, got {value!r}") from None
    if size.is_degenerate:
        raise click.BadParameter("width and height must be positive")
    return size


@click.group()
@click.version_option(package_name="photocache")
def cli() -> None:
    """photocache: cached, downsampled images for photo-heavy apps."""


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(), required=True, help="Where to write the image.")
@click.option(
    "--size", "target_size", default="600x600", callback=_parse_size,
    help="Target size in points, WIDTHxHEIGHT or SIDE.",
)
@click.option("--scale", type=float, default=None, help="Pixels per point.")
@click.option("--id", "cache_id", type=str, default=None, help="Logical id used in the cache key.")
@click.option("--no-disk", is_flag=True, default=False, help="Skip the disk tier.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def thumb(
    input_path: str,
    output: str,
    target_size: TargetSize,
    scale: float | None,
    cache_id: str | None,
    no_disk: bool,
    verbose: int,
) -> None:
    """Resolve one image through the cache and save the result."""
    from photocache.utils.image import encode_image, load_image

    settings = _load_settings(scale=scale, disk_disabled=no_disk or None)
    _setup_logging(verbose, settings.log_level)

    try:
        source = load_image(input_path)
    except (FileNotFoundError, ValueError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    pipeline = build_pipeline(settings)

    async def _run():
        try:
            return await pipeline.resolve_for(source, target_size, settings.scale, cache_id)
        finally:
            await pipeline.drain()

    try:
        image = asyncio.run(_run())
    finally:
        pipeline.close()

    if image is None:
        error_console.print(f"[red]Error:[/red] cannot decode {input_path}")
        sys.exit(1)

    data = encode_image(image, quality=settings.jpeg_quality)
    if data is None:
        error_console.print(f"[red]Error:[/red] cannot encode {image.mode} image")
        sys.exit(1)
    out_path = Path(output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    console.print(f"[green]Written {image.width}x{image.height} to {out_path}[/green]")

    if verbose >= 1:
        _print_pipeline_stats(pipeline)


@cli.command()
@click.argument("input_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--size", "target_size", default="110x120", callback=_parse_size,
    help="Target size in points, WIDTHxHEIGHT or SIDE.",
)
@click.option("--scale", type=float, default=None, help="Pixels per point.")
@click.option("--workers", type=int, default=None, help="Concurrent decode workers.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def warm(
    input_dir: str,
    target_size: TargetSize,
    scale: float | None,
    workers: int | None,
    verbose: int,
) -> None:
    """Pre-populate the disk cache for every image in a directory."""
    from photocache.cache.keys import downsample_key
    from photocache.utils.image import is_supported, load_image

    settings = _load_settings(scale=scale, decode_workers=workers)
    _setup_logging(verbose, settings.log_level)

    files = [f for f in sorted(Path(input_dir).iterdir()) if f.is_file() and is_supported(f)]
    if not files:
        error_console.print("[yellow]No supported files found in directory.[/yellow]")
        return

    def _requests(batch: list[Path]) -> list[ResolveRequest]:
        requests = []
        for f in batch:
            try:
                source = load_image(f)
            except ValueError as e:
                error_console.print(f"[yellow]Skipping {f.name}:[/yellow] {e}")
                continue
            requests.append(ResolveRequest(
                source=source,
                cache_key=downsample_key(f.stem, target_size, settings.scale),
                target_size=target_size,
                scale=settings.scale,
            ))
        return requests

    pipeline = build_pipeline(settings)
    monitor = build_monitor(settings)
    batch_size = settings.decode_workers * _WARM_BATCH_FACTOR

    async def _run() -> tuple[int, int]:
        pipeline.attach(monitor)
        ok = total = 0
        try:
            for start in range(0, len(files), batch_size):
                requests = _requests(files[start:start + batch_size])
                results = await pipeline.resolve_many(requests)
                ok += sum(1 for r in results if r is not None)
                total += len(requests)
                # Poll RSS between batches
                monitor.check()
        finally:
            await pipeline.drain()
        return ok, total

    try:
        ok, total = asyncio.run(_run())
    finally:
        pipeline.close()

    console.print(f"[green]Cached {ok}/{total} images[/green]")
    if verbose >= 1:
        _print_pipeline_stats(pipeline)


def _print_pipeline_stats(pipeline: object) -> None:
    """Print get-or-produce counters."""
    from photocache.pipeline.engine import ImagePipeline

    if not isinstance(pipeline, ImagePipeline):
        return

    stats = pipeline.stats()
    table = Table(title="Pipeline Summary", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Memory hits", str(stats.memory_hits))
    table.add_row("Disk hits", str(stats.disk_hits))
    table.add_row("Decodes", str(stats.decodes))
    table.add_row("Failures", str(stats.failures))
    table.add_row("Coalesced", str(stats.coalesced))
    table.add_row("Hit rate", f"{stats.hit_rate:.1%}")
    error_console.print(table)


@cli.group()
def cache() -> None:
    """Cache management commands."""


@cache.command("stats")
def cache_stats() -> None:
    """Show disk cache statistics."""
    from photocache.cache.disk import DiskCache

    settings = _load_settings()
    disk = DiskCache(directory=settings.cache_dir.expanduser())

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Directory", str(disk.directory))
    table.add_row("Entries", str(disk.entry_count))
    table.add_row("Size (MB)", f"{disk.size_mb:.1f}")
    table.add_row("Memory count limit", str(settings.memory_count_limit))
    table.add_row("Memory cost limit (MB)", str(settings.memory_cost_limit // (1024 * 1024)))

    console.print(table)


@cache.command("clear")
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
def cache_clear() -> None:
    """Delete every cached image on disk."""
    from photocache.cache.disk import DiskCache

    settings = _load_settings()
    DiskCache(directory=settings.cache_dir.expanduser()).remove_all()
    console.print("[green]Cache cleared.[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
