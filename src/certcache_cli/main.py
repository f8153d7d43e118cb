"""CLI entrypoint using typer."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from certcache_core.config.settings import CacheSettings
from certcache_core.exceptions import CacheMissError, CertCacheError
from certcache_core.observability import clear_cache_context, configure_logging
from certcache_infra.cache.cert_cache import CertCache
from certcache_infra.cache.factory import create_cache

app = typer.Typer(
    name="certcache",
    help="Encrypted certificate cache over directory, SQL or Redis storage",
)
console = Console()
logger = structlog.get_logger()

T = TypeVar("T")

EXIT_ERROR = 1
EXIT_MISS = 2


@app.command()
def get(
    key: str = typer.Argument(..., help="Cache key, e.g. a certificate domain"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write value to file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Print or save the value stored under KEY."""
    settings = _load_settings(verbose)
    data = _run(settings, lambda cache: cache.get(key))
    if output is not None:
        output.write_bytes(data)
        console.print(f"[green]Wrote {len(data)} bytes to[/green] {output}")
    else:
        typer.echo(data, nl=False)


@app.command()
def put(
    key: str = typer.Argument(..., help="Cache key"),
    source: Path = typer.Argument(..., help="File whose content is stored", exists=True),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Store the content of SOURCE under KEY."""
    settings = _load_settings(verbose)
    data = source.read_bytes()
    _run(settings, lambda cache: cache.put(key, data))
    console.print(f"[green]Stored {len(data)} bytes under[/green] {escape(key)}")


@app.command()
def delete(
    key: str = typer.Argument(..., help="Cache key"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Remove KEY from the cache."""
    settings = _load_settings(verbose)
    _run(settings, lambda cache: cache.delete(key))
    console.print(f"[green]Deleted[/green] {escape(key)}")


@app.command()
def check(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Build the configured cache and report its layers."""
    settings = _load_settings(verbose)
    layers = _run(settings, _describe)
    console.print(f"[bold green]Backend ready:[/bold green] {settings.backend}")
    for name, enabled in layers.items():
        state = "[green]on[/green]" if enabled else "[dim]off[/dim]"
        console.print(f"  {name}: {state}")


async def _describe(cache: CertCache) -> dict[str, bool]:
    """Layer flags of a constructed cache."""
    return {"encryption": cache.encrypted, "precaching": cache.use_precaching}


def _load_settings(verbose: bool) -> CacheSettings:
    """Read settings from the environment and configure logging."""
    try:
        settings = CacheSettings()
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] invalid configuration\n{escape(str(exc))}")
        raise typer.Exit(code=EXIT_ERROR) from exc
    if verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)
    return settings


def _run(settings: CacheSettings, operation: Callable[[CertCache], Awaitable[T]]) -> T:
    """Build the cache, run one operation on it and close it."""
    try:
        return asyncio.run(_with_cache(settings, operation))
    except CacheMissError as exc:
        console.print(f"[yellow]Not found:[/yellow] {escape(exc.key)}")
        raise typer.Exit(code=EXIT_MISS) from exc
    except CertCacheError as exc:
        logger.error("cache_operation_failed", backend=settings.backend, error=str(exc))
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=EXIT_ERROR) from exc


async def _with_cache(
    settings: CacheSettings,
    operation: Callable[[CertCache], Awaitable[T]],
) -> T:
    """Open the cache from settings for the duration of one operation."""
    cache = await create_cache(settings.as_options())
    try:
        return await operation(cache)
    finally:
        await cache.close()
        clear_cache_context()


if __name__ == "__main__":
    app()
