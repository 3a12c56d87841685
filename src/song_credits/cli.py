"""CLI for song-credits using Typer and Rich."""

from __future__ import annotations

import json
import logging
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape

from song_credits.aggregator import CreditAggregator
from song_credits.config import Config
from song_credits.console import (
    credits_table,
    metrics_table,
    print_error,
    print_success,
    print_warning,
    set_console,
    status,
    status_table,
)
from song_credits.console import (
    print as cprint,
)
from song_credits.diagnostics import configure_rich_logging
from song_credits.lookup import CreditsLookup, InvalidQueryError
from song_credits.lookup_cache import LookupCache


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    JSON = "json"


class ExitCode:
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1
    NO_RESULTS = 2


app = typer.Typer(
    name="song-credits",
    help="Song credits from MusicBrainz, Discogs and Wikidata",
    no_args_is_help=True,
    add_completion=False,
)

cache_app = typer.Typer(help="Lookup cache management commands")
app.add_typer(cache_app, name="cache")


class AppState:
    """Global application state passed between commands."""

    config: Config
    verbose: int


state = AppState()


def _emit_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _open_cache() -> LookupCache:
    return LookupCache(state.config.cache.directory)


@app.callback()
def main(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Path to configuration TOML file", exists=True),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity"),
    ] = 0,
) -> None:
    """Song credits: resolve an artist and title into canonical credits."""
    logger = logging.getLogger(__name__)

    cfg = Config.load(config_path)

    if verbose > 0:
        log_level = logging.DEBUG if verbose >= 2 else logging.INFO
    else:
        log_level = getattr(logging, cfg.logging.level.upper(), logging.WARNING)

    # Log records go to stderr; command output (including JSON) to stdout
    configure_rich_logging(level=log_level, format_string=cfg.logging.format)
    set_console(Console())

    # Suppress external library logging unless very verbose (-vvv)
    if verbose < 3:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    if config_path:
        logger.info("Loaded config from %s", config_path)

    state.config = cfg
    state.verbose = verbose


@app.command()
def lookup(
    artist: Annotated[str, typer.Argument(help="Artist name")],
    title: Annotated[str, typer.Argument(help="Song title")],
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Bypass the lookup cache")] = False,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
    stats: Annotated[
        bool, typer.Option("--stats", help="Also show lookup counters and latency")
    ] = False,
) -> None:
    """Look up credits for a song."""
    service = CreditsLookup(state.config)
    try:
        with status(f"Looking up {artist} - {title}..."):
            outcome = service.lookup(artist, title, use_cache=not no_cache)
    except InvalidQueryError as exc:
        print_error(str(exc))
        raise typer.Exit(code=ExitCode.ERROR) from exc
    finally:
        service.close()

    snapshot = service.metrics_snapshot() if stats else None

    if not outcome.found or outcome.result is None:
        if output == OutputFormat.JSON:
            payload: dict[str, Any] = {"found": False, "message": outcome.message}
            if snapshot is not None:
                payload["metrics"] = snapshot
            _emit_json(payload)
        else:
            print_warning(outcome.message)
            if snapshot is not None:
                cprint(metrics_table(snapshot))
        raise typer.Exit(code=ExitCode.NO_RESULTS)

    if output == OutputFormat.JSON:
        payload = {"found": True, "cached": outcome.cached, **outcome.result.to_dict()}
        if snapshot is not None:
            payload["metrics"] = snapshot
        _emit_json(payload)
    else:
        cprint(credits_table(outcome.result))
        if outcome.cached:
            cprint("[dim](from cache)[/dim]")
        if snapshot is not None:
            cprint(metrics_table(snapshot))


@app.command()
def check(
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
) -> None:
    """Check connectivity to each provider."""
    with CreditAggregator(state.config) as aggregator:
        results = aggregator.check_connections()

    if output == OutputFormat.JSON:
        _emit_json(results)
    else:
        cprint(status_table(results))

    # A skipped Discogs probe is not a failure
    failed = [
        source
        for source, info in results.items()
        if not info["ok"] and not str(info["message"]).startswith("Skipped")
    ]
    if failed:
        raise typer.Exit(code=ExitCode.ERROR)


@app.command()
def suggest(
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
) -> None:
    """List cached artist/title pairs."""
    service = CreditsLookup(state.config)
    try:
        pairs = service.suggestions()
    finally:
        service.close()

    if output == OutputFormat.JSON:
        _emit_json(pairs)
        return
    if not pairs:
        print_warning("No cached lookups")
        return
    for pair in pairs:
        cprint(f"{escape(pair['title'])} [dim]by[/dim] {escape(pair['artist'])}", highlight=False)


# ====================================================================
# CACHE COMMANDS
# ====================================================================


@cache_app.command("list")
def cache_list() -> None:
    """List unexpired cache entries, newest first."""
    entries = _open_cache().entries()
    if not entries:
        print_warning("Cache is empty")
        return
    for key, payload in entries:
        cprint(f"{key}  {payload.get('artist', '')} - {payload.get('title', '')}", markup=False)


@cache_app.command("purge")
def cache_purge() -> None:
    """Remove expired cache entries."""
    removed = _open_cache().purge_expired()
    print_success(f"Purged {removed} expired entries")


@cache_app.command("clear")
def cache_clear(
    force: Annotated[bool, typer.Option("--force", help="Skip confirmation prompt")] = False,
) -> None:
    """Remove every cache entry."""
    if not force and not typer.confirm("Clear the whole lookup cache?"):
        raise typer.Exit(code=ExitCode.SUCCESS)
    _open_cache().clear()
    print_success("Cache cleared")


@cache_app.command("delete")
def cache_delete(
    key: Annotated[str, typer.Argument(help="Cache key (song_credits_...)")],
) -> None:
    """Remove one cache entry."""
    if not _open_cache().invalidate(key):
        print_warning(f"No cache entry {key}")
        raise typer.Exit(code=ExitCode.NO_RESULTS)
    print_success(f"Deleted {key}")


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
