"""
Lookup service: input validation, result caching and metrics around the
credit aggregator.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from song_credits.aggregator import CreditAggregator
from song_credits.config import Config
from song_credits.credits import CreditsResult, clean_text
from song_credits.diagnostics import LoggingEventSink
from song_credits.lookup_cache import LookupCache, make_cache_key
from song_credits.metrics import LookupMetrics

log = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 200
MAX_SUGGESTIONS = 100

NO_CREDITS_MESSAGE = "No credits found. Check spelling or try the full official title."


class InvalidQueryError(ValueError):
    """Artist or title is missing or too long."""


@dataclass
class LookupOutcome:
    """Result of one lookup request."""

    result: CreditsResult | None
    cached: bool = False
    message: str = ""

    @property
    def found(self) -> bool:
        return self.result is not None and self.result.found


def validate_query(artist: str, title: str) -> tuple[str, str]:
    """
    Clean and validate user input.

    Returns:
        Tuple of (artist, title) with markup and extra whitespace removed

    Raises:
        InvalidQueryError: if either value is empty or over 200 characters
    """
    artist = clean_text(artist)
    title = clean_text(title)
    if not artist or not title:
        raise InvalidQueryError("Please provide both an artist name and a song title.")
    if len(artist) > MAX_INPUT_LENGTH or len(title) > MAX_INPUT_LENGTH:
        raise InvalidQueryError(f"Input exceeds the {MAX_INPUT_LENGTH}-character limit.")
    return artist, title


class CreditsLookup:
    """
    Cached, metered credit lookups.

    Found results are cached for `cache.duration_hours`; a lookup that finds
    nothing is reported as such and not cached.
    """

    def __init__(
        self,
        config: Config | None = None,
        aggregator: CreditAggregator | None = None,
        cache: LookupCache | None = None,
        metrics: LookupMetrics | None = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize the lookup service.

        Args:
            config: Immutable configuration (defaults when omitted)
            aggregator: Credit aggregator; built from config when omitted
            cache: Result cache; built from `config.cache` when omitted and enabled
            metrics: Counters shared with the HTTP layer's event sink
            timer: Monotonic timer used for latency
        """
        self.config = config or Config()
        self.metrics = metrics or LookupMetrics()
        if aggregator is None:
            events = LoggingEventSink(
                metrics=self.metrics, debug_events=self.config.logging.debug_events
            )
            aggregator = CreditAggregator(self.config, events=events)
        self.aggregator = aggregator
        if cache is None and self.config.cache.enabled:
            cache = LookupCache(self.config.cache.directory)
        self.cache = cache
        self._timer = timer

    def _finish(self, started_at: float, counters: list[str], sources: list[str]) -> None:
        self.metrics.increment("total_requests")
        for name in counters:
            self.metrics.increment(name)
        self.metrics.record_latency((self._timer() - started_at) * 1000)
        self.metrics.record_sources(sources)

    def lookup(self, artist: str, title: str, use_cache: bool = True) -> LookupOutcome:
        """
        Look up credits for a song.

        Args:
            artist: Artist name
            title: Song title
            use_cache: Read and write the result cache

        Returns:
            LookupOutcome; `found` is False when no source had credits

        Raises:
            InvalidQueryError: for empty or over-long input
        """
        started_at = self._timer()
        artist, title = validate_query(artist, title)

        cache = self.cache if use_cache else None
        key = make_cache_key(artist, title)

        if cache is not None:
            cached = cache.get(key)
            if cached is not None:
                result = CreditsResult.from_dict(cached)
                log.info("Cache hit for %s", key)
                self._finish(started_at, ["cache_hits", "successful_lookups"], result.sources)
                return LookupOutcome(result=result, cached=True)

        result = self.aggregator.fetch_credits(artist, title)
        if not result.found:
            self._finish(started_at, ["cache_misses", "failed_lookups"], [])
            return LookupOutcome(result=None, message=NO_CREDITS_MESSAGE)

        if cache is not None:
            cache.set(key, result.to_dict(), self.config.cache.ttl_seconds)
        self._finish(started_at, ["cache_misses", "successful_lookups"], result.sources)
        return LookupOutcome(result=result)

    def suggestions(self) -> list[dict[str, str]]:
        """Unique cached artist/title pairs, sorted by title (at most 100)."""
        if self.cache is None:
            return []

        seen: set[str] = set()
        pairs: list[dict[str, str]] = []
        for _key, payload in self.cache.entries():
            artist = clean_text(payload.get("artist"))
            title = clean_text(payload.get("title"))
            if not artist or not title:
                continue
            identity = f"{artist}|{title}".lower()
            if identity in seen:
                continue
            seen.add(identity)
            pairs.append({"artist": artist, "title": title})

        pairs.sort(key=lambda pair: pair["title"])
        return pairs[:MAX_SUGGESTIONS]

    def metrics_snapshot(self) -> dict[str, Any]:
        return self.metrics.snapshot()

    def close(self) -> None:
        self.aggregator.close()
