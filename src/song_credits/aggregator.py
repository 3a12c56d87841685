"""
Credit aggregation across providers.

MusicBrainz is always queried, Discogs only when a token is configured and
Wikidata only as a fallback when no performer credits were found. Every
entry goes through the same dedup/merge rule and the finished result is
sanitized before it is returned.
"""

from __future__ import annotations

import logging
from typing import Any

from song_credits.config import Config
from song_credits.credits import Category, CreditsResult
from song_credits.diagnostics import EventSink
from song_credits.discogs import DiscogsSource
from song_credits.http_client import ApiClient, ApiError, Source
from song_credits.musicbrainz import MusicBrainzSource
from song_credits.wikidata import WikidataSource

log = logging.getLogger(__name__)


class CreditAggregator:
    """
    Resolve one (artist, title) query into canonical credits.

    Owns the ApiClient it creates; pass `api` to share a client (tests pass
    one built on an httpx.MockTransport).
    """

    def __init__(
        self,
        config: Config | None = None,
        api: ApiClient | None = None,
        events: EventSink | None = None,
    ):
        self.config = config or Config()
        self._owns_api = api is None
        self.api = api or ApiClient(self.config, events=events)
        self.musicbrainz = MusicBrainzSource(self.api)
        self.discogs = DiscogsSource(self.api)
        self.wikidata = WikidataSource(self.api)

    def fetch_credits(self, artist: str, title: str) -> CreditsResult:
        """
        Fetch, merge and sanitize credits for a song.

        Provider failures are logged by the adapters and never raised here.

        Args:
            artist: Artist name as entered
            title: Song title as entered

        Returns:
            Sanitized CreditsResult (empty categories when nothing was found)
        """
        credits = CreditsResult(artist=artist, title=title)

        mb = self.musicbrainz.fetch(artist, title)
        if mb.categories:
            credits.categories.merge(mb.categories)
            credits.add_source(self.musicbrainz.label)
            credits.artist = mb.artist or credits.artist
            credits.title = mb.title or credits.title
            credits.year = mb.year or credits.year
        log.debug("MusicBrainz returned %d categories", len(mb.categories))

        if self.config.live_sources.discogs_enabled:
            dc = self.discogs.fetch(artist, title)
            if dc.categories:
                credits.categories.merge(dc.categories)
                credits.add_source(self.discogs.label)
            if not credits.year and dc.year:
                credits.year = dc.year
            log.debug("Discogs returned %d categories", len(dc.categories))

        if not credits.categories.has(Category.PERFORMERS):
            wd = self.wikidata.fetch(artist, title)
            for entry in wd.categories.get(Category.PERFORMERS):
                credits.categories.append(Category.PERFORMERS, entry.name, entry.role)
            if credits.categories.has(Category.PERFORMERS):
                credits.add_source(self.wikidata.label)

        return credits.sanitized()

    def check_connections(self) -> dict[str, dict[str, Any]]:
        """
        Probe each provider once.

        Discogs is reported as skipped when no token is configured.

        Returns:
            Mapping of provider id to {"ok": bool, "message": str}
        """
        results: dict[str, dict[str, Any]] = {}

        try:
            self.musicbrainz.get_json(
                f"{MusicBrainzSource.BASE_URL}recording/",
                {
                    "query": 'recording:"Superstition" AND artist:"Stevie Wonder"',
                    "fmt": "json",
                    "limit": 1,
                },
            )
            results[Source.MUSICBRAINZ] = {"ok": True, "message": "Reachable"}
        except ApiError as exc:
            results[Source.MUSICBRAINZ] = {"ok": False, "message": str(exc)}

        if not self.config.live_sources.discogs_enabled:
            results[Source.DISCOGS] = {"ok": False, "message": "Skipped: no token configured"}
        else:
            try:
                self.discogs.get_json(f"{DiscogsSource.BASE_URL}oauth/identity")
                results[Source.DISCOGS] = {"ok": True, "message": "Reachable and authenticated"}
            except ApiError as exc:
                results[Source.DISCOGS] = {"ok": False, "message": str(exc)}

        try:
            self.wikidata.get_json(
                WikidataSource.API_URL,
                {
                    "action": "wbsearchentities",
                    "search": "Superstition",
                    "language": "en",
                    "type": "item",
                    "limit": 1,
                    "format": "json",
                },
            )
            results[Source.WIKIDATA] = {"ok": True, "message": "Reachable"}
        except ApiError as exc:
            results[Source.WIKIDATA] = {"ok": False, "message": str(exc)}

        return {str(source): status for source, status in results.items()}

    def close(self) -> None:
        if self._owns_api:
            self.api.close()

    def __enter__(self) -> CreditAggregator:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def fetch_credits(artist: str, title: str, config: Config | None = None) -> CreditsResult:
    """One-shot lookup with a short-lived client."""
    with CreditAggregator(config) as aggregator:
        return aggregator.fetch_credits(artist, title)
