"""Pytest configuration and shared fixtures for song-credits tests."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import httpx
import pytest

from song_credits.config import Config
from song_credits.http_client import ApiClient
from song_credits.rate_limiter import PacerRegistry

# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Monotonic clock whose sleep advances time instead of blocking."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.slept: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
        self.now += seconds


class RecordingSink:
    """EventSink that keeps every event for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[int, str, dict[str, Any]]] = []
        self.api_errors: list[tuple[str, str]] = []

    def log(self, level: int, message: str, context: Mapping[str, Any] | None = None) -> None:
        from song_credits.diagnostics import bounded_context

        self.events.append((level, message, bounded_context(context)))

    def api_error(self, source: str, kind: str) -> None:
        self.api_errors.append((source, kind))


Route = Callable[[httpx.Request], httpx.Response]


class Router:
    """
    MockTransport handler dispatching on (host, path).

    Unknown routes answer 404. Every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.requests: list[httpx.Request] = []

    def add(self, host: str, path: str, route: Route | Any) -> None:
        if not callable(route):
            payload = route
            route = lambda request: httpx.Response(200, json=payload)  # noqa: E731
        self.routes[(host, path)] = route

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        return route(request)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def make_api(clock: FakeClock, sink: RecordingSink):
    """Build an ApiClient on a MockTransport with the fake clock."""
    clients: list[ApiClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response], config: Config | None = None):
        config = config or Config()
        live = config.live_sources
        pacers = PacerRegistry(
            {
                "musicbrainz": live.musicbrainz_min_interval_s,
                "discogs": live.discogs_min_interval_s,
                "wikidata": live.wikidata_min_interval_s,
            },
            clock=clock,
            sleep=clock.sleep,
        )
        client = ApiClient(
            config,
            events=sink,
            transport=httpx.MockTransport(handler),
            pacers=pacers,
            clock=clock,
            sleep=clock.sleep,
        )
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def discogs_config() -> Config:
    return Config.model_validate({"live_sources": {"discogs_token": "secret-token"}})


# =============================================================================
# Provider payloads ("Superstition" by Stevie Wonder)
# =============================================================================

MB_HOST = "musicbrainz.org"
DISCOGS_HOST = "api.discogs.com"
WD_HOST = "www.wikidata.org"

MB_SEARCH = {
    "recordings": [
        {
            "id": "rec-live",
            "title": "Superstition (live)",
            "first-release-date": "1980",
            "artist-credit": [{"name": "Stevie Wonder", "joinphrase": ""}],
        },
        {
            "id": "rec-1",
            "title": "Superstition",
            "first-release-date": "1972-10-24",
            "artist-credit": [
                {"name": "Stevie Wonder", "joinphrase": "", "artist": {"name": "Stevie Wonder"}}
            ],
        },
    ]
}

MB_RECORDING = {
    "id": "rec-1",
    "relations": [
        {"type": "producer", "artist": {"name": "Robert Margouleff"}, "attributes": []},
        {"type": "instrument", "artist": {"name": "Stevie Wonder"}, "attributes": ["clavinet"]},
        {"type": "performance", "work": {"id": "work-1"}},
    ],
}

MB_WORK = {
    "id": "work-1",
    "relations": [
        {"type": "composer", "artist": {"name": "Stevie Wonder"}},
        {"type": "lyricist", "artist": {"name": "Stevie Wonder"}},
        {"type": "misc", "work": {"id": "work-2"}},
    ],
}

DISCOGS_SEARCH = {
    "results": [
        {"id": 0, "title": "ignored"},
        {"id": 249504, "title": "Stevie Wonder - Talking Book", "year": "1972"},
    ]
}

DISCOGS_RELEASE = {
    "id": 249504,
    "year": 1972,
    "artists": [{"name": "Stevie Wonder"}],
    "extraartists": [
        {"name": "Robert Margouleff", "role": "Producer"},
        {"name": "Malcolm Cecil", "role": "Engineer"},
    ],
    "tracklist": [
        {"title": "You Are The Sunshine Of My Life"},
        {
            "title": "Superstition",
            "extraartists": [{"name": "Trevor Laurence", "role": "Tenor Saxophone"}],
        },
    ],
}

WD_SEARCH = {
    "search": [
        {"id": "Q1", "label": "Superstition (film)"},
        {"id": "Q2", "label": "Superstition"},
        {"id": "Q9", "label": "Superstition (missing)"},
    ]
}

WD_ENTITIES = {
    "Q1": {"entities": {"Q1": {"labels": {"en": {"value": "Superstition (film)"}}, "claims": {}}}},
    "Q2": {
        "entities": {
            "Q2": {
                "labels": {"en": {"value": "Superstition"}},
                "claims": {
                    "P175": [{"mainsnak": {"datavalue": {"value": {"id": "Q3"}}}}],
                },
            }
        }
    },
}

WD_LABELS = {"entities": {"Q3": {"id": "Q3", "labels": {"en": {"value": "Stevie Wonder"}}}}}


def wikidata_api(request: httpx.Request) -> httpx.Response:
    action = request.url.params.get("action")
    if action == "wbsearchentities":
        return httpx.Response(200, json=WD_SEARCH)
    if action == "wbgetentities":
        return httpx.Response(200, json=WD_LABELS)
    return httpx.Response(400)


@pytest.fixture
def musicbrainz_routes(router: Router) -> Router:
    router.add(MB_HOST, "/ws/2/recording/", MB_SEARCH)
    router.add(MB_HOST, "/ws/2/recording/rec-1", MB_RECORDING)
    router.add(MB_HOST, "/ws/2/work/work-1", MB_WORK)
    return router


@pytest.fixture
def discogs_routes(router: Router) -> Router:
    router.add(DISCOGS_HOST, "/database/search", DISCOGS_SEARCH)
    router.add(DISCOGS_HOST, "/releases/249504", DISCOGS_RELEASE)
    return router


@pytest.fixture
def wikidata_routes(router: Router) -> Router:
    router.add(WD_HOST, "/w/api.php", wikidata_api)
    for qid, document in WD_ENTITIES.items():
        router.add(WD_HOST, f"/wiki/Special:EntityData/{qid}.json", document)
    return router
