"""Tests for the cached, metered lookup service."""

from __future__ import annotations

import pytest

from song_credits.config import Config
from song_credits.credits import Category, CreditsResult
from song_credits.lookup import (
    MAX_SUGGESTIONS,
    NO_CREDITS_MESSAGE,
    CreditsLookup,
    InvalidQueryError,
    validate_query,
)
from song_credits.lookup_cache import LookupCache, make_cache_key


class FakeAggregator:
    """Stands in for CreditAggregator; answers from a dict keyed by title."""

    def __init__(self, results: dict[str, CreditsResult] | None = None):
        self.results = results or {}
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def fetch_credits(self, artist: str, title: str) -> CreditsResult:
        self.calls.append((artist, title))
        return self.results.get(title, CreditsResult(artist=artist, title=title))

    def close(self) -> None:
        self.closed = True


def superstition() -> CreditsResult:
    result = CreditsResult(
        artist="Stevie Wonder", title="Superstition", year="1972", sources=["MusicBrainz"]
    )
    result.categories.append(Category.PERFORMERS, "Stevie Wonder", "Primary artist")
    return result


class Ticker:
    """Timer that advances 5 ms per call."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        self.now += 0.005
        return self.now


@pytest.fixture
def cache(tmp_path) -> LookupCache:
    # Every read of the clock is one second later, so insertion order is strict
    ticks = iter(range(1_000_000, 2_000_000))
    return LookupCache(tmp_path / "cache", clock=lambda: float(next(ticks)))


@pytest.fixture
def aggregator() -> FakeAggregator:
    return FakeAggregator({"Superstition": superstition()})


@pytest.fixture
def service(aggregator, cache) -> CreditsLookup:
    return CreditsLookup(
        Config(), aggregator=aggregator, cache=cache, timer=Ticker()  # type: ignore[arg-type]
    )


class TestValidateQuery:
    def test_cleans_input(self):
        assert validate_query("  <b>Stevie</b>  Wonder ", "Superstition\n") == (
            "Stevie Wonder",
            "Superstition",
        )

    @pytest.mark.parametrize(("artist", "title"), [("", "x"), ("x", "   "), ("<i></i>", "x")])
    def test_missing_value(self, artist, title):
        with pytest.raises(InvalidQueryError, match="both an artist"):
            validate_query(artist, title)

    def test_length_limit(self):
        assert validate_query("a" * 200, "t") == ("a" * 200, "t")
        with pytest.raises(InvalidQueryError, match="200-character"):
            validate_query("a" * 201, "t")
        with pytest.raises(InvalidQueryError):
            validate_query("a", "t" * 201)


class TestLookup:
    def test_miss_then_hit(self, service, aggregator, cache):
        first = service.lookup("Stevie Wonder", "Superstition")
        second = service.lookup("stevie wonder", "SUPERSTITION")

        assert first.found and not first.cached
        assert second.found and second.cached
        assert second.result.to_dict() == first.result.to_dict()
        assert aggregator.calls == [("Stevie Wonder", "Superstition")]
        assert cache.get(make_cache_key("Stevie Wonder", "Superstition")) is not None

        snapshot = service.metrics_snapshot()
        assert snapshot["total_requests"] == 2
        assert snapshot["cache_misses"] == 1
        assert snapshot["cache_hits"] == 1
        assert snapshot["successful_lookups"] == 2
        assert snapshot["failed_lookups"] == 0
        assert snapshot["source_counts"] == {"MusicBrainz": 2}
        assert snapshot["average_latency_ms"] == pytest.approx(5.0)

    def test_no_credits_is_not_cached(self, service, aggregator, cache):
        outcome = service.lookup("Nobody", "Nothing")

        assert not outcome.found
        assert outcome.result is None
        assert outcome.message == NO_CREDITS_MESSAGE
        assert cache.entries() == []

        service.lookup("Nobody", "Nothing")
        assert len(aggregator.calls) == 2
        assert service.metrics.get("failed_lookups") == 2
        assert service.metrics.get("cache_misses") == 2

    def test_bypass_cache(self, service, aggregator, cache):
        service.lookup("Stevie Wonder", "Superstition", use_cache=False)
        service.lookup("Stevie Wonder", "Superstition", use_cache=False)

        assert len(aggregator.calls) == 2
        assert cache.entries() == []

    def test_invalid_input_touches_nothing(self, service, aggregator):
        with pytest.raises(InvalidQueryError):
            service.lookup("", "Superstition")

        assert aggregator.calls == []
        assert service.metrics.get("total_requests") == 0

    def test_input_is_cleaned_before_lookup(self, service, aggregator):
        service.lookup(" <b>Stevie Wonder</b> ", "  Superstition ")
        assert aggregator.calls == [("Stevie Wonder", "Superstition")]

    def test_cache_disabled_in_config(self, aggregator):
        config = Config.model_validate({"cache": {"enabled": False}})
        service = CreditsLookup(config, aggregator=aggregator)  # type: ignore[arg-type]

        assert service.cache is None
        service.lookup("Stevie Wonder", "Superstition")
        assert service.lookup("Stevie Wonder", "Superstition").cached is False
        assert service.suggestions() == []

    def test_close_closes_aggregator(self, service, aggregator):
        service.close()
        assert aggregator.closed


class TestSuggestions:
    def test_sorted_unique_pairs(self, service, cache):
        cache.set("a", {"artist": "Queen", "title": "Bohemian Rhapsody"}, 3600)
        cache.set("b", {"artist": "queen", "title": "bohemian rhapsody"}, 3600)
        cache.set("c", {"artist": "ABBA", "title": "Waterloo"}, 3600)
        cache.set("d", {"artist": "", "title": "Untitled"}, 3600)
        cache.set("e", {"artist": "Stevie Wonder", "title": "<b>Superstition</b>"}, 3600)

        suggestions = service.suggestions()

        titles = [s["title"] for s in suggestions]
        assert titles == ["Superstition", "Waterloo", "bohemian rhapsody"]
        assert {"artist": "ABBA", "title": "Waterloo"} in suggestions

    def test_capped(self, service, cache):
        for i in range(MAX_SUGGESTIONS + 20):
            cache.set(f"k{i}", {"artist": "A", "title": f"Song {i:03d}"}, 3600)

        assert len(service.suggestions()) == MAX_SUGGESTIONS
