"""
Discogs adapter for release-level and track-level credits.

Requires a personal access token (the shared client sends it as
"Authorization: Discogs token=..."); the aggregator skips this source when
no token is configured.
"""

from __future__ import annotations

from typing import Any

from song_credits.categorize import categorize_discogs, discogs_instrumentation_role
from song_credits.credits import Category, CategoryMap, MatchCandidate, SourceResult, extract_year
from song_credits.http_client import ApiError, Source
from song_credits.match import pick_best, score_text_match, weighted_score
from song_credits.sources import CreditSource

TITLE_WEIGHT = 0.65
ARTIST_WEIGHT = 0.35

# Below this, the tracklist has no entry close enough to trust its credits
MIN_TRACK_SCORE = 55


def append_extra_artist(categories: CategoryMap, extra_artist: dict[str, Any]) -> None:
    """Categorize one `extraartists` entry, plus its instrument segments."""
    name = extra_artist.get("name") or ""
    role = extra_artist.get("role") or "Unknown Role"
    categories.append(categorize_discogs(role), name, role)
    instrument_role = discogs_instrumentation_role(role)
    if instrument_role:
        categories.append(Category.PERFORMERS, name, instrument_role)


def pick_track(tracklist: list[dict[str, Any]], title: str) -> dict[str, Any] | None:
    """Best tracklist entry for the title, or None below MIN_TRACK_SCORE."""
    tracks = [track for track in tracklist if track.get("title")]
    best, score = pick_best(tracks, lambda t: score_text_match(title, str(t["title"])))
    if best is None or score < MIN_TRACK_SCORE:
        return None
    return best


class DiscogsSource(CreditSource):
    """Release credits from the Discogs database API."""

    source = Source.DISCOGS
    label = "Discogs"

    BASE_URL = "https://api.discogs.com/"

    def search_releases(self, artist: str, title: str) -> list[MatchCandidate]:
        data = self.get_json(
            f"{self.BASE_URL}database/search",
            {"q": title, "artist": artist, "track": title, "type": "release", "per_page": 8},
        )
        return [
            MatchCandidate(
                id=str(item["id"]),
                title=str(item.get("title") or ""),
                year=extract_year(item.get("year") or ""),
                raw=item,
            )
            for item in (data or {}).get("results") or []
            if item.get("id")
        ]

    def pick_release(
        self, candidates: list[MatchCandidate], artist: str, title: str
    ) -> MatchCandidate | None:
        """Best search hit; results are titled "Artist - Release", so both
        scores are taken against the same display title."""
        best, _score = pick_best(
            candidates,
            lambda c: weighted_score(
                [
                    (TITLE_WEIGHT, score_text_match(title, c.title)),
                    (ARTIST_WEIGHT, score_text_match(artist, c.title)),
                ]
            ),
        )
        return best

    def fetch(self, artist: str, title: str) -> SourceResult:
        result = SourceResult()

        try:
            candidates = self.search_releases(artist, title)
        except ApiError as exc:
            self._request_failed("search", exc)
            return result

        best = self.pick_release(candidates, artist, title)
        if best is None:
            return result

        try:
            release = self.get_json(f"{self.BASE_URL}releases/{best.id}") or {}
        except ApiError as exc:
            self._request_failed("release", exc)
            return result

        result.year = extract_year(release.get("year") or "") or best.year

        categories = result.categories
        for release_artist in release.get("artists") or []:
            categories.append(Category.PERFORMERS, release_artist.get("name"), "Release artist")
        for extra_artist in release.get("extraartists") or []:
            append_extra_artist(categories, extra_artist)

        track = pick_track(release.get("tracklist") or [], title)
        if track is not None:
            for track_artist in track.get("artists") or []:
                categories.append(Category.PERFORMERS, track_artist.get("name"), "Track artist")
            for extra_artist in track.get("extraartists") or []:
                append_extra_artist(categories, extra_artist)

        return result


## Tests


def test_append_extra_artist_splits_instruments():
    categories = CategoryMap()
    append_extra_artist(categories, {"name": "Ann", "role": "Bass, Producer"})
    append_extra_artist(categories, {"name": "Cid"})
    assert categories.get(Category.PRODUCTION)[0].to_dict() == {
        "name": "Ann",
        "role": "Bass, Producer",
    }
    assert categories.get(Category.PERFORMERS)[0].to_dict() == {"name": "Ann", "role": "Bass"}
    assert categories.get(Category.OTHER)[0].role == "Unknown Role"


def test_pick_track_threshold():
    tracklist = [{"title": "Something Else"}, {"title": ""}]
    assert pick_track(tracklist, "Superstition") is None
    assert pick_track([{"title": "Superstition"}], "Superstition") == {"title": "Superstition"}
