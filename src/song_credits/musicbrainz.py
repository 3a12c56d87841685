"""
MusicBrainz adapter for recording and work credits.

Searches recordings by title and artist, picks the best match, then reads
the recording's artist relationships (performers, engineers, producers)
and follows one performance link to the work for songwriter credits.
Requests are paced at 1 req/sec by the shared client.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from song_credits.categorize import (
    categorize_musicbrainz,
    musicbrainz_instrumentation_role,
    musicbrainz_role,
)
from song_credits.credits import Category, CategoryMap, MatchCandidate, SourceResult, extract_year
from song_credits.http_client import ApiError, Source
from song_credits.match import pick_best, score_text_match, weighted_score
from song_credits.sources import CreditSource

TITLE_WEIGHT = 0.7
ARTIST_WEIGHT = 0.3


def escape_phrase(value: str) -> str:
    """Escape a value for use inside a quoted Lucene phrase."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def format_artist_credit(credits: Iterable[dict[str, Any]]) -> str:
    """
    Build the display string of an artist-credit list.

    >>> format_artist_credit([{"name": "A", "joinphrase": " & "}, {"name": "B"}])
    'A & B'
    """
    return "".join(
        f"{_credit_name(credit)}{credit.get('joinphrase') or ''}" for credit in credits
    )


def _credit_name(credit: dict[str, Any]) -> str:
    name = credit.get("name") or (credit.get("artist") or {}).get("name") or ""
    return str(name)


def append_relations(categories: CategoryMap, relations: Iterable[dict[str, Any]]) -> None:
    """Categorize every artist relationship into the map.

    Instrument attributes additionally produce a Performers entry.
    """
    for relation in relations:
        artist = relation.get("artist")
        if not artist:
            continue
        name = artist.get("name")
        category = categorize_musicbrainz(relation.get("type") or "", relation)
        categories.append(category, name, musicbrainz_role(relation))
        instrument_role = musicbrainz_instrumentation_role(relation)
        if instrument_role:
            categories.append(Category.PERFORMERS, name, instrument_role)


class MusicBrainzSource(CreditSource):
    """Recording and work credits from the MusicBrainz web service."""

    source = Source.MUSICBRAINZ
    label = "MusicBrainz"

    BASE_URL = "https://musicbrainz.org/ws/2/"

    def search_recordings(self, artist: str, title: str) -> list[MatchCandidate]:
        """Search recordings matching both title and artist (top 5)."""
        query = f'recording:"{escape_phrase(title)}" AND artist:"{escape_phrase(artist)}"'
        data = self.get_json(
            f"{self.BASE_URL}recording/", {"query": query, "fmt": "json", "limit": 5}
        )
        candidates: list[MatchCandidate] = []
        for recording in (data or {}).get("recordings") or []:
            if not recording.get("id"):
                continue
            candidates.append(
                MatchCandidate(
                    id=str(recording["id"]),
                    title=str(recording.get("title") or ""),
                    artist=format_artist_credit(recording.get("artist-credit") or []),
                    year=extract_year(recording.get("first-release-date") or ""),
                    raw=recording,
                )
            )
        return candidates

    def pick_recording(
        self, candidates: list[MatchCandidate], artist: str, title: str
    ) -> MatchCandidate | None:
        best, _score = pick_best(
            candidates,
            lambda c: weighted_score(
                [
                    (TITLE_WEIGHT, score_text_match(title, c.title)),
                    (ARTIST_WEIGHT, score_text_match(artist, c.artist)),
                ]
            ),
        )
        return best

    def fetch(self, artist: str, title: str) -> SourceResult:
        result = SourceResult()

        try:
            candidates = self.search_recordings(artist, title)
        except ApiError as exc:
            self._request_failed("search", exc)
            return result

        recording = self.pick_recording(candidates, artist, title)
        if recording is None:
            return result

        result.title = recording.title
        result.year = recording.year
        artist_credit = recording.raw.get("artist-credit") or []
        if artist_credit:
            result.artist = recording.artist
            for credit in artist_credit:
                result.categories.append(
                    Category.PERFORMERS, _credit_name(credit), "Primary artist"
                )

        try:
            detail = self.get_json(
                f"{self.BASE_URL}recording/{recording.id}",
                {"inc": "artist-credits+artist-rels+work-rels+instrument-rels", "fmt": "json"},
            )
        except ApiError as exc:
            self._request_failed("recording", exc)
            return result

        relations = (detail or {}).get("relations") or []
        append_relations(result.categories, relations)

        for relation in relations:
            work_id = (relation.get("work") or {}).get("id")
            if relation.get("type") != "performance" or not work_id:
                continue
            try:
                work = self.get_json(
                    f"{self.BASE_URL}work/{work_id}", {"inc": "artist-rels", "fmt": "json"}
                )
            except ApiError as exc:
                self._request_failed("work", exc)
            else:
                append_relations(result.categories, (work or {}).get("relations") or [])
            # One work is enough
            break

        return result


## Tests


def test_escape_phrase():
    assert escape_phrase('Say "Hi" \\o/') == 'Say \\"Hi\\" \\\\o/'


def test_append_relations_instrument_attribute():
    categories = CategoryMap()
    append_relations(
        categories,
        [
            {"type": "instrument", "artist": {"name": "Jane"}, "attributes": ["guitar"]},
            {"type": "producer", "artist": {"name": "Bob"}},
            {"type": "performance", "work": {"id": "w1"}},
        ],
    )
    assert [e.to_dict() for e in categories.get(Category.PERFORMERS)] == [
        {"name": "Jane", "role": "Guitar"}
    ]
    assert categories.get(Category.PRODUCTION)[0].role == "Producer"
