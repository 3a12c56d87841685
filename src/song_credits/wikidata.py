"""
Wikidata fallback for performer credits.

Searches items by song title, reads each candidate's performer (P175)
claims, resolves the performer ids to English labels and keeps the
candidate whose label and performers best match the query.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from song_credits.credits import Category, SourceResult
from song_credits.http_client import ApiError, Source
from song_credits.match import pick_best, score_text_match, weighted_score
from song_credits.sources import CreditSource

PERFORMER_PROPERTY = "P175"
LABEL_BATCH_SIZE = 50
MIN_MATCH_SCORE = 35

TITLE_WEIGHT = 0.75
ARTIST_WEIGHT = 0.25

PERFORMER_ROLE = "Performer (Wikidata)"


@dataclass
class WikidataCandidate:
    """Search hit with its performer ids."""

    qid: str
    label: str
    performer_ids: list[str] = field(default_factory=list)


def extract_entity_ids(entity: dict[str, Any], prop: str) -> list[str]:
    """Linked item ids of a claim list, unique and in claim order."""
    ids: list[str] = []
    for claim in (entity.get("claims") or {}).get(prop) or []:
        value = ((claim.get("mainsnak") or {}).get("datavalue") or {}).get("value")
        if isinstance(value, dict) and value.get("id"):
            ids.append(str(value["id"]))
    return list(dict.fromkeys(ids))


def _english_label(entity: dict[str, Any]) -> str:
    return str(((entity.get("labels") or {}).get("en") or {}).get("value") or "")


def _chunks(items: list[str], size: int) -> Iterable[list[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class WikidataSource(CreditSource):
    """Performer credits from Wikidata, used when no other source has any."""

    source = Source.WIKIDATA
    label = "Wikidata"

    API_URL = "https://www.wikidata.org/w/api.php"
    ENTITY_DATA_URL = "https://www.wikidata.org/wiki/Special:EntityData/"

    def search_candidates(self, title: str) -> list[WikidataCandidate]:
        """Search items by title and keep those that list performers.

        A candidate whose entity document cannot be fetched is skipped.
        """
        data = self.get_json(
            self.API_URL,
            {
                "action": "wbsearchentities",
                "search": title,
                "language": "en",
                "type": "item",
                "limit": 8,
                "format": "json",
            },
        )

        candidates: list[WikidataCandidate] = []
        for item in (data or {}).get("search") or []:
            qid = str(item.get("id") or "")
            if not qid:
                continue
            try:
                document = self.get_json(f"{self.ENTITY_DATA_URL}{quote(qid)}.json")
            except ApiError as exc:
                self._request_failed("entity", exc)
                continue

            entity = ((document or {}).get("entities") or {}).get(qid)
            if not entity:
                continue
            performer_ids = extract_entity_ids(entity, PERFORMER_PROPERTY)
            if not performer_ids:
                continue
            label = _english_label(entity) or str(item.get("label") or "")
            candidates.append(WikidataCandidate(qid, label, performer_ids))
        return candidates

    def labels_by_qid(self, qids: list[str]) -> dict[str, str]:
        """Resolve item ids to English labels, in batches of 50."""
        labels: dict[str, str] = {}
        for chunk in _chunks(qids, LABEL_BATCH_SIZE):
            try:
                data = self.get_json(
                    self.API_URL,
                    {
                        "action": "wbgetentities",
                        "ids": "|".join(chunk),
                        "props": "labels",
                        "languages": "en",
                        "format": "json",
                    },
                )
            except ApiError as exc:
                self._request_failed("labels", exc)
                continue
            for qid, entity in ((data or {}).get("entities") or {}).items():
                label = _english_label(entity or {})
                if label:
                    labels[str(qid)] = label
        return labels

    def fetch(self, artist: str, title: str) -> SourceResult:
        result = SourceResult()

        try:
            candidates = self.search_candidates(title)
        except ApiError as exc:
            self._request_failed("search", exc)
            return result
        if not candidates:
            return result

        all_ids = list(dict.fromkeys(pid for c in candidates for pid in c.performer_ids))
        labels = self.labels_by_qid(all_ids)
        if not labels:
            return result

        def score(candidate: WikidataCandidate) -> float:
            artist_scores = [
                score_text_match(artist, labels[pid])
                for pid in candidate.performer_ids
                if pid in labels
            ]
            artist_score = max(artist_scores, default=0)
            return weighted_score(
                [
                    (TITLE_WEIGHT, score_text_match(title, candidate.label)),
                    (ARTIST_WEIGHT, artist_score),
                ]
            )

        best, best_score = pick_best(candidates, score)
        if best is None or best_score < MIN_MATCH_SCORE:
            return result

        for pid in best.performer_ids:
            if pid in labels:
                result.categories.append(Category.PERFORMERS, labels[pid], PERFORMER_ROLE)
        return result


## Tests


def test_extract_entity_ids_unique_in_order():
    entity = {
        "claims": {
            "P175": [
                {"mainsnak": {"datavalue": {"value": {"id": "Q2"}}}},
                {"mainsnak": {"snaktype": "novalue"}},
                {"mainsnak": {"datavalue": {"value": {"id": "Q1"}}}},
                {"mainsnak": {"datavalue": {"value": {"id": "Q2"}}}},
            ]
        }
    }
    assert extract_entity_ids(entity, "P175") == ["Q2", "Q1"]
    assert extract_entity_ids({}, "P175") == []


def test_chunks():
    assert [len(c) for c in _chunks([str(i) for i in range(120)], 50)] == [50, 50, 20]
