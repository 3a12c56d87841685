"""
Tolerant artist/title matching used to pick candidates from search results.

The score is deliberately simple and fully deterministic: candidate
selection across runs must not change for the same provider response.
"""

from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Callable, Iterable
from typing import TypeVar

from rapidfuzz import fuzz

T = TypeVar("T")

_MARKUP_BLOCK = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_MARKUP_TAG = re.compile(r"<[^>]*>")
_TRAILING_FEAT = re.compile(r"\b(feat|ft|featuring)\.?\s+.+$", re.IGNORECASE)
_PAREN_FEAT = re.compile(r"\([^)]*(feat|ft|featuring)[^)]*\)", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def strip_markup(text: str) -> str:
    """Remove HTML/XML tags (and script/style bodies) from text."""
    text = _MARKUP_BLOCK.sub("", text)
    return _MARKUP_TAG.sub("", text)


def strip_diacritics(text: str) -> str:
    """Remove diacritics for matching."""
    nfkd = unicodedata.normalize("NFKD", text)
    return "".join(c for c in nfkd if unicodedata.category(c) != "Mn")


def normalize_for_match(value: str) -> str:
    """Normalize text for tolerant title/artist matching.

    Output only contains lowercase ASCII letters, digits and single spaces.
    """
    text = strip_markup(str(value))
    text = strip_diacritics(text)
    text = text.lower()
    text = _TRAILING_FEAT.sub("", text)
    text = _PAREN_FEAT.sub("", text)
    text = text.replace("&", " and ")
    text = _NON_ALNUM.sub(" ", text).strip()
    # Collapsing can expose a guest clause ("a-ft-b" -> "a ft b")
    return _TRAILING_FEAT.sub("", text).strip()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_text_match(needle: str, haystack: str) -> int:
    """Rough text similarity score (0-100) tuned for artist/title lookup.

    Sums three signals over the normalized forms: containment (40), token
    Jaccard overlap (up to 40) and character similarity (up to 20).
    """
    a = normalize_for_match(needle)
    b = normalize_for_match(haystack)

    if not a or not b:
        return 0
    if a == b:
        return 100

    score = 0
    if a in b or b in a:
        score += 40

    a_tokens = set(a.split(" "))
    b_tokens = set(b.split(" "))
    union = a_tokens | b_tokens
    if union:
        score += _round_half_up(40 * len(a_tokens & b_tokens) / len(union))

    score += _round_half_up(fuzz.ratio(a, b) * 0.2)

    return min(100, max(0, score))


def weighted_score(pairs: Iterable[tuple[float, int]]) -> float:
    """Combine (weight, score) pairs into one weighted score."""
    return sum(weight * score for weight, score in pairs)


def pick_best(candidates: Iterable[T], scorer: Callable[[T], float]) -> tuple[T | None, float]:
    """
    Pick the highest scoring candidate.

    Ties keep the first candidate encountered, so provider relevance order
    decides between equal scores.

    Returns:
        Tuple of (best candidate or None, its score; -1 when nothing was scored)
    """
    best: T | None = None
    best_score = -1.0
    for candidate in candidates:
        score = scorer(candidate)
        if score > best_score:
            best_score = score
            best = candidate
    return best, best_score


## Tests


def test_normalize_strips_feat_and_markup():
    assert normalize_for_match("<b>Señorita</b> (feat. Someone)") == "senorita"
    assert normalize_for_match("Simon & Garfunkel") == "simon and garfunkel"
    assert normalize_for_match("Song ft. Guest Star") == "song"


def test_score_exact_and_empty():
    assert score_text_match("Superstition", "superstition") == 100
    assert score_text_match("Superstition", "") == 0
    assert score_text_match("!!!", "abc") == 0


def test_pick_best_keeps_first_on_tie():
    best, score = pick_best(["a", "b", "c"], lambda _: 10)
    assert best == "a"
    assert score == 10
