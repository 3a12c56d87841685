"""
Keyword classifier mapping provider role strings to credit categories.

Lookup is a plain substring test over the lowercased role, in the fixed
priority order Production, Engineering, Songwriting, Performers. The broad
performer/instrument list is checked last, so an ambiguous role such as
"programming" resolves to Engineering.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from song_credits.credits import Category

KeywordMap = Sequence[tuple[Category, tuple[str, ...]]]

# MusicBrainz uses the bare instrument name as relationship type ("guitar",
# "piano"), hence the long instrument list.
MUSICBRAINZ_KEYWORDS: KeywordMap = (
    (Category.PRODUCTION, ("producer", "co-producer", "executive producer")),
    (
        Category.ENGINEERING,
        (
            "engineer",
            "sound",
            "audio",
            "recording",
            "mix",
            "mastering",
            "balance",
            "editor",
            "programming",
        ),
    ),
    (
        Category.SONGWRITING,
        ("composer", "lyricist", "writer", "songwriter", "librettist", "arranger", "orchestrator"),
    ),
    (
        Category.PERFORMERS,
        (
            "performer", "vocal", "performing orchestra", "conductor", "chorus master",
            "concertmaster", "instrument",
            # strings
            "guitar", "bass guitar", "bass", "banjo", "ukulele", "mandolin", "lute", "sitar",
            "violin", "viola", "cello", "double bass", "harp", "dulcimer",
            # keyboards
            "piano", "keyboard", "organ", "synthesizer", "synth", "harpsichord", "accordion",
            "melodica",
            # wind
            "flute", "oboe", "clarinet", "bassoon", "saxophone", "sax", "trumpet", "trombone",
            "french horn", "tuba", "harmonica", "recorder", "piccolo", "cornet", "flugelhorn",
            # percussion
            "drums", "drum", "percussion", "timpani", "xylophone", "marimba", "vibraphone",
            "congas", "bongos", "tabla", "djembe", "tambourine", "cajon",
            # electronic
            "turntables", "dj", "beatbox", "sampler",
            # generic
            "backing", "lead", "rhythm", "chorus", "choir", "strings", "horns", "orchestra",
            "solo", "featuring", "rap", "mc",
        ),  # fmt: skip
    ),
)

# Discogs roles are free text ("Written-By", "Mixed By", "Bass [Electric]").
DISCOGS_KEYWORDS: KeywordMap = (
    (Category.PRODUCTION, ("producer", "produced", "executive")),
    (
        Category.ENGINEERING,
        ("engineer", "mixed", "mastered", "recorded", "technician", "programming", "edited"),
    ),
    (
        Category.SONGWRITING,
        (
            "written",
            "composed",
            "lyrics",
            "songwriter",
            "music by",
            "arranged",
            "orchestrated",
            "adapted",
        ),
    ),
    (
        Category.PERFORMERS,
        (
            "vocals", "voice", "singing", "rap", "mc", "spoken",
            "guitar", "bass guitar", "bass", "banjo", "ukulele", "mandolin", "lute", "sitar",
            "dulcimer",
            "piano", "keyboard", "organ", "synthesizer", "synth", "harpsichord", "accordion",
            "melodica", "wurlitzer", "rhodes", "clavinet",
            "violin", "viola", "cello", "double bass", "harp", "string",
            "saxophone", "sax", "trumpet", "trombone", "flute", "oboe", "clarinet", "bassoon",
            "french horn", "tuba", "harmonica", "recorder", "piccolo", "cornet", "flugelhorn",
            "drums", "drum", "percussion", "timpani", "xylophone", "marimba", "vibraphone",
            "congas", "bongos", "tabla", "djembe", "tambourine", "cajon", "cowbell",
            "turntables", "dj", "beatbox", "sampler",
            "horns", "horn", "brass", "woodwind", "choir", "orchestra", "backing",
            "lead", "rhythm", "solo", "featuring", "feat", "with", "additional",
            "instrument", "performer", "conductor", "concertmaster",
        ),  # fmt: skip
    ),
)

# Narrower list for spotting instrumentation inside attributes or role segments
PERFORMER_TEXT_KEYWORDS = (
    "vocal", "voice", "singer", "perform", "instrument", "guitar", "bass", "drum",
    "percussion", "piano", "keyboard", "synth", "violin", "viola", "cello", "sax",
    "trumpet", "trombone", "flute", "clarinet", "harp", "banjo", "ukulele", "dj",
    "turntables", "choir", "chorus", "orchestra", "conductor",
)  # fmt: skip

_SEGMENT_SPLIT = re.compile(r"\s*[,;/]\s*")


def categorize(role: str, keywords: KeywordMap) -> Category:
    """Return the first category whose keyword occurs in the role, else Other."""
    role_lower = role.lower()
    for category, words in keywords:
        if any(word in role_lower for word in words):
            return category
    return Category.OTHER


def looks_like_performer_text(value: str) -> bool:
    """Whether free text names an instrument or a performing role."""
    text = value.strip().lower()
    if not text:
        return False
    return any(needle in text for needle in PERFORMER_TEXT_KEYWORDS)


def ucfirst(text: str) -> str:
    return text[:1].upper() + text[1:]


def _unique(parts: list[str]) -> list[str]:
    return list(dict.fromkeys(parts))


def categorize_musicbrainz(rel_type: str, relation: dict[str, Any] | None = None) -> Category:
    """
    Map a MusicBrainz relationship to a category.

    Falls back to the relation attributes when the type itself is not
    recognised: instrument-typed attribute objects, or attribute text that
    looks like an instrument, make the relation a Performers credit.
    """
    category = categorize(rel_type or "", MUSICBRAINZ_KEYWORDS)
    if category is not Category.OTHER:
        return category

    for attr in (relation or {}).get("attributes") or []:
        if isinstance(attr, dict):
            if "instrument" in str(attr.get("type", "")).lower():
                return Category.PERFORMERS
            continue
        if isinstance(attr, str) and looks_like_performer_text(attr):
            return Category.PERFORMERS

    return Category.OTHER


def musicbrainz_role(relation: dict[str, Any]) -> str:
    """Build a human-readable role from relation attributes, else its type."""
    parts: list[str] = []
    for attr in relation.get("attributes") or []:
        if isinstance(attr, str) and attr.strip():
            parts.append(ucfirst(attr))
        elif isinstance(attr, dict):
            for key in ("value", "name", "type"):
                value = attr.get(key)
                if value and isinstance(value, str):
                    parts.append(ucfirst(value))
                    break
    if parts:
        return ", ".join(_unique(parts))
    return ucfirst(str(relation.get("type") or "").replace("-", " "))


def musicbrainz_instrumentation_role(relation: dict[str, Any]) -> str:
    """Instrument text carried by relation attributes ("" when none)."""
    parts: list[str] = []
    for attr in relation.get("attributes") or []:
        if isinstance(attr, str):
            clean = attr.strip()
            if clean and looks_like_performer_text(clean):
                parts.append(ucfirst(clean))
            continue
        if not isinstance(attr, dict):
            continue
        attr_type = str(attr.get("type") or "").lower()
        if "instrument" not in attr_type:
            continue
        value = ""
        for key in ("value", "name", "type"):
            candidate = attr.get(key)
            if candidate and isinstance(candidate, str):
                value = candidate
                break
        value = value.strip()
        if value:
            parts.append(ucfirst(value))
    return ", ".join(_unique(parts))


def categorize_discogs(role: str) -> Category:
    return categorize(role or "", DISCOGS_KEYWORDS)


def discogs_instrumentation_role(role: str) -> str:
    """Instrument segments of a Discogs role string ("" when none).

    "Bass, Producer; Vocals" -> "Bass, Vocals"
    """
    role = (role or "").strip()
    if not role:
        return ""
    parts = [
        ucfirst(segment.strip())
        for segment in _SEGMENT_SPLIT.split(role)
        if segment.strip() and looks_like_performer_text(segment)
    ]
    return ", ".join(_unique(parts))
