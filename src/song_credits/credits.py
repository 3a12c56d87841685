"""
Credit data model: entries, per-category maps and lookup results.

The merge rule implemented by `CategoryMap.append` is the only way entries
enter a map, so the dedup invariants hold for every source.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from song_credits.match import strip_markup


class Category(StrEnum):
    """Credit categories, in display order."""

    SONGWRITING = "Songwriting"
    PERFORMERS = "Performers"
    PRODUCTION = "Production"
    ENGINEERING = "Engineering"
    OTHER = "Other"


@dataclass(frozen=True)
class CreditEntry:
    """One contributor with the role text describing what they did."""

    name: str
    role: str

    def same_name(self, name: str) -> bool:
        return self.name.lower() == name.lower()

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "role": self.role}


@dataclass
class MatchCandidate:
    """Provider search hit considered during best-match selection."""

    id: str
    title: str
    artist: str = ""
    year: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


_ROLE_SPLIT = re.compile(r"\s*,\s*")
_YEAR = re.compile(r"\b(1[0-9]{3}|20[0-9]{2}|2100)\b")
_WHITESPACE = re.compile(r"[\s\x00-\x1f\x7f]+")


def merge_role_text(existing: str, incoming: str) -> str:
    """Merge two role strings into a unique, order-preserving comma list.

    Fragments are compared case-insensitively; the first spelling wins.
    """
    result: list[str] = []
    seen: set[str] = set()
    for piece in [*_ROLE_SPLIT.split(existing), *_ROLE_SPLIT.split(incoming)]:
        piece = piece.strip()
        if not piece or piece.lower() in seen:
            continue
        seen.add(piece.lower())
        result.append(piece)
    return ", ".join(result)


def extract_year(value: object) -> str:
    """Extract a 4-digit year from date-like or numeric input ("" if none)."""
    if isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return str(value) if 1000 <= value <= 9999 else ""
    if not isinstance(value, str | float):
        return ""
    text = str(value).strip()
    if not text:
        return ""
    match = _YEAR.search(text)
    return match.group(1) if match else ""


def clean_text(value: object) -> str:
    """Strip markup, collapse whitespace and control characters, trim."""
    if value is None:
        return ""
    text = strip_markup(str(value))
    return _WHITESPACE.sub(" ", text).strip()


class CategoryMap:
    """Ordered mapping of Category to credit entries.

    Within a category, no two entries share a case-insensitive (name, role)
    pair. In Performers, no two entries share a case-insensitive name: a
    second role for the same person is merged into the first entry.
    """

    def __init__(self) -> None:
        self._entries: dict[Category, list[CreditEntry]] = {}

    def append(self, category: Category | str, name: str | None, role: str | None) -> bool:
        """
        Add a credit using the dedup/merge rule.

        Args:
            category: Target category
            name: Contributor name (ignored when blank)
            role: Role text (ignored when blank)

        Returns:
            True if the map changed (new entry or merged role)
        """
        name = name.strip() if isinstance(name, str) else ""
        role = role.strip() if isinstance(role, str) else ""
        if not name or not role:
            return False

        category = Category(category)
        entries = self._entries.setdefault(category, [])

        for existing in entries:
            if existing.same_name(name) and existing.role.lower() == role.lower():
                return False

        if category is Category.PERFORMERS:
            for index, existing in enumerate(entries):
                if not existing.same_name(name):
                    continue
                merged = merge_role_text(existing.role, role)
                if merged == existing.role:
                    return False
                entries[index] = replace(existing, role=merged)
                return True

        entries.append(CreditEntry(name=name, role=role))
        return True

    def merge(self, other: CategoryMap) -> None:
        """Append every entry of another map, in its order."""
        for category, entries in other.items():
            for entry in entries:
                self.append(category, entry.name, entry.role)

    def get(self, category: Category) -> list[CreditEntry]:
        return list(self._entries.get(category, []))

    def has(self, category: Category) -> bool:
        return bool(self._entries.get(category))

    def items(self) -> Iterator[tuple[Category, list[CreditEntry]]]:
        for category, entries in self._entries.items():
            if entries:
                yield category, list(entries)

    def __bool__(self) -> bool:
        return any(self._entries.values())

    def __len__(self) -> int:
        return sum(1 for _ in self.items())

    def to_dict(self) -> dict[str, list[dict[str, str]]]:
        return {
            category.value: [entry.to_dict() for entry in entries]
            for category, entries in self.items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CategoryMap:
        categories = cls()
        for category_name, entries in (data or {}).items():
            try:
                category = Category(category_name)
            except ValueError:
                continue
            for entry in entries or []:
                if isinstance(entry, dict):
                    categories.append(category, entry.get("name"), entry.get("role"))
        return categories


@dataclass
class SourceResult:
    """What one source adapter contributes to a lookup."""

    year: str = ""
    categories: CategoryMap = field(default_factory=CategoryMap)
    artist: str = ""
    title: str = ""


@dataclass
class CreditsResult:
    """Canonical credits for one (artist, title) lookup."""

    artist: str
    title: str
    year: str = ""
    categories: CategoryMap = field(default_factory=CategoryMap)
    sources: list[str] = field(default_factory=list)

    def add_source(self, source: str) -> None:
        if source and source not in self.sources:
            self.sources.append(source)

    @property
    def found(self) -> bool:
        return bool(self.categories)

    def sanitized(self) -> CreditsResult:
        """Return a cleaned copy ready to be cached or rendered.

        Every string is cleaned, entries missing a name or role are dropped,
        empty categories disappear and sources are deduplicated.
        """
        categories = CategoryMap()
        for category, entries in self.categories.items():
            for entry in entries:
                categories.append(category, clean_text(entry.name), clean_text(entry.role))

        clean = CreditsResult(
            artist=clean_text(self.artist),
            title=clean_text(self.title),
            year=extract_year(self.year),
            categories=categories,
        )
        for source in self.sources:
            clean.add_source(clean_text(source))
        return clean

    def to_dict(self) -> dict[str, Any]:
        return {
            "artist": self.artist,
            "title": self.title,
            "year": self.year,
            "categories": self.categories.to_dict(),
            "sources": list(self.sources),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreditsResult:
        result = cls(
            artist=str(data.get("artist", "")),
            title=str(data.get("title", "")),
            year=extract_year(data.get("year", "")),
            categories=CategoryMap.from_dict(data.get("categories") or {}),
        )
        for source in data.get("sources") or []:
            result.add_source(str(source))
        return result
