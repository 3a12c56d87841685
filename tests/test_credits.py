"""Tests for the credit data model and the dedup/merge rule."""

from __future__ import annotations

import pytest

from song_credits.credits import (
    Category,
    CategoryMap,
    CreditEntry,
    CreditsResult,
    clean_text,
    extract_year,
    merge_role_text,
)


def entries(categories: CategoryMap, category: Category) -> list[dict[str, str]]:
    return [entry.to_dict() for entry in categories.get(category)]


class TestAppend:
    def test_exact_duplicate_is_skipped(self):
        categories = CategoryMap()
        assert categories.append(Category.PRODUCTION, "Robert Margouleff", "Producer")
        assert not categories.append(Category.PRODUCTION, "robert margouleff", "PRODUCER")
        assert entries(categories, Category.PRODUCTION) == [
            {"name": "Robert Margouleff", "role": "Producer"}
        ]

    def test_same_name_other_role_outside_performers_is_kept(self):
        categories = CategoryMap()
        categories.append(Category.ENGINEERING, "Jane", "Engineer")
        categories.append(Category.ENGINEERING, "Jane", "Mix")
        assert len(categories.get(Category.ENGINEERING)) == 2

    def test_performers_roles_merge(self):
        categories = CategoryMap()
        categories.append(Category.PERFORMERS, "Jane Doe", "Guitar")
        assert categories.append(Category.PERFORMERS, "jane doe", "Vocals")
        assert entries(categories, Category.PERFORMERS) == [
            {"name": "Jane Doe", "role": "Guitar, Vocals"}
        ]

    def test_performers_repeated_role_does_not_grow(self):
        categories = CategoryMap()
        categories.append(Category.PERFORMERS, "Jane Doe", "Guitar")
        categories.append(Category.PERFORMERS, "Jane Doe", "Vocals")
        assert not categories.append(Category.PERFORMERS, "Jane Doe", "guitar")
        assert entries(categories, Category.PERFORMERS) == [
            {"name": "Jane Doe", "role": "Guitar, Vocals"}
        ]

    def test_merge_keeps_position(self):
        categories = CategoryMap()
        categories.append(Category.PERFORMERS, "A", "Primary artist")
        categories.append(Category.PERFORMERS, "B", "Drums")
        categories.append(Category.PERFORMERS, "A", "Clavinet")
        assert [e.name for e in categories.get(Category.PERFORMERS)] == ["A", "B"]
        assert categories.get(Category.PERFORMERS)[0].role == "Primary artist, Clavinet"

    @pytest.mark.parametrize(("name", "role"), [("", "Producer"), ("X", "  "), (None, "Bass")])
    def test_blank_values_are_ignored(self, name, role):
        categories = CategoryMap()
        assert not categories.append(Category.PERFORMERS, name, role)
        assert not categories

    def test_values_are_trimmed(self):
        categories = CategoryMap()
        categories.append("Songwriting", "  Stevie Wonder ", " Composer ")
        assert entries(categories, Category.SONGWRITING) == [
            {"name": "Stevie Wonder", "role": "Composer"}
        ]


def test_merge_role_text():
    assert merge_role_text("Guitar, Vocals", "vocals, Bass") == "Guitar, Vocals, Bass"
    assert merge_role_text("", "Drums") == "Drums"
    assert merge_role_text("Drums", "") == "Drums"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1972-10-24", "1972"),
        ("1972", "1972"),
        (1972, "1972"),
        (0, ""),
        (12345, ""),
        ("released in 2001", "2001"),
        ("", ""),
        (None, ""),
        ("no year", ""),
        (True, ""),
    ],
)
def test_extract_year(value, expected):
    assert extract_year(value) == expected


def test_clean_text():
    assert clean_text("  <b>Stevie</b>\n\tWonder  ") == "Stevie Wonder"
    assert clean_text(None) == ""


class TestCreditsResult:
    def test_sanitized(self):
        result = CreditsResult(artist=" <i>Stevie Wonder</i> ", title="Superstition\n", year="1972-10-24")
        result.categories.append(Category.PERFORMERS, "Stevie  Wonder", "Primary artist")
        result.categories.append(Category.OTHER, "<script>x</script>", "Misc")
        result.add_source("MusicBrainz")
        result.add_source("MusicBrainz")

        clean = result.sanitized()

        assert clean.artist == "Stevie Wonder"
        assert clean.title == "Superstition"
        assert clean.year == "1972"
        assert clean.sources == ["MusicBrainz"]
        assert clean.categories.to_dict() == {
            "Performers": [{"name": "Stevie Wonder", "role": "Primary artist"}]
        }

    def test_dict_round_trip_preserves_order(self):
        result = CreditsResult(artist="A", title="T", year="1999", sources=["MusicBrainz", "Discogs"])
        result.categories.append(Category.SONGWRITING, "W", "Composer")
        result.categories.append(Category.PERFORMERS, "P", "Bass")

        restored = CreditsResult.from_dict(result.to_dict())

        assert restored.to_dict() == result.to_dict()
        assert list(restored.to_dict()["categories"]) == ["Songwriting", "Performers"]

    def test_from_dict_ignores_unknown_categories(self):
        restored = CreditsResult.from_dict(
            {"artist": "A", "title": "T", "categories": {"Catering": [{"name": "x", "role": "y"}]}}
        )
        assert not restored.found


def test_credit_entry_is_frozen():
    entry = CreditEntry("A", "B")
    with pytest.raises(AttributeError):
        entry.name = "C"  # type: ignore[misc]
