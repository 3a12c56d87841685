from __future__ import annotations

import hashlib
import json
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

KEY_PREFIX = "song_credits_"


def make_cache_key(artist: str, title: str) -> str:
    """Cache key for a lookup; case-insensitive on artist and title."""
    digest = hashlib.md5(f"{artist.lower()}|{title.lower()}".encode()).hexdigest()
    return f"{KEY_PREFIX}{digest}"


class LookupCache:
    """
    SQLite-backed key-value store for finished lookup results with TTL.

    Values are JSON documents; expired rows are invisible to `get` and
    `entries` and removed by `purge_expired`.
    """

    def __init__(self, cache_dir: Path, clock: Callable[[], float] | None = None):
        self.cache_dir = cache_dir
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = self.cache_dir / "lookups.sqlite"
        self._clock = clock
        self._init_db()

    def _now(self) -> float:
        return self._clock() if self._clock else time.time()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Initialize SQLite database schema."""
        conn = self._connect()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS lookup_entries (
                cache_key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                cached_at REAL NOT NULL,
                expires_at REAL NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_expires_at ON lookup_entries(expires_at)")
        conn.commit()
        conn.close()

    def get(self, key: str) -> dict[str, Any] | None:
        """Get a stored value if present and not expired."""
        conn = self._connect()
        row = conn.execute(
            "SELECT payload FROM lookup_entries WHERE cache_key = ? AND expires_at > ?",
            (key, self._now()),
        ).fetchone()
        conn.close()

        if not row:
            return None
        try:
            value = json.loads(row["payload"])
        except json.JSONDecodeError:
            return None
        return value if isinstance(value, dict) else None

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        """Store a value for `ttl_seconds`, replacing any previous one."""
        cached_at = self._now()
        conn = self._connect()
        conn.execute(
            """
            INSERT OR REPLACE INTO lookup_entries (cache_key, payload, cached_at, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (key, json.dumps(value), cached_at, cached_at + ttl_seconds),
        )
        conn.commit()
        conn.close()

    def invalidate(self, key: str) -> bool:
        """Remove one entry; True when something was removed."""
        conn = self._connect()
        cursor = conn.execute("DELETE FROM lookup_entries WHERE cache_key = ?", (key,))
        removed = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return removed

    def purge_expired(self) -> int:
        """Remove expired entries and return count of removed entries."""
        conn = self._connect()
        cursor = conn.execute(
            "DELETE FROM lookup_entries WHERE expires_at <= ?", (self._now(),)
        )
        removed_count = cursor.rowcount
        conn.commit()
        conn.close()
        return removed_count

    def clear(self) -> None:
        """Clear all cache entries."""
        conn = self._connect()
        conn.execute("DELETE FROM lookup_entries")
        conn.commit()
        conn.close()

    def entries(self, limit: int = 200) -> list[tuple[str, dict[str, Any]]]:
        """Unexpired (key, value) pairs, newest first."""
        conn = self._connect()
        rows = conn.execute(
            """
            SELECT cache_key, payload FROM lookup_entries
            WHERE expires_at > ?
            ORDER BY cached_at DESC
            LIMIT ?
            """,
            (self._now(), limit),
        ).fetchall()
        conn.close()

        result: list[tuple[str, dict[str, Any]]] = []
        for row in rows:
            try:
                value = json.loads(row["payload"])
            except json.JSONDecodeError:
                continue
            if isinstance(value, dict):
                result.append((row["cache_key"], value))
        return result


## Tests


def test_make_cache_key_is_case_insensitive():
    key = make_cache_key("Stevie Wonder", "Superstition")
    assert key == make_cache_key("STEVIE WONDER", "superstition")
    assert key.startswith("song_credits_")
    assert len(key) == len("song_credits_") + 32


def test_lookup_cache_basic(tmp_path):
    cache = LookupCache(tmp_path / "cache")
    cache.set("k", {"artist": "A", "title": "T"}, ttl_seconds=3600)
    assert cache.get("k") == {"artist": "A", "title": "T"}
    assert cache.get("missing") is None
    assert cache.invalidate("k") is True
    assert cache.get("k") is None
