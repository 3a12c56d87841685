from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class HttpConfig(BaseModel):
    """Outbound HTTP settings shared by every provider."""

    model_config = ConfigDict(frozen=True)

    timeout_s: float = Field(default=15.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    max_redirects: int = Field(default=3, ge=0)
    max_retry_after_s: float = Field(default=10.0, ge=0)
    # Sent in the User-Agent, as MusicBrainz asks for a contact address
    contact_email: str = Field(default="admin@example.com")


class LiveSourcesConfig(BaseModel):
    """Provider credentials and pacing."""

    model_config = ConfigDict(frozen=True)

    # Discogs is only queried when a token is present (env: DISCOGS_TOKEN)
    discogs_token: str | None = Field(default=None)

    # Minimum seconds between two requests to the same provider
    musicbrainz_min_interval_s: float = Field(default=1.0, ge=0)
    discogs_min_interval_s: float = Field(default=0.0, ge=0)
    wikidata_min_interval_s: float = Field(default=0.0, ge=0)

    @property
    def discogs_enabled(self) -> bool:
        return bool(self.discogs_token and self.discogs_token.strip())


class CacheConfig(BaseModel):
    """Lookup result cache configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True)
    directory: Path = Field(default=Path(".cache/song-credits"))
    duration_hours: int = Field(default=24, ge=1, le=168)

    @property
    def ttl_seconds(self) -> int:
        return self.duration_hours * 3600


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="WARNING")  # DEBUG, INFO, WARNING, ERROR
    format: str = Field(default="%(message)s")
    # Emit per-attempt HTTP diagnostics at INFO instead of DEBUG
    debug_events: bool = Field(default=False)


class Config(BaseModel):
    """
    Main configuration for song-credits.

    Loads from TOML file with optional environment variable overrides.
    The resulting value is immutable and is passed explicitly to the
    HTTP client, the source adapters and the lookup service.
    """

    model_config = ConfigDict(frozen=True)

    http: HttpConfig = Field(default_factory=HttpConfig)
    live_sources: LiveSourcesConfig = Field(default_factory=LiveSourcesConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """
        Load configuration from TOML file with environment variable overrides.

        Environment variables take precedence and follow the pattern:
        SONG_CREDITS_<SECTION>_<KEY> (e.g., SONG_CREDITS_HTTP_TIMEOUT_S)

        All values are gathered into a single dictionary first, then validated
        by Pydantic to ensure consistent type checking and coercion.
        """
        config_dict: dict[str, object] = {}

        if config_path and config_path.exists():
            config_dict = tomllib.loads(config_path.read_text())

        config_dict = cls._merge_env_overrides(config_dict)
        return cls.model_validate(config_dict)

    @staticmethod
    def _section(config_dict: dict[str, object], name: str) -> dict[str, object]:
        section = config_dict.setdefault(name, {})
        if not isinstance(section, dict):
            section = {}
            config_dict[name] = section
        return section

    @classmethod
    def _merge_env_overrides(cls, config_dict: dict[str, object]) -> dict[str, object]:
        """
        Merge environment variable overrides into config dictionary.

        Returns a new dictionary with env vars applied, ready for Pydantic validation.
        """
        env_prefix = "SONG_CREDITS_"
        config_dict = dict(config_dict)

        http = cls._section(config_dict, "http")
        if timeout := os.getenv(f"{env_prefix}HTTP_TIMEOUT_S"):
            http["timeout_s"] = timeout
        if max_attempts := os.getenv(f"{env_prefix}HTTP_MAX_ATTEMPTS"):
            http["max_attempts"] = max_attempts
        if max_redirects := os.getenv(f"{env_prefix}HTTP_MAX_REDIRECTS"):
            http["max_redirects"] = max_redirects
        if contact_email := os.getenv(f"{env_prefix}HTTP_CONTACT_EMAIL"):
            http["contact_email"] = contact_email

        live_sources = cls._section(config_dict, "live_sources")
        if discogs_token := os.getenv("DISCOGS_TOKEN"):
            live_sources["discogs_token"] = discogs_token
        if discogs_token := os.getenv(f"{env_prefix}LIVE_SOURCES_DISCOGS_TOKEN"):
            live_sources["discogs_token"] = discogs_token
        if mb_interval := os.getenv(f"{env_prefix}LIVE_SOURCES_MUSICBRAINZ_MIN_INTERVAL_S"):
            live_sources["musicbrainz_min_interval_s"] = mb_interval
        if discogs_interval := os.getenv(f"{env_prefix}LIVE_SOURCES_DISCOGS_MIN_INTERVAL_S"):
            live_sources["discogs_min_interval_s"] = discogs_interval
        if wd_interval := os.getenv(f"{env_prefix}LIVE_SOURCES_WIKIDATA_MIN_INTERVAL_S"):
            live_sources["wikidata_min_interval_s"] = wd_interval

        cache = cls._section(config_dict, "cache")
        if cache_enabled := os.getenv(f"{env_prefix}CACHE_ENABLED"):
            cache["enabled"] = cache_enabled.lower() in ("true", "1", "yes")
        if cache_dir := os.getenv(f"{env_prefix}CACHE_DIRECTORY"):
            cache["directory"] = cache_dir
        if cache_hours := os.getenv(f"{env_prefix}CACHE_DURATION_HOURS"):
            cache["duration_hours"] = cache_hours

        logging_config = cls._section(config_dict, "logging")
        if log_level := os.getenv(f"{env_prefix}LOGGING_LEVEL"):
            logging_config["level"] = log_level
        if log_format := os.getenv(f"{env_prefix}LOGGING_FORMAT"):
            logging_config["format"] = log_format
        if debug_events := os.getenv(f"{env_prefix}LOGGING_DEBUG_EVENTS"):
            logging_config["debug_events"] = debug_events.lower() in ("true", "1", "yes")

        return config_dict


## Tests


def test_config_defaults():
    config = Config()
    assert config.http.timeout_s == 15.0
    assert config.http.max_attempts == 3
    assert config.live_sources.discogs_token is None
    assert config.live_sources.discogs_enabled is False
    assert config.cache.ttl_seconds == 86400


def test_config_from_dict():
    config = Config.model_validate(
        {
            "live_sources": {"discogs_token": "abc"},
            "cache": {"duration_hours": 2, "directory": "/tmp/sc"},
        }
    )
    assert config.live_sources.discogs_enabled is True
    assert config.cache.ttl_seconds == 7200
    assert config.cache.directory == Path("/tmp/sc")


def test_config_is_frozen():
    import pydantic
    import pytest

    config = Config()
    with pytest.raises(pydantic.ValidationError):
        config.http.timeout_s = 3.0  # pyright: ignore[reportAttributeAccessIssue]
