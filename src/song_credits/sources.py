"""
Shared base for the provider adapters.

An adapter turns an (artist, title) query into a SourceResult. Provider
failures never escape an adapter: they are logged and whatever was
collected before the failure is returned.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

import httpx

from song_credits.credits import SourceResult
from song_credits.http_client import ApiClient, ApiError, JsonDecodeError, Source

log = logging.getLogger(__name__)

QueryParams = Mapping[str, str | int]


class CreditSource(ABC):
    """Base class for MusicBrainz, Discogs and Wikidata adapters."""

    source: ClassVar[Source]
    # Label recorded in CreditsResult.sources
    label: ClassVar[str]

    def __init__(self, api: ApiClient):
        self.api = api

    def get_json(self, url: str, params: QueryParams | None = None) -> dict[str, Any]:
        """
        GET a provider URL through the shared client.

        Raises:
            ApiError: request failed, or the body is not a JSON object
        """
        target = httpx.URL(url, params=dict(params)) if params else httpx.URL(url)
        data = self.api.request(target, self.source)
        if not isinstance(data, dict):
            raise JsonDecodeError(
                f"Expected a JSON object, got {type(data).__name__}", self.source
            )
        return data

    def _request_failed(self, stage: str, exc: ApiError) -> None:
        log.warning(
            "%s %s request failed (%s): %s", self.label, stage, exc.kind, exc
        )

    @abstractmethod
    def fetch(self, artist: str, title: str) -> SourceResult:
        """
        Look up credits for one song.

        Args:
            artist: Artist as entered by the user
            title: Song title as entered by the user

        Returns:
            SourceResult; empty categories when nothing matched or the
            provider failed
        """

