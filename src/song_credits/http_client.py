"""
Allowlisted JSON-over-HTTP client shared by every credit source.

Every request names the provider it belongs to. The URL host (and the host
of every redirect hop) must be on that provider's allowlist. Transient
failures are retried with linear backoff or the server's Retry-After hint,
and provider pacing is applied before each attempt.
"""

from __future__ import annotations

import logging
import time
from enum import StrEnum
from typing import Any

import httpx

from song_credits import __version__
from song_credits.config import Config
from song_credits.diagnostics import EventSink, LoggingEventSink
from song_credits.rate_limiter import Clock, PacerRegistry, Sleep


class Source(StrEnum):
    """Known upstream providers."""

    MUSICBRAINZ = "musicbrainz"
    DISCOGS = "discogs"
    WIKIDATA = "wikidata"


ALLOWED_HOSTS: dict[str, frozenset[str]] = {
    Source.MUSICBRAINZ: frozenset({"musicbrainz.org"}),
    Source.DISCOGS: frozenset({"api.discogs.com"}),
    Source.WIKIDATA: frozenset({"www.wikidata.org", "wikidata.org"}),
}

RETRYABLE_STATUS_CODES = frozenset({408, 409, 425, 429, 500, 502, 503, 504})


class ApiError(Exception):
    """Base class for provider request failures."""

    kind = "api_error"

    def __init__(self, message: str, source: str):
        super().__init__(message)
        self.source = source


class UnsupportedSourceError(ApiError):
    """The caller named a provider that has no allowlist."""

    kind = "unsupported_source"


class BlockedHostError(ApiError):
    """The URL (or a redirect target) points outside the provider allowlist."""

    kind = "blocked_host"

    def __init__(self, message: str, source: str, host: str):
        super().__init__(message, source)
        self.host = host


class TransportError(ApiError):
    """Network-level failure (DNS, connect, timeout, TLS, redirect loop)."""

    kind = "transport"


class HttpStatusError(ApiError):
    """The provider answered with a non-200 status."""

    def __init__(self, message: str, source: str, status_code: int):
        super().__init__(message, source)
        self.status_code = status_code

    @property
    def kind(self) -> str:  # pyright: ignore[reportIncompatibleVariableOverride]
        return f"http_{self.status_code}"


class JsonDecodeError(ApiError):
    """The provider answered 200 with a body that is not JSON."""

    kind = "json_decode"


def build_user_agent(contact_email: str) -> str:
    return f"song-credits/{__version__} ( {contact_email} )"


def parse_retry_after(value: str | None) -> int:
    """Parse a Retry-After header given in seconds; 0 when absent or not numeric."""
    if not value:
        return 0
    try:
        return max(0, int(value.strip()))
    except ValueError:
        return 0


class ApiClient:
    """
    Blocking JSON client with host allowlisting, retries and pacing.

    One instance serves all providers for the lifetime of a lookup service.
    """

    def __init__(
        self,
        config: Config | None = None,
        events: EventSink | None = None,
        transport: httpx.BaseTransport | None = None,
        pacers: PacerRegistry | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
    ):
        """
        Initialize the client.

        Args:
            config: Immutable configuration (defaults when omitted)
            events: Receiver for diagnostic events and API error tags
            transport: Optional httpx transport (tests pass a MockTransport)
            pacers: Per-source pacing registry; built from config when omitted
            clock: Monotonic clock used for pacing
            sleep: Sleep function used for pacing and retry backoff
        """
        self.config = config or Config()
        self.events = events or LoggingEventSink(
            debug_events=self.config.logging.debug_events
        )
        self._sleep = sleep
        live = self.config.live_sources
        self.pacers = pacers or PacerRegistry(
            {
                Source.MUSICBRAINZ: live.musicbrainz_min_interval_s,
                Source.DISCOGS: live.discogs_min_interval_s,
                Source.WIKIDATA: live.wikidata_min_interval_s,
            },
            clock=clock,
            sleep=sleep,
        )
        self._client = httpx.Client(
            timeout=self.config.http.timeout_s,
            headers={
                "User-Agent": build_user_agent(self.config.http.contact_email),
                "Accept": "application/json",
            },
            verify=True,
            follow_redirects=False,
            transport=transport,
        )

    def _check_host(self, source: str, url: httpx.URL) -> str:
        host = (url.host or "").lower()
        if host not in ALLOWED_HOSTS[source]:
            self.events.log(
                logging.WARNING, "Blocked API host", {"source": source, "host": host}
            )
            self.events.api_error(source, BlockedHostError.kind)
            raise BlockedHostError(f"Blocked API host: {host or '<none>'}", source, host)
        return host

    def _headers_for(self, source: str) -> dict[str, str]:
        token = self.config.live_sources.discogs_token
        if source == Source.DISCOGS and self.config.live_sources.discogs_enabled and token:
            return {"Authorization": f"Discogs token={token.strip()}"}
        return {}

    def _send(self, source: str, url: httpx.URL) -> httpx.Response:
        """Send one GET, following at most `max_redirects` allowlisted hops."""
        request = self._client.build_request("GET", url, headers=self._headers_for(source))
        for _hop in range(self.config.http.max_redirects + 1):
            response = self._client.send(request)
            if not response.has_redirect_location or response.next_request is None:
                return response
            response.close()
            request = response.next_request
            self._check_host(source, request.url)
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request)

    def request(self, url: str | httpx.URL, source: str) -> Any:
        """
        GET a provider URL and decode its JSON body.

        Args:
            url: Absolute URL including query string
            source: Provider id ('musicbrainz', 'discogs' or 'wikidata')

        Returns:
            Decoded JSON value

        Raises:
            UnsupportedSourceError: unknown provider (never retried)
            BlockedHostError: host not allowlisted (never retried)
            HttpStatusError: non-retryable status, or retryable status after the last attempt
            TransportError: network failure after the last attempt
            JsonDecodeError: malformed body after the last attempt
        """
        if source not in ALLOWED_HOSTS:
            self.events.log(logging.ERROR, "Unsupported API source", {"source": source})
            self.events.api_error(source, UnsupportedSourceError.kind)
            raise UnsupportedSourceError(f"Unsupported API source: {source}", source)

        source = Source(source)
        target = httpx.URL(url)
        host = self._check_host(source, target)
        pacer = self.pacers.get_pacer(source)
        max_attempts = self.config.http.max_attempts

        for attempt in range(1, max_attempts + 1):
            pacer.wait()
            try:
                response = self._send(source, target)
            except httpx.HTTPError as exc:
                pacer.mark()
                self.events.log(
                    logging.DEBUG,
                    "API request transport error",
                    {"source": source, "host": host, "attempt": attempt, "error": str(exc)},
                )
                self.events.api_error(source, TransportError.kind)
                if attempt < max_attempts:
                    self._sleep(attempt)
                    continue
                raise TransportError(f"API request failed: {exc}", source) from exc

            pacer.mark()
            if response.status_code != 200:
                status = response.status_code
                self.events.log(
                    logging.DEBUG,
                    "API non-200 response",
                    {"source": source, "host": host, "attempt": attempt, "code": status},
                )
                error = HttpStatusError(f"API returned HTTP {status}", source, status)
                self.events.api_error(source, error.kind)
                if attempt < max_attempts and status in RETRYABLE_STATUS_CODES:
                    retry_after = parse_retry_after(response.headers.get("retry-after"))
                    delay = (
                        min(retry_after, self.config.http.max_retry_after_s)
                        if retry_after > 0
                        else attempt
                    )
                    delay = max(1, delay)
                    self.events.log(
                        logging.DEBUG,
                        "API retry scheduled",
                        {"source": source, "code": status, "attempt": attempt, "retry_after": delay},
                    )
                    self._sleep(delay)
                    continue
                raise error

            try:
                return response.json()
            except ValueError as exc:
                self.events.log(
                    logging.DEBUG,
                    "API JSON decode error",
                    {"source": source, "host": host, "attempt": attempt},
                )
                self.events.api_error(source, JsonDecodeError.kind)
                if attempt < max_attempts:
                    self._sleep(attempt)
                    continue
                raise JsonDecodeError("Invalid JSON from API", source) from exc

        raise TransportError("API request failed", source)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
