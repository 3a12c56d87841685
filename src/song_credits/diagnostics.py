"""PII-safe diagnostics for song-credits.

Provides the event sink used by the HTTP layer and the logging setup used by
the CLI:
- Bounded, secret-free context dictionaries for diagnostic events
- Safe log message formatting
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from song_credits.metrics import LookupMetrics

log = logging.getLogger(__name__)

MAX_CONTEXT_FIELDS = 8
MAX_CONTEXT_VALUE_LENGTH = 200

# Fields that must never reach a log line
REDACT_FIELDS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "auth",
        "authorization",
        "credential",
    }
)

PATTERNS = {
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"),
    "control": re.compile(r"[\x00-\x1f\x7f]+"),
}

_KEY_PATTERN = re.compile(r"[^a-z0-9_\-]")


def _is_sensitive_key(key: str) -> bool:
    return any(field in key for field in REDACT_FIELDS)


def bounded_context(context: Mapping[str, Any] | None) -> dict[str, str]:
    """Reduce an arbitrary context mapping to a loggable one.

    Keeps at most 8 fields, lowercases and strips keys, drops any key that
    names a secret, flattens values to single-line text of at most 200
    characters and replaces non-scalar values with a marker.

    Args:
        context: Raw context supplied by the caller

    Returns:
        New dictionary safe to attach to a log record
    """
    if not context:
        return {}

    safe: dict[str, str] = {}
    for raw_key, value in list(context.items())[:MAX_CONTEXT_FIELDS]:
        key = _KEY_PATTERN.sub("", str(raw_key).lower())
        if not key or _is_sensitive_key(key):
            continue
        if value is None or isinstance(value, str | int | float | bool):
            text = PATTERNS["control"].sub(" ", "" if value is None else str(value)).strip()
            safe[key] = text[:MAX_CONTEXT_VALUE_LENGTH]
        else:
            safe[key] = "[non-scalar]"
    return safe


def sanitize_message(message: str) -> str:
    """Remove potential PII patterns from a log message.

    Args:
        message: Log message to sanitize

    Returns:
        Sanitized message with PII patterns redacted
    """
    return PATTERNS["email"].sub("[EMAIL]", message)


class EventSink(Protocol):
    """Receiver of diagnostic events raised while talking to providers."""

    def log(self, level: int, message: str, context: Mapping[str, Any] | None = None) -> None: ...

    def api_error(self, source: str, kind: str) -> None: ...


class LoggingEventSink:
    """Event sink writing bounded events to the standard logging tree.

    Per-attempt diagnostics arrive at DEBUG. They are dropped unless
    `debug_events` is set, in which case they are logged at INFO. API errors
    are additionally counted on an optional metrics object.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        metrics: LookupMetrics | None = None,
        debug_events: bool = False,
    ):
        self.logger = logger or log
        self.metrics = metrics
        self.debug_events = debug_events

    def log(self, level: int, message: str, context: Mapping[str, Any] | None = None) -> None:
        if level < logging.INFO:
            if not self.debug_events:
                return
            level = logging.INFO
        safe = bounded_context(context)
        self.logger.log(level, "%s %s", message, safe, extra={"event_context": safe})

    def api_error(self, source: str, kind: str) -> None:
        if self.metrics is not None:
            self.metrics.record_api_error(source, kind)


class SafeLogFormatter(logging.Formatter):
    """Log formatter that sanitizes messages for PII."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        sanitize_messages: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.sanitize_messages = sanitize_messages

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers still see the original record
        record = logging.makeLogRecord(record.__dict__)
        if self.sanitize_messages:
            record.msg = sanitize_message(str(record.msg))
            if isinstance(record.args, tuple):
                record.args = tuple(
                    sanitize_message(arg) if isinstance(arg, str) else arg for arg in record.args
                )
        return super().format(record)


def configure_rich_logging(
    level: int = logging.WARNING,
    format_string: str = "%(message)s",
    show_time: bool = True,
    show_path: bool = False,
    console: Console | None = None,
) -> None:
    """Configure root logging through a Rich handler with PII-safe formatting.

    Log records go to stderr unless another console is given, so command
    output on stdout stays machine-readable.

    Args:
        level: Logging level
        format_string: Format string for the message part
        show_time: Whether Rich prints timestamps
        show_path: Whether Rich prints the emitting module path
        console: Console the handler writes to (stderr by default)
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(SafeLogFormatter(fmt=format_string))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if isinstance(existing, RichHandler):
            root_logger.removeHandler(existing)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)


## Tests


def test_bounded_context_limits_fields_and_length():
    context = {f"field{i}": "x" * 500 for i in range(12)}
    safe = bounded_context(context)
    assert len(safe) == MAX_CONTEXT_FIELDS
    assert all(len(v) == MAX_CONTEXT_VALUE_LENGTH for v in safe.values())


def test_bounded_context_drops_secrets():
    safe = bounded_context({"source": "discogs", "discogs_token": "abc", "Authorization": "x"})
    assert safe == {"source": "discogs"}


def test_sanitize_message():
    assert sanitize_message("contact me@example.com now") == "contact [EMAIL] now"
