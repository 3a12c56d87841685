"""Tests for the logging event sink and Rich logging setup."""

from __future__ import annotations

import io
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from song_credits.diagnostics import LoggingEventSink, configure_rich_logging
from song_credits.metrics import LookupMetrics

LOGGER_NAME = "song_credits.events"


@pytest.fixture
def logger(caplog) -> logging.Logger:
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    return logging.getLogger(LOGGER_NAME)


@pytest.fixture
def root_logging():
    """Restore the root logger after configure_rich_logging swaps its handlers."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


class TestLoggingEventSink:
    def test_debug_events_dropped_by_default(self, logger, caplog):
        sink = LoggingEventSink(logger=logger)

        sink.log(logging.DEBUG, "API retry scheduled", {"source": "musicbrainz"})

        assert [r for r in caplog.records if r.name == LOGGER_NAME] == []

    def test_debug_events_promoted_when_enabled(self, logger, caplog):
        sink = LoggingEventSink(logger=logger, debug_events=True)

        sink.log(logging.DEBUG, "API retry scheduled", {"source": "musicbrainz", "token": "x"})

        (record,) = [r for r in caplog.records if r.name == LOGGER_NAME]
        assert record.levelno == logging.INFO
        assert record.event_context == {"source": "musicbrainz"}
        assert "API retry scheduled" in record.getMessage()

    def test_warnings_pass_through(self, logger, caplog):
        sink = LoggingEventSink(logger=logger)

        sink.log(logging.WARNING, "Blocked API host", {"host": "evil.example"})

        (record,) = [r for r in caplog.records if r.name == LOGGER_NAME]
        assert record.levelno == logging.WARNING

    def test_api_errors_counted(self, logger):
        metrics = LookupMetrics()
        sink = LoggingEventSink(logger=logger, metrics=metrics)

        sink.api_error("Discogs", "http_503")
        sink.api_error("discogs", "http_503")

        assert metrics.snapshot()["api_error_counts"] == {"discogs:http_503": 2}


class TestConfigureRichLogging:
    def test_writes_to_given_console(self, root_logging):
        buffer = io.StringIO()
        configure_rich_logging(console=Console(file=buffer, width=200), show_time=False)

        logging.getLogger("song_credits.something").warning("contact ops@example.org")

        output = buffer.getvalue()
        assert "contact [EMAIL]" in output
        assert "ops@example.org" not in output

    def test_defaults_to_stderr(self, root_logging):
        configure_rich_logging()

        handlers = [h for h in root_logging.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert handlers[0].console.stderr is True

    def test_replaces_previous_rich_handler(self, root_logging):
        configure_rich_logging(level=logging.INFO)
        configure_rich_logging(level=logging.ERROR)

        assert len([h for h in root_logging.handlers if isinstance(h, RichHandler)]) == 1
        assert root_logging.level == logging.ERROR
