"""Per-provider request pacing for song-credits.

Each provider gets a minimum interval between the end of one request and
the start of the next. MusicBrainz requires one second; the others default
to no pacing. Clock and sleep are injectable so tests never wait.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

Clock = Callable[[], float]
Sleep = Callable[[float], None]


@dataclass
class MinIntervalPacer:
    """Minimum-interval pacer.

    - `wait()` blocks until `min_interval` seconds have passed since the
      last `mark()`
    - `mark()` records that a request has just completed
    - The first request is never delayed
    """

    min_interval: float
    clock: Clock = field(default=time.monotonic, repr=False)
    sleep: Sleep = field(default=time.sleep, repr=False)
    _last_mark: float | None = field(default=None, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def wait_time(self) -> float:
        """Seconds left before the next request may start (0 if none)."""
        with self._lock:
            if self._last_mark is None or self.min_interval <= 0:
                return 0.0
            elapsed = self.clock() - self._last_mark
            return max(0.0, self.min_interval - elapsed)

    def wait(self) -> float:
        """Block until the interval has elapsed.

        Returns:
            Seconds actually slept
        """
        delay = self.wait_time()
        if delay > 0:
            self.sleep(delay)
        return delay

    def mark(self) -> None:
        with self._lock:
            self._last_mark = self.clock()


class PacerRegistry:
    """Registry of per-source pacers.

    Sources without an explicit interval get an unpaced pacer.
    """

    DEFAULT_INTERVALS: dict[str, float] = {
        "musicbrainz": 1.0,  # 1 req/sec per MusicBrainz etiquette
        "discogs": 0.0,
        "wikidata": 0.0,
    }

    def __init__(
        self,
        intervals: dict[str, float] | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
    ) -> None:
        self._intervals = {**self.DEFAULT_INTERVALS, **(intervals or {})}
        self._clock = clock
        self._sleep = sleep
        self._pacers: dict[str, MinIntervalPacer] = {}
        self._lock = threading.Lock()

    def get_pacer(self, source: str) -> MinIntervalPacer:
        """Get or create the pacer for a source."""
        with self._lock:
            if source not in self._pacers:
                self._pacers[source] = MinIntervalPacer(
                    min_interval=self._intervals.get(source, 0.0),
                    clock=self._clock,
                    sleep=self._sleep,
                )
            return self._pacers[source]

    def status(self) -> dict[str, dict[str, Any]]:
        """Get interval and remaining wait per known source."""
        with self._lock:
            pacers = dict(self._pacers)
        return {
            source: {"min_interval": pacer.min_interval, "wait_time": pacer.wait_time()}
            for source, pacer in pacers.items()
        }


## Tests


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.slept: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
        self.now += seconds


def test_pacer_first_request_not_delayed():
    clock = _FakeClock()
    pacer = MinIntervalPacer(1.0, clock=clock, sleep=clock.sleep)
    assert pacer.wait() == 0.0
    assert clock.slept == []


def test_pacer_waits_out_interval():
    clock = _FakeClock()
    pacer = MinIntervalPacer(1.0, clock=clock, sleep=clock.sleep)
    pacer.mark()
    clock.now += 0.25
    assert pacer.wait() == 0.75
    assert clock.slept == [0.75]


def test_registry_default_intervals():
    registry = PacerRegistry()
    assert registry.get_pacer("musicbrainz").min_interval == 1.0
    assert registry.get_pacer("discogs").min_interval == 0.0
    assert registry.get_pacer("unknown").min_interval == 0.0
    assert set(registry.status()) == {"musicbrainz", "discogs", "unknown"}
