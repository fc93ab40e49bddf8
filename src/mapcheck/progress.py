"""Rate and ETA bookkeeping for long file scans."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class ProgressStats:
    elapsed: str
    elapsed_seconds: float
    avg_rate: float
    interval_rate: float


class ProgressReporter:
    """Throttles progress reports to one per ``interval_seconds``.

    ``try_get_stats`` returns None until the interval has passed since the
    previous report, then returns overall and since-last-report rates.
    """

    def __init__(self, interval_seconds: float = 5.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._interval = interval_seconds
        self._clock = clock
        self._start = clock()
        self._last = 0.0
        self._last_report_seconds = 0.0
        self._last_report_count = 0

    def try_get_stats(self, current_count: int) -> Optional[ProgressStats]:
        elapsed = self._clock() - self._start
        if elapsed - self._last < self._interval:
            return None

        self._last = elapsed
        avg_rate = get_rate(current_count, elapsed)
        interval_rate = get_rate(current_count - self._last_report_count, elapsed - self._last_report_seconds)
        self._last_report_seconds = elapsed
        self._last_report_count = current_count

        return ProgressStats(
            elapsed=format_elapsed(elapsed),
            elapsed_seconds=elapsed,
            avg_rate=avg_rate,
            interval_rate=interval_rate,
        )


def get_rate(processed: int, elapsed_seconds: float) -> float:
    if processed <= 0 or elapsed_seconds <= 0:
        return 0.0
    return processed / elapsed_seconds


def get_eta(remaining: int, rate: float) -> str:
    if remaining <= 0:
        return "0m00s"
    if rate <= 0:
        return "unknown"
    seconds = max(int(round(remaining / rate)), 0)
    return format_elapsed(seconds)


def format_elapsed(seconds: float) -> str:
    whole = int(seconds)
    return f"{whole // 60}m{whole % 60:02d}s"
