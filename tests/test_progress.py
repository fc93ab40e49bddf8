"""Tests for progress throttling, rates and ETA formatting."""

import pytest

from mapcheck.progress import ProgressReporter, format_elapsed, get_eta, get_rate


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestProgressReporter:
    def test_throttles_until_interval_elapses(self):
        clock = FakeClock()
        reporter = ProgressReporter(5.0, clock=clock)

        clock.now += 4.0
        assert reporter.try_get_stats(10) is None

        clock.now += 1.0
        stats = reporter.try_get_stats(10)
        assert stats is not None
        assert stats.avg_rate == pytest.approx(2.0)
        assert stats.interval_rate == pytest.approx(2.0)
        assert stats.elapsed == "0m05s"

        clock.now += 1.0
        assert reporter.try_get_stats(12) is None

    def test_interval_rate_covers_only_last_window(self):
        clock = FakeClock()
        reporter = ProgressReporter(5.0, clock=clock)

        clock.now += 5.0
        reporter.try_get_stats(10)
        clock.now += 5.0
        stats = reporter.try_get_stats(40)

        assert stats.avg_rate == pytest.approx(4.0)
        assert stats.interval_rate == pytest.approx(6.0)
        assert stats.elapsed_seconds == pytest.approx(10.0)


class TestRateAndEta:
    @pytest.mark.parametrize(
        "processed,seconds,expected",
        [(10, 5.0, 2.0), (0, 5.0, 0.0), (10, 0.0, 0.0), (-1, 3.0, 0.0)],
    )
    def test_get_rate(self, processed, seconds, expected):
        assert get_rate(processed, seconds) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "remaining,rate,expected",
        [(0, 1.0, "0m00s"), (-3, 0.0, "0m00s"), (10, 0.0, "unknown"), (100, 2.0, "0m50s"), (300, 2.0, "2m30s")],
    )
    def test_get_eta(self, remaining, rate, expected):
        assert get_eta(remaining, rate) == expected

    @pytest.mark.parametrize("seconds,expected", [(0, "0m00s"), (59.9, "0m59s"), (61, "1m01s"), (3725, "62m05s")])
    def test_format_elapsed(self, seconds, expected):
        assert format_elapsed(seconds) == expected
