"""Author-time validation: evidence sources and the decision engine."""

from .engine import ClassifierOptions, DecisionEngine, GpsMatch, find_gps_match
from .manual import ManualEntry, load_manual_overrides, parse_manual_overrides
from .replay_index import ReplayEntry, build_replay_index
from .report import Report, ReportType, Validated
from .time_normalizer import parse_clock_time, to_milliseconds

__all__ = [
	"ClassifierOptions",
	"DecisionEngine",
	"GpsMatch",
	"find_gps_match",
	"ManualEntry",
	"load_manual_overrides",
	"parse_manual_overrides",
	"ReplayEntry",
	"build_replay_index",
	"Report",
	"ReportType",
	"Validated",
	"parse_clock_time",
	"to_milliseconds",
]
