"""Author-time classification: applies the evidence chain to one map record.

Stages, highest priority first (the first stage that decides wins):
1. Manual override table
2. Validation ghost embedded in the map
3. Replay files whose ghost time equals the author time exactly
4. GPS ghosts in the map's in-game clips (within a tolerance)
5. Script metadata waypoint times (normal vs plugin-edited)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Mapping, Optional, Sequence

from mapcheck.gbx.models import MapRecord, MediaBlockGhost
from mapcheck.validation.graph_scanner import (
    GpsCandidate,
    enumerate_gps_record_data_candidates,
    traverse_for_type,
)
from mapcheck.validation.manual import EMPTY_OVERRIDES, ManualEntry
from mapcheck.validation.metadata import extract_waypoint_times
from mapcheck.validation.replay_index import ReplayEntry
from mapcheck.validation.report import Report, ReportType, Validated
from mapcheck.validation.time_normalizer import to_milliseconds

logger = logging.getLogger(__name__)

DEFAULT_GPS_THRESHOLD_MS = 100
GHOST_BLOCK_SOURCE = "MediaBlockGhost.ghost_model.race_time"


@dataclass(frozen=True)
class ClassifierOptions:
    """Per-run switches for the evidence chain and report contents."""

    gps_enabled: bool = True
    strict_gps: bool = False
    gps_threshold_ms: int = DEFAULT_GPS_THRESHOLD_MS
    max_depth: Optional[int] = None
    include_path: bool = False
    include_map_name: bool = True


@dataclass(frozen=True)
class GpsMatch:
    gps_time_ms: int
    delta_ms: int
    source: str


class DecisionEngine:
    """Classifies map records against read-only override and replay tables."""

    def __init__(
        self,
        options: Optional[ClassifierOptions] = None,
        manual: Optional[Mapping[str, ManualEntry]] = None,
        replay_index: Optional[Mapping[str, Sequence[ReplayEntry]]] = None,
    ) -> None:
        self.options = options or ClassifierOptions()
        self.manual = manual if manual is not None else EMPTY_OVERRIDES
        self.replay_index = replay_index if replay_index is not None else {}

    def classify(self, map_record: MapRecord, *, path: Optional[str] = None) -> Report:
        report = Report(uid=map_record.uid)
        if self.options.include_path and path is not None:
            report.path = path
        if self.options.include_map_name:
            report.map_name = map_record.name

        author_ms = to_milliseconds(map_record.author_time)

        decided = (
            self._check_manual(map_record, report)
            or self._check_validation_ghost(map_record, author_ms, report)
            or self._check_replays(map_record, author_ms, report)
            or self._check_gps(map_record, author_ms, report)
        )
        if not decided:
            self._check_script_metadata(map_record, author_ms, report)

        logger.debug("Classified %s as %s/%s", map_record.uid, report.validated, report.type)
        return report

    def _check_manual(self, map_record: MapRecord, report: Report) -> bool:
        if not map_record.uid or not map_record.uid.strip():
            return False
        entry = self.manual.get(map_record.uid)
        if entry is None:
            return False

        report.classify(Validated.YES if entry.valid else Validated.MAYBE, ReportType.MANUAL, entry.note)
        return True

    def _check_validation_ghost(self, map_record: MapRecord, author_ms: Optional[int], report: Report) -> bool:
        ghost = map_record.validation_ghost
        if ghost is None or author_ms is None:
            return False

        ghost_ms = to_milliseconds(ghost.race_time)
        if ghost_ms is None:
            return False

        if ghost_ms == author_ms:
            report.classify(Validated.YES, ReportType.VALIDATION_GHOST)
            return True

        report.classify(
            Validated.UNKNOWN,
            ReportType.VALIDATION_GHOST,
            f"authorTimeMs={author_ms}, validationGhostMs={ghost_ms}",
        )
        report.error = "validation ghost time mismatch"
        return True

    def _check_replays(self, map_record: MapRecord, author_ms: Optional[int], report: Report) -> bool:
        if author_ms is None or not map_record.uid or not map_record.uid.strip():
            return False

        entries = self.replay_index.get(map_record.uid)
        if not entries:
            return False

        match = next((entry for entry in entries if author_ms in entry.ghost_times_ms), None)
        if match is None:
            return False

        report.classify(Validated.YES, ReportType.REPLAY, "Replay ghost time matched map author time.")
        if self.options.include_path:
            report.replay_path = match.path
        return True

    def _check_gps(self, map_record: MapRecord, author_ms: Optional[int], report: Report) -> bool:
        if not self.options.gps_enabled or author_ms is None:
            return False

        match = find_gps_match(
            map_record,
            author_ms,
            threshold_ms=self.options.gps_threshold_ms,
            max_depth=self.options.max_depth,
        )
        if match is None:
            return False

        strict = self.options.strict_gps
        note = _join_non_empty(
            f"GPS author time match found within ±{self.options.gps_threshold_ms} ms.",
            "GPS times are stored to the nearest tenth of a second, so small discrepancies are expected.",
            "Strict mode => validated Yes." if strict else "Still potentially invalid.",
            f"gpsTimeMs={match.gps_time_ms}, deltaMs={match.delta_ms}, source={match.source}.",
        )
        report.classify(Validated.YES if strict else Validated.MAYBE, ReportType.GPS, note)
        return True

    def _check_script_metadata(self, map_record: MapRecord, author_ms: Optional[int], report: Report) -> None:
        waypoint_times = extract_waypoint_times(map_record.script_metadata)
        if author_ms is None or not waypoint_times:
            report.classify(
                Validated.UNKNOWN,
                ReportType.NORMAL,
                "Missing author time or Race_AuthorRaceWaypointTimes metadata.",
            )
            return

        metadata_finish = waypoint_times[-1]
        waypoint_count = len(waypoint_times)
        checkpoints = map_record.checkpoint_count
        # Some formats record an extra implicit waypoint, so both counts are accepted
        checkpoint_count_weird = checkpoints not in (waypoint_count, waypoint_count - 1)

        if metadata_finish == author_ms:
            note = None
            if checkpoint_count_weird:
                note = (
                    "Finish time matches, but checkpoint count differs "
                    f"(mapNbCheckpoints={checkpoints}, metadataWaypoints={waypoint_count})."
                )
            report.classify(Validated.YES, ReportType.NORMAL, note)
            return

        report.classify(
            Validated.MAYBE,
            ReportType.PLUGIN,
            "AuthorTime differs from metadata finish "
            f"(authorTimeMs={author_ms}, metadataFinishMs={metadata_finish}, "
            f"mapNbCheckpoints={checkpoints}, metadataWaypoints={waypoint_count}).",
        )


def find_gps_match(
    map_record: MapRecord,
    author_ms: int,
    *,
    threshold_ms: int = DEFAULT_GPS_THRESHOLD_MS,
    max_depth: Optional[int] = None,
) -> Optional[GpsMatch]:
    """Return the first GPS candidate within ``threshold_ms`` of the author time."""
    if map_record.clip_group_in_game is None:
        return None

    for candidate in iter_gps_candidates(map_record, max_depth=max_depth):
        delta = abs(candidate.time_ms - author_ms)
        if delta <= threshold_ms:
            logger.debug("GPS candidate %s matched (delta %s ms)", candidate.source, delta)
            return GpsMatch(gps_time_ms=candidate.time_ms, delta_ms=delta, source=candidate.source)
    return None


def iter_gps_candidates(map_record: MapRecord, *, max_depth: Optional[int] = None) -> Iterator[GpsCandidate]:
    """Direct record-data candidates first, then ghost blocks found by scanning the clip graph."""
    yield from enumerate_gps_record_data_candidates(map_record)

    if map_record.clip_group_in_game is None:
        return
    for block in traverse_for_type(map_record.clip_group_in_game, MediaBlockGhost, max_depth):
        if block.ghost_model is None:
            continue
        time_ms = to_milliseconds(block.ghost_model.race_time)
        if time_ms is not None:
            yield GpsCandidate(time_ms, GHOST_BLOCK_SOURCE)


def _join_non_empty(*parts: Optional[str]) -> str:
    return " ".join(part for part in parts if part and part.strip())
