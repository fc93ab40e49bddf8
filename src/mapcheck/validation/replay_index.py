"""Replay evidence index: map uid → replays and the ghost times they hold."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Union

from mapcheck.files import enumerate_files
from mapcheck.gbx.decoder import GbxDecoder, HeaderDecoder
from mapcheck.gbx.models import ReplayRecord
from mapcheck.gbx.reader import looks_like_gbx
from mapcheck.progress import ProgressReporter, get_eta
from mapcheck.validation.time_normalizer import to_milliseconds

logger = logging.getLogger(__name__)

ReplayIndex = Dict[str, List["ReplayEntry"]]


@dataclass(frozen=True)
class ReplayEntry:
    path: str
    ghost_times_ms: FrozenSet[int] = field(default_factory=frozenset)


@dataclass
class ReplayScanCounters:
    scanned: int = 0
    gbx: int = 0
    indexed: int = 0


def build_replay_index(
    path: Union[str, Path],
    *,
    recursive: bool = False,
    decoder: Optional[GbxDecoder] = None,
    progress: Optional[ProgressReporter] = None,
    emit: Optional[Callable[[str], None]] = None,
) -> ReplayIndex:
    """Index every decodable replay under ``path`` by the map uid it targets.

    Replays are best-effort evidence: files that are not GBX, fail to decode,
    name no map or hold no usable ghost time are skipped.
    """
    decoder = decoder or HeaderDecoder()
    emit = emit or logger.info
    files = enumerate_files(path, recursive)
    index: ReplayIndex = {}
    counters = ReplayScanCounters()

    for replay_path in files:
        counters.scanned += 1
        if looks_like_gbx(replay_path):
            counters.gbx += 1
            if _index_replay(replay_path, decoder, index):
                counters.indexed += 1
        _report_progress(progress, emit, counters, len(files))

    logger.info(
        "Replay index: %s file(s) scanned, %s gbx, %s indexed across %s map(s)",
        counters.scanned,
        counters.gbx,
        counters.indexed,
        len(index),
    )
    return index


def collect_ghost_times(replay: ReplayRecord) -> FrozenSet[int]:
    times = set()
    for ghost in replay.iter_ghosts(also_in_clips=True):
        time_ms = to_milliseconds(ghost.race_time)
        if time_ms is not None:
            times.add(time_ms)
    return frozenset(times)


def _index_replay(replay_path: Path, decoder: GbxDecoder, index: ReplayIndex) -> bool:
    try:
        replay = decoder.decode_replay(replay_path)
    except Exception as exc:
        logger.debug("Skipping replay %s: %s: %s", replay_path, type(exc).__name__, exc)
        return False

    uid = replay.resolve_map_uid()
    if not uid:
        logger.debug("Skipping replay %s: no map uid", replay_path)
        return False

    times = collect_ghost_times(replay)
    if not times:
        logger.debug("Skipping replay %s: no ghost times", replay_path)
        return False

    index.setdefault(uid, []).append(ReplayEntry(path=str(replay_path), ghost_times_ms=times))
    return True


def _report_progress(
    progress: Optional[ProgressReporter],
    emit: Callable[[str], None],
    counters: ReplayScanCounters,
    total: int,
) -> None:
    if progress is None:
        return
    stats = progress.try_get_stats(counters.scanned)
    if stats is None:
        return
    eta = get_eta(total - counters.scanned, stats.avg_rate)
    emit(
        f"Replay scan: {counters.scanned}/{total} files, gbx={counters.gbx}, indexed={counters.indexed}, "
        f"rate={stats.avg_rate:.1f}/s (last {stats.interval_rate:.1f}/s), eta={eta}, elapsed={stats.elapsed}"
    )
