"""Map processing orchestrator: probe → decode → classify, per file or per batch."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Union

from mapcheck.gbx.decoder import GbxDecoder, HeaderDecoder
from mapcheck.gbx.reader import looks_like_gbx
from mapcheck.progress import ProgressReporter, get_eta
from mapcheck.validation.engine import ClassifierOptions, DecisionEngine
from mapcheck.validation.manual import ManualEntry
from mapcheck.validation.replay_index import ReplayEntry
from mapcheck.validation.report import Report

logger = logging.getLogger(__name__)

NOT_GBX_ERROR = "not a gbx file"
PARSE_FAILED_ERROR = "failed to parse map gbx"


@dataclass
class BatchSummary:
    """Reports from a batch run, in input order."""

    reports: List[Report] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def total(self) -> int:
        return len(self.reports)

    @property
    def failed(self) -> List[Report]:
        return [report for report in self.reports if report.error]

    @property
    def validated_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for report in self.reports:
            key = report.validated.value if report.validated else "error"
            counts[key] = counts.get(key, 0) + 1
        return counts


class MapProcessor:
    """Turns map files into reports using a decoder and a decision engine."""

    def __init__(
        self,
        options: Optional[ClassifierOptions] = None,
        *,
        manual: Optional[Mapping[str, ManualEntry]] = None,
        replay_index: Optional[Mapping[str, Sequence[ReplayEntry]]] = None,
        decoder: Optional[GbxDecoder] = None,
    ) -> None:
        self.options = options or ClassifierOptions()
        self.decoder = decoder or HeaderDecoder()
        self.engine = DecisionEngine(self.options, manual=manual, replay_index=replay_index)

    def process_map_file(self, map_path: Union[str, Path]) -> Report:
        """
        Classify a single map file.

        Files that are not GBX, or fail to decode, produce a report carrying
        only ``error`` (and ``path`` when requested); nothing is raised.
        """
        path = Path(map_path)
        path_text = str(map_path) if self.options.include_path else None

        if not looks_like_gbx(path):
            logger.debug("Not a GBX file: %s", path)
            return Report(path=path_text, error=NOT_GBX_ERROR)

        try:
            map_record = self.decoder.decode_map(path)
        except Exception as exc:
            logger.warning("Failed to parse %s: %s", path.name, exc)
            return Report(path=path_text, error=PARSE_FAILED_ERROR, note=f"{type(exc).__name__}: {exc}")

        return self.engine.classify(map_record, path=path_text)

    def process_batch(
        self,
        map_paths: Iterable[Union[str, Path]],
        *,
        progress: Optional[ProgressReporter] = None,
        emit: Optional[Callable[[str], None]] = None,
    ) -> BatchSummary:
        """Classify maps one after another, reporting progress between files."""
        paths = list(map_paths)
        emit = emit or logger.info
        summary = BatchSummary()
        error_count = 0
        start = time.perf_counter()

        for processed, map_path in enumerate(paths, start=1):
            report = self.process_map_file(map_path)
            summary.reports.append(report)
            if report.error:
                error_count += 1

            if progress is None:
                continue
            stats = progress.try_get_stats(processed)
            if stats is None:
                continue
            eta = get_eta(len(paths) - processed, stats.avg_rate)
            emit(
                f"Map scan: {processed}/{len(paths)} files, errors={error_count}, "
                f"rate={stats.avg_rate:.1f}/s (last {stats.interval_rate:.1f}/s), eta={eta}, elapsed={stats.elapsed}"
            )

        summary.elapsed = time.perf_counter() - start
        logger.info(
            "Classified %s map(s) in %.2fs (%s error(s))",
            summary.total,
            summary.elapsed,
            error_count,
        )
        return summary
