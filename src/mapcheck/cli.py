"""CLI interface for map-validation-checker."""

import json
import logging
import sys
from pathlib import Path
from typing import List, Mapping, Optional, Union

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from mapcheck import __version__
from mapcheck.config import settings
from mapcheck.files import enumerate_files
from mapcheck.gbx.decoder import GbxDecoder, load_decoder
from mapcheck.progress import ProgressReporter
from mapcheck.runner import BatchSummary, MapProcessor
from mapcheck.validation.engine import ClassifierOptions
from mapcheck.validation.manual import EMPTY_OVERRIDES, ManualEntry, load_manual_overrides
from mapcheck.validation.replay_index import ReplayIndex, build_replay_index

# stdout carries the JSON result, so logs and progress go to stderr
console = Console(stderr=True)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(message)s",
    handlers=[RichHandler(console=console, rich_tracebacks=True)]
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="mapcheck",
    help="Classify how well a map's author time is backed by validation evidence",
)


def _set_verbose_logging(verbose: bool) -> Optional[int]:
    if not verbose:
        return None
    root_logger = logging.getLogger()
    previous_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)
    return previous_level


def _positive_interval(value: Optional[float]) -> Optional[float]:
    if value is not None and value <= 0:
        raise typer.BadParameter("must be a positive number (seconds)")
    return value


def _build_options(
    *,
    no_gps: bool,
    strict_gps: bool,
    gps_threshold_ms: Optional[int],
    max_depth: Optional[int],
    include_path: bool,
    no_map_name: bool,
) -> ClassifierOptions:
    gps_enabled = settings.gps_enabled or strict_gps
    strict = settings.strict_gps or strict_gps
    if no_gps:
        gps_enabled = False
        strict = False

    return ClassifierOptions(
        gps_enabled=gps_enabled,
        strict_gps=strict,
        gps_threshold_ms=settings.gps_threshold_ms if gps_threshold_ms is None else gps_threshold_ms,
        max_depth=settings.max_depth if max_depth is None else max_depth,
        include_path=settings.include_path or include_path,
        include_map_name=settings.include_map_name and not no_map_name,
    )


def _load_manual(manual: Optional[Path]) -> Mapping[str, ManualEntry]:
    if manual is None:
        return EMPTY_OVERRIDES
    return load_manual_overrides(manual)


def _load_replays(
    replays: Optional[Path],
    *,
    recursive: bool,
    decoder: GbxDecoder,
    progress: bool,
    interval: float,
) -> ReplayIndex:
    if replays is None:
        return {}
    console.print(f"Indexing replays from [cyan]{escape(str(replays))}[/cyan]")
    reporter = ProgressReporter(interval) if progress else None
    return build_replay_index(replays, recursive=recursive, decoder=decoder, progress=reporter, emit=console.print)


def _emit_json(payload: Union[dict, List[dict]], pretty: bool, output: Optional[Path]) -> None:
    text = json.dumps(payload, indent=2 if pretty else None, ensure_ascii=False)

    if output is not None:
        output = output.resolve()
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        logger.info("Wrote report to %s", output)

    typer.echo(text)


def _print_batch_summary(summary: BatchSummary) -> None:
    console.print("\n[bold]Summary[/bold]")
    console.print(f"  Maps: [cyan]{summary.total}[/cyan] in {summary.elapsed:.1f}s")
    colors = {"Yes": "green", "Maybe": "yellow", "Unknown": "magenta", "error": "red"}
    for key, count in sorted(summary.validated_counts.items()):
        color = colors.get(key, "white")
        console.print(f"  {key}: [{color}]{count}[/{color}]")


@app.command()
def check(
    single: Optional[Path] = typer.Option(
        None,
        "--single",
        help="Classify one map file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    batch: Optional[Path] = typer.Option(
        None,
        "--batch",
        help="Classify every map file in a folder",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    replays: Optional[Path] = typer.Option(
        None,
        "--replays",
        help="Replay file or folder used as external evidence",
        exists=True,
    ),
    manual: Optional[Path] = typer.Option(
        None,
        "--manual",
        help='Manual overrides JSON: {"uid": "...", "valid": true, "note": "..."} or a list of them',
        exists=True,
        dir_okay=False,
    ),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Recurse into subfolders (batch + replays)"),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print JSON"),
    include_path: bool = typer.Option(False, "--include-path", help='Include "path" and "replayPath" (if matched)'),
    no_map_name: bool = typer.Option(False, "--no-map-name", help='Omit "mapName" from JSON output'),
    progress: bool = typer.Option(False, "--progress", help="Print periodic scan progress to stderr"),
    progress_interval: Optional[float] = typer.Option(
        None,
        "--progress-interval",
        help="Progress update interval in seconds (default: 5)",
        callback=_positive_interval,
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also write the JSON output to this file"),
    strict_gps: bool = typer.Option(False, "--strict-gps", help='GPS match => validated "Yes" instead of "Maybe"'),
    no_gps: bool = typer.Option(False, "--no-gps", help="Disable the GPS scan"),
    gps_threshold_ms: Optional[int] = typer.Option(
        None,
        "--gps-threshold-ms",
        min=0,
        help="GPS author time tolerance in milliseconds (default: 100)",
    ),
    max_depth: Optional[int] = typer.Option(
        None,
        "--max-depth",
        min=0,
        help="Limit clip graph traversal depth for the GPS scan (default: unlimited)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """
    Classify map author times and print the reports as JSON.

    Manual overrides win over everything; a validation ghost whose time
    differs from the author time is reported as an error.
    """
    if (single is None) == (batch is None):
        raise typer.BadParameter("You must specify exactly one of --single or --batch.")

    previous_level = _set_verbose_logging(verbose)
    try:
        options = _build_options(
            no_gps=no_gps,
            strict_gps=strict_gps,
            gps_threshold_ms=gps_threshold_ms,
            max_depth=max_depth,
            include_path=include_path,
            no_map_name=no_map_name,
        )
        interval = progress_interval or settings.progress_interval_seconds
        decoder = load_decoder(settings.decoder)
        manual_entries = _load_manual(manual)
        replay_index = _load_replays(
            replays,
            recursive=recursive,
            decoder=decoder,
            progress=progress,
            interval=interval,
        )
        processor = MapProcessor(options, manual=manual_entries, replay_index=replay_index, decoder=decoder)

        if single is not None:
            report = processor.process_map_file(single)
            _emit_json(report.to_json_dict(), pretty, output)
            return

        map_files = enumerate_files(batch, recursive)
        console.print(f"Found [cyan]{len(map_files)}[/cyan] file(s) in {escape(str(batch))}")
        summary = processor.process_batch(
            map_files,
            progress=ProgressReporter(interval) if progress else None,
            emit=console.print,
        )
        _emit_json([report.to_json_dict() for report in summary.reports], pretty, output)
        _print_batch_summary(summary)
    finally:
        if previous_level is not None:
            logging.getLogger().setLevel(previous_level)


@app.command()
def version():
    """Show version information."""
    typer.echo(f"map-validation-checker v{__version__}")


def main():
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[red]Fatal error: {escape(str(e))}[/red]")
        logger.exception("Unhandled exception")
        sys.exit(1)


if __name__ == "__main__":
    main()
