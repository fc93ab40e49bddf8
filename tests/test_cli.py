"""
Tests for the command line interface.

JSON results are read back from the ``--output`` file so assertions do not
depend on how the runner mixes stdout and stderr.
"""

import io
import json

import pytest
from rich.console import Console
from typer.testing import CliRunner

from conftest import build_map_gbx, build_replay_gbx
from mapcheck import __version__, cli
from mapcheck.cli import app

runner = CliRunner()


@pytest.fixture
def maps_dir(write_file, tmp_path):
    write_file("maps/a.Map.Gbx", build_map_gbx("MapA", "Alpha", 5432, checkpoints=2))
    write_file("maps/b.Map.Gbx", build_map_gbx("MapB", "Bravo", 7000))
    write_file("maps/notes.txt", b"not a map")
    return tmp_path / "maps"


def run_check(tmp_path, *args):
    output = tmp_path / "out" / "report.json"
    result = runner.invoke(app, ["check", *args, "--output", str(output)])
    return result, output


class TestCheckSingle:
    def test_single_map(self, maps_dir, tmp_path):
        result, output = run_check(tmp_path, "--single", str(maps_dir / "a.Map.Gbx"))

        assert result.exit_code == 0, result.output
        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["uid"] == "MapA"
        assert report["mapName"] == "Alpha"
        assert report["validated"] == "Unknown"
        assert report["type"] == "normal"
        assert "path" not in report

    def test_flags_shape_the_report(self, maps_dir, tmp_path):
        map_path = maps_dir / "a.Map.Gbx"

        result, output = run_check(tmp_path, "--single", str(map_path), "--include-path", "--no-map-name", "--pretty")

        assert result.exit_code == 0, result.output
        text = output.read_text(encoding="utf-8")
        report = json.loads(text)
        assert report["path"] == str(map_path)
        assert "mapName" not in report
        assert "\n  " in text

    def test_manual_and_replays(self, maps_dir, write_file, tmp_path):
        write_file("replays/pb.Replay.Gbx", build_replay_gbx("MapA", 5432))
        manual = write_file("manual.json", b'[{"uid": "MapB", "valid": False, "note": "reviewed"}]')

        result, output = run_check(
            tmp_path,
            "--batch",
            str(maps_dir),
            "--replays",
            str(tmp_path / "replays"),
            "--manual",
            str(manual),
        )

        assert result.exit_code == 0, result.output
        reports = json.loads(output.read_text(encoding="utf-8"))
        assert [report.get("type") for report in reports] == ["replay", "manual", None]
        assert reports[0]["validated"] == "Yes"
        assert reports[1]["validated"] == "Maybe"
        assert reports[1]["note"] == "reviewed"
        assert reports[2] == {"error": "not a gbx file"}


class TestCheckBatch:
    def test_batch_lists_every_file(self, maps_dir, tmp_path):
        result, output = run_check(tmp_path, "--batch", str(maps_dir), "--progress", "--progress-interval", "0.5")

        assert result.exit_code == 0, result.output
        reports = json.loads(output.read_text(encoding="utf-8"))
        assert [report.get("uid") for report in reports] == ["MapA", "MapB", None]

    def test_recursive_batch(self, maps_dir, write_file, tmp_path):
        write_file("maps/nested/c.Map.Gbx", build_map_gbx("MapC", "Charlie", 9000))

        flat, flat_output = run_check(tmp_path, "--batch", str(maps_dir))
        flat_uids = [report.get("uid") for report in json.loads(flat_output.read_text(encoding="utf-8"))]
        deep, deep_output = run_check(tmp_path, "--batch", str(maps_dir), "-r")
        deep_uids = [report.get("uid") for report in json.loads(deep_output.read_text(encoding="utf-8"))]

        assert flat.exit_code == 0 and deep.exit_code == 0
        assert "MapC" not in flat_uids
        assert "MapC" in deep_uids


class TestArgumentErrors:
    def test_requires_one_mode(self, tmp_path):
        result, _ = run_check(tmp_path)

        assert result.exit_code == 2

    def test_rejects_both_modes(self, maps_dir, tmp_path):
        result, _ = run_check(tmp_path, "--single", str(maps_dir / "a.Map.Gbx"), "--batch", str(maps_dir))

        assert result.exit_code == 2

    @pytest.mark.parametrize(
        "extra",
        [["--gps-threshold-ms", "-1"], ["--max-depth", "-3"], ["--progress-interval", "0"]],
    )
    def test_rejects_invalid_numbers(self, maps_dir, tmp_path, extra):
        result, output = run_check(tmp_path, "--single", str(maps_dir / "a.Map.Gbx"), *extra)

        assert result.exit_code == 2
        assert not output.exists()

    def test_missing_input(self, tmp_path):
        result, _ = run_check(tmp_path, "--single", str(tmp_path / "missing.Map.Gbx"))

        assert result.exit_code == 2


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_bracketed_paths_print_literally(write_file, tmp_path, monkeypatch):
    write_file("[red]maps/a.Map.Gbx", build_map_gbx("MapA", "Alpha", 5432))
    write_file("[bold]replays/pb.Replay.Gbx", build_replay_gbx("MapA", 5432))
    captured = io.StringIO()
    monkeypatch.setattr(cli, "console", Console(file=captured, width=1000))

    result, _ = run_check(
        tmp_path,
        "--batch",
        str(tmp_path / "[red]maps"),
        "--replays",
        str(tmp_path / "[bold]replays"),
    )

    assert result.exit_code == 0, result.output
    printed = captured.getvalue()
    assert f"Indexing replays from {tmp_path / '[bold]replays'}" in printed
    assert f"file(s) in {tmp_path / '[red]maps'}" in printed
