"""Tests for the command line interface."""

import pytest
from typer.testing import CliRunner

from episode_ledger import __version__
from episode_ledger.main import app, parse_track_spec

runner = CliRunner()


@pytest.fixture
def ledger_env(tmp_path, monkeypatch):
    monkeypatch.setenv("LEDGER_STATE__DIRECTORY", str(tmp_path / "state"))
    monkeypatch.setenv("LEDGER_OUTPUT__RETRY_DELAY_SECONDS", "0")
    monkeypatch.delenv("LEDGER_METADATA__OMDB_API_KEY", raising=False)
    rips = tmp_path / "rips"
    rips.mkdir()
    for name in ("t00.mkv", "t01.mkv"):
        (rips / name).write_text("video")
    return tmp_path


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_parse_track_spec():
    track = parse_track_spec(2, "t02.mkv:1320:00005.mpls")

    assert track.index == 2
    assert track.duration_seconds == 1320
    assert track.source_file_name == "00005.mpls"


def test_bad_track_spec_is_rejected(ledger_env):
    result = runner.invoke(app, ["process", "Frasier_S1_D1", "--series", "Frasier", "--track", "t00.mkv"])

    assert result.exit_code == 2


def test_process_show_and_forget(ledger_env):
    library = ledger_env / "library"
    result = runner.invoke(
        app,
        [
            "process",
            "Frasier_S1_D1",
            "--series", "Frasier",
            "--track", "t00.mkv:1300",
            "--track", "t01.mkv:1310",
            "--source-dir", str(ledger_env / "rips"),
            "--output-dir", str(library),
        ],
        input="track\n",
    )

    assert result.exit_code == 0, result.output
    assert (library / "Frasier" / "Season 01" / "Frasier - S01E01.mkv").exists()
    assert (library / "Frasier" / "Season 01" / "Frasier - S01E02.mkv").exists()

    shown = runner.invoke(app, ["show", "Frasier"])
    assert shown.exit_code == 0
    assert "S01E03" in shown.output

    forgotten = runner.invoke(app, ["forget", "Frasier", "--yes"])
    assert forgotten.exit_code == 0
    assert runner.invoke(app, ["show", "Frasier"]).exit_code == 1


def test_process_without_known_series(ledger_env):
    result = runner.invoke(app, ["process", "MYSTERY_DISC", "--track", "t00.mkv:1300"])

    assert result.exit_code == 2


def test_show_empty_ledger(ledger_env):
    result = runner.invoke(app, ["show"])

    assert result.exit_code == 0
    assert "No series tracked yet" in result.output


def test_repeated_invocations_log_to_current_stream(ledger_env):
    assert runner.invoke(app, ["show"]).exit_code == 0

    result = runner.invoke(app, ["show"])

    assert result.exit_code == 0, result.output
    assert result.exception is None
