"""Tests for episode naming and local file moves."""

import pytest

from episode_ledger.core.config import OutputConfig
from episode_ledger.models.disc import Track, TrackStatus
from episode_ledger.services import file_mover
from episode_ledger.services.file_mover import LocalFileMover
from episode_ledger.services.media_namer import MediaNamer


def test_episode_filename():
    namer = MediaNamer("/library")

    assert namer.generate_episode_filename("Frasier", 1, [3]) == "Frasier - S01E03.mkv"
    assert namer.generate_episode_filename("Frasier", 1, [3, 4], "The Crucible") == "Frasier - S01E03-E04 - The Crucible.mkv"


def test_filename_is_sanitized():
    namer = MediaNamer("/library")

    assert namer.generate_episode_filename("Law: Order?", 12, [1], 'A "Title"') == "Law Order - S12E01 - A Title.mkv"


def test_episode_path_uses_season_folder(tmp_path):
    namer = MediaNamer(str(tmp_path))

    path = namer.generate_episode_path("Frasier", 2, [10], extension=".m2ts")

    assert path == tmp_path / "Frasier" / "Season 02" / "Frasier - S02E10.m2ts"


def _mover(tmp_path, retries=3):
    source = tmp_path / "rips"
    source.mkdir()
    namer = MediaNamer(str(tmp_path / "library"))
    return LocalFileMover(namer, source, move_retries=retries, retry_delay_seconds=0), source


@pytest.mark.asyncio
async def test_place_episode_moves_file(tmp_path):
    mover, source = _mover(tmp_path)
    (source / "title_t00.mkv").write_text("video")
    track = Track(index=0, name="title_t00.mkv", duration_seconds=1300)

    outcome = await mover.place_episode(track, "Frasier", 1, [1], "The Good Son")

    expected = tmp_path / "library" / "Frasier" / "Season 01" / "Frasier - S01E01 - The Good Son.mkv"
    assert outcome.status == TrackStatus.MOVED
    assert outcome.destination == str(expected)
    assert expected.read_text() == "video"
    assert not (source / "title_t00.mkv").exists()


@pytest.mark.asyncio
async def test_missing_source_fails(tmp_path):
    mover, _ = _mover(tmp_path)
    track = Track(index=0, name="missing.mkv", duration_seconds=1300)

    outcome = await mover.place_episode(track, "Frasier", 1, [1], None)

    assert outcome.status == TrackStatus.FAILED
    assert "not found" in outcome.error


@pytest.mark.asyncio
async def test_already_placed_file_counts_as_moved(tmp_path):
    mover, source = _mover(tmp_path)
    (source / "title_t00.mkv").write_text("video")
    track = Track(index=0, name="title_t00.mkv", duration_seconds=1300)
    await mover.place_episode(track, "Frasier", 1, [1], None)

    outcome = await mover.place_episode(track, "Frasier", 1, [1], None)

    assert outcome.succeeded


@pytest.mark.asyncio
async def test_move_retries_then_fails(tmp_path, monkeypatch):
    mover, source = _mover(tmp_path, retries=2)
    (source / "title_t00.mkv").write_text("video")
    calls = []

    def broken_move(src, dst):
        calls.append(src)
        raise PermissionError("share unavailable")

    monkeypatch.setattr(file_mover.shutil, "move", broken_move)
    track = Track(index=0, name="title_t00.mkv", duration_seconds=1300)

    outcome = await mover.place_episode(track, "Frasier", 1, [1], None)

    assert outcome.status == TrackStatus.FAILED
    assert len(calls) == 2
    assert "share unavailable" in outcome.error


@pytest.mark.asyncio
async def test_discard_moves_to_trash(tmp_path):
    mover, source = _mover(tmp_path)
    (source / "title_t03.mkv").write_text("extra")
    track = Track(index=3, name="title_t03.mkv", duration_seconds=300)

    outcome = await mover.discard(track)

    assert outcome.status == TrackStatus.SKIPPED
    assert (tmp_path / "library" / "_trash" / "title_t03.mkv").exists()


def test_from_config(tmp_path):
    config = OutputConfig(output_dir=str(tmp_path), trash_folder="_bin", move_retries=5)

    mover = LocalFileMover.from_config(config)

    assert mover.move_retries == 5
    assert mover.namer.generate_trash_path("x.mkv") == tmp_path / "_bin" / "x.mkv"
