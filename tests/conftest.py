"""Shared fixtures and scripted collaborators."""

from typing import Optional

import pytest
import structlog

from episode_ledger.models.disc import (
    DoubleEpisodeAnswer,
    EpisodeAction,
    EpisodeChoice,
    FailureChoice,
    Track,
    TrackOutcome,
    TrackStatus,
)
from episode_ledger.models.series import TrackSortingStrategy
from episode_ledger.services.series_engine import SeriesStateEngine
from episode_ledger.services.state_store import StateStore


class FakeDecisions:
    """UserDecision with scripted answers; records every question asked."""

    def __init__(self):
        self.starting = None
        self.mismatch: Optional[bool] = None
        self.auto_increment: Optional[bool] = False
        self.sorting: Optional[TrackSortingStrategy] = TrackSortingStrategy.BY_TRACK_ORDER
        self.double: Optional[DoubleEpisodeAnswer] = None
        self.episode_choices: list[Optional[EpisodeChoice]] = []
        self.failure_choices: list[Optional[FailureChoice]] = []
        self.asked: list[str] = []

    def starting_position(self, series_title, disc_name):
        self.asked.append("starting_position")
        return self.starting

    def resolve_season_mismatch(self, series_title, disc_name, current_season, disc_season):
        self.asked.append("season_mismatch")
        return self.mismatch

    def enable_auto_increment(self, series_title, disc_name, currently_enabled):
        self.asked.append("auto_increment")
        return self.auto_increment

    def choose_sorting_strategy(self, series_title):
        self.asked.append("sorting")
        return self.sorting

    def classify_double_episode(self, series_title, track, min_length_seconds):
        self.asked.append("double")
        return self.double

    def confirm_episode(
        self, series_title, season, track, suggested_episode, episode_title, available_episodes, confidence
    ):
        self.asked.append("confirm")
        if self.episode_choices:
            return self.episode_choices.pop(0)
        return EpisodeChoice(action=EpisodeAction.ACCEPT)

    def resolve_track_failure(self, series_title, season, episodes, track, error):
        self.asked.append("failure")
        if self.failure_choices:
            return self.failure_choices.pop(0)
        return FailureChoice.SKIP


class FakeFiles:
    """FileOperation that fails the track indexes listed in fail_indexes."""

    def __init__(self):
        self.fail_indexes: dict[int, int] = {}  # track index -> failures before success
        self.placed: list[tuple[int, int, list[int], Optional[str]]] = []
        self.discarded: list[int] = []

    def fail(self, index: int, times: int = 1000) -> None:
        self.fail_indexes[index] = times

    async def place_episode(self, track, series_title, season, episodes, episode_title):
        remaining = self.fail_indexes.get(track.index, 0)
        if remaining > 0:
            self.fail_indexes[track.index] = remaining - 1
            return TrackOutcome(status=TrackStatus.FAILED, error="disk full")
        self.placed.append((track.index, season, list(episodes), episode_title))
        return TrackOutcome(status=TrackStatus.MOVED, destination=f"/out/{track.name}")

    async def discard(self, track):
        self.discarded.append(track.index)
        return TrackOutcome(status=TrackStatus.SKIPPED, destination=f"/out/_trash/{track.name}")


class FakeMetadata:
    """MetadataLookup over a fixed table of season episode counts."""

    def __init__(self, counts: Optional[dict[int, int]] = None):
        self.counts = counts or {}
        self.count_lookups = 0

    async def season_episode_count(self, series_title, season):
        self.count_lookups += 1
        return self.counts.get(season)

    async def episode_title(self, series_title, season, episode):
        if season in self.counts and episode <= self.counts[season]:
            return f"Episode {episode}"
        return None

    async def close(self):
        pass


def make_tracks(*durations: int, mpls: Optional[list[str]] = None) -> list[Track]:
    return [
        Track(
            index=i,
            name=f"title_t{i:02d}.mkv",
            duration_seconds=d,
            source_file_name=mpls[i] if mpls else None,
        )
        for i, d in enumerate(durations)
    ]


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state" / "media_state.json"


@pytest.fixture
def store(state_path):
    return StateStore(state_path)


@pytest.fixture
def decisions():
    return FakeDecisions()


@pytest.fixture
def files():
    return FakeFiles()


@pytest.fixture
def metadata():
    return FakeMetadata()


@pytest.fixture
def engine(store, decisions, files, metadata):
    return SeriesStateEngine(store=store, decisions=decisions, files=files, metadata=metadata)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()
