"""Interfaces the engine consumes. Implementations live elsewhere."""

from typing import Optional, Protocol

from episode_ledger.models.disc import (
    DoubleEpisodeAnswer,
    EpisodeChoice,
    FailureChoice,
    Track,
    TrackOutcome,
)
from episode_ledger.models.series import TrackSortingStrategy


class MetadataLookup(Protocol):
    """Episode counts and titles. None means unknown, never an error."""

    async def season_episode_count(self, series_title: str, season: int) -> Optional[int]: ...

    async def episode_title(self, series_title: str, season: int, episode: int) -> Optional[str]: ...

    async def close(self) -> None: ...


class UserDecision(Protocol):
    """Questions the engine escalates to the user.

    Every method returns None when the user cancels; each call site applies
    its own fallback.
    """

    def starting_position(self, series_title: str, disc_name: str) -> Optional[tuple[int, int]]: ...

    def resolve_season_mismatch(
        self, series_title: str, disc_name: str, current_season: int, disc_season: int
    ) -> Optional[bool]: ...

    def enable_auto_increment(
        self, series_title: str, disc_name: str, currently_enabled: bool
    ) -> Optional[bool]: ...

    def choose_sorting_strategy(self, series_title: str) -> Optional[TrackSortingStrategy]: ...

    def classify_double_episode(
        self, series_title: str, track: Track, min_length_seconds: float
    ) -> Optional[DoubleEpisodeAnswer]: ...

    def confirm_episode(
        self,
        series_title: str,
        season: int,
        track: Track,
        suggested_episode: int,
        episode_title: Optional[str],
        available_episodes: list[int],
        confidence: float,
    ) -> Optional[EpisodeChoice]: ...

    def resolve_track_failure(
        self, series_title: str, season: int, episodes: list[int], track: Track, error: str
    ) -> Optional[FailureChoice]: ...


class FileOperation(Protocol):
    """Moves ripped files into place. Reports, never raises, per-track failures."""

    async def place_episode(
        self,
        track: Track,
        series_title: str,
        season: int,
        episodes: list[int],
        episode_title: Optional[str],
    ) -> TrackOutcome: ...

    async def discard(self, track: Track) -> TrackOutcome: ...
