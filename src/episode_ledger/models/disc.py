"""Disc, track and per-disc processing models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from episode_ledger.models.series import DiscInfo, DoubleEpisodeHandling, TrackSelection


class Track(BaseModel):
    """A ripped title (usually one episode) from a disc."""

    index: int
    name: str
    duration_seconds: int
    size_bytes: int = 0
    source_file_name: Optional[str] = None  # e.g. "00042.mpls"
    file_path: Optional[str] = None

    @property
    def track_id(self) -> str:
        return str(self.index)

    @property
    def duration_formatted(self) -> str:
        """Return duration as HH:MM:SS."""
        hours, remainder = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class ParsedDiscInfo(BaseModel):
    """Series/season/disc tokens read from a disc label. Never persisted."""

    series_name: str = ""
    season: Optional[int] = None
    disc_number: Optional[int] = None

    @property
    def has_season(self) -> bool:
        return self.season is not None and self.season > 0


class TrackStatus(str, Enum):
    """Result of a file operation on one track."""

    MOVED = "moved"
    FAILED = "failed"
    SKIPPED = "skipped"


class TrackOutcome(BaseModel):
    """What a FileOperation did with a track."""

    status: TrackStatus
    destination: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == TrackStatus.MOVED


class EpisodeAction(str, Enum):
    """User response when confirming a track's episode."""

    ACCEPT = "accept"
    ACCEPT_ALL = "accept_all"
    SELECT = "select"
    SKIP = "skip"


class EpisodeChoice(BaseModel):
    """Answer to an episode confirmation prompt."""

    action: EpisodeAction
    episode: Optional[int] = None  # required for SELECT


class DoubleEpisodeAnswer(BaseModel):
    """Answer to a double-episode prompt, optionally saving a policy."""

    treat_as_double: bool
    save_policy: Optional[DoubleEpisodeHandling] = None


class FailureChoice(str, Enum):
    """User response to a failed track."""

    RETRY = "retry"
    SKIP = "skip"
    SKIP_ALL = "skip_all"
    EXIT = "exit"


@dataclass
class DiscContext:
    """Session flags for one disc. A fresh context is used per disc."""

    accept_all_for_disc: bool = False
    skip_failures_for_disc: bool = False


class DiscResult(BaseModel):
    """Outcome of processing one disc."""

    series_title: str
    disc_info: DiscInfo
    moved_tracks: list[int] = Field(default_factory=list)
    failed_tracks: list[int] = Field(default_factory=list)
    skipped_tracks: list[int] = Field(default_factory=list)
    reprocessed: bool = False
    auto_increment: bool = False
    selections: list[TrackSelection] = Field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failed_tracks)

    @property
    def success(self) -> bool:
        return not self.failed_tracks
