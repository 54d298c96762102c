"""Data models."""

from .disc import (
    DiscContext,
    DiscResult,
    DoubleEpisodeAnswer,
    EpisodeAction,
    EpisodeChoice,
    FailureChoice,
    ParsedDiscInfo,
    Track,
    TrackOutcome,
    TrackStatus,
)
from .series import (
    CURRENT_SCHEMA_VERSION,
    DiscInfo,
    DiscPattern,
    DoubleEpisodeHandling,
    EpisodeTrackPattern,
    ManualIdentification,
    MediaIdentity,
    MovieIdentity,
    SeriesIdentity,
    SeriesState,
    StateContainer,
    TrackEpisodeMapping,
    TrackSelection,
    TrackSortingStrategy,
)

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "DiscContext",
    "DiscInfo",
    "DiscPattern",
    "DiscResult",
    "DoubleEpisodeAnswer",
    "DoubleEpisodeHandling",
    "EpisodeAction",
    "EpisodeChoice",
    "EpisodeTrackPattern",
    "FailureChoice",
    "ManualIdentification",
    "MediaIdentity",
    "MovieIdentity",
    "ParsedDiscInfo",
    "SeriesIdentity",
    "SeriesState",
    "StateContainer",
    "Track",
    "TrackEpisodeMapping",
    "TrackOutcome",
    "TrackSelection",
    "TrackSortingStrategy",
    "TrackStatus",
]
