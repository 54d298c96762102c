"""Series ledger models persisted in the state file."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CURRENT_SCHEMA_VERSION = 2


class LedgerModel(BaseModel):
    """Base for persisted models: camelCase on disk, snake_case in code."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TrackSortingStrategy(str, Enum):
    """How tracks are ordered before episode numbers are handed out."""

    BY_TRACK_ORDER = "ByTrackOrder"
    BY_MPLS_FILE_NAME = "ByMplsFileName"
    USER_CONFIRMED = "UserConfirmed"


class DoubleEpisodeHandling(str, Enum):
    """Policy for tracks long enough to hold two episodes."""

    ALWAYS_ASK = "AlwaysAsk"
    ALWAYS_SINGLE = "AlwaysSingle"
    ALWAYS_DOUBLE = "AlwaysDouble"


class TrackSelection(LedgerModel):
    """A user's episode choice for one track, kept for pattern learning."""

    track_id: str = ""
    track_name: str = ""
    track_position: int
    suggested_episode: int
    selected_episode: Optional[int] = None  # None = skipped
    accepted: bool = False
    reason: str = "accepted"  # accepted, manual_choice, skipped
    selection_date: datetime = Field(default_factory=datetime.utcnow)

    @property
    def skipped(self) -> bool:
        return self.selected_episode is None


class TrackEpisodeMapping(LedgerModel):
    """A learned track position -> episode number mapping."""

    track_position: int
    episode_number: int
    confidence: float = 0.0


class EpisodeTrackPattern(LedgerModel):
    """Learned mappings for one series season."""

    season: int
    track_mappings: list[TrackEpisodeMapping] = Field(default_factory=list)
    usage_count: int = 0
    confidence: float = 0.0
    created_date: datetime = Field(default_factory=datetime.utcnow)
    last_used: datetime = Field(default_factory=datetime.utcnow)

    def mapping_for(self, position: int) -> Optional[TrackEpisodeMapping]:
        for mapping in self.track_mappings:
            if mapping.track_position == position:
                return mapping
        return None


class DiscPattern(LedgerModel):
    """Fingerprint record for a disc processed under auto-increment."""

    disc_title: str
    track_count: int
    sequence_number: int = 1
    assigned_season: int = 0
    starting_episode: int = 0
    episode_count: int = 0
    processed_date: datetime = Field(default_factory=datetime.utcnow)


class DiscInfo(LedgerModel):
    """One processed disc and the episodes its tracks received."""

    disc_name: str
    season: int
    disc_number: int = 1
    starting_episode: int
    episode_count: int = 0
    track_count: int = 0
    track_to_episode_mapping: dict[int, list[int]] = Field(default_factory=dict)
    user_selections: list[TrackSelection] = Field(default_factory=list)
    processed_date: datetime = Field(default_factory=datetime.utcnow)

    def assigned_episodes(self) -> list[int]:
        """Episode numbers this disc holds, from the mapping or its range."""
        if self.track_to_episode_mapping:
            return [ep for episodes in self.track_to_episode_mapping.values() for ep in episodes]
        return list(range(self.starting_episode, self.starting_episode + self.episode_count))


class SeriesState(LedgerModel):
    """Tracks a series' season/episode position across discs."""

    series_title: str
    current_season: int = 1
    next_episode: int = 1
    next_disc_number: int = 1
    auto_increment: bool = False
    auto_increment_preference: Optional[bool] = None  # None = never asked
    track_sorting_strategy: Optional[TrackSortingStrategy] = None
    double_episode_handling: DoubleEpisodeHandling = DoubleEpisodeHandling.ALWAYS_ASK
    processed_discs: list[DiscInfo] = Field(default_factory=list)
    known_disc_patterns: list[DiscPattern] = Field(default_factory=list)
    learned_patterns: list[EpisodeTrackPattern] = Field(default_factory=list)
    season_episode_counts: dict[int, int] = Field(default_factory=dict)

    @property
    def is_new(self) -> bool:
        return not self.processed_discs

    def find_disc(self, disc_name: str) -> Optional[DiscInfo]:
        """Find a processed disc by name (case-insensitive)."""
        wanted = disc_name.casefold()
        for disc in self.processed_discs:
            if disc.disc_name.casefold() == wanted:
                return disc
        return None

    def upsert_disc(self, disc_info: DiscInfo) -> None:
        """Replace a disc with the same name, or append it."""
        wanted = disc_info.disc_name.casefold()
        for i, disc in enumerate(self.processed_discs):
            if disc.disc_name.casefold() == wanted:
                self.processed_discs[i] = disc_info
                return
        self.processed_discs.append(disc_info)

    def max_episode_by_season(self) -> dict[int, int]:
        """Highest assigned episode per season across all processed discs."""
        result: dict[int, int] = {}
        for disc in self.processed_discs:
            episodes = disc.assigned_episodes()
            if episodes:
                result[disc.season] = max(result.get(disc.season, 0), max(episodes))
        return result

    def pattern_for_season(self, season: int) -> Optional[EpisodeTrackPattern]:
        for pattern in self.learned_patterns:
            if pattern.season == season:
                return pattern
        return None


class MovieIdentity(LedgerModel):
    """A disc identified as a movie."""

    media_type: Literal["movie"] = "movie"
    title: str
    year: Optional[str] = None
    imdb_id: Optional[str] = None


class SeriesIdentity(LedgerModel):
    """A disc identified as a TV series."""

    media_type: Literal["series"] = "series"
    title: str
    year: Optional[str] = None
    imdb_id: Optional[str] = None
    total_seasons: Optional[int] = None


MediaIdentity = Annotated[Union[MovieIdentity, SeriesIdentity], Field(discriminator="media_type")]


class ManualIdentification(LedgerModel):
    """Cached identification for discs sharing a base name."""

    disc_name_pattern: str
    identity: MediaIdentity
    identified_date: datetime = Field(default_factory=datetime.utcnow)


class StateContainer(LedgerModel):
    """Everything persisted in the state file."""

    schema_version: int = CURRENT_SCHEMA_VERSION
    series_states: list[SeriesState] = Field(default_factory=list)
    manual_identifications: list[ManualIdentification] = Field(default_factory=list)

    def find_series(self, series_title: str) -> Optional[SeriesState]:
        wanted = series_title.casefold()
        for state in self.series_states:
            if state.series_title.casefold() == wanted:
                return state
        return None
