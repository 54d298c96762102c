"""Episode number assignment for a disc's tracks."""

from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from episode_ledger.models.disc import DoubleEpisodeAnswer, Track
from episode_ledger.models.series import DoubleEpisodeHandling, TrackSortingStrategy

logger = structlog.get_logger()

# A track longer than this multiple of the disc's shortest track may hold two episodes
DOUBLE_EPISODE_RATIO = 1.5

AskDouble = Callable[[Track, float], Optional[DoubleEpisodeAnswer]]


@dataclass
class AssignmentResult:
    """Episodes per track index plus any policy the user chose to keep."""

    mapping: dict[int, list[int]] = field(default_factory=dict)  # track index -> episodes
    next_episode: int = 1
    saved_policy: Optional[DoubleEpisodeHandling] = None

    @property
    def episode_count(self) -> int:
        return sum(len(episodes) for episodes in self.mapping.values())


def sort_tracks(tracks: list[Track], strategy: Optional[TrackSortingStrategy]) -> list[Track]:
    """Order tracks for numbering.

    ByMplsFileName sorts by playlist file name; tracks without one follow in
    index order. Every other strategy uses disc index order.
    """
    if strategy == TrackSortingStrategy.BY_MPLS_FILE_NAME:
        with_mpls = sorted((t for t in tracks if t.source_file_name), key=lambda t: t.source_file_name)
        without = sorted((t for t in tracks if not t.source_file_name), key=lambda t: t.index)
        ordered = with_mpls + without
    else:
        ordered = sorted(tracks, key=lambda t: t.index)

    logger.info(
        "tracks_sorted",
        strategy=(strategy or TrackSortingStrategy.BY_TRACK_ORDER).value,
        order=[t.index for t in ordered],
    )
    return ordered


def is_double_candidate(duration_seconds: float, min_duration_seconds: float) -> bool:
    """Strictly longer than 1.5x the shortest track on the disc."""
    if min_duration_seconds <= 0:
        return False
    return duration_seconds > DOUBLE_EPISODE_RATIO * min_duration_seconds


class EpisodeNumberAssigner:
    """Walks ordered tracks handing out one or two episode numbers each."""

    def assign(
        self,
        tracks: list[Track],
        starting_episode: int,
        policy: DoubleEpisodeHandling,
        existing_mapping: Optional[dict[int, list[int]]] = None,
        ask_double: Optional[AskDouble] = None,
    ) -> AssignmentResult:
        """
        Assign episode numbers to tracks in the given order.

        Track indexes already present in existing_mapping (a previous run, or the
        user-confirmed pass) are reused verbatim, so reprocessing a disc yields
        the same numbers.

        Args:
            tracks: Tracks in numbering order
            starting_episode: First episode number for this disc
            policy: Double-episode policy for the series
            existing_mapping: Track index -> episodes to reuse
            ask_double: Called for AlwaysAsk double candidates; None answer = single

        Returns:
            AssignmentResult with the full mapping
        """
        result = AssignmentResult(next_episode=starting_episode)
        if not tracks:
            logger.warning("no_tracks_to_assign")
            return result

        existing = existing_mapping or {}
        min_length = min(t.duration_seconds for t in tracks)
        current = starting_episode

        for position, track in enumerate(tracks):
            reused = existing.get(track.index)
            if reused:
                result.mapping[track.index] = list(reused)
                current = max(current, max(reused) + 1)
                logger.info("episode_mapping_reused", track=track.index, episodes=reused)
                continue

            if self._is_double(track, min_length, policy, result, ask_double):
                result.mapping[track.index] = [current, current + 1]
                current += 2
            else:
                result.mapping[track.index] = [current]
                current += 1

            logger.info(
                "episode_assigned",
                track=track.index,
                position=position,
                duration=track.duration_formatted,
                episodes=result.mapping[track.index],
            )

        result.next_episode = current
        return result

    def _is_double(
        self,
        track: Track,
        min_length: float,
        policy: DoubleEpisodeHandling,
        result: AssignmentResult,
        ask_double: Optional[AskDouble],
    ) -> bool:
        policy = result.saved_policy or policy
        candidate = is_double_candidate(track.duration_seconds, min_length)

        if policy == DoubleEpisodeHandling.ALWAYS_SINGLE:
            return False

        if policy == DoubleEpisodeHandling.ALWAYS_DOUBLE:
            if candidate:
                logger.info("double_episode_by_policy", track=track.index)
            return candidate

        if not candidate:
            return False

        answer = ask_double(track, min_length) if ask_double else None
        if answer is None:
            logger.info("double_episode_prompt_cancelled", track=track.index, fallback="single")
            return False

        if answer.save_policy is not None:
            result.saved_policy = answer.save_policy
            logger.info("double_episode_policy_saved", policy=answer.save_policy.value)
        return answer.treat_as_double
