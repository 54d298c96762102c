"""Learning track-position -> episode mappings from user confirmations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog

from episode_ledger.models.disc import Track
from episode_ledger.models.series import (
    EpisodeTrackPattern,
    SeriesState,
    TrackEpisodeMapping,
    TrackSelection,
    TrackSortingStrategy,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ConfidencePolicy:
    """Confidence arithmetic for learned mappings."""

    accept_increment: float = 0.1
    ceiling: float = 1.0
    correction_reset: float = 0.5
    new_accepted: float = 0.8
    new_corrected: float = 0.6
    acceptance_threshold: float = 0.7

    def on_accept(self, confidence: float) -> float:
        return min(self.ceiling, confidence + self.accept_increment)

    def on_correction(self) -> float:
        return self.correction_reset

    def for_new_mapping(self, accepted: bool) -> float:
        return self.new_accepted if accepted else self.new_corrected

    def is_actionable(self, confidence: float) -> bool:
        return confidence >= self.acceptance_threshold


DEFAULT_POLICY = ConfidencePolicy()


class PatternLearningEngine:
    """Learns a user's habitual episode confirmations per series season.

    Only series using the UserConfirmed sorting strategy take part; every
    operation is a no-op for other strategies. Patterns are keyed by season,
    not by disc, so what is learned on one disc applies to the next.
    """

    def __init__(self, policy: ConfidencePolicy = DEFAULT_POLICY):
        self.policy = policy

    @staticmethod
    def is_active(state: Optional[SeriesState]) -> bool:
        return state is not None and state.track_sorting_strategy == TrackSortingStrategy.USER_CONFIRMED

    def is_actionable(self, confidence: float) -> bool:
        """Below the threshold a suggestion is display-only."""
        return self.policy.is_actionable(confidence)

    def record_selection(
        self,
        series_title: str,
        season: int,
        position: int,
        suggested: int,
        selected: Optional[int],
        accepted: bool,
        track: Optional[Track] = None,
    ) -> TrackSelection:
        """Capture one confirmation. Nothing is learned until the disc completes."""
        if selected is None:
            reason = "skipped"
        elif accepted:
            reason = "accepted"
        else:
            reason = "manual_choice"

        selection = TrackSelection(
            track_id=track.track_id if track else "",
            track_name=track.name if track else "",
            track_position=position,
            suggested_episode=suggested,
            selected_episode=selected,
            accepted=accepted,
            reason=reason,
        )
        logger.info(
            "selection_recorded",
            series=series_title,
            season=season,
            position=position,
            suggested=suggested,
            selected=selected,
            reason=reason,
        )
        return selection

    def get_suggested_episode(
        self,
        state: SeriesState,
        season: int,
        position: int,
        fallback: int,
    ) -> tuple[int, float]:
        """
        Suggest an episode for a track position from learned patterns.

        The learned mapping is stored as an absolute episode number; its offset
        from the smallest episode in the same pattern is re-applied to the
        current disc's first episode (fallback - position).

        Args:
            state: Series state holding learned patterns
            season: Season being processed
            position: 0-based position of the track on the disc
            fallback: Sequential suggestion for this position

        Returns:
            Tuple of (episode, confidence); (fallback, 0.0) when nothing applies
        """
        if not self.is_active(state) or not state.learned_patterns:
            return fallback, 0.0

        candidates = [
            p for p in state.learned_patterns
            if p.season == season and p.mapping_for(position) is not None
        ]
        if not candidates:
            logger.debug("no_learned_pattern", series=state.series_title, season=season, position=position)
            return fallback, 0.0

        best = max(candidates, key=lambda p: p.confidence)
        mapping = best.mapping_for(position)
        min_episode = min(m.episode_number for m in best.track_mappings)
        offset = mapping.episode_number - min_episode
        suggested = (fallback - position) + offset

        logger.info(
            "learned_pattern_applied",
            series=state.series_title,
            season=season,
            position=position,
            offset=offset,
            episode=suggested,
            confidence=round(mapping.confidence, 2),
        )
        return suggested, mapping.confidence

    def get_pattern_confidence(self, state: SeriesState, season: int) -> float:
        if not self.is_active(state):
            return 0.0
        scores = [p.confidence for p in state.learned_patterns if p.season == season]
        return max(scores, default=0.0)

    def has_learned_patterns(self, state: SeriesState, season: int) -> bool:
        return self.is_actionable(self.get_pattern_confidence(state, season))

    def analyze_and_update_patterns(
        self,
        state: SeriesState,
        season: int,
        selections: list[TrackSelection],
    ) -> Optional[EpisodeTrackPattern]:
        """Fold a disc's selections into the season's single pattern."""
        if not self.is_active(state):
            return None

        learnable = [s for s in selections if not s.skipped]
        if not learnable:
            return None

        pattern = state.pattern_for_season(season)
        if pattern is None:
            pattern = EpisodeTrackPattern(season=season)
            state.learned_patterns.append(pattern)
            old_confidence = None
        else:
            old_confidence = pattern.confidence

        pattern.usage_count += 1
        pattern.last_used = datetime.utcnow()

        for selection in learnable:
            mapping = pattern.mapping_for(selection.track_position)
            if mapping is None:
                pattern.track_mappings.append(
                    TrackEpisodeMapping(
                        track_position=selection.track_position,
                        episode_number=selection.selected_episode,
                        confidence=self.policy.for_new_mapping(selection.accepted),
                    )
                )
            elif selection.accepted:
                mapping.confidence = self.policy.on_accept(mapping.confidence)
            elif mapping.episode_number != selection.selected_episode:
                mapping.episode_number = selection.selected_episode
                mapping.confidence = self.policy.on_correction()

        pattern.confidence = sum(m.confidence for m in pattern.track_mappings) / len(pattern.track_mappings)

        logger.info(
            "learned_pattern_updated" if old_confidence is not None else "learned_pattern_created",
            series=state.series_title,
            season=season,
            mappings=len(pattern.track_mappings),
            old_confidence=round(old_confidence, 2) if old_confidence is not None else None,
            confidence=round(pattern.confidence, 2),
        )
        return pattern
