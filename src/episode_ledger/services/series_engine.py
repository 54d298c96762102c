"""Per-disc orchestration of the series ledger."""

from datetime import datetime
from typing import Optional

import structlog

from episode_ledger.core.exceptions import FatalUserExit
from episode_ledger.models.disc import (
    DiscContext,
    DiscResult,
    EpisodeAction,
    FailureChoice,
    ParsedDiscInfo,
    Track,
    TrackStatus,
)
from episode_ledger.models.series import (
    DiscInfo,
    SeriesState,
    TrackSelection,
    TrackSortingStrategy,
)
from episode_ledger.services.collaborators import FileOperation, MetadataLookup, UserDecision
from episode_ledger.services.disc_fingerprint import DiscFingerprintIndex, fingerprint
from episode_ledger.services.disc_name_parser import DiscNameParser
from episode_ledger.services.episode_assigner import EpisodeNumberAssigner, sort_tracks
from episode_ledger.services.metadata import NullMetadataLookup
from episode_ledger.services.pattern_learning import PatternLearningEngine
from episode_ledger.services.season_transition import SeasonTransitionPolicy
from episode_ledger.services.state_store import StateStore

logger = structlog.get_logger()


class SeriesStateEngine:
    """Decides season and episode numbers for each disc and keeps the ledger.

    One disc is processed end to end at a time. The series state is loaded
    at the start of process_disc and saved once at the end, including when
    the user aborts with FatalUserExit.
    """

    def __init__(
        self,
        store: StateStore,
        decisions: UserDecision,
        files: FileOperation,
        metadata: Optional[MetadataLookup] = None,
        parser: Optional[DiscNameParser] = None,
        fingerprints: Optional[DiscFingerprintIndex] = None,
        learning: Optional[PatternLearningEngine] = None,
        assigner: Optional[EpisodeNumberAssigner] = None,
        transition: Optional[SeasonTransitionPolicy] = None,
    ):
        self.store = store
        self.decisions = decisions
        self.files = files
        self.metadata = metadata or NullMetadataLookup()
        self.parser = parser or DiscNameParser()
        self.fingerprints = fingerprints or DiscFingerprintIndex()
        self.learning = learning or PatternLearningEngine()
        self.assigner = assigner or EpisodeNumberAssigner()
        self.transition = transition or SeasonTransitionPolicy(self.metadata)

    async def process_disc(
        self,
        series_title: str,
        disc_name: str,
        tracks: list[Track],
        context: Optional[DiscContext] = None,
    ) -> DiscResult:
        """
        Assign episodes to a disc's tracks, place the files and update the ledger.

        Args:
            series_title: Series the disc belongs to
            disc_name: Disc volume label
            tracks: Ripped tracks on the disc
            context: Session flags for this disc; a fresh one when omitted

        Returns:
            DiscResult describing what was moved, failed and skipped

        Raises:
            FatalUserExit: The user chose to exit at a failure prompt. Tracks
                completed before that point are saved first.
        """
        context = context or DiscContext()
        state = self.store.get_or_create_series_state(series_title)
        parsed = self.parser.parse(disc_name)
        is_new = state.is_new

        logger.info(
            "disc_processing_started",
            series=state.series_title,
            disc_name=disc_name,
            tracks=len(tracks),
            mode="new" if is_new else "tracking",
            parsed_season=parsed.season,
            parsed_disc=parsed.disc_number,
        )

        season = self._resolve_season(state, disc_name, parsed, is_new)
        auto_increment = self._resolve_auto_increment(state, disc_name, parsed)

        if is_new and season is None and not auto_increment:
            season = self._ask_starting_position(state, disc_name)

        disc_info, reprocessed = self._build_disc_info(state, disc_name, parsed, season, auto_increment, len(tracks))
        existing_mapping = dict(disc_info.track_to_episode_mapping) if reprocessed else {}

        self._resolve_sorting_strategy(state)
        ordered = sort_tracks(tracks, state.track_sorting_strategy)

        result = DiscResult(
            series_title=state.series_title,
            disc_info=disc_info,
            reprocessed=reprocessed,
            auto_increment=auto_increment,
        )

        selections: list[TrackSelection] = []
        if self.learning.is_active(state) and not existing_mapping:
            ordered, existing_mapping, selections = await self._confirm_episodes(
                state, disc_info, ordered, context, result
            )
        result.selections = selections

        assignment = self.assigner.assign(
            ordered,
            disc_info.starting_episode,
            state.double_episode_handling,
            existing_mapping=existing_mapping,
            ask_double=lambda track, min_length: self.decisions.classify_double_episode(
                state.series_title, track, min_length
            ),
        )
        if assignment.saved_policy is not None:
            state.double_episode_handling = assignment.saved_policy

        placed: dict[int, list[int]] = {}
        try:
            for track in ordered:
                episodes = assignment.mapping[track.index]
                if await self._place_track(state, disc_info.season, track, episodes, context, result):
                    placed[track.index] = episodes
        except FatalUserExit:
            logger.warning(
                "disc_processing_aborted",
                series=state.series_title,
                disc_name=disc_name,
                completed=len(placed),
            )
            await self._finalize(state, disc_info, placed, selections, auto_increment, len(tracks))
            raise

        await self._finalize(state, disc_info, placed, selections, auto_increment, len(tracks))

        logger.info(
            "disc_processed",
            series=state.series_title,
            disc_name=disc_name,
            season=disc_info.season,
            disc=disc_info.disc_number,
            episodes=disc_info.episode_count,
            moved=len(result.moved_tracks),
            failed=len(result.failed_tracks),
            skipped=len(result.skipped_tracks),
            next_season=state.current_season,
            next_episode=state.next_episode,
        )
        return result

    def _resolve_season(
        self, state: SeriesState, disc_name: str, parsed: ParsedDiscInfo, is_new: bool
    ) -> Optional[int]:
        """Season named by the label, after any mismatch with the ledger is settled."""
        if not parsed.has_season:
            return None if is_new else state.current_season

        if is_new:
            state.current_season = parsed.season
            return parsed.season

        recorded = state.find_disc(disc_name)
        if recorded is not None:
            return recorded.season

        if parsed.season == state.current_season:
            return parsed.season

        adopt = self.decisions.resolve_season_mismatch(
            state.series_title, disc_name, state.current_season, parsed.season
        )
        if not adopt:
            logger.info(
                "season_mismatch_kept_current",
                series=state.series_title,
                disc_season=parsed.season,
                current_season=state.current_season,
                cancelled=adopt is None,
            )
            return state.current_season

        if parsed.season > state.current_season:
            logger.info(
                "season_mismatch_advanced",
                series=state.series_title,
                old_season=state.current_season,
                new_season=parsed.season,
            )
            state.current_season = parsed.season
            state.next_episode = 1
            state.next_disc_number = 1
        else:
            logger.info(
                "season_mismatch_earlier_season",
                series=state.series_title,
                disc_season=parsed.season,
                current_season=state.current_season,
            )
        return parsed.season

    def _resolve_auto_increment(self, state: SeriesState, disc_name: str, parsed: ParsedDiscInfo) -> bool:
        if state.auto_increment_preference is not None:
            state.auto_increment = state.auto_increment_preference
            return state.auto_increment

        labelled = parsed.has_season or parsed.disc_number is not None
        if labelled and state.find_disc(disc_name) is not None:
            return False

        answer: Optional[bool] = False
        if state.auto_increment:
            answer = self.decisions.enable_auto_increment(state.series_title, disc_name, True)
        elif self.fingerprints.has_similar_disc(state, disc_name):
            answer = self.decisions.enable_auto_increment(state.series_title, disc_name, False)
        else:
            return False

        if answer is None:
            logger.info("auto_increment_prompt_cancelled", series=state.series_title, fallback=False)
            state.auto_increment = False
            return False

        state.auto_increment = answer
        state.auto_increment_preference = answer
        logger.info("auto_increment_preference_saved", series=state.series_title, enabled=answer)
        return answer

    def _ask_starting_position(self, state: SeriesState, disc_name: str) -> int:
        position = self.decisions.starting_position(state.series_title, disc_name)
        if position is None:
            logger.info("starting_position_cancelled", series=state.series_title, fallback="S01E01")
            position = (1, 1)

        season, episode = position
        state.current_season = season
        state.next_episode = episode
        logger.info("starting_position_set", series=state.series_title, season=season, episode=episode)
        return season

    def _build_disc_info(
        self,
        state: SeriesState,
        disc_name: str,
        parsed: ParsedDiscInfo,
        season: Optional[int],
        auto_increment: bool,
        track_count: int,
    ) -> tuple[DiscInfo, bool]:
        """Season, starting episode and disc number for this disc.

        Returns:
            Tuple of (disc info, whether a recorded disc is being reprocessed)
        """
        if auto_increment:
            fp = fingerprint(disc_name, track_count)
            if self.fingerprints.find_repeats(state, fp):
                logger.info(
                    "repeat_disc_detected",
                    series=state.series_title,
                    disc_title=fp.base_title,
                    track_count=track_count,
                    sequence=self.fingerprints.next_sequence_number(state, fp),
                )
            disc_info = DiscInfo(
                disc_name=disc_name,
                season=state.current_season,
                disc_number=state.next_disc_number,
                starting_episode=state.next_episode,
                track_count=track_count,
            )
            logger.info(
                "auto_increment_position",
                series=state.series_title,
                season=disc_info.season,
                starting_episode=disc_info.starting_episode,
                disc=disc_info.disc_number,
            )
            return disc_info, False

        existing = state.find_disc(disc_name)
        if existing is not None:
            logger.warning(
                "disc_already_processed",
                series=state.series_title,
                disc_name=disc_name,
                season=existing.season,
                starting_episode=existing.starting_episode,
            )
            return existing.model_copy(deep=True), True

        season = season if season is not None else state.current_season
        season_max = state.max_episode_by_season().get(season)
        if season_max is not None:
            starting = season_max + 1
        elif season == state.current_season:
            starting = state.next_episode
        else:
            starting = 1

        disc_info = DiscInfo(
            disc_name=disc_name,
            season=season,
            disc_number=parsed.disc_number or 1,
            starting_episode=starting,
            track_count=track_count,
        )
        logger.info(
            "disc_position",
            series=state.series_title,
            season=season,
            disc=disc_info.disc_number,
            starting_episode=starting,
        )
        return disc_info, False

    def _resolve_sorting_strategy(self, state: SeriesState) -> None:
        if state.track_sorting_strategy is not None:
            return
        strategy = self.decisions.choose_sorting_strategy(state.series_title)
        if strategy is None:
            logger.info("sorting_strategy_cancelled", series=state.series_title, fallback="ByTrackOrder")
            strategy = TrackSortingStrategy.BY_TRACK_ORDER
        state.track_sorting_strategy = strategy
        logger.info("sorting_strategy_chosen", series=state.series_title, strategy=strategy.value)

    async def _available_episodes(self, state: SeriesState, season: int, upper: int) -> list[int]:
        count = await self.transition.season_episode_count(state, season)
        taken = {
            ep
            for disc in state.processed_discs
            if disc.season == season
            for ep in disc.assigned_episodes()
        }
        last = max(count or 0, upper)
        return [ep for ep in range(1, last + 1) if ep not in taken]

    async def _confirm_episodes(
        self,
        state: SeriesState,
        disc_info: DiscInfo,
        ordered: list[Track],
        context: DiscContext,
        result: DiscResult,
    ) -> tuple[list[Track], dict[int, list[int]], list[TrackSelection]]:
        """Have the user confirm each track's episode.

        Returns:
            Tuple of (tracks kept, confirmed mapping, selections to learn from)
        """
        season = disc_info.season
        available = await self._available_episodes(
            state, season, disc_info.starting_episode + len(ordered) - 1
        )

        kept: list[Track] = []
        chosen: set[int] = set()
        mapping: dict[int, list[int]] = {}
        selections: list[TrackSelection] = []
        expected = disc_info.starting_episode

        for position, track in enumerate(ordered):
            suggested, confidence = self.learning.get_suggested_episode(state, season, position, expected)
            if not self.learning.is_actionable(confidence):
                suggested = expected

            if context.accept_all_for_disc:
                action, episode = EpisodeAction.ACCEPT, suggested
            else:
                title = await self.metadata.episode_title(state.series_title, season, suggested)
                choice = self.decisions.confirm_episode(
                    state.series_title,
                    season,
                    track,
                    suggested,
                    title,
                    [ep for ep in available if ep not in chosen],
                    confidence,
                )
                if choice is None:
                    logger.info("episode_confirmation_cancelled", track=track.index, fallback="accept")
                    action, episode = EpisodeAction.ACCEPT, suggested
                else:
                    action = choice.action
                    episode = choice.episode if choice.action == EpisodeAction.SELECT and choice.episode else suggested

            if action == EpisodeAction.ACCEPT_ALL:
                context.accept_all_for_disc = True
                logger.info("accept_all_for_disc", series=state.series_title, from_track=track.index)

            if action == EpisodeAction.SKIP:
                selections.append(
                    self.learning.record_selection(
                        state.series_title, season, position, suggested, None, False, track
                    )
                )
                outcome = await self.files.discard(track)
                if outcome.status == TrackStatus.FAILED:
                    logger.warning("skipped_track_not_discarded", track=track.index, error=outcome.error)
                result.skipped_tracks.append(track.index)
                continue

            selections.append(
                self.learning.record_selection(
                    state.series_title, season, position, suggested, episode, episode == suggested, track
                )
            )
            mapping[track.index] = [episode]
            chosen.add(episode)
            kept.append(track)
            expected = episode + 1

        return kept, mapping, selections

    async def _place_track(
        self,
        state: SeriesState,
        season: int,
        track: Track,
        episodes: list[int],
        context: DiscContext,
        result: DiscResult,
    ) -> bool:
        """Place one track, escalating failures. Returns True when the track was moved."""
        title = await self.metadata.episode_title(state.series_title, season, episodes[0])

        while True:
            outcome = await self.files.place_episode(track, state.series_title, season, episodes, title)
            if outcome.succeeded:
                result.moved_tracks.append(track.index)
                return True

            if outcome.status == TrackStatus.SKIPPED:
                result.skipped_tracks.append(track.index)
                return False

            error = outcome.error or "unknown error"
            logger.warning("track_failed", series=state.series_title, track=track.index, episodes=episodes, error=error)

            if context.skip_failures_for_disc:
                result.failed_tracks.append(track.index)
                return False

            choice = self.decisions.resolve_track_failure(state.series_title, season, episodes, track, error)
            if choice is None:
                logger.info("track_failure_prompt_cancelled", track=track.index, fallback="skip")
                choice = FailureChoice.SKIP

            if choice == FailureChoice.RETRY:
                logger.info("track_retry", track=track.index)
                continue

            result.failed_tracks.append(track.index)
            if choice == FailureChoice.SKIP_ALL:
                context.skip_failures_for_disc = True
            elif choice == FailureChoice.EXIT:
                raise FatalUserExit(f"Stopped at track {track.index} of {state.series_title}")
            return False

    async def _finalize(
        self,
        state: SeriesState,
        disc_info: DiscInfo,
        placed: dict[int, list[int]],
        selections: list[TrackSelection],
        auto_increment: bool,
        track_count: int,
    ) -> None:
        """Record only the tracks that were placed, then recompute and save."""
        disc_info.track_to_episode_mapping = placed
        disc_info.episode_count = sum(len(episodes) for episodes in placed.values())
        disc_info.track_count = track_count
        disc_info.processed_date = datetime.utcnow()
        if selections:
            disc_info.user_selections = selections
        state.upsert_disc(disc_info)

        if auto_increment:
            self.fingerprints.record(state, fingerprint(disc_info.disc_name, track_count), disc_info)

        await self.transition.apply(state)

        if selections:
            self.learning.analyze_and_update_patterns(state, disc_info.season, selections)

        self.store.save_series_state(state)
