"""Ledger recomputation and season rollover after a disc is processed."""

from typing import Optional

import structlog

from episode_ledger.models.series import SeriesState
from episode_ledger.services.collaborators import MetadataLookup

logger = structlog.get_logger()


class SeasonTransitionPolicy:
    """Derives current season, next episode and next disc from processed discs."""

    def __init__(self, metadata: Optional[MetadataLookup] = None):
        self.metadata = metadata

    async def season_episode_count(self, state: SeriesState, season: int) -> Optional[int]:
        """
        Number of episodes in a season, if known.

        Counts are cached on the series state so a season is looked up at
        most once per series.
        """
        cached = state.season_episode_counts.get(season)
        if cached:
            return cached

        if self.metadata is None:
            return None

        count = await self.metadata.season_episode_count(state.series_title, season)
        if count:
            state.season_episode_counts[season] = count
            logger.info("season_episode_count_cached", series=state.series_title, season=season, count=count)
            return count

        logger.info("season_episode_count_unknown", series=state.series_title, season=season)
        return None

    async def apply(self, state: SeriesState) -> None:
        """Recompute the ledger position from the processed discs."""
        max_by_season = state.max_episode_by_season()

        if max_by_season:
            highest = max(max_by_season)
            if highest > state.current_season:
                logger.info(
                    "current_season_advanced",
                    series=state.series_title,
                    old_season=state.current_season,
                    new_season=highest,
                )
                state.current_season = highest

        season_max = max_by_season.get(state.current_season)
        if season_max is not None:
            state.next_episode = season_max + 1

            if state.auto_increment:
                count = await self.season_episode_count(state, state.current_season)
                if count is not None and state.next_episode > count:
                    logger.info(
                        "season_rollover",
                        series=state.series_title,
                        completed_season=state.current_season,
                        episode_count=count,
                        new_season=state.current_season + 1,
                    )
                    state.current_season += 1
                    state.next_episode = 1
                    state.next_disc_number = 1
                    return

        if state.auto_increment:
            disc_numbers = [
                d.disc_number for d in state.processed_discs if d.season == state.current_season
            ]
            if disc_numbers:
                state.next_disc_number = max(disc_numbers) + 1

        logger.debug(
            "ledger_recomputed",
            series=state.series_title,
            season=state.current_season,
            next_episode=state.next_episode,
            next_disc=state.next_disc_number,
        )
