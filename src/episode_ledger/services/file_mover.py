"""Moves ripped tracks into the organized library."""

import asyncio
import shutil
from pathlib import Path
from typing import Optional

import structlog

from episode_ledger.core.config import OutputConfig
from episode_ledger.core.exceptions import TrackProcessingFailure
from episode_ledger.models.disc import Track, TrackOutcome, TrackStatus
from episode_ledger.services.media_namer import MediaNamer

logger = structlog.get_logger()


class LocalFileMover:
    """FileOperation over the local filesystem (or a mounted share)."""

    def __init__(
        self,
        namer: MediaNamer,
        source_dir: Optional[Path] = None,
        move_retries: int = 3,
        retry_delay_seconds: float = 2.0,
    ):
        self.namer = namer
        self.source_dir = Path(source_dir) if source_dir else None
        self.move_retries = max(1, move_retries)
        self.retry_delay_seconds = retry_delay_seconds

    @classmethod
    def from_config(cls, config: OutputConfig, source_dir: Optional[Path] = None) -> "LocalFileMover":
        namer = MediaNamer(config.output_dir, config.trash_folder)
        return cls(namer, source_dir, config.move_retries, config.retry_delay_seconds)

    def source_path(self, track: Track) -> Path:
        """Where the ripped file for a track lives."""
        path = Path(track.file_path) if track.file_path else Path(track.name)
        if not path.is_absolute() and self.source_dir is not None:
            path = self.source_dir / path
        return path

    async def place_episode(
        self,
        track: Track,
        series_title: str,
        season: int,
        episodes: list[int],
        episode_title: Optional[str],
    ) -> TrackOutcome:
        source = self.source_path(track)
        dest = self.namer.generate_episode_path(
            series_title, season, episodes, episode_title, source.suffix or ".mkv"
        )

        try:
            await self._move(track, source, dest)
        except TrackProcessingFailure as e:
            logger.error("track_move_failed", track=track.index, source=str(source), error=e.reason)
            return TrackOutcome(status=TrackStatus.FAILED, error=e.reason)

        logger.info(
            "episode_placed",
            track=track.index,
            season=season,
            episodes=episodes,
            destination=str(dest),
        )
        return TrackOutcome(status=TrackStatus.MOVED, destination=str(dest))

    async def discard(self, track: Track) -> TrackOutcome:
        """Move a skipped track to the trash folder."""
        source = self.source_path(track)
        dest = self.namer.generate_trash_path(source.name)

        try:
            await self._move(track, source, dest)
        except TrackProcessingFailure as e:
            logger.warning("track_discard_failed", track=track.index, error=e.reason)
            return TrackOutcome(status=TrackStatus.FAILED, error=e.reason)

        logger.info("track_discarded", track=track.index, destination=str(dest))
        return TrackOutcome(status=TrackStatus.SKIPPED, destination=str(dest))

    async def _move(self, track: Track, source: Path, dest: Path) -> None:
        """
        Move a file, retrying transient OS errors.

        A missing source whose destination already exists counts as done, so
        rerunning a disc after a crash does not fail on moved files.

        Raises:
            TrackProcessingFailure: If the file is missing or every attempt fails
        """
        if not source.exists():
            if dest.exists():
                logger.info("track_already_placed", track=track.index, destination=str(dest))
                return
            raise TrackProcessingFailure(track.name, f"source file not found: {source}")

        last_error: Optional[OSError] = None
        for attempt in range(1, self.move_retries + 1):
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(source), str(dest))
                return
            except OSError as e:
                last_error = e
                logger.warning(
                    "track_move_retry",
                    track=track.index,
                    attempt=attempt,
                    max_attempts=self.move_retries,
                    error=str(e),
                )
                if attempt < self.move_retries:
                    await asyncio.sleep(self.retry_delay_seconds)

        raise TrackProcessingFailure(track.name, f"move failed: {last_error}", last_error)
