"""Episode file naming for Plex compatibility."""

import re
from pathlib import Path
from typing import Optional


class MediaNamer:
    """Generates Plex-compatible episode filenames and paths."""

    def __init__(self, base_path: str, trash_folder: str = "_trash"):
        """
        Initialize media namer.

        Args:
            base_path: Base output directory for TV shows
            trash_folder: Folder (under base_path) for discarded tracks
        """
        self.base_path = Path(base_path)
        self.trash_folder = trash_folder

    @staticmethod
    def sanitize_filename(name: str) -> str:
        """
        Sanitize filename by removing invalid characters.

        Args:
            name: Raw filename

        Returns:
            Sanitized filename safe for filesystem
        """
        sanitized = re.sub(r'[<>:"/\\|?*]', "", name)
        sanitized = re.sub(r"\s+", " ", sanitized)
        return sanitized.strip()

    @staticmethod
    def episode_code(season_number: int, episodes: list[int]) -> str:
        """S01E03, or S01E03-E04 for a track holding two episodes."""
        first, last = min(episodes), max(episodes)
        code = f"S{season_number:02d}E{first:02d}"
        if last != first:
            code += f"-E{last:02d}"
        return code

    def generate_episode_filename(
        self,
        show_name: str,
        season_number: int,
        episodes: list[int],
        episode_title: Optional[str] = None,
        extension: str = ".mkv",
    ) -> str:
        """
        Generate an episode filename following Plex conventions.

        Format: ShowName - S01E01 - EpisodeTitle.mkv

        Args:
            show_name: Name of the show
            season_number: Season number
            episodes: Episode numbers held by the file
            episode_title: Optional title of the first episode
            extension: File extension including the dot

        Returns:
            Filename (not including path)
        """
        sanitized_show = self.sanitize_filename(show_name)
        code = self.episode_code(season_number, episodes)

        if episode_title:
            sanitized_title = self.sanitize_filename(episode_title)
            if sanitized_title:
                return f"{sanitized_show} - {code} - {sanitized_title}{extension}"
        return f"{sanitized_show} - {code}{extension}"

    def generate_episode_path(
        self,
        show_name: str,
        season_number: int,
        episodes: list[int],
        episode_title: Optional[str] = None,
        extension: str = ".mkv",
    ) -> Path:
        """Full path: base/ShowName/Season 01/ShowName - S01E01 - Title.mkv"""
        season_folder = f"Season {season_number:02d}"
        filename = self.generate_episode_filename(
            show_name, season_number, episodes, episode_title, extension
        )
        return self.base_path / self.sanitize_filename(show_name) / season_folder / filename

    def generate_trash_path(self, file_name: str) -> Path:
        return self.base_path / self.trash_folder / self.sanitize_filename(file_name)
