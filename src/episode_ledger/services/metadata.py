"""OMDb API client for series season metadata."""

from typing import Optional

import httpx
import structlog

from episode_ledger.core.config import MetadataConfig
from episode_ledger.core.exceptions import MetadataUnavailable

logger = structlog.get_logger()


class NullMetadataLookup:
    """Used when no API key is configured; every lookup is unknown."""

    async def season_episode_count(self, series_title: str, season: int) -> Optional[int]:
        return None

    async def episode_title(self, series_title: str, season: int, episode: int) -> Optional[str]:
        return None

    async def close(self) -> None:
        pass


class OMDbClient:
    """Client for OMDb API season listings (Open Movie Database)."""

    def __init__(self, config: MetadataConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize OMDb client.

        Args:
            config: Metadata settings with the API key
            client: Optional preconfigured HTTP client (tests inject a mock transport)
        """
        self.config = config
        self._client = client or httpx.AsyncClient(timeout=config.timeout)
        self._seasons: dict[tuple[str, int], dict[int, str]] = {}

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _fetch_season(self, series_title: str, season: int) -> dict[int, str]:
        """
        Fetch the episode list for a season.

        Returns:
            Mapping of episode number -> title

        Raises:
            MetadataUnavailable: If the request fails or OMDb has no such season
        """
        params = {
            "apikey": self.config.omdb_api_key,
            "t": series_title,
            "type": "series",
            "Season": str(season),
        }

        try:
            response = await self._client.get(self.config.base_url, params=params)
        except httpx.HTTPError as e:
            raise MetadataUnavailable(f"OMDb request failed: {e}") from e

        if response.status_code != 200:
            raise MetadataUnavailable(f"OMDb request failed: {response.status_code}")

        try:
            data = response.json()
            if data.get("Response") != "True" or not data.get("Episodes"):
                raise MetadataUnavailable(data.get("Error", "no episodes returned"))

            episodes: dict[int, str] = {}
            for entry in data["Episodes"]:
                try:
                    number = int(entry.get("Episode") or "")
                except ValueError:
                    continue
                title = entry.get("Title")
                episodes[number] = title if title and title != "N/A" else ""
        except (ValueError, TypeError, AttributeError) as e:
            raise MetadataUnavailable(f"OMDb returned an unreadable response: {e}") from e
        return episodes

    async def _season(self, series_title: str, season: int) -> Optional[dict[int, str]]:
        key = (series_title.casefold(), season)
        if key in self._seasons:
            return self._seasons[key]

        try:
            episodes = await self._fetch_season(series_title, season)
        except MetadataUnavailable as e:
            logger.warning("season_lookup_failed", series=series_title, season=season, error=str(e))
            return None

        logger.info("season_fetched", series=series_title, season=season, episodes=len(episodes))
        self._seasons[key] = episodes
        return episodes

    async def season_episode_count(self, series_title: str, season: int) -> Optional[int]:
        episodes = await self._season(series_title, season)
        return len(episodes) if episodes else None

    async def episode_title(self, series_title: str, season: int, episode: int) -> Optional[str]:
        episodes = await self._season(series_title, season)
        if not episodes:
            return None
        return episodes.get(episode) or None


def create_metadata_lookup(config: MetadataConfig):
    """OMDb when an API key is configured, otherwise the null lookup."""
    if config.omdb_api_key:
        return OMDbClient(config)
    logger.info("metadata_lookup_disabled", reason="no_omdb_api_key")
    return NullMetadataLookup()
