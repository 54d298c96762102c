"""Season and disc detection from disc labels."""

import re

import structlog

from episode_ledger.models.disc import ParsedDiscInfo
from episode_ledger.services.disc_fingerprint import extract_base_name

logger = structlog.get_logger()


class DiscNameParser:
    """Extracts series name, season and disc number from a disc label."""

    # Pattern: "Frasier_S8_D1_BD", "Frasier S8 D1", "Frasier Season 8 Disc 1"
    SEASON_DISC_PATTERNS = [
        r"^(.+?)[_\s\-]+S(?:eason)?[_\s]*(\d{1,2})[_\s\-]*(?:Disc|Disk|D)[_\s]*(\d{1,2})",
        r"^(.+?)\s*S(\d+)[^0-9]*D(\d+)",
    ]

    # Pattern: "Breaking Bad S01", "Breaking Bad - Season 1"
    SEASON_PATTERNS = [
        r"^(.+?)[_\s]+(?:-[_\s]+)?S(?:eason[_\s]*)?(\d{1,2})(?:[_\s]|$)",
        r"^(.+?)[_\s]+(?:-[_\s]+)?(?:Season|Series)[_\s]*(\d{1,2})(?:[_\s]|$)",
    ]

    # Pattern: "Show Name Disc 1" (season unknown)
    DISC_PATTERNS = [
        r"^(.+?)[_\s]+(?:-[_\s]+)?(?:Disc|Disk|D)[_\s]*(\d{1,2})(?:[_\s]|$)",
    ]

    @staticmethod
    def _clean_series_name(raw: str) -> str:
        name = raw.replace("_", " ")
        name = re.sub(r"\s+", " ", name)
        name = re.sub(r"[\s\-:]+$", "", name)
        return name.strip()

    def parse(self, disc_name: str) -> ParsedDiscInfo:
        """
        Parse a disc label.

        Season and disc number stay None when the label does not carry them;
        callers decide whether to ask the user or default.

        Args:
            disc_name: Volume label of the disc

        Returns:
            ParsedDiscInfo with whatever could be extracted
        """
        label = disc_name.strip()
        if not label:
            logger.debug("disc_name_empty")
            return ParsedDiscInfo()

        for pattern in self.SEASON_DISC_PATTERNS:
            match = re.search(pattern, label, re.IGNORECASE)
            if match:
                parsed = ParsedDiscInfo(
                    series_name=self._clean_series_name(match.group(1)),
                    season=int(match.group(2)),
                    disc_number=int(match.group(3)),
                )
                logger.info(
                    "disc_name_parsed",
                    disc_name=label,
                    series=parsed.series_name,
                    season=parsed.season,
                    disc=parsed.disc_number,
                )
                return parsed

        for pattern in self.SEASON_PATTERNS:
            match = re.search(pattern, label, re.IGNORECASE)
            if match:
                parsed = ParsedDiscInfo(
                    series_name=self._clean_series_name(match.group(1)),
                    season=int(match.group(2)),
                )
                logger.info("disc_name_parsed", disc_name=label, series=parsed.series_name, season=parsed.season)
                return parsed

        for pattern in self.DISC_PATTERNS:
            match = re.search(pattern, label, re.IGNORECASE)
            if match:
                parsed = ParsedDiscInfo(
                    series_name=self._clean_series_name(match.group(1)),
                    disc_number=int(match.group(2)),
                )
                logger.info("disc_name_parsed", disc_name=label, series=parsed.series_name, disc=parsed.disc_number)
                return parsed

        parsed = ParsedDiscInfo(series_name=extract_base_name(label))
        logger.warning("disc_name_unparsed", disc_name=label, series=parsed.series_name)
        return parsed

