"""Disc fingerprints for spotting repeats of the same physical disc label."""

import re
from typing import NamedTuple

import structlog

from episode_ledger.models.series import DiscInfo, DiscPattern, SeriesState

logger = structlog.get_logger()

# Season/disc tokens and everything after them, e.g. "_S08_D1_BD", " Season 2 Disc 1"
_STRIP_PATTERNS = [
    r"[_\s]+S\d+[_\s]+D\d+.*$",
    r"[_\s]+Season[_\s]*\d+.*$",
    r"[_\s]+S\d+.*$",
    r"[_\s]+(?:Disc|Disk|D)[_\s]*\d+.*$",
]


def extract_base_name(disc_name: str) -> str:
    """Strip season/disc tokens from a disc label and tidy separators.

    "Frasier_S1_D1" -> "Frasier", "The Wire Season 3 Disc 2" -> "The Wire"
    """
    cleaned = disc_name.strip()
    for pattern in _STRIP_PATTERNS:
        cleaned = re.sub(pattern, "", cleaned, flags=re.IGNORECASE)

    cleaned = cleaned.replace("_", " ")
    cleaned = re.sub(r"\s+", " ", cleaned)
    cleaned = re.sub(r"[\s\-:]+$", "", cleaned)
    return cleaned.strip()


class DiscFingerprint(NamedTuple):
    """Normalized (base title, track count) key."""

    base_title: str
    track_count: int

    @property
    def key(self) -> tuple[str, int]:
        return self.base_title.casefold(), self.track_count

    def matches(self, other: "DiscFingerprint") -> bool:
        return self.key == other.key


def fingerprint(disc_name: str, track_count: int) -> DiscFingerprint:
    """Build the fingerprint for a disc label and its ripped track count."""
    return DiscFingerprint(extract_base_name(disc_name), track_count)


class DiscFingerprintIndex:
    """Fingerprint bookkeeping over a series' known disc patterns."""

    @staticmethod
    def find_repeats(state: SeriesState, fp: DiscFingerprint) -> list[DiscPattern]:
        """Known patterns recorded for the same physical disc label."""
        return [
            p
            for p in state.known_disc_patterns
            if DiscFingerprint(p.disc_title, p.track_count).matches(fp)
        ]

    def next_sequence_number(self, state: SeriesState, fp: DiscFingerprint) -> int:
        repeats = self.find_repeats(state, fp)
        if not repeats:
            return 1
        return max(p.sequence_number for p in repeats) + 1

    def record(self, state: SeriesState, fp: DiscFingerprint, disc_info: DiscInfo) -> DiscPattern:
        """Append a pattern for a disc processed under auto-increment."""
        pattern = DiscPattern(
            disc_title=fp.base_title,
            track_count=fp.track_count,
            sequence_number=self.next_sequence_number(state, fp),
            assigned_season=disc_info.season,
            starting_episode=disc_info.starting_episode,
            episode_count=disc_info.episode_count,
        )
        state.known_disc_patterns.append(pattern)

        logger.info(
            "disc_pattern_recorded",
            series=state.series_title,
            disc_title=pattern.disc_title,
            track_count=pattern.track_count,
            sequence=pattern.sequence_number,
            season=pattern.assigned_season,
            first_episode=pattern.starting_episode,
            last_episode=pattern.starting_episode + pattern.episode_count - 1,
        )
        return pattern

    @staticmethod
    def has_similar_disc(state: SeriesState, disc_name: str) -> bool:
        """True when a processed disc shares this label's base title, identical labels included."""
        base = extract_base_name(disc_name).casefold()
        return any(extract_base_name(d.disc_name).casefold() == base for d in state.processed_discs)
