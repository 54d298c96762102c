"""Whole-file JSON persistence for the series ledger.

The store assumes a single writer in a single process; nothing locks the
file. A document that cannot be read or validated is logged and replaced by
an empty container, so a corrupt file resets every series.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional, Union

import structlog

from episode_ledger.core.exceptions import StateStoreError
from episode_ledger.models.series import (
    CURRENT_SCHEMA_VERSION,
    ManualIdentification,
    MediaIdentity,
    SeriesState,
    StateContainer,
)
from episode_ledger.services.disc_fingerprint import extract_base_name

logger = structlog.get_logger()

_LOAD_ERRORS = (OSError, ValueError, TypeError, KeyError, AttributeError)

# Enum values written as integers by older versions
_LEGACY_SORTING = {0: "ByTrackOrder", 1: "ByMplsFileName", 2: "UserConfirmed"}
_LEGACY_DOUBLE = {0: "AlwaysAsk", 1: "AlwaysSingle", 2: "AlwaysDouble"}


def _camel_keys(value: Any) -> Any:
    """Lower-case the first letter of every key (PascalCase -> camelCase)."""
    if isinstance(value, dict):
        return {
            (k[:1].lower() + k[1:] if isinstance(k, str) else k): _camel_keys(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_camel_keys(v) for v in value]
    return value


def _rename(d: dict, old: str, new: str) -> None:
    if old in d and new not in d:
        d[new] = d.pop(old)


def _upgrade_v0(document: list) -> dict:
    """Version 0: a bare array of series states."""
    return {"schemaVersion": 1, "seriesStates": document, "manualIdentifications": []}


def _upgrade_series_v1(series: dict) -> None:
    sorting = series.get("trackSortingStrategy")
    if isinstance(sorting, int):
        series["trackSortingStrategy"] = _LEGACY_SORTING.get(sorting)
    double = series.get("doubleEpisodeHandling")
    if isinstance(double, int):
        series["doubleEpisodeHandling"] = _LEGACY_DOUBLE.get(double, "AlwaysAsk")
    elif double is None:
        series.pop("doubleEpisodeHandling", None)

    for disc in series.get("processedDiscs") or []:
        for selection in disc.get("userSelections") or []:
            _rename(selection, "trackOrderPosition", "trackPosition")
            _rename(selection, "wasAccepted", "accepted")
            _rename(selection, "selectionReason", "reason")
            episode = selection.get("selectedEpisode")
            if isinstance(episode, int) and episode < 0:
                selection["selectedEpisode"] = None

    for pattern in series.get("learnedPatterns") or []:
        _rename(pattern, "confidenceScore", "confidence")
        for mapping in pattern.get("trackMappings") or []:
            _rename(mapping, "confidenceScore", "confidence")


def _upgrade_identification_v1(entry: dict) -> dict:
    if "identity" in entry:
        return entry
    media_type = "movie" if str(entry.get("mediaType", "")).lower() == "movie" else "series"
    upgraded = {
        "discNamePattern": entry.get("discNamePattern", ""),
        "identity": {
            "mediaType": media_type,
            "title": entry.get("mediaTitle", ""),
            "year": entry.get("year"),
            "imdbId": entry.get("imdbId"),
        },
    }
    if entry.get("identifiedDate"):
        upgraded["identifiedDate"] = entry["identifiedDate"]
    return upgraded


def _upgrade_v1(document: dict) -> dict:
    """Version 1: container without a version field, integer enums, old names."""
    for series in document.get("seriesStates") or []:
        _upgrade_series_v1(series)
    document["manualIdentifications"] = [
        _upgrade_identification_v1(entry) for entry in document.get("manualIdentifications") or []
    ]
    document["schemaVersion"] = 2
    return document


UPGRADES: dict[int, Callable[[Any], dict]] = {
    0: _upgrade_v0,
    1: _upgrade_v1,
}


def detect_schema_version(document: Union[dict, list]) -> int:
    if isinstance(document, list):
        return 0
    return int(document.get("schemaVersion", 1))


def upgrade_document(document: Union[dict, list]) -> tuple[dict, int]:
    """Apply per-version upgrades until the document is current.

    Returns:
        Tuple of (upgraded document, original version)
    """
    document = _camel_keys(document)
    original = version = detect_schema_version(document)
    while version < CURRENT_SCHEMA_VERSION:
        document = UPGRADES[version](document)
        version = detect_schema_version(document)
    return document, original


class StateStore:
    """Loads and saves the state container with an in-memory mirror."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._cache: Optional[StateContainer] = None

    def load(self) -> StateContainer:
        """Return the container, reading the file on first use."""
        if self._cache is not None:
            return self._cache

        if not self.path.exists():
            logger.debug("state_file_missing", path=str(self.path))
            self._cache = StateContainer()
            return self._cache

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            document, version = upgrade_document(raw)
            container = StateContainer.model_validate(document)
        except _LOAD_ERRORS as e:
            logger.warning(
                "state_load_failed",
                path=str(self.path),
                error=str(e),
                action="starting_from_empty_state",
            )
            self._cache = StateContainer()
            return self._cache

        if version < CURRENT_SCHEMA_VERSION:
            logger.info(
                "state_upgraded",
                path=str(self.path),
                from_version=version,
                to_version=CURRENT_SCHEMA_VERSION,
            )
            try:
                self.save(container)
            except StateStoreError as e:
                logger.warning("state_upgrade_not_written", path=str(self.path), error=str(e))

        self._cache = container
        logger.debug("state_loaded", path=str(self.path), series=len(container.series_states))
        return container

    def save(self, container: StateContainer) -> None:
        """Write the whole container, replacing the file atomically."""
        container.schema_version = CURRENT_SCHEMA_VERSION
        payload = container.model_dump_json(by_alias=True, exclude_none=True, indent=2)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("state_save_failed", path=str(self.path), error=str(e))
            raise StateStoreError(f"Could not write state file {self.path}: {e}") from e

        self._cache = container

    # Series states

    def list_series_states(self) -> list[SeriesState]:
        return [s.model_copy(deep=True) for s in self.load().series_states]

    def get_series_state(self, series_title: str) -> Optional[SeriesState]:
        """Return a private copy of a series' state, or None."""
        state = self.load().find_series(series_title)
        return state.model_copy(deep=True) if state else None

    def get_or_create_series_state(self, series_title: str) -> SeriesState:
        existing = self.get_series_state(series_title)
        if existing is not None:
            return existing
        logger.info("series_state_created", series=series_title)
        return SeriesState(series_title=series_title)

    def save_series_state(self, state: SeriesState) -> None:
        """Read-modify-write one series into the container."""
        container = self.load().model_copy(deep=True)
        wanted = state.series_title.casefold()
        container.series_states = [
            s for s in container.series_states if s.series_title.casefold() != wanted
        ]
        container.series_states.append(state.model_copy(deep=True))
        self.save(container)
        logger.info(
            "series_state_saved",
            series=state.series_title,
            season=state.current_season,
            next_episode=state.next_episode,
            next_disc=state.next_disc_number,
        )

    def delete_series_state(self, series_title: str) -> bool:
        container = self.load().model_copy(deep=True)
        wanted = series_title.casefold()
        remaining = [s for s in container.series_states if s.series_title.casefold() != wanted]
        if len(remaining) == len(container.series_states):
            return False
        container.series_states = remaining
        self.save(container)
        logger.info("series_state_deleted", series=series_title)
        return True

    # Manual identifications

    def get_manual_identification(self, disc_name: str) -> Optional[ManualIdentification]:
        """Find a cached identification for discs sharing this label's base name.

        Movie identifications only apply to the exact same base name.
        """
        base = extract_base_name(disc_name).casefold()
        label = disc_name.casefold()

        for entry in self.load().manual_identifications:
            pattern = entry.disc_name_pattern.casefold()
            exact = pattern == base
            if not exact and not (pattern and label.startswith(pattern)):
                continue
            if entry.identity.media_type == "movie" and not exact:
                logger.info(
                    "cached_movie_identification_ignored",
                    pattern=entry.disc_name_pattern,
                    disc_name=disc_name,
                )
                continue
            return entry.model_copy(deep=True)
        return None

    def save_manual_identification(self, disc_name: str, identity: MediaIdentity) -> ManualIdentification:
        base = extract_base_name(disc_name)
        container = self.load().model_copy(deep=True)
        container.manual_identifications = [
            m for m in container.manual_identifications
            if m.disc_name_pattern.casefold() != base.casefold()
        ]
        entry = ManualIdentification(disc_name_pattern=base, identity=identity)
        container.manual_identifications.append(entry)
        self.save(container)
        logger.info("manual_identification_saved", pattern=base, title=identity.title)
        return entry
