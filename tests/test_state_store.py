"""Tests for state file persistence and legacy upgrades."""

import json

import pytest

from episode_ledger.core.exceptions import StateStoreError
from episode_ledger.models.series import (
    CURRENT_SCHEMA_VERSION,
    DiscInfo,
    MovieIdentity,
    SeriesIdentity,
    SeriesState,
    TrackSortingStrategy,
)
from episode_ledger.services.state_store import StateStore, detect_schema_version, upgrade_document


def test_missing_file_loads_empty_container(store):
    container = store.load()

    assert container.series_states == []
    assert container.schema_version == CURRENT_SCHEMA_VERSION


def test_save_and_reload_round_trip(store, state_path):
    state = SeriesState(series_title="Frasier", current_season=2, next_episode=7)
    state.processed_discs.append(
        DiscInfo(
            disc_name="Frasier_S2_D1",
            season=2,
            starting_episode=1,
            episode_count=6,
            track_to_episode_mapping={0: [1], 1: [2, 3]},
        )
    )
    store.save_series_state(state)

    raw = json.loads(state_path.read_text())
    assert raw["schemaVersion"] == 2
    assert raw["seriesStates"][0]["seriesTitle"] == "Frasier"
    assert raw["seriesStates"][0]["processedDiscs"][0]["trackToEpisodeMapping"] == {"0": [1], "1": [2, 3]}

    reloaded = StateStore(state_path).get_series_state("frasier")
    assert reloaded.next_episode == 7
    assert reloaded.processed_discs[0].track_to_episode_mapping == {0: [1], 1: [2, 3]}


def test_get_series_state_returns_a_copy(store):
    store.save_series_state(SeriesState(series_title="Frasier"))

    copy = store.get_series_state("Frasier")
    copy.next_episode = 99

    assert store.get_series_state("Frasier").next_episode == 1


def test_save_replaces_series_case_insensitively(store):
    store.save_series_state(SeriesState(series_title="Frasier"))
    store.save_series_state(SeriesState(series_title="FRASIER", next_episode=4))

    states = store.list_series_states()
    assert len(states) == 1
    assert states[0].next_episode == 4


def test_get_or_create_defaults(store):
    state = store.get_or_create_series_state("Cheers")

    assert (state.current_season, state.next_episode, state.next_disc_number) == (1, 1, 1)
    assert store.get_series_state("Cheers") is None


def test_delete_series_state(store):
    store.save_series_state(SeriesState(series_title="Frasier"))

    assert store.delete_series_state("frasier") is True
    assert store.delete_series_state("frasier") is False
    assert store.list_series_states() == []


def test_corrupt_file_is_treated_as_empty(state_path):
    state_path.parent.mkdir(parents=True)
    state_path.write_text("{not json")

    container = StateStore(state_path).load()

    assert container.series_states == []


def test_invalid_document_is_treated_as_empty(state_path):
    state_path.parent.mkdir(parents=True)
    state_path.write_text(json.dumps({"schemaVersion": 2, "seriesStates": [{"currentSeason": 3}]}))

    assert StateStore(state_path).load().series_states == []


def test_load_is_cached(store, state_path):
    store.save_series_state(SeriesState(series_title="Frasier"))
    state_path.write_text("[]")

    assert store.get_series_state("Frasier") is not None


def test_unwritable_path_raises_state_store_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store = StateStore(blocker / "state.json")

    with pytest.raises(StateStoreError):
        store.save_series_state(SeriesState(series_title="Frasier"))


LEGACY_ARRAY = [
    {
        "SeriesTitle": "Frasier",
        "CurrentSeason": 2,
        "NextEpisode": 5,
        "AutoIncrement": True,
        "TrackSortingStrategy": 1,
        "DoubleEpisodeHandling": 2,
        "ProcessedDiscs": [
            {
                "DiscName": "Frasier_S2_D1",
                "Season": 2,
                "DiscNumber": 1,
                "StartingEpisode": 1,
                "EpisodeCount": 4,
                "TrackCount": 4,
                "TrackToEpisodeMapping": {"0": [1], "1": [2]},
                "UserSelections": [
                    {"TrackOrderPosition": 0, "SuggestedEpisode": 1, "SelectedEpisode": -1, "WasAccepted": False}
                ],
            }
        ],
    }
]


def test_detect_schema_version():
    assert detect_schema_version([]) == 0
    assert detect_schema_version({"seriesStates": []}) == 1
    assert detect_schema_version({"schemaVersion": 2}) == 2


def test_upgrade_legacy_array():
    document, original = upgrade_document(LEGACY_ARRAY)

    assert original == 0
    assert document["schemaVersion"] == 2
    series = document["seriesStates"][0]
    assert series["trackSortingStrategy"] == "ByMplsFileName"
    assert series["doubleEpisodeHandling"] == "AlwaysDouble"
    selection = series["processedDiscs"][0]["userSelections"][0]
    assert selection["trackPosition"] == 0
    assert selection["selectedEpisode"] is None


def test_legacy_file_is_upgraded_and_rewritten(state_path):
    state_path.parent.mkdir(parents=True)
    state_path.write_text(json.dumps(LEGACY_ARRAY))

    state = StateStore(state_path).get_series_state("Frasier")

    assert state.current_season == 2
    assert state.track_sorting_strategy == TrackSortingStrategy.BY_MPLS_FILE_NAME
    assert state.processed_discs[0].track_to_episode_mapping == {0: [1], 1: [2]}
    assert state.processed_discs[0].user_selections[0].skipped
    assert json.loads(state_path.read_text())["schemaVersion"] == 2


def test_unversioned_container_with_identifications(state_path):
    state_path.parent.mkdir(parents=True)
    state_path.write_text(
        json.dumps(
            {
                "SeriesStates": [],
                "ManualIdentifications": [
                    {"DiscNamePattern": "Frasier", "MediaTitle": "Frasier", "MediaType": "Series", "Year": "1993"}
                ],
            }
        )
    )

    entry = StateStore(state_path).get_manual_identification("Frasier_S3_D2")

    assert entry is not None
    assert entry.identity.media_type == "series"
    assert entry.identity.title == "Frasier"


def test_series_identification_matches_other_discs(store):
    store.save_manual_identification("Frasier_S1_D1", SeriesIdentity(title="Frasier", imdb_id="tt0106004"))

    entry = store.get_manual_identification("FRASIER_S4_D2")

    assert entry.disc_name_pattern == "Frasier"
    assert entry.identity.imdb_id == "tt0106004"


def test_movie_identification_needs_exact_base_name(store):
    store.save_manual_identification("Heat_D1", MovieIdentity(title="Heat", year="1995"))

    assert store.get_manual_identification("HEAT_D2").identity.title == "Heat"
    assert store.get_manual_identification("Heat_2") is None
