"""Ledger services - state store, episode assignment, learning, file placement."""

from .console_decisions import ConsoleDecisions
from .disc_fingerprint import DiscFingerprint, DiscFingerprintIndex, extract_base_name, fingerprint
from .disc_name_parser import DiscNameParser
from .episode_assigner import AssignmentResult, EpisodeNumberAssigner, sort_tracks
from .file_mover import LocalFileMover
from .media_namer import MediaNamer
from .metadata import NullMetadataLookup, OMDbClient, create_metadata_lookup
from .pattern_learning import ConfidencePolicy, PatternLearningEngine
from .season_transition import SeasonTransitionPolicy
from .series_engine import SeriesStateEngine
from .state_store import StateStore

__all__ = [
    "AssignmentResult",
    "ConfidencePolicy",
    "ConsoleDecisions",
    "DiscFingerprint",
    "DiscFingerprintIndex",
    "DiscNameParser",
    "EpisodeNumberAssigner",
    "LocalFileMover",
    "MediaNamer",
    "NullMetadataLookup",
    "OMDbClient",
    "PatternLearningEngine",
    "SeasonTransitionPolicy",
    "SeriesStateEngine",
    "StateStore",
    "create_metadata_lookup",
    "extract_base_name",
    "fingerprint",
    "sort_tracks",
]
