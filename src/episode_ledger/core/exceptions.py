"""Error types raised across the ledger."""

from typing import Optional


class LedgerError(Exception):
    """Base class for all episode ledger errors."""


class StateStoreError(LedgerError):
    """The state file could not be written."""


class MetadataUnavailable(LedgerError):
    """The metadata service could not answer a lookup."""


class TrackProcessingFailure(LedgerError):
    """A single track's file operation failed."""

    def __init__(self, track_name: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(f"{track_name}: {reason}")
        self.track_name = track_name
        self.reason = reason
        self.cause = cause


class FatalUserExit(LedgerError):
    """The user asked to stop processing at an error prompt."""
