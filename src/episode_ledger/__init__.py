"""Episode Ledger - season/episode continuity for ripped TV discs."""

__version__ = "0.1.0"
