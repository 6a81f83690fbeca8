"""Shared types for projectsync.

This module defines enums used by the sync engine, the config store and the CLI.
"""

from __future__ import annotations

from enum import Enum


class ConflictStrategy(str, Enum):
    """Policy for a file modified on both sides since the last sync."""

    LOCAL = "local"
    REMOTE = "remote"
    NEWER = "newer"
    PROMPT = "prompt"


class SyncPhase(str, Enum):
    """Phase of a sync pass, reported through progress callbacks."""

    INITIALIZING = "initializing"
    FETCHING = "fetching"
    SYNCING = "syncing"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"


class SyncMode(str, Enum):
    """Direction of a sync pass."""

    DOWNLOAD = "download"
    BIDIRECTIONAL = "bidirectional"
