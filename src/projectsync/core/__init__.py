"""Core module - Shared config, hashing, and enums."""

from projectsync.core.config import DEFAULT_BASE_URL, RemoteConfig
from projectsync.core.hashing import (
    compute_content_hash,
    contents_match,
)
from projectsync.core.types import ConflictStrategy, SyncMode, SyncPhase

__all__ = [
    # Config
    "DEFAULT_BASE_URL",
    "RemoteConfig",
    # Hashing
    "compute_content_hash",
    "contents_match",
    # Types
    "ConflictStrategy",
    "SyncMode",
    "SyncPhase",
]
