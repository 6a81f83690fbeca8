"""Workspace synchronization engine.

Architecture:
    SyncOrchestrator → (DownloadSyncer | BidirectionalSyncer)
                     → WorkspaceDiffer → ProjectComparator

Components:
- **SyncOrchestrator**: Runs a pass, forwards progress, returns SyncResult
- **DownloadSyncer**: Remote is authoritative, unchanged files are skipped
- **BidirectionalSyncer**: Applies a WorkspaceDiff in both directions
- **WorkspaceDiffer**: Matched / remote-only / local-only projects
- **ProjectComparator**: Remote-only / local-only / modified files
- **LocalTree**: Scoped filesystem access under the workspace root
"""

from projectsync.client.sync.types import (
    CancelToken,
    FileTimes,
    LocalIOError,
    ProgressCallback,
    ProjectDiff,
    ProjectOutcome,
    ProjectStatus,
    ProjectSyncError,
    RemoteOnlyProject,
    SyncCancelled,
    SyncError,
    SyncProgress,
    SyncResult,
    SyncStats,
    WorkspaceDiff,
)
from projectsync.client.sync.local import LocalTree, sanitize_file_name
from projectsync.client.sync.compare import (
    AGENTS_FILE,
    CONTEXT_DIR,
    LocalFileSet,
    ProjectComparator,
    RemoteFileSet,
)
from projectsync.client.sync.base import FileFailures, PlannedProject, ProjectSyncer
from projectsync.client.sync.differ import WorkspaceDiffer
from projectsync.client.sync.download import CHATS_DIR, DownloadSyncer
from projectsync.client.sync.bidirectional import BidirectionalSyncer, resolve_conflict
from projectsync.client.sync.engine import SyncOrchestrator

__all__ = [
    # Orchestration
    "SyncOrchestrator",
    "ProjectSyncer",
    "PlannedProject",
    "FileFailures",
    "DownloadSyncer",
    "BidirectionalSyncer",
    "resolve_conflict",
    # Diff
    "WorkspaceDiffer",
    "ProjectComparator",
    "RemoteFileSet",
    "LocalFileSet",
    "AGENTS_FILE",
    "CONTEXT_DIR",
    "CHATS_DIR",
    # Local tree
    "LocalTree",
    "sanitize_file_name",
    # Types
    "CancelToken",
    "FileTimes",
    "LocalIOError",
    "ProgressCallback",
    "ProjectDiff",
    "ProjectOutcome",
    "ProjectStatus",
    "ProjectSyncError",
    "RemoteOnlyProject",
    "SyncCancelled",
    "SyncError",
    "SyncProgress",
    "SyncResult",
    "SyncStats",
    "WorkspaceDiff",
]
