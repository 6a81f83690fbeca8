"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, LocalIOError, ProjectSyncError, SyncCancelled: Exception classes
- CancelToken: Cooperative cancellation flag
- FileTimes, ProjectDiff, RemoteOnlyProject, WorkspaceDiff: Diff results
- ProjectStatus, ProjectOutcome: Per-project classification
- SyncStats, SyncResult: Overall sync operation result
- SyncProgress, ProgressCallback: Progress reporting
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from projectsync.core.types import SyncPhase


class SyncError(Exception):
    """Base exception for sync errors."""


class LocalIOError(SyncError):
    """Local filesystem operation failed (permissions, missing handle, quota)."""


class ProjectSyncError(SyncError):
    """One or more files of a project failed to sync.

    Raised only after every file of the project was attempted, so the
    files that did succeed are already written.

    Attributes:
        project_name: Name of the project.
        failed_files: Names of the files that failed, in attempt order.
        causes: Error message per failed file.
        outcome: Counters for what did succeed (uploads, conflicts, chats).
    """

    def __init__(
        self,
        project_name: str,
        failures: dict[str, str],
        outcome: ProjectOutcome | None = None,
    ) -> None:
        self.project_name = project_name
        self.failed_files = list(failures)
        self.causes = dict(failures)
        self.outcome = outcome
        super().__init__(
            f"{len(self.failed_files)} file(s) failed: {', '.join(self.failed_files)}"
        )


class SyncCancelled(SyncError):
    """The pass was cancelled through its CancelToken."""


class CancelToken:
    """Cooperative cancellation flag checked between projects and files.

    Safe to set from another thread (e.g. a signal handler).
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise SyncCancelled if cancellation was requested."""
        if self._event.is_set():
            raise SyncCancelled("Sync cancelled")


# =============================================================================
# Diff Types
# =============================================================================


@dataclass
class FileTimes:
    """Modification times of a file modified on both sides.

    Attributes:
        local_time: Local mtime in seconds since the epoch (None if unknown).
        remote_time: Remote update time in seconds (None if the record has none).
    """

    local_time: float | None = None
    remote_time: float | None = None

    @property
    def is_local_newer(self) -> bool:
        """Local wins only when strictly newer; a missing remote time counts as 0."""
        return (self.local_time or 0.0) > (self.remote_time or 0.0)


@dataclass
class ProjectDiff:
    """Comparison result for one project present on both sides."""

    name: str
    id: str
    folder: str
    remote_only_files: list[str] = field(default_factory=list)
    local_only_files: list[str] = field(default_factory=list)
    modified_files: list[str] = field(default_factory=list)
    modified_files_info: dict[str, FileTimes] = field(default_factory=dict)

    @property
    def has_differences(self) -> bool:
        """Check if any file differs between local and remote."""
        return bool(self.remote_only_files or self.local_only_files or self.modified_files)


@dataclass
class RemoteOnlyProject:
    """Remote project with no local folder yet."""

    id: str
    name: str
    sanitized_name: str
    file_count: int | None = None


@dataclass
class WorkspaceDiff:
    """Workspace-wide comparison between the remote store and the local tree."""

    remote_only: list[RemoteOnlyProject] = field(default_factory=list)
    local_only: list[str] = field(default_factory=list)
    matched: list[ProjectDiff] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # project id -> error
    remote_project_count: int = 0
    local_folder_count: int = 0

    @property
    def summary(self) -> dict[str, int]:
        """Counts derived from the lists."""
        return {
            "remote_projects": self.remote_project_count,
            "local_folders": self.local_folder_count,
            "matched": len(self.matched),
            "remote_only": len(self.remote_only),
            "local_only": len(self.local_only),
        }


# =============================================================================
# Result Types
# =============================================================================


class ProjectStatus(str, Enum):
    """How a project was classified by a sync pass."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass
class ProjectOutcome:
    """Outcome of syncing one project."""

    status: ProjectStatus
    uploaded: int = 0
    conflicts: int = 0
    chats: int = 0


@dataclass
class SyncStats:
    """Counters for a sync pass."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    uploaded: int = 0
    conflicts: int = 0
    chats: int = 0

    def record(self, outcome: ProjectOutcome) -> None:
        """Add one project's outcome to the counters."""
        if outcome.status is ProjectStatus.CREATED:
            self.created += 1
        elif outcome.status is ProjectStatus.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1
        self.uploaded += outcome.uploaded
        self.conflicts += outcome.conflicts
        self.chats += outcome.chats


@dataclass
class SyncResult:
    """Result of a sync pass."""

    stats: SyncStats
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success(self) -> bool:
        """True iff no error was recorded."""
        return len(self.errors) == 0


@dataclass
class SyncProgress:
    """Progress information for a sync pass."""

    phase: SyncPhase
    total_projects: int = 0
    completed_projects: int = 0
    message: str = ""
    current_project: str | None = None

    @property
    def percentage(self) -> int:
        """Get progress percentage (0-100)."""
        if self.phase is SyncPhase.COMPLETE:
            return 100
        if self.total_projects == 0:
            return 0
        return round(self.completed_projects / self.total_projects * 100)


# Type alias for progress callback
ProgressCallback = Callable[[SyncProgress], None]
