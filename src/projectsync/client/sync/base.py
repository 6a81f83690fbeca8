"""Shared pass loop for project-by-project sync.

This module provides:
- PlannedProject: One unit of work in a pass
- FileFailures: Collects per-file errors of one project
- ProjectSyncer: Base class driving fetching -> syncing -> complete

Projects are processed strictly one at a time and each one reports
progress when it finishes. A project failure is recorded and the pass moves
on; only a failure while planning (the initial project listing) ends the
pass early.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from projectsync.client.api import APIError
from projectsync.client.sync.compare import ProjectComparator
from projectsync.client.sync.types import (
    CancelToken,
    ProgressCallback,
    ProjectOutcome,
    ProjectSyncError,
    SyncCancelled,
    SyncError,
    SyncProgress,
    SyncResult,
    SyncStats,
)
from projectsync.client.workspace import ProjectMetadata, write_project_metadata
from projectsync.core.types import SyncPhase

if TYPE_CHECKING:
    from projectsync.client.api import Project, RemoteStore
    from projectsync.client.sync.local import LocalTree
    from projectsync.client.workspace import WorkspaceConfigStore

logger = logging.getLogger(__name__)

# Errors that fail a single file or project without ending the pass
RECOVERABLE_ERRORS: tuple[type[Exception], ...] = (APIError, SyncError, OSError)


@dataclass
class PlannedProject:
    """A project scheduled in a pass.

    Attributes:
        name: Project name, used in progress and error messages.
        sync: Performs the project's sync and classifies it.
    """

    name: str
    sync: Callable[[CancelToken], ProjectOutcome]


class FileFailures:
    """Collects file errors so sibling files are still attempted."""

    def __init__(self, project_name: str) -> None:
        self._project_name = project_name
        self._failures: dict[str, str] = {}

    @contextlib.contextmanager
    def attempt(self, file_name: str) -> Iterator[None]:
        """Run one file operation, recording instead of raising its error."""
        try:
            yield
        except SyncCancelled:
            raise
        except RECOVERABLE_ERRORS as e:
            logger.error(f"{self._project_name}: failed to sync {file_name}: {e}")
            self._failures[file_name] = str(e)

    @property
    def failed_files(self) -> list[str]:
        """Names of the files that failed so far."""
        return list(self._failures)

    def raise_if_any(self, outcome: ProjectOutcome | None = None) -> None:
        """Raise one ProjectSyncError listing every failed file.

        Args:
            outcome: What the project achieved despite the failures.
        """
        if self._failures:
            raise ProjectSyncError(self._project_name, self._failures, outcome)


class ProjectSyncer:
    """Base class for sync passes over a workspace."""

    def __init__(
        self,
        remote: RemoteStore,
        tree: LocalTree,
        store: WorkspaceConfigStore,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the syncer.

        Args:
            remote: Remote project store.
            tree: Local workspace tree.
            store: Workspace config store (loaded by the caller).
            progress_callback: Optional callback for progress updates.
        """
        self._remote = remote
        self._tree = tree
        self._store = store
        self._progress_callback = progress_callback
        self._comparator = ProjectComparator(remote, tree)

    def set_progress_callback(self, callback: ProgressCallback | None) -> None:
        """Set the callback receiving SyncProgress updates."""
        self._progress_callback = callback

    def _report(
        self,
        phase: SyncPhase,
        total: int = 0,
        completed: int = 0,
        message: str = "",
        current: str | None = None,
    ) -> None:
        if self._progress_callback:
            self._progress_callback(SyncProgress(
                phase=phase,
                total_projects=total,
                completed_projects=completed,
                message=message,
                current_project=current,
            ))

    def _write_metadata(self, org_id: str, project: Project, project_dir: Path) -> None:
        """Stamp the project folder's sidecar with this sync."""
        write_project_metadata(
            project_dir,
            ProjectMetadata(
                id=project.uuid,
                name=project.name,
                org_id=org_id,
                synced_at=datetime.now(UTC),
            ),
        )

    def _plan(self, org_id: str, dry_run: bool) -> list[PlannedProject]:
        """List the projects of this pass. Errors here end the pass."""
        raise NotImplementedError

    def _run(
        self,
        org_id: str,
        dry_run: bool = False,
        cancel: CancelToken | None = None,
    ) -> SyncResult:
        """Plan and sync every project, one at a time.

        Returns:
            SyncResult with partial statistics even when projects failed.
        """
        cancel = cancel or CancelToken()
        stats = SyncStats()
        errors: list[str] = []

        self._report(SyncPhase.FETCHING, message="Fetching projects...")
        try:
            planned = self._plan(org_id, dry_run)
        except RECOVERABLE_ERRORS as e:
            logger.error(f"Sync failed before any project was synced: {e}")
            self._report(SyncPhase.ERROR, message=f"Sync failed: {e}")
            return SyncResult(stats=stats, errors=[str(e)])

        total = len(planned)
        if total == 0:
            logger.info("No projects found")
        self._report(SyncPhase.SYNCING, total, 0, f"Syncing {total} projects...")

        for index, project in enumerate(planned):
            if cancel.cancelled:
                return self._cancelled(stats, errors, total, index)
            try:
                outcome = project.sync(cancel)
            except SyncCancelled:
                return self._cancelled(stats, errors, total, index)
            except ProjectSyncError as e:
                stats.errors += 1
                errors.append(f"{project.name}: {e}")
                if e.outcome is not None:
                    stats.uploaded += e.outcome.uploaded
                    stats.conflicts += e.outcome.conflicts
                    stats.chats += e.outcome.chats
            except RECOVERABLE_ERRORS as e:
                logger.error(f"Error syncing project {project.name}: {e}")
                stats.errors += 1
                errors.append(f"{project.name}: {e}")
            else:
                stats.record(outcome)
                logger.info(f"{project.name}: {outcome.status.value}")

            self._report(
                SyncPhase.SYNCING,
                total,
                index + 1,
                f"Synced {index + 1}/{total} projects",
                current=project.name,
            )

        if not dry_run:
            try:
                self._store.touch_last_sync()
            except OSError as e:
                logger.error(f"Could not save workspace config: {e}")
                errors.append(f"Could not save workspace config: {e}")

        self._report(SyncPhase.COMPLETE, total, total, "Sync complete!")
        return SyncResult(stats=stats, errors=errors)

    def _cancelled(
        self, stats: SyncStats, errors: list[str], total: int, completed: int
    ) -> SyncResult:
        logger.warning(f"Sync cancelled after {completed}/{total} projects")
        errors.append("Sync cancelled")
        self._report(SyncPhase.CANCELLED, total, completed, "Sync cancelled")
        return SyncResult(stats=stats, errors=errors, cancelled=True)
