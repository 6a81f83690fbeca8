"""Two-way sync between the remote store and the workspace.

This module provides:
- BidirectionalSyncer: Reconciles both directions from a WorkspaceDiff

Decision matrix for matched projects:
    remote-only file  -> download
    local-only file   -> upload
    modified file     -> conflict, resolved by the ConflictStrategy:
        LOCAL   upload
        REMOTE  download
        NEWER   upload if local mtime > remote time, else download
                (missing remote time counts as 0; a tie goes to remote)
        PROMPT  left untouched

Local folders without a remote project are never uploaded or deleted.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from projectsync.client.sync.base import FileFailures, PlannedProject, ProjectSyncer
from projectsync.client.sync.compare import AGENTS_FILE, CONTEXT_DIR, RemoteFileSet
from projectsync.client.sync.differ import WorkspaceDiffer
from projectsync.client.sync.download import DownloadSyncer
from projectsync.client.sync.types import (
    CancelToken,
    FileTimes,
    LocalIOError,
    ProjectDiff,
    ProjectOutcome,
    ProjectStatus,
    SyncError,
    SyncResult,
    WorkspaceDiff,
)
from projectsync.core.types import ConflictStrategy

if TYPE_CHECKING:
    from projectsync.client.api import Project, RemoteStore
    from projectsync.client.sync.local import LocalTree
    from projectsync.client.sync.types import ProgressCallback
    from projectsync.client.workspace import WorkspaceConfigStore

logger = logging.getLogger(__name__)

UPLOAD = "upload"
DOWNLOAD = "download"


def resolve_conflict(strategy: ConflictStrategy, times: FileTimes | None) -> str | None:
    """Decide which side wins for a file modified on both sides.

    Returns:
        "upload", "download", or None to leave the file untouched.
    """
    if strategy is ConflictStrategy.LOCAL:
        return UPLOAD
    if strategy is ConflictStrategy.REMOTE:
        return DOWNLOAD
    if strategy is ConflictStrategy.NEWER:
        return UPLOAD if times is not None and times.is_local_newer else DOWNLOAD
    return None


class BidirectionalSyncer(ProjectSyncer):
    """Reconciles local and remote changes in both directions."""

    def __init__(
        self,
        remote: RemoteStore,
        tree: LocalTree,
        store: WorkspaceConfigStore,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        super().__init__(remote, tree, store, progress_callback)
        self._strategy = ConflictStrategy.REMOTE
        self.last_diff: WorkspaceDiff | None = None

    def run(
        self,
        org_id: str,
        conflict_strategy: ConflictStrategy | str | None = None,
        dry_run: bool = False,
        cancel: CancelToken | None = None,
    ) -> SyncResult:
        """Sync both directions.

        Args:
            org_id: Organization UUID.
            conflict_strategy: Policy for modified files; the workspace
                setting is used when omitted.
            dry_run: Count what would happen without writing or uploading.
            cancel: Optional token to stop between projects and files.

        Returns:
            SyncResult including uploaded and conflict counts.
        """
        if conflict_strategy is None:
            self._strategy = self._store.config.settings.conflict_strategy
        else:
            self._strategy = ConflictStrategy(conflict_strategy)
        logger.info(f"Bidirectional sync with '{self._strategy.value}' conflict strategy")
        return self._run(org_id, dry_run, cancel)

    def _plan(self, org_id: str, dry_run: bool) -> list[PlannedProject]:
        projects = self._remote.list_projects(org_id)
        differ = WorkspaceDiffer(
            self._remote, self._tree, self._store.config, self._comparator
        )
        diff = differ.diff_projects(org_id, projects)
        self.last_diff = diff

        downloader = DownloadSyncer(self._remote, self._tree, self._store)
        remote_only = {entry.id for entry in diff.remote_only}
        matched = {entry.id: entry for entry in diff.matched}

        planned: list[PlannedProject] = []
        for project in projects:
            if project.uuid in diff.failed:
                sync = functools.partial(_fail, diff.failed[project.uuid])
            elif project.uuid in remote_only:
                sync = functools.partial(
                    self._download_project,
                    downloader,
                    org_id,
                    project,
                    differ.folders[project.uuid],
                    dry_run,
                )
            else:
                sync = functools.partial(
                    self._reconcile_project,
                    org_id,
                    project,
                    matched[project.uuid],
                    differ.remote_files[project.uuid],
                    dry_run,
                )
            planned.append(PlannedProject(name=project.name, sync=sync))
        return planned

    def _download_project(
        self,
        downloader: DownloadSyncer,
        org_id: str,
        project: Project,
        folder: str,
        dry_run: bool,
        cancel: CancelToken,
    ) -> ProjectOutcome:
        outcome = downloader.sync_project(
            org_id, project, dry_run=dry_run, cancel=cancel, folder=folder
        )
        outcome.status = ProjectStatus.CREATED
        return outcome

    def _reconcile_project(
        self,
        org_id: str,
        project: Project,
        diff: ProjectDiff,
        remote_files: RemoteFileSet,
        dry_run: bool,
        cancel: CancelToken,
    ) -> ProjectOutcome:
        """Apply one matched project's diff.

        Raises:
            ProjectSyncError: After all files were attempted, if any failed.
        """
        project_dir = self._tree.root / diff.folder
        if not dry_run:
            self._store.record_project_mapping(project.uuid, diff.folder)

        failures = FileFailures(project.name)
        outcome = ProjectOutcome(ProjectStatus.SKIPPED)
        writes = 0

        for name in diff.remote_only_files:
            cancel.raise_if_cancelled()
            with failures.attempt(name):
                if not dry_run:
                    self._download_file(project, project_dir, name, remote_files)
                writes += 1

        for name in diff.local_only_files:
            cancel.raise_if_cancelled()
            with failures.attempt(name):
                if not dry_run:
                    self._upload_file(org_id, project, project_dir, name, remote_files)
                outcome.uploaded += 1

        for name in diff.modified_files:
            cancel.raise_if_cancelled()
            outcome.conflicts += 1
            action = resolve_conflict(self._strategy, diff.modified_files_info.get(name))
            if action is None:
                logger.warning(f"{project.name}: conflict on {name} left for the user")
                continue
            with failures.attempt(name):
                if action == UPLOAD:
                    if not dry_run:
                        self._upload_file(org_id, project, project_dir, name, remote_files)
                    outcome.uploaded += 1
                else:
                    if not dry_run:
                        self._download_file(project, project_dir, name, remote_files)
                    writes += 1

        if not dry_run:
            with failures.attempt("project metadata"):
                self._write_metadata(org_id, project, project_dir)

        if writes or outcome.uploaded:
            outcome.status = ProjectStatus.UPDATED
        failures.raise_if_any(outcome)
        return outcome

    def _download_file(
        self,
        project: Project,
        project_dir: Path,
        name: str,
        remote_files: RemoteFileSet,
    ) -> None:
        directory = self._comparator.local_dir_for(project_dir, name)
        if name != AGENTS_FILE:
            self._tree.get_or_create_directory(project_dir, CONTEXT_DIR)
        self._tree.write_text_file(directory, name, remote_files.content(name))
        logger.info(f"{project.name}: downloaded {name}")

    def _upload_file(
        self,
        org_id: str,
        project: Project,
        project_dir: Path,
        name: str,
        remote_files: RemoteFileSet,
    ) -> None:
        content = self._comparator.read_local(project_dir, name)
        if content is None:
            raise LocalIOError(f"{name} disappeared before upload")

        if name == AGENTS_FILE:
            self._remote.update_project_instructions(org_id, project.uuid, content)
        else:
            previous = remote_files.files.get(name)
            # Keep the remote name; the local one may be its sanitized form
            remote_name = previous.file_name if previous is not None else name
            self._remote.upload_file(org_id, project.uuid, remote_name, content)
            if previous is not None:
                # Replace rather than duplicate: file names are unique per project
                self._remote.delete_file(org_id, project.uuid, previous.uuid)
        logger.info(f"{project.name}: uploaded {name}")


def _fail(message: str, cancel: CancelToken) -> ProjectOutcome:
    raise SyncError(message)
