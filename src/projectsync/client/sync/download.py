"""One-directional sync from the remote store into the workspace.

This module provides:
- DownloadSyncer: Pulls every remote project into the local tree

The remote side is authoritative. Unchanged content is never rewritten, so
a second pass without remote changes performs no file writes.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from projectsync.client.names import NameResolver
from projectsync.client.sync.base import FileFailures, PlannedProject, ProjectSyncer
from projectsync.client.sync.compare import AGENTS_FILE, CONTEXT_DIR
from projectsync.client.sync.types import (
    CancelToken,
    ProjectOutcome,
    ProjectStatus,
    SyncResult,
)
from projectsync.client.transcripts import format_transcript, transcript_filename
from projectsync.core.hashing import contents_match

if TYPE_CHECKING:
    from projectsync.client.api import ConversationSummary, Project, RemoteStore
    from projectsync.client.sync.local import LocalTree
    from projectsync.client.sync.types import ProgressCallback
    from projectsync.client.workspace import WorkspaceConfigStore

logger = logging.getLogger(__name__)

CHATS_DIR = "chats"


class DownloadSyncer(ProjectSyncer):
    """Pulls all remote projects into the workspace."""

    def __init__(
        self,
        remote: RemoteStore,
        tree: LocalTree,
        store: WorkspaceConfigStore,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        super().__init__(remote, tree, store, progress_callback)
        # Per-pass state, reset by _plan
        self._resolver: NameResolver | None = None
        self._conversations: dict[str, list[ConversationSummary]] | None = None

    def run(
        self,
        org_id: str,
        dry_run: bool = False,
        cancel: CancelToken | None = None,
    ) -> SyncResult:
        """Download every project of an organization.

        Args:
            org_id: Organization UUID.
            dry_run: Estimate created/updated from folder existence only.
            cancel: Optional token to stop between projects and files.

        Returns:
            SyncResult with per-project classification counts.
        """
        return self._run(org_id, dry_run, cancel)

    def _plan(self, org_id: str, dry_run: bool) -> list[PlannedProject]:
        projects = self._remote.list_projects(org_id)
        self._resolver = NameResolver(self._store.config.project_map)
        self._conversations = None
        return [
            PlannedProject(
                name=project.name,
                sync=functools.partial(self._sync_planned, org_id, project, dry_run),
            )
            for project in projects
        ]

    def _sync_planned(
        self, org_id: str, project: Project, dry_run: bool, cancel: CancelToken
    ) -> ProjectOutcome:
        return self.sync_project(org_id, project, dry_run=dry_run, cancel=cancel)

    def resolve_folder(self, project: Project) -> str:
        """Folder a project syncs into during the current pass."""
        if self._resolver is None:
            self._resolver = NameResolver(self._store.config.project_map)
        return self._resolver.resolve(project.uuid, project.name)

    def sync_project(
        self,
        org_id: str,
        project: Project,
        dry_run: bool = False,
        cancel: CancelToken | None = None,
        folder: str | None = None,
    ) -> ProjectOutcome:
        """Download one project into its folder.

        Args:
            org_id: Organization UUID.
            project: Remote project.
            dry_run: Report without writing anything.
            cancel: Optional cancellation token.
            folder: Folder to use instead of resolving one.

        Returns:
            ProjectOutcome classified as created, updated or skipped.

        Raises:
            ProjectSyncError: After all files were attempted, if any failed.
            APIError: If the project's file list cannot be fetched.
        """
        cancel = cancel or CancelToken()
        config = self._store.config
        folder = folder or self.resolve_folder(project)
        is_new = config.folder_for(project.uuid) is None

        if dry_run:
            exists = self._tree.get_directory(self._tree.root, folder) is not None
            return ProjectOutcome(ProjectStatus.UPDATED if exists else ProjectStatus.CREATED)

        project_dir = self._tree.get_or_create_directory(self._tree.root, folder)
        self._store.record_project_mapping(project.uuid, folder)

        remote_files = self._comparator.fetch_remote(org_id, project)
        failures = FileFailures(project.name)
        writes = 0

        with failures.attempt(AGENTS_FILE):
            if self._sync_instructions(project, project_dir, remote_files.instructions):
                writes += 1

        context_dir = project_dir / CONTEXT_DIR
        for name, record in remote_files.files.items():
            cancel.raise_if_cancelled()
            with failures.attempt(name):
                existing = self._tree.read_text_file(context_dir, name)
                if existing is not None and contents_match(existing, record.content):
                    logger.debug(f"{project.name}: {name} unchanged")
                    continue
                self._tree.get_or_create_directory(project_dir, CONTEXT_DIR)
                self._tree.write_text_file(context_dir, name, record.content)
                writes += 1
                logger.info(f"{project.name}: downloaded {name}")

        chats = 0
        if config.settings.sync_chats:
            chats = self._sync_chats(org_id, project, project_dir, failures, cancel)

        with failures.attempt("project metadata"):
            self._write_metadata(org_id, project, project_dir)

        if is_new:
            status = ProjectStatus.CREATED
        elif writes > 0:
            status = ProjectStatus.UPDATED
        else:
            status = ProjectStatus.SKIPPED
        outcome = ProjectOutcome(status, chats=chats)
        failures.raise_if_any(outcome)
        return outcome

    def _sync_instructions(
        self, project: Project, project_dir: Path, text: str | None
    ) -> bool:
        """Write AGENTS.md if the stripped instructions changed.

        Returns:
            True if the file was written.
        """
        if not text:
            return False
        existing = self._tree.read_text_file(project_dir, AGENTS_FILE)
        if existing == text:
            return False
        self._tree.write_text_file(project_dir, AGENTS_FILE, text)
        logger.info(f"{project.name}: updated {AGENTS_FILE}")
        return True

    def _project_conversations(
        self, org_id: str, project: Project
    ) -> list[ConversationSummary]:
        if self._conversations is None:
            self._conversations = {}
            for summary in self._remote.get_conversations(org_id):
                if summary.project_uuid:
                    self._conversations.setdefault(summary.project_uuid, []).append(summary)
        return self._conversations.get(project.uuid, [])

    def _sync_chats(
        self,
        org_id: str,
        project: Project,
        project_dir: Path,
        failures: FileFailures,
        cancel: CancelToken,
    ) -> int:
        """Export the project's conversations, always overwriting.

        Returns:
            Number of transcripts written.
        """
        written = 0
        summaries: list[ConversationSummary] = []
        with failures.attempt(CHATS_DIR):
            found = self._project_conversations(org_id, project)
            if found:
                self._tree.get_or_create_directory(project_dir, CHATS_DIR)
            summaries = found

        chats_dir = project_dir / CHATS_DIR
        for summary in summaries:
            cancel.raise_if_cancelled()
            with failures.attempt(f"{CHATS_DIR}/{summary.name}"):
                conversation = self._remote.get_conversation(org_id, summary.uuid)
                self._tree.write_text_file(
                    chats_dir,
                    transcript_filename(conversation),
                    format_transcript(conversation),
                )
                written += 1
        if written:
            logger.info(f"{project.name}: exported {written} conversation(s)")
        return written
