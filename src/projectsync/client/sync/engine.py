"""Top-level sync driver.

This module provides:
- SyncOrchestrator: Runs a download or bidirectional pass over a workspace

The orchestrator is the only entry point collaborators (the CLI) use. It
loads the workspace config once per run, picks the syncer, forwards
progress and always returns a SyncResult instead of raising.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from projectsync.client.sync.bidirectional import BidirectionalSyncer
from projectsync.client.sync.differ import WorkspaceDiffer
from projectsync.client.sync.download import DownloadSyncer
from projectsync.client.sync.local import LocalTree
from projectsync.client.workspace import WorkspaceConfig, WorkspaceConfigStore
from projectsync.core.types import ConflictStrategy, SyncMode

if TYPE_CHECKING:
    from projectsync.client.api import RemoteStore
    from projectsync.client.sync.types import (
        CancelToken,
        ProgressCallback,
        SyncResult,
        WorkspaceDiff,
    )

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Drives sync passes for one workspace."""

    def __init__(
        self,
        remote: RemoteStore,
        workspace_root: Path,
        config_store: WorkspaceConfigStore | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            remote: Remote project store.
            workspace_root: Local workspace directory.
            config_store: Config store to use, one inside the workspace if omitted.
            progress_callback: Optional callback for progress updates.
        """
        self._remote = remote
        self._tree = LocalTree(workspace_root)
        self._store = config_store or WorkspaceConfigStore(self._tree.root)
        self._progress_callback = progress_callback

    @property
    def tree(self) -> LocalTree:
        """Local workspace tree."""
        return self._tree

    @property
    def config(self) -> WorkspaceConfig:
        """Current workspace config (mapping table, settings, last sync)."""
        return self._store.config

    def set_progress_callback(self, callback: ProgressCallback | None) -> None:
        """Set the callback receiving SyncProgress updates."""
        self._progress_callback = callback

    def run(
        self,
        mode: SyncMode | str | None,
        org_id: str,
        *,
        dry_run: bool = False,
        conflict_strategy: ConflictStrategy | str | None = None,
        cancel: CancelToken | None = None,
    ) -> SyncResult:
        """Run one sync pass.

        Args:
            mode: Download or bidirectional; the workspace setting decides
                when None.
            org_id: Organization UUID.
            dry_run: Report what would change without writing anything.
            conflict_strategy: Override of the workspace conflict strategy
                (bidirectional only).
            cancel: Optional token to stop the pass between projects and files.

        Returns:
            SyncResult; success is False if any project failed.
        """
        config = self._store.load()
        if mode is None:
            mode = SyncMode.BIDIRECTIONAL if config.settings.bidirectional else SyncMode.DOWNLOAD
        mode = SyncMode(mode)
        logger.info(
            f"Starting {mode.value} sync of {self._tree.root}"
            f"{' (dry run)' if dry_run else ''}"
        )

        if mode is SyncMode.DOWNLOAD:
            result = DownloadSyncer(
                self._remote, self._tree, self._store, self._progress_callback
            ).run(org_id, dry_run=dry_run, cancel=cancel)
        else:
            result = BidirectionalSyncer(
                self._remote, self._tree, self._store, self._progress_callback
            ).run(
                org_id,
                conflict_strategy=conflict_strategy,
                dry_run=dry_run,
                cancel=cancel,
            )

        stats = result.stats
        logger.info(
            f"Sync finished: {stats.created} created, {stats.updated} updated, "
            f"{stats.skipped} skipped, {stats.uploaded} uploaded, "
            f"{stats.conflicts} conflicts, {stats.errors} errors"
        )
        return result

    def get_workspace_diff(self, org_id: str) -> WorkspaceDiff:
        """Compute a read-only preview of local and remote differences.

        Raises:
            APIError: If the remote project listing fails.
        """
        config = self._store.load()
        return WorkspaceDiffer(self._remote, self._tree, config).diff(org_id)
