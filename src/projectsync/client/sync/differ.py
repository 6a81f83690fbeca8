"""Workspace-wide diff between the remote store and the local tree.

This module provides:
- WorkspaceDiffer: Classifies projects as matched, remote-only or local-only

Matching is purely by resolved folder name. Sidecar metadata in project
folders is audit information and never decides a match.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from projectsync.client.api import APIError
from projectsync.client.names import NameResolver
from projectsync.client.sync.compare import ProjectComparator, RemoteFileSet
from projectsync.client.sync.types import RemoteOnlyProject, SyncError, WorkspaceDiff

if TYPE_CHECKING:
    from projectsync.client.api import Project, RemoteStore
    from projectsync.client.sync.local import LocalTree
    from projectsync.client.workspace import WorkspaceConfig

logger = logging.getLogger(__name__)


class WorkspaceDiffer:
    """Computes the WorkspaceDiff for one workspace. Never writes anything."""

    def __init__(
        self,
        remote: RemoteStore,
        tree: LocalTree,
        config: WorkspaceConfig,
        comparator: ProjectComparator | None = None,
    ) -> None:
        """Initialize the differ.

        Args:
            remote: Remote project store.
            tree: Local workspace tree.
            config: Workspace config (only read).
            comparator: Comparator to reuse, created if omitted.
        """
        self._remote = remote
        self._tree = tree
        self._config = config
        self._comparator = comparator or ProjectComparator(remote, tree)
        self.remote_files: dict[str, RemoteFileSet] = {}
        self.folders: dict[str, str] = {}

    def diff(self, org_id: str) -> WorkspaceDiff:
        """List remote projects and diff the workspace against them."""
        return self.diff_projects(org_id, self._remote.list_projects(org_id))

    def diff_projects(self, org_id: str, projects: list[Project]) -> WorkspaceDiff:
        """Diff the workspace against an already fetched project list.

        Resolved folders (``folders``) and the remote file sets fetched for
        matched projects (``remote_files``) are kept by project id for
        callers that act on the diff.
        """
        local_folders = self._tree.list_directories()
        unclaimed = set(local_folders)
        resolver = NameResolver(self._config.project_map)
        result = WorkspaceDiff(
            remote_project_count=len(projects),
            local_folder_count=len(local_folders),
        )
        self.remote_files = {}
        self.folders = {}

        for project in projects:
            folder = resolver.resolve(project.uuid, project.name)
            self.folders[project.uuid] = folder
            project_dir = self._tree.get_directory(self._tree.root, folder)

            if project_dir is None:
                result.remote_only.append(
                    RemoteOnlyProject(
                        id=project.uuid,
                        name=project.name,
                        sanitized_name=folder,
                        file_count=self._count_remote_files(org_id, project),
                    )
                )
                continue

            unclaimed.discard(folder)
            try:
                remote_files = self._comparator.fetch_remote(org_id, project)
                diff = self._comparator.compare(project_dir, project, org_id, remote_files)
            except (APIError, SyncError) as e:
                logger.error(f"Could not compare project '{project.name}': {e}")
                result.failed[project.uuid] = str(e)
                continue
            self.remote_files[project.uuid] = remote_files
            result.matched.append(diff)

        result.local_only = sorted(unclaimed)
        logger.info(
            f"Workspace diff: {len(result.matched)} matched, "
            f"{len(result.remote_only)} remote-only, {len(result.local_only)} local-only"
        )
        return result

    def _count_remote_files(self, org_id: str, project: Project) -> int | None:
        """Remote knowledge file count for display, None when unavailable."""
        try:
            return len(self._remote.get_project_files(org_id, project.uuid))
        except APIError as e:
            logger.warning(f"Could not count files of project '{project.name}': {e}")
            return None
