"""Per-project three-way file comparison.

This module provides:
- RemoteFileSet: A project's remote files, instructions included
- LocalFileSet: A project folder's files
- ProjectComparator: Computes a ProjectDiff between the two

Layout of a project folder:
    <folder>/AGENTS.md          project instructions
    <folder>/context/<file>     knowledge files
    <folder>/chats/<file>       exported transcripts (never compared)
    <folder>/.projectsync/      sidecar metadata (never compared)

The instructions live behind a different endpoint than knowledge files but
are presented here as one more file named AGENTS.md.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from projectsync.client.sync.local import LocalTree, sanitize_file_name
from projectsync.client.sync.types import FileTimes, ProjectDiff
from projectsync.core.hashing import contents_match

if TYPE_CHECKING:
    from projectsync.client.api import Project, ProjectFile, RemoteStore

logger = logging.getLogger(__name__)

AGENTS_FILE = "AGENTS.md"
CONTEXT_DIR = "context"


def _record_time(record: ProjectFile) -> float:
    return record.modified_at.timestamp() if record.modified_at else 0.0


@dataclass
class RemoteFileSet:
    """Remote side of a project, keyed by local file name.

    Attributes:
        files: Knowledge files keyed by their sanitized name.
        instructions: Stripped instruction text, None when empty.
    """

    files: dict[str, ProjectFile] = field(default_factory=dict)
    instructions: str | None = None

    def names(self) -> set[str]:
        """All file names, AGENTS.md included when instructions exist."""
        names = set(self.files)
        if self.instructions is not None:
            names.add(AGENTS_FILE)
        return names

    def content(self, name: str) -> str:
        """Content of a remote file."""
        if name == AGENTS_FILE:
            return self.instructions or ""
        return self.files[name].content

    def modified_at(self, name: str) -> float | None:
        """Remote update time in seconds, None when the record has none."""
        if name == AGENTS_FILE:
            return None
        record = self.files.get(name)
        if record is None or record.modified_at is None:
            return None
        return record.modified_at.timestamp()


@dataclass
class LocalFileSet:
    """Local side of a project."""

    project_dir: Path
    context_files: list[str] = field(default_factory=list)
    has_instructions: bool = False

    def names(self) -> set[str]:
        """All file names, AGENTS.md included when present."""
        names = set(self.context_files)
        if self.has_instructions:
            names.add(AGENTS_FILE)
        return names


class ProjectComparator:
    """Computes a project's file differences between remote and local."""

    def __init__(self, remote: RemoteStore, tree: LocalTree) -> None:
        """Initialize the comparator.

        Args:
            remote: Remote project store.
            tree: Local workspace tree.
        """
        self._remote = remote
        self._tree = tree

    def fetch_remote(self, org_id: str, project: Project) -> RemoteFileSet:
        """Fetch a project's knowledge files and instructions."""
        files: dict[str, ProjectFile] = {}
        for record in self._remote.get_project_files(org_id, project.uuid):
            if record.file_name == AGENTS_FILE:
                # Instructions are the authoritative AGENTS.md
                continue
            name = sanitize_file_name(record.file_name)
            previous = files.get(name)
            if previous is not None:
                logger.warning(
                    f"Project '{project.name}' has several files named '{name}', "
                    f"keeping the most recent"
                )
                if _record_time(previous) > _record_time(record):
                    continue
            files[name] = record

        instructions = self._remote.get_project_instructions(org_id, project.uuid)
        text = (instructions.content or "").strip()
        return RemoteFileSet(files=files, instructions=text or None)

    def scan_local(self, project_dir: Path) -> LocalFileSet:
        """List a project folder's knowledge files and instructions."""
        context_dir = self._tree.get_directory(project_dir, CONTEXT_DIR)
        context_files = self._tree.list_files(context_dir) if context_dir else []
        has_instructions = AGENTS_FILE in self._tree.list_files(project_dir)
        return LocalFileSet(
            project_dir=project_dir,
            context_files=context_files,
            has_instructions=has_instructions,
        )

    def local_dir_for(self, project_dir: Path, name: str) -> Path:
        """Directory a file of the project lives in locally."""
        if name == AGENTS_FILE:
            return project_dir
        return project_dir / CONTEXT_DIR

    def read_local(self, project_dir: Path, name: str) -> str | None:
        """Read a project file from the local tree."""
        return self._tree.read_text_file(self.local_dir_for(project_dir, name), name)

    def local_mtime(self, project_dir: Path, name: str) -> float | None:
        """Local modification time of a project file."""
        return self._tree.get_modified_time(self.local_dir_for(project_dir, name), name)

    def compare(
        self,
        project_dir: Path,
        project: Project,
        org_id: str,
        remote_files: RemoteFileSet | None = None,
    ) -> ProjectDiff:
        """Compare a project folder with its remote project.

        Args:
            project_dir: Local project folder.
            project: Remote project.
            org_id: Organization UUID.
            remote_files: Already fetched remote side, fetched if omitted.

        Returns:
            ProjectDiff where every file name is in at most one list.
        """
        if remote_files is None:
            remote_files = self.fetch_remote(org_id, project)
        local_files = self.scan_local(project_dir)

        remote_names = remote_files.names()
        local_names = local_files.names()

        diff = ProjectDiff(
            name=project.name,
            id=project.uuid,
            folder=project_dir.name,
            remote_only_files=sorted(remote_names - local_names),
            local_only_files=sorted(local_names - remote_names),
        )

        for name in sorted(remote_names & local_names):
            local_content = self.read_local(project_dir, name) or ""
            remote_content = remote_files.content(name)
            if name == AGENTS_FILE:
                local_content = local_content.strip()
            if contents_match(local_content, remote_content):
                continue
            diff.modified_files.append(name)
            diff.modified_files_info[name] = FileTimes(
                local_time=self.local_mtime(project_dir, name),
                remote_time=remote_files.modified_at(name),
            )

        logger.debug(
            f"Compared '{project.name}': {len(diff.remote_only_files)} remote-only, "
            f"{len(diff.local_only_files)} local-only, {len(diff.modified_files)} modified"
        )
        return diff
