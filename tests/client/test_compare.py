"""Tests for per-project file comparison."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from projectsync.client.sync import (
    AGENTS_FILE,
    CONTEXT_DIR,
    LocalTree,
    ProjectComparator,
)

if TYPE_CHECKING:
    from conftest import FakeRemoteStore

ORG_ID = "org-1"


def write_local(project_dir: Path, name: str, content: str) -> Path:
    directory = project_dir if name == AGENTS_FILE else project_dir / CONTEXT_DIR
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(content, encoding="utf-8")
    return path


class TestFetchRemote:
    """Tests for ProjectComparator.fetch_remote."""

    def test_instructions_become_agents_file(
        self, remote: FakeRemoteStore, tree: LocalTree
    ) -> None:
        """Stripped instructions should appear as AGENTS.md."""
        project = remote.add_project("p1", "One", {"a.md": "A"}, instructions="  Be brief.\n")

        files = ProjectComparator(remote, tree).fetch_remote(ORG_ID, project)

        assert files.names() == {"a.md", AGENTS_FILE}
        assert files.content(AGENTS_FILE) == "Be brief."
        assert files.modified_at(AGENTS_FILE) is None

    def test_empty_instructions_absent(self, remote: FakeRemoteStore, tree: LocalTree) -> None:
        project = remote.add_project("p1", "One", {"a.md": "A"}, instructions="   ")

        files = ProjectComparator(remote, tree).fetch_remote(ORG_ID, project)

        assert files.names() == {"a.md"}

    def test_remote_agents_file_ignored(self, remote: FakeRemoteStore, tree: LocalTree) -> None:
        """A knowledge file named AGENTS.md never shadows the instructions."""
        project = remote.add_project("p1", "One", {AGENTS_FILE: "doc"}, instructions="real")

        files = ProjectComparator(remote, tree).fetch_remote(ORG_ID, project)

        assert files.files == {}
        assert files.content(AGENTS_FILE) == "real"

    def test_duplicate_names_keep_newest(self, remote: FakeRemoteStore, tree: LocalTree) -> None:
        project = remote.add_project("p1", "One")
        remote.add_file("p1", "a.md", "new", datetime(2025, 6, 1, tzinfo=UTC))
        remote.add_file("p1", "a.md", "old", datetime(2025, 1, 1, tzinfo=UTC))

        files = ProjectComparator(remote, tree).fetch_remote(ORG_ID, project)

        assert files.content("a.md") == "new"


class TestCompare:
    """Tests for ProjectComparator.compare."""

    def test_classifies_files(self, remote: FakeRemoteStore, tree: LocalTree) -> None:
        """Each file lands in exactly one list; identical files in none."""
        project = remote.add_project(
            "p1", "One", {"same.md": "S", "changed.md": "remote", "remote.md": "R"}
        )
        project_dir = tree.root / "One"
        write_local(project_dir, "same.md", "S")
        write_local(project_dir, "changed.md", "local")
        write_local(project_dir, "local.md", "L")

        diff = ProjectComparator(remote, tree).compare(project_dir, project, ORG_ID)

        assert diff.folder == "One"
        assert diff.remote_only_files == ["remote.md"]
        assert diff.local_only_files == ["local.md"]
        assert diff.modified_files == ["changed.md"]
        assert diff.has_differences

    def test_no_differences(self, remote: FakeRemoteStore, tree: LocalTree) -> None:
        project = remote.add_project("p1", "One", {"a.md": "A"}, instructions="Rules")
        project_dir = tree.root / "One"
        write_local(project_dir, "a.md", "A")
        write_local(project_dir, AGENTS_FILE, "Rules\n")

        diff = ProjectComparator(remote, tree).compare(project_dir, project, ORG_ID)

        assert not diff.has_differences

    def test_modified_times_recorded(self, remote: FakeRemoteStore, tree: LocalTree) -> None:
        """Modified files should carry both modification times."""
        remote_time = datetime(2025, 1, 1, tzinfo=UTC)
        project = remote.add_project("p1", "One", {"a.md": "remote"}, file_time=remote_time)
        project_dir = tree.root / "One"
        path = write_local(project_dir, "a.md", "local")
        os.utime(path, (1_800_000_000, 1_800_000_000))

        diff = ProjectComparator(remote, tree).compare(project_dir, project, ORG_ID)

        times = diff.modified_files_info["a.md"]
        assert times.local_time == 1_800_000_000
        assert times.remote_time == remote_time.timestamp()
        assert times.is_local_newer

    def test_local_agents_without_instructions(
        self, remote: FakeRemoteStore, tree: LocalTree
    ) -> None:
        """A local AGENTS.md with no remote instructions is local-only."""
        project = remote.add_project("p1", "One")
        project_dir = tree.root / "One"
        write_local(project_dir, AGENTS_FILE, "Mine")

        diff = ProjectComparator(remote, tree).compare(project_dir, project, ORG_ID)

        assert diff.local_only_files == [AGENTS_FILE]

    def test_chats_and_metadata_ignored(self, remote: FakeRemoteStore, tree: LocalTree) -> None:
        project = remote.add_project("p1", "One")
        project_dir = tree.root / "One"
        (project_dir / "chats").mkdir(parents=True)
        (project_dir / "chats" / "x.md").write_text("chat")
        (project_dir / ".projectsync").mkdir()
        (project_dir / ".projectsync" / "project.json").write_text("{}")

        diff = ProjectComparator(remote, tree).compare(project_dir, project, ORG_ID)

        assert not diff.has_differences
