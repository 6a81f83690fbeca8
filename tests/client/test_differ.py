"""Tests for the workspace-wide diff."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from projectsync.client.api import APIError
from projectsync.client.sync import LocalTree, WorkspaceDiffer
from projectsync.client.workspace import WorkspaceConfig, WorkspaceConfigStore

if TYPE_CHECKING:
    from conftest import FakeRemoteStore

ORG_ID = "org-1"


class TestWorkspaceDiffer:
    """Tests for WorkspaceDiffer."""

    def test_classifies_projects(
        self, remote: FakeRemoteStore, tree: LocalTree, store: WorkspaceConfigStore
    ) -> None:
        """Every remote project and local folder lands in exactly one list."""
        remote.add_project("p1", "Matched", {"a.md": "A"})
        remote.add_project("p2", "Remote Only", {"b.md": "B", "c.md": "C"})
        (tree.root / "Matched").mkdir()
        (tree.root / "Stray").mkdir()
        (tree.root / ".projectsync").mkdir()

        diff = WorkspaceDiffer(remote, tree, store.config).diff(ORG_ID)

        assert [p.folder for p in diff.matched] == ["Matched"]
        assert diff.matched[0].remote_only_files == ["a.md"]
        assert [(p.id, p.sanitized_name, p.file_count) for p in diff.remote_only] == [
            ("p2", "Remote Only", 2)
        ]
        assert diff.local_only == ["Stray"]
        assert diff.summary == {
            "remote_projects": 2,
            "local_folders": 2,
            "matched": 1,
            "remote_only": 1,
            "local_only": 1,
        }

    def test_matches_through_mapping(self, remote: FakeRemoteStore, tree: LocalTree) -> None:
        """A renamed project still matches its mapped folder."""
        remote.add_project("p1", "New Name")
        (tree.root / "Old Name").mkdir()
        config = WorkspaceConfig(project_map={"p1": "Old Name"})

        diff = WorkspaceDiffer(remote, tree, config).diff(ORG_ID)

        assert [p.folder for p in diff.matched] == ["Old Name"]
        assert diff.local_only == []
        assert diff.remote_only == []

    def test_collisions_resolved_without_writing(
        self, remote: FakeRemoteStore, tree: LocalTree, store: WorkspaceConfigStore
    ) -> None:
        """Two new projects with one name get distinct folders; nothing is saved."""
        remote.add_project("p1", "Same")
        remote.add_project("p2", "Same")

        differ = WorkspaceDiffer(remote, tree, store.config)
        diff = differ.diff(ORG_ID)

        assert [p.sanitized_name for p in diff.remote_only] == ["Same", "Same_1"]
        assert differ.folders == {"p1": "Same", "p2": "Same_1"}
        assert store.config.project_map == {}
        assert not store.path.exists()

    def test_comparison_failure_recorded(
        self, remote: FakeRemoteStore, tree: LocalTree, store: WorkspaceConfigStore
    ) -> None:
        """A project whose files cannot be fetched is reported, not raised."""
        remote.add_project("p1", "Broken")
        remote.add_project("p2", "Fine")
        (tree.root / "Broken").mkdir()
        (tree.root / "Fine").mkdir()
        remote.file_list_errors["p1"] = APIError("boom", 500)

        diff = WorkspaceDiffer(remote, tree, store.config).diff(ORG_ID)

        assert diff.failed == {"p1": "boom"}
        assert [p.folder for p in diff.matched] == ["Fine"]
        assert diff.local_only == []

    def test_unknown_file_count(
        self, remote: FakeRemoteStore, tree: LocalTree, store: WorkspaceConfigStore
    ) -> None:
        remote.add_project("p1", "New")
        remote.file_list_errors["p1"] = APIError("boom", 500)

        diff = WorkspaceDiffer(remote, tree, store.config).diff(ORG_ID)

        assert diff.remote_only[0].file_count is None

    def test_listing_failure_raises(
        self, remote: FakeRemoteStore, tree: LocalTree, store: WorkspaceConfigStore
    ) -> None:
        remote.list_error = APIError("down")

        with pytest.raises(APIError):
            WorkspaceDiffer(remote, tree, store.config).diff(ORG_ID)
