"""Tests for the sync orchestrator."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from projectsync.client.api import APIError
from projectsync.client.sync import CONTEXT_DIR, SyncOrchestrator, SyncProgress
from projectsync.client.workspace import WorkspaceConfigStore
from projectsync.core.types import SyncMode, SyncPhase

if TYPE_CHECKING:
    from conftest import FakeRemoteStore

ORG_ID = "org-1"


class TestSyncOrchestrator:
    """Tests for SyncOrchestrator."""

    def test_download_mode(self, remote: FakeRemoteStore, workspace: Path) -> None:
        remote.add_project("p1", "One", {"a.md": "A"})

        result = SyncOrchestrator(remote, workspace).run(SyncMode.DOWNLOAD, ORG_ID)

        assert result.success
        assert result.stats.created == 1
        assert (workspace / "One" / CONTEXT_DIR / "a.md").read_text() == "A"

    def test_mode_from_settings(self, remote: FakeRemoteStore, workspace: Path) -> None:
        """Without an explicit mode, the bidirectional setting decides."""
        remote.add_project("p1", "One", {"a.md": "A"})
        orchestrator = SyncOrchestrator(remote, workspace)
        orchestrator.run("download", ORG_ID)
        (workspace / "One" / CONTEXT_DIR / "mine.md").write_text("M")

        WorkspaceConfigStore(workspace).update_settings(bidirectional=True)
        result = orchestrator.run(None, ORG_ID)

        assert result.stats.uploaded == 1
        assert remote.uploads == [("p1", "mine.md", "M")]

    def test_download_mode_by_default(self, remote: FakeRemoteStore, workspace: Path) -> None:
        remote.add_project("p1", "One", {"a.md": "A"})
        orchestrator = SyncOrchestrator(remote, workspace)
        orchestrator.run(None, ORG_ID)
        (workspace / "One" / CONTEXT_DIR / "mine.md").write_text("M")

        orchestrator.run(None, ORG_ID)

        assert remote.uploads == []

    def test_progress_forwarded(self, remote: FakeRemoteStore, workspace: Path) -> None:
        remote.add_project("p1", "One")
        events: list[SyncProgress] = []

        orchestrator = SyncOrchestrator(remote, workspace)
        orchestrator.set_progress_callback(events.append)
        orchestrator.run(SyncMode.BIDIRECTIONAL, ORG_ID)

        assert events[0].phase is SyncPhase.FETCHING
        assert events[-1].phase is SyncPhase.COMPLETE

    def test_fatal_error_returns_result(self, remote: FakeRemoteStore, workspace: Path) -> None:
        """Fatal failures come back as a result, never as an exception."""
        remote.list_error = APIError("unreachable")

        result = SyncOrchestrator(remote, workspace).run(SyncMode.BIDIRECTIONAL, ORG_ID)

        assert not result.success
        assert result.errors == ["unreachable"]

    def test_workspace_diff_is_read_only(self, remote: FakeRemoteStore, workspace: Path) -> None:
        remote.add_project("p1", "One", {"a.md": "A"})
        orchestrator = SyncOrchestrator(remote, workspace)

        diff = orchestrator.get_workspace_diff(ORG_ID)

        assert [p.sanitized_name for p in diff.remote_only] == ["One"]
        assert list(workspace.iterdir()) == []
        assert orchestrator.config.project_map == {}

    def test_config_reloaded_each_run(self, remote: FakeRemoteStore, workspace: Path) -> None:
        """Mappings written by another store are picked up by the next run."""
        remote.add_project("p1", "New Name")
        (workspace / "Kept").mkdir()
        WorkspaceConfigStore(workspace).record_project_mapping("p1", "Kept")

        result = SyncOrchestrator(remote, workspace).run("download", ORG_ID)

        assert result.stats.created == 0
        assert sorted(p.name for p in workspace.iterdir()) == [".projectsync", "Kept"]
