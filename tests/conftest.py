"""Shared fixtures: an in-memory remote store and a temporary workspace."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from projectsync.client.api import (
    APIError,
    Conversation,
    ConversationSummary,
    Message,
    NotFoundError,
    Organization,
    Project,
    ProjectFile,
    ProjectInstructions,
)
from projectsync.client.sync import LocalTree
from projectsync.client.workspace import WorkspaceConfigStore

ORG_ID = "org-1"
OLD_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class FakeRemoteStore:
    """RemoteStore keeping projects, files and conversations in memory."""

    def __init__(self) -> None:
        self.organizations: list[Organization] = [Organization(uuid=ORG_ID, name="Personal")]
        self.projects: list[Project] = []
        self.files: dict[str, list[ProjectFile]] = {}
        self.instructions: dict[str, str] = {}
        self.conversations: dict[str, Conversation] = {}
        self.uploads: list[tuple[str, str, str]] = []
        self.deleted: list[tuple[str, str]] = []
        self.instruction_updates: list[tuple[str, str]] = []
        self.org_error: Exception | None = None
        self.list_error: Exception | None = None
        self.file_list_errors: dict[str, Exception] = {}
        self.upload_errors: dict[str, Exception] = {}
        self._next_doc = 0
        self.closed = False

    # === Setup helpers ===

    def add_project(
        self,
        uuid: str,
        name: str,
        files: dict[str, str] | None = None,
        instructions: str = "",
        file_time: datetime = OLD_TIME,
    ) -> Project:
        project = Project(uuid=uuid, name=name, created_at=OLD_TIME)
        self.projects.append(project)
        self.files[uuid] = []
        for file_name, content in (files or {}).items():
            self.add_file(uuid, file_name, content, file_time)
        if instructions:
            self.instructions[uuid] = instructions
        return project

    def add_file(
        self,
        project_id: str,
        file_name: str,
        content: str,
        created_at: datetime | None = OLD_TIME,
    ) -> ProjectFile:
        self._next_doc += 1
        record = ProjectFile(
            uuid=f"doc-{self._next_doc}",
            file_name=file_name,
            content=content,
            created_at=created_at,
        )
        self.files.setdefault(project_id, []).append(record)
        return record

    def add_conversation(
        self, project_id: str, uuid: str, name: str, messages: list[tuple[str, str]]
    ) -> Conversation:
        conversation = Conversation(
            uuid=uuid,
            name=name,
            created_at=OLD_TIME,
            project_uuid=project_id,
            messages=[
                Message(uuid=f"{uuid}-{i}", sender=sender, text=text)
                for i, (sender, text) in enumerate(messages)
            ],
        )
        self.conversations[uuid] = conversation
        return conversation

    # === RemoteStore ===

    def list_organizations(self) -> list[Organization]:
        if self.org_error is not None:
            raise self.org_error
        return list(self.organizations)

    def list_projects(self, org_id: str) -> list[Project]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.projects)

    def get_project_files(self, org_id: str, project_id: str) -> list[ProjectFile]:
        if project_id in self.file_list_errors:
            raise self.file_list_errors[project_id]
        return list(self.files.get(project_id, []))

    def get_project_instructions(self, org_id: str, project_id: str) -> ProjectInstructions:
        return ProjectInstructions(content=self.instructions.get(project_id, ""))

    def update_project_instructions(self, org_id: str, project_id: str, content: str) -> None:
        self.instruction_updates.append((project_id, content))
        self.instructions[project_id] = content

    def upload_file(
        self, org_id: str, project_id: str, file_name: str, content: str
    ) -> ProjectFile:
        if file_name in self.upload_errors:
            raise self.upload_errors[file_name]
        self.uploads.append((project_id, file_name, content))
        return self.add_file(project_id, file_name, content, datetime.now(UTC))

    def delete_file(self, org_id: str, project_id: str, file_uuid: str) -> None:
        records = self.files.get(project_id, [])
        remaining = [record for record in records if record.uuid != file_uuid]
        if len(remaining) == len(records):
            raise NotFoundError("Resource not found", 404)
        self.files[project_id] = remaining
        self.deleted.append((project_id, file_uuid))

    def get_conversations(self, org_id: str) -> list[ConversationSummary]:
        return [
            ConversationSummary(
                uuid=c.uuid,
                name=c.name,
                created_at=c.created_at,
                project_uuid=c.project_uuid,
            )
            for c in self.conversations.values()
        ]

    def get_conversation(self, org_id: str, conversation_id: str) -> Conversation:
        if conversation_id not in self.conversations:
            raise APIError("Resource not found", 404)
        return self.conversations[conversation_id]

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeRemoteStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


@pytest.fixture
def remote() -> FakeRemoteStore:
    """Create an empty in-memory remote store."""
    return FakeRemoteStore()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace directory."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def tree(workspace: Path) -> LocalTree:
    """Create a LocalTree rooted at the workspace."""
    return LocalTree(workspace)


@pytest.fixture
def store(workspace: Path) -> WorkspaceConfigStore:
    """Create a loaded config store for the workspace."""
    config_store = WorkspaceConfigStore(workspace)
    config_store.load()
    return config_store
