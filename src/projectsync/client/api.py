"""HTTP client for the remote project store.

This module provides:
- RemoteStore: Protocol the sync engine consumes
- HTTPClient: httpx implementation of RemoteStore
- Organization, Project, ProjectFile, ProjectInstructions,
  ConversationSummary, Conversation, Message: Typed API records
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, TypeVar

import httpx

from projectsync.client.retry import NETWORK_EXCEPTIONS, retry_with_backoff
from projectsync.core.config import RemoteConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Session expired or invalid."""


class NotFoundError(APIError):
    """Resource not found."""


class RateLimitError(APIError):
    """Request was throttled by the server."""


class MalformedRecordError(APIError):
    """Response body is not a valid record."""


def _parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO timestamp, assuming UTC for naive values."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _require(data: Any, key: str, kind: str) -> Any:
    """Fetch a required field, raising MalformedRecordError when absent."""
    if not isinstance(data, dict):
        raise MalformedRecordError(f"{kind} record is not an object: {data!r}")
    value = data.get(key)
    if value is None:
        raise MalformedRecordError(f"{kind} record missing '{key}'")
    return value


@dataclass
class Organization:
    """Organization the session has access to."""

    uuid: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Organization:
        """Create from API response dictionary."""
        return cls(
            uuid=str(_require(data, "uuid", "Organization")),
            name=str(data.get("name") or ""),
        )


@dataclass
class Project:
    """Project metadata from the remote store."""

    uuid: str
    name: str
    description: str | None = None
    prompt_template: str | None = None
    archived_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        """Create from API response dictionary."""
        return cls(
            uuid=str(_require(data, "uuid", "Project")),
            name=str(_require(data, "name", "Project")),
            description=data.get("description"),
            prompt_template=data.get("prompt_template"),
            archived_at=_parse_datetime(data.get("archived_at")),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass
class ProjectFile:
    """Knowledge file attached to a project."""

    uuid: str
    file_name: str
    content: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectFile:
        """Create from API response dictionary."""
        content = _require(data, "content", "ProjectFile")
        if not isinstance(content, str):
            raise MalformedRecordError("ProjectFile content is not text")
        return cls(
            uuid=str(_require(data, "uuid", "ProjectFile")),
            file_name=str(_require(data, "file_name", "ProjectFile")),
            content=content,
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )

    @property
    def modified_at(self) -> datetime | None:
        """Last change time (knowledge files are immutable once created)."""
        return self.updated_at or self.created_at


@dataclass
class ProjectInstructions:
    """Project-level instruction text."""

    content: str = ""


@dataclass
class ConversationSummary:
    """Conversation listing entry."""

    uuid: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    project_uuid: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationSummary:
        """Create from API response dictionary."""
        project = data.get("project_uuid") if isinstance(data, dict) else None
        if project is None and isinstance(data, dict) and isinstance(data.get("project"), dict):
            project = data["project"].get("uuid")
        return cls(
            uuid=str(_require(data, "uuid", "Conversation")),
            name=str(data.get("name") or "Untitled"),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
            project_uuid=project,
        )


@dataclass
class Message:
    """Single chat message."""

    uuid: str
    sender: str
    text: str
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Create from API response dictionary.

        Raw-rendered messages carry ``text``; newer payloads split the body
        into ``content`` blocks, whose text parts are joined.
        """
        text = data.get("text") if isinstance(data, dict) else None
        if not text and isinstance(data, dict):
            blocks = data.get("content") or []
            text = "\n\n".join(
                block["text"]
                for block in blocks
                if isinstance(block, dict) and block.get("text")
            )
        return cls(
            uuid=str(_require(data, "uuid", "Message")),
            sender=str(data.get("sender") or "human"),
            text=text or "",
            created_at=_parse_datetime(data.get("created_at")),
        )


@dataclass
class Conversation(ConversationSummary):
    """Conversation with its messages."""

    messages: list[Message] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Conversation:
        """Create from API response dictionary."""
        summary = ConversationSummary.from_dict(data)
        return cls(
            uuid=summary.uuid,
            name=summary.name,
            created_at=summary.created_at,
            updated_at=summary.updated_at,
            project_uuid=summary.project_uuid,
            messages=[Message.from_dict(m) for m in data.get("chat_messages") or []],
        )


class RemoteStore(Protocol):
    """Operations the sync engine needs from the remote project store."""

    def list_projects(self, org_id: str) -> list[Project]: ...

    def get_project_files(self, org_id: str, project_id: str) -> list[ProjectFile]: ...

    def get_project_instructions(
        self, org_id: str, project_id: str
    ) -> ProjectInstructions: ...

    def update_project_instructions(
        self, org_id: str, project_id: str, content: str
    ) -> None: ...

    def upload_file(
        self, org_id: str, project_id: str, file_name: str, content: str
    ) -> ProjectFile: ...

    def delete_file(self, org_id: str, project_id: str, file_uuid: str) -> None: ...

    def get_conversations(self, org_id: str) -> list[ConversationSummary]: ...

    def get_conversation(self, org_id: str, conversation_id: str) -> Conversation: ...


def _parse_list(
    payload: Any, parser: Callable[[dict[str, Any]], T], kind: str
) -> list[T]:
    """Parse a list payload, skipping malformed entries."""
    if not isinstance(payload, list):
        raise MalformedRecordError(f"Expected a list of {kind} records")
    records: list[T] = []
    for item in payload:
        try:
            records.append(parser(item))
        except MalformedRecordError as e:
            logger.warning(f"Skipping malformed {kind} record: {e}")
    return records


class HTTPClient:
    """HTTP client for the remote project store API."""

    def __init__(
        self,
        config: RemoteConfig,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Remote connection settings.
            transport: Optional httpx transport (used by tests).
            sleep: Optional sleep function for retry backoff.
        """
        self._config = config
        if not config.is_secure:
            logger.warning(f"Sending the session key over plain HTTP to {config.base_url}")
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            headers={
                "Content-Type": "application/json",
                "Cookie": config.cookie_header,
            },
            transport=transport,
        )
        self._retry_kwargs: dict[str, Any] = {"max_retries": config.max_retries}
        if sleep is not None:
            self._retry_kwargs["sleep"] = sleep

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Session expired or invalid", 401)
        if response.status_code == 403:
            raise RateLimitError("Rate limit exceeded", 403)
        if response.status_code == 404:
            raise NotFoundError("Resource not found", 404)
        if response.status_code >= 400:
            detail = response.text or response.reason_phrase
            raise APIError(detail, response.status_code)
        return response

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying throttled and failed connections.

        Raises:
            APIError: On any failure, network errors included.
        """
        try:
            response: httpx.Response = retry_with_backoff(
                lambda: self._handle_response(self._client.request(method, url, **kwargs)),
                retryable_exceptions=(RateLimitError, *NETWORK_EXCEPTIONS),
                **self._retry_kwargs,
            )
        except NETWORK_EXCEPTIONS as e:
            raise APIError(f"Network error: {e}") from e
        return response

    def _json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = self._request(method, url, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedRecordError(
                f"Invalid JSON from {url}", response.status_code
            ) from e

    # === Organizations ===

    def list_organizations(self) -> list[Organization]:
        """List organizations available to the session."""
        return _parse_list(
            self._json("GET", "/organizations"), Organization.from_dict, "organization"
        )

    # === Projects ===

    def list_projects(self, org_id: str) -> list[Project]:
        """List all projects of an organization.

        Args:
            org_id: Organization UUID.

        Returns:
            Projects with valid records; malformed entries are skipped.
        """
        return _parse_list(
            self._json("GET", f"/organizations/{org_id}/projects"),
            Project.from_dict,
            "project",
        )

    def get_project(self, org_id: str, project_id: str) -> Project:
        """Get a single project."""
        data = self._json("GET", f"/organizations/{org_id}/projects/{project_id}")
        return Project.from_dict(data)

    def get_project_instructions(
        self, org_id: str, project_id: str
    ) -> ProjectInstructions:
        """Get a project's instruction text.

        Missing or unreadable instructions are not an error: an empty
        ProjectInstructions is returned instead.
        """
        try:
            project = self.get_project(org_id, project_id)
        except APIError as e:
            logger.warning(f"Could not fetch instructions for project {project_id}: {e}")
            return ProjectInstructions()
        return ProjectInstructions(content=project.prompt_template or "")

    def update_project_instructions(
        self, org_id: str, project_id: str, content: str
    ) -> None:
        """Replace a project's instruction text."""
        self._request(
            "PUT",
            f"/organizations/{org_id}/projects/{project_id}",
            json={"prompt_template": content},
        )

    # === Project files ===

    def get_project_files(self, org_id: str, project_id: str) -> list[ProjectFile]:
        """List a project's knowledge files with their content."""
        return _parse_list(
            self._json("GET", f"/organizations/{org_id}/projects/{project_id}/docs"),
            ProjectFile.from_dict,
            "file",
        )

    def upload_file(
        self, org_id: str, project_id: str, file_name: str, content: str
    ) -> ProjectFile:
        """Add a knowledge file to a project.

        Returns:
            The created file record.
        """
        data = self._json(
            "POST",
            f"/organizations/{org_id}/projects/{project_id}/docs",
            json={"file_name": file_name, "content": content},
        )
        return ProjectFile.from_dict(data)

    def delete_file(self, org_id: str, project_id: str, file_uuid: str) -> None:
        """Remove a knowledge file from a project."""
        self._request(
            "DELETE", f"/organizations/{org_id}/projects/{project_id}/docs/{file_uuid}"
        )

    # === Conversations ===

    def get_conversations(self, org_id: str) -> list[ConversationSummary]:
        """List all conversations of an organization."""
        return _parse_list(
            self._json("GET", f"/organizations/{org_id}/chat_conversations"),
            ConversationSummary.from_dict,
            "conversation",
        )

    def get_conversation(self, org_id: str, conversation_id: str) -> Conversation:
        """Get a conversation with its messages."""
        data = self._json(
            "GET",
            f"/organizations/{org_id}/chat_conversations/{conversation_id}",
            params={"rendering_mode": "raw"},
        )
        if not isinstance(data, dict):
            raise MalformedRecordError("Conversation record is not an object")
        return Conversation.from_dict(data)
