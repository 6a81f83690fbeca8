"""Persisted workspace configuration.

This module provides:
- SyncSettings: User-adjustable sync settings
- WorkspaceConfig: Project mapping, settings and last-sync time
- WorkspaceConfigStore: JSON persistence inside the workspace

The config lives in ``<workspace>/.projectsync/workspace.json``. A missing
or corrupt file yields a fresh config: losing the mapping only means folder
names get derived again, it never loses data.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from projectsync.core.types import ConflictStrategy

logger = logging.getLogger(__name__)

CONFIG_VERSION = 1
STATE_DIR_NAME = ".projectsync"
CONFIG_FILE_NAME = "workspace.json"


class ConfigCorruptError(Exception):
    """Persisted config exists but cannot be parsed."""


@dataclass
class SyncSettings:
    """Sync settings stored with the workspace.

    Attributes:
        sync_chats: Export project conversations into ``chats/``.
        conflict_strategy: Default policy for files modified on both sides.
        bidirectional: Default to bidirectional sync when no mode is given.
    """

    sync_chats: bool = False
    conflict_strategy: ConflictStrategy = ConflictStrategy.REMOTE
    bidirectional: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON shape."""
        return {
            "syncChats": self.sync_chats,
            "conflictStrategy": self.conflict_strategy.value,
            "bidirectional": self.bidirectional,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncSettings:
        """Create from the persisted JSON shape, defaulting missing keys."""
        defaults = cls()
        try:
            strategy = ConflictStrategy(data.get("conflictStrategy", defaults.conflict_strategy))
        except ValueError as e:
            raise ConfigCorruptError(f"Unknown conflict strategy: {e}") from e
        return cls(
            sync_chats=bool(data.get("syncChats", defaults.sync_chats)),
            conflict_strategy=strategy,
            bidirectional=bool(data.get("bidirectional", defaults.bidirectional)),
        )


@dataclass
class WorkspaceConfig:
    """Sync state for one workspace root."""

    workspace_path: str = ""
    project_map: dict[str, str] = field(default_factory=dict)
    settings: SyncSettings = field(default_factory=SyncSettings)
    last_sync_at: datetime | None = None
    version: int = CONFIG_VERSION

    def folder_for(self, project_id: str) -> str | None:
        """Get the folder bound to a project, if any."""
        return self.project_map.get(project_id)

    def project_for(self, folder: str) -> str | None:
        """Get the project bound to a folder, if any."""
        for project_id, bound in self.project_map.items():
            if bound == folder:
                return project_id
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON shape."""
        return {
            "version": self.version,
            "workspacePath": self.workspace_path,
            "projectMap": dict(self.project_map),
            "lastSync": self.last_sync_at.isoformat() if self.last_sync_at else None,
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> WorkspaceConfig:
        """Create from the persisted JSON shape.

        Raises:
            ConfigCorruptError: If the data does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ConfigCorruptError("Config root is not an object")
        project_map = data.get("projectMap") or {}
        if not isinstance(project_map, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in project_map.items()
        ):
            raise ConfigCorruptError("projectMap must map strings to strings")
        if len(set(project_map.values())) != len(project_map):
            raise ConfigCorruptError("projectMap binds one folder to several projects")

        last_sync = data.get("lastSync")
        try:
            last_sync_at = datetime.fromisoformat(last_sync) if last_sync else None
        except (TypeError, ValueError) as e:
            raise ConfigCorruptError(f"Invalid lastSync: {last_sync!r}") from e

        settings = data.get("settings") or {}
        if not isinstance(settings, dict):
            raise ConfigCorruptError("settings must be an object")

        try:
            version = int(data.get("version") or CONFIG_VERSION)
        except (TypeError, ValueError) as e:
            raise ConfigCorruptError(f"Invalid version: {data.get('version')!r}") from e

        return cls(
            workspace_path=str(data.get("workspacePath") or ""),
            project_map=dict(project_map),
            settings=SyncSettings.from_dict(settings),
            last_sync_at=last_sync_at,
            version=version,
        )


class WorkspaceConfigStore:
    """Loads and saves the WorkspaceConfig of one workspace root."""

    def __init__(self, workspace_root: Path) -> None:
        """Initialize the store.

        Args:
            workspace_root: Workspace directory; the config goes in its
                hidden ``.projectsync`` subdirectory.
        """
        self._root = Path(workspace_root)
        self._path = self._root / STATE_DIR_NAME / CONFIG_FILE_NAME
        self._config: WorkspaceConfig | None = None

    @property
    def path(self) -> Path:
        """Location of the persisted config file."""
        return self._path

    @property
    def config(self) -> WorkspaceConfig:
        """Current config, loading it on first access."""
        if self._config is None:
            return self.load()
        return self._config

    def load(self) -> WorkspaceConfig:
        """Load the config from disk.

        Never fails for a missing or corrupt file: a default config is
        returned (and cached) instead.
        """
        try:
            self._config = self._read()
        except ConfigCorruptError as e:
            logger.warning(f"Ignoring corrupt workspace config {self._path}: {e}")
            self._config = None

        if self._config is None:
            self._config = WorkspaceConfig(workspace_path=str(self._root))
        return self._config

    def _read(self) -> WorkspaceConfig | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigCorruptError(str(e)) from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigCorruptError(f"Invalid JSON: {e}") from e
        return WorkspaceConfig.from_dict(data)

    def save(self, config: WorkspaceConfig | None = None) -> None:
        """Persist the config (the cached one if none is given)."""
        if config is not None:
            self._config = config
        config = self.config
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        try:
            tmp_path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise

    def record_project_mapping(self, project_id: str, folder: str) -> None:
        """Bind a project to a folder and persist the change.

        Raises:
            ValueError: If the folder is already bound to another project.
        """
        config = self.config
        owner = config.project_for(folder)
        if owner is not None and owner != project_id:
            raise ValueError(f"Folder '{folder}' is already bound to project {owner}")
        if config.project_map.get(project_id) == folder:
            return
        config.project_map[project_id] = folder
        self.save()
        logger.debug(f"Mapped project {project_id} to folder '{folder}'")

    def touch_last_sync(self) -> None:
        """Set the last successful sync time to now and persist it."""
        self.config.last_sync_at = datetime.now(UTC)
        self.save()

    def update_settings(self, **changes: Any) -> SyncSettings:
        """Change settings and persist them.

        Raises:
            TypeError: If an unknown setting name is given.
        """
        known = {f.name for f in fields(SyncSettings)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")
        config = self.config
        config.settings = replace(config.settings, **changes)
        self.save()
        return config.settings


# =============================================================================
# Project sidecar metadata
# =============================================================================

METADATA_FILE_NAME = "project.json"


@dataclass
class ProjectMetadata:
    """Audit record of the last sync of a project folder.

    Never used to match folders to projects; the workspace config does that.
    """

    id: str
    name: str
    org_id: str
    synced_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON shape."""
        return {
            "id": self.id,
            "name": self.name,
            "orgId": self.org_id,
            "syncedAt": self.synced_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectMetadata:
        """Create from the persisted JSON shape."""
        return cls(
            id=data["id"],
            name=data["name"],
            org_id=data["orgId"],
            synced_at=datetime.fromisoformat(data["syncedAt"]),
        )


def write_project_metadata(project_dir: Path, metadata: ProjectMetadata) -> None:
    """Write ``<project>/.projectsync/project.json``."""
    state_dir = project_dir / STATE_DIR_NAME
    state_dir.mkdir(parents=True, exist_ok=True)
    (state_dir / METADATA_FILE_NAME).write_text(
        json.dumps(metadata.to_dict(), indent=2), encoding="utf-8"
    )


def read_project_metadata(project_dir: Path) -> ProjectMetadata | None:
    """Read a project folder's sidecar metadata, None if absent or unreadable."""
    path = project_dir / STATE_DIR_NAME / METADATA_FILE_NAME
    try:
        return ProjectMetadata.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except FileNotFoundError:
        return None
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.debug(f"Ignoring unreadable metadata {path}: {e}")
        return None
