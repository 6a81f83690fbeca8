"""Folder naming for remote projects.

This module provides:
- sanitize_project_name: Turn a project display name into a folder slug
- resolve_folder_name: Pick a stable, collision-free folder for a project
- NameResolver: Resolver that reserves names across several projects
"""

from __future__ import annotations

import re
from collections.abc import Mapping

MAX_FOLDER_NAME_LENGTH = 100
FALLBACK_FOLDER_NAME = "unnamed_project"

_UNSAFE_CHARS = re.compile(r'[<>:"|?*/\\]+')
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_project_name(name: str) -> str:
    """Sanitize a project name into a filesystem-safe folder name.

    Removes characters that are unsafe on common filesystems, control
    characters and leading dots (which would hide the folder). Unicode,
    including emoji, is preserved.

    Args:
        name: Project display name.

    Returns:
        Folder name, never empty.
    """
    sanitized = _UNSAFE_CHARS.sub("", name)
    sanitized = _CONTROL_CHARS.sub("", sanitized)
    sanitized = re.sub(r"\s+", " ", sanitized).strip()
    sanitized = sanitized.lstrip(".")
    sanitized = sanitized[:MAX_FOLDER_NAME_LENGTH]
    sanitized = sanitized.rstrip(". ")
    return sanitized or FALLBACK_FOLDER_NAME


def resolve_folder_name(
    project_id: str,
    project_name: str,
    project_map: Mapping[str, str],
) -> str:
    """Resolve the folder a project syncs into.

    An existing mapping is returned unchanged, so renaming a remote
    project never moves its folder. New projects get their sanitized name,
    suffixed with _1, _2, ... when that name is bound to another project.

    Args:
        project_id: Remote project UUID.
        project_name: Remote project display name.
        project_map: Current project id -> folder name mapping.

    Returns:
        Folder name. The caller commits it to the mapping.
    """
    existing = project_map.get(project_id)
    if existing:
        return existing

    owners = {folder: pid for pid, folder in project_map.items()}
    base = sanitize_project_name(project_name)
    if owners.get(base, project_id) == project_id:
        return base

    counter = 1
    while f"{base}_{counter}" in owners:
        counter += 1
    return f"{base}_{counter}"


class NameResolver:
    """Resolves folder names while reserving them in a private mapping.

    Used where names must be resolved for several projects without
    committing anything to the workspace config (read-only diffs), yet two
    new projects with the same name must still get distinct folders.
    """

    def __init__(self, project_map: Mapping[str, str]) -> None:
        self._map = dict(project_map)

    def resolve(self, project_id: str, project_name: str) -> str:
        """Resolve and reserve a folder for a project."""
        folder = resolve_folder_name(project_id, project_name, self._map)
        self._map[project_id] = folder
        return folder

    @property
    def reserved(self) -> dict[str, str]:
        """Mapping including reservations made by this resolver."""
        return dict(self._map)
