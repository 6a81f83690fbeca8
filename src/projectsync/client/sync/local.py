"""Scoped access to the local workspace tree.

This module provides:
- LocalTree: Directory and text-file operations rooted at a workspace
- sanitize_file_name: Make a remote file name safe for any filesystem

Directory handles are plain Paths. Every filesystem failure surfaces as
LocalIOError so the sync engine can aggregate it per file.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
from pathlib import Path

from projectsync.client.sync.types import LocalIOError

logger = logging.getLogger(__name__)

_INVALID_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
_SEPARATORS = re.compile(r"[/\\]")
_RESERVED_NAMES = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$", re.IGNORECASE)
_TMP_SUFFIX = ".projectsync-tmp"


def sanitize_file_name(file_name: str) -> str:
    """Sanitize a file name for cross-platform filesystem compatibility.

    Invalid characters and path separators become dashes, whitespace is
    normalized, Windows reserved names get a leading underscore and
    trailing dots/spaces are removed.

    Args:
        file_name: Name as stored on the remote side.

    Returns:
        A name that is safe to create in a single directory.
    """
    sanitized = _INVALID_CHARS.sub("-", file_name)
    sanitized = _SEPARATORS.sub("-", sanitized)
    sanitized = re.sub(r"\s+", " ", sanitized).strip()

    stem = re.sub(r"\.[^.]*$", "", sanitized)
    if _RESERVED_NAMES.match(stem):
        sanitized = f"_{sanitized}"

    sanitized = re.sub(r"[.\s]+$", "", sanitized)

    if not sanitized or sanitized == ".":
        sanitized = "unnamed_file"
    return sanitized


class LocalTree:
    """Filesystem access scoped to one workspace root."""

    def __init__(self, root: Path) -> None:
        """Initialize the tree.

        Args:
            root: Workspace root directory (created on first write).
        """
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        """Workspace root directory."""
        return self._root

    def _check_scope(self, path: Path) -> Path:
        resolved = path.resolve()
        if resolved != self._root and self._root not in resolved.parents:
            raise LocalIOError(f"Path escapes workspace: {path}")
        return resolved

    @staticmethod
    def _child(directory: Path, name: str) -> Path:
        if not name or name in (".", "..") or _SEPARATORS.search(name):
            raise LocalIOError(f"Invalid file name: {name!r}")
        return directory / name

    def get_or_create_directory(self, parent: Path, name: str) -> Path:
        """Get a subdirectory, creating it (and the parent) if needed."""
        directory = self._check_scope(parent / name)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalIOError(f"Cannot create directory {directory}: {e}") from e
        return directory

    def get_directory(self, parent: Path, name: str) -> Path | None:
        """Get an existing subdirectory.

        Returns:
            The directory path, or None if it does not exist.
        """
        directory = self._check_scope(parent / name)
        return directory if directory.is_dir() else None

    def read_text_file(self, directory: Path, name: str) -> str | None:
        """Read a UTF-8 text file.

        Line endings are kept as stored, so content round-trips exactly.

        Returns:
            File content, or None if the file does not exist.

        Raises:
            LocalIOError: If the file exists but cannot be read.
        """
        path = self._check_scope(self._child(directory, name))
        try:
            return path.read_bytes().decode("utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise LocalIOError(f"Cannot read {path}: {e}") from e

    def write_text_file(self, directory: Path, name: str, content: str) -> None:
        """Write a UTF-8 text file atomically.

        Content goes to a temporary sibling first and is then renamed over
        the target, so no partial file is left if the write fails.
        """
        path = self._check_scope(self._child(directory, name))
        tmp_path = path.with_name(path.name + _TMP_SUFFIX)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(content.encode("utf-8"))
            os.replace(tmp_path, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise LocalIOError(f"Cannot write {path}: {e}") from e
        logger.debug(f"Wrote {path}")

    def list_files(self, directory: Path) -> list[str]:
        """List regular file names in a directory (empty if missing)."""
        directory = self._check_scope(directory)
        if not directory.is_dir():
            return []
        try:
            return sorted(
                entry.name
                for entry in directory.iterdir()
                if entry.is_file() and not entry.name.endswith(_TMP_SUFFIX)
            )
        except OSError as e:
            raise LocalIOError(f"Cannot list {directory}: {e}") from e

    def list_directories(
        self, directory: Path | None = None, include_hidden: bool = False
    ) -> list[str]:
        """List subdirectory names (defaults to the workspace root)."""
        directory = self._check_scope(directory or self._root)
        if not directory.is_dir():
            return []
        try:
            return sorted(
                entry.name
                for entry in directory.iterdir()
                if entry.is_dir() and (include_hidden or not entry.name.startswith("."))
            )
        except OSError as e:
            raise LocalIOError(f"Cannot list {directory}: {e}") from e

    def get_modified_time(self, directory: Path, name: str) -> float | None:
        """Get a file's modification time in seconds since the epoch.

        Returns:
            The mtime, or None if the file does not exist.
        """
        path = self._check_scope(self._child(directory, name))
        try:
            return path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LocalIOError(f"Cannot stat {path}: {e}") from e
