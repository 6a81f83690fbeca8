"""Tests for scoped local tree access."""

from __future__ import annotations

from pathlib import Path

import pytest

from projectsync.client.sync import LocalIOError, LocalTree, sanitize_file_name


class TestSanitizeFileName:
    """Tests for sanitize_file_name."""

    def test_plain_name_unchanged(self) -> None:
        assert sanitize_file_name("notes.md") == "notes.md"

    def test_invalid_characters_replaced(self) -> None:
        assert sanitize_file_name("a:b?.md") == "a-b-.md"

    def test_separators_replaced(self) -> None:
        """A remote name can never point into another directory."""
        assert sanitize_file_name("../etc/passwd") == "..-etc-passwd"

    def test_reserved_names(self) -> None:
        assert sanitize_file_name("CON.txt") == "_CON.txt"
        assert sanitize_file_name("nul") == "_nul"

    def test_trailing_dots_removed(self) -> None:
        assert sanitize_file_name("report. ") == "report"

    def test_empty(self) -> None:
        assert sanitize_file_name("") == "unnamed_file"
        assert sanitize_file_name("...") == "unnamed_file"


class TestLocalTree:
    """Tests for LocalTree."""

    def test_write_and_read(self, tree: LocalTree) -> None:
        directory = tree.get_or_create_directory(tree.root, "Project")

        tree.write_text_file(directory, "notes.md", "héllo")

        assert tree.read_text_file(directory, "notes.md") == "héllo"
        assert tree.list_files(directory) == ["notes.md"]

    def test_line_endings_preserved(self, tree: LocalTree) -> None:
        """CRLF and lone CR survive a write and read unchanged."""
        tree.write_text_file(tree.root, "win.md", "a\r\nb\rc\n")

        assert (tree.root / "win.md").read_bytes() == b"a\r\nb\rc\n"
        assert tree.read_text_file(tree.root, "win.md") == "a\r\nb\rc\n"

    def test_write_leaves_no_temp_file(self, tree: LocalTree) -> None:
        """Atomic writes should not leave their temporary sibling."""
        tree.write_text_file(tree.root, "a.md", "one")
        tree.write_text_file(tree.root, "a.md", "two")

        assert sorted(p.name for p in tree.root.iterdir()) == ["a.md"]
        assert tree.read_text_file(tree.root, "a.md") == "two"

    def test_read_missing(self, tree: LocalTree) -> None:
        assert tree.read_text_file(tree.root, "missing.md") is None

    def test_read_unreadable(self, tree: LocalTree) -> None:
        """Non-UTF-8 content should raise LocalIOError."""
        (tree.root / "bin.md").write_bytes(b"\xff\xfe\x00")
        with pytest.raises(LocalIOError):
            tree.read_text_file(tree.root, "bin.md")

    def test_get_directory(self, tree: LocalTree) -> None:
        assert tree.get_directory(tree.root, "nope") is None
        created = tree.get_or_create_directory(tree.root, "yes")
        assert tree.get_directory(tree.root, "yes") == created

    def test_list_directories_hides_dot_folders(self, tree: LocalTree) -> None:
        tree.get_or_create_directory(tree.root, "B")
        tree.get_or_create_directory(tree.root, "A")
        tree.get_or_create_directory(tree.root, ".projectsync")

        assert tree.list_directories() == ["A", "B"]
        assert tree.list_directories(include_hidden=True) == [".projectsync", "A", "B"]

    def test_list_files_missing_directory(self, tree: LocalTree) -> None:
        assert tree.list_files(tree.root / "missing") == []

    def test_escape_rejected(self, tree: LocalTree) -> None:
        """Paths outside the workspace should be refused."""
        with pytest.raises(LocalIOError):
            tree.get_or_create_directory(tree.root, "..")
        with pytest.raises(LocalIOError):
            tree.write_text_file(tree.root, "../outside.md", "x")

    def test_modified_time(self, tree: LocalTree, workspace: Path) -> None:
        tree.write_text_file(tree.root, "a.md", "x")
        assert tree.get_modified_time(tree.root, "a.md") == (workspace / "a.md").stat().st_mtime
        assert tree.get_modified_time(tree.root, "b.md") is None
