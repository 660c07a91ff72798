"""
Unit tests for local filesystem access.
"""

import os
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from file_organizer.file_access.local_accessor import FileSystemAccessor, read_metadata
from file_organizer.utils.error_handler import ErrorHandler, ErrorType, PreflightError


class TestFileSystemAccessor:
    """Test directory validation and walking."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        (self.temp_dir / "b.txt").write_text("b")
        (self.temp_dir / "a.txt").write_text("a")
        (self.temp_dir / ".hidden").write_text("h")
        level1 = self.temp_dir / "level1"
        level2 = level1 / "level2"
        level2.mkdir(parents=True)
        (level1 / "one.txt").write_text("1")
        (level2 / "two.txt").write_text("2")
        hidden_dir = self.temp_dir / ".cache"
        hidden_dir.mkdir()
        (hidden_dir / "cached.txt").write_text("c")

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def names(self, paths):
        return [p.name for p in paths]

    def test_missing_root(self):
        with pytest.raises(PreflightError):
            FileSystemAccessor(self.temp_dir / "missing")

    def test_root_is_file(self):
        with pytest.raises(PreflightError):
            FileSystemAccessor(self.temp_dir / "a.txt")

    def test_non_recursive_sorted(self):
        accessor = FileSystemAccessor(self.temp_dir)
        assert self.names(accessor.scan_directory()) == ["a.txt", "b.txt"]

    def test_recursive(self):
        accessor = FileSystemAccessor(self.temp_dir)
        files = accessor.scan_directory(recursive=True)
        assert self.names(files) == ["a.txt", "b.txt", "one.txt", "two.txt"]

    def test_max_depth_limits_descent(self):
        accessor = FileSystemAccessor(self.temp_dir)
        files = accessor.scan_directory(recursive=True, max_depth=1)
        assert self.names(files) == ["a.txt", "b.txt", "one.txt"]

        files = accessor.scan_directory(recursive=True, max_depth=0)
        assert self.names(files) == ["a.txt", "b.txt"]

    def test_include_hidden(self):
        accessor = FileSystemAccessor(self.temp_dir, include_hidden=True)
        files = accessor.scan_directory(recursive=True)
        assert ".hidden" in self.names(files)
        assert "cached.txt" in self.names(files)

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_are_skipped(self):
        (self.temp_dir / "link.txt").symlink_to(self.temp_dir / "a.txt")
        accessor = FileSystemAccessor(self.temp_dir)
        assert "link.txt" not in self.names(accessor.scan_directory())

    def test_unreadable_subdirectory_is_skipped(self):
        handler = ErrorHandler()
        accessor = FileSystemAccessor(self.temp_dir, error_handler=handler)
        original = accessor._list_directory

        def list_directory(directory):
            if directory.name == "level1":
                raise PermissionError("denied")
            return original(directory)

        with patch.object(accessor, "_list_directory", side_effect=list_directory):
            files = accessor.scan_directory(recursive=True)

        assert self.names(files) == ["a.txt", "b.txt"]
        assert handler.error_counts[ErrorType.SKIP] == 1

    def test_unreadable_root_is_preflight_error(self):
        accessor = FileSystemAccessor(self.temp_dir)
        with patch.object(
            accessor, "_list_directory", side_effect=PermissionError("denied")
        ):
            with pytest.raises(PreflightError):
                accessor.scan_directory()


class TestReadMetadata:
    """Test metadata collection."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def test_reads_size_times_and_digest(self):
        path = self.temp_dir / "file.txt"
        path.write_text("hello")
        os.utime(path, (1725148800, 1725148800))

        metadata = read_metadata(path)

        assert metadata.size == 5
        assert metadata.modified_time == 1725148800
        assert metadata.created_time is not None
        assert metadata.content_digest is not None

    def test_digest_can_be_skipped(self):
        path = self.temp_dir / "file.txt"
        path.write_text("hello")

        assert read_metadata(path, compute_digest=False).content_digest is None

    def test_missing_file_degrades(self):
        metadata = read_metadata(self.temp_dir / "gone.txt")

        assert metadata.size == 0
        assert metadata.modified_time is None
        assert metadata.content_digest is None
        assert metadata.created_time is None
