import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from ..utils.error_handler import ErrorHandler, ErrorType, PreflightError
from ..utils.file_utils import get_file_hash


@dataclass
class FileMetadata:
    """Size, timestamps and content digest of one file.

    Timestamps and digest are None when they could not be read.
    """

    size: int = 0
    created_time: Optional[int] = None
    modified_time: Optional[int] = None
    content_digest: Optional[str] = None


def read_metadata(file_path: Path, compute_digest: bool = True) -> FileMetadata:
    """Read size, timestamps and (optionally) the content digest of a file.

    Never raises: an unreadable file yields an empty FileMetadata so that a
    single bad file cannot abort a scan.

    Args:
        file_path: Path to the file
        compute_digest: Whether to hash the file contents

    Returns:
        FileMetadata for the file
    """
    logger = logging.getLogger(__name__)

    try:
        stat = file_path.stat()
    except OSError as e:
        logger.warning(f"Cannot stat {file_path}: {e}")
        return FileMetadata()

    digest = None
    if compute_digest:
        try:
            digest = get_file_hash(file_path)
        except OSError as e:
            logger.warning(f"Cannot read {file_path}: {e}")

    return FileMetadata(
        size=stat.st_size,
        created_time=int(stat.st_ctime),
        modified_time=int(stat.st_mtime),
        content_digest=digest,
    )


class FileSystemAccessor:
    """Handles local file system access and directory walking."""

    def __init__(
        self,
        root_directory: str,
        include_hidden: bool = False,
        error_handler: Optional[ErrorHandler] = None,
    ):
        """Initialize the file system accessor.

        Args:
            root_directory: The root directory to scan
            include_hidden: Whether to include dot files and dot directories
            error_handler: Collects errors for skipped subdirectories

        Raises:
            PreflightError: If the root is missing, not a directory, or
                not readable
        """
        self.root_directory = Path(root_directory).expanduser().resolve()
        self.include_hidden = include_hidden
        self.error_handler = error_handler or ErrorHandler()
        self.logger = logging.getLogger(__name__)

        self.validate_root()

    def validate_root(self):
        """Check the root directory before anything is planned."""
        if not self.root_directory.exists():
            raise PreflightError(f"Directory does not exist: {self.root_directory}")
        if not self.root_directory.is_dir():
            raise PreflightError(f"Path is not a directory: {self.root_directory}")
        if not os.access(self.root_directory, os.R_OK | os.X_OK):
            raise PreflightError(f"Access denied to directory: {self.root_directory}")

    def walk_files(self, recursive: bool = False, max_depth: int = 10) -> Iterator[Path]:
        """Yield regular files depth-first, in sorted name order.

        The root is depth 0. Subdirectories are entered only when recursive
        and their depth does not exceed max_depth. Symlinks are not followed.

        Args:
            recursive: Whether to descend into subdirectories
            max_depth: Deepest subdirectory level to scan

        Raises:
            PreflightError: If the root directory cannot be listed
        """
        self.logger.info(f"Scanning directory: {self.root_directory}")

        try:
            entries = self._list_directory(self.root_directory)
        except OSError as e:
            raise PreflightError(
                f"Unable to read directory {self.root_directory}: {e}"
            ) from e

        yield from self._walk_entries(entries, 0, recursive, max_depth)

    def _walk_entries(
        self, entries: List[Path], depth: int, recursive: bool, max_depth: int
    ) -> Iterator[Path]:
        for entry in entries:
            if not self.include_hidden and entry.name.startswith("."):
                continue

            if entry.is_symlink():
                self.logger.debug(f"Skipping symlink: {entry}")
                continue

            if entry.is_file():
                yield entry
            elif entry.is_dir() and recursive and depth + 1 <= max_depth:
                try:
                    children = self._list_directory(entry)
                except OSError as e:
                    self.error_handler.handle_error(
                        e, f"listing {entry}", error_type=ErrorType.SKIP
                    )
                    continue
                yield from self._walk_entries(children, depth + 1, recursive, max_depth)

    def _list_directory(self, directory: Path) -> List[Path]:
        return sorted(directory.iterdir(), key=lambda p: p.name)

    def scan_directory(self, recursive: bool = False, max_depth: int = 10) -> List[Path]:
        """Scan the directory and return the list of regular files.

        Args:
            recursive: Whether to scan subdirectories
            max_depth: Deepest subdirectory level to scan

        Returns:
            List of file paths in discovery order
        """
        file_list = list(self.walk_files(recursive=recursive, max_depth=max_depth))
        self.logger.info(f"Found {len(file_list)} files")
        return file_list
