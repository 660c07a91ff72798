"""
Conflict resolution for destination file names.
"""

import logging
from pathlib import Path
from typing import Set

from ..utils.error_handler import TooManyConflictsError
from ..utils.file_utils import split_name

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 1000


class ConflictResolver:
    """Find a free destination path by appending ``_1``, ``_2``, ... to the stem.

    Paths handed out during a run can be reserved so that a preview resolves
    names exactly like a real run would, even though nothing is moved. The
    check is not atomic: another process may take a name between the lookup
    and its use.
    """

    def __init__(self, max_attempts: int = MAX_ATTEMPTS):
        self.max_attempts = max_attempts
        self.reserved: Set[Path] = set()

    def is_taken(self, path: Path) -> bool:
        return path in self.reserved or path.exists() or path.is_symlink()

    def resolve(self, desired: Path) -> Path:
        """Return a path that is neither on disk nor reserved.

        Args:
            desired: Preferred destination path

        Returns:
            ``desired`` if free, otherwise the first free ``stem_N`` variant

        Raises:
            TooManyConflictsError: If no free name is found
        """
        if not self.is_taken(desired):
            return desired

        stem, extension = split_name(desired.name)
        parent = desired.parent

        for counter in range(1, self.max_attempts + 1):
            candidate = parent / f"{stem}_{counter}{extension}"
            if not self.is_taken(candidate):
                logger.info(f"Resolved conflict: {desired} -> {candidate}")
                return candidate

        raise TooManyConflictsError(desired, self.max_attempts)

    def reserve(self, path: Path):
        """Mark a destination as claimed for the rest of the run."""
        self.reserved.add(path)

    def clear(self):
        self.reserved.clear()
