"""
Duplicate summary: groups planned files by content digest.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .models import FileRecord

logger = logging.getLogger(__name__)


class KeepStrategy(Enum):
    """Which copy of a duplicate group would be kept."""

    OLDEST = "keep-oldest"
    NEWEST = "keep-newest"
    LARGEST = "keep-largest"


@dataclass
class DuplicateGroup:
    """Files sharing one content digest, in discovery order."""

    digest: str
    records: List[FileRecord] = field(default_factory=list)

    @property
    def copies(self) -> int:
        return len(self.records)

    @property
    def size(self) -> int:
        return self.records[0].size if self.records else 0

    @property
    def wasted_bytes(self) -> int:
        """Bytes freed by keeping a single copy."""
        return self.size * max(self.copies - 1, 0)

    def keeper(self, strategy: KeepStrategy) -> FileRecord:
        """Pick the copy to keep.

        Ties go to the copy found first. Copies with an unknown modification
        time are only chosen when no copy has a known one.
        """
        if strategy == KeepStrategy.LARGEST:
            return max(self.records, key=lambda record: record.size)

        dated = [r for r in self.records if r.modified_time is not None]
        if not dated:
            return self.records[0]
        if strategy == KeepStrategy.OLDEST:
            return min(dated, key=lambda record: record.modified_time)
        return max(dated, key=lambda record: record.modified_time)


@dataclass
class DuplicateSummary:
    """Result of grouping a set of files by content."""

    files_scanned: int = 0
    min_size: int = 0
    groups: List[DuplicateGroup] = field(default_factory=list)

    @property
    def duplicate_files(self) -> int:
        """Copies beyond the first in every group."""
        return sum(group.copies - 1 for group in self.groups)

    @property
    def wasted_bytes(self) -> int:
        return sum(group.wasted_bytes for group in self.groups)


def summarize_duplicates(
    records: Iterable[FileRecord], min_size: int = 0
) -> DuplicateSummary:
    """Group records by content digest.

    Args:
        records: Files in discovery order
        min_size: Files smaller than this many bytes are left out entirely

    Returns:
        DuplicateSummary holding only groups with more than one file
    """
    if min_size < 0:
        raise ValueError(f"min_size must not be negative: {min_size}")

    summary = DuplicateSummary(min_size=min_size)
    by_digest: Dict[str, List[FileRecord]] = {}
    unhashed = 0

    for record in records:
        if record.size < min_size:
            continue
        summary.files_scanned += 1
        if record.content_digest is None:
            unhashed += 1
            continue
        by_digest.setdefault(record.content_digest, []).append(record)

    summary.groups = [
        DuplicateGroup(digest, members)
        for digest, members in by_digest.items()
        if len(members) > 1
    ]

    if unhashed:
        logger.debug(f"{unhashed} files without a content digest were not grouped")
    logger.info(
        f"Found {len(summary.groups)} duplicate groups "
        f"({summary.duplicate_files} redundant files)"
    )
    return summary
