"""
Organization logic engine: scans a directory and builds the organization plan.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..file_access.local_accessor import FileSystemAccessor, read_metadata
from ..utils.error_handler import ErrorHandler
from ..utils.file_utils import get_file_extension, split_name
from .classifier import CustomCategory, FileClassifier
from .models import (
    DateFormat,
    DuplicateAction,
    FileRecord,
    OrganizationPlan,
    OrganizeOptions,
    category_directory_name,
)

logger = logging.getLogger(__name__)

UNDATED_DIRECTORY = "undated"
LARGE_FILES_DIRECTORY = "large_files"
DUPLICATE_MARKER = "_duplicate_"


def format_date_path(timestamp: Optional[int], date_format: DateFormat) -> str:
    """Format a Unix timestamp as a relative directory path.

    Args:
        timestamp: Seconds since epoch, or None when unknown
        date_format: Granularity of the path

    Returns:
        ``YYYY``, ``YYYY/MM`` or ``YYYY/MM/DD``; ``undated`` for missing or
        non-positive timestamps
    """
    if timestamp is None or timestamp <= 0:
        return UNDATED_DIRECTORY

    date = datetime.fromtimestamp(timestamp, tz=timezone.utc)

    if date_format == DateFormat.YEAR:
        return f"{date.year}"
    elif date_format == DateFormat.YEAR_MONTH:
        return f"{date.year}/{date.month:02d}"
    return f"{date.year}/{date.month:02d}/{date.day:02d}"


def is_large_file(size: int, threshold_mb: float) -> bool:
    return size / (1 << 20) >= threshold_mb


def duplicate_name(name: str, timestamp: int) -> str:
    """In-plan name for a duplicate kept under the rename policy."""
    stem, extension = split_name(name)
    return f"{stem}{DUPLICATE_MARKER}{timestamp}{extension}"


class OrganizationEngine:
    """Build an organization plan for a directory tree."""

    def __init__(
        self,
        root_directory: str,
        options: Optional[OrganizeOptions] = None,
        custom_categories: Optional[Iterable[CustomCategory]] = None,
        error_handler: Optional[ErrorHandler] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the engine.

        Args:
            root_directory: Directory to organize
            options: Scan and grouping options
            custom_categories: User-defined categories, consulted before the
                built-in table
            error_handler: Collects non-fatal errors
            clock: Source of the timestamp used when renaming duplicates

        Raises:
            PreflightError: If the root directory is unusable
        """
        self.options = options or OrganizeOptions()
        self.error_handler = error_handler or ErrorHandler()
        self.accessor = FileSystemAccessor(
            root_directory,
            include_hidden=self.options.include_hidden,
            error_handler=self.error_handler,
        )
        self.root_directory = self.accessor.root_directory
        self.classifier = FileClassifier(
            custom_categories, case_sensitive=self.options.case_sensitive_extensions
        )
        self.clock = clock
        self._warned_replace = False

    def scan(self) -> OrganizationPlan:
        """Walk the tree and plan every discovered file.

        Returns:
            A new OrganizationPlan
        """
        plan = OrganizationPlan(
            is_date_based=self.options.by_date,
            is_size_based=self.options.by_size,
        )

        for file_path in self.accessor.walk_files(
            recursive=self.options.recursive, max_depth=self.options.max_depth
        ):
            record = self.build_record(file_path)
            self.plan_record(plan, record)

        logger.info(
            f"Planned {plan.total_files} files into {len(plan.group_sizes())} groups"
            f" ({len(plan.skipped_duplicates)} duplicates skipped)"
        )
        return plan

    def build_record(self, file_path: Path) -> FileRecord:
        """Classify a file and read its metadata."""
        metadata = read_metadata(
            file_path, compute_digest=self.options.detect_duplicates
        )
        extension = get_file_extension(file_path.name)

        return FileRecord(
            path=file_path,
            name=file_path.name,
            extension=extension,
            category=self.classifier.classify(extension),
            size=metadata.size,
            created_time=metadata.created_time,
            modified_time=metadata.modified_time,
            content_digest=metadata.content_digest,
        )

    def plan_record(self, plan: OrganizationPlan, record: FileRecord) -> bool:
        """Apply duplicate policy and place a record into the plan.

        Returns:
            True if the record was added, False if it was skipped
        """
        plan.discovered.append(record)
        if self.options.detect_duplicates:
            original = plan.find_duplicate(record.content_digest)
            if original is not None and not self._apply_duplicate_policy(
                plan, record, original
            ):
                return False

        if plan.uses_directories:
            plan.add_to_directory(self.destination_group(record), record)
        else:
            plan.add_to_category(record.category, record)
        return True

    def _apply_duplicate_policy(
        self, plan: OrganizationPlan, record: FileRecord, original: FileRecord
    ) -> bool:
        action = self.options.duplicate_action
        record.duplicate_of = original.path

        if action == DuplicateAction.SKIP:
            logger.info(f"Skipping duplicate {record.path} (same as {original.path})")
            plan.skipped_duplicates.append(record)
            return False

        if action == DuplicateAction.RENAME:
            record.name = duplicate_name(record.name, int(self.clock()))
            record.extension = get_file_extension(record.name)
            logger.info(f"Renaming duplicate {record.path} to {record.name}")
        elif action == DuplicateAction.REPLACE:
            if not self._warned_replace:
                logger.warning(
                    "Duplicate action 'replace' keeps the earlier file; "
                    "it currently behaves like 'keep-both'"
                )
                self._warned_replace = True
        else:
            logger.debug(f"Keeping duplicate {record.path} (same as {original.path})")

        return True

    def destination_group(self, record: FileRecord) -> str:
        """Relative directory for a record in date and/or size mode."""
        parts = []

        if self.options.by_date:
            parts.append(
                format_date_path(record.modified_time, self.options.date_format)
            )

        if self.options.by_size:
            if is_large_file(record.size, self.options.size_threshold_mb):
                parts.append(LARGE_FILES_DIRECTORY)
            parts.append(category_directory_name(record.category))

        return "/".join(parts)
