"""
Data model shared by the planner, the mover and the reporting layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from ..utils.file_utils import safe_filename


class FileCategory(Enum):
    """Built-in classification buckets."""

    DOCUMENTS = "Documents"
    IMAGES = "Images"
    VIDEOS = "Videos"
    AUDIO = "Audio"
    ARCHIVES = "Archives"
    CODE = "Code"
    DATA = "Data"
    CONFIGURATION = "Configuration"
    OTHER = "Other"

    @property
    def directory_name(self) -> str:
        """Directory created for this category when organizing by category."""
        return _CATEGORY_DIRECTORIES[self]


# "Other" lands in "misc", and "Configuration" in "config".
_CATEGORY_DIRECTORIES = {
    FileCategory.DOCUMENTS: "documents",
    FileCategory.IMAGES: "images",
    FileCategory.VIDEOS: "videos",
    FileCategory.AUDIO: "audio",
    FileCategory.ARCHIVES: "archives",
    FileCategory.CODE: "code",
    FileCategory.DATA: "data",
    FileCategory.CONFIGURATION: "config",
    FileCategory.OTHER: "misc",
}

# A custom category is identified by its configured name.
Category = Union[FileCategory, str]


def category_directory_name(category: Category) -> str:
    """Directory name for a built-in or custom category."""
    if isinstance(category, FileCategory):
        return category.directory_name
    name = safe_filename(category.strip()).replace(" ", "_").lower()
    # "." and ".." would resolve outside the category's own folder
    if not name.strip("."):
        return "misc"
    return name


class DateFormat(Enum):
    """Granularity of date-based destination paths."""

    YEAR = "year"
    YEAR_MONTH = "year-month"
    YEAR_MONTH_DAY = "year-month-day"


class DuplicateAction(Enum):
    """What to do with a file whose content was already planned."""

    SKIP = "skip"
    RENAME = "rename"
    REPLACE = "replace"
    KEEP_BOTH = "keep-both"


class OperationMode(Enum):
    """How far a run goes after planning."""

    PREVIEW = "preview"
    CREATE = "create"
    MOVE = "move"


@dataclass
class OrganizeOptions:
    """Options controlling a single scan."""

    recursive: bool = False
    max_depth: int = 10
    by_date: bool = False
    date_format: DateFormat = DateFormat.YEAR_MONTH
    by_size: bool = False
    size_threshold_mb: float = 100
    detect_duplicates: bool = False
    duplicate_action: DuplicateAction = DuplicateAction.SKIP
    include_hidden: bool = False
    case_sensitive_extensions: bool = False


@dataclass
class FileRecord:
    """One discovered regular file.

    ``created_time``, ``modified_time`` and ``content_digest`` are ``None``
    when the value could not be read.
    """

    path: Path
    name: str
    extension: str
    category: Category
    size: int = 0
    created_time: Optional[int] = None
    modified_time: Optional[int] = None
    content_digest: Optional[str] = None
    duplicate_of: Optional[Path] = None

    @property
    def category_name(self) -> str:
        if isinstance(self.category, FileCategory):
            return self.category.value
        return self.category


@dataclass
class OrganizationPlan:
    """Partition of discovered files into destination groups for one run.

    ``categories`` is authoritative in category mode; ``directories`` when
    the plan is date or size based. Keys of ``directories`` are relative
    directory paths such as ``2024/09`` or ``large_files/videos``.
    ``discovered`` holds every record the engine saw, skipped duplicates
    included, in walk order.
    """

    categories: Dict[Category, List[FileRecord]] = field(default_factory=dict)
    directories: Dict[str, List[FileRecord]] = field(default_factory=dict)
    total_files: int = 0
    is_date_based: bool = False
    is_size_based: bool = False
    skipped_duplicates: List[FileRecord] = field(default_factory=list)
    discovered: List[FileRecord] = field(default_factory=list, repr=False)
    _digest_index: Dict[str, FileRecord] = field(default_factory=dict, repr=False)

    @property
    def uses_directories(self) -> bool:
        return self.is_date_based or self.is_size_based

    def add_to_category(self, category: Category, record: FileRecord):
        if self.uses_directories:
            raise ValueError("Plan is directory based; cannot group by category")
        self.categories.setdefault(category, []).append(record)
        self._track(record)

    def add_to_directory(self, directory: str, record: FileRecord):
        if not self.uses_directories:
            raise ValueError("Plan is category based; cannot group by directory")
        self.directories.setdefault(directory, []).append(record)
        self._track(record)

    def _track(self, record: FileRecord):
        self.total_files += 1
        digest = record.content_digest
        if digest is not None and digest not in self._digest_index:
            self._digest_index[digest] = record

    def find_duplicate(self, digest: Optional[str]) -> Optional[FileRecord]:
        """Return the first planned record with this digest, if any.

        Unknown digests never match, not even each other.
        """
        if digest is None:
            return None
        return self._digest_index.get(digest)

    def iter_groups(self) -> Iterator[Tuple[str, str, List[FileRecord]]]:
        """Yield ``(relative_directory, label, records)`` for non-empty groups."""
        if self.uses_directories:
            for directory, records in self.directories.items():
                if records:
                    yield directory, directory, records
        else:
            for category, records in self.categories.items():
                if not records:
                    continue
                label = (
                    category.value if isinstance(category, FileCategory) else category
                )
                yield category_directory_name(category), label, records

    def all_records(self) -> List[FileRecord]:
        return [record for _, _, records in self.iter_groups() for record in records]

    def group_sizes(self) -> Dict[str, int]:
        return {label: len(records) for _, label, records in self.iter_groups()}

    def membership(self) -> Dict[str, List[str]]:
        """Group label to the source paths planned into it."""
        return {
            label: [str(record.path) for record in records]
            for _, label, records in self.iter_groups()
        }
