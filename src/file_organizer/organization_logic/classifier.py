"""
Extension based file classification.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .models import Category, FileCategory

logger = logging.getLogger(__name__)

# Longer "extensions" are treated as noise rather than compared.
MAX_EXTENSION_LENGTH = 255

_BUILTIN_GROUPS = {
    FileCategory.DOCUMENTS: (
        ".txt", ".pdf", ".doc", ".docx", ".md", ".odt", ".rtf", ".tex",
    ),
    FileCategory.IMAGES: (
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".svg", ".ico", ".webp",
    ),
    FileCategory.VIDEOS: (".mp4", ".avi", ".mkv", ".mov", ".wmv", ".flv", ".webm"),
    FileCategory.AUDIO: (".mp3", ".wav", ".flac", ".aac", ".ogg", ".wma", ".m4a"),
    FileCategory.ARCHIVES: (".zip", ".tar", ".gz", ".rar", ".7z", ".bz2", ".xz"),
    FileCategory.CODE: (
        ".zig", ".py", ".js", ".ts", ".c", ".cpp", ".h", ".hpp",
        ".java", ".cs", ".go", ".rs", ".sh", ".bat",
    ),
    FileCategory.DATA: (".json", ".xml", ".csv", ".sql", ".db", ".sqlite"),
    FileCategory.CONFIGURATION: (".ini", ".yaml", ".yml", ".toml", ".cfg", ".conf"),
}

BUILTIN_EXTENSION_MAP: Mapping[str, FileCategory] = MappingProxyType(
    {ext: category for category, exts in _BUILTIN_GROUPS.items() for ext in exts}
)


def normalize_extension(extension: str) -> str:
    """Ensure a configured extension starts with a dot."""
    extension = extension.strip()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


@dataclass
class CustomCategory:
    """A user-defined category from the configuration file."""

    name: str
    extensions: List[str] = field(default_factory=list)
    description: str = ""
    priority: int = 100
    color: Optional[str] = None

    def __post_init__(self):
        self.extensions = [
            normalize_extension(ext) for ext in self.extensions if ext.strip()
        ]

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "CustomCategory":
        extensions = data.get("extensions", [])
        if isinstance(extensions, str):
            extensions = [extensions]
        return cls(
            name=name,
            extensions=list(extensions),
            description=data.get("description", ""),
            priority=int(data.get("priority", 100)),
            color=data.get("color"),
        )

    def matches(self, extension: str, case_sensitive: bool = False) -> bool:
        if case_sensitive:
            return extension in self.extensions
        lowered = extension.lower()
        return any(ext.lower() == lowered for ext in self.extensions)


def order_custom_categories(
    categories: Iterable[CustomCategory],
) -> List[CustomCategory]:
    """Order a custom table by priority, keeping declaration order for ties."""
    return sorted(categories, key=lambda category: category.priority)


def is_classifiable(extension: str) -> bool:
    if not extension or len(extension) > MAX_EXTENSION_LENGTH:
        return False
    return any(char.isalnum() for char in extension)


def classify(
    extension: str,
    custom_categories: Optional[Sequence[CustomCategory]] = None,
    case_sensitive: bool = False,
) -> Category:
    """Map an extension to a category.

    Args:
        extension: Extension including the leading dot, possibly empty
        custom_categories: Ordered custom table, consulted first
        case_sensitive: Whether custom extensions must match case exactly

    Returns:
        A FileCategory, or the name of the matching custom category
    """
    if not is_classifiable(extension):
        return FileCategory.OTHER

    if custom_categories:
        for custom in custom_categories:
            if custom.matches(extension, case_sensitive):
                return custom.name

    return BUILTIN_EXTENSION_MAP.get(extension.lower(), FileCategory.OTHER)


class FileClassifier:
    """Classifier bound to one custom category table."""

    def __init__(
        self,
        custom_categories: Optional[Iterable[CustomCategory]] = None,
        case_sensitive: bool = False,
    ):
        self.custom_categories = order_custom_categories(custom_categories or [])
        self.case_sensitive = case_sensitive

        if self.custom_categories:
            logger.debug(
                f"Using {len(self.custom_categories)} custom categories: "
                f"{[c.name for c in self.custom_categories]}"
            )

    def classify(self, extension: str) -> Category:
        return classify(extension, self.custom_categories, self.case_sensitive)
