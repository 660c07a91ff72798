"""
Organization logic module for file organization.
"""

from .engine import OrganizationEngine
from .classifier import CustomCategory, FileClassifier, classify
from .conflict_resolver import ConflictResolver
from .duplicates import (
    DuplicateGroup,
    DuplicateSummary,
    KeepStrategy,
    summarize_duplicates,
)
from .models import (
    DateFormat,
    DuplicateAction,
    FileCategory,
    FileRecord,
    OperationMode,
    OrganizationPlan,
    OrganizeOptions,
)

__all__ = [
    "OrganizationEngine",
    "CustomCategory",
    "FileClassifier",
    "classify",
    "ConflictResolver",
    "DuplicateGroup",
    "DuplicateSummary",
    "KeepStrategy",
    "summarize_duplicates",
    "DateFormat",
    "DuplicateAction",
    "FileCategory",
    "FileRecord",
    "OperationMode",
    "OrganizationPlan",
    "OrganizeOptions",
]
