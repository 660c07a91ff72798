"""
Error types and error bookkeeping for the file organization system.
Categorizes failures by how a run reacts to them and maps fatal ones to
process exit codes.
"""

import json
import logging
import traceback
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class OrganizerError(Exception):
    """Base error for the project."""


class PreflightError(OrganizerError):
    """Root directory is missing, not a directory, or inaccessible."""


class DirectoryCreationError(OrganizerError):
    """A destination directory could not be created."""

    def __init__(self, directory: Path, cause: Exception):
        super().__init__(f"Failed to create directory {directory}: {cause}")
        self.directory = directory
        self.cause = cause


class TooManyConflictsError(OrganizerError):
    """No free name was found for a destination path."""

    def __init__(self, path: Path, attempts: int):
        super().__init__(f"Too many naming conflicts for {path} ({attempts} attempts)")
        self.path = path
        self.attempts = attempts


class MoveError(OrganizerError):
    """A move failed; every earlier move of the run was rolled back."""

    def __init__(self, source: Path, destination: Path, cause: Exception, restored: int):
        super().__init__(
            f"Failed to move {source} -> {destination}: {cause}. "
            f"Rolled back {restored} completed move(s)"
        )
        self.source = source
        self.destination = destination
        self.cause = cause
        self.restored = restored


class RollbackError(OrganizerError):
    """Rollback itself failed; the tree may be partially moved."""

    def __init__(
        self,
        original_path: Path,
        destination_path: Path,
        cause: Exception,
        restored: int,
        remaining: int,
        original_error: Optional[Exception] = None,
    ):
        message = (
            f"Rollback failed moving {destination_path} back to {original_path}: "
            f"{cause}. Restored {restored}, {remaining} move(s) not restored"
        )
        if original_error is not None:
            message = f"{message} (original failure: {original_error})"
        super().__init__(message)
        self.original_path = original_path
        self.destination_path = destination_path
        self.cause = cause
        self.restored = restored
        self.remaining = remaining
        self.original_error = original_error


class ErrorType(Enum):
    """How a run reacts to an error."""

    DEGRADE = "degrade"
    SKIP = "skip"
    CONFLICT = "conflict"
    FATAL_ROLLBACK = "fatal_rollback"
    FATAL_UNRECOVERABLE = "fatal_unrecoverable"
    FATAL_PREFLIGHT = "fatal_preflight"
    DIRECTORY_CREATION = "directory_creation"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


EXIT_CODES = {
    ErrorType.FATAL_PREFLIGHT: 1,
    ErrorType.DIRECTORY_CREATION: 2,
    ErrorType.FATAL_ROLLBACK: 3,
    ErrorType.FATAL_UNRECOVERABLE: 4,
    ErrorType.CONFIGURATION: 5,
    ErrorType.UNKNOWN: 5,
}

_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorRecord:
    """Record of an error occurrence."""

    def __init__(
        self,
        error: Exception,
        context: str,
        error_type: ErrorType,
        severity: ErrorSeverity,
    ):
        self.error = error
        self.context = context
        self.error_type = error_type
        self.severity = severity
        self.timestamp = datetime.now()
        self.traceback = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "error": str(self.error),
            "context": self.context,
            "error_type": self.error_type.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback,
        }


class ErrorHandler:
    """Categorize, log and count errors raised during a run."""

    def __init__(self):
        self.logger = logging.getLogger("error_handler")
        self.error_history: List[ErrorRecord] = []
        self.error_counts: Dict[ErrorType, int] = {
            error_type: 0 for error_type in ErrorType
        }

    def handle_error(
        self, error: Exception, context: str, error_type: Optional[ErrorType] = None
    ) -> ErrorType:
        """
        Record an error and log it at a level matching its severity.

        Args:
            error: The exception to handle
            context: Context describing where the error occurred
            error_type: Explicit category, for errors whose handling depends
                on where they happened (e.g. an unreadable subdirectory)

        Returns:
            The error category
        """
        error_type = error_type or self.categorize_error(error)
        severity = self._determine_severity(error_type)

        self.error_history.append(ErrorRecord(error, context, error_type, severity))
        self.error_counts[error_type] += 1

        self.logger.log(
            _LOG_LEVELS[severity],
            f"Error in {context}: {str(error)}",
            extra={"error_type": error_type.value, "severity": severity.value},
        )
        return error_type

    def categorize_error(self, error: Exception) -> ErrorType:
        """Categorize the error type."""
        if isinstance(error, PreflightError):
            return ErrorType.FATAL_PREFLIGHT
        elif isinstance(error, RollbackError):
            return ErrorType.FATAL_UNRECOVERABLE
        elif isinstance(error, MoveError):
            return ErrorType.FATAL_ROLLBACK
        elif isinstance(error, DirectoryCreationError):
            return ErrorType.DIRECTORY_CREATION
        elif isinstance(error, TooManyConflictsError):
            return ErrorType.CONFLICT
        elif isinstance(error, (FileNotFoundError, PermissionError, OSError)):
            return ErrorType.DEGRADE
        elif isinstance(error, (ValueError, KeyError)):
            return ErrorType.CONFIGURATION
        else:
            return ErrorType.UNKNOWN

    def _determine_severity(self, error_type: ErrorType) -> ErrorSeverity:
        if error_type in (ErrorType.DEGRADE, ErrorType.CONFLICT):
            return ErrorSeverity.LOW
        elif error_type == ErrorType.SKIP:
            return ErrorSeverity.MEDIUM
        elif error_type == ErrorType.FATAL_UNRECOVERABLE:
            return ErrorSeverity.CRITICAL
        else:
            return ErrorSeverity.HIGH

    def exit_code_for(self, error: Optional[Exception]) -> int:
        """Process exit status for a run that ended with ``error``."""
        if error is None:
            return 0
        return EXIT_CODES.get(self.categorize_error(error), 5)

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get statistics about errors encountered."""
        return {
            "total_errors": len(self.error_history),
            "error_counts_by_type": {
                error_type.value: count
                for error_type, count in self.error_counts.items()
            },
            "recent_errors": [error.to_dict() for error in self.error_history[-10:]],
        }

    def save_error_report(self, filepath: Path):
        """Save a detailed error report to file."""
        report = {
            "generated_at": datetime.now().isoformat(),
            "statistics": self.get_error_statistics(),
            "error_history": [error.to_dict() for error in self.error_history],
        }

        with open(filepath, "w") as f:
            json.dump(report, f, indent=2)

        self.logger.info(f"Error report saved to {filepath}")
