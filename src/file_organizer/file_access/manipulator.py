"""
File manipulation service: creates destination folders and moves planned files.
"""

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..organization_logic.conflict_resolver import ConflictResolver
from ..organization_logic.models import FileRecord, OperationMode, OrganizationPlan
from ..utils.error_handler import (
    DirectoryCreationError,
    MoveError,
    RollbackError,
    TooManyConflictsError,
)
from .transaction import MoveTracker

logger = logging.getLogger(__name__)


class ExecutionState(Enum):
    """Lifecycle of one execution."""

    PLANNED = "planned"
    DIRECTORIES_CREATED = "directories_created"
    MOVING = "moving"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass
class FileOperation:
    """A resolved move, performed or previewed."""

    source_path: Path
    target_path: Path
    group: str
    performed: bool = False
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": str(self.source_path),
            "target_path": str(self.target_path),
            "group": self.group,
            "performed": self.performed,
            "reason": self.reason,
        }


@dataclass
class ExecutionResult:
    """Outcome of executing an organization plan."""

    operation: OperationMode
    state: ExecutionState
    created_directories: List[Path] = field(default_factory=list)
    existing_directories: List[Path] = field(default_factory=list)
    blocked_directories: List[Path] = field(default_factory=list)
    operations: List[FileOperation] = field(default_factory=list)
    skipped: List[FileOperation] = field(default_factory=list)

    @property
    def moved_count(self) -> int:
        return sum(1 for op in self.operations if op.performed)


class FileManipulator:
    """Service for creating destination folders and moving files into them."""

    def __init__(
        self,
        base_directory: Union[str, Path],
        operation: OperationMode = OperationMode.PREVIEW,
        resolver: Optional[ConflictResolver] = None,
        tracker: Optional[MoveTracker] = None,
        verbose: bool = False,
    ):
        """Initialize file manipulator.

        Args:
            base_directory: Root under which destination groups are created
            operation: PREVIEW touches nothing, CREATE only creates
                directories, MOVE creates directories and moves files
            resolver: Conflict resolver used for destination names
            tracker: Move log used for rollback
            verbose: Log every rollback step
        """
        self.base_directory = Path(base_directory)
        self.operation = operation
        self.resolver = resolver or ConflictResolver()
        self.tracker = tracker or MoveTracker(verbose=verbose)
        self.state = ExecutionState.PLANNED
        self._created_directories: List[Path] = []

        logger.info(
            f"FileManipulator initialized: base_dir={self.base_directory}, "
            f"operation={operation.value}"
        )

    @property
    def dry_run(self) -> bool:
        return self.operation == OperationMode.PREVIEW

    def execute(self, plan: OrganizationPlan) -> ExecutionResult:
        """Create directories for the plan and, in move mode, move every file.

        Args:
            plan: Organization plan to carry out

        Returns:
            ExecutionResult describing what was (or would be) done

        Raises:
            DirectoryCreationError: If a destination directory cannot be made
            MoveError: If a move failed and all earlier moves were undone
            RollbackError: If undoing the earlier moves failed as well
        """
        result = ExecutionResult(operation=self.operation, state=self.state)

        created, existing, blocked = self.create_directories(plan)
        result.created_directories = created
        result.existing_directories = existing
        result.blocked_directories = blocked
        self.state = ExecutionState.DIRECTORIES_CREATED

        if self.operation != OperationMode.CREATE:
            for relative_dir, _, records in plan.iter_groups():
                target_dir = self.base_directory / relative_dir
                if target_dir in blocked:
                    for record in records:
                        result.skipped.append(
                            FileOperation(
                                record.path,
                                target_dir / record.name,
                                relative_dir,
                                reason="destination directory blocked by a file",
                            )
                        )
                    continue
                for record in records:
                    self._organize_record(record, target_dir, relative_dir, result)

        self.state = ExecutionState.COMMITTED
        result.state = self.state
        logger.info(
            f"Execution {self.state.value}: {result.moved_count} moved, "
            f"{len(result.operations)} planned, {len(result.skipped)} skipped"
        )
        return result

    def create_directories(self, plan: OrganizationPlan):
        """Create one directory per non-empty group.

        Returns:
            Tuple of (directories created or to be created, directories that
            already existed, directories a preview found blocked by a file)

        Raises:
            DirectoryCreationError: If a group directory falls outside the
                base directory, or (outside preview) cannot be created
        """
        created: List[Path] = []
        existing: List[Path] = []
        blocked: List[Path] = []

        for relative_dir, _, _ in plan.iter_groups():
            directory = self.base_directory / relative_dir
            self._check_inside_base(directory)

            if directory.is_dir():
                existing.append(directory)
                continue

            if self.dry_run:
                blocker = self._blocking_file(directory)
                if blocker is not None:
                    logger.warning(
                        f"[DRY RUN] Cannot create directory {directory}: "
                        f"{blocker} is a file"
                    )
                    blocked.append(directory)
                    continue
                logger.info(f"[DRY RUN] Would create directory: {directory}")
                created.append(directory)
                continue

            missing = [directory] + [
                parent
                for parent in directory.parents
                if parent != self.base_directory
                and self.base_directory in parent.parents
                and not parent.exists()
            ]
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DirectoryCreationError(directory, e) from e

            self._created_directories.extend(missing)
            created.append(directory)
            logger.info(f"Created directory: {directory}")

        return created, existing, blocked

    def _check_inside_base(self, directory: Path):
        base = self.base_directory.resolve()
        if base not in directory.resolve().parents:
            raise DirectoryCreationError(
                directory,
                ValueError(f"destination is not inside {self.base_directory}"),
            )

    def _blocking_file(self, directory: Path) -> Optional[Path]:
        """First path from the base down to ``directory`` that is not a directory."""
        for path in reversed([directory, *directory.parents]):
            if self.base_directory not in path.parents:
                continue
            if path.exists() and not path.is_dir():
                return path
        return None

    def _organize_record(
        self,
        record: FileRecord,
        target_dir: Path,
        group: str,
        result: ExecutionResult,
    ):
        desired = target_dir / record.name

        if desired == record.path:
            self.resolver.reserve(desired)
            result.skipped.append(
                FileOperation(record.path, desired, group, reason="already in place")
            )
            return

        try:
            target = self.resolver.resolve(desired)
        except TooManyConflictsError as e:
            if self.dry_run:
                logger.warning(f"[DRY RUN] {e}")
                result.skipped.append(
                    FileOperation(record.path, desired, group, reason=str(e))
                )
                return
            self._abort(record.path, desired, e)

        self.resolver.reserve(target)
        reason = "renamed to avoid conflict" if target != desired else ""
        operation = FileOperation(record.path, target, group, reason=reason)

        if self.dry_run:
            logger.info(f"[DRY RUN] Would move: {record.path} -> {target}")
            result.operations.append(operation)
            return

        self.state = ExecutionState.MOVING
        try:
            shutil.move(str(record.path), str(target))
        except OSError as e:
            logger.error(f"Failed to move {record.path}: {e}")
            self._abort(record.path, target, e)

        self.tracker.record_move(record.path, target)
        operation.performed = True
        result.operations.append(operation)
        logger.info(f"Moved: {record.path} -> {target}")

    def _abort(self, source: Path, destination: Path, error: Exception):
        """Undo every recorded move, then raise the matching error."""
        try:
            restored = self.tracker.rollback()
        except RollbackError as rollback_error:
            self.state = ExecutionState.FAILED
            logger.critical(
                "Rollback failed; the directory tree may be in an inconsistent state"
            )
            raise RollbackError(
                rollback_error.original_path,
                rollback_error.destination_path,
                rollback_error.cause,
                restored=rollback_error.restored,
                remaining=rollback_error.remaining,
                original_error=error,
            ) from error

        self._remove_created_directories()
        self.state = ExecutionState.ROLLED_BACK
        raise MoveError(source, destination, error, restored) from error

    def _remove_created_directories(self):
        # Deepest first so that parents are empty by the time they are reached.
        for directory in sorted(
            set(self._created_directories), key=lambda p: len(p.parts), reverse=True
        ):
            try:
                if directory.is_dir() and not any(directory.iterdir()):
                    directory.rmdir()
            except OSError as e:
                logger.warning(f"Could not remove directory {directory}: {e}")
        self._created_directories = []
