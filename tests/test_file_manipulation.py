"""
Unit tests for file manipulation service.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from file_organizer.file_access.manipulator import ExecutionState, FileManipulator
from file_organizer.file_access.transaction import MoveTracker
from file_organizer.organization_logic.classifier import CustomCategory
from file_organizer.organization_logic.conflict_resolver import ConflictResolver
from file_organizer.organization_logic.engine import OrganizationEngine
from file_organizer.organization_logic.models import (
    FileCategory,
    FileRecord,
    OperationMode,
    OrganizationPlan,
    OrganizeOptions,
)
from file_organizer.utils.error_handler import (
    DirectoryCreationError,
    MoveError,
    RollbackError,
    TooManyConflictsError,
)


def snapshot(directory: Path):
    return sorted(str(p.relative_to(directory)) for p in directory.rglob("*"))


def record_for(path: Path) -> FileRecord:
    return FileRecord(path, path.name, path.suffix, FileCategory.DOCUMENTS)


class TestFileManipulator:
    """Test FileManipulator functionality."""

    @pytest.fixture
    def root(self):
        """Create a temporary directory with sample files."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            for name in ["a.txt", "b.txt", "c.txt", "photo.jpg"]:
                (root / name).write_text(f"content of {name}")
            yield root

    def plan_for(self, root, **options):
        engine = OrganizationEngine(str(root), OrganizeOptions(**options))
        return engine, engine.scan()

    def test_preview_touches_nothing(self, root):
        engine, plan = self.plan_for(root)
        before = snapshot(root)

        result = FileManipulator(engine.root_directory).execute(plan)

        assert snapshot(root) == before
        assert result.state == ExecutionState.COMMITTED
        assert result.moved_count == 0
        assert len(result.operations) == 4
        assert sorted(p.name for p in result.created_directories) == [
            "documents",
            "images",
        ]
        assert all(not op.performed for op in result.operations)

    def test_create_mode_only_creates_directories(self, root):
        engine, plan = self.plan_for(root)

        result = FileManipulator(
            engine.root_directory, operation=OperationMode.CREATE
        ).execute(plan)

        assert (root / "documents").is_dir()
        assert (root / "images").is_dir()
        assert (root / "a.txt").exists()
        assert result.operations == []

    def test_existing_directories_are_reported(self, root):
        (root / "documents").mkdir()
        engine, plan = self.plan_for(root)

        result = FileManipulator(
            engine.root_directory, operation=OperationMode.CREATE
        ).execute(plan)

        assert [p.name for p in result.existing_directories] == ["documents"]
        assert [p.name for p in result.created_directories] == ["images"]

    def test_move_mode(self, root):
        engine, plan = self.plan_for(root)
        tracker = MoveTracker()

        result = FileManipulator(
            engine.root_directory, operation=OperationMode.MOVE, tracker=tracker
        ).execute(plan)

        assert result.state == ExecutionState.COMMITTED
        assert result.moved_count == 4
        assert len(tracker) == 4
        assert (root / "documents" / "a.txt").read_text() == "content of a.txt"
        assert (root / "images" / "photo.jpg").exists()
        assert not (root / "a.txt").exists()

    def test_nested_date_directories(self, root):
        engine, plan = self.plan_for(root, by_date=True, by_size=True)

        FileManipulator(engine.root_directory, operation=OperationMode.MOVE).execute(
            plan
        )

        moved = [p for p in root.rglob("a.txt")]
        assert len(moved) == 1
        assert moved[0].parent.name == "documents"

    def test_existing_target_is_renamed(self, root):
        (root / "documents").mkdir()
        (root / "documents" / "a.txt").write_text("already here")
        engine, plan = self.plan_for(root)

        result = FileManipulator(
            engine.root_directory, operation=OperationMode.MOVE
        ).execute(plan)

        assert (root / "documents" / "a.txt").read_text() == "already here"
        assert (root / "documents" / "a_1.txt").read_text() == "content of a.txt"
        renamed = [op for op in result.operations if op.reason]
        assert [op.target_path.name for op in renamed] == ["a_1.txt"]

    def test_preview_resolves_like_a_real_run(self, root):
        (root / "sub").mkdir()
        (root / "sub" / "a.txt").write_text("other a")
        engine, plan = self.plan_for(root, recursive=True)

        preview = FileManipulator(engine.root_directory).execute(plan)
        engine, plan = self.plan_for(root, recursive=True)
        real = FileManipulator(
            engine.root_directory, operation=OperationMode.MOVE
        ).execute(plan)

        assert [op.target_path for op in preview.operations] == [
            op.target_path for op in real.operations
        ]
        assert (root / "documents" / "a_1.txt").read_text() == "other a"

    def test_files_already_in_place_are_skipped(self, root):
        engine, plan = self.plan_for(root)
        FileManipulator(engine.root_directory, operation=OperationMode.MOVE).execute(
            plan
        )

        engine, plan = self.plan_for(root, recursive=True)
        result = FileManipulator(
            engine.root_directory, operation=OperationMode.MOVE
        ).execute(plan)

        assert result.moved_count == 0
        assert len(result.skipped) == 4
        assert {op.reason for op in result.skipped} == {"already in place"}
        assert not (root / "documents" / "a_1.txt").exists()

    def test_failed_move_rolls_back(self, root, mocker):
        engine, plan = self.plan_for(root)
        real_move = shutil.move

        def flaky_move(src, dst):
            if Path(src) == root / "c.txt":
                raise PermissionError("denied")
            return real_move(src, dst)

        mocker.patch("shutil.move", side_effect=flaky_move)
        manipulator = FileManipulator(
            engine.root_directory, operation=OperationMode.MOVE
        )

        with pytest.raises(MoveError) as exc_info:
            manipulator.execute(plan)

        assert exc_info.value.restored == 2
        assert manipulator.state == ExecutionState.ROLLED_BACK
        for name in ["a.txt", "b.txt", "c.txt", "photo.jpg"]:
            assert (root / name).read_text() == f"content of {name}"
        assert not (root / "documents").exists()
        assert not (root / "images").exists()

    def test_failed_rollback_reports_both_errors(self, root, mocker):
        engine, plan = self.plan_for(root)
        real_move = shutil.move

        def flaky_move(src, dst):
            if Path(src) == root / "c.txt":
                raise PermissionError("move denied")
            if Path(src) == root / "documents" / "a.txt":
                raise PermissionError("rollback denied")
            return real_move(src, dst)

        mocker.patch("shutil.move", side_effect=flaky_move)
        manipulator = FileManipulator(
            engine.root_directory, operation=OperationMode.MOVE
        )

        with pytest.raises(RollbackError) as exc_info:
            manipulator.execute(plan)

        error = exc_info.value
        assert error.restored == 1
        assert error.remaining == 1
        assert "move denied" in str(error.original_error)
        assert "rollback denied" in str(error.cause)
        assert manipulator.state == ExecutionState.FAILED
        assert (root / "b.txt").exists()
        assert (root / "documents" / "a.txt").exists()

    def test_directory_creation_failure(self, root):
        # A regular file blocks the "misc" directory
        (root / "misc").write_text("not a directory")
        engine, plan = self.plan_for(root)

        with pytest.raises(DirectoryCreationError):
            FileManipulator(
                engine.root_directory, operation=OperationMode.MOVE
            ).execute(plan)

        assert (root / "a.txt").exists()

    def test_preview_reports_blocked_directory(self, root):
        (root / "misc").write_text("not a directory")
        engine, plan = self.plan_for(root)

        result = FileManipulator(engine.root_directory).execute(plan)

        assert result.state == ExecutionState.COMMITTED
        assert [p.name for p in result.blocked_directories] == ["misc"]
        assert "misc" not in [p.name for p in result.created_directories]
        assert [(op.source_path.name, op.reason) for op in result.skipped] == [
            ("misc", "destination directory blocked by a file")
        ]
        assert "misc" not in [op.group for op in result.operations]
        assert (root / "misc").is_file()

    def test_preview_reports_blocked_parent_directory(self, root):
        (root / "2024").write_text("not a directory")
        plan = OrganizationPlan(is_date_based=True)
        plan.add_to_directory("2024/09", record_for(root / "a.txt"))
        plan.add_to_directory("2025/01", record_for(root / "b.txt"))

        result = FileManipulator(root).execute(plan)

        assert result.blocked_directories == [root / "2024" / "09"]
        assert result.created_directories == [root / "2025" / "01"]
        assert [op.source_path.name for op in result.skipped] == ["a.txt"]
        assert [op.source_path.name for op in result.operations] == ["b.txt"]

    def test_dot_category_stays_inside_root(self, root):
        (root / "payload.evil").write_text("payload")
        engine = OrganizationEngine(
            str(root),
            OrganizeOptions(),
            custom_categories=[CustomCategory(name="..", extensions=[".evil"])],
        )
        plan = engine.scan()

        FileManipulator(engine.root_directory, operation=OperationMode.MOVE).execute(
            plan
        )

        assert (root / "misc" / "payload.evil").read_text() == "payload"
        assert not (root.parent / "payload.evil").exists()

    @pytest.mark.parametrize(
        "operation", [OperationMode.PREVIEW, OperationMode.CREATE, OperationMode.MOVE]
    )
    def test_group_outside_root_is_rejected(self, root, operation):
        plan = OrganizationPlan(is_date_based=True)
        plan.add_to_directory("../outside", record_for(root / "a.txt"))

        with pytest.raises(DirectoryCreationError) as exc_info:
            FileManipulator(root, operation=operation).execute(plan)

        assert "not inside" in str(exc_info.value.cause)
        assert not (root.parent / "outside").exists()
        assert (root / "a.txt").exists()

    def test_too_many_conflicts_rolls_back_move(self, root):
        (root / "documents").mkdir()
        (root / "documents" / "c.txt").write_text("occupied")
        engine, plan = self.plan_for(root)
        manipulator = FileManipulator(
            engine.root_directory,
            operation=OperationMode.MOVE,
            resolver=ConflictResolver(max_attempts=0),
        )

        with pytest.raises(MoveError) as exc_info:
            manipulator.execute(plan)

        error = exc_info.value
        assert isinstance(error.cause, TooManyConflictsError)
        assert error.restored == 2
        assert manipulator.state == ExecutionState.ROLLED_BACK
        for name in ["a.txt", "b.txt", "c.txt", "photo.jpg"]:
            assert (root / name).read_text() == f"content of {name}"
        assert (root / "documents" / "c.txt").read_text() == "occupied"
        assert sorted(p.name for p in (root / "documents").iterdir()) == ["c.txt"]
        assert not (root / "images").exists()

    def test_too_many_conflicts_is_skipped_in_preview(self, root):
        (root / "documents").mkdir()
        (root / "documents" / "c.txt").write_text("occupied")
        engine, plan = self.plan_for(root)

        result = FileManipulator(
            engine.root_directory, resolver=ConflictResolver(max_attempts=0)
        ).execute(plan)

        assert [op.source_path.name for op in result.skipped] == ["c.txt"]
        assert len(result.operations) == 3
