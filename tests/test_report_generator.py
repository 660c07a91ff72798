"""
Unit tests for plan reports and exports.
"""

import csv
import json
import os
import shutil
import tempfile
from pathlib import Path

import pytest

from file_organizer.file_access.manipulator import FileManipulator
from file_organizer.organization_logic.engine import OrganizationEngine
from file_organizer.organization_logic.models import OperationMode, OrganizeOptions
from file_organizer.organization_logic.duplicates import KeepStrategy
from file_organizer.utils.report_generator import ReportGenerator


class TestReportGenerator:
    """Test report rendering and export."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        for name, content in [
            ("a.txt", "same"),
            ("b.txt", "same"),
            ("c.txt", "different"),
            ("photo.jpg", "jpeg bytes"),
        ]:
            path = self.temp_dir / name
            path.write_text(content)
            os.utime(path, (1725148800, 1725148800))

        self.engine = OrganizationEngine(
            str(self.temp_dir), OrganizeOptions(detect_duplicates=True)
        )
        self.plan = self.engine.scan()
        self.report = ReportGenerator(self.plan)

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def test_render_plan(self):
        text = self.report.render_plan()

        assert "Total files: 3" in text
        assert "Documents: 2 files (66.7%)" in text
        assert "Images: 1 files (33.3%)" in text
        assert "Skipped duplicates: 1" in text
        assert "b.txt" in text

    def test_render_empty_plan(self):
        empty = self.temp_dir / "empty"
        empty.mkdir()
        plan = OrganizationEngine(str(empty)).scan()

        text = ReportGenerator(plan).render_plan()

        assert "Total files: 0" in text

    def test_render_execution_preview(self):
        result = FileManipulator(self.engine.root_directory).execute(self.plan)

        text = self.report.render_execution(result)

        assert "Mode: preview" in text
        assert "Would move: 3 files" in text
        assert "Preview only; no changes were made." in text

    def test_render_execution_move(self):
        result = FileManipulator(
            self.engine.root_directory, operation=OperationMode.MOVE
        ).execute(self.plan)

        text = self.report.render_execution(result)

        assert "Moved: 3 files" in text
        assert "Directories created: 2" in text

    def test_to_dict(self):
        data = self.report.to_dict()

        assert data["total_files"] == 3
        assert data["groups"] == {"Documents": 2, "Images": 1}
        assert len(data["files"]) == 3
        assert data["skipped_duplicates"][0]["source"].endswith("b.txt")
        groups = data["duplicate_groups"]
        assert len(groups) == 1
        assert groups[0]["copies"] == 2
        assert groups[0]["wasted_bytes"] == 4
        assert [Path(p).name for p in groups[0]["files"]] == ["a.txt", "b.txt"]
        assert "keep" not in groups[0]

    def test_export_json(self):
        output = self.temp_dir / "plan.json"
        self.report.export(output, "json")

        data = json.loads(output.read_text())
        assert [row["name"] for row in data["files"]] == ["a.txt", "c.txt", "photo.jpg"]
        assert data["files"][0]["modified_time"].startswith("2024-09-01")

    def test_export_csv(self):
        output = self.temp_dir / "plan.csv"
        self.report.export(output, "csv")

        with open(output, newline="") as f:
            rows = list(csv.DictReader(f))

        assert len(rows) == 3
        assert rows[0]["group"] == "Documents"
        assert rows[0]["size"] == "4"
        assert len(rows[0]["content_digest"]) == 64

    def test_render_execution_lists_blocked_directories(self):
        (self.temp_dir / "images").write_text("not a directory")
        plan = OrganizationEngine(str(self.temp_dir)).scan()
        result = FileManipulator(self.engine.root_directory).execute(plan)

        text = ReportGenerator(plan).render_execution(result)

        assert "Directories blocked by a file: 1" in text
        assert f"  ! {self.engine.root_directory / 'images'}" in text
        assert "destination directory blocked by a file" in text

    def test_render_duplicates(self):
        os.utime(self.temp_dir / "b.txt", (1725235200, 1725235200))
        plan = OrganizationEngine(
            str(self.temp_dir), OrganizeOptions(detect_duplicates=True)
        ).scan()
        report = ReportGenerator(plan, keep_strategy=KeepStrategy.NEWEST)
        root = self.engine.root_directory

        text = report.render_duplicates()

        assert "DUPLICATE FILE SCAN RESULTS" in text
        assert "Files scanned: 4" in text
        assert "Duplicate files found: 1" in text
        assert "Potential space savings: 4.00 B" in text
        assert "Group 1: 2 copies, 4.00 B each (save 4.00 B)" in text
        assert f"  [1] {root / 'a.txt'} (modified: 2024-09-01" in text
        assert f"Strategy 'keep-newest' would keep: {root / 'b.txt'}" in text
        assert report.to_dict()["duplicate_groups"][0]["keep"].endswith("b.txt")

    def test_render_duplicates_min_size(self):
        report = ReportGenerator(self.plan, duplicate_min_size=5)

        text = report.render_duplicates()

        assert "Files scanned: 2" in text
        assert "Minimum size: 5.00 B" in text
        assert "No duplicate files found." in text
        assert report.to_dict()["duplicate_groups"] == []

    def test_unsupported_format(self):
        with pytest.raises(ValueError):
            self.report.export(self.temp_dir / "plan.xml", "xml")
