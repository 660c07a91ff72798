"""
Report generation for organization plans and execution results.
Renders human-readable summaries and exports the plan as JSON or CSV.
"""

import csv
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..file_access.manipulator import ExecutionResult, ExecutionState
from ..organization_logic.duplicates import (
    DuplicateSummary,
    KeepStrategy,
    summarize_duplicates,
)
from ..organization_logic.models import OperationMode, OrganizationPlan
from .file_utils import human_readable_size

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")

CSV_FIELDS = [
    "group",
    "category",
    "name",
    "source",
    "size",
    "modified_time",
    "content_digest",
    "duplicate_of",
]


def _format_timestamp(timestamp: Optional[int]) -> str:
    if timestamp is None:
        return ""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class ReportGenerator:
    """Generate reports on an organization plan."""

    def __init__(
        self,
        plan: OrganizationPlan,
        duplicate_min_size: int = 0,
        keep_strategy: Optional[KeepStrategy] = None,
    ):
        """
        Args:
            plan: Plan to report on
            duplicate_min_size: Files smaller than this are left out of the
                duplicate summary
            keep_strategy: When set, the duplicate summary names the copy
                this strategy would keep
        """
        self.plan = plan
        self.duplicate_min_size = duplicate_min_size
        self.keep_strategy = keep_strategy
        self.generated_at = datetime.now()

    def render_plan(self) -> str:
        """Render the plan as a grouped listing.

        Each group shows its file count, its share of all planned files and
        its total size, followed by the files planned into it.
        """
        plan = self.plan
        mode = []
        if plan.is_date_based:
            mode.append("date")
        if plan.is_size_based:
            mode.append("size")

        lines = [
            "=" * 60,
            "ORGANIZATION PLAN",
            "=" * 60,
            f"Grouping: {' + '.join(mode) if mode else 'category'}",
            f"Total files: {plan.total_files}",
        ]

        for _, label, records in sorted(plan.iter_groups(), key=lambda g: g[1]):
            total_size = sum(record.size for record in records)
            percentage = (
                len(records) / plan.total_files * 100 if plan.total_files else 0.0
            )
            lines.append("")
            lines.append(
                f"{label}: {len(records)} files ({percentage:.1f}%), "
                f"{human_readable_size(total_size)}"
            )
            for record in records:
                line = f"  - {record.name} ({human_readable_size(record.size)})"
                if record.duplicate_of is not None:
                    line += f" [duplicate of {record.duplicate_of.name}]"
                lines.append(line)

        if plan.skipped_duplicates:
            lines.append("")
            lines.append(f"Skipped duplicates: {len(plan.skipped_duplicates)}")
            for record in plan.skipped_duplicates:
                lines.append(f"  - {record.path} (same as {record.duplicate_of})")

        return "\n".join(lines)

    def render_execution(self, result: ExecutionResult) -> str:
        """Summarize what an execution did, or would do in preview."""
        preview = result.operation == OperationMode.PREVIEW
        verb = "Would move" if preview else "Moved"

        lines = ["", "=" * 60, "EXECUTION SUMMARY", "=" * 60]
        lines.append(f"Mode: {result.operation.value}")
        lines.append(f"State: {result.state.value}")

        created_label = "Directories to create" if preview else "Directories created"
        lines.append(f"{created_label}: {len(result.created_directories)}")
        for directory in result.created_directories:
            lines.append(f"  + {directory}")
        if result.existing_directories:
            lines.append(
                f"Directories already present: {len(result.existing_directories)}"
            )
        if result.blocked_directories:
            lines.append(
                f"Directories blocked by a file: {len(result.blocked_directories)}"
            )
            for directory in result.blocked_directories:
                lines.append(f"  ! {directory}")

        if result.operation != OperationMode.CREATE:
            count = len(result.operations) if preview else result.moved_count
            lines.append(f"{verb}: {count} files")
            for op in result.operations:
                line = f"  {op.source_path} -> {op.target_path}"
                if op.reason:
                    line += f" ({op.reason})"
                lines.append(line)

        if result.skipped:
            lines.append(f"Skipped: {len(result.skipped)}")
            for op in result.skipped:
                lines.append(f"  {op.source_path} ({op.reason})")

        if preview and result.state == ExecutionState.COMMITTED:
            lines.append("")
            lines.append("Preview only; no changes were made.")

        return "\n".join(lines)

    def duplicate_summary(self) -> DuplicateSummary:
        return summarize_duplicates(self.plan.discovered, self.duplicate_min_size)

    def render_duplicates(self) -> str:
        """Render duplicate groups with their counts and the space they waste.

        Only meaningful when the plan was built with content digests.
        """
        summary = self.duplicate_summary()

        lines = ["", "=" * 60, "DUPLICATE FILE SCAN RESULTS", "=" * 60]
        lines.append(f"Files scanned: {summary.files_scanned}")
        if summary.min_size:
            lines.append(f"Minimum size: {human_readable_size(summary.min_size)}")
        lines.append(f"Duplicate files found: {summary.duplicate_files}")
        lines.append(
            f"Potential space savings: {human_readable_size(summary.wasted_bytes)}"
        )

        if not summary.groups:
            lines.append("")
            lines.append("No duplicate files found.")
            return "\n".join(lines)

        lines.append("")
        lines.append(f"Duplicate groups: {len(summary.groups)}")
        for number, group in enumerate(summary.groups, 1):
            lines.append("")
            lines.append(
                f"Group {number}: {group.copies} copies, "
                f"{human_readable_size(group.size)} each "
                f"(save {human_readable_size(group.wasted_bytes)})"
            )
            for index, record in enumerate(group.records, 1):
                modified = _format_timestamp(record.modified_time) or "unknown"
                lines.append(f"  [{index}] {record.path} (modified: {modified})")
            if self.keep_strategy is not None:
                keeper = group.keeper(self.keep_strategy)
                lines.append(
                    f"  Strategy '{self.keep_strategy.value}' would keep: {keeper.path}"
                )

        return "\n".join(lines)

    def _duplicate_groups(self) -> List[Dict[str, Any]]:
        groups = []
        for group in self.duplicate_summary().groups:
            entry = {
                "digest": group.digest,
                "copies": group.copies,
                "size": group.size,
                "wasted_bytes": group.wasted_bytes,
                "files": [str(record.path) for record in group.records],
            }
            if self.keep_strategy is not None:
                entry["keep"] = str(group.keeper(self.keep_strategy).path)
            groups.append(entry)
        return groups

    def _rows(self) -> List[Dict[str, Any]]:
        rows = []
        for _, label, records in self.plan.iter_groups():
            for record in records:
                rows.append(
                    {
                        "group": label,
                        "category": record.category_name,
                        "name": record.name,
                        "source": str(record.path),
                        "size": record.size,
                        "modified_time": _format_timestamp(record.modified_time),
                        "content_digest": record.content_digest or "",
                        "duplicate_of": (
                            str(record.duplicate_of) if record.duplicate_of else ""
                        ),
                    }
                )
        return rows

    def to_dict(self) -> Dict[str, Any]:
        plan = self.plan
        return {
            "generated_at": self.generated_at.isoformat(),
            "total_files": plan.total_files,
            "is_date_based": plan.is_date_based,
            "is_size_based": plan.is_size_based,
            "groups": plan.group_sizes(),
            "files": self._rows(),
            "skipped_duplicates": [
                {
                    "source": str(record.path),
                    "duplicate_of": str(record.duplicate_of),
                }
                for record in plan.skipped_duplicates
            ],
            "duplicate_groups": self._duplicate_groups(),
        }

    def export_json(self, filepath: Path):
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Plan exported to {filepath}")

    def export_csv(self, filepath: Path):
        with open(filepath, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
            writer.writeheader()
            writer.writerows(self._rows())
        logger.info(f"Plan exported to {filepath}")

    def export(self, filepath: Path, format: str = "json"):
        """
        Export the plan to a file.

        Args:
            filepath: Destination file
            format: 'json' or 'csv'
        """
        if format == "json":
            self.export_json(filepath)
        elif format == "csv":
            self.export_csv(filepath)
        else:
            raise ValueError(f"Unsupported export format: {format}")
