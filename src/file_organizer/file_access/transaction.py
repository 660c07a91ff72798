"""
Move tracking with compensating rollback.

Every successful move is logged together with its inverse. Rolling back
replays the log in reverse, moving each file from its destination back to
where it came from. This is an application-level approximation of a
transaction: if a rollback move fails, the tree is left partially moved.
"""

import json
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from ..utils.error_handler import RollbackError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoveRecord:
    """A completed move and the data needed to undo it."""

    original_path: Path
    destination_path: Path
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, str]:
        return {
            "original_path": str(self.original_path),
            "destination_path": str(self.destination_path),
            "timestamp": self.timestamp,
        }


class MoveTracker:
    """Ordered log of successful moves for one run."""

    def __init__(self, verbose: bool = False):
        self.moves: List[MoveRecord] = []
        self.verbose = verbose
        self.transaction_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")

    def __len__(self) -> int:
        return len(self.moves)

    def record_move(self, original_path: Path, destination_path: Path) -> MoveRecord:
        """Append a successful move to the log."""
        record = MoveRecord(Path(original_path), Path(destination_path))
        self.moves.append(record)
        logger.debug(f"Recorded move: {record.original_path} -> {record.destination_path}")
        return record

    def rollback(self) -> int:
        """Move every recorded file back, newest first.

        Returns:
            Number of moves undone

        Raises:
            RollbackError: On the first move that cannot be undone. Moves
                older than the failing one stay at their destinations.
        """
        total = len(self.moves)
        logger.info(f"Rolling back {total} file moves (transaction {self.transaction_id})")

        restored = 0
        while self.moves:
            record = self.moves[-1]
            if self.verbose:
                logger.info(
                    f"Moving {record.destination_path} back to {record.original_path}"
                )

            try:
                record.original_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(record.destination_path), str(record.original_path))
            except OSError as e:
                logger.error(
                    f"Could not move {record.destination_path} back to "
                    f"{record.original_path}: {e}"
                )
                raise RollbackError(
                    record.original_path,
                    record.destination_path,
                    e,
                    restored=restored,
                    remaining=len(self.moves),
                ) from e

            self.moves.pop()
            restored += 1

        logger.info(f"Rollback complete: restored {restored} files")
        return restored

    def clear(self):
        """Forget all recorded moves, e.g. once a run has committed."""
        self.moves = []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "move_count": len(self.moves),
            "moves": [record.to_dict() for record in self.moves],
        }

    def save_log(self, filepath: Path):
        """Save the move log as a JSON audit trail."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Move log saved to {filepath}")
