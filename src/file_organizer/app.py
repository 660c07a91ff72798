"""
Main application controller for the file organization system.
Orchestrates scanning, planning, reporting and execution.
"""

import sys
import time
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
from dotenv import load_dotenv

from .file_access.manipulator import ExecutionResult, FileManipulator
from .file_access.transaction import MoveTracker
from .organization_logic.duplicates import KeepStrategy
from .organization_logic.engine import OrganizationEngine
from .organization_logic.models import DateFormat, DuplicateAction, OperationMode
from .utils.config_manager import ConfigManager
from .utils.error_handler import ErrorHandler, OrganizerError
from .utils.logging_config import setup_logging
from .utils.report_generator import EXPORT_FORMATS, ReportGenerator

logger = logging.getLogger(__name__)


class FileOrganizerApp:
    """Main application controller that orchestrates file organization."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        cli_args: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.time,
        echo: Callable[[str], None] = click.echo,
    ):
        """Initialize the application with configuration.

        Args:
            config_file: Path to configuration file
            cli_args: Command line overrides, keyed by option name
            clock: Time source used when renaming duplicates
            echo: Output function for the rendered reports
        """
        self.config_file = config_file
        self.cli_args = cli_args or {}
        self.clock = clock
        self.echo = echo
        self.config_manager: Optional[ConfigManager] = None
        self.error_handler = ErrorHandler()
        self.tracker: Optional[MoveTracker] = None
        self._is_initialized = False

    def initialize(self):
        """Load configuration and set up logging."""
        if self._is_initialized:
            return

        self.config_manager = ConfigManager(
            config_file=Path(self.config_file) if self.config_file else None,
            cli_args=self.cli_args,
        )
        self._setup_logging()

        self._is_initialized = True
        logger.debug("Application initialized successfully")

    def _setup_logging(self):
        """Configure logging based on application settings."""
        log_config = self.config_manager.get("logging", {})
        setup_logging(
            log_level=log_config.get("level", "INFO"),
            log_file=log_config.get("file"),
            log_format=log_config.get("format"),
        )

    def run(self, directory: str) -> Optional[ExecutionResult]:
        """Plan the organization of a directory and carry it out.

        Args:
            directory: Directory to organize

        Returns:
            The execution result, or None when only the duplicate summary
            was requested

        Raises:
            PreflightError: If the directory is unusable
            DirectoryCreationError: If a destination directory cannot be made
            MoveError: If a move failed and earlier moves were rolled back
            RollbackError: If the rollback failed as well
        """
        if not self._is_initialized:
            self.initialize()

        config = self.config_manager
        operation = config.get_operation_mode()
        verbose = bool(self.cli_args.get("verbose"))

        engine = OrganizationEngine(
            directory,
            options=config.build_options(),
            custom_categories=config.get_custom_categories(),
            error_handler=self.error_handler,
            clock=self.clock,
        )

        logger.info(f"Scanning {engine.root_directory}")
        plan = engine.scan()

        report = ReportGenerator(
            plan,
            duplicate_min_size=config.get("duplicates.min_size", 0),
            keep_strategy=config.get_keep_strategy(),
        )

        if config.get("duplicates.summary"):
            self.echo(report.render_duplicates())
            return None

        self.echo(report.render_plan())

        export_path = config.get("export.path")
        if export_path:
            report.export(Path(export_path), config.get("export.format", "json"))

        self.tracker = MoveTracker(verbose=verbose)
        manipulator = FileManipulator(
            engine.root_directory,
            operation=operation,
            tracker=self.tracker,
            verbose=verbose,
        )
        result = manipulator.execute(plan)
        self.echo(report.render_execution(result))

        move_log = config.get("export.move_log")
        if move_log and operation == OperationMode.MOVE:
            self.tracker.save_log(Path(move_log))

        return result


def _operation_override(dry_run: bool, create: bool, move: bool) -> Optional[str]:
    # An explicit dry run wins over any request to change the tree
    if dry_run:
        return OperationMode.PREVIEW.value
    if move:
        return OperationMode.MOVE.value
    if create:
        return OperationMode.CREATE.value
    return None


@click.command()
@click.argument("directory", type=click.Path())
@click.option("--config", "config_file", type=click.Path(), help="JSON or YAML configuration file")
@click.option("-c", "--create", is_flag=True, help="Create destination directories only")
@click.option("-m", "--move", is_flag=True, help="Create directories and move files")
@click.option("-d", "--dry-run", is_flag=True, help="Preview without touching the filesystem")
@click.option("-V", "--verbose", is_flag=True, help="Debug logging and per-file rollback output")
@click.option("--by-date", is_flag=True, help="Group files by modification date")
@click.option(
    "--date-format",
    type=click.Choice([fmt.value for fmt in DateFormat]),
    default=None,
    help="Granularity of date folders",
)
@click.option("--by-size", is_flag=True, help="Separate large files from the rest")
@click.option("--size-threshold", type=float, default=None, help="Large file threshold in MB")
@click.option("--detect-dups", is_flag=True, help="Detect duplicate files by content hash")
@click.option(
    "--dup-action",
    type=click.Choice([action.value for action in DuplicateAction]),
    default=None,
    help="What to do with duplicates",
)
@click.option("--dup-summary", is_flag=True, help="Only list duplicate groups; change nothing")
@click.option("--min-size", type=int, default=None, help="Ignore files smaller than this many bytes in the duplicate summary")
@click.option(
    "--keep",
    type=click.Choice([strategy.value for strategy in KeepStrategy]),
    default=None,
    help="Show which copy of each duplicate group this strategy would keep",
)
@click.option("--recursive", is_flag=True, help="Descend into subdirectories")
@click.option("--max-depth", type=int, default=None, help="Maximum recursion depth")
@click.option("--include-hidden", is_flag=True, help="Include hidden files and directories")
@click.option("--export", "export_path", type=click.Path(), help="Write the plan to a file")
@click.option(
    "--export-format",
    type=click.Choice(list(EXPORT_FORMATS)),
    default=None,
    help="Format of the exported plan",
)
@click.option("--move-log", type=click.Path(), help="Write the move log as JSON")
@click.option("--log-file", type=click.Path(), help="Also write logs to this file")
def main(
    directory: str,
    config_file: Optional[str],
    create: bool,
    move: bool,
    dry_run: bool,
    verbose: bool,
    by_date: bool,
    date_format: Optional[str],
    by_size: bool,
    size_threshold: Optional[float],
    detect_dups: bool,
    dup_action: Optional[str],
    dup_summary: bool,
    min_size: Optional[int],
    keep: Optional[str],
    recursive: bool,
    max_depth: Optional[int],
    include_hidden: bool,
    export_path: Optional[str],
    export_format: Optional[str],
    move_log: Optional[str],
    log_file: Optional[str],
):
    """Organize the files in DIRECTORY by category, date or size."""
    load_dotenv()

    cli_args = {
        "operation": _operation_override(dry_run, create, move),
        "verbose": verbose,
        "log_level": "DEBUG" if verbose else None,
        "by_date": by_date,
        "date_format": date_format,
        "by_size": by_size,
        "size_threshold": size_threshold,
        "detect_dups": detect_dups,
        "dup_action": dup_action,
        "dup_summary": dup_summary,
        "min_size": min_size,
        "keep": keep,
        "recursive": recursive,
        "max_depth": max_depth,
        "include_hidden": include_hidden,
        "export": export_path,
        "export_format": export_format,
        "move_log": move_log,
        "log_file": log_file,
    }

    app = FileOrganizerApp(config_file=config_file, cli_args=cli_args)

    try:
        app.initialize()
        app.run(directory)
    except (OrganizerError, ValueError, OSError) as e:
        app.error_handler.handle_error(e, f"organizing {directory}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(app.error_handler.exit_code_for(e))

    sys.exit(0)


if __name__ == "__main__":
    main()
