import logging
import os
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    log_format: str = DEFAULT_FORMAT,
):
    """Configure logging for the application."""
    # Set log level from environment or default
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    handlers = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    # force=True so repeated runs in one process (tests, CliRunner) reconfigure
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=log_format,
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(__name__)
    if log_file:
        logger.info(f"Logging initialized. Log file: {log_file}")

    return logger
