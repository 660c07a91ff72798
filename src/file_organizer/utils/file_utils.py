"""
Utility functions for file names and file contents.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "sha256"
HASH_CHUNK_SIZE = 4096


def get_file_extension(filename: str) -> str:
    """Return the extension of a file name, including the dot.

    Hidden files whose only dot is the leading one have no extension, and
    neither do names made up entirely of dots.

    Args:
        filename: Bare file name (no directory part)

    Returns:
        The suffix starting at the last dot, or an empty string
    """
    if not filename or not filename.strip("."):
        return ""

    dot_index = filename.rfind(".")
    if dot_index <= 0:
        return ""

    return filename[dot_index:]


def split_name(filename: str) -> Tuple[str, str]:
    """Split a file name into ``(stem, extension)``."""
    extension = get_file_extension(filename)
    if extension:
        return filename[: -len(extension)], extension
    return filename, ""


def get_file_hash(
    file_path: Union[str, Path], algorithm: str = HASH_ALGORITHM
) -> Optional[str]:
    """Calculate the content hash of a file.

    Args:
        file_path: Path to the file
        algorithm: Hash algorithm to use (default: sha256)

    Returns:
        Hex string of the file hash, or None when the file is missing or
        cannot be read
    """
    hash_obj = hashlib.new(algorithm)

    try:
        with open(file_path, "rb") as f:
            # Read file in chunks to handle large files
            for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
                hash_obj.update(chunk)
    except (FileNotFoundError, PermissionError, IsADirectoryError) as e:
        logger.warning(f"Cannot hash {file_path}: {e}")
        return None

    return hash_obj.hexdigest()


def safe_filename(filename: str, max_length: int = 255) -> str:
    """Convert a string to a safe filename.

    Args:
        filename: Original filename
        max_length: Maximum length of filename

    Returns:
        Safe filename string
    """
    invalid_chars = '<>:"|?*\\/\0'
    for char in invalid_chars:
        filename = filename.replace(char, "_")

    if len(filename) > max_length:
        name, ext = split_name(filename)
        max_name_length = max_length - len(ext)
        filename = name[:max_name_length] + ext

    return filename


def human_readable_size(size_bytes: float) -> str:
    """Convert bytes to human readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human readable size string
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"
