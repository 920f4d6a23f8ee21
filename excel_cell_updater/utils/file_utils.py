"""File handling utilities for Excel Cell Updater."""

import os
import shutil
from pathlib import Path
from typing import BinaryIO, List
import logging

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 64 * 1024


def validate_file_extension(filename: str, allowed_extensions: List[str]) -> bool:
    """Check a workbook path against accepted extensions ("xlsx" or ".xlsx")."""
    suffix = Path(filename or "").suffix
    if not suffix:
        return False

    accepted = {"." + ext.lower().lstrip(".") for ext in allowed_extensions}
    return suffix.lower() in accepted


def ensure_directory_exists(directory_path: str) -> bool:
    """Ensure directory exists, create it (and parents) if it doesn't.

    Returns:
        True if the directory was created by this call, False if it existed.
    """
    if not directory_path or os.path.isdir(directory_path):
        return False

    # exist_ok covers a directory appearing between the check and the call
    os.makedirs(directory_path, exist_ok=True)
    logger.debug(f"Created directory: {directory_path}")
    return True


def copy_stream_to_file(source: BinaryIO, destination_path: str) -> int:
    """Copy all bytes from a readable stream into a file, overwriting it.

    Returns:
        Number of bytes written.
    """
    with open(destination_path, "wb") as dest_file:
        shutil.copyfileobj(source, dest_file, COPY_BUFFER_SIZE)
        written = dest_file.tell()

    logger.debug(f"Copied {written} bytes to {destination_path}")
    return written
