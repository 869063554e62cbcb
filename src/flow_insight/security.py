"""
Security utilities for Flow Insight.

Root-path validation and guarded reads of unit files.
"""

import os
from pathlib import Path

from .exceptions import FileAccessError, InvalidPathError, SecurityError

# System directories that should never be analyzed
SYSTEM_DIRECTORIES = {
    "/etc", "/sys", "/proc", "/dev", "/boot",
    "/bin", "/sbin", "/usr/bin", "/usr/sbin",
    "C:\\Windows", "C:\\Program Files", "C:\\Program Files (x86)",
}

# Maximum unit size in bytes (default 10MB)
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


def validate_root_directory(path: Path) -> Path:
    """
    Validate that a root directory is safe to analyze.

    Args:
        path: Directory path to validate

    Returns:
        Resolved absolute path

    Raises:
        InvalidPathError: If path is invalid
        SecurityError: If path is unsafe
    """
    try:
        resolved = Path(path).resolve()
    except (OSError, RuntimeError) as e:
        raise InvalidPathError(path, f"Cannot resolve path: {e}")

    if not resolved.exists():
        raise InvalidPathError(resolved, "Directory does not exist")

    if not resolved.is_dir():
        raise InvalidPathError(resolved, "Path is not a directory")

    if not os.access(resolved, os.R_OK):
        raise InvalidPathError(resolved, "Directory is not readable")

    path_str = str(resolved)
    for sys_dir in SYSTEM_DIRECTORIES:
        if path_str == sys_dir or path_str.startswith(sys_dir.rstrip("/\\") + os.sep):
            raise SecurityError(
                f"Cannot analyze system directory: {sys_dir}",
                filepath=resolved
            )

    return resolved


def read_unit_text(path: Path, max_bytes: int = DEFAULT_MAX_FILE_SIZE) -> str:
    """
    Read a unit file as UTF-8, replacing undecodable bytes.

    Raises:
        FileAccessError: If the file cannot be read or exceeds ``max_bytes``
    """
    try:
        size = path.stat().st_size
    except OSError as e:
        raise FileAccessError(path, f"Cannot stat file: {e}")

    if size > max_bytes:
        raise FileAccessError(
            path, f"File size ({size / (1024 * 1024):.2f}MB) exceeds limit "
            f"({max_bytes / (1024 * 1024):.2f}MB)"
        )

    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise FileAccessError(path, str(e))
