"""Repository and unit discovery.

A repository is an immediate sub-directory of the analysed root holding
at least one solution or project manifest. Source units are ``*.cs``
files outside build directories; module units are IL listings found in
build-output directories.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .logging_config import get_logger

logger = get_logger(__name__)

SOURCE_SUFFIX = ".cs"
LISTING_SUFFIX = ".il"
PROJECT_GLOB = "*.csproj"
SOLUTION_GLOB = "*.sln"

BUILD_DIRECTORIES = frozenset({"bin", "obj"})
OUTPUT_DIRECTORIES = frozenset({"bin", "output"})


def discover_repositories(root: Path) -> List[Path]:
    """Sub-directories of ``root`` containing a solution or project file, sorted by name."""
    repositories = []
    for directory in sorted(p for p in root.iterdir() if p.is_dir()):
        if _contains(directory, SOLUTION_GLOB) or _contains(directory, PROJECT_GLOB):
            repositories.append(directory)
        else:
            logger.debug(f"Skipping {directory.name}: no solution or project files")

    logger.info(f"Found {len(repositories)} repositories with .NET projects")
    return repositories


def _contains(directory: Path, pattern: str) -> bool:
    return next(directory.rglob(pattern), None) is not None


# ── Test filtering ─────────────────────────────────────────────


def has_test_marker(name: str, markers: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(marker.lower() in lowered for marker in markers)


def is_test_project(project_file: Path, markers: Sequence[str]) -> bool:
    """A project is a test project if its name or its directory's name carries a marker."""
    return has_test_marker(project_file.stem, markers) or has_test_marker(
        project_file.parent.name, markers
    )


def is_test_file(path: Path, repo_root: Path, markers: Sequence[str]) -> bool:
    """True if the file belongs to a test project or is itself named like a test.

    Every directory from the file's own up to ``repo_root`` is checked for
    a test project file and for a marker in its name.
    """
    for directory in _ancestors(path, repo_root):
        projects = sorted(directory.glob(PROJECT_GLOB))
        if projects and is_test_project(projects[0], markers):
            return True
        if has_test_marker(directory.name, markers):
            return True
    return has_test_marker(path.stem, markers)


def is_test_assembly(path: Path, markers: Sequence[str]) -> bool:
    return has_test_marker(path.stem, markers)


def _ancestors(path: Path, repo_root: Path) -> Iterable[Path]:
    directory = path.parent
    while True:
        yield directory
        if directory == repo_root or directory.parent == directory:
            return
        directory = directory.parent


# ── Units ──────────────────────────────────────────────────────


def _relative_parts(path: Path, repo_root: Path) -> tuple:
    try:
        return path.relative_to(repo_root).parts[:-1]
    except ValueError:
        return path.parts[:-1]


def source_units(
    repo_root: Path, markers: Sequence[str] = (), exclude_tests: bool = False
) -> List[Path]:
    """Source files of a repository in sorted order."""
    units = []
    for path in sorted(repo_root.rglob(f"*{SOURCE_SUFFIX}")):
        if not path.is_file():
            continue
        if any(part.lower() in BUILD_DIRECTORIES for part in _relative_parts(path, repo_root)):
            continue
        if exclude_tests and is_test_file(path, repo_root, markers):
            logger.debug(f"Skipped (test): {path}")
            continue
        units.append(path)
    return units


def module_units(
    repo_root: Path, markers: Sequence[str] = (), exclude_tests: bool = False
) -> List[Path]:
    """IL listings under build-output directories, one per file name."""
    units = []
    seen_names = set()
    for path in sorted(repo_root.rglob(f"*{LISTING_SUFFIX}")):
        if not path.is_file():
            continue
        if not any(part.lower() in OUTPUT_DIRECTORIES for part in _relative_parts(path, repo_root)):
            continue
        if exclude_tests and is_test_assembly(path, markers):
            logger.debug(f"Skipped (test assembly): {path}")
            continue
        if path.name.lower() in seen_names:
            continue
        seen_names.add(path.name.lower())
        units.append(path)
    return units


def project_name_for(path: Path, repo_root: Optional[Path] = None) -> str:
    """Stem of the nearest project file above ``path``, or ``Unknown``."""
    root = repo_root if repo_root is not None else Path(path.anchor or "/")
    for directory in _ancestors(path, root):
        projects = sorted(directory.glob(PROJECT_GLOB))
        if projects:
            return projects[0].stem
    return "Unknown"


def count_projects(
    repo_root: Path, markers: Sequence[str] = (), exclude_tests: bool = False
) -> int:
    projects = sorted(repo_root.rglob(PROJECT_GLOB))
    if exclude_tests:
        projects = [p for p in projects if not is_test_project(p, markers)]
    return len(projects)
