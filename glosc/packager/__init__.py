"""glosc packager -- turns a scaffolded git repository into a zip archive.

Key pieces:
    find_repo_root / list_project_files - git-backed file enumeration
    detect_build / run_build            - optional compile step
    SnapshotArchiver                    - temporary-index tree export to zip
    Packager                            - orchestrates one packaging run

Quick usage::

    from glosc.packager import Packager

    result = await Packager().run("path/inside/project")
    print(result.archive)
"""

from .archive import SnapshotArchiver, archive_path_for, verify_archive
from .build import BuildPlan, ProjectKind, detect_build, detect_project_kind, run_build
from .errors import (
    BuildError,
    BuildFailed,
    BuildOutputMissing,
    EmptyPackage,
    GitCommandError,
    NoArchiveBackendAvailable,
    NotARepositoryError,
    PackagingEnvironmentError,
    PackagingError,
    PackagingFailed,
    VcsUnavailableError,
)
from .orchestrator import PackageResult, Packager, PackagingContext, filter_files
from .vcs import find_repo_root, list_project_files

__all__ = [
    # Orchestration
    "Packager",
    "PackageResult",
    "PackagingContext",
    "filter_files",
    # Stages
    "find_repo_root",
    "list_project_files",
    "BuildPlan",
    "ProjectKind",
    "detect_build",
    "detect_project_kind",
    "run_build",
    "SnapshotArchiver",
    "archive_path_for",
    "verify_archive",
    # Errors
    "PackagingError",
    "PackagingEnvironmentError",
    "VcsUnavailableError",
    "NotARepositoryError",
    "NoArchiveBackendAvailable",
    "GitCommandError",
    "BuildError",
    "BuildFailed",
    "BuildOutputMissing",
    "EmptyPackage",
    "PackagingFailed",
]
