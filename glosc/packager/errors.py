"""Exception hierarchy for the packaging pipeline.

Every failure is fatal for the run; nothing here is retried.  The CLI catches
:class:`PackagingError`, prints the message and exits non-zero.
"""

from __future__ import annotations

from pathlib import Path


class PackagingError(Exception):
    """Base class for every packaging failure."""


class GitCommandError(PackagingError):
    """Raised when a git invocation exits non-zero or times out."""

    def __init__(self, message: str, command: str = "", stderr: str = ""):
        self.command = command
        self.stderr = stderr
        super().__init__(message)


class PackagingEnvironmentError(PackagingError, EnvironmentError):
    """A required external tool is missing or misconfigured."""


class VcsUnavailableError(PackagingEnvironmentError):
    """The ``git`` executable cannot be started."""


class NotARepositoryError(PackagingEnvironmentError):
    """The start directory is not inside a git work tree."""


class NoArchiveBackendAvailable(PackagingEnvironmentError):
    """No tool capable of writing the archive is installed."""


class BuildError(PackagingError):
    """Base class for build-step failures."""


class BuildFailed(BuildError):
    """The build command could not be started or exited non-zero."""

    def __init__(self, message: str, command: str = "", returncode: int | None = None):
        self.command = command
        self.returncode = returncode
        super().__init__(message)


class BuildOutputMissing(BuildError):
    """The build finished but its entry file does not exist."""

    def __init__(self, message: str, expected: Path | None = None):
        self.expected = expected
        super().__init__(message)


class EmptyPackage(PackagingError):
    """The resolved file list has no entries."""


class PackagingFailed(PackagingError):
    """The archive step failed or produced no usable artifact."""

    def __init__(self, message: str, command: str = "", stderr: str = ""):
        self.command = command
        self.stderr = stderr
        super().__init__(message)
