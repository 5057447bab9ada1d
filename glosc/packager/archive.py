"""Snapshot-tree archive builder.

The archive is produced from a throw-away git index:

1. the resolved file list is written to a NUL-separated manifest,
2. ``git add --force`` stages exactly those paths into a temporary index
   (``GIT_INDEX_FILE``), so ignored build output can be included while the
   user's real index stays untouched,
3. ``git write-tree`` turns the staged state into a tree object,
4. ``git archive --format=zip`` exports that tree.

The archive therefore contains precisely the listed files with their current
on-disk content, independent of what is committed.
"""

from __future__ import annotations

import os
import shutil
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from glosc.utils import CommandRunner, run_command

from .errors import GitCommandError, NoArchiveBackendAvailable, PackagingFailed
from .vcs import run_git

console = Console()

ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


def archive_path_for(output_dir: Path, prefix: str, now: datetime) -> Path:
    """Return ``<output_dir>/<prefix>-YYYYMMDD-HHMMSS.zip``.

    If that file already exists (two runs within one second) a ``-N``
    counter is appended so an earlier archive is never overwritten.
    """
    stem = f"{prefix}-{now.strftime(ARCHIVE_TIMESTAMP_FORMAT)}"
    candidate = output_dir / f"{stem}.zip"
    counter = 1
    while candidate.exists():
        candidate = output_dir / f"{stem}-{counter}.zip"
        counter += 1
    return candidate


def write_manifest(path: Path, files: list[str]) -> Path:
    """Write *files* NUL-separated, the format ``--pathspec-file-nul`` reads."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"".join(os.fsencode(name) + b"\0" for name in files))
    return path


def _printable(name: str) -> str:
    return name.encode("utf-8", "backslashreplace").decode("utf-8")


def _member_name_bytes(info: zipfile.ZipInfo) -> bytes:
    # Undo zipfile's decoding so names compare as the bytes git wrote.
    encoding = "utf-8" if info.flag_bits & 0x800 else "cp437"
    return info.filename.encode(encoding).rstrip(b"/")


def missing_members(path: Path, files: list[str]) -> list[str]:
    """Return the entries of *files* that the zip at *path* does not contain."""
    with zipfile.ZipFile(path) as zf:
        present = {_member_name_bytes(info) for info in zf.infolist()}
    return [name for name in files if os.fsencode(name).rstrip(b"/") not in present]


def verify_archive(path: Path, expected: list[str] | None = None) -> int:
    """Return the archive size, failing loudly if it is missing or empty.

    When *expected* is given, every listed file must also be a member.
    ``export-ignore`` attributes make ``git archive`` leave files out
    silently, so an incomplete archive is deleted and reported instead.
    """
    try:
        size = path.stat().st_size
    except FileNotFoundError as exc:
        raise PackagingFailed(f"Archive was not created: {path}") from exc

    if size == 0:
        path.unlink(missing_ok=True)
        raise PackagingFailed(f"Archive is empty (0 bytes): {path}")

    if expected:
        try:
            missing = missing_members(path, expected)
        except zipfile.BadZipFile as exc:
            path.unlink(missing_ok=True)
            raise PackagingFailed(f"Archive is not a valid zip file: {path}") from exc
        if missing:
            path.unlink(missing_ok=True)
            shown = ", ".join(_printable(name) for name in missing[:5])
            more = f" (and {len(missing) - 5} more)" if len(missing) > 5 else ""
            raise PackagingFailed(
                f"Archive is missing {len(missing)} file(s): {shown}{more}. "
                "Check export-ignore rules in .gitattributes."
            )

    return size


class SnapshotArchiver:
    """Builds a zip from an isolated git tree of an explicit file list."""

    def __init__(
        self,
        root: Path,
        git_timeout: float | None = 120.0,
        runner: CommandRunner = run_command,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.root = Path(root)
        self.git_timeout = git_timeout
        self.runner = runner
        self._which = which

    def check_backend(self) -> None:
        """Check that the backend tool (git) is installed."""
        if self._which("git") is None:
            raise NoArchiveBackendAvailable(
                "No archive backend available: creating the archive requires git. "
                "Install git (https://git-scm.com/downloads) and make sure it is on PATH."
            )

    async def _git(self, *args: str, env: dict[str, str] | None = None) -> str:
        return await run_git(
            *args, cwd=self.root, env=env, timeout=self.git_timeout, runner=self.runner
        )

    async def create(self, files: list[str], output_path: Path, temp_dir: Path) -> Path:
        """Archive *files* (relative to the root) into *output_path*.

        Args:
            files: Forward-slash relative paths, already filtered and unique.
            output_path: Destination ``.zip``; its directory is created.
            temp_dir: Run-owned scratch directory for the manifest and index.

        Returns:
            *output_path*. Callers check it with :func:`verify_archive`.
        """
        self.check_backend()

        manifest = write_manifest(temp_dir / "manifest", files)
        index_env = {
            "GIT_INDEX_FILE": str((temp_dir / "index").resolve()),
            "GIT_LITERAL_PATHSPECS": "1",
        }

        console.print(f"[cyan]Staging[/cyan] {len(files)} file(s) into a snapshot tree...")

        try:
            await self._git(
                "add",
                "--force",
                f"--pathspec-from-file={manifest.resolve()}",
                "--pathspec-file-nul",
                env=index_env,
            )
            tree = (await self._git("write-tree", env=index_env)).strip()
            if not tree:
                raise PackagingFailed("git write-tree returned no tree id")

            output_path.parent.mkdir(parents=True, exist_ok=True)
            await self._git(
                "archive", "--format=zip", f"--output={output_path.resolve()}", tree
            )
        except GitCommandError as exc:
            output_path.unlink(missing_ok=True)
            raise PackagingFailed(
                f"Archive step failed: {exc}", command=exc.command, stderr=exc.stderr
            ) from exc

        return output_path
