"""Git queries used by the packager and the scaffolder.

Every call goes through :func:`run_git`, which uses script-friendly git
output (``-z`` NUL-delimited lists, explicit flags) and never lets git open
an interactive credential prompt.
"""

from __future__ import annotations

from pathlib import Path

from glosc.utils import CommandRunner, run_command, to_posix

from .errors import (
    GitCommandError,
    NotARepositoryError,
    PackagingEnvironmentError,
    VcsUnavailableError,
)

GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


async def run_git(
    *args: str,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = 120.0,
    runner: CommandRunner = run_command,
) -> str:
    """Run a git command and return its raw stdout.

    Raises:
        VcsUnavailableError: If git cannot be started at all.
        GitCommandError: If git exits non-zero or times out.
    """
    cmd = ["git"] + list(args)
    cmd_str = " ".join(cmd)

    try:
        result = await runner(
            cmd, cwd=cwd, timeout=timeout, capture=True, env={**GIT_ENV, **(env or {})}
        )
    except OSError as exc:
        raise VcsUnavailableError(
            "git is not installed or not on PATH. Install git and re-run."
        ) from exc

    if result.timed_out:
        raise GitCommandError(
            f"Git command timed out after {timeout}s: {cmd_str}",
            command=cmd_str,
        )

    if result.returncode != 0:
        stderr = result.stderr.strip()
        raise GitCommandError(
            f"Git command failed (exit {result.returncode}): {cmd_str}\n{stderr}",
            command=cmd_str,
            stderr=stderr,
        )

    return result.stdout


async def find_repo_root(
    start: str | Path,
    timeout: float | None = 120.0,
    runner: CommandRunner = run_command,
) -> Path:
    """Return the top-level directory of the work tree containing *start*."""
    start_path = Path(start).resolve()
    if not start_path.is_dir():
        raise NotARepositoryError(f"Directory does not exist: {start_path}")

    try:
        stdout = await run_git(
            "rev-parse", "--show-toplevel", cwd=start_path, timeout=timeout, runner=runner
        )
    except GitCommandError as exc:
        raise NotARepositoryError(
            f"Not a git repository: {start_path}. "
            "Run `git init` in the project directory first."
        ) from exc

    top = stdout.strip()
    if not top:
        raise NotARepositoryError(f"Not inside a git work tree: {start_path}")
    return Path(top).resolve()


def unique_paths(paths: list[str]) -> list[str]:
    """Drop repeated paths, keeping the first occurrence of each."""
    seen: set[str] = set()
    result: list[str] = []
    for path in paths:
        if path and path not in seen:
            seen.add(path)
            result.append(path)
    return result


async def list_project_files(
    root: str | Path,
    timeout: float | None = 120.0,
    runner: CommandRunner = run_command,
) -> list[str]:
    """List tracked files plus untracked files that are not ignored.

    Paths are relative to *root*, use forward slashes, and keep git's order
    with duplicates removed (a conflicted file is listed once per stage).
    """
    try:
        stdout = await run_git(
            "ls-files", "-z", "--cached", "--others", "--exclude-standard",
            cwd=root,
            timeout=timeout,
            runner=runner,
        )
    except GitCommandError as exc:
        raise PackagingEnvironmentError(
            f"Could not list repository files in {root}: {exc.stderr or exc}"
        ) from exc

    return unique_paths([to_posix(p) for p in stdout.split("\0") if p])


async def init_repository(
    path: str | Path,
    timeout: float | None = 120.0,
    runner: CommandRunner = run_command,
) -> None:
    """Initialise an empty git repository in *path*."""
    await run_git("init", "--quiet", cwd=path, timeout=timeout, runner=runner)
