"""Shared utility functions for glosc.

Provides async command execution, name sanitising, file-system helpers and
Rich-based console reporting.  Every external process the scaffolder or the
packager starts goes through :func:`run_command`, so tests can swap in a fake
runner with the same signature.
"""

from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


@dataclass
class CommandResult:
    """Outcome of a finished (or timed-out) child process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


CommandRunner = Callable[..., Awaitable[CommandResult]]


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Run a command asynchronously and wait for it to finish.

    Args:
        cmd: Argument vector.  No shell is involved, so paths with spaces
            or quotes need no escaping.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
            ``None`` waits forever.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams so the user sees output live).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A :class:`CommandResult`.  Output is decoded but *not* stripped;
        NUL-delimited output relies on that.  stdout is decoded like a file
        name (undecodable bytes are kept as surrogates) so paths reported by
        git round-trip through :func:`os.fsencode`.

    Raises:
        FileNotFoundError: If the executable cannot be found.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=stdout_pipe,
        stderr=stderr_pipe,
        cwd=str(cwd) if cwd else None,
        env=merged_env,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return CommandResult(
            returncode=-1,
            stderr=f"Command timed out after {timeout}s: {' '.join(cmd)}",
            timed_out=True,
        )

    return CommandResult(
        returncode=process.returncode or 0,
        stdout=os.fsdecode(stdout_bytes or b""),
        stderr=(stderr_bytes or b"").decode("utf-8", errors="replace"),
    )


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def sanitize_name(name: str) -> str:
    """Convert an arbitrary project name to a safe file-name fragment.

    * Lowercases the input.
    * Replaces anything other than letters, digits, ``.``, ``_`` and ``-``
      with hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens
      and dots.

    Examples::

        sanitize_name("My MCP Server") -> "my-mcp-server"
        sanitize_name("  @scope/tool  ") -> "scope-tool"
    """
    result = re.sub(r"[^a-zA-Z0-9._-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-.")


def to_posix(path: str) -> str:
    """Normalise a relative path to forward slashes without a ``./`` prefix."""
    posix = path.replace("\\", "/")
    while posix.startswith("./"):
        posix = posix[2:]
    return posix


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def write_text_file(path: Path, content: str) -> None:
    """Create parent dirs and write *content* as UTF-8 with ``\\n`` endings."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="\n") as fh:
        fh.write(content)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]", soft_wrap=True)


def print_error(message: str) -> None:
    """Print a red error message to stderr."""
    err_console.print(
        f"[bold red]Error:[/bold red] {escape(message)}", soft_wrap=True, highlight=False
    )


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]", soft_wrap=True)
