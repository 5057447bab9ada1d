"""Writes a scaffolded project to disk.

Takes a :class:`ProjectOptions`, renders the file list with
:func:`get_project_files`, writes it under ``<parent>/<project_name>`` and
optionally runs ``git init`` so the project is ready for ``glosc package``.
"""

from __future__ import annotations

import asyncio
import os
import stat
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from glosc.packager.errors import GitCommandError, PackagingEnvironmentError
from glosc.packager.vcs import init_repository
from glosc.utils import CommandRunner, print_warning, run_command, write_text_file

from .options import ProjectOptions
from .templates import ProjectFile, TemplateRenderer, get_project_files

console = Console()


class ScaffoldError(Exception):
    """Raised when the project cannot be written."""


def _write_project_file(root: Path, project_file: ProjectFile) -> Path:
    path = root / project_file.relative_path
    write_text_file(path, project_file.content)
    if project_file.executable and os.name == "posix":
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class ProjectGenerator:
    """Scaffolding orchestrator for one project."""

    def __init__(
        self,
        options: ProjectOptions,
        renderer: TemplateRenderer | None = None,
        runner: CommandRunner = run_command,
    ) -> None:
        self.options = options
        self.renderer = renderer or TemplateRenderer()
        self.runner = runner

    async def generate(self, parent_dir: str | Path = ".") -> Path:
        """Generate the project inside *parent_dir*.

        Returns:
            Path to the generated project root.

        Raises:
            ScaffoldError: If the target directory already exists.
        """
        target = Path(parent_dir).resolve() / self.options.project_name
        if target.exists():
            raise ScaffoldError(f"Target directory already exists: {target}")

        files = get_project_files(self.options, self.renderer)

        await asyncio.to_thread(target.mkdir, parents=True)
        for project_file in files:
            await asyncio.to_thread(_write_project_file, target, project_file)

        if self.options.git_init:
            await self._init_git(target)

        console.print(f"\nCreated project at: [bold]{escape(str(target))}[/bold]")
        return target

    async def _init_git(self, target: Path) -> None:
        try:
            await init_repository(target, runner=self.runner)
        except (PackagingEnvironmentError, GitCommandError) as exc:
            print_warning(f"Skipped git init: {exc}")
            return
        console.print("[dim]Initialized empty git repository.[/dim]")


async def scaffold_project(
    options: ProjectOptions,
    parent_dir: str | Path = ".",
    runner: CommandRunner = run_command,
) -> Path:
    """Convenience wrapper around :meth:`ProjectGenerator.generate`."""
    return await ProjectGenerator(options, runner=runner).generate(parent_dir)
