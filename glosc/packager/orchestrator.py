"""Packaging orchestrator.

Sequences one packaging run:

    locate root -> detect kind -> build? -> enumerate -> filter & augment
    -> deduplicate -> validate non-empty -> temp workspace -> archive
    -> verify -> report

Every step either succeeds or raises a :class:`PackagingError`; there is no
partial-success state.  The repository root is carried explicitly in a
:class:`PackagingContext`, the process working directory is never changed.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape

from glosc.config import Config, PackagingConfig
from glosc.utils import (
    CommandRunner,
    format_duration,
    print_summary_table,
    run_command,
    sanitize_name,
)

from .archive import SnapshotArchiver, archive_path_for, verify_archive
from .build import (
    BuildPlan,
    ProjectKind,
    detect_build,
    detect_project_kind,
    load_project_manifest,
    run_build,
)
from .errors import EmptyPackage
from .vcs import find_repo_root, list_project_files, unique_paths

console = Console()


@dataclass
class PackagingContext:
    """Run-scoped state, discarded when :meth:`Packager.run` returns."""

    root: Path
    kind: ProjectKind = ProjectKind.PYTHON
    build: BuildPlan | None = None
    files: list[str] = field(default_factory=list)
    temp_dir: Path | None = None


@dataclass
class PackageResult:
    """Outcome of a successful packaging run."""

    archive: Path
    files: list[str]
    built: bool
    size_bytes: int
    duration_seconds: float = 0.0


def _is_under(path: str, directory: str) -> bool:
    return path == directory or path.startswith(directory.rstrip("/") + "/")


def filter_files(
    files: list[str],
    config: PackagingConfig,
    build: BuildPlan | None = None,
) -> list[str]:
    """Apply the packaging exclusions to an enumerated file list.

    Removes the packaging script, anything inside a temporary workspace and
    archives already sitting in the output directory.  When a build ran,
    everything under its output directory is dropped and the build entry is
    appended instead, so it appears exactly once even though it is usually
    git-ignored.
    """
    kept: list[str] = []
    for path in files:
        if path == config.script_path:
            continue
        if path.split("/", 1)[0].startswith(config.temp_prefix):
            continue
        if _is_under(path, config.output_dir) and path.lower().endswith(".zip"):
            continue
        if build is not None and (
            _is_under(path, build.output_dir) or path == build.entry
        ):
            continue
        kept.append(path)

    if build is not None:
        kept.append(build.entry)

    return unique_paths(kept)


class Packager:
    """Builds a distributable zip of the git repository around a directory."""

    def __init__(
        self,
        config: Config | None = None,
        runner: CommandRunner = run_command,
        clock: Callable[[], datetime] = datetime.now,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.config = config or Config()
        self.runner = runner
        self._clock = clock
        self._which = which

    @property
    def settings(self) -> PackagingConfig:
        return self.config.packaging

    def archive_prefix(self, root: Path) -> str:
        """Configured prefix, else ``config.yml`` name, else the directory name."""
        candidates = [
            self.settings.archive_prefix,
            str(load_project_manifest(root).get("name") or ""),
            root.name,
        ]
        for candidate in candidates:
            name = sanitize_name(candidate)
            if name:
                return name
        return "package"

    def resolve_files(self, ctx: PackagingContext, enumerated: list[str]) -> list[str]:
        """Filter, augment and deduplicate the enumerated list for *ctx*."""
        # Tracked files deleted from the working tree cannot be staged.
        present = [p for p in enumerated if os.path.lexists(ctx.root / p)]
        return filter_files(present, self.settings, ctx.build)

    async def run(self, start: str | Path = ".") -> PackageResult:
        """Package the repository containing *start*.

        Returns:
            A :class:`PackageResult` describing the verified archive.

        Raises:
            PackagingError: Any subclass, see :mod:`glosc.packager.errors`.
        """
        started = time.monotonic()
        settings = self.settings

        root = await find_repo_root(start, timeout=settings.git_timeout, runner=self.runner)
        ctx = PackagingContext(root=root, kind=detect_project_kind(root))
        console.print(
            f"[cyan]Packaging[/cyan] [bold]{escape(str(root))}[/bold] ({ctx.kind.value})"
        )

        ctx.build = detect_build(root, settings)
        if ctx.build is not None:
            await run_build(root, ctx.build, timeout=settings.build_timeout, runner=self.runner)
        else:
            console.print("[dim]No build step required.[/dim]")

        enumerated = await list_project_files(
            root, timeout=settings.git_timeout, runner=self.runner
        )
        ctx.files = self.resolve_files(ctx, enumerated)
        if not ctx.files:
            raise EmptyPackage(
                f"No files to package in {root}. Check that the repository is "
                "initialised and that .gitignore does not exclude everything."
            )

        ctx.temp_dir = Path(tempfile.mkdtemp(prefix=settings.temp_prefix, dir=root))
        try:
            output = archive_path_for(
                root / settings.output_dir, self.archive_prefix(root), self._clock()
            )
            archiver = SnapshotArchiver(
                root, git_timeout=settings.git_timeout, runner=self.runner, which=self._which
            )
            await archiver.create(ctx.files, output, ctx.temp_dir)
        finally:
            shutil.rmtree(ctx.temp_dir, ignore_errors=True)
            ctx.temp_dir = None

        size = verify_archive(output, expected=ctx.files)
        result = PackageResult(
            archive=output.resolve(),
            files=list(ctx.files),
            built=ctx.build is not None,
            size_bytes=size,
            duration_seconds=time.monotonic() - started,
        )

        print_summary_table(
            {
                "Project": root.name,
                "Kind": ctx.kind.value,
                "Build": ctx.build.entry if ctx.build else "-",
                "Files": str(len(result.files)),
                "Size": f"{size} bytes",
                "Duration": format_duration(result.duration_seconds),
            },
            title="Package",
        )
        return result
