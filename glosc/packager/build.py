"""Build-step detection and invocation for compiled projects.

Whether a project needs a build is decided heuristically from its files:
a ``tsconfig.json``, a ``build`` script that calls a known compiler or
bundler, or a known build tool among the declared dependencies.  The
heuristic is best-effort; :attr:`PackagingConfig.build_command` overrides the
command when it guesses wrong.
"""

from __future__ import annotations

import json
import re
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape

from glosc.config import PackagingConfig
from glosc.utils import CommandRunner, print_warning, run_command, to_posix

from .errors import BuildFailed, BuildOutputMissing

console = Console()

KNOWN_BUILD_TOOLS = (
    "tsc",
    "esbuild",
    "webpack",
    "rollup",
    "vite",
    "swc",
    "babel",
    "parcel",
    "tsup",
)

KNOWN_BUILD_DEPENDENCIES = (
    "typescript",
    "esbuild",
    "webpack",
    "rollup",
    "vite",
    "@swc/core",
    "tsup",
    "parcel",
)

DEFAULT_BUILD_OUTPUT_DIR = "dist"

_BUILD_TOOL_RE = re.compile(r"(?<![\w@/.-])(" + "|".join(KNOWN_BUILD_TOOLS) + r")(?![\w-])")
_NODE_START_RE = re.compile(r"\bnode\s+(?:--?\S+\s+)*[\"']?([^\s\"']+\.[cm]?js)\b")


class ProjectKind(str, Enum):
    """Runtime family of a scaffolded project."""

    PYTHON = "python"
    NODE = "node"


@dataclass
class BuildPlan:
    """What to run and what it must produce.

    ``entry`` and ``output_dir`` are forward-slash paths relative to the
    repository root.
    """

    command: list[str]
    entry: str
    output_dir: str = DEFAULT_BUILD_OUTPUT_DIR


# ---------------------------------------------------------------------------
# Project file readers
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        print_warning(f"Ignoring unreadable {path.name}: {exc}")
        return None
    return data if isinstance(data, dict) else None


def load_project_manifest(root: Path) -> dict[str, Any]:
    """Load ``config.yml`` from *root*; an absent or invalid file yields ``{}``."""
    path = root / "config.yml"
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        print_warning(f"Ignoring unreadable config.yml: {exc}")
        return {}
    return data if isinstance(data, dict) else {}


def _manifest_runtime(manifest: dict[str, Any]) -> tuple[str, str]:
    mcp = manifest.get("mcp")
    if not isinstance(mcp, dict):
        return "", ""
    return str(mcp.get("runtime") or "").strip().lower(), str(mcp.get("entry") or "").strip()


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_project_kind(root: Path) -> ProjectKind:
    """Return :attr:`ProjectKind.NODE` for ``package.json`` or a node runtime."""
    if (root / "package.json").is_file():
        return ProjectKind.NODE
    runtime, _ = _manifest_runtime(load_project_manifest(root))
    if runtime == ProjectKind.NODE.value:
        return ProjectKind.NODE
    return ProjectKind.PYTHON


def mentions_build_tool(script: str) -> bool:
    """True if a package script invokes a known compiler or bundler."""
    return bool(_BUILD_TOOL_RE.search(script or ""))


def declares_build_dependency(package: dict[str, Any]) -> bool:
    for section in ("dependencies", "devDependencies"):
        deps = package.get(section)
        if isinstance(deps, dict) and any(name in deps for name in KNOWN_BUILD_DEPENDENCIES):
            return True
    return False


def _tsconfig_out_dir(root: Path) -> str | None:
    tsconfig = _read_json(root / "tsconfig.json")
    if not tsconfig:
        return None
    options = tsconfig.get("compilerOptions")
    if isinstance(options, dict) and isinstance(options.get("outDir"), str):
        out_dir = to_posix(options["outDir"]).strip("/")
        return out_dir or None
    return None


def _resolve_entry(
    root: Path,
    package: dict[str, Any],
    scripts: dict[str, Any],
    output_dir: str,
) -> str:
    runtime, entry = _manifest_runtime(load_project_manifest(root))
    if runtime == ProjectKind.NODE.value and entry:
        return to_posix(entry)

    main = package.get("main")
    if isinstance(main, str) and main.strip():
        return to_posix(main.strip())

    start = scripts.get("start")
    if isinstance(start, str):
        match = _NODE_START_RE.search(start)
        if match:
            return to_posix(match.group(1))

    return f"{output_dir}/index.js"


def detect_build(root: Path, config: PackagingConfig | None = None) -> BuildPlan | None:
    """Decide whether *root* needs a build step and how to run it.

    Returns ``None`` for projects without a compile step (Python).
    """
    config = config or PackagingConfig()
    package = _read_json(root / "package.json") or {}
    scripts = package.get("scripts")
    if not isinstance(scripts, dict):
        scripts = {}
    build_script = scripts.get("build") if isinstance(scripts.get("build"), str) else ""

    needs_build = (
        (root / "tsconfig.json").is_file()
        or mentions_build_tool(build_script)
        or declares_build_dependency(package)
    )
    if not needs_build:
        return None

    if config.build_command:
        command = list(config.build_command)
    elif build_script:
        command = ["npm", "run", "build"]
    else:
        command = ["npx", "tsc", "-p", "."]

    output_dir = _tsconfig_out_dir(root) or DEFAULT_BUILD_OUTPUT_DIR
    entry = _resolve_entry(root, package, scripts, output_dir)
    return BuildPlan(command=command, entry=entry, output_dir=output_dir)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


async def run_build(
    root: Path,
    plan: BuildPlan,
    timeout: float | None = None,
    runner: CommandRunner = run_command,
) -> Path:
    """Run the build with inherited output and check its entry file.

    Returns:
        Absolute path of the produced entry file.

    Raises:
        BuildFailed: If the command cannot start, times out or exits non-zero.
        BuildOutputMissing: If the entry file is absent afterwards.
    """
    cmd_str = " ".join(plan.command)
    # npm/npx are .cmd shims on Windows; resolve them before exec.
    executable = shutil.which(plan.command[0]) or plan.command[0]

    console.print(f"[cyan]Building[/cyan] with [bold]{escape(cmd_str)}[/bold]...")

    try:
        result = await runner(
            [executable] + plan.command[1:], cwd=root, timeout=timeout, capture=False
        )
    except OSError as exc:
        raise BuildFailed(
            f"Could not start build command `{cmd_str}`: {exc}", command=cmd_str
        ) from exc

    if result.timed_out:
        raise BuildFailed(
            f"Build command timed out after {timeout}s: {cmd_str}", command=cmd_str
        )
    if result.returncode != 0:
        raise BuildFailed(
            f"Build command failed (exit {result.returncode}): {cmd_str}",
            command=cmd_str,
            returncode=result.returncode,
        )

    entry_path = root / plan.entry
    if not entry_path.is_file():
        raise BuildOutputMissing(
            f"Build finished but {plan.entry} was not produced. "
            "Check the build output directory and the main file name.",
            expected=entry_path,
        )

    console.print(f"[green]Build finished[/green] -> {escape(plan.entry)}")
    return entry_path
