"""Shared pytest fixtures for the glosc test suite.

Provides reusable fixtures for:
- Temporary git repositories (real git, skipped when git is missing)
- A scripted fake command runner that records every invocation
- Mock asyncio subprocess helpers
- Scaffolded Python / TypeScript project trees
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from glosc.utils import CommandResult

# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative_path: content}`` under *root*."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def git(repo: Path, *args: str) -> str:
    """Run a real git command in *repo* and return stdout."""
    result = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    )
    return result.stdout


@pytest.fixture
def write_tree() -> Callable[[Path, dict[str, str]], Path]:
    """Expose :func:`write_files` to tests."""
    return write_files


@pytest.fixture
def run_git_cmd() -> Callable[..., str]:
    """Expose the real-git helper to tests."""
    return git


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Temporary git repository with an initial commit.

    Creates a real git repo so that tests depending on git (file listing,
    snapshot trees, archives) have a valid repo to work in.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo_dir = tmp_path / "test-repo"
    repo_dir.mkdir()
    git(repo_dir, "init", "--quiet")
    git(repo_dir, "config", "user.email", "test@glosc.local")
    git(repo_dir, "config", "user.name", "glosc Test")
    git(repo_dir, "config", "commit.gpgsign", "false")
    git(repo_dir, "config", "core.autocrlf", "false")

    (repo_dir / "README.md").write_text("# Test Project\n", encoding="utf-8")
    git(repo_dir, "add", ".")
    git(repo_dir, "commit", "--quiet", "-m", "Initial commit")
    yield repo_dir


# ---------------------------------------------------------------------------
# Fake command runner
# ---------------------------------------------------------------------------


@dataclass
class RecordedCall:
    cmd: list[str]
    cwd: Any = None
    timeout: float | None = None
    capture: bool = True
    env: dict[str, str] = field(default_factory=dict)


class FakeRunner:
    """Stand-in for :func:`glosc.utils.run_command`.

    Responses are keyed by git sub-command (``"rev-parse"``, ``"ls-files"``,
    ``"add"``, ``"write-tree"``, ``"archive"``, ``"init"``) or ``"build"``
    for any non-git command.  A response is a :class:`CommandResult`, an
    exception instance to raise, or a callable ``(cmd, cwd, env)`` returning
    a ``CommandResult``.  Unknown keys succeed with empty output.
    """

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses = dict(responses or {})
        self.calls: list[RecordedCall] = []

    @staticmethod
    def key_for(cmd: list[str]) -> str:
        if cmd and cmd[0] == "git" and len(cmd) > 1:
            return cmd[1]
        return "build"

    async def __call__(
        self,
        cmd: list[str],
        cwd: Any = None,
        timeout: float | None = None,
        capture: bool = True,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        self.calls.append(
            RecordedCall(cmd=list(cmd), cwd=cwd, timeout=timeout, capture=capture, env=dict(env or {}))
        )
        response = self.responses.get(self.key_for(cmd), CommandResult(returncode=0))
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(list(cmd), cwd, dict(env or {}))
        return response

    def calls_for(self, key: str) -> list[RecordedCall]:
        return [call for call in self.calls if self.key_for(call.cmd) == key]

    @property
    def keys(self) -> list[str]:
        return [self.key_for(call.cmd) for call in self.calls]


@pytest.fixture
def fake_runner() -> Callable[..., FakeRunner]:
    """Factory for :class:`FakeRunner` instances.

    Usage:
        def test_x(fake_runner):
            runner = fake_runner({"rev-parse": CommandResult(0, "/repo\\n")})
    """
    return FakeRunner


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Project trees
# ---------------------------------------------------------------------------


@pytest.fixture
def python_project(tmp_path: Path) -> Path:
    """A minimal scaffolded Python project (no git)."""
    root = tmp_path / "py-server"
    root.mkdir()
    return write_files(
        root,
        {
            "config.yml": (
                'name: "py-server"\nlanguage: "python"\n'
                'mcp:\n  runtime: "python"\n  entry: "main.py"\n'
            ),
            "main.py": "print('hi')\n",
            "requirements.txt": "mcp\n",
            "pyproject.toml": '[project]\nname = "py-server"\n',
        },
    )


@pytest.fixture
def typescript_project(tmp_path: Path) -> Path:
    """A minimal scaffolded TypeScript project (no git)."""
    root = tmp_path / "ts-server"
    root.mkdir()
    return write_files(
        root,
        {
            "config.yml": (
                'name: "ts-server"\nlanguage: "typescript"\n'
                'mcp:\n  runtime: "node"\n  entry: "dist/index.js"\n'
            ),
            "src/index.ts": "console.log('hi');\n",
            "package.json": (
                '{"name": "ts-server", "scripts": {"build": "tsc -p .", '
                '"start": "node dist/index.js"}, "devDependencies": {"typescript": "^5.9.3"}}'
            ),
            "tsconfig.json": '{"compilerOptions": {"outDir": "dist", "rootDir": "src"}}',
            ".gitignore": "node_modules/\ndist/\n",
        },
    )
