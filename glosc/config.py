"""glosc configuration.

Typed settings for the packager.  All settings use Pydantic v2 models so they
are validated at construction time and can be serialised to/from JSON or read
from environment variables without boiler-plate.
"""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class PackagingConfig(BaseModel):
    """Knobs for ``glosc package``.

    Relative paths are interpreted against the repository root and use
    forward slashes, matching what ``git ls-files`` reports.
    """

    output_dir: str = Field(default="dist", description="Where archives are written")
    archive_prefix: str = Field(
        default="",
        description="Archive file-name prefix; empty means the project name",
    )
    script_path: str = Field(
        default="scripts/package.py",
        description="The packaging script itself, never archived",
    )
    temp_prefix: str = Field(
        default=".package-tmp-",
        description="Name prefix of the per-run temporary workspace",
    )
    build_command: Optional[list[str]] = Field(
        default=None,
        description="Override for the detected build command",
    )
    git_timeout: Optional[float] = Field(
        default=120.0, gt=0, description="Per git invocation timeout in seconds"
    )
    build_timeout: Optional[float] = Field(
        default=None, gt=0, description="Build step timeout in seconds (None waits)"
    )

    @field_validator("output_dir", "script_path")
    @classmethod
    def _relative_posix(cls, value: str) -> str:
        posix = value.replace("\\", "/").strip("/")
        if not posix:
            raise ValueError("path must not be empty")
        if Path(value).is_absolute() or posix.split("/")[0] == "..":
            raise ValueError(f"path must be relative to the repository root: {value}")
        return posix

    @field_validator("temp_prefix")
    @classmethod
    def _plain_prefix(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError("temp_prefix must be a non-empty file-name prefix")
        return value


class Config(BaseModel):
    """Global glosc configuration.

    Created once by the CLI entry point (usually via :meth:`from_env`) and
    passed to :class:`glosc.packager.Packager`.
    """

    packaging: PackagingConfig = Field(default_factory=PackagingConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            GLOSC_OUTPUT_DIR, GLOSC_ARCHIVE_PREFIX, GLOSC_SCRIPT_PATH,
            GLOSC_BUILD_COMMAND (shell-style string, split with shlex),
            GLOSC_GIT_TIMEOUT, GLOSC_BUILD_TIMEOUT.
        """
        packaging_kwargs: dict[str, Any] = {}
        if os.environ.get("GLOSC_OUTPUT_DIR"):
            packaging_kwargs["output_dir"] = os.environ["GLOSC_OUTPUT_DIR"]
        if os.environ.get("GLOSC_ARCHIVE_PREFIX"):
            packaging_kwargs["archive_prefix"] = os.environ["GLOSC_ARCHIVE_PREFIX"]
        if os.environ.get("GLOSC_SCRIPT_PATH"):
            packaging_kwargs["script_path"] = os.environ["GLOSC_SCRIPT_PATH"]
        if os.environ.get("GLOSC_BUILD_COMMAND"):
            packaging_kwargs["build_command"] = shlex.split(os.environ["GLOSC_BUILD_COMMAND"])
        if os.environ.get("GLOSC_GIT_TIMEOUT"):
            packaging_kwargs["git_timeout"] = float(os.environ["GLOSC_GIT_TIMEOUT"])
        if os.environ.get("GLOSC_BUILD_TIMEOUT"):
            packaging_kwargs["build_timeout"] = float(os.environ["GLOSC_BUILD_TIMEOUT"])

        return cls(packaging=PackagingConfig(**packaging_kwargs))
