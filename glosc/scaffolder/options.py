"""Project options for the scaffolder.

``ProjectOptions`` is the single record the templates are rendered from.  The
helper functions normalise raw CLI/prompt input into it and are shared by the
``--defaults`` path and the interactive prompts so both apply the same rules.
"""

from __future__ import annotations

import getpass
import os
import re
from enum import Enum
from pathlib import PurePosixPath

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_DESCRIPTION = "A brief description of your project"
FALLBACK_AUTHOR = "Your Name"


class OptionsError(ValueError):
    """Raised when user-supplied options cannot be accepted."""


class Language(str, Enum):
    """Supported project templates."""

    PYTHON = "python"
    TYPESCRIPT = "typescript"

    @property
    def label(self) -> str:
        return "Python" if self is Language.PYTHON else "TypeScript"

    @property
    def extension(self) -> str:
        return ".py" if self is Language.PYTHON else ".ts"

    @property
    def default_main(self) -> str:
        return "main.py" if self is Language.PYTHON else "index.ts"

    @property
    def runtime(self) -> str:
        """Runtime recorded under ``mcp.runtime`` in ``config.yml``."""
        return "python" if self is Language.PYTHON else "node"


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def normalize_language(value: object) -> Language | None:
    """Map user input (``py``, ``TypeScript`` ...) to a :class:`Language`.

    Returns ``None`` for blank or unknown values.

    Raises:
        OptionsError: For ``js``/``javascript``, whose template was removed.
    """
    v = str(value or "").strip().lower()
    if v in ("py", "python"):
        return Language.PYTHON
    if v in ("ts", "typescript"):
        return Language.TYPESCRIPT
    if v in ("js", "javascript"):
        raise OptionsError(
            "JavaScript template has been removed. "
            "Use --language typescript (or omit --language) instead."
        )
    return None


def normalize_main_file_name(language: Language, raw: object) -> str:
    """Fill in the default main file and add a missing extension."""
    trimmed = str(raw or "").strip()
    base = trimmed or language.default_main
    if PurePosixPath(base.replace("\\", "/")).suffix:
        return base
    return f"{base}{language.extension}"


def project_name_error(value: object) -> str | None:
    """Return why *value* is not a usable project name, or ``None``."""
    name = str(value or "").strip()
    if not name:
        return "Project name is required"
    if "/" in name or "\\" in name:
        return "Project name cannot include path separators"
    if name in (".", ".."):
        return "Project name must name a new directory"
    return None


def main_file_name_error(language: Language | None, value: object) -> str | None:
    """Return why *value* is not a usable main file name, or ``None``."""
    name = str(value or "").strip()
    if not name:
        return "Main file name is required"
    if language is None:
        return None
    suffix = PurePosixPath(name.replace("\\", "/")).suffix
    if suffix and suffix != language.extension:
        return f"Main file should end with {language.extension}"
    return None


def default_author() -> str:
    """Best guess at the author's name from git/OS environment variables."""
    for var in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME", "USER", "USERNAME", "LOGNAME"):
        value = os.environ.get(var, "").strip()
        if value:
            return value

    try:
        name = getpass.getuser().strip()
    except (KeyError, OSError):
        name = ""
    return name or FALLBACK_AUTHOR


# ---------------------------------------------------------------------------
# Options model
# ---------------------------------------------------------------------------


class ProjectOptions(BaseModel):
    """Everything the templates need to render a project."""

    project_name: str = Field(..., description="Directory and package name")
    description: str = Field(default="")
    author: str = Field(default="")
    language: Language = Field(default=Language.TYPESCRIPT)
    main_file_name: str = Field(default="", description="Entry source file name")
    readme: bool = Field(default=True)
    license: bool = Field(default=True)
    git_init: bool = Field(default=True, description="Run `git init` in the new project")
    package_script: bool = Field(
        default=True, description="Add scripts/package.py to the project"
    )

    @field_validator("project_name")
    @classmethod
    def _check_project_name(cls, value: str) -> str:
        error = project_name_error(value)
        if error:
            raise OptionsError(error)
        return value.strip()

    @field_validator("description", "author")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @model_validator(mode="after")
    def _check_main_file_name(self) -> "ProjectOptions":
        self.main_file_name = normalize_main_file_name(self.language, self.main_file_name)
        error = main_file_name_error(self.language, self.main_file_name)
        if error:
            raise OptionsError(error)
        return self

    # -- Derived paths -----------------------------------------------------

    @property
    def source_path(self) -> str:
        """Where the main source file is written, relative to the project."""
        if self.language is Language.PYTHON:
            return self.main_file_name
        return f"src/{self.main_file_name}"

    @property
    def entry_path(self) -> str:
        """What the runtime starts: the source for Python, compiled JS otherwise."""
        if self.language is Language.PYTHON:
            return self.main_file_name
        return "dist/" + re.sub(r"\.ts$", ".js", self.main_file_name, flags=re.IGNORECASE)
