"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class, which loads the ``.j2`` files shipped in
``glosc/scaffolder/templates/``, and :func:`get_project_files`, which turns a
:class:`ProjectOptions` into the list of files to write.  Structured files
(``config.yml``, ``package.json``, ``tsconfig.json``) are serialised with
PyYAML / json instead of templates so quoting is always correct.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from glosc.config import PackagingConfig

from .options import Language, ProjectOptions

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


@dataclass
class ProjectFile:
    """One file of a scaffolded project."""

    relative_path: str
    content: str
    executable: bool = False


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders the scaffolding templates.

    Templates live under ``common/``, ``python/`` and ``typescript/`` inside
    the template directory and are rendered with the context built by
    :func:`build_context`.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["dq"] = _double_quote_escape_filter
        self.env.filters["distribution_name"] = _distribution_name_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template (path relative to the template directory)."""
        template = self.env.get_template(template_path)
        return template.render(**context)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _double_quote_escape_filter(value: Any) -> str:
    """Escape a value for a double-quoted Python/TypeScript/TOML string."""
    return str(value or "").replace("\\", "\\\\").replace('"', '\\"')


def _distribution_name_filter(value: Any) -> str:
    """Collapse whitespace to hyphens: ``"my server"`` -> ``"my-server"``."""
    return re.sub(r"\s+", "-", str(value or "").strip()) or "glosc-project"


# ---------------------------------------------------------------------------
# Structured files
# ---------------------------------------------------------------------------


def build_context(options: ProjectOptions, year: int | None = None) -> dict[str, Any]:
    """Template variables for *options*."""
    return {
        "project_name": options.project_name,
        "description": options.description,
        "author": options.author,
        "language": options.language.value,
        "language_label": options.language.label,
        "main_file_name": options.main_file_name,
        "source_path": options.source_path,
        "entry_path": options.entry_path,
        "package_script": options.package_script,
        "script_path": PackagingConfig().script_path,
        "temp_prefix": PackagingConfig().temp_prefix,
        "year": year or date.today().year,
    }


def config_yml(options: ProjectOptions) -> str:
    """Run metadata read by MCP hosts and by ``glosc package``."""
    data = {
        "name": options.project_name,
        "description": options.description,
        "author": options.author,
        "language": options.language.value,
        "mcp": {
            "runtime": options.language.runtime,
            "entry": options.entry_path,
            "cwd": ".",
            "env": {},
            "args": [],
        },
    }
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def package_json(options: ProjectOptions) -> str:
    scripts = {
        "build": "tsc -p .",
        "start": f"node {options.entry_path}",
    }
    if options.package_script:
        scripts["package"] = f"python {PackagingConfig().script_path}"

    pkg: dict[str, Any] = {
        "name": options.project_name,
        "version": "0.1.0",
        "description": options.description,
        "author": options.author,
        "private": True,
        "type": "module",
        "scripts": scripts,
        "dependencies": {
            "@modelcontextprotocol/sdk": "^1.24.3",
        },
        "devDependencies": {
            "typescript": "^5.9.3",
            "@types/node": "^22.19.2",
        },
    }
    return json.dumps(pkg, indent=2, ensure_ascii=False) + "\n"


def tsconfig_json() -> str:
    config = {
        "compilerOptions": {
            "target": "ES2022",
            "module": "Node16",
            "strict": True,
            "outDir": "dist",
            "rootDir": "src",
            "esModuleInterop": True,
            "moduleResolution": "Node16",
            "types": ["node"],
            "skipLibCheck": True,
            "forceConsistentCasingInFileNames": True,
        },
        "include": ["src/**/*.ts"],
    }
    return json.dumps(config, indent=2) + "\n"


# ---------------------------------------------------------------------------
# File list
# ---------------------------------------------------------------------------


def get_project_files(
    options: ProjectOptions,
    renderer: TemplateRenderer | None = None,
    year: int | None = None,
) -> list[ProjectFile]:
    """Return every file of the project described by *options*, in write order."""
    renderer = renderer or TemplateRenderer()
    context = build_context(options, year=year)
    lang = options.language.value

    files = [
        ProjectFile("config.yml", config_yml(options)),
        ProjectFile(".gitignore", renderer.render(f"{lang}/gitignore.j2", context)),
    ]

    if options.readme:
        files.append(ProjectFile("README.md", renderer.render("common/README.md.j2", context)))

    if options.license:
        files.append(ProjectFile("LICENSE", renderer.render("common/LICENSE.j2", context)))

    if options.language is Language.PYTHON:
        files.append(
            ProjectFile(options.source_path, renderer.render("python/main.py.j2", context))
        )
        files.append(
            ProjectFile("requirements.txt", renderer.render("python/requirements.txt.j2", context))
        )
        files.append(
            ProjectFile("pyproject.toml", renderer.render("python/pyproject.toml.j2", context))
        )
    else:
        files.append(
            ProjectFile(options.source_path, renderer.render("typescript/index.ts.j2", context))
        )
        files.append(ProjectFile("package.json", package_json(options)))
        files.append(ProjectFile("tsconfig.json", tsconfig_json()))

    if options.package_script:
        files.append(
            ProjectFile(
                context["script_path"],
                renderer.render("common/package.py.j2", context),
                executable=True,
            )
        )

    return files
