"""glosc scaffolder -- generates MCP server project skeletons.

Quick usage::

    from glosc.scaffolder import Language, ProjectOptions, scaffold_project

    options = ProjectOptions(
        project_name="my-server",
        description="A sample MCP server",
        author="Jane Doe",
        language=Language.PYTHON,
    )
    project_path = await scaffold_project(options, "/tmp/output")
"""

from glosc.scaffolder.generator import ProjectGenerator, ScaffoldError, scaffold_project
from glosc.scaffolder.options import (
    Language,
    OptionsError,
    ProjectOptions,
    default_author,
    normalize_language,
    normalize_main_file_name,
)
from glosc.scaffolder.templates import ProjectFile, TemplateRenderer, get_project_files

__all__ = [
    "Language",
    "OptionsError",
    "ProjectFile",
    "ProjectGenerator",
    "ProjectOptions",
    "ScaffoldError",
    "TemplateRenderer",
    "default_author",
    "get_project_files",
    "normalize_language",
    "normalize_main_file_name",
    "scaffold_project",
]
