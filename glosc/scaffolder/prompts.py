"""Interactive questions for ``glosc create``.

Values already given on the command line are not asked again.  Answers are
validated with the same helpers :class:`ProjectOptions` uses, and invalid
answers are asked again.
"""

from __future__ import annotations

from typing import Any, Callable

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from .options import (
    DEFAULT_DESCRIPTION,
    Language,
    ProjectOptions,
    default_author,
    main_file_name_error,
    normalize_language,
    project_name_error,
)

console = Console()


def _ask_text(
    message: str,
    default: str | None = None,
    validate: Callable[[str], str | None] | None = None,
) -> str:
    while True:
        if default is None:
            answer = Prompt.ask(message, console=console)
        else:
            answer = Prompt.ask(message, default=default, console=console)
        value = str(answer or "").strip()
        error = validate(value) if validate else None
        if error is None:
            return value
        console.print(f"[red]{escape(error)}[/red]")


def ask_options(prefill: dict[str, Any] | None = None) -> ProjectOptions:
    """Ask for every option not present in *prefill* and build the options.

    Raises:
        KeyboardInterrupt / EOFError: When the user aborts the prompt.
    """
    prefill = {k: v for k, v in (prefill or {}).items() if v is not None}

    project_name = str(prefill.get("project_name") or "").strip()
    if project_name_error(project_name):
        project_name = _ask_text("Project name", validate=project_name_error)

    description = prefill.get("description")
    if description is None:
        description = _ask_text("Description", default=DEFAULT_DESCRIPTION)

    author = prefill.get("author")
    if author is None:
        author = _ask_text("Author", default=default_author())

    language = normalize_language(prefill.get("language"))
    if language is None:
        choice = Prompt.ask(
            "Use Language",
            choices=[lang.value for lang in Language],
            default=Language.PYTHON.value,
            console=console,
        )
        language = Language(choice)

    main_file_name = prefill.get("main_file_name")
    if main_file_name is None:
        main_file_name = _ask_text(
            "Main File Name",
            default=language.default_main,
            validate=lambda value: main_file_name_error(language, value),
        )

    readme = prefill.get("readme")
    if readme is None:
        readme = Confirm.ask("Readme", default=True, console=console)

    license_ = prefill.get("license")
    if license_ is None:
        license_ = Confirm.ask("License (MIT)", default=True, console=console)

    return ProjectOptions(
        project_name=project_name,
        description=description,
        author=author,
        language=language,
        main_file_name=main_file_name,
        readme=bool(readme),
        license=bool(license_),
        git_init=prefill.get("git_init", True),
        package_script=prefill.get("package_script", True),
    )
