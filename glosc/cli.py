"""Command-line entry points.

``glosc create`` scaffolds a new MCP server project, ``glosc package`` zips
the git repository around the current directory.  ``create-glosc`` is a
shortcut for ``glosc create``.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from pydantic import ValidationError

from glosc import __version__
from glosc.config import Config, PackagingConfig
from glosc.packager import Packager, PackagingError
from glosc.scaffolder import (
    OptionsError,
    ProjectGenerator,
    ProjectOptions,
    ScaffoldError,
    default_author,
    normalize_language,
)
from glosc.scaffolder.options import DEFAULT_DESCRIPTION, Language
from glosc.scaffolder.prompts import ask_options
from glosc.utils import print_error, print_success


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glosc",
        description="glosc -- MCP server project scaffolder and packager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  glosc create my-server --defaults --language python\n"
            "  glosc create\n"
            "  glosc package\n"
            "  glosc package --root ./my-server\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Scaffold a new project")
    create.add_argument("project_name", nargs="?", default=None, help="Project directory name")
    create.add_argument(
        "--defaults", "--yes", "-y",
        dest="defaults",
        action="store_true",
        help="Skip the questions and use defaults for anything not given",
    )
    create.add_argument("--language", default=None, help="python (py) or typescript (ts)")
    create.add_argument("--main", dest="main_file_name", default=None, help="Main file name")
    create.add_argument("--description", default=None)
    create.add_argument("--author", default=None)
    create.add_argument(
        "--readme", action=argparse.BooleanOptionalAction, default=None,
        help="Write a README.md (default: yes)",
    )
    create.add_argument(
        "--license", action=argparse.BooleanOptionalAction, default=None,
        help="Write an MIT LICENSE (default: yes)",
    )
    create.add_argument(
        "--no-git", dest="git_init", action="store_false",
        help="Do not run `git init` in the new project",
    )
    create.add_argument(
        "--no-package-script", dest="package_script", action="store_false",
        help="Do not add scripts/package.py",
    )
    create.add_argument(
        "--directory", "-C", default=".",
        help="Parent directory for the new project (default: current directory)",
    )

    package = sub.add_parser("package", help="Zip the project into dist/")
    package.add_argument(
        "--root", default=".",
        help="Any directory inside the project repository (default: current directory)",
    )
    package.add_argument("--output-dir", default=None, help="Archive directory (default: dist)")
    package.add_argument("--prefix", default=None, help="Archive name prefix")

    return parser


def _format_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        msg = str(error.get("msg", ""))
        messages.append(msg.removeprefix("Value error, "))
    return "; ".join(messages) or str(exc)


def options_from_args(args: argparse.Namespace) -> ProjectOptions:
    """Build options for ``--defaults`` runs."""
    if not args.project_name:
        raise OptionsError(
            "Project name is required (e.g. `glosc create my-app --defaults`)"
        )

    language = normalize_language(args.language) or Language.TYPESCRIPT
    return ProjectOptions(
        project_name=args.project_name,
        description=args.description or DEFAULT_DESCRIPTION,
        author=args.author or default_author(),
        language=language,
        main_file_name=args.main_file_name or "",
        readme=True if args.readme is None else args.readme,
        license=True if args.license is None else args.license,
        git_init=args.git_init,
        package_script=args.package_script,
    )


def _prefill_from_args(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "project_name": args.project_name,
        "description": args.description,
        "author": args.author,
        "language": args.language,
        "main_file_name": args.main_file_name,
        "readme": args.readme,
        "license": args.license,
        "git_init": args.git_init,
        "package_script": args.package_script,
    }


def _run_create(args: argparse.Namespace) -> int:
    try:
        if args.defaults:
            options = options_from_args(args)
        else:
            options = ask_options(_prefill_from_args(args))
    except ValidationError as exc:
        print_error(_format_validation_error(exc))
        return 1
    except OptionsError as exc:
        print_error(str(exc))
        return 1
    except (KeyboardInterrupt, EOFError):
        print_error("Aborted.")
        return 1

    try:
        asyncio.run(ProjectGenerator(options).generate(args.directory))
    except ScaffoldError as exc:
        print_error(str(exc))
        return 1
    return 0


def _run_package(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.output_dir:
        overrides["output_dir"] = args.output_dir
    if args.prefix:
        overrides["archive_prefix"] = args.prefix

    try:
        config = Config.from_env()
        if overrides:
            config = Config(
                packaging=PackagingConfig(**{**config.packaging.model_dump(), **overrides})
            )
    except ValidationError as exc:
        print_error(f"Invalid configuration: {_format_validation_error(exc)}")
        return 1
    except ValueError as exc:
        print_error(f"Invalid configuration: {exc}")
        return 1

    try:
        result = asyncio.run(Packager(config).run(args.root))
    except PackagingError as exc:
        print_error(str(exc))
        return 1
    except OSError as exc:
        print_error(str(exc))
        return 1

    print_success(f"Created package: {result.archive}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``glosc`` / ``python -m glosc``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "create":
        return _run_create(args)
    return _run_package(args)


def create_main(argv: list[str] | None = None) -> int:
    """Entry point for ``create-glosc`` (same as ``glosc create``)."""
    return main(["create"] + list(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    sys.exit(main())
