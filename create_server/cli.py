"""Command-line entry point for create-server.

Usage::

    create-server                                  # ask everything
    create-server my-api                           # ./my-api
    create-server my-api ../backend                # ../backend/my-api
    create-server my-api --framework nestjs --database postgresql --orm prisma --yes
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from .config import Database, Framework, Orm, PackageManager, ToolSettings, build_configuration
from .errors import ConfigurationError
from .orchestrator import Orchestrator
from .prompts import NO_DATABASE, collect_answers
from .utils import console, print_error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="create-server",
        description="Create a new server project (Express, NestJS or Django)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  create-server my-api                    # Create ./my-api\n"
            "  create-server my-api ./projects         # Create ./projects/my-api\n"
            "  create-server my-api /path/to/projects  # Create /path/to/projects/my-api\n"
            "  create-server                           # Ask for everything\n"
        ),
    )
    parser.add_argument("server_name", nargs="?", metavar="server-name",
                        help="Name of the server project")
    parser.add_argument("target_path", nargs="?", metavar="target-path",
                        help="Directory to create the project in (default: current directory)")
    parser.add_argument("--framework", choices=[f.value for f in Framework])
    parser.add_argument("--typescript", action=argparse.BooleanOptionalAction, default=None,
                        help="Use TypeScript (Express only; NestJS always uses it)")
    parser.add_argument("--database", choices=[NO_DATABASE, *(d.value for d in Database)])
    parser.add_argument("--orm", choices=[o.value for o in Orm])
    parser.add_argument("--app-name", help="Django app name")
    parser.add_argument("--package-manager", choices=[pm.value for pm in PackageManager])
    parser.add_argument("--env", action=argparse.BooleanOptionalAction, default=None,
                        help="Generate a full .env plus .env.example (--no-env: minimal .env)")
    parser.add_argument("--git", action=argparse.BooleanOptionalAction, default=None,
                        help="Initialise a Git repository")
    parser.add_argument("--remote", help="Git remote URL added as 'origin'")
    parser.add_argument("--yes", "-y", action="store_true",
                        help="Do not ask; use defaults for anything not given")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run create-server; return the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        settings = ToolSettings.from_env()
        answers = collect_answers(
            server_name=args.server_name,
            target_path=args.target_path,
            framework=args.framework,
            typescript=args.typescript,
            database=args.database,
            orm=args.orm,
            app_name=args.app_name,
            package_manager=args.package_manager,
            env=args.env,
            git=args.git,
            remote=args.remote,
            assume_defaults=args.yes,
        )
        config = build_configuration(**answers)
    except ConfigurationError as exc:
        print_error(f"Error: {exc}")
        return 1
    except ValueError as exc:
        print_error(f"Error: invalid CREATE_SERVER_* setting: {exc}")
        return 1
    except KeyboardInterrupt:
        console.print()
        print_error("Aborted.")
        return 130

    result = asyncio.run(Orchestrator(config, settings=settings).run())
    return 0 if result.success else 1


def entrypoint() -> None:
    """Console-script wrapper around ``main``."""
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()
