"""Interactive questions for the create-server CLI.

Every answer the command line did not supply is asked here with
``rich.prompt``.  With ``assume_defaults`` (``--yes``) nothing is asked and
the default of each question is taken instead, which makes the CLI usable
from scripts.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from rich.prompt import Confirm, Prompt

from .config import (
    DEFAULT_PACKAGE_MANAGER,
    NAME_PATTERN,
    Database,
    Framework,
    PackageManager,
    allowed_orms,
    detect_git_repository,
    django_name_problem,
)
from .utils import console, print_error

DEFAULT_SERVER_NAME = "my-server"
DEFAULT_DJANGO_APP_NAME = "api"
NO_DATABASE = "none"


def ask_name(
    question: str, default: str, check: Callable[[str], str | None] | None = None
) -> str:
    """Ask until the answer is a valid project/app name.

    *check* returns a reason to reject an otherwise well-formed name.
    """
    while True:
        answer = Prompt.ask(question, default=default, console=console).strip()
        if not re.match(NAME_PATTERN, answer):
            print_error(
                "Names may only include lowercase letters, numbers, hyphens, and underscores"
            )
            continue
        problem = check(answer) if check else None
        if problem is None:
            return answer
        print_error(problem)


def ask_choice(question: str, choices: list[str], default: str) -> str:
    return Prompt.ask(question, choices=choices, default=default, console=console)


def ask_confirm(question: str, default: bool) -> bool:
    return Confirm.ask(question, default=default, console=console)


def collect_answers(
    *,
    server_name: str | None = None,
    target_path: str | Path | None = None,
    framework: str | None = None,
    typescript: bool | None = None,
    database: str | None = None,
    orm: str | None = None,
    app_name: str | None = None,
    package_manager: str | None = None,
    env: bool | None = None,
    git: bool | None = None,
    remote: str | None = None,
    assume_defaults: bool = False,
) -> dict[str, Any]:
    """Resolve every answer ``build_configuration`` needs.

    Values given on the command line win; the rest are asked (or defaulted
    when *assume_defaults* is set).  Questions that do not apply to the
    chosen framework or database are never asked.
    """
    interactive = not assume_defaults

    if server_name is None:
        server_name = (
            ask_name("What is your server name?", DEFAULT_SERVER_NAME)
            if interactive
            else DEFAULT_SERVER_NAME
        )

    if framework is None:
        framework = (
            ask_choice(
                "Which framework do you want to use?",
                [f.value for f in Framework],
                Framework.EXPRESS.value,
            )
            if interactive
            else Framework.EXPRESS.value
        )
    fw = Framework(framework)

    if fw is Framework.EXPRESS and typescript is None:
        typescript = ask_confirm("Do you want to use TypeScript?", False) if interactive else False

    if fw is Framework.DJANGO and app_name is None:
        app_name = (
            ask_name(
                "What is your Django app name?", DEFAULT_DJANGO_APP_NAME, django_name_problem
            )
            if interactive
            else DEFAULT_DJANGO_APP_NAME
        )

    if database is None:
        database = (
            ask_choice(
                "Which database do you want to use?",
                [NO_DATABASE, *(d.value for d in Database)],
                NO_DATABASE,
            )
            if interactive
            else NO_DATABASE
        )
    db = None if database == NO_DATABASE else Database(database)

    orm_choices = [o.value for o in allowed_orms(fw, db)]
    if orm is None and orm_choices:
        orm = (
            ask_choice("How should the server talk to the database?", orm_choices, orm_choices[0])
            if interactive
            else orm_choices[0]
        )

    if fw.is_node and package_manager is None:
        package_manager = (
            ask_choice(
                "Which package manager do you want to use?",
                [pm.value for pm in PackageManager],
                DEFAULT_PACKAGE_MANAGER.value,
            )
            if interactive
            else DEFAULT_PACKAGE_MANAGER.value
        )

    if env is None:
        env = (
            ask_confirm("Generate a full .env file and a .env.example?", True)
            if interactive
            else True
        )

    target_directory = Path(target_path or Path.cwd()).expanduser().absolute() / server_name
    git_already_exists = detect_git_repository(target_directory.parent)
    if git_already_exists:
        git = False
        remote = None
    else:
        if git is None:
            git = ask_confirm("Initialise a Git repository?", True) if interactive else False
        if git and remote is None and interactive:
            remote = Prompt.ask(
                "Remote repository URL (leave empty to skip)", default="", console=console
            ).strip()

    answers: dict[str, Any] = {
        "server_name": server_name,
        "target_directory": target_directory,
        "framework": fw,
        "use_typescript": bool(typescript),
        "database": db,
        "orm": orm,
        "django_app_name": app_name,
        "generate_env_file": env,
        "git_already_exists": git_already_exists,
        "init_git": bool(git),
        "remote_url": remote or None,
    }
    if package_manager is not None:
        answers["package_manager"] = package_manager
    return answers
