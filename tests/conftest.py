"""Shared pytest fixtures for the create-server test suite.

Provides reusable fixtures for:
- Configuration factories rooted in a temporary directory
- A fake ``ToolInvoker`` that records commands and simulates what the
  scaffolding CLIs (``nest new``, ``django-admin startproject``,
  ``manage.py startapp``) leave on disk
- Sample upstream files (Nest ``package.json``, Django ``settings.py``)
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from create_server.config import Configuration, Framework, ToolSettings, build_configuration
from create_server.errors import ToolExecutionError
from create_server.invoker import MISSING_BINARY_EXIT_CODE, OutputMode, ToolInvoker


# ---------------------------------------------------------------------------
# Sample upstream files
# ---------------------------------------------------------------------------

NEST_PACKAGE_JSON: dict[str, Any] = {
    "name": "placeholder",
    "version": "0.0.1",
    "private": True,
    "scripts": {
        "build": "nest build",
        "start": "nest start",
        "start:dev": "nest start --watch",
        "test": "jest",
    },
    "dependencies": {
        "@nestjs/common": "^11.0.1",
        "@nestjs/core": "^11.0.1",
        "@nestjs/platform-express": "^11.0.1",
        "reflect-metadata": "^0.2.2",
        "rxjs": "^7.8.1",
    },
    "devDependencies": {
        "@nestjs/cli": "^11.0.0",
        "@nestjs/testing": "^11.0.1",
        "typescript": "^5.7.3",
    },
}

NEST_GITIGNORE = """\
# compiled output
/dist
/node_modules
/build

# Logs
logs
*.log

# dotenv environment variable files
.env

# temp directory
.temp
.tmp
"""

DJANGO_SETTINGS = '''\
"""
Django settings for __MODULE__ project.
"""

from pathlib import Path

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = "django-insecure-0123456789abcdef"

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = True

ALLOWED_HOSTS = []

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "__MODULE__.urls"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

STATIC_URL = "static/"
'''


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def simulate_nest_new(cwd: Path, name: str) -> None:
    """What ``nest new <name> --skip-install --skip-git`` leaves behind."""
    project = cwd / name
    _write(project / "package.json", json.dumps(NEST_PACKAGE_JSON, indent=2))
    _write(project / ".gitignore", NEST_GITIGNORE)
    _write(project / "README.md", "# Nest\n")
    _write(project / "tsconfig.json", "{}\n")
    _write(project / "nest-cli.json", "{}\n")
    _write(project / "src" / "main.ts", "// cli main\n")
    _write(project / "src" / "app.module.ts", "// cli module\n")
    _write(project / "src" / "app.controller.ts", "// cli controller\n")
    _write(project / "src" / "app.controller.spec.ts", "// cli controller spec\n")
    _write(project / "src" / "app.service.ts", "// cli service\n")
    _write(project / "test" / "app.e2e-spec.ts", "// cli e2e\n")
    _write(project / "node_modules" / ".package-lock.json", "{}\n")


def simulate_startproject(cwd: Path, module: str) -> None:
    _write(cwd / "manage.py", "#!/usr/bin/env python\n")
    _write(cwd / module / "__init__.py", "")
    _write(cwd / module / "settings.py", DJANGO_SETTINGS.replace("__MODULE__", module))
    _write(cwd / module / "urls.py", "urlpatterns = []\n")
    _write(cwd / module / "wsgi.py", "")
    _write(cwd / module / "asgi.py", "")


def simulate_startapp(cwd: Path, app: str) -> None:
    for name in ("__init__.py", "admin.py", "models.py", "tests.py"):
        _write(cwd / app / name, "")
    _write(
        cwd / app / "apps.py",
        "from django.apps import AppConfig\n\n\n"
        f"class {app.title().replace('_', '')}Config(AppConfig):\n"
        "    default_auto_field = 'django.db.models.BigAutoField'\n"
        f"    name = '{app}'\n",
    )
    _write(cwd / app / "views.py", "from django.shortcuts import render\n")
    _write(cwd / app / "migrations" / "__init__.py", "")


# ---------------------------------------------------------------------------
# Fake invoker
# ---------------------------------------------------------------------------


class FakeInvoker(ToolInvoker):
    """Records every command instead of running it.

    Args:
        missing: Bare program names that behave as if they were not installed.
        failures: Command prefixes mapped to the exit code they fail with.
        simulate: Whether to create the files the scaffolding CLIs would.
    """

    def __init__(
        self,
        *,
        missing: Sequence[str] = (),
        failures: dict[tuple[str, ...], int] | None = None,
        simulate: bool = True,
    ) -> None:
        super().__init__()
        self.missing = set(missing)
        self.failures = failures or {}
        self.simulate = simulate
        self.calls: list[tuple[list[str], Path | None, OutputMode]] = []
        self.hooks: list[Callable[[list[str], Path | None], None]] = []

    async def run(
        self,
        command: Sequence[str],
        *,
        cwd: str | Path | None = None,
        mode: OutputMode = OutputMode.INHERIT,
    ) -> int:
        argv = [str(part) for part in command]
        workdir = Path(cwd) if cwd is not None else None
        self.history.append(argv)
        self.calls.append((argv, workdir, mode))
        for hook in self.hooks:
            hook(argv, workdir)

        if argv[0] in self.missing:
            raise ToolExecutionError(argv, MISSING_BINARY_EXIT_CODE)
        for prefix, code in self.failures.items():
            if tuple(argv[: len(prefix)]) == prefix:
                raise ToolExecutionError(argv, code)

        if self.simulate and workdir is not None:
            self._simulate(argv, workdir)
        return 0

    def _simulate(self, argv: list[str], cwd: Path) -> None:
        program = Path(argv[0]).name
        if argv[:2] == ["nest", "new"]:
            simulate_nest_new(cwd, argv[2])
        elif program == "django-admin" and argv[1] == "startproject":
            simulate_startproject(cwd, argv[2])
        elif argv[1:3] == ["manage.py", "startapp"]:
            simulate_startapp(cwd, argv[3])

    def commands_starting_with(self, *prefix: str) -> list[list[str]]:
        return [cmd for cmd in self.history if tuple(cmd[: len(prefix)]) == prefix]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    """A FakeInvoker where every tool is available and succeeds."""
    return FakeInvoker()


@pytest.fixture
def settings() -> ToolSettings:
    """Default tool settings."""
    return ToolSettings()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Parent directory that generated projects are created in."""
    parent = tmp_path / "projects"
    parent.mkdir()
    return parent


@pytest.fixture
def make_config(workspace: Path) -> Callable[..., Configuration]:
    """Factory for configurations targeting ``<workspace>/<server_name>``.

    Defaults to an Express JavaScript project with no database, a full env
    file and no Git; keyword arguments override any answer.
    """

    def _make(**overrides: Any) -> Configuration:
        name = overrides.get("server_name", "demo-api")
        answers: dict[str, Any] = {
            "server_name": name,
            "target_directory": workspace / name,
            "framework": Framework.EXPRESS,
            "git_already_exists": False,
        }
        answers.update(overrides)
        return build_configuration(**answers)

    return _make


@pytest.fixture
def prepared_target() -> Callable[[Configuration], Path]:
    """Create the target directory of a configuration (what the orchestrator does)."""

    def _prepare(config: Configuration) -> Path:
        config.target_directory.mkdir(parents=True)
        return config.target_directory

    return _prepare


@pytest.fixture
def nest_package_json() -> dict[str, Any]:
    """A fresh copy of the ``package.json`` written by ``nest new``."""
    return json.loads(json.dumps(NEST_PACKAGE_JSON))


@pytest.fixture
def django_settings_text() -> Callable[[str], str]:
    """Factory for the ``settings.py`` of ``django-admin startproject <module>``."""

    def _settings(module: str) -> str:
        return DJANGO_SETTINGS.replace("__MODULE__", module)

    return _settings


@pytest.fixture
def make_invoker() -> Callable[..., FakeInvoker]:
    """Factory for FakeInvokers with missing programs or failing commands."""
    return FakeInvoker
