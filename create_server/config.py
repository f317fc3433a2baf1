"""create-server configuration.

Two pydantic v2 models live here:

* ``Configuration`` -- the immutable, fully resolved answer set that drives a
  single generation run.  It is built once by the CLI/prompt layer and never
  mutated; every generator is a function of it plus the environment.
* ``ToolSettings`` -- tunables of the tool itself (default port, virtualenv
  directory, interpreter probe order, ...), overridable through
  ``CREATE_SERVER_*`` environment variables.

The allowed ``(framework, database, orm)`` matrix is also defined here so the
model, the CLI, and the wiring dispatch all agree on what is reachable.
"""

from __future__ import annotations

import keyword
import os
import sys
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError

NAME_PATTERN = r"^[a-z0-9_-]+$"

# Top-level modules a Django project or app may not shadow.
_RESERVED_MODULES = frozenset(sys.stdlib_module_names) | {"django"}


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Framework(str, Enum):
    """Supported backend frameworks."""

    EXPRESS = "express"
    NESTJS = "nestjs"
    DJANGO = "django"

    @property
    def label(self) -> str:
        return _FRAMEWORK_LABELS[self]

    @property
    def is_node(self) -> bool:
        return self is not Framework.DJANGO


class Database(str, Enum):
    """Supported databases.  ``None`` on the configuration means no database."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MONGODB = "mongodb"

    @property
    def label(self) -> str:
        return _DATABASE_LABELS[self]

    @property
    def default_port(self) -> int:
        return _DATABASE_PORTS[self]


class Orm(str, Enum):
    """Data-access layer choices for the Node frameworks."""

    NATIVE = "native"
    PRISMA = "prisma"
    TYPEORM = "typeorm"
    MONGOOSE = "mongoose"

    @property
    def label(self) -> str:
        return _ORM_LABELS[self]


class PackageManager(str, Enum):
    """Node package managers."""

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    BUN = "bun"

    def install_command(self) -> list[str]:
        """Command that installs the dependencies of the current project."""
        return [self.value, "install"]

    def global_install_command(self, package: str) -> list[str]:
        """Command that installs *package* globally."""
        if self is PackageManager.NPM:
            return ["npm", "install", "-g", package]
        if self is PackageManager.YARN:
            return ["yarn", "global", "add", package]
        return [self.value, "add", "-g", package]

    def run_script(self, script: str) -> str:
        """Human-readable command that runs a ``package.json`` script."""
        if self in (PackageManager.NPM, PackageManager.BUN):
            return f"{self.value} run {script}"
        return f"{self.value} {script}"

    @property
    def nest_flag(self) -> str:
        """Value for ``nest new --package-manager`` (bun is not supported there)."""
        if self is PackageManager.BUN:
            return PackageManager.NPM.value
        return self.value


_FRAMEWORK_LABELS: dict[Framework, str] = {
    Framework.EXPRESS: "Express",
    Framework.NESTJS: "NestJS",
    Framework.DJANGO: "Django",
}

_DATABASE_LABELS: dict[Database, str] = {
    Database.POSTGRESQL: "PostgreSQL",
    Database.MYSQL: "MySQL",
    Database.MONGODB: "MongoDB",
}

_DATABASE_PORTS: dict[Database, int] = {
    Database.POSTGRESQL: 5432,
    Database.MYSQL: 3306,
    Database.MONGODB: 27017,
}

_ORM_LABELS: dict[Orm, str] = {
    Orm.NATIVE: "Native driver",
    Orm.PRISMA: "Prisma",
    Orm.TYPEORM: "TypeORM",
    Orm.MONGOOSE: "Mongoose",
}

DEFAULT_PACKAGE_MANAGER = PackageManager.NPM


# ---------------------------------------------------------------------------
# Reachable (framework, database, orm) matrix
# ---------------------------------------------------------------------------

ALLOWED_ORMS: dict[Framework, dict[Database, tuple[Orm, ...]]] = {
    Framework.EXPRESS: {
        Database.POSTGRESQL: (Orm.NATIVE, Orm.PRISMA),
        Database.MYSQL: (Orm.NATIVE, Orm.PRISMA),
        Database.MONGODB: (Orm.NATIVE, Orm.PRISMA, Orm.MONGOOSE),
    },
    Framework.NESTJS: {
        Database.POSTGRESQL: (Orm.NATIVE, Orm.PRISMA, Orm.TYPEORM),
        Database.MYSQL: (Orm.NATIVE, Orm.PRISMA, Orm.TYPEORM),
        Database.MONGODB: (Orm.NATIVE, Orm.PRISMA, Orm.MONGOOSE),
    },
    # Django always uses its built-in ORM.
    Framework.DJANGO: {
        Database.POSTGRESQL: (),
        Database.MYSQL: (),
        Database.MONGODB: (),
    },
}


def allowed_orms(framework: Framework, database: Database | None) -> tuple[Orm, ...]:
    """Return the ORM choices valid for *framework* with *database*."""
    if database is None:
        return ()
    return ALLOWED_ORMS[framework][database]


def reachable_combinations() -> Iterator[tuple[Framework, Database | None, Orm | None]]:
    """Yield every ``(framework, database, orm)`` triple a valid configuration can hold."""
    for framework in Framework:
        yield framework, None, None
        for database in Database:
            orms = allowed_orms(framework, database)
            if not orms:
                yield framework, database, None
            for orm in orms:
                yield framework, database, orm


def django_name_problem(name: str) -> str | None:
    """Why Django would refuse *name* as a project or app module, if it would.

    ``startproject`` and ``startapp`` require an importable identifier that
    does not shadow an existing top-level module.
    """
    if not name.isidentifier() or keyword.iskeyword(name):
        return f"'{name}' is not a valid Python identifier"
    if name in _RESERVED_MODULES:
        return f"'{name}' conflicts with the Python module of the same name"
    return None


def detect_git_repository(path: str | Path) -> bool:
    """Return ``True`` if *path* or any of its ancestors contains ``.git``.

    The path itself does not need to exist yet.
    """
    current = Path(path).expanduser().absolute()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return True
    return False


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class Configuration(BaseModel):
    """Fully resolved user choices for one generation run."""

    model_config = ConfigDict(frozen=True)

    server_name: str = Field(..., pattern=NAME_PATTERN)
    target_directory: Path
    framework: Framework
    use_typescript: bool = False
    database: Database | None = None
    orm: Orm | None = None
    django_app_name: str | None = Field(default=None, pattern=NAME_PATTERN)
    package_manager: PackageManager = DEFAULT_PACKAGE_MANAGER
    generate_env_file: bool = True
    git_already_exists: bool = False
    init_git: bool = False
    remote_url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _apply_framework_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        framework = data.get("framework")
        if framework == Framework.NESTJS:
            data["use_typescript"] = True
        elif framework == Framework.DJANGO:
            data["use_typescript"] = False
            data["package_manager"] = DEFAULT_PACKAGE_MANAGER
        return data

    @model_validator(mode="after")
    def _check_consistency(self) -> "Configuration":
        if not self.target_directory.is_absolute():
            raise ValueError(f"target_directory must be absolute: {self.target_directory}")

        if self.framework is Framework.DJANGO:
            if not self.django_app_name:
                raise ValueError("django_app_name is required for Django projects")
            problem = django_name_problem(self.django_project_module)
            if problem:
                raise ValueError(f"server_name as a Django project module: {problem}")
            problem = django_name_problem(self.django_app_name)
            if problem:
                raise ValueError(f"django_app_name: {problem}")
            if self.django_app_name == self.django_project_module:
                raise ValueError(
                    f"django_app_name '{self.django_app_name}' clashes with the project module"
                )
        elif self.django_app_name is not None:
            raise ValueError("django_app_name is only valid for Django projects")

        choices = allowed_orms(self.framework, self.database)
        if self.database is None and self.orm is not None:
            raise ValueError("orm requires a database")
        if self.orm is None and choices:
            options = ", ".join(o.value for o in choices)
            raise ValueError(
                f"an orm is required for {self.framework.label} with "
                f"{self.database.label}; choose one of: {options}"
            )
        if self.orm is not None and self.orm not in choices:
            raise ValueError(
                f"orm '{self.orm.value}' is not available for "
                f"{self.framework.label} with {self.database.label}"
            )
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def manages_gitignore(self) -> bool:
        """Whether this run owns the project's ``.gitignore``."""
        return self.init_git or self.git_already_exists

    @property
    def should_init_git(self) -> bool:
        """Whether ``git init`` runs.  Never inside an existing repository."""
        return self.init_git and not self.git_already_exists

    @property
    def django_project_module(self) -> str:
        """Importable project package name (Django rejects hyphens)."""
        return self.server_name.replace("-", "_")

    @property
    def default_database_name(self) -> str:
        if self.framework is Framework.DJANGO:
            return f"{self.django_project_module}_db"
        return self.server_name

    @property
    def parent_directory(self) -> Path:
        return self.target_directory.parent

    def summary(self) -> dict[str, str]:
        """Label -> value mapping used in the final report."""
        rows = {
            "Server name": self.server_name,
            "Location": str(self.target_directory),
            "Framework": self.framework.label,
            "Language": "TypeScript" if self.use_typescript else (
                "Python" if self.framework is Framework.DJANGO else "JavaScript"
            ),
            "Database": self.database.label if self.database else "None",
        }
        if self.orm is not None:
            rows["ORM"] = self.orm.label
        if self.django_app_name:
            rows["Django app"] = self.django_app_name
        if self.framework.is_node:
            rows["Package manager"] = self.package_manager.value
        rows["Env file"] = "full + example" if self.generate_env_file else "minimal"
        if self.git_already_exists:
            rows["Git"] = "existing repository"
        elif self.init_git:
            rows["Git"] = f"init ({self.remote_url})" if self.remote_url else "init"
        else:
            rows["Git"] = "skipped"
        return rows


def build_configuration(**answers: Any) -> Configuration:
    """Build a ``Configuration`` from collected answers.

    Normalizes ``target_directory`` to an absolute path, computes
    ``git_already_exists`` from the target's ancestry when it is not given,
    and converts validation failures into ``ConfigurationError``.
    """
    target = answers.get("target_directory")
    if target is not None:
        target = Path(target).expanduser().absolute()
        answers["target_directory"] = target
        if answers.get("git_already_exists") is None:
            answers["git_already_exists"] = detect_git_repository(target)

    try:
        return Configuration(**answers)
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'configuration'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {messages}") from exc


# ---------------------------------------------------------------------------
# Tool settings
# ---------------------------------------------------------------------------

_TRUTHY = {"1", "true", "yes", "on"}


class ToolSettings(BaseModel):
    """Tunables of the generator itself (not of the generated project)."""

    port: int = Field(default=3000, ge=1, le=65535, description="Default server port")
    cors_origin: str = Field(default="http://localhost:3000")
    venv_dir: str = Field(default="venv", description="Virtualenv directory for Django")
    python_candidates: list[str] = Field(
        default_factory=lambda: ["python", "python3"],
        description="Interpreter names probed in order",
    )
    nest_cli_package: str = Field(default="@nestjs/cli")
    skip_install: bool = Field(
        default=False, description="Skip dependency installation commands"
    )
    debug: bool = Field(default=False, description="Print tracebacks on failure")

    @classmethod
    def from_env(cls) -> "ToolSettings":
        """Build ``ToolSettings`` from environment variables.

        Recognised variables (all optional):
            CREATE_SERVER_PORT, CREATE_SERVER_CORS_ORIGIN, CREATE_SERVER_VENV_DIR,
            CREATE_SERVER_PYTHON, CREATE_SERVER_SKIP_INSTALL, CREATE_SERVER_DEBUG.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("CREATE_SERVER_PORT"):
            kwargs["port"] = int(os.environ["CREATE_SERVER_PORT"])
        if os.environ.get("CREATE_SERVER_CORS_ORIGIN"):
            kwargs["cors_origin"] = os.environ["CREATE_SERVER_CORS_ORIGIN"]
        if os.environ.get("CREATE_SERVER_VENV_DIR"):
            kwargs["venv_dir"] = os.environ["CREATE_SERVER_VENV_DIR"]
        if os.environ.get("CREATE_SERVER_PYTHON"):
            kwargs["python_candidates"] = [
                p.strip() for p in os.environ["CREATE_SERVER_PYTHON"].split(",") if p.strip()
            ]
        if os.environ.get("CREATE_SERVER_SKIP_INSTALL"):
            kwargs["skip_install"] = os.environ["CREATE_SERVER_SKIP_INSTALL"].lower() in _TRUTHY
        if os.environ.get("CREATE_SERVER_DEBUG") or os.environ.get("DEBUG"):
            raw = os.environ.get("CREATE_SERVER_DEBUG") or os.environ.get("DEBUG", "")
            kwargs["debug"] = raw.lower() in _TRUTHY
        return cls(**kwargs)
