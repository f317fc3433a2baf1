"""Shared machinery of the framework generators.

A generator is a function of one ``Configuration``: it renders text with the
``TemplateRenderer``, hands it to the ``Materializer`` as ordered filesystem
operations, and runs external tools through the ``ToolInvoker``.  The steps
every framework has in common (guarded ``.gitignore``, environment files,
dependency installation, README) live here.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, ClassVar

from ..config import Configuration, Database, Framework, ToolSettings
from ..errors import ConfigurationError, MaterializationError
from ..invoker import ToolInvoker
from ..materializer import AppendToFile, Materializer, Operation, WriteFile
from ..utils import print_step, print_warning
from .envfile import env_keys, generate_django_secret_key, generate_secret, redact_env
from .templates import TemplateKind, TemplateRenderer
from .wiring import WiringVariant, select_wiring

_DB_USERS: dict[Database, str] = {
    Database.POSTGRESQL: "postgres",
    Database.MYSQL: "root",
    Database.MONGODB: "",
}

_DB_SCHEMES: dict[Database, str] = {
    Database.POSTGRESQL: "postgresql",
    Database.MYSQL: "mysql",
    Database.MONGODB: "mongodb",
}


class BaseGenerator:
    """Base class for the Express, NestJS and Django generators."""

    framework: ClassVar[Framework]
    gitignore_kind: ClassVar[TemplateKind]
    env_kind: ClassVar[TemplateKind]
    readme_kind: ClassVar[TemplateKind]

    def __init__(
        self,
        config: Configuration,
        *,
        invoker: ToolInvoker | None = None,
        settings: ToolSettings | None = None,
        renderer: TemplateRenderer | None = None,
        materializer: Materializer | None = None,
    ) -> None:
        if config.framework is not self.framework:
            raise ConfigurationError(
                f"{type(self).__name__} cannot generate a {config.framework.label} project"
            )
        self.config = config
        self.invoker = invoker or ToolInvoker()
        self.settings = settings or ToolSettings()
        self.renderer = renderer or TemplateRenderer()
        self.materializer = materializer or Materializer(config.target_directory)
        self.variant: WiringVariant = select_wiring(
            config.framework, config.database, config.orm
        )
        self.warnings: list[str] = []
        self._secrets = {
            "jwt_secret": generate_secret(),
            "secret_key": generate_django_secret_key(),
        }
        self._env_content: str | None = None

    @property
    def root(self) -> Path:
        return self.config.target_directory

    async def generate(self) -> Path:
        """Materialize the project under ``config.target_directory``."""
        raise NotImplementedError

    # -- Rendering ---------------------------------------------------------

    def context(self, **extra: Any) -> dict[str, Any]:
        """Template parameters derived from the configuration.

        Database parameters are only present when a database is selected,
        so a template that reaches a database branch without one fails.
        """
        cfg = self.config
        pm = cfg.package_manager
        ctx: dict[str, Any] = {
            "server_name": cfg.server_name,
            "framework": cfg.framework.value,
            "typescript": cfg.use_typescript,
            "ext": "ts" if cfg.use_typescript else "js",
            "variant": self.variant.value,
            "database": cfg.database.value if cfg.database else None,
            "database_label": cfg.database.label if cfg.database else None,
            "orm": cfg.orm.value if cfg.orm else None,
            "orm_label": cfg.orm.label if cfg.orm else None,
            "package_manager": pm.value,
            "install_command": " ".join(pm.install_command()),
            "run_prefix": pm.run_script(""),
            "port": self.settings.port,
            "cors_origin": self.settings.cors_origin,
            "venv_dir": self.settings.venv_dir,
            "full": cfg.generate_env_file,
            "generate_example": cfg.generate_env_file,
            **self._secrets,
        }
        if cfg.database is not None:
            ctx.update(
                database_name=cfg.default_database_name,
                db_port=cfg.database.default_port,
                db_user=_DB_USERS[cfg.database],
                db_scheme=_DB_SCHEMES[cfg.database],
            )
        ctx.update(extra)
        return ctx

    def render(self, kind: TemplateKind, **extra: Any) -> str:
        return self.renderer.render(kind, self.context(**extra))

    async def read_text(self, path: str | Path) -> str:
        """Read a file of the project (relative paths hang off the root).

        Raises:
            MaterializationError: If the file is missing or unreadable.
        """
        target = self.materializer.resolve(path)
        try:
            return await asyncio.to_thread(target.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise MaterializationError(f"read {target}", exc) from exc

    # -- Shared steps ------------------------------------------------------

    def gitignore_operations(self) -> list[Operation]:
        """The ``.gitignore`` write, only when this run manages version control."""
        if not self.config.manages_gitignore:
            return []
        return [WriteFile(".gitignore", self.render(self.gitignore_kind))]

    def env_operations(self) -> list[Operation]:
        """``.env`` (full or minimal) plus the redacted ``.env.example``."""
        content = self.env_content()
        operations: list[Operation] = [WriteFile(".env", content)]
        if self.config.generate_env_file:
            operations.append(WriteFile(".env.example", redact_env(content)))
        return operations

    def env_content(self) -> str:
        if self._env_content is None:
            self._env_content = self.render(self.env_kind)
        return self._env_content

    def readme_operation(self, *, overwrite: bool = False, **extra: Any) -> WriteFile:
        content = self.render(
            self.readme_kind, env_keys=env_keys(self.env_content()), **extra
        )
        return WriteFile("README.md", content, overwrite=overwrite)

    async def install_dependencies(self) -> None:
        """Install Node dependencies with the configured package manager."""
        if self.settings.skip_install:
            message = "Skipping dependency installation (CREATE_SERVER_SKIP_INSTALL)"
            print_warning(message)
            self.warnings.append(message)
            return
        print_step(f"Installing dependencies with {self.config.package_manager.value}...")
        await self.invoker.run(self.config.package_manager.install_command(), cwd=self.root)

    async def merge_gitignore(self, rules: str, source: str) -> None:
        """Append the ignore rules from *rules* that ``.gitignore`` lacks."""
        existing_text = await self.read_text(".gitignore")
        existing = {line.strip() for line in existing_text.splitlines()}

        missing: list[str] = []
        for line in rules.splitlines():
            rule = line.strip()
            if not rule or rule.startswith("#") or rule in existing or rule in missing:
                continue
            missing.append(rule)
        if not missing:
            return

        block = f"\n# From {source}\n" + "\n".join(missing) + "\n"
        await self.materializer.apply([AppendToFile(".gitignore", block)])
