"""NestJS project generator.

The project skeleton comes from the Nest CLI.  ``nest new`` refuses to write
into a non-empty directory, so it runs inside a temporary sibling workspace
and its output is moved into the target, which already holds our
``.gitignore`` and environment files.  The CLI's own files are then patched
(``package.json``) or rewritten from templates.
"""

from __future__ import annotations

import json
from pathlib import Path

from ..config import Framework
from ..errors import MaterializationError
from ..materializer import MoveTree, Operation, WriteFile, temporary_workspace
from ..utils import print_step, print_success
from .base import BaseGenerator
from .manifests import patch_nest_package_json, render_json
from .templates import TemplateKind

# Entries of the CLI output that are never moved into the target.
_ALWAYS_EXCLUDED = frozenset({"node_modules", ".git"})


class NestGenerator(BaseGenerator):
    """Generates a NestJS server by driving the Nest CLI."""

    framework = Framework.NESTJS
    gitignore_kind = TemplateKind.GITIGNORE_NODE
    env_kind = TemplateKind.ENV_NODE
    readme_kind = TemplateKind.NEST_README

    async def generate(self) -> Path:
        sources = self.source_operations()
        local_files = [*self.gitignore_operations(), *self.env_operations()]

        # 1. Nest CLI available?
        await self.ensure_cli()

        # 2. Our files first, so the CLI output can never replace them
        await self.materializer.apply(local_files)

        # 3. Scaffold in a temporary workspace and move the result in
        await self.scaffold()

        # 4. Manifest, rewritten sources
        scripts = await self.patch_package_json()
        await self.materializer.apply(sources)

        # 5. Install and document
        await self.install_dependencies()
        await self.materializer.apply(
            [self.readme_operation(overwrite=True, scripts=scripts)]
        )

        print_success("NestJS project created")
        return self.root

    # -- Steps -------------------------------------------------------------

    async def ensure_cli(self) -> None:
        """Install the Nest CLI globally unless ``nest --version`` works."""
        if await self.invoker.probe(["nest", "--version"]):
            return
        package = self.settings.nest_cli_package
        print_step(f"Nest CLI not found, installing {package} globally...")
        await self.invoker.run(self.config.package_manager.global_install_command(package))

    async def scaffold(self) -> None:
        """Run ``nest new`` in a scratch directory and move its output into the target."""
        cfg = self.config
        excluding = set(_ALWAYS_EXCLUDED)
        if cfg.manages_gitignore:
            excluding.add(".gitignore")

        cli_gitignore: str | None = None
        print_step("Scaffolding with the Nest CLI...")
        async with temporary_workspace(cfg.parent_directory, prefix=f".{cfg.server_name}-") as workspace:
            await self.invoker.run(
                [
                    "nest",
                    "new",
                    cfg.server_name,
                    "--package-manager",
                    cfg.package_manager.nest_flag,
                    "--skip-git",
                    "--skip-install",
                ],
                cwd=workspace,
            )
            generated = workspace / cfg.server_name
            ignore_file = generated / ".gitignore"
            if cfg.manages_gitignore and ignore_file.is_file():
                cli_gitignore = await self.read_text(ignore_file)
            await self.materializer.apply(
                [MoveTree(generated, self.root, excluding=frozenset(excluding))]
            )

        if cli_gitignore:
            await self.merge_gitignore(cli_gitignore, source="Nest CLI")

    async def patch_package_json(self) -> list[str]:
        """Merge our dependencies and scripts into the CLI's ``package.json``.

        Returns:
            The script names of the patched manifest.
        """
        text = await self.read_text("package.json")
        try:
            original = json.loads(text)
        except ValueError as exc:
            raise MaterializationError("parse package.json", exc) from exc
        patched = patch_nest_package_json(original, self.config, self.variant)
        await self.materializer.apply(
            [WriteFile("package.json", render_json(patched), overwrite=True)]
        )
        return list(patched["scripts"])

    def source_operations(self) -> list[Operation]:
        """Rewritten CLI sources plus the data-layer files of the variant."""
        # Files the CLI created; replacing them is intended.
        operations: list[Operation] = [
            WriteFile("src/main.ts", self.render(TemplateKind.NEST_MAIN), overwrite=True),
            WriteFile(
                "src/app.controller.ts",
                self.render(TemplateKind.NEST_CONTROLLER),
                overwrite=True,
            ),
            WriteFile(
                "src/app.controller.spec.ts",
                self.render(TemplateKind.NEST_CONTROLLER_SPEC),
                overwrite=True,
            ),
            WriteFile(
                "test/app.e2e-spec.ts",
                self.render(TemplateKind.NEST_E2E_SPEC),
                overwrite=True,
            ),
            WriteFile("src/app.service.ts", self.render(TemplateKind.NEST_SERVICE), overwrite=True),
            WriteFile("src/app.module.ts", self.render(TemplateKind.NEST_MODULE), overwrite=True),
        ]

        if self.variant.uses_prisma:
            operations += [
                WriteFile("src/prisma/prisma.service.ts", self.render(TemplateKind.NEST_PRISMA_SERVICE)),
                WriteFile("src/prisma/prisma.module.ts", self.render(TemplateKind.NEST_PRISMA_MODULE)),
                WriteFile("prisma/schema.prisma", self.render(TemplateKind.PRISMA_SCHEMA)),
            ]
        elif self.variant.is_native:
            operations.append(
                WriteFile(
                    "src/database/database.module.ts",
                    self.render(TemplateKind.NEST_DATABASE_MODULE),
                )
            )
        return operations
