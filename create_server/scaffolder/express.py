"""Express project generator.

Everything an Express project needs is rendered locally; the only external
tool is the package manager's install step.  All content is rendered before
the first write, so a template failure leaves the target directory empty.
"""

from __future__ import annotations

from pathlib import Path

from ..config import Framework
from ..materializer import EnsureDir, Operation, WriteFile
from ..utils import print_step, print_success
from .base import BaseGenerator
from .manifests import EXPRESS_TSCONFIG, express_package_json, render_json
from .templates import TemplateKind
from .wiring import WiringVariant


class ExpressGenerator(BaseGenerator):
    """Generates a minimal Express server (JavaScript or TypeScript)."""

    framework = Framework.EXPRESS
    gitignore_kind = TemplateKind.GITIGNORE_NODE
    env_kind = TemplateKind.ENV_NODE
    readme_kind = TemplateKind.EXPRESS_README

    async def generate(self) -> Path:
        package_json = express_package_json(self.config, self.variant)
        files = self.plan(package_json)
        readme = self.readme_operation(scripts=list(package_json["scripts"]))

        print_step("Creating Express project files...")
        await self.materializer.apply(files)

        await self.install_dependencies()
        await self.materializer.apply([readme])

        print_success("Express project created")
        return self.root

    def plan(self, package_json: dict) -> list[Operation]:
        """Every file of the project except the README, in write order."""
        ext = "ts" if self.config.use_typescript else "js"

        # 1. Manifest, guarded .gitignore, environment files
        operations: list[Operation] = [WriteFile("package.json", render_json(package_json))]
        operations.extend(self.gitignore_operations())
        operations.extend(self.env_operations())

        # 2. Sources
        operations.append(EnsureDir("src"))
        if self.config.use_typescript:
            operations.append(WriteFile("tsconfig.json", render_json(EXPRESS_TSCONFIG)))
        operations.append(
            WriteFile(f"src/index.{ext}", self.render(TemplateKind.EXPRESS_ENTRYPOINT))
        )
        if self.variant is not WiringVariant.NONE:
            operations.append(
                WriteFile(f"src/db.{ext}", self.render(TemplateKind.EXPRESS_DATA_ACCESS))
            )
        if self.variant.uses_prisma:
            operations.append(
                WriteFile("prisma/schema.prisma", self.render(TemplateKind.PRISMA_SCHEMA))
            )
        return operations
