"""create-server orchestrator.

Drives one generation run from a resolved ``Configuration``:

1. Refuse to run if the target directory already exists.
2. Create the target directory.
3. Dispatch to the framework generator.
4. Initialise Git and add the remote, when requested and not already inside
   a repository.
5. Report the outcome.

``Orchestrator.generate`` raises on the first failure; ``Orchestrator.run``
wraps it, reports the failure, and returns a ``GenerationResult`` instead.
Partially generated directories are left in place for inspection.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel

from .config import Configuration, Framework, Orm, ToolSettings
from .errors import CreateServerError, PathConflict, ToolExecutionError
from .invoker import ToolInvoker
from .materializer import Materializer
from .scaffolder import GENERATORS, BaseGenerator
from .scaffolder.templates import TemplateRenderer
from .utils import (
    console,
    format_duration,
    print_error,
    print_header,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
)

FILE_PHASE = "file-write"
TOOL_PHASE = "external-tool"


@dataclass
class GenerationResult:
    """Outcome of one generation run (reporting only)."""

    config: Configuration
    files: list[Path] = field(default_factory=list)
    commands: list[list[str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    phases: dict[str, bool] = field(
        default_factory=lambda: {FILE_PHASE: True, TOOL_PHASE: True}
    )
    error: str | None = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None and all(self.phases.values())


class Orchestrator:
    """Runs the generator selected by a configuration.

    Attributes:
        config: The resolved answer set for this run.
        invoker: Runs and records external commands.
        materializer: Applies and records filesystem writes under the target.
        generator: The framework generator, once dispatched.
    """

    def __init__(
        self,
        config: Configuration,
        *,
        settings: ToolSettings | None = None,
        invoker: ToolInvoker | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or ToolSettings()
        self.invoker = invoker or ToolInvoker()
        self.renderer = renderer or TemplateRenderer()
        self.materializer = Materializer(config.target_directory)
        self.generator: BaseGenerator | None = None

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self) -> Path:
        """Generate the project; raise on the first failure.

        Raises:
            PathConflict: The target directory already exists (nothing is
                written in that case).
            CreateServerError: Any failure of the generator or of Git setup.
        """
        target = self.config.target_directory
        if target.exists():
            raise PathConflict(target)

        print_step(f"Creating {self.config.framework.label} project in {target}...")
        await asyncio.to_thread(target.mkdir, parents=True)

        generator_cls = GENERATORS[self.config.framework]
        self.generator = generator_cls(
            self.config,
            invoker=self.invoker,
            settings=self.settings,
            renderer=self.renderer,
            materializer=self.materializer,
        )
        await self.generator.generate()
        await self.setup_git()
        return target

    async def setup_git(self) -> None:
        """``git init`` and ``git remote add origin``, when requested."""
        cfg = self.config
        if cfg.git_already_exists:
            print_step("Existing Git repository detected, skipping git init")
            return
        if not cfg.should_init_git:
            return

        print_step("Initialising Git repository...")
        await self.invoker.run(["git", "init"], cwd=cfg.target_directory)
        if cfg.remote_url:
            await self.invoker.run(
                ["git", "remote", "add", "origin", cfg.remote_url],
                cwd=cfg.target_directory,
            )

    async def run(self) -> GenerationResult:
        """Generate the project and report; never raises ``CreateServerError``."""
        result = GenerationResult(config=self.config)
        print_header(f"create-server: {self.config.server_name}")
        start = time.monotonic()

        try:
            await self.generate()
        except CreateServerError as exc:
            phase = TOOL_PHASE if isinstance(exc, ToolExecutionError) else FILE_PHASE
            result.phases[phase] = False
            result.error = str(exc)
            print_error(f"Error: {exc}")
            if self.settings.debug:
                console.print_exception()
        finally:
            result.duration = time.monotonic() - start
            result.files = list(self.materializer.written)
            result.commands = [list(cmd) for cmd in self.invoker.history]
            if self.generator is not None:
                result.warnings = list(self.generator.warnings)

        self.report(result)
        return result

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def report(self, result: GenerationResult) -> None:
        """Print the summary table, warnings, and next steps (on success)."""
        if result.warnings:
            console.print()
            for warning in result.warnings:
                print_warning(f"Warning: {warning}")

        if not result.success:
            console.print(
                Panel(
                    f"Files written : {len(result.files)}\n"
                    f"Commands run  : {len(result.commands)}\n"
                    f"Duration      : {format_duration(result.duration)}",
                    title="[bold]Generation Failed[/bold]",
                    border_style="red",
                )
            )
            return

        print_summary_table(self.config.summary(), title="Project Created")
        print_success(
            f"{self.config.server_name} ready in {format_duration(result.duration)}"
        )
        console.print(
            Panel(
                escape("\n".join(self.next_steps())),
                title="[bold]Next steps[/bold]",
                border_style="bright_cyan",
            )
        )

    def next_steps(self) -> list[str]:
        cfg = self.config
        steps = [f"cd {cfg.target_directory}"]
        if cfg.framework is Framework.DJANGO:
            venv = self.settings.venv_dir
            steps.append(f"source {venv}/bin/activate   (Windows: {venv}\\Scripts\\activate)")
            steps.append(f"python manage.py runserver {self.settings.port}")
            return steps

        pm = cfg.package_manager
        if self.settings.skip_install:
            steps.append(" ".join(pm.install_command()))
        if cfg.orm is Orm.PRISMA:
            steps.append(pm.run_script("prisma:generate"))
        dev_script = "start:dev" if cfg.framework is Framework.NESTJS else "dev"
        steps.append(pm.run_script(dev_script))
        return steps
