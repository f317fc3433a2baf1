"""External tool invocation.

Wraps the blocking child processes a generation run depends on: package
installers, framework scaffolding CLIs, the Python interpreter, and git.
Every call is awaited to completion before the caller continues; there is no
timeout because wrapped CLIs may legitimately prompt the user.
"""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from enum import Enum
from pathlib import Path

from rich.markup import escape

from .errors import ToolExecutionError
from .utils import console, run_command

# Exit code reported when the program itself cannot be found (shell convention).
MISSING_BINARY_EXIT_CODE = 127


class OutputMode(str, Enum):
    """How a child's output is handled."""

    INHERIT = "inherit"  # stream to the user's terminal
    SILENT = "silent"  # capture and discard (capability probes)


class ToolInvoker:
    """Runs external commands one at a time and records what was run."""

    def __init__(self) -> None:
        self.history: list[list[str]] = []

    async def run(
        self,
        command: Sequence[str],
        *,
        cwd: str | Path | None = None,
        mode: OutputMode = OutputMode.INHERIT,
    ) -> int:
        """Run *command* and return its exit status.

        Raises:
            ToolExecutionError: If the command exits non-zero or its program
                does not exist.
        """
        argv = [_resolve_program(command[0]), *command[1:]]
        self.history.append(list(command))
        if mode is OutputMode.INHERIT:
            console.print(f"[dim]$ {escape(' '.join(command))}[/dim]", highlight=False)

        try:
            returncode, _stdout, _stderr = await run_command(
                argv, cwd=cwd, capture=mode is OutputMode.SILENT
            )
        except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
            raise ToolExecutionError(command, MISSING_BINARY_EXIT_CODE) from exc

        if returncode != 0:
            raise ToolExecutionError(command, returncode)
        return returncode

    async def probe(self, command: Sequence[str], *, cwd: str | Path | None = None) -> bool:
        """Silently run *command*; return ``True`` if it exits zero."""
        try:
            await self.run(command, cwd=cwd, mode=OutputMode.SILENT)
        except ToolExecutionError:
            return False
        return True

    async def detect_binary(
        self,
        candidates: Sequence[str],
        *,
        version_flag: str = "--version",
        remediation: str = "",
    ) -> str:
        """Return the first candidate whose ``--version`` probe succeeds.

        Raises:
            ToolExecutionError: If none of the candidates is available; the
                error carries *remediation* instructions for the user.
        """
        for name in candidates:
            if await self.probe([name, version_flag]):
                return name
        raise ToolExecutionError(
            [candidates[-1] if candidates else "", version_flag],
            MISSING_BINARY_EXIT_CODE,
            remediation=remediation,
        )


def _resolve_program(program: str) -> str:
    """Resolve a bare program name through ``PATH`` (handles ``npm.cmd`` on Windows)."""
    if Path(program).is_absolute() or "/" in program or "\\" in program:
        return program
    return shutil.which(program) or program
