"""Error hierarchy for create-server.

Every failure the generation engine can raise derives from
``CreateServerError`` so the orchestrator and the CLI can catch a single type,
report it, and exit non-zero.  None of these errors are retried.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence


class CreateServerError(Exception):
    """Base class for all create-server failures."""


class ConfigurationError(CreateServerError):
    """The configuration is malformed or incomplete.

    Raised before generation starts; nothing has been written yet.
    """


class PathConflict(CreateServerError):
    """A path that must not exist already does.

    Raised when the target directory already exists, or when a write without
    ``overwrite`` (or a tree move) would clobber a file written earlier.
    """

    def __init__(self, path: str | Path, operation: Any = None) -> None:
        self.path = Path(path)
        self.operation = operation
        super().__init__(f"Path already exists: {self.path}")


class MaterializationError(CreateServerError):
    """A filesystem operation failed for a reason other than a conflict."""

    def __init__(self, operation: Any, cause: BaseException) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Filesystem operation failed: {operation!r}: {cause}")


class TemplateError(CreateServerError):
    """A template was rendered with parameters that do not fit its branch.

    This is a contract violation between a generator and the renderer, never
    a user error.
    """

    def __init__(self, kind: Any, detail: str) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"Template {kind}: {detail}")


class ToolExecutionError(CreateServerError):
    """An external command exited non-zero or could not be started."""

    def __init__(
        self,
        command: Sequence[str],
        exit_code: int,
        remediation: str = "",
    ) -> None:
        self.command = list(command)
        self.exit_code = exit_code
        self.remediation = remediation
        message = f"Command failed (exit {exit_code}): {' '.join(self.command)}"
        if remediation:
            message = f"{message}\n{remediation}"
        super().__init__(message)
