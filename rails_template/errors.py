"""Exception hierarchy shared by the scaffolding steps."""

from __future__ import annotations


class ScaffoldError(Exception):
    """Base class for every failure raised while scaffolding a project."""


class CommandError(ScaffoldError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        command: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"Command failed (exit {returncode}): {' '.join(self.command)}"
        output = stderr or stdout
        if output:
            message = f"{message}\n{output}"
        super().__init__(message)


class EditError(ScaffoldError):
    """Raised when a file edit cannot find its target or its anchor."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class OperatorAbort(ScaffoldError):
    """Raised when the operator declines to continue the run."""
