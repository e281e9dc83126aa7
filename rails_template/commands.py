"""External command delegation.

Every step that shells out (Bundler, Rails generators, Yarn, git, gh) goes
through a :class:`CommandRunner`, so the pipeline and its tests can swap in a
fake without spawning real processes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Protocol

from rails_template.utils import download_file, run_command


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    """Capability for running one external command to completion.

    With *capture* false the command writes straight to the terminal and the
    result carries no output.
    """

    async def run(
        self, args: list[str], cwd: Path | None = None, capture: bool = True
    ) -> CommandResult:
        ...


class SubprocessRunner:
    """Runs commands as real child processes via :func:`run_command`."""

    async def run(
        self, args: list[str], cwd: Path | None = None, capture: bool = True
    ) -> CommandResult:
        returncode, stdout, stderr = await run_command(args, cwd=cwd, capture=capture)
        return CommandResult(returncode=returncode, stdout=stdout, stderr=stderr)


# Fetches a URL into a local file and returns the file's path.
Downloader = Callable[[str, Path], Awaitable[Path]]

default_downloader: Downloader = download_file
