"""Run-scoped state threaded through every pipeline step.

``RunContext`` is created once per run and handed explicitly to each step's
predicate and action.  Its two write-once slots (the template source path and
the operator's ``RunOptions``) are fixed early in the main pipeline and cannot
be changed afterwards.
"""

from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator

from rails_template.commands import CommandResult, CommandRunner, Downloader, default_downloader
from rails_template.config import Config
from rails_template.errors import CommandError, ScaffoldError
from rails_template.prompts import Prompter
from rails_template.scaffolder.editor import copy_file
from rails_template.scaffolder.gemfile import GemfileManifest
from rails_template.scaffolder.templates import TemplateRenderer
from rails_template.utils import print_command


class RunOptions(BaseModel):
    """Operator decisions collected once, up front."""

    model_config = ConfigDict(frozen=True)

    authentication: bool = False
    authentication_styling: bool = False
    authorization: bool = False
    publish: bool = False

    @model_validator(mode="after")
    def _check_prerequisites(self) -> "RunOptions":
        if not self.authentication and (self.authentication_styling or self.authorization):
            raise ValueError("authentication styling and authorization require authentication")
        return self


class RunContext:
    """Everything a step may read or use while it runs.

    Attributes:
        config: The run's configuration.
        project_dir: Absolute path of the Rails application being configured.
        runner: Capability used for every external command.
        prompter: Capability used for every operator question.
        downloader: Capability used to fetch remote archives.
        resources: Scope owning run-lifetime resources (e.g. a cloned source).
        trace: Names of the steps executed so far, in order.
    """

    def __init__(
        self,
        config: Config,
        runner: CommandRunner,
        prompter: Prompter,
        downloader: Downloader = default_downloader,
    ) -> None:
        self.config = config
        self.project_dir = config.project_dir.resolve()
        self.runner = runner
        self.prompter = prompter
        self.downloader = downloader
        self.resources = ExitStack()
        self.trace: list[str] = []
        self._source_path: Path | None = None
        self._options: RunOptions | None = None
        self._manifest: GemfileManifest | None = None
        self._renderer: TemplateRenderer | None = None

    # ------------------------------------------------------------------
    # Write-once slots
    # ------------------------------------------------------------------

    @property
    def source_path(self) -> Path:
        if self._source_path is None:
            raise ScaffoldError("Template source has not been materialized yet")
        return self._source_path

    def register_source(self, path: Path) -> None:
        if self._source_path is not None:
            raise ScaffoldError(f"Template source already registered: {self._source_path}")
        self._source_path = path

    @property
    def options(self) -> RunOptions:
        if self._options is None:
            raise ScaffoldError("Options have not been collected yet")
        return self._options

    def set_options(self, options: RunOptions) -> None:
        if self._options is not None:
            raise ScaffoldError("Options were already collected")
        self._options = options

    # ------------------------------------------------------------------
    # Project files
    # ------------------------------------------------------------------

    @property
    def manifest(self) -> GemfileManifest:
        """The original ``Gemfile``, read on first use and cached."""
        if self._manifest is None:
            self._manifest = GemfileManifest(self.path("Gemfile"))
        return self._manifest

    @property
    def renderer(self) -> TemplateRenderer:
        if self._renderer is None:
            self._renderer = TemplateRenderer(self.source_path)
        return self._renderer

    def path(self, relative: str) -> Path:
        return self.project_dir / relative

    def copy_asset(self, name: str, destination: str | None = None) -> Path:
        """Copy the asset *name* from the source path into the project."""
        return copy_file(self.source_path / name, self.path(destination or name))

    # ------------------------------------------------------------------
    # External commands
    # ------------------------------------------------------------------

    async def _execute(self, args: tuple[str, ...], capture: bool) -> CommandResult:
        cmd = list(args)
        print_command(cmd)
        return await self.runner.run(cmd, cwd=self.project_dir, capture=capture)

    async def probe(self, *args: str) -> CommandResult:
        """Run a command quietly and return its result whatever the exit status."""
        return await self._execute(args, capture=True)

    async def run(self, *args: str) -> CommandResult:
        """Run a command in the project directory, streaming its output.

        Raises:
            CommandError: On a non-zero exit status.
        """
        result = await self._execute(args, capture=False)
        if not result.ok:
            raise CommandError(list(args), result.returncode, result.stdout, result.stderr)
        return result

    async def rails(self, *args: str) -> CommandResult:
        return await self.run(self.config.executables.rails, *args)

    async def generate(self, *args: str) -> CommandResult:
        return await self.rails("generate", *args)

    async def bundle(self, *args: str) -> CommandResult:
        return await self.run(self.config.executables.bundle, *args)

    async def git(self, *args: str) -> CommandResult:
        return await self.run(self.config.executables.git, *args)
