"""Rails template pipeline orchestrator.

Applies the template to a freshly generated Rails application in two ordered
passes:

Main     -- preflight, template source, static files, operator options,
            Gemfile declarations.
Deferred -- everything that needs the declared gems installed: tooling
            setup, Devise/Pundit wiring, assets, front-end packages,
            webpack, landing page, environment files, git, GitHub.

``bundle install`` runs between the two passes.  The first failing step
aborts the whole run; nothing is retried or rolled back.

Usage::

    python -m rails_template.pipeline path/to/app
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError
from rich.panel import Panel

from rails_template.commands import CommandRunner, Downloader, SubprocessRunner, default_downloader
from rails_template.config import Config
from rails_template.context import RunContext
from rails_template.errors import OperatorAbort, ScaffoldError
from rails_template.prompts import ConsolePrompter, Prompter
from rails_template.scaffolder.steps import DEFERRED_STEPS, MAIN_STEPS, Step
from rails_template.utils import (
    console,
    format_duration,
    print_error,
    print_skipped,
    print_step_header,
    print_success,
    print_summary_table,
)

INSTALL_STEP = "bundle-install"

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StepError(ScaffoldError):
    """Raised when a step fails; the run stops at that step."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"Step {step} failed: {message}")


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """Runs the main steps, installs the bundle, then runs the deferred steps.

    Attributes:
        config: Run configuration.
        context: The ``RunContext`` handed to every step.
        skipped: Names of steps whose predicate was false.
    """

    def __init__(
        self,
        config: Config,
        runner: CommandRunner | None = None,
        prompter: Prompter | None = None,
        downloader: Downloader | None = None,
        main_steps: Iterable[Step] = MAIN_STEPS,
        deferred_steps: Iterable[Step] = DEFERRED_STEPS,
    ) -> None:
        self.config = config
        self.context = RunContext(
            config,
            runner=runner or SubprocessRunner(),
            prompter=prompter or ConsolePrompter(),
            downloader=downloader or default_downloader,
        )
        self.main_steps = tuple(main_steps)
        self.deferred_steps = tuple(deferred_steps)
        self.skipped: list[str] = []

    async def run(self) -> RunContext:
        """Apply the template.

        Returns:
            The run's context, whose ``trace`` lists the executed steps.

        Raises:
            StepError: The first step that failed.
            OperatorAbort: The operator declined to continue.
        """
        started = time.monotonic()
        ctx = self.context

        console.print(
            Panel(
                f"[bold bright_cyan]Rails application template[/bold bright_cyan]\n"
                f"Project : {ctx.project_dir}\n"
                f"Source  : {self.config.template_source or '(packaged templates)'}\n"
                f"Rails   : {self.config.rails_requirement}",
                title="[bold]Template Start[/bold]",
                border_style="bright_cyan",
            )
        )

        with ctx.resources:
            await self._run_steps(self.main_steps, deferred=False)
            await self._install_dependencies()
            await self._run_steps(self.deferred_steps, deferred=True)

        self._print_final_summary(time.monotonic() - started)
        return ctx

    async def _run_steps(self, steps: tuple[Step, ...], deferred: bool) -> None:
        ctx = self.context
        for step in steps:
            try:
                selected = step.should_run(ctx)
            except ScaffoldError as exc:
                raise StepError(step.name, str(exc)) from exc
            if not selected:
                self.skipped.append(step.name)
                print_skipped(step.name)
                continue

            ctx.trace.append(step.name)
            print_step_header(len(ctx.trace), step.name, deferred=deferred)
            try:
                await step.action(ctx)
            except OperatorAbort:
                raise
            except Exception as exc:
                raise StepError(step.name, str(exc)) from exc

    async def _install_dependencies(self) -> None:
        """Install the declared gems; deferred steps rely on them."""
        print_step_header(len(self.context.trace) + 1, INSTALL_STEP, deferred=True)
        try:
            await self.context.bundle("install")
        except ScaffoldError as exc:
            raise StepError(INSTALL_STEP, str(exc)) from exc

    def _print_final_summary(self, total_elapsed: float) -> None:
        console.print()
        print_summary_table(
            {
                "Project": str(self.context.project_dir),
                "Steps executed": str(len(self.context.trace)),
                "Steps skipped": ", ".join(self.skipped) or "none",
                "Duration": format_duration(total_elapsed),
            },
            title="Template Summary",
        )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``rails-template`` / ``python -m rails_template.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Apply the Rails application template to a new Rails app",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  rails-template\n"
            "  rails-template ./my_app\n"
            "  RT_TEMPLATE_SOURCE=https://github.com/me/rails-template rails-template\n"
        ),
    )
    parser.add_argument(
        "project_dir",
        nargs="?",
        default=None,
        help="Rails application to configure (default: $RT_PROJECT_DIR or the current directory)",
    )

    args = parser.parse_args(argv)

    try:
        config = Config.from_env()
    except ValidationError as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(1)
    if args.project_dir:
        config.project_dir = Path(args.project_dir)

    if not (config.project_dir / "Gemfile").is_file():
        console.print(
            f"[bold red]Error:[/bold red] No Gemfile in {config.project_dir.resolve()} "
            "-- run this inside a new Rails application."
        )
        sys.exit(1)

    pipeline = Pipeline(config)
    try:
        asyncio.run(pipeline.run())
    except OperatorAbort as exc:
        print_error(f"Aborted: {exc}")
        sys.exit(1)
    except StepError as exc:
        print_error(str(exc))
        sys.exit(1)

    print_success("Template applied successfully!")


if __name__ == "__main__":
    main()
