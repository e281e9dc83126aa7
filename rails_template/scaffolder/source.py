"""Template asset source resolution.

Template assets either ship with this package, live in a local directory, or
are cloned from a remote git repository into a temporary directory whose
lifetime is tied to the run's resource scope.
"""

from __future__ import annotations

import tempfile
from contextlib import ExitStack
from pathlib import Path

from rails_template.commands import CommandRunner
from rails_template.config import Config
from rails_template.errors import CommandError, ScaffoldError
from rails_template.scaffolder.templates import PACKAGED_TEMPLATE_DIR
from rails_template.utils import console, print_command


async def materialize_source(
    config: Config,
    runner: CommandRunner,
    resources: ExitStack,
) -> Path:
    """Return the single directory later copy steps resolve asset names in.

    For an ``http(s)://`` source the repository is cloned into a temporary
    directory registered on *resources*, so it is removed when the run ends
    on any path.

    Raises:
        CommandError: If ``git clone`` fails.
        ScaffoldError: If the resolved path is not a directory.
    """
    if config.remote_source:
        tempdir = Path(
            resources.enter_context(tempfile.TemporaryDirectory(prefix="rails-template-"))
        )
        cmd = [config.executables.git, "clone", "--quiet", config.template_source, str(tempdir)]
        print_command(cmd)
        result = await runner.run(cmd)
        if not result.ok:
            raise CommandError(cmd, result.returncode, result.stdout, result.stderr)
        source = tempdir / config.template_subdir
    elif config.template_source:
        source = Path(config.template_source).expanduser().resolve()
    else:
        source = PACKAGED_TEMPLATE_DIR

    if not source.is_dir():
        raise ScaffoldError(f"Template source is not a directory: {source}")

    console.print(f"  Template assets from [bold]{source}[/bold]")
    return source
