"""Unit tests for template source resolution (rails_template.scaffolder.source).

Tests cover:
- Packaged templates when no source is configured
- Local directory sources, and a non-directory source
- Remote sources cloned into a temporary directory that is removed when the
  resource scope closes, on success and on failure
"""

from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path

import pytest

from rails_template.commands import CommandResult
from rails_template.config import Config
from rails_template.errors import CommandError, ScaffoldError
from rails_template.scaffolder.source import materialize_source
from rails_template.scaffolder.templates import PACKAGED_TEMPLATE_DIR

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

REMOTE = "https://github.com/example/rails-template"


class CloningRunner:
    """Pretends to ``git clone`` by creating the template subdirectory."""

    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.calls: list[list[str]] = []

    async def run(
        self, args: list[str], cwd: Path | None = None, capture: bool = True
    ) -> CommandResult:
        self.calls.append(list(args))
        if self.returncode != 0:
            return CommandResult(self.returncode, "", "fatal: repository not found")
        destination = Path(args[-1])
        (destination / "rails_template/scaffolder/templates").mkdir(parents=True)
        return CommandResult(0)


async def test_packaged_templates_by_default(fake_runner):
    with ExitStack() as stack:
        source = await materialize_source(Config(), fake_runner, stack)
    assert source == PACKAGED_TEMPLATE_DIR
    assert fake_runner.calls == []


async def test_local_directory(tmp_path: Path, fake_runner):
    assets = tmp_path / "assets"
    assets.mkdir()
    with ExitStack() as stack:
        source = await materialize_source(Config(template_source=str(assets)), fake_runner, stack)
    assert source == assets.resolve()


async def test_local_path_must_be_a_directory(tmp_path: Path, fake_runner):
    with ExitStack() as stack:
        with pytest.raises(ScaffoldError, match="not a directory"):
            await materialize_source(
                Config(template_source=str(tmp_path / "missing")), fake_runner, stack
            )


async def test_remote_source_is_cloned_and_cleaned_up():
    runner = CloningRunner()
    config = Config(template_source=REMOTE)

    with ExitStack() as stack:
        source = await materialize_source(config, runner, stack)
        assert source.is_dir()
        clone_root = Path(runner.calls[0][-1])
        assert source == clone_root / config.template_subdir

    assert runner.calls[0][:4] == ["git", "clone", "--quiet", REMOTE]
    assert not clone_root.exists()


async def test_failed_clone_still_removes_tempdir():
    runner = CloningRunner(returncode=128)

    with pytest.raises(CommandError) as excinfo:
        with ExitStack() as stack:
            await materialize_source(Config(template_source=REMOTE), runner, stack)

    assert excinfo.value.returncode == 128
    assert "repository not found" in str(excinfo.value)
    assert not Path(runner.calls[0][-1]).exists()
