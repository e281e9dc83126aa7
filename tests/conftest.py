"""Shared pytest fixtures for the rails-template test suite.

Provides reusable fixtures for:
- A minimal freshly-generated Rails application skeleton
- A recording command runner that simulates Rails generators
- A scripted operator prompter
- A fake stylesheet archive downloader
- A ready-to-run ``Pipeline`` factory
"""

from __future__ import annotations

import textwrap
import zipfile
from pathlib import Path
from typing import Any, Callable

import pytest

from rails_template.commands import CommandResult
from rails_template.config import Config
from rails_template.context import RunContext
from rails_template.pipeline import Pipeline
from rails_template.scaffolder.steps import (
    AUTHENTICATION_QUESTION,
    AUTHORIZATION_QUESTION,
    PUBLISH_QUESTION,
    STYLING_QUESTION,
)


# ---------------------------------------------------------------------------
# Rails skeleton
# ---------------------------------------------------------------------------

SKELETON: dict[str, str] = {
    "Gemfile": """\
        source 'https://rubygems.org'
        git_source(:github) { |repo| "https://github.com/#{repo}.git" }

        ruby '2.7.2'

        gem 'rails', '~> 6.1.4', '>= 6.1.4.1'
        gem 'sqlite3', '~> 1.4'
        gem 'puma', '~> 5.0'
        gem 'sass-rails', '>= 6'
        gem 'webpacker', '~> 5.0'
        gem 'bootsnap', '>= 1.4.4', require: false
        # gem 'redis', '~> 4.0'

        group :development, :test do
          gem 'byebug', platforms: [:mri, :mingw, :x64_mingw]
        end
        """,
    "config/application.rb": """\
        require_relative "boot"

        require "rails/all"

        Bundler.require(*Rails.groups)

        module MyApp
          class Application < Rails::Application
            config.load_defaults 6.1
          end
        end
        """,
    "config/environments/development.rb": """\
        require "active_support/core_ext/integer/time"

        Rails.application.configure do
          config.cache_classes = false
          config.assets.debug = true
          config.assets.quiet = true
        end
        """,
    "config/environments/production.rb": """\
        require "active_support/core_ext/integer/time"

        Rails.application.configure do
          config.cache_classes = true
        end
        """,
    "config/routes.rb": """\
        Rails.application.routes.draw do
          # For details on the DSL available within this file, see https://guides.rubyonrails.org/routing.html
        end
        """,
    "config/webpack/environment.js": """\
        const { environment } = require('@rails/webpacker')

        module.exports = environment
        """,
    "app/javascript/packs/application.js": """\
        import Rails from "@rails/ujs"
        Rails.start()
        """,
    "app/controllers/application_controller.rb": """\
        class ApplicationController < ActionController::Base
        end
        """,
    "app/assets/stylesheets/application.css": "/* default */\n",
    "vendor/.keep": "",
    ".gitignore": "/.bundle\n/log/*\n",
    "README.md": "# README\n",
}

DEVISE_INITIALIZER = """\
Devise.setup do |config|
  config.mailer_sender = 'please-change-me@example.com'
end
"""

PAGES_CONTROLLER = """\
class PagesController < ApplicationController
  def home
  end
end
"""


def write_skeleton(root: Path) -> Path:
    for relative, content in SKELETON.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(textwrap.dedent(content), encoding="utf-8")
    return root


@pytest.fixture
def rails_app(tmp_path: Path) -> Path:
    """A freshly generated Rails 6.1 application (files only)."""
    return write_skeleton(tmp_path / "my_app")


@pytest.fixture
def config(rails_app: Path) -> Config:
    return Config(project_dir=rails_app, app_name="my_app")


# ---------------------------------------------------------------------------
# Command runner
# ---------------------------------------------------------------------------


class FakeRunner:
    """Records commands instead of running them.

    Results are looked up by longest matching argument prefix and default to
    success.  A successful command matching a hook prefix runs the hook
    against the working directory, which is how generators "create" files.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.captured: list[bool] = []
        self.results: dict[tuple[str, ...], CommandResult] = {
            ("bin/rails", "--version"): CommandResult(0, "Rails 6.1.4.1"),
        }
        self.hooks: dict[tuple[str, ...], Callable[[Path], None]] = {
            ("bin/rails", "generate", "devise:install"): _write(
                "config/initializers/devise.rb", DEVISE_INITIALIZER
            ),
            ("bin/rails", "generate", "controller", "pages"): _write(
                "app/controllers/pages_controller.rb", PAGES_CONTROLLER
            ),
        }

    def set_result(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.results[tuple(prefix)] = CommandResult(returncode, stdout, stderr)

    def _lookup(self, args: list[str]) -> CommandResult:
        best: tuple[str, ...] = ()
        for prefix in self.results:
            if tuple(args[: len(prefix)]) == prefix and len(prefix) > len(best):
                best = prefix
        return self.results.get(best, CommandResult(0)) if best else CommandResult(0)

    async def run(
        self, args: list[str], cwd: Path | None = None, capture: bool = True
    ) -> CommandResult:
        self.calls.append(list(args))
        self.captured.append(capture)
        result = self._lookup(args)
        if result.ok and cwd is not None:
            for prefix, hook in self.hooks.items():
                if tuple(args[: len(prefix)]) == prefix:
                    hook(cwd)
        return result

    @property
    def commands(self) -> list[str]:
        return [" ".join(call) for call in self.calls]

    def index(self, command: str) -> int:
        """Position of the first recorded command starting with *command*."""
        for position, recorded in enumerate(self.commands):
            if recorded.startswith(command):
                return position
        raise AssertionError(f"{command!r} was never run; ran {self.commands}")


def _write(relative: str, content: str) -> Callable[[Path], None]:
    def hook(cwd: Path) -> None:
        target = cwd / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    return hook


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


# ---------------------------------------------------------------------------
# Prompter
# ---------------------------------------------------------------------------


class ScriptedPrompter:
    """Answers questions from a mapping and records what was asked."""

    def __init__(self, answers: dict[str, bool] | None = None, default: bool = False) -> None:
        self.answers = dict(answers or {})
        self.default = default
        self.asked: list[str] = []

    def ask_yes_no(self, question: str) -> bool:
        self.asked.append(question)
        return self.answers.get(question, self.default)


@pytest.fixture
def make_prompter() -> Callable[..., ScriptedPrompter]:
    """Factory building a prompter from the four option flags.

    Usage:
        prompter = make_prompter(authentication=True, publish=True)

    Questions outside the four options are answered with *default*.
    """

    def factory(
        authentication: bool = False,
        styling: bool = False,
        authorization: bool = False,
        publish: bool = False,
        default: bool = False,
        **extra: bool,
    ) -> ScriptedPrompter:
        answers = {
            AUTHENTICATION_QUESTION: authentication,
            STYLING_QUESTION: styling,
            AUTHORIZATION_QUESTION: authorization,
            PUBLISH_QUESTION: publish,
        }
        answers.update(extra)
        return ScriptedPrompter(answers, default=default)

    return factory


# ---------------------------------------------------------------------------
# Downloader
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_downloader() -> Any:
    """Async downloader writing a small stylesheet archive; records URLs."""
    urls: list[str] = []

    async def download(url: str, destination: Path) -> Path:
        urls.append(url)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(destination, "w") as archive:
            archive.writestr(
                "rails-stylesheets-master/application.scss",
                '@import "config/fonts";\n@import "components/index";\n',
            )
            archive.writestr(
                "rails-stylesheets-master/config/_fonts.scss",
                '$body-font: "Work Sans", "Helvetica", sans-serif;\n',
            )
        return destination

    download.urls = urls  # type: ignore[attr-defined]
    return download


# ---------------------------------------------------------------------------
# Pipeline / context factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_pipeline(
    config: Config, fake_runner: FakeRunner, make_prompter: Callable[..., ScriptedPrompter], fake_downloader: Any
) -> Callable[..., Pipeline]:
    """Factory for a ``Pipeline`` wired to the fakes above."""

    def factory(prompter: ScriptedPrompter | None = None, **flags: bool) -> Pipeline:
        return Pipeline(
            config,
            runner=fake_runner,
            prompter=prompter or make_prompter(**flags),
            downloader=fake_downloader,
        )

    return factory


@pytest.fixture
def make_context(
    config: Config, fake_runner: FakeRunner, fake_downloader: Any
) -> Callable[..., RunContext]:
    """Factory for a ``RunContext`` whose source and options may be preset."""
    from rails_template.context import RunOptions
    from rails_template.scaffolder.templates import PACKAGED_TEMPLATE_DIR

    def factory(
        prompter: ScriptedPrompter | None = None,
        options: RunOptions | None = None,
        source: Path | None = PACKAGED_TEMPLATE_DIR,
    ) -> RunContext:
        ctx = RunContext(
            config,
            runner=fake_runner,
            prompter=prompter or ScriptedPrompter(),
            downloader=fake_downloader,
        )
        if source is not None:
            ctx.register_source(source)
        if options is not None:
            ctx.set_options(options)
        return ctx

    return factory
