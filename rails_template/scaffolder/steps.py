"""Step definitions for the Rails application template.

Two static tables drive a run: ``MAIN_STEPS`` run first and only edit files,
``DEFERRED_STEPS`` run once Bundler has installed the declared gems.  Each
step is an async action over the ``RunContext`` plus an optional predicate on
the operator's options.
"""

from __future__ import annotations

import re
import shutil
import zipfile
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from packaging.version import InvalidVersion, Version

from rails_template.context import RunContext, RunOptions
from rails_template.errors import OperatorAbort, ScaffoldError
from rails_template.scaffolder.editor import (
    append_to_file,
    create_file,
    gsub_file,
    insert_into_file,
    remove_tree,
)
from rails_template.scaffolder.gemfile import Gem, add_gem_group, add_gems
from rails_template.scaffolder.rails import environment, route
from rails_template.scaffolder.source import materialize_source
from rails_template.utils import console, print_file_action, print_summary_table, print_warning

Action = Callable[[RunContext], Awaitable[None]]
Predicate = Callable[[RunContext], bool]


@dataclass(frozen=True)
class Step:
    """A named unit of work, optionally gated on the run's options."""

    name: str
    action: Action
    when: Optional[Predicate] = None

    def should_run(self, ctx: RunContext) -> bool:
        return self.when is None or self.when(ctx)


# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

STATIC_FILES = ("Procfile", "Procfile.dev")

AUTHENTICATION_GEMS = [Gem("devise"), Gem("devise-i18n")]
AUTHENTICATION_STYLING_GEMS = [Gem("devise-bootstrap-views")]
AUTHORIZATION_GEMS = [Gem("pundit")]

DEFAULT_GEMS = [
    Gem("uglifier"),
    Gem("redis"),
    Gem("sidekiq"),
    Gem("sidekiq-failures"),
    Gem("name_of_person"),
    Gem("bootstrap"),
    Gem("font-awesome-sass"),
    Gem("autoprefixer-rails"),
]

DEVELOPMENT_TEST_GEMS = [
    Gem("pry-byebug"),
    Gem("pry-rails"),
    Gem("dotenv-rails"),
    Gem("binding_of_caller"),
]

DEVELOPMENT_GEMS = [
    Gem("annotate"),
    Gem("awesome_print"),
    Gem("bullet"),
    Gem("rails-erd"),
    Gem("rubocop", require=False),
]

FRONTEND_PACKAGES = [
    "bootstrap",
    "popper.js",
    "jquery",
    "babel-eslint",
    "eslint",
    "eslint-plugin-import",
    "eslint-import-resolver-webpack",
    "eslint-config-prettier",
    "eslint-plugin-prettier",
    "prettier",
    "npm-run-all",
    "stylelint",
    "stylelint-config-recommended-scss",
    "stylelint-config-standard",
    "stylelint-declaration-use-variable",
    "stylelint-scss",
]

AUTHENTICATION_QUESTION = "Do you want to implement authentication in your app with the Devise gem?"
STYLING_QUESTION = "Do you want to implement devise with bootstrap?"
AUTHORIZATION_QUESTION = "Do you want to manage authorizations with Pundit?"
PUBLISH_QUESTION = "Do you want to push your project to Github?"

WORKER_PROCESS = "worker: bundle exec sidekiq -C config/sidekiq.yml\n"

END_OF_BLOCK = re.compile(r"^end\b", re.MULTILINE)
APPLICATION_CONTROLLER_CLASS = re.compile(r"< ApplicationController\n")

_RAILS_VERSION = re.compile(r"Rails\s+(\S+)")


# ---------------------------------------------------------------------------
# Main pipeline
# ---------------------------------------------------------------------------


def parse_rails_version(output: str) -> Version | None:
    """Extract the version from ``rails --version`` output, if recognisable."""
    match = _RAILS_VERSION.search(output)
    if match is None:
        return None
    try:
        return Version(match.group(1))
    except InvalidVersion:
        return None


async def preflight(ctx: RunContext) -> None:
    requirement = ctx.config.requirement
    result = await ctx.probe(ctx.config.executables.rails, "--version")
    installed = parse_rails_version(result.stdout) if result.ok else None

    if installed is not None and requirement.contains(installed, prereleases=True):
        console.print(f"  Rails {installed} satisfies {requirement}")
        return

    using = str(installed) if installed is not None else "an unknown version"
    question = (
        f"This template requires Rails {ctx.config.rails_requirement}. "
        f"You are using {using}. Continue anyway?"
    )
    if not ctx.prompter.ask_yes_no(question):
        raise OperatorAbort(f"Rails {using} does not satisfy {ctx.config.rails_requirement}")
    print_warning(f"  Continuing with Rails {using}.")


async def materialize(ctx: RunContext) -> None:
    ctx.register_source(await materialize_source(ctx.config, ctx.runner, ctx.resources))


async def install_static_files(ctx: RunContext) -> None:
    await ctx.renderer.render_to_file(
        "README.md.j2",
        ctx.path("README.md"),
        {"app_name": ctx.config.resolved_app_name},
    )
    for name in STATIC_FILES:
        ctx.copy_asset(name)


async def collect_options(ctx: RunContext) -> None:
    ask = ctx.prompter.ask_yes_no
    authentication = ask(AUTHENTICATION_QUESTION)
    styling = authentication and ask(STYLING_QUESTION)
    authorization = authentication and ask(AUTHORIZATION_QUESTION)
    publish = ask(PUBLISH_QUESTION)

    options = RunOptions(
        authentication=authentication,
        authentication_styling=styling,
        authorization=authorization,
        publish=publish,
    )
    ctx.set_options(options)
    print_summary_table(
        {name: "yes" if value else "no" for name, value in options.model_dump().items()},
        title="Options",
    )


def _undeclared(ctx: RunContext, gems: list[Gem]) -> list[Gem]:
    fresh: list[Gem] = []
    for gem in gems:
        if ctx.manifest.declares(gem.name):
            constraint = ctx.manifest.requirement(gem.name) or "any version"
            console.print(f"  [dim]{gem.name} already declared ({constraint})[/dim]")
            continue
        fresh.append(gem)
    return fresh


async def declare_dependencies(ctx: RunContext) -> None:
    options = ctx.options
    gems: list[Gem] = []
    if options.authentication:
        gems += AUTHENTICATION_GEMS
    if options.authentication_styling:
        gems += AUTHENTICATION_STYLING_GEMS
    if options.authorization:
        gems += AUTHORIZATION_GEMS
    gems += DEFAULT_GEMS

    gemfile = ctx.path("Gemfile")
    add_gems(gemfile, _undeclared(ctx, gems))
    add_gem_group(gemfile, ("development", "test"), _undeclared(ctx, DEVELOPMENT_TEST_GEMS))
    add_gem_group(gemfile, ("development",), _undeclared(ctx, DEVELOPMENT_GEMS))


# ---------------------------------------------------------------------------
# Deferred pipeline
# ---------------------------------------------------------------------------


async def setup_lint(ctx: RunContext) -> None:
    await ctx.bundle("binstubs", "rubocop")
    ctx.copy_asset(".rubocop.yml")
    await ctx.bundle("exec", "rubocop", "--autocorrect")


async def setup_job_queue(ctx: RunContext) -> None:
    await ctx.bundle("binstubs", "sidekiq")
    ctx.copy_asset("config/sidekiq.yml")
    append_to_file(ctx.path("Procfile.dev"), WORKER_PROCESS)
    append_to_file(ctx.path("Procfile"), WORKER_PROCESS)


async def setup_annotation(ctx: RunContext) -> None:
    await ctx.generate("annotate:install")
    await ctx.generate("erd:install")
    append_to_file(ctx.path(".gitignore"), "erd.pdf\n")


async def setup_bug_finder(ctx: RunContext) -> None:
    insert_into_file(
        ctx.path("config/environments/development.rb"),
        "  config.after_initialize do\n"
        "    Bullet.enable = true\n"
        "    Bullet.alert = true\n"
        "  end\n",
        before=END_OF_BLOCK,
    )


async def setup_authentication(ctx: RunContext) -> None:
    mailer = ctx.config.mailer
    await ctx.generate("devise:install")
    await ctx.generate("devise:i18n:views")
    environment(
        ctx.project_dir,
        "config.action_mailer.default_url_options = "
        f"{{ host: '{mailer.development_host}', port: {mailer.development_port} }}",
        env="development",
    )
    environment(
        ctx.project_dir,
        f'config.action_mailer.default_url_options = {{ host: "{mailer.production_host}" }}',
        env="production",
    )
    insert_into_file(
        ctx.path("config/initializers/devise.rb"),
        "  config.secret_key = Rails.application.credentials.secret_key_base\n",
        before=END_OF_BLOCK,
    )
    await ctx.generate("devise", "User", "first_name", "last_name")
    if ctx.options.authentication_styling:
        await ctx.generate("devise:views:bootstrap_templates", "--force")
    ctx.copy_asset("app/controllers/application_controller.rb")


async def setup_authorization(ctx: RunContext) -> None:
    controller = ctx.path("app/controllers/application_controller.rb")
    insert_into_file(
        controller,
        "\n"
        "  private\n"
        "\n"
        "  def skip_pundit?\n"
        "    devise_controller? || params[:controller] =~ /(^(rails_)?admin)|(^pages$)/\n"
        "  end\n",
        before=END_OF_BLOCK,
    )
    insert_into_file(
        controller,
        "  include Pundit::Authorization\n"
        "  after_action :verify_authorized, except: :index, unless: :skip_pundit?\n"
        "  after_action :verify_policy_scoped, only: :index, unless: :skip_pundit?\n",
        after=re.compile(r":authenticate_user!\n"),
    )
    if ctx.path("bin/spring").exists():
        await ctx.run("bin/spring", "stop")
    await ctx.generate("pundit:install")


async def replace_assets(ctx: RunContext) -> None:
    assets = ctx.path("app/assets")
    stylesheets = assets / "stylesheets"
    remove_tree(stylesheets)
    remove_tree(ctx.path("vendor"))

    archive = ctx.path("stylesheets.zip")
    try:
        archive = await ctx.downloader(ctx.config.stylesheets_url, archive)
        with zipfile.ZipFile(archive) as bundle:
            bundle.extractall(assets)
    except zipfile.BadZipFile as exc:
        raise ScaffoldError(f"Stylesheet archive is not a zip file: {exc}") from exc
    finally:
        archive.unlink(missing_ok=True)

    extracted = assets / ctx.config.stylesheets_archive_root
    if not extracted.is_dir():
        raise ScaffoldError(f"Stylesheet archive has no {ctx.config.stylesheets_archive_root}/ folder")
    shutil.move(str(extracted), str(stylesheets))
    print_file_action("create", stylesheets)


async def install_frontend_packages(ctx: RunContext) -> None:
    await ctx.run(ctx.config.executables.yarn, "add", *FRONTEND_PACKAGES, "-D")
    ctx.copy_asset(".eslintrc")
    ctx.copy_asset(".stylelintrc")


async def edit_js_entry(ctx: RunContext) -> None:
    append_to_file(
        ctx.path("app/javascript/packs/application.js"),
        "\n"
        "// External imports\n"
        'import "bootstrap";\n'
        "\n"
        "// Internal imports, e.g:\n"
        "// import { initSelect2 } from '../components/init_select2';\n"
        "\n"
        "document.addEventListener('turbolinks:load', () => {\n"
        "  // Call your functions here, e.g:\n"
        "  // initSelect2();\n"
        "});\n",
    )


async def edit_bundler_config(ctx: RunContext) -> None:
    insert_into_file(
        ctx.path("config/webpack/environment.js"),
        "const webpack = require('webpack');\n"
        "// Preventing Babel from transpiling NodeModules packages\n"
        "environment.loaders.delete('nodeModules');\n"
        "// Bootstrap 4 has a dependency over jQuery & Popper.js:\n"
        "environment.plugins.prepend('Provide',\n"
        "  new webpack.ProvidePlugin({\n"
        "    $: 'jquery',\n"
        "    jQuery: 'jquery',\n"
        "    Popper: ['popper.js', 'default']\n"
        "  })\n"
        ");\n"
        "\n",
        before="module.exports",
    )


async def setup_landing_page(ctx: RunContext) -> None:
    route(ctx.project_dir, "root to: 'pages#home'")
    await ctx.generate("controller", "pages", "home", "--skip-routes", "--no-test-framework")
    if ctx.options.authentication:
        insert_into_file(
            ctx.path("app/controllers/pages_controller.rb"),
            "  skip_before_action :authenticate_user!, only: [ :home ]\n",
            after=APPLICATION_CONTROLLER_CLASS,
        )
    await ctx.rails("db:create", "db:migrate")


async def setup_environment(ctx: RunContext) -> None:
    dotenv = ctx.path(".env")
    if not dotenv.exists():
        create_file(dotenv)
    append_to_file(
        ctx.path(".gitignore"),
        "\n"
        "# Ignore .env file containing credentials.\n"
        ".env*\n"
        "# Ignore Mac and Linux file system files\n"
        "*.swp\n"
        ".DS_Store\n",
    )
    gsub_file(
        ctx.path("config/environments/development.rb"),
        re.compile(r"config\.assets\.debug.*"),
        "config.assets.debug = false",
    )
    environment(
        ctx.project_dir,
        """
        config.generators do |generate|
          generate.assets false
        end
        """,
    )


async def init_vcs(ctx: RunContext) -> None:
    await ctx.git("init")
    await ctx.git("add", ".")
    await ctx.git("commit", "-m", ctx.config.commit_message)


async def publish(ctx: RunContext) -> None:
    gh = ctx.config.executables.gh
    publish_config = ctx.config.publish
    version = await ctx.probe(gh, "version")
    if not version.ok:
        print_warning("You first need to install the GitHub CLI (gh) to publish this project.")
        return

    await ctx.run(
        gh,
        "repo",
        "create",
        ctx.config.resolved_app_name,
        f"--{publish_config.visibility}",
        "--source",
        ".",
        "--remote",
        publish_config.remote,
    )
    await ctx.git("push", "-u", publish_config.remote, "HEAD")
    await ctx.run(gh, "repo", "view", "--web")


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

MAIN_STEPS: tuple[Step, ...] = (
    Step("preflight", preflight),
    Step("materialize-source", materialize),
    Step("install-static-files", install_static_files),
    Step("collect-options", collect_options),
    Step("declare-dependencies", declare_dependencies),
)

DEFERRED_STEPS: tuple[Step, ...] = (
    Step("lint-setup", setup_lint),
    Step("job-queue-setup", setup_job_queue),
    Step("annotation-setup", setup_annotation),
    Step("bug-finder-setup", setup_bug_finder),
    Step("authentication-setup", setup_authentication, lambda ctx: ctx.options.authentication),
    Step("authorization-setup", setup_authorization, lambda ctx: ctx.options.authorization),
    Step("asset-replace", replace_assets),
    Step("frontend-install", install_frontend_packages),
    Step("js-entry-edit", edit_js_entry),
    Step("bundler-edit", edit_bundler_config),
    Step("landing-page-setup", setup_landing_page),
    Step("env-setup", setup_environment),
    Step("vcs-init", init_vcs),
    Step("publish", publish, lambda ctx: ctx.options.publish),
)
