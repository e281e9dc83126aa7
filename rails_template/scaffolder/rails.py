"""Edits that mirror the Rails application-template helpers.

``environment`` and ``route`` insert re-indented Ruby snippets after the
sentinels Rails itself writes into a new application.
"""

from __future__ import annotations

import re
import textwrap
from pathlib import Path

from rails_template.scaffolder.editor import insert_into_file

APPLICATION_SENTINEL = re.compile(r"class Application < Rails::Application\n")
ENVIRONMENT_SENTINEL = re.compile(r"Rails\.application\.configure do\n")
ROUTES_SENTINEL = re.compile(r"^Rails\.application\.routes\.draw do[ \t]*\n", re.MULTILINE)


def indent_snippet(snippet: str, amount: int) -> str:
    """Re-indent *snippet* to *amount* spaces and end it with a newline."""
    body = textwrap.dedent(snippet).strip("\n")
    return textwrap.indent(body, " " * amount) + "\n"


def environment(project_dir: Path, snippet: str, env: str | None = None) -> bool:
    """Add configuration to ``config/application.rb`` or one environment file."""
    if env is None:
        return insert_into_file(
            project_dir / "config" / "application.rb",
            indent_snippet(snippet, 4),
            after=APPLICATION_SENTINEL,
        )
    return insert_into_file(
        project_dir / "config" / "environments" / f"{env}.rb",
        indent_snippet(snippet, 2),
        after=ENVIRONMENT_SENTINEL,
    )


def route(project_dir: Path, routing: str) -> bool:
    """Add a line at the top of the routes block."""
    return insert_into_file(
        project_dir / "config" / "routes.rb",
        indent_snippet(routing, 2),
        after=ROUTES_SENTINEL,
    )
