"""Rails template configuration.

Centralised, typed configuration for a scaffolding run. All settings use
Pydantic v2 models so they can be validated at construction time and read
from environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from pydantic import BaseModel, Field, field_validator

DEFAULT_STYLESHEETS_URL = "https://github.com/lewagon/stylesheets/archive/master.zip"


class MailerConfig(BaseModel):
    """Base URLs used by Devise mailer links, one per deployment environment."""

    development_host: str = Field(default="localhost")
    development_port: int = Field(default=3000, ge=1, le=65535)
    production_host: str = Field(default="http://TODO_PUT_YOUR_DOMAIN_HERE")


class PublishConfig(BaseModel):
    """Options for creating the remote GitHub repository."""

    visibility: Literal["private", "public"] = Field(default="private")
    remote: str = Field(default="origin")


class ExecutableConfig(BaseModel):
    """Names of the external tools the steps delegate to."""

    rails: str = Field(default="bin/rails")
    bundle: str = Field(default="bundle")
    yarn: str = Field(default="yarn")
    git: str = Field(default="git")
    gh: str = Field(default="gh")


class Config(BaseModel):
    """Global rails-template configuration.

    Instances are created once by the CLI entry point (usually through
    :meth:`from_env`) and handed to the ``Pipeline``, which threads them
    through every step via the ``RunContext``.
    """

    project_dir: Path = Field(default=Path("."))
    app_name: str = Field(default="", description="Defaults to the project directory name")
    rails_requirement: str = Field(default="~=6.1.0")
    template_source: str = Field(
        default="",
        description="Local directory or http(s) git URL holding the template assets",
    )
    template_subdir: str = Field(default="rails_template/scaffolder/templates")
    stylesheets_url: str = Field(default=DEFAULT_STYLESHEETS_URL)
    stylesheets_archive_root: str = Field(default="rails-stylesheets-master")
    commit_message: str = Field(default="End of the template generation")
    mailer: MailerConfig = Field(default_factory=MailerConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    executables: ExecutableConfig = Field(default_factory=ExecutableConfig)

    @field_validator("rails_requirement")
    @classmethod
    def _check_requirement(cls, value: str) -> str:
        try:
            SpecifierSet(value)
        except InvalidSpecifier as exc:
            raise ValueError(f"Invalid version requirement {value!r}: {exc}") from exc
        return value

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def resolved_app_name(self) -> str:
        """The application name, falling back to the project directory name."""
        return self.app_name or self.project_dir.resolve().name

    @property
    def requirement(self) -> SpecifierSet:
        """``rails_requirement`` parsed as a PEP 440 specifier set."""
        return SpecifierSet(self.rails_requirement)

    @property
    def remote_source(self) -> bool:
        """``True`` when the template assets must be cloned from a git URL."""
        return self.template_source.startswith(("http://", "https://"))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            RT_PROJECT_DIR, RT_APP_NAME, RT_RAILS_REQUIREMENT,
            RT_TEMPLATE_SOURCE, RT_STYLESHEETS_URL, RT_COMMIT_MESSAGE,
            RT_PRODUCTION_HOST, RT_GITHUB_VISIBILITY.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("RT_PROJECT_DIR"):
            kwargs["project_dir"] = Path(os.environ["RT_PROJECT_DIR"])
        if os.environ.get("RT_APP_NAME"):
            kwargs["app_name"] = os.environ["RT_APP_NAME"]
        if os.environ.get("RT_RAILS_REQUIREMENT"):
            kwargs["rails_requirement"] = os.environ["RT_RAILS_REQUIREMENT"]
        if os.environ.get("RT_TEMPLATE_SOURCE"):
            kwargs["template_source"] = os.environ["RT_TEMPLATE_SOURCE"]
        if os.environ.get("RT_STYLESHEETS_URL"):
            kwargs["stylesheets_url"] = os.environ["RT_STYLESHEETS_URL"]
        if os.environ.get("RT_COMMIT_MESSAGE"):
            kwargs["commit_message"] = os.environ["RT_COMMIT_MESSAGE"]

        mailer_kwargs: dict[str, Any] = {}
        if os.environ.get("RT_PRODUCTION_HOST"):
            mailer_kwargs["production_host"] = os.environ["RT_PRODUCTION_HOST"]

        publish_kwargs: dict[str, Any] = {}
        if os.environ.get("RT_GITHUB_VISIBILITY"):
            publish_kwargs["visibility"] = os.environ["RT_GITHUB_VISIBILITY"]

        return cls(
            mailer=MailerConfig(**mailer_kwargs),
            publish=PublishConfig(**publish_kwargs),
            **kwargs,
        )
