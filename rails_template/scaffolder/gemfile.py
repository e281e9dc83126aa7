"""Gemfile reading and gem declaration.

The original ``Gemfile`` is read once per run and cached by
:class:`GemfileManifest`; declarations are appended to the file on disk and
never re-read from it.  Nothing here installs gems; Bundler does that later.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from rails_template.scaffolder.editor import append_to_file

_QUOTED = re.compile(r"""\s*,\s*(['"])([^'"]*)\1""")


@dataclass(frozen=True)
class Gem:
    """A single ``gem`` declaration."""

    name: str
    requirement: str | None = None
    require: bool = True

    def render(self) -> str:
        parts = [f'"{self.name}"']
        if self.requirement:
            parts.append(f'"{self.requirement}"')
        if not self.require:
            parts.append("require: false")
        return "gem " + ", ".join(parts)


class GemfileManifest:
    """Read-once view of the project's original ``Gemfile``."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._text: str | None = None

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = self.path.read_text(encoding="utf-8")
        return self._text

    def _line_rest(self, name: str) -> str | None:
        pattern = re.compile(
            r"""^[ \t]*gem[ \t]+(['"])""" + re.escape(name) + r"""\1(?P<rest>.*)$""",
            re.MULTILINE,
        )
        match = pattern.search(self.text)
        return match.group("rest") if match else None

    def declares(self, name: str) -> bool:
        """``True`` if the original Gemfile has an uncommented ``gem`` line for *name*."""
        return self._line_rest(name) is not None

    def requirement(self, name: str) -> str | None:
        """Return the version constraint of gem *name*, double-quoted.

        ``gem 'foo', '>= 2.0'`` yields ``">= 2.0"``; several constraints are
        joined with ``", "``.  Keyword options such as ``require: false`` are
        not part of the constraint.  Returns ``None`` when the gem is absent
        or unconstrained.
        """
        rest = self._line_rest(name)
        if rest is None:
            return None

        constraints: list[str] = []
        position = 0
        while True:
            match = _QUOTED.match(rest, position)
            if match is None:
                break
            constraints.append(f'"{match.group(2).strip()}"')
            position = match.end()

        return ", ".join(constraints) or None


def _ensure_trailing_newline(path: Path) -> None:
    text = path.read_text(encoding="utf-8")
    if text and not text.endswith("\n"):
        append_to_file(path, "\n")


def add_gems(path: Path, gems: list[Gem]) -> None:
    """Append top-level ``gem`` lines to the Gemfile."""
    if not gems:
        return
    _ensure_trailing_newline(path)
    append_to_file(path, "\n" + "".join(f"{gem.render()}\n" for gem in gems))


def add_gem_group(path: Path, groups: tuple[str, ...], gems: list[Gem]) -> None:
    """Append a ``group :a, :b do ... end`` block to the Gemfile."""
    if not gems:
        return
    _ensure_trailing_newline(path)
    header = ", ".join(f":{group}" for group in groups)
    body = "".join(f"  {gem.render()}\n" for gem in gems)
    append_to_file(path, f"\ngroup {header} do\n{body}end\n")
