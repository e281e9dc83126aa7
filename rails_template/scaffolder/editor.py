"""Anchored text edits on project files.

Every edit locates its target explicitly: a missing file, an absent marker or
a substitution that matches nothing raises :class:`EditError` instead of
silently leaving the file untouched.  Markers are either literal strings or
compiled regular expressions.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import Union

from rails_template.errors import EditError
from rails_template.utils import print_file_action

Marker = Union[str, re.Pattern]


def _read(path: Path) -> str:
    if not path.is_file():
        raise EditError(str(path), "file does not exist")
    return path.read_text(encoding="utf-8")


def _locate(text: str, marker: Marker) -> re.Match[str] | None:
    if isinstance(marker, re.Pattern):
        return marker.search(text)
    return re.search(re.escape(marker), text)


def insert_into_file(
    path: Path,
    content: str,
    *,
    before: Marker | None = None,
    after: Marker | None = None,
) -> bool:
    """Insert *content* immediately before or after the first *marker* match.

    Exactly one of *before* / *after* must be given.  When the file already
    contains *content* nothing is written and ``False`` is returned.

    Raises:
        EditError: If the file is missing or the marker is not found.
    """
    if (before is None) == (after is None):
        raise ValueError("insert_into_file needs exactly one of 'before' or 'after'")

    text = _read(path)
    if content in text:
        print_file_action("exists", path)
        return False

    marker = before if before is not None else after
    match = _locate(text, marker)
    if match is None:
        pattern = marker.pattern if isinstance(marker, re.Pattern) else marker
        raise EditError(str(path), f"marker {pattern!r} not found")

    offset = match.start() if before is not None else match.end()
    path.write_text(text[:offset] + content + text[offset:], encoding="utf-8")
    print_file_action("insert", path)
    return True


def append_to_file(path: Path, content: str) -> None:
    """Append *content* to an existing file."""
    _read(path)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(content)
    print_file_action("append", path)


def gsub_file(path: Path, pattern: Marker, replacement: str) -> int:
    """Replace every match of *pattern* with *replacement*.

    Returns:
        The number of substitutions made (always at least one).

    Raises:
        EditError: If the file is missing or nothing matches.
    """
    text = _read(path)
    regex = pattern if isinstance(pattern, re.Pattern) else re.compile(re.escape(pattern))
    updated, count = regex.subn(lambda _match: replacement, text)
    if count == 0:
        raise EditError(str(path), f"pattern {regex.pattern!r} matched nothing")
    path.write_text(updated, encoding="utf-8")
    print_file_action("gsub", path)
    return count


def create_file(path: Path, content: str = "") -> Path:
    """Create (or truncate) *path*, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    print_file_action("create", path)
    return path


def copy_file(source: Path, destination: Path) -> Path:
    """Copy *source* over *destination*, creating parent directories."""
    if not source.is_file():
        raise EditError(str(source), "template asset does not exist")
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, destination)
    print_file_action("copy", destination)
    return destination


def remove_tree(path: Path) -> None:
    """Remove a file or directory tree if present."""
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()
    else:
        return
    print_file_action("remove", path)
