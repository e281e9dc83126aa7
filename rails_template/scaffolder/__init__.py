"""Template steps, file edits and asset handling.

The step tables live in ``rails_template.scaffolder.steps`` and are consumed
by ``rails_template.pipeline.Pipeline``.  The editing helpers re-exported
here are usable on their own::

    from rails_template.scaffolder import insert_into_file

    insert_into_file(path, "  Bullet.enable = true\n", before=re.compile(r"^end", re.M))
"""

from rails_template.scaffolder.editor import (
    append_to_file,
    gsub_file,
    insert_into_file,
)
from rails_template.scaffolder.gemfile import Gem, GemfileManifest
from rails_template.scaffolder.templates import TemplateRenderer

__all__ = [
    "Gem",
    "GemfileManifest",
    "TemplateRenderer",
    "append_to_file",
    "gsub_file",
    "insert_into_file",
]
