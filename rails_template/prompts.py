"""Operator prompts.

The pipeline only ever asks yes/no questions; they go through a
:class:`Prompter` so tests can answer them from a script.
"""

from __future__ import annotations

from typing import Protocol

from rich.prompt import Confirm

from rails_template.utils import console


class Prompter(Protocol):
    def ask_yes_no(self, question: str) -> bool:
        ...


class ConsolePrompter:
    """Asks on the shared Rich console and blocks on standard input."""

    def ask_yes_no(self, question: str) -> bool:
        return Confirm.ask(f"[bold]{question}[/bold]", console=console, default=False)
