"""Prompt primitives used by the quiz session.

The session only talks to the :class:`Prompter` protocol. The console
implementation renders with Rich and reads raw lines from an injectable
input provider so tests can script a whole session.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Callable, Optional, Protocol

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

__all__ = [
    "InputProvider",
    "Prompter",
    "ConsolePrompter",
    "parse_yes_no",
    "parse_selection",
]

InputProvider = Callable[[], str]


class Prompter(Protocol):
    def confirm(self, message: str, *, default: bool = False) -> bool: ...

    def select_one(self, message: str, choices: Sequence[str]) -> int: ...

    def select_many(
        self, message: str, choices: Sequence[str]
    ) -> list[int]: ...

    def text(self, message: str) -> str: ...


def parse_yes_no(raw: Optional[str], *, default: bool) -> Optional[bool]:
    """Parse a yes/no reply; blank input takes ``default``."""

    if raw is None:
        return None
    text = raw.strip().lower()
    if not text:
        return default
    if text in {"y", "yes"}:
        return True
    if text in {"n", "no"}:
        return False
    return None


def parse_selection(raw: Optional[str], count: int) -> Optional[list[int]]:
    """Parse 1-based option numbers separated by commas or spaces.

    Returns ascending, de-duplicated 0-based indices, or ``None`` when the
    input is empty or names an option outside ``1..count``.
    """

    if raw is None:
        return None
    parts = [part for part in raw.replace(",", " ").split() if part]
    if not parts:
        return None
    indices: set[int] = set()
    for part in parts:
        if not part.isdigit():
            return None
        number = int(part)
        if not 1 <= number <= count:
            return None
        indices.add(number - 1)
    return sorted(indices)


class ConsolePrompter:
    """Line-oriented prompts rendered on a Rich console."""

    def __init__(
        self,
        console: Console,
        input_provider: Optional[InputProvider] = None,
    ) -> None:
        self._console = console
        self._input = input_provider or console.input

    def confirm(self, message: str, *, default: bool = False) -> bool:
        hint = "Y/n" if default else "y/N"
        while True:
            self._console.print(f"[bold]?[/] {message} [dim]({hint})[/]")
            answer = parse_yes_no(self._input(), default=default)
            if answer is not None:
                return answer
            self._console.print("[red]Please answer 'y' or 'n'.[/]")

    def select_one(self, message: str, choices: Sequence[str]) -> int:
        self._render_choices(message, choices)
        while True:
            picked = parse_selection(self._input(), len(choices))
            if picked is not None and len(picked) == 1:
                return picked[0]
            self._console.print(
                f"[red]Enter one number between 1 and {len(choices)}.[/]"
            )

    def select_many(self, message: str, choices: Sequence[str]) -> list[int]:
        self._render_choices(message, choices)
        self._console.print(
            Text("Separate numbers with commas or spaces.", style="dim")
        )
        while True:
            raw = self._input()
            if not raw or not raw.strip():
                self._console.print(
                    "[red]Please select at least one answer.[/]"
                )
                continue
            picked = parse_selection(raw, len(choices))
            if picked is not None:
                return picked
            self._console.print(
                f"[red]Use numbers between 1 and {len(choices)}.[/]"
            )

    def text(self, message: str) -> str:
        while True:
            self._console.print(f"[bold]?[/] {message}")
            raw = self._input() or ""
            if raw.strip():
                return raw.strip()
            self._console.print("[red]Please provide an answer.[/]")

    def _render_choices(self, message: str, choices: Sequence[str]) -> None:
        table = Table(show_header=False, box=box.SIMPLE, expand=False)
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Choice")
        for number, label in enumerate(choices, start=1):
            table.add_row(str(number), label)
        self._console.print(f"[bold]?[/] {message}")
        self._console.print(table)
