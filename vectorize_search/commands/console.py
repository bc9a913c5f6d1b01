"""Terminal I/O for operator commands."""

from collections.abc import Sequence
from typing import TextIO

from rich import box
from rich.console import Console as RichConsole
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text


class Console:
    """Prints command output and reads confirmations.

    Args:
        stream: Output stream (stdout by default).
        input_stream: Stream prompts read their answers from (stdin by default).
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        input_stream: TextIO | None = None,
    ) -> None:
        self._console = RichConsole(file=stream, highlight=False, soft_wrap=True)
        self._input = input_stream

    def line(self, message: str = "") -> None:
        self._console.print(message, markup=False)

    def info(self, message: str) -> None:
        self._console.print(message, style="green", markup=False)

    def warn(self, message: str) -> None:
        self._console.print(f"WARNING: {message}", style="yellow", markup=False)

    def error(self, message: str) -> None:
        self._console.print(f"ERROR: {message}", style="bold red", markup=False)

    def ask(self, question: str) -> str:
        # Prompt adds its own ": " suffix
        return Prompt.ask(
            Text(question.rstrip(":")),
            console=self._console,
            default="",
            show_default=False,
            stream=self._input,
        ).strip()

    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask a y/n question; an empty answer gives ``default``."""
        return Confirm.ask(
            Text(question),
            console=self._console,
            default=default,
            stream=self._input,
        )

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
        for header in headers:
            table.add_column(header, style="cyan")
        for row in rows:
            table.add_row(*(Text(cell) for cell in row))
        self._console.print(table)
