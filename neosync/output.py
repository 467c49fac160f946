"""Console output helpers built on rich."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormatter:
    """Formats command output for humans (rich) or machines (JSON).

    Messages go to stderr so that ``--json`` output on stdout stays parseable.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit results as JSON instead of tables
            quiet: Suppress informational messages (errors are still shown)
            console: Console used for results (defaults to stdout)
            err_console: Console used for messages (defaults to stderr)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        """Print a plain line unless quiet or in JSON mode."""
        if not self.quiet and not self.json_output:
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(message, markup=False)

    def success(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(f"[yellow]{escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        """Print an error. Errors are shown even in quiet mode."""
        self.err_console.print(f"[bold red]{escape(message)}[/bold red]")

    def output_json(self, data: Any) -> None:
        """Write data to stdout as indented JSON."""
        self.console.print_json(json.dumps(data, default=str))

    def print_lines(self, lines: list[str]) -> None:
        """Print one item per line, or a JSON array in JSON mode.

        Unlike :meth:`print`, the lines are emitted in quiet mode too, since
        they are the command's result.
        """
        if self.json_output:
            self.output_json(lines)
            return
        for line in lines:
            self.console.print(line, markup=False, soft_wrap=True)

    def print_table(
        self, columns: list[str], rows: list[list[Any]], title: Optional[str] = None
    ) -> None:
        """Print rows as a table, or as a list of objects in JSON mode."""
        if self.json_output:
            self.output_json([dict(zip(columns, row)) for row in rows])
            return
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(str(value) for value in row))
        self.console.print(table)

    def print_summary(self, title: str, items: list[tuple[str, Any]]) -> None:
        """Print a titled key/value summary."""
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        if self.quiet:
            return
        table = Table(title=title, show_header=False, box=None)
        table.add_column(style="bold")
        table.add_column()
        for key, value in items:
            table.add_row(key, str(value))
        self.console.print(table)
