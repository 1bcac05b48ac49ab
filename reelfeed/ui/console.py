"""Console UI wrapper using Rich library."""

from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table


class ConsoleUI:
    """
    Wrapper for Rich Console used by the feed tools.

    Styled status messages, the per-video header of a simulation and the
    one-line counters printed under the feed and cache tables.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize with a Rich Console (a new one by default)."""
        self.console = console or Console()

    def print(self, *args, **kwargs) -> None:
        """Print to console (delegates to Rich Console)."""
        self.console.print(*args, **kwargs)

    def rule(self, title: str = "", **kwargs) -> None:
        """Print a horizontal rule with optional title."""
        self.console.rule(title, **kwargs)

    def video_header(self, index: int, total: int) -> None:
        """Print the rule announcing the video at index (0-based) of total."""
        self.rule(f"[bold blue]Video {index + 1}/{total}[/bold blue]")

    def print_counters(self, counters: List[Tuple[str, object]]) -> None:
        """
        Print labelled counters on one line.

        Args:
            counters: (label, value) pairs, printed in order.
        """
        self.console.print("  ".join(f"[blue]{label}:[/blue] {value}" for label, value in counters))

    def print_warning(self, message: str) -> None:
        """Print a warning message with yellow styling."""
        self.console.print(f"[yellow]⚠️  {message}[/yellow]")

    def print_error(self, message: str) -> None:
        """Print an error message with red styling."""
        self.console.print(f"[red]❌ {message}[/red]")

    def print_success(self, message: str) -> None:
        """Print a success message with green styling."""
        self.console.print(f"[green]✓ {message}[/green]")

    def create_table(
        self,
        title: str,
        columns: Optional[List[str]] = None
    ) -> Table:
        """
        Create a Rich Table with optional columns.

        Args:
            title: Table title.
            columns: List of column headers.

        Returns:
            Rich Table instance.
        """
        table = Table(title=title, show_header=True, header_style="bold magenta")
        if columns:
            for col in columns:
                table.add_column(col)
        return table

    def print_table(self, table: Table) -> None:
        """Print a Rich Table."""
        self.console.print(table)


console = ConsoleUI()
