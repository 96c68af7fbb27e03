"""CLI renderer using Rich library."""

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..models import DiscoveryResult, IconCandidate
from ..utils.logger import VerbosityLevel
from .base import BaseRenderer


class CLIRenderer(BaseRenderer):
    """
    Renders lookup results to the terminal as Rich tables.

    Quiet mode prints only the best icon URL per result. Verbose mode adds
    the score column.
    """

    def __init__(self, verbosity: VerbosityLevel = VerbosityLevel.NORMAL, color: bool = True):
        """
        Initialize CLI renderer.

        Args:
            verbosity: Output verbosity level
            color: Enable colored output
        """
        super().__init__(verbosity)
        self.console = Console(color_system="auto" if color else None)
        self.total_results = 0

    def render(self, result: DiscoveryResult) -> None:
        """
        Render a lookup result.

        Args:
            result: Lookup result
        """
        self.total_results += 1

        if self.verbosity == VerbosityLevel.QUIET:
            if result.best_icon:
                self.console.print(escape(result.best_icon.url), soft_wrap=True)
            return

        self.console.print(f"\n[bold blue]Icons for {escape(result.url)}[/bold blue]")
        self.console.print()

        if not result.icons:
            self.console.print("  [dim]No icons found[/dim]")
            return

        show_score = self.verbosity >= VerbosityLevel.VERBOSE

        table = Table(box=box.ROUNDED, show_header=True, header_style="bold")
        table.add_column("")
        table.add_column("URL", overflow="fold")
        table.add_column("Type")
        table.add_column("Size")
        table.add_column("Purpose")
        if show_score:
            table.add_column("Score", justify="right")

        for icon in result.icons:
            is_best = icon == result.best_icon
            row = [
                "[green]★[/green]" if is_best else "",
                escape(icon.url),
                icon.content_type,
                self._format_size(icon),
                escape(icon.purpose) if icon.purpose else "[dim]-[/dim]",
            ]
            if show_score:
                row.append(str(icon.score))
            table.add_row(*row, style="bold" if is_best else None)

        self.console.print(table)

        if result.best_icon:
            url = result.best_icon.url
            self.console.print(f"  Best icon: [link={url}]{escape(url)}[/link]")

    @staticmethod
    def _format_size(icon: IconCandidate) -> str:
        if icon.width is None and icon.height is None:
            return "[dim]unknown[/dim]"
        width = icon.width if icon.width is not None else "?"
        height = icon.height if icon.height is not None else "?"
        return f"{width}x{height}"

    def render_summary(self) -> None:
        """Render summary of all lookups."""
        if self.verbosity == VerbosityLevel.QUIET:
            for url, error in self.all_errors:
                self.console.print(f"[red]✗ {escape(url)}: {escape(error)}[/red]")
            return

        self.console.print()

        if not self.all_errors:
            self.console.print(f"[green]✓ {self.total_results} lookup(s) completed[/green]")
        else:
            self.console.print(f"[red]✗ {len(self.all_errors)} lookup(s) failed:[/red]")
            for url, error in self.all_errors:
                self.console.print(f"  [red]• {escape(url)}: {escape(error)}[/red]")

        self.console.print()
