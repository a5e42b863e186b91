"""Display and formatting service for command summaries"""
from typing import Optional, TYPE_CHECKING

from rich.console import Console
from rich.table import Table
from rich.text import Text

from fell.constants import CLI_COLORS, SYMBOL_CHILD, SYMBOL_FAILURE, SYMBOL_SUCCESS
from fell.logging_config import get_logger
from fell.models.repository import RepositorySet

if TYPE_CHECKING:
    from fell.core import CommandSummary

console = Console()
logger = get_logger(__name__)


def format_group_line(verb: str, label: str, repos: RepositorySet) -> Text:
    """One summary line for a group of repositories."""
    count = len(repos)
    if verb == "branch":
        line = Text(f"{count} repos on branch ")
        line.append(f"<{label}>", style=CLI_COLORS["branch"])
    elif verb == "workflows":
        line = Text(f"{count} repos with latest run ")
        line.append(label, style=CLI_COLORS["success"] if label == "success" else CLI_COLORS["warning"])
    else:
        line = Text(f"{count} {label} repos")
    return line


class DisplayService:
    def __init__(self, verbose: bool = False, output: Optional[Console] = None):
        self.verbose = verbose
        self.console = output or console

    def _print_groups(self, summary: "CommandSummary") -> None:
        for label, repos in summary.groups.items():
            self.console.print(format_group_line(summary.verb, label, repos))
            if label in summary.expanded:
                for repo in repos:
                    line = Text(f"  {SYMBOL_CHILD} ", style=CLI_COLORS["muted"])
                    line.append(repo.rel_path, style=CLI_COLORS["path"])
                    self.console.print(line)

    def _print_failures(self, summary: "CommandSummary") -> None:
        table = Table(title=f"{len(summary.result.failed)} failed", title_style=CLI_COLORS["failure"])
        table.add_column("Repository", style=CLI_COLORS["path"])
        table.add_column("Error")
        for outcome in summary.result.failed:
            table.add_row(outcome.repo.rel_path, outcome.reason)
        self.console.print(table)

    def display_summary(self, summary: "CommandSummary") -> None:
        """Print the summary of one command."""
        self._print_groups(summary)

        if self.verbose and summary.skipped:
            self.console.print(f"[{CLI_COLORS['muted']}]{len(summary.skipped)} repos skipped[/]")
            for repo in summary.skipped:
                self.console.print(f"  [{CLI_COLORS['muted']}]{SYMBOL_CHILD} {repo.rel_path}[/]")

        for note in summary.notes:
            self.console.print(f"  {note}")

        if summary.failed:
            self._print_failures(summary)
            self.console.print(
                f"[{CLI_COLORS['failure']}]{SYMBOL_FAILURE} {summary.headline}[/]"
            )
        else:
            self.console.print(
                f"[{CLI_COLORS['success']}]{SYMBOL_SUCCESS} {summary.headline}[/]"
            )
        logger.debug(f"{summary.verb}: {len(summary.result.failed)} failure(s) reported")
