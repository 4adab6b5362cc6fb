"""Rich display for gateway CLI output.

Renders the tool catalog as a table, the tool-call history as
markdown, and the final answer in a panel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mcpgate.tools.base import CatalogEntry
    from mcpgate.tools.registry import RegistryStats

_TRUNCATE_LEN = 120


def _truncate(text: str, limit: int = _TRUNCATE_LEN) -> str:
    """Truncate text to *limit* characters with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + " ..."


class GatewayDisplay:
    """Rich rendering for the ``tools`` and ``ask`` commands.

    Accepts an optional :class:`~rich.console.Console` for dependency
    injection in tests.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    # ── Catalog ───────────────────────────────────────────────

    def show_catalog(self, entries: Sequence[CatalogEntry]) -> None:
        """Print one row per tool, grouped by owning server."""
        table = Table(title="Tools", title_style="bold cyan")
        table.add_column("Server", style="cyan", no_wrap=True)
        table.add_column("Tool", style="bold")
        table.add_column("Description")
        for entry in entries:
            table.add_row(
                entry.server_name,
                entry.tool.name,
                _truncate(entry.tool.description or ""),
            )
        self._console.print(table)

    def show_stats(self, stats: RegistryStats) -> None:
        self._console.print(
            f"Servers: {stats.healthy}/{stats.total} healthy | Tools: {stats.tool_count}"
        )

    # ── Conversation ──────────────────────────────────────────

    def show_tool_history(self, history: str) -> None:
        """Display the markdown tool-call history."""
        self._console.print(
            Panel(
                Markdown(history),
                title="[bold cyan]TOOLS[/bold cyan]",
                border_style="cyan",
            )
        )

    def show_answer(self, content: str) -> None:
        """Display the final answer (full, untruncated)."""
        self._console.print()
        self._console.rule(style="bright_white")
        self._console.print(
            Panel(
                content or "(empty response)",
                title="[bold bright_white]Answer[/bold bright_white]",
                border_style="bright_white",
            )
        )
