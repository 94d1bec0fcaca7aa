from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from aprsfeed.models.config import FeedSettings
    from aprsfeed.models.reports import Sighting


class RichOutput:
    """Rich-based terminal output helpers for *aprsfeed*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Sightings
    # ------------------------------------------------------------------

    def sighting(self, s: Sighting) -> None:
        """Print one sighting as a single coloured line."""
        text = (
            f"[bold cyan]{escape(s.callsign)}[/bold cyan] "
            f"[dim]{escape(s.sender)}[/dim] "
            f"{s.latitude:.5f}, {s.longitude:.5f}"
        )
        if s.altitude is not None:
            text += f" [green]{s.altitude:.0f} m[/green]"
        self._con.print(text)

    # ------------------------------------------------------------------
    # Settings summary
    # ------------------------------------------------------------------

    def settings(self, settings: FeedSettings) -> None:
        """Print the effective connection settings (passcode masked)."""
        table = Table(title="APRS-IS Feed")
        table.add_column("Setting", style="bold")
        table.add_column("Value")

        table.add_row("Server", f"{settings.host}:{settings.port}")
        table.add_row("Login", settings.callsign)
        table.add_row("Passcode", "receive-only" if settings.passcode == "-1" else "****")
        table.add_row("Filter", f"t/{settings.filter_expr}")
        table.add_row("Prefixes", ", ".join(settings.regional_prefixes) or "(none)")
        table.add_row("Read timeout", f"{settings.read_timeout:g}s")
        table.add_row("Backoff", f"{settings.backoff:g}s")

        self._con.print(table)

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
