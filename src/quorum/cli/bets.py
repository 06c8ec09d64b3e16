"""Bet CLI commands."""

from __future__ import annotations

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from quorum.database.queries.bet import list_bets
from quorum.governance.enums import BetStatus

app = typer.Typer(help="Bet commands")
console = Console()

STATUS_COLORS = {
    "open": "yellow",
    "correct": "green",
    "wrong": "red",
    "expired": "dim",
}


@app.command("list")
def list_bets_command(
    status: Annotated[
        Optional[str],
        typer.Option("--status", "-s", help="Filter by status (open, correct, wrong, expired)"),
    ] = None,
) -> None:
    """List bets, newest first."""
    from quorum.main import get_app_context

    ctx = get_app_context()

    try:
        status_filter = BetStatus(status) if status else None
    except ValueError:
        console.print(
            f"[red]Invalid status:[/red] {status}. Valid values: open, correct, wrong, expired"
        )
        raise typer.Exit(code=1)

    try:
        bets = ctx.run(lambda session: list_bets(session, status=status_filter))
    except Exception as e:
        console.print(f"[red]Error listing bets:[/red] {e}")
        raise typer.Exit(code=1)

    if not bets:
        console.print("[yellow]No bets found[/yellow]")
        return

    table = Table(title="Bets")
    table.add_column("Prediction", style="bold")
    table.add_column("Wrong if")
    table.add_column("Status")
    table.add_column("Due", style="dim")

    for bet in bets:
        color = STATUS_COLORS.get(bet.status.value, "white")
        table.add_row(
            bet.prediction,
            bet.wrong_if,
            f"[{color}]{bet.status.value}[/{color}]",
            bet.due_at.strftime("%Y-%m-%d"),
        )

    console.print(table)
