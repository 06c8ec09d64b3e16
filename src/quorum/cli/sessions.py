"""Governance session CLI commands.

List, inspect and abandon governance sessions without running the API
server.
"""

from __future__ import annotations

import json
from typing import Annotated, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database.models import GovernanceSession
from quorum.database.queries.session import (
    abandon_governance_session,
    get_governance_session,
    list_governance_sessions,
)
from quorum.governance.enums import GovernanceSessionType, SessionStatus

app = typer.Typer(help="Governance session commands")
console = Console()

STATUS_COLORS = {
    "in_progress": "yellow",
    "completed": "green",
    "abandoned": "dim",
}


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[red]Invalid session ID:[/red] {value}")
        raise typer.Exit(code=1)


@app.command("list")
def list_sessions(
    session_type: Annotated[
        Optional[str],
        typer.Option("--type", "-t", help="Filter by type (setup, quarterly, quick)"),
    ] = None,
    status: Annotated[
        Optional[str],
        typer.Option("--status", "-s", help="Filter by status (in_progress, completed)"),
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum rows")] = 20,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (table or json)"),
    ] = "table",
) -> None:
    """List governance sessions, newest first."""
    from quorum.main import get_app_context

    ctx = get_app_context()

    try:
        type_filter = GovernanceSessionType(session_type) if session_type else None
        status_filter = SessionStatus(status) if status else None
    except ValueError as e:
        console.print(f"[red]Invalid filter:[/red] {e}")
        raise typer.Exit(code=1)

    try:
        records = ctx.run(
            lambda session: list_governance_sessions(
                session, session_type=type_filter, status=status_filter, limit=limit
            )
        )
    except Exception as e:
        console.print(f"[red]Error listing sessions:[/red] {e}")
        raise typer.Exit(code=1)

    if format == "json":
        output = [
            {
                "id": str(r.id),
                "session_type": r.session_type.value,
                "status": r.status.value,
                "current_state": r.current_state,
                "started_at": r.started_at.isoformat(),
                "completed_at": r.completed_at.isoformat() if r.completed_at else None,
            }
            for r in records
        ]
        console.print(json.dumps(output, indent=2))
        return

    if not records:
        console.print("[yellow]No sessions found[/yellow]")
        return

    table = Table(title="Governance Sessions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type", style="bold")
    table.add_column("Status")
    table.add_column("State", style="magenta")
    table.add_column("Started", style="dim")

    for r in records:
        color = STATUS_COLORS.get(r.status.value, "white")
        table.add_row(
            str(r.id),
            r.session_type.value,
            f"[{color}]{r.status.value}[/{color}]",
            r.current_state,
            r.started_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command()
def show(
    session_id: Annotated[str, typer.Argument(help="Session UUID")],
) -> None:
    """Show a session's progress and, once completed, its summary or report."""
    from quorum.main import get_app_context

    ctx = get_app_context()
    sid = _parse_uuid(session_id)

    try:
        record = ctx.run(lambda session: get_governance_session(session, sid))
    except Exception as e:
        console.print(f"[red]Error loading session:[/red] {e}")
        raise typer.Exit(code=1)

    if record is None:
        console.print(f"[red]Session not found:[/red] {session_id}")
        raise typer.Exit(code=1)

    transcript = record.data_json.get("transcript", [])
    console.print(
        Panel(
            f"[bold]ID:[/bold] {record.id}\n"
            f"[bold]Type:[/bold] {record.session_type.value}\n"
            f"[bold]Status:[/bold] {record.status.value}\n"
            f"[bold]State:[/bold] {record.current_state}\n"
            f"[bold]Skips used:[/bold] {record.vagueness_skip_count}\n"
            f"[bold]Answers:[/bold] {len(transcript)}\n"
            f"[bold]Started:[/bold] {record.started_at.strftime('%Y-%m-%d %H:%M:%S')}",
            title="Governance Session",
            border_style="cyan",
        )
    )
    if record.output_markdown:
        console.print(Markdown(record.output_markdown))


@app.command()
def abandon(
    session_id: Annotated[str, typer.Argument(help="Session UUID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Abandon an in-progress session so a new one can be started."""
    from quorum.main import get_app_context

    ctx = get_app_context()
    sid = _parse_uuid(session_id)

    if not yes:
        typer.confirm(f"Abandon session {session_id}?", abort=True)

    async def _abandon(session: AsyncSession) -> GovernanceSession | None:
        async with session.begin():
            record = await get_governance_session(session, sid)
            if record is None or record.status is not SessionStatus.in_progress:
                return None
            return await abandon_governance_session(session, record)

    try:
        record = ctx.run(_abandon)
    except Exception as e:
        console.print(f"[red]Error abandoning session:[/red] {e}")
        raise typer.Exit(code=1)

    if record is None:
        console.print(f"[red]No in-progress session with ID:[/red] {session_id}")
        raise typer.Exit(code=1)

    console.print(f"[green]Abandoned[/green] {record.session_type.value} session {record.id}")
