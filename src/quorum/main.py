"""Command line interface for Quorum.

Usage:
    quorum serve --port 8000
    quorum init-db
    quorum status
    quorum sessions list --type quarterly
    quorum sessions show <session-id>
    quorum bets list --status open
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.cli import bets as bets_cli
from quorum.cli import sessions as sessions_cli
from quorum.config import QuorumConfig, load_config
from quorum.database.connection import create_schema, get_engine, get_session_factory
from quorum.database.queries.bet import get_latest_open_bet
from quorum.database.queries.portfolio import get_latest_version_number, list_active_triggers
from quorum.database.queries.session import get_in_progress_session
from quorum.logging import setup_logging

T = TypeVar("T")

app = typer.Typer(
    name="quorum",
    help="Quorum: governance sessions for a personal journal",
    no_args_is_help=True,
)
app.add_typer(sessions_cli.app, name="sessions", help="Inspect governance sessions")
app.add_typer(bets_cli.app, name="bets", help="Inspect bets")

console = Console()


class AppContext:
    """Configuration and database handles for one CLI invocation.

    Attributes:
        config: Loaded Quorum configuration
        engine: Async SQLAlchemy engine
        session_factory: Factory for creating database sessions
    """

    def __init__(self, config: QuorumConfig):
        self.config = config
        self.engine = get_engine(config.database)
        self.session_factory = get_session_factory(self.engine)

    def run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run one database operation to completion from synchronous code.

        Each call gets its own event loop, so the connection pool is disposed
        before the loop closes.
        """

        async def _run() -> T:
            try:
                async with self.session_factory() as session:
                    return await operation(session)
            finally:
                await self.engine.dispose()

        return asyncio.run(_run())


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    if _app_context is None:
        raise RuntimeError("CLI context is not initialized; the main callback has not run")
    return _app_context


def initialize_context(config: QuorumConfig) -> AppContext:
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Bind address (default: config web.host)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Bind port (default: config web.port)"),
    ] = None,
) -> None:
    """Serve the governance session API."""
    import uvicorn

    from quorum.web.app import create_app

    ctx = get_app_context()
    host = host or ctx.config.web.host
    port = port or ctx.config.web.port

    console.print(f"[bold cyan]Quorum API[/bold cyan] on http://{host}:{port}")
    console.print(f"[dim]Database:[/dim] {ctx.config.database.url}")
    uvicorn.run(create_app(ctx.config), host=host, port=port, log_level="info")


@app.command("init-db")
def init_db() -> None:
    """Create any missing tables in the configured database.

    Intended for local SQLite stores; PostgreSQL deployments should run
    ``alembic upgrade head`` instead.
    """
    ctx = get_app_context()

    try:
        ctx.run(lambda session: create_schema(ctx.engine))
    except Exception as e:
        console.print(f"[red]Could not create tables:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[green]Database ready:[/green] {ctx.config.database.url}")


@app.command()
def status() -> None:
    """Summarize the portfolio, the open bet and any unfinished session."""
    ctx = get_app_context()

    async def _collect(session: AsyncSession):
        return (
            await get_latest_version_number(session),
            await list_active_triggers(session),
            await get_latest_open_bet(session),
            await get_in_progress_session(session),
        )

    try:
        version, triggers, bet, in_progress = ctx.run(_collect)
    except Exception as e:
        console.print(f"[red]Error reading status:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Quorum", show_header=False)
    table.add_column("Item", style="bold")
    table.add_column("Value")
    table.add_row("Portfolio", f"version {version}" if version else "[yellow]not set up[/yellow]")
    met = sum(1 for t in triggers if t.is_met)
    table.add_row("Triggers", f"{len(triggers)} active, {met} met")
    table.add_row("Open bet", bet.prediction if bet else "-")
    if bet is not None:
        table.add_row("Bet due", bet.due_at.strftime("%Y-%m-%d"))
    table.add_row(
        "In progress",
        f"{in_progress.session_type.value} at {in_progress.current_state}" if in_progress else "-",
    )
    console.print(table)


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log at DEBUG in console format"),
    ] = False,
) -> None:
    """Load configuration, configure logging and open the database."""
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        config.logging.level = "DEBUG"
        config.logging.format = "console"
    setup_logging(config.logging)
    initialize_context(config)


if __name__ == "__main__":
    app()
