"""Integration tests for CLI commands.

Each test points the CLI at a SQLite file through a TOML config, creates the
schema with ``init-db`` and seeds rows with the query layer.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool
from typer.testing import CliRunner

from quorum.database.connection import get_session_factory
from quorum.database.queries.bet import create_bet
from quorum.database.queries.session import create_governance_session
from quorum.governance.enums import GovernanceSessionType
from quorum.main import app


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'quorum.db'}"


@pytest.fixture
def config_file(tmp_path: Path, db_url: str, cli_runner: CliRunner) -> Path:
    """Write a config for a fresh database and create its tables."""
    path = tmp_path / "quorum.toml"
    path.write_text(f'[database]\nurl = "{db_url}"\n\n[logging]\nlevel = "WARNING"\n')
    result = cli_runner.invoke(app, ["--config", str(path), "init-db"])
    assert result.exit_code == 0, result.output
    return path


def _seed(db_url: str) -> str:
    """Insert one Setup session and one open bet; return the session id."""

    async def _run() -> str:
        engine = create_async_engine(db_url, poolclass=NullPool)
        factory = get_session_factory(engine)
        try:
            async with factory() as session:
                async with session.begin():
                    record = await create_governance_session(
                        session,
                        session_type=GovernanceSessionType.setup,
                        current_state="collectProblem1",
                        abstraction_mode=False,
                        data_json={"transcript": [{"question": "Q", "answer": "A"}]},
                    )
                    await create_bet(session, "Lead two incidents", "None led", 90)
                    return str(record.id)
        finally:
            await engine.dispose()

    return asyncio.run(_run())


class TestInitDb:
    def test_reports_database(self, config_file: Path, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["--config", str(config_file), "init-db"])

        assert result.exit_code == 0
        assert "Database ready" in result.output

    def test_missing_config_file(self, tmp_path: Path, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["--config", str(tmp_path / "absent.toml"), "init-db"])

        assert result.exit_code != 0


class TestSessionsCLI:
    def test_list_empty(self, config_file: Path, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["--config", str(config_file), "sessions", "list"])

        assert result.exit_code == 0
        assert "No sessions found" in result.output

    def test_list_json(self, config_file: Path, db_url: str, cli_runner: CliRunner):
        session_id = _seed(db_url)

        result = cli_runner.invoke(
            app, ["--config", str(config_file), "sessions", "list", "--format", "json"]
        )

        assert result.exit_code == 0
        assert session_id in result.output
        assert "collectProblem1" in result.output

    def test_list_rejects_unknown_type(self, config_file: Path, cli_runner: CliRunner):
        result = cli_runner.invoke(
            app, ["--config", str(config_file), "sessions", "list", "--type", "monthly"]
        )

        assert result.exit_code == 1
        assert "Invalid filter" in result.output

    def test_show(self, config_file: Path, db_url: str, cli_runner: CliRunner):
        session_id = _seed(db_url)

        result = cli_runner.invoke(app, ["--config", str(config_file), "sessions", "show", session_id])

        assert result.exit_code == 0
        assert "Governance Session" in result.output
        assert "in_progress" in result.output

    def test_show_invalid_id(self, config_file: Path, cli_runner: CliRunner):
        result = cli_runner.invoke(
            app, ["--config", str(config_file), "sessions", "show", "not-a-uuid"]
        )

        assert result.exit_code == 1
        assert "Invalid session ID" in result.output

    def test_abandon(self, config_file: Path, db_url: str, cli_runner: CliRunner):
        session_id = _seed(db_url)

        result = cli_runner.invoke(
            app, ["--config", str(config_file), "sessions", "abandon", session_id, "--yes"]
        )
        assert result.exit_code == 0
        assert "Abandoned" in result.output

        result = cli_runner.invoke(app, ["--config", str(config_file), "sessions", "show", session_id])
        assert result.exit_code == 1
        assert "Session not found" in result.output


class TestBetsCLI:
    def test_list_open(self, config_file: Path, db_url: str, cli_runner: CliRunner):
        _seed(db_url)

        result = cli_runner.invoke(
            app, ["--config", str(config_file), "bets", "list", "--status", "open"]
        )

        assert result.exit_code == 0
        assert "Lead two incidents" in result.output

    def test_list_invalid_status(self, config_file: Path, cli_runner: CliRunner):
        result = cli_runner.invoke(
            app, ["--config", str(config_file), "bets", "list", "--status", "pending"]
        )

        assert result.exit_code == 1
        assert "Invalid status" in result.output


class TestStatusCLI:
    def test_fresh_database(self, config_file: Path, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["--config", str(config_file), "status"])

        assert result.exit_code == 0
        assert "not set up" in result.output
        assert "0 active, 0 met" in result.output

    def test_reports_open_bet_and_session(
        self, config_file: Path, db_url: str, cli_runner: CliRunner
    ):
        _seed(db_url)

        result = cli_runner.invoke(app, ["--config", str(config_file), "status"])

        assert result.exit_code == 0
        assert "Lead two incidents" in result.output
        assert "setup at collectProblem1" in result.output
