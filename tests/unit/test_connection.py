"""Unit tests for engine and session factory construction."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import text

from quorum.config import DatabaseConfig
from quorum.database.connection import create_schema, get_engine, get_session_factory


def test_sqlite_file_directory_is_created(tmp_path: Path) -> None:
    db_path = tmp_path / "journal" / "data" / "quorum.db"

    engine = get_engine(DatabaseConfig(url=f"sqlite+aiosqlite:///{db_path}"))

    assert db_path.parent.is_dir()
    assert engine.url.database == str(db_path)


def test_server_database_uses_pool_settings() -> None:
    config = DatabaseConfig(
        url="postgresql+asyncpg://quorum@localhost/quorum", pool_size=3, max_overflow=2
    )

    engine = get_engine(config)

    assert engine.pool.size() == 3


@pytest.mark.asyncio
async def test_schema_and_sessions_on_memory_database() -> None:
    engine = get_engine(DatabaseConfig(url="sqlite+aiosqlite:///:memory:"))
    try:
        await create_schema(engine)
        factory = get_session_factory(engine)
        async with factory() as session:
            result = await session.execute(text("SELECT 1"))
            assert result.scalar_one() == 1
        assert factory.kw["expire_on_commit"] is False
    finally:
        await engine.dispose()
