"""Engine and session factories for the journal database.

SQLite through aiosqlite is the default store for a single user's journal;
PostgreSQL through asyncpg works by changing ``database.url``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quorum.config import DatabaseConfig
from quorum.database.models import Base


def _ensure_sqlite_directory(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:" and not database.startswith("file:"):
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create the async engine described by ``config``.

    For a SQLite file the parent directory is created if needed. Pool sizing
    only applies to server databases.
    """
    kwargs: dict[str, Any] = {"echo": config.echo}
    if config.is_sqlite:
        _ensure_sqlite_directory(config.url)
    else:
        kwargs.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_pre_ping=True,
        )
    return create_async_engine(config.url, **kwargs)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table that does not exist yet.

    Intended for local SQLite stores and tests; deployments use Alembic.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
