"""Pytest fixtures for integration tests.

Services run against an in-memory SQLite database with the scripted
collaborators from the shared conftest, so whole sessions can be driven end
to end without a model behind them.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from quorum.config import QuorumConfig
from quorum.database.models import Base
from quorum.governance.quarterly_engine import QuarterlyEngine
from quorum.governance.quarterly_service import QuarterlyService
from quorum.governance.quick_engine import QuickEngine
from quorum.governance.quick_service import QuickService
from quorum.governance.service import SessionView
from quorum.governance.setup_data import DraftProblem, SetupSessionData
from quorum.governance.setup_engine import SetupEngine
from quorum.governance.setup_service import SetupService
from quorum.web.app import create_app

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine with every table.

    StaticPool keeps one connection so every session sees the same database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session for direct query tests, rolled back afterwards."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def setup_service(
    session_factory: async_sessionmaker[AsyncSession], setup_engine: SetupEngine
) -> SetupService:
    return SetupService(session_factory, setup_engine)


@pytest.fixture
def quarterly_service(
    session_factory: async_sessionmaker[AsyncSession], quarterly_engine: QuarterlyEngine
) -> QuarterlyService:
    return QuarterlyService(session_factory, quarterly_engine, bet_duration_days=90)


@pytest.fixture
def quick_service(
    session_factory: async_sessionmaker[AsyncSession], quick_engine: QuickEngine
) -> QuickService:
    return QuickService(session_factory, quick_engine)


@pytest.fixture
def run_setup(setup_service: SetupService):
    """Drive a Setup session from start to publish with the given problems."""

    async def _run(problems: list[DraftProblem]) -> SessionView[SetupSessionData]:
        view = await setup_service.start_session()
        session_id = view.session_id
        await setup_service.set_sensitivity_gate(session_id, abstraction_mode=False)
        for index, problem in enumerate(problems):
            if index >= 3:
                await setup_service.add_another_problem(session_id)
            await setup_service.save_problem(session_id, problem)
            await setup_service.validate_and_advance(session_id)
        await setup_service.proceed_to_time_allocation(session_id)
        await setup_service.update_time_allocations(
            session_id, [p.time_allocation_percent for p in problems]
        )
        await setup_service.proceed_from_time_allocation(session_id)
        await setup_service.calculate_health(session_id)
        await setup_service.create_core_roles(session_id)
        await setup_service.create_growth_roles(session_id)
        await setup_service.create_personas(session_id)
        await setup_service.define_triggers(session_id, NOW)
        return await setup_service.publish(session_id)

    return _run


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    setup_service: SetupService,
    quarterly_service: QuarterlyService,
    quick_service: QuickService,
) -> FastAPI:
    """App with services wired directly; ASGITransport does not run the lifespan."""
    application = create_app(QuorumConfig())
    application.state.session_factory = session_factory
    application.state.setup_service = setup_service
    application.state.quarterly_service = quarterly_service
    application.state.quick_service = quick_service
    return application


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
