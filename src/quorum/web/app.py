"""FastAPI application factory for Quorum.

Creates the app with CORS and request logging middleware, health endpoints
and the Setup, Quarterly and Quick session routes. The lifespan opens the
database and the Claude client and wires the governance services onto
app.state.

Example usage:
    >>> from quorum.config import load_config
    >>> from quorum.web.app import create_app
    >>>
    >>> app = create_app(load_config())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="127.0.0.1", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quorum import __version__
from quorum.config import GovernanceConfig, QuorumConfig
from quorum.database.connection import create_schema, get_engine, get_session_factory
from quorum.governance.quarterly_engine import QuarterlyEngine
from quorum.governance.quarterly_service import QuarterlyService
from quorum.governance.quick_engine import QuickEngine
from quorum.governance.quick_service import QuickService
from quorum.governance.setup_engine import SetupEngine
from quorum.governance.setup_service import SetupService
from quorum.governance.unit_of_work import SessionFactory
from quorum.governance.vagueness import VaguenessGate
from quorum.intelligence.claude_client import ClaudeClient
from quorum.intelligence.quarterly_ai import QuarterlyAIService
from quorum.intelligence.quick_ai import QuickAIService
from quorum.intelligence.setup_ai import SetupAIService
from quorum.intelligence.vagueness import ClaudeVaguenessClassifier
from quorum.logging import get_logger
from quorum.web.middleware import RequestLoggingMiddleware
from quorum.web.routes.health import create_health_router
from quorum.web.routes.quarterly import create_quarterly_router
from quorum.web.routes.quick import create_quick_router
from quorum.web.routes.setup import create_setup_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


def build_services(
    session_factory: SessionFactory,
    client: ClaudeClient,
    governance: GovernanceConfig,
) -> tuple[SetupService, QuarterlyService, QuickService]:
    """Wire the governance services to Claude-backed collaborators."""
    setup_ai = SetupAIService(client)
    quarterly_ai = QuarterlyAIService(client)
    quick_ai = QuickAIService(client)
    gate = VaguenessGate(ClaudeVaguenessClassifier(client))
    setup_engine = SetupEngine(
        anchoring=setup_ai,
        personas=setup_ai,
        health_statements=setup_ai,
        annual_trigger_days=governance.annual_trigger_days,
    )
    quarterly_engine = QuarterlyEngine(
        gate=gate,
        board_questions=quarterly_ai,
        reports=quarterly_ai,
        trends=quarterly_ai,
        recent_report_days=governance.recent_report_days,
    )
    return (
        SetupService(session_factory, setup_engine),
        QuarterlyService(
            session_factory,
            quarterly_engine,
            bet_duration_days=governance.bet_duration_days,
        ),
        QuickService(
            session_factory,
            QuickEngine(gate, problems=quick_ai, directions=quick_ai, outputs=quick_ai),
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database and Claude client, wire services, and clean up on exit."""
    config: QuorumConfig = app.state.config
    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine = get_engine(config.database)
    if config.database.is_sqlite:
        await create_schema(engine)
    session_factory = get_session_factory(engine)

    if not config.anthropic.api_key:
        logger.warning("anthropic_api_key_missing")
    client = ClaudeClient(config.anthropic)
    await client.open()

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.claude_client = client
    (
        app.state.setup_service,
        app.state.quarterly_service,
        app.state.quick_service,
    ) = build_services(session_factory, client, config.governance)
    logger.info("app_startup_complete", database_url=config.database.url)

    yield

    logger.info("app_shutdown_begin")
    await client.close()
    await engine.dispose()
    logger.info("app_shutdown_complete")


def create_app(config: QuorumConfig | None = None) -> FastAPI:
    """Create and configure the Quorum API.

    Args:
        config: Optional QuorumConfig. If None, creates default config.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = QuorumConfig()

    app = FastAPI(
        title="Quorum",
        version=__version__,
        description="Governance sessions: portfolio setup, quarterly review and quick audit",
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(create_health_router())
    app.include_router(create_setup_router())
    app.include_router(create_quarterly_router())
    app.include_router(create_quick_router())

    logger.info("app_created", cors_origins=config.web.cors_origins, version=__version__)
    return app
