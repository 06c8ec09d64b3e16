"""Unit tests for FastAPI application setup.

Tests cover:
- Application factory creates FastAPI instance
- CORS and request logging middleware are configured
- Health and readiness endpoints
- Correlation ID handling
- Mapping of governance errors to HTTP errors
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from httpx import ASGITransport, AsyncClient

from quorum.config import QuorumConfig, WebConfig
from quorum.governance.errors import (
    CollaboratorError,
    FinalizeError,
    GovernanceError,
    InvalidTransitionError,
    PrerequisiteError,
    SessionInProgressError,
    SessionNotFoundError,
    SessionValidationError,
    SkipQuotaExceededError,
)
from quorum.web.app import create_app
from quorum.web.middleware import RequestLoggingMiddleware
from quorum.web.routes.common import http_error


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestCreateApp:
    """Test application factory function."""

    def test_returns_fastapi_instance(self) -> None:
        assert isinstance(create_app(), FastAPI)

    def test_app_metadata(self) -> None:
        app = create_app()
        assert app.title == "Quorum"
        assert app.version == "0.1.0"

    def test_app_stores_config_in_state(self) -> None:
        config = QuorumConfig()
        app = create_app(config)
        assert app.state.config is config

    def test_registers_session_routes(self) -> None:
        paths = {route.path for route in create_app().routes}
        assert "/setup/sessions/" in paths
        assert "/quarterly/sessions/{session_id}/answer" in paths
        assert "/quick/sessions/{session_id}/output" in paths
        assert "/health/ready" in paths


class TestMiddleware:
    def test_cors_uses_config_origins(self) -> None:
        origins = ["https://journal.example.com"]
        app = create_app(QuorumConfig(web=WebConfig(cors_origins=origins)))

        cors = [m for m in app.user_middleware if m.cls == CORSMiddleware]
        assert len(cors) == 1
        assert cors[0].kwargs["allow_origins"] == origins
        assert cors[0].kwargs["allow_credentials"] is True

    def test_logging_middleware_is_registered(self) -> None:
        app = create_app()
        assert any(m.cls == RequestLoggingMiddleware for m in app.user_middleware)


class TestHealthEndpoints:
    @pytest.fixture
    def app_with_healthy_db(self) -> FastAPI:
        app = create_app()
        mock_session = AsyncMock()
        mock_session.execute = AsyncMock(return_value=MagicMock())
        mock_session_factory = MagicMock()
        mock_session_factory.return_value.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session_factory.return_value.__aexit__ = AsyncMock(return_value=None)
        app.state.session_factory = mock_session_factory
        return app

    @pytest.fixture
    def app_with_unhealthy_db(self) -> FastAPI:
        app = create_app()
        mock_session_factory = MagicMock()
        mock_session_factory.return_value.__aenter__ = AsyncMock(
            side_effect=Exception("Database connection failed")
        )
        mock_session_factory.return_value.__aexit__ = AsyncMock(return_value=None)
        app.state.session_factory = mock_session_factory
        return app

    @pytest.mark.asyncio
    async def test_liveness(self) -> None:
        async with _client(create_app()) as client:
            response = await client.get("/health/")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": "0.1.0"}

    @pytest.mark.asyncio
    async def test_readiness_when_db_healthy(self, app_with_healthy_db: FastAPI) -> None:
        async with _client(app_with_healthy_db) as client:
            response = await client.get("/health/ready")
        assert response.json() == {"status": "ok", "database": "connected"}

    @pytest.mark.asyncio
    async def test_readiness_when_db_fails(self, app_with_unhealthy_db: FastAPI) -> None:
        async with _client(app_with_unhealthy_db) as client:
            response = await client.get("/health/ready")
        assert response.status_code == 503
        assert response.json() == {"status": "unhealthy", "database": "disconnected"}


class TestCorrelationId:
    @pytest.mark.asyncio
    async def test_response_includes_generated_id(self) -> None:
        async with _client(create_app()) as client:
            response = await client.get("/health/")
        assert response.headers["X-Correlation-ID"]

    @pytest.mark.asyncio
    async def test_response_echoes_provided_id(self) -> None:
        async with _client(create_app()) as client:
            response = await client.get(
                "/health/", headers={"X-Correlation-ID": "journal-req-42"}
            )
        assert response.headers["X-Correlation-ID"] == "journal-req-42"


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error,status",
        [
            (SessionNotFoundError("abc"), 404),
            (SessionInProgressError("abc", "setup"), 409),
            (InvalidTransitionError("publish", "skip"), 409),
            (SessionValidationError("Allocation total must be between 90% and 110%"), 422),
            (SkipQuotaExceededError(2, 2), 422),
            (FinalizeError("publish", "disk full"), 500),
            (GovernanceError("unexpected"), 400),
        ],
    )
    def test_status_codes(self, error: GovernanceError, status: int) -> None:
        assert http_error(error).status_code == status

    def test_prerequisites_list_what_is_missing(self) -> None:
        exc = http_error(PrerequisiteError(["No portfolio.", "No board."]))
        assert exc.status_code == 409
        assert exc.detail == {
            "message": "Prerequisites not met: No portfolio. No board.",
            "missing": ["No portfolio.", "No board."],
        }

    def test_collaborator_errors_carry_retryable(self) -> None:
        exc = http_error(CollaboratorError("report_generator", "timed out"))
        assert exc.status_code == 503
        assert exc.detail == {"message": "report_generator failed: timed out", "retryable": True}

    @pytest.mark.asyncio
    async def test_route_maps_service_error(self) -> None:
        session_id = uuid.uuid4()
        app = create_app()
        service = MagicMock()
        service.load_session = AsyncMock(side_effect=SessionNotFoundError(session_id))
        app.state.setup_service = service

        async with _client(app) as client:
            response = await client.get(f"/setup/sessions/{session_id}")

        assert response.status_code == 404
        assert str(session_id) in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_no_session_in_progress(self) -> None:
        app = create_app()
        service = MagicMock()
        service.get_in_progress_session = AsyncMock(return_value=None)
        app.state.quarterly_service = service

        async with _client(app) as client:
            response = await client.get("/quarterly/sessions/in-progress")

        assert response.status_code == 404
