"""Shared pieces of the governance routes: dependencies, the session response
model, and the mapping from governance errors to HTTP errors."""

from __future__ import annotations

import uuid
from collections.abc import Awaitable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from fastapi import HTTPException, Request
from pydantic import BaseModel, Field

from quorum.governance.errors import (
    CollaboratorError,
    FinalizeError,
    GovernanceError,
    InvalidTransitionError,
    PrerequisiteError,
    SessionInProgressError,
    SessionNotFoundError,
    SessionValidationError,
)
from quorum.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from quorum.governance.quarterly_service import QuarterlyService
    from quorum.governance.quick_service import QuickService
    from quorum.governance.service import SessionView
    from quorum.governance.setup_service import SetupService

logger = get_logger(__name__)


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Dependency that retrieves the session factory from app state."""
    return request.app.state.session_factory  # type: ignore[no-any-return]


def get_setup_service(request: Request) -> SetupService:
    return request.app.state.setup_service  # type: ignore[no-any-return]


def get_quarterly_service(request: Request) -> QuarterlyService:
    return request.app.state.quarterly_service  # type: ignore[no-any-return]


def get_quick_service(request: Request) -> QuickService:
    return request.app.state.quick_service  # type: ignore[no-any-return]


class SessionResponse(BaseModel):
    """A governance session as returned by the API.

    Attributes:
        id: Session UUID.
        session_type: "quick", "setup" or "quarterly".
        status: "in_progress", "completed" or "abandoned".
        current_state: Tag of the workflow state.
        progress_percent: Fixed progress value for the current state.
        abstraction_mode: Whether names are being abstracted.
        vagueness_skip_count: Skips used so far (at most 2).
        data: Full session data.
        output_markdown: Setup summary, Quarterly report or Quick audit
            output, once completed.
        started_at: Session start timestamp.
        completed_at: Session completion timestamp.
    """

    id: uuid.UUID
    session_type: str
    status: str
    current_state: str
    progress_percent: int
    abstraction_mode: bool
    vagueness_skip_count: int
    data: dict[str, Any]
    output_markdown: str | None
    started_at: datetime
    completed_at: datetime | None

    @classmethod
    def from_view(cls, view: SessionView[Any]) -> SessionResponse:
        data = view.data
        return cls(
            id=view.session_id,
            session_type=view.session_type.value,
            status=view.status.value,
            current_state=data.current_state.value,
            progress_percent=view.progress_percent,
            abstraction_mode=data.abstraction_mode,
            vagueness_skip_count=data.vagueness_skip_count,
            data=data.model_dump(mode="json"),
            output_markdown=view.output_markdown,
            started_at=view.started_at,
            completed_at=view.completed_at,
        )


class StartSessionRequest(BaseModel):
    abstraction_mode: bool | None = None


class SensitivityGateRequest(BaseModel):
    abstraction_mode: bool
    remember: bool = False


class AnswerRequest(BaseModel):
    answer: str = Field(..., min_length=1)


def http_error(exc: GovernanceError) -> HTTPException:
    """Map a governance error to the HTTP error callers should see."""
    if isinstance(exc, SessionNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (SessionInProgressError, InvalidTransitionError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PrerequisiteError):
        return HTTPException(
            status_code=409, detail={"message": str(exc), "missing": exc.missing}
        )
    if isinstance(exc, SessionValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, CollaboratorError):
        return HTTPException(
            status_code=503,
            detail={"message": str(exc), "retryable": exc.retryable},
        )
    if isinstance(exc, FinalizeError):
        return HTTPException(status_code=500, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


async def run_transition(event: str, call: Awaitable[SessionView[Any]]) -> SessionResponse:
    """Await a service call and convert its result or failure for the API.

    Args:
        event: Name logged when the call is rejected.
        call: The pending service call.
    """
    try:
        view = await call
    except GovernanceError as exc:
        logger.warning(event, error=str(exc), error_type=type(exc).__name__)
        raise http_error(exc) from exc
    return SessionResponse.from_view(view)
