"""Quick Version session endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException

from quorum.governance.errors import GovernanceError
from quorum.governance.quick_service import QuickService
from quorum.web.routes.common import (
    AnswerRequest,
    SensitivityGateRequest,
    SessionResponse,
    StartSessionRequest,
    get_quick_service,
    http_error,
    run_transition,
)


def create_quick_router() -> APIRouter:
    """Create Quick Version session routes.

    Routes:
        POST /quick/sessions/ - Start a Quick session
        GET /quick/sessions/in-progress - Resume target, if any
        GET /quick/sessions/{id} - Load a session
        DELETE /quick/sessions/{id} - Abandon a session
        POST /quick/sessions/{id}/<transition> - Apply a transition
    """
    router = APIRouter(prefix="/quick/sessions", tags=["quick"])

    @router.post("/", response_model=SessionResponse, status_code=201)
    async def start_quick(
        body: StartSessionRequest | None = None,
        service: QuickService = Depends(get_quick_service),  # noqa: B008
    ) -> SessionResponse:
        mode = body.abstraction_mode if body else None
        return await run_transition("quick_start_rejected", service.start_session(mode))

    @router.get("/in-progress", response_model=SessionResponse)
    async def get_in_progress(
        service: QuickService = Depends(get_quick_service),  # noqa: B008
    ) -> SessionResponse:
        try:
            view = await service.get_in_progress_session()
        except GovernanceError as exc:
            raise http_error(exc) from exc
        if view is None:
            raise HTTPException(status_code=404, detail="No Quick session in progress")
        return SessionResponse.from_view(view)

    @router.get("/{session_id}", response_model=SessionResponse)
    async def get_quick(
        session_id: uuid.UUID,
        service: QuickService = Depends(get_quick_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition("quick_load_rejected", service.load_session(session_id))

    @router.delete("/{session_id}", response_model=SessionResponse)
    async def abandon_quick(
        session_id: uuid.UUID,
        service: QuickService = Depends(get_quick_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition("quick_abandon_rejected", service.abandon_session(session_id))

    @router.post("/{session_id}/sensitivity-gate", response_model=SessionResponse)
    async def sensitivity_gate(
        session_id: uuid.UUID,
        body: SensitivityGateRequest,
        service: QuickService = Depends(get_quick_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quick_transition_rejected",
            service.set_sensitivity_gate(session_id, body.abstraction_mode, body.remember),
        )

    @router.post("/{session_id}/answer", response_model=SessionResponse)
    async def answer(
        session_id: uuid.UUID,
        body: AnswerRequest,
        service: QuickService = Depends(get_quick_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quick_transition_rejected", service.answer(session_id, body.answer)
        )

    @router.post("/{session_id}/skip", response_model=SessionResponse)
    async def skip(
        session_id: uuid.UUID,
        service: QuickService = Depends(get_quick_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition("quick_skip_rejected", service.skip(session_id))

    @router.post("/{session_id}/output", response_model=SessionResponse)
    async def generate_output(
        session_id: uuid.UUID,
        service: QuickService = Depends(get_quick_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quick_finalize_rejected", service.generate_output(session_id)
        )

    return router
