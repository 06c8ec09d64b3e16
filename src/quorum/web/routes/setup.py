"""Setup session endpoints.

One POST per Setup transition, plus start, load, resume and abandon. Every
endpoint returns the full session so a client can render whichever state it
lands in.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from quorum.governance.errors import GovernanceError
from quorum.governance.setup_data import DraftProblem, Persona
from quorum.governance.setup_service import SetupService
from quorum.logging import get_logger
from quorum.web.routes.common import (
    SensitivityGateRequest,
    SessionResponse,
    StartSessionRequest,
    get_setup_service,
    http_error,
    run_transition,
)

logger = get_logger(__name__)


class TimeAllocationRequest(BaseModel):
    """Allocation percents, one per collected problem, in problem order."""

    percents: list[int] = Field(..., min_length=1)


def create_setup_router() -> APIRouter:
    """Create Setup session routes.

    Routes:
        POST /setup/sessions/ - Start a Setup session
        GET /setup/sessions/in-progress - Resume target, if any
        GET /setup/sessions/{id} - Load a session
        DELETE /setup/sessions/{id} - Abandon a session
        POST /setup/sessions/{id}/<transition> - Apply a transition
    """
    router = APIRouter(prefix="/setup/sessions", tags=["setup"])

    @router.post("/", response_model=SessionResponse, status_code=201)
    async def start_setup(
        body: StartSessionRequest | None = None,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        mode = body.abstraction_mode if body else None
        return await run_transition("setup_start_rejected", service.start_session(mode))

    @router.get("/in-progress", response_model=SessionResponse)
    async def get_in_progress(
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        try:
            view = await service.get_in_progress_session()
        except GovernanceError as exc:
            raise http_error(exc) from exc
        if view is None:
            raise HTTPException(status_code=404, detail="No Setup session in progress")
        return SessionResponse.from_view(view)

    @router.get("/{session_id}", response_model=SessionResponse)
    async def get_setup(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition("setup_load_rejected", service.load_session(session_id))

    @router.delete("/{session_id}", response_model=SessionResponse)
    async def abandon_setup(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_abandon_rejected", service.abandon_session(session_id)
        )

    @router.post("/{session_id}/sensitivity-gate", response_model=SessionResponse)
    async def sensitivity_gate(
        session_id: uuid.UUID,
        body: SensitivityGateRequest,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected",
            service.set_sensitivity_gate(session_id, body.abstraction_mode, body.remember),
        )

    # Problems

    @router.post("/{session_id}/problems", response_model=SessionResponse)
    async def save_problem(
        session_id: uuid.UUID,
        problem: DraftProblem,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.save_problem(session_id, problem)
        )

    @router.post("/{session_id}/problems/validate", response_model=SessionResponse)
    async def validate_problem(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.validate_and_advance(session_id)
        )

    @router.post("/{session_id}/problems/add", response_model=SessionResponse)
    async def add_problem(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.add_another_problem(session_id)
        )

    # Time allocation and health

    @router.post("/{session_id}/time-allocation/start", response_model=SessionResponse)
    async def start_time_allocation(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.proceed_to_time_allocation(session_id)
        )

    @router.put("/{session_id}/time-allocation", response_model=SessionResponse)
    async def update_time_allocation(
        session_id: uuid.UUID,
        body: TimeAllocationRequest,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected",
            service.update_time_allocations(session_id, body.percents),
        )

    @router.post("/{session_id}/time-allocation/confirm", response_model=SessionResponse)
    async def confirm_time_allocation(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.proceed_from_time_allocation(session_id)
        )

    @router.post("/{session_id}/health", response_model=SessionResponse)
    async def calculate_health(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.calculate_health(session_id)
        )

    # Board

    @router.post("/{session_id}/board/core", response_model=SessionResponse)
    async def create_core_roles(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.create_core_roles(session_id)
        )

    @router.post("/{session_id}/board/growth", response_model=SessionResponse)
    async def create_growth_roles(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.create_growth_roles(session_id)
        )

    @router.post("/{session_id}/board/personas", response_model=SessionResponse)
    async def create_personas(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.create_personas(session_id)
        )

    @router.put("/{session_id}/board/{member_index}/persona", response_model=SessionResponse)
    async def update_persona(
        session_id: uuid.UUID,
        member_index: int,
        persona: Persona,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected",
            service.update_persona(session_id, member_index, persona),
        )

    # Triggers and publish

    @router.post("/{session_id}/triggers", response_model=SessionResponse)
    async def define_triggers(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "setup_transition_rejected", service.define_triggers(session_id)
        )

    @router.post("/{session_id}/publish", response_model=SessionResponse)
    async def publish(
        session_id: uuid.UUID,
        service: SetupService = Depends(get_setup_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition("setup_publish_rejected", service.publish(session_id))

    return router
