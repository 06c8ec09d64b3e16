"""Quarterly Review session endpoints.

One POST per Quarterly transition, plus start, load, resume, abandon and a
lookup of the bet Q1 will evaluate.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from quorum.governance.enums import BetStatus
from quorum.governance.errors import GovernanceError
from quorum.governance.quarterly_data import EvidenceEntry
from quorum.governance.quarterly_service import QuarterlyService
from quorum.logging import get_logger
from quorum.web.routes.common import (
    AnswerRequest,
    SensitivityGateRequest,
    SessionResponse,
    StartSessionRequest,
    get_quarterly_service,
    http_error,
    run_transition,
)

logger = get_logger(__name__)


class OpenBetResponse(BaseModel):
    id: uuid.UUID
    prediction: str
    wrong_if: str
    status: str
    created_at: datetime | None


class BetEvaluationRequest(BaseModel):
    """Verdict on the open bet.

    Attributes:
        status: correct, wrong or expired.
        rationale: Why the bet resolved this way.
        evidence: Evidence offered for the verdict.
    """

    status: BetStatus
    rationale: str | None = None
    evidence: list[EvidenceEntry] = Field(default_factory=list)


class NewBetRequest(BaseModel):
    prediction: str = Field(..., min_length=1)
    wrong_if: str = Field(..., min_length=1)
    duration_days: int | None = Field(default=None, ge=1)


class BoardAnswerRequest(BaseModel):
    response: str = Field(..., min_length=1)


def create_quarterly_router() -> APIRouter:
    """Create Quarterly Review session routes.

    Routes:
        POST /quarterly/sessions/ - Start a Quarterly session
        GET /quarterly/sessions/in-progress - Resume target, if any
        GET /quarterly/sessions/open-bet - The bet awaiting evaluation
        GET /quarterly/sessions/{id} - Load a session
        DELETE /quarterly/sessions/{id} - Abandon a session
        POST /quarterly/sessions/{id}/<transition> - Apply a transition
    """
    router = APIRouter(prefix="/quarterly/sessions", tags=["quarterly"])

    @router.post("/", response_model=SessionResponse, status_code=201)
    async def start_quarterly(
        body: StartSessionRequest | None = None,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        mode = body.abstraction_mode if body else None
        return await run_transition("quarterly_start_rejected", service.start_session(mode))

    @router.get("/in-progress", response_model=SessionResponse)
    async def get_in_progress(
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        try:
            view = await service.get_in_progress_session()
        except GovernanceError as exc:
            raise http_error(exc) from exc
        if view is None:
            raise HTTPException(status_code=404, detail="No Quarterly session in progress")
        return SessionResponse.from_view(view)

    @router.get("/open-bet", response_model=OpenBetResponse)
    async def get_open_bet(
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> OpenBetResponse:
        bet = await service.get_open_bet()
        if bet is None:
            raise HTTPException(status_code=404, detail="No open bet")
        return OpenBetResponse(
            id=bet.bet_id,
            prediction=bet.prediction,
            wrong_if=bet.wrong_if,
            status=bet.status.value,
            created_at=bet.created_at,
        )

    @router.get("/{session_id}", response_model=SessionResponse)
    async def get_quarterly(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition("quarterly_load_rejected", service.load_session(session_id))

    @router.delete("/{session_id}", response_model=SessionResponse)
    async def abandon_quarterly(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_abandon_rejected", service.abandon_session(session_id)
        )

    # Gates

    @router.post("/{session_id}/sensitivity-gate", response_model=SessionResponse)
    async def sensitivity_gate(
        session_id: uuid.UUID,
        body: SensitivityGateRequest,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected",
            service.set_sensitivity_gate(session_id, body.abstraction_mode, body.remember),
        )

    @router.post("/{session_id}/prerequisites", response_model=SessionResponse)
    async def check_prerequisites(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected", service.check_prerequisites(session_id)
        )

    @router.post("/{session_id}/recent-report/acknowledge", response_model=SessionResponse)
    async def acknowledge_recent_report(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected", service.acknowledge_recent_report(session_id)
        )

    # Q1

    @router.post("/{session_id}/bet-evaluation", response_model=SessionResponse)
    async def evaluate_bet(
        session_id: uuid.UUID,
        body: BetEvaluationRequest,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected",
            service.evaluate_bet(session_id, body.status, body.rationale, body.evidence),
        )

    @router.post("/{session_id}/bet-evaluation/skip", response_model=SessionResponse)
    async def skip_bet_evaluation(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected", service.skip_bet_evaluation(session_id)
        )

    # Reflection questions

    @router.post("/{session_id}/answer", response_model=SessionResponse)
    async def answer(
        session_id: uuid.UUID,
        body: AnswerRequest,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected", service.answer(session_id, body.answer)
        )

    @router.post("/{session_id}/skip", response_model=SessionResponse)
    async def skip(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition("quarterly_skip_rejected", service.skip(session_id))

    # Q6, Q9, Q10

    @router.post("/{session_id}/health-trend", response_model=SessionResponse)
    async def calculate_health_trend(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected", service.calculate_health_trend(session_id)
        )

    @router.post("/{session_id}/triggers", response_model=SessionResponse)
    async def check_triggers(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected", service.check_triggers(session_id)
        )

    @router.post("/{session_id}/new-bet", response_model=SessionResponse)
    async def create_new_bet(
        session_id: uuid.UUID,
        body: NewBetRequest,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected",
            service.create_new_bet(
                session_id, body.prediction, body.wrong_if, body.duration_days
            ),
        )

    # Board interrogation

    @router.post("/{session_id}/board/question", response_model=SessionResponse)
    async def prepare_board_question(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected", service.prepare_board_question(session_id)
        )

    @router.post("/{session_id}/board/answer", response_model=SessionResponse)
    async def answer_board(
        session_id: uuid.UUID,
        body: BoardAnswerRequest,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_transition_rejected", service.answer_board(session_id, body.response)
        )

    # Finalize

    @router.post("/{session_id}/report", response_model=SessionResponse)
    async def generate_report(
        session_id: uuid.UUID,
        service: QuarterlyService = Depends(get_quarterly_service),  # noqa: B008
    ) -> SessionResponse:
        return await run_transition(
            "quarterly_finalize_rejected", service.generate_report(session_id)
        )

    return router
