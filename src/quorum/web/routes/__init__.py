"""FastAPI route definitions for the Quorum API."""

from __future__ import annotations

from quorum.web.routes.common import AnswerRequest, SessionResponse
from quorum.web.routes.health import (
    LivenessResponse,
    ReadinessResponse,
    create_health_router,
)
from quorum.web.routes.quarterly import (
    BetEvaluationRequest,
    BoardAnswerRequest,
    NewBetRequest,
    create_quarterly_router,
)
from quorum.web.routes.quick import create_quick_router
from quorum.web.routes.setup import TimeAllocationRequest, create_setup_router

__all__ = [
    "AnswerRequest",
    "SessionResponse",
    # Health
    "LivenessResponse",
    "ReadinessResponse",
    "create_health_router",
    # Setup
    "TimeAllocationRequest",
    "create_setup_router",
    # Quarterly
    "BetEvaluationRequest",
    "BoardAnswerRequest",
    "NewBetRequest",
    "create_quarterly_router",
    # Quick
    "create_quick_router",
]
