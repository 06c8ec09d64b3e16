"""Contracts the governance engines require from external collaborators.

Classifiers and generators are black boxes to the engines. Any exception they
raise is converted into a retryable CollaboratorError by ``invoke`` so that no
partial state is produced and the caller can re-run the same transition.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, TypeVar

import structlog

from quorum.governance.enums import BoardRoleType, ProblemDirection
from quorum.governance.errors import CollaboratorError, GovernanceError

if TYPE_CHECKING:
    from quorum.governance.quarterly_data import QuarterlySessionData
    from quorum.governance.quick_data import QuickOutput, QuickProblem, QuickSessionData
    from quorum.governance.setup_data import DraftProblem, Persona

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class VaguenessResult:
    """Verdict of a vagueness classifier."""

    is_vague: bool
    reason: str | None = None
    missing_elements: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RoleAnchoring:
    """Problem a role is tied to, and what the role demands about it.

    ``problem_index`` is None when the generator gave no usable anchor.
    """

    problem_index: int | None
    demand: str


@dataclass(frozen=True)
class HealthStatements:
    risk_statement: str
    opportunity_statement: str


@dataclass(frozen=True)
class DirectionEvaluation:
    """Direction given to a Quick problem from its three loop answers."""

    direction: ProblemDirection
    rationale: str
    confidence: str = "medium"


class VaguenessClassifier(Protocol):
    async def classify(self, question: str, answer: str) -> VaguenessResult: ...


class AnchoringGenerator(Protocol):
    async def generate_anchoring(
        self,
        problems: Sequence[DraftProblem],
        roles: Sequence[BoardRoleType],
        focus_on_appreciating: bool = False,
    ) -> list[RoleAnchoring]: ...


class PersonaGenerator(Protocol):
    async def generate_persona(
        self,
        role: BoardRoleType,
        anchored_problem: DraftProblem | None = None,
        demand: str | None = None,
    ) -> Persona: ...


class HealthStatementGenerator(Protocol):
    async def generate_health_statements(
        self,
        problems: Sequence[DraftProblem],
        appreciating_percent: int,
        depreciating_percent: int,
        stable_percent: int,
    ) -> HealthStatements: ...


class BoardQuestionGenerator(Protocol):
    async def generate_board_question(
        self,
        role: BoardRoleType,
        persona_name: str,
        anchored_problem_id: uuid.UUID | None,
        anchored_demand: str | None,
        session_context: str,
    ) -> str: ...


class ReportGenerator(Protocol):
    async def generate_report(self, session_data: QuarterlySessionData) -> str: ...


class TrendDescriptionGenerator(Protocol):
    async def generate_trend_description(
        self,
        previous_appreciating: int,
        current_appreciating: int,
        previous_depreciating: int,
        current_depreciating: int,
    ) -> str: ...


class ProblemExtractor(Protocol):
    async def extract_problems(self, answer: str) -> list[str]: ...


class DirectionEvaluator(Protocol):
    async def evaluate_direction(self, problem: QuickProblem) -> DirectionEvaluation: ...


class QuickOutputGenerator(Protocol):
    async def generate_quick_output(self, session_data: QuickSessionData) -> QuickOutput: ...


async def invoke(collaborator: str, awaitable: Awaitable[T]) -> T:
    """Await a collaborator call, normalizing failures to CollaboratorError.

    Args:
        collaborator: Name used in logs and in the raised error.
        awaitable: The pending collaborator call.

    Returns:
        Whatever the collaborator returned.

    Raises:
        CollaboratorError: If the collaborator raised anything other than a
            GovernanceError (which is re-raised unchanged).
    """
    try:
        return await awaitable
    except GovernanceError:
        raise
    except Exception as exc:
        retryable = getattr(exc, "retryable", True)
        logger.warning(
            "collaborator_failed",
            collaborator=collaborator,
            error=str(exc),
            error_type=type(exc).__name__,
            retryable=retryable,
        )
        raise CollaboratorError(collaborator, str(exc), retryable=retryable) from exc
