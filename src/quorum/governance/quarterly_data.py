"""Session data for the Quarterly Review workflow."""

from __future__ import annotations

import uuid
from typing import ClassVar

from pydantic import Field

from quorum.governance.enums import (
    BetStatus,
    BoardRoleType,
    EvidenceStrength,
    EvidenceType,
    RosterKind,
    TriggerType,
)
from quorum.governance.session_data import BaseSessionData, FrozenModel, ReflectionAnswer
from quorum.governance.states import QUARTERLY_PROGRESS, QuarterlyState

DEFAULT_BET_DURATION_DAYS = 90


class EvidenceEntry(FrozenModel):
    """Evidence offered while evaluating a bet."""

    description: str
    evidence_type: EvidenceType = EvidenceType.none
    strength: EvidenceStrength | None = None

    @property
    def effective_strength(self) -> EvidenceStrength:
        return self.strength or self.evidence_type.default_strength


class BetEvaluation(FrozenModel):
    """Outcome recorded for the last open bet."""

    bet_id: uuid.UUID
    prediction: str
    wrong_if: str
    status: BetStatus
    rationale: str | None = None
    evidence: tuple[EvidenceEntry, ...] = ()


class HealthTrend(FrozenModel):
    """Direction totals now versus the last persisted health record."""

    previous_appreciating: int = 0
    current_appreciating: int = 0
    previous_depreciating: int = 0
    current_depreciating: int = 0
    previous_stable: int = 0
    current_stable: int = 0
    description: str = ""

    @property
    def appreciating_change(self) -> int:
        return self.current_appreciating - self.previous_appreciating

    @property
    def depreciating_change(self) -> int:
        return self.current_depreciating - self.previous_depreciating

    @property
    def stable_change(self) -> int:
        return self.current_stable - self.previous_stable


class TriggerStatus(FrozenModel):
    """Snapshot of one re-setup trigger at review time."""

    trigger_id: uuid.UUID
    trigger_type: TriggerType
    description: str
    is_met: bool
    details: str


class BoardSeat(FrozenModel):
    """A board member as seen by the interrogation iterator."""

    member_id: uuid.UUID
    role: BoardRoleType
    persona_name: str
    anchored_problem_id: uuid.UUID | None = None
    anchored_problem_name: str | None = None
    anchored_demand: str | None = None


class BoardRoster(FrozenModel):
    """Ordered core and growth seats, fixed when interrogation starts."""

    core: tuple[BoardSeat, ...] = ()
    growth: tuple[BoardSeat, ...] = ()

    def seats(self, kind: RosterKind) -> tuple[BoardSeat, ...]:
        return self.core if kind is RosterKind.core else self.growth


class BoardResponse(FrozenModel):
    """A board member's question and the user's answer to it."""

    member_id: uuid.UUID
    role: BoardRoleType
    persona_name: str
    anchored_problem_id: uuid.UUID | None = None
    anchored_demand: str | None = None
    question: str
    response: str
    was_vague: bool = False
    concrete_example: str | None = None
    skipped: bool = False


class NewBetDraft(FrozenModel):
    """The bet the user commits to for the next quarter."""

    prediction: str
    wrong_if: str
    duration_days: int = Field(default=DEFAULT_BET_DURATION_DAYS, ge=1)


class QuarterlySessionData(BaseSessionData):
    """Accumulated state of a Quarterly Review session.

    ``active_roster`` and ``board_member_index`` locate the board member being
    interrogated; ``pending_board_question`` holds the question generated for
    that member until it is answered.
    """

    progress_table: ClassVar[dict[QuarterlyState, int]] = QUARTERLY_PROGRESS

    current_state: QuarterlyState = QuarterlyState.sensitivity_gate

    # Gates
    prerequisites_met: bool = False
    growth_roles_active: bool = False
    days_since_last_report: int | None = None
    recent_report_warning: str | None = None

    # Q1
    bet_evaluation: BetEvaluation | None = None
    bet_evaluation_skipped: bool = False

    # Q2-Q5, Q7, Q8
    reflections: dict[QuarterlyState, ReflectionAnswer] = Field(default_factory=dict)

    # Q6, Q9, Q10
    health_trend: HealthTrend | None = None
    trigger_statuses: tuple[TriggerStatus, ...] = ()
    new_bet: NewBetDraft | None = None

    # Board interrogation
    board_roster: BoardRoster | None = None
    active_roster: RosterKind | None = None
    board_member_index: int = Field(default=0, ge=0)
    pending_board_question: str | None = None
    core_board_responses: tuple[BoardResponse, ...] = ()
    growth_board_responses: tuple[BoardResponse, ...] = ()

    # Finalize
    report_markdown: str | None = None
    created_bet_id: uuid.UUID | None = None

    @property
    def any_trigger_met(self) -> bool:
        return any(status.is_met for status in self.trigger_statuses)

    @property
    def current_seat(self) -> BoardSeat | None:
        """Board seat at the iterator's position, if interrogation is underway."""
        if self.board_roster is None or self.active_roster is None:
            return None
        seats = self.board_roster.seats(self.active_roster)
        if self.board_member_index >= len(seats):
            return None
        return seats[self.board_member_index]

    def responses_for(self, kind: RosterKind) -> tuple[BoardResponse, ...]:
        if kind is RosterKind.core:
            return self.core_board_responses
        return self.growth_board_responses
