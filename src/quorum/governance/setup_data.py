"""Session data for the Setup workflow."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from pydantic import Field

from quorum.governance.enums import (
    AllocationStatus,
    BoardRoleType,
    ProblemDirection,
    RecommendedAction,
    TriggerType,
)
from quorum.governance.session_data import BaseSessionData, FrozenModel
from quorum.governance.states import PROBLEM_SLOT_INDEX, SETUP_PROGRESS, SetupState

MIN_SCARCITY_SIGNALS = 2

IDEAL_ALLOCATION = (95, 105)
ACCEPTABLE_ALLOCATION = (90, 110)


class DraftProblem(FrozenModel):
    """A problem the user owns, as collected during Setup.

    Attributes:
        name: Short name of the problem.
        what_breaks: What fails if nobody solves it.
        scarcity_signals: Evidence the skill to solve it is scarce.
        scarcity_unknown_reason: Why scarcity signals could not be given.
        evidence_ai_cheaper: Evidence on whether AI makes this cheaper.
        evidence_error_cost: Evidence on the cost of getting it wrong.
        evidence_trust_required: Evidence on how much trust solving it needs.
        direction: Appreciating, depreciating or stable.
        direction_rationale: Why the direction was chosen.
        time_allocation_percent: Share of working time spent on it.
    """

    name: str = ""
    what_breaks: str = ""
    scarcity_signals: tuple[str, ...] = ()
    scarcity_unknown_reason: str | None = None
    evidence_ai_cheaper: str = ""
    evidence_error_cost: str = ""
    evidence_trust_required: str = ""
    direction: ProblemDirection | None = None
    direction_rationale: str = ""
    time_allocation_percent: int = Field(default=0, ge=0, le=100)

    def missing_fields(self) -> list[str]:
        """List human-readable messages for every incomplete field."""
        errors: list[str] = []
        if not self.name.strip():
            errors.append("Problem name is required")
        if not self.what_breaks.strip():
            errors.append("What breaks is required")
        signals = [s for s in self.scarcity_signals if s.strip()]
        if len(signals) < MIN_SCARCITY_SIGNALS and not (
            self.scarcity_unknown_reason and self.scarcity_unknown_reason.strip()
        ):
            errors.append("At least 2 scarcity signals or an unknown reason is required")
        if not self.evidence_ai_cheaper.strip():
            errors.append("Evidence that AI makes this cheaper is required")
        if not self.evidence_error_cost.strip():
            errors.append("Evidence on error cost is required")
        if not self.evidence_trust_required.strip():
            errors.append("Evidence on trust required is required")
        if self.direction is None:
            errors.append("Direction is required")
        if not self.direction_rationale.strip():
            errors.append("Direction rationale is required")
        return errors

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()


class Persona(FrozenModel):
    """Generated or user-edited persona of a board member."""

    name: str
    background: str
    communication_style: str
    signature_phrase: str | None = None


class DraftBoardMember(FrozenModel):
    """A board seat before it is published.

    ``original_persona`` keeps the generated persona after the user edits it.
    """

    role: BoardRoleType
    anchored_problem_index: int | None = None
    anchored_demand: str | None = None
    persona: Persona | None = None
    original_persona: Persona | None = None
    is_active: bool = True

    @property
    def is_growth_role(self) -> bool:
        return self.role.is_growth_role


class PortfolioHealthDraft(FrozenModel):
    """Direction totals for the draft portfolio plus generated statements."""

    appreciating_percent: int = 0
    depreciating_percent: int = 0
    stable_percent: int = 0
    risk_statement: str | None = None
    opportunity_statement: str | None = None


class DraftTrigger(FrozenModel):
    """A re-setup rule before it is published."""

    trigger_type: TriggerType
    description: str
    condition: str
    recommended_action: RecommendedAction
    due_at: datetime | None = None


class AllocationCheck(FrozenModel):
    """Verdict on a total time allocation."""

    total: int
    status: AllocationStatus
    message: str

    @property
    def can_proceed(self) -> bool:
        return self.status is not AllocationStatus.blocked


def check_allocation(total: int) -> AllocationCheck:
    """Classify a total time allocation into the three-tier status."""
    ideal_low, ideal_high = IDEAL_ALLOCATION
    low, high = ACCEPTABLE_ALLOCATION
    if ideal_low <= total <= ideal_high:
        return AllocationCheck(
            total=total,
            status=AllocationStatus.ideal,
            message=f"Time allocation is {total}%. Looking good!",
        )
    if low <= total <= high:
        return AllocationCheck(
            total=total,
            status=AllocationStatus.warning,
            message=(
                f"Time allocation is {total}%. This is outside the ideal range "
                f"({ideal_low}-{ideal_high}%) but you can continue."
            ),
        )
    return AllocationCheck(
        total=total,
        status=AllocationStatus.blocked,
        message=(
            f"Time allocation is {total}%. Must be between {low}% and {high}% to proceed."
        ),
    )


class SetupSessionData(BaseSessionData):
    """Accumulated state of a Setup session."""

    progress_table: ClassVar[dict[SetupState, int]] = SETUP_PROGRESS

    current_state: SetupState = SetupState.sensitivity_gate
    problems: tuple[DraftProblem, ...] = ()
    health: PortfolioHealthDraft | None = None
    board_members: tuple[DraftBoardMember, ...] = ()
    triggers: tuple[DraftTrigger, ...] = ()
    summary_markdown: str | None = None

    @property
    def current_problem_index(self) -> int | None:
        """Slot index of the problem being collected, if in a problem state."""
        return PROBLEM_SLOT_INDEX.get(self.current_state)

    @property
    def total_time_allocation(self) -> int:
        return sum(p.time_allocation_percent for p in self.problems)

    @property
    def allocation(self) -> AllocationCheck:
        return check_allocation(self.total_time_allocation)

    @property
    def has_appreciating_problems(self) -> bool:
        return any(p.direction is ProblemDirection.appreciating for p in self.problems)

    @property
    def core_members(self) -> tuple[DraftBoardMember, ...]:
        return tuple(m for m in self.board_members if not m.is_growth_role)

    @property
    def growth_members(self) -> tuple[DraftBoardMember, ...]:
        return tuple(m for m in self.board_members if m.is_growth_role)
