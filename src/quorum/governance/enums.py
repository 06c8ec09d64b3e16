"""Enumerations shared by the governance engine and the persistence layer.

The board role catalogue lives here as well: five core roles that are always
seated, and two growth roles seated only when the portfolio holds at least one
appreciating problem.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class GovernanceSessionType(enum.Enum):
    """Kinds of governance session."""

    quick = "quick"
    setup = "setup"
    quarterly = "quarterly"


class SessionStatus(enum.Enum):
    """Lifecycle of a persisted governance session record."""

    in_progress = "in_progress"
    completed = "completed"
    abandoned = "abandoned"


class ProblemDirection(enum.Enum):
    """Whether a problem is becoming more or less valuable to own."""

    appreciating = "appreciating"
    depreciating = "depreciating"
    stable = "stable"


class BetStatus(enum.Enum):
    """Outcome of a bet."""

    open = "open"
    correct = "correct"
    wrong = "wrong"
    expired = "expired"

    def can_transition_to(self, target: BetStatus) -> bool:
        """Check whether this status may change to target.

        Nothing returns to open, and correct/wrong are final. An expired
        bet can still be judged correct or wrong after the fact.
        """
        if target is BetStatus.open or self in (BetStatus.correct, BetStatus.wrong):
            return False
        if self is BetStatus.expired:
            return target in (BetStatus.correct, BetStatus.wrong)
        return True

    @property
    def is_final(self) -> bool:
        return self in (BetStatus.correct, BetStatus.wrong)


class EvidenceStrength(enum.Enum):
    """How much an evidence item should be trusted."""

    strong = "strong"
    medium = "medium"
    weak = "weak"
    none = "none"


class EvidenceType(enum.Enum):
    """Where an evidence item comes from."""

    decision = "decision"
    artifact = "artifact"
    calendar = "calendar"
    proxy = "proxy"
    none = "none"

    @property
    def default_strength(self) -> EvidenceStrength:
        return _EVIDENCE_DEFAULT_STRENGTH[self]


_EVIDENCE_DEFAULT_STRENGTH: dict[EvidenceType, EvidenceStrength] = {
    EvidenceType.decision: EvidenceStrength.strong,
    EvidenceType.artifact: EvidenceStrength.strong,
    EvidenceType.calendar: EvidenceStrength.medium,
    EvidenceType.proxy: EvidenceStrength.medium,
    EvidenceType.none: EvidenceStrength.none,
}


class TriggerType(enum.Enum):
    """Conditions that call for re-running Setup."""

    role_change = "role_change"
    scope_change = "scope_change"
    direction_shift = "direction_shift"
    time_drift = "time_drift"
    annual = "annual"


class RecommendedAction(enum.Enum):
    """What to do when a re-setup trigger fires."""

    full_resetup = "full_resetup"
    update_problem = "update_problem"
    review_health = "review_health"


class AllocationStatus(enum.Enum):
    """Three-tier verdict on the total time allocation."""

    ideal = "ideal"
    warning = "warning"
    blocked = "blocked"


class RosterKind(enum.Enum):
    """The two disjoint board partitions."""

    core = "core"
    growth = "growth"


class BoardRoleType(enum.Enum):
    """Seats on the personal board of directors."""

    accountability = "accountability"
    market_reality = "market_reality"
    avoidance = "avoidance"
    long_term_positioning = "long_term_positioning"
    devils_advocate = "devils_advocate"
    portfolio_defender = "portfolio_defender"
    opportunity_scout = "opportunity_scout"

    @property
    def profile(self) -> RoleProfile:
        return ROLE_PROFILES[self]

    @property
    def is_growth_role(self) -> bool:
        return self in GROWTH_ROLES

    @property
    def roster(self) -> RosterKind:
        return RosterKind.growth if self.is_growth_role else RosterKind.core


@dataclass(frozen=True)
class RoleProfile:
    """Static description of a board role."""

    display_name: str
    function: str
    interaction_style: str
    signature_question: str


ROLE_PROFILES: dict[BoardRoleType, RoleProfile] = {
    BoardRoleType.accountability: RoleProfile(
        display_name="Accountability",
        function="Demands receipts for stated commitments",
        interaction_style="Direct, evidence-focused",
        signature_question="Show me the proof.",
    ),
    BoardRoleType.market_reality: RoleProfile(
        display_name="Market Reality",
        function="Challenges direction classifications",
        interaction_style="Skeptical, data-driven",
        signature_question="Is this actually true?",
    ),
    BoardRoleType.avoidance: RoleProfile(
        display_name="Avoidance",
        function="Probes avoided decisions",
        interaction_style="Persistent, uncomfortable",
        signature_question="Have you actually done this?",
    ),
    BoardRoleType.long_term_positioning: RoleProfile(
        display_name="Long-term Positioning",
        function="Asks 5-year strategic questions",
        interaction_style="Forward-looking, strategic",
        signature_question="What are you doing to own more of this?",
    ),
    BoardRoleType.devils_advocate: RoleProfile(
        display_name="Devil's Advocate",
        function="Argues against the user's path",
        interaction_style="Contrarian, challenging",
        signature_question="What if you're wrong about this?",
    ),
    BoardRoleType.portfolio_defender: RoleProfile(
        display_name="Portfolio Defender",
        function="Protects and compounds strengths",
        interaction_style="Protective, growth-focused",
        signature_question="What would cause you to lose this edge?",
    ),
    BoardRoleType.opportunity_scout: RoleProfile(
        display_name="Opportunity Scout",
        function="Identifies adjacent opportunities",
        interaction_style="Exploratory, curious",
        signature_question="What adjacent skill would 2x this value?",
    ),
}

CORE_ROLES: tuple[BoardRoleType, ...] = (
    BoardRoleType.accountability,
    BoardRoleType.market_reality,
    BoardRoleType.avoidance,
    BoardRoleType.long_term_positioning,
    BoardRoleType.devils_advocate,
)

GROWTH_ROLES: tuple[BoardRoleType, ...] = (
    BoardRoleType.portfolio_defender,
    BoardRoleType.opportunity_scout,
)
