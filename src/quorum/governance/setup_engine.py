"""Setup workflow engine.

Every public method is a transition: it takes the current SetupSessionData
plus the transition's payload and returns a new SetupSessionData. Nothing is
persisted here; SetupService stores the result and runs the publish unit of
work. Transitions are validated against SETUP_TRANSITIONS before any
collaborator is called, so a rejected event never costs a generation call.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime, timedelta

import structlog

from quorum.governance.collaborators import (
    AnchoringGenerator,
    HealthStatementGenerator,
    PersonaGenerator,
    RoleAnchoring,
    invoke,
)
from quorum.governance.enums import (
    CORE_ROLES,
    GROWTH_ROLES,
    BoardRoleType,
    ProblemDirection,
    RecommendedAction,
    TriggerType,
)
from quorum.governance.errors import CollaboratorError, SessionValidationError
from quorum.governance.session_data import TranscriptEntry
from quorum.governance.setup_data import (
    DraftBoardMember,
    DraftProblem,
    DraftTrigger,
    Persona,
    PortfolioHealthDraft,
    SetupSessionData,
)
from quorum.governance.states import (
    MAX_PROBLEMS,
    MIN_PROBLEMS,
    PROBLEM_STATES,
    SETUP_TRANSITIONS,
    SetupEvent,
    SetupState,
    require_event,
    resolve_transition,
)
from quorum.governance.summary import render_setup_summary

logger = structlog.get_logger(__name__)

DEFAULT_ANNUAL_TRIGGER_DAYS = 365


def direction_totals(problems: Sequence[DraftProblem]) -> tuple[int, int, int]:
    """Sum time allocation per direction; unclassified problems count as stable."""
    appreciating = depreciating = stable = 0
    for problem in problems:
        if problem.direction is ProblemDirection.appreciating:
            appreciating += problem.time_allocation_percent
        elif problem.direction is ProblemDirection.depreciating:
            depreciating += problem.time_allocation_percent
        else:
            stable += problem.time_allocation_percent
    return appreciating, depreciating, stable


def highest_allocation_appreciating(problems: Sequence[DraftProblem]) -> int | None:
    """Index of the appreciating problem with the largest allocation."""
    candidates = [
        (problem.time_allocation_percent, -index, index)
        for index, problem in enumerate(problems)
        if problem.direction is ProblemDirection.appreciating
    ]
    if not candidates:
        return None
    return max(candidates)[2]


def standard_triggers(now: datetime, annual_days: int) -> tuple[DraftTrigger, ...]:
    """The five re-setup rules every published portfolio carries."""
    return (
        DraftTrigger(
            trigger_type=TriggerType.role_change,
            description="Role change detected",
            condition="Promotion, new job, or new team",
            recommended_action=RecommendedAction.full_resetup,
        ),
        DraftTrigger(
            trigger_type=TriggerType.scope_change,
            description="Scope change detected",
            condition="Major project ends or new responsibility",
            recommended_action=RecommendedAction.full_resetup,
        ),
        DraftTrigger(
            trigger_type=TriggerType.direction_shift,
            description="Problem direction shift",
            condition="Problem reclassified in 2+ quarterly reviews",
            recommended_action=RecommendedAction.update_problem,
        ),
        DraftTrigger(
            trigger_type=TriggerType.time_drift,
            description="Time allocation drift",
            condition="20%+ shift in allocation vs setup",
            recommended_action=RecommendedAction.review_health,
        ),
        DraftTrigger(
            trigger_type=TriggerType.annual,
            description="Annual portfolio review",
            condition="12 months since last setup",
            recommended_action=RecommendedAction.full_resetup,
            due_at=now + timedelta(days=annual_days),
        ),
    )


class SetupEngine:
    """Pure transitions of the Setup workflow.

    Attributes:
        anchoring: Ties each board role to a problem and a demand.
        personas: Writes one persona per board member.
        health_statements: Writes the risk and opportunity statements.
        annual_trigger_days: Offset of the annual trigger's due date.
    """

    def __init__(
        self,
        anchoring: AnchoringGenerator,
        personas: PersonaGenerator,
        health_statements: HealthStatementGenerator,
        annual_trigger_days: int = DEFAULT_ANNUAL_TRIGGER_DAYS,
    ) -> None:
        self.anchoring = anchoring
        self.personas = personas
        self.health_statements = health_statements
        self.annual_trigger_days = annual_trigger_days
        self.logger = logger.bind(component="SetupEngine")

    def _move(
        self, data: SetupSessionData, event: SetupEvent, target: SetupState | None = None
    ) -> SetupState:
        next_state = resolve_transition(SETUP_TRANSITIONS, data.current_state, event, target)
        self.logger.debug(
            "setup_transition",
            transition_event=event.value,
            from_state=data.current_state.value,
            to_state=next_state.value,
        )
        return next_state

    # Sensitivity gate and problem collection

    def set_sensitivity_gate(
        self, data: SetupSessionData, abstraction_mode: bool
    ) -> SetupSessionData:
        next_state = self._move(data, SetupEvent.set_sensitivity_gate)
        return data.model_copy(
            update={"abstraction_mode": abstraction_mode, "current_state": next_state}
        )

    def save_problem(self, data: SetupSessionData, problem: DraftProblem) -> SetupSessionData:
        """Store problem in the current slot, replacing any earlier draft."""
        self._move(data, SetupEvent.save_problem)
        index = data.current_problem_index
        if index is None:
            raise SessionValidationError(
                f"No problem slot is open in state {data.current_state.value}"
            )
        if index < len(data.problems):
            problems = (*data.problems[:index], problem, *data.problems[index + 1 :])
        elif index == len(data.problems):
            problems = (*data.problems, problem)
        else:
            raise SessionValidationError(
                f"Problem slot {index + 1} cannot be filled before slot {len(data.problems) + 1}"
            )
        return data.model_copy(update={"problems": problems})

    def validate_and_advance(self, data: SetupSessionData) -> SetupSessionData:
        """Freeze the current problem and move to the next slot or completeness check.

        Raises:
            SessionValidationError: If no draft exists for the slot or it is
                incomplete.
        """
        require_event(SETUP_TRANSITIONS, data.current_state, SetupEvent.validate_problem)
        index = data.current_problem_index
        if index is None:
            raise SessionValidationError(
                f"No problem slot is open in state {data.current_state.value}"
            )
        if index >= len(data.problems):
            raise SessionValidationError(f"Problem {index + 1} has not been saved")
        problem = data.problems[index]
        missing = problem.missing_fields()
        if missing:
            raise SessionValidationError("Problem is incomplete: " + "; ".join(missing))

        next_state = self._move(data, SetupEvent.validate_problem)
        entry = TranscriptEntry(
            state=data.current_state.value,
            question=f"Problem {index + 1}",
            answer=problem.name,
        )
        return data.with_entry(entry, current_state=next_state)

    def add_another_problem(self, data: SetupSessionData) -> SetupSessionData:
        require_event(SETUP_TRANSITIONS, data.current_state, SetupEvent.add_problem)
        if len(data.problems) >= MAX_PROBLEMS:
            raise SessionValidationError(f"Maximum {MAX_PROBLEMS} problems reached")
        target = PROBLEM_STATES[len(data.problems)]
        next_state = self._move(data, SetupEvent.add_problem, target)
        return data.model_copy(update={"current_state": next_state})

    def proceed_to_time_allocation(self, data: SetupSessionData) -> SetupSessionData:
        require_event(
            SETUP_TRANSITIONS, data.current_state, SetupEvent.proceed_to_time_allocation
        )
        if len(data.problems) < MIN_PROBLEMS:
            raise SessionValidationError(f"At least {MIN_PROBLEMS} problems are required")
        next_state = self._move(data, SetupEvent.proceed_to_time_allocation)
        return data.model_copy(update={"current_state": next_state})

    # Time allocation and health

    def update_time_allocations(
        self, data: SetupSessionData, percents: Sequence[int]
    ) -> SetupSessionData:
        """Replace every problem's allocation, in problem order."""
        self._move(data, SetupEvent.update_time_allocations)
        if len(percents) != len(data.problems):
            raise SessionValidationError("Allocation count must match problem count")
        if any(p < 0 or p > 100 for p in percents):
            raise SessionValidationError("Each allocation must be between 0 and 100")
        problems = tuple(
            problem.model_copy(update={"time_allocation_percent": int(percent)})
            for problem, percent in zip(data.problems, percents)
        )
        return data.model_copy(update={"problems": problems})

    def proceed_from_time_allocation(self, data: SetupSessionData) -> SetupSessionData:
        require_event(
            SETUP_TRANSITIONS, data.current_state, SetupEvent.proceed_from_time_allocation
        )
        allocation = data.allocation
        if not allocation.can_proceed:
            raise SessionValidationError(
                f"Time allocation must be 90-110% (currently {allocation.total}%)"
            )
        next_state = self._move(data, SetupEvent.proceed_from_time_allocation)
        entry = TranscriptEntry(
            state=data.current_state.value,
            question="Time allocation",
            answer=allocation.message,
        )
        return data.with_entry(entry, current_state=next_state)

    async def calculate_health(self, data: SetupSessionData) -> SetupSessionData:
        require_event(SETUP_TRANSITIONS, data.current_state, SetupEvent.calculate_health)
        appreciating, depreciating, stable = direction_totals(data.problems)
        statements = await invoke(
            "health_statement_generator",
            self.health_statements.generate_health_statements(
                data.problems, appreciating, depreciating, stable
            ),
        )
        health = PortfolioHealthDraft(
            appreciating_percent=appreciating,
            depreciating_percent=depreciating,
            stable_percent=stable,
            risk_statement=statements.risk_statement,
            opportunity_statement=statements.opportunity_statement,
        )
        next_state = self._move(data, SetupEvent.calculate_health)
        self.logger.info(
            "setup_health_calculated",
            appreciating=appreciating,
            depreciating=depreciating,
            stable=stable,
        )
        return data.model_copy(update={"health": health, "current_state": next_state})

    # Board

    async def _anchor(
        self,
        data: SetupSessionData,
        roles: Sequence[BoardRoleType],
        focus_on_appreciating: bool,
        fallback_index: int,
    ) -> tuple[DraftBoardMember, ...]:
        anchorings: list[RoleAnchoring] = await invoke(
            "anchoring_generator",
            self.anchoring.generate_anchoring(
                data.problems, roles, focus_on_appreciating=focus_on_appreciating
            ),
        )
        if len(anchorings) != len(roles):
            raise CollaboratorError(
                "anchoring_generator",
                f"expected {len(roles)} anchorings, got {len(anchorings)}",
            )
        members = []
        for role, anchoring in zip(roles, anchorings):
            index = anchoring.problem_index
            if index is None or not 0 <= index < len(data.problems):
                index = fallback_index
            members.append(
                DraftBoardMember(
                    role=role,
                    anchored_problem_index=index,
                    anchored_demand=anchoring.demand or role.profile.signature_question,
                )
            )
        return tuple(members)

    async def create_core_roles(self, data: SetupSessionData) -> SetupSessionData:
        require_event(SETUP_TRANSITIONS, data.current_state, SetupEvent.create_core_roles)
        core = await self._anchor(data, CORE_ROLES, False, fallback_index=0)
        next_state = self._move(data, SetupEvent.create_core_roles)
        self.logger.info("setup_core_roles_created", count=len(core))
        return data.model_copy(update={"board_members": core, "current_state": next_state})

    async def create_growth_roles(self, data: SetupSessionData) -> SetupSessionData:
        """Seat growth roles when an appreciating problem exists; otherwise just advance."""
        require_event(SETUP_TRANSITIONS, data.current_state, SetupEvent.create_growth_roles)
        fallback = highest_allocation_appreciating(data.problems)
        growth: tuple[DraftBoardMember, ...] = ()
        if fallback is not None:
            growth = await self._anchor(
                data, GROWTH_ROLES, True, fallback_index=fallback
            )
        next_state = self._move(data, SetupEvent.create_growth_roles)
        self.logger.info("setup_growth_roles_created", count=len(growth))
        return data.model_copy(
            update={
                "board_members": (*data.core_members, *growth),
                "current_state": next_state,
            }
        )

    async def create_personas(self, data: SetupSessionData) -> SetupSessionData:
        """Generate a persona for every seat concurrently, preserving seat order."""
        require_event(SETUP_TRANSITIONS, data.current_state, SetupEvent.create_personas)

        def anchored(member: DraftBoardMember) -> DraftProblem | None:
            index = member.anchored_problem_index
            if index is None or index >= len(data.problems):
                return None
            return data.problems[index]

        personas: list[Persona] = await asyncio.gather(
            *(
                invoke(
                    "persona_generator",
                    self.personas.generate_persona(
                        member.role, anchored(member), member.anchored_demand
                    ),
                )
                for member in data.board_members
            )
        )
        members = tuple(
            member.model_copy(update={"persona": persona, "original_persona": persona})
            for member, persona in zip(data.board_members, personas)
        )
        next_state = self._move(data, SetupEvent.create_personas)
        self.logger.info("setup_personas_created", count=len(members))
        return data.model_copy(update={"board_members": members, "current_state": next_state})

    def update_persona(
        self, data: SetupSessionData, member_index: int, persona: Persona
    ) -> SetupSessionData:
        """Replace a generated persona with the user's edit."""
        self._move(data, SetupEvent.update_persona)
        if not 0 <= member_index < len(data.board_members):
            raise SessionValidationError("Invalid member index")
        members = list(data.board_members)
        members[member_index] = members[member_index].model_copy(update={"persona": persona})
        return data.model_copy(update={"board_members": tuple(members)})

    # Triggers and publish

    def define_triggers(self, data: SetupSessionData, now: datetime) -> SetupSessionData:
        next_state = self._move(data, SetupEvent.define_triggers)
        triggers = standard_triggers(now, self.annual_trigger_days)
        return data.model_copy(update={"triggers": triggers, "current_state": next_state})

    def check_publishable(self, data: SetupSessionData) -> None:
        """Verify the drafts satisfy every rule the published portfolio must hold.

        Raises:
            InvalidTransitionError: If the session is not in the publish state.
            SessionValidationError: If any draft violates a portfolio rule.
        """
        require_event(SETUP_TRANSITIONS, data.current_state, SetupEvent.publish)
        if not MIN_PROBLEMS <= len(data.problems) <= MAX_PROBLEMS:
            raise SessionValidationError(
                f"A portfolio needs {MIN_PROBLEMS}-{MAX_PROBLEMS} problems"
            )
        if not all(problem.is_complete for problem in data.problems):
            raise SessionValidationError("Every problem must be complete before publishing")
        if not data.allocation.can_proceed:
            raise SessionValidationError("Time allocation must be 90-110%")
        if data.health is None:
            raise SessionValidationError("Portfolio health has not been calculated")
        if any(member.persona is None for member in data.board_members):
            raise SessionValidationError("Every board member needs a persona")
        if bool(data.growth_members) != data.has_appreciating_problems:
            raise SessionValidationError(
                "Growth roles must exist exactly when an appreciating problem exists"
            )
        if not data.triggers:
            raise SessionValidationError("Re-setup triggers have not been defined")

    def publish(self, data: SetupSessionData) -> SetupSessionData:
        """Return the finalized session data with its summary rendered.

        The caller persists the portfolio in one unit of work before storing
        the returned value.
        """
        self.check_publishable(data)
        next_state = self._move(data, SetupEvent.publish)
        finalized = data.model_copy(update={"current_state": next_state})
        return finalized.model_copy(
            update={"summary_markdown": render_setup_summary(finalized)}
        )
