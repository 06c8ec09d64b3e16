"""State enumerations and transition tables for governance sessions.

Each workflow has a closed state enumeration and an event enumeration. The
authoritative graph is a table keyed by (current state, event) whose value is
the tuple of states the event may lead to. Events with more than one target
are branches; the engine picks the target and the table validates it.

State values are the tags persisted in the session record, so they must not
change once released.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, TypeVar

from quorum.governance.errors import InvalidTransitionError


class SetupState(enum.Enum):
    """States of the Setup workflow, in presentation order."""

    sensitivity_gate = "sensitivityGate"
    collect_problem_1 = "collectProblem1"
    collect_problem_2 = "collectProblem2"
    collect_problem_3 = "collectProblem3"
    collect_problem_4 = "collectProblem4"
    collect_problem_5 = "collectProblem5"
    portfolio_completeness = "portfolioCompleteness"
    time_allocation = "timeAllocation"
    calculate_health = "calculateHealth"
    create_core_roles = "createCoreRoles"
    create_growth_roles = "createGrowthRoles"
    create_personas = "createPersonas"
    define_triggers = "defineTriggers"
    publish = "publish"
    finalized = "finalized"


class SetupEvent(enum.Enum):
    """Inputs accepted by the Setup engine."""

    set_sensitivity_gate = "set_sensitivity_gate"
    save_problem = "save_problem"
    validate_problem = "validate_problem"
    add_problem = "add_problem"
    proceed_to_time_allocation = "proceed_to_time_allocation"
    update_time_allocations = "update_time_allocations"
    proceed_from_time_allocation = "proceed_from_time_allocation"
    calculate_health = "calculate_health"
    create_core_roles = "create_core_roles"
    create_growth_roles = "create_growth_roles"
    create_personas = "create_personas"
    update_persona = "update_persona"
    define_triggers = "define_triggers"
    publish = "publish"


# Ordered problem slots; index i holds draft problem i.
PROBLEM_STATES: tuple[SetupState, ...] = (
    SetupState.collect_problem_1,
    SetupState.collect_problem_2,
    SetupState.collect_problem_3,
    SetupState.collect_problem_4,
    SetupState.collect_problem_5,
)

PROBLEM_SLOT_INDEX: dict[SetupState, int] = {
    state: index for index, state in enumerate(PROBLEM_STATES)
}

MIN_PROBLEMS = 3
MAX_PROBLEMS = len(PROBLEM_STATES)

SETUP_TRANSITIONS: dict[tuple[SetupState, SetupEvent], tuple[SetupState, ...]] = {
    (SetupState.sensitivity_gate, SetupEvent.set_sensitivity_gate): (
        SetupState.collect_problem_1,
    ),
    # Problem slots: saving stays put, validating moves on.
    **{
        (state, SetupEvent.save_problem): (state,) for state in PROBLEM_STATES
    },
    (SetupState.collect_problem_1, SetupEvent.validate_problem): (
        SetupState.collect_problem_2,
    ),
    (SetupState.collect_problem_2, SetupEvent.validate_problem): (
        SetupState.collect_problem_3,
    ),
    (SetupState.collect_problem_3, SetupEvent.validate_problem): (
        SetupState.portfolio_completeness,
    ),
    (SetupState.collect_problem_4, SetupEvent.validate_problem): (
        SetupState.portfolio_completeness,
    ),
    (SetupState.collect_problem_5, SetupEvent.validate_problem): (
        SetupState.portfolio_completeness,
    ),
    (SetupState.portfolio_completeness, SetupEvent.add_problem): (
        SetupState.collect_problem_4,
        SetupState.collect_problem_5,
    ),
    (SetupState.portfolio_completeness, SetupEvent.proceed_to_time_allocation): (
        SetupState.time_allocation,
    ),
    (SetupState.time_allocation, SetupEvent.update_time_allocations): (
        SetupState.time_allocation,
    ),
    (SetupState.time_allocation, SetupEvent.proceed_from_time_allocation): (
        SetupState.calculate_health,
    ),
    (SetupState.calculate_health, SetupEvent.calculate_health): (
        SetupState.create_core_roles,
    ),
    (SetupState.create_core_roles, SetupEvent.create_core_roles): (
        SetupState.create_growth_roles,
    ),
    (SetupState.create_growth_roles, SetupEvent.create_growth_roles): (
        SetupState.create_personas,
    ),
    (SetupState.create_personas, SetupEvent.create_personas): (
        SetupState.define_triggers,
    ),
    (SetupState.define_triggers, SetupEvent.update_persona): (
        SetupState.define_triggers,
    ),
    (SetupState.publish, SetupEvent.update_persona): (SetupState.publish,),
    (SetupState.define_triggers, SetupEvent.define_triggers): (SetupState.publish,),
    (SetupState.publish, SetupEvent.publish): (SetupState.finalized,),
}

SETUP_PROGRESS: dict[SetupState, int] = {
    SetupState.sensitivity_gate: 5,
    SetupState.collect_problem_1: 10,
    SetupState.collect_problem_2: 20,
    SetupState.collect_problem_3: 30,
    SetupState.collect_problem_4: 35,
    SetupState.collect_problem_5: 40,
    SetupState.portfolio_completeness: 45,
    SetupState.time_allocation: 55,
    SetupState.calculate_health: 65,
    SetupState.create_core_roles: 70,
    SetupState.create_growth_roles: 75,
    SetupState.create_personas: 85,
    SetupState.define_triggers: 90,
    SetupState.publish: 95,
    SetupState.finalized: 100,
}


class QuarterlyState(enum.Enum):
    """States of the Quarterly Review workflow, in presentation order."""

    sensitivity_gate = "sensitivityGate"
    prerequisites_gate = "gate0Prerequisites"
    recent_report_warning = "recentReportWarning"
    q1_last_bet_evaluation = "q1LastBetEvaluation"
    q2_commitments_vs_actuals = "q2CommitmentsVsActuals"
    q2_clarify = "q2Clarify"
    q3_avoided_decision = "q3AvoidedDecision"
    q3_clarify = "q3Clarify"
    q4_comfort_work = "q4ComfortWork"
    q4_clarify = "q4Clarify"
    q5_portfolio_check = "q5PortfolioCheck"
    q5_clarify = "q5Clarify"
    q6_portfolio_health_update = "q6PortfolioHealthUpdate"
    q7_protection_check = "q7ProtectionCheck"
    q7_clarify = "q7Clarify"
    q8_opportunity_check = "q8OpportunityCheck"
    q8_clarify = "q8Clarify"
    q9_trigger_check = "q9TriggerCheck"
    q10_next_bet = "q10NextBet"
    core_board_interrogation = "coreBoardInterrogation"
    board_interrogation_clarify = "boardInterrogationClarify"
    growth_board_interrogation = "growthBoardInterrogation"
    generate_report = "generateReport"
    finalized = "finalized"


class QuarterlyEvent(enum.Enum):
    """Inputs accepted by the Quarterly engine."""

    set_sensitivity_gate = "set_sensitivity_gate"
    check_prerequisites = "check_prerequisites"
    acknowledge_recent_report = "acknowledge_recent_report"
    evaluate_bet = "evaluate_bet"
    skip_bet_evaluation = "skip_bet_evaluation"
    answer = "answer"
    skip = "skip"
    calculate_health_trend = "calculate_health_trend"
    check_triggers = "check_triggers"
    create_bet = "create_bet"
    prepare_board_question = "prepare_board_question"
    answer_board = "answer_board"
    generate_report = "generate_report"


@dataclass(frozen=True)
class ReflectionQuestion:
    """A vagueness-gated reflection prompt and where it leads."""

    text: str
    clarify_state: QuarterlyState | QuickState
    next_state: QuarterlyState | QuickState


CLARIFY_PROMPT = "Give one concrete example (who/what/when/result)."

REFLECTION_QUESTIONS: dict[QuarterlyState, ReflectionQuestion] = {
    QuarterlyState.q2_commitments_vs_actuals: ReflectionQuestion(
        text=(
            "What commitments did you make last quarter and how did they compare "
            "to your actual actions? Provide evidence where possible."
        ),
        clarify_state=QuarterlyState.q2_clarify,
        next_state=QuarterlyState.q3_avoided_decision,
    ),
    QuarterlyState.q3_avoided_decision: ReflectionQuestion(
        text=(
            "What decision or conversation have you been avoiding this quarter? "
            "What is the cost of continuing to wait?"
        ),
        clarify_state=QuarterlyState.q3_clarify,
        next_state=QuarterlyState.q4_comfort_work,
    ),
    QuarterlyState.q4_comfort_work: ReflectionQuestion(
        text=(
            "Where have you been doing comfort work this quarter - tasks that feel "
            "productive but do not advance your goals?"
        ),
        clarify_state=QuarterlyState.q4_clarify,
        next_state=QuarterlyState.q5_portfolio_check,
    ),
    QuarterlyState.q5_portfolio_check: ReflectionQuestion(
        text=(
            "Review your portfolio problems. Have any directions shifted? "
            "Should any time allocations change?"
        ),
        clarify_state=QuarterlyState.q5_clarify,
        next_state=QuarterlyState.q6_portfolio_health_update,
    ),
    QuarterlyState.q7_protection_check: ReflectionQuestion(
        text=(
            "Your appreciating problems are your strengths. What threats could "
            "cause you to lose these advantages?"
        ),
        clarify_state=QuarterlyState.q7_clarify,
        next_state=QuarterlyState.q8_opportunity_check,
    ),
    QuarterlyState.q8_opportunity_check: ReflectionQuestion(
        text=(
            "What adjacent opportunities exist near your appreciating problems? "
            "What would 2x their value?"
        ),
        clarify_state=QuarterlyState.q8_clarify,
        next_state=QuarterlyState.q9_trigger_check,
    ),
}

# Clarify state -> the question it clarifies.
CLARIFY_PARENT: dict[QuarterlyState, QuarterlyState] = {
    question.clarify_state: state for state, question in REFLECTION_QUESTIONS.items()
}

_BOARD_EXITS = (
    QuarterlyState.core_board_interrogation,
    QuarterlyState.growth_board_interrogation,
    QuarterlyState.generate_report,
)


def _gated_transitions(
    questions: dict[Any, ReflectionQuestion], answer: enum.Enum, skip: enum.Enum
) -> dict[tuple[Any, Any], tuple[Any, ...]]:
    """Answer and skip edges for vagueness-gated questions and their clarify states."""
    table: dict[tuple[Any, Any], tuple[Any, ...]] = {}
    for state, question in questions.items():
        table[(state, answer)] = (question.clarify_state, question.next_state)
        table[(question.clarify_state, answer)] = (
            question.clarify_state,
            question.next_state,
        )
        table[(question.clarify_state, skip)] = (question.next_state,)
    return table


QUARTERLY_TRANSITIONS: dict[
    tuple[QuarterlyState, QuarterlyEvent], tuple[QuarterlyState, ...]
] = {
    (QuarterlyState.sensitivity_gate, QuarterlyEvent.set_sensitivity_gate): (
        QuarterlyState.prerequisites_gate,
    ),
    (QuarterlyState.prerequisites_gate, QuarterlyEvent.check_prerequisites): (
        QuarterlyState.recent_report_warning,
    ),
    (QuarterlyState.recent_report_warning, QuarterlyEvent.acknowledge_recent_report): (
        QuarterlyState.q1_last_bet_evaluation,
    ),
    (QuarterlyState.q1_last_bet_evaluation, QuarterlyEvent.evaluate_bet): (
        QuarterlyState.q2_commitments_vs_actuals,
    ),
    (QuarterlyState.q1_last_bet_evaluation, QuarterlyEvent.skip_bet_evaluation): (
        QuarterlyState.q2_commitments_vs_actuals,
    ),
    **_gated_transitions(REFLECTION_QUESTIONS, QuarterlyEvent.answer, QuarterlyEvent.skip),
    (QuarterlyState.q6_portfolio_health_update, QuarterlyEvent.calculate_health_trend): (
        QuarterlyState.q7_protection_check,
        QuarterlyState.q9_trigger_check,
    ),
    (QuarterlyState.q9_trigger_check, QuarterlyEvent.check_triggers): (
        QuarterlyState.q10_next_bet,
    ),
    (QuarterlyState.q10_next_bet, QuarterlyEvent.create_bet): _BOARD_EXITS,
    (QuarterlyState.core_board_interrogation, QuarterlyEvent.prepare_board_question): (
        QuarterlyState.core_board_interrogation,
    ),
    (QuarterlyState.growth_board_interrogation, QuarterlyEvent.prepare_board_question): (
        QuarterlyState.growth_board_interrogation,
    ),
    (QuarterlyState.core_board_interrogation, QuarterlyEvent.answer_board): (
        QuarterlyState.board_interrogation_clarify,
        *_BOARD_EXITS,
    ),
    (QuarterlyState.growth_board_interrogation, QuarterlyEvent.answer_board): (
        QuarterlyState.board_interrogation_clarify,
        QuarterlyState.growth_board_interrogation,
        QuarterlyState.generate_report,
    ),
    (QuarterlyState.board_interrogation_clarify, QuarterlyEvent.answer_board): (
        QuarterlyState.board_interrogation_clarify,
        *_BOARD_EXITS,
    ),
    (QuarterlyState.board_interrogation_clarify, QuarterlyEvent.skip): _BOARD_EXITS,
    (QuarterlyState.generate_report, QuarterlyEvent.generate_report): (
        QuarterlyState.finalized,
    ),
}

QUARTERLY_PROGRESS: dict[QuarterlyState, int] = {
    QuarterlyState.sensitivity_gate: 2,
    QuarterlyState.prerequisites_gate: 4,
    QuarterlyState.recent_report_warning: 5,
    QuarterlyState.q1_last_bet_evaluation: 8,
    QuarterlyState.q2_commitments_vs_actuals: 14,
    QuarterlyState.q2_clarify: 14,
    QuarterlyState.q3_avoided_decision: 20,
    QuarterlyState.q3_clarify: 20,
    QuarterlyState.q4_comfort_work: 26,
    QuarterlyState.q4_clarify: 26,
    QuarterlyState.q5_portfolio_check: 32,
    QuarterlyState.q5_clarify: 32,
    QuarterlyState.q6_portfolio_health_update: 38,
    QuarterlyState.q7_protection_check: 44,
    QuarterlyState.q7_clarify: 44,
    QuarterlyState.q8_opportunity_check: 50,
    QuarterlyState.q8_clarify: 50,
    QuarterlyState.q9_trigger_check: 56,
    QuarterlyState.q10_next_bet: 62,
    QuarterlyState.core_board_interrogation: 75,
    QuarterlyState.board_interrogation_clarify: 75,
    QuarterlyState.growth_board_interrogation: 88,
    QuarterlyState.generate_report: 95,
    QuarterlyState.finalized: 100,
}


class QuickState(enum.Enum):
    """States of the Quick Version audit, in presentation order."""

    sensitivity_gate = "sensitivityGate"
    q1_role_context = "q1RoleContext"
    q1_clarify = "q1Clarify"
    q2_paid_problems = "q2PaidProblems"
    q2_clarify = "q2Clarify"
    q3_direction_loop = "q3DirectionLoop"
    q3_clarify = "q3Clarify"
    q4_avoided_decision = "q4AvoidedDecision"
    q4_clarify = "q4Clarify"
    q5_comfort_work = "q5ComfortWork"
    q5_clarify = "q5Clarify"
    generate_output = "generateOutput"
    finalized = "finalized"


class QuickEvent(enum.Enum):
    """Inputs accepted by the Quick engine."""

    set_sensitivity_gate = "set_sensitivity_gate"
    answer = "answer"
    skip = "skip"
    generate_output = "generate_output"


MAX_QUICK_PROBLEMS = 3

QUICK_QUESTIONS: dict[QuickState, ReflectionQuestion] = {
    QuickState.q1_role_context: ReflectionQuestion(
        text="In 1-2 sentences, what is your current role and work context?",
        clarify_state=QuickState.q1_clarify,
        next_state=QuickState.q2_paid_problems,
    ),
    QuickState.q2_paid_problems: ReflectionQuestion(
        text="What are the 3 problems you are paid to solve? List them briefly.",
        clarify_state=QuickState.q2_clarify,
        next_state=QuickState.q3_direction_loop,
    ),
    # The text is per problem; see DIRECTION_SUB_QUESTIONS.
    QuickState.q3_direction_loop: ReflectionQuestion(
        text="For each problem: which way is it heading?",
        clarify_state=QuickState.q3_clarify,
        next_state=QuickState.q4_avoided_decision,
    ),
    QuickState.q4_avoided_decision: ReflectionQuestion(
        text=(
            "What decision or conversation have you been avoiding? "
            "What's the cost of waiting?"
        ),
        clarify_state=QuickState.q4_clarify,
        next_state=QuickState.q5_comfort_work,
    ),
    QuickState.q5_comfort_work: ReflectionQuestion(
        text=(
            "Where are you doing comfort work - tasks that feel productive "
            "but don't advance your goals?"
        ),
        clarify_state=QuickState.q5_clarify,
        next_state=QuickState.generate_output,
    ),
}

# Asked in order for each problem during the direction loop.
DIRECTION_SUB_QUESTIONS: tuple[str, ...] = (
    'For "{name}": Is AI getting cheaper at solving this? How so?',
    'For "{name}": What\'s the cost if you get this wrong?',
    'For "{name}": Is trust or special access required to solve this?',
)

QUICK_CLARIFY_PARENT: dict[QuickState, QuickState] = {
    question.clarify_state: state
    for state, question in QUICK_QUESTIONS.items()
}

QUICK_TRANSITIONS: dict[tuple[QuickState, QuickEvent], tuple[QuickState, ...]] = {
    (QuickState.sensitivity_gate, QuickEvent.set_sensitivity_gate): (
        QuickState.q1_role_context,
    ),
    **_gated_transitions(QUICK_QUESTIONS, QuickEvent.answer, QuickEvent.skip),
    # The direction loop stays put until every problem has its three answers.
    (QuickState.q3_direction_loop, QuickEvent.answer): (
        QuickState.q3_clarify,
        QuickState.q3_direction_loop,
        QuickState.q4_avoided_decision,
    ),
    (QuickState.q3_clarify, QuickEvent.answer): (
        QuickState.q3_clarify,
        QuickState.q3_direction_loop,
        QuickState.q4_avoided_decision,
    ),
    (QuickState.q3_clarify, QuickEvent.skip): (
        QuickState.q3_direction_loop,
        QuickState.q4_avoided_decision,
    ),
    (QuickState.generate_output, QuickEvent.generate_output): (QuickState.finalized,),
}

QUICK_PROGRESS: dict[QuickState, int] = {
    QuickState.sensitivity_gate: 5,
    QuickState.q1_role_context: 15,
    QuickState.q1_clarify: 15,
    QuickState.q2_paid_problems: 30,
    QuickState.q2_clarify: 30,
    QuickState.q3_direction_loop: 50,
    QuickState.q3_clarify: 50,
    QuickState.q4_avoided_decision: 70,
    QuickState.q4_clarify: 70,
    QuickState.q5_comfort_work: 85,
    QuickState.q5_clarify: 85,
    QuickState.generate_output: 95,
    QuickState.finalized: 100,
}


StateT = TypeVar("StateT", SetupState, QuarterlyState, QuickState)
EventT = TypeVar("EventT", SetupEvent, QuarterlyEvent, QuickEvent)


def allowed_targets(
    table: dict[tuple[StateT, EventT], tuple[StateT, ...]],
    current: StateT,
    event: EventT,
) -> tuple[StateT, ...]:
    """Return the states an event may lead to, or an empty tuple."""
    return table.get((current, event), ())


def resolve_transition(
    table: dict[tuple[StateT, EventT], tuple[StateT, ...]],
    current: StateT,
    event: EventT,
    target: StateT | None = None,
) -> StateT:
    """Validate an event against the transition table and return the next state.

    Args:
        table: SETUP_TRANSITIONS, QUARTERLY_TRANSITIONS or QUICK_TRANSITIONS.
        current: State the session is in.
        event: Event being applied.
        target: Branch chosen by the engine. Required when the event has
            more than one possible target.

    Returns:
        The validated next state.

    Raises:
        InvalidTransitionError: If the event is not accepted in current, or
            target is not one of its allowed destinations.
    """
    targets = allowed_targets(table, current, event)
    if not targets:
        raise InvalidTransitionError(current, event)
    if target is None:
        if len(targets) != 1:
            raise InvalidTransitionError(current, event)
        return targets[0]
    if target not in targets:
        raise InvalidTransitionError(current, event)
    return target


def require_event(
    table: dict[tuple[StateT, EventT], tuple[StateT, ...]],
    current: StateT,
    event: EventT,
) -> None:
    """Raise InvalidTransitionError unless event is accepted in current."""
    if not allowed_targets(table, current, event):
        raise InvalidTransitionError(current, event)
