"""Quarterly Review workflow engine.

Transitions take the current QuarterlySessionData plus the facts and input
they need and return a new QuarterlySessionData. Facts about the stored
portfolio (prerequisites, the open bet, live problems, the last health
record, triggers, the board) are gathered by QuarterlyService and passed in,
which keeps every transition free of persistence.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

import structlog

from quorum.governance import board
from quorum.governance.collaborators import (
    BoardQuestionGenerator,
    ReportGenerator,
    TrendDescriptionGenerator,
    invoke,
)
from quorum.governance.enums import BetStatus, ProblemDirection, TriggerType
from quorum.governance.errors import PrerequisiteError, SessionValidationError
from quorum.governance.quarterly_data import (
    BetEvaluation,
    BoardRoster,
    EvidenceEntry,
    HealthTrend,
    NewBetDraft,
    QuarterlySessionData,
    TriggerStatus,
)
from quorum.governance.session_data import ReflectionAnswer, TranscriptEntry
from quorum.governance.states import (
    CLARIFY_PARENT,
    CLARIFY_PROMPT,
    QUARTERLY_TRANSITIONS,
    REFLECTION_QUESTIONS,
    QuarterlyEvent,
    QuarterlyState,
    require_event,
    resolve_transition,
)
from quorum.governance.vagueness import VaguenessGate

logger = structlog.get_logger(__name__)

NO_OPEN_BET_ANSWER = "[No open bet to evaluate]"
DEFAULT_RECENT_REPORT_DAYS = 30

_EVALUATION_OUTCOMES = (BetStatus.correct, BetStatus.wrong, BetStatus.expired)


@dataclass(frozen=True)
class PrerequisiteFacts:
    """What the store holds when a Quarterly session reaches the prerequisites gate."""

    has_portfolio: bool
    board_member_count: int
    trigger_count: int
    has_appreciating_problems: bool
    days_since_last_report: int | None = None


@dataclass(frozen=True)
class OpenBet:
    bet_id: uuid.UUID
    prediction: str
    wrong_if: str
    status: BetStatus
    created_at: datetime | None = None


@dataclass(frozen=True)
class LiveProblem:
    problem_id: uuid.UUID
    name: str
    direction: ProblemDirection
    time_allocation_percent: int


@dataclass(frozen=True)
class HealthSnapshot:
    appreciating_percent: int
    depreciating_percent: int
    stable_percent: int


@dataclass(frozen=True)
class TriggerFact:
    trigger_id: uuid.UUID
    trigger_type: TriggerType
    description: str
    is_met: bool


def missing_prerequisites(facts: PrerequisiteFacts) -> list[str]:
    missing = []
    if not facts.has_portfolio:
        missing.append("No portfolio.")
    if facts.board_member_count < 1:
        missing.append("No board.")
    if facts.trigger_count < 1:
        missing.append("No triggers.")
    return missing


def session_context(data: QuarterlySessionData) -> str:
    """Condense the answers so far into context for board questions."""
    lines: list[str] = []
    if data.bet_evaluation is not None:
        evaluation = data.bet_evaluation
        lines.append(
            f'Last bet "{evaluation.prediction}" was judged {evaluation.status.value}.'
        )
    for state, reflection in data.reflections.items():
        question = REFLECTION_QUESTIONS[state].text
        answer = reflection.concrete_example or reflection.answer
        lines.append(f"Q: {question}\nA: {answer}")
    if data.health_trend is not None and data.health_trend.description:
        lines.append(f"Portfolio trend: {data.health_trend.description}")
    if data.new_bet is not None:
        lines.append(
            f"New bet: {data.new_bet.prediction} (wrong if: {data.new_bet.wrong_if})"
        )
    return "\n\n".join(lines)


class QuarterlyEngine:
    """Pure transitions of the Quarterly Review workflow.

    Attributes:
        gate: Shared vagueness gate.
        board_questions: Writes each board member's question.
        reports: Writes the final report.
        trends: Describes the portfolio health trend.
        recent_report_days: Reports younger than this raise a warning.
    """

    def __init__(
        self,
        gate: VaguenessGate,
        board_questions: BoardQuestionGenerator,
        reports: ReportGenerator,
        trends: TrendDescriptionGenerator,
        recent_report_days: int = DEFAULT_RECENT_REPORT_DAYS,
    ) -> None:
        self.gate = gate
        self.board_questions = board_questions
        self.reports = reports
        self.trends = trends
        self.recent_report_days = recent_report_days
        self.logger = logger.bind(component="QuarterlyEngine")

    def _move(
        self,
        data: QuarterlySessionData,
        event: QuarterlyEvent,
        target: QuarterlyState | None = None,
    ) -> QuarterlyState:
        next_state = resolve_transition(
            QUARTERLY_TRANSITIONS, data.current_state, event, target
        )
        self.logger.debug(
            "quarterly_transition",
            transition_event=event.value,
            from_state=data.current_state.value,
            to_state=next_state.value,
        )
        return next_state

    def current_question(self, data: QuarterlySessionData) -> str | None:
        """Prompt the user should be answering in the current state, if any."""
        state = data.current_state
        if state in REFLECTION_QUESTIONS:
            return REFLECTION_QUESTIONS[state].text
        if state in CLARIFY_PARENT or state is QuarterlyState.board_interrogation_clarify:
            return CLARIFY_PROMPT
        if state in (
            QuarterlyState.core_board_interrogation,
            QuarterlyState.growth_board_interrogation,
        ):
            return data.pending_board_question
        return None

    # Gates

    def set_sensitivity_gate(
        self, data: QuarterlySessionData, abstraction_mode: bool
    ) -> QuarterlySessionData:
        next_state = self._move(data, QuarterlyEvent.set_sensitivity_gate)
        return data.model_copy(
            update={"abstraction_mode": abstraction_mode, "current_state": next_state}
        )

    def check_prerequisites(
        self, data: QuarterlySessionData, facts: PrerequisiteFacts
    ) -> QuarterlySessionData:
        """Pass the prerequisites gate and note whether the last report is recent.

        Raises:
            PrerequisiteError: Naming every missing prerequisite.
        """
        require_event(
            QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.check_prerequisites
        )
        missing = missing_prerequisites(facts)
        if missing:
            self.logger.info("quarterly_prerequisites_missing", missing=missing)
            raise PrerequisiteError(missing)

        warning = None
        days = facts.days_since_last_report
        if days is not None and days < self.recent_report_days:
            warning = (
                f"Your last quarterly report was {days} day(s) ago. Reviews work best "
                f"at least {self.recent_report_days} days apart, but you can continue."
            )
        next_state = self._move(data, QuarterlyEvent.check_prerequisites)
        return data.model_copy(
            update={
                "prerequisites_met": True,
                "growth_roles_active": facts.has_appreciating_problems,
                "days_since_last_report": days,
                "recent_report_warning": warning,
                "current_state": next_state,
            }
        )

    def acknowledge_recent_report(self, data: QuarterlySessionData) -> QuarterlySessionData:
        next_state = self._move(data, QuarterlyEvent.acknowledge_recent_report)
        return data.model_copy(update={"current_state": next_state})

    # Q1

    def evaluate_bet(
        self,
        data: QuarterlySessionData,
        bet: OpenBet,
        status: BetStatus,
        rationale: str | None = None,
        evidence: Sequence[EvidenceEntry] = (),
    ) -> QuarterlySessionData:
        """Record the outcome of the last open bet.

        Raises:
            SessionValidationError: If status is not an outcome, or the bet
                cannot move to it.
        """
        require_event(QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.evaluate_bet)
        if status not in _EVALUATION_OUTCOMES:
            raise SessionValidationError(
                f"Invalid bet status '{status.value}'. Must be correct, wrong, or expired."
            )
        if not bet.status.can_transition_to(status):
            raise SessionValidationError(
                f"Bet cannot change from {bet.status.value} to {status.value}"
            )

        evaluation = BetEvaluation(
            bet_id=bet.bet_id,
            prediction=bet.prediction,
            wrong_if=bet.wrong_if,
            status=status,
            rationale=rationale,
            evidence=tuple(evidence),
        )
        answer = status.value.capitalize()
        if rationale:
            answer = f"{answer}: {rationale}"
        entry = TranscriptEntry(
            state=data.current_state.value,
            question=f'Evaluate your last bet: "{bet.prediction}"',
            answer=answer,
        )
        next_state = self._move(data, QuarterlyEvent.evaluate_bet)
        return data.with_entry(
            entry, bet_evaluation=evaluation, current_state=next_state
        )

    def skip_bet_evaluation(
        self, data: QuarterlySessionData, has_open_bet: bool
    ) -> QuarterlySessionData:
        """Record that there was no open bet to evaluate."""
        require_event(
            QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.skip_bet_evaluation
        )
        if has_open_bet:
            raise SessionValidationError("An open bet exists and must be evaluated")
        entry = TranscriptEntry(
            state=data.current_state.value,
            question="Bet Evaluation",
            answer=NO_OPEN_BET_ANSWER,
        )
        next_state = self._move(data, QuarterlyEvent.skip_bet_evaluation)
        return data.with_entry(
            entry, bet_evaluation_skipped=True, current_state=next_state
        )

    # Reflection questions

    async def answer(self, data: QuarterlySessionData, answer: str) -> QuarterlySessionData:
        """Answer a reflection question or its clarification.

        A vague first answer diverts to the question's clarify state. A vague
        clarification stays in the clarify state; a concrete one moves on.
        """
        require_event(QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.answer)
        if not answer.strip():
            raise SessionValidationError("Answer is required")

        state = data.current_state
        in_clarify = state in CLARIFY_PARENT
        question_state = CLARIFY_PARENT[state] if in_clarify else state
        question = REFLECTION_QUESTIONS[question_state]
        prompt = CLARIFY_PROMPT if in_clarify else question.text

        verdict = await self.gate.classify(prompt, answer)
        entry = TranscriptEntry(
            state=state.value, question=prompt, answer=answer, was_vague=verdict.is_vague
        )
        target = question.clarify_state if verdict.is_vague else question.next_state
        next_state = self._move(data, QuarterlyEvent.answer, target)

        reflections = dict(data.reflections)
        if in_clarify:
            if not verdict.is_vague:
                reflections[question_state] = reflections[question_state].model_copy(
                    update={"concrete_example": answer}
                )
        else:
            reflections[question_state] = ReflectionAnswer(
                answer=answer, was_vague=verdict.is_vague
            )
        self.logger.info(
            "quarterly_answer_recorded",
            state=state.value,
            was_vague=verdict.is_vague,
            next_state=next_state.value,
        )
        return data.with_entry(entry, reflections=reflections, current_state=next_state)

    def skip(self, data: QuarterlySessionData) -> QuarterlySessionData:
        """Skip a clarification, consuming one of the session's skips.

        Raises:
            SkipQuotaExceededError: If both skips are already used.
        """
        state = data.current_state
        require_event(QUARTERLY_TRANSITIONS, state, QuarterlyEvent.skip)

        if state is QuarterlyState.board_interrogation_clarify:
            seat = data.current_seat
            changes = {
                **board.amend_last_response(data, skipped=True),
                **board.advance(data),
            }
            self._move(data, QuarterlyEvent.skip, changes["current_state"])
            return self.gate.attempt_skip(
                data,
                question=CLARIFY_PROMPT,
                role=seat.role if seat else None,
                persona_name=seat.persona_name if seat else None,
                **changes,
            )

        question_state = CLARIFY_PARENT[state]
        next_state = self._move(data, QuarterlyEvent.skip)
        reflections = dict(data.reflections)
        reflections[question_state] = reflections[question_state].model_copy(
            update={"skipped": True}
        )
        return self.gate.attempt_skip(
            data,
            question=CLARIFY_PROMPT,
            reflections=reflections,
            current_state=next_state,
        )

    # Q6, Q9, Q10

    async def calculate_health_trend(
        self,
        data: QuarterlySessionData,
        problems: Sequence[LiveProblem],
        previous: HealthSnapshot | None,
    ) -> QuarterlySessionData:
        """Diff live direction totals against the last stored health record."""
        require_event(
            QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.calculate_health_trend
        )
        current = {direction: 0 for direction in ProblemDirection}
        for problem in problems:
            current[problem.direction] += problem.time_allocation_percent
        previous = previous or HealthSnapshot(0, 0, 0)

        description = await invoke(
            "trend_description_generator",
            self.trends.generate_trend_description(
                previous.appreciating_percent,
                current[ProblemDirection.appreciating],
                previous.depreciating_percent,
                current[ProblemDirection.depreciating],
            ),
        )
        trend = HealthTrend(
            previous_appreciating=previous.appreciating_percent,
            current_appreciating=current[ProblemDirection.appreciating],
            previous_depreciating=previous.depreciating_percent,
            current_depreciating=current[ProblemDirection.depreciating],
            previous_stable=previous.stable_percent,
            current_stable=current[ProblemDirection.stable],
            description=description,
        )
        has_appreciating = any(
            p.direction is ProblemDirection.appreciating for p in problems
        )
        target = (
            QuarterlyState.q7_protection_check
            if has_appreciating
            else QuarterlyState.q9_trigger_check
        )
        next_state = self._move(data, QuarterlyEvent.calculate_health_trend, target)
        entry = TranscriptEntry(
            state=data.current_state.value,
            question="Portfolio Health Trend",
            answer=(
                f"Appreciating: {trend.previous_appreciating}% -> {trend.current_appreciating}%, "
                f"Depreciating: {trend.previous_depreciating}% -> {trend.current_depreciating}%"
            ),
        )
        return data.with_entry(
            entry,
            health_trend=trend,
            growth_roles_active=has_appreciating,
            current_state=next_state,
        )

    def check_triggers(
        self, data: QuarterlySessionData, triggers: Sequence[TriggerFact]
    ) -> QuarterlySessionData:
        """Snapshot trigger status. Met triggers are surfaced, never blocking."""
        next_state = self._move(data, QuarterlyEvent.check_triggers)
        statuses = tuple(
            TriggerStatus(
                trigger_id=trigger.trigger_id,
                trigger_type=trigger.trigger_type,
                description=trigger.description,
                is_met=trigger.is_met,
                details=(
                    "Trigger condition has been met"
                    if trigger.is_met
                    else "Trigger not yet met"
                ),
            )
            for trigger in triggers
        )
        met = sum(1 for status in statuses if status.is_met)
        entry = TranscriptEntry(
            state=data.current_state.value,
            question="Re-setup Trigger Status",
            answer=f"Warning: {met} trigger(s) met" if met else "No triggers met",
        )
        return data.with_entry(entry, trigger_statuses=statuses, current_state=next_state)

    def create_new_bet(
        self, data: QuarterlySessionData, bet: NewBetDraft, roster: BoardRoster
    ) -> QuarterlySessionData:
        """Record the next bet and start board interrogation over roster.

        Growth seats are dropped from the roster unless growth roles are active.
        """
        require_event(QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.create_bet)
        if not bet.prediction.strip() or not bet.wrong_if.strip():
            raise SessionValidationError("A bet needs a prediction and a wrong-if condition")
        if not data.growth_roles_active:
            roster = roster.model_copy(update={"growth": ()})

        changes = board.start(roster)
        self._move(data, QuarterlyEvent.create_bet, changes["current_state"])
        entry = TranscriptEntry(
            state=data.current_state.value,
            question="Create new bet with wrong-if condition",
            answer=f"Prediction: {bet.prediction} | Wrong if: {bet.wrong_if}",
        )
        self.logger.info(
            "quarterly_board_started",
            core_seats=len(roster.core),
            growth_seats=len(roster.growth),
        )
        return data.with_entry(entry, new_bet=bet, **changes)

    # Board interrogation

    async def prepare_board_question(
        self, data: QuarterlySessionData
    ) -> QuarterlySessionData:
        """Generate the question for the seat at the iterator's position."""
        require_event(
            QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.prepare_board_question
        )
        if data.pending_board_question is not None:
            return data
        seat = data.current_seat
        if seat is None:
            raise SessionValidationError("No board member is waiting to ask a question")
        question = await invoke(
            "board_question_generator",
            self.board_questions.generate_board_question(
                seat.role,
                seat.persona_name,
                seat.anchored_problem_id,
                seat.anchored_demand,
                session_context(data),
            ),
        )
        return data.model_copy(update={"pending_board_question": question})

    async def answer_board(
        self, data: QuarterlySessionData, response: str
    ) -> QuarterlySessionData:
        """Answer the current board member's question or its clarification."""
        require_event(
            QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.answer_board
        )
        if not response.strip():
            raise SessionValidationError("Response is required")
        seat = data.current_seat
        if seat is None:
            raise SessionValidationError("No board member is waiting for a response")

        in_clarify = data.current_state is QuarterlyState.board_interrogation_clarify
        if in_clarify:
            prompt = CLARIFY_PROMPT
        elif data.pending_board_question is None:
            raise SessionValidationError("Board question has not been prepared")
        else:
            prompt = data.pending_board_question

        verdict = await self.gate.classify(prompt, response)
        entry = TranscriptEntry(
            state=data.current_state.value,
            question=prompt,
            answer=response,
            was_vague=verdict.is_vague,
            role=seat.role,
            persona_name=seat.persona_name,
        )

        changes: dict = {}
        if in_clarify:
            if verdict.is_vague:
                changes["current_state"] = QuarterlyState.board_interrogation_clarify
            else:
                changes.update(board.amend_last_response(data, concrete_example=response))
                changes.update(board.advance(data))
        else:
            record = board.response_for(seat, prompt, response, verdict.is_vague)
            changes.update(board.append_response(data, record))
            if verdict.is_vague:
                changes["current_state"] = QuarterlyState.board_interrogation_clarify
            else:
                changes.update(board.advance(data))

        self._move(data, QuarterlyEvent.answer_board, changes["current_state"])
        self.logger.info(
            "quarterly_board_response",
            role=seat.role.value,
            was_vague=verdict.is_vague,
            next_state=changes["current_state"].value,
        )
        return data.with_entry(entry, **changes)

    # Report

    async def generate_report(self, data: QuarterlySessionData) -> QuarterlySessionData:
        """Write the report and return the finalized session data.

        The caller persists the bet and health record in one unit of work
        before storing the returned value.
        """
        require_event(
            QUARTERLY_TRANSITIONS, data.current_state, QuarterlyEvent.generate_report
        )
        if data.new_bet is None:
            raise SessionValidationError("A new bet is required before the report")
        report = await invoke("report_generator", self.reports.generate_report(data))
        next_state = self._move(data, QuarterlyEvent.generate_report)
        return data.model_copy(
            update={"report_markdown": report, "current_state": next_state}
        )
