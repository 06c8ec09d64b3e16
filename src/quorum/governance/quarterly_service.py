"""Quarterly Review workflow service.

Gathers the portfolio facts each Quarterly transition needs, applies
QuarterlyEngine, and stores the result. Bet evaluation writes the bet and its
evidence together with the session save; ``generate_report`` is the
Quarterly-Finalize unit of work.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database.models.board_member import BoardMember
from quorum.database.models.governance_session import GovernanceSession
from quorum.database.queries.bet import (
    create_bet,
    create_evidence_item,
    evaluate_bet,
    get_bet,
    get_latest_open_bet,
)
from quorum.database.queries.portfolio import (
    get_next_version_number,
    get_portfolio_health,
    has_portfolio,
    list_active_board_members,
    list_active_triggers,
    list_live_problems,
    mark_due_triggers_met,
    upsert_portfolio_health,
)
from quorum.database.queries.session import (
    complete_governance_session,
    get_last_completed_session,
)
from quorum.governance.enums import BetStatus, GovernanceSessionType, ProblemDirection
from quorum.governance.errors import SessionValidationError
from quorum.governance.quarterly_data import (
    DEFAULT_BET_DURATION_DAYS,
    BoardRoster,
    BoardSeat,
    EvidenceEntry,
    NewBetDraft,
    QuarterlySessionData,
)
from quorum.governance.quarterly_engine import (
    HealthSnapshot,
    LiveProblem,
    OpenBet,
    PrerequisiteFacts,
    QuarterlyEngine,
    TriggerFact,
)
from quorum.governance.service import GovernanceService, SessionView
from quorum.governance.unit_of_work import SessionFactory, unit_of_work
from quorum.logging import bind_session_context

T = TypeVar("T")


class QuarterlyService(GovernanceService[QuarterlySessionData]):
    """Runs Quarterly Review sessions against the database.

    Attributes:
        engine: Pure Quarterly transitions.
        bet_duration_days: Default lifetime of a new bet.
    """

    session_type = GovernanceSessionType.quarterly
    data_class = QuarterlySessionData

    def __init__(
        self,
        session_factory: SessionFactory,
        engine: QuarterlyEngine,
        bet_duration_days: int = DEFAULT_BET_DURATION_DAYS,
    ) -> None:
        super().__init__(session_factory)
        self.engine = engine
        self.bet_duration_days = bet_duration_days

    # Facts

    async def _prerequisite_facts(self, db_session: AsyncSession) -> PrerequisiteFacts:
        problems = await list_live_problems(db_session)
        last = await get_last_completed_session(db_session, GovernanceSessionType.quarterly)
        days = None
        if last is not None and last.completed_at is not None:
            days = (datetime.now(timezone.utc) - last.completed_at).days
        return PrerequisiteFacts(
            has_portfolio=await has_portfolio(db_session),
            board_member_count=len(await list_active_board_members(db_session)),
            trigger_count=len(await list_active_triggers(db_session)),
            has_appreciating_problems=any(
                p.direction is ProblemDirection.appreciating for p in problems
            ),
            days_since_last_report=days,
        )

    @staticmethod
    async def _open_bet(db_session: AsyncSession) -> OpenBet | None:
        bet = await get_latest_open_bet(db_session)
        if bet is None:
            return None
        return OpenBet(
            bet_id=bet.id,
            prediction=bet.prediction,
            wrong_if=bet.wrong_if,
            status=bet.status,
            created_at=bet.created_at,
        )

    @staticmethod
    async def _live_problems(db_session: AsyncSession) -> list[LiveProblem]:
        return [
            LiveProblem(
                problem_id=problem.id,
                name=problem.name,
                direction=problem.direction,
                time_allocation_percent=problem.time_allocation_percent,
            )
            for problem in await list_live_problems(db_session)
        ]

    @staticmethod
    async def _previous_health(db_session: AsyncSession) -> HealthSnapshot | None:
        health = await get_portfolio_health(db_session)
        if health is None:
            return None
        return HealthSnapshot(
            appreciating_percent=health.appreciating_percent,
            depreciating_percent=health.depreciating_percent,
            stable_percent=health.stable_percent,
        )

    @staticmethod
    async def _trigger_facts(db_session: AsyncSession, now: datetime) -> list[TriggerFact]:
        """Active triggers, counting passed due dates as met."""
        return [
            TriggerFact(
                trigger_id=trigger.id,
                trigger_type=trigger.trigger_type,
                description=trigger.description,
                is_met=trigger.is_met
                or (trigger.due_at is not None and trigger.due_at <= now),
            )
            for trigger in await list_active_triggers(db_session)
        ]

    @staticmethod
    async def _roster(db_session: AsyncSession) -> BoardRoster:
        problem_names = {p.id: p.name for p in await list_live_problems(db_session)}

        def seat(member: BoardMember) -> BoardSeat:
            return BoardSeat(
                member_id=member.id,
                role=member.role_type,
                persona_name=member.persona_name,
                anchored_problem_id=member.anchored_problem_id,
                anchored_problem_name=problem_names.get(member.anchored_problem_id),
                anchored_demand=member.anchored_demand,
            )

        return BoardRoster(
            core=tuple(seat(m) for m in await list_active_board_members(db_session, growth=False)),
            growth=tuple(
                seat(m) for m in await list_active_board_members(db_session, growth=True)
            ),
        )

    async def _gather(self, gather: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run a read-only fact query in its own short transaction."""
        async with unit_of_work(self.session_factory) as db_session:
            return await gather(db_session)

    async def get_open_bet(self) -> OpenBet | None:
        """The bet Q1 asks the user to evaluate, if one is open."""
        return await self._gather(self._open_bet)

    # Gates

    async def check_prerequisites(
        self, session_id: uuid.UUID
    ) -> SessionView[QuarterlySessionData]:
        facts = await self._gather(self._prerequisite_facts)
        return await self._transition(
            session_id, lambda data: self.engine.check_prerequisites(data, facts)
        )

    async def acknowledge_recent_report(
        self, session_id: uuid.UUID
    ) -> SessionView[QuarterlySessionData]:
        return await self._transition(session_id, self.engine.acknowledge_recent_report)

    # Q1

    async def evaluate_bet(
        self,
        session_id: uuid.UUID,
        status: BetStatus,
        rationale: str | None = None,
        evidence: Sequence[EvidenceEntry] = (),
    ) -> SessionView[QuarterlySessionData]:
        """Judge the latest open bet and store the verdict with the session.

        Raises:
            SessionValidationError: If there is no open bet, or the status is
                not a valid outcome for it.
        """
        bet = await self.get_open_bet()
        if bet is None:
            raise SessionValidationError("There is no open bet to evaluate")

        async def persist(
            db_session: AsyncSession,
            record: GovernanceSession,
            data: QuarterlySessionData,
        ) -> None:
            stored = await get_bet(db_session, bet.bet_id)
            if stored is None:
                raise SessionValidationError(f"Bet {bet.bet_id} no longer exists")
            await evaluate_bet(
                db_session,
                stored,
                status,
                evaluation_session_id=record.id,
                evaluation_notes=rationale,
            )
            for entry in evidence:
                await create_evidence_item(
                    db_session,
                    session_id=record.id,
                    description=entry.description,
                    evidence_type=entry.evidence_type,
                    strength=entry.effective_strength,
                    context=f"bet_evaluation:{bet.bet_id}",
                )
            record.evaluated_bet_id = bet.bet_id

        view = await self._transition(
            session_id,
            lambda data: self.engine.evaluate_bet(data, bet, status, rationale, evidence),
            persist,
        )
        self.logger.info(
            "quarterly_bet_evaluated",
            session_id=str(session_id),
            bet_id=str(bet.bet_id),
            status=status.value,
            evidence_count=len(evidence),
        )
        return view

    async def skip_bet_evaluation(
        self, session_id: uuid.UUID
    ) -> SessionView[QuarterlySessionData]:
        bet = await self.get_open_bet()
        return await self._transition(
            session_id,
            lambda data: self.engine.skip_bet_evaluation(data, has_open_bet=bet is not None),
        )

    # Reflection questions

    async def answer(
        self, session_id: uuid.UUID, answer: str
    ) -> SessionView[QuarterlySessionData]:
        return await self._transition(
            session_id, lambda data: self.engine.answer(data, answer)
        )

    async def skip(self, session_id: uuid.UUID) -> SessionView[QuarterlySessionData]:
        return await self._transition(session_id, self.engine.skip)

    # Q6, Q9, Q10

    async def calculate_health_trend(
        self, session_id: uuid.UUID
    ) -> SessionView[QuarterlySessionData]:
        problems = await self._gather(self._live_problems)
        previous = await self._gather(self._previous_health)
        return await self._transition(
            session_id,
            lambda data: self.engine.calculate_health_trend(data, problems, previous),
        )

    async def check_triggers(
        self, session_id: uuid.UUID, now: datetime | None = None
    ) -> SessionView[QuarterlySessionData]:
        now = now or datetime.now(timezone.utc)
        triggers = await self._gather(lambda db: self._trigger_facts(db, now))
        return await self._transition(
            session_id, lambda data: self.engine.check_triggers(data, triggers)
        )

    async def create_new_bet(
        self,
        session_id: uuid.UUID,
        prediction: str,
        wrong_if: str,
        duration_days: int | None = None,
    ) -> SessionView[QuarterlySessionData]:
        """Record the next bet and seat the board for interrogation."""
        bet = NewBetDraft(
            prediction=prediction,
            wrong_if=wrong_if,
            duration_days=duration_days or self.bet_duration_days,
        )
        roster = await self._gather(self._roster)
        return await self._transition(
            session_id, lambda data: self.engine.create_new_bet(data, bet, roster)
        )

    # Board interrogation

    async def prepare_board_question(
        self, session_id: uuid.UUID
    ) -> SessionView[QuarterlySessionData]:
        return await self._transition(session_id, self.engine.prepare_board_question)

    async def answer_board(
        self, session_id: uuid.UUID, response: str
    ) -> SessionView[QuarterlySessionData]:
        return await self._transition(
            session_id, lambda data: self.engine.answer_board(data, response)
        )

    # Finalize

    async def generate_report(self, session_id: uuid.UUID) -> SessionView[QuarterlySessionData]:
        """Write the report, then persist the new bet and health in one unit of work.

        The report is generated before the transaction opens, so a generator
        failure leaves nothing written.

        Raises:
            CollaboratorError: If the report generator failed.
            FinalizeError: If the unit of work failed and was rolled back.
        """
        bind_session_context(str(session_id), self.session_type.value)
        view = await self.load_session(session_id)
        finalized = await self.engine.generate_report(view.data)
        new_bet = finalized.new_bet
        if new_bet is None:
            raise SessionValidationError("A new bet is required before the report")

        async with unit_of_work(self.session_factory, "quarterly_finalize") as db_session:
            record = await self._require(db_session, session_id)
            bet = await create_bet(
                db_session,
                prediction=new_bet.prediction,
                wrong_if=new_bet.wrong_if,
                duration_days=new_bet.duration_days,
                source_session_id=record.id,
            )
            await self._refresh_health(db_session)
            met = await mark_due_triggers_met(db_session)
            finalized = finalized.model_copy(update={"created_bet_id": bet.id})
            evaluated = finalized.bet_evaluation
            await complete_governance_session(
                db_session,
                record,
                output_markdown=finalized.report_markdown,
                evaluated_bet_id=evaluated.bet_id if evaluated else None,
                created_bet_id=bet.id,
            )
            record = await self._save(db_session, record, finalized)

        self.logger.info(
            "quarterly_finalized",
            session_id=str(session_id),
            created_bet_id=str(bet.id),
            triggers_marked_met=met,
        )
        return self._view(record, finalized)

    @staticmethod
    async def _refresh_health(db_session: AsyncSession) -> None:
        """Upsert the health record from live allocations under the next version number."""
        totals = {direction: 0 for direction in ProblemDirection}
        for problem in await list_live_problems(db_session):
            totals[problem.direction] += problem.time_allocation_percent
        previous = await get_portfolio_health(db_session)
        await upsert_portfolio_health(
            db_session,
            portfolio_version=await get_next_version_number(db_session),
            appreciating_percent=totals[ProblemDirection.appreciating],
            depreciating_percent=totals[ProblemDirection.depreciating],
            stable_percent=totals[ProblemDirection.stable],
            risk_statement=previous.risk_statement if previous else None,
            opportunity_statement=previous.opportunity_statement if previous else None,
        )
