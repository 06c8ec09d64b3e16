"""Quick Version workflow service.

Applies QuickEngine to stored sessions. ``generate_output`` is the
Quick-Finalize unit of work: it stores the proposed bet and completes the
session together.
"""

from __future__ import annotations

import uuid

from quorum.database.queries.bet import create_bet
from quorum.database.queries.session import complete_governance_session
from quorum.governance.enums import GovernanceSessionType
from quorum.governance.errors import SessionValidationError
from quorum.governance.quick_data import QUICK_BET_DURATION_DAYS, QuickSessionData
from quorum.governance.quick_engine import QuickEngine
from quorum.governance.service import GovernanceService, SessionView
from quorum.governance.unit_of_work import SessionFactory, unit_of_work
from quorum.logging import bind_session_context


class QuickService(GovernanceService[QuickSessionData]):
    """Runs Quick Version sessions against the database.

    Attributes:
        engine: Pure Quick transitions.
        bet_duration_days: Lifetime of the bet the audit proposes.
    """

    session_type = GovernanceSessionType.quick
    data_class = QuickSessionData

    def __init__(
        self,
        session_factory: SessionFactory,
        engine: QuickEngine,
        bet_duration_days: int = QUICK_BET_DURATION_DAYS,
    ) -> None:
        super().__init__(session_factory)
        self.engine = engine
        self.bet_duration_days = bet_duration_days

    async def answer(self, session_id: uuid.UUID, answer: str) -> SessionView[QuickSessionData]:
        return await self._transition(
            session_id, lambda data: self.engine.answer(data, answer)
        )

    async def skip(self, session_id: uuid.UUID) -> SessionView[QuickSessionData]:
        return await self._transition(session_id, self.engine.skip)

    async def generate_output(self, session_id: uuid.UUID) -> SessionView[QuickSessionData]:
        """Write the audit output, then store its bet and complete the session.

        Raises:
            CollaboratorError: If the output generator failed.
            FinalizeError: If the unit of work failed and was rolled back.
        """
        bind_session_context(str(session_id), self.session_type.value)
        view = await self.load_session(session_id)
        finalized = await self.engine.generate_output(view.data)
        output = finalized.output
        if output is None:
            raise SessionValidationError("The audit output has not been generated")

        async with unit_of_work(self.session_factory, "quick_finalize") as db_session:
            record = await self._require(db_session, session_id)
            bet = await create_bet(
                db_session,
                prediction=output.bet_prediction,
                wrong_if=output.bet_wrong_if,
                duration_days=self.bet_duration_days,
                source_session_id=record.id,
            )
            finalized = finalized.model_copy(update={"created_bet_id": bet.id})
            await complete_governance_session(
                db_session,
                record,
                output_markdown=output.markdown,
                created_bet_id=bet.id,
            )
            record = await self._save(db_session, record, finalized)

        self.logger.info(
            "quick_finalized",
            session_id=str(session_id),
            created_bet_id=str(bet.id),
            problem_count=len(finalized.problems),
        )
        return self._view(record, finalized)
