"""Setup workflow service.

Binds SetupEngine to the store: one method per transition, each loading the
session, applying the engine and saving the result. ``publish`` is the
Setup-Finalize unit of work that replaces the live portfolio.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database.queries.portfolio import (
    create_board_member,
    create_portfolio_version,
    create_problem,
    create_trigger,
    get_next_version_number,
    soft_delete_portfolio,
    upsert_portfolio_health,
)
from quorum.database.queries.preferences import complete_onboarding
from quorum.database.queries.session import complete_governance_session
from quorum.governance.enums import GovernanceSessionType
from quorum.governance.errors import SessionValidationError
from quorum.governance.service import GovernanceService, SessionView
from quorum.governance.setup_data import DraftProblem, Persona, SetupSessionData
from quorum.governance.setup_engine import SetupEngine
from quorum.governance.unit_of_work import SessionFactory, unit_of_work
from quorum.logging import bind_session_context

INITIAL_SETUP_REASON = "initial_setup"
RESETUP_REASON = "resetup"


class SetupService(GovernanceService[SetupSessionData]):
    """Runs Setup sessions against the database.

    Example:
        >>> service = SetupService(session_factory, engine)
        >>> view = await service.start_session()
        >>> view = await service.set_sensitivity_gate(view.session_id, False)
        >>> view = await service.save_problem(view.session_id, problem)
    """

    session_type = GovernanceSessionType.setup
    data_class = SetupSessionData

    def __init__(self, session_factory: SessionFactory, engine: SetupEngine) -> None:
        super().__init__(session_factory)
        self.engine = engine

    # Problems

    async def save_problem(
        self, session_id: uuid.UUID, problem: DraftProblem
    ) -> SessionView[SetupSessionData]:
        view = await self._transition(
            session_id, lambda data: self.engine.save_problem(data, problem)
        )
        self.logger.info(
            "setup_problem_saved",
            session_id=str(session_id),
            index=view.data.current_problem_index,
        )
        return view

    async def validate_and_advance(self, session_id: uuid.UUID) -> SessionView[SetupSessionData]:
        return await self._transition(session_id, self.engine.validate_and_advance)

    async def add_another_problem(self, session_id: uuid.UUID) -> SessionView[SetupSessionData]:
        return await self._transition(session_id, self.engine.add_another_problem)

    async def proceed_to_time_allocation(
        self, session_id: uuid.UUID
    ) -> SessionView[SetupSessionData]:
        return await self._transition(session_id, self.engine.proceed_to_time_allocation)

    # Allocation and health

    async def update_time_allocations(
        self, session_id: uuid.UUID, percents: Sequence[int]
    ) -> SessionView[SetupSessionData]:
        return await self._transition(
            session_id, lambda data: self.engine.update_time_allocations(data, percents)
        )

    async def proceed_from_time_allocation(
        self, session_id: uuid.UUID
    ) -> SessionView[SetupSessionData]:
        return await self._transition(session_id, self.engine.proceed_from_time_allocation)

    async def calculate_health(self, session_id: uuid.UUID) -> SessionView[SetupSessionData]:
        return await self._transition(session_id, self.engine.calculate_health)

    # Board

    async def create_core_roles(self, session_id: uuid.UUID) -> SessionView[SetupSessionData]:
        return await self._transition(session_id, self.engine.create_core_roles)

    async def create_growth_roles(self, session_id: uuid.UUID) -> SessionView[SetupSessionData]:
        return await self._transition(session_id, self.engine.create_growth_roles)

    async def create_personas(self, session_id: uuid.UUID) -> SessionView[SetupSessionData]:
        return await self._transition(session_id, self.engine.create_personas)

    async def update_persona(
        self, session_id: uuid.UUID, member_index: int, persona: Persona
    ) -> SessionView[SetupSessionData]:
        return await self._transition(
            session_id,
            lambda data: self.engine.update_persona(data, member_index, persona),
        )

    # Triggers and publish

    async def define_triggers(
        self, session_id: uuid.UUID, now: datetime | None = None
    ) -> SessionView[SetupSessionData]:
        now = now or datetime.now(timezone.utc)
        return await self._transition(
            session_id, lambda data: self.engine.define_triggers(data, now)
        )

    async def publish(self, session_id: uuid.UUID) -> SessionView[SetupSessionData]:
        """Replace the live portfolio with this session's drafts.

        Everything written here commits together or not at all: old rows are
        soft-deleted, the new problems, board and triggers are created, health
        is upserted, a version snapshot is inserted, and the session is
        completed.

        Raises:
            SessionValidationError: If the drafts are not publishable.
            FinalizeError: If the unit of work failed and was rolled back.
        """
        bind_session_context(str(session_id), self.session_type.value)
        view = await self.load_session(session_id)
        finalized = self.engine.publish(view.data)

        async with unit_of_work(self.session_factory, "setup_publish") as db_session:
            record = await self._require(db_session, session_id)
            version_id, version_number = await self._write_portfolio(db_session, finalized)
            await complete_governance_session(
                db_session,
                record,
                output_markdown=finalized.summary_markdown,
                created_portfolio_version_id=version_id,
            )
            await complete_onboarding(db_session)
            record = await self._save(db_session, record, finalized)

        self.logger.info(
            "setup_published",
            session_id=str(session_id),
            version_number=version_number,
            problems=len(finalized.problems),
            board_members=len(finalized.board_members),
        )
        return self._view(record, finalized)

    async def _write_portfolio(
        self,
        db_session: AsyncSession,
        data: SetupSessionData,
    ) -> tuple[uuid.UUID, int]:
        removed = await soft_delete_portfolio(db_session)

        problem_ids: list[uuid.UUID] = []
        problems_snapshot: list[dict[str, Any]] = []
        for order, draft in enumerate(data.problems):
            problem = await create_problem(
                db_session,
                name=draft.name,
                what_breaks=draft.what_breaks,
                scarcity_signals=list(draft.scarcity_signals),
                scarcity_unknown_reason=draft.scarcity_unknown_reason,
                evidence_ai_cheaper=draft.evidence_ai_cheaper,
                evidence_error_cost=draft.evidence_error_cost,
                evidence_trust_required=draft.evidence_trust_required,
                direction=draft.direction,
                direction_rationale=draft.direction_rationale,
                time_allocation_percent=draft.time_allocation_percent,
                display_order=order,
            )
            problem_ids.append(problem.id)
            problems_snapshot.append(
                {"id": str(problem.id), **draft.model_dump(mode="json")}
            )

        anchoring_snapshot: dict[str, Any] = {}
        for order, member in enumerate(data.board_members):
            index = member.anchored_problem_index
            if index is None or not 0 <= index < len(problem_ids):
                index = 0
            persona = member.persona
            if persona is None:
                raise SessionValidationError(f"Board member {member.role.value} has no persona")
            original = member.original_persona or persona
            await create_board_member(
                db_session,
                role_type=member.role,
                is_growth_role=member.is_growth_role,
                is_active=member.is_active,
                anchored_problem_id=problem_ids[index],
                anchored_demand=member.anchored_demand,
                persona_name=persona.name,
                persona_background=persona.background,
                persona_communication_style=persona.communication_style,
                persona_signature_phrase=persona.signature_phrase,
                original_persona_name=original.name,
                original_persona_background=original.background,
                original_persona_communication_style=original.communication_style,
                original_persona_signature_phrase=original.signature_phrase,
                display_order=order,
            )
            anchoring_snapshot[member.role.value] = {
                "problemIndex": index,
                "problemId": str(problem_ids[index]),
                "demand": member.anchored_demand,
            }

        for trigger in data.triggers:
            await create_trigger(
                db_session,
                trigger_type=trigger.trigger_type,
                description=trigger.description,
                condition=trigger.condition,
                recommended_action=trigger.recommended_action,
                due_at=trigger.due_at,
            )

        health = data.health
        if health is None:
            raise SessionValidationError("Portfolio health has not been calculated")
        version_number = await get_next_version_number(db_session)
        await upsert_portfolio_health(
            db_session,
            portfolio_version=version_number,
            appreciating_percent=health.appreciating_percent,
            depreciating_percent=health.depreciating_percent,
            stable_percent=health.stable_percent,
            risk_statement=health.risk_statement,
            opportunity_statement=health.opportunity_statement,
        )
        version = await create_portfolio_version(
            db_session,
            version_number=version_number,
            problems_snapshot=problems_snapshot,
            health_snapshot=health.model_dump(mode="json"),
            board_anchoring_snapshot=anchoring_snapshot,
            triggers_snapshot=[t.model_dump(mode="json") for t in data.triggers],
            trigger_reason=RESETUP_REASON if removed.get("problems") else INITIAL_SETUP_REASON,
        )
        return version.id, version_number
