"""Shared persistence plumbing for the governance workflow services.

A service call loads the session record, rebuilds immutable session data
from its columns and JSON document, hands it to the engine, and stores what
the engine returns. Collaborator calls made by the engine happen between two
short transactions, never inside one. A transition that raises leaves the
stored record untouched.
"""

from __future__ import annotations

import inspect
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database.models.governance_session import GovernanceSession
from quorum.database.queries.preferences import get_preferences, remember_abstraction_mode
from quorum.database.queries.session import (
    abandon_governance_session,
    create_governance_session,
    get_governance_session,
    get_in_progress_session,
    save_session_state,
)
from quorum.governance.enums import GovernanceSessionType, SessionStatus
from quorum.governance.errors import (
    SessionInProgressError,
    SessionNotFoundError,
    SessionValidationError,
)
from quorum.governance.session_data import BaseSessionData
from quorum.governance.unit_of_work import SessionFactory, unit_of_work
from quorum.logging import bind_session_context

logger = structlog.get_logger(__name__)

DataT = TypeVar("DataT", bound=BaseSessionData)

Step = Callable[[DataT], Any]
Persist = Callable[[AsyncSession, GovernanceSession, DataT], Awaitable[None]]


@dataclass(frozen=True)
class SessionView(Generic[DataT]):
    """A governance session as returned to callers.

    Attributes:
        session_id: Record id.
        session_type: Workflow type.
        status: Lifecycle status.
        data: Session data rebuilt from the record.
        output_markdown: Summary or report, once completed.
        started_at: When the session started.
        completed_at: When the session completed.
    """

    session_id: uuid.UUID
    session_type: GovernanceSessionType
    status: SessionStatus
    data: DataT
    output_markdown: str | None
    started_at: datetime
    completed_at: datetime | None

    @property
    def progress_percent(self) -> int:
        return self.data.progress_percent


class GovernanceService(Generic[DataT]):
    """Lifecycle and transition plumbing shared by the workflow services."""

    session_type: ClassVar[GovernanceSessionType]
    data_class: ClassVar[type[BaseSessionData]]
    engine: Any

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory
        self.logger = logger.bind(
            component=type(self).__name__, session_type=self.session_type.value
        )

    # Record <-> data

    def _rebuild(self, record: GovernanceSession) -> DataT:
        return self.data_class.from_record(  # type: ignore[return-value]
            current_state=record.current_state,
            abstraction_mode=record.abstraction_mode,
            vagueness_skip_count=record.vagueness_skip_count,
            document=record.data_json,
        )

    def _view(self, record: GovernanceSession, data: DataT | None = None) -> SessionView[DataT]:
        return SessionView(
            session_id=record.id,
            session_type=record.session_type,
            status=record.status,
            data=data if data is not None else self._rebuild(record),
            output_markdown=record.output_markdown,
            started_at=record.started_at,
            completed_at=record.completed_at,
        )

    async def _require(
        self, db_session: AsyncSession, session_id: uuid.UUID
    ) -> GovernanceSession:
        record = await get_governance_session(db_session, session_id)
        if record is None or record.session_type is not self.session_type:
            raise SessionNotFoundError(session_id)
        return record

    async def _save(
        self, db_session: AsyncSession, record: GovernanceSession, data: DataT
    ) -> GovernanceSession:
        return await save_session_state(
            db_session,
            record,
            current_state=getattr(data, "current_state").value,
            abstraction_mode=data.abstraction_mode,
            vagueness_skip_count=data.vagueness_skip_count,
            data_json=data.to_document(),
        )

    # Lifecycle

    async def start_session(self, abstraction_mode: bool | None = None) -> SessionView[DataT]:
        """Start a new session of this service's type.

        Args:
            abstraction_mode: Initial abstraction flag. Defaults to the
                remembered preference, or False.

        Raises:
            SessionInProgressError: If any governance session is in progress.
        """
        async with unit_of_work(self.session_factory) as db_session:
            existing = await get_in_progress_session(db_session)
            if existing is not None:
                raise SessionInProgressError(existing.id, existing.session_type.value)

            if abstraction_mode is None:
                preferences = await get_preferences(db_session)
                abstraction_mode = (
                    preferences.default_abstraction_mode
                    if preferences.remember_abstraction_choice
                    else False
                )
            data = self.data_class(abstraction_mode=abstraction_mode)
            record = await create_governance_session(
                db_session,
                session_type=self.session_type,
                current_state=getattr(data, "current_state").value,
                abstraction_mode=abstraction_mode,
                data_json=data.to_document(),
            )

        bind_session_context(str(record.id), self.session_type.value)
        self.logger.info("session_started", session_id=str(record.id))
        return self._view(record, data)  # type: ignore[arg-type]

    async def get_in_progress_session(self) -> SessionView[DataT] | None:
        """Return the in-progress session of this type, if there is one."""
        async with unit_of_work(self.session_factory) as db_session:
            record = await get_in_progress_session(db_session, self.session_type)
        return self._view(record) if record is not None else None

    async def load_session(self, session_id: uuid.UUID) -> SessionView[DataT]:
        """Load a session so that it can be resumed or displayed.

        Raises:
            SessionNotFoundError: If the id does not resolve to a live record.
        """
        async with unit_of_work(self.session_factory) as db_session:
            record = await self._require(db_session, session_id)
        return self._view(record)

    async def abandon_session(self, session_id: uuid.UUID) -> SessionView[DataT]:
        """Abandon an in-progress session.

        Raises:
            SessionNotFoundError: If the id does not resolve to a live record.
            SessionValidationError: If the session is already completed.
        """
        async with unit_of_work(self.session_factory) as db_session:
            record = await self._require(db_session, session_id)
            if record.status is not SessionStatus.in_progress:
                raise SessionValidationError(
                    f"Only in-progress sessions can be abandoned (status: {record.status.value})"
                )
            record = await abandon_governance_session(db_session, record)
        return self._view(record)

    # Transitions

    async def _transition(
        self,
        session_id: uuid.UUID,
        step: Step[DataT],
        persist: Persist[DataT] | None = None,
    ) -> SessionView[DataT]:
        """Apply step to the stored session data and save the result.

        Args:
            session_id: Session to advance.
            step: Engine call producing the next session data. May be async.
            persist: Extra writes committed in the same transaction as the save.
        """
        bind_session_context(str(session_id), self.session_type.value)
        async with unit_of_work(self.session_factory) as db_session:
            record = await self._require(db_session, session_id)
        data = self._rebuild(record)

        result = step(data)
        updated: DataT = await result if inspect.isawaitable(result) else result

        async with unit_of_work(self.session_factory) as db_session:
            record = await self._require(db_session, session_id)
            if persist is not None:
                await persist(db_session, record, updated)
            record = await self._save(db_session, record, updated)
        return self._view(record, updated)

    async def set_sensitivity_gate(
        self,
        session_id: uuid.UUID,
        abstraction_mode: bool,
        remember: bool = False,
    ) -> SessionView[DataT]:
        """Pass the sensitivity gate, optionally remembering the choice."""

        async def persist(
            db_session: AsyncSession, record: GovernanceSession, data: DataT
        ) -> None:
            if remember:
                await remember_abstraction_mode(db_session, abstraction_mode)

        return await self._transition(
            session_id,
            lambda data: self.engine.set_sensitivity_gate(data, abstraction_mode),
            persist,
        )
