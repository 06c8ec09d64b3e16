"""Governance session query functions for Quorum.

These functions add and flush but never commit; the caller owns the
transaction (see ``quorum.governance.unit_of_work``).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database.models.governance_session import GovernanceSession
from quorum.governance.enums import GovernanceSessionType, SessionStatus

logger = structlog.get_logger(__name__)


async def create_governance_session(
    session: AsyncSession,
    session_type: GovernanceSessionType,
    current_state: str,
    abstraction_mode: bool,
    data_json: dict[str, Any],
) -> GovernanceSession:
    """Create a new in-progress governance session.

    Args:
        session: Active async database session.
        session_type: Workflow the session runs.
        current_state: Initial state tag.
        abstraction_mode: Initial abstraction flag.
        data_json: Initial serialized session document.

    Returns:
        The newly created GovernanceSession.
    """
    record = GovernanceSession(
        session_type=session_type,
        status=SessionStatus.in_progress,
        current_state=current_state,
        abstraction_mode=abstraction_mode,
        vagueness_skip_count=0,
        data_json=data_json,
    )
    session.add(record)
    await session.flush()

    logger.info(
        "governance_session_created",
        session_id=str(record.id),
        session_type=session_type.value,
        current_state=current_state,
    )
    return record


async def get_governance_session(
    session: AsyncSession,
    session_id: UUID,
    include_deleted: bool = False,
) -> GovernanceSession | None:
    """Retrieve a governance session by ID.

    Soft-deleted (abandoned) sessions are hidden unless include_deleted is set.
    """
    stmt = select(GovernanceSession).where(GovernanceSession.id == session_id)
    if not include_deleted:
        stmt = stmt.where(GovernanceSession.deleted_at.is_(None))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_in_progress_session(
    session: AsyncSession,
    session_type: GovernanceSessionType | None = None,
) -> GovernanceSession | None:
    """Return the most recent in-progress session, optionally of one type."""
    stmt = select(GovernanceSession).where(
        GovernanceSession.status == SessionStatus.in_progress,
        GovernanceSession.deleted_at.is_(None),
    )
    if session_type is not None:
        stmt = stmt.where(GovernanceSession.session_type == session_type)
    stmt = stmt.order_by(GovernanceSession.started_at.desc()).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_last_completed_session(
    session: AsyncSession,
    session_type: GovernanceSessionType,
) -> GovernanceSession | None:
    """Return the most recently completed session of a type."""
    stmt = (
        select(GovernanceSession)
        .where(
            GovernanceSession.session_type == session_type,
            GovernanceSession.status == SessionStatus.completed,
            GovernanceSession.deleted_at.is_(None),
        )
        .order_by(GovernanceSession.completed_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_governance_sessions(
    session: AsyncSession,
    session_type: GovernanceSessionType | None = None,
    status: SessionStatus | None = None,
    include_deleted: bool = False,
    limit: int = 50,
) -> list[GovernanceSession]:
    """List sessions, newest first, with optional filters."""
    stmt = select(GovernanceSession)
    if session_type is not None:
        stmt = stmt.where(GovernanceSession.session_type == session_type)
    if status is not None:
        stmt = stmt.where(GovernanceSession.status == status)
    if not include_deleted:
        stmt = stmt.where(GovernanceSession.deleted_at.is_(None))
    stmt = stmt.order_by(GovernanceSession.started_at.desc()).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def save_session_state(
    session: AsyncSession,
    record: GovernanceSession,
    current_state: str,
    abstraction_mode: bool,
    vagueness_skip_count: int,
    data_json: dict[str, Any],
) -> GovernanceSession:
    """Overwrite a session's persisted progress (last write wins)."""
    record.current_state = current_state
    record.abstraction_mode = abstraction_mode
    record.vagueness_skip_count = vagueness_skip_count
    record.data_json = data_json
    await session.flush()

    logger.debug(
        "governance_session_saved",
        session_id=str(record.id),
        current_state=current_state,
        vagueness_skip_count=vagueness_skip_count,
    )
    return record


async def complete_governance_session(
    session: AsyncSession,
    record: GovernanceSession,
    output_markdown: str | None,
    created_portfolio_version_id: UUID | None = None,
    evaluated_bet_id: UUID | None = None,
    created_bet_id: UUID | None = None,
) -> GovernanceSession:
    """Mark a session completed and link what it produced."""
    record.status = SessionStatus.completed
    record.completed_at = datetime.now(timezone.utc)
    record.output_markdown = output_markdown
    record.created_portfolio_version_id = created_portfolio_version_id
    record.evaluated_bet_id = evaluated_bet_id
    record.created_bet_id = created_bet_id
    await session.flush()

    logger.info(
        "governance_session_completed",
        session_id=str(record.id),
        session_type=record.session_type.value,
        duration_seconds=record.duration_seconds,
    )
    return record


async def abandon_governance_session(
    session: AsyncSession,
    record: GovernanceSession,
) -> GovernanceSession:
    """Abandon a session by soft-deleting it."""
    now = datetime.now(timezone.utc)
    record.status = SessionStatus.abandoned
    record.deleted_at = now
    await session.flush()

    logger.info(
        "governance_session_abandoned",
        session_id=str(record.id),
        current_state=record.current_state,
    )
    return record
