"""Portfolio query functions for Quorum.

Covers problems, board members, re-setup triggers, the health singleton and
version snapshots. Live rows are those whose ``deleted_at`` is NULL.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database.models.board_member import BoardMember
from quorum.database.models.portfolio import PortfolioHealth, PortfolioVersion
from quorum.database.models.problem import Problem
from quorum.database.models.trigger import ReSetupTrigger

logger = structlog.get_logger(__name__)


async def soft_delete_portfolio(session: AsyncSession) -> dict[str, int]:
    """Soft-delete every live problem, board member and trigger.

    Returns:
        Number of rows tombstoned per table.
    """
    now = datetime.now(timezone.utc)
    counts: dict[str, int] = {}
    for model in (BoardMember, ReSetupTrigger, Problem):
        result = await session.execute(
            update(model)
            .where(model.deleted_at.is_(None))
            .values(deleted_at=now)
            .execution_options(synchronize_session=False)
        )
        counts[model.__tablename__] = result.rowcount or 0
    await session.flush()
    logger.info("portfolio_soft_deleted", **counts)
    return counts


async def create_problem(session: AsyncSession, **fields: Any) -> Problem:
    """Create a problem from column values."""
    problem = Problem(**fields)
    session.add(problem)
    await session.flush()
    return problem


async def list_live_problems(session: AsyncSession) -> list[Problem]:
    """Return live problems in display order."""
    stmt = (
        select(Problem)
        .where(Problem.deleted_at.is_(None))
        .order_by(Problem.display_order)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_board_member(session: AsyncSession, **fields: Any) -> BoardMember:
    """Create a board member from column values."""
    member = BoardMember(**fields)
    session.add(member)
    await session.flush()
    return member


async def list_active_board_members(
    session: AsyncSession,
    growth: bool | None = None,
) -> list[BoardMember]:
    """Return live, active board members in seat order.

    Args:
        session: Active async database session.
        growth: Restrict to growth (True) or core (False) roles.
    """
    stmt = select(BoardMember).where(
        BoardMember.deleted_at.is_(None),
        BoardMember.is_active.is_(True),
    )
    if growth is not None:
        stmt = stmt.where(BoardMember.is_growth_role.is_(growth))
    stmt = stmt.order_by(BoardMember.display_order)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_trigger(session: AsyncSession, **fields: Any) -> ReSetupTrigger:
    """Create a re-setup trigger from column values."""
    trigger = ReSetupTrigger(**fields)
    session.add(trigger)
    await session.flush()
    return trigger


async def list_active_triggers(session: AsyncSession) -> list[ReSetupTrigger]:
    stmt = (
        select(ReSetupTrigger)
        .where(ReSetupTrigger.deleted_at.is_(None))
        .order_by(ReSetupTrigger.created_at)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def mark_due_triggers_met(session: AsyncSession, now: datetime | None = None) -> int:
    """Flag every live trigger whose due date has passed as met."""
    now = now or datetime.now(timezone.utc)
    stmt = select(ReSetupTrigger).where(
        ReSetupTrigger.deleted_at.is_(None),
        ReSetupTrigger.is_met.is_(False),
        ReSetupTrigger.due_at.is_not(None),
        ReSetupTrigger.due_at <= now,
    )
    result = await session.execute(stmt)
    triggers = list(result.scalars().all())
    for trigger in triggers:
        trigger.is_met = True
        trigger.met_at = now
    await session.flush()
    return len(triggers)


async def get_portfolio_health(session: AsyncSession) -> PortfolioHealth | None:
    """Return the health singleton, if one has been written."""
    stmt = select(PortfolioHealth).order_by(PortfolioHealth.created_at).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def upsert_portfolio_health(
    session: AsyncSession,
    portfolio_version: int,
    appreciating_percent: int,
    depreciating_percent: int,
    stable_percent: int,
    risk_statement: str | None = None,
    opportunity_statement: str | None = None,
) -> PortfolioHealth:
    """Create or overwrite the health singleton."""
    health = await get_portfolio_health(session)
    if health is None:
        health = PortfolioHealth()
        session.add(health)
    health.portfolio_version = portfolio_version
    health.appreciating_percent = appreciating_percent
    health.depreciating_percent = depreciating_percent
    health.stable_percent = stable_percent
    health.risk_statement = risk_statement
    health.opportunity_statement = opportunity_statement
    health.calculated_at = datetime.now(timezone.utc)
    await session.flush()

    logger.info(
        "portfolio_health_upserted",
        portfolio_version=portfolio_version,
        appreciating=appreciating_percent,
        depreciating=depreciating_percent,
        stable=stable_percent,
    )
    return health


async def get_latest_version_number(session: AsyncSession) -> int:
    """Highest portfolio version number written so far, or 0."""
    result = await session.execute(select(func.max(PortfolioVersion.version_number)))
    return result.scalar_one_or_none() or 0


async def get_next_version_number(session: AsyncSession) -> int:
    return await get_latest_version_number(session) + 1


async def has_portfolio(session: AsyncSession) -> bool:
    return await get_latest_version_number(session) > 0


async def create_portfolio_version(
    session: AsyncSession,
    version_number: int,
    problems_snapshot: list[Any],
    health_snapshot: dict[str, Any],
    board_anchoring_snapshot: dict[str, Any],
    triggers_snapshot: list[Any],
    trigger_reason: str,
) -> PortfolioVersion:
    """Insert an immutable portfolio snapshot."""
    version = PortfolioVersion(
        version_number=version_number,
        problems_snapshot=problems_snapshot,
        health_snapshot=health_snapshot,
        board_anchoring_snapshot=board_anchoring_snapshot,
        triggers_snapshot=triggers_snapshot,
        trigger_reason=trigger_reason,
    )
    session.add(version)
    await session.flush()

    logger.info(
        "portfolio_version_created",
        version_id=str(version.id),
        version_number=version_number,
        trigger_reason=trigger_reason,
    )
    return version
