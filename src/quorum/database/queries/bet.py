"""Bet and evidence query functions for Quorum."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database.models.bet import Bet, EvidenceItem
from quorum.governance.enums import BetStatus, EvidenceStrength, EvidenceType

logger = structlog.get_logger(__name__)


class InvalidBetTransitionError(Exception):
    """Raised when a bet status change violates the bet lifecycle.

    Attributes:
        current: The bet's current status.
        target: The attempted status.
        bet_id: The bet that failed to transition.
    """

    def __init__(self, current: BetStatus, target: BetStatus, bet_id: UUID) -> None:
        self.current = current
        self.target = target
        self.bet_id = bet_id
        super().__init__(
            f"Invalid bet transition from {current.value} to {target.value} for bet {bet_id}"
        )


async def create_bet(
    session: AsyncSession,
    prediction: str,
    wrong_if: str,
    duration_days: int,
    source_session_id: UUID | None = None,
) -> Bet:
    """Create an open bet due duration_days from now."""
    now = datetime.now(timezone.utc)
    bet = Bet(
        prediction=prediction,
        wrong_if=wrong_if,
        status=BetStatus.open,
        source_session_id=source_session_id,
        due_at=now + timedelta(days=duration_days),
    )
    session.add(bet)
    await session.flush()

    logger.info(
        "bet_created",
        bet_id=str(bet.id),
        due_at=bet.due_at.isoformat(),
        source_session_id=str(source_session_id) if source_session_id else None,
    )
    return bet


async def get_bet(session: AsyncSession, bet_id: UUID) -> Bet | None:
    stmt = select(Bet).where(Bet.id == bet_id, Bet.deleted_at.is_(None))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_latest_open_bet(session: AsyncSession) -> Bet | None:
    """Return the most recently created open bet."""
    stmt = (
        select(Bet)
        .where(Bet.status == BetStatus.open, Bet.deleted_at.is_(None))
        .order_by(Bet.created_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_bets(
    session: AsyncSession,
    status: BetStatus | None = None,
) -> list[Bet]:
    stmt = select(Bet).where(Bet.deleted_at.is_(None))
    if status is not None:
        stmt = stmt.where(Bet.status == status)
    stmt = stmt.order_by(Bet.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def evaluate_bet(
    session: AsyncSession,
    bet: Bet,
    status: BetStatus,
    evaluation_session_id: UUID | None = None,
    evaluation_notes: str | None = None,
) -> Bet:
    """Move a bet to status, enforcing the bet lifecycle.

    Raises:
        InvalidBetTransitionError: If the bet cannot move to status.
    """
    if not bet.status.can_transition_to(status):
        raise InvalidBetTransitionError(bet.status, status, bet.id)

    previous = bet.status
    bet.status = status
    bet.evaluation_session_id = evaluation_session_id
    bet.evaluation_notes = evaluation_notes
    bet.evaluated_at = datetime.now(timezone.utc)
    await session.flush()

    logger.info(
        "bet_evaluated",
        bet_id=str(bet.id),
        from_status=previous.value,
        to_status=status.value,
    )
    return bet


async def create_evidence_item(
    session: AsyncSession,
    session_id: UUID,
    description: str,
    evidence_type: EvidenceType,
    strength: EvidenceStrength,
    context: str | None = None,
) -> EvidenceItem:
    item = EvidenceItem(
        session_id=session_id,
        description=description,
        evidence_type=evidence_type,
        strength=strength,
        context=context,
    )
    session.add(item)
    await session.flush()
    return item


async def list_evidence_items(session: AsyncSession, session_id: UUID) -> list[EvidenceItem]:
    stmt = (
        select(EvidenceItem)
        .where(EvidenceItem.session_id == session_id)
        .order_by(EvidenceItem.created_at)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
