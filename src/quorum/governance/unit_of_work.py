"""Transaction scope for governance services.

Every service call runs inside one ``unit_of_work`` block: the session is
opened, a transaction begun, and everything written in the block is
committed together or not at all. Finalize operations pass ``operation`` so
that any unexpected failure surfaces as a FinalizeError after rollback.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.governance.errors import FinalizeError, GovernanceError

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], AsyncSession]


@asynccontextmanager
async def unit_of_work(
    session_factory: SessionFactory,
    operation: str | None = None,
) -> AsyncIterator[AsyncSession]:
    """Open a session and commit everything written in the block atomically.

    Args:
        session_factory: Callable returning new AsyncSession instances.
        operation: Finalize operation name. When set, non-governance errors
            are re-raised as FinalizeError after the rollback.

    Yields:
        The AsyncSession bound to the open transaction.
    """
    async with session_factory() as db_session:
        try:
            async with db_session.begin():
                yield db_session
        except GovernanceError:
            raise
        except Exception as exc:
            if operation is None:
                raise
            logger.error(
                "unit_of_work_rolled_back",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise FinalizeError(operation, str(exc)) from exc
