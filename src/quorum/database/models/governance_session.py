"""Governance session model for Quorum.

A session row stores the three discrete fields of session data as columns
(state tag, abstraction flag, skip counter) and everything else in one JSON
document. Completion links the session to what it produced.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UTCDateTime,
    utcnow,
)
from quorum.governance.enums import GovernanceSessionType, SessionStatus


class GovernanceSession(SoftDeleteMixin, TimestampMixin, Base):
    """One run of the Setup or Quarterly workflow.

    Attributes:
        session_type: Which workflow this session runs.
        status: in_progress, completed or abandoned.
        current_state: Plain state tag of the workflow's state enumeration.
        abstraction_mode: Whether names are abstracted for privacy.
        vagueness_skip_count: Skips consumed from the shared quota.
        data_json: Every other session data field, serialized.
        output_markdown: Summary (Setup) or report (Quarterly) on completion.
        created_portfolio_version_id: Version written by Setup publish.
        evaluated_bet_id: Bet judged during a Quarterly session.
        created_bet_id: Bet created by Quarterly finalize.
        started_at: When the session was started.
        completed_at: When the session finished.
    """

    __tablename__ = "governance_sessions"
    __table_args__ = (Index("idx_governance_sessions_type_status", "session_type", "status"),)

    session_type: Mapped[GovernanceSessionType] = mapped_column(nullable=False)
    status: Mapped[SessionStatus] = mapped_column(
        default=SessionStatus.in_progress,
        nullable=False,
    )
    current_state: Mapped[str] = mapped_column(String(64), nullable=False)
    abstraction_mode: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    vagueness_skip_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    data_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    output_markdown: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_portfolio_version_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    evaluated_bet_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    created_bet_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def duration_seconds(self) -> int | None:
        if self.completed_at is None:
            return None
        return int((self.completed_at - self.started_at).total_seconds())
