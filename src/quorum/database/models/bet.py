"""Bet and evidence models for Quorum."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum.database.models.base import Base, SoftDeleteMixin, TimestampMixin
from quorum.governance.enums import BetStatus, EvidenceStrength, EvidenceType


class Bet(SoftDeleteMixin, TimestampMixin, Base):
    """A falsifiable prediction made at the end of a Quarterly review.

    Attributes:
        prediction: What the user expects to happen.
        wrong_if: Observable condition proving the prediction wrong.
        status: open, correct, wrong or expired.
        source_session_id: Quarterly session that created the bet.
        evaluation_session_id: Quarterly session that judged it.
        evaluation_notes: Rationale given when judging it.
        due_at: When the bet should be judged.
        evaluated_at: When it was judged.
    """

    __tablename__ = "bets"
    __table_args__ = (Index("idx_bets_status", "status"),)

    prediction: Mapped[str] = mapped_column(Text, nullable=False)
    wrong_if: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[BetStatus] = mapped_column(default=BetStatus.open, nullable=False)
    source_session_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("governance_sessions.id"), nullable=True
    )
    evaluation_session_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("governance_sessions.id"), nullable=True
    )
    evaluation_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_at: Mapped[datetime] = mapped_column(nullable=False)
    evaluated_at: Mapped[datetime | None] = mapped_column(nullable=True)


class EvidenceItem(TimestampMixin, Base):
    """Evidence the user offered during a governance session."""

    __tablename__ = "evidence_items"

    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("governance_sessions.id"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_type: Mapped[EvidenceType] = mapped_column(nullable=False)
    strength: Mapped[EvidenceStrength] = mapped_column(nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
