"""Portfolio problem model for Quorum."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum.database.models.base import Base, SoftDeleteMixin, TimestampMixin
from quorum.governance.enums import ProblemDirection


class Problem(SoftDeleteMixin, TimestampMixin, Base):
    """A problem the user owns, published by Setup.

    A re-setup soft-deletes every live problem before creating the new set,
    so the live set is always exactly one Setup's output.
    """

    __tablename__ = "problems"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    what_breaks: Mapped[str] = mapped_column(Text, nullable=False)
    scarcity_signals: Mapped[list[Any]] = mapped_column(JSON, default=list, nullable=False)
    scarcity_unknown_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    evidence_ai_cheaper: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_error_cost: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_trust_required: Mapped[str] = mapped_column(Text, nullable=False)
    direction: Mapped[ProblemDirection] = mapped_column(nullable=False)
    direction_rationale: Mapped[str] = mapped_column(Text, nullable=False)
    time_allocation_percent: Mapped[int] = mapped_column(Integer, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
