"""Board member model for Quorum."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum.database.models.base import Base, SoftDeleteMixin, TimestampMixin
from quorum.governance.enums import BoardRoleType


class BoardMember(SoftDeleteMixin, TimestampMixin, Base):
    """A seat on the user's board of directors.

    Attributes:
        role_type: Board role from the fixed catalogue.
        is_growth_role: True for the two growth roles.
        is_active: Inactive members are skipped by interrogation.
        anchored_problem_id: Problem this member holds the user to.
        anchored_demand: What the member demands about that problem.
        persona_*: The persona in use (possibly edited by the user).
        original_persona_*: The persona as first generated.
        display_order: Seat order within its roster.
    """

    __tablename__ = "board_members"

    role_type: Mapped[BoardRoleType] = mapped_column(nullable=False)
    is_growth_role: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    anchored_problem_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("problems.id"),
        nullable=True,
    )
    anchored_demand: Mapped[str | None] = mapped_column(Text, nullable=True)
    persona_name: Mapped[str] = mapped_column(Text, nullable=False)
    persona_background: Mapped[str] = mapped_column(Text, nullable=False)
    persona_communication_style: Mapped[str] = mapped_column(Text, nullable=False)
    persona_signature_phrase: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_persona_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_persona_background: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_persona_communication_style: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    original_persona_signature_phrase: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
