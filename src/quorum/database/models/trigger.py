"""Re-setup trigger model for Quorum."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum.database.models.base import Base, SoftDeleteMixin, TimestampMixin
from quorum.governance.enums import RecommendedAction, TriggerType


class ReSetupTrigger(SoftDeleteMixin, TimestampMixin, Base):
    """A condition that, once met, calls for re-running Setup.

    Attributes:
        trigger_type: Which standard rule this is.
        description: Short label.
        condition: When the trigger is considered met.
        recommended_action: What the user should do once it is met.
        is_met: Whether the condition has been met.
        met_at: When it was marked met.
        due_at: Deadline for time-based triggers (annual review).
    """

    __tablename__ = "resetup_triggers"

    trigger_type: Mapped[TriggerType] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    condition: Mapped[str] = mapped_column(Text, nullable=False)
    recommended_action: Mapped[RecommendedAction] = mapped_column(nullable=False)
    is_met: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    met_at: Mapped[datetime | None] = mapped_column(nullable=True)
    due_at: Mapped[datetime | None] = mapped_column(nullable=True)
