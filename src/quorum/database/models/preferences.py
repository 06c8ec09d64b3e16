"""User preference model for Quorum."""

from __future__ import annotations

from sqlalchemy import Boolean
from sqlalchemy.orm import Mapped, mapped_column

from quorum.database.models.base import Base, TimestampMixin


class UserPreferences(TimestampMixin, Base):
    """Singleton row of per-user governance preferences.

    Attributes:
        default_abstraction_mode: Abstraction flag used when a session is
            started without an explicit choice.
        remember_abstraction_choice: Whether the sensitivity gate choice
            should become the default.
        onboarding_completed: Set once the first Setup is published.
    """

    __tablename__ = "user_preferences"

    default_abstraction_mode: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    remember_abstraction_choice: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    onboarding_completed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
