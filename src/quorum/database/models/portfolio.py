"""Portfolio health and version snapshot models for Quorum."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum.database.models.base import Base, TimestampMixin, UTCDateTime, utcnow


class PortfolioHealth(TimestampMixin, Base):
    """Singleton record of the portfolio's direction totals.

    Upserted by Setup publish and Quarterly finalize; ``portfolio_version``
    is the version number it was computed for.
    """

    __tablename__ = "portfolio_health"

    appreciating_percent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    depreciating_percent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    stable_percent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    risk_statement: Mapped[str | None] = mapped_column(Text, nullable=True)
    opportunity_statement: Mapped[str | None] = mapped_column(Text, nullable=True)
    portfolio_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False
    )


class PortfolioVersion(TimestampMixin, Base):
    """Immutable snapshot of the portfolio taken at Setup publish.

    Rows are only ever inserted; the next publish writes a new row with the
    next version number.
    """

    __tablename__ = "portfolio_versions"

    version_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    problems_snapshot: Mapped[list[Any]] = mapped_column(JSON, nullable=False)
    health_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    board_anchoring_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    triggers_snapshot: Mapped[list[Any]] = mapped_column(JSON, nullable=False)
    trigger_reason: Mapped[str] = mapped_column(String(64), nullable=False)
