"""Database layer for Quorum.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    create_schema: Create all tables on an engine.
    Base: SQLAlchemy declarative base for all models.
"""

from quorum.database.connection import create_schema, get_engine, get_session_factory
from quorum.database.models import (
    Base,
    Bet,
    BoardMember,
    EvidenceItem,
    GovernanceSession,
    PortfolioHealth,
    PortfolioVersion,
    Problem,
    ReSetupTrigger,
    SoftDeleteMixin,
    TimestampMixin,
    UserPreferences,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_schema",
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "GovernanceSession",
    "Problem",
    "BoardMember",
    "ReSetupTrigger",
    "PortfolioHealth",
    "PortfolioVersion",
    "Bet",
    "EvidenceItem",
    "UserPreferences",
]
