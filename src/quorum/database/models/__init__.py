"""SQLAlchemy ORM models for Quorum.

Defines governance sessions and the portfolio they publish: problems, board
members, re-setup triggers, health, version snapshots, bets, evidence and
user preferences.
"""

from quorum.database.models.base import Base, SoftDeleteMixin, TimestampMixin
from quorum.database.models.bet import Bet, EvidenceItem
from quorum.database.models.board_member import BoardMember
from quorum.database.models.governance_session import GovernanceSession
from quorum.database.models.portfolio import PortfolioHealth, PortfolioVersion
from quorum.database.models.preferences import UserPreferences
from quorum.database.models.problem import Problem
from quorum.database.models.trigger import ReSetupTrigger

__all__ = [
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
