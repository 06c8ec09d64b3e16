"""Database query functions for Quorum.

Async query functions for every entity:
- Governance session lifecycle (create, save, complete, abandon, lookups)
- Portfolio problems, board members, triggers, health and versions
- Bets and evidence
- User preferences
"""

from quorum.database.queries.bet import (
    InvalidBetTransitionError,
    create_bet,
    create_evidence_item,
    evaluate_bet,
    get_bet,
    get_latest_open_bet,
    list_bets,
    list_evidence_items,
)
from quorum.database.queries.portfolio import (
    create_board_member,
    create_portfolio_version,
    create_problem,
    create_trigger,
    get_latest_version_number,
    get_next_version_number,
    get_portfolio_health,
    has_portfolio,
    list_active_board_members,
    list_active_triggers,
    list_live_problems,
    mark_due_triggers_met,
    soft_delete_portfolio,
    upsert_portfolio_health,
)
from quorum.database.queries.preferences import (
    complete_onboarding,
    get_preferences,
    remember_abstraction_mode,
)
from quorum.database.queries.session import (
    abandon_governance_session,
    complete_governance_session,
    create_governance_session,
    get_governance_session,
    get_in_progress_session,
    get_last_completed_session,
    list_governance_sessions,
    save_session_state,
)

__all__ = [
    "InvalidBetTransitionError",
    "abandon_governance_session",
    "complete_governance_session",
    "complete_onboarding",
    "create_bet",
    "create_board_member",
    "create_evidence_item",
    "create_governance_session",
    "create_portfolio_version",
    "create_problem",
    "create_trigger",
    "evaluate_bet",
    "get_bet",
    "get_governance_session",
    "get_in_progress_session",
    "get_last_completed_session",
    "get_latest_open_bet",
    "get_latest_version_number",
    "get_next_version_number",
    "get_portfolio_health",
    "get_preferences",
    "has_portfolio",
    "list_active_board_members",
    "list_active_triggers",
    "list_bets",
    "list_evidence_items",
    "list_governance_sessions",
    "list_live_problems",
    "mark_due_triggers_met",
    "remember_abstraction_mode",
    "save_session_state",
    "soft_delete_portfolio",
    "upsert_portfolio_health",
]
