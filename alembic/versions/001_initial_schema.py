"""Initial schema for Quorum.

Creates the governance session table, the live portfolio tables (problems,
board members, re-setup triggers, health), version snapshots, bets with
their evidence, and user preferences. Column types are portable between
SQLite and PostgreSQL.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from quorum.database.models.base import UTCDateTime
from quorum.governance.enums import (
    BetStatus,
    BoardRoleType,
    EvidenceStrength,
    EvidenceType,
    GovernanceSessionType,
    ProblemDirection,
    RecommendedAction,
    SessionStatus,
    TriggerType,
)

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = (
    GovernanceSessionType,
    SessionStatus,
    ProblemDirection,
    BoardRoleType,
    TriggerType,
    RecommendedAction,
    BetStatus,
    EvidenceType,
    EvidenceStrength,
)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
    ]


def _deleted_at() -> sa.Column:
    return sa.Column("deleted_at", UTCDateTime(), nullable=True)


def upgrade() -> None:
    op.create_table(
        "governance_sessions",
        *_base_columns(),
        sa.Column("session_type", sa.Enum(GovernanceSessionType), nullable=False),
        sa.Column("status", sa.Enum(SessionStatus), nullable=False),
        sa.Column("current_state", sa.String(64), nullable=False),
        sa.Column("abstraction_mode", sa.Boolean(), nullable=False),
        sa.Column("vagueness_skip_count", sa.Integer(), nullable=False),
        sa.Column("data_json", sa.JSON(), nullable=False),
        sa.Column("output_markdown", sa.Text(), nullable=True),
        sa.Column("created_portfolio_version_id", sa.Uuid(), nullable=True),
        sa.Column("evaluated_bet_id", sa.Uuid(), nullable=True),
        sa.Column("created_bet_id", sa.Uuid(), nullable=True),
        sa.Column("started_at", UTCDateTime(), nullable=False),
        sa.Column("completed_at", UTCDateTime(), nullable=True),
        _deleted_at(),
    )
    op.create_index(
        "idx_governance_sessions_type_status",
        "governance_sessions",
        ["session_type", "status"],
    )

    op.create_table(
        "problems",
        *_base_columns(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("what_breaks", sa.Text(), nullable=False),
        sa.Column("scarcity_signals", sa.JSON(), nullable=False),
        sa.Column("scarcity_unknown_reason", sa.Text(), nullable=True),
        sa.Column("evidence_ai_cheaper", sa.Text(), nullable=False),
        sa.Column("evidence_error_cost", sa.Text(), nullable=False),
        sa.Column("evidence_trust_required", sa.Text(), nullable=False),
        sa.Column("direction", sa.Enum(ProblemDirection), nullable=False),
        sa.Column("direction_rationale", sa.Text(), nullable=False),
        sa.Column("time_allocation_percent", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        _deleted_at(),
    )

    op.create_table(
        "board_members",
        *_base_columns(),
        sa.Column("role_type", sa.Enum(BoardRoleType), nullable=False),
        sa.Column("is_growth_role", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column(
            "anchored_problem_id", sa.Uuid(), sa.ForeignKey("problems.id"), nullable=True
        ),
        sa.Column("anchored_demand", sa.Text(), nullable=True),
        sa.Column("persona_name", sa.Text(), nullable=False),
        sa.Column("persona_background", sa.Text(), nullable=False),
        sa.Column("persona_communication_style", sa.Text(), nullable=False),
        sa.Column("persona_signature_phrase", sa.Text(), nullable=True),
        sa.Column("original_persona_name", sa.Text(), nullable=True),
        sa.Column("original_persona_background", sa.Text(), nullable=True),
        sa.Column("original_persona_communication_style", sa.Text(), nullable=True),
        sa.Column("original_persona_signature_phrase", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        _deleted_at(),
    )

    op.create_table(
        "resetup_triggers",
        *_base_columns(),
        sa.Column("trigger_type", sa.Enum(TriggerType), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("condition", sa.Text(), nullable=False),
        sa.Column("recommended_action", sa.Enum(RecommendedAction), nullable=False),
        sa.Column("is_met", sa.Boolean(), nullable=False),
        sa.Column("met_at", UTCDateTime(), nullable=True),
        sa.Column("due_at", UTCDateTime(), nullable=True),
        _deleted_at(),
    )

    op.create_table(
        "portfolio_health",
        *_base_columns(),
        sa.Column("appreciating_percent", sa.Integer(), nullable=False),
        sa.Column("depreciating_percent", sa.Integer(), nullable=False),
        sa.Column("stable_percent", sa.Integer(), nullable=False),
        sa.Column("risk_statement", sa.Text(), nullable=True),
        sa.Column("opportunity_statement", sa.Text(), nullable=True),
        sa.Column("portfolio_version", sa.Integer(), nullable=False),
        sa.Column("calculated_at", UTCDateTime(), nullable=False),
    )

    op.create_table(
        "portfolio_versions",
        *_base_columns(),
        sa.Column("version_number", sa.Integer(), nullable=False, unique=True),
        sa.Column("problems_snapshot", sa.JSON(), nullable=False),
        sa.Column("health_snapshot", sa.JSON(), nullable=False),
        sa.Column("board_anchoring_snapshot", sa.JSON(), nullable=False),
        sa.Column("triggers_snapshot", sa.JSON(), nullable=False),
        sa.Column("trigger_reason", sa.String(64), nullable=False),
    )

    op.create_table(
        "bets",
        *_base_columns(),
        sa.Column("prediction", sa.Text(), nullable=False),
        sa.Column("wrong_if", sa.Text(), nullable=False),
        sa.Column("status", sa.Enum(BetStatus), nullable=False),
        sa.Column(
            "source_session_id",
            sa.Uuid(),
            sa.ForeignKey("governance_sessions.id"),
            nullable=True,
        ),
        sa.Column(
            "evaluation_session_id",
            sa.Uuid(),
            sa.ForeignKey("governance_sessions.id"),
            nullable=True,
        ),
        sa.Column("evaluation_notes", sa.Text(), nullable=True),
        sa.Column("due_at", UTCDateTime(), nullable=False),
        sa.Column("evaluated_at", UTCDateTime(), nullable=True),
        _deleted_at(),
    )
    op.create_index("idx_bets_status", "bets", ["status"])

    op.create_table(
        "evidence_items",
        *_base_columns(),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("governance_sessions.id"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("evidence_type", sa.Enum(EvidenceType), nullable=False),
        sa.Column("strength", sa.Enum(EvidenceStrength), nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
    )

    op.create_table(
        "user_preferences",
        *_base_columns(),
        sa.Column("default_abstraction_mode", sa.Boolean(), nullable=False),
        sa.Column("remember_abstraction_choice", sa.Boolean(), nullable=False),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("user_preferences")
    op.drop_table("evidence_items")
    op.drop_index("idx_bets_status", table_name="bets")
    op.drop_table("bets")
    op.drop_table("portfolio_versions")
    op.drop_table("portfolio_health")
    op.drop_table("resetup_triggers")
    op.drop_table("board_members")
    op.drop_table("problems")
    op.drop_index("idx_governance_sessions_type_status", table_name="governance_sessions")
    op.drop_table("governance_sessions")

    # Native enum types exist on PostgreSQL only
    for enum_class in ENUMS:
        sa.Enum(enum_class).drop(op.get_bind(), checkfirst=True)
