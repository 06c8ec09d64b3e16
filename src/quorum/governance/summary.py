"""Human-readable summaries of finalized governance sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from quorum.rendering import render

if TYPE_CHECKING:
    from quorum.governance.quick_data import QuickSessionData
    from quorum.governance.setup_data import SetupSessionData


def render_setup_summary(data: SetupSessionData) -> str:
    """Render the Markdown summary stored on a completed Setup session."""
    return render(
        "setup_summary.md.j2",
        problems=data.problems,
        health=data.health,
        board_members=data.board_members,
        triggers=data.triggers,
    )


def render_quick_summary(
    data: QuickSessionData,
    *,
    assessment: str,
    avoided_decision: str,
    avoided_decision_cost: str,
    bet_prediction: str,
    bet_wrong_if: str,
) -> str:
    """Render the Markdown output of a Quick Version audit."""
    return render(
        "quick_output.md.j2",
        problems=data.problems,
        assessment=assessment,
        avoided_decision=avoided_decision,
        avoided_decision_cost=avoided_decision_cost,
        bet_prediction=bet_prediction,
        bet_wrong_if=bet_wrong_if,
    )
