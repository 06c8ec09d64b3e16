"""Board interrogation iterator.

Walks the core roster and then the growth roster, one seat at a time. The
position is held explicitly in ``active_roster`` and ``board_member_index``
on the session data, so the member being questioned never has to be inferred
from response counts or from the state tag.
"""

from __future__ import annotations

from typing import Any

from quorum.governance.enums import RosterKind
from quorum.governance.quarterly_data import (
    BoardResponse,
    BoardRoster,
    BoardSeat,
    QuarterlySessionData,
)
from quorum.governance.states import QuarterlyState

_ROSTER_STATES: dict[RosterKind, QuarterlyState] = {
    RosterKind.core: QuarterlyState.core_board_interrogation,
    RosterKind.growth: QuarterlyState.growth_board_interrogation,
}


def position_changes(kind: RosterKind | None, index: int = 0) -> dict[str, Any]:
    """Field updates placing the iterator at index of roster kind.

    A kind of None means interrogation is over and the report is next.
    """
    if kind is None:
        return {
            "active_roster": None,
            "board_member_index": 0,
            "pending_board_question": None,
            "current_state": QuarterlyState.generate_report,
        }
    return {
        "active_roster": kind,
        "board_member_index": index,
        "pending_board_question": None,
        "current_state": _ROSTER_STATES[kind],
    }


def start(roster: BoardRoster) -> dict[str, Any]:
    """Field updates that begin interrogation over roster."""
    if roster.core:
        return {"board_roster": roster, **position_changes(RosterKind.core)}
    if roster.growth:
        return {"board_roster": roster, **position_changes(RosterKind.growth)}
    return {"board_roster": roster, **position_changes(None)}


def advance(data: QuarterlySessionData) -> dict[str, Any]:
    """Field updates moving past the current seat.

    Core seats are exhausted before any growth seat; when both are exhausted
    the session moves to report generation.
    """
    if data.board_roster is None or data.active_roster is None:
        return position_changes(None)
    next_index = data.board_member_index + 1
    if next_index < len(data.board_roster.seats(data.active_roster)):
        return position_changes(data.active_roster, next_index)
    if data.active_roster is RosterKind.core and data.board_roster.growth:
        return position_changes(RosterKind.growth)
    return position_changes(None)


def response_for(
    seat: BoardSeat, question: str, response: str, was_vague: bool
) -> BoardResponse:
    return BoardResponse(
        member_id=seat.member_id,
        role=seat.role,
        persona_name=seat.persona_name,
        anchored_problem_id=seat.anchored_problem_id,
        anchored_demand=seat.anchored_demand,
        question=question,
        response=response,
        was_vague=was_vague,
    )


def _responses_field(kind: RosterKind) -> str:
    return "core_board_responses" if kind is RosterKind.core else "growth_board_responses"


def append_response(data: QuarterlySessionData, record: BoardResponse) -> dict[str, Any]:
    """Field update appending record to the active roster's responses."""
    kind = data.active_roster or record.role.roster
    return {_responses_field(kind): (*data.responses_for(kind), record)}


def amend_last_response(data: QuarterlySessionData, **fields: Any) -> dict[str, Any]:
    """Field update replacing the active roster's last response with fields applied."""
    kind = data.active_roster
    if kind is None:
        return {}
    responses = data.responses_for(kind)
    if not responses:
        return {}
    amended = responses[-1].model_copy(update=fields)
    return {_responses_field(kind): (*responses[:-1], amended)}
