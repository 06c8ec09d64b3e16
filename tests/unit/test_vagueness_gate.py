"""Unit tests for the shared vagueness gate and the board iterator."""

from __future__ import annotations

import uuid

import pytest

from quorum.governance import board
from quorum.governance.enums import BoardRoleType, RosterKind
from quorum.governance.errors import CollaboratorError, SkipQuotaExceededError
from quorum.governance.quarterly_data import BoardRoster, BoardSeat, QuarterlySessionData
from quorum.governance.session_data import MAX_VAGUENESS_SKIPS
from quorum.governance.setup_data import SetupSessionData
from quorum.governance.states import CLARIFY_PROMPT, QuarterlyState
from quorum.governance.vagueness import SKIPPED_ANSWER, VaguenessGate


class TestVaguenessGate:
    @pytest.mark.asyncio
    async def test_classify_delegates(self, gate: VaguenessGate, collaborators) -> None:
        result = await gate.classify("What happened?", "vague answer")
        assert result.is_vague is True
        assert collaborators.classifier.calls == [("What happened?", "vague answer")]

    @pytest.mark.asyncio
    async def test_classifier_errors_are_normalized(
        self, gate: VaguenessGate, collaborators
    ) -> None:
        collaborators.classifier.fail = ConnectionError("refused")
        with pytest.raises(CollaboratorError, match="vagueness_classifier failed: refused"):
            await gate.classify("Q", "A")

    def test_attempt_skip_records_sentinel(self) -> None:
        data = QuarterlySessionData(current_state=QuarterlyState.q3_clarify)

        skipped = VaguenessGate.attempt_skip(
            data, question=CLARIFY_PROMPT, current_state=QuarterlyState.q4_comfort_work
        )

        assert skipped.vagueness_skip_count == 1
        assert skipped.current_state is QuarterlyState.q4_comfort_work
        entry = skipped.transcript[-1]
        assert entry.state == "q3Clarify"
        assert entry.answer == SKIPPED_ANSWER
        assert entry.skipped is True
        assert data.vagueness_skip_count == 0

    def test_quota_is_shared_and_bounded(self) -> None:
        data = SetupSessionData(vagueness_skip_count=MAX_VAGUENESS_SKIPS)

        with pytest.raises(SkipQuotaExceededError) as exc_info:
            VaguenessGate.attempt_skip(data, question=CLARIFY_PROMPT)

        assert exc_info.value.max_skips == 2
        assert "You must provide a concrete example" in str(exc_info.value)


def _seat(role: BoardRoleType) -> BoardSeat:
    return BoardSeat(member_id=uuid.uuid4(), role=role, persona_name=role.value)


class TestBoardIterator:
    roster = BoardRoster(
        core=(_seat(BoardRoleType.accountability), _seat(BoardRoleType.market_reality)),
        growth=(_seat(BoardRoleType.opportunity_scout),),
    )

    def test_start_at_first_core_seat(self) -> None:
        changes = board.start(self.roster)
        assert changes["active_roster"] is RosterKind.core
        assert changes["board_member_index"] == 0
        assert changes["current_state"] is QuarterlyState.core_board_interrogation

    def test_start_with_growth_only(self) -> None:
        changes = board.start(BoardRoster(growth=self.roster.growth))
        assert changes["active_roster"] is RosterKind.growth
        assert changes["current_state"] is QuarterlyState.growth_board_interrogation

    def test_advance_walks_core_then_growth(self) -> None:
        data = QuarterlySessionData(**board.start(self.roster))
        positions = []
        while data.current_state is not QuarterlyState.generate_report:
            seat = data.current_seat
            assert seat is not None
            positions.append(seat.role)
            data = data.model_copy(update=board.advance(data))

        assert positions == [
            BoardRoleType.accountability,
            BoardRoleType.market_reality,
            BoardRoleType.opportunity_scout,
        ]
        assert data.active_roster is None

    def test_amend_last_response_without_responses(self) -> None:
        data = QuarterlySessionData(**board.start(self.roster))
        assert board.amend_last_response(data, skipped=True) == {}
