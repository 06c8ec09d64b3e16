"""Unit tests for session data values and their record round trip."""

from __future__ import annotations

import uuid
from collections.abc import Callable

import pytest
from pydantic import ValidationError

from quorum.governance.enums import AllocationStatus, BoardRoleType, ProblemDirection
from quorum.governance.quarterly_data import (
    BoardResponse,
    QuarterlySessionData,
    ReflectionAnswer,
)
from quorum.governance.session_data import DISCRETE_FIELDS, TranscriptEntry
from quorum.governance.setup_data import (
    DraftProblem,
    SetupSessionData,
    check_allocation,
)
from quorum.governance.states import QuarterlyState, SetupState


class TestDraftProblem:
    def test_complete_problem_has_no_missing_fields(
        self, make_problem: Callable[..., DraftProblem]
    ) -> None:
        assert make_problem().is_complete

    def test_empty_problem_lists_every_gap(self) -> None:
        missing = DraftProblem().missing_fields()
        assert "Problem name is required" in missing
        assert "Direction is required" in missing
        assert len(missing) == 8

    def test_one_scarcity_signal_needs_unknown_reason(
        self, make_problem: Callable[..., DraftProblem]
    ) -> None:
        problem = make_problem(scarcity_signals=("Only me",))
        assert not problem.is_complete

        explained = make_problem(
            scarcity_signals=("Only me",), scarcity_unknown_reason="New field, no data yet"
        )
        assert explained.is_complete

    def test_blank_signals_do_not_count(self, make_problem: Callable[..., DraftProblem]) -> None:
        assert not make_problem(scarcity_signals=("  ", "Only me")).is_complete

    def test_is_immutable(self, make_problem: Callable[..., DraftProblem]) -> None:
        problem = make_problem()
        with pytest.raises(ValidationError):
            problem.name = "Changed"  # type: ignore[misc]


class TestAllocation:
    @pytest.mark.parametrize(
        "total,status",
        [
            (100, AllocationStatus.ideal),
            (95, AllocationStatus.ideal),
            (105, AllocationStatus.ideal),
            (90, AllocationStatus.warning),
            (110, AllocationStatus.warning),
            (94, AllocationStatus.warning),
            (89, AllocationStatus.blocked),
            (111, AllocationStatus.blocked),
            (0, AllocationStatus.blocked),
        ],
    )
    def test_three_tier_status(self, total: int, status: AllocationStatus) -> None:
        check = check_allocation(total)
        assert check.status is status
        assert check.can_proceed is (status is not AllocationStatus.blocked)

    def test_blocked_message_names_bounds(self) -> None:
        assert "between 90% and 110%" in check_allocation(80).message


class TestSessionData:
    def test_skip_count_is_bounded(self) -> None:
        with pytest.raises(ValidationError):
            SetupSessionData(vagueness_skip_count=3)

    def test_can_skip_until_quota_used(self) -> None:
        assert SetupSessionData(vagueness_skip_count=1).can_skip
        assert not SetupSessionData(vagueness_skip_count=2).can_skip

    def test_progress_follows_state(self) -> None:
        data = SetupSessionData(current_state=SetupState.time_allocation)
        assert data.progress_percent == 55

    def test_with_entry_returns_new_value(self) -> None:
        data = SetupSessionData()
        entry = TranscriptEntry(state="collectProblem1", question="Problem 1", answer="Triage")
        updated = data.with_entry(entry, current_state=SetupState.collect_problem_2)

        assert data.transcript == ()
        assert updated.transcript == (entry,)
        assert updated.current_state is SetupState.collect_problem_2

    def test_document_excludes_column_fields(self) -> None:
        document = SetupSessionData(abstraction_mode=True).to_document()
        assert DISCRETE_FIELDS.isdisjoint(document)

    def test_setup_round_trip(self, three_problems: list[DraftProblem]) -> None:
        data = SetupSessionData(
            current_state=SetupState.time_allocation,
            abstraction_mode=True,
            vagueness_skip_count=1,
            problems=tuple(three_problems),
        )

        rebuilt = SetupSessionData.from_record(
            current_state=data.current_state.value,
            abstraction_mode=data.abstraction_mode,
            vagueness_skip_count=data.vagueness_skip_count,
            document=data.to_document(),
        )

        assert rebuilt == data

    def test_quarterly_round_trip_keeps_keyed_reflections(self) -> None:
        member_id = uuid.uuid4()
        data = QuarterlySessionData(
            current_state=QuarterlyState.q3_clarify,
            reflections={
                QuarterlyState.q2_commitments_vs_actuals: ReflectionAnswer(answer="Shipped it"),
                QuarterlyState.q3_avoided_decision: ReflectionAnswer(
                    answer="vague stuff", was_vague=True
                ),
            },
            core_board_responses=(
                BoardResponse(
                    member_id=member_id,
                    role=BoardRoleType.accountability,
                    persona_name="Maya",
                    question="Show me?",
                    response="The PR",
                ),
            ),
        )

        rebuilt = QuarterlySessionData.from_record(
            current_state="q3Clarify",
            abstraction_mode=False,
            vagueness_skip_count=0,
            document=data.to_document(),
        )

        assert rebuilt == data
        assert rebuilt.core_board_responses[0].member_id == member_id

    def test_columns_win_over_document(self) -> None:
        rebuilt = SetupSessionData.from_record(
            current_state="timeAllocation",
            abstraction_mode=False,
            vagueness_skip_count=2,
            document={"current_state": "publish", "vagueness_skip_count": 0},
        )
        assert rebuilt.current_state is SetupState.time_allocation
        assert rebuilt.vagueness_skip_count == 2

    def test_growth_partition(self, three_problems: list[DraftProblem]) -> None:
        data = SetupSessionData(problems=tuple(three_problems))
        assert data.has_appreciating_problems
        assert data.total_time_allocation == 100

        stable_only = SetupSessionData(
            problems=tuple(
                p.model_copy(update={"direction": ProblemDirection.stable}) for p in three_problems
            )
        )
        assert not stable_only.has_appreciating_problems
