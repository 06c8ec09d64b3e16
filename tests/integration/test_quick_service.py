"""Integration tests for QuickService against SQLite."""

from __future__ import annotations

import uuid

import pytest
import structlog

from quorum.database.queries.bet import list_bets
from quorum.database.queries.session import get_governance_session
from quorum.governance.enums import BetStatus, GovernanceSessionType, SessionStatus
from quorum.governance.errors import (
    CollaboratorError,
    FinalizeError,
    SessionInProgressError,
    SessionNotFoundError,
    SessionValidationError,
)
from quorum.governance.quarterly_service import QuarterlyService
from quorum.governance.quick_service import QuickService
from quorum.governance.states import QuickState


async def _at_output(service: QuickService) -> uuid.UUID:
    view = await service.start_session()
    session_id = view.session_id
    await service.set_sensitivity_gate(session_id, abstraction_mode=False)
    for answer in (
        "Staff SRE on the payments platform",
        "Incident triage, Report formatting",
        "Copilot drafts the summaries now",
        "A wrong call costs a day of downtime",
        "Only people leadership trusts get paged",
        "Templates fill the reports in",
        "Nobody notices a typo",
        "Anyone on the team can do it",
        "Asking Dana for the platform role. Cost: another year on call",
        "Polishing the Grafana dashboards on Fridays",
    ):
        view = await service.answer(session_id, answer)
    assert view.data.current_state is QuickState.generate_output
    return session_id


@pytest.mark.asyncio
async def test_full_audit_creates_bet(quick_service: QuickService, session_factory) -> None:
    session_id = await _at_output(quick_service)

    view = await quick_service.generate_output(session_id)

    assert view.status is SessionStatus.completed
    assert view.data.current_state is QuickState.finalized
    assert view.progress_percent == 100
    assert view.output_markdown == "# 15-Minute Audit Results\n"
    assert [p.direction.value for p in view.data.problems if p.direction] == [
        "appreciating",
        "depreciating",
    ]
    assert view.data.avoided_decision_cost == "another year on call"

    async with session_factory() as session:
        bets = await list_bets(session)
        record = await get_governance_session(session, session_id)
    assert len(bets) == 1
    assert bets[0].status is BetStatus.open
    assert bets[0].prediction == "In 90 days I will own incident reviews"
    assert bets[0].source_session_id == session_id
    assert record is not None
    assert record.created_bet_id == bets[0].id
    assert record.session_type is GovernanceSessionType.quick
    assert view.data.created_bet_id == bets[0].id


@pytest.mark.asyncio
async def test_resume_after_reload(quick_service: QuickService) -> None:
    view = await quick_service.start_session()
    await quick_service.set_sensitivity_gate(view.session_id, abstraction_mode=True)
    await quick_service.answer(view.session_id, "vague: I do things")
    await quick_service.skip(view.session_id)

    resumed = await quick_service.get_in_progress_session()

    assert resumed is not None
    assert resumed.session_id == view.session_id
    assert resumed.data.current_state is QuickState.q2_paid_problems
    assert resumed.data.vagueness_skip_count == 1
    assert resumed.data.abstraction_mode is True
    assert resumed.data.role_context is not None
    assert resumed.data.role_context.skipped is True


@pytest.mark.asyncio
async def test_one_session_in_progress_across_types(
    quick_service: QuickService, quarterly_service: QuarterlyService
) -> None:
    view = await quick_service.start_session()

    with pytest.raises(SessionInProgressError):
        await quarterly_service.start_session()
    with pytest.raises(SessionNotFoundError):
        await quarterly_service.load_session(view.session_id)


@pytest.mark.asyncio
async def test_output_failure_leaves_session_retryable(
    quick_service: QuickService, collaborators, session_factory
) -> None:
    session_id = await _at_output(quick_service)
    collaborators.quick_outputs.fail = TimeoutError("timed out")

    with pytest.raises(CollaboratorError):
        await quick_service.generate_output(session_id)

    loaded = await quick_service.load_session(session_id)
    assert loaded.data.current_state is QuickState.generate_output
    async with session_factory() as session:
        assert await list_bets(session) == []

    collaborators.quick_outputs.fail = None
    view = await quick_service.generate_output(session_id)
    assert view.status is SessionStatus.completed


@pytest.mark.asyncio
async def test_finalize_failure_rolls_back(
    quick_service: QuickService, session_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    session_id = await _at_output(quick_service)

    async def fail_complete(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(
        "quorum.governance.quick_service.complete_governance_session", fail_complete
    )

    with pytest.raises(FinalizeError, match="quick_finalize failed and was rolled back"):
        await quick_service.generate_output(session_id)

    loaded = await quick_service.load_session(session_id)
    assert loaded.status is SessionStatus.in_progress
    assert loaded.data.current_state is QuickState.generate_output
    async with session_factory() as session:
        assert await list_bets(session) == []


@pytest.mark.asyncio
async def test_output_binds_session_log_context(quick_service: QuickService) -> None:
    view = await quick_service.start_session()
    structlog.contextvars.clear_contextvars()
    try:
        with pytest.raises(SessionValidationError):
            await quick_service.generate_output(view.session_id)

        context = structlog.contextvars.get_contextvars()
        assert context["session_id"] == str(view.session_id)
        assert context["session_type"] == "quick"
    finally:
        structlog.contextvars.clear_contextvars()
