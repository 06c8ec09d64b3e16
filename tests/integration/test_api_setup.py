"""Integration tests for the Setup session API."""

from __future__ import annotations

import uuid
from collections.abc import Callable

import pytest
from httpx import AsyncClient

from quorum.governance.setup_data import DraftProblem


async def _start(client: AsyncClient) -> str:
    response = await client.post("/setup/sessions/")
    assert response.status_code == 201
    session_id = response.json()["id"]
    response = await client.post(
        f"/setup/sessions/{session_id}/sensitivity-gate", json={"abstraction_mode": False}
    )
    assert response.status_code == 200
    return session_id


async def _collect(client: AsyncClient, session_id: str, problems: list[DraftProblem]) -> dict:
    body: dict = {}
    for problem in problems:
        response = await client.post(
            f"/setup/sessions/{session_id}/problems", json=problem.model_dump(mode="json")
        )
        assert response.status_code == 200
        response = await client.post(f"/setup/sessions/{session_id}/problems/validate")
        assert response.status_code == 200
        body = response.json()
    return body


@pytest.mark.asyncio
async def test_full_setup_over_http(
    async_client: AsyncClient, three_problems: list[DraftProblem]
) -> None:
    session_id = await _start(async_client)
    body = await _collect(async_client, session_id, three_problems)
    assert body["current_state"] == "portfolioCompleteness"

    base = f"/setup/sessions/{session_id}"
    assert (await async_client.post(f"{base}/time-allocation/start")).status_code == 200
    response = await async_client.put(f"{base}/time-allocation", json={"percents": [40, 35, 25]})
    assert response.status_code == 200
    for step in ("time-allocation/confirm", "health", "board/core", "board/growth"):
        response = await async_client.post(f"{base}/{step}")
        assert response.status_code == 200, step
    response = await async_client.post(f"{base}/board/personas")
    assert response.json()["current_state"] == "defineTriggers"

    response = await async_client.put(
        f"{base}/board/0/persona",
        json={"name": "Aunt Ruth", "background": "Retired CFO", "communication_style": "Blunt"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["board_members"][0]["persona"]["name"] == "Aunt Ruth"

    assert (await async_client.post(f"{base}/triggers")).status_code == 200
    response = await async_client.post(f"{base}/publish")

    assert response.status_code == 200
    published = response.json()
    assert published["status"] == "completed"
    assert published["current_state"] == "finalized"
    assert published["progress_percent"] == 100
    assert "Aunt Ruth" in published["output_markdown"]
    assert published["completed_at"] is not None


@pytest.mark.asyncio
async def test_second_start_conflicts(async_client: AsyncClient) -> None:
    first = await async_client.post("/setup/sessions/")

    response = await async_client.post("/setup/sessions/")

    assert response.status_code == 409
    assert first.json()["id"] in response.json()["detail"]


@pytest.mark.asyncio
async def test_resume_in_progress(async_client: AsyncClient) -> None:
    assert (await async_client.get("/setup/sessions/in-progress")).status_code == 404
    session_id = await _start(async_client)

    response = await async_client.get("/setup/sessions/in-progress")

    assert response.status_code == 200
    assert response.json()["id"] == session_id
    assert response.json()["current_state"] == "collectProblem1"


@pytest.mark.asyncio
async def test_incomplete_problem_is_rejected(async_client: AsyncClient) -> None:
    session_id = await _start(async_client)
    await async_client.post(f"/setup/sessions/{session_id}/problems", json={"name": "Half done"})

    response = await async_client.post(f"/setup/sessions/{session_id}/problems/validate")

    assert response.status_code == 422
    assert "Problem is incomplete" in response.json()["detail"]


@pytest.mark.asyncio
async def test_blocked_allocation_cannot_proceed(
    async_client: AsyncClient, three_problems: list[DraftProblem]
) -> None:
    session_id = await _start(async_client)
    await _collect(async_client, session_id, three_problems)
    base = f"/setup/sessions/{session_id}"
    await async_client.post(f"{base}/time-allocation/start")
    await async_client.put(f"{base}/time-allocation", json={"percents": [40, 35, 5]})

    response = await async_client.post(f"{base}/time-allocation/confirm")

    assert response.status_code == 422
    loaded = await async_client.get(base)
    assert loaded.json()["current_state"] == "timeAllocation"


@pytest.mark.asyncio
async def test_out_of_order_event_conflicts(async_client: AsyncClient) -> None:
    session_id = await _start(async_client)

    response = await async_client.post(f"/setup/sessions/{session_id}/publish")

    assert response.status_code == 409
    assert "Cannot apply" in response.json()["detail"]


@pytest.mark.asyncio
async def test_collaborator_failure_is_503(
    async_client: AsyncClient, collaborators, three_problems: list[DraftProblem]
) -> None:
    session_id = await _start(async_client)
    await _collect(async_client, session_id, three_problems)
    base = f"/setup/sessions/{session_id}"
    await async_client.post(f"{base}/time-allocation/start")
    await async_client.put(f"{base}/time-allocation", json={"percents": [40, 35, 25]})
    await async_client.post(f"{base}/time-allocation/confirm")
    collaborators.health_statements.fail = RuntimeError("model unavailable")

    response = await async_client.post(f"{base}/health")

    assert response.status_code == 503
    assert response.json()["detail"]["retryable"] is True


@pytest.mark.asyncio
async def test_unknown_and_abandoned_sessions(
    async_client: AsyncClient, make_problem: Callable[..., DraftProblem]
) -> None:
    assert (await async_client.get(f"/setup/sessions/{uuid.uuid4()}")).status_code == 404

    session_id = await _start(async_client)
    response = await async_client.delete(f"/setup/sessions/{session_id}")
    assert response.status_code == 200
    assert response.json()["status"] == "abandoned"

    assert (await async_client.get(f"/setup/sessions/{session_id}")).status_code == 404
    response = await async_client.post(
        f"/setup/sessions/{session_id}/problems", json=make_problem().model_dump(mode="json")
    )
    assert response.status_code == 404
