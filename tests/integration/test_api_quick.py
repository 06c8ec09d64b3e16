"""Integration tests for the Quick Version session API."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

ANSWERS = (
    "Staff SRE on the payments platform",
    "Incident triage",
    "Copilot drafts the summaries now",
    "A wrong call costs a day of downtime",
    "Only people leadership trusts get paged",
    "Asking Dana for the platform role. Cost: another year on call",
    "Polishing the Grafana dashboards on Fridays",
)


async def _started(client: AsyncClient) -> str:
    response = await client.post("/quick/sessions/")
    assert response.status_code == 201
    session_id = response.json()["id"]
    response = await client.post(
        f"/quick/sessions/{session_id}/sensitivity-gate", json={"abstraction_mode": False}
    )
    assert response.json()["current_state"] == "q1RoleContext"
    return session_id


@pytest.mark.asyncio
async def test_full_audit_over_http(async_client: AsyncClient) -> None:
    session_id = await _started(async_client)
    base = f"/quick/sessions/{session_id}"

    for answer in ANSWERS:
        response = await async_client.post(f"{base}/answer", json={"answer": answer})
        assert response.status_code == 200, answer
    assert response.json()["current_state"] == "generateOutput"

    response = await async_client.post(f"{base}/output")

    assert response.status_code == 200
    body = response.json()
    assert body["session_type"] == "quick"
    assert body["status"] == "completed"
    assert body["current_state"] == "finalized"
    assert body["progress_percent"] == 100
    assert body["output_markdown"] == "# 15-Minute Audit Results\n"
    assert body["data"]["created_bet_id"] is not None
    assert (await async_client.get("/quick/sessions/in-progress")).status_code == 404


@pytest.mark.asyncio
async def test_resume_in_progress(async_client: AsyncClient) -> None:
    session_id = await _started(async_client)

    response = await async_client.get("/quick/sessions/in-progress")

    assert response.status_code == 200
    assert response.json()["id"] == session_id
    assert (await async_client.post("/quick/sessions/")).status_code == 409


@pytest.mark.asyncio
async def test_skip_outside_clarify_conflicts(async_client: AsyncClient) -> None:
    session_id = await _started(async_client)
    base = f"/quick/sessions/{session_id}"

    assert (await async_client.post(f"{base}/skip")).status_code == 409
    assert (await async_client.post(f"{base}/output")).status_code == 409

    response = await async_client.post(f"{base}/answer", json={"answer": "vague: I do things"})
    assert response.json()["current_state"] == "q1Clarify"
    response = await async_client.post(f"{base}/skip")
    assert response.status_code == 200
    assert response.json()["current_state"] == "q2PaidProblems"
    assert response.json()["vagueness_skip_count"] == 1


@pytest.mark.asyncio
async def test_unknown_and_abandoned_sessions(async_client: AsyncClient) -> None:
    session_id = await _started(async_client)

    response = await async_client.delete(f"/quick/sessions/{session_id}")
    assert response.json()["status"] == "abandoned"
    assert (await async_client.get(f"/quick/sessions/{session_id}")).status_code == 404
    assert (await async_client.post("/quick/sessions/not-a-uuid/skip")).status_code == 422
