"""
Tests for the event request pipeline: submission, review and visibility.
"""

import asyncio

import pytest
from httpx import AsyncClient

from college_events.core.config import get_settings
from college_events.core.errors import InvalidStateTransition, NotFound, PermissionDenied
from college_events.models.status import RequestStatus, ReviewDecision
from college_events.schemas.event_request import EventRequestCreate
from college_events.services.event_request_service import submit_event_request, review_event_request
from college_events.services.ticket_service import get_availability
from conftest import event_payload, headers_for


async def _submit(session_factory, requester, **overrides):
    async with session_factory() as session:
        return await submit_event_request(session, requester.id, EventRequestCreate(**event_payload(**overrides)))


@pytest.mark.asyncio
async def test_submit_request(client: AsyncClient, student, student_headers):
    response = await client.post("/api/v1/event-requests/", json=event_payload(), headers=student_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["requester_id"] == student.id
    assert data["event_id"] is None


@pytest.mark.asyncio
async def test_submit_request_needs_tickets(client: AsyncClient, student_headers):
    response = await client.post(
        "/api/v1/event-requests/", json=event_payload(total_tickets=0), headers=student_headers,
    )
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_approve_creates_event(client: AsyncClient, session_factory, student, admin, admin_headers):
    """Approval copies the proposal into a live event with full availability."""
    request = await _submit(session_factory, student, total_tickets=30)

    response = await client.post(
        f"/api/v1/event-requests/{request.id}/review",
        json={"decision": "approve", "admin_notes": "Looks good"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["request"]["status"] == "approved"
    assert data["request"]["reviewer_id"] == admin.id
    assert data["request"]["admin_notes"] == "Looks good"

    event = data["event"]
    assert event["title"] == "Robotics Workshop"
    assert event["total_tickets"] == 30
    assert event["available_tickets"] == 30
    assert event["organizer_id"] == admin.id
    assert data["request"]["event_id"] == event["id"]

    availability = await client.get(f"/api/v1/events/{event['id']}/availability")
    assert availability.json() == {"event_id": event["id"], "total": 30, "available": 30}


@pytest.mark.asyncio
async def test_approve_with_requester_as_organizer(session_factory, student, admin, monkeypatch):
    monkeypatch.setattr(get_settings(), "APPROVED_EVENT_ORGANIZER", "requester")
    request = await _submit(session_factory, student)

    async with session_factory() as session:
        _, event = await review_event_request(session, request.id, ReviewDecision.approve, admin.id)
    assert event.organizer_id == student.id


@pytest.mark.asyncio
async def test_reject_stores_notes(client: AsyncClient, session_factory, student, admin_headers):
    request = await _submit(session_factory, student)

    response = await client.post(
        f"/api/v1/event-requests/{request.id}/review",
        json={"decision": "reject", "admin_notes": "Venue unavailable"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["request"]["status"] == "rejected"
    assert data["request"]["admin_notes"] == "Venue unavailable"
    assert data["event"] is None

    # No event was created
    assert (await client.get("/api/v1/events/")).json()["total"] == 0


@pytest.mark.asyncio
async def test_review_twice_is_invalid(client: AsyncClient, session_factory, student, admin_headers):
    request = await _submit(session_factory, student)
    url = f"/api/v1/event-requests/{request.id}/review"

    first = await client.post(url, json={"decision": "approve"}, headers=admin_headers)
    assert first.status_code == 200

    second = await client.post(url, json={"decision": "reject"}, headers=admin_headers)
    assert second.status_code == 409
    assert second.json()["code"] == "INVALID_STATE_TRANSITION"


@pytest.mark.asyncio
async def test_review_requires_reviewer_role(client: AsyncClient, session_factory, student, student_headers):
    request = await _submit(session_factory, student)
    response = await client.post(
        f"/api/v1/event-requests/{request.id}/review",
        json={"decision": "approve"},
        headers=student_headers,
    )
    assert response.status_code == 403

    async with session_factory() as session:
        with pytest.raises(PermissionDenied):
            await review_event_request(session, request.id, ReviewDecision.approve, student.id)


@pytest.mark.asyncio
async def test_review_unknown_request(session_factory, admin):
    async with session_factory() as session:
        with pytest.raises(NotFound):
            await review_event_request(session, 987654, ReviewDecision.approve, admin.id)


@pytest.mark.asyncio
async def test_review_invalid_decision(client: AsyncClient, session_factory, student, admin_headers):
    request = await _submit(session_factory, student)
    response = await client.post(
        f"/api/v1/event-requests/{request.id}/review",
        json={"decision": "maybe"},
        headers=admin_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_concurrent_approvals_create_one_event(session_factory, student, admin):
    """Two reviewers approving at once: one wins, the other sees the resolved state."""
    request = await _submit(session_factory, student, total_tickets=50)

    async def approve():
        async with session_factory() as session:
            return await review_event_request(session, request.id, ReviewDecision.approve, admin.id)

    results = await asyncio.gather(approve(), approve(), return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InvalidStateTransition)

    _, event = successes[0]
    async with session_factory() as session:
        availability = await get_availability(session, event.id)
    assert availability.available == 50


@pytest.mark.asyncio
async def test_list_requests_scoped_to_requester(
    client: AsyncClient, session_factory, student, other_student, student_headers, admin_headers,
):
    mine = await _submit(session_factory, student)
    await _submit(session_factory, other_student)

    response = await client.get("/api/v1/event-requests/", headers=student_headers)
    assert [r["id"] for r in response.json()] == [mine.id]

    response = await client.get("/api/v1/event-requests/", headers=admin_headers)
    assert len(response.json()) == 2

    response = await client.get(
        "/api/v1/event-requests/", params={"status": RequestStatus.approved.value}, headers=admin_headers,
    )
    assert response.json() == []


@pytest.mark.asyncio
async def test_get_request_hidden_from_other_users(
    client: AsyncClient, session_factory, student, other_student, admin_headers,
):
    request = await _submit(session_factory, student)

    assert (await client.get(f"/api/v1/event-requests/{request.id}", headers=headers_for(student))).status_code == 200
    assert (await client.get(f"/api/v1/event-requests/{request.id}", headers=admin_headers)).status_code == 200
    response = await client.get(f"/api/v1/event-requests/{request.id}", headers=headers_for(other_student))
    assert response.status_code == 404
