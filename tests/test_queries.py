"""Tests for staff help-desk queries."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from mri_records.models.notifications import notifications


async def submit(client: AsyncClient, headers: dict, subject: str = "Scanner noise") -> dict:
    response = await client.post(
        "/api/v1/queries/",
        json={"subject": subject, "message": "The coil is making a clicking sound"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_submit_query_notifies_admins(
    client: AsyncClient,
    staff_headers: dict,
    staff_user: dict,
    admin_user: dict,
    db_session,
) -> None:
    query = await submit(client, staff_headers)

    assert query["status"] == "open"
    assert query["sender_id"] == staff_user["id"]
    assert query["sender_name"] == staff_user["full_name"]

    result = await db_session.execute(
        select(notifications.c.type).where(notifications.c.user_id == admin_user["id"])
    )
    assert result.scalars().all() == ["new_query"]


@pytest.mark.asyncio
async def test_only_medical_staff_submit(client: AsyncClient, admin_headers: dict) -> None:
    response = await client.post(
        "/api/v1/queries/", json={"subject": "x", "message": "y"}, headers=admin_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_my_queries_only_own(
    client: AsyncClient,
    staff_headers: dict,
    make_user,
    headers_for,
) -> None:
    other = await make_user("medical_staff")
    await submit(client, headers_for(other), "Other")
    first = await submit(client, staff_headers, "First")
    second = await submit(client, staff_headers, "Second")

    response = await client.get("/api/v1/queries/my", headers=staff_headers)

    assert [q["id"] for q in response.json()] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_resolve_and_reopen_stamps_together(
    client: AsyncClient,
    staff_headers: dict,
    staff_user: dict,
    admin_headers: dict,
    admin_user: dict,
    db_session,
) -> None:
    query = await submit(client, staff_headers)
    url = f"/api/v1/admin/queries/{query['id']}"

    resolved = await client.patch(
        url, json={"status": "resolved", "admin_response": "Coil replaced"}, headers=admin_headers
    )
    data = resolved.json()
    assert data["status"] == "resolved"
    assert data["admin_response"] == "Coil replaced"
    assert data["resolved_by_admin_id"] == admin_user["id"]
    assert data["resolved_by_name"] == admin_user["full_name"]
    assert data["resolved_at"] is not None

    reopened = await client.patch(url, json={"status": "in_progress"}, headers=admin_headers)
    data = reopened.json()
    assert data["resolved_by_admin_id"] is None
    assert data["resolved_at"] is None
    assert data["admin_response"] == "Coil replaced"

    result = await db_session.execute(
        select(notifications.c.type).where(notifications.c.user_id == staff_user["id"])
    )
    assert result.scalars().all() == ["query_update", "query_update"]


@pytest.mark.asyncio
async def test_update_without_changes_is_rejected(
    client: AsyncClient,
    staff_headers: dict,
    admin_headers: dict,
) -> None:
    query = await submit(client, staff_headers)
    response = await client.patch(
        f"/api/v1/admin/queries/{query['id']}", json={}, headers=admin_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_invalid_status(
    client: AsyncClient,
    staff_headers: dict,
    admin_headers: dict,
) -> None:
    query = await submit(client, staff_headers)
    response = await client.patch(
        f"/api/v1/admin/queries/{query['id']}", json={"status": "escalated"}, headers=admin_headers
    )
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_admin_lists_all_queries(
    client: AsyncClient,
    staff_headers: dict,
    admin_headers: dict,
) -> None:
    await submit(client, staff_headers, "One")
    await submit(client, staff_headers, "Two")

    response = await client.get("/api/v1/admin/queries", headers=admin_headers)

    assert [q["subject"] for q in response.json()] == ["Two", "One"]
