"""Tests for payment status transitions."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_approve_stamps_approver(
    client: AsyncClient,
    finance_headers: dict,
    finance_user: dict,
    created_patient: dict,
) -> None:
    response = await client.patch(
        f"/api/v1/patients/{created_patient['id']}/payment-status",
        json={"payment_status": "Approved"},
        headers=finance_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["payment_status"] == "Approved"
    assert data["approved_by_user_id"] == finance_user["id"]
    assert data["approved_at"] is not None


@pytest.mark.asyncio
async def test_leaving_approved_clears_stamp_together(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    """Approver and approval time are set and cleared as a pair."""
    url = f"/api/v1/patients/{created_patient['id']}/payment-status"
    await client.patch(url, json={"payment_status": "Approved"}, headers=staff_headers)

    response = await client.patch(url, json={"payment_status": "Pending"}, headers=staff_headers)

    data = response.json()
    assert data["payment_status"] == "Pending"
    assert data["approved_by_user_id"] is None
    assert data["approved_at"] is None


@pytest.mark.asyncio
async def test_any_state_may_follow_any_other(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    url = f"/api/v1/patients/{created_patient['id']}/payment-status"
    for status in ["Pending", "Not Paid", "Approved", "Approved", "Not Paid"]:
        response = await client.patch(url, json={"payment_status": status}, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["payment_status"] == status


@pytest.mark.asyncio
async def test_unknown_status_is_rejected(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    response = await client.patch(
        f"/api/v1/patients/{created_patient['id']}/payment-status",
        json={"payment_status": "Refunded"},
        headers=staff_headers,
    )
    assert response.status_code == 422
    assert "Refunded" in response.json()["message"]


@pytest.mark.asyncio
async def test_missing_patient(client: AsyncClient, staff_headers: dict) -> None:
    response = await client.patch(
        "/api/v1/patients/404/payment-status",
        json={"payment_status": "Approved"},
        headers=staff_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_doctor_cannot_change_payment(
    client: AsyncClient,
    doctor_headers: dict,
    created_patient: dict,
) -> None:
    response = await client.patch(
        f"/api/v1/patients/{created_patient['id']}/payment-status",
        json={"payment_status": "Approved"},
        headers=doctor_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_detail_shows_approver_name(
    client: AsyncClient,
    finance_headers: dict,
    finance_user: dict,
    created_patient: dict,
) -> None:
    await client.patch(
        f"/api/v1/patients/{created_patient['id']}/payment-status",
        json={"payment_status": "Approved"},
        headers=finance_headers,
    )
    response = await client.get(f"/api/v1/patients/{created_patient['id']}", headers=finance_headers)
    assert response.json()["approved_by_name"] == finance_user["full_name"]
