"""Tests for the result file lifecycle."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from mri_records.core.exceptions import StorageException
from mri_records.models.notifications import notifications
from mri_records.models.result_files import result_files

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


async def upload(client: AsyncClient, patient_id: int, headers: dict, **files) -> dict:
    response = await client.post(
        f"/api/v1/patients/{patient_id}/results",
        files=files or {"file": ("scan.pdf", PDF_BYTES, "application/pdf")},
        data={"remarks": "Axial T2"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_upload_result_stores_blob_and_metadata(
    client: AsyncClient,
    doctor_headers: dict,
    doctor_user: dict,
    created_patient: dict,
    mock_storage,
) -> None:
    data = await upload(client, created_patient["id"], doctor_headers)

    assert data["result_status"] == "pending_review"
    assert data["file_name"] == "scan.pdf"
    assert data["file_type"] == "application/pdf"
    assert data["uploaded_by_user_id"] == doctor_user["id"]
    assert data["uploaded_by_name"] == doctor_user["full_name"]
    assert data["remarks"] == "Axial T2"

    mock_storage.put.assert_awaited_once()
    key, body, content_type = mock_storage.put.await_args.args
    assert key.startswith(f"results/{created_patient['id']}/")
    assert key.endswith(".pdf")
    assert body == PDF_BYTES
    assert content_type == "application/pdf"


@pytest.mark.asyncio
async def test_upload_without_file_renders_placeholder(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
    mock_storage,
) -> None:
    response = await client.post(
        f"/api/v1/patients/{created_patient['id']}/results",
        data={"remarks": "pending films"},
        headers=staff_headers,
    )

    assert response.status_code == 201
    assert response.json()["file_name"] == f"{created_patient['mri_code']}-result.pdf"
    body = mock_storage.put.await_args.args[1]
    assert body.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_upload_notifies_admins(
    client: AsyncClient,
    staff_headers: dict,
    admin_user: dict,
    created_patient: dict,
    db_session,
) -> None:
    data = await upload(client, created_patient["id"], staff_headers)

    result = await db_session.execute(
        select(notifications).where(notifications.c.user_id == admin_user["id"])
    )
    rows = result.mappings().all()
    assert len(rows) == 1
    assert rows[0]["type"] == "new_result_upload"
    assert rows[0]["related_entity_id"] == data["id"]


@pytest.mark.asyncio
async def test_upload_rejects_disallowed_type(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
    mock_storage,
) -> None:
    response = await client.post(
        f"/api/v1/patients/{created_patient['id']}/results",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=staff_headers,
    )

    assert response.status_code == 422
    assert "text/plain" in response.json()["message"]
    mock_storage.put.assert_not_awaited()


@pytest.mark.asyncio
async def test_upload_for_missing_patient(
    client: AsyncClient,
    staff_headers: dict,
    mock_storage,
) -> None:
    response = await client.post(
        "/api/v1/patients/999/results",
        files={"file": ("scan.pdf", PDF_BYTES, "application/pdf")},
        headers=staff_headers,
    )
    assert response.status_code == 404
    mock_storage.put.assert_not_awaited()


@pytest.mark.asyncio
async def test_storage_failure_leaves_no_row(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
    mock_storage,
    db_session,
) -> None:
    mock_storage.put.side_effect = StorageException("Failed to upload file: boom")

    response = await client.post(
        f"/api/v1/patients/{created_patient['id']}/results",
        files={"file": ("scan.pdf", PDF_BYTES, "application/pdf")},
        headers=staff_headers,
    )

    assert response.status_code == 502
    rows = await db_session.execute(select(result_files))
    assert rows.first() is None


@pytest.mark.asyncio
async def test_financial_admin_cannot_upload(
    client: AsyncClient,
    finance_headers: dict,
    created_patient: dict,
) -> None:
    response = await client.post(
        f"/api/v1/patients/{created_patient['id']}/results",
        files={"file": ("scan.pdf", PDF_BYTES, "application/pdf")},
        headers=finance_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_results_for_patient(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    first = await upload(client, created_patient["id"], staff_headers)
    second = await upload(client, created_patient["id"], staff_headers)

    response = await client.get(
        f"/api/v1/patients/{created_patient['id']}/results", headers=staff_headers
    )

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [second["id"], first["id"]]

    missing = await client.get("/api/v1/patients/999/results", headers=staff_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_issue_result_records_recipient(
    client: AsyncClient,
    staff_headers: dict,
    staff_user: dict,
    created_patient: dict,
) -> None:
    result = await upload(client, created_patient["id"], staff_headers)

    response = await client.post(
        f"/api/v1/results/{result['id']}/issue",
        json={
            "recipient_name": "Ngozi Okafor",
            "recipient_relationship": "Sister",
            "recipient_phone": "+2348099999999",
        },
        headers=staff_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["result_status"] == "issued"
    assert data["issued_to_recipient_name"] == "Ngozi Okafor"
    assert data["issued_by_user_id"] == staff_user["id"]
    assert data["issued_by_name"] == staff_user["full_name"]
    assert data["issued_at"] is not None


@pytest.mark.asyncio
async def test_issue_requires_recipient_name(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    """Issuing without a recipient leaves the result untouched."""
    result = await upload(client, created_patient["id"], staff_headers)

    response = await client.post(
        f"/api/v1/results/{result['id']}/issue",
        json={"recipient_name": "  "},
        headers=staff_headers,
    )

    assert response.status_code == 422
    listing = await client.get(
        f"/api/v1/patients/{created_patient['id']}/results", headers=staff_headers
    )
    assert listing.json()[0]["result_status"] == "pending_review"


@pytest.mark.asyncio
async def test_reissue_is_rejected(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    result = await upload(client, created_patient["id"], staff_headers)
    url = f"/api/v1/results/{result['id']}/issue"

    first = await client.post(url, json={"recipient_name": "Ngozi"}, headers=staff_headers)
    second = await client.post(url, json={"recipient_name": "Someone else"}, headers=staff_headers)

    assert first.status_code == 200
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_issue_survives_notification_failure(
    client: AsyncClient,
    staff_headers: dict,
    admin_user: dict,
    created_patient: dict,
    db_session,
) -> None:
    """A failing admin notification is logged and the issue still stands."""
    result = await upload(client, created_patient["id"], staff_headers)

    with patch(
        "mri_records.services.notification_service.NotificationService.notify_admins",
        side_effect=RuntimeError("notification store down"),
    ) as notify:
        response = await client.post(
            f"/api/v1/results/{result['id']}/issue",
            json={"recipient_name": "Ngozi Okafor", "recipient_phone": "+2348099999999"},
            headers=staff_headers,
        )

    assert notify.await_count == 1
    assert response.status_code == 200
    data = response.json()
    assert data["result_status"] == "issued"
    assert data["issued_to_recipient_name"] == "Ngozi Okafor"

    stored = await db_session.execute(
        select(result_files.c.result_status, result_files.c.issued_to_recipient_phone).where(
            result_files.c.id == result["id"]
        )
    )
    assert tuple(stored.one()) == ("issued", "+2348099999999")


@pytest.mark.asyncio
async def test_status_change_and_issued_is_terminal(
    client: AsyncClient,
    staff_headers: dict,
    staff_user: dict,
    created_patient: dict,
) -> None:
    result = await upload(client, created_patient["id"], staff_headers)
    url = f"/api/v1/results/{result['id']}/status"

    final = await client.patch(url, json={"result_status": "final"}, headers=staff_headers)
    assert final.status_code == 200
    assert final.json()["result_status"] == "final"
    assert final.json()["issued_at"] is None
    assert final.json()["issued_by_user_id"] is None

    issued = await client.patch(url, json={"result_status": "issued"}, headers=staff_headers)
    assert issued.json()["issued_at"] is not None
    assert issued.json()["issued_by_user_id"] == staff_user["id"]
    assert issued.json()["issued_to_recipient_name"] is None

    back = await client.patch(url, json={"result_status": "final"}, headers=staff_headers)
    assert back.status_code == 409

    unknown = await client.patch(url, json={"result_status": "lost"}, headers=staff_headers)
    assert unknown.status_code == 422


@pytest.mark.asyncio
async def test_download_requires_capability(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
    mock_storage,
) -> None:
    """Without can_download the request fails before any storage call."""
    result = await upload(client, created_patient["id"], staff_headers)

    response = await client.get(f"/api/v1/results/{result['id']}/download", headers=staff_headers)

    assert response.status_code == 403
    mock_storage.presigned_get_url.assert_not_awaited()


@pytest.mark.asyncio
async def test_download_link_for_permitted_user(
    client: AsyncClient,
    staff_headers: dict,
    make_user,
    headers_for,
    created_patient: dict,
) -> None:
    result = await upload(client, created_patient["id"], staff_headers)
    doctor = await make_user("doctor", can_download=True)

    response = await client.get(
        f"/api/v1/results/{result['id']}/download", headers=headers_for(doctor)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["file_id"] == result["id"]
    assert data["file_name"] == "scan.pdf"
    assert data["expires_in"] == 300
    assert data["url"].startswith("https://storage.test/results/")


@pytest.mark.asyncio
async def test_delete_result_removes_blob_and_row(
    client: AsyncClient,
    staff_headers: dict,
    admin_headers: dict,
    created_patient: dict,
    mock_storage,
) -> None:
    result = await upload(client, created_patient["id"], staff_headers)

    response = await client.delete(f"/api/v1/results/{result['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["blob_deleted"] is True
    mock_storage.delete.assert_awaited_once()

    missing = await client.delete(f"/api/v1/results/{result['id']}", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_result_survives_blob_failure(
    client: AsyncClient,
    staff_headers: dict,
    admin_headers: dict,
    created_patient: dict,
    mock_storage,
    db_session,
) -> None:
    result = await upload(client, created_patient["id"], staff_headers)
    mock_storage.delete.side_effect = StorageException("Failed to delete file: gone")

    response = await client.delete(f"/api/v1/results/{result['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["blob_deleted"] is False
    rows = await db_session.execute(select(result_files))
    assert rows.first() is None
