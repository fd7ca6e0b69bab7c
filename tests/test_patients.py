"""Tests for patient registration, updates, listing and deletion."""

import re
from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy import func, insert, select

from mri_records.models.patients import examinations, patients
from mri_records.models.result_files import result_files


@pytest.mark.asyncio
async def test_create_patient_generates_identifiers_and_total(
    client: AsyncClient,
    staff_headers: dict,
    staff_user: dict,
    sample_patient_data: dict,
) -> None:
    """Amounts typed as "50,000" and 10000.5 total 60000.50."""
    response = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)

    assert response.status_code == 201
    data = response.json()
    assert re.fullmatch(r"G2G-MRI-\d{4}", data["mri_code"])
    assert re.fullmatch(r"SN-\d{13}-\d{4}", data["serial_number"])
    assert data["receipt_number"].startswith("REC-")
    assert data["total_amount"] == "60000.50"
    assert data["payment_status"] == "Not Paid"
    assert data["recorded_by_staff_id"] == staff_user["id"]
    assert data["recorded_by_staff_name"] == staff_user["full_name"]
    assert [exam["exam_amount"] for exam in data["examinations"]] == ["50000.00", "10000.50"]


@pytest.mark.asyncio
async def test_create_patient_without_examinations_is_rejected(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
    db_session,
) -> None:
    """Nothing is written when the examination set is empty."""
    sample_patient_data["examinations"] = []
    response = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationException"
    count = await db_session.execute(select(func.count()).select_from(patients))
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_create_patient_rejects_non_positive_amount(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
) -> None:
    sample_patient_data["examinations"] = [
        {"exam_name": "Spine MRI", "exam_amount": "abc"},
        {"exam_name": "", "exam_amount": "1000"},
    ]
    response = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)

    assert response.status_code == 422
    details = response.json()["details"]
    assert {"index": 0, "field": "exam_amount", "error": "must be greater than 0"} in details
    assert {"index": 1, "field": "exam_name", "error": "must not be blank"} in details


@pytest.mark.asyncio
async def test_create_patient_rejects_oversized_amounts(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
    db_session,
) -> None:
    """Amounts beyond the stored precision are refused instead of crashing the write."""
    sample_patient_data["examinations"] = [
        {"exam_name": "Spine MRI", "exam_amount": "1000000000000"},
        {"exam_name": "Contrast", "exam_amount": "1e40"},
    ]
    response = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)

    assert response.status_code == 422
    details = response.json()["details"]
    assert {
        "index": 0,
        "field": "exam_amount",
        "error": "must not exceed 999999999999.99",
    } in details
    assert {"index": 1, "field": "exam_amount", "error": "must be greater than 0"} in details
    count = await db_session.execute(select(func.count()).select_from(patients))
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_create_patient_rejects_oversized_total(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
) -> None:
    sample_patient_data["examinations"] = [
        {"exam_name": "Spine MRI", "exam_amount": "600000000000"},
        {"exam_name": "Brain MRI", "exam_amount": "600000000000"},
    ]
    response = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)

    assert response.status_code == 422
    assert "total" in response.json()["message"]


@pytest.mark.asyncio
async def test_create_patient_requires_name(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
) -> None:
    sample_patient_data["patient_name"] = "   "
    response = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_patient_blank_optional_fields_are_null(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
) -> None:
    """Empty form strings for optional fields are stored as null."""
    sample_patient_data.update({"gender": "", "contact_email": "", "referral_hospital": " "})
    response = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["gender"] is None
    assert data["contact_email"] is None
    assert data["referral_hospital"] is None


@pytest.mark.asyncio
async def test_create_patient_retries_identifier_collision(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
    created_patient: dict,
) -> None:
    """A colliding MRI code is regenerated instead of failing the request."""
    taken = created_patient["mri_code"]
    fresh = "G2G-MRI-1000" if taken != "G2G-MRI-1000" else "G2G-MRI-1001"

    with patch(
        "mri_records.services.patient_service.generate_mri_code",
        side_effect=[taken, taken, fresh],
    ) as generator:
        response = await client.post(
            "/api/v1/patients/", json=sample_patient_data, headers=staff_headers
        )

    assert response.status_code == 201
    assert response.json()["mri_code"] == fresh
    assert generator.call_count == 3


@pytest.mark.asyncio
async def test_create_patient_gives_up_after_bounded_attempts(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
    created_patient: dict,
    db_session,
) -> None:
    """Persistent collisions end in a conflict, not an endless loop."""
    with patch(
        "mri_records.services.patient_service.generate_mri_code",
        return_value=created_patient["mri_code"],
    ):
        response = await client.post(
            "/api/v1/patients/", json=sample_patient_data, headers=staff_headers
        )

    assert response.status_code == 409
    assert response.json()["details"] == {"attempts": 5}
    count = await db_session.execute(select(func.count()).select_from(patients))
    assert count.scalar() == 1


@pytest.mark.asyncio
async def test_get_patient(
    client: AsyncClient,
    doctor_headers: dict,
    created_patient: dict,
) -> None:
    response = await client.get(f"/api/v1/patients/{created_patient['id']}", headers=doctor_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["patient_name"] == "Adaeze Okafor"
    assert len(data["examinations"]) == 2


@pytest.mark.asyncio
async def test_get_missing_patient(client: AsyncClient, staff_headers: dict) -> None:
    response = await client.get("/api/v1/patients/999", headers=staff_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Patient not found"


@pytest.mark.asyncio
async def test_update_replaces_examination_set(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
    db_session,
) -> None:
    """Kept rows are updated, missing rows deleted, new rows inserted."""
    first, second = created_patient["examinations"]
    payload = {
        "examinations": [
            {"id": first["id"], "exam_name": "Brain MRI", "exam_amount": "45,000"},
            {"exam_name": "Report copy", "exam_amount": "2500"},
        ]
    }
    response = await client.put(
        f"/api/v1/patients/{created_patient['id']}", json=payload, headers=staff_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total_amount"] == "47500.00"
    names = [exam["exam_name"] for exam in data["examinations"]]
    assert names == ["Brain MRI", "Report copy"]
    assert data["examinations"][0]["id"] == first["id"]

    assert data["examinations"][1]["id"] != second["id"]

    stored = await db_session.execute(
        select(examinations.c.exam_name).where(
            examinations.c.patient_id == created_patient["id"]
        )
    )
    assert sorted(stored.scalars().all()) == ["Brain MRI", "Report copy"]


@pytest.mark.asyncio
async def test_update_rejects_foreign_examination_ids(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
    created_patient: dict,
) -> None:
    """Examination ids of another patient are refused and nothing changes."""
    other = await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)
    foreign_id = other.json()["examinations"][0]["id"]

    payload = {"examinations": [{"id": foreign_id, "exam_name": "Hijack", "exam_amount": "1"}]}
    response = await client.put(
        f"/api/v1/patients/{created_patient['id']}", json=payload, headers=staff_headers
    )

    assert response.status_code == 422
    assert response.json()["details"] == {"examination_ids": [foreign_id]}

    unchanged = await client.get(f"/api/v1/patients/{created_patient['id']}", headers=staff_headers)
    assert unchanged.json()["total_amount"] == "60000.50"


@pytest.mark.asyncio
async def test_update_with_empty_examination_set_is_rejected(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    response = await client.put(
        f"/api/v1/patients/{created_patient['id']}",
        json={"examinations": []},
        headers=staff_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_partial_fields_leaves_others(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    """Omitted fields stay, null fields are cleared, examinations untouched."""
    response = await client.put(
        f"/api/v1/patients/{created_patient['id']}",
        json={"remarks": "Claustrophobic", "referring_doctor": None},
        headers=staff_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["remarks"] == "Claustrophobic"
    assert data["referring_doctor"] is None
    assert data["referral_hospital"] == "Lagos University Teaching Hospital"
    assert data["total_amount"] == "60000.50"
    assert len(data["examinations"]) == 2


@pytest.mark.asyncio
async def test_update_twice_is_idempotent(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    exams = [
        {"id": exam["id"], "exam_name": exam["exam_name"], "exam_amount": exam["exam_amount"]}
        for exam in created_patient["examinations"]
    ]
    url = f"/api/v1/patients/{created_patient['id']}"

    first = await client.put(url, json={"examinations": exams}, headers=staff_headers)
    second = await client.put(url, json={"examinations": exams}, headers=staff_headers)

    assert first.status_code == second.status_code == 200
    assert first.json()["total_amount"] == second.json()["total_amount"] == "60000.50"
    def summary(body: dict) -> list[tuple]:
        return [(e["id"], e["exam_name"], e["exam_amount"]) for e in body["examinations"]]

    assert summary(first.json()) == summary(second.json()) == summary(created_patient)


@pytest.mark.asyncio
async def test_list_patients_search_and_pagination(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
) -> None:
    for name, when in [
        ("Chinedu Eze", "2026-03-01T08:00:00Z"),
        ("Chioma Obi", "2026-03-05T08:00:00Z"),
        ("Musa Bello", "2026-03-09T08:00:00Z"),
    ]:
        payload = {**sample_patient_data, "patient_name": name, "mri_date_time": when}
        response = await client.post("/api/v1/patients/", json=payload, headers=staff_headers)
        assert response.status_code == 201

    response = await client.get(
        "/api/v1/patients/",
        params={"search": "chi", "search_field": "patient_name"},
        headers=staff_headers,
    )
    data = response.json()
    assert data["total"] == 2
    assert [item["patient_name"] for item in data["items"]] == ["Chioma Obi", "Chinedu Eze"]
    assert data["items"][0]["examinations"] is None

    paged = await client.get(
        "/api/v1/patients/", params={"page": 2, "page_size": 2}, headers=staff_headers
    )
    assert paged.json()["total"] == 3
    assert [item["patient_name"] for item in paged.json()["items"]] == ["Chinedu Eze"]


@pytest.mark.asyncio
async def test_list_patients_date_range_is_inclusive(
    client: AsyncClient,
    staff_headers: dict,
    sample_patient_data: dict,
) -> None:
    for when in ["2026-03-01T23:59:00Z", "2026-03-02T00:00:00Z", "2026-03-03T00:00:00Z"]:
        payload = {**sample_patient_data, "mri_date_time": when}
        await client.post("/api/v1/patients/", json=payload, headers=staff_headers)

    response = await client.get(
        "/api/v1/patients/",
        params={"start_date": "2026-03-01", "end_date": "2026-03-02", "include_examinations": True},
        headers=staff_headers,
    )
    data = response.json()
    assert data["total"] == 2
    assert all(len(item["examinations"]) == 2 for item in data["items"])


@pytest.mark.asyncio
async def test_list_patients_search_escapes_wildcards(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    response = await client.get("/api/v1/patients/", params={"search": "%"}, headers=staff_headers)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_list_patients_filters_gender_and_recorder(
    client: AsyncClient,
    staff_headers: dict,
    admin_headers: dict,
    admin_user: dict,
    sample_patient_data: dict,
) -> None:
    await client.post("/api/v1/patients/", json=sample_patient_data, headers=staff_headers)
    male = {**sample_patient_data, "patient_name": "Tunde", "gender": "Male"}
    await client.post("/api/v1/patients/", json=male, headers=admin_headers)

    by_gender = await client.get("/api/v1/patients/", params={"gender": "Male"}, headers=staff_headers)
    assert [item["patient_name"] for item in by_gender.json()["items"]] == ["Tunde"]

    everyone = await client.get("/api/v1/patients/", params={"gender": "All"}, headers=staff_headers)
    assert everyone.json()["total"] == 2

    by_recorder = await client.get(
        "/api/v1/patients/", params={"recorded_by": admin_user["id"]}, headers=staff_headers
    )
    assert by_recorder.json()["total"] == 1


@pytest.mark.asyncio
async def test_delete_patient_blocked_by_dependents(
    client: AsyncClient,
    admin_headers: dict,
    created_patient: dict,
) -> None:
    """Without cascade the examinations block the delete."""
    response = await client.delete(
        f"/api/v1/patients/{created_patient['id']}", headers=admin_headers
    )

    assert response.status_code == 409
    assert response.json()["details"] == {"examinations": 2, "result_files": 0}


@pytest.mark.asyncio
async def test_delete_patient_with_cascade(
    client: AsyncClient,
    admin_headers: dict,
    created_patient: dict,
    db_session,
) -> None:
    response = await client.delete(
        f"/api/v1/patients/{created_patient['id']}",
        params={"cascade": True},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["deleted_examinations"] == 2
    remaining = await db_session.execute(select(func.count()).select_from(examinations))
    assert remaining.scalar() == 0


@pytest.mark.asyncio
async def test_delete_patient_cascade_still_blocked_by_results(
    client: AsyncClient,
    admin_headers: dict,
    admin_user: dict,
    created_patient: dict,
    db_session,
) -> None:
    """Result files are never removed implicitly."""
    await db_session.execute(
        insert(result_files).values(
            patient_id=created_patient["id"],
            uploaded_by_user_id=admin_user["id"],
            file_name="scan.pdf",
            storage_key="results/1/scan.pdf",
            file_type="application/pdf",
            file_size_kb=10,
        )
    )
    await db_session.commit()

    response = await client.delete(
        f"/api/v1/patients/{created_patient['id']}",
        params={"cascade": True},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["details"]["result_files"] == 1
    still_there = await db_session.execute(
        select(func.count()).select_from(examinations)
    )
    assert still_there.scalar() == 2


@pytest.mark.asyncio
async def test_staff_cannot_delete_patient(
    client: AsyncClient,
    staff_headers: dict,
    created_patient: dict,
) -> None:
    response = await client.delete(
        f"/api/v1/patients/{created_patient['id']}", headers=staff_headers
    )
    assert response.status_code == 403
