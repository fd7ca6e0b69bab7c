"""Patient record endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from mri_records.core.permissions import Operation
from mri_records.dependencies import DatabaseSession, require_permission
from mri_records.schemas.patients import (
    PatientCreate,
    PatientDeleteResponse,
    PatientDetailResponse,
    PatientFilters,
    PatientListResponse,
    PatientResponse,
    PatientUpdate,
    PaymentStatusUpdate,
    SearchField,
)
from mri_records.services.document_service import (
    build_patients_workbook,
    render_invoice,
    render_receipt,
)
from mri_records.services.patient_service import PatientService
from mri_records.services.payment_service import PaymentService

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def patient_filters(
    search: str | None = Query(None, description="Substring to match"),
    search_field: SearchField = Query(SearchField.ALL, description="Field(s) to search"),
    gender: str | None = Query(None, description="Exact gender, 'All' for any"),
    recorded_by: int | None = Query(None, description="Recording staff id"),
    start_date: date | None = Query(None, description="Scan date from (inclusive)"),
    end_date: date | None = Query(None, description="Scan date to (inclusive)"),
    include_examinations: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
) -> PatientFilters:
    """Collect list filters from the query string."""
    return PatientFilters(
        search=search,
        search_field=search_field,
        gender=gender,
        recorded_by=recorded_by,
        start_date=start_date,
        end_date=end_date,
        include_examinations=include_examinations,
        page=page,
        page_size=page_size,
    )


Filters = Annotated[PatientFilters, Depends(patient_filters)]


@router.post(
    "/",
    response_model=PatientDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register patient",
)
async def create_patient(
    data: PatientCreate,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.CREATE_PATIENT))],
) -> PatientDetailResponse:
    """
    Register a patient with at least one examination.

    Args:
        data: Patient fields and examinations
        db: Database session
        current_user: Recording staff member

    Returns:
        Created patient with generated identifiers and total
    """
    return await PatientService(db).create_patient(data, current_user["id"])


@router.get(
    "/",
    response_model=PatientListResponse,
    summary="List patients",
)
async def list_patients(
    filters: Filters,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.LIST_PATIENTS))],
) -> PatientListResponse:
    """List patients with search, filters and pagination, newest scan first."""
    return await PatientService(db).list_patients(filters)


@router.get(
    "/export/excel",
    response_class=Response,
    summary="Export patients to Excel",
)
async def export_patients(
    filters: Filters,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.EXPORT_PATIENTS))],
) -> Response:
    """Download every patient matching the list filters as an XLSX workbook."""
    rows = await PatientService(db).iter_all_patients(filters)
    return Response(
        content=build_patients_workbook(rows),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="patients.xlsx"'},
    )


@router.get(
    "/{patient_id}",
    response_model=PatientDetailResponse,
    summary="Get patient",
)
async def get_patient(
    patient_id: int,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.GET_PATIENT))],
) -> PatientDetailResponse:
    """Get a patient with examinations and staff names."""
    return await PatientService(db).get_patient(patient_id)


@router.put(
    "/{patient_id}",
    response_model=PatientDetailResponse,
    summary="Update patient",
)
async def update_patient(
    patient_id: int,
    data: PatientUpdate,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.UPDATE_PATIENT))],
) -> PatientDetailResponse:
    """
    Partially update a patient.

    Omitted fields are untouched, null fields are cleared and a supplied
    ``examinations`` list replaces the whole set.
    """
    return await PatientService(db).update_patient(patient_id, data)


@router.delete(
    "/{patient_id}",
    response_model=PatientDeleteResponse,
    summary="Delete patient",
)
async def delete_patient(
    patient_id: int,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.DELETE_PATIENT))],
    cascade: bool = Query(False, description="Also delete the patient's examinations"),
) -> PatientDeleteResponse:
    """Delete a patient; dependent records block the delete unless cascaded."""
    return await PatientService(db).delete_patient(patient_id, cascade=cascade)


@router.patch(
    "/{patient_id}/payment-status",
    response_model=PatientResponse,
    summary="Set payment status",
)
async def set_payment_status(
    patient_id: int,
    data: PaymentStatusUpdate,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.SET_PAYMENT_STATUS))],
) -> PatientResponse:
    """Set Not Paid, Pending or Approved; approval records the caller."""
    return await PaymentService(db).set_payment_status(
        patient_id, data.payment_status, current_user["id"]
    )


@router.get(
    "/{patient_id}/invoice",
    response_class=Response,
    summary="Download invoice PDF",
)
async def get_invoice(
    patient_id: int,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.GENERATE_INVOICE))],
) -> Response:
    """Render the patient's invoice."""
    patient = await PatientService(db).get_patient(patient_id)
    return Response(
        content=render_invoice(patient),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="invoice-{patient.mri_code}.pdf"'},
    )


@router.get(
    "/{patient_id}/receipt",
    response_class=Response,
    summary="Download receipt PDF",
)
async def get_receipt(
    patient_id: int,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.GENERATE_RECEIPT))],
) -> Response:
    """Render the patient's payment receipt."""
    patient = await PatientService(db).get_patient(patient_id)
    return Response(
        content=render_receipt(patient),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="receipt-{patient.receipt_number}.pdf"'
        },
    )
