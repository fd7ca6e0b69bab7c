"""Result file endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from mri_records.core.permissions import Operation
from mri_records.dependencies import BlobStorageDep, DatabaseSession, require_permission
from mri_records.schemas.results import (
    ResultDeleteResponse,
    ResultDownloadLink,
    ResultFileResponse,
    ResultIssueRequest,
    ResultStatusUpdate,
)
from mri_records.services.result_service import ResultService

router = APIRouter()


@router.post(
    "/patients/{patient_id}/results",
    response_model=ResultFileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload result file",
)
async def upload_result(
    patient_id: int,
    db: DatabaseSession,
    storage: BlobStorageDep,
    current_user: Annotated[dict, Depends(require_permission(Operation.UPLOAD_RESULT))],
    file: UploadFile | None = File(None),
    remarks: str | None = Form(None),
) -> ResultFileResponse:
    """
    Upload a result for a patient.

    Without a file a placeholder PDF is generated for the patient.

    Args:
        patient_id: Owning patient
        db: Database session
        storage: Blob storage
        current_user: Uploading user
        file: Result document (PDF, JPEG, PNG, DOC, DOCX)
        remarks: Optional notes

    Returns:
        Stored result metadata
    """
    service = ResultService(db, storage)
    if file is None:
        return await service.upload_result(patient_id, current_user["id"], remarks=remarks)

    data = await file.read()
    return await service.upload_result(
        patient_id,
        current_user["id"],
        file_name=file.filename,
        data=data,
        content_type=file.content_type,
        remarks=remarks,
    )


@router.get(
    "/patients/{patient_id}/results",
    response_model=list[ResultFileResponse],
    summary="List results for patient",
)
async def list_results(
    patient_id: int,
    db: DatabaseSession,
    storage: BlobStorageDep,
    current_user: Annotated[dict, Depends(require_permission(Operation.LIST_RESULTS_FOR_PATIENT))],
) -> list[ResultFileResponse]:
    """List a patient's results, newest first."""
    return await ResultService(db, storage).list_for_patient(patient_id)


@router.patch(
    "/results/{file_id}/status",
    response_model=ResultFileResponse,
    summary="Set result status",
)
async def set_result_status(
    file_id: int,
    data: ResultStatusUpdate,
    db: DatabaseSession,
    storage: BlobStorageDep,
    current_user: Annotated[dict, Depends(require_permission(Operation.SET_RESULT_STATUS))],
) -> ResultFileResponse:
    """Move a result between pending_review, final and issued."""
    return await ResultService(db, storage).set_status(
        file_id, data.result_status, current_user["id"]
    )


@router.post(
    "/results/{file_id}/issue",
    response_model=ResultFileResponse,
    summary="Issue result",
)
async def issue_result(
    file_id: int,
    data: ResultIssueRequest,
    db: DatabaseSession,
    storage: BlobStorageDep,
    current_user: Annotated[dict, Depends(require_permission(Operation.ISSUE_RESULT))],
) -> ResultFileResponse:
    """Issue a result to a named recipient and notify admins."""
    return await ResultService(db, storage).issue_result(file_id, data, current_user["id"])


@router.get(
    "/results/{file_id}/download",
    response_model=ResultDownloadLink,
    summary="Get result download link",
)
async def get_download_link(
    file_id: int,
    db: DatabaseSession,
    storage: BlobStorageDep,
    current_user: Annotated[dict, Depends(require_permission(Operation.GET_RESULT_DOWNLOAD_LINK))],
) -> ResultDownloadLink:
    """Return a signed URL valid for a few minutes; requires download permission."""
    return await ResultService(db, storage).get_download_link(file_id, current_user)


@router.delete(
    "/results/{file_id}",
    response_model=ResultDeleteResponse,
    summary="Delete result",
)
async def delete_result(
    file_id: int,
    db: DatabaseSession,
    storage: BlobStorageDep,
    current_user: Annotated[dict, Depends(require_permission(Operation.DELETE_RESULT))],
) -> ResultDeleteResponse:
    """Delete a result file and its stored blob."""
    return await ResultService(db, storage).delete_result(file_id)
