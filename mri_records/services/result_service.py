"""Result file lifecycle: upload, review, issuance, download and deletion."""

import os
import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.config import settings
from mri_records.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from mri_records.core.storage import BlobStorage
from mri_records.models.patients import patients
from mri_records.models.result_files import result_files
from mri_records.models.users import users
from mri_records.schemas.notifications import NotificationType
from mri_records.schemas.results import (
    ResultDeleteResponse,
    ResultDownloadLink,
    ResultFileResponse,
    ResultIssueRequest,
    ResultStatus,
)
from mri_records.services.document_service import render_result_placeholder
from mri_records.services.notification_service import notify_admins_quietly
from mri_records.services.patient_service import PatientService

logger = structlog.get_logger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
DEFAULT_EXTENSION = ".pdf"
PDF_CONTENT_TYPE = "application/pdf"

uploader = users.alias("uploader")
issuer = users.alias("issuer")


def build_storage_key(patient_id: int, file_name: str | None) -> str:
    """Key namespaced by patient with a random suffix and the original extension."""
    extension = os.path.splitext(file_name or "")[1].lower() or DEFAULT_EXTENSION
    return f"results/{patient_id}/{uuid.uuid4().hex}{extension}"


def size_in_kb(data: bytes) -> int:
    """Byte length converted to whole kilobytes."""
    return round(len(data) / 1024)


def parse_result_status(value: str) -> ResultStatus:
    """
    Parse a result status value.

    Raises:
        ValidationException: If the value is not a known state
    """
    try:
        return ResultStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in ResultStatus)
        raise ValidationException(f"Invalid result status '{value}'. Allowed: {allowed}")


class ResultService:
    """Service for MRI result files."""

    def __init__(self, db: AsyncSession, storage: BlobStorage):
        """Initialize service with database session and blob storage."""
        self.db = db
        self.storage = storage

    @staticmethod
    def _detail_select() -> Any:
        return select(
            result_files,
            uploader.c.full_name.label("uploaded_by_name"),
            issuer.c.full_name.label("issued_by_name"),
        ).select_from(
            result_files.outerjoin(uploader, result_files.c.uploaded_by_user_id == uploader.c.id)
            .outerjoin(issuer, result_files.c.issued_by_user_id == issuer.c.id)
        )

    async def get_result(self, file_id: int) -> ResultFileResponse:
        """
        Get one result file with uploader and issuer names.

        Raises:
            NotFoundException: If the file does not exist
        """
        result = await self.db.execute(self._detail_select().where(result_files.c.id == file_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Result file not found")
        return ResultFileResponse.model_validate(dict(row))

    async def _get_row(self, file_id: int) -> dict[str, Any]:
        result = await self.db.execute(select(result_files).where(result_files.c.id == file_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Result file not found")
        return dict(row)

    async def upload_result(
        self,
        patient_id: int,
        uploader_id: int,
        file_name: str | None = None,
        data: bytes | None = None,
        content_type: str | None = None,
        remarks: str | None = None,
    ) -> ResultFileResponse:
        """
        Store a result file for a patient.

        Without a file, a placeholder PDF is rendered for the patient and
        stored the same way. The blob is written before the metadata row; if
        the row cannot be written the blob is removed again.

        Args:
            patient_id: Owning patient
            uploader_id: Uploading user
            file_name: Original filename
            data: File bytes, or None for the placeholder
            content_type: MIME type of the upload
            remarks: Free text notes

        Returns:
            Stored result metadata with status ``pending_review``

        Raises:
            NotFoundException: If the patient does not exist
            ValidationException: If the file is empty, too large or of a disallowed type
            StorageException: If the blob store rejects the upload
        """
        patient_service = PatientService(self.db)

        if data is None:
            patient = await patient_service.get_patient(patient_id)
            data = render_result_placeholder(patient)
            file_name = f"{patient.mri_code}-result.pdf"
            content_type = PDF_CONTENT_TYPE
        else:
            await patient_service.get_patient_row(patient_id)
            self._validate_upload(data, content_type)

        file_name = os.path.basename(file_name or "") or f"result{DEFAULT_EXTENSION}"
        content_type = content_type or PDF_CONTENT_TYPE
        storage_key = build_storage_key(patient_id, file_name)

        # Release the read transaction before the slow blob write
        await self.db.rollback()
        await self.storage.put(storage_key, data, content_type)

        now = datetime.now(UTC)
        stmt = (
            insert(result_files)
            .values(
                patient_id=patient_id,
                uploaded_by_user_id=uploader_id,
                file_name=file_name,
                storage_key=storage_key,
                file_type=content_type,
                file_size_kb=size_in_kb(data),
                result_status=ResultStatus.PENDING_REVIEW.value,
                remarks=remarks,
                created_at=now,
                updated_at=now,
            )
            .returning(result_files.c.id)
        )
        try:
            result = await self.db.execute(stmt)
            file_id = result.scalar_one()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self._delete_blob_quietly(storage_key)
            raise

        logger.info(
            "result_uploaded",
            file_id=file_id,
            patient_id=patient_id,
            uploaded_by=uploader_id,
            size_kb=size_in_kb(data),
        )

        await notify_admins_quietly(
            self.db,
            NotificationType.NEW_RESULT_UPLOAD.value,
            f"New result '{file_name}' uploaded for patient #{patient_id}",
            related_entity_id=file_id,
            related_entity_type="result_file",
        )
        return await self.get_result(file_id)

    @staticmethod
    def _validate_upload(data: bytes, content_type: str | None) -> None:
        if not data:
            raise ValidationException("Uploaded file is empty")

        max_bytes = settings.max_result_file_size_mb * 1024 * 1024
        if len(data) > max_bytes:
            raise ValidationException(
                f"File exceeds the {settings.max_result_file_size_mb} MB limit"
            )

        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationException(
                f"File type '{content_type}' is not allowed",
                details={"allowed": sorted(ALLOWED_CONTENT_TYPES)},
            )

    async def list_for_patient(self, patient_id: int) -> list[ResultFileResponse]:
        """
        Result files of a patient, newest first.

        Raises:
            NotFoundException: If the patient does not exist
        """
        exists = await self.db.execute(select(patients.c.id).where(patients.c.id == patient_id))
        if exists.first() is None:
            raise NotFoundException("Patient not found")

        stmt = (
            self._detail_select()
            .where(result_files.c.patient_id == patient_id)
            .order_by(result_files.c.created_at.desc(), result_files.c.id.desc())
        )
        result = await self.db.execute(stmt)
        return [ResultFileResponse.model_validate(dict(row)) for row in result.mappings()]

    async def set_status(
        self, file_id: int, status_value: str, caller_id: int
    ) -> ResultFileResponse:
        """
        Change the status of a result directly.

        Moving into ``issued`` this way records the caller as issuer but no
        recipient. An issued result is terminal and cannot change status again.

        Raises:
            ValidationException: If the status is unknown
            NotFoundException: If the file does not exist
            ConflictException: If the file is already issued
        """
        new_status = parse_result_status(status_value)
        current = await self._get_row(file_id)

        if current["result_status"] == ResultStatus.ISSUED.value:
            raise ConflictException("Result has already been issued and cannot change status")

        now = datetime.now(UTC)
        values: dict[str, Any] = {"result_status": new_status.value, "updated_at": now}
        if new_status is ResultStatus.ISSUED:
            values["issued_at"] = now
            values["issued_by_user_id"] = caller_id

        await self.db.execute(
            update(result_files)
            .where(
                result_files.c.id == file_id,
                result_files.c.result_status != ResultStatus.ISSUED.value,
            )
            .values(**values)
        )
        await self.db.commit()

        logger.info(
            "result_status_updated",
            file_id=file_id,
            from_status=current["result_status"],
            to_status=new_status.value,
        )
        return await self.get_result(file_id)

    async def issue_result(
        self,
        file_id: int,
        request: ResultIssueRequest,
        issuer_id: int,
    ) -> ResultFileResponse:
        """
        Issue a result to a recipient.

        Args:
            file_id: Result file
            request: Recipient details; the name is required
            issuer_id: Issuing user

        Returns:
            Issued result

        Raises:
            ValidationException: If the recipient name is blank
            NotFoundException: If the file does not exist
            ConflictException: If the file was already issued
        """
        recipient_name = (request.recipient_name or "").strip()
        if not recipient_name:
            raise ValidationException("Recipient name is required to issue a result")

        current = await self._get_row(file_id)
        if current["result_status"] == ResultStatus.ISSUED.value:
            raise ConflictException("Result has already been issued")

        now = datetime.now(UTC)
        stmt = (
            update(result_files)
            .where(
                result_files.c.id == file_id,
                result_files.c.result_status != ResultStatus.ISSUED.value,
            )
            .values(
                result_status=ResultStatus.ISSUED.value,
                issued_to_recipient_name=recipient_name,
                issued_to_recipient_phone=request.recipient_phone,
                issued_to_recipient_relationship=request.recipient_relationship,
                issued_to_recipient_email=request.recipient_email,
                issued_by_user_id=issuer_id,
                issued_at=now,
                updated_at=now,
            )
        )
        result = await self.db.execute(stmt)
        if not result.rowcount:  # type: ignore[attr-defined]
            await self.db.rollback()
            raise ConflictException("Result has already been issued")
        await self.db.commit()

        logger.info("result_issued", file_id=file_id, issued_by=issuer_id)

        await notify_admins_quietly(
            self.db,
            NotificationType.RESULT_ISSUED.value,
            f"Result '{current['file_name']}' for patient #{current['patient_id']} "
            f"was issued to {recipient_name}",
            related_entity_id=file_id,
            related_entity_type="result_file",
        )
        return await self.get_result(file_id)

    async def get_download_link(self, file_id: int, caller: dict[str, Any]) -> ResultDownloadLink:
        """
        Create a short-lived download URL for a result.

        The caller's ``can_download`` capability is checked before anything
        else, whatever their role.

        Raises:
            ForbiddenException: If the caller may not download results
            NotFoundException: If the file does not exist
            StorageException: If the URL cannot be signed
        """
        if not caller.get("can_download"):
            raise ForbiddenException("You do not have permission to download results")

        row = await self._get_row(file_id)
        expires_in = settings.result_url_expiry_seconds
        url = await self.storage.presigned_get_url(row["storage_key"], expires_in)

        logger.info("result_download_link_created", file_id=file_id, user_id=caller["id"])
        return ResultDownloadLink(
            file_id=file_id,
            file_name=row["file_name"],
            url=url,
            expires_in=expires_in,
        )

    async def _delete_blob_quietly(self, storage_key: str) -> bool:
        try:
            await self.storage.delete(storage_key)
            return True
        except Exception as e:
            logger.warning("result_blob_delete_failed", storage_key=storage_key, error=str(e))
            return False

    async def delete_result(self, file_id: int) -> ResultDeleteResponse:
        """
        Delete a result's blob and metadata row.

        A blob delete failure is logged and the row is deleted regardless.

        Raises:
            NotFoundException: If the file does not exist
        """
        row = await self._get_row(file_id)
        blob_deleted = await self._delete_blob_quietly(row["storage_key"])

        try:
            await self.db.execute(delete(result_files).where(result_files.c.id == file_id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "result_deleted",
            file_id=file_id,
            patient_id=row["patient_id"],
            blob_deleted=blob_deleted,
        )
        return ResultDeleteResponse(id=file_id, blob_deleted=blob_deleted)
