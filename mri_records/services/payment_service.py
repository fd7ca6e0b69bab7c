"""Payment status transitions for patient records."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.core.exceptions import NotFoundException, ValidationException
from mri_records.models.patients import patients
from mri_records.schemas.patients import PatientResponse, PaymentStatus

logger = structlog.get_logger(__name__)


def parse_payment_status(value: str) -> PaymentStatus:
    """
    Parse a payment status value.

    Raises:
        ValidationException: If the value is not one of the known states
    """
    try:
        return PaymentStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in PaymentStatus)
        raise ValidationException(f"Invalid payment status '{value}'. Allowed: {allowed}")


class PaymentService:
    """Moves a patient record between payment states."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def set_payment_status(
        self,
        patient_id: int,
        status_value: str,
        caller_id: int,
    ) -> PatientResponse:
        """
        Set the payment status of a patient.

        Any state may follow any other. Entering ``Approved`` stamps the
        approver and approval time; every other state clears both. The status
        and its stamp are written by a single UPDATE.

        Args:
            patient_id: Patient to update
            status_value: Requested status
            caller_id: Acting user, recorded as approver on approval

        Returns:
            Updated patient row

        Raises:
            ValidationException: If the status is unknown
            NotFoundException: If the patient does not exist
        """
        new_status = parse_payment_status(status_value)
        now = datetime.now(UTC)

        if new_status is PaymentStatus.APPROVED:
            stamp = {"approved_by_user_id": caller_id, "approved_at": now}
        else:
            stamp = {"approved_by_user_id": None, "approved_at": None}

        stmt = (
            update(patients)
            .where(patients.c.id == patient_id)
            .values(payment_status=new_status.value, updated_at=now, **stamp)
            .returning(patients)
        )
        try:
            result = await self.db.execute(stmt)
            row = result.mappings().first()
            if not row:
                raise NotFoundException("Patient not found")
            patient = PatientResponse.model_validate(dict(row))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "payment_status_updated",
            patient_id=patient_id,
            payment_status=new_status.value,
            changed_by=caller_id,
        )
        return patient
