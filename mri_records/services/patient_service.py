"""Patient and examination records.

A patient is written together with its examinations in one transaction and
``total_amount`` is always recomputed from the examination set.
"""

from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import ColumnElement, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.config import settings
from mri_records.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from mri_records.core.identifiers import (
    generate_mri_code,
    generate_receipt_number,
    generate_serial_number,
)
from mri_records.core.money import MAX_AMOUNT, ZERO, sanitize_amount, sum_amounts
from mri_records.models.patients import examinations, patients
from mri_records.models.result_files import result_files
from mri_records.models.users import users
from mri_records.schemas.patients import (
    ExaminationInput,
    ExaminationResponse,
    PatientCreate,
    PatientDeleteResponse,
    PatientDetailResponse,
    PatientFilters,
    PatientListResponse,
    PatientResponse,
    PatientUpdate,
    PaymentStatus,
    SearchField,
)

logger = structlog.get_logger(__name__)

IDENTIFIER_COLUMNS = ("mri_code", "serial_number", "receipt_number")

recorder = users.alias("recorder")
approver = users.alias("approver")


def normalize_examinations(items: list[ExaminationInput]) -> list[dict[str, Any]]:
    """
    Validate an examination set and sanitize its amounts.

    Args:
        items: Examinations as submitted

    Returns:
        List of ``{"id", "exam_name", "exam_amount"}`` with Decimal amounts

    Raises:
        ValidationException: If the set is empty, a name is blank, an amount is not
            positive or an amount or the total does not fit the amount column
    """
    if not items:
        raise ValidationException("At least one examination is required")

    normalized = []
    errors = []
    for index, item in enumerate(items):
        name = (item.exam_name or "").strip()
        amount = sanitize_amount(item.exam_amount)
        if not name:
            errors.append({"index": index, "field": "exam_name", "error": "must not be blank"})
        if amount <= ZERO:
            errors.append(
                {"index": index, "field": "exam_amount", "error": "must be greater than 0"}
            )
        elif amount > MAX_AMOUNT:
            errors.append(
                {"index": index, "field": "exam_amount", "error": f"must not exceed {MAX_AMOUNT}"}
            )
        normalized.append({"id": item.id, "exam_name": name, "exam_amount": amount})

    if errors:
        raise ValidationException("Invalid examinations", details=errors)

    if sum_amounts([item["exam_amount"] for item in normalized]) > MAX_AMOUNT:
        raise ValidationException(f"Examination total must not exceed {MAX_AMOUNT}")

    seen_ids = [item["id"] for item in normalized if item["id"] is not None]
    if len(seen_ids) != len(set(seen_ids)):
        raise ValidationException("Examination ids must not repeat")

    return normalized


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input only matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_patient_conditions(filters: PatientFilters) -> list[ColumnElement[bool]]:
    """
    Translate list filters into SQL predicates.

    ``search`` is a case-insensitive substring match on the selected field(s),
    ``gender`` and ``recorded_by`` are exact, and the date bounds are inclusive
    calendar days on ``mri_date_time``.
    """
    conditions: list[ColumnElement[bool]] = []

    search = (filters.search or "").strip()
    if search:
        pattern = f"%{escape_like(search)}%"
        name_match = patients.c.patient_name.ilike(pattern, escape="\\")
        code_match = patients.c.mri_code.ilike(pattern, escape="\\")
        if filters.search_field is SearchField.PATIENT_NAME:
            conditions.append(name_match)
        elif filters.search_field is SearchField.MRI_CODE:
            conditions.append(code_match)
        else:
            conditions.append(or_(name_match, code_match))

    if filters.gender and filters.gender != "All":
        conditions.append(patients.c.gender == filters.gender)

    if filters.recorded_by is not None:
        conditions.append(patients.c.recorded_by_staff_id == filters.recorded_by)

    if filters.start_date:
        conditions.append(patients.c.mri_date_time >= _day_start(filters.start_date))

    if filters.end_date:
        conditions.append(
            patients.c.mri_date_time < _day_start(filters.end_date + timedelta(days=1))
        )

    return conditions


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value.value if isinstance(value, Enum) else value for key, value in data.items()}


def _collided_identifier(error: IntegrityError) -> str | None:
    message = str(error.orig).lower()
    for column in IDENTIFIER_COLUMNS:
        if column in message:
            return column
    return None


class PatientService:
    """Service for patient records and their examinations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _identifiers_available(self, mri_code: str, serial_number: str) -> bool:
        stmt = (
            select(func.count())
            .select_from(patients)
            .where(or_(patients.c.mri_code == mri_code, patients.c.serial_number == serial_number))
        )
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) == 0

    async def create_patient(self, data: PatientCreate, staff_id: int) -> PatientDetailResponse:
        """
        Register a patient with their examinations.

        Identifiers are generated, probed and then inserted. The unique
        indexes are the real guard: a collision at insert time rolls the
        transaction back and the attempt is repeated with fresh identifiers,
        up to ``IDENTIFIER_MAX_ATTEMPTS`` times.

        Args:
            data: Patient fields and examinations
            staff_id: Recording staff member

        Returns:
            Created patient with examinations

        Raises:
            ValidationException: If the name is blank or the examinations are invalid
            ConflictException: If unique identifiers could not be allocated
        """
        patient_name = data.patient_name.strip()
        if not patient_name:
            raise ValidationException("Patient name is required")

        exams = normalize_examinations(data.examinations)
        if any(exam["id"] is not None for exam in exams):
            raise ValidationException("New examinations must not carry an id")

        fields = _column_values(
            data.model_dump(exclude={"patient_name", "examinations", "mri_date_time"})
        )
        now = datetime.now(UTC)
        base_values = {
            **fields,
            "patient_name": patient_name,
            "mri_date_time": data.mri_date_time or now,
            "total_amount": sum_amounts([exam["exam_amount"] for exam in exams]),
            "payment_status": PaymentStatus.NOT_PAID.value,
            "recorded_by_staff_id": staff_id,
            "created_at": now,
            "updated_at": now,
        }

        max_attempts = settings.identifier_max_attempts
        for attempt in range(1, max_attempts + 1):
            mri_code = generate_mri_code()
            serial_number = generate_serial_number()

            if not await self._identifiers_available(mri_code, serial_number):
                logger.warning("identifier_collision", stage="probe", attempt=attempt)
                continue

            values = {
                **base_values,
                "mri_code": mri_code,
                "serial_number": serial_number,
                "receipt_number": generate_receipt_number(),
            }
            try:
                result = await self.db.execute(
                    insert(patients).values(**values).returning(patients.c.id)
                )
                patient_id = result.scalar_one()
                await self.db.execute(
                    insert(examinations),
                    [
                        {
                            "patient_id": patient_id,
                            "exam_name": exam["exam_name"],
                            "exam_amount": exam["exam_amount"],
                            "created_at": now,
                            "updated_at": now,
                        }
                        for exam in exams
                    ],
                )
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                column = _collided_identifier(e)
                if column is None:
                    raise
                logger.warning(
                    "identifier_collision", stage="insert", column=column, attempt=attempt
                )
                continue

            logger.info(
                "patient_created",
                patient_id=patient_id,
                mri_code=mri_code,
                examinations=len(exams),
                recorded_by=staff_id,
            )
            return await self.get_patient(patient_id)

        logger.error("identifier_allocation_exhausted", attempts=max_attempts)
        raise ConflictException(
            "Could not allocate unique patient identifiers, please retry",
            details={"attempts": max_attempts},
        )

    async def _require_patient(self, patient_id: int) -> None:
        result = await self.db.execute(select(patients.c.id).where(patients.c.id == patient_id))
        if result.first() is None:
            raise NotFoundException("Patient not found")

    async def _examinations_for(self, patient_ids: list[int]) -> dict[int, list[ExaminationResponse]]:
        grouped: dict[int, list[ExaminationResponse]] = {pid: [] for pid in patient_ids}
        if not patient_ids:
            return grouped

        stmt = (
            select(examinations)
            .where(examinations.c.patient_id.in_(patient_ids))
            .order_by(examinations.c.patient_id, examinations.c.id)
        )
        result = await self.db.execute(stmt)
        for row in result.mappings():
            grouped[row["patient_id"]].append(ExaminationResponse.model_validate(dict(row)))
        return grouped

    @staticmethod
    def _detail_select() -> Any:
        return select(
            patients,
            recorder.c.full_name.label("recorded_by_staff_name"),
            approver.c.full_name.label("approved_by_name"),
        ).select_from(
            patients.outerjoin(recorder, patients.c.recorded_by_staff_id == recorder.c.id).outerjoin(
                approver, patients.c.approved_by_user_id == approver.c.id
            )
        )

    async def get_patient(self, patient_id: int) -> PatientDetailResponse:
        """
        Get a patient with examinations and staff names.

        Raises:
            NotFoundException: If the patient does not exist
        """
        result = await self.db.execute(self._detail_select().where(patients.c.id == patient_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Patient not found")

        exams = await self._examinations_for([patient_id])
        return PatientDetailResponse.model_validate({**dict(row), "examinations": exams[patient_id]})

    async def list_patients(self, filters: PatientFilters) -> PatientListResponse:
        """
        List patients matching the filters, newest scan first.

        Args:
            filters: Search, exact-match, date range and pagination parameters

        Returns:
            Page of patients with the total match count
        """
        conditions = build_patient_conditions(filters)

        count_stmt = select(func.count()).select_from(patients).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            self._detail_select()
            .where(*conditions)
            .order_by(patients.c.mri_date_time.desc(), patients.c.id.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
        rows = (await self.db.execute(stmt)).mappings().all()

        exams: dict[int, list[ExaminationResponse]] = {}
        if filters.include_examinations:
            exams = await self._examinations_for([row["id"] for row in rows])

        items = [
            PatientDetailResponse.model_validate(
                {**dict(row), "examinations": exams.get(row["id"])}
            )
            for row in rows
        ]
        return PatientListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def iter_all_patients(self, filters: PatientFilters) -> list[PatientDetailResponse]:
        """Every patient matching the filters with examinations, for exports."""
        conditions = build_patient_conditions(filters)
        stmt = (
            self._detail_select()
            .where(*conditions)
            .order_by(patients.c.mri_date_time.desc(), patients.c.id.desc())
        )
        rows = (await self.db.execute(stmt)).mappings().all()
        exams = await self._examinations_for([row["id"] for row in rows])
        return [
            PatientDetailResponse.model_validate({**dict(row), "examinations": exams[row["id"]]})
            for row in rows
        ]

    async def _apply_examination_set(
        self,
        patient_id: int,
        exams: list[dict[str, Any]],
        now: datetime,
    ) -> Decimal:
        result = await self.db.execute(
            select(examinations.c.id).where(examinations.c.patient_id == patient_id)
        )
        existing_ids = set(result.scalars().all())

        foreign_ids = sorted(
            exam["id"] for exam in exams if exam["id"] is not None and exam["id"] not in existing_ids
        )
        if foreign_ids:
            raise ValidationException(
                "Examinations do not belong to this patient",
                details={"examination_ids": foreign_ids},
            )

        kept_ids = {exam["id"] for exam in exams if exam["id"] is not None}
        removed_ids = existing_ids - kept_ids
        if removed_ids:
            await self.db.execute(delete(examinations).where(examinations.c.id.in_(removed_ids)))

        new_rows = []
        for exam in exams:
            if exam["id"] is None:
                new_rows.append(
                    {
                        "patient_id": patient_id,
                        "exam_name": exam["exam_name"],
                        "exam_amount": exam["exam_amount"],
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                continue
            await self.db.execute(
                update(examinations)
                .where(examinations.c.id == exam["id"])
                .values(exam_name=exam["exam_name"], exam_amount=exam["exam_amount"], updated_at=now)
            )
        if new_rows:
            await self.db.execute(insert(examinations), new_rows)

        return sum_amounts([exam["exam_amount"] for exam in exams])

    async def update_patient(self, patient_id: int, data: PatientUpdate) -> PatientDetailResponse:
        """
        Apply a partial update, optionally replacing the examination set.

        Fields absent from the request are untouched and fields sent as null
        are cleared. A supplied examination set is diffed by id: matching rows
        are updated, rows without id inserted and missing rows deleted. The
        patient row and examination changes commit together or not at all.

        Raises:
            NotFoundException: If the patient does not exist
            ValidationException: If the name is blank or the examinations are invalid
        """
        update_data = data.model_dump(exclude_unset=True, exclude={"examinations"})

        if "patient_name" in update_data:
            patient_name = (update_data["patient_name"] or "").strip()
            if not patient_name:
                raise ValidationException("Patient name must not be blank")
            update_data["patient_name"] = patient_name

        if "mri_date_time" in update_data and update_data["mri_date_time"] is None:
            raise ValidationException("MRI date and time cannot be cleared")

        exams = None
        if "examinations" in data.model_fields_set:
            exams = normalize_examinations(data.examinations or [])

        await self._require_patient(patient_id)

        now = datetime.now(UTC)
        values = {**_column_values(update_data), "updated_at": now}
        try:
            if exams is not None:
                values["total_amount"] = await self._apply_examination_set(patient_id, exams, now)
            await self.db.execute(update(patients).where(patients.c.id == patient_id).values(**values))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "patient_updated",
            patient_id=patient_id,
            fields=sorted(update_data),
            examinations_replaced=exams is not None,
        )
        return await self.get_patient(patient_id)

    async def _dependent_counts(self, patient_id: int) -> dict[str, int]:
        exam_count = await self.db.execute(
            select(func.count()).select_from(examinations).where(examinations.c.patient_id == patient_id)
        )
        result_count = await self.db.execute(
            select(func.count()).select_from(result_files).where(result_files.c.patient_id == patient_id)
        )
        return {
            "examinations": exam_count.scalar() or 0,
            "result_files": result_count.scalar() or 0,
        }

    async def delete_patient(self, patient_id: int, cascade: bool = False) -> PatientDeleteResponse:
        """
        Delete a patient.

        Dependent examination and result rows block the delete. With
        ``cascade`` the patient's examinations are removed in the same
        transaction; result files still block and must be deleted first.

        Raises:
            NotFoundException: If the patient does not exist
            ConflictException: If dependent rows block the delete
        """
        await self._require_patient(patient_id)

        deleted_examinations = 0
        try:
            if cascade:
                result = await self.db.execute(
                    delete(examinations).where(examinations.c.patient_id == patient_id)
                )
                deleted_examinations = result.rowcount or 0  # type: ignore[attr-defined]
            await self.db.execute(delete(patients).where(patients.c.id == patient_id))
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            dependents = await self._dependent_counts(patient_id)
            logger.info("patient_delete_blocked", patient_id=patient_id, **dependents)
            raise ConflictException(
                "Patient has dependent records; delete them first",
                details=dependents,
            )

        logger.info(
            "patient_deleted",
            patient_id=patient_id,
            deleted_examinations=deleted_examinations,
        )
        return PatientDeleteResponse(id=patient_id, deleted_examinations=deleted_examinations)

    async def get_patient_row(self, patient_id: int) -> PatientResponse:
        """Get the bare patient row without joins."""
        result = await self.db.execute(select(patients).where(patients.c.id == patient_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Patient not found")
        return PatientResponse.model_validate(dict(row))
