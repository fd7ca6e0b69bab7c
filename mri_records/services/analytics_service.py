"""Dashboard aggregates."""

from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import ColumnElement, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.core.money import ZERO, sanitize_amount
from mri_records.models.patients import patients
from mri_records.models.result_files import result_files
from mri_records.schemas.analytics import (
    DailyCount,
    DashboardResponse,
    GenderCount,
    RecentPatient,
    RecentResult,
    ResultsSummary,
    RevenueSummary,
)
from mri_records.schemas.patients import PaymentStatus
from mri_records.schemas.results import ResultStatus

UNSPECIFIED_GENDER = "Unspecified"


class AnalyticsService:
    """Read-only aggregates over patients and results.

    Queries run one after another on the request's session; a single
    session cannot execute statements concurrently.
    """

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def total_patients(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(patients))
        return result.scalar() or 0

    async def patients_by_gender(self) -> list[GenderCount]:
        gender = func.coalesce(patients.c.gender, UNSPECIFIED_GENDER)
        stmt = (
            select(gender.label("gender"), func.count().label("count"))
            .group_by(gender)
            .order_by(gender)
        )
        result = await self.db.execute(stmt)
        return [GenderCount.model_validate(dict(row)) for row in result.mappings()]

    async def mris_by_day(self, days: int = 30, today: date | None = None) -> list[DailyCount]:
        """Scans per calendar day over the last ``days`` days, oldest first."""
        today = today or datetime.now(UTC).date()
        since = datetime.combine(today - timedelta(days=days - 1), time.min, tzinfo=UTC)

        day = func.date(patients.c.mri_date_time)
        stmt = (
            select(day.label("day"), func.count().label("count"))
            .where(patients.c.mri_date_time >= since)
            .group_by(day)
            .order_by(day)
        )
        result = await self.db.execute(stmt)
        return [
            DailyCount(day=_as_date(row["day"]), count=row["count"]) for row in result.mappings()
        ]

    async def recent_patients(self, limit: int = 5) -> list[RecentPatient]:
        stmt = (
            select(
                patients.c.id,
                patients.c.patient_name,
                patients.c.mri_code,
                patients.c.mri_date_time,
                patients.c.payment_status,
                patients.c.total_amount,
            )
            .order_by(patients.c.created_at.desc(), patients.c.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [RecentPatient.model_validate(dict(row)) for row in result.mappings()]

    async def results_summary(self) -> ResultsSummary:
        def count_status(status: ResultStatus) -> ColumnElement[int]:
            return func.coalesce(
                func.sum(case((result_files.c.result_status == status.value, 1), else_=0)), 0
            )

        stmt = select(
            func.count().label("total"),
            count_status(ResultStatus.PENDING_REVIEW).label("pending_review"),
            count_status(ResultStatus.FINAL).label("final"),
            count_status(ResultStatus.ISSUED).label("issued"),
        ).select_from(result_files)
        result = await self.db.execute(stmt)
        return ResultsSummary.model_validate(dict(result.mappings().one()))

    async def recent_results(self, limit: int = 10) -> list[RecentResult]:
        stmt = (
            select(
                result_files.c.id,
                result_files.c.patient_id,
                patients.c.patient_name,
                patients.c.mri_code,
                result_files.c.file_name,
                result_files.c.result_status,
                result_files.c.created_at,
            )
            .select_from(result_files.join(patients, result_files.c.patient_id == patients.c.id))
            .order_by(result_files.c.created_at.desc(), result_files.c.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [RecentResult.model_validate(dict(row)) for row in result.mappings()]

    async def revenue_summary(self) -> RevenueSummary:
        stmt = select(
            patients.c.payment_status,
            func.coalesce(func.sum(patients.c.total_amount), 0).label("amount"),
        ).group_by(patients.c.payment_status)
        result = await self.db.execute(stmt)

        by_status: dict[str, Decimal] = {
            row["payment_status"]: sanitize_amount(row["amount"]) for row in result.mappings()
        }
        approved = by_status.get(PaymentStatus.APPROVED.value, ZERO)
        pending = by_status.get(PaymentStatus.PENDING.value, ZERO)
        not_paid = by_status.get(PaymentStatus.NOT_PAID.value, ZERO)
        return RevenueSummary(
            total_billed=approved + pending + not_paid,
            approved=approved,
            pending=pending,
            not_paid=not_paid,
        )

    async def dashboard(self) -> DashboardResponse:
        """Every widget in one response."""
        return DashboardResponse(
            total_patients=await self.total_patients(),
            patients_by_gender=await self.patients_by_gender(),
            mris_by_day=await self.mris_by_day(),
            recent_patients=await self.recent_patients(),
            results_summary=await self.results_summary(),
            recent_results=await self.recent_results(),
            revenue_summary=await self.revenue_summary(),
        )


def _as_date(value: date | str) -> date:
    # SQLite returns DATE() as text, PostgreSQL as a date
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value
