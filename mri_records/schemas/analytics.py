"""Dashboard analytics schemas."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel


class TotalPatients(BaseModel):
    """Total number of registered patients."""

    total: int


class GenderCount(BaseModel):
    """Patients per gender."""

    gender: str
    count: int


class DailyCount(BaseModel):
    """Scans performed on one calendar day."""

    day: date
    count: int


class RecentPatient(BaseModel):
    """Compact patient row for dashboards."""

    id: int
    patient_name: str
    mri_code: str
    mri_date_time: datetime
    payment_status: str
    total_amount: Decimal


class ResultsSummary(BaseModel):
    """Result file counts per status."""

    total: int
    pending_review: int
    final: int
    issued: int


class RecentResult(BaseModel):
    """Compact result row for dashboards."""

    id: int
    patient_id: int
    patient_name: str
    mri_code: str
    file_name: str
    result_status: str
    created_at: datetime


class RevenueSummary(BaseModel):
    """Billed amounts grouped by payment status."""

    total_billed: Decimal
    approved: Decimal
    pending: Decimal
    not_paid: Decimal


class DashboardResponse(BaseModel):
    """Every dashboard widget in one payload."""

    total_patients: int
    patients_by_gender: list[GenderCount]
    mris_by_day: list[DailyCount]
    recent_patients: list[RecentPatient]
    results_summary: ResultsSummary
    recent_results: list[RecentResult]
    revenue_summary: RevenueSummary
