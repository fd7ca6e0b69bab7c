"""Dashboard analytics endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from mri_records.core.permissions import Operation
from mri_records.dependencies import DatabaseSession, require_permission
from mri_records.schemas.analytics import (
    DailyCount,
    DashboardResponse,
    GenderCount,
    RecentPatient,
    RecentResult,
    ResultsSummary,
    RevenueSummary,
    TotalPatients,
)
from mri_records.services.analytics_service import AnalyticsService

router = APIRouter()

Viewer = Annotated[dict, Depends(require_permission(Operation.VIEW_ANALYTICS))]


@router.get("/total-patients", response_model=TotalPatients, summary="Total patients")
async def total_patients(db: DatabaseSession, current_user: Viewer) -> TotalPatients:
    """Count of all registered patients."""
    return TotalPatients(total=await AnalyticsService(db).total_patients())


@router.get(
    "/patients-by-gender",
    response_model=list[GenderCount],
    summary="Patients by gender",
)
async def patients_by_gender(db: DatabaseSession, current_user: Viewer) -> list[GenderCount]:
    return await AnalyticsService(db).patients_by_gender()


@router.get("/mris-by-day", response_model=list[DailyCount], summary="Scans per day")
async def mris_by_day(db: DatabaseSession, current_user: Viewer) -> list[DailyCount]:
    """Scans per calendar day over the last 30 days, oldest first."""
    return await AnalyticsService(db).mris_by_day()


@router.get(
    "/recent-patients",
    response_model=list[RecentPatient],
    summary="Most recently registered patients",
)
async def recent_patients(db: DatabaseSession, current_user: Viewer) -> list[RecentPatient]:
    return await AnalyticsService(db).recent_patients()


@router.get("/results-summary", response_model=ResultsSummary, summary="Results by status")
async def results_summary(db: DatabaseSession, current_user: Viewer) -> ResultsSummary:
    return await AnalyticsService(db).results_summary()


@router.get(
    "/recent-results",
    response_model=list[RecentResult],
    summary="Most recent result uploads",
)
async def recent_results(db: DatabaseSession, current_user: Viewer) -> list[RecentResult]:
    return await AnalyticsService(db).recent_results()


@router.get("/revenue-summary", response_model=RevenueSummary, summary="Revenue by status")
async def revenue_summary(db: DatabaseSession, current_user: Viewer) -> RevenueSummary:
    """Billed totals grouped by payment status."""
    return await AnalyticsService(db).revenue_summary()


@router.get("/dashboard", response_model=DashboardResponse, summary="Full dashboard")
async def dashboard(db: DatabaseSession, current_user: Viewer) -> DashboardResponse:
    """
    Every dashboard widget in one response.

    Returns:
        Totals, breakdowns and recent activity
    """
    return await AnalyticsService(db).dashboard()
