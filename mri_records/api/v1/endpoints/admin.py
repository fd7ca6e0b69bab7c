"""Admin-only endpoints for staff and help-desk management."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from mri_records.core.permissions import Operation
from mri_records.dependencies import DatabaseSession, require_permission
from mri_records.schemas.queries import QueryAdminUpdate, QueryResponse
from mri_records.schemas.users import (
    DownloadPermissionRequest,
    StaffActivity,
    StaffSuspendRequest,
    UserResponse,
)
from mri_records.services.query_service import QueryService
from mri_records.services.staff_service import StaffService

router = APIRouter(prefix="/admin", tags=["Admin"])

StaffAdmin = Annotated[dict, Depends(require_permission(Operation.MANAGE_STAFF))]
QueryAdmin = Annotated[dict, Depends(require_permission(Operation.MANAGE_QUERIES))]


@router.get(
    "/medical-staff",
    response_model=list[UserResponse],
    summary="List medical staff (admin only)",
)
async def list_medical_staff(db: DatabaseSession, admin_user: StaffAdmin) -> list[UserResponse]:
    """All medical staff accounts, newest first."""
    return await StaffService(db).list_medical_staff()


@router.patch(
    "/medical-staff/{user_id}/verify",
    response_model=UserResponse,
    summary="Verify or suspend a registration",
)
async def verify_medical_staff(
    user_id: int,
    data: StaffSuspendRequest,
    db: DatabaseSession,
    admin_user: StaffAdmin,
) -> UserResponse:
    """
    Approve a pending registration, or suspend a verified one.

    Args:
        user_id: Target medical staff account
        data: ``suspend=false`` verifies, ``suspend=true`` suspends
        db: Database session
        admin_user: Acting admin

    Returns:
        Updated user
    """
    return await StaffService(db).verify_medical_staff(user_id, data.suspend)


@router.patch(
    "/medical-staff/{user_id}/status",
    response_model=UserResponse,
    summary="Suspend or reinstate a staff account",
)
async def set_staff_status(
    user_id: int,
    data: StaffSuspendRequest,
    db: DatabaseSession,
    admin_user: StaffAdmin,
) -> UserResponse:
    """Suspend or reinstate an account; admins and oneself are off limits."""
    return await StaffService(db).set_suspension(user_id, data.suspend, admin_user["id"])


@router.delete(
    "/medical-staff/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a staff account",
)
async def delete_staff(user_id: int, db: DatabaseSession, admin_user: StaffAdmin) -> None:
    """Delete an account that has not recorded any data."""
    await StaffService(db).delete_staff(user_id, admin_user["id"])


@router.patch(
    "/users/{user_id}/download-permission",
    response_model=UserResponse,
    summary="Grant or revoke result downloads",
)
async def set_download_permission(
    user_id: int,
    data: DownloadPermissionRequest,
    db: DatabaseSession,
    admin_user: StaffAdmin,
) -> UserResponse:
    return await StaffService(db).set_download_permission(user_id, data.can_download)


@router.get(
    "/analytics/staff-activity",
    response_model=list[StaffActivity],
    summary="Per-staff activity",
)
async def staff_activity(db: DatabaseSession, admin_user: StaffAdmin) -> list[StaffActivity]:
    """Patients logged and queries submitted by each medical staff member."""
    return await StaffService(db).staff_activity()


@router.get(
    "/queries",
    response_model=list[QueryResponse],
    summary="List all staff queries",
)
async def list_queries(db: DatabaseSession, admin_user: QueryAdmin) -> list[QueryResponse]:
    return await QueryService(db).list_queries()


@router.patch(
    "/queries/{query_id}",
    response_model=QueryResponse,
    summary="Respond to or change a staff query",
)
async def update_query(
    query_id: int,
    data: QueryAdminUpdate,
    db: DatabaseSession,
    admin_user: QueryAdmin,
) -> QueryResponse:
    """
    Change a query's status and/or response; the sender is notified.

    Raises:
        ValidationException: If neither field is supplied
        NotFoundException: If the query does not exist
    """
    return await QueryService(db).update_query(query_id, data, admin_user["id"])
