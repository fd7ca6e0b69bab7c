"""Staff directory endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from mri_records.core.permissions import Operation
from mri_records.dependencies import DatabaseSession, require_permission
from mri_records.schemas.users import StaffOption
from mri_records.services.staff_service import StaffService

router = APIRouter()


@router.get(
    "/staff",
    response_model=list[StaffOption],
    summary="List staff for filters",
)
async def list_staff(
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.VIEW_STAFF_LIST))],
) -> list[StaffOption]:
    """Staff who can record patients, sorted by name."""
    return await StaffService(db).list_staff_options()
