"""Staff query (help-desk) endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from mri_records.core.permissions import Operation
from mri_records.dependencies import DatabaseSession, require_permission
from mri_records.schemas.queries import QueryCreate, QueryResponse
from mri_records.services.query_service import QueryService

router = APIRouter()


@router.post(
    "/",
    response_model=QueryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a query",
)
async def submit_query(
    data: QueryCreate,
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.SUBMIT_QUERY))],
) -> QueryResponse:
    """
    Open a query for the admins.

    Args:
        data: Subject and message
        db: Database session
        current_user: Submitting medical staff member

    Returns:
        Created query with status ``open``
    """
    return await QueryService(db).submit_query(data, current_user["id"])


@router.get(
    "/my",
    response_model=list[QueryResponse],
    summary="My queries",
)
async def my_queries(
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.VIEW_OWN_QUERIES))],
) -> list[QueryResponse]:
    """Queries submitted by the caller, newest first."""
    return await QueryService(db).list_queries(sender_id=current_user["id"])
