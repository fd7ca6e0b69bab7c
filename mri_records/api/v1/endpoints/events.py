"""Calendar event endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from mri_records.core.permissions import Operation
from mri_records.dependencies import DatabaseSession, require_permission
from mri_records.schemas.events import EventCreate, EventResponse, EventUpdate
from mri_records.services.event_service import EventService

router = APIRouter()

Editor = Annotated[dict, Depends(require_permission(Operation.MANAGE_EVENTS))]


@router.post(
    "/",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
async def create_event(data: EventCreate, db: DatabaseSession, current_user: Editor) -> EventResponse:
    """Create an event owned by the caller, optionally linked to a patient."""
    return await EventService(db).create_event(data, current_user["id"])


@router.get(
    "/my",
    response_model=list[EventResponse],
    summary="My events",
)
async def my_events(
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.VIEW_EVENTS))],
    start: datetime | None = Query(None, description="Earliest start time (inclusive)"),
    end: datetime | None = Query(None, description="Latest start time (inclusive)"),
) -> list[EventResponse]:
    """
    Events visible to the caller.

    Admins see every event; everyone else sees their own.
    """
    return await EventService(db).list_events(current_user, start, end)


@router.put(
    "/{event_id}",
    response_model=EventResponse,
    summary="Update event",
)
async def update_event(
    event_id: int,
    data: EventUpdate,
    db: DatabaseSession,
    current_user: Editor,
) -> EventResponse:
    return await EventService(db).update_event(event_id, data, current_user)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete event",
)
async def delete_event(event_id: int, db: DatabaseSession, current_user: Editor) -> None:
    """Delete an event; only its creator or an admin may."""
    await EventService(db).delete_event(event_id, current_user)
