"""Notification endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from mri_records.core.permissions import Operation
from mri_records.dependencies import (
    ConnectionRegistryDep,
    DatabaseSession,
    require_permission,
)
from mri_records.schemas.notifications import (
    MarkAllReadResponse,
    NotificationCreate,
    NotificationResponse,
    ReadStatus,
)
from mri_records.services.notification_service import NotificationService

router = APIRouter()

Reader = Annotated[dict, Depends(require_permission(Operation.VIEW_NOTIFICATIONS))]


@router.post(
    "/",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a notification (admin only)",
)
async def send_notification(
    data: NotificationCreate,
    db: DatabaseSession,
    registry: ConnectionRegistryDep,
    current_user: Annotated[dict, Depends(require_permission(Operation.SEND_NOTIFICATION))],
) -> NotificationResponse:
    """
    Store a notification for a user and push it if they are connected.

    Raises:
        NotFoundException: If the recipient does not exist
    """
    return await NotificationService(db, registry).create_for_user(
        data.user_id,
        data.type,
        data.message,
        data.related_entity_id,
        data.related_entity_type,
    )


@router.get(
    "/my",
    response_model=list[NotificationResponse],
    summary="My notifications",
)
async def my_notifications(
    db: DatabaseSession,
    current_user: Reader,
    read_status: ReadStatus | None = Query(None, description="Filter by read or unread"),
) -> list[NotificationResponse]:
    """The caller's notifications, newest first."""
    return await NotificationService(db).list_for_user(current_user["id"], read_status)


@router.patch(
    "/mark-all-read",
    response_model=MarkAllReadResponse,
    summary="Mark all my notifications as read",
)
async def mark_all_read(db: DatabaseSession, current_user: Reader) -> MarkAllReadResponse:
    updated = await NotificationService(db).mark_all_read(current_user["id"])
    return MarkAllReadResponse(updated=updated)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
async def mark_read(
    notification_id: int,
    db: DatabaseSession,
    current_user: Reader,
) -> NotificationResponse:
    """Mark one of the caller's own notifications as read."""
    return await NotificationService(db).mark_read(notification_id, current_user["id"])
