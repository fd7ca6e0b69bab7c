"""Notification schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Notification kinds raised by the system."""

    NEW_RESULT_UPLOAD = "new_result_upload"
    RESULT_ISSUED = "result_issued"
    NEW_QUERY = "new_query"
    QUERY_UPDATE = "query_update"
    ADMIN_MESSAGE = "admin_message"


class ReadStatus(str, Enum):
    """Filter for the notification inbox."""

    READ = "read"
    UNREAD = "unread"


class NotificationCreate(BaseModel):
    """Admin-authored notification for one user."""

    user_id: int
    message: str = Field(..., min_length=1, max_length=2000)
    type: str = Field(NotificationType.ADMIN_MESSAGE.value, max_length=50)
    related_entity_id: int | None = None
    related_entity_type: str | None = Field(None, max_length=50)


class NotificationResponse(BaseModel):
    """Notification response."""

    id: int
    user_id: int
    type: str
    message: str
    related_entity_id: int | None = None
    related_entity_type: str | None = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MarkAllReadResponse(BaseModel):
    """Outcome of marking the inbox read."""

    updated: int
