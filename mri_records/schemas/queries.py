"""Staff query schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class QueryStatus(str, Enum):
    """Query workflow states."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


RESOLVED_STATES = frozenset({QueryStatus.RESOLVED, QueryStatus.CLOSED})


class QueryCreate(BaseModel):
    """Schema for submitting a query."""

    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=5000)


class QueryAdminUpdate(BaseModel):
    """Schema for an admin status change and/or response."""

    status: QueryStatus | None = None
    admin_response: str | None = Field(None, max_length=5000)


class QueryResponse(BaseModel):
    """Query response."""

    id: int
    sender_id: int
    sender_name: str | None = None
    subject: str
    message: str
    status: QueryStatus
    admin_response: str | None = None
    resolved_by_admin_id: int | None = None
    resolved_by_name: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
