"""Calendar event schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator


class EventBase(BaseModel):
    """Fields shared by event requests."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    start_time: datetime
    end_time: datetime | None = None
    all_day: bool = False
    patient_id: int | None = None

    @model_validator(mode="after")
    def check_time_order(self) -> Any:
        """Reject events that end before they start."""
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class EventCreate(EventBase):
    """Schema for creating an event."""


class EventUpdate(EventBase):
    """Schema for replacing an event."""


class EventResponse(BaseModel):
    """Calendar event response."""

    id: int
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime | None = None
    all_day: bool
    user_id: int
    patient_id: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
