"""Result file schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ResultStatus(str, Enum):
    """Result file states. ``issued`` is terminal."""

    PENDING_REVIEW = "pending_review"
    FINAL = "final"
    ISSUED = "issued"


class ResultStatusUpdate(BaseModel):
    """Schema for a direct status change."""

    result_status: str


class ResultIssueRequest(BaseModel):
    """Schema for handing a result over to a recipient."""

    recipient_name: str = Field("", max_length=200)
    recipient_phone: str | None = Field(None, max_length=30)
    recipient_relationship: str | None = Field(None, max_length=100)
    recipient_email: str | None = Field(None, max_length=255)


class ResultFileResponse(BaseModel):
    """Result file metadata response."""

    id: int
    patient_id: int
    uploaded_by_user_id: int
    uploaded_by_name: str | None = None
    file_name: str
    file_type: str
    file_size_kb: int
    result_status: ResultStatus
    remarks: str | None = None
    issued_to_recipient_name: str | None = None
    issued_to_recipient_phone: str | None = None
    issued_to_recipient_relationship: str | None = None
    issued_to_recipient_email: str | None = None
    issued_by_user_id: int | None = None
    issued_by_name: str | None = None
    issued_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ResultDownloadLink(BaseModel):
    """Time limited download link."""

    file_id: int
    file_name: str
    url: str
    expires_in: int


class ResultDeleteResponse(BaseModel):
    """Outcome of a result deletion."""

    id: int
    blob_deleted: bool
    message: str = "Result file deleted"
