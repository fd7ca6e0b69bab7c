"""Staff user schemas."""

from datetime import datetime

from pydantic import BaseModel


class UserResponse(BaseModel):
    """Public view of a staff user."""

    id: int
    username: str
    email: str
    full_name: str
    phone_number: str | None = None
    role: str
    is_verified: bool
    can_download: bool
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class StaffOption(BaseModel):
    """Minimal staff entry used to populate filters."""

    id: int
    full_name: str
    username: str


class StaffSuspendRequest(BaseModel):
    """Verify or suspend a medical staff account."""

    suspend: bool


class DownloadPermissionRequest(BaseModel):
    """Grant or revoke the result download capability."""

    can_download: bool


class StaffActivity(BaseModel):
    """Per-staff activity counters."""

    id: int
    full_name: str
    username: str
    patients_logged: int
    queries_submitted: int
    last_patient_logged_at: datetime | None = None
    last_query_at: datetime | None = None
