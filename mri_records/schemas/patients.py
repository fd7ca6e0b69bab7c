"""Patient and examination schemas."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator


class Gender(str, Enum):
    """Patient gender."""

    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"
    PREFER_NOT_TO_SAY = "Prefer not to say"


class PaymentType(str, Enum):
    """How the patient paid."""

    CASH = "Cash"
    TRANSFER = "Transfer"
    CARD = "Card"


class PaymentStatus(str, Enum):
    """Payment lifecycle states. Any state may follow any other."""

    NOT_PAID = "Not Paid"
    PENDING = "Pending"
    APPROVED = "Approved"


class SearchField(str, Enum):
    """Column(s) matched by the list ``search`` filter."""

    PATIENT_NAME = "patient_name"
    MRI_CODE = "mri_code"
    ALL = "all"


# Raw amounts are accepted as typed by staff ("50,000", 10000.5) and normalized server side
RawAmount = str | int | float | Decimal | None


class ExaminationInput(BaseModel):
    """One examination line item as submitted by the client."""

    id: int | None = None
    exam_name: str | None = Field(None, max_length=200)
    exam_amount: RawAmount = None


class PatientFields(BaseModel):
    """Optional patient attributes shared by create and update."""

    gender: Gender | None = None
    contact_email: EmailStr | None = None
    contact_phone_number: str | None = Field(None, max_length=30)
    age: int | None = Field(None, gt=0, le=150)
    weight_kg: Decimal | None = Field(None, gt=0, max_digits=6, decimal_places=2)
    referral_hospital: str | None = Field(None, max_length=200)
    referring_doctor: str | None = Field(None, max_length=200)
    radiographer_name: str | None = Field(None, max_length=200)
    radiologist_name: str | None = Field(None, max_length=200)
    remarks: str | None = Field(None, max_length=5000)
    mri_date_time: datetime | None = None
    payment_type: PaymentType | None = None

    @field_validator(
        "gender",
        "contact_email",
        "contact_phone_number",
        "referral_hospital",
        "referring_doctor",
        "radiographer_name",
        "radiologist_name",
        "payment_type",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Treat empty form fields as absent values."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PatientCreate(PatientFields):
    """Schema for registering a patient with their examinations."""

    patient_name: str = Field(..., max_length=200)
    examinations: list[ExaminationInput] = Field(default_factory=list)


class PatientUpdate(PatientFields):
    """
    Schema for a partial patient update.

    Only fields present in the request are applied; fields sent as null are
    cleared. ``examinations``, when present, is the complete new set.
    """

    patient_name: str | None = Field(None, max_length=200)
    examinations: list[ExaminationInput] | None = None


class PaymentStatusUpdate(BaseModel):
    """Schema for a payment status transition."""

    payment_status: str = Field(..., description="Not Paid, Pending or Approved")


class ExaminationResponse(BaseModel):
    """Examination line item response."""

    id: int
    patient_id: int
    exam_name: str
    exam_amount: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatientResponse(BaseModel):
    """Patient record response."""

    id: int
    serial_number: str
    mri_code: str
    receipt_number: str
    patient_name: str
    gender: str | None = None
    contact_email: str | None = None
    contact_phone_number: str | None = None
    age: int | None = None
    weight_kg: Decimal | None = None
    referral_hospital: str | None = None
    referring_doctor: str | None = None
    radiographer_name: str | None = None
    radiologist_name: str | None = None
    remarks: str | None = None
    mri_date_time: datetime
    total_amount: Decimal
    payment_type: str | None = None
    payment_status: str
    approved_by_user_id: int | None = None
    approved_at: datetime | None = None
    recorded_by_staff_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatientDetailResponse(PatientResponse):
    """Patient with examinations and staff names resolved."""

    recorded_by_staff_name: str | None = None
    approved_by_name: str | None = None
    examinations: list[ExaminationResponse] | None = None


class PatientFilters(BaseModel):
    """Filters for listing patients."""

    search: str | None = None
    search_field: SearchField = SearchField.ALL
    gender: str | None = None
    recorded_by: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    include_examinations: bool = False
    page: int = Field(1, ge=1)
    page_size: int = Field(50, ge=1, le=500)


class PatientListResponse(BaseModel):
    """Paginated patient list."""

    total: int
    page: int
    page_size: int
    items: list[PatientDetailResponse]


class PatientDeleteResponse(BaseModel):
    """Outcome of a patient deletion."""

    id: int
    deleted_examinations: int = 0
    message: str = "Patient deleted"
