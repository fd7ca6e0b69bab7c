"""Patient records and their examination line items."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    func,
)

from mri_records.models.base import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Human-facing identifiers, each backed by a unique index
    Column("serial_number", String(40), nullable=False, unique=True),
    Column("mri_code", String(20), nullable=False, unique=True),
    Column("receipt_number", String(40), nullable=False, unique=True),
    # Identity
    Column("patient_name", String(200), nullable=False),
    Column("gender", String(30), nullable=True),
    Column("contact_email", String(255), nullable=True),
    Column("contact_phone_number", String(30), nullable=True),
    Column("age", Integer, nullable=True),
    Column("weight_kg", Numeric(6, 2), nullable=True),
    # Referral and clinical staff
    Column("referral_hospital", String(200), nullable=True),
    Column("referring_doctor", String(200), nullable=True),
    Column("radiographer_name", String(200), nullable=True),
    Column("radiologist_name", String(200), nullable=True),
    Column("remarks", Text, nullable=True),
    Column("mri_date_time", DateTime(timezone=True), nullable=False),
    # Billing; total_amount always equals the sum of the examinations
    Column("total_amount", Numeric(14, 2), nullable=False, server_default="0"),
    Column("payment_type", String(20), nullable=True),
    Column("payment_status", String(20), nullable=False, server_default="Not Paid"),
    Column(
        "approved_by_user_id",
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
    ),
    Column("approved_at", DateTime(timezone=True), nullable=True),
    # Ownership
    Column(
        "recorded_by_staff_id",
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "gender IS NULL OR gender IN ('Male', 'Female', 'Other', 'Prefer not to say')",
        name="gender",
    ),
    CheckConstraint(
        "payment_type IS NULL OR payment_type IN ('Cash', 'Transfer', 'Card')",
        name="payment_type",
    ),
    CheckConstraint(
        "payment_status IN ('Not Paid', 'Pending', 'Approved')",
        name="payment_status",
    ),
    CheckConstraint("age IS NULL OR age > 0", name="age_positive"),
    CheckConstraint("weight_kg IS NULL OR weight_kg > 0", name="weight_positive"),
    Index("ix_patients_mri_date_time", "mri_date_time"),
    Index("ix_patients_recorded_by_staff_id", "recorded_by_staff_id"),
)

examinations = Table(
    "examinations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "patient_id",
        Integer,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("exam_name", String(200), nullable=False),
    Column("exam_amount", Numeric(14, 2), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("exam_amount > 0", name="exam_amount_positive"),
    # Removed line items never hand their id to a new row
    sqlite_autoincrement=True,
)
