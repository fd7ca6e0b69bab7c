"""Uploaded MRI result files."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    func,
)

from mri_records.models.base import metadata

result_files = Table(
    "result_files",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "patient_id",
        Integer,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column(
        "uploaded_by_user_id",
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("file_name", String(255), nullable=False),
    Column("storage_key", String(512), nullable=False, unique=True),
    Column("file_type", String(120), nullable=False),
    Column("file_size_kb", Integer, nullable=False),
    Column("result_status", String(20), nullable=False, server_default="pending_review"),
    Column("remarks", Text, nullable=True),
    # Issuance; fixed once result_status is 'issued'
    Column("issued_to_recipient_name", String(200), nullable=True),
    Column("issued_to_recipient_phone", String(30), nullable=True),
    Column("issued_to_recipient_relationship", String(100), nullable=True),
    Column("issued_to_recipient_email", String(255), nullable=True),
    Column(
        "issued_by_user_id",
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
    ),
    Column("issued_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "result_status IN ('pending_review', 'final', 'issued')",
        name="result_status",
    ),
)
