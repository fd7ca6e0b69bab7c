"""Staff users table."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Table,
    Text,
    false,
    func,
)

from mri_records.models.base import metadata

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(100), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("full_name", String(200), nullable=False),
    Column("phone_number", String(30), nullable=True),
    Column("role", String(30), nullable=False, server_default="medical_staff"),
    # Unverified medical staff cannot sign in; admins toggle this to suspend
    Column("is_verified", Boolean, nullable=False, server_default=false()),
    Column("can_download", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("last_login_at", DateTime(timezone=True), nullable=True),
    CheckConstraint(
        "role IN ('admin', 'medical_staff', 'doctor', 'financial_admin')",
        name="role",
    ),
)
