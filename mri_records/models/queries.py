"""Help-desk queries raised by staff."""

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

user_queries = Table(
    "user_queries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "sender_id",
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("subject", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("status", String(20), nullable=False, server_default="open"),
    Column("admin_response", Text, nullable=True),
    # Set together when the query is resolved or closed, cleared together on reopen
    Column(
        "resolved_by_admin_id",
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("resolved_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "status IN ('open', 'in_progress', 'resolved', 'closed')",
        name="status",
    ),
)
