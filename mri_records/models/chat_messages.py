"""Staff chat messages."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table, Text, func

from mri_records.models.base import metadata

chat_messages = Table(
    "chat_messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "sender_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("message", Text, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False, server_default=func.now(), index=True),
)
