"""Database models."""

from mri_records.models.base import metadata
from mri_records.models.calendar_events import calendar_events
from mri_records.models.chat_messages import chat_messages
from mri_records.models.notifications import notifications
from mri_records.models.patients import examinations, patients
from mri_records.models.queries import user_queries
from mri_records.models.result_files import result_files
from mri_records.models.users import users

__all__ = [
    "calendar_events",
    "chat_messages",
    "examinations",
    "metadata",
    "notifications",
    "patients",
    "result_files",
    "user_queries",
    "users",
]
