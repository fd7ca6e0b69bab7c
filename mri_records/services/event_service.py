"""Calendar events."""

from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from mri_records.core.permissions import Role
from mri_records.models.calendar_events import calendar_events
from mri_records.models.patients import patients
from mri_records.schemas.events import EventCreate, EventResponse, EventUpdate

logger = structlog.get_logger(__name__)


class EventService:
    """Service for calendar events owned by staff users."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _check_patient(self, patient_id: int | None) -> None:
        if patient_id is None:
            return
        result = await self.db.execute(select(patients.c.id).where(patients.c.id == patient_id))
        if result.first() is None:
            raise ValidationException("Linked patient does not exist")

    async def _get_owned(self, event_id: int, caller: dict[str, Any]) -> dict[str, Any]:
        result = await self.db.execute(
            select(calendar_events).where(calendar_events.c.id == event_id)
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Event not found")
        if row["user_id"] != caller["id"] and caller["role"] != Role.ADMIN.value:
            raise ForbiddenException("Only the event owner or an admin can change this event")
        return dict(row)

    async def create_event(self, data: EventCreate, user_id: int) -> EventResponse:
        """Create an event owned by ``user_id``."""
        await self._check_patient(data.patient_id)

        now = datetime.now(UTC)
        result = await self.db.execute(
            insert(calendar_events)
            .values(**data.model_dump(), user_id=user_id, created_at=now, updated_at=now)
            .returning(calendar_events)
        )
        event = EventResponse.model_validate(dict(result.mappings().one()))
        await self.db.commit()

        logger.info("event_created", event_id=event.id, user_id=user_id)
        return event

    async def list_events(
        self,
        caller: dict[str, Any],
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[EventResponse]:
        """
        Events visible to the caller ordered by start time.

        Admins see every event, others only their own. ``start``/``end``
        bound ``start_time`` inclusively.
        """
        stmt = select(calendar_events)
        if caller["role"] != Role.ADMIN.value:
            stmt = stmt.where(calendar_events.c.user_id == caller["id"])
        if start is not None:
            stmt = stmt.where(calendar_events.c.start_time >= start)
        if end is not None:
            stmt = stmt.where(calendar_events.c.start_time <= end)

        result = await self.db.execute(
            stmt.order_by(calendar_events.c.start_time.asc(), calendar_events.c.id.asc())
        )
        return [EventResponse.model_validate(dict(row)) for row in result.mappings()]

    async def update_event(
        self,
        event_id: int,
        data: EventUpdate,
        caller: dict[str, Any],
    ) -> EventResponse:
        """
        Replace an event's fields.

        Raises:
            NotFoundException: If the event does not exist
            ForbiddenException: If the caller is neither owner nor admin
        """
        await self._get_owned(event_id, caller)
        await self._check_patient(data.patient_id)

        result = await self.db.execute(
            update(calendar_events)
            .where(calendar_events.c.id == event_id)
            .values(**data.model_dump(), updated_at=datetime.now(UTC))
            .returning(calendar_events)
        )
        event = EventResponse.model_validate(dict(result.mappings().one()))
        await self.db.commit()

        logger.info("event_updated", event_id=event_id, user_id=caller["id"])
        return event

    async def delete_event(self, event_id: int, caller: dict[str, Any]) -> None:
        """
        Delete an event.

        Raises:
            NotFoundException: If the event does not exist
            ForbiddenException: If the caller is neither owner nor admin
        """
        await self._get_owned(event_id, caller)
        await self.db.execute(delete(calendar_events).where(calendar_events.c.id == event_id))
        await self.db.commit()
        logger.info("event_deleted", event_id=event_id, user_id=caller["id"])
