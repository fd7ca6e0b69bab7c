"""Staff help-desk queries."""

from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.core.exceptions import NotFoundException, ValidationException
from mri_records.models.queries import user_queries
from mri_records.models.users import users
from mri_records.schemas.notifications import NotificationType
from mri_records.schemas.queries import (
    RESOLVED_STATES,
    QueryAdminUpdate,
    QueryCreate,
    QueryResponse,
    QueryStatus,
)
from mri_records.services.notification_service import (
    notify_admins_quietly,
    notify_user_quietly,
)

logger = structlog.get_logger(__name__)

sender = users.alias("sender")
resolver = users.alias("resolver")


class QueryService:
    """Service for staff queries and their resolution."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    @staticmethod
    def _detail_select() -> Any:
        return select(
            user_queries,
            sender.c.full_name.label("sender_name"),
            resolver.c.full_name.label("resolved_by_name"),
        ).select_from(
            user_queries.outerjoin(sender, user_queries.c.sender_id == sender.c.id).outerjoin(
                resolver, user_queries.c.resolved_by_admin_id == resolver.c.id
            )
        )

    async def get_query(self, query_id: int) -> QueryResponse:
        """
        Get a query with sender and resolver names.

        Raises:
            NotFoundException: If the query does not exist
        """
        result = await self.db.execute(self._detail_select().where(user_queries.c.id == query_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Query not found")
        return QueryResponse.model_validate(dict(row))

    async def submit_query(self, data: QueryCreate, sender_id: int) -> QueryResponse:
        """Open a new query and tell the admins about it."""
        now = datetime.now(UTC)
        result = await self.db.execute(
            insert(user_queries)
            .values(
                sender_id=sender_id,
                subject=data.subject.strip(),
                message=data.message.strip(),
                status=QueryStatus.OPEN.value,
                created_at=now,
                updated_at=now,
            )
            .returning(user_queries.c.id)
        )
        query_id = result.scalar_one()
        await self.db.commit()

        logger.info("query_submitted", query_id=query_id, sender_id=sender_id)
        await notify_admins_quietly(
            self.db,
            NotificationType.NEW_QUERY.value,
            f"New query: {data.subject.strip()}",
            related_entity_id=query_id,
            related_entity_type="query",
        )
        return await self.get_query(query_id)

    async def list_queries(self, sender_id: int | None = None) -> list[QueryResponse]:
        """Queries newest first, optionally only those of one sender."""
        stmt = self._detail_select().order_by(
            user_queries.c.created_at.desc(), user_queries.c.id.desc()
        )
        if sender_id is not None:
            stmt = stmt.where(user_queries.c.sender_id == sender_id)
        result = await self.db.execute(stmt)
        return [QueryResponse.model_validate(dict(row)) for row in result.mappings()]

    async def update_query(
        self,
        query_id: int,
        data: QueryAdminUpdate,
        admin_id: int,
    ) -> QueryResponse:
        """
        Change a query's status and/or admin response.

        Entering ``resolved`` or ``closed`` stamps the resolving admin and
        time together; returning to ``open`` or ``in_progress`` clears both
        together.

        Raises:
            ValidationException: If neither status nor response is supplied
            NotFoundException: If the query does not exist
        """
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationException("Nothing to update")

        current = await self.get_query(query_id)
        now = datetime.now(UTC)
        values: dict[str, Any] = {"updated_at": now}

        if "admin_response" in changes:
            values["admin_response"] = changes["admin_response"]

        new_status = changes.get("status")
        if new_status is not None:
            values["status"] = new_status.value
            if new_status in RESOLVED_STATES and current.status not in RESOLVED_STATES:
                values["resolved_by_admin_id"] = admin_id
                values["resolved_at"] = now
            elif new_status not in RESOLVED_STATES:
                values["resolved_by_admin_id"] = None
                values["resolved_at"] = None

        await self.db.execute(
            update(user_queries).where(user_queries.c.id == query_id).values(**values)
        )
        await self.db.commit()

        logger.info(
            "query_updated",
            query_id=query_id,
            status=values.get("status", current.status.value),
            updated_by=admin_id,
        )

        status_text = values.get("status", current.status.value).replace("_", " ")
        await notify_user_quietly(
            self.db,
            current.sender_id,
            NotificationType.QUERY_UPDATE.value,
            f"Your query '{current.subject}' is now {status_text}",
            related_entity_id=query_id,
            related_entity_type="query",
        )
        return await self.get_query(query_id)
