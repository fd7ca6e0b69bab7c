"""In-app notifications with best-effort real-time push."""

from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.core.exceptions import ForbiddenException, NotFoundException
from mri_records.core.permissions import Role
from mri_records.core.realtime import ConnectionRegistry, connection_registry
from mri_records.models.notifications import notifications
from mri_records.models.users import users
from mri_records.schemas.notifications import NotificationResponse, ReadStatus

logger = structlog.get_logger(__name__)

PUSH_EVENT = "new_notification"


class NotificationService:
    """Persists notifications and pushes them to connected users."""

    def __init__(self, db: AsyncSession, registry: ConnectionRegistry | None = None):
        """Initialize with a database session and the connection registry."""
        self.db = db
        self.registry = registry if registry is not None else connection_registry

    async def _push(self, notification: NotificationResponse) -> None:
        payload = notification.model_dump(mode="json")
        await self.registry.send_to_user(notification.user_id, PUSH_EVENT, payload)

    async def notify_user(
        self,
        user_id: int,
        notification_type: str,
        message: str,
        related_entity_id: int | None = None,
        related_entity_type: str | None = None,
    ) -> NotificationResponse:
        """
        Store a notification for one user and push it if they are connected.

        Args:
            user_id: Recipient
            notification_type: Kind, e.g. ``query_update``
            message: Human readable text
            related_entity_id: Id of the record the notification is about
            related_entity_type: Type of that record, e.g. ``result_file``

        Returns:
            Stored notification
        """
        stmt = (
            insert(notifications)
            .values(
                user_id=user_id,
                type=notification_type,
                message=message,
                related_entity_id=related_entity_id,
                related_entity_type=related_entity_type,
                is_read=False,
                created_at=datetime.now(UTC),
            )
            .returning(notifications)
        )
        result = await self.db.execute(stmt)
        notification = NotificationResponse.model_validate(dict(result.mappings().one()))
        await self.db.commit()

        await self._push(notification)
        return notification

    async def notify_admins(
        self,
        notification_type: str,
        message: str,
        related_entity_id: int | None = None,
        related_entity_type: str | None = None,
    ) -> list[NotificationResponse]:
        """Store and push one notification per admin account."""
        result = await self.db.execute(select(users.c.id).where(users.c.role == Role.ADMIN.value))
        admin_ids = list(result.scalars().all())
        if not admin_ids:
            return []

        now = datetime.now(UTC)
        rows = [
            {
                "user_id": admin_id,
                "type": notification_type,
                "message": message,
                "related_entity_id": related_entity_id,
                "related_entity_type": related_entity_type,
                "is_read": False,
                "created_at": now,
            }
            for admin_id in admin_ids
        ]
        result = await self.db.execute(insert(notifications).returning(notifications), rows)
        created = [NotificationResponse.model_validate(dict(row)) for row in result.mappings()]
        await self.db.commit()

        for notification in created:
            await self._push(notification)

        logger.info(
            "admins_notified",
            notification_type=notification_type,
            recipients=len(admin_ids),
            related_entity_id=related_entity_id,
        )
        return created

    async def create_for_user(
        self,
        user_id: int,
        notification_type: str,
        message: str,
        related_entity_id: int | None = None,
        related_entity_type: str | None = None,
    ) -> NotificationResponse:
        """
        Admin-authored notification for an existing user.

        Raises:
            NotFoundException: If the recipient does not exist
        """
        result = await self.db.execute(select(users.c.id).where(users.c.id == user_id))
        if result.first() is None:
            raise NotFoundException("Recipient user not found")

        return await self.notify_user(
            user_id, notification_type, message, related_entity_id, related_entity_type
        )

    async def list_for_user(
        self,
        user_id: int,
        read_status: ReadStatus | None = None,
    ) -> list[NotificationResponse]:
        """The user's notifications, newest first."""
        conditions = [notifications.c.user_id == user_id]
        if read_status is ReadStatus.READ:
            conditions.append(notifications.c.is_read.is_(True))
        elif read_status is ReadStatus.UNREAD:
            conditions.append(notifications.c.is_read.is_(False))

        stmt = (
            select(notifications)
            .where(*conditions)
            .order_by(notifications.c.created_at.desc(), notifications.c.id.desc())
        )
        result = await self.db.execute(stmt)
        return [NotificationResponse.model_validate(dict(row)) for row in result.mappings()]

    async def mark_read(self, notification_id: int, user_id: int) -> NotificationResponse:
        """
        Mark one of the caller's notifications as read.

        Raises:
            NotFoundException: If the notification does not exist
            ForbiddenException: If it belongs to someone else
        """
        result = await self.db.execute(
            select(notifications.c.user_id).where(notifications.c.id == notification_id)
        )
        owner_id = result.scalar_one_or_none()
        if owner_id is None:
            raise NotFoundException("Notification not found")
        if owner_id != user_id:
            raise ForbiddenException("Cannot modify another user's notification")

        stmt = (
            update(notifications)
            .where(notifications.c.id == notification_id)
            .values(is_read=True)
            .returning(notifications)
        )
        updated = await self.db.execute(stmt)
        notification = NotificationResponse.model_validate(dict(updated.mappings().one()))
        await self.db.commit()
        return notification

    async def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification of the user as read; returns the count."""
        result = await self.db.execute(
            update(notifications)
            .where(notifications.c.user_id == user_id, notifications.c.is_read.is_(False))
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount or 0  # type: ignore[attr-defined]


async def notify_admins_quietly(
    db: AsyncSession, notification_type: str, message: str, **related: Any
) -> None:
    """
    Notify admins without letting a failure reach the caller.

    The surrounding domain write has already been committed; a failure here
    rolls back only the notification rows and is logged.
    """
    try:
        await NotificationService(db).notify_admins(notification_type, message, **related)
    except Exception as e:
        await db.rollback()
        logger.warning(
            "notification_dispatch_failed",
            notification_type=notification_type,
            error=str(e),
        )


async def notify_user_quietly(
    db: AsyncSession, user_id: int, notification_type: str, message: str, **related: Any
) -> None:
    """Single-recipient counterpart of ``notify_admins_quietly``."""
    try:
        await NotificationService(db).notify_user(user_id, notification_type, message, **related)
    except Exception as e:
        await db.rollback()
        logger.warning(
            "notification_dispatch_failed",
            notification_type=notification_type,
            user_id=user_id,
            error=str(e),
        )
