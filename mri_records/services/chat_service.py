"""Staff chat persistence."""

from datetime import UTC, datetime

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from mri_records.models.chat_messages import chat_messages
from mri_records.models.users import users
from mri_records.schemas.chat import ChatMessageResponse

HISTORY_LIMIT = 100


class ChatService:
    """Stores chat messages and reads recent history."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def post_message(self, sender: dict, text: str) -> ChatMessageResponse:
        """Persist a message from ``sender``."""
        result = await self.db.execute(
            insert(chat_messages)
            .values(sender_id=sender["id"], message=text.strip(), timestamp=datetime.now(UTC))
            .returning(chat_messages)
        )
        row = dict(result.mappings().one())
        await self.db.commit()
        return ChatMessageResponse.model_validate(
            {**row, "sender_name": sender["full_name"], "sender_username": sender["username"]}
        )

    async def history(self, limit: int = HISTORY_LIMIT) -> list[ChatMessageResponse]:
        """The most recent ``limit`` messages, oldest first."""
        latest = (
            select(
                chat_messages,
                users.c.full_name.label("sender_name"),
                users.c.username.label("sender_username"),
            )
            .select_from(chat_messages.outerjoin(users, chat_messages.c.sender_id == users.c.id))
            .order_by(chat_messages.c.timestamp.desc(), chat_messages.c.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(latest)
        rows = [ChatMessageResponse.model_validate(dict(row)) for row in result.mappings()]
        rows.reverse()
        return rows
