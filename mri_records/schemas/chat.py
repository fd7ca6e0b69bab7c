"""Chat schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ChatMessageIn(BaseModel):
    """Inbound chat frame received over the WebSocket."""

    type: str = "chat_message"
    text: str = Field(..., min_length=1, max_length=4000)


class ChatMessageResponse(BaseModel):
    """Persisted chat message."""

    id: int
    sender_id: int
    sender_name: str | None = None
    sender_username: str | None = None
    message: str
    timestamp: datetime

    model_config = {"from_attributes": True}
