"""Chat history endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from mri_records.core.permissions import Operation
from mri_records.dependencies import DatabaseSession, require_permission
from mri_records.schemas.chat import ChatMessageResponse
from mri_records.services.chat_service import ChatService

router = APIRouter()


@router.get(
    "/history",
    response_model=list[ChatMessageResponse],
    summary="Recent chat messages",
)
async def chat_history(
    db: DatabaseSession,
    current_user: Annotated[dict, Depends(require_permission(Operation.CHAT))],
) -> list[ChatMessageResponse]:
    """The last 100 messages, oldest first."""
    return await ChatService(db).history()
