"""Process-wide registry of live WebSocket connections.

The registry maps a user id to that user's current socket. It is advisory:
losing it (e.g. on restart) only means real-time delivery is skipped until the
client reconnects. Domain code never waits on a connection being present.
"""

from typing import Any

import structlog
from fastapi import WebSocket

logger = structlog.get_logger(__name__)


class ConnectionRegistry:
    """Map of user id to the user's most recent WebSocket."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._connections: dict[int, WebSocket] = {}

    def connect(self, user_id: int, websocket: WebSocket) -> None:
        """Register ``websocket`` as the delivery target for ``user_id``."""
        self._connections[user_id] = websocket
        logger.info("realtime_connected", user_id=user_id, connections=len(self._connections))

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        """Forget ``user_id`` unless it has already reconnected on another socket."""
        if self._connections.get(user_id) is websocket:
            del self._connections[user_id]
            logger.info(
                "realtime_disconnected", user_id=user_id, connections=len(self._connections)
            )

    def is_connected(self, user_id: int) -> bool:
        """Check whether a socket is registered for ``user_id``."""
        return user_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    async def send_to_user(self, user_id: int, event: str, payload: Any) -> bool:
        """
        Deliver one event to a user if they are connected.

        Args:
            user_id: Target user
            event: Event name, e.g. ``new_notification``
            payload: JSON serializable body

        Returns:
            True if the frame was sent, False if skipped or failed
        """
        websocket = self._connections.get(user_id)
        if websocket is None:
            return False

        try:
            await websocket.send_json({"event": event, "data": payload})
            return True
        except Exception as e:
            logger.warning(
                "realtime_delivery_failed", user_id=user_id, event_name=event, error=str(e)
            )
            self.disconnect(user_id, websocket)
            return False

    async def broadcast(self, event: str, payload: Any) -> int:
        """Deliver one event to every connected user; returns the number reached."""
        delivered = 0
        for user_id in list(self._connections):
            if await self.send_to_user(user_id, event, payload):
                delivered += 1
        return delivered


# Global registry instance
connection_registry = ConnectionRegistry()


def get_connection_registry() -> ConnectionRegistry:
    """Dependency returning the process-wide registry."""
    return connection_registry
