"""
Best-effort broadcast seam between the services and the realtime gateway.

Services call Broadcaster.publish() after a durable mutation. Any failure
in the transport is logged and swallowed: a broadcast never fails or rolls
back the command that triggered it.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from ..utils.logger import get_logger

logger = get_logger(__name__)


# Server-emitted realtime events
THREAD_CREATED = "threadCreated"
THREAD_UPDATED = "threadUpdated"
THREAD_DELETED = "threadDeleted"
NEW_MESSAGE = "newMessage"
MEMBERSHIP_CHANGED = "membershipChanged"
JOIN_REQUEST = "joinRequest"
REQUEST_HANDLED = "requestHandled"
UNAUTHORIZED = "unauthorized"


def thread_room(thread_id: str) -> str:
    return str(thread_id)


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


class Emitter(Protocol):
    async def emit(self, event: str, data: Any = None, to: Optional[str] = None, **kwargs: Any) -> None:
        ...


class Broadcaster:
    """Publishes events to an emitter (the Socket.IO server) when one is bound"""

    def __init__(self, emitter: Optional[Emitter] = None):
        self._emitter = emitter

    def bind(self, emitter: Emitter) -> None:
        self._emitter = emitter

    @property
    def bound(self) -> bool:
        return self._emitter is not None

    async def publish(self, event: str, payload: Dict[str, Any], room: Optional[str] = None) -> bool:
        """Emit event to room (or globally when room is None). Returns False on failure."""
        if self._emitter is None:
            logger.debug("No realtime emitter bound, dropping event", event_name=event, room=room)
            return False
        try:
            await self._emitter.emit(event, payload, to=room)
            return True
        except Exception as e:
            logger.warning("Realtime broadcast failed", event_name=event, room=room, error=str(e))
            return False

    async def to_thread(self, thread_id: str, event: str, payload: Dict[str, Any]) -> bool:
        return await self.publish(event, payload, room=thread_room(thread_id))

    async def to_user(self, user_id: str, event: str, payload: Dict[str, Any]) -> bool:
        return await self.publish(event, payload, room=user_room(user_id))

    async def to_everyone(self, event: str, payload: Dict[str, Any]) -> bool:
        return await self.publish(event, payload)
