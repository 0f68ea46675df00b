"""
Realtime fan-out gateway (Socket.IO).

Rooms:
    <threadId>      subscribers of a thread (members only)
    user:<userId>   private per-user channel for join-request notifications

Every client action is re-authorized here through the same ThreadService
the HTTP routes use; joining a room earlier grants nothing for later
actions. Failures are reported to the caller with an ``unauthorized`` event
or logged, and never propagate into the Socket.IO server.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import socketio

from eventthreads.core.notifier import UNAUTHORIZED, thread_room, user_room
from eventthreads.services.thread_service import ThreadService
from eventthreads.utils.exceptions import (
    EventThreadsError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from eventthreads.utils.logger import get_logger

logger = get_logger(__name__)

# Client -> server events
IDENTIFY = "identify"
JOIN_THREAD = "joinThread"
LEAVE_THREAD = "leaveThread"
SEND_MESSAGE = "sendMessage"


def create_socket_server(cors_allowed_origins: Any = "*") -> socketio.AsyncServer:
    """Socket.IO server in ASGI mode, to be mounted around the FastAPI app."""
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_allowed_origins,
        ping_timeout=25,
        ping_interval=20,
    )


def _payload(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


class RealtimeGateway:
    """Binds Socket.IO client events to the thread service"""

    def __init__(self, sio: socketio.AsyncServer, thread_service: ThreadService):
        self.sio = sio
        self.thread_service = thread_service

    def register(self) -> None:
        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on(IDENTIFY, self.on_identify)
        self.sio.on(JOIN_THREAD, self.on_join_thread)
        self.sio.on(LEAVE_THREAD, self.on_leave_thread)
        self.sio.on(SEND_MESSAGE, self.on_send_message)

    async def _unauthorized(self, sid: str, message: str) -> None:
        try:
            await self.sio.emit(UNAUTHORIZED, {"message": message}, to=sid)
        except Exception as e:
            logger.warning("Could not deliver unauthorized event", sid=sid, error=str(e))

    async def on_connect(self, sid: str, environ: Dict[str, Any], auth: Optional[Dict[str, Any]] = None) -> None:
        logger.info("Socket connected", sid=sid)

    async def on_disconnect(self, sid: str, *args: Any) -> None:
        logger.info("Socket disconnected", sid=sid)

    async def on_identify(self, sid: str, data: Any = None) -> None:
        """Subscribe the connection to its user's private room."""
        user_id = _payload(data).get("userId")
        if not user_id:
            return
        try:
            await self.sio.enter_room(sid, user_room(user_id))
            logger.debug("Socket identified", sid=sid, user_id=user_id)
        except Exception as e:
            logger.error("identify failed", sid=sid, error=str(e))

    async def on_join_thread(self, sid: str, data: Any = None) -> None:
        """Subscribe to a thread room after re-validating membership."""
        payload = _payload(data)
        thread_id = payload.get("threadId")
        user_id = payload.get("userId")
        try:
            await self.thread_service.authorize_room(thread_id, user_id)
        except ValidationError as e:
            await self._unauthorized(sid, e.message)
            return
        except NotFoundError:
            await self._unauthorized(sid, "Thread does not exist")
            return
        except ForbiddenError:
            await self._unauthorized(sid, "You are not authorized to join this thread")
            return
        except Exception as e:
            logger.error("joinThread failed", sid=sid, thread_id=thread_id, error=str(e))
            return
        try:
            await self.sio.enter_room(sid, thread_room(thread_id))
            logger.debug("Socket joined thread room", sid=sid, thread_id=thread_id, user_id=user_id)
        except Exception as e:
            logger.error("joinThread failed", sid=sid, thread_id=thread_id, error=str(e))

    async def on_leave_thread(self, sid: str, data: Any = None) -> None:
        thread_id = _payload(data).get("threadId")
        if not thread_id:
            return
        try:
            await self.sio.leave_room(sid, thread_room(thread_id))
        except Exception as e:
            logger.error("leaveThread failed", sid=sid, thread_id=thread_id, error=str(e))

    async def on_send_message(self, sid: str, data: Any = None) -> None:
        """Append and broadcast a chat message; membership is checked on every send."""
        payload = _payload(data)
        thread_id = payload.get("threadId")
        try:
            await self.thread_service.post_message(
                thread_id,
                payload.get("userId"),
                payload.get("username") or payload.get("user"),
                payload.get("message"),
            )
        except (ForbiddenError, NotFoundError):
            await self._unauthorized(sid, "You are not authorized to post in this thread")
        except EventThreadsError as e:
            await self._unauthorized(sid, e.message)
        except Exception as e:
            logger.error("sendMessage failed", sid=sid, thread_id=thread_id, error=str(e))
