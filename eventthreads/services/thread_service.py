"""
Thread command service.

Every thread operation, whether it arrives over HTTP or over the realtime
gateway, runs through this service: authorize with the shared
MembershipAuthority, mutate the stores, then broadcast best-effort.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from ..core.join_requests import JoinOutcome, JoinRequestMachine
from ..core.ledger import MessageLedger
from ..core.locks import KeyedLocks, lock_key_thread
from ..core.membership import MembershipAuthority
from ..core.notifier import (
    NEW_MESSAGE,
    THREAD_CREATED,
    THREAD_DELETED,
    THREAD_UPDATED,
    Broadcaster,
)
from ..models.thread import Message, Thread, WELCOME_MESSAGE
from ..stores.thread_store import ThreadStore
from ..stores.user_store import UserStore
from ..utils.exceptions import NotFoundError, ValidationError
from ..utils.logger import get_logger
from ..utils.timestamps import ensure_utc, utc_now

logger = get_logger(__name__)

MAX_TITLE_LENGTH = 200
MAX_LOCATION_LENGTH = 200


def _require_text(value: Optional[str], field: str, max_length: Optional[int] = None) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required", field=field)
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} cannot be longer than {max_length} characters", field=field)
    return text


def _clean_tags(tags: Optional[List[str]]) -> List[str]:
    cleaned: List[str] = []
    for tag in tags or []:
        tag = str(tag).strip()
        if tag:
            cleaned.append(tag)
    return cleaned


class ThreadService:
    """Thread lifecycle, membership and messaging commands"""

    def __init__(
        self,
        threads: ThreadStore,
        users: UserStore,
        ledger: MessageLedger,
        authority: MembershipAuthority,
        broadcaster: Broadcaster,
        locks: Optional[KeyedLocks] = None,
    ):
        self.threads = threads
        self.users = users
        self.ledger = ledger
        self.authority = authority
        self.broadcaster = broadcaster
        self.locks = locks or KeyedLocks()
        self.join_requests = JoinRequestMachine(
            threads=threads,
            users=users,
            ledger=ledger,
            authority=authority,
            broadcaster=broadcaster,
            locks=self.locks,
        )

    async def _live_thread(self, thread_id: str) -> Thread:
        thread = await run_in_threadpool(self.threads.get_live, thread_id)
        if thread is None:
            raise NotFoundError("Thread not found")
        return thread

    async def _visible_chat(self, thread: Thread, viewer_id: Optional[str]) -> List[Message]:
        if not self.authority.is_member(thread, viewer_id):
            return []
        return await run_in_threadpool(self.ledger.history, thread.id)

    # --- Lifecycle ---

    async def create_thread(
        self,
        *,
        title: Optional[str],
        description: Optional[str],
        creator_username: Optional[str],
        creator_id: Optional[str],
        location: Optional[str],
        tags: Optional[List[str]],
        expires_at: Optional[datetime],
        requires_approval: bool = True,
    ) -> Tuple[Thread, List[Message]]:
        """Create a thread with the creator seeded as member and a welcome message."""
        title = _require_text(title, "title", MAX_TITLE_LENGTH)
        description = _require_text(description, "description")
        creator_username = _require_text(creator_username, "creator")
        creator_id = _require_text(creator_id, "creatorId")
        location = _require_text(location, "location", MAX_LOCATION_LENGTH)
        if expires_at is None:
            raise ValidationError("expiresAt is required", field="expiresAt")
        expires_at = ensure_utc(expires_at)
        if expires_at <= utc_now():
            raise ValidationError("expiresAt must be in the future", field="expiresAt")

        thread = Thread(
            id=uuid.uuid4().hex,
            title=title,
            description=description,
            creator=creator_id,
            creator_username=creator_username,
            location=location,
            tags=_clean_tags(tags),
            members=[creator_id],
            pending_requests=[],
            requires_approval=bool(requires_approval),
            expires_at=expires_at,
            created_at=utc_now(),
        )
        await run_in_threadpool(self.threads.create, thread)
        welcome = await run_in_threadpool(
            self.ledger.append, thread.id, creator_id, creator_username, WELCOME_MESSAGE
        )
        logger.info(
            "Thread created",
            thread_id=thread.id,
            title=title,
            creator_id=creator_id,
            requires_approval=thread.requires_approval,
            expires_at=expires_at.isoformat(),
        )
        # Discovery is public; chat is not, so the global event never carries messages.
        await self.broadcaster.to_everyone(THREAD_CREATED, thread.to_public())
        return thread, [welcome]

    async def list_threads(self, viewer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """All non-expired threads; chat only where the viewer is a member."""
        threads = await run_in_threadpool(self.threads.list_active)
        listed = []
        for thread in threads:
            chat = await self._visible_chat(thread, viewer_id)
            listed.append(thread.to_public(chat))
        logger.debug("Threads listed", count=len(listed), viewer_id=viewer_id)
        return listed

    async def get_thread(self, thread_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        thread = await self._live_thread(thread_id)
        return thread.to_public(await self._visible_chat(thread, viewer_id))

    async def history(self, thread_id: str, viewer_id: Optional[str]) -> List[Message]:
        """Full chat history. Members only."""
        thread = await self._live_thread(thread_id)
        self.authority.require_member(thread, viewer_id)
        return await run_in_threadpool(self.ledger.history, thread_id)

    async def update_thread(
        self,
        thread_id: str,
        user_id: Optional[str],
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Thread:
        """Edit title/description/location/tags. Creator only."""
        changes: Dict[str, Any] = {}
        if title is not None:
            changes["title"] = _require_text(title, "title", MAX_TITLE_LENGTH)
        if description is not None:
            changes["description"] = _require_text(description, "description")
        if location is not None:
            changes["location"] = _require_text(location, "location", MAX_LOCATION_LENGTH)
        if tags is not None:
            changes["tags"] = _clean_tags(tags)

        async with self.locks.acquire(lock_key_thread(thread_id)):
            thread = await self._live_thread(thread_id)
            self.authority.require_creator(thread, user_id, action="update")
            updated = await run_in_threadpool(self.threads.update_details, thread_id, **changes)
            if updated is None:
                raise NotFoundError("Thread not found")

        logger.info("Thread updated", thread_id=thread_id, fields=sorted(changes))
        await self.broadcaster.to_everyone(THREAD_UPDATED, updated.summary())
        return updated

    async def delete_thread(
        self, thread_id: str, user_id: Optional[str], admin_session: bool = False
    ) -> None:
        """
        Delete a thread and cascade its messages. Creator or admin.

        admin_session is set only when user_id was resolved from an
        authenticated admin session token.
        """
        async with self.locks.acquire(lock_key_thread(thread_id)):
            thread = await self._live_thread(thread_id)
            self.authority.require_creator_or_admin(
                thread, user_id, action="delete this thread", admin_verified=admin_session
            )
            await run_in_threadpool(self.threads.delete, thread_id)
            await run_in_threadpool(self.ledger.purge, thread_id)

        logger.info("Thread deleted", thread_id=thread_id, deleted_by=user_id)
        await self.broadcaster.to_thread(
            thread_id, THREAD_DELETED, {"threadId": thread_id, "reason": "deleted"}
        )

    # --- Membership ---

    async def request_join(
        self, thread_id: str, user_id: Optional[str], username: Optional[str] = None
    ) -> JoinOutcome:
        return await self.join_requests.request_join(thread_id, user_id, username)

    async def decide_request(
        self, thread_id: str, target_user_id: Optional[str], approve: bool, acting_user_id: Optional[str]
    ) -> JoinOutcome:
        return await self.join_requests.decide(thread_id, target_user_id, approve, acting_user_id)

    async def authorize_room(self, thread_id: Optional[str], user_id: Optional[str]) -> Thread:
        """Raise unless user_id may subscribe to the thread's room."""
        if not thread_id or not user_id:
            raise ValidationError("Missing threadId or userId")
        thread = await self._live_thread(thread_id)
        self.authority.require_member(thread, user_id)
        return thread

    # --- Messaging ---

    async def post_message(
        self,
        thread_id: Optional[str],
        user_id: Optional[str],
        username: Optional[str],
        body: Optional[str],
    ) -> Message:
        """Append a chat message after the membership check, then broadcast it."""
        if not thread_id:
            raise ValidationError("threadId is required", field="threadId")
        if not user_id:
            raise ValidationError("userId is required", field="userId")
        text = _require_text(body, "message")
        author = _require_text(username, "user")

        # newMessage must never follow threadDeleted for the same thread.
        async with self.locks.acquire(lock_key_thread(thread_id)):
            thread = await self._live_thread(thread_id)
            self.authority.require_member(thread, user_id)
            message = await run_in_threadpool(self.ledger.append, thread_id, user_id, author, text)
            await self.broadcaster.to_thread(thread_id, NEW_MESSAGE, message.to_public())
        return message
