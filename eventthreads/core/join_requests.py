"""
Join-request state machine.

Per (thread, user) pair:

    NONE -> PENDING -> MEMBER        (approval required, creator approves)
    NONE -> PENDING -> NONE          (creator rejects)
    NONE -> MEMBER                   (fast-join, approval not required)

Check-then-write sequences run inside a per-thread critical section and the
store mutations themselves are set-inserts, so duplicate concurrent requests
collapse into one pending entry or one membership.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from ..models.thread import Message, Thread
from ..stores.thread_store import ThreadStore
from ..stores.user_store import UserStore
from ..utils.exceptions import ConflictError, NotFoundError, ValidationError
from ..utils.logger import get_logger
from .ledger import MessageLedger
from .locks import KeyedLocks, lock_key_thread
from .membership import MembershipAuthority
from .notifier import (
    JOIN_REQUEST,
    MEMBERSHIP_CHANGED,
    NEW_MESSAGE,
    REQUEST_HANDLED,
    Broadcaster,
)

logger = get_logger(__name__)


class JoinState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    MEMBER = "member"


@dataclass
class JoinOutcome:
    """Result of a join-request transition"""
    state: JoinState
    thread: Thread
    message: str
    changed: bool = True
    system_messages: List[Message] = field(default_factory=list)


def joined_text(username: str) -> str:
    return f"{username} joined the thread!"


class JoinRequestMachine:
    """Drives join requests from submission to membership or rejection"""

    def __init__(
        self,
        threads: ThreadStore,
        users: UserStore,
        ledger: MessageLedger,
        authority: MembershipAuthority,
        broadcaster: Broadcaster,
        locks: KeyedLocks,
    ):
        self.threads = threads
        self.users = users
        self.ledger = ledger
        self.authority = authority
        self.broadcaster = broadcaster
        self.locks = locks

    def state_of(self, thread: Thread, user_id: str) -> JoinState:
        if self.authority.is_member(thread, user_id):
            return JoinState.MEMBER
        if self.authority.is_pending(thread, user_id):
            return JoinState.PENDING
        return JoinState.NONE

    async def _live_thread(self, thread_id: str) -> Thread:
        thread = await run_in_threadpool(self.threads.get_live, thread_id)
        if thread is None:
            raise NotFoundError("Thread not found")
        return thread

    async def _display_name(self, user_id: str, fallback: Optional[str] = None) -> str:
        user = await run_in_threadpool(self.users.find_by_id, user_id)
        if user:
            return user.username
        return fallback or "User"

    def _membership_payload(self, thread: Thread, user_id: str) -> dict:
        return {
            "threadId": thread.id,
            "userId": user_id,
            "members": list(thread.members),
            "pendingRequests": list(thread.pending_requests),
        }

    async def request_join(
        self, thread_id: str, user_id: str, username: Optional[str] = None
    ) -> JoinOutcome:
        """Submit a join request, or fast-join when the thread does not require approval."""
        if not user_id:
            raise ValidationError("userId is required", field="userId")

        async with self.locks.acquire(lock_key_thread(thread_id)):
            thread = await self._live_thread(thread_id)
            state = self.state_of(thread, user_id)

            if state == JoinState.MEMBER:
                logger.info("Join rejected: already a member", thread_id=thread_id, user_id=user_id)
                raise ConflictError("Already a member of this thread", status_code=400)

            if not thread.requires_approval:
                display = await self._display_name(user_id, username)
                thread = await run_in_threadpool(self.threads.add_member, thread_id, user_id)
                if thread is None:
                    raise NotFoundError("Thread not found")
                system = await run_in_threadpool(
                    self.ledger.append_system, thread_id, user_id, joined_text(display)
                )
                outcome = JoinOutcome(
                    state=JoinState.MEMBER,
                    thread=thread,
                    message="Joined thread",
                    system_messages=[system],
                )
            elif state == JoinState.PENDING:
                outcome = JoinOutcome(
                    state=JoinState.PENDING,
                    thread=thread,
                    message="Join request already pending",
                    changed=False,
                )
            else:
                thread = await run_in_threadpool(self.threads.add_pending, thread_id, user_id)
                if thread is None:
                    raise NotFoundError("Thread not found")
                outcome = JoinOutcome(
                    state=JoinState.PENDING,
                    thread=thread,
                    message="Join request sent",
                )

        if outcome.state == JoinState.MEMBER:
            logger.info("Fast-join", thread_id=thread_id, user_id=user_id)
            for system in outcome.system_messages:
                await self.broadcaster.to_thread(thread_id, NEW_MESSAGE, system.to_public())
            await self.broadcaster.to_thread(
                thread_id, MEMBERSHIP_CHANGED, self._membership_payload(outcome.thread, user_id)
            )
        elif outcome.changed:
            logger.info("Join request pending", thread_id=thread_id, user_id=user_id)
            display = await self._display_name(user_id, username)
            await self.broadcaster.to_user(
                outcome.thread.creator,
                JOIN_REQUEST,
                {
                    "threadId": thread_id,
                    "threadTitle": outcome.thread.title,
                    "userId": user_id,
                    "username": display,
                },
            )
        return outcome

    async def decide(
        self, thread_id: str, target_user_id: str, approve: bool, acting_user_id: str
    ) -> JoinOutcome:
        """Approve or reject a pending request. Only the creator may decide."""
        if not target_user_id:
            raise ValidationError("userId is required", field="userId")

        async with self.locks.acquire(lock_key_thread(thread_id)):
            thread = await self._live_thread(thread_id)
            self.authority.require_creator(thread, acting_user_id, action="handle requests")

            if approve:
                was_member = self.authority.is_member(thread, target_user_id)
                thread = await run_in_threadpool(self.threads.add_member, thread_id, target_user_id)
                if thread is None:
                    raise NotFoundError("Thread not found")
                system_messages: List[Message] = []
                if not was_member:
                    display = await self._display_name(target_user_id)
                    system_messages.append(
                        await run_in_threadpool(
                            self.ledger.append_system, thread_id, target_user_id, joined_text(display)
                        )
                    )
                outcome = JoinOutcome(
                    state=JoinState.MEMBER,
                    thread=thread,
                    message="User approved",
                    changed=not was_member,
                    system_messages=system_messages,
                )
            else:
                thread = await run_in_threadpool(self.threads.remove_pending, thread_id, target_user_id)
                if thread is None:
                    raise NotFoundError("Thread not found")
                outcome = JoinOutcome(
                    state=self.state_of(thread, target_user_id),
                    thread=thread,
                    message="User rejected",
                )

        logger.info(
            "Join request handled",
            thread_id=thread_id,
            user_id=target_user_id,
            approved=approve,
        )
        if approve:
            for system in outcome.system_messages:
                await self.broadcaster.to_thread(thread_id, NEW_MESSAGE, system.to_public())
            await self.broadcaster.to_thread(
                thread_id, MEMBERSHIP_CHANGED, self._membership_payload(outcome.thread, target_user_id)
            )
        await self.broadcaster.to_user(
            target_user_id,
            REQUEST_HANDLED,
            {"threadId": thread_id, "threadTitle": outcome.thread.title, "approved": bool(approve)},
        )
        return outcome
