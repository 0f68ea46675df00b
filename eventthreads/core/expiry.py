"""
Background sweep that enforces thread expiry.

Expired threads are already invisible to every read path; the sweep
physically removes them, cascades the delete to their messages, clears
messages left behind by threads that no longer exist, and tells anyone
still in the room that the thread is gone.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from ..models.thread import Thread
from ..stores.message_store import MessageStore
from ..stores.session_store import SessionStore
from ..stores.thread_store import ThreadStore
from ..utils.logger import get_logger
from .notifier import THREAD_DELETED, Broadcaster

logger = get_logger(__name__)


class ExpirySweeper:
    """Periodic TTL sweep with message cascade"""

    def __init__(
        self,
        threads: ThreadStore,
        messages: MessageStore,
        broadcaster: Broadcaster,
        sessions: Optional[SessionStore] = None,
        interval_seconds: float = 60.0,
    ):
        self.threads = threads
        self.messages = messages
        self.broadcaster = broadcaster
        self.sessions = sessions
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None

    def _sweep(self, now: Optional[datetime] = None) -> List[Thread]:
        expired = self.threads.delete_expired(now)
        removed = self.messages.delete_for_threads(t.id for t in expired)
        orphans = self.messages.delete_orphans(
            lambda: [t.id for t in self.threads.all_threads()]
        )
        if self.sessions is not None:
            self.sessions.cleanup_expired()
        if expired or orphans:
            logger.info(
                "Expiry sweep removed threads",
                threads=len(expired),
                messages=removed,
                orphaned_messages=orphans,
            )
        return expired

    async def run_once(self, now: Optional[datetime] = None) -> List[Thread]:
        expired = await run_in_threadpool(self._sweep, now)
        for thread in expired:
            await self.broadcaster.to_thread(
                thread.id, THREAD_DELETED, {"threadId": thread.id, "reason": "expired"}
            )
        return expired

    async def _loop(self) -> None:
        logger.info("Expiry sweeper started", interval_seconds=self.interval_seconds)
        while not self._stop.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.error("Expiry sweep failed", error=str(e))
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Expiry sweeper stopped")

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            logger.warning("Expiry sweeper already running")
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
