"""
Message Ledger: append-only chat log per thread.

The ledger does not authorize. Callers check membership with the
MembershipAuthority before appending.
"""

import uuid
from typing import List

from ..models.thread import Message, SYSTEM_USERNAME
from ..stores.message_store import MessageStore
from ..utils.logger import get_logger
from ..utils.timestamps import utc_now

logger = get_logger(__name__)


class MessageLedger:
    """Ordered message storage for threads"""

    def __init__(self, store: MessageStore):
        self.store = store

    def append(self, thread_id: str, author_id: str, author_name: str, body: str) -> Message:
        message = Message(
            id=uuid.uuid4().hex,
            thread_id=thread_id,
            user_id=author_id,
            username=author_name,
            message=body,
            timestamp=utc_now(),
        )
        self.store.append(message)
        logger.info(
            "Message appended",
            thread_id=thread_id,
            message_id=message.id,
            user_id=author_id,
            preview=body[:50],
        )
        return message

    def append_system(self, thread_id: str, affected_user_id: str, text: str) -> Message:
        """Membership announcement, attributed to the affected user's id."""
        return self.append(thread_id, affected_user_id, SYSTEM_USERNAME, text)

    def history(self, thread_id: str) -> List[Message]:
        return self.store.list_for_thread(thread_id)

    def purge(self, thread_id: str) -> int:
        removed = self.store.delete_for_threads([thread_id])
        logger.info("Thread messages purged", thread_id=thread_id, count=removed)
        return removed
