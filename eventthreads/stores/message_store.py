"""
Message storage with JSON-based persistence.

Messages are grouped per thread id: {"messages": {thread_id: [ ... ]}}.
"""

from typing import Callable, Iterable, List

from ..models.thread import Message
from .json_store import JsonDocumentStore


class MessageStore(JsonDocumentStore):
    """Append-only per-thread message lists"""

    filename = "messages.json"

    def _empty(self):
        return {"messages": {}}

    def append(self, message: Message) -> Message:
        with self.mutate() as doc:
            doc.setdefault("messages", {}).setdefault(message.thread_id, []).append(
                message.model_dump(mode="json")
            )
        return message

    def list_for_thread(self, thread_id: str) -> List[Message]:
        """Messages of a thread in ascending timestamp order (stable on ties)."""
        items = self.load().get("messages", {}).get(thread_id, [])
        messages = [Message(**item) for item in items]
        messages.sort(key=lambda m: m.timestamp)
        return messages

    def delete_for_threads(self, thread_ids: Iterable[str]) -> int:
        """Delete every message of the given threads; return how many were removed."""
        ids = set(thread_ids)
        if not ids:
            return 0
        with self.mutate() as doc:
            buckets = doc.setdefault("messages", {})
            removed = 0
            for thread_id in ids:
                removed += len(buckets.pop(thread_id, []))
            return removed

    def delete_orphans(self, live_thread_ids: Callable[[], Iterable[str]]) -> int:
        """
        Delete messages whose thread no longer exists.

        live_thread_ids is called while this store's lock is held, so a
        thread created before its first message is appended is always seen.
        """
        with self.mutate() as doc:
            live = set(live_thread_ids())
            buckets = doc.setdefault("messages", {})
            orphaned = [tid for tid in buckets if tid not in live]
            removed = 0
            for thread_id in orphaned:
                removed += len(buckets.pop(thread_id))
            return removed
