"""
Thread storage with JSON-based persistence.

Membership mutations are set-inserts/removals performed under the store
lock, so two interleaved requests for the same (thread, user) pair converge
to a single entry and never leave the user in both members and
pending_requests.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.thread import Thread
from ..utils.timestamps import utc_now
from .json_store import JsonDocumentStore


class ThreadStore(JsonDocumentStore):
    """Persistent thread records"""

    filename = "threads.json"

    def _empty(self):
        return {"threads": []}

    @staticmethod
    def _find(doc: Dict[str, Any], thread_id: str) -> Optional[Dict[str, Any]]:
        return next(
            (item for item in doc.setdefault("threads", []) if item.get("id") == thread_id),
            None,
        )

    def all_threads(self) -> List[Thread]:
        return [Thread(**item) for item in self.load().get("threads", [])]

    def get(self, thread_id: str) -> Optional[Thread]:
        """Return the stored thread, expired or not."""
        item = self._find(self.load(), thread_id)
        return Thread(**item) if item else None

    def get_live(self, thread_id: str, now: Optional[datetime] = None) -> Optional[Thread]:
        """Return the thread unless it is missing or already expired."""
        thread = self.get(thread_id)
        if thread is None or thread.is_expired(now):
            return None
        return thread

    def list_active(self, now: Optional[datetime] = None) -> List[Thread]:
        """Non-expired threads, newest first."""
        now = now or utc_now()
        threads = [t for t in self.all_threads() if not t.is_expired(now)]
        threads.sort(key=lambda t: t.created_at, reverse=True)
        return threads

    def create(self, thread: Thread) -> Thread:
        with self.mutate() as doc:
            doc.setdefault("threads", []).append(thread.model_dump(mode="json"))
        return thread

    def update_details(self, thread_id: str, **fields) -> Optional[Thread]:
        """Update editable fields (title, description, location, tags)."""
        allowed = {"title", "description", "location", "tags"}
        with self.mutate() as doc:
            item = self._find(doc, thread_id)
            if item is None:
                return None
            for key, value in fields.items():
                if key in allowed and value is not None:
                    item[key] = value
            item["updated_at"] = utc_now().isoformat()
            return Thread(**item)

    def delete(self, thread_id: str) -> bool:
        with self.mutate() as doc:
            threads = doc.setdefault("threads", [])
            remaining = [item for item in threads if item.get("id") != thread_id]
            doc["threads"] = remaining
            return len(remaining) != len(threads)

    def add_pending(self, thread_id: str, user_id: str) -> Optional[Thread]:
        """Set-insert into pending_requests unless the user is already a member."""
        with self.mutate() as doc:
            item = self._find(doc, thread_id)
            if item is None:
                return None
            members = item.setdefault("members", [])
            pending = item.setdefault("pending_requests", [])
            if user_id not in members and user_id != item.get("creator") and user_id not in pending:
                pending.append(user_id)
            return Thread(**item)

    def add_member(self, thread_id: str, user_id: str) -> Optional[Thread]:
        """Drop any pending entry for the user and set-insert into members."""
        with self.mutate() as doc:
            item = self._find(doc, thread_id)
            if item is None:
                return None
            item["pending_requests"] = [
                p for p in item.setdefault("pending_requests", []) if p != user_id
            ]
            members = item.setdefault("members", [])
            if user_id not in members:
                members.append(user_id)
            return Thread(**item)

    def remove_pending(self, thread_id: str, user_id: str) -> Optional[Thread]:
        with self.mutate() as doc:
            item = self._find(doc, thread_id)
            if item is None:
                return None
            item["pending_requests"] = [
                p for p in item.setdefault("pending_requests", []) if p != user_id
            ]
            return Thread(**item)

    def delete_expired(self, now: Optional[datetime] = None) -> List[Thread]:
        """Remove every thread whose expiry has passed; return the removed ones."""
        now = now or utc_now()
        with self.mutate() as doc:
            expired: List[Thread] = []
            kept = []
            for item in doc.setdefault("threads", []):
                thread = Thread(**item)
                if thread.is_expired(now):
                    expired.append(thread)
                else:
                    kept.append(item)
            doc["threads"] = kept
            return expired
