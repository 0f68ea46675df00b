"""Admin dashboard aggregation"""

from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool

from ..core.ledger import MessageLedger
from ..core.membership import MembershipAuthority
from ..stores.thread_store import ThreadStore
from ..stores.user_store import UserStore
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AdminService:
    """Read-only overview of every active thread and user. Admin only."""

    def __init__(
        self,
        threads: ThreadStore,
        users: UserStore,
        ledger: MessageLedger,
        authority: MembershipAuthority,
    ):
        self.threads = threads
        self.users = users
        self.ledger = ledger
        self.authority = authority

    def _collect(self) -> Dict[str, Any]:
        threads = self.threads.list_active()
        users = [u for u in self.users.list_users() if not u.is_admin]
        usernames = {u.id: u.username for u in users}

        detailed = []
        for thread in threads:
            payload = thread.to_public(self.ledger.history(thread.id))
            payload["memberDetails"] = [
                {"id": member_id, "username": usernames.get(member_id)}
                for member_id in thread.members
            ]
            detailed.append(payload)

        return {
            "totalThreads": len(threads),
            "totalUsers": len(users) + 1,
            "activeUsers": len(users),
            "threads": detailed,
            "users": [
                {"id": u.id, "username": u.username, "createdAt": u.created_at}
                for u in users
            ],
        }

    async def dashboard(self, user_id: Optional[str]) -> Dict[str, Any]:
        self.authority.require_admin(user_id)
        data = await run_in_threadpool(self._collect)
        logger.info(
            "Admin dashboard served",
            total_threads=data["totalThreads"],
            total_users=data["totalUsers"],
        )
        return data
