"""
Membership Authority: the single answer to "may this user read, post in,
or administer this thread".

Both the HTTP command path and the realtime gateway go through the same
MembershipAuthority instance. The admin principal is resolved from
configuration once at startup and injected here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models.thread import Thread
from ..utils.config import AdminSettings
from ..utils.exceptions import ForbiddenError


@dataclass(frozen=True)
class AdminPrincipal:
    """Configuration-bound admin identity. Not a stored user."""
    user_id: str
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def login_enabled(self) -> bool:
        return bool(self.username and self.password)

    @classmethod
    def from_settings(cls, settings: AdminSettings) -> "AdminPrincipal":
        return cls(
            user_id=settings.user_id,
            username=settings.username or None,
            password=settings.password or None,
        )


class MembershipAuthority:
    """Membership and privilege checks for threads"""

    def __init__(self, admin: AdminPrincipal):
        self.admin = admin

    def is_member(self, thread: Thread, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        return user_id == thread.creator or user_id in thread.members

    def is_pending(self, thread: Thread, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in thread.pending_requests

    def is_creator(self, thread: Thread, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id == thread.creator

    def is_admin(self, user_id: Optional[str]) -> bool:
        """True only for the configured admin; never when admin login is disabled."""
        return self.admin.login_enabled and bool(user_id) and user_id == self.admin.user_id

    def is_creator_or_admin(
        self, thread: Thread, user_id: Optional[str], admin_verified: bool = False
    ) -> bool:
        """
        admin_verified must come from an authenticated admin session; a
        client-supplied id that happens to equal the admin id grants nothing.
        """
        if self.is_creator(thread, user_id):
            return True
        return admin_verified and self.is_admin(user_id)

    def require_member(self, thread: Thread, user_id: Optional[str]) -> None:
        if not self.is_member(thread, user_id):
            raise ForbiddenError("You are not a member of this thread")

    def require_creator(self, thread: Thread, user_id: Optional[str], action: str = "do this") -> None:
        if not self.is_creator(thread, user_id):
            raise ForbiddenError(f"Only the thread creator can {action}")

    def require_creator_or_admin(
        self,
        thread: Thread,
        user_id: Optional[str],
        action: str = "do this",
        admin_verified: bool = False,
    ) -> None:
        if not self.is_creator_or_admin(thread, user_id, admin_verified=admin_verified):
            raise ForbiddenError(f"Only the thread creator or an admin can {action}")

    def require_admin(self, user_id: Optional[str]) -> None:
        if not self.is_admin(user_id):
            raise ForbiddenError("Admin access required")
