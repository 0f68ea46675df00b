"""
User storage with JSON-based persistence.

Usernames are stored normalized (trimmed, lower-cased), which makes the
uniqueness check case-insensitive.
"""

import uuid
from typing import List, Optional

from ..models.user import User, normalize_username
from ..utils.exceptions import ConflictError
from ..utils.timestamps import isoformat_z, utc_now
from .json_store import JsonDocumentStore


class UserStore(JsonDocumentStore):
    """Persistent user records keyed by id"""

    filename = "users.json"

    def _empty(self):
        return {"users": []}

    def list_users(self) -> List[User]:
        return [User(**item) for item in self.load().get("users", [])]

    def find_by_id(self, user_id: str) -> Optional[User]:
        return next((u for u in self.list_users() if u.id == user_id), None)

    def find_by_username(self, username: str) -> Optional[User]:
        wanted = normalize_username(username)
        return next((u for u in self.list_users() if u.username == wanted), None)

    def create_user(self, username: str, password_hash: Optional[str]) -> User:
        """Create a user; raises ConflictError if the username is taken."""
        normalized = normalize_username(username)
        with self.mutate() as doc:
            users = doc.setdefault("users", [])
            if any(item.get("username") == normalized for item in users):
                raise ConflictError(
                    "Username already taken. Please choose a different username."
                )
            user = User(
                id=str(uuid.uuid4()),
                username=normalized,
                password_hash=password_hash,
                is_admin=False,
                created_at=isoformat_z(utc_now()),
            )
            users.append(user.model_dump())
        return user

    def _update(self, user_id: str, **fields) -> Optional[User]:
        with self.mutate() as doc:
            for item in doc.setdefault("users", []):
                if item.get("id") == user_id:
                    item.update(fields)
                    return User(**item)
        return None

    def touch_login(self, user_id: str) -> Optional[User]:
        return self._update(user_id, last_login=isoformat_z(utc_now()))
