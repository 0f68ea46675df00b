"""User data model"""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class User(BaseModel):
    """Registered user. password_hash is None for legacy accounts."""
    id: str
    username: str
    password_hash: Optional[str] = None
    is_admin: bool = False
    created_at: str  # ISO format timestamp
    last_login: Optional[str] = None

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "isAdmin": self.is_admin,
            "createdAt": self.created_at,
            "lastLogin": self.last_login,
        }


def normalize_username(username: str) -> str:
    """Usernames are unique case-insensitively; store them lower-cased and trimmed."""
    return (username or "").strip().lower()
