"""Thread and message data models"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.timestamps import ensure_utc, isoformat_z, utc_now


SYSTEM_USERNAME = "System"
WELCOME_MESSAGE = "Thread created! Welcome everyone 👋"


class Message(BaseModel):
    """A chat entry. Never mutated after append."""
    id: str
    thread_id: str
    user_id: str
    username: str
    message: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def to_public(self) -> Dict[str, Any]:
        """Payload shared by the HTTP response and the newMessage event."""
        return {
            "id": self.id,
            "threadId": self.thread_id,
            "userId": self.user_id,
            "username": self.username,
            "user": self.username,
            "message": self.message,
            "timestamp": isoformat_z(self.timestamp),
        }


class Thread(BaseModel):
    """
    A time-boxed discussion thread.

    creator is always an effective member even if missing from members;
    a user id appears in at most one of members / pending_requests.
    """
    id: str
    title: str
    description: str
    creator: str
    creator_username: str
    location: str
    tags: List[str] = Field(default_factory=list)
    members: List[str] = Field(default_factory=list)
    pending_requests: List[str] = Field(default_factory=list)
    requires_approval: bool = True
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def _utc_datetimes(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or utc_now())

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "tags": list(self.tags),
        }

    def to_public(self, chat: Optional[List[Message]] = None) -> Dict[str, Any]:
        """Thread metadata plus whatever chat the caller is entitled to see."""
        return {
            **self.summary(),
            "creator": self.creator_username,
            "creatorId": self.creator,
            "members": list(self.members),
            "pendingRequests": list(self.pending_requests),
            "requiresApproval": self.requires_approval,
            "expiresAt": isoformat_z(self.expires_at),
            "createdAt": isoformat_z(self.created_at),
            "chat": [m.to_public() for m in (chat or [])],
        }
