"""API request models. Field aliases match the camelCase wire format."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateThreadRequest(CamelModel):
    """Request model for creating a thread"""
    title: Optional[str] = None
    description: Optional[str] = None
    creator: Optional[str] = Field(None, description="Creator's username")
    creator_id: Optional[str] = Field(None, alias="creatorId")
    location: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    requires_approval: bool = Field(True, alias="requiresApproval")


class UpdateThreadRequest(CamelModel):
    """Creator edits; omitted fields are left unchanged"""
    user_id: Optional[str] = Field(None, alias="userId")
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    tags: Optional[List[str]] = None


class ActorRequest(CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")


class JoinThreadRequest(CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")
    username: Optional[str] = None


class HandleJoinRequest(CamelModel):
    """Creator's decision on a pending join request"""
    user_id: Optional[str] = Field(None, alias="userId")
    approve: bool = False
    current_user_id: Optional[str] = Field(None, alias="currentUserId")


class SendMessageRequest(CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")
    user: Optional[str] = None
    message: Optional[str] = None


class RegisterRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None
    is_admin: bool = Field(False, alias="isAdmin")
