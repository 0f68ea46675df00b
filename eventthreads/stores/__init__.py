from .message_store import MessageStore
from .session_store import SessionStore
from .thread_store import ThreadStore
from .user_store import UserStore

__all__ = ["MessageStore", "SessionStore", "ThreadStore", "UserStore"]
