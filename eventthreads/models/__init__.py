from .thread import Message, Thread, SYSTEM_USERNAME, WELCOME_MESSAGE
from .user import User, normalize_username

__all__ = [
    "Message",
    "Thread",
    "User",
    "SYSTEM_USERNAME",
    "WELCOME_MESSAGE",
    "normalize_username",
]
