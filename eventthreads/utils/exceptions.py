"""Custom exceptions for the EventThreads service"""

from typing import Optional


class EventThreadsError(Exception):
    """Base exception for EventThreads"""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        super().__init__(message)


class ValidationError(EventThreadsError):
    """Missing or malformed input"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class ConflictError(EventThreadsError):
    """Duplicate username or duplicate membership"""

    status_code = 409


class UnauthorizedError(EventThreadsError):
    """Bad or missing credentials"""

    status_code = 401


class ForbiddenError(EventThreadsError):
    """Caller lacks the privilege for this operation"""

    status_code = 403


class NotFoundError(EventThreadsError):
    """Thread or user does not exist"""

    status_code = 404


class StorageUnavailableError(EventThreadsError):
    """Persistent storage could not be read or written"""

    status_code = 503


class ConfigError(EventThreadsError):
    """Configuration error"""
    pass
