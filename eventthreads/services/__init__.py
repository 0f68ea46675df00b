from .admin_service import AdminService
from .thread_service import ThreadService

__all__ = ["AdminService", "ThreadService"]
