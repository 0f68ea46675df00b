"""
Admin dashboard. Active threads with full chat, and registered users.

Access is decided by the session token; only a session issued through the
admin login resolves to the admin principal.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from eventthreads.app import EventThreadsApp

from .auth_deps import get_current_user, get_services


router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard")
async def admin_dashboard(
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: EventThreadsApp = Depends(get_services),
) -> Dict[str, Any]:
    """401 without a session, 403 for non-admin sessions."""
    data = await services.admin_service.dashboard(current_user["id"])
    return {"success": True, "data": data}
