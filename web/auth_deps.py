"""
FastAPI dependencies: the application container and session resolution.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool

from eventthreads.app import EventThreadsApp
from eventthreads.utils.exceptions import UnauthorizedError


SESSION_COOKIE = "session_token"


def get_services(request: Request) -> EventThreadsApp:
    return request.app.state.services


def get_session_token(request: Request) -> Optional[str]:
    """Extract session token from request (Authorization header or cookie)"""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return request.cookies.get(SESSION_COOKIE)


async def get_optional_user(
    request: Request, services: EventThreadsApp = Depends(get_services)
) -> Optional[Dict[str, Any]]:
    """The principal behind the presented session, or None"""
    token = get_session_token(request)
    if not token:
        return None
    return await run_in_threadpool(services.auth_service.resolve, token)


async def get_current_user(
    principal: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> Dict[str, Any]:
    """Dependency to get the authenticated principal"""
    if not principal:
        raise UnauthorizedError("Not authenticated")
    return principal
