"""
FastAPI routes for authentication.

Prefix: /auth
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from eventthreads.app import EventThreadsApp

from .auth_deps import SESSION_COOKIE, get_current_user, get_services, get_session_token
from .models import LoginRequest, RegisterRequest


router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str, services: EventThreadsApp) -> None:
    """
    Attach the session token as a cookie.

    Clients can also send the token in an Authorization: Bearer header.
    """
    is_prod = services.settings.app.environment.strip().lower() == "production"
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=services.settings.auth.session_expiry_days * 24 * 60 * 60,
        httponly=True,
        secure=is_prod,
        samesite="lax",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    services: EventThreadsApp = Depends(get_services),
) -> Any:
    """
    Register a new user.

    Response:
        {
          "success": true,
          "message": "...",
          "user": {"id": "...", "username": "...", "isAdmin": false, ...},
          "token": "<session_token>"
        }
    """
    user, token = await run_in_threadpool(
        services.auth_service.register, body.username, body.password
    )
    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": "Account created successfully! Welcome to Event Threads!",
            "user": user.to_public(),
            "token": token,
        },
    )
    _set_session_cookie(response, token, services)
    return response


@router.post("/login")
async def login(
    body: LoginRequest,
    services: EventThreadsApp = Depends(get_services),
) -> Any:
    """
    Log in a user, or the configured admin when isAdmin is true.

    Response: same shape as /register.
    """
    user, token = await run_in_threadpool(
        services.auth_service.login, body.username, body.password, body.is_admin
    )
    message = "Admin login successful" if body.is_admin else "Login successful! Welcome back!"
    response = JSONResponse(
        content={"success": True, "message": message, "user": user, "token": token}
    )
    _set_session_cookie(response, token, services)
    return response


@router.post("/logout")
async def logout(
    request: Request,
    services: EventThreadsApp = Depends(get_services),
) -> Any:
    """Acknowledge logout. A presented token (cookie or Bearer) is revoked."""
    await run_in_threadpool(services.auth_service.logout, get_session_token(request))
    response = JSONResponse({"success": True, "message": "Logged out successfully"})
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/me")
async def me(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Return the principal behind the current session."""
    return {"success": True, "user": current_user}
