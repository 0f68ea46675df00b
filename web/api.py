"""Thread API route handlers"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from eventthreads.app import EventThreadsApp
from eventthreads.core.join_requests import JoinState
from eventthreads.utils.exceptions import ValidationError
from .auth_deps import get_optional_user, get_services
from .models import (
    ActorRequest,
    CreateThreadRequest,
    HandleJoinRequest,
    JoinThreadRequest,
    SendMessageRequest,
    UpdateThreadRequest,
)

router = APIRouter(prefix="/threads", tags=["threads"])
health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health() -> Dict[str, Any]:
    """Liveness probe"""
    return {"status": "ok", "message": "EventThreads API is running"}


@router.get("")
async def list_threads(
    user_id: Optional[str] = Query(None, alias="userId"),
    services: EventThreadsApp = Depends(get_services),
) -> Dict[str, Any]:
    """All active threads; chat only for threads the caller belongs to"""
    threads = await services.thread_service.list_threads(user_id)
    return {"success": True, "threads": threads}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_thread(
    body: CreateThreadRequest,
    services: EventThreadsApp = Depends(get_services),
) -> JSONResponse:
    thread, chat = await services.thread_service.create_thread(
        title=body.title,
        description=body.description,
        creator_username=body.creator,
        creator_id=body.creator_id,
        location=body.location,
        tags=body.tags,
        expires_at=body.expires_at,
        requires_approval=body.requires_approval,
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"success": True, "thread": thread.to_public(chat)},
    )


@router.get("/{thread_id}")
async def get_thread(
    thread_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    services: EventThreadsApp = Depends(get_services),
) -> Dict[str, Any]:
    thread = await services.thread_service.get_thread(thread_id, user_id)
    return {"success": True, "thread": thread}


@router.put("/{thread_id}")
async def update_thread(
    thread_id: str,
    body: UpdateThreadRequest,
    services: EventThreadsApp = Depends(get_services),
) -> Dict[str, Any]:
    """Creator-only edit of title, description, location and tags"""
    thread = await services.thread_service.update_thread(
        thread_id,
        body.user_id,
        title=body.title,
        description=body.description,
        location=body.location,
        tags=body.tags,
    )
    return {
        "success": True,
        "message": "Thread updated successfully",
        "thread": thread.summary(),
    }


@router.delete("/{thread_id}")
async def delete_thread(
    thread_id: str,
    request: Request,
    user_id: Optional[str] = Query(None, alias="userId"),
    principal: Optional[Dict[str, Any]] = Depends(get_optional_user),
    services: EventThreadsApp = Depends(get_services),
) -> Dict[str, Any]:
    """
    Delete a thread and its messages. Creator or admin.

    The creator's user id may be sent in the JSON body or as ?userId=.
    Admin rights come only from an admin session token.
    """
    if principal and principal.get("isAdmin"):
        await services.thread_service.delete_thread(thread_id, principal["id"], admin_session=True)
        return {"success": True, "message": "Thread deleted"}

    if user_id is None and await request.body():
        try:
            user_id = ActorRequest.model_validate(await request.json()).user_id
        except ValueError:
            raise ValidationError("Invalid request body")
    await services.thread_service.delete_thread(thread_id, user_id)
    return {"success": True, "message": "Thread deleted"}


@router.post("/{thread_id}/join")
async def join_thread(
    thread_id: str,
    body: JoinThreadRequest,
    services: EventThreadsApp = Depends(get_services),
) -> Dict[str, Any]:
    """Request to join, or join immediately when approval is not required"""
    outcome = await services.thread_service.request_join(thread_id, body.user_id, body.username)
    return {
        "success": True,
        "message": outcome.message,
        "status": outcome.state.value,
        "joined": outcome.state == JoinState.MEMBER,
    }


@router.post("/{thread_id}/requests")
async def handle_join_request(
    thread_id: str,
    body: HandleJoinRequest,
    services: EventThreadsApp = Depends(get_services),
) -> Dict[str, Any]:
    outcome = await services.thread_service.decide_request(
        thread_id, body.user_id, body.approve, body.current_user_id
    )
    return {"success": True, "message": outcome.message}


@router.get("/{thread_id}/messages")
async def list_messages(
    thread_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    services: EventThreadsApp = Depends(get_services),
) -> Dict[str, Any]:
    """Full chat history. Members only."""
    messages = await services.thread_service.history(thread_id, user_id)
    return {"success": True, "messages": [m.to_public() for m in messages]}


@router.post("/{thread_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    thread_id: str,
    body: SendMessageRequest,
    services: EventThreadsApp = Depends(get_services),
) -> JSONResponse:
    message = await services.thread_service.post_message(
        thread_id, body.user_id, body.user, body.message
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"success": True, "message": message.to_public()},
    )
