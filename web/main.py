"""FastAPI application for the EventThreads API and its Socket.IO gateway"""

from contextlib import asynccontextmanager
from typing import Any, Optional

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventthreads import __version__
from eventthreads.app import EventThreadsApp
from eventthreads.utils.config import Settings
from eventthreads.utils.logger import get_logger

from .admin_routes import router as admin_router
from .api import health_router, router as threads_router
from .auth_routes import router as auth_router
from .errors import register_exception_handlers
from .realtime import RealtimeGateway, create_socket_server

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: EventThreadsApp = app.state.services
    services.sweeper.start()
    logger.info("EventThreads API started")
    try:
        yield
    finally:
        await services.sweeper.stop()
        logger.info("EventThreads API stopped")


def create_app(
    settings: Optional[Settings] = None,
    sio: Optional[Any] = None,
    services: Optional[EventThreadsApp] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    sio is the Socket.IO server the gateway registers on and the services
    broadcast through; a new AsyncServer is created when omitted.
    """
    services = services or EventThreadsApp(settings)
    cfg = services.settings

    app = FastAPI(
        title="EventThreads API",
        description="Time-boxed discussion threads with realtime chat",
        version=__version__,
        lifespan=lifespan,
    )

    origins = cfg.server.cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        max_age=86400,
    )
    register_exception_handlers(app)

    prefix = cfg.server.api_prefix.rstrip("/")
    app.include_router(health_router, prefix=prefix)
    app.include_router(auth_router, prefix=prefix)
    app.include_router(threads_router, prefix=prefix)
    app.include_router(admin_router, prefix=prefix)

    if sio is None:
        sio = create_socket_server("*" if "*" in origins else origins)
    services.broadcaster.bind(sio)
    gateway = RealtimeGateway(sio, services.thread_service)
    gateway.register()

    app.state.services = services
    app.state.sio = sio
    app.state.gateway = gateway
    return app


def create_asgi_app(settings: Optional[Settings] = None) -> socketio.ASGIApp:
    """FastAPI wrapped by the Socket.IO ASGI app (serves /socket.io/)."""
    app = create_app(settings)
    return socketio.ASGIApp(app.state.sio, other_asgi_app=app)
