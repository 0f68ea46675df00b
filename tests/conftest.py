"""Shared fixtures: isolated data directory, app container, fake Socket.IO server."""

from collections import defaultdict
from datetime import timedelta
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from eventthreads.app import EventThreadsApp
from eventthreads.utils.config import (
    AdminSettings,
    AuthSettings,
    ExpirySettings,
    LoggingSettings,
    Settings,
    StorageSettings,
)
from eventthreads.utils.timestamps import isoformat_z, utc_now
from web.main import create_app


ADMIN_USERNAME = "root_admin"
ADMIN_PASSWORD = "admin-pass-123"
ADMIN_ID = "admin_001"


class FakeSocketServer:
    """Records what the gateway and broadcaster do with the Socket.IO server."""

    def __init__(self):
        self.handlers: Dict[str, Any] = {}
        self.emitted: List[Dict[str, Any]] = []
        self.rooms: Dict[str, set] = defaultdict(set)
        self.fail_emits = False

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler
        return handler

    async def emit(self, event, data=None, to=None, room=None, **kwargs):
        if self.fail_emits:
            raise ConnectionError("transport down")
        self.emitted.append({"event": event, "data": data, "to": to or room})

    async def enter_room(self, sid, room, namespace=None):
        self.rooms[sid].add(room)

    async def leave_room(self, sid, room, namespace=None):
        self.rooms[sid].discard(room)

    async def trigger(self, event, sid, data=None):
        return await self.handlers[event](sid, data)

    def events(self, name: str, to: Optional[str] = "__any__") -> List[Dict[str, Any]]:
        return [
            e for e in self.emitted
            if e["event"] == name and (to == "__any__" or e["to"] == to)
        ]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        storage=StorageSettings(data_dir=str(tmp_path / "data")),
        logging=LoggingSettings(level="WARNING", format="console", file_path=None),
        auth=AuthSettings(bcrypt_rounds=4),
        admin=AdminSettings(user_id=ADMIN_ID, username=ADMIN_USERNAME, password=ADMIN_PASSWORD),
        expiry=ExpirySettings(sweep_interval_seconds=3600),
    )


@pytest.fixture
def services(settings) -> EventThreadsApp:
    return EventThreadsApp(settings, configure_logging=False)


@pytest.fixture
def sio(services) -> FakeSocketServer:
    server = FakeSocketServer()
    services.broadcaster.bind(server)
    return server


@pytest.fixture
def app(services, sio):
    return create_app(services=services, sio=sio)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def future_iso(hours: int = 4) -> str:
    return isoformat_z(utc_now() + timedelta(hours=hours))


def thread_body(creator_id: str = "alice-id", creator: str = "alice", **overrides) -> Dict[str, Any]:
    body = {
        "title": "Sunset run",
        "description": "Easy 5k along the river",
        "creator": creator,
        "creatorId": creator_id,
        "location": "Riverside park",
        "tags": ["running", "outdoors"],
        "expiresAt": future_iso(),
    }
    body.update(overrides)
    return body


def expire_thread(services: EventThreadsApp, thread_id: str) -> None:
    """Push a stored thread's expiry into the past."""
    with services.thread_store.mutate() as doc:
        for item in doc["threads"]:
            if item["id"] == thread_id:
                item["expires_at"] = "2000-01-01T00:00:00+00:00"


def admin_headers(client: TestClient) -> Dict[str, str]:
    """Log in as the configured admin and return a Bearer header."""
    res = client.post(
        "/api/auth/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD, "isAdmin": True},
    )
    assert res.status_code == 200, res.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {res.json()['token']}"}
