"""HTTP command surface for threads."""

import asyncio
from datetime import timedelta

from fastapi.testclient import TestClient

from conftest import ADMIN_ID, FakeSocketServer, admin_headers, expire_thread, future_iso, thread_body
from eventthreads.app import EventThreadsApp
from eventthreads.utils.config import AdminSettings
from eventthreads.utils.exceptions import NotFoundError
from web.main import create_app


def create_thread(client, **overrides):
    res = client.post("/api/threads", json=thread_body(**overrides))
    assert res.status_code == 201, res.text
    return res.json()["thread"]


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_create_thread_seeds_creator_and_welcome(client, sio):
    thread = create_thread(client)

    assert thread["creatorId"] == "alice-id"
    assert thread["creator"] == "alice"
    assert thread["members"] == ["alice-id"]
    assert thread["pendingRequests"] == []
    assert thread["requiresApproval"] is True
    assert thread["tags"] == ["running", "outdoors"]
    assert len(thread["chat"]) == 1
    assert thread["chat"][0]["message"] == "Thread created! Welcome everyone 👋"
    assert thread["chat"][0]["userId"] == "alice-id"

    created = sio.events("threadCreated", to=None)
    assert len(created) == 1
    assert created[0]["data"]["id"] == thread["id"]
    assert created[0]["data"]["chat"] == []


def test_create_thread_validation(client):
    res = client.post("/api/threads", json=thread_body(title="  "))
    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "title is required"}

    res = client.post("/api/threads", json=thread_body(expiresAt="2001-01-01T00:00:00Z"))
    assert res.status_code == 400
    assert "expiresAt" in res.json()["message"]

    res = client.post("/api/threads", json=thread_body(expiresAt="not-a-date"))
    assert res.status_code == 400
    assert res.json()["success"] is False
    assert "expiresAt" in res.json()["message"]

    body = thread_body()
    del body["creatorId"]
    res = client.post("/api/threads", json=body)
    assert res.status_code == 400
    assert res.json()["message"] == "creatorId is required"


def test_listing_gates_chat_by_membership(client):
    thread = create_thread(client)

    as_member = client.get("/api/threads", params={"userId": "alice-id"}).json()
    assert as_member["success"] is True
    listed = next(t for t in as_member["threads"] if t["id"] == thread["id"])
    assert len(listed["chat"]) == 1

    as_stranger = client.get("/api/threads", params={"userId": "mallory"}).json()
    listed = next(t for t in as_stranger["threads"] if t["id"] == thread["id"])
    assert listed["chat"] == []
    assert listed["title"] == "Sunset run"

    anonymous = client.get("/api/threads").json()
    assert anonymous["threads"][0]["chat"] == []


def test_listing_is_newest_first(client):
    first = create_thread(client, title="First")
    second = create_thread(client, title="Second")
    ids = [t["id"] for t in client.get("/api/threads").json()["threads"]]
    assert ids.index(second["id"]) < ids.index(first["id"])


def test_get_single_thread(client):
    thread = create_thread(client)
    res = client.get(f"/api/threads/{thread['id']}", params={"userId": "mallory"})
    assert res.status_code == 200
    assert res.json()["thread"]["chat"] == []

    res = client.get("/api/threads/does-not-exist")
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Thread not found"}


def test_update_thread_creator_only(client, sio):
    thread = create_thread(client)
    url = f"/api/threads/{thread['id']}"

    res = client.put(url, json={"userId": "mallory", "title": "Hijacked"})
    assert res.status_code == 403
    assert res.json()["success"] is False

    res = client.put(url, json={"userId": "alice-id", "title": "Sunrise run", "tags": ["early", " ", "early"]})
    assert res.status_code == 200
    body = res.json()
    assert body["thread"]["title"] == "Sunrise run"
    assert body["thread"]["tags"] == ["early", "early"]
    assert body["thread"]["location"] == "Riverside park"

    updated = sio.events("threadUpdated", to=None)
    assert updated[-1]["data"]["title"] == "Sunrise run"

    res = client.put("/api/threads/missing", json={"userId": "alice-id", "title": "x"})
    assert res.status_code == 404


def test_delete_by_creator_cascades(client, services, sio):
    thread = create_thread(client)
    url = f"/api/threads/{thread['id']}"

    res = client.request("DELETE", url, json={"userId": "mallory"})
    assert res.status_code == 403

    res = client.request("DELETE", url, json={"userId": "alice-id"})
    assert res.status_code == 200
    assert services.thread_store.get(thread["id"]) is None
    assert services.ledger.history(thread["id"]) == []
    deleted = sio.events("threadDeleted", to=thread["id"])
    assert deleted[-1]["data"] == {"threadId": thread["id"], "reason": "deleted"}

    res = client.request("DELETE", url, json={"userId": "alice-id"})
    assert res.status_code == 404


def test_delete_by_admin_session(client, services):
    thread = create_thread(client)
    res = client.delete(f"/api/threads/{thread['id']}", headers=admin_headers(client))
    assert res.status_code == 200
    assert services.thread_store.get(thread["id"]) is None


def test_claimed_admin_id_cannot_delete(client, services):
    thread = create_thread(client)
    url = f"/api/threads/{thread['id']}"

    assert client.delete(url, params={"userId": ADMIN_ID}).status_code == 403
    assert client.request("DELETE", url, json={"userId": ADMIN_ID}).status_code == 403
    assert services.thread_store.get(thread["id"]) is not None


def test_unconfigured_admin_has_no_privileges(settings):
    settings.admin = AdminSettings(user_id=ADMIN_ID)
    services = EventThreadsApp(settings, configure_logging=False)
    client = TestClient(create_app(services=services, sio=FakeSocketServer()))
    thread = create_thread(client)
    client.post(
        f"/api/threads/{thread['id']}/messages",
        json={"userId": "alice-id", "user": "alice", "message": "secret"},
    )

    res = client.get("/api/admin/dashboard", params={"userId": ADMIN_ID})
    assert res.status_code == 401
    assert "secret" not in res.text

    res = client.request("DELETE", f"/api/threads/{thread['id']}", json={"userId": ADMIN_ID})
    assert res.status_code == 403

    # a session stored for the admin id is not honoured either
    token = services.session_store.create_session(ADMIN_ID, timedelta(hours=1))
    res = client.get("/api/admin/dashboard", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert services.thread_store.get(thread["id"]) is not None


def test_join_flow_over_http(client, services):
    thread = create_thread(client)
    url = f"/api/threads/{thread['id']}"

    res = client.post(f"{url}/join", json={"userId": "bob-id"})
    assert res.status_code == 200
    assert res.json()["status"] == "pending"

    res = client.post(f"{url}/requests", json={"userId": "bob-id", "approve": True, "currentUserId": "bob-id"})
    assert res.status_code == 403

    res = client.post(f"{url}/requests", json={"userId": "bob-id", "approve": True, "currentUserId": "alice-id"})
    assert res.status_code == 200
    assert res.json()["message"] == "User approved"

    res = client.post(f"{url}/join", json={"userId": "bob-id"})
    assert res.status_code == 400
    assert res.json()["message"] == "Already a member of this thread"

    res = client.post("/api/threads/missing/requests", json={"userId": "bob-id", "approve": True, "currentUserId": "alice-id"})
    assert res.status_code == 404


def test_fast_join_over_http(client, services):
    thread = create_thread(client, requiresApproval=False)
    res = client.post(f"/api/threads/{thread['id']}/join", json={"userId": "bob-id", "username": "bob"})
    assert res.status_code == 200
    assert res.json()["joined"] is True
    assert "bob-id" in services.thread_store.get(thread["id"]).members


def test_send_message_requires_membership(client, services, sio):
    thread = create_thread(client)
    url = f"/api/threads/{thread['id']}/messages"

    res = client.post(url, json={"userId": "mallory", "user": "mallory", "message": "hi"})
    assert res.status_code == 403
    assert len(services.ledger.history(thread["id"])) == 1

    res = client.post(url, json={"userId": "alice-id", "user": "alice", "message": "  see you at 6  "})
    assert res.status_code == 201
    message = res.json()["message"]
    assert message["message"] == "see you at 6"
    assert message["threadId"] == thread["id"]
    assert message["user"] == message["username"] == "alice"

    broadcast = sio.events("newMessage", to=thread["id"])
    assert broadcast[-1]["data"] == message

    res = client.post(url, json={"userId": "alice-id", "user": "alice", "message": ""})
    assert res.status_code == 400


def test_message_history_endpoint(client):
    thread = create_thread(client)
    url = f"/api/threads/{thread['id']}/messages"
    client.post(url, json={"userId": "alice-id", "user": "alice", "message": "second"})

    res = client.get(url, params={"userId": "alice-id"})
    assert res.status_code == 200
    assert [m["message"] for m in res.json()["messages"]] == [
        "Thread created! Welcome everyone 👋",
        "second",
    ]

    res = client.get(url, params={"userId": "mallory"})
    assert res.status_code == 403


def test_expired_thread_is_hidden(client, services):
    thread = create_thread(client)
    expire_thread(services, thread["id"])

    listed = client.get("/api/threads", params={"userId": "alice-id"}).json()["threads"]
    assert all(t["id"] != thread["id"] for t in listed)

    assert client.get(f"/api/threads/{thread['id']}").status_code == 404
    res = client.get(f"/api/threads/{thread['id']}/messages", params={"userId": "alice-id"})
    assert res.status_code == 404
    res = client.post(
        f"/api/threads/{thread['id']}/messages",
        json={"userId": "alice-id", "user": "alice", "message": "anyone?"},
    )
    assert res.status_code == 404


def test_broadcast_failure_does_not_fail_command(client, services, sio):
    sio.fail_emits = True
    res = client.post("/api/threads", json=thread_body(expiresAt=future_iso(1)))
    assert res.status_code == 201
    thread_id = res.json()["thread"]["id"]
    assert services.thread_store.get(thread_id) is not None


def test_unknown_route_uses_envelope(client):
    res = client.get("/api/nothing-here")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_message_racing_a_delete_never_outlives_it(client, services, sio):
    thread = create_thread(client)
    service = services.thread_service

    async def race():
        return await asyncio.gather(
            service.post_message(thread["id"], "alice-id", "alice", "last words"),
            service.delete_thread(thread["id"], "alice-id"),
            return_exceptions=True,
        )

    posted, deleted = asyncio.run(race())

    assert deleted is None
    assert services.ledger.history(thread["id"]) == []
    order = [e["event"] for e in sio.emitted if e["to"] == thread["id"]]
    if isinstance(posted, NotFoundError):
        assert "newMessage" not in order
    else:
        assert order.index("newMessage") < order.index("threadDeleted")
