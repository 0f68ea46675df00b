"""Socket.IO gateway handlers, exercised through the fake server."""

import asyncio

from conftest import thread_body


def create_thread(client, **overrides):
    return client.post("/api/threads", json=thread_body(**overrides)).json()["thread"]


def trigger(sio, event, sid, data=None):
    return asyncio.run(sio.trigger(event, sid, data))


def test_gateway_registers_handlers(sio, app):
    assert {"connect", "disconnect", "identify", "joinThread", "leaveThread", "sendMessage"} <= set(
        sio.handlers
    )


def test_identify_enters_private_room(sio, app):
    trigger(sio, "identify", "sid-1", {"userId": "alice-id"})
    assert "user:alice-id" in sio.rooms["sid-1"]

    trigger(sio, "identify", "sid-2", {})
    assert sio.rooms["sid-2"] == set()


def test_member_joins_thread_room(client, sio):
    thread = create_thread(client)
    trigger(sio, "joinThread", "sid-1", {"threadId": thread["id"], "userId": "alice-id"})
    assert thread["id"] in sio.rooms["sid-1"]
    assert sio.events("unauthorized") == []


def test_non_member_cannot_join_room(client, sio):
    thread = create_thread(client)
    trigger(sio, "joinThread", "sid-9", {"threadId": thread["id"], "userId": "mallory"})

    assert thread["id"] not in sio.rooms["sid-9"]
    denied = sio.events("unauthorized", to="sid-9")
    assert denied[-1]["data"]["message"] == "You are not authorized to join this thread"


def test_join_room_for_missing_thread_or_fields(sio, app):
    trigger(sio, "joinThread", "sid-1", {"threadId": "missing", "userId": "alice-id"})
    assert sio.events("unauthorized", to="sid-1")[-1]["data"]["message"] == "Thread does not exist"

    trigger(sio, "joinThread", "sid-2", {"threadId": "missing"})
    assert sio.events("unauthorized", to="sid-2")[-1]["data"]["message"] == "Missing threadId or userId"

    trigger(sio, "joinThread", "sid-3", "not-a-dict")
    assert sio.events("unauthorized", to="sid-3")


def test_leave_thread_room(client, sio):
    thread = create_thread(client)
    trigger(sio, "joinThread", "sid-1", {"threadId": thread["id"], "userId": "alice-id"})
    trigger(sio, "leaveThread", "sid-1", {"threadId": thread["id"]})
    assert thread["id"] not in sio.rooms["sid-1"]


def test_member_send_message_is_broadcast(client, services, sio):
    thread = create_thread(client)
    trigger(
        sio,
        "sendMessage",
        "sid-1",
        {"threadId": thread["id"], "userId": "alice-id", "username": "alice", "message": "on my way"},
    )

    history = services.ledger.history(thread["id"])
    assert history[-1].message == "on my way"
    broadcast = sio.events("newMessage", to=thread["id"])
    assert broadcast[-1]["data"] == history[-1].to_public()


def test_non_member_send_is_rejected_and_not_persisted(client, services, sio):
    thread = create_thread(client)
    before = len(services.ledger.history(thread["id"]))

    trigger(
        sio,
        "sendMessage",
        "sid-9",
        {"threadId": thread["id"], "userId": "mallory", "username": "mallory", "message": "let me in"},
    )

    assert len(services.ledger.history(thread["id"])) == before
    assert sio.events("newMessage") == []
    denied = sio.events("unauthorized", to="sid-9")
    assert denied[-1]["data"]["message"] == "You are not authorized to post in this thread"


def test_room_membership_does_not_grant_later_sends(client, services, sio):
    thread = create_thread(client)
    trigger(sio, "joinThread", "sid-1", {"threadId": thread["id"], "userId": "alice-id"})

    trigger(
        sio,
        "sendMessage",
        "sid-1",
        {"threadId": thread["id"], "userId": "mallory", "username": "mallory", "message": "spoofed"},
    )

    assert all(m.message != "spoofed" for m in services.ledger.history(thread["id"]))
    assert sio.events("unauthorized", to="sid-1")


def test_empty_message_reports_validation_error(client, sio):
    thread = create_thread(client)
    trigger(
        sio,
        "sendMessage",
        "sid-1",
        {"threadId": thread["id"], "userId": "alice-id", "username": "alice", "message": "   "},
    )
    assert sio.events("unauthorized", to="sid-1")[-1]["data"]["message"] == "message is required"


def test_socket_and_http_payloads_match(client, sio):
    thread = create_thread(client)
    res = client.post(
        f"/api/threads/{thread['id']}/messages",
        json={"userId": "alice-id", "user": "alice", "message": "via http"},
    )
    over_http = res.json()["message"]
    trigger(
        sio,
        "sendMessage",
        "sid-1",
        {"threadId": thread["id"], "userId": "alice-id", "username": "alice", "message": "via socket"},
    )
    over_socket = sio.events("newMessage", to=thread["id"])[-1]["data"]

    assert set(over_http) == set(over_socket)


def test_join_request_reaches_creator_private_room(client, sio):
    thread = create_thread(client)
    client.post(f"/api/threads/{thread['id']}/join", json={"userId": "bob-id", "username": "bob"})

    notified = sio.events("joinRequest", to="user:alice-id")
    assert notified[-1]["data"]["threadId"] == thread["id"]
    assert notified[-1]["data"]["threadTitle"] == "Sunset run"
