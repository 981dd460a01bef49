from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from nexus.api.errors import PermissionDenied, ValidationError
from nexus.crud import chat as chat_crud
from nexus.enums import ChatFeedState
from nexus.services.chat_feed import ChatFeed
from nexus.services.chat_hub import ChatEvent, InMemoryChatHub, get_chat_hub


def _event(event_id: int, content: str, room: str = "global") -> ChatEvent:
    return ChatEvent(
        id=event_id,
        room=room,
        user_id=1,
        display_name="Ada",
        content=content,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


@pytest.mark.parametrize(
    ("content", "ok"),
    [("", False), ("   ", False), ("a", True), ("a" * 500, True), ("a" * 501, False)],
)
def test_message_length_boundaries(content, ok):
    if ok:
        assert chat_crud.normalize_content(content) == content
    else:
        with pytest.raises(ValidationError) as exc_info:
            chat_crud.normalize_content(content)
        assert exc_info.value.code == 400301


def test_rest_send_and_history(client, make_user):
    user, headers = make_user()

    r = client.post(
        "/api/v1/chat/rooms/global/messages", headers=headers, json={"content": "  hi all  "}
    )
    assert r.status_code == 200
    sent = r.json()["data"]
    assert sent["content"] == "hi all"
    assert sent["user_id"] == user.id

    r = client.post(
        "/api/v1/chat/rooms/global/messages", headers=headers, json={"content": "a" * 501}
    )
    assert r.status_code == 422

    r = client.get("/api/v1/chat/rooms/global/messages", headers=headers)
    assert [m["id"] for m in r.json()["data"]] == [sent["id"]]


def test_unknown_room_rejected(client, make_user):
    _, headers = make_user()
    r = client.get("/api/v1/chat/rooms/nowhere/messages", headers=headers)
    assert r.status_code == 400
    assert r.json()["code"] == 400303


def test_direct_room_membership(client, make_user):
    alice, alice_headers = make_user()
    bob, _ = make_user()
    _, eve_headers = make_user()

    r = client.post(f"/api/v1/chat/rooms/direct/{bob.id}", headers=alice_headers)
    room = r.json()["data"]["room"]
    assert room == chat_crud.dm_room(bob.id, alice.id)

    r = client.post(
        f"/api/v1/chat/rooms/{room}/messages", headers=alice_headers, json={"content": "hey"}
    )
    assert r.status_code == 200

    r = client.get(f"/api/v1/chat/rooms/{room}/messages", headers=eve_headers)
    assert r.status_code == 403
    assert r.json()["data"] == {"redirect_to": "/"}


def test_dm_room_helpers():
    assert chat_crud.dm_room(9, 3) == "dm:3:9"
    with pytest.raises(ValidationError):
        chat_crud.dm_room(3, 3)
    with pytest.raises(PermissionDenied):
        chat_crud.check_room_access(room="dm:3:9", user_id=4)
    with pytest.raises(ValidationError):
        chat_crud.check_room_access(room="dm:9:3", user_id=9)


def test_feed_skips_messages_already_in_snapshot():
    hub = InMemoryChatHub()

    async def scenario():
        first, second, third = _event(1, "a"), _event(2, "b"), _event(3, "c")

        async def load_baseline():
            # arrives while the snapshot is loading and is also part of it
            hub.publish(second)
            return [first, second]

        feed = ChatFeed(hub, "global", load_baseline)
        snapshot = await feed.open()
        assert feed.state == ChatFeedState.live
        hub.publish(first)
        hub.publish(third)
        hub.publish(third)

        delivered = await feed.next_event(timeout=1.0)
        leftover = await feed.next_event(timeout=0.05)
        subscribers = hub.subscriber_count("global")
        await feed.close()
        return snapshot, delivered, leftover, subscribers

    snapshot, delivered, leftover, subscribers = asyncio.run(scenario())
    assert [e.id for e in snapshot] == [1, 2]
    assert delivered.id == 3
    assert leftover is None
    assert subscribers == 1
    assert hub.subscriber_count("global") == 0


def test_feed_failed_baseline_unsubscribes():
    hub = InMemoryChatHub()

    async def load_baseline():
        raise RuntimeError("database down")

    async def scenario():
        feed = ChatFeed(hub, "global", load_baseline)
        with pytest.raises(RuntimeError):
            await feed.open()
        return feed

    feed = asyncio.run(scenario())
    assert feed.state == ChatFeedState.disconnected
    assert hub.subscriber_count("global") == 0


def test_next_event_requires_live_feed():
    feed = ChatFeed(InMemoryChatHub(), "global", lambda: None)  # type: ignore[arg-type]
    with pytest.raises(RuntimeError):
        asyncio.run(feed.next_event(timeout=0.01))


def test_chat_event_payload_round_trip():
    event = _event(7, "hello")
    assert ChatEvent.from_payload(event.to_payload()) == event


def test_websocket_snapshot_then_live_once(client, make_user):
    user, headers = make_user()
    token = headers["Authorization"].removeprefix("Bearer ")
    r = client.post(
        "/api/v1/chat/rooms/global/messages", headers=headers, json={"content": "before"}
    )
    before_id = r.json()["data"]["id"]

    with client.websocket_connect(f"/api/v1/chat/rooms/global/ws?token={token}") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert [m["id"] for m in snapshot["messages"]] == [before_id]

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}

        ws.send_json({"type": "send", "content": "hello"})
        ws.send_json({"type": "send", "content": "bye"})
        frames: list[dict] = []
        while len([f for f in frames if f["type"] == "ack"]) < 2 or not any(
            f["type"] == "message" and f["message"]["content"] == "bye" for f in frames
        ):
            frames.append(ws.receive_json())
            assert len(frames) <= 4

    hello = [f for f in frames if f["type"] == "message" and f["message"]["content"] == "hello"]
    assert len(hello) == 1
    assert hello[0]["message"]["user_id"] == user.id
    acks = [f["id"] for f in frames if f["type"] == "ack"]
    assert hello[0]["message"]["id"] == acks[0]


def test_second_viewer_receives_message_once(client, make_user):
    _, sender_headers = make_user()
    _, viewer_headers = make_user()
    token = viewer_headers["Authorization"].removeprefix("Bearer ")

    with client.websocket_connect(f"/api/v1/chat/rooms/global/ws?token={token}") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert snapshot["messages"] == []

        r = client.post(
            "/api/v1/chat/rooms/global/messages", headers=sender_headers, json={"content": "hello"}
        )
        inserted_id = r.json()["data"]["id"]

        frame = ws.receive_json()
        assert frame["type"] == "message"
        assert frame["message"]["id"] == inserted_id
        assert frame["message"]["content"] == "hello"

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_websocket_rejects_unsubscribed_user(client, make_user):
    _, headers = make_user(subscribed=False)
    token = headers["Authorization"].removeprefix("Bearer ")

    with client.websocket_connect(f"/api/v1/chat/rooms/global/ws?token={token}") as ws:
        frame = ws.receive_json()
    assert frame["type"] == "error"
    assert frame["code"] == 403001
    assert frame["data"] == {"redirect_to": "/subscription"}


def test_websocket_rejects_missing_token(client):
    with client.websocket_connect("/api/v1/chat/rooms/global/ws") as ws:
        frame = ws.receive_json()
    assert frame["code"] == 401001


def test_default_hub_is_in_memory():
    assert isinstance(get_chat_hub(), InMemoryChatHub)


def test_rest_length_counts_after_trimming(client, make_user):
    _, headers = make_user()
    r = client.post(
        "/api/v1/chat/rooms/games/messages", headers=headers, json={"content": "a" * 500 + "   "}
    )
    assert r.status_code == 200
    assert len(r.json()["data"]["content"]) == 500

    r = client.post("/api/v1/chat/rooms/games/messages", headers=headers, json={"content": "   "})
    assert r.status_code == 422
