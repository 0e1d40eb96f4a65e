import pytest
from fastapi import WebSocketDisconnect

from pitchlink.modules.connections import service as connections
from pitchlink.modules.conversations import service as conversations
from pitchlink.realtime.hub import RealtimeNotifier, conversation_channel, user_channel
from pitchlink.schemas.enums import RealtimeEvent, Role

from conftest import auth


def test_publish_reaches_only_the_channel():
    hub = RealtimeNotifier()
    alice, bob = [], []
    hub.subscribe_user("alice", alice.append)
    hub.subscribe_user("bob", bob.append)

    delivered = hub.emit_to_user("alice", RealtimeEvent.notification, {"id": "n1"})

    assert delivered == 1
    assert bob == []
    assert alice[0].as_frame() == {
        "event": "notification",
        "channel": user_channel("alice"),
        "data": {"id": "n1"},
    }


def test_failing_subscriber_does_not_stop_others():
    hub = RealtimeNotifier()
    received = []

    def broken(event):
        raise RuntimeError("socket gone")

    hub.subscribe_conversation("c1", broken)
    hub.subscribe_conversation("c1", received.append)

    delivered = hub.emit_to_conversation("c1", RealtimeEvent.message_received, {"id": "m1"})

    assert delivered == 1
    assert received[0].channel == conversation_channel("c1")


def test_unsubscribe():
    hub = RealtimeNotifier()
    received = []
    sub = hub.subscribe_user("alice", received.append)

    hub.unsubscribe(sub)
    hub.unsubscribe(sub)

    assert hub.emit_to_user("alice", RealtimeEvent.notification, {}) == 0
    assert hub.subscriber_count(user_channel("alice")) == 0


def test_unknown_event_name_is_rejected():
    hub = RealtimeNotifier()
    with pytest.raises(ValueError):
        hub.publish(user_channel("alice"), "not_an_event", {})


@pytest.fixture()
def chat(db, make_user):
    a = make_user("founder", Role.initiator)
    b = make_user("investor", Role.counterparty)
    conv = conversations.ensure_for_connection(db, connections.create(db, a.id, b.id))
    return a, b, conv


def test_socket_receives_messages_after_join(client, chat):
    a, b, conv = chat

    with client.websocket_connect(f"/v1/ws?user_id={a.id}") as ws:
        assert ws.receive_json()["event"] == "connected"

        ws.send_json({"action": "join_chat", "conversation_id": conv.id})
        assert ws.receive_json() == {"event": "joined", "data": {"conversation_id": conv.id}}

        res = client.post("/v1/messages", headers=auth(b), data={"conversation_id": conv.id, "text": "hello"})
        assert res.status_code == 201

        frame = ws.receive_json()
        assert frame["event"] == RealtimeEvent.message_received.value
        assert frame["data"]["text"] == "hello"


def test_socket_typing_is_relayed_to_room(client, chat):
    a, _, conv = chat

    with client.websocket_connect(f"/v1/ws?user_id={a.id}") as ws:
        ws.receive_json()
        ws.send_json({"action": "join_chat", "conversation_id": conv.id})
        ws.receive_json()

        ws.send_json({"action": "typing", "conversation_id": conv.id})
        frame = ws.receive_json()

        assert frame["event"] == "typing"
        assert frame["channel"] == conversation_channel(conv.id)
        assert frame["data"]["user_id"] == a.id


def test_socket_join_requires_membership(client, chat, make_user):
    _, _, conv = chat
    outsider = make_user("outsider")

    with client.websocket_connect(f"/v1/ws?user_id={outsider.id}") as ws:
        ws.receive_json()
        ws.send_json({"action": "join_chat", "conversation_id": conv.id})

        frame = ws.receive_json()
        assert frame["event"] == "error"


def test_socket_rejects_malformed_frames(client, chat):
    a, _, conv = chat

    with client.websocket_connect(f"/v1/ws?user_id={a.id}") as ws:
        ws.receive_json()

        ws.send_text("not json")
        assert ws.receive_json()["event"] == "error"

        ws.send_json(["join_chat", conv.id])
        assert ws.receive_json()["event"] == "error"

        ws.send_json({"action": "join_chat", "conversation_id": conv.id})
        assert ws.receive_json()["event"] == "joined"


def test_socket_requires_identity(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/v1/ws"):
            pass
