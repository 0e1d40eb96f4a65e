import pytest

from pitchlink.core.errors import AuthorizationError, NotFoundError, StateError, UpstreamError, ValidationError
from pitchlink.models.conversation import Conversation, ConversationMember
from pitchlink.models.message import Message
from pitchlink.modules.blocks import service as blocks
from pitchlink.modules.connections import service as connections
from pitchlink.modules.conversations import service as conversations
from pitchlink.modules.messages import service as messages
from pitchlink.modules.messages.service import SendMessageCommand
from pitchlink.realtime.hub import conversation_channel
from pitchlink.schemas.enums import RealtimeEvent, Role
from pitchlink.services.storage import ObjectStorage, PendingUpload

from conftest import auth


class BrokenStorage(ObjectStorage):
    def store(self, data, filename, mime_type, folder):
        raise UpstreamError("Upload failed: bucket unavailable")


@pytest.fixture()
def connected(db, make_user):
    a = make_user("founder", Role.initiator)
    b = make_user("investor", Role.counterparty)
    conn = connections.create(db, a.id, b.id)
    conv = conversations.ensure_for_connection(db, conn)
    return a, b, conn, conv


def test_send_by_conversation(db, notifier, storage, connected, record):
    a, b, conn, conv = connected
    room = []
    notifier.subscribe_conversation(conv.id, room.append)
    inbox = record(b)

    result = messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, conversation_id=conv.id, text="hello"))

    assert result.is_request is False
    assert result.message.connection_id == conn.id
    assert result.message.read_by == [a.id]
    assert result.conversation.last_message_text == "hello"
    assert conversations.get_member(db, conv.id, b.id).unread_count == 1
    assert conversations.get_member(db, conv.id, a.id).unread_count == 0
    assert [e.name for e in room] == [RealtimeEvent.message_received.value]
    assert inbox[0].data["id"] == result.message.id


def test_send_by_receiver_uses_active_connection(db, notifier, storage, connected):
    a, b, conn, conv = connected

    result = messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=b.id, receiver_id=a.id, text="hey"))

    assert result.conversation.id == conv.id
    assert result.connection.id == conn.id


def test_send_to_stranger_becomes_request(db, notifier, storage, make_user):
    a = make_user("a", Role.counterparty)
    b = make_user("b", Role.initiator)

    result = messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, receiver_id=b.id, text="hi"))

    assert result.is_request is True
    assert result.message.is_first_message is True
    assert result.conversation is None


def test_send_requires_target(db, notifier, storage, make_user):
    a = make_user("a")
    with pytest.raises(ValidationError):
        messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, text="hi"))


def test_send_requires_content(db, notifier, storage, connected):
    a, _, _, conv = connected
    with pytest.raises(ValidationError):
        messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, conversation_id=conv.id, text="  "))


def test_send_on_blocked_connection(db, notifier, storage, connected):
    a, b, conn, conv = connected
    blocks.block_user(db, b.id, a.id)

    with pytest.raises(StateError) as exc:
        messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, conversation_id=conv.id, text="hi"))
    assert exc.value.flag == "blocked"


def test_send_by_outsider(db, notifier, storage, connected, make_user):
    _, _, conn, conv = connected
    outsider = make_user("outsider")

    with pytest.raises(AuthorizationError):
        messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=outsider.id, conversation_id=conv.id, text="hi"))
    with pytest.raises(AuthorizationError):
        messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=outsider.id, connection_id=conn.id, text="hi"))


def test_send_unknown_connection(db, notifier, storage, make_user):
    a = make_user("a")
    with pytest.raises(NotFoundError):
        messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, connection_id="missing", text="hi"))


def test_send_repairs_orphaned_conversation(db, notifier, storage, connected):
    a, b, conn, conv = connected
    conv.connection_id = None
    db.commit()

    result = messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, conversation_id=conv.id, text="still here"))

    assert result.conversation.id == conv.id
    assert result.conversation.connection_id == conn.id
    assert db.query(Conversation).count() == 1


def test_attachment_only_message(db, notifier, storage, connected):
    a, _, _, conv = connected
    upload = PendingUpload(filename="photo.PNG", mime_type="image/png", data=b"\x89PNG")

    result = messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, conversation_id=conv.id, uploads=[upload]))

    attachment = result.message.attachments[0]
    assert attachment["type"] == "image"
    assert attachment["url"].startswith("/uploads/chat-files/")
    assert attachment["url"].endswith(".png")
    assert result.conversation.last_message_text == "Attachment"


def test_failed_upload_persists_nothing(db, notifier, connected):
    a, _, _, conv = connected
    upload = PendingUpload(filename="deck.pdf", mime_type="application/pdf", data=b"%PDF")

    with pytest.raises(UpstreamError):
        messages.send_message(db, notifier, BrokenStorage(), SendMessageCommand(sender_id=a.id, conversation_id=conv.id, text="deck", uploads=[upload]))

    assert db.query(Message).count() == 0


def test_delete_message(db, notifier, storage, connected):
    a, b, _, conv = connected
    result = messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, conversation_id=conv.id, text="oops"))
    room = []
    notifier.subscribe_conversation(conv.id, room.append)

    with pytest.raises(AuthorizationError):
        messages.delete_message(db, notifier, result.message.id, b.id)

    message_id = result.message.id
    messages.delete_message(db, notifier, message_id, a.id)

    assert db.get(Message, message_id) is None
    assert room[0].name == RealtimeEvent.message_deleted.value
    assert room[0].channel == conversation_channel(conv.id)


def test_send_route_multipart(client, connected):
    a, _, _, conv = connected

    res = client.post(
        "/v1/messages",
        headers=auth(a),
        data={"conversation_id": conv.id, "text": "see attached"},
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
    )

    assert res.status_code == 201
    body = res.json()
    assert body["is_request"] is False
    assert body["conversation_id"] == conv.id
    assert body["message"]["attachments"][0]["type"] == "document"


def test_send_route_blocked_flag(client, db, connected):
    a, b, _, conv = connected
    blocks.block_user(db, b.id, a.id)

    res = client.post("/v1/messages", headers=auth(a), data={"conversation_id": conv.id, "text": "hi"})

    assert res.status_code == 403
    assert res.json()["blocked"] is True


def test_mutual_follow_does_not_skip_pending_request(db, notifier, storage, make_user, follow):
    a = make_user("a", Role.counterparty)
    b = make_user("b", Role.initiator)
    follow(a, b)
    first = messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, receiver_id=b.id, text="hi"))
    assert first.is_request is True

    follow(b, a)

    with pytest.raises(StateError) as exc:
        messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=a.id, receiver_id=b.id, text="again"))
    assert exc.value.flag == "requestPending"
    assert connections.find_between(db, a.id, b.id) is None


def test_orphan_repair_does_not_undo_block(db, notifier, storage, make_user):
    a = make_user("a", Role.initiator)
    b = make_user("b", Role.counterparty)
    conv = Conversation(connection_id=None)
    db.add(conv)
    db.flush()
    db.add_all([
        ConversationMember(conversation_id=conv.id, user_id=a.id),
        ConversationMember(conversation_id=conv.id, user_id=b.id),
    ])
    db.commit()
    blocks.block_user(db, a.id, b.id)
    room = []
    notifier.subscribe_conversation(conv.id, room.append)

    with pytest.raises(StateError) as exc:
        messages.send_message(db, notifier, storage, SendMessageCommand(sender_id=b.id, conversation_id=conv.id, text="hi"))

    assert exc.value.flag == "blocked"
    assert connections.find_between(db, a.id, b.id) is None
    assert db.query(Message).count() == 0
    assert room == []
