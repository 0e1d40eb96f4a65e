from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy.orm import Session

from pitchlink.core.errors import (
    AuthorizationError,
    NotFoundError,
    StateError,
    ValidationError,
    BLOCKED,
    INACTIVE,
)
from pitchlink.models.connection import Connection
from pitchlink.models.conversation import Conversation
from pitchlink.models.message import Message
from pitchlink.models.message_request import MessageRequest
from pitchlink.modules.blocks import service as blocks
from pitchlink.modules.connections import service as connections
from pitchlink.modules.conversations import service as conversations
from pitchlink.modules.message_requests import service as message_requests
from pitchlink.modules.users.service import is_mutual_follow
from pitchlink.realtime.hub import RealtimeNotifier
from pitchlink.schemas.enums import ConnectionStatus, RealtimeEvent
from pitchlink.schemas.messaging import MessageOut
from pitchlink.services.storage import ObjectStorage, PendingUpload, materialize_attachments


@dataclass
class SendMessageCommand:
    sender_id: str
    conversation_id: Optional[str] = None
    connection_id: Optional[str] = None
    receiver_id: Optional[str] = None
    text: Optional[str] = None
    uploads: List[PendingUpload] = field(default_factory=list)


@dataclass
class SendResult:
    message: Message
    conversation: Optional[Conversation] = None
    connection: Optional[Connection] = None
    request: Optional[MessageRequest] = None

    @property
    def is_request(self) -> bool:
        return self.request is not None


def _resolve_connection_id(db: Session, cmd: SendMessageCommand) -> Tuple[Optional[str], Optional[Conversation]]:
    conversation = None
    if cmd.conversation_id:
        conversation = conversations.require_conversation(db, cmd.conversation_id)
        conversations.require_member(db, conversation.id, cmd.sender_id)

    if cmd.connection_id:
        return cmd.connection_id, conversation

    if conversation is not None:
        if conversations.is_linked(db, conversation):
            return conversation.connection_id, conversation

        others = [p for p in conversations.participant_ids(db, conversation.id) if p != cmd.sender_id]
        if not others:
            raise ValidationError("Conversation has no other participant")
        conversation, conn = conversations.repair_connection(db, conversation, cmd.sender_id, others[0])
        return conn.id, conversation

    if cmd.receiver_id:
        conn = connections.find_active(db, cmd.sender_id, cmd.receiver_id)
        if conn:
            return conn.id, None

        # mutual followers skip the request gate, unless a request is already open
        if is_mutual_follow(db, cmd.sender_id, cmd.receiver_id) and not blocks.is_blocked(db, cmd.sender_id, cmd.receiver_id):
            message_requests.ensure_no_open_request(db, cmd.sender_id, cmd.receiver_id)
            conn = connections.find_between(db, cmd.sender_id, cmd.receiver_id) or connections.create(
                db, cmd.sender_id, cmd.receiver_id
            )
            return conn.id, None

    return None, None


def send_message(
    db: Session,
    notifier: RealtimeNotifier,
    storage: ObjectStorage,
    cmd: SendMessageCommand,
) -> SendResult:
    connection_id, conversation = _resolve_connection_id(db, cmd)

    if connection_id is None:
        if not cmd.receiver_id:
            raise ValidationError("conversation_id, connection_id or receiver_id is required")

        # first contact goes through the request gate
        outcome = message_requests.request_or_allow(
            db, notifier, storage, cmd.sender_id, cmd.receiver_id, cmd.text, cmd.uploads
        )
        if not outcome.allowed:
            return SendResult(message=outcome.message, request=outcome.request)
        connection_id = outcome.connection.id

    conn = connections.get_connection(db, connection_id)
    if not conn:
        raise NotFoundError("Connection not found")
    if conn.status == ConnectionStatus.blocked.value:
        raise StateError("This connection is blocked.", BLOCKED)
    if conn.status != ConnectionStatus.active.value:
        raise StateError("Connection is not active.", INACTIVE)
    if not conn.has_participant(cmd.sender_id):
        raise AuthorizationError("You are not authorized to access this connection")

    text = (cmd.text or "").strip() or None
    if not text and not cmd.uploads:
        raise ValidationError("Message text or at least one attachment is required")

    if conversation is None or conversation.connection_id != conn.id:
        conversation = conversations.ensure_for_connection(db, conn)

    # a failed upload aborts here, before anything is persisted
    attachments = materialize_attachments(storage, cmd.uploads, folder="chat-files")

    message = Message(
        conversation_id=conversation.id,
        connection_id=conn.id,
        sender_id=cmd.sender_id,
        text=text,
        attachments=attachments,
        read_by=[cmd.sender_id],
    )
    db.add(message)
    db.commit()
    db.refresh(message)

    conversation = conversations.append_message(db, conversation, message)
    logger.info(f"Message sent | id={message.id} conversation={conversation.id} sender={cmd.sender_id}")

    payload = MessageOut.model_validate(message).payload()
    notifier.emit_to_conversation(conversation.id, RealtimeEvent.message_received, payload)
    for participant in conversations.participant_ids(db, conversation.id):
        if participant != cmd.sender_id:
            notifier.emit_to_user(participant, RealtimeEvent.message_received, payload)

    return SendResult(message=message, conversation=conversation, connection=conn)


def delete_message(db: Session, notifier: RealtimeNotifier, message_id: str, requester_id: str) -> None:
    message = db.get(Message, message_id)
    if not message:
        raise NotFoundError("Message not found")
    if message.sender_id != requester_id:
        raise AuthorizationError("Only the sender can delete this message")

    conversation_id = message.conversation_id
    db.delete(message)
    db.commit()

    logger.info(f"Message deleted | id={message_id} by={requester_id}")

    if conversation_id:
        notifier.emit_to_conversation(
            conversation_id,
            RealtimeEvent.message_deleted,
            {"message_id": message_id, "conversation_id": conversation_id},
        )
