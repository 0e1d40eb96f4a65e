from dataclasses import dataclass
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from pitchlink.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
    BLOCKED,
    REQUEST_PENDING,
    REQUEST_REJECTED,
)
from pitchlink.models.connection import Connection
from pitchlink.models.conversation import Conversation
from pitchlink.models.message import Message
from pitchlink.models.message_request import MessageRequest
from pitchlink.modules.blocks import service as blocks
from pitchlink.modules.connections import service as connections
from pitchlink.modules.conversations import service as conversations
from pitchlink.modules.users.service import get_user, public_profile
from pitchlink.realtime.hub import RealtimeNotifier
from pitchlink.schemas.enums import ConnectionStatus, RealtimeEvent, RequestOrigin, RequestStatus
from pitchlink.services.push import push_notifier
from pitchlink.services.storage import ObjectStorage, PendingUpload, materialize_attachments


@dataclass
class GateOutcome:
    """
    ``allowed`` means an active connection exists and the caller should send
    through it. Otherwise ``request`` and its first ``message`` were created.
    """

    allowed: bool
    connection: Optional[Connection] = None
    request: Optional[MessageRequest] = None
    message: Optional[Message] = None


def _latest(db: Session, sender_id: str, receiver_id: str, status: RequestStatus) -> Optional[MessageRequest]:
    return (
        db.query(MessageRequest)
        .filter(
            MessageRequest.sender_id == sender_id,
            MessageRequest.receiver_id == receiver_id,
            MessageRequest.status == status.value,
        )
        .order_by(MessageRequest.created_at.desc())
        .first()
    )


def get_request(db: Session, request_id: str) -> MessageRequest:
    request = db.get(MessageRequest, request_id)
    if not request:
        raise NotFoundError("Request not found")
    return request


# ---------- FIRST CONTACT ----------

def ensure_no_open_request(db: Session, sender_id: str, receiver_id: str) -> None:
    """Raise when an earlier request from sender to receiver is pending or was rejected."""
    if _latest(db, sender_id, receiver_id, RequestStatus.pending):
        raise StateError("Message request already sent. Waiting for approval.", REQUEST_PENDING)
    if _latest(db, sender_id, receiver_id, RequestStatus.rejected):
        raise StateError("Your previous message request was rejected.", REQUEST_REJECTED)


def request_or_allow(
    db: Session,
    notifier: RealtimeNotifier,
    storage: ObjectStorage,
    sender_id: str,
    receiver_id: str,
    text: Optional[str] = None,
    uploads: Optional[List[PendingUpload]] = None,
    origin: RequestOrigin = RequestOrigin.profile,
    opportunity_id: Optional[str] = None,
) -> GateOutcome:
    if sender_id == receiver_id:
        raise AuthorizationError("Cannot send a message request to yourself")
    get_user(db, receiver_id)

    existing = connections.find_between(db, sender_id, receiver_id)
    if blocks.is_blocked(db, sender_id, receiver_id) or (
        existing is not None and existing.status == ConnectionStatus.blocked.value
    ):
        raise StateError("This action is not allowed. One of you has blocked the other.", BLOCKED)

    if existing is not None and existing.status == ConnectionStatus.active.value:
        return GateOutcome(allowed=True, connection=existing)

    ensure_no_open_request(db, sender_id, receiver_id)

    text = (text or "").strip() or None
    if not text and not uploads:
        raise ValidationError("Message text or at least one attachment is required")

    attachments = materialize_attachments(storage, uploads, folder="message-requests")

    first_message = Message(
        sender_id=sender_id,
        text=text,
        attachments=attachments,
        read_by=[sender_id],
        is_first_message=True,
        conversation_id=None,
        connection_id=None,
    )
    db.add(first_message)
    db.commit()
    db.refresh(first_message)

    request = MessageRequest(
        sender_id=sender_id,
        receiver_id=receiver_id,
        origin=RequestOrigin(origin).value,
        opportunity_id=opportunity_id,
        first_message_id=first_message.id,
        status=RequestStatus.pending.value,
    )
    db.add(request)
    db.commit()
    db.refresh(request)

    first_message.message_request_id = request.id
    db.commit()
    db.refresh(first_message)

    logger.info(f"Message request sent | id={request.id} sender={sender_id} receiver={receiver_id}")

    notifier.emit_to_user(
        receiver_id,
        RealtimeEvent.message_request_sent,
        {"request": conversations.request_out(db, request).payload()},
    )
    sender = get_user(db, sender_id)
    push_notifier.notify(db, receiver_id, "New message request", f"{sender.name}: {text or 'Attachment'}",
                         {"type": "message_request", "requestId": request.id})

    return GateOutcome(allowed=False, request=request, message=first_message)


# ---------- CONSENT ----------

def accept(
    db: Session,
    notifier: RealtimeNotifier,
    request_id: str,
    acting_user_id: str,
) -> Tuple[MessageRequest, Connection, Conversation]:
    request = get_request(db, request_id)

    if request.receiver_id != acting_user_id:
        raise AuthorizationError("Not authorized")
    if request.status == RequestStatus.accepted.value:
        raise ConflictError("Request already accepted")
    if request.status == RequestStatus.rejected.value:
        raise StateError("This request was already rejected.", REQUEST_REJECTED)

    conn = connections.create(db, request.sender_id, request.receiver_id, origin_request_id=request.id)
    if conn.status == ConnectionStatus.blocked.value:
        raise StateError("This connection is blocked.", BLOCKED)
    first_message = db.get(Message, request.first_message_id)
    conv = conversations.find_for_connection(db, conn.id) or conversations.create_for_connection(
        db, conn, seed_message=first_message
    )

    if first_message is not None:
        first_message.conversation_id = conv.id
        first_message.connection_id = conn.id

    request.status = RequestStatus.accepted.value
    db.commit()
    db.refresh(request)

    logger.info(f"Message request accepted | id={request.id} connection={conn.id} conversation={conv.id}")

    receiver = get_user(db, acting_user_id)
    notifier.emit_to_user(
        request.sender_id,
        RealtimeEvent.message_request_accepted,
        {
            "request_id": request.id,
            "receiver": public_profile(receiver),
            "connection_id": conn.id,
            "conversation_id": conv.id,
        },
    )
    push_notifier.notify(db, request.sender_id, "Request accepted",
                         f"{receiver.name} accepted your message request",
                         {"type": "message_request_accepted", "conversationId": conv.id})

    return request, conn, conv


def reject(db: Session, notifier: RealtimeNotifier, request_id: str, acting_user_id: str) -> MessageRequest:
    request = get_request(db, request_id)

    if request.receiver_id != acting_user_id:
        raise AuthorizationError("Not authorized")
    if request.status == RequestStatus.accepted.value:
        raise ConflictError("Request already accepted")
    if request.status == RequestStatus.rejected.value:
        return request

    # the first message stays in place
    request.status = RequestStatus.rejected.value
    db.commit()
    db.refresh(request)

    logger.info(f"Message request rejected | id={request.id} by={acting_user_id}")

    receiver = get_user(db, acting_user_id)
    notifier.emit_to_user(
        request.sender_id,
        RealtimeEvent.message_request_rejected,
        {"request_id": request.id, "receiver": public_profile(receiver)},
    )
    return request


# ---------- QUERIES ----------

def status_between(db: Session, me: str, other: str) -> dict:
    request = (
        db.query(MessageRequest)
        .filter(
            or_(
                and_(MessageRequest.sender_id == me, MessageRequest.receiver_id == other),
                and_(MessageRequest.sender_id == other, MessageRequest.receiver_id == me),
            )
        )
        .order_by(MessageRequest.created_at.desc())
        .first()
    )
    if not request:
        return {"has_request": False, "status": None, "request_id": None, "is_sender": None}

    return {
        "has_request": True,
        "status": request.status,
        "request_id": request.id,
        "is_sender": request.sender_id == me,
    }


def list_pending_for(db: Session, user_id: str) -> List[MessageRequest]:
    return (
        db.query(MessageRequest)
        .filter(
            MessageRequest.receiver_id == user_id,
            MessageRequest.status == RequestStatus.pending.value,
        )
        .order_by(MessageRequest.created_at.desc())
        .all()
    )
