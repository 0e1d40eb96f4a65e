from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from pitchlink.core.db import new_id, utcnow
from pitchlink.core.errors import AuthorizationError, NotFoundError, StateError, BLOCKED
from pitchlink.models.connection import Connection
from pitchlink.models.conversation import Conversation, ConversationMember
from pitchlink.models.message import Message
from pitchlink.models.message_request import MessageRequest
from pitchlink.modules.blocks import service as blocks
from pitchlink.modules.connections import service as connections
from pitchlink.modules.users.service import get_user, is_following, is_mutual_follow
from pitchlink.schemas.enums import ConnectionStatus, RequestStatus
from pitchlink.schemas.messaging import (
    ConversationOut,
    ConversationSummaryOut,
    LastMessageOut,
    MessageOut,
    MessageRequestOut,
)


@dataclass
class ProvisionalConversation:
    """Placeholder returned for a one-way follow; never persisted."""

    participants: List[str]
    other_user_id: str
    pending_request: Optional[MessageRequest] = None
    is_provisional: bool = field(default=True, init=False)


# ---------- MEMBERS (per-user state) ----------

def get_members(db: Session, conversation_id: str) -> Dict[str, ConversationMember]:
    rows = db.query(ConversationMember).filter(ConversationMember.conversation_id == conversation_id).all()
    return {m.user_id: m for m in rows}


def participant_ids(db: Session, conversation_id: str) -> List[str]:
    return sorted(get_members(db, conversation_id))


def get_member(db: Session, conversation_id: str, user_id: str) -> Optional[ConversationMember]:
    return db.get(ConversationMember, (conversation_id, user_id))


# ---------- LOOKUPS ----------

def get_conversation(db: Session, conversation_id: str) -> Optional[Conversation]:
    return db.get(Conversation, conversation_id)


def require_conversation(db: Session, conversation_id: str) -> Conversation:
    conv = get_conversation(db, conversation_id)
    if not conv:
        raise NotFoundError("Conversation not found")
    return conv


def require_member(db: Session, conversation_id: str, user_id: str) -> ConversationMember:
    member = get_member(db, conversation_id, user_id)
    if not member:
        raise AuthorizationError("Not a participant of this conversation")
    return member


def find_for_connection(db: Session, connection_id: str) -> Optional[Conversation]:
    return db.query(Conversation).filter(Conversation.connection_id == connection_id).first()


def _with_both_members(db: Session, user_a: str, user_b: str) -> List[Conversation]:
    ma = aliased(ConversationMember)
    mb = aliased(ConversationMember)
    return (
        db.query(Conversation)
        .join(ma, ma.conversation_id == Conversation.id)
        .join(mb, mb.conversation_id == Conversation.id)
        .filter(ma.user_id == user_a, mb.user_id == user_b)
        .order_by(Conversation.created_at.asc())
        .all()
    )


def is_linked(db: Session, conversation: Conversation) -> bool:
    """True when connection_id names an existing connection between the participants."""
    if not conversation.connection_id:
        return False
    conn = connections.get_connection(db, conversation.connection_id)
    if not conn:
        return False
    return set(conn.participants) == set(get_members(db, conversation.id))


def find_orphan(db: Session, user_a: str, user_b: str) -> Optional[Conversation]:
    for conv in _with_both_members(db, user_a, user_b):
        if not is_linked(db, conv):
            return conv
    return None


# ---------- CREATE / REPAIR ----------

def create_for_connection(db: Session, connection: Connection, seed_message: Optional[Message] = None) -> Conversation:
    """
    Create the conversation bound to ``connection``.

    Idempotent: a concurrent create for the same connection trips the unique
    constraint and the existing conversation is returned.
    """
    conv = Conversation(id=new_id(), connection_id=connection.id)
    if seed_message is not None:
        conv.last_message_text = seed_message.text or "Attachment"
        conv.last_message_sender_id = seed_message.sender_id
        conv.last_message_at = seed_message.created_at

    db.add(conv)
    db.add_all(
        ConversationMember(conversation_id=conv.id, user_id=uid, unread_count=0)
        for uid in connection.participants
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_for_connection(db, connection.id)
        if existing is None:
            raise
        logger.info(f"Conversation already exists | id={existing.id} connection={connection.id}")
        return existing

    db.refresh(conv)
    logger.info(f"Conversation created | id={conv.id} connection={connection.id}")
    return conv


def ensure_for_connection(db: Session, connection: Connection) -> Conversation:
    return find_for_connection(db, connection.id) or create_for_connection(db, connection)


def repair_connection(db: Session, conversation: Conversation, user_a: str, user_b: str) -> Tuple[Conversation, Connection]:
    """
    Relink a conversation whose connection_id is missing or stale.

    Attaches it to the pair's existing connection, creating one if needed.
    If another conversation already owns that connection, that one wins and
    is returned instead.
    """
    conn = connections.find_between(db, user_a, user_b)
    if conn is None:
        # a repair never creates an active connection across a block
        if blocks.is_blocked(db, user_a, user_b):
            raise StateError("This action is not allowed. One of you has blocked the other.", BLOCKED)
        conn = connections.create(db, user_a, user_b)

    stale = conversation.connection_id
    conversation.connection_id = conn.id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        owner = find_for_connection(db, conn.id)
        if owner is None:
            raise
        logger.warning(f"Orphan conversation left unlinked | id={conversation.id} owner={owner.id}")
        return owner, conn

    logger.warning(f"Repaired conversation link | id={conversation.id} from={stale} to={conn.id}")
    return conversation, conn


# ---------- RESOLVE ----------

def _latest_pending_request(db: Session, sender_id: str, receiver_id: str) -> Optional[MessageRequest]:
    return (
        db.query(MessageRequest)
        .filter(
            MessageRequest.sender_id == sender_id,
            MessageRequest.receiver_id == receiver_id,
            MessageRequest.status == RequestStatus.pending.value,
        )
        .order_by(MessageRequest.created_at.desc())
        .first()
    )


def resolve_or_create(db: Session, current_user_id: str, other_user_id: str) -> Union[Conversation, ProvisionalConversation]:
    if current_user_id == other_user_id:
        raise AuthorizationError("Cannot start a conversation with yourself")
    get_user(db, other_user_id)

    if blocks.is_blocked(db, current_user_id, other_user_id):
        raise StateError("This action is not allowed. One of you has blocked the other.", BLOCKED)

    # 1. a conversation bound to an active connection
    for conn in connections.find_all_between(db, current_user_id, other_user_id):
        if conn.status != ConnectionStatus.active.value:
            continue
        conv = find_for_connection(db, conn.id)
        if conv:
            return conv

    # 2. a conversation between the pair left without a valid link
    orphan = find_orphan(db, current_user_id, other_user_id)
    if orphan:
        conv, _ = repair_connection(db, orphan, current_user_id, other_user_id)
        return conv

    # 3. needs a connection
    existing = connections.find_between(db, current_user_id, other_user_id)
    if existing is not None:
        if existing.status == ConnectionStatus.blocked.value:
            raise StateError("This connection is blocked.", BLOCKED)
        return ensure_for_connection(db, existing)

    if is_mutual_follow(db, current_user_id, other_user_id):
        conn = connections.create(db, current_user_id, other_user_id)
        return ensure_for_connection(db, conn)

    if is_following(db, current_user_id, other_user_id):
        return ProvisionalConversation(
            participants=[current_user_id, other_user_id],
            other_user_id=other_user_id,
            pending_request=_latest_pending_request(db, current_user_id, other_user_id),
        )

    raise AuthorizationError("You must follow this user to start a conversation")


# ---------- MESSAGES ----------

def get_messages(db: Session, conversation_id: str, requester_id: str) -> List[Message]:
    require_conversation(db, conversation_id)
    member = require_member(db, conversation_id, requester_id)

    q = db.query(Message).filter(Message.conversation_id == conversation_id)
    if member.cleared_history_at is not None:
        q = q.filter(Message.created_at > member.cleared_history_at)
    return q.order_by(Message.created_at.asc()).all()


def append_message(db: Session, conversation: Conversation, message: Message) -> Conversation:
    conversation.last_message_text = message.text or "Attachment"
    conversation.last_message_sender_id = message.sender_id
    conversation.last_message_at = message.created_at
    conversation.updated_at = utcnow()

    for uid, member in get_members(db, conversation.id).items():
        if uid != message.sender_id:
            member.unread_count = (member.unread_count or 0) + 1
        # a new message brings the thread back for anyone who cleared it
        member.deleted = False

    db.commit()
    db.refresh(conversation)
    return conversation


def clear_history(db: Session, conversation_id: str, requester_id: str) -> ConversationMember:
    require_conversation(db, conversation_id)
    member = require_member(db, conversation_id, requester_id)

    member.deleted = True
    member.cleared_history_at = utcnow()
    member.unread_count = 0
    db.commit()

    logger.info(f"Conversation cleared | id={conversation_id} user={requester_id}")
    return member


def mark_read(db: Session, conversation_id: str, user_id: str) -> int:
    require_conversation(db, conversation_id)
    member = require_member(db, conversation_id, user_id)
    member.unread_count = 0

    unread = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id, Message.sender_id != user_id)
        .all()
    )
    marked = 0
    for msg in unread:
        read_by = list(msg.read_by or [])
        if user_id not in read_by:
            msg.read_by = read_by + [user_id]
            marked += 1

    db.commit()
    return marked


# ---------- LIST ----------

def list_for(db: Session, user_id: str) -> Tuple[List[Conversation], List[MessageRequest]]:
    primary = (
        db.query(Conversation)
        .join(ConversationMember, ConversationMember.conversation_id == Conversation.id)
        .filter(ConversationMember.user_id == user_id, ConversationMember.deleted.is_(False))
        .order_by(Conversation.updated_at.desc())
        .all()
    )
    requests = (
        db.query(MessageRequest)
        .filter(
            MessageRequest.receiver_id == user_id,
            MessageRequest.status == RequestStatus.pending.value,
        )
        .order_by(MessageRequest.created_at.desc())
        .all()
    )
    return primary, requests


# ---------- SERIALIZATION ----------

def conversation_out(db: Session, conversation: Conversation) -> ConversationOut:
    last = None
    if conversation.last_message_at is not None or conversation.last_message_text is not None:
        last = LastMessageOut(
            text=conversation.last_message_text,
            sender_id=conversation.last_message_sender_id,
            created_at=conversation.last_message_at,
        )
    return ConversationOut(
        id=conversation.id,
        connection_id=conversation.connection_id,
        participants=participant_ids(db, conversation.id),
        last_message=last,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
    )


def summary_out(db: Session, conversation: Conversation, user_id: str) -> ConversationSummaryOut:
    base = conversation_out(db, conversation)
    member = get_member(db, conversation.id, user_id)
    others = [p for p in base.participants if p != user_id]
    conn = connections.get_connection(db, conversation.connection_id) if conversation.connection_id else None

    return ConversationSummaryOut(
        **base.model_dump(),
        other_user_id=others[0] if others else None,
        unread_count=member.unread_count if member else 0,
        connection_status=conn.status if conn else None,
    )


def request_out(db: Session, request: MessageRequest) -> MessageRequestOut:
    out = MessageRequestOut.model_validate(request)
    first = db.get(Message, request.first_message_id)
    if first is not None:
        out.first_message = MessageOut.model_validate(first)
    return out
