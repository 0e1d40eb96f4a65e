from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pitchlink.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
    BLOCKED,
    REQUEST_REJECTED,
)
from pitchlink.models.connection import Connection
from pitchlink.models.conversation import Conversation
from pitchlink.models.interest import Interest
from pitchlink.modules.blocks import service as blocks
from pitchlink.modules.connections import service as connections
from pitchlink.modules.conversations import service as conversations
from pitchlink.modules.notifications.service import create_notification
from pitchlink.modules.users.service import get_user
from pitchlink.realtime.hub import RealtimeNotifier
from pitchlink.schemas.enums import ConnectionStatus, NotificationType, RealtimeEvent, RequestStatus
from pitchlink.services.push import push_notifier
from pitchlink.services.summary import generate_summary


def get_interest(db: Session, interest_id: str) -> Interest:
    interest = db.get(Interest, interest_id)
    if not interest:
        raise NotFoundError("Interest not found")
    return interest


def send_interest(
    db: Session,
    notifier: RealtimeNotifier,
    sender_id: str,
    recipient_id: str,
    opportunity_id: str,
    message: Optional[str] = None,
    request_video_url: Optional[str] = None,
) -> Interest:
    if sender_id == recipient_id:
        raise AuthorizationError("Cannot send interest to yourself")
    get_user(db, recipient_id)

    if blocks.is_blocked(db, sender_id, recipient_id):
        raise StateError("This action is not allowed. One of you has blocked the other.", BLOCKED)

    interest = Interest(
        sender_id=sender_id,
        recipient_id=recipient_id,
        opportunity_id=opportunity_id,
        message=message,
        request_video_url=request_video_url,
        status=RequestStatus.pending.value,
    )
    db.add(interest)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Interest already sent for this opportunity")
    db.refresh(interest)

    logger.info(f"Interest sent | id={interest.id} sender={sender_id} opportunity={opportunity_id}")

    summary = generate_summary(message)
    create_notification(
        db,
        notifier,
        recipient_id=recipient_id,
        sender_id=sender_id,
        kind=NotificationType.interest,
        related_id=interest.id,
        message=message,
        summary=summary,
    )
    push_notifier.notify(db, recipient_id, "New interest", summary,
                         {"type": "interest", "interestId": interest.id})
    return interest


def accept_interest(
    db: Session,
    notifier: RealtimeNotifier,
    interest_id: str,
    acting_user_id: str,
) -> Tuple[Interest, Connection, Conversation]:
    interest = get_interest(db, interest_id)

    if interest.recipient_id != acting_user_id:
        raise AuthorizationError("Not authorized")
    if interest.status == RequestStatus.accepted.value:
        raise ConflictError("Interest already accepted")
    if interest.status == RequestStatus.rejected.value:
        raise StateError("This interest was already rejected.", REQUEST_REJECTED)

    conn = connections.create(db, interest.sender_id, interest.recipient_id, origin_request_id=interest.id)
    if conn.status == ConnectionStatus.blocked.value:
        raise StateError("This connection is blocked.", BLOCKED)
    conv = conversations.ensure_for_connection(db, conn)

    interest.status = RequestStatus.accepted.value
    db.commit()
    db.refresh(interest)

    logger.info(f"Interest accepted | id={interest.id} connection={conn.id} conversation={conv.id}")

    notifier.emit_to_user(
        interest.sender_id,
        RealtimeEvent.connection_approved,
        {"interest_id": interest.id, "connection_id": conn.id, "conversation_id": conv.id},
    )
    recipient = get_user(db, acting_user_id)
    create_notification(
        db,
        notifier,
        recipient_id=interest.sender_id,
        sender_id=acting_user_id,
        kind=NotificationType.match,
        related_id=conn.id,
        message=f"{recipient.name} accepted your interest",
    )
    push_notifier.notify(db, interest.sender_id, "Connection approved",
                         f"{recipient.name} accepted your interest",
                         {"type": "connection_approved", "conversationId": conv.id})
    return interest, conn, conv


def reject_interest(db: Session, interest_id: str, acting_user_id: str) -> Interest:
    interest = get_interest(db, interest_id)

    if interest.recipient_id != acting_user_id:
        raise AuthorizationError("Not authorized")
    if interest.status == RequestStatus.accepted.value:
        raise ConflictError("Interest already accepted")

    interest.status = RequestStatus.rejected.value
    db.commit()
    db.refresh(interest)
    logger.info(f"Interest rejected | id={interest.id} by={acting_user_id}")
    return interest


def list_received(db: Session, user_id: str, status: Optional[RequestStatus] = RequestStatus.pending) -> List[Interest]:
    q = db.query(Interest).filter(Interest.recipient_id == user_id)
    if status is not None:
        q = q.filter(Interest.status == status.value)
    return q.order_by(Interest.created_at.desc()).all()
