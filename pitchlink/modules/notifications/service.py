from typing import List, Optional

from sqlalchemy.orm import Session

from pitchlink.core.errors import AuthorizationError, NotFoundError
from pitchlink.models.notification import Notification
from pitchlink.realtime.hub import RealtimeNotifier
from pitchlink.schemas.enums import NotificationType, RealtimeEvent
from pitchlink.schemas.relationships import NotificationOut


def create_notification(
    db: Session,
    notifier: RealtimeNotifier,
    recipient_id: str,
    sender_id: str,
    kind: NotificationType,
    related_id: str,
    message: Optional[str] = None,
    summary: Optional[str] = None,
) -> Notification:
    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=kind.value,
        related_id=related_id,
        message=message,
        summary=summary,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)

    notifier.emit_to_user(
        recipient_id,
        RealtimeEvent.notification,
        NotificationOut.model_validate(notification).payload(),
    )
    return notification


def _owned(db: Session, notification_id: str, user_id: str) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification:
        raise NotFoundError("Notification not found")
    if notification.recipient_id != user_id:
        raise AuthorizationError("Not authorized")
    return notification


def list_for(db: Session, user_id: str) -> List[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.recipient_id == user_id)
        .order_by(Notification.created_at.desc())
        .all()
    )


def unread_count(db: Session, user_id: str) -> int:
    return (
        db.query(Notification)
        .filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(db: Session, notification_id: str, user_id: str) -> Notification:
    notification = _owned(db, notification_id, user_id)
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def delete(db: Session, notification_id: str, user_id: str) -> None:
    db.delete(_owned(db, notification_id, user_id))
    db.commit()


def clear_all(db: Session, user_id: str) -> int:
    removed = db.query(Notification).filter(Notification.recipient_id == user_id).delete()
    db.commit()
    return removed
