from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pitchlink.core.auth import get_current_user_id
from pitchlink.core.db import get_db
from pitchlink.schemas.relationships import NotificationOut, UnreadCountOut
from . import service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationOut])
def my_notifications(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.list_for(db, user_id)


@router.get("/unread-count", response_model=UnreadCountOut)
def unread_count(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return UnreadCountOut(count=service.unread_count(db, user_id))


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.mark_read(db, notification_id, user_id)


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    service.delete(db, notification_id, user_id)
    return {"message": "Notification deleted"}


@router.delete("")
def clear_notifications(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    removed = service.clear_all(db, user_id)
    return {"message": "All notifications cleared", "removed": removed}
