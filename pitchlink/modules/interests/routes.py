from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pitchlink.core.auth import get_current_user_id
from pitchlink.core.db import get_db
from pitchlink.realtime.hub import RealtimeNotifier, get_notifier
from pitchlink.schemas.enums import RequestStatus
from pitchlink.schemas.relationships import InterestAcceptedOut, InterestIn, InterestOut
from . import service

router = APIRouter(prefix="/interests", tags=["interests"])


@router.post("", response_model=InterestOut, status_code=201)
def send_interest(
    payload: InterestIn,
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier),
    user_id: str = Depends(get_current_user_id),
):
    return service.send_interest(
        db,
        notifier,
        sender_id=user_id,
        recipient_id=payload.recipient_id,
        opportunity_id=payload.opportunity_id,
        message=payload.message,
        request_video_url=payload.request_video_url,
    )


@router.get("/received", response_model=List[InterestOut])
def received_interests(
    status: Optional[RequestStatus] = RequestStatus.pending,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.list_received(db, user_id, status)


@router.post("/{interest_id}/accept", response_model=InterestAcceptedOut)
def accept_interest(
    interest_id: str,
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier),
    user_id: str = Depends(get_current_user_id),
):
    interest, conn, conv = service.accept_interest(db, notifier, interest_id, user_id)
    return InterestAcceptedOut(interest_id=interest.id, connection_id=conn.id, conversation_id=conv.id)


@router.post("/{interest_id}/reject", response_model=InterestOut)
def reject_interest(
    interest_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.reject_interest(db, interest_id, user_id)
