from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pitchlink.core.auth import get_current_user_id
from pitchlink.core.db import get_db
from pitchlink.modules.conversations.service import request_out
from pitchlink.realtime.hub import RealtimeNotifier, get_notifier
from pitchlink.schemas.messaging import AcceptRequestOut, MessageRequestOut, RequestStatusOut
from . import service

router = APIRouter(prefix="/message-requests", tags=["message-requests"])


@router.get("", response_model=List[MessageRequestOut])
def pending_requests(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return [request_out(db, r) for r in service.list_pending_for(db, user_id)]


@router.get("/status/{other_user_id}", response_model=RequestStatusOut)
def request_status(
    other_user_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.status_between(db, user_id, other_user_id)


@router.post("/{request_id}/accept", response_model=AcceptRequestOut)
def accept_request(
    request_id: str,
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier),
    user_id: str = Depends(get_current_user_id),
):
    request, conn, conv = service.accept(db, notifier, request_id, user_id)
    return AcceptRequestOut(request_id=request.id, connection_id=conn.id, conversation_id=conv.id)


@router.post("/{request_id}/reject", response_model=MessageRequestOut)
def reject_request(
    request_id: str,
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier),
    user_id: str = Depends(get_current_user_id),
):
    return request_out(db, service.reject(db, notifier, request_id, user_id))
