from typing import List, Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pitchlink.core.auth import get_current_user_id
from pitchlink.core.db import get_db
from pitchlink.schemas.messaging import (
    ConversationListOut,
    ConversationOut,
    MessageOut,
    ProvisionalConversationOut,
    StartConversationIn,
)
from . import service

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("", response_model=Union[ConversationOut, ProvisionalConversationOut])
def start_conversation(
    payload: StartConversationIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    result = service.resolve_or_create(db, user_id, payload.user_id)

    if isinstance(result, service.ProvisionalConversation):
        pending = service.request_out(db, result.pending_request) if result.pending_request else None
        return ProvisionalConversationOut(
            participants=result.participants,
            other_user_id=result.other_user_id,
            pending_request=pending,
        )
    return service.conversation_out(db, result)


@router.get("", response_model=ConversationListOut)
def my_conversations(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    primary, requests = service.list_for(db, user_id)
    return ConversationListOut(
        primary=[service.summary_out(db, c, user_id) for c in primary],
        requests=[service.request_out(db, r) for r in requests],
    )


@router.get("/{conversation_id}/messages", response_model=List[MessageOut])
def conversation_messages(
    conversation_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.get_messages(db, conversation_id, user_id)


@router.post("/{conversation_id}/clear")
def clear_conversation(
    conversation_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    member = service.clear_history(db, conversation_id, user_id)
    return {"message": "Conversation cleared", "cleared_at": member.cleared_history_at}


@router.post("/{conversation_id}/read")
def mark_conversation_read(
    conversation_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    marked = service.mark_read(db, conversation_id, user_id)
    return {"marked": marked}
