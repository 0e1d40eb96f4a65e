from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from pitchlink.core.auth import get_current_user_id
from pitchlink.core.db import get_db
from pitchlink.modules.conversations import service as conversations
from pitchlink.realtime.hub import RealtimeNotifier, get_notifier
from pitchlink.schemas.messaging import MessageOut, SendMessageOut
from pitchlink.services.storage import ObjectStorage, PendingUpload, get_storage
from . import service

router = APIRouter(prefix="/messages", tags=["messages"])


def _pending(file: UploadFile) -> PendingUpload:
    return PendingUpload(
        filename=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        data=file.file.read(),
    )


@router.post("", response_model=SendMessageOut, status_code=201)
def send_message(
    text: Optional[str] = Form(None),
    conversation_id: Optional[str] = Form(None),
    connection_id: Optional[str] = Form(None),
    receiver_id: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier),
    storage: ObjectStorage = Depends(get_storage),
    user_id: str = Depends(get_current_user_id),
):
    cmd = service.SendMessageCommand(
        sender_id=user_id,
        conversation_id=conversation_id,
        connection_id=connection_id,
        receiver_id=receiver_id,
        text=text,
        uploads=[_pending(f) for f in files or []],
    )
    result = service.send_message(db, notifier, storage, cmd)

    return SendMessageOut(
        is_request=result.is_request,
        message=MessageOut.model_validate(result.message),
        conversation_id=result.conversation.id if result.conversation else None,
        connection_id=result.connection.id if result.connection else None,
        request=conversations.request_out(db, result.request) if result.request else None,
    )


@router.delete("/{message_id}")
def delete_message(
    message_id: str,
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier),
    user_id: str = Depends(get_current_user_id),
):
    service.delete_message(db, notifier, message_id, user_id)
    return {"message": "Message deleted"}
