from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from pitchlink.schemas.base import OrmSchema, AuditedSchema
from pitchlink.schemas.enums import AttachmentType, ConnectionStatus, RequestOrigin, RequestStatus


# ---------- messages ----------
class AttachmentOut(BaseModel):
    type: AttachmentType
    url: str
    filename: str
    size: int
    mime_type: str


class MessageOut(OrmSchema):
    id: str
    conversation_id: Optional[str] = None
    connection_id: Optional[str] = None
    sender_id: str
    text: Optional[str] = None
    attachments: List[AttachmentOut] = []
    read_by: List[str] = []
    is_first_message: bool = False
    message_request_id: Optional[str] = None
    created_at: datetime


# ---------- conversations ----------
class LastMessageOut(BaseModel):
    text: Optional[str] = None
    sender_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ConversationOut(AuditedSchema):
    id: str
    connection_id: Optional[str] = None
    participants: List[str]
    last_message: Optional[LastMessageOut] = None
    is_provisional: bool = False


class ConversationSummaryOut(ConversationOut):
    other_user_id: Optional[str] = None
    unread_count: int = 0
    connection_status: Optional[ConnectionStatus] = None


class MessageRequestOut(AuditedSchema):
    id: str
    sender_id: str
    receiver_id: str
    origin: RequestOrigin
    opportunity_id: Optional[str] = None
    first_message_id: str
    status: RequestStatus
    first_message: Optional[MessageOut] = None


class ProvisionalConversationOut(BaseModel):
    is_provisional: bool = True
    participants: List[str]
    other_user_id: str
    pending_request: Optional[MessageRequestOut] = None


class ConversationListOut(BaseModel):
    primary: List[ConversationSummaryOut]
    requests: List[MessageRequestOut]


class StartConversationIn(BaseModel):
    user_id: str = Field(..., min_length=1)


# ---------- send ----------
class SendMessageOut(BaseModel):
    is_request: bool
    message: MessageOut
    conversation_id: Optional[str] = None
    connection_id: Optional[str] = None
    request: Optional[MessageRequestOut] = None


# ---------- requests ----------
class RequestStatusOut(BaseModel):
    has_request: bool
    status: Optional[RequestStatus] = None
    request_id: Optional[str] = None
    is_sender: Optional[bool] = None


class AcceptRequestOut(BaseModel):
    request_id: str
    connection_id: str
    conversation_id: str
