from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from pitchlink.schemas.base import OrmSchema, AuditedSchema
from pitchlink.schemas.enums import BlockedBy, ConnectionStatus, NotificationType, RequestStatus


# ---------- connections ----------
class ConnectionOut(AuditedSchema):
    id: str
    initiator_id: str
    counterparty_id: str
    origin_request_id: Optional[str] = None
    status: ConnectionStatus


class ConnectionWithPeerOut(ConnectionOut):
    other_user_id: str


class ConnectionCheckOut(BaseModel):
    connected: bool
    status: Optional[ConnectionStatus] = None
    connection: Optional[ConnectionOut] = None


# ---------- blocks ----------
class BlockIn(BaseModel):
    reason: Optional[str] = None


class BlockOut(OrmSchema):
    id: str
    blocker_id: str
    blocked_id: str
    reason: Optional[str] = None
    messages_hidden: bool = True
    created_at: datetime


class BlockStatusOut(BaseModel):
    is_blocked: bool
    blocked_by: BlockedBy


# ---------- interests ----------
class InterestIn(BaseModel):
    recipient_id: str
    opportunity_id: str
    message: Optional[str] = None
    request_video_url: Optional[str] = None


class InterestOut(AuditedSchema):
    id: str
    sender_id: str
    recipient_id: str
    opportunity_id: str
    status: RequestStatus
    message: Optional[str] = None
    request_video_url: Optional[str] = None


class InterestAcceptedOut(BaseModel):
    interest_id: str
    connection_id: str
    conversation_id: str


# ---------- notifications ----------
class NotificationOut(OrmSchema):
    id: str
    recipient_id: str
    sender_id: str
    type: NotificationType
    message: Optional[str] = None
    summary: Optional[str] = None
    related_id: str
    is_read: bool
    created_at: datetime


class UnreadCountOut(BaseModel):
    count: int
