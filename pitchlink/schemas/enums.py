from enum import Enum

class Role(str, Enum):
    initiator = "initiator"
    counterparty = "counterparty"

class ConnectionStatus(str, Enum):
    active = "active"
    blocked = "blocked"

class RequestStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"

class RequestOrigin(str, Enum):
    profile = "profile"
    opportunity = "opportunity"

class AttachmentType(str, Enum):
    image = "image"
    video = "video"
    pdf = "pdf"
    document = "document"
    other = "other"

class BlockedBy(str, Enum):
    none = "none"
    me = "me"
    them = "them"
    both = "both"

class NotificationType(str, Enum):
    interest = "interest"
    match = "match"
    system = "system"
    info = "info"

class RealtimeEvent(str, Enum):
    message_received = "message_received"
    message_deleted = "message_deleted"
    message_request_sent = "message_request_sent"
    message_request_accepted = "message_request_accepted"
    message_request_rejected = "message_request_rejected"
    notification = "notification"
    connection_approved = "connection_approved"
    typing = "typing"
    stop_typing = "stop_typing"
