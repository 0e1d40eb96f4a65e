from sqlalchemy import Column, String, Boolean, DateTime, Text, JSON

from pitchlink.core.db import Base, new_id, utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True, default=new_id)
    # both null while the message waits behind a pending message request
    conversation_id = Column(String, nullable=True, index=True)
    connection_id = Column(String, nullable=True, index=True)
    sender_id = Column(String, nullable=False, index=True)
    text = Column(Text, nullable=True)

    # [{"type", "url", "filename", "size", "mime_type"}]
    attachments = Column(JSON, nullable=False, default=list)
    read_by = Column(JSON, nullable=False, default=list)

    is_first_message = Column(Boolean, nullable=False, default=False)
    message_request_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
