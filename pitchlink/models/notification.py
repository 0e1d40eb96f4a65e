from sqlalchemy import Column, String, Boolean, DateTime, Text

from pitchlink.core.db import Base, new_id, utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=new_id)
    recipient_id = Column(String, nullable=False, index=True)
    sender_id = Column(String, nullable=False)
    type = Column(String, nullable=False, default="interest")
    message = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    related_id = Column(String, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
