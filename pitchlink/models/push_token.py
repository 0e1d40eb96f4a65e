from sqlalchemy import Column, DateTime, String, Text

from pitchlink.core.db import Base, utcnow


class PushToken(Base):
    __tablename__ = "push_tokens"

    user_id = Column(String, primary_key=True)
    expo_push_token = Column(Text, nullable=False)
    platform = Column(String, nullable=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
