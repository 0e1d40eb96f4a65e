from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    Text,
    ForeignKey,
    UniqueConstraint,
)

from pitchlink.core.db import Base, new_id, utcnow


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True, default=new_id)
    # nullable and not a foreign key: a partially written conversation may
    # carry no id or a stale one until the repair path relinks it
    connection_id = Column(String, nullable=True)

    last_message_text = Column(Text, nullable=True)
    last_message_sender_id = Column(String, nullable=True)
    last_message_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("connection_id", name="uq_conversations_connection"),
    )


class ConversationMember(Base):
    """
    One row per (conversation, participant).

    Holds the per-user state of a conversation: the unread counter, the
    soft-delete flag (``deletedBy``) and the history-cleared timestamp.
    """

    __tablename__ = "conversation_members"

    conversation_id = Column(String, ForeignKey("conversations.id"), primary_key=True)
    user_id = Column(String, primary_key=True, index=True)
    unread_count = Column(Integer, nullable=False, default=0)
    deleted = Column(Boolean, nullable=False, default=False)
    cleared_history_at = Column(DateTime, nullable=True)
