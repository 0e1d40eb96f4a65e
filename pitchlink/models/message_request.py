from sqlalchemy import Column, String, DateTime, CheckConstraint, Index

from pitchlink.core.db import Base, new_id, utcnow


class MessageRequest(Base):
    __tablename__ = "message_requests"

    id = Column(String, primary_key=True, default=new_id)
    sender_id = Column(String, nullable=False)
    receiver_id = Column(String, nullable=False)
    origin = Column(
        String,
        CheckConstraint("origin IN ('profile','opportunity')", name="message_requests_origin_check"),
        nullable=False,
        default="profile",
    )
    opportunity_id = Column(String, nullable=True)
    first_message_id = Column(String, nullable=False)
    status = Column(
        String,
        CheckConstraint(
            "status IN ('pending','accepted','rejected')",
            name="message_requests_status_check",
        ),
        nullable=False,
        default="pending",
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # not unique: see DESIGN.md, the gate rejects a second pending request
    __table_args__ = (
        Index("idx_message_requests_pair", "sender_id", "receiver_id"),
        Index("idx_message_requests_inbox", "receiver_id", "status"),
    )
