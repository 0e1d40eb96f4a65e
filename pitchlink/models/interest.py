from sqlalchemy import Column, String, DateTime, Text, CheckConstraint, UniqueConstraint

from pitchlink.core.db import Base, new_id, utcnow


class Interest(Base):
    """A counterparty's interest in an initiator's opportunity."""

    __tablename__ = "interests"

    id = Column(String, primary_key=True, default=new_id)
    sender_id = Column(String, nullable=False, index=True)
    recipient_id = Column(String, nullable=False, index=True)
    opportunity_id = Column(String, nullable=False)
    status = Column(
        String,
        CheckConstraint(
            "status IN ('pending','accepted','rejected')",
            name="interests_status_check",
        ),
        nullable=False,
        default="pending",
    )
    message = Column(Text, nullable=True)
    request_video_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("sender_id", "opportunity_id", name="uq_interests_sender_opportunity"),
    )
