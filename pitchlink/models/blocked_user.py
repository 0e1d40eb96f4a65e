from sqlalchemy import Column, String, Boolean, DateTime, UniqueConstraint

from pitchlink.core.db import Base, new_id, utcnow


class BlockedUser(Base):
    __tablename__ = "blocked_users"

    id = Column(String, primary_key=True, default=new_id)
    blocker_id = Column(String, nullable=False)
    blocked_id = Column(String, nullable=False, index=True)
    reason = Column(String, nullable=True)
    messages_hidden = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("blocker_id", "blocked_id", name="uq_blocked_users_pair"),
    )
