from sqlalchemy import Column, String, DateTime, CheckConstraint, UniqueConstraint

from pitchlink.core.db import Base, new_id, utcnow


class User(Base):
    """Identity + role. Rows are owned by the account service; read-only here."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    username = Column(String, unique=True, nullable=False)
    role = Column(
        String,
        CheckConstraint("role IN ('initiator','counterparty')", name="users_role_check"),
        nullable=False,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Follow(Base):
    __tablename__ = "follows"

    id = Column(String, primary_key=True, default=new_id)
    follower_id = Column(String, nullable=False, index=True)
    following_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
    )
