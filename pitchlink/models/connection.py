from sqlalchemy import Column, String, DateTime, CheckConstraint, UniqueConstraint

from pitchlink.core.db import Base, new_id, utcnow


class Connection(Base):
    __tablename__ = "connections"

    id = Column(String, primary_key=True, default=new_id)
    # role-pinned: the initiator-side user is always stored in initiator_id
    initiator_id = Column(String, nullable=False, index=True)
    counterparty_id = Column(String, nullable=False, index=True)
    origin_request_id = Column(String, nullable=True)
    status = Column(
        String,
        CheckConstraint("status IN ('active','blocked')", name="connections_status_check"),
        nullable=False,
        default="active",
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("initiator_id", "counterparty_id", name="uq_connections_pair"),
    )

    @property
    def participants(self) -> list[str]:
        return [self.initiator_id, self.counterparty_id]

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.initiator_id, self.counterparty_id)

    def other_participant(self, user_id: str) -> str:
        if self.initiator_id == user_id:
            return self.counterparty_id
        return self.initiator_id
