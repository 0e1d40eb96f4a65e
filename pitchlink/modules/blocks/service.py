from typing import List, Optional

from loguru import logger
from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pitchlink.core.errors import AuthorizationError, ConflictError, NotFoundError
from pitchlink.models.blocked_user import BlockedUser
from pitchlink.models.interest import Interest
from pitchlink.models.message_request import MessageRequest
from pitchlink.modules.connections import service as connections
from pitchlink.modules.users.service import get_user
from pitchlink.schemas.enums import BlockedBy, ConnectionStatus, RequestStatus


def _either_direction(user_a: str, user_b: str):
    return or_(
        and_(BlockedUser.blocker_id == user_a, BlockedUser.blocked_id == user_b),
        and_(BlockedUser.blocker_id == user_b, BlockedUser.blocked_id == user_a),
    )


def _get_block(db: Session, blocker_id: str, blocked_id: str) -> Optional[BlockedUser]:
    return (
        db.query(BlockedUser)
        .filter(BlockedUser.blocker_id == blocker_id, BlockedUser.blocked_id == blocked_id)
        .first()
    )


def _delete_pending_between(db: Session, user_a: str, user_b: str) -> tuple[int, int]:
    pending = RequestStatus.pending.value

    requests = (
        db.query(MessageRequest)
        .filter(
            or_(
                and_(MessageRequest.sender_id == user_a, MessageRequest.receiver_id == user_b),
                and_(MessageRequest.sender_id == user_b, MessageRequest.receiver_id == user_a),
            ),
            MessageRequest.status == pending,
        )
        .delete(synchronize_session="fetch")
    )
    interests = (
        db.query(Interest)
        .filter(
            or_(
                and_(Interest.sender_id == user_a, Interest.recipient_id == user_b),
                and_(Interest.sender_id == user_b, Interest.recipient_id == user_a),
            ),
            Interest.status == pending,
        )
        .delete(synchronize_session="fetch")
    )
    return requests, interests


# ---------- BLOCK / UNBLOCK ----------

def block_user(db: Session, blocker_id: str, blocked_id: str, reason: Optional[str] = None) -> BlockedUser:
    if blocker_id == blocked_id:
        raise AuthorizationError("You cannot block yourself")

    get_user(db, blocked_id)

    if _get_block(db, blocker_id, blocked_id):
        raise ConflictError("User is already blocked")

    block = BlockedUser(blocker_id=blocker_id, blocked_id=blocked_id, reason=reason or None)
    db.add(block)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User is already blocked")
    db.refresh(block)

    # cascade: history is kept, only reachability changes
    requests, interests = _delete_pending_between(db, blocker_id, blocked_id)
    flipped = connections.set_status_between(db, blocker_id, blocked_id, ConnectionStatus.blocked.value)
    db.commit()

    logger.info(
        f"User blocked | blocker={blocker_id} blocked={blocked_id} "
        f"requests_removed={requests} interests_removed={interests} connections_blocked={flipped}"
    )
    return block


def unblock_user(db: Session, blocker_id: str, blocked_id: str) -> None:
    block = _get_block(db, blocker_id, blocked_id)
    if not block:
        raise NotFoundError("Block record not found")

    db.delete(block)
    db.commit()

    # the other side may still hold its own block
    if _get_block(db, blocked_id, blocker_id):
        logger.info(f"User unblocked | blocker={blocker_id} blocked={blocked_id} connection kept blocked")
        return

    restored = connections.set_status_between(
        db,
        blocker_id,
        blocked_id,
        ConnectionStatus.active.value,
        only_from=ConnectionStatus.blocked.value,
    )
    db.commit()
    logger.info(f"User unblocked | blocker={blocker_id} blocked={blocked_id} connections_restored={restored}")


# ---------- QUERIES ----------

def is_blocked(db: Session, user_a: str, user_b: str) -> bool:
    return db.query(BlockedUser.id).filter(_either_direction(user_a, user_b)).first() is not None


def block_status(db: Session, me: str, other: str) -> dict:
    blocks = db.query(BlockedUser).filter(_either_direction(me, other)).all()

    if not blocks:
        return {"is_blocked": False, "blocked_by": BlockedBy.none}
    if len(blocks) == 2:
        return {"is_blocked": True, "blocked_by": BlockedBy.both}
    if blocks[0].blocker_id == me:
        return {"is_blocked": True, "blocked_by": BlockedBy.me}
    return {"is_blocked": True, "blocked_by": BlockedBy.them}


def list_blocked_by(db: Session, user_id: str) -> List[BlockedUser]:
    return (
        db.query(BlockedUser)
        .filter(BlockedUser.blocker_id == user_id)
        .order_by(BlockedUser.created_at.desc())
        .all()
    )
