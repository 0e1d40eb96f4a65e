from typing import List, Optional

from loguru import logger
from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pitchlink.core.errors import AuthorizationError, NotFoundError
from pitchlink.models.connection import Connection
from pitchlink.modules.users.service import get_user
from pitchlink.schemas.enums import ConnectionStatus, Role


def _pair_filter(user_a: str, user_b: str):
    return or_(
        and_(Connection.initiator_id == user_a, Connection.counterparty_id == user_b),
        and_(Connection.initiator_id == user_b, Connection.counterparty_id == user_a),
    )


# ---------- LOOKUPS ----------

def get_connection(db: Session, connection_id: str) -> Optional[Connection]:
    return db.get(Connection, connection_id)


def require_connection(db: Session, connection_id: str) -> Connection:
    conn = get_connection(db, connection_id)
    if not conn:
        raise NotFoundError("Connection not found")
    return conn


def find_all_between(db: Session, user_a: str, user_b: str) -> List[Connection]:
    return (
        db.query(Connection)
        .filter(_pair_filter(user_a, user_b))
        .order_by(Connection.created_at.asc())
        .all()
    )


def find_between(db: Session, user_a: str, user_b: str) -> Optional[Connection]:
    """Any connection between the pair, whatever its status."""
    return db.query(Connection).filter(_pair_filter(user_a, user_b)).first()


def find_active(db: Session, user_a: str, user_b: str) -> Optional[Connection]:
    return (
        db.query(Connection)
        .filter(_pair_filter(user_a, user_b), Connection.status == ConnectionStatus.active.value)
        .first()
    )


def has_participant(connection: Connection, user_id: str) -> bool:
    return connection.has_participant(user_id)


def check_between(db: Session, user_a: str, user_b: str) -> dict:
    conn = find_between(db, user_a, user_b)
    if not conn:
        return {"connected": False, "status": None, "connection": None}
    return {"connected": True, "status": conn.status, "connection": conn}


def list_for_user(db: Session, user_id: str) -> List[Connection]:
    return (
        db.query(Connection)
        .filter(
            or_(Connection.initiator_id == user_id, Connection.counterparty_id == user_id),
            Connection.status == ConnectionStatus.active.value,
        )
        .order_by(Connection.created_at.desc())
        .all()
    )


def get_for_participant(db: Session, connection_id: str, user_id: str) -> Connection:
    conn = require_connection(db, connection_id)
    if not conn.has_participant(user_id):
        raise AuthorizationError("Not authorized to view this connection")
    return conn


# ---------- CREATE ----------

def pin_roles(db: Session, user_a: str, user_b: str) -> tuple[str, str]:
    """Return (initiator_id, counterparty_id) for the pair."""
    if user_a == user_b:
        raise AuthorizationError("Cannot connect to self")

    a = get_user(db, user_a)
    b = get_user(db, user_b)

    if a.role != b.role:
        return (a.id, b.id) if a.role == Role.initiator.value else (b.id, a.id)

    # same role on both sides: order by id so the pinned pair stays canonical
    return (a.id, b.id) if a.id < b.id else (b.id, a.id)


def create(
    db: Session,
    user_a: str,
    user_b: str,
    origin_request_id: Optional[str] = None,
) -> Connection:
    """
    Create the active connection for the pair.

    A concurrent create for the same pair trips the unique constraint; the
    loser re-fetches and returns the winner instead of failing.
    """
    initiator_id, counterparty_id = pin_roles(db, user_a, user_b)

    conn = Connection(
        initiator_id=initiator_id,
        counterparty_id=counterparty_id,
        origin_request_id=origin_request_id,
        status=ConnectionStatus.active.value,
    )
    db.add(conn)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = (
            db.query(Connection)
            .filter(
                Connection.initiator_id == initiator_id,
                Connection.counterparty_id == counterparty_id,
            )
            .first()
        )
        if existing is None:
            raise
        logger.info(f"Connection already exists | id={existing.id} status={existing.status}")
        return existing

    db.refresh(conn)
    logger.info(f"Connection created | id={conn.id} initiator={initiator_id} counterparty={counterparty_id}")
    return conn


# ---------- STATUS ----------

def toggle_block(db: Session, connection_id: str, acting_user_id: str) -> Connection:
    conn = require_connection(db, connection_id)
    if not conn.has_participant(acting_user_id):
        raise AuthorizationError("Not authorized to modify this connection")

    conn.status = (
        ConnectionStatus.blocked.value
        if conn.status == ConnectionStatus.active.value
        else ConnectionStatus.active.value
    )
    db.commit()
    db.refresh(conn)

    logger.info(f"Connection toggled | id={conn.id} status={conn.status} by={acting_user_id}")
    return conn


def set_status_between(db: Session, user_a: str, user_b: str, status: str, only_from: Optional[str] = None) -> int:
    q = db.query(Connection).filter(_pair_filter(user_a, user_b))
    if only_from is not None:
        q = q.filter(Connection.status == only_from)
    return q.update({Connection.status: status}, synchronize_session="fetch")
