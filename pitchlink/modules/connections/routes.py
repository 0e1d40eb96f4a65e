from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pitchlink.core.auth import get_current_user_id
from pitchlink.core.db import get_db
from pitchlink.schemas.relationships import (
    ConnectionCheckOut,
    ConnectionOut,
    ConnectionWithPeerOut,
)
from . import service

router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("", response_model=List[ConnectionWithPeerOut])
def my_connections(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return [
        ConnectionWithPeerOut(
            **ConnectionOut.model_validate(c).model_dump(),
            other_user_id=c.other_participant(user_id),
        )
        for c in service.list_for_user(db, user_id)
    ]


@router.get("/check/{other_user_id}", response_model=ConnectionCheckOut)
def check_connection(
    other_user_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.check_between(db, user_id, other_user_id)


@router.get("/{connection_id}", response_model=ConnectionOut)
def get_connection(
    connection_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.get_for_participant(db, connection_id, user_id)


@router.post("/{connection_id}/toggle-block", response_model=ConnectionOut)
def toggle_block(
    connection_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.toggle_block(db, connection_id, user_id)
