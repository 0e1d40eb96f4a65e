from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pitchlink.core.auth import get_current_user_id
from pitchlink.core.db import get_db
from pitchlink.schemas.relationships import BlockIn, BlockOut, BlockStatusOut
from . import service

router = APIRouter(prefix="/blocks", tags=["blocks"])


@router.get("", response_model=List[BlockOut])
def blocked_users(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.list_blocked_by(db, user_id)


@router.get("/status/{other_user_id}", response_model=BlockStatusOut)
def block_status(
    other_user_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return service.block_status(db, user_id, other_user_id)


@router.post("/{blocked_user_id}", response_model=BlockOut, status_code=201)
def block_user(
    blocked_user_id: str,
    payload: BlockIn | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    reason = payload.reason if payload else None
    return service.block_user(db, user_id, blocked_user_id, reason)


@router.delete("/{blocked_user_id}")
def unblock_user(
    blocked_user_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    service.unblock_user(db, user_id, blocked_user_id)
    return {"message": "User unblocked successfully"}
