from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pitchlink.core.db import get_db
from pitchlink.core.auth import get_current_user_id
from pitchlink.models.push_token import PushToken
from pitchlink.services.push import is_expo_token

router = APIRouter(prefix="/push", tags=["push"])


# ----------------------------
# Schemas
# ----------------------------
class PushRegisterRequest(BaseModel):
    token: str  # Expo push token
    platform: Optional[str] = None


# ----------------------------
# Register token for current user
# ----------------------------
@router.post("/register")
def register_push_token(
    payload: PushRegisterRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if not payload.token or not is_expo_token(payload.token):
        raise HTTPException(status_code=400, detail="Invalid Expo push token format")

    row = db.get(PushToken, user_id)
    if row:
        row.expo_push_token = payload.token
        row.platform = payload.platform
    else:
        row = PushToken(user_id=user_id, expo_push_token=payload.token, platform=payload.platform)
        db.add(row)

    db.commit()
    logger.info(f"Registered push token | user={user_id}")
    return {"ok": True}
