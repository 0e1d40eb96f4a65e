from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException
from jose import jwt, JWTError
from loguru import logger
from sqlalchemy.orm import Session

from pitchlink.core.config import AUTH_DEBUG, AUTH_VERIFY_MODE, JWT_SECRET
from pitchlink.core.db import get_db
from pitchlink.models.user import User


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
def _get_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header format")

    token = parts[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    return token


def _verify_jwt_hs256(token: str) -> Dict[str, Any]:
    if not JWT_SECRET:
        raise HTTPException(status_code=500, detail="JWT_SECRET not set")

    try:
        return jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def user_id_from_token(token: str) -> str:
    payload = _verify_jwt_hs256(token)

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token missing sub claim")

    return str(sub)


# ------------------------------------------------------------
# Main Dependencies
# ------------------------------------------------------------
def get_current_user_id(
    authorization: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
) -> str:
    if AUTH_DEBUG:
        logger.debug(f"[auth] mode={AUTH_VERIFY_MODE}")

    if AUTH_VERIFY_MODE == "header":
        if not x_user_id:
            raise HTTPException(status_code=401, detail="Missing X-User-Id header")
        return x_user_id

    if AUTH_VERIFY_MODE == "hs256":
        user_id = user_id_from_token(_get_bearer_token(authorization))
        if AUTH_DEBUG:
            logger.debug(f"[auth] user_id={user_id}")
        return user_id

    raise HTTPException(
        status_code=500,
        detail=f"Invalid AUTH_VERIFY_MODE: {AUTH_VERIFY_MODE}",
    )


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user
