from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

import httpx
from loguru import logger
from sqlalchemy.orm import Session

from pitchlink.core.config import EXPO_PUSH_URL, PUSH_ENABLED, PUSH_TIMEOUT_SECONDS
from pitchlink.models.push_token import PushToken

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="push")


def is_expo_token(token: str) -> bool:
    return token.startswith("ExponentPushToken[")


def _send_expo_push(message: Dict[str, Any]) -> bool:
    try:
        r = httpx.post(EXPO_PUSH_URL, json=message, timeout=PUSH_TIMEOUT_SECONDS)
        if r.status_code >= 400:
            logger.warning(f"Expo push error | status={r.status_code} body={r.text[:200]}")
            return False
    except Exception as e:
        logger.warning(f"Expo push failed | error={e}")
        return False

    logger.info(f"Push sent | to={message['to'][:24]}...")
    return True


class PushNotifier:
    """Best-effort, out-of-band push delivery. Never raises into the caller."""

    def __init__(self, enabled: bool = PUSH_ENABLED, executor: ThreadPoolExecutor = _executor):
        self.enabled = enabled
        self._executor = executor

    def notify(
        self,
        db: Session,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        if not self.enabled:
            logger.debug(f"Push skipped | user={user_id} reason=disabled title={title}")
            return False

        try:
            row = db.get(PushToken, user_id)
        except Exception as e:
            logger.warning(f"Push token lookup failed | user={user_id} error={e}")
            return False

        if not row:
            logger.debug(f"Push skipped | user={user_id} reason=no token")
            return False

        message = {
            "to": row.expo_push_token,
            "sound": "default",
            "title": title,
            "body": body[:120] if body else title,
            "data": data or {},
            "priority": "high",
        }
        try:
            self._executor.submit(_send_expo_push, message)
        except RuntimeError as e:
            logger.warning(f"Push not scheduled | user={user_id} error={e}")
            return False
        return True


push_notifier = PushNotifier()
