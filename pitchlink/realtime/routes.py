import asyncio
import json
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from loguru import logger
from sqlalchemy.orm import Session

from pitchlink.core.auth import user_id_from_token
from pitchlink.core.config import AUTH_VERIFY_MODE
from pitchlink.core.db import get_db
from pitchlink.modules.conversations.service import get_member
from pitchlink.realtime.hub import ChannelEvent, RealtimeNotifier, Subscription, get_notifier
from pitchlink.schemas.enums import RealtimeEvent

router = APIRouter(tags=["realtime"])

RELAYED = (RealtimeEvent.typing.value, RealtimeEvent.stop_typing.value)


def _authenticate(token: Optional[str], user_id: Optional[str]) -> Optional[str]:
    if AUTH_VERIFY_MODE == "header":
        return user_id
    if not token:
        return None
    try:
        return user_id_from_token(token)
    except HTTPException:
        return None


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier),
):
    uid = _authenticate(token, user_id)
    if not uid:
        logger.warning("Socket rejected | reason=unauthenticated")
        await websocket.close(code=4401)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # publishers run on worker threads; hop onto this loop before sending
    def _enqueue(event: ChannelEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, event)

    async def _pump() -> None:
        while True:
            event = await queue.get()
            await websocket.send_json(event.as_frame())

    personal = notifier.subscribe_user(uid, _enqueue)
    rooms: Dict[str, Subscription] = {}
    pump = asyncio.create_task(_pump())

    await websocket.send_json({"event": "connected", "data": {"user_id": uid}})
    logger.info(f"Socket connected | user={uid}")

    try:
        while True:
            try:
                frame = json.loads(await websocket.receive_text())
            except ValueError:
                frame = None
            if not isinstance(frame, dict):
                await websocket.send_json({"event": "error", "data": {"message": "Frame must be a JSON object"}})
                continue

            action = frame.get("action")
            conversation_id = frame.get("conversation_id")
            if not conversation_id:
                await websocket.send_json({"event": "error", "data": {"message": "conversation_id is required"}})
                continue

            if action == "join_chat":
                if conversation_id not in rooms:
                    member = await asyncio.to_thread(get_member, db, conversation_id, uid)
                    if member is None:
                        await websocket.send_json({"event": "error", "data": {"message": "Not a participant"}})
                        continue
                    rooms[conversation_id] = notifier.subscribe_conversation(conversation_id, _enqueue)
                await websocket.send_json({"event": "joined", "data": {"conversation_id": conversation_id}})

            elif action == "leave_chat":
                sub = rooms.pop(conversation_id, None)
                if sub:
                    notifier.unsubscribe(sub)

            elif action in RELAYED:
                if conversation_id in rooms:
                    notifier.emit_to_conversation(
                        conversation_id, action, {"user_id": uid, "conversation_id": conversation_id}
                    )

            else:
                await websocket.send_json({"event": "error", "data": {"message": f"Unknown action: {action}"}})
    except WebSocketDisconnect:
        logger.info(f"Socket disconnected | user={uid}")
    finally:
        notifier.unsubscribe(personal)
        for sub in rooms.values():
            notifier.unsubscribe(sub)
        pump.cancel()
        try:
            await pump
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"Socket pump failed | user={uid} error={e}")
