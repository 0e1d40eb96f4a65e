from fastapi import APIRouter

from pitchlink.modules.blocks.routes import router as blocks_router
from pitchlink.modules.connections.routes import router as connections_router
from pitchlink.modules.conversations.routes import router as conversations_router
from pitchlink.modules.interests.routes import router as interests_router
from pitchlink.modules.message_requests.routes import router as message_requests_router
from pitchlink.modules.messages.routes import router as messages_router
from pitchlink.modules.notifications.routes import router as notifications_router
from pitchlink.realtime.routes import router as realtime_router
from pitchlink.routes.push import router as push_router

api_router = APIRouter(prefix="/v1")

api_router.include_router(connections_router)
api_router.include_router(blocks_router)
api_router.include_router(message_requests_router)
api_router.include_router(conversations_router)
api_router.include_router(messages_router)
api_router.include_router(interests_router)
api_router.include_router(notifications_router)
api_router.include_router(push_router)
api_router.include_router(realtime_router)
