from loguru import logger
from pitchlink.core.db import engine, Base

# Import all models so SQLAlchemy registers them
from pitchlink.models.user import User, Follow
from pitchlink.models.connection import Connection
from pitchlink.models.conversation import Conversation, ConversationMember
from pitchlink.models.message import Message
from pitchlink.models.message_request import MessageRequest
from pitchlink.models.blocked_user import BlockedUser
from pitchlink.models.interest import Interest
from pitchlink.models.notification import Notification
from pitchlink.models.push_token import PushToken

def init_db(bind=None):
    logger.info("Creating database tables")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created")
