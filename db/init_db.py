from pymongo import ASCENDING, DESCENDING
from logger.logger import logger

async def init_db_indexes(db):
    """
    Initialize database with required indexes and configurations
    """
    # Conversations: lookups by post (dedupe, cascade) and by participant
    await db.conversations.create_index([("post_id", ASCENDING)])
    await db.conversations.create_index([("participant_ids", ASCENDING), ("updated_at", DESCENDING)])
    await db.conversations.create_index([("created_at", DESCENDING)])

    # Messages: history per conversation, profile fan-out by sender
    await db.messages.create_index([("conversation_id", ASCENDING), ("timestamp", ASCENDING)])
    await db.messages.create_index([("sender_id", ASCENDING)])

    # Notifications
    await db.notifications.create_index([("recipient_id", ASCENDING), ("created_at", DESCENDING)])

    logger.info("Database indexes created successfully")
