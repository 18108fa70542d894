from typing import List

from models.exceptions import AlreadyGone, NotFound, PermissionDenied
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from logger.logger import logger

# A conversation deleted under our feet satisfies any read-marking intent.
# Permission-denied is treated the same way; it conflates an authorization
# failure with deletion and should be revisited if access control changes.
GONE_ERRORS = (AlreadyGone, NotFound, PermissionDenied)


class UnreadService:
    """Per-participant unread counters and per-message read_by sets"""

    def __init__(self, conversation_repo: ConversationRepository, message_repo: MessageRepository):
        self.conversation_repo = conversation_repo
        self.message_repo = message_repo

    async def increment_unread(self, conversation_id: str, recipient_ids: List[str], session=None) -> bool:
        """Atomic $inc per recipient; message sends fold this into their own conversation write"""
        return await self.conversation_repo.increment_unread(conversation_id, recipient_ids, session=session)

    async def mark_conversation_read(self, conversation_id: str, user_id: str) -> bool:
        try:
            return await self.conversation_repo.reset_unread(conversation_id, user_id)
        except GONE_ERRORS as e:
            logger.warning(f"Conversation {conversation_id} gone while marking read: {e}")
            return False

    async def mark_message_read(self, conversation_id: str, message_id: str, user_id: str) -> bool:
        try:
            return await self.message_repo.add_reader(conversation_id, message_id, user_id)
        except GONE_ERRORS as e:
            logger.warning(f"Message {message_id} gone while marking read: {e}")
            return False

    async def mark_all_unread_read(self, conversation_id: str, user_id: str) -> int:
        """Union user_id into every read_by that lacks it; returns the number of messages touched"""
        try:
            return await self.message_repo.add_reader_to_unread(conversation_id, user_id)
        except GONE_ERRORS as e:
            logger.warning(f"Conversation {conversation_id} gone while marking all read: {e}")
            return 0
