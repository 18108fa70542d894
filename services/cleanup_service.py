import asyncio
import time
from typing import List

from models.integrity_model import CleanupResult, GhostConversation, OrphanedMessage, PeriodicCleanupResult
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from services.integrity_service import IntegrityService
from utils.time import get_current_utc_time
from logger.logger import logger


class CleanupService:
    """
    Deletes what the integrity checks find and tears down conversations of
    resolved posts.

    Deleting something that is already gone counts as success, so every
    operation here is safe to repeat.
    """

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        message_repo: MessageRepository,
        integrity_service: IntegrityService,
    ):
        self.conversation_repo = conversation_repo
        self.message_repo = message_repo
        self.integrity = integrity_service

    async def delete_conversation_cascade(self, conversation_id: str) -> bool:
        """Delete child messages, then the conversation; False if it was already gone"""
        removed = await self.message_repo.delete_messages_for_conversation(conversation_id)
        existed = await self.conversation_repo.delete_conversation(conversation_id)
        logger.info(f"Deleted conversation {conversation_id} ({removed} messages, existed={existed})")
        return existed

    async def cleanup_conversation(self, conversation_id: str) -> CleanupResult:
        try:
            existed = await self.delete_conversation_cascade(conversation_id)
        except Exception as e:
            logger.warning(f"Failed to delete conversation {conversation_id}: {e}")
            return CleanupResult(failed=1, errors=[f"{conversation_id}: {e}"])
        return CleanupResult(success=1, already_gone=0 if existed else 1)

    async def batch_cleanup_conversations(self, conversation_ids: List[str]) -> CleanupResult:
        results = await asyncio.gather(*[self.cleanup_conversation(cid) for cid in conversation_ids])
        total = CleanupResult()
        for result in results:
            total = total.merge(result)
        return total

    async def delete_post_conversations(self, post_id: str) -> CleanupResult:
        """Cascade-delete every conversation that references post_id"""
        conversation_ids = await self.conversation_repo.find_ids_by_post(post_id)
        result = await self.batch_cleanup_conversations(conversation_ids)
        logger.info(
            f"Post {post_id}: removed {result.success}/{len(conversation_ids)} conversations"
        )
        return result

    async def cleanup_ghost_conversations(self, ghosts: List[GhostConversation]) -> CleanupResult:
        result = await self.batch_cleanup_conversations([g.conversation_id for g in ghosts])
        logger.info(f"Ghost cleanup: {result.success} cleaned, {result.failed} failed")
        return result

    async def _cleanup_orphan(self, orphan: OrphanedMessage) -> CleanupResult:
        try:
            existed = await self.message_repo.delete_message(orphan.conversation_id, orphan.message_id)
        except Exception as e:
            logger.warning(f"Failed to delete orphaned message {orphan.message_id}: {e}")
            return CleanupResult(failed=1, errors=[f"{orphan.message_id}: {e}"])
        return CleanupResult(success=1, already_gone=0 if existed else 1)

    async def cleanup_orphaned_messages(self, orphans: List[OrphanedMessage]) -> CleanupResult:
        results = await asyncio.gather(*[self._cleanup_orphan(o) for o in orphans])
        total = CleanupResult()
        for result in results:
            total = total.merge(result)
        logger.info(f"Orphan cleanup: {total.success} cleaned, {total.failed} failed")
        return total

    async def run_periodic_cleanup(self) -> PeriodicCleanupResult:
        """
        Detect both kinds of debris in parallel, then clean both in parallel.

        Always returns a result; a failure of the whole run comes back as a
        zero-progress result carrying the error.
        """
        started = time.monotonic()
        timestamp = get_current_utc_time().isoformat()
        try:
            ghosts, orphans = await asyncio.gather(
                self.integrity.detect_ghost_conversations(),
                self.integrity.detect_orphaned_messages(),
            )
            ghost_result, orphan_result = await asyncio.gather(
                self.cleanup_ghost_conversations(ghosts),
                self.cleanup_orphaned_messages(orphans),
            )
        except Exception as e:
            logger.error(f"Periodic cleanup failed: {e}")
            return PeriodicCleanupResult(
                timestamp=timestamp,
                errors=[str(e)],
                duration=int((time.monotonic() - started) * 1000),
            )

        result = PeriodicCleanupResult(
            timestamp=timestamp,
            ghosts_detected=len(ghosts),
            ghosts_cleaned=ghost_result.success,
            orphans_detected=len(orphans),
            orphans_cleaned=orphan_result.success,
            errors=ghost_result.errors + orphan_result.errors,
            duration=int((time.monotonic() - started) * 1000),
        )
        logger.info(
            f"Periodic cleanup: {result.ghosts_cleaned}/{result.ghosts_detected} ghosts, "
            f"{result.orphans_cleaned}/{result.orphans_detected} orphans in {result.duration}ms"
        )
        return result
