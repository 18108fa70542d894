import asyncio
import math
from typing import Any, Dict, List, Optional

from models.exceptions import PermissionDenied
from models.integrity_model import (
    ComprehensiveHealthCheckResult,
    ConversationIntegrityResult,
    GhostConversation,
    HealthCheckResult,
    OrphanedMessage,
)
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.post_repo import PostRepository
from logger.logger import logger

MISSING_POST_ID = "Missing postId field"
POST_GONE = "Post no longer exists"
POST_FORBIDDEN = "Cannot access post (permission denied)"
TOO_FEW_PARTICIPANTS = "Fewer than 2 participants"
PARENT_GONE = "Parent conversation no longer exists"


class IntegrityService:
    """
    Read-only audits of the conversation store against the post store.

    Nothing here deletes; the cleanup service acts on what these detectors
    return.
    """

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        message_repo: MessageRepository,
        post_repo: PostRepository,
        sample_size: int = 10,
    ):
        self.conversation_repo = conversation_repo
        self.message_repo = message_repo
        self.post_repo = post_repo
        self.sample_size = sample_size

    async def check_conversation(self, conversation: Dict[str, Any]) -> Optional[GhostConversation]:
        """Ghost entry for a conversation that should be deleted, None when it is healthy"""
        conversation_id = conversation["id"]
        post_id = conversation.get("post_id")
        if not post_id:
            return GhostConversation(conversation_id=conversation_id, post_id="", reason=MISSING_POST_ID)

        try:
            post = await self.post_repo.get_post(post_id)
        except PermissionDenied:
            return GhostConversation(conversation_id=conversation_id, post_id=post_id, reason=POST_FORBIDDEN)
        except Exception as e:
            return GhostConversation(
                conversation_id=conversation_id, post_id=post_id, reason=f"Error checking post: {e}"
            )

        if post is None:
            return GhostConversation(conversation_id=conversation_id, post_id=post_id, reason=POST_GONE)

        if len(set(conversation.get("participant_ids") or [])) < 2:
            return GhostConversation(conversation_id=conversation_id, post_id=post_id, reason=TOO_FEW_PARTICIPANTS)
        return None

    async def _ghosts_among(self, conversations: List[Dict[str, Any]]) -> List[GhostConversation]:
        checked = await asyncio.gather(*[self.check_conversation(c) for c in conversations])
        return [ghost for ghost in checked if ghost is not None]

    async def detect_ghost_conversations(self) -> List[GhostConversation]:
        conversations = await self.conversation_repo.list_conversations()
        ghosts = await self._ghosts_among(conversations)
        logger.info(f"Ghost detection: {len(ghosts)} of {len(conversations)} conversations")
        return ghosts

    async def _orphans_of(self, conversation_id: str) -> List[OrphanedMessage]:
        try:
            if await self.conversation_repo.exists(conversation_id):
                return []
        except PermissionDenied:
            logger.warning(f"Conversation {conversation_id} unreadable, treating its messages as orphaned")
        message_ids = await self.message_repo.list_message_ids(conversation_id)
        return [
            OrphanedMessage(conversation_id=conversation_id, message_id=mid, reason=PARENT_GONE)
            for mid in message_ids
        ]

    async def detect_orphaned_messages(self) -> List[OrphanedMessage]:
        """Messages whose conversation_id points at a conversation that is gone"""
        parent_ids = await self.message_repo.distinct_conversation_ids()
        per_parent = await asyncio.gather(*[self._orphans_of(cid) for cid in parent_ids])
        orphans = [orphan for group in per_parent for orphan in group]
        logger.info(f"Orphan detection: {len(orphans)} messages across {len(parent_ids)} parents")
        return orphans

    async def quick_health_check(self) -> HealthCheckResult:
        """
        Sample up to sample_size conversations and extrapolate.

        ghost_count is ceil(sampled_ghosts / sample_size * total): an estimate,
        not an exact count.
        """
        try:
            total = await self.conversation_repo.count_conversations()
            sample = await self.conversation_repo.sample_conversations(self.sample_size)
            if not sample:
                return HealthCheckResult(healthy=True, total_conversations=total)

            sampled_ghosts = await self._ghosts_among(sample)
            estimated = math.ceil(len(sampled_ghosts) / len(sample) * total)
            issues = []
            if estimated:
                issues.append(
                    f"Estimated {estimated} ghost conversations "
                    f"({len(sampled_ghosts)} of {len(sample)} sampled)"
                )
            return HealthCheckResult(
                healthy=estimated == 0,
                total_conversations=total,
                ghost_count=estimated,
                issues=issues,
            )
        except Exception as e:
            logger.error(f"Quick health check failed: {e}")
            return HealthCheckResult(healthy=False, issues=[f"Health check failed: {e}"])

    async def comprehensive_health_check(self) -> ComprehensiveHealthCheckResult:
        """Exact counts from both full detectors"""
        try:
            total, ghosts, orphans = await asyncio.gather(
                self.conversation_repo.count_conversations(),
                self.detect_ghost_conversations(),
                self.detect_orphaned_messages(),
            )
        except Exception as e:
            logger.error(f"Comprehensive health check failed: {e}")
            return ComprehensiveHealthCheckResult(healthy=False, issues=[f"Health check failed: {e}"])

        issues = []
        if ghosts:
            issues.append(f"Found {len(ghosts)} ghost conversations")
        if orphans:
            issues.append(f"Found {len(orphans)} orphaned messages")
        return ComprehensiveHealthCheckResult(
            healthy=not issues,
            total_conversations=total,
            ghost_count=len(ghosts),
            orphaned_messages=len(orphans),
            issues=issues,
        )

    async def validate_conversation_integrity(self) -> ConversationIntegrityResult:
        conversations = await self.conversation_repo.list_conversations()
        ghosts = {g.conversation_id: g for g in await self._ghosts_among(conversations)}
        result = ConversationIntegrityResult(total_conversations=len(conversations))

        for conversation in conversations:
            conversation_id = conversation["id"]
            ghost = ghosts.get(conversation_id)
            if ghost:
                result.ghost_conversations += 1
                result.details.append(f"{conversation_id}: ghost ({ghost.reason})")
                continue
            result.valid_conversations += 1
            if conversation.get("last_message"):
                result.details.append(f"{conversation_id}: valid")
            else:
                result.details.append(f"{conversation_id}: valid, no messages")

        result.orphaned_messages = len(await self.detect_orphaned_messages())
        return result
