import asyncio
from typing import List, Optional

from db.transactions import no_transaction
from models.conversation_model import Conversation
from models.enums import MessageType, RequestStatus
from models.exceptions import NotFound, PermissionDenied, ValidationError
from models.integrity_model import AdminMessageStats
from models.message_model import Message
from models.post_model import Post
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.post_repo import PostRepository
from services.evidence_service import EvidenceService, extract_evidence_urls
from services.notification_service import NotificationService
from services.profile_service import ProfileService, participant_info
from utils.time import get_current_utc_time
from logger.logger import logger


class MessageService:
    def __init__(
        self,
        conversation_repo: ConversationRepository,
        message_repo: MessageRepository,
        post_repo: PostRepository,
        profile_service: ProfileService,
        evidence_service: EvidenceService,
        notification_service: NotificationService,
        transaction=no_transaction,
        history_limit: int = 50,
    ):
        self.conversation_repo = conversation_repo
        self.message_repo = message_repo
        self.post_repo = post_repo
        self.profiles = profile_service
        self.evidence = evidence_service
        self.notifications = notification_service
        self.transaction = transaction
        self.history_limit = history_limit

    async def get_conversation(self, conversation_id: str, user_id: str) -> Conversation:
        """Conversation the user takes part in"""
        conversation = await self.conversation_repo.get_conversation(conversation_id)
        if not conversation:
            raise NotFound(f"Conversation {conversation_id} not found")
        conversation = Conversation(**conversation)
        if user_id not in conversation.participant_ids:
            raise PermissionDenied("You are not a participant in this conversation")
        return conversation

    async def find_conversation(self, post_id: str, user_a: str, user_b: str) -> Optional[Conversation]:
        existing = await self.conversation_repo.find_by_post_and_users(post_id, user_a, user_b)
        return Conversation(**existing) if existing else None

    async def create_conversation(self, post_id: str, user_id: str) -> Conversation:
        """Open a conversation with the post's creator, reusing the existing one for this pair"""
        raw_post = await self.post_repo.get_post(post_id)
        if not raw_post:
            raise NotFound(f"Post {post_id} not found")
        post = Post(**raw_post)
        owner_id = post.creator_id
        if not owner_id:
            raise ValidationError("Post has no creator to message")
        if owner_id == user_id:
            raise ValidationError("Cannot start a conversation with yourself")

        existing = await self.find_conversation(post_id, user_id, owner_id)
        if existing:
            return existing

        user, owner = await asyncio.gather(
            self.profiles.get_snapshot(user_id),
            self.profiles.get_snapshot(owner_id),
        )
        now = get_current_utc_time()
        created = await self.conversation_repo.create_conversation({
            "post_id": post_id,
            "post_title": post.title,
            "post_type": post.type.value,
            "post_status": post.status.value,
            "post_creator_id": owner_id,
            "found_action": post.found_action,
            "participant_ids": [user_id, owner_id],
            "participant_info": {
                user_id: participant_info(user),
                owner_id: participant_info(owner),
            },
            "unread_counts": {user_id: 0, owner_id: 0},
            "last_message": None,
            "has_handover_request": False,
            "has_claim_request": False,
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"Conversation {created['id']} opened for post {post_id}")
        return Conversation(**created)

    async def list_conversations(self, user_id: str) -> List[Conversation]:
        conversations = [Conversation(**c) for c in await self.conversation_repo.list_for_user(user_id)]
        return [c for c in conversations if c.is_valid]

    async def send_message(self, conversation_id: str, sender_id: str, text: str) -> Message:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text cannot be empty")
        conversation = await self.get_conversation(conversation_id, sender_id)
        sender = await self.profiles.get_snapshot(sender_id)
        now = get_current_utc_time()

        async with self.transaction() as session:
            message = await self.message_repo.insert_message(conversation_id, {
                "text": text,
                "sender_id": sender_id,
                "sender_name": sender.full_name,
                "sender_profile_picture": sender.profile_picture,
                "timestamp": now,
                "read_by": [sender_id],
                "message_type": MessageType.TEXT.value,
            }, session=session)
            await self.conversation_repo.record_new_message(
                conversation_id,
                {"text": text, "sender_id": sender_id, "timestamp": now},
                conversation.other_participants(sender_id),
                session=session,
            )

        try:
            await self.notifications.send_message_notification(
                conversation_id, sender_id, sender.full_name, text, conversation.post_title
            )
        except Exception as e:
            logger.warning(f"Message notification failed: {e}")
        return Message(**message)

    async def get_messages(self, conversation_id: str, user_id: str, limit: Optional[int] = None) -> List[Message]:
        """Chronological history, the most recent history_limit messages at most"""
        await self.get_conversation(conversation_id, user_id)
        limit = min(limit or self.history_limit, self.history_limit)
        return [Message(**m) for m in await self.message_repo.list_messages(conversation_id, limit=limit)]

    async def delete_message(self, conversation_id: str, message_id: str, user_id: str) -> bool:
        """
        Delete one's own message.

        Photos go after the document so a failed media delete never leaves a
        message pointing at missing images. last_message is recomputed from
        what remains.
        """
        await self.get_conversation(conversation_id, user_id)
        message = await self.message_repo.get_message(conversation_id, message_id)
        if not message:
            raise NotFound(f"Message {message_id} not found")
        if message.get("sender_id") != user_id:
            raise PermissionDenied("You can only delete your own messages")

        await self.message_repo.delete_message(conversation_id, message_id)
        await self.evidence.delete_evidence(extract_evidence_urls(message))

        latest = await self.message_repo.latest_message(conversation_id)
        last_message = None
        if latest:
            last_message = {
                "text": latest["text"],
                "sender_id": latest["sender_id"],
                "timestamp": latest["timestamp"],
            }
        await self.conversation_repo.update_fields(conversation_id, {"last_message": last_message})
        logger.info(f"Message {message_id} deleted from conversation {conversation_id}")
        return True

    async def refresh_post_snapshot(self, conversation_id: str, user_id: str) -> Conversation:
        """Re-read the post and rewrite the copy of it stored on the conversation"""
        conversation = await self.get_conversation(conversation_id, user_id)
        if not conversation.post_id:
            raise NotFound("Conversation has no post")
        raw_post = await self.post_repo.get_post(conversation.post_id)
        if not raw_post:
            raise NotFound(f"Post {conversation.post_id} not found")
        post = Post(**raw_post)
        await self.conversation_repo.update_fields(conversation_id, {
            "post_title": post.title,
            "post_type": post.type.value,
            "post_status": post.status.value,
        })
        return await self.get_conversation(conversation_id, user_id)

    async def admin_message_stats(self) -> AdminMessageStats:
        stats = AdminMessageStats()
        for raw in await self.conversation_repo.list_conversations():
            conversation = Conversation(**raw)
            if not conversation.is_valid:
                continue
            stats.total_conversations += 1
            stats.total_unread_messages += sum(max(0, n) for n in conversation.unread_counts.values())
            if conversation.handover_request_status == RequestStatus.PENDING:
                stats.pending_handover_requests += 1
            if conversation.claim_request_status == RequestStatus.PENDING:
                stats.pending_claim_requests += 1
        return stats
