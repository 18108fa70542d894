from typing import Dict, Any, List, Optional

from models.conversation_model import Conversation
from models.enums import ResponseType
from models.notifications_model import NotificationType, NotificationCreate
from repos.conversation_repo import ConversationRepository
from repos.notification_repo import NotificationRepository
from utils.time import get_current_utc_time
from logger.logger import logger


class NotificationService:
    """
    Turns messaging events into per-recipient notification documents.

    Callers treat every method as fire-and-forget: a failure here is logged by
    the caller and never rolls back the write that triggered it.
    """

    def __init__(self, notification_repository: NotificationRepository, conversation_repository: ConversationRepository):
        self.notification_repo = notification_repository
        self.conversation_repo = conversation_repository

    async def _recipients(self, conversation_id: str, exclude_id: str) -> List[str]:
        conversation = await self.conversation_repo.get_conversation(conversation_id)
        if not conversation:
            return []
        return Conversation(**conversation).other_participants(exclude_id)

    async def _fan_out(self, recipient_ids: List[str], notification: Dict[str, Any]) -> int:
        docs = []
        for recipient_id in recipient_ids:
            payload = NotificationCreate(recipient_id=recipient_id, **notification)
            docs.append({
                **payload.model_dump(mode="json"),
                "is_read": False,
                "created_at": get_current_utc_time(),
            })
        written = await self.notification_repo.create_notifications(docs)
        logger.info(f"Created {written} {notification['notification_type']} notification(s)")
        return written

    async def send_message_notification(
        self,
        conversation_id: str,
        sender_id: str,
        sender_name: str,
        text: str,
        post_title: str,
    ) -> int:
        """Notify every other participant of a new message"""
        recipients = await self._recipients(conversation_id, sender_id)
        return await self._fan_out(recipients, {
            "sender_id": sender_id,
            "sender_name": sender_name,
            "notification_type": NotificationType.MESSAGE,
            "source_id": conversation_id,
            "title": f"New message from {sender_name}",
            "message": text,
            "data": {"conversation_id": conversation_id, "post_title": post_title},
        })

    async def send_response_notification(
        self,
        conversation_id: str,
        responder_id: str,
        responder_name: str,
        response_type: ResponseType,
        status: str,
        post_title: str,
        post_id: Optional[str] = None,
    ) -> int:
        """Notify the other participants that a handover or claim request was answered"""
        recipients = await self._recipients(conversation_id, responder_id)
        label = "Handover" if response_type == ResponseType.HANDOVER_RESPONSE else "Claim"
        data = {"conversation_id": conversation_id, "status": status, "post_title": post_title}
        if post_id:
            data["post_id"] = post_id
        return await self._fan_out(recipients, {
            "sender_id": responder_id,
            "sender_name": responder_name,
            "notification_type": NotificationType(response_type.value),
            "source_id": conversation_id,
            "title": f"{label} request {status}",
            "message": f"{responder_name} {status} your {label.lower()} request for \"{post_title}\"",
            "data": data,
        })

    async def send_claim_request_notification(
        self,
        conversation_id: str,
        post_id: str,
        post_title: str,
        post_type: Optional[str],
        sender_id: str,
        sender_name: str,
    ) -> int:
        """Alert the post owner that someone claimed their item"""
        conversation = await self.conversation_repo.get_conversation(conversation_id)
        owner_id = conversation.get("post_creator_id") if conversation else None
        if not owner_id or owner_id == sender_id:
            return 0
        return await self._fan_out([owner_id], {
            "sender_id": sender_id,
            "sender_name": sender_name,
            "notification_type": NotificationType.CLAIM_REQUEST,
            "source_id": post_id,
            "title": "New claim request",
            "message": f"{sender_name} wants to claim \"{post_title}\"",
            "data": {"conversation_id": conversation_id, "post_id": post_id, "post_type": post_type},
        })
