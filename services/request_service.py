from typing import Any, Dict, List, Optional, Tuple

from db.transactions import no_transaction
from models.conversation_model import Conversation
from models.enums import PostStatus, RequestKind, RequestStatus, ResponseStatus
from models.exceptions import InvalidState, NotFound, PermissionDenied, ValidationError
from models.message_model import ConfirmResult, Message, RequestCreate, RequestRecord, RequestResponse
from models.post_model import TransactionDetails
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.post_repo import FINAL_STATUSES, PostRepository
from services.cleanup_service import CleanupService
from services.evidence_service import MAX_EVIDENCE_PHOTOS, EvidenceService, extract_evidence_urls
from services.notification_service import NotificationService
from services.profile_service import ProfileService
from utils.time import get_current_utc_time
from logger.logger import logger

NO_REASON = "No reason provided"

# Post status written when a confirmed request resolves the post
RESOLVED_POST_STATUS = {
    RequestKind.HANDOVER: PostStatus.COMPLETED,
    RequestKind.CLAIM: PostStatus.RESOLVED,
}


class RequestService:
    """
    Lifecycle of handover and claim requests.

        pending --accept--> accepted
        pending --accept + counter photo--> pending_confirmation
        pending --reject--> rejected
        accepted | pending_confirmation --confirm--> accepted (confirmed, resolves the post)
        accepted | pending_confirmation --reject_after_confirmation--> rejected

    Every transition is a conditional write on the current status, so a caller
    acting on a stale copy gets InvalidState instead of overwriting newer state.
    Notifications and photo deletion are best-effort and never undo a transition.
    """

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        message_repo: MessageRepository,
        post_repo: PostRepository,
        profile_service: ProfileService,
        evidence_service: EvidenceService,
        notification_service: NotificationService,
        cleanup_service: CleanupService,
        transaction=no_transaction,
    ):
        self.conversation_repo = conversation_repo
        self.message_repo = message_repo
        self.post_repo = post_repo
        self.profiles = profile_service
        self.evidence = evidence_service
        self.notifications = notification_service
        self.cleanup = cleanup_service
        self.transaction = transaction

    async def _load_conversation(self, conversation_id: str) -> Conversation:
        conversation = await self.conversation_repo.get_conversation(conversation_id)
        if not conversation:
            raise NotFound(f"Conversation {conversation_id} not found")
        return Conversation(**conversation)

    @staticmethod
    def _require_participant(conversation: Conversation, user_id: str) -> None:
        if user_id not in conversation.participant_ids:
            raise PermissionDenied("You are not a participant in this conversation")

    async def _load_request(
        self, kind: RequestKind, conversation_id: str, message_id: str
    ) -> Tuple[Conversation, Message, RequestRecord]:
        conversation = await self._load_conversation(conversation_id)
        raw = await self.message_repo.get_message(conversation_id, message_id)
        if not raw:
            raise NotFound(f"Message {message_id} not found")
        message = Message(**raw)
        record = message.request_record(kind)
        if record is None:
            raise InvalidState(f"Message is not a {kind.value} request")
        return conversation, message, record

    async def _best_effort(self, description: str, awaitable) -> None:
        try:
            await awaitable
        except Exception as e:
            logger.warning(f"{description} failed: {e}")

    async def _transition(
        self,
        kind: RequestKind,
        conversation_id: str,
        message_id: str,
        fields: Dict[str, Any],
        allowed: List[RequestStatus],
        conversation_status: Optional[RequestStatus] = None,
        unconfirmed_only: bool = False,
        on_applied=None,
    ) -> None:
        """
        Apply a status change to the message and conversation in one unit of work.

        on_applied(session) runs after the message write and before the
        conversation write; an exception from it fails the whole transition.
        """
        df = kind.data_field
        conditions: Dict[str, Any] = {f"{df}.status": {"$in": [s.value for s in allowed]}}
        if unconfirmed_only:
            conditions[f"{df}.id_photo_confirmed"] = {"$ne": True}
        update = {f"{df}.{key}": value for key, value in fields.items()}

        async with self.transaction() as session:
            applied = await self.message_repo.update_message_fields(
                conversation_id, message_id, update, conditions=conditions, session=session
            )
            if not applied:
                raise InvalidState(f"The {kind.value} request was changed by someone else")
            if on_applied is not None:
                await on_applied(session)
            if conversation_status is not None:
                await self.conversation_repo.update_fields(
                    conversation_id,
                    {f"{kind.value}_request_status": conversation_status.value},
                    session=session,
                )

    async def _reload(self, conversation_id: str, message_id: str) -> Message:
        raw = await self.message_repo.get_message(conversation_id, message_id)
        if not raw:
            raise NotFound(f"Message {message_id} not found")
        return Message(**raw)

    async def send_request(
        self,
        kind: RequestKind,
        conversation_id: str,
        sender_id: str,
        request: RequestCreate,
        is_admin: bool = False,
    ) -> Message:
        """Post a handover or claim request message and bump the other participants' unread counts"""
        conversation = await self._load_conversation(conversation_id)
        self._require_participant(conversation, sender_id)

        id_photo_url = self.evidence.validate_url(request.id_photo_url, "ID photo URL")
        photo_label = "item" if kind is RequestKind.HANDOVER else "evidence"
        if len(request.photos) > MAX_EVIDENCE_PHOTOS:
            raise ValidationError(f"At most {MAX_EVIDENCE_PHOTOS} {photo_label} photos per request")
        for photo in request.photos:
            self.evidence.validate_url(photo.url, f"{photo_label.capitalize()} photo URL")
        if not request.photos and not is_admin:
            raise ValidationError(f"At least one {photo_label} photo is required")

        sender = await self.profiles.get_snapshot(sender_id)
        now = get_current_utc_time()
        reason = request.reason.strip() or NO_REASON
        record = RequestRecord(
            post_id=conversation.post_id or "",
            post_title=conversation.post_title,
            reason=reason,
            id_photo_url=id_photo_url,
            evidence_photos=request.photos,
            requested_at=now,
            status=RequestStatus.PENDING,
        )
        record_doc = record.model_dump()
        record_doc["status"] = record.status.value

        if kind is RequestKind.HANDOVER:
            text = f"Handover Request: {reason}"
            preview = text
        else:
            text = f"Claim Request: {reason}"
            preview = f"New claim request from {sender.full_name}"

        recipients = conversation.other_participants(sender_id)
        async with self.transaction() as session:
            message = await self.message_repo.insert_message(conversation_id, {
                "text": text,
                "sender_id": sender_id,
                "sender_name": sender.full_name,
                "sender_profile_picture": sender.profile_picture,
                "timestamp": now,
                "read_by": [sender_id],
                "message_type": kind.message_type.value,
                kind.data_field: record_doc,
            }, session=session)
            await self.conversation_repo.record_new_message(
                conversation_id,
                {"text": preview, "sender_id": sender_id, "timestamp": now},
                recipients,
                extra_fields={
                    f"has_{kind.value}_request": True,
                    f"{kind.value}_request_id": message["id"],
                    f"{kind.value}_request_status": RequestStatus.PENDING.value,
                },
                session=session,
            )
        logger.info(f"{kind.value} request {message['id']} sent in conversation {conversation_id}")

        await self._best_effort(
            f"{kind.value} request message notification",
            self.notifications.send_message_notification(
                conversation_id, sender_id, sender.full_name, text, conversation.post_title
            ),
        )
        if kind is RequestKind.CLAIM:
            await self._best_effort(
                "Claim request notification",
                self.notifications.send_claim_request_notification(
                    conversation_id,
                    conversation.post_id or "",
                    conversation.post_title,
                    conversation.post_type.value if conversation.post_type else None,
                    sender_id,
                    sender.full_name,
                ),
            )
        return Message(**message)

    async def respond(
        self,
        kind: RequestKind,
        conversation_id: str,
        message_id: str,
        responder_id: str,
        response: RequestResponse,
    ) -> Message:
        """
        Accept or reject a pending request.

        Accepting with a counter photo moves the request to pending_confirmation.
        Rejecting deletes every photo the request references after the status
        has changed; deletion failures are only logged.
        """
        conversation, message, record = await self._load_request(kind, conversation_id, message_id)
        self._require_participant(conversation, responder_id)
        if responder_id == message.sender_id:
            raise PermissionDenied(f"You cannot respond to your own {kind.value} request")
        if record.status != RequestStatus.PENDING:
            raise InvalidState(f"The {kind.value} request is already {record.status.value}")

        now = get_current_utc_time()
        fields: Dict[str, Any] = {"responded_at": now, "responder_id": responder_id}
        if response.status == ResponseStatus.REJECTED:
            new_status = RequestStatus.REJECTED
        elif response.counter_photo_url:
            fields["owner_id_photo"] = self.evidence.validate_url(response.counter_photo_url, "Counter photo URL")
            new_status = RequestStatus.PENDING_CONFIRMATION
        else:
            new_status = RequestStatus.ACCEPTED
        fields["status"] = new_status.value

        await self._transition(
            kind, conversation_id, message_id, fields,
            allowed=[RequestStatus.PENDING],
            conversation_status=new_status,
        )
        logger.info(f"{kind.value} request {message_id}: pending -> {new_status.value}")

        if new_status == RequestStatus.REJECTED:
            await self.evidence.delete_evidence(extract_evidence_urls(message.model_dump()))

        responder = await self.profiles.get_snapshot(responder_id)
        await self._best_effort(
            f"{kind.value} response notification",
            self.notifications.send_response_notification(
                conversation_id, responder_id, responder.full_name,
                kind.response_type, response.status.value, conversation.post_title,
            ),
        )
        return await self._reload(conversation_id, message_id)

    async def confirm(
        self,
        kind: RequestKind,
        conversation_id: str,
        message_id: str,
        confirming_user_id: str,
    ) -> ConfirmResult:
        """
        Confirm an accepted request and resolve its post.

        In order: mark the request confirmed, write the transaction snapshot and
        final status onto the post, notify, then delete every conversation of
        the post. Cascade failures are reported in the result and do not undo
        the earlier steps.
        """
        conversation, message, record = await self._load_request(kind, conversation_id, message_id)
        self._require_participant(conversation, confirming_user_id)
        if record.is_resolved:
            raise InvalidState(f"The {kind.value} request was already confirmed")
        if not record.awaits_confirmation:
            raise InvalidState(f"Cannot confirm a {record.status.value} {kind.value} request")

        post_id = conversation.post_id or record.post_id
        if not post_id:
            raise NotFound("No post ID found in conversation")
        post = await self.post_repo.get_post(post_id)
        if not post:
            raise NotFound(f"Post {post_id} not found")
        if post.get("status") in FINAL_STATUSES:
            raise InvalidState(f"Post {post_id} is already {post['status']}")

        now = get_current_utc_time()
        requester_id = message.sender_id
        owner_id = next(
            (pid for pid in conversation.participant_ids if pid != requester_id),
            confirming_user_id,
        )
        requester = await self.profiles.get_snapshot(requester_id)
        owner = await self.profiles.get_snapshot(owner_id)

        details = TransactionDetails(
            kind=kind,
            post_id=post_id,
            post_title=conversation.post_title or record.post_title,
            conversation_id=conversation_id,
            message_id=message_id,
            requester_id=requester_id,
            requester_name=requester.full_name,
            requester_email=requester.email,
            requester_contact=requester.contact_num,
            requester_student_id=requester.student_id,
            requester_profile_picture=requester.profile_picture,
            owner_id=owner_id,
            owner_name=owner.full_name,
            owner_email=owner.email,
            owner_contact=owner.contact_num,
            reason=record.reason,
            id_photo_url=record.id_photo_url,
            owner_id_photo=record.owner_id_photo or "",
            photos=record.evidence_photos,
            requested_at=record.requested_at,
            responded_at=record.responded_at,
            confirmed_at=now,
            confirmed_by=confirming_user_id,
            request_message_text=message.text,
            request_message_timestamp=message.timestamp,
        )
        details_doc = details.model_dump()
        details_doc["kind"] = kind.value
        post_status = RESOLVED_POST_STATUS[kind]
        df = kind.data_field

        async def claim_post(session):
            claimed = await self.post_repo.complete_post(
                post_id, post_status.value, f"{kind.value}_details", details_doc, session=session
            )
            if claimed:
                return
            # Without a transaction the message write is already applied; put it back
            await self.message_repo.update_message_fields(
                conversation_id, message_id,
                {
                    f"{df}.status": record.status.value,
                    f"{df}.id_photo_confirmed": False,
                    f"{df}.id_photo_confirmed_at": None,
                    f"{df}.responded_at": record.responded_at,
                    f"{df}.responder_id": record.responder_id,
                },
                session=session,
            )
            raise InvalidState(f"Post {post_id} was resolved by another request")

        await self._transition(
            kind, conversation_id, message_id,
            {
                "status": RequestStatus.ACCEPTED.value,
                "id_photo_confirmed": True,
                "id_photo_confirmed_at": now,
                "responded_at": now,
                "responder_id": confirming_user_id,
            },
            allowed=[RequestStatus.ACCEPTED, RequestStatus.PENDING_CONFIRMATION],
            conversation_status=RequestStatus.ACCEPTED,
            unconfirmed_only=True,
            on_applied=claim_post,
        )
        logger.info(f"Post {post_id} marked {post_status.value} by {kind.value} request {message_id}")

        confirmer = requester if confirming_user_id == requester_id else owner
        await self._best_effort(
            f"{kind.value} confirmation notification",
            self.notifications.send_response_notification(
                conversation_id, confirming_user_id, confirmer.full_name,
                kind.response_type, RequestStatus.ACCEPTED.value, details.post_title, post_id,
            ),
        )

        cascade = await self.cleanup.delete_post_conversations(post_id)
        if cascade.errors:
            logger.warning(f"Cascade for post {post_id} incomplete: {cascade.errors}")
        return ConfirmResult(
            success=True,
            post_id=post_id,
            conversation_deleted=not cascade.errors,
            deleted_conversations=cascade.success,
            cascade_errors=cascade.errors,
        )

    async def reject_after_confirmation(
        self,
        kind: RequestKind,
        conversation_id: str,
        message_id: str,
        rejecter_id: str,
    ) -> Message:
        """Reverse an accepted but unconfirmed request and delete all of its photos, counter photo included"""
        conversation, message, record = await self._load_request(kind, conversation_id, message_id)
        self._require_participant(conversation, rejecter_id)
        if not record.awaits_confirmation:
            raise InvalidState(f"Cannot reject a {record.status.value} {kind.value} request after confirmation")

        await self._transition(
            kind, conversation_id, message_id,
            {
                "status": RequestStatus.REJECTED.value,
                "photos_deleted": True,
                "responded_at": get_current_utc_time(),
                "responder_id": rejecter_id,
            },
            allowed=[RequestStatus.ACCEPTED, RequestStatus.PENDING_CONFIRMATION],
            conversation_status=RequestStatus.REJECTED,
            unconfirmed_only=True,
        )
        logger.info(f"{kind.value} request {message_id}: {record.status.value} -> rejected")

        await self.evidence.delete_evidence(extract_evidence_urls(message.model_dump()))

        rejecter = await self.profiles.get_snapshot(rejecter_id)
        await self._best_effort(
            f"{kind.value} rejection notification",
            self.notifications.send_response_notification(
                conversation_id, rejecter_id, rejecter.full_name,
                kind.response_type, RequestStatus.REJECTED.value, conversation.post_title,
            ),
        )
        return await self._reload(conversation_id, message_id)
