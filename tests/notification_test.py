import asyncio

from models.enums import ResponseType
from models.notifications_model import NotificationCreate, NotificationType
from services.notification_service import NotificationService
from tests.fakes import FakeConversationRepository, FakeStore


class FakeNotificationRepository:
    def __init__(self):
        self.docs = []

    async def create_notifications(self, docs):
        self.docs.extend(docs)
        return len(docs)


def setup_service():
    store = FakeStore()
    owner = store.add_user("Olivia")
    finder = store.add_user("Felix")
    post_id = store.add_post(owner)
    cid = store.add_conversation(post_id, [finder, owner], post_creator_id=owner)
    repo = FakeNotificationRepository()
    return NotificationService(repo, FakeConversationRepository(store)), repo, owner, finder, post_id, cid


def test_notification_models():
    notification = NotificationCreate(
        recipient_id="67dfef1ceca125f9a0b71237",
        sender_id="67dfef1ceca125f9a0b7123a",
        sender_name="test_user",
        notification_type=NotificationType.CLAIM_REQUEST,
        source_id="67dfef1ceca125f9a0b71240",
        title="New claim request",
        message="Test message",
    )
    assert notification.notification_type == "claim_request"
    assert notification.data == {}


def test_message_notification_goes_to_other_participants():
    service, repo, owner, finder, post_id, cid = setup_service()

    written = asyncio.run(service.send_message_notification(cid, finder, "Felix", "found it", "Black wallet"))

    assert written == 1
    doc = repo.docs[0]
    assert doc["recipient_id"] == owner
    assert doc["notification_type"] == "message"
    assert doc["is_read"] is False
    assert doc["data"]["post_title"] == "Black wallet"


def test_response_notification_carries_status():
    service, repo, owner, finder, post_id, cid = setup_service()

    asyncio.run(service.send_response_notification(
        cid, owner, "Olivia", ResponseType.CLAIM_RESPONSE, "rejected", "Black wallet", post_id
    ))

    doc = repo.docs[0]
    assert doc["recipient_id"] == finder
    assert doc["notification_type"] == "claim_response"
    assert doc["title"] == "Claim request rejected"
    assert doc["data"]["post_id"] == post_id


def test_claim_alert_skips_owner_claiming_own_post():
    service, repo, owner, finder, post_id, cid = setup_service()

    assert asyncio.run(service.send_claim_request_notification(cid, post_id, "Black wallet", "found", owner, "Olivia")) == 0
    assert asyncio.run(service.send_claim_request_notification(cid, post_id, "Black wallet", "found", finder, "Felix")) == 1
    assert repo.docs[0]["recipient_id"] == owner
    assert repo.docs[0]["source_id"] == post_id
