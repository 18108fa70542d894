import importlib
from types import SimpleNamespace

from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.post_repo import PostRepository
from services.cleanup_service import CleanupService
from services.integrity_service import IntegrityService

REQUIRED_ENV = {
    "DATABASE_URL": "mongodb://localhost:27017",
    "DATABASE_NAME": "handover_test",
    "JWT_SECRET_KEY": "secret",
    "MINIO_USERNAME": "minio",
    "MINIO_PASSWORD": "minio-secret",
    "MINIO_SERVER": "http://localhost:9000",
    "MINIO_BUCKET": "evidence",
}


def test_background_cleanup_uses_request_wiring(monkeypatch):
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    messaging = importlib.import_module("dependencies.messaging")
    db = SimpleNamespace(conversations=object(), messages=object(), posts=object())

    cleanup = messaging.build_cleanup_service(db)

    assert isinstance(cleanup, CleanupService)
    assert isinstance(cleanup.conversation_repo, ConversationRepository)
    assert isinstance(cleanup.message_repo, MessageRepository)
    assert isinstance(cleanup.integrity, IntegrityService)
    assert isinstance(cleanup.integrity.post_repo, PostRepository)
    assert cleanup.integrity.conversation_repo is cleanup.conversation_repo
    assert cleanup.integrity.sample_size == messaging.HEALTH_SAMPLE_SIZE
    assert cleanup.conversation_repo.conversations is db.conversations
