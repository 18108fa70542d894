# dependencies/messaging.py
from fastapi import Depends, Request
from typing import Annotated

from config import (
    MINIO_BUCKET,
    MEDIA_PUBLIC_URL,
    MEDIA_TRUSTED_HOSTS,
    MEDIA_UPLOAD_CONCURRENCY,
    HEALTH_SAMPLE_SIZE,
    MESSAGE_HISTORY_LIMIT,
)
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.notification_repo import NotificationRepository
from repos.post_repo import PostRepository
from repos.user_repo import UserRepository
from services.cache_service import CacheService
from services.cleanup_service import CleanupService
from services.conversation_watcher import ConversationWatcher
from services.evidence_service import EvidenceService
from services.integrity_service import IntegrityService
from services.media_service import MediaService
from services.message_service import MessageService
from services.notification_service import NotificationService
from services.profile_service import ProfileService
from services.request_service import RequestService
from services.unread_service import UnreadService
from .db import get_db, get_object_storage, Transaction

def get_conversation_repository(db=Depends(get_db)):
    return ConversationRepository(db)

def get_message_repository(db=Depends(get_db)):
    return MessageRepository(db)

def get_post_repository(db=Depends(get_db)):
    return PostRepository(db)

def get_user_repository(db=Depends(get_db)):
    return UserRepository(db)

def get_notification_repository(db=Depends(get_db)):
    return NotificationRepository(db)

def get_profile_cache(request: Request) -> CacheService:
    """The app-wide profile cache created at startup"""
    return request.app.state.profile_cache

def get_media_service(storage=Depends(get_object_storage)) -> MediaService:
    return MediaService(storage, MINIO_BUCKET, MEDIA_PUBLIC_URL, MEDIA_TRUSTED_HOSTS)

def get_evidence_service(media: MediaService = Depends(get_media_service)) -> EvidenceService:
    return EvidenceService(media, MEDIA_UPLOAD_CONCURRENCY)

def get_profile_service(
    user_repo: UserRepository = Depends(get_user_repository),
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
    message_repo: MessageRepository = Depends(get_message_repository),
    cache: CacheService = Depends(get_profile_cache),
) -> ProfileService:
    return ProfileService(user_repo, conversation_repo, message_repo, cache)

def get_notification_service(
    notification_repo: NotificationRepository = Depends(get_notification_repository),
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
) -> NotificationService:
    return NotificationService(notification_repo, conversation_repo)

def get_integrity_service(
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
    message_repo: MessageRepository = Depends(get_message_repository),
    post_repo: PostRepository = Depends(get_post_repository),
) -> IntegrityService:
    return IntegrityService(conversation_repo, message_repo, post_repo, HEALTH_SAMPLE_SIZE)

def get_cleanup_service(
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
    message_repo: MessageRepository = Depends(get_message_repository),
    integrity: IntegrityService = Depends(get_integrity_service),
) -> CleanupService:
    return CleanupService(conversation_repo, message_repo, integrity)

def build_cleanup_service(db) -> CleanupService:
    """Same wiring as the request path, for jobs that run outside a request"""
    conversation_repo = get_conversation_repository(db)
    message_repo = get_message_repository(db)
    integrity = get_integrity_service(conversation_repo, message_repo, get_post_repository(db))
    return get_cleanup_service(conversation_repo, message_repo, integrity)

def get_unread_service(
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
    message_repo: MessageRepository = Depends(get_message_repository),
) -> UnreadService:
    return UnreadService(conversation_repo, message_repo)

def get_message_service(
    transaction: Transaction,
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
    message_repo: MessageRepository = Depends(get_message_repository),
    post_repo: PostRepository = Depends(get_post_repository),
    profiles: ProfileService = Depends(get_profile_service),
    evidence: EvidenceService = Depends(get_evidence_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> MessageService:
    return MessageService(
        conversation_repo, message_repo, post_repo, profiles, evidence, notifications,
        transaction=transaction, history_limit=MESSAGE_HISTORY_LIMIT,
    )

def get_request_service(
    transaction: Transaction,
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
    message_repo: MessageRepository = Depends(get_message_repository),
    post_repo: PostRepository = Depends(get_post_repository),
    profiles: ProfileService = Depends(get_profile_service),
    evidence: EvidenceService = Depends(get_evidence_service),
    notifications: NotificationService = Depends(get_notification_service),
    cleanup: CleanupService = Depends(get_cleanup_service),
) -> RequestService:
    return RequestService(
        conversation_repo, message_repo, post_repo, profiles, evidence, notifications, cleanup,
        transaction=transaction,
    )

# Create type aliases for dependency injection
EvidenceServiceDep = Annotated[EvidenceService, Depends(get_evidence_service)]
IntegrityServiceDep = Annotated[IntegrityService, Depends(get_integrity_service)]
CleanupServiceDep = Annotated[CleanupService, Depends(get_cleanup_service)]
UnreadServiceDep = Annotated[UnreadService, Depends(get_unread_service)]
MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]
RequestServiceDep = Annotated[RequestService, Depends(get_request_service)]

def get_conversation_watcher(request: Request) -> ConversationWatcher:
    """The app-wide watcher created at startup"""
    return request.app.state.conversation_watcher

ConversationWatcherDep = Annotated[ConversationWatcher, Depends(get_conversation_watcher)]
