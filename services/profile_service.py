from models.exceptions import NotFound
from models.profile_model import ProfileSnapshot
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.user_repo import UserRepository
from services.cache_service import CacheService
from logger.logger import logger


def snapshot_from_user(user_id: str, user: dict) -> ProfileSnapshot:
    return ProfileSnapshot(
        user_id=user_id,
        first_name=user.get("first_name") or "",
        last_name=user.get("last_name") or "",
        email=user.get("email") or "",
        contact_num=user.get("contact_num") or "",
        student_id=user.get("student_id") or "",
        profile_picture=user.get("profile_picture"),
        user_type=user.get("user_type") or "user",
    )


def participant_info(snapshot: ProfileSnapshot) -> dict:
    """The slice of a profile embedded in conversation.participant_info"""
    return {
        "first_name": snapshot.first_name,
        "last_name": snapshot.last_name,
        "profile_picture": snapshot.profile_picture,
    }


class ProfileService:
    """
    Single owner of denormalized profile data.

    Reads go through the injected cache; update_snapshot is the only place
    that rewrites the copies embedded in messages and conversations.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        conversation_repo: ConversationRepository,
        message_repo: MessageRepository,
        cache: CacheService,
    ):
        self.user_repo = user_repo
        self.conversation_repo = conversation_repo
        self.message_repo = message_repo
        self.cache = cache

    @staticmethod
    def _cache_key(user_id: str) -> str:
        return f"profile:{user_id}"

    async def get_snapshot(self, user_id: str) -> ProfileSnapshot:
        """Profile for user_id; unknown users yield a placeholder instead of failing"""
        cached = self.cache.get(self._cache_key(user_id))
        if cached is not None:
            return cached

        user = await self.user_repo.get_user_by_id(user_id)
        if not user:
            logger.warning(f"Profile lookup for unknown user {user_id}")
            return ProfileSnapshot.unknown(user_id)

        snapshot = snapshot_from_user(user_id, user)
        self.cache.set(self._cache_key(user_id), snapshot)
        return snapshot

    async def update_snapshot(self, snapshot: ProfileSnapshot) -> dict:
        """Persist a profile change and push it to every embedded copy"""
        updated = await self.user_repo.update_profile(
            snapshot.user_id,
            snapshot.model_dump(exclude={"user_id", "user_type"}),
        )
        if not updated:
            raise NotFound(f"User {snapshot.user_id} not found")
        self.cache.invalidate(self._cache_key(snapshot.user_id))

        messages = await self.message_repo.update_sender_profile(
            snapshot.user_id, snapshot.full_name, snapshot.profile_picture
        )
        conversations = await self.conversation_repo.update_participant_info(
            snapshot.user_id, participant_info(snapshot)
        )
        logger.info(
            f"Profile of {snapshot.user_id} propagated to {messages} messages and {conversations} conversations"
        )
        return {"messages_updated": messages, "conversations_updated": conversations}
