"""
In-memory stand-ins for the Mongo repositories and the MinIO client.

They follow the repository method contracts closely enough for the services
to run unchanged; ids are real ObjectId strings.
"""
import copy
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from bson import ObjectId

from models.exceptions import PermissionDenied
from repos.post_repo import FINAL_STATUSES
from services.cache_service import CacheService
from services.cleanup_service import CleanupService
from services.evidence_service import EvidenceService
from services.integrity_service import IntegrityService
from services.media_service import MediaService
from services.message_service import MessageService
from services.profile_service import ProfileService
from services.request_service import RequestService
from services.unread_service import UnreadService
from utils.time import get_current_utc_time

MEDIA_HOST = "media"
BUCKET = "lostfound"


def new_id() -> str:
    return str(ObjectId())


def media_url(name: str, folder: str = "item_photos") -> str:
    return f"https://{MEDIA_HOST}/{BUCKET}/{folder}/{name}"


def _get_path(doc: Dict[str, Any], path: str) -> Any:
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _set_path(doc: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = doc
    for part in parts[:-1]:
        if current.get(part) is None:
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def _matches(doc: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
    for path, expected in conditions.items():
        actual = _get_path(doc, path)
        if isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif isinstance(expected, dict) and "$ne" in expected:
            if actual == expected["$ne"]:
                return False
        elif actual != expected:
            return False
    return True


class FakeStore:
    """Shared backing data for all fake repositories"""

    def __init__(self):
        self.posts: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self.conversations: Dict[str, Dict[str, Any]] = {}
        self.messages: Dict[str, Dict[str, Any]] = {}
        # ids whose reads raise PermissionDenied
        self.denied_posts: set = set()
        self.denied_conversations: set = set()
        # ids whose reads or deletes raise a generic error
        self.broken_posts: set = set()
        self.failing_conversation_deletes: set = set()

    def add_user(self, first_name: str, last_name: str = "", **extra) -> str:
        user_id = new_id()
        self.users[user_id] = {
            "id": user_id,
            "first_name": first_name,
            "last_name": last_name,
            "email": f"{first_name.lower()}@example.edu",
            "contact_num": "09170000000",
            "student_id": "2020-0001",
            "profile_picture": None,
            **extra,
        }
        return user_id

    def add_post(self, creator_id: str, title: str = "Black wallet", post_type: str = "lost", **extra) -> str:
        post_id = new_id()
        self.posts[post_id] = {
            "id": post_id,
            "title": title,
            "type": post_type,
            "status": "pending",
            "creator_id": creator_id,
            **extra,
        }
        return post_id

    def add_conversation(self, post_id: Optional[str], participant_ids: List[str], **extra) -> str:
        conversation_id = new_id()
        doc = {
            "id": conversation_id,
            "post_title": "Black wallet",
            "post_type": "lost",
            "participant_ids": list(participant_ids),
            "participant_info": {},
            "unread_counts": {pid: 0 for pid in participant_ids},
            "last_message": None,
            "created_at": get_current_utc_time(),
            **extra,
        }
        if post_id is not None:
            doc["post_id"] = post_id
        self.conversations[conversation_id] = doc
        return conversation_id

    def add_message(self, conversation_id: str, sender_id: str, text: str = "hello", **extra) -> str:
        message_id = new_id()
        self.messages[message_id] = {
            "id": message_id,
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "sender_name": "",
            "text": text,
            "timestamp": get_current_utc_time(),
            "read_by": [sender_id],
            "message_type": "text",
            **extra,
        }
        return message_id

    def messages_of(self, conversation_id: str) -> List[Dict[str, Any]]:
        return [m for m in self.messages.values() if m["conversation_id"] == conversation_id]


class FakeConversationRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def _check(self, conversation_id: str) -> None:
        if conversation_id in self.store.denied_conversations:
            raise PermissionDenied(f"conversation {conversation_id}: permission denied")

    async def get_conversation(self, conversation_id, session=None):
        self._check(conversation_id)
        doc = self.store.conversations.get(conversation_id)
        return copy.deepcopy(doc) if doc else None

    async def exists(self, conversation_id):
        self._check(conversation_id)
        return conversation_id in self.store.conversations

    async def list_conversations(self):
        return [copy.deepcopy(d) for d in self.store.conversations.values()]

    async def sample_conversations(self, size):
        return [copy.deepcopy(d) for d in list(self.store.conversations.values())[:size]]

    async def count_conversations(self):
        return len(self.store.conversations)

    async def list_for_user(self, user_id):
        return [copy.deepcopy(d) for d in self.store.conversations.values() if user_id in d["participant_ids"]]

    async def find_by_post_and_users(self, post_id, user_a, user_b):
        for doc in self.store.conversations.values():
            if doc.get("post_id") == post_id and {user_a, user_b} <= set(doc["participant_ids"]):
                return copy.deepcopy(doc)
        return None

    async def find_ids_by_post(self, post_id):
        return [cid for cid, d in self.store.conversations.items() if d.get("post_id") == post_id]

    async def create_conversation(self, data):
        conversation_id = new_id()
        self.store.conversations[conversation_id] = {"id": conversation_id, **copy.deepcopy(data)}
        return copy.deepcopy(self.store.conversations[conversation_id])

    async def record_new_message(self, conversation_id, last_message, recipient_ids, extra_fields=None, session=None):
        doc = self.store.conversations.get(conversation_id)
        if doc is None:
            return False
        doc["last_message"] = dict(last_message)
        doc["updated_at"] = get_current_utc_time()
        for key, value in (extra_fields or {}).items():
            _set_path(doc, key, value)
        counts = doc.setdefault("unread_counts", {})
        for rid in recipient_ids:
            counts[rid] = counts.get(rid, 0) + 1
        return True

    async def increment_unread(self, conversation_id, recipient_ids, session=None):
        doc = self.store.conversations.get(conversation_id)
        if doc is None or not recipient_ids:
            return False
        counts = doc.setdefault("unread_counts", {})
        for rid in recipient_ids:
            counts[rid] = counts.get(rid, 0) + 1
        return True

    async def reset_unread(self, conversation_id, user_id):
        self._check(conversation_id)
        doc = self.store.conversations.get(conversation_id)
        if doc is None:
            return False
        doc.setdefault("unread_counts", {})[user_id] = 0
        return True

    async def update_fields(self, conversation_id, fields, session=None):
        doc = self.store.conversations.get(conversation_id)
        if doc is None:
            return False
        for key, value in fields.items():
            _set_path(doc, key, copy.deepcopy(value))
        doc["updated_at"] = get_current_utc_time()
        return True

    async def update_participant_info(self, user_id, info):
        touched = 0
        for doc in self.store.conversations.values():
            if user_id in doc["participant_ids"]:
                doc.setdefault("participant_info", {})[user_id] = dict(info)
                touched += 1
        return touched

    async def delete_conversation(self, conversation_id):
        if conversation_id in self.store.failing_conversation_deletes:
            raise RuntimeError(f"store unavailable while deleting {conversation_id}")
        return self.store.conversations.pop(conversation_id, None) is not None


class FakeMessageRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def _find(self, conversation_id, message_id):
        doc = self.store.messages.get(message_id)
        if doc is None or doc["conversation_id"] != conversation_id:
            return None
        return doc

    def _check(self, conversation_id):
        if conversation_id in self.store.denied_conversations:
            raise PermissionDenied(f"messages of {conversation_id}: permission denied")

    async def insert_message(self, conversation_id, data, session=None):
        message_id = new_id()
        doc = {"id": message_id, **copy.deepcopy(data), "conversation_id": conversation_id}
        self.store.messages[message_id] = doc
        return copy.deepcopy(doc)

    async def get_message(self, conversation_id, message_id):
        doc = self._find(conversation_id, message_id)
        return copy.deepcopy(doc) if doc else None

    async def list_messages(self, conversation_id, limit=None):
        docs = sorted(self.store.messages_of(conversation_id), key=lambda m: m["timestamp"])
        if limit:
            docs = docs[-limit:]
        return [copy.deepcopy(d) for d in docs]

    async def list_message_ids(self, conversation_id):
        return [m["id"] for m in self.store.messages_of(conversation_id)]

    async def latest_message(self, conversation_id):
        docs = await self.list_messages(conversation_id, limit=1)
        return docs[0] if docs else None

    async def distinct_conversation_ids(self):
        return sorted({m["conversation_id"] for m in self.store.messages.values()})

    async def update_message_fields(self, conversation_id, message_id, fields, conditions=None, session=None):
        doc = self._find(conversation_id, message_id)
        if doc is None or not _matches(doc, conditions or {}):
            return False
        for key, value in fields.items():
            _set_path(doc, key, copy.deepcopy(value))
        return True

    async def add_reader(self, conversation_id, message_id, user_id):
        self._check(conversation_id)
        doc = self._find(conversation_id, message_id)
        if doc is None:
            return False
        if user_id not in doc["read_by"]:
            doc["read_by"].append(user_id)
        return True

    async def add_reader_to_unread(self, conversation_id, user_id):
        self._check(conversation_id)
        touched = 0
        for doc in self.store.messages_of(conversation_id):
            if user_id not in doc["read_by"]:
                doc["read_by"].append(user_id)
                touched += 1
        return touched

    async def update_sender_profile(self, user_id, sender_name, profile_picture):
        touched = 0
        for doc in self.store.messages.values():
            if doc["sender_id"] == user_id:
                doc["sender_name"] = sender_name
                doc["sender_profile_picture"] = profile_picture
                touched += 1
        return touched

    async def delete_message(self, conversation_id, message_id):
        if self._find(conversation_id, message_id) is None:
            return False
        del self.store.messages[message_id]
        return True

    async def delete_messages_for_conversation(self, conversation_id):
        ids = [m["id"] for m in self.store.messages_of(conversation_id)]
        for message_id in ids:
            del self.store.messages[message_id]
        return len(ids)


class FakePostRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_post(self, post_id):
        if post_id in self.store.denied_posts:
            raise PermissionDenied(f"post {post_id}: permission denied")
        if post_id in self.store.broken_posts:
            raise RuntimeError("connection reset")
        doc = self.store.posts.get(post_id)
        return copy.deepcopy(doc) if doc else None

    async def complete_post(self, post_id, status, details_field, details, session=None):
        doc = self.store.posts.get(post_id)
        if doc is None or doc.get("status") in FINAL_STATUSES:
            return False
        doc["status"] = status
        doc[details_field] = copy.deepcopy(details)
        return True


class FakeUserRepository:
    def __init__(self, store: FakeStore):
        self.store = store
        self.reads = 0

    async def get_user_by_id(self, user_id):
        self.reads += 1
        doc = self.store.users.get(user_id)
        return copy.deepcopy(doc) if doc else None

    async def update_profile(self, user_id, fields):
        doc = self.store.users.get(user_id)
        if doc is None:
            return False
        doc.update(fields)
        return True


class FakeMinio:
    """Records put/remove calls the way the minio client receives them"""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.removed: List[str] = []
        self.failing: set = set()

    def put_object(self, bucket_name, object_name, data, length, content_type):
        self.objects[f"{bucket_name}/{object_name}"] = data.read()

    def remove_object(self, bucket_name, object_name):
        if object_name in self.failing:
            raise RuntimeError(f"cannot remove {object_name}")
        self.objects.pop(f"{bucket_name}/{object_name}", None)
        self.removed.append(object_name)


class RecordingEvidenceService(EvidenceService):
    """EvidenceService that remembers every delete batch"""

    def __init__(self, media, upload_concurrency=3):
        super().__init__(media, upload_concurrency)
        self.delete_calls: List[List[str]] = []

    async def delete_evidence(self, urls):
        self.delete_calls.append(list(urls))
        return await super().delete_evidence(urls)


class FakeNotificationService:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[tuple] = []

    async def _record(self, name, *args):
        if self.fail:
            raise RuntimeError("notification backend down")
        self.sent.append((name, args))
        return 1

    async def send_message_notification(self, *args):
        return await self._record("message", *args)

    async def send_response_notification(self, *args):
        return await self._record("response", *args)

    async def send_claim_request_notification(self, *args):
        return await self._record("claim_request", *args)


def build_services(store: Optional[FakeStore] = None, notifications_fail: bool = False) -> SimpleNamespace:
    """Every service wired to the same fake store"""
    store = store or FakeStore()
    conversation_repo = FakeConversationRepository(store)
    message_repo = FakeMessageRepository(store)
    post_repo = FakePostRepository(store)
    user_repo = FakeUserRepository(store)
    minio = FakeMinio()
    media = MediaService(minio, BUCKET, f"https://{MEDIA_HOST}", [MEDIA_HOST])
    evidence = RecordingEvidenceService(media)
    notifications = FakeNotificationService(fail=notifications_fail)
    cache = CacheService(default_ttl=60)
    profiles = ProfileService(user_repo, conversation_repo, message_repo, cache)
    integrity = IntegrityService(conversation_repo, message_repo, post_repo, sample_size=10)
    cleanup = CleanupService(conversation_repo, message_repo, integrity)
    return SimpleNamespace(
        store=store,
        conversation_repo=conversation_repo,
        message_repo=message_repo,
        post_repo=post_repo,
        user_repo=user_repo,
        minio=minio,
        media=media,
        evidence=evidence,
        notifications=notifications,
        cache=cache,
        profiles=profiles,
        integrity=integrity,
        cleanup=cleanup,
        unread=UnreadService(conversation_repo, message_repo),
        messages=MessageService(
            conversation_repo, message_repo, post_repo, profiles, evidence, notifications
        ),
        requests=RequestService(
            conversation_repo, message_repo, post_repo, profiles, evidence, notifications, cleanup
        ),
    )
