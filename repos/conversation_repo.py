from typing import Any, Dict, List, Optional

from pymongo import DESCENDING

from models.models import as_object_id, prepare_mongo_document
from repos.store_errors import translate_store_errors
from utils.time import get_current_utc_time

class ConversationRepository:
    """
    Repository for conversation documents.
    Unread counters are only ever touched per sub-key ($inc / $set on
    unread_counts.<user_id>), never rewritten as a whole map.
    """

    def __init__(self, db):
        self.db = db
        self.conversations = db.conversations

    @translate_store_errors
    async def get_conversation(self, conversation_id: str, session=None) -> Optional[Dict[str, Any]]:
        oid = as_object_id(conversation_id)
        if oid is None:
            return None
        doc = await self.conversations.find_one({"_id": oid}, session=session)
        return prepare_mongo_document(doc)

    @translate_store_errors
    async def exists(self, conversation_id: str) -> bool:
        oid = as_object_id(conversation_id)
        if oid is None:
            return False
        return await self.conversations.count_documents({"_id": oid}, limit=1) > 0

    @translate_store_errors
    async def list_conversations(self) -> List[Dict[str, Any]]:
        """All conversations, newest first"""
        cursor = self.conversations.find({}).sort("created_at", DESCENDING)
        docs = await cursor.to_list(length=None)
        return prepare_mongo_document(docs)

    @translate_store_errors
    async def sample_conversations(self, size: int) -> List[Dict[str, Any]]:
        docs = await self.conversations.aggregate([{"$sample": {"size": size}}]).to_list(length=size)
        return prepare_mongo_document(docs)

    @translate_store_errors
    async def count_conversations(self) -> int:
        return await self.conversations.count_documents({})

    @translate_store_errors
    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.conversations.find({"participant_ids": user_id}).sort("updated_at", DESCENDING)
        return prepare_mongo_document(await cursor.to_list(length=None))

    @translate_store_errors
    async def find_by_post_and_users(self, post_id: str, user_a: str, user_b: str) -> Optional[Dict[str, Any]]:
        doc = await self.conversations.find_one({
            "post_id": post_id,
            "participant_ids": {"$all": [user_a, user_b]},
        })
        return prepare_mongo_document(doc)

    @translate_store_errors
    async def find_ids_by_post(self, post_id: str) -> List[str]:
        cursor = self.conversations.find({"post_id": post_id}, {"_id": 1})
        return [str(doc["_id"]) for doc in await cursor.to_list(length=None)]

    @translate_store_errors
    async def create_conversation(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.conversations.insert_one(dict(data))
        created = await self.conversations.find_one({"_id": result.inserted_id})
        return prepare_mongo_document(created)

    @translate_store_errors
    async def record_new_message(
        self,
        conversation_id: str,
        last_message: Dict[str, Any],
        recipient_ids: List[str],
        extra_fields: Optional[Dict[str, Any]] = None,
        session=None,
    ) -> bool:
        """Set last_message (plus extra fields) and atomically bump each recipient's unread counter"""
        oid = as_object_id(conversation_id)
        if oid is None:
            return False
        update: Dict[str, Any] = {
            "$set": {
                "last_message": last_message,
                "updated_at": get_current_utc_time(),
                **(extra_fields or {}),
            }
        }
        if recipient_ids:
            update["$inc"] = {f"unread_counts.{rid}": 1 for rid in recipient_ids}
        result = await self.conversations.update_one({"_id": oid}, update, session=session)
        return result.matched_count > 0

    @translate_store_errors
    async def increment_unread(self, conversation_id: str, recipient_ids: List[str], session=None) -> bool:
        oid = as_object_id(conversation_id)
        if oid is None or not recipient_ids:
            return False
        result = await self.conversations.update_one(
            {"_id": oid},
            {"$inc": {f"unread_counts.{rid}": 1 for rid in recipient_ids}},
            session=session,
        )
        return result.matched_count > 0

    @translate_store_errors
    async def reset_unread(self, conversation_id: str, user_id: str) -> bool:
        oid = as_object_id(conversation_id)
        if oid is None:
            return False
        result = await self.conversations.update_one(
            {"_id": oid},
            {"$set": {f"unread_counts.{user_id}": 0}},
        )
        return result.matched_count > 0

    @translate_store_errors
    async def update_fields(self, conversation_id: str, fields: Dict[str, Any], session=None) -> bool:
        oid = as_object_id(conversation_id)
        if oid is None:
            return False
        result = await self.conversations.update_one(
            {"_id": oid},
            {"$set": {**fields, "updated_at": get_current_utc_time()}},
            session=session,
        )
        return result.matched_count > 0

    @translate_store_errors
    async def update_participant_info(self, user_id: str, info: Dict[str, Any]) -> int:
        result = await self.conversations.update_many(
            {"participant_ids": user_id},
            {"$set": {f"participant_info.{user_id}": info}},
        )
        return result.modified_count

    @translate_store_errors
    async def delete_conversation(self, conversation_id: str) -> bool:
        """Returns False when the document was already gone"""
        oid = as_object_id(conversation_id)
        if oid is None:
            return False
        result = await self.conversations.delete_one({"_id": oid})
        return result.deleted_count > 0
