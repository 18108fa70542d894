from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING

from models.models import as_object_id, prepare_mongo_document
from repos.store_errors import translate_store_errors

class MessageRepository:
    """
    Repository for messages.
    Each message carries conversation_id; that field is the parent link the
    integrity checks follow.
    """

    def __init__(self, db):
        self.db = db
        self.messages = db.messages

    def _message_filter(self, conversation_id: str, message_id: str) -> Optional[Dict[str, Any]]:
        conv_oid = as_object_id(conversation_id)
        msg_oid = as_object_id(message_id)
        if conv_oid is None or msg_oid is None:
            return None
        return {"_id": msg_oid, "conversation_id": conv_oid}

    @translate_store_errors
    async def insert_message(self, conversation_id: str, data: Dict[str, Any], session=None) -> Dict[str, Any]:
        doc = {**data, "conversation_id": as_object_id(conversation_id)}
        result = await self.messages.insert_one(doc, session=session)
        doc["_id"] = result.inserted_id
        return prepare_mongo_document(doc)

    @translate_store_errors
    async def get_message(self, conversation_id: str, message_id: str) -> Optional[Dict[str, Any]]:
        query = self._message_filter(conversation_id, message_id)
        if query is None:
            return None
        return prepare_mongo_document(await self.messages.find_one(query))

    @translate_store_errors
    async def list_messages(self, conversation_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Messages in chronological order; with a limit, the most recent ones"""
        conv_oid = as_object_id(conversation_id)
        if conv_oid is None:
            return []
        if limit:
            cursor = self.messages.find({"conversation_id": conv_oid}).sort("timestamp", DESCENDING).limit(limit)
            docs = await cursor.to_list(length=limit)
            docs.reverse()
        else:
            cursor = self.messages.find({"conversation_id": conv_oid}).sort("timestamp", ASCENDING)
            docs = await cursor.to_list(length=None)
        return prepare_mongo_document(docs)

    @translate_store_errors
    async def list_message_ids(self, conversation_id: str) -> List[str]:
        conv_oid = as_object_id(conversation_id)
        if conv_oid is None:
            return []
        cursor = self.messages.find({"conversation_id": conv_oid}, {"_id": 1})
        return [str(doc["_id"]) for doc in await cursor.to_list(length=None)]

    @translate_store_errors
    async def latest_message(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        messages = await self.list_messages(conversation_id, limit=1)
        return messages[0] if messages else None

    @translate_store_errors
    async def distinct_conversation_ids(self) -> List[str]:
        ids = await self.messages.distinct("conversation_id")
        return [str(i) for i in ids]

    @translate_store_errors
    async def update_message_fields(
        self,
        conversation_id: str,
        message_id: str,
        fields: Dict[str, Any],
        conditions: Optional[Dict[str, Any]] = None,
        session=None,
    ) -> bool:
        """
        $set fields on one message.
        conditions are extra filter clauses checked by the same write, so a
        caller holding a stale copy matches nothing instead of overwriting.
        """
        query = self._message_filter(conversation_id, message_id)
        if query is None:
            return False
        if conditions:
            query.update(conditions)
        result = await self.messages.update_one(query, {"$set": fields}, session=session)
        return result.matched_count > 0

    @translate_store_errors
    async def add_reader(self, conversation_id: str, message_id: str, user_id: str) -> bool:
        query = self._message_filter(conversation_id, message_id)
        if query is None:
            return False
        result = await self.messages.update_one(query, {"$addToSet": {"read_by": user_id}})
        return result.matched_count > 0

    @translate_store_errors
    async def add_reader_to_unread(self, conversation_id: str, user_id: str) -> int:
        conv_oid = as_object_id(conversation_id)
        if conv_oid is None:
            return 0
        result = await self.messages.update_many(
            {"conversation_id": conv_oid, "read_by": {"$ne": user_id}},
            {"$addToSet": {"read_by": user_id}},
        )
        return result.modified_count

    @translate_store_errors
    async def update_sender_profile(self, user_id: str, sender_name: str, profile_picture: Optional[str]) -> int:
        result = await self.messages.update_many(
            {"sender_id": user_id},
            {"$set": {"sender_name": sender_name, "sender_profile_picture": profile_picture}},
        )
        return result.modified_count

    @translate_store_errors
    async def delete_message(self, conversation_id: str, message_id: str) -> bool:
        """Returns False when the message was already gone"""
        query = self._message_filter(conversation_id, message_id)
        if query is None:
            return False
        result = await self.messages.delete_one(query)
        return result.deleted_count > 0

    @translate_store_errors
    async def delete_messages_for_conversation(self, conversation_id: str) -> int:
        conv_oid = as_object_id(conversation_id)
        if conv_oid is None:
            return 0
        result = await self.messages.delete_many({"conversation_id": conv_oid})
        return result.deleted_count
