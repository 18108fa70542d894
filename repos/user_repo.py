from typing import Any, Dict, Optional

from models.models import as_object_id, prepare_mongo_document
from repos.store_errors import translate_store_errors
from utils.time import get_current_utc_time

class UserRepository:
    """Profile reads and writes used by the messaging layer"""

    PROFILE_FIELDS = ("first_name", "last_name", "email", "contact_num", "student_id", "profile_picture")

    def __init__(self, db):
        self.db = db
        self.users = db.users

    @translate_store_errors
    async def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        oid = as_object_id(user_id)
        if oid is None:
            return None
        return prepare_mongo_document(await self.users.find_one({"_id": oid}))

    @translate_store_errors
    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> bool:
        oid = as_object_id(user_id)
        if oid is None:
            return False
        update = {k: v for k, v in fields.items() if k in self.PROFILE_FIELDS}
        update["updated_at"] = get_current_utc_time()
        result = await self.users.update_one({"_id": oid}, {"$set": update})
        return result.matched_count > 0
