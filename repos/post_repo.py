from typing import Any, Dict, Optional

from models.enums import PostStatus
from models.models import as_object_id, prepare_mongo_document
from repos.store_errors import translate_store_errors
from utils.time import get_current_utc_time

# Statuses written by a confirmed handover or claim
FINAL_STATUSES = (PostStatus.COMPLETED.value, PostStatus.RESOLVED.value)

class PostRepository:
    """
    Read access to posts plus the single write the request flow performs on
    confirmation. Post CRUD lives elsewhere.
    """

    def __init__(self, db):
        self.db = db
        self.posts = db.posts

    @translate_store_errors
    async def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        oid = as_object_id(post_id)
        if oid is None:
            return None
        return prepare_mongo_document(await self.posts.find_one({"_id": oid}))

    @translate_store_errors
    async def complete_post(
        self, post_id: str, status: str, details_field: str, details: Dict[str, Any], session=None
    ) -> bool:
        """Resolve a post once; False when it is missing or already completed/resolved"""
        oid = as_object_id(post_id)
        if oid is None:
            return False
        result = await self.posts.update_one(
            {"_id": oid, "status": {"$nin": list(FINAL_STATUSES)}},
            {"$set": {
                "status": status,
                details_field: details,
                "updated_at": get_current_utc_time(),
            }},
            session=session,
        )
        return result.matched_count > 0
