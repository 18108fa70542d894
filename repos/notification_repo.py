from typing import Dict, Any, List

from repos.store_errors import translate_store_errors

class NotificationRepository:
    """
    Repository for notification documents
    One document per recipient; delivery to devices happens elsewhere
    """

    def __init__(self, db):
        self.db = db

    @translate_store_errors
    async def create_notifications(self, notifications: List[Dict[str, Any]]) -> int:
        """Insert one notification per recipient; returns how many were written"""
        if not notifications:
            return 0
        result = await self.db.notifications.insert_many([dict(n) for n in notifications])
        return len(result.inserted_ids)
