from enum import Enum
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict, Any
from bson import ObjectId

class NotificationType(str, Enum):
    MESSAGE = "message"
    HANDOVER_RESPONSE = "handover_response"
    CLAIM_RESPONSE = "claim_response"
    CLAIM_REQUEST = "claim_request"

class NotificationCreate(BaseModel):
    recipient_id: str
    sender_id: str
    sender_name: str
    notification_type: NotificationType
    source_id: str  # conversation id, or post id for claim alerts
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        json_encoders = {ObjectId: str}

class NotificationResponse(BaseModel):
    id: str
    recipient_id: str
    sender_id: str
    sender_name: str
    notification_type: NotificationType
    source_id: str
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime] = None

    class Config:
        json_encoders = {ObjectId: str}
