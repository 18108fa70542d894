from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from models.enums import PostStatus, PostType, RequestKind
from models.message_model import EvidencePhoto

class Post(BaseModel):
    """The subset of a post the messaging layer reads"""
    id: str
    title: str = ""
    type: PostType = PostType.LOST
    status: PostStatus = PostStatus.PENDING
    creator_id: Optional[str] = None
    found_action: Optional[str] = None
    handover_details: Optional[Dict[str, Any]] = None
    claim_details: Optional[Dict[str, Any]] = None

class TransactionDetails(BaseModel):
    """
    Snapshot written onto a post when a request is confirmed.

    Stored as handover_details or claim_details depending on the request kind;
    requester is the finder (handover) or the claimant (claim), owner is the
    party who confirmed.
    """
    kind: RequestKind
    post_id: str
    post_title: str = ""
    conversation_id: str
    message_id: str
    requester_id: str
    requester_name: str = ""
    requester_email: str = ""
    requester_contact: str = ""
    requester_student_id: str = ""
    requester_profile_picture: Optional[str] = None
    owner_id: str
    owner_name: str = ""
    owner_email: str = ""
    owner_contact: str = ""
    reason: str = ""
    id_photo_url: str = ""
    owner_id_photo: str = ""
    photos: List[EvidencePhoto] = Field(default_factory=list)
    requested_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    confirmed_at: datetime
    confirmed_by: str
    request_message_text: str = ""
    request_message_timestamp: Optional[datetime] = None
