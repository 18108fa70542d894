from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime

from models.enums import PostStatus, PostType, RequestStatus
from models.message_model import LastMessage

class ParticipantInfo(BaseModel):
    """Denormalized copy of a participant's profile"""
    first_name: str = ""
    last_name: str = ""
    profile_picture: Optional[str] = None

class Conversation(BaseModel):
    """Conversation between a post owner and another user about one post"""
    id: str
    post_id: Optional[str] = None
    post_title: str = ""
    post_type: Optional[PostType] = None
    post_status: Optional[PostStatus] = None
    post_creator_id: Optional[str] = None
    found_action: Optional[str] = None
    participant_ids: List[str] = Field(default_factory=list)
    participant_info: Dict[str, ParticipantInfo] = Field(default_factory=dict)
    unread_counts: Dict[str, int] = Field(default_factory=dict)
    last_message: Optional[LastMessage] = None
    has_handover_request: bool = False
    has_claim_request: bool = False
    handover_request_id: Optional[str] = None
    claim_request_id: Optional[str] = None
    handover_request_status: Optional[RequestStatus] = None
    claim_request_status: Optional[RequestStatus] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_valid(self) -> bool:
        """Conversations with fewer than two participants are deletable"""
        return len(set(self.participant_ids)) >= 2

    def other_participants(self, user_id: str) -> List[str]:
        return [pid for pid in self.participant_ids if pid != user_id]

class ConversationCreate(BaseModel):
    """Body for opening (or reusing) a conversation about a post"""
    post_id: str
