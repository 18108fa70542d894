from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from models.enums import MessageType, RequestKind, RequestStatus, ResponseStatus

class EvidencePhoto(BaseModel):
    """An item photo (handover) or evidence photo (claim)"""
    url: str
    uploaded_at: datetime
    description: Optional[str] = None

class RequestRecord(BaseModel):
    """Shared shape of handover_data and claim_data"""
    post_id: str
    post_title: str = ""
    reason: str = ""
    id_photo_url: str = ""
    evidence_photos: List[EvidencePhoto] = Field(default_factory=list)
    requested_at: datetime
    status: RequestStatus = RequestStatus.PENDING
    responded_at: Optional[datetime] = None
    responder_id: Optional[str] = None
    owner_id_photo: Optional[str] = None
    id_photo_confirmed: bool = False
    id_photo_confirmed_at: Optional[datetime] = None
    photos_deleted: bool = False

    @property
    def awaits_confirmation(self) -> bool:
        """Accepted, with or without a counter photo, and not confirmed yet"""
        return (
            self.status in (RequestStatus.ACCEPTED, RequestStatus.PENDING_CONFIRMATION)
            and not self.id_photo_confirmed
        )

    @property
    def is_resolved(self) -> bool:
        return self.status == RequestStatus.ACCEPTED and self.id_photo_confirmed

class LastMessage(BaseModel):
    text: str
    sender_id: str
    timestamp: datetime

class MessageBase(BaseModel):
    """Base message fields shared across different message models"""
    text: str
    sender_id: str
    sender_name: str = ""
    sender_profile_picture: Optional[str] = None

class Message(MessageBase):
    """A stored message; request records are present iff message_type matches"""
    id: str
    conversation_id: str
    timestamp: datetime
    read_by: List[str] = Field(default_factory=list)
    message_type: MessageType = MessageType.TEXT
    handover_data: Optional[RequestRecord] = None
    claim_data: Optional[RequestRecord] = None

    def request_record(self, kind: RequestKind) -> Optional[RequestRecord]:
        if self.message_type != kind.message_type:
            return None
        return getattr(self, kind.data_field)

class MessageCreate(BaseModel):
    """Body for sending a plain text message"""
    text: str

class RequestCreate(BaseModel):
    """Body for sending a handover or claim request"""
    reason: str = ""
    id_photo_url: str
    photos: List[EvidencePhoto] = Field(default_factory=list)

class RequestResponse(BaseModel):
    """Body for responding to a handover or claim request"""
    status: ResponseStatus
    counter_photo_url: Optional[str] = None

class ConfirmResult(BaseModel):
    """Outcome of confirming a request; cascade problems do not undo the confirmation"""
    success: bool
    post_id: str
    conversation_deleted: bool
    deleted_conversations: int = 0
    cascade_errors: List[str] = Field(default_factory=list)

class EvidenceUpload(BaseModel):
    """A raw file handed to the evidence pipeline"""
    filename: str
    content_type: str
    data: bytes

class EvidenceDeleteResult(BaseModel):
    """Outcome of a best-effort bulk delete"""
    deleted: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
