from enum import Enum

class RequestKind(str, Enum):
    """The two structured request flows a conversation can carry"""
    HANDOVER = "handover"
    CLAIM = "claim"

    @property
    def message_type(self) -> "MessageType":
        return MessageType(f"{self.value}_request")

    @property
    def data_field(self) -> str:
        """Name of the request record field on the message document"""
        return f"{self.value}_data"

    @property
    def response_type(self) -> "ResponseType":
        return ResponseType(f"{self.value}_response")

    @property
    def photo_folder(self) -> str:
        return "item_photos" if self is RequestKind.HANDOVER else "evidence_photos"

class MessageType(str, Enum):
    TEXT = "text"
    HANDOVER_REQUEST = "handover_request"
    CLAIM_REQUEST = "claim_request"

class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PENDING_CONFIRMATION = "pending_confirmation"
    REJECTED = "rejected"

class ResponseStatus(str, Enum):
    """Statuses a responder may choose"""
    ACCEPTED = "accepted"
    REJECTED = "rejected"

class ResponseType(str, Enum):
    HANDOVER_RESPONSE = "handover_response"
    CLAIM_RESPONSE = "claim_response"

class PostType(str, Enum):
    LOST = "lost"
    FOUND = "found"

class PostStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    UNCLAIMED = "unclaimed"
    COMPLETED = "completed"

class UserType(str, Enum):
    USER = "user"
    ADMIN = "admin"
