from pydantic import BaseModel
from typing import Optional

class ProfileSnapshot(BaseModel):
    """
    The one authoritative shape of a user's denormalized profile.

    Messages embed sender_name/sender_profile_picture, conversations embed
    participant_info and confirmed posts embed contact details; all of them are
    derived from this object.
    """
    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    contact_num: str = ""
    student_id: str = ""
    profile_picture: Optional[str] = None
    user_type: str = "user"

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or "Unknown User"

    @classmethod
    def unknown(cls, user_id: str) -> "ProfileSnapshot":
        return cls(user_id=user_id)
