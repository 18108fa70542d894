from typing import Optional
from pydantic import BaseModel

from models.enums import UserType

class TokenData(BaseModel):
    """Claims read from a bearer token issued by the auth service"""
    username: Optional[str] = None
    user_id: Optional[str] = None
    user_type: Optional[str] = None

class AuthenticatedUser(BaseModel):
    """The caller of a request, as far as messaging is concerned"""
    id: str
    user_type: UserType = UserType.USER

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN
